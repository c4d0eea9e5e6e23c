"""Dispatcher: sends a composed request with requests and times it."""

import logging
import re
import time
from dataclasses import dataclass

import requests

from api_workbench.transport.composer import ComposedRequest
from api_workbench.transport.response import Response, ResponseHeader

logger = logging.getLogger(__name__)

_CHARSET_RE = re.compile(r"charset\s*=\s*\"?([^\";\s]+)", re.IGNORECASE)


@dataclass
class TransportOptions:
    """Per-send transport settings. Nothing here is process-global."""

    strict_ssl: bool = True
    timeout: float | None = 30.0
    follow_redirects: bool = True


class Dispatcher:
    """Issues composed requests and normalizes every outcome into a Response.

    Any HTTP status, 1xx to 5xx, is a normal Response. Only transport failures
    (DNS, refused or reset connections, timeouts, TLS) produce ``error``.
    """

    def __init__(self, session: requests.Session | None = None):
        self.session = session or requests.Session()

    def send(self, composed: ComposedRequest, options: TransportOptions | None = None) -> Response:
        options = options or TransportOptions()
        if not composed.url:
            return Response.failure("Request URL is empty")

        started = time.perf_counter()
        try:
            # stream=True returns once the status line and headers arrive
            resp = self.session.request(
                method=composed.method,
                url=composed.url,
                headers=composed.headers,
                data=composed.body or None,
                auth=composed.basic_auth,
                verify=options.strict_ssl,
                timeout=options.timeout,
                allow_redirects=options.follow_redirects,
                stream=True,
            )
            duration_ms = _elapsed_ms(started)
            with resp:
                data = _decode_body(resp.content, resp.headers.get("Content-Type", ""))
        except (requests.RequestException, UnicodeError) as e:
            logger.info(f"{composed.method} {composed.url} failed: {e}")
            return Response.failure(_describe(e), duration_ms=_elapsed_ms(started))

        logger.info(f"{composed.method} {composed.url} -> {resp.status_code} ({duration_ms} ms)")
        return Response(
            status=resp.status_code,
            status_text=resp.reason or "",
            data=data,
            headers=[ResponseHeader(key=k, value=v) for k, v in resp.headers.items()],
            duration_ms=duration_ms,
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _decode_body(content: bytes, content_type: str) -> str:
    """Decode with the declared charset, UTF-8 when none is declared."""
    match = _CHARSET_RE.search(content_type)
    if match:
        try:
            return content.decode(match.group(1), errors="replace")
        except LookupError:
            logger.debug(f"Unknown response charset {match.group(1)!r}, using UTF-8")
    return content.decode("utf-8", errors="replace")


def _describe(error: Exception) -> str:
    if isinstance(error, requests.exceptions.SSLError):
        kind = "TLS error"
    elif isinstance(error, requests.exceptions.Timeout):
        kind = "Timeout"
    elif isinstance(error, requests.exceptions.ConnectionError):
        kind = "Connection error"
    else:
        kind = "Request failed"
    return f"{kind}: {error}"
