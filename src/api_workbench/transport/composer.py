"""Request composer: turns a RequestSpec into a wire-ready request.

Pure translation, no network or storage access. Header precedence, last write
wins by exact key:

1. ``Authorization: Bearer <token>`` when auth type is bearer
2. enabled user headers, in list order
3. one ``Content-Type`` forced by the body mode (none for mode ``none``)

Basic auth is not turned into a header here; it is handed to the transport as
a username/password pair.
"""

import base64
import binascii
import json
import re
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from urllib3 import encode_multipart_formdata

from api_workbench.errors import CompositionError
from api_workbench.storage.base import AUTH_TYPES, BODY_MODES, Body, KeyValue, RequestSpec

METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

RAW_CONTENT_TYPES = {
    "json": "application/json",
    "html": "text/html",
    "xml": "text/xml",
    "text": "text/plain",
}

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_DATA_URL_RE = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)


@dataclass
class ComposedRequest:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    basic_auth: tuple[str, str] | None = None


def compose(spec: RequestSpec, boundary: str | None = None) -> ComposedRequest:
    """Compose ``spec`` into a ComposedRequest.

    ``boundary`` fixes the multipart boundary for formdata bodies; a random one
    is used when omitted.
    """
    method = (spec.method or "").strip().upper()
    if method not in METHODS:
        raise CompositionError(f"Unknown HTTP method: {spec.method!r}")
    if spec.auth.type not in AUTH_TYPES:
        raise CompositionError(f"Unknown auth type: {spec.auth.type!r}")

    headers: dict[str, str] = {}
    if spec.auth.type == "bearer":
        headers["Authorization"] = f"Bearer {spec.auth.bearer.token}"

    for header in _enabled(spec.headers):
        if header.key:
            headers[header.key] = header.value

    body, content_type = _compose_body(spec.body, boundary)
    if content_type:
        headers["Content-Type"] = content_type

    basic_auth = None
    if spec.auth.type == "basic":
        basic_auth = (spec.auth.basic.username, spec.auth.basic.password)
        _check_latin1(basic_auth[0], "Basic auth username")
        _check_latin1(basic_auth[1], "Basic auth password")

    for key, value in headers.items():
        _check_latin1(key, "Header name")
        _check_latin1(value, f"Header {key}")

    return ComposedRequest(
        method=method,
        url=resolve_url(spec.url, spec.query_params),
        headers=headers,
        body=body,
        basic_auth=basic_auth,
    )


def resolve_url(url: str, query_params: list[KeyValue] | None = None) -> str:
    """Add ``http://`` to scheme-less URLs and merge enabled query params.

    A param already present in the URL with the same value is not repeated.
    An empty URL stays empty.
    """
    url = url.strip()
    if not url:
        return ""
    if not _SCHEME_RE.match(url):
        url = f"http://{url}"

    params = [(p.key, p.value) for p in _enabled(query_params or [])]
    if not params:
        return url

    parts = urlsplit(url)
    existing = set(parse_qsl(parts.query, keep_blank_values=True))
    extra = [pair for pair in params if pair not in existing]
    if not extra:
        return url
    query = "&".join(q for q in (parts.query, urlencode(extra)) if q)
    return urlunsplit(parts._replace(query=query))


def _enabled(rows: list[KeyValue]) -> list[KeyValue]:
    return [row for row in rows if not row.disabled]


def _check_latin1(value: str, what: str) -> None:
    # http.client and requests.auth encode header text as latin-1
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        raise CompositionError(f"{what} contains characters that cannot be sent in an HTTP header") from None


def _compose_body(body: Body, boundary: str | None) -> tuple[bytes, str | None]:
    if body.mode not in BODY_MODES:
        raise CompositionError(f"Unknown body mode: {body.mode!r}")
    if body.disabled or body.mode == "none":
        return b"", None

    if body.mode == "formdata":
        fields = [(row.key, row.value) for row in _enabled(body.formdata)]
        payload, content_type = encode_multipart_formdata(fields, boundary=boundary)
        return payload, content_type

    if body.mode == "urlencoded":
        pairs = [(row.key, row.value) for row in _enabled(body.urlencoded)]
        return urlencode(pairs).encode(), "application/x-www-form-urlencoded"

    if body.mode == "raw":
        return body.raw.encode(), _raw_content_type(body.options)

    if body.mode == "file":
        return _file_payload(body.file_data), "application/octet-stream"

    # graphql
    return _graphql_payload(body), "application/json"


def _raw_content_type(options: dict) -> str:
    raw_options = options.get("raw") or {}
    language = raw_options.get("language") or "text"
    try:
        return RAW_CONTENT_TYPES[language]
    except KeyError:
        raise CompositionError(f"Unknown raw body language: {language!r}") from None


def _file_payload(file_data: str) -> bytes:
    match = _DATA_URL_RE.match(file_data)
    if not match:
        return file_data.encode()
    try:
        return base64.b64decode(file_data[match.end():], validate=True)
    except binascii.Error as e:
        raise CompositionError(f"Invalid base64 file data: {e}") from e


def _graphql_payload(body: Body) -> bytes:
    variables_text = body.graphql.variables.strip()
    try:
        variables = json.loads(variables_text) if variables_text else {}
    except json.JSONDecodeError as e:
        raise CompositionError(f"GraphQL variables are not valid JSON: {e}") from e
    return json.dumps({"query": body.graphql.query, "variables": variables}).encode()
