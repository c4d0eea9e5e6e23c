"""
Credential vault - secret blobs addressed by opaque, namespaced keys.

Keys:
    credentials.<request id>      -> Credential JSON
    credentials.global.<name>     -> raw secret string

The vault knows nothing about collections or requests beyond the key.
"""

from __future__ import annotations
import json
import logging
from typing import Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from api_workbench.storage.base import Credential

logger = logging.getLogger(__name__)

CREDENTIALS_PREFIX = "credentials."
GLOBAL_PREFIX = CREDENTIALS_PREFIX + "global."


class SecretStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


def request_key(request_id: str) -> str:
    return f"{CREDENTIALS_PREFIX}{request_id}"


def global_key(name: str) -> str:
    return f"{GLOBAL_PREFIX}{name}"


class CredentialVault:
    """Secret-only store, kept apart from the collection store."""

    def __init__(self, storage: SecretStorage):
        self.storage = storage

    # Raw blob access

    def store(self, key: str, secret: str) -> None:
        self.storage.set(key, secret)

    def get(self, key: str) -> Optional[str]:
        return self.storage.get(key)

    def delete(self, key: str) -> None:
        self.storage.delete(key)

    # Per-request credentials

    def store_credential(self, request_id: str, credential: Credential) -> None:
        payload = credential.model_dump(mode="json", exclude_none=True)
        self.store(request_key(request_id), json.dumps(payload))
        logger.debug(f"Stored credentials for request {request_id}")

    def get_credential(self, request_id: str) -> Optional[Credential]:
        """Credentials of a request, or None if absent or unreadable."""
        data = self.get(request_key(request_id))
        if not data:
            return None
        try:
            return Credential.model_validate(json.loads(data))
        except (json.JSONDecodeError, PydanticValidationError):
            logger.warning(f"Ignoring corrupt credentials for request {request_id}")
            return None

    def delete_credential(self, request_id: str) -> None:
        self.delete(request_key(request_id))
        logger.debug(f"Deleted credentials for request {request_id}")

    # Global credentials, reusable across requests

    def store_global(self, name: str, value: str) -> None:
        self.store(global_key(name), value)

    def get_global(self, name: str) -> Optional[str]:
        return self.get(global_key(name))

    def delete_global(self, name: str) -> None:
        self.delete(global_key(name))
