"""
Secret storage backends for the credential vault.

- KeyringStorage: OS keychain via ``keyring`` (macOS Keychain, Windows
  Credential Locker, Secret Service on Linux).
- EncryptedFileStorage: Fernet-encrypted JSON file, key derived from a
  passphrase.
"""

from __future__ import annotations
import base64
import json
import logging
import os
import secrets
from pathlib import Path
from typing import Optional

import keyring
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from keyring.errors import KeyringError, PasswordDeleteError

from api_workbench.errors import PersistenceError

logger = logging.getLogger(__name__)


class KeyringStorage:
    """
    Secrets stored in the system keychain under one service name.

    Encryption at rest is the keychain's job.
    """

    def __init__(self, service_name: str = "api-workbench"):
        self.service_name = service_name

    def get(self, key: str) -> Optional[str]:
        try:
            return keyring.get_password(self.service_name, key)
        except KeyringError as e:
            logger.warning(f"Keychain read failed for {key}: {e}")
            return None

    def set(self, key: str, value: str) -> None:
        try:
            keyring.set_password(self.service_name, key, value)
        except KeyringError as e:
            raise PersistenceError(f"Keychain write failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            keyring.delete_password(self.service_name, key)
        except PasswordDeleteError:
            # Not stored - nothing to do
            pass
        except KeyringError as e:
            raise PersistenceError(f"Keychain delete failed: {e}") from e


class EncryptedFileStorage:
    """
    Secrets stored as Fernet tokens in a JSON file.

    File layout::

        {"salt": "<base64>", "entries": {"<key>": "<fernet token>"}}

    The salt is created with the file; the Fernet key is derived from the
    passphrase with PBKDF2-HMAC-SHA256.
    """

    KDF_ITERATIONS = 480000

    def __init__(self, path: Path, passphrase: str):
        self.path = path
        salt, self._entries = self._read()
        self._fernet = Fernet(self._derive_key(passphrase, salt))
        self._salt = salt

    def _read(self) -> tuple[bytes, dict[str, str]]:
        if not self.path.exists():
            return secrets.token_bytes(16), {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return base64.b64decode(data["salt"]), dict(data.get("entries", {}))
        except (OSError, ValueError, KeyError) as e:
            raise PersistenceError(f"Cannot read vault file {self.path}: {e}") from e

    def _derive_key(self, passphrase: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=self.KDF_ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(passphrase.encode()))

    def _write(self, entries: dict[str, str]) -> None:
        payload = {
            "salt": base64.b64encode(self._salt).decode(),
            "entries": entries,
        }
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise PersistenceError(f"Cannot write vault file {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        token = self._entries.get(key)
        if token is None:
            return None
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except InvalidToken:
            logger.warning(f"Vault entry {key} cannot be decrypted (wrong passphrase?)")
            return None

    def set(self, key: str, value: str) -> None:
        entries = dict(self._entries)
        entries[key] = self._fernet.encrypt(value.encode()).decode()
        self._write(entries)
        self._entries = entries

    def delete(self, key: str) -> None:
        if key not in self._entries:
            return
        entries = {k: v for k, v in self._entries.items() if k != key}
        self._write(entries)
        self._entries = entries
