"""Workbench: the operations the editor and CLI call.

Wires the collection store, credential vault, composer and dispatcher
together. ``send`` never raises for a request problem; it returns a Response
with ``error`` set instead.
"""

import base64
import logging
from collections.abc import Callable
from pathlib import Path

from api_workbench.config import Settings
from api_workbench.coordinator import PersistenceCoordinator
from api_workbench.errors import CredentialWriteError, PersistenceError, ValidationError
from api_workbench.storage.base import Collection, ItemKind, RequestSpec, SavedRequest
from api_workbench.storage.postman import parse_postman
from api_workbench.storage.state import StateFile
from api_workbench.storage.store import CollectionStore
from api_workbench.transport.composer import compose
from api_workbench.transport.dispatcher import Dispatcher, TransportOptions
from api_workbench.transport.response import Response
from api_workbench.vault.backends import EncryptedFileStorage, KeyringStorage
from api_workbench.vault.credentials import CredentialVault

logger = logging.getLogger(__name__)


class Workbench:
    """Entry point for composing, sending and saving requests."""

    def __init__(
        self,
        store: CollectionStore,
        vault: CredentialVault,
        dispatcher: Dispatcher | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.vault = vault
        self.dispatcher = dispatcher or Dispatcher()
        self.settings = settings or Settings()
        self.coordinator = PersistenceCoordinator(store, vault)

    @classmethod
    def from_settings(cls, settings: Settings, passphrase: str | None = None) -> "Workbench":
        """Build the default stack. ``passphrase`` is needed for the file vault."""
        store = CollectionStore(StateFile(settings.state_path))
        if settings.vault_backend == "file":
            if not passphrase:
                raise ValidationError("The file vault needs a passphrase")
            storage = EncryptedFileStorage(settings.vault_path, passphrase)
        else:
            storage = KeyringStorage(settings.keyring_service)
        return cls(store, CredentialVault(storage), settings=settings)

    def transport_options(self, strict_ssl: bool | None = None) -> TransportOptions:
        return TransportOptions(
            strict_ssl=self.settings.strict_ssl if strict_ssl is None else strict_ssl,
            timeout=self.settings.timeout,
            follow_redirects=self.settings.follow_redirects,
        )

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    def send(self, spec: RequestSpec, strict_ssl: bool | None = None) -> Response:
        """Compose and send ``spec`` with the secrets it carries.

        Secrets are never looked up in the vault here; callers pass the live
        values in ``spec.auth``.
        """
        if not spec.url.strip():
            logger.info("Refusing to send a request without URL")
            return Response.failure("Request URL is empty")
        try:
            composed = compose(self._with_file_data(spec))
        except ValidationError as e:
            logger.info(f"Request not sent: {e}")
            return Response.failure(str(e))
        return self.dispatcher.send(composed, self.transport_options(strict_ssl))

    def _with_file_data(self, spec: RequestSpec) -> RequestSpec:
        body = spec.body
        if body.mode != "file" or body.file_data or not body.file:
            return spec
        try:
            data = Path(body.file).read_bytes()
        except OSError as e:
            raise ValidationError(f"Cannot read body file {body.file}: {e}") from e
        resolved = spec.model_copy(deep=True)
        encoded = base64.b64encode(data).decode()
        resolved.body.file_data = f"data:application/octet-stream;base64,{encoded}"
        return resolved

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self.store.subscribe(callback)

    def create_collection(self, name: str, description: str | None = None) -> Collection:
        return self.store.create_collection(name, description)

    def save(self, spec: RequestSpec, name: str, collection_id: str) -> str:
        named = spec.model_copy(update={"name": name})
        return self.coordinator.save_request_with_credentials(named, collection_id)

    def load(self, request_id: str) -> SavedRequest | None:
        return self.coordinator.load_request(request_id)

    def rename(self, item_id: str, kind: ItemKind, new_name: str) -> None:
        self.store.rename_item(item_id, kind, new_name)

    def delete_request(self, request_id: str) -> None:
        self.coordinator.delete_request_cascade(request_id)

    def delete_collection(self, collection_id: str) -> None:
        self.coordinator.delete_collection_cascade(collection_id)

    def import_postman(self, file_path: Path) -> tuple[Collection, list[tuple[str, str]]]:
        """Create a collection from a Postman v2.1 export.

        A request that fails to persist does not stop the import. Returns the
        collection and a list of (request name, problem) for the failures. A
        request whose credentials could not be stored is saved without them
        and reported too.
        """
        name, specs = parse_postman(file_path)
        collection = self.store.create_collection(name)
        failed: list[tuple[str, str]] = []
        for spec in specs:
            try:
                self.coordinator.save_request_with_credentials(spec, collection.id)
            except CredentialWriteError as e:
                failed.append((spec.name, f"saved without credentials: {e}"))
            except PersistenceError as e:
                logger.warning(f"Could not import {spec.name!r}: {e}")
                failed.append((spec.name, f"not saved: {e}"))
        logger.info(f"Imported {len(specs) - len(failed)} of {len(specs)} requests into {collection.id}")
        return self.store.get_collection(collection.id), failed
