"""Persistence coordinator: keeps the collection store and the vault in step.

The two stores share no transaction. Saves write the sanitized request first
and the credential second; deletes remove the credential first and the record
second. A crash between the two steps can leave a request without its secret
(on save) or an orphaned secret (on delete), never a secret in the main store.
"""

import logging

from api_workbench.errors import CredentialWriteError, PersistenceError
from api_workbench.storage.base import (
    BasicAuth,
    BearerAuth,
    Credential,
    RequestSpec,
    SavedRequest,
)
from api_workbench.storage.store import CollectionStore
from api_workbench.vault.credentials import CredentialVault

logger = logging.getLogger(__name__)


def extract_credential(spec: RequestSpec) -> Credential:
    """Non-empty basic/bearer secrets of ``spec``, whatever its auth type."""
    basic = spec.auth.basic
    bearer = spec.auth.bearer
    return Credential(
        basic=basic.model_copy() if basic.username or basic.password else None,
        bearer=bearer.model_copy() if bearer.token else None,
    )


def sanitize(spec: RequestSpec) -> RequestSpec:
    """Copy of ``spec`` with every secret blanked and ``auth.type`` kept."""
    clean = spec.model_copy(deep=True)
    clean.auth.basic = BasicAuth()
    clean.auth.bearer = BearerAuth()
    return clean


class PersistenceCoordinator:
    """Orchestrates save/delete across CollectionStore and CredentialVault."""

    def __init__(self, store: CollectionStore, vault: CredentialVault):
        self.store = store
        self.vault = vault

    def save_request_with_credentials(self, spec: RequestSpec, collection_id: str) -> str:
        """Save ``spec`` into a collection with its secrets split off.

        Raises CredentialWriteError (carrying the new request id) when the
        request was stored but its credentials were not.
        """
        credential = extract_credential(spec)
        request_id = self.store.save_request(sanitize(spec), collection_id)

        if not credential.is_empty:
            try:
                self.vault.store_credential(request_id, credential)
            except PersistenceError as e:
                logger.warning(f"Request {request_id} saved without credentials: {e}")
                raise CredentialWriteError(
                    request_id, f"Request saved, but its credentials were not stored: {e}"
                ) from e
        return request_id

    def store_credentials(self, request_id: str, credential: Credential) -> None:
        """Write (or rewrite) the credentials of an already saved request."""
        self.vault.store_credential(request_id, credential)

    def load_request(self, request_id: str) -> SavedRequest | None:
        """Saved request with its vault secrets merged into the auth form.

        The merged copy is for the editor only; the store keeps the blanked
        record.
        """
        request = self.store.get_request(request_id)
        if request is None:
            return None
        credential = self.vault.get_credential(request_id)
        if credential:
            if credential.basic:
                request.auth.basic = credential.basic
            if credential.bearer:
                request.auth.bearer = credential.bearer
        return request

    def delete_request_cascade(self, request_id: str) -> None:
        self.vault.delete_credential(request_id)
        self.store.delete_request(request_id)

    def delete_collection_cascade(self, collection_id: str) -> None:
        for request_id in self.store.get_collection_request_ids(collection_id):
            self.vault.delete_credential(request_id)
        self.store.delete_collection(collection_id)

    def find_missing_credentials(self) -> list[str]:
        """Ids of saved requests whose auth type needs a secret the vault lacks."""
        missing = []
        for request in self.store.list_all_requests():
            if request.auth.type not in ("basic", "bearer"):
                continue
            credential = self.vault.get_credential(request.id)
            if credential is None or getattr(credential, request.auth.type) is None:
                missing.append(request.id)
        return missing
