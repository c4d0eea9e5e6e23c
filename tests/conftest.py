import pytest

from api_workbench.storage.state import StateFile
from api_workbench.storage.store import CollectionStore
from api_workbench.vault.backends import EncryptedFileStorage
from api_workbench.vault.credentials import CredentialVault


class MemoryStorage:
    """Dict-backed secret storage."""

    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    monkeypatch.setattr(EncryptedFileStorage, "KDF_ITERATIONS", 1000)


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "state.json"


@pytest.fixture
def store(state_path):
    return CollectionStore(StateFile(state_path))


@pytest.fixture
def secrets_backend():
    return MemoryStorage()


@pytest.fixture
def vault(secrets_backend):
    return CredentialVault(secrets_backend)
