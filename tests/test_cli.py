import json
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from api_workbench.cli import main
from api_workbench.config import PASSPHRASE_ENV
from api_workbench.transport.response import Response, ResponseHeader

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def home(tmp_path, monkeypatch):
    (tmp_path / "config.yaml").write_text("vault_backend: file\n", encoding="utf-8")
    monkeypatch.setenv(PASSPHRASE_ENV, "test-passphrase")
    return tmp_path


def _invoke(home, args, input=None):
    return CliRunner().invoke(main, ["--home", str(home), *args], input=input)


def _state(home) -> dict:
    return json.loads((home / "state.json").read_text())


def _make_collection(home, name="Pets") -> str:
    _invoke(home, ["create-collection", name])
    return _state(home)["collections"][-1]["id"]


class TestCollections:
    def test_create_with_argument(self, home):
        result = _invoke(home, ["create-collection", "Pets"])
        assert result.exit_code == 0
        assert "Collection \"Pets\" created" in result.output
        assert _state(home)["collections"][0]["name"] == "Pets"

    def test_create_prompts_for_name(self, home):
        result = _invoke(home, ["create-collection"], input="Users\n")
        assert result.exit_code == 0
        assert _state(home)["collections"][0]["name"] == "Users"

    def test_create_cancelled(self, home):
        result = _invoke(home, ["create-collection"], input="\n")
        assert result.exit_code == 0
        assert not (home / "state.json").exists()

    def test_list_empty(self, home):
        result = _invoke(home, ["collections"])
        assert "No collections yet." in result.output

    def test_list_tree(self, home):
        cid = _make_collection(home)
        _invoke(home, ["save", str(FIXTURES / "request.yaml"), "-c", cid, "-n", "Create pet"])
        result = _invoke(home, ["collections"])
        assert result.exit_code == 0
        assert f"Pets  [{cid}]" in result.output
        assert "POST    Create pet" in result.output


class TestSave:
    def test_save_splits_secrets(self, home):
        cid = _make_collection(home)
        result = _invoke(home, ["save", str(FIXTURES / "request.yaml"), "-c", cid, "-n", "Create pet"])

        assert result.exit_code == 0
        assert "saved successfully" in result.output
        state_text = (home / "state.json").read_text()
        assert "pet-token" not in state_text
        assert "pet-token" not in (home / "vault.json").read_text()

        rid = _state(home)["collections"][0]["requestIds"][0]
        shown = _invoke(home, ["show", rid, "--reveal"])
        assert yaml.safe_load(shown.output)["auth"]["bearer"]["token"] == "pet-token"

    def test_save_picks_collection_and_name(self, home):
        _make_collection(home, "Pets")
        cid = _make_collection(home, "Users")
        result = _invoke(home, ["save", str(FIXTURES / "request.yaml")], input="2\nNew pet\n")

        assert result.exit_code == 0
        collections = _state(home)["collections"]
        assert collections[1]["id"] == cid
        rid = collections[1]["requestIds"][0]
        assert _state(home)["requests"][rid]["name"] == "New pet"

    def test_save_without_collections(self, home):
        result = _invoke(home, ["save", str(FIXTURES / "request.yaml")])
        assert result.exit_code != 0
        assert "Create a collection first" in result.output

    def test_show_hides_secrets_by_default(self, home):
        cid = _make_collection(home)
        _invoke(home, ["save", str(FIXTURES / "request.yaml"), "-c", cid, "-n", "x"])
        rid = _state(home)["collections"][0]["requestIds"][0]
        shown = yaml.safe_load(_invoke(home, ["show", rid]).output)
        assert shown["auth"]["type"] == "bearer"
        assert shown["auth"]["bearer"]["token"] == ""


class TestRenameAndDelete:
    def test_rename_request(self, home):
        cid = _make_collection(home)
        _invoke(home, ["save", str(FIXTURES / "request.yaml"), "-c", cid, "-n", "old"])
        rid = _state(home)["collections"][0]["requestIds"][0]

        result = _invoke(home, ["rename", rid, "-n", "new"])

        assert result.exit_code == 0
        assert _state(home)["requests"][rid]["name"] == "new"

    def test_rename_missing(self, home):
        result = _invoke(home, ["rename", "nope", "--kind", "collection", "-n", "x"])
        assert result.exit_code != 0
        assert "not found" in result.output

    def test_delete_collection_confirmed(self, home):
        cid = _make_collection(home)
        _invoke(home, ["save", str(FIXTURES / "request.yaml"), "-c", cid, "-n", "x"])

        result = _invoke(home, ["delete-collection", cid], input="y\n")

        assert result.exit_code == 0
        assert _state(home) == {"collections": [], "requests": {}}
        vault = json.loads((home / "vault.json").read_text())
        assert vault["entries"] == {}

    def test_delete_request_declined(self, home):
        cid = _make_collection(home)
        _invoke(home, ["save", str(FIXTURES / "request.yaml"), "-c", cid, "-n", "x"])
        rid = _state(home)["collections"][0]["requestIds"][0]

        result = _invoke(home, ["delete-request", rid], input="n\n")

        assert result.exit_code == 0
        assert rid in _state(home)["requests"]

    def test_delete_request_yes(self, home):
        cid = _make_collection(home)
        _invoke(home, ["save", str(FIXTURES / "request.yaml"), "-c", cid, "-n", "x"])
        rid = _state(home)["collections"][0]["requestIds"][0]

        result = _invoke(home, ["delete-request", rid, "--yes"])

        assert result.exit_code == 0
        assert _state(home)["requests"] == {}


class TestSend:
    @patch("api_workbench.workbench.Dispatcher")
    def test_send_file(self, MockDispatcher, home):
        MockDispatcher.return_value.send.return_value = Response(
            status=201,
            status_text="Created",
            data='{"id": 1}',
            headers=[ResponseHeader(key="Content-Type", value="application/json")],
            duration_ms=12,
        )

        result = _invoke(home, ["send", str(FIXTURES / "request.yaml"), "-i"])

        assert result.exit_code == 0
        assert "HTTP 201 Created (12 ms)" in result.output
        assert "Content-Type: application/json" in result.output
        assert '{"id": 1}' in result.output
        composed = MockDispatcher.return_value.send.call_args.args[0]
        assert composed.url == "http://localhost:8080/pets?dryRun=true"
        assert composed.headers["Authorization"] == "Bearer pet-token"

    @patch("api_workbench.workbench.Dispatcher")
    def test_send_saved_request_uses_vault_secret(self, MockDispatcher, home):
        MockDispatcher.return_value.send.return_value = Response(status=200, duration_ms=1)
        cid = _make_collection(home)
        _invoke(home, ["save", str(FIXTURES / "request.yaml"), "-c", cid, "-n", "x"])
        rid = _state(home)["collections"][0]["requestIds"][0]

        result = _invoke(home, ["send", "--id", rid, "--insecure"])

        assert result.exit_code == 0
        composed, options = MockDispatcher.return_value.send.call_args.args
        assert composed.headers["Authorization"] == "Bearer pet-token"
        assert options.strict_ssl is False

    @patch("api_workbench.workbench.Dispatcher")
    def test_send_error_exit_code(self, MockDispatcher, home):
        MockDispatcher.return_value.send.return_value = Response.failure("Connection error: refused")
        result = _invoke(home, ["send", str(FIXTURES / "request.yaml")])
        assert result.exit_code == 1
        assert "Connection error" in result.output

    def test_send_needs_one_source(self, home):
        result = _invoke(home, ["send"])
        assert result.exit_code != 0
        assert "SPEC_PATH or --id" in result.output


class TestImport:
    def test_import_postman(self, home):
        result = _invoke(home, ["import", str(FIXTURES / "sample.postman.json")])

        assert result.exit_code == 0
        assert "Imported 3 requests into \"User API\"" in result.output
        assert "hunter2" not in (home / "state.json").read_text()

    def test_import_rejects_request_file(self, home):
        result = _invoke(home, ["import", str(FIXTURES / "request.yaml")])
        assert result.exit_code != 0
        assert "not a Postman collection" in result.output
