from datetime import datetime, timezone

from api_workbench.storage.base import Body, Collection, Credential, KeyValue, RequestSpec, SavedRequest


class TestKeyValue:
    def test_defaults(self):
        kv = KeyValue(key="Accept", value="text/plain")
        assert kv.description == ""
        assert kv.disabled is False


class TestRequestSpec:
    def test_minimal_defaults(self):
        spec = RequestSpec(url="https://example.com")
        assert spec.method == "GET"
        assert spec.body.mode == "none"
        assert spec.auth.type == "noauth"
        assert spec.auth.basic.username == ""
        assert spec.auth.bearer.token == ""

    def test_accepts_camel_case_input(self):
        spec = RequestSpec.model_validate({
            "url": "https://example.com",
            "queryParams": [{"key": "q", "value": "1"}],
            "body": {"mode": "file", "fileData": "abc"},
        })
        assert spec.query_params[0].key == "q"
        assert spec.body.file_data == "abc"

    def test_accepts_snake_case_input(self):
        spec = RequestSpec(query_params=[KeyValue(key="q")], body=Body(file_data="x"))
        assert spec.query_params[0].key == "q"
        assert spec.body.file_data == "x"

    def test_json_dump_uses_camel_case(self):
        data = RequestSpec(body=Body(mode="raw", raw="hi")).to_json_dict()
        assert "queryParams" in data
        assert "fileData" in data["body"]


class TestSavedRequest:
    def test_to_spec_drops_identity(self):
        now = datetime.now(timezone.utc)
        saved = SavedRequest(id="r1", name="Ping", url="example.com", created_at=now, updated_at=now)
        spec = saved.to_spec()
        assert type(spec) is RequestSpec
        assert spec.name == "Ping"
        assert spec.url == "example.com"

    def test_serialization_roundtrip(self):
        now = datetime.now(timezone.utc)
        saved = SavedRequest(
            id="r1",
            name="Ping",
            method="POST",
            url="example.com",
            headers=[KeyValue(key="A", value="1", disabled=True)],
            created_at=now,
            updated_at=now,
        )
        again = SavedRequest.model_validate(saved.to_json_dict())
        assert again == saved


class TestCollection:
    def test_request_ids_alias(self):
        now = datetime.now(timezone.utc)
        c = Collection(id="c1", name="Pets", created_at=now, updated_at=now)
        data = c.to_json_dict()
        assert data["requestIds"] == []
        assert data["description"] is None


class TestCredential:
    def test_empty(self):
        assert Credential().is_empty

    def test_not_empty_with_bearer(self):
        assert not Credential.model_validate({"bearer": {"token": "t"}}).is_empty
