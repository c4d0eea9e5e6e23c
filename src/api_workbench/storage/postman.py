"""Postman Collection v2.1 importer.

Converts exported Postman JSON (or the same document as YAML) into
RequestSpec models. Folders are flattened into one list, in document order.
"""

from pathlib import Path

from api_workbench.errors import ValidationError
from api_workbench.storage.base import Auth, BasicAuth, BearerAuth, Body, GraphQLBody, KeyValue, RequestSpec
from api_workbench.storage.detect import load_document


def parse_postman(file_path: Path) -> tuple[str, list[RequestSpec]]:
    """Parse a Postman Collection v2.1 file into (collection name, requests)."""
    collection = load_document(file_path)
    if not isinstance(collection, dict):
        raise ValidationError(f"{file_path} is not a Postman collection")

    name = collection.get("info", {}).get("name") or file_path.stem
    specs: list[RequestSpec] = []
    _parse_items(collection.get("item", []), specs)
    return name, specs


def _parse_items(items: list[dict], specs: list[RequestSpec]) -> None:
    """Recursively parse items (supports folders)."""
    for item in items:
        if "item" in item:
            _parse_items(item["item"], specs)
        elif "request" in item:
            specs.append(_parse_request(item))


def _parse_request(item: dict) -> RequestSpec:
    req = item["request"]
    if isinstance(req, str):
        return RequestSpec(name=item.get("name", ""), url=req)

    url = req.get("url", "")
    raw_url = url if isinstance(url, str) else url.get("raw", "")
    query = [] if isinstance(url, str) else url.get("query", [])

    return RequestSpec(
        name=item.get("name", ""),
        method=req.get("method", "GET").upper(),
        url=raw_url,
        headers=_parse_rows(req.get("header", [])),
        query_params=_parse_rows(query),
        body=_parse_body(req.get("body")),
        auth=_parse_auth(req.get("auth")),
    )


def _parse_rows(rows: list[dict]) -> list[KeyValue]:
    return [
        KeyValue(
            key=r.get("key", ""),
            value=str(r.get("value", "") or ""),
            description=_description(r.get("description")),
            disabled=bool(r.get("disabled", False)),
        )
        for r in rows
        if r.get("type", "text") == "text"
    ]


def _description(value) -> str:
    # v2.1 allows {"content": ..., "type": ...} descriptions
    if isinstance(value, dict):
        return value.get("content", "")
    return value or ""


def _parse_body(body: dict | None) -> Body:
    if not body:
        return Body()
    mode = body.get("mode", "none")
    if mode == "raw":
        return Body(mode="raw", raw=body.get("raw", ""), options=body.get("options", {}))
    if mode == "urlencoded":
        return Body(mode="urlencoded", urlencoded=_parse_rows(body.get("urlencoded", [])))
    if mode == "formdata":
        return Body(mode="formdata", formdata=_parse_rows(body.get("formdata", [])))
    if mode == "graphql":
        graphql = body.get("graphql", {})
        return Body(
            mode="graphql",
            graphql=GraphQLBody(
                query=graphql.get("query", ""),
                variables=graphql.get("variables", "") or "",
            ),
        )
    if mode == "file":
        return Body(mode="file", file=(body.get("file") or {}).get("src", "") or "")
    return Body()


def _parse_auth(auth: dict | None) -> Auth:
    if not auth:
        return Auth()
    auth_type = auth.get("type", "noauth")
    values = {a.get("key"): str(a.get("value", "")) for a in auth.get(auth_type, []) or []}
    if auth_type == "basic":
        return Auth(
            type="basic",
            basic=BasicAuth(
                username=values.get("username", ""),
                password=values.get("password", ""),
            ),
        )
    if auth_type == "bearer":
        return Auth(type="bearer", bearer=BearerAuth(token=values.get("token", "")))
    return Auth()
