"""Data models for collections, saved requests and credentials.

Field names are snake_case in Python. The persisted JSON uses the camelCase
names (``requestIds``, ``queryParams``, ``fileData`` ...) and input accepts
either spelling.
"""

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

BODY_MODES = ("none", "raw", "formdata", "urlencoded", "file", "graphql")
AUTH_TYPES = ("noauth", "basic", "bearer")


def new_id() -> str:
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class KeyValue(Model):
    """A header, query param or form row."""

    key: str = ""
    value: str = ""
    description: str = ""
    disabled: bool = False


class GraphQLBody(Model):
    query: str = ""
    variables: str = ""


class Body(Model):
    mode: str = "none"  # none / raw / formdata / urlencoded / file / graphql
    raw: str = ""
    file: str = ""
    file_data: str = ""
    formdata: list[KeyValue] = Field(default_factory=list)
    urlencoded: list[KeyValue] = Field(default_factory=list)
    graphql: GraphQLBody = Field(default_factory=GraphQLBody)
    options: dict = Field(default_factory=dict)  # e.g. {"raw": {"language": "json"}}
    disabled: bool = False


class BasicAuth(Model):
    username: str = ""
    password: str = ""


class BearerAuth(Model):
    token: str = ""


class Auth(Model):
    type: str = "noauth"  # noauth / basic / bearer
    basic: BasicAuth = Field(default_factory=BasicAuth)
    bearer: BearerAuth = Field(default_factory=BearerAuth)


class RequestSpec(Model):
    """A request as composed in the editor, before it gets an id."""

    name: str = ""
    method: str = "GET"
    url: str = ""
    headers: list[KeyValue] = Field(default_factory=list)
    query_params: list[KeyValue] = Field(default_factory=list)
    body: Body = Field(default_factory=Body)
    auth: Auth = Field(default_factory=Auth)


class SavedRequest(RequestSpec):
    id: str
    created_at: datetime
    updated_at: datetime

    def to_spec(self) -> RequestSpec:
        return RequestSpec.model_validate(
            self.model_dump(exclude={"id", "created_at", "updated_at"})
        )


class Collection(Model):
    """A named, ordered group of saved requests."""

    id: str
    name: str
    description: str | None = None
    request_ids: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class Credential(Model):
    """The secret part of a request's auth, stored apart from the request."""

    basic: BasicAuth | None = None
    bearer: BearerAuth | None = None

    @property
    def is_empty(self) -> bool:
        return self.basic is None and self.bearer is None


ItemKind = Literal["collection", "request"]
