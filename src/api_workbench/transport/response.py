"""Normalized response shape for both successful and failed sends."""

from pydantic import BaseModel, Field

LANGUAGE_BY_CONTENT_TYPE = (
    ("json", "json"),
    ("html", "html"),
    ("xml", "xml"),
)


class ResponseHeader(BaseModel):
    key: str
    value: str


class Response(BaseModel):
    """Outcome of one send. Never persisted.

    Exactly one of ``status`` or ``error`` is set. ``data`` is the body text
    as received, never parsed.
    """

    status: int | None = None
    status_text: str = ""
    data: str = ""
    headers: list[ResponseHeader] = Field(default_factory=list)
    duration_ms: int | None = None
    error: str | None = None

    @classmethod
    def failure(cls, message: str, duration_ms: int | None = None) -> "Response":
        return cls(error=message, duration_ms=duration_ms)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def content_type(self) -> str:
        for header in self.headers:
            if header.key.lower() == "content-type":
                return header.value
        return ""

    @property
    def language(self) -> str:
        """Body language for viewers: json / html / xml / text."""
        content_type = self.content_type.lower()
        for marker, language in LANGUAGE_BY_CONTENT_TYPE:
            if marker in content_type:
                return language
        stripped = self.data.lstrip()
        if stripped.startswith(("{", "[")):
            return "json"
        return "text"
