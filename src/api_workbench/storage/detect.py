"""Load request files and tell them apart from Postman collections."""

import json
from pathlib import Path

import yaml
from pydantic import ValidationError as PydanticValidationError

from api_workbench.errors import ValidationError
from api_workbench.storage.base import RequestSpec


def load_document(file_path: Path):
    """Parse a JSON or YAML file. Raises ValidationError when neither parses."""
    text = file_path.read_text(encoding="utf-8")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # YAML, or JSON that only the YAML parser accepts
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValidationError(f"Cannot parse {file_path}: {e}") from e


def detect_format(file_path: Path) -> str:
    """Detect the format of a request file.

    Returns: 'postman' or 'request'.
    """
    data = load_document(file_path)
    if isinstance(data, dict):
        info = data.get("info", {})
        if isinstance(info, dict) and ("_postman_id" in info or "schema" in info):
            return "postman"
    return "request"


def load_request_spec(file_path: Path) -> RequestSpec:
    """Load a single request spec from a YAML or JSON file."""
    data = load_document(file_path)
    if not isinstance(data, dict):
        raise ValidationError(f"{file_path} does not contain a request mapping")
    try:
        return RequestSpec.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid request in {file_path}: {e}") from e
