"""OpenAPI document loader.

Reads JSON-encoded OpenAPI 3.1 documents from filesystem paths or file URLs.
"""

import json
from pathlib import Path
from urllib.parse import urlsplit
from urllib.request import url2pathname

import structlog

from openapi_assertions.errors import SpecLoadError

logger = structlog.get_logger()

SpecLocation = str | Path


def to_path(location: SpecLocation) -> Path:
    """Turn a path string, Path, or file:// URL into a filesystem Path."""
    if isinstance(location, Path):
        return location
    text = str(location)
    if text.startswith("file:"):
        parts = urlsplit(text)
        return Path(url2pathname(parts.path))
    return Path(text)


def load_spec(location: SpecLocation) -> dict:
    """Load one OpenAPI document. Raises SpecLoadError naming the file."""
    file_path = to_path(location)
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read OpenAPI spec at {file_path}: {e}") from e

    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise SpecLoadError(
            f"Failed to parse OpenAPI spec at {file_path}: Invalid JSON ({e.msg}, line {e.lineno})"
        ) from e

    if not isinstance(doc, dict):
        raise SpecLoadError(f"Failed to parse OpenAPI spec at {file_path}: root must be an object")

    version = str(doc.get("openapi", ""))
    if not version.startswith("3.1"):
        logger.warning("unsupported_openapi_version", file=str(file_path), openapi=version or None)

    return doc
