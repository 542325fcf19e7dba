"""Exceptions raised while building validators and checking responses."""

import json

from openapi_assertions.parser.base import ValidationIssue


class OpenApiAssertionsError(Exception):
    """Base class for all errors raised by openapi-assertions."""


class SpecLoadError(OpenApiAssertionsError):
    """A spec file could not be read, parsed, or resolved."""


class CircularReferenceError(SpecLoadError):
    """A local $ref chain points back at a reference already being resolved."""

    def __init__(self, chain: list[str]):
        self.chain = chain
        super().__init__("Circular reference detected: " + " -> ".join(chain))


class ConfigurationError(OpenApiAssertionsError):
    """Responses were validated before any spec was registered."""


class ResponseParseError(OpenApiAssertionsError, TypeError):
    """The response object does not match any known HTTP client shape."""


class ContractMismatchError(AssertionError):
    """The response violates the registered OpenAPI contract."""

    def __init__(self, errors: list[ValidationIssue]):
        self.errors = errors
        details = "\n  ".join(format_issue(e) for e in errors)
        super().__init__(f"Response does not match API schema:\n  {details}")


def format_issue(issue: ValidationIssue) -> str:
    """Render one issue as a single human readable line."""
    msg = f"{issue.path}: {issue.message}" if issue.path else issue.message
    if "expected" in issue.model_fields_set:
        msg += f" (expected: {_dump(issue.expected)})"
    if "actual" in issue.model_fields_set:
        msg += f" (actual: {_dump(issue.actual)})"
    return msg


def _dump(value) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)
