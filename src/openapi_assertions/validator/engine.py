"""Validation engine: checks one response against a ValidatorRegistry.

Steps, stopping at the first failure:
  1. normalize the response
  2. match its path to a contract template
  3. find the operation for its method
  4. find the response for its status (exact, then ``default``, then ``NXX``)
  5. validate the body, when the contract declares a JSON schema for it
"""

from collections.abc import Iterable, Mapping
from typing import Any

from jsonschema.exceptions import ValidationError

from openapi_assertions.parser.base import ValidationIssue, ValidationResult
from openapi_assertions.parser.response import parse_response
from openapi_assertions.validator.compiler import ResponseValidators, ValidatorRegistry
from openapi_assertions.validator.path_matcher import match_path, remove_base_path


def validate_response(response: Any, registry: ValidatorRegistry) -> ValidationResult:
    parsed = parse_response(response)
    templates = registry.templates

    observed = parsed.path
    if registry.base_path:
        observed = remove_base_path(observed, registry.base_path)

    match = match_path(observed, templates)
    if match is None:
        return ValidationResult(
            valid=False,
            errors=[
                ValidationIssue(
                    message=f"No matching path found in OpenAPI spec for {parsed.method} {parsed.path}",
                    actual=parsed.path,
                    expected=templates,
                )
            ],
        )

    route = match.matched_template
    operation = registry.operation(route, parsed.method)
    if operation is None:
        return ValidationResult(
            valid=False,
            errors=[
                ValidationIssue(
                    message=f"No {parsed.method} operation defined for {route}",
                    actual=parsed.method.lower(),
                )
            ],
            route=route,
        )

    status = str(parsed.status)
    status_key = lookup_status(operation.responses, status)
    if status_key is None:
        return ValidationResult(
            valid=False,
            errors=[
                ValidationIssue(
                    message=(
                        f"No response schema defined for {parsed.method} {route} "
                        f"with status {status}"
                    ),
                    actual=status,
                    expected=list(operation.responses),
                )
            ],
            route=route,
            method=parsed.method,
        )

    located = dict(route=route, method=parsed.method, status=status_key)
    errors = _body_errors(operation.responses[status_key], parsed.body)
    if errors:
        return ValidationResult(valid=False, errors=errors, **located)
    return ValidationResult(valid=True, **located)


def lookup_status(responses: Mapping[str, ResponseValidators], status: str) -> str | None:
    """Return the declared status key serving ``status``, if any."""
    for candidate in (status, "default", f"{status[:1]}XX"):
        if candidate in responses:
            return candidate
    return None


def _body_errors(validators: ResponseValidators, body: Any) -> list[ValidationIssue]:
    if validators.body is None:
        return []
    return [to_issue(error, body) for error in validators.body.iter_errors(body)]


def to_issue(error: ValidationError, body: Any) -> ValidationIssue:
    """Translate a jsonschema error into a ValidationIssue."""
    pointer = to_pointer(error.absolute_path)
    fields: dict[str, Any] = {
        "path": pointer,
        "message": error.message,
        "keyword": error.validator,
        "expected": rule_params(error),
    }
    found, value = value_at_pointer(body, pointer)
    if found:
        fields["actual"] = value
    return ValidationIssue(**fields)


def rule_params(error: ValidationError) -> Any:
    """Parameters of the failed rule; for ``required``, the missing property."""
    if error.validator == "required" and isinstance(error.instance, dict):
        for name in error.validator_value:
            # one error per missing property, named first in its message
            if name not in error.instance and error.message.startswith(repr(name)):
                return {"missingProperty": name}
    return error.validator_value


def to_pointer(parts: Iterable[Any]) -> str:
    return "".join("/" + str(p).replace("~", "~0").replace("/", "~1") for p in parts)


def value_at_pointer(document: Any, pointer: str) -> tuple[bool, Any]:
    """Walk a JSON pointer through ``document``; returns (found, value)."""
    current = document
    if not pointer:
        return True, current
    for segment in pointer.split("/")[1:]:
        key = segment.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return False, None
    return True, current
