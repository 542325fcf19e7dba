"""Validator compiler: builds a ValidatorRegistry from OpenAPI documents.

Each (path, method, status) response that declares an ``application/json``
schema gets a compiled Draft 2020-12 validator. A schema that fails to
compile is logged and left without a body validator; it never aborts the
build. That includes a ``$ref`` left dangling or pointing at another
document. Load errors (unreadable file, bad JSON, cyclic refs) do abort it.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import structlog
from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import SchemaError
from referencing import Registry
from referencing._core import Resolver
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT202012

from openapi_assertions.parser.base import CoverageEntry
from openapi_assertions.parser.refs import resolve_refs
from openapi_assertions.parser.sanitize import sanitize_schema
from openapi_assertions.parser.spec import SpecLocation, load_spec
from openapi_assertions.validator.path_matcher import extract_base_path

logger = structlog.get_logger()

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "options", "head", "trace")
JSON_MEDIA_TYPE = "application/json"
# keywords whose values are instance data, not subschemas
_DATA_KEYWORDS = frozenset({"const", "default", "enum", "examples"})


@dataclass(frozen=True)
class ResponseValidators:
    """Validators for one declared status. ``body`` is None when no JSON schema compiled."""

    body: Draft202012Validator | None = None


@dataclass(frozen=True)
class OperationValidators:
    responses: Mapping[str, ResponseValidators]


class ValidatorRegistry:
    """Read-only table of compiled validators: path -> method -> status.

    Built once by ``build_registry`` and safe to share between concurrent
    validations.
    """

    def __init__(
        self,
        paths: dict[str, dict[str, OperationValidators]],
        coverage_entries: list[CoverageEntry],
        base_path: str | None = None,
    ):
        self._paths = MappingProxyType(
            {path: MappingProxyType(dict(methods)) for path, methods in paths.items()}
        )
        self._coverage_entries = tuple(coverage_entries)
        self._base_path = base_path

    @property
    def paths(self) -> Mapping[str, Mapping[str, OperationValidators]]:
        return self._paths

    @property
    def templates(self) -> list[str]:
        return list(self._paths)

    @property
    def coverage_entries(self) -> tuple[CoverageEntry, ...]:
        return self._coverage_entries

    @property
    def base_path(self) -> str | None:
        return self._base_path

    def operation(self, template: str, method: str) -> OperationValidators | None:
        return self._paths.get(template, {}).get(method.lower())


def compile_schema(schema: Any) -> Draft202012Validator:
    """Sanitize and compile one response schema.

    Raises SchemaError for an invalid schema and Unresolvable for a ``$ref``
    that does not resolve inside it.
    """
    schema = sanitize_schema(schema)
    Draft202012Validator.check_schema(schema)
    root = DRAFT202012.create_resource(schema)
    check_refs(schema, Registry().resolver_with_root(root))
    return Draft202012Validator(schema, format_checker=FormatChecker())


def check_refs(node: Any, resolver: Resolver) -> None:
    """Look up every ``$ref`` in ``node``, raising Unresolvable on the first miss."""
    if isinstance(node, list):
        for item in node:
            check_refs(item, resolver)
        return
    if not isinstance(node, dict):
        return

    if isinstance(node.get("$id"), str):
        resolver = resolver.in_subresource(DRAFT202012.create_resource(node))
    ref = node.get("$ref")
    if isinstance(ref, str):
        resolver.lookup(ref)

    for key, value in node.items():
        if key not in _DATA_KEYWORDS:
            check_refs(value, resolver)


def compile_document(
    document: dict,
    paths: dict[str, dict[str, OperationValidators]],
    coverage_entries: list[CoverageEntry],
) -> None:
    """Compile every response of a resolved document into the accumulators."""
    doc_paths = document.get("paths")
    if not isinstance(doc_paths, dict):
        return

    for path, path_item in doc_paths.items():
        if not isinstance(path_item, dict):
            continue

        methods: dict[str, OperationValidators] = {}
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict) or not isinstance(operation.get("responses"), dict):
                continue

            responses: dict[str, ResponseValidators] = {}
            for status_code, response in operation["responses"].items():
                status = str(status_code)
                responses[status] = ResponseValidators(
                    body=_compile_body(response, path, method, status)
                )

            methods[method] = OperationValidators(responses=MappingProxyType(responses))
            if responses:
                coverage_entries.append(
                    CoverageEntry(
                        route=path,
                        method=method.upper(),
                        statuses=[s.upper() for s in responses],
                    )
                )

        if methods:
            paths.setdefault(path, {}).update(methods)


def _compile_body(response: Any, path: str, method: str, status: str) -> Draft202012Validator | None:
    if not isinstance(response, dict):
        return None
    content = response.get("content")
    if not isinstance(content, dict):
        return None
    media = content.get(JSON_MEDIA_TYPE)
    if not isinstance(media, dict) or media.get("schema") is None:
        return None

    try:
        return compile_schema(media["schema"])
    except (SchemaError, Unresolvable) as e:
        logger.warning(
            "schema_compile_failed",
            method=method.upper(),
            path=path,
            status=status,
            error=e.message if isinstance(e, SchemaError) else str(e),
        )
        return None


def build_registry(
    locations: Iterable[SpecLocation],
    base_path: str | None = None,
) -> ValidatorRegistry:
    """Load, resolve and compile every spec into a single registry.

    ``base_path`` may be a path (``/api/v1``) or a full server URL.
    """
    paths: dict[str, dict[str, OperationValidators]] = {}
    coverage_entries: list[CoverageEntry] = []

    count = 0
    for location in locations:
        document = resolve_refs(load_spec(location))
        compile_document(document, paths, coverage_entries)
        count += 1

    logger.info(
        "validators_built",
        specs=count,
        paths=len(paths),
        endpoints=len(coverage_entries),
    )
    if base_path:
        base_path = extract_base_path(base_path)
    return ValidatorRegistry(paths, coverage_entries, base_path=base_path)
