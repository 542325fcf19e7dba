"""Local $ref resolution for OpenAPI documents.

Every ``{"$ref": "#/..."}`` node is replaced by a fresh copy of the structure
it points to, recursively, so compiled schemas are self-contained. Sibling
keys next to a ``$ref`` are merged over the resolved target. References that
are not local (``other.json#/...``, ``https://...``) are left untouched.
"""

from typing import Any

from openapi_assertions.errors import CircularReferenceError

UNRESOLVED = object()


def resolve_refs(document: dict) -> dict:
    """Return a copy of ``document`` with all resolvable local refs inlined."""
    return resolve_node(document, document)


def resolve_node(node: Any, root: dict, resolving: tuple[str, ...] = ()) -> Any:
    """Resolve refs inside an arbitrary subtree of ``root``.

    ``resolving`` holds the refs currently being expanded on this branch;
    meeting one of them again means the document is cyclic.
    """
    if isinstance(node, list):
        return [resolve_node(item, root, resolving) for item in node]
    if not isinstance(node, dict):
        return node

    ref = node.get("$ref")
    if isinstance(ref, str) and ref.startswith("#/"):
        target = resolve_pointer(root, ref)
        if target is not UNRESOLVED:
            if ref in resolving:
                raise CircularReferenceError([*resolving, ref])
            resolved = resolve_node(target, root, (*resolving, ref))
            siblings = {k: resolve_node(v, root, resolving) for k, v in node.items() if k != "$ref"}
            if siblings and isinstance(resolved, dict):
                return {**resolved, **siblings}
            return resolved

    return {key: resolve_node(value, root, resolving) for key, value in node.items()}


def resolve_pointer(root: Any, ref: str) -> Any:
    """Follow a ``#/a/b~1c`` pointer through ``root``.

    Returns UNRESOLVED when any segment is missing.
    """
    current = root
    for segment in ref[2:].split("/"):
        key = segment.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return UNRESOLVED
    return current
