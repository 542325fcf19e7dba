"""Schema clean-up before compilation.

Inlined component schemas can carry ``$id`` values such as
``"#/components/schemas/Pet"`` that Draft 2020-12 rejects (``$id`` must
match ``^[^#]*#?$``). Those are dropped; valid identifiers are kept.
"""

import copy
import re
from typing import Any

_VALID_ID_RE = re.compile(r"^[^#]*#?$")


def sanitize_schema(schema: Any) -> Any:
    """Return a deep copy of ``schema`` with invalid ``$id`` fields removed."""
    result = copy.deepcopy(schema)
    _remove_invalid_ids(result)
    return result


def _remove_invalid_ids(node: Any) -> None:
    if isinstance(node, list):
        for item in node:
            _remove_invalid_ids(item)
        return
    if not isinstance(node, dict):
        return

    schema_id = node.get("$id")
    if isinstance(schema_id, str) and not _VALID_ID_RE.match(schema_id):
        del node["$id"]

    for value in node.values():
        _remove_invalid_ids(value)
