"""Match observed request paths against OpenAPI path templates.

Only segments of the exact form ``{name}`` are parameters. Literal segments
score higher than parameters, so ``/users/me`` beats ``/users/{id}`` for the
path ``/users/me``. Ties go to the template listed first.
"""

import re
from collections.abc import Iterable
from urllib.parse import urlsplit

from openapi_assertions.parser.base import PathMatch

_PARAM_RE = re.compile(r"^\{(\w+)\}$")

LITERAL_SCORE = 10
PARAM_SCORE = 1


def clean_path(path: str) -> str:
    """Drop the query string and one trailing slash; the root stays ``/``."""
    path = path.split("?", 1)[0]
    if path.endswith("/"):
        path = path[:-1]
    return path or "/"


def match_path(request_path: str, templates: Iterable[str]) -> PathMatch | None:
    """Return the best matching template with its bound params, or None."""
    path = clean_path(request_path)
    best: tuple[int, str, dict[str, str]] | None = None

    for template in templates:
        result = _try_match(path, template)
        if result is None:
            continue
        score, params = result
        if best is None or score > best[0]:
            best = (score, template, params)

    if best is None:
        return None
    return PathMatch(matched_template=best[1], params=best[2])


def _try_match(path: str, template: str) -> tuple[int, dict[str, str]] | None:
    path_segments = [s for s in path.split("/") if s]
    template_segments = [s for s in template.split("/") if s]
    if len(path_segments) != len(template_segments):
        return None

    params: dict[str, str] = {}
    score = 0
    for template_seg, path_seg in zip(template_segments, path_segments):
        param = _PARAM_RE.match(template_seg)
        if param:
            params[param.group(1)] = path_seg
            score += PARAM_SCORE
        elif template_seg == path_seg:
            score += LITERAL_SCORE
        else:
            return None
    return score, params


def extract_base_path(server_url: str) -> str:
    """Base path of a server URL: ``http://localhost:3333/api/v1`` -> ``/api/v1``."""
    if "://" in server_url:
        path = urlsplit(server_url).path
    else:
        path = server_url
    if path.endswith("/"):
        path = path[:-1]
    return path or "/"


def remove_base_path(request_path: str, base_path: str) -> str:
    """Strip ``base_path`` from the front of ``request_path`` when present.

    Only whole segments are stripped: ``/api/v10`` keeps its prefix when the
    base path is ``/api/v1``.
    """
    if base_path in ("", "/"):
        return request_path
    if not request_path.startswith(base_path):
        return request_path
    remaining = request_path[len(base_path):]
    if remaining and not remaining.startswith(("/", "?")):
        return request_path
    return remaining if remaining.startswith("/") else f"/{remaining}"
