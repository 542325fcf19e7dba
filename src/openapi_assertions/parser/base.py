"""Unified data models shared by the loader, validator and coverage tracker.

Response normalizers convert client-specific responses into ParsedResponse,
and the validation engine reports its outcome as ValidationResult.
"""

from typing import Any

from pydantic import BaseModel


class ParsedResponse(BaseModel):
    """A response reduced to the fields needed for contract validation."""

    method: str  # GET / POST / PUT / DELETE / PATCH ...
    path: str  # /pets/1, no query string
    status: int
    headers: dict[str, str] = {}  # lower-cased names
    body: Any = None


class PathMatch(BaseModel):
    """The contract path template an observed path resolved to."""

    matched_template: str  # /pets/{petId}
    params: dict[str, str] = {}  # {petId: "1"}


class ValidationIssue(BaseModel):
    """A single contract violation.

    ``expected`` and ``actual`` are only meaningful when explicitly set;
    check ``model_fields_set`` since both may legitimately be ``None``.
    """

    path: str = ""  # JSON pointer into the body, "" for the root
    message: str
    keyword: str | None = None
    expected: Any = None
    actual: Any = None


class ValidationResult(BaseModel):
    """Outcome of validating one response."""

    valid: bool
    errors: list[ValidationIssue] | None = None
    # Where the response landed in the contract, when it got that far.
    route: str | None = None
    method: str | None = None
    status: str | None = None


class CoverageEntry(BaseModel):
    """One (route, method) pair with every status code the contract declares."""

    route: str
    method: str  # upper-cased
    statuses: list[str]


class CoverageRecord(BaseModel):
    """One (route, method, status) triple of the coverage universe."""

    route: str
    method: str
    status: str

    @property
    def key(self) -> str:
        return coverage_key(self.route, self.method, self.status)


class CoverageStats(BaseModel):
    total: int
    covered: int
    percentage: int


def coverage_key(route: str, method: str, status: str) -> str:
    return f"{method.upper()}:{route}:{status.upper()}"
