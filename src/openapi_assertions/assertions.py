"""OpenAPI assertions: the entry point used by test code.

Example::

    assertions = OpenApiAssertions()
    assertions.register_specs(["openapi.json"], report_coverage=True)

    def test_get_pet(client):
        assertions.is_valid_response(client.get("/pets/1"))

    # once, at the end of the run
    assertions.finalize()
"""

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import click
import structlog

from openapi_assertions.coverage import DEFAULT_EXPORT_FILE, CoverageTracker
from openapi_assertions.errors import ConfigurationError, ContractMismatchError
from openapi_assertions.parser.base import ValidationResult
from openapi_assertions.parser.spec import SpecLocation
from openapi_assertions.validator.compiler import ValidatorRegistry, build_registry
from openapi_assertions.validator.engine import validate_response

logger = structlog.get_logger()

NOT_REGISTERED = (
    "Cannot validate responses without defining API schemas. "
    "Please register specs first."
)


class OpenApiAssertions:
    """Validates responses against registered specs and tracks coverage."""

    def __init__(self):
        self._registry: ValidatorRegistry | None = None
        self._tracker = CoverageTracker()
        self._report_coverage = False
        self._export_coverage = False
        self._coverage_file: str | Path = DEFAULT_EXPORT_FILE
        self._finalized = False

    @property
    def registry(self) -> ValidatorRegistry | None:
        return self._registry

    @property
    def tracker(self) -> CoverageTracker:
        return self._tracker

    @property
    def registered(self) -> bool:
        return self._registry is not None

    @property
    def coverage_enabled(self) -> bool:
        return self._report_coverage or self._export_coverage

    def register_specs(
        self,
        locations: Iterable[SpecLocation],
        report_coverage: bool = False,
        export_coverage: bool = False,
        coverage_file: str | Path = DEFAULT_EXPORT_FILE,
        base_path: str | None = None,
    ) -> ValidatorRegistry:
        """Build validators for the given spec files. Raises SpecLoadError."""
        registry = build_registry(list(locations), base_path=base_path)

        self._registry = registry
        self._report_coverage = report_coverage
        self._export_coverage = export_coverage
        self._coverage_file = coverage_file
        self._finalized = False

        self._tracker.reset()
        if self.coverage_enabled:
            self._tracker.register_endpoints(registry.coverage_entries)
        return registry

    def validate(self, response: Any) -> ValidationResult:
        """Validate without raising on contract mismatches."""
        if self._registry is None:
            raise ConfigurationError(NOT_REGISTERED)

        result = validate_response(response, self._registry)
        if self.coverage_enabled:
            self._record(result)
        return result

    def is_valid_response(self, response: Any) -> None:
        """Assert that ``response`` matches the contract.

        Raises ContractMismatchError listing every violation, ResponseParseError
        for unrecognized response objects, and ConfigurationError when no spec
        has been registered.
        """
        result = self.validate(response)
        if not result.valid:
            raise ContractMismatchError(result.errors or [])

    def finalize(self, echo: Callable[[str], None] = click.echo) -> None:
        """Emit the coverage report and export, once, at the end of a run."""
        if self._finalized:
            return
        self._finalized = True

        if self._report_coverage:
            self._tracker.report(echo=echo)
        if self._export_coverage:
            path = self._tracker.export(self._coverage_file)
            echo(click.style(f"Coverage data exported to {path}", dim=True))

    def reset(self) -> None:
        self._registry = None
        self._tracker.reset()
        self._report_coverage = False
        self._export_coverage = False
        self._coverage_file = DEFAULT_EXPORT_FILE
        self._finalized = False

    def _record(self, result: ValidationResult) -> None:
        if result.route is None or result.method is None or result.status is None:
            return
        try:
            self._tracker.record_coverage(result.route, result.method, result.status)
        except Exception as e:  # coverage must never fail an assertion
            logger.debug("coverage_record_failed", error=str(e))
