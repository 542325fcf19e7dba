"""pytest integration.

Registered through the ``pytest11`` entry point. Configure specs with
``--openapi-spec`` (repeatable) or the ``openapi_specs`` ini option, then use
the ``openapi`` fixture::

    def test_list_pets(openapi, client):
        openapi.is_valid_response(client.get("/pets"))
"""

from pathlib import Path

import click
import pytest

from openapi_assertions.assertions import OpenApiAssertions
from openapi_assertions.config import Settings
from openapi_assertions.errors import SpecLoadError

assertions_key = pytest.StashKey[OpenApiAssertions]()


def pytest_addoption(parser):
    group = parser.getgroup("openapi", "OpenAPI response assertions")
    group.addoption(
        "--openapi-spec",
        action="append",
        default=[],
        dest="openapi_spec",
        metavar="PATH",
        help="OpenAPI 3.1 JSON document to validate responses against (repeatable).",
    )
    group.addoption(
        "--openapi-report-coverage",
        action="store_true",
        default=None,
        help="Print uncovered endpoints at the end of the run.",
    )
    group.addoption(
        "--openapi-export-coverage",
        action="store_true",
        default=None,
        help="Write uncovered endpoints to the coverage file at the end of the run.",
    )
    group.addoption(
        "--openapi-coverage-file",
        default=None,
        metavar="FILE",
        help="Coverage export file (default: coverage.json).",
    )
    group.addoption(
        "--openapi-base-path",
        default=None,
        metavar="PATH",
        help="Server base path stripped from request paths before matching.",
    )
    parser.addini("openapi_specs", type="linelist", default=[], help="OpenAPI spec files.")


def _spec_locations(config) -> list[str]:
    specs = config.getoption("openapi_spec")
    if specs:
        return list(specs)
    # ini paths are relative to the rootdir
    return [
        spec if spec.startswith("file:") else str(config.rootpath / Path(spec))
        for spec in config.getini("openapi_specs")
    ]


def _pick(option, default):
    return default if option is None else option


def pytest_configure(config):
    assertions = OpenApiAssertions()
    config.stash[assertions_key] = assertions

    specs = _spec_locations(config)
    if not specs:
        return

    settings = Settings()
    try:
        assertions.register_specs(
            specs,
            report_coverage=_pick(config.getoption("openapi_report_coverage"), settings.report_coverage),
            export_coverage=_pick(config.getoption("openapi_export_coverage"), settings.export_coverage),
            coverage_file=_pick(config.getoption("openapi_coverage_file"), settings.coverage_file),
            base_path=_pick(config.getoption("openapi_base_path"), settings.base_path),
        )
    except SpecLoadError as e:
        raise pytest.UsageError(str(e)) from e


@pytest.fixture(scope="session")
def openapi(request) -> OpenApiAssertions:
    """The session's OpenApiAssertions; unregistered when no spec is configured."""
    return request.config.stash[assertions_key]


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    assertions = config.stash.get(assertions_key, None)
    if assertions is None or not assertions.registered:
        return
    assertions.finalize(echo=lambda line: terminalreporter.write_line(click.unstyle(line)))
