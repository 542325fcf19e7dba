"""Endpoint coverage tracking.

The coverage universe is every (route, method, status) triple the contract
declares. Validated responses mark triples as covered; whatever is left at
the end of the run is reported and/or exported.
"""

import json
import math
import threading
from collections.abc import Callable, Iterable
from pathlib import Path

import click
import structlog

from openapi_assertions.parser.base import (
    CoverageEntry,
    CoverageRecord,
    CoverageStats,
    coverage_key,
)

logger = structlog.get_logger()

DEFAULT_EXPORT_FILE = "coverage.json"
RULE = "─" * 50


class CoverageTracker:
    """Records which contract endpoints were exercised during a test run."""

    def __init__(self):
        self._universe: list[CoverageRecord] = []
        self._covered: set[str] = set()
        self._lock = threading.Lock()
        self._tracking = False

    @property
    def tracking(self) -> bool:
        """True once endpoints have been registered."""
        return self._tracking

    def register_endpoints(self, entries: Iterable[CoverageEntry]) -> None:
        """Expand entries into universe records. Call once per registry."""
        for entry in entries:
            for status in entry.statuses:
                self._universe.append(
                    CoverageRecord(route=entry.route, method=entry.method, status=status)
                )
        self._tracking = True

    def record_coverage(self, route: str, method: str, status: str) -> None:
        key = coverage_key(route, method, status)
        with self._lock:
            self._covered.add(key)

    def get_uncovered(self) -> list[CoverageRecord]:
        with self._lock:
            covered = set(self._covered)
        return [r for r in self._universe if r.key not in covered]

    def get_stats(self) -> CoverageStats:
        with self._lock:
            covered_keys = set(self._covered)
        total = len(self._universe)
        covered = sum(1 for r in self._universe if r.key in covered_keys)
        # half-up rounding, not banker's rounding
        percentage = math.floor(covered * 100 / total + 0.5) if total else 100
        return CoverageStats(total=total, covered=covered, percentage=percentage)

    def uncovered_endpoints(self) -> list[CoverageEntry]:
        """Uncovered records grouped per (route, method), in universe order."""
        grouped: dict[tuple[str, str], list[str]] = {}
        for record in self.get_uncovered():
            grouped.setdefault((record.route, record.method), []).append(record.status)
        return [
            CoverageEntry(route=route, method=method, statuses=statuses)
            for (route, method), statuses in grouped.items()
        ]

    def report(self, echo: Callable[[str], None] = click.echo) -> None:
        """Print a human readable coverage summary."""
        uncovered = self.uncovered_endpoints()
        stats = self.get_stats()

        echo("")
        echo(click.style("API Coverage Report", bold=True))
        echo(click.style(RULE, dim=True))

        if not uncovered:
            echo(click.style("✓ All endpoints covered!", fg="green"))
        else:
            count = sum(len(e.statuses) for e in uncovered)
            echo(click.style(f"Uncovered endpoints ({count}):", fg="yellow"))
            echo("")
            for line in format_uncovered(uncovered):
                echo(line)

        echo("")
        echo(click.style(RULE, dim=True))
        percentage = click.style(f"{stats.percentage}%", bold=True)
        echo(f"Coverage: {stats.covered}/{stats.total} endpoints ({percentage})")
        echo("")

    def export(self, file_path: str | Path = DEFAULT_EXPORT_FILE) -> Path:
        """Write uncovered endpoints as a JSON array and return the file path."""
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = [entry.model_dump() for entry in self.uncovered_endpoints()]
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.info("coverage_exported", file=str(path), uncovered=len(data))
        return path

    def reset(self) -> None:
        with self._lock:
            self._covered.clear()
        self._universe.clear()
        self._tracking = False


def format_uncovered(entries: Iterable[CoverageEntry]) -> list[str]:
    """Render entries grouped by route, one ``METHOD STATUS`` line per status."""
    by_route: dict[str, list[CoverageEntry]] = {}
    for entry in entries:
        by_route.setdefault(entry.route, []).append(entry)

    lines = []
    for route, route_entries in by_route.items():
        lines.append(click.style(f"  {route}", dim=True))
        for entry in route_entries:
            method = click.style(entry.method.ljust(7), fg="cyan")
            for status in entry.statuses:
                lines.append(f"    {method} {click.style(status, dim=True)}")
    return lines


def load_export(file_path: str | Path) -> list[CoverageEntry]:
    """Read a file written by ``CoverageTracker.export``."""
    data = json.loads(Path(file_path).read_text(encoding="utf-8"))
    return [CoverageEntry(**item) for item in data]
