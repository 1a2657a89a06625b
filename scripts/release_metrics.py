#!/usr/bin/env python3
"""
release_metrics.py - Quality metrics recorded in a release section.

Reads line and branch coverage from a SimpleCov-style coverage.json and the
documented percentage reported by a documentation tool (bin/yard). Every
metric is optional: problems are reported as warnings and the metric is
omitted.
"""

import json
import logging
import os
import re
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from subprocess_utils import ExecutableNotFoundError, run_safe_command

logger = logging.getLogger(__name__)

DOCUMENTED_RE = re.compile(r"\d+(?:\.\d+)?%\s+documented")


def _warn(message: str) -> None:
    print(f"⚠️ {message}", file=sys.stderr)


@dataclass
class CoverageTotals:
    """Aggregated coverage counts across all tracked files."""

    file_count: int = 0
    total_lines: int = 0
    covered_lines: int = 0
    total_branches: int = 0
    covered_branches: int = 0

    @property
    def line_percent(self) -> float:
        return (self.covered_lines / self.total_lines) * 100.0 if self.total_lines > 0 else 0.0

    @property
    def branch_percent(self) -> float:
        return (self.covered_branches / self.total_branches) * 100.0 if self.total_branches > 0 else 0.0

    def line_summary(self) -> str:
        return f"COVERAGE: {self.line_percent:.2f}% -- {self.covered_lines}/{self.total_lines} lines in {self.file_count} files"

    def branch_summary(self) -> str:
        return f"BRANCH COVERAGE: {self.branch_percent:.2f}% -- {self.covered_branches}/{self.total_branches} branches in {self.file_count} files"


def _is_count(value: object) -> bool:
    # JSON booleans decode to bool, which is an int subclass
    return isinstance(value, int) and not isinstance(value, bool)


def summarize_coverage(data: dict) -> CoverageTotals:
    """
    Aggregate SimpleCov JSON data.

    Args:
        data: Parsed coverage.json; ``data["coverage"]`` maps file paths to
              ``{"lines": [...], "branches": [...]}``

    Returns:
        CoverageTotals for all files with at least one relevant line
    """
    totals = CoverageTotals()
    files = data.get("coverage") or {}
    for entry in files.values():
        lines = entry.get("lines") or []
        relevant = [hits for hits in lines if _is_count(hits)]
        if relevant:
            totals.file_count += 1
            totals.total_lines += len(relevant)
            totals.covered_lines += sum(1 for hits in relevant if hits > 0)

        for branch in entry.get("branches") or []:
            if not isinstance(branch, dict):
                continue
            cov = branch.get("coverage")
            if not isinstance(cov, (int, float)) or isinstance(cov, bool):
                continue
            totals.total_branches += 1
            if cov > 0:
                totals.covered_branches += 1
    return totals


def coverage_lines(coverage_path: Path) -> tuple[str | None, str | None]:
    """
    Build the line and branch coverage summaries for a release section.

    Returns:
        (line coverage text, branch coverage text), or (None, None) when the
        report is missing or cannot be parsed
    """
    if not coverage_path.is_file():
        _warn(f"Coverage JSON not found at {coverage_path}.")
        _warn('Run: K_SOUP_COV_FORMATTERS="json" bin/rspec')
        return None, None

    try:
        data = json.loads(coverage_path.read_text(encoding="utf-8"))
        totals = summarize_coverage(data)
    except (OSError, json.JSONDecodeError, AttributeError, TypeError) as e:
        _warn(f"Failed to parse coverage: {type(e).__name__}: {e}")
        return None, None

    logger.debug("Coverage totals from %s: %s", coverage_path, totals)
    return totals.line_summary(), totals.branch_summary()


def documented_percentage(doc_command: Path, cwd: Path | None = None) -> str | None:
    """
    Run the documentation tool and return its 'NN.NN% documented' line.

    Args:
        doc_command: Path to the documentation executable (e.g. bin/yard)
        cwd: Directory to run it in

    Returns:
        The stripped matching output line, or None
    """
    if not (doc_command.is_file() and os.access(doc_command, os.X_OK)):
        _warn(f"{doc_command} not found or not executable; ensure yard is installed via bundler")
        return None

    try:
        result = run_safe_command(str(doc_command), [], cwd=cwd, check=False)
    except (ExecutableNotFoundError, OSError, subprocess.SubprocessError) as e:
        _warn(f"Failed to run {doc_command}: {type(e).__name__}: {e}")
        return None

    for line in (result.stdout or "").splitlines():
        if DOCUMENTED_RE.search(line):
            return line.strip()

    _warn(f"Could not find documented percentage in {doc_command.name} output.")
    return None
