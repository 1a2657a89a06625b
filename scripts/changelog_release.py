#!/usr/bin/env python3
"""
changelog_release.py - Cut a release section in CHANGELOG.md.

Moves the entries under ``## [Unreleased]`` into a new ``## [<version>] - <date>``
section, resets Unreleased to empty Keep a Changelog categories and rewrites the
footer link references. The file is read once and written once; any failure
leaves it untouched.

Usage:
    changelog-release [--root DIR] [-v] [cut [--version X.Y.Z] [--date YYYY-MM-DD] [--remote NAME] [--no-metrics]]
    changelog-release [--root DIR] notes X.Y.Z
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from datetime import date as _date
from pathlib import Path

from changelog_links import LinkReconciler
from changelog_sections import (
    assemble_release,
    build_release_section,
    detect_previous_version,
    extract_unreleased,
    filter_unreleased_sections,
    has_version_section,
)
from changelog_utils import (
    SEMVER_CORE_RE,
    ChangelogError,
    ChangelogNotFoundError,
    ChangelogUtils,
    DuplicateVersionError,
    UnreleasedSectionNotFoundError,
    VersionError,
)
from release_metrics import coverage_lines, documented_percentage

logger = logging.getLogger(__name__)


@dataclass
class ReleaseConfig:
    """Paths and overrides for a release cut."""

    project_root: Path
    changelog_path: Path
    coverage_path: Path
    doc_command: Path
    remote: str = "origin"
    version: str | None = None
    date: str | None = None
    skip_metrics: bool = False

    @classmethod
    def from_env(cls, root: Path | None = None, **overrides) -> "ReleaseConfig":
        """
        Build a config from explicit values, environment variables and defaults.

        Args:
            root: Project root; falls back to CHANGELOG_RELEASE_ROOT, then the
                  directory holding CHANGELOG.md, then the current directory
            **overrides: Any other field; None values are ignored
        """
        overrides = {key: value for key, value in overrides.items() if value is not None}

        if root is None and os.environ.get("CHANGELOG_RELEASE_ROOT"):
            root = Path(os.environ["CHANGELOG_RELEASE_ROOT"])
        if root is None:
            try:
                root = Path(ChangelogUtils.get_project_root())
            except ChangelogError:
                root = Path.cwd()
        root = Path(root)

        coverage = os.environ.get("CHANGELOG_RELEASE_COVERAGE")
        doc_command = os.environ.get("CHANGELOG_RELEASE_DOC_COMMAND")
        defaults = {
            "changelog_path": root / "CHANGELOG.md",
            "coverage_path": Path(coverage) if coverage else root / "coverage" / "coverage.json",
            "doc_command": Path(doc_command) if doc_command else root / "bin" / "yard",
            "remote": os.environ.get("CHANGELOG_RELEASE_REMOTE", "origin"),
        }
        return cls(project_root=root, **{**defaults, **overrides})


class ChangelogReleaser:
    """Cut a release in a project's CHANGELOG.md."""

    def __init__(self, config: ReleaseConfig):
        self.config = config

    def resolve_version(self) -> str:
        version = self.config.version or ChangelogUtils.detect_version(self.config.project_root)
        version = ChangelogUtils.parse_version(version)
        ChangelogUtils.validate_semver(version)
        # Footer keys and previous-version detection only understand MAJOR.MINOR.PATCH
        if not SEMVER_CORE_RE.match(version):
            raise VersionError(f"Release versions must be MAJOR.MINOR.PATCH without prerelease or build metadata. Got: {version}")
        return version

    def resolve_date(self) -> str:
        return self.config.date or _date.today().strftime("%Y-%m-%d")

    def repo_identity(self) -> tuple[str | None, str | None]:
        identity = ChangelogUtils.get_repo_identity(self.config.remote, cwd=self.config.project_root)
        if identity is None:
            print(f"⚠️ Could not determine GitHub owner/repo from {self.config.remote} remote.", file=sys.stderr)
            print(
                f"⚠️ Make sure '{self.config.remote}' points to github.com. Alternatively, set it or update links manually afterward.",
                file=sys.stderr,
            )
            return None, None
        return identity

    def metric_lines(self) -> list[str | None]:
        if self.config.skip_metrics:
            return []
        line_cov, branch_cov = coverage_lines(self.config.coverage_path)
        documented = documented_percentage(self.config.doc_command, cwd=self.config.project_root)
        return [line_cov, branch_cov, documented]

    def read_changelog(self) -> str:
        path = self.config.changelog_path
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ChangelogNotFoundError(f"CHANGELOG.md not found at {path}") from e
        except OSError as e:
            raise ChangelogError(f"Cannot read changelog file: {e}") from e

    def write_changelog(self, content: str) -> None:
        try:
            self.config.changelog_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ChangelogError(f"Cannot write changelog file: {e}") from e

    def render(self, changelog: str, version: str, release_date: str, owner: str | None, repo: str | None, metric_lines: list[str | None]) -> str:
        """
        Return the changelog text with ``version`` cut from the Unreleased section.

        Raises:
            DuplicateVersionError: If a section for ``version`` already exists
            UnreleasedSectionNotFoundError: If there is no '## [Unreleased]' heading
        """
        if has_version_section(changelog, version):
            raise DuplicateVersionError(f"CHANGELOG.md already has a section for version {version}. Bump the version or remove the duplicate.")

        split = extract_unreleased(changelog)
        if split is None:
            raise UnreleasedSectionNotFoundError("Could not find '## [Unreleased]' section in CHANGELOG.md")

        filtered = filter_unreleased_sections(split.unreleased_block)
        if not filtered:
            print("⚠️ No entries found under Unreleased. Creating an empty version section anyway.", file=sys.stderr)

        prev_version = detect_previous_version(split.after)
        logger.debug("Previous version: %s", prev_version)

        release_section = build_release_section(version, release_date, filtered, metric_lines)
        updated = assemble_release(split, release_section)
        updated = LinkReconciler(owner, repo).reconcile(updated, prev_version, version)
        return updated.rstrip() + "\n"

    def run(self) -> str:
        """
        Cut the release and write CHANGELOG.md.

        Returns:
            The released version
        """
        version = self.resolve_version()
        release_date = self.resolve_date()
        owner, repo = self.repo_identity()
        metrics = self.metric_lines()

        changelog = self.read_changelog()
        updated = self.render(changelog, version, release_date, owner, repo, metrics)
        self.write_changelog(updated)

        print(f"✅ CHANGELOG.md updated with v{version} section.")
        return version


def release_notes(config: ReleaseConfig, version: str) -> str:
    """Section text for ``version`` followed by its compare and tag references."""
    version = ChangelogUtils.parse_version(version)
    section, compare_ref, tag_ref = ChangelogUtils.extract_release_notes(config.changelog_path, version)
    return section.rstrip() + "\n\n" + (compare_ref or "") + (tag_ref or "")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="changelog-release",
        description="Cut a release section in CHANGELOG.md and maintain its footer links",
    )
    parser.add_argument("--root", type=Path, help="Project root (default: directory containing CHANGELOG.md)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command")

    cut = subparsers.add_parser("cut", help="Move Unreleased entries into a new version section (default)")
    cut.add_argument("--version", help="Version to release (default: VERSION from lib/**/version.rb)")
    cut.add_argument("--date", help="Release date as YYYY-MM-DD (default: today)")
    cut.add_argument("--remote", help="Git remote used for GitHub links (default: origin)")
    cut.add_argument("--no-metrics", action="store_true", help="Skip coverage and documentation metrics")

    notes = subparsers.add_parser("notes", help="Print the changelog section and links for a released version")
    notes.add_argument("version", help="Released version, with or without a 'v' prefix")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the changelog-release CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        if args.command == "notes":
            config = ReleaseConfig.from_env(root=args.root)
            print(release_notes(config, args.version), end="")
            return 0

        config = ReleaseConfig.from_env(
            root=args.root,
            version=getattr(args, "version", None),
            date=getattr(args, "date", None),
            remote=getattr(args, "remote", None),
            skip_metrics=getattr(args, "no_metrics", False),
        )
        ChangelogReleaser(config).run()
        return 0
    except ChangelogError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        logger.debug("Release failed", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
