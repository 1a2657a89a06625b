#!/usr/bin/env python3
"""
Shared utilities for changelog operations.

This module provides common functionality used by the release scripts:
locating CHANGELOG.md, version detection and SemVer handling, repository
identity from the git remote, and release-notes extraction.
"""

import logging
import re
import subprocess
from pathlib import Path

from subprocess_utils import (
    ExecutableNotFoundError,
    check_git_repo as _check_git_repo,
    get_git_remote_url,
)

logger = logging.getLogger(__name__)

# Footer version keys are MAJOR.MINOR.PATCH only.
SEMVER_CORE_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")

VERSION_CONSTANT_RE = re.compile(r"""VERSION\s*=\s*(["'])([^"']+)\1""")

GITHUB_REMOTE_PATTERNS = [
    r"^git@github\.com:(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$",
    r"^ssh://git@github\.com[:/](?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$",
    r"^ssh://github\.com[:/](?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$",
    r"^git\+ssh://git@github\.com[:/](?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$",
    r"^https://github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$",
    r"^http://github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$",
    r"^git://github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$",
]


class ChangelogError(Exception):
    """Base exception for changelog operations."""


class ChangelogNotFoundError(ChangelogError):
    """Raised when CHANGELOG.md cannot be found."""


class VersionError(ChangelogError):
    """Raised when version detection or validation fails."""


class DuplicateVersionError(VersionError):
    """Raised when CHANGELOG.md already has a section for the version being cut."""


class UnreleasedSectionNotFoundError(ChangelogError):
    """Raised when CHANGELOG.md has no '## [Unreleased]' heading."""


class ChangelogUtils:
    """Utility class for changelog operations."""

    @staticmethod
    def find_changelog_path(start: Path | None = None) -> str:
        """
        Find CHANGELOG.md in the start directory or its parent directory.

        Args:
            start: Directory to search from (default: current directory)

        Returns:
            Absolute path to CHANGELOG.md

        Raises:
            ChangelogNotFoundError: If CHANGELOG.md is not found
        """
        current_dir = (start or Path.cwd()).resolve()

        changelog_path = current_dir / "CHANGELOG.md"
        if changelog_path.exists():
            return str(changelog_path)

        parent_changelog = current_dir.parent / "CHANGELOG.md"
        if parent_changelog.exists():
            return str(parent_changelog)

        msg = "CHANGELOG.md not found in current directory or parent directory. Please run this script from the project root."
        raise ChangelogNotFoundError(msg)

    @staticmethod
    def get_project_root(start: Path | None = None) -> str:
        """
        Find the project root directory (where CHANGELOG.md is located).

        Returns:
            Absolute path to project root

        Raises:
            ChangelogError: If project root cannot be determined
        """
        try:
            return str(Path(ChangelogUtils.find_changelog_path(start)).parent)
        except ChangelogNotFoundError as e:
            msg = "Cannot determine project root. CHANGELOG.md not found in current or parent directory."
            raise ChangelogError(msg) from e

    @staticmethod
    def parse_version(tag_version: str) -> str:
        """
        Parse version string, removing 'v' prefix if present.

        Args:
            tag_version: Version string (e.g., 'v0.4.1' or '0.4.1')

        Returns:
            Version number without 'v' prefix (e.g., '0.4.1')
        """
        return tag_version[1:] if tag_version.startswith("v") else tag_version

    @staticmethod
    def validate_semver(version: str) -> bool:
        """
        Validate that a version follows SemVer format.

        Args:
            version: Version string to validate, without a 'v' prefix

        Returns:
            True if valid SemVer format

        Raises:
            VersionError: If invalid SemVer format
        """
        # SemVer 2.0.0 strict: MAJOR.MINOR.PATCH with optional -PRERELEASE and optional +BUILD
        # No leading zeros in numeric identifiers (MAJOR, MINOR, PATCH, pre-release numeric parts)
        semver_pattern = (
            r"^(0|[1-9]\d*)\."
            r"(0|[1-9]\d*)\."
            r"(0|[1-9]\d*)"
            r"(?:-(?:"
            r"(?:0|[1-9]\d*)"
            r"|(?:[A-Za-z-][0-9A-Za-z-]*)"
            r")(?:\.(?:0|[1-9]\d*|[A-Za-z-][0-9A-Za-z-]*))*"
            r")?"
            r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
        )

        if not re.match(semver_pattern, version):
            msg = f"Version should follow SemVer format 'X.Y.Z' (e.g., 0.3.5, 1.2.3-rc.1, 1.2.3+build.5). Got: {version}"
            raise VersionError(msg)
        return True

    @staticmethod
    def semver_key(version: str) -> tuple[int, int, int]:
        """
        Sort key for a MAJOR.MINOR.PATCH version.

        Raises:
            VersionError: If the version is not a plain MAJOR.MINOR.PATCH string
        """
        match = SEMVER_CORE_RE.match(version)
        if not match:
            raise VersionError(f"Not a MAJOR.MINOR.PATCH version: {version}")
        major, minor, patch = (int(part) for part in match.groups())
        return major, minor, patch

    @staticmethod
    def detect_version(root: Path) -> str:
        """
        Detect the unique VERSION constant declared under lib/**/version.rb.

        Args:
            root: Project root directory

        Returns:
            The version string

        Raises:
            VersionError: If no version file or constant is found, or the constants disagree
        """
        candidates = sorted(Path(root).glob("lib/**/version.rb"))
        if not candidates:
            raise VersionError("Could not find version.rb under lib/**.")

        versions = []
        for path in candidates:
            try:
                content = path.read_text(encoding="utf-8")
            except OSError as e:
                raise VersionError(f"Cannot read version file {path}: {e}") from e
            match = VERSION_CONSTANT_RE.search(content)
            if match:
                logger.debug("Found VERSION %s in %s", match.group(2), path)
                versions.append(match.group(2))

        if not versions:
            raise VersionError(f"VERSION constant not found in {root}/lib/**/version.rb")
        if len(set(versions)) != 1:
            raise VersionError(f"Multiple VERSION constants found to be out of sync ({versions}) in {root}/lib/**/version.rb")
        return versions[0]

    @staticmethod
    def parse_github_remote(url: str) -> tuple[str, str] | None:
        """
        Parse a GitHub owner/repo pair out of a remote URL.

        Args:
            url: Remote URL in SSH, git or HTTP(S) form

        Returns:
            (owner, repo) or None when the URL does not point at github.com
        """
        for pat in GITHUB_REMOTE_PATTERNS:
            m = re.match(pat, url.strip())
            if m:
                return m.group("owner"), m.group("repo")
        return None

    @staticmethod
    def get_repo_identity(remote: str = "origin", cwd: Path | None = None) -> tuple[str, str] | None:
        """
        Get the GitHub (owner, repo) pair from a git remote.

        Args:
            remote: Remote name to inspect
            cwd: Repository directory (default: current directory)

        Returns:
            (owner, repo), or None when git, the remote, or a GitHub URL is unavailable
        """
        if not _check_git_repo(cwd):
            logger.debug("%s is not inside a git repository", cwd or Path.cwd())
            return None
        try:
            url = get_git_remote_url(remote, cwd=cwd)
        except (ExecutableNotFoundError, subprocess.CalledProcessError) as e:
            logger.debug("Could not read remote %s: %s", remote, e)
            return None
        identity = ChangelogUtils.parse_github_remote(url) if url else None
        if identity is None:
            logger.debug("Remote %s is not a GitHub URL: %r", remote, url)
        return identity

    @staticmethod
    def extract_release_notes(changelog_path: str | Path, version: str) -> tuple[str, str | None, str | None]:
        """
        Extract the section and link references for a released version.

        The section ends at the next version heading or at the footer link references.

        Args:
            changelog_path: Path to CHANGELOG.md file
            version: Version number (without 'v' prefix)

        Returns:
            Tuple of (section text including its heading, compare ref line, tag ref line).
            Ref lines are newline-terminated, or None when absent.

        Raises:
            ChangelogError: If the file cannot be read or the version has no section
        """
        try:
            content = Path(changelog_path).read_text(encoding="utf-8")
        except OSError as e:
            msg = f"Cannot read changelog file: {e}"
            raise ChangelogError(msg) from e

        lines = content.splitlines(keepends=True)
        heading = f"## [{version}]"
        start = next((i for i, line in enumerate(lines) if line.startswith(heading)), None)
        if start is None:
            raise ChangelogError(f"CHANGELOG.md does not contain a section for {version}")

        end = start + 1
        while end < len(lines) and not lines[end].startswith(("## [", "[Unreleased]:")):
            end += 1
        section = "".join(lines[start:end])

        def _find_ref(key: str) -> str | None:
            ref = next((line for line in lines if line.startswith(f"[{key}]: ")), None)
            if ref is not None and not ref.endswith("\n"):
                ref += "\n"
            return ref

        return section, _find_ref(version), _find_ref(f"{version}t")
