#!/usr/bin/env python3
"""
Footer link-reference maintenance for CHANGELOG.md.

The footer is the block of Markdown reference definitions starting at the
``[Unreleased]:`` line. After a release is cut it must hold, in order, the
Unreleased compare link followed by each version's compare and tag links,
newest version first, with one definition per key.
"""

import logging
import re

from changelog_utils import ChangelogUtils

logger = logging.getLogger(__name__)

UNRELEASED_REF_PREFIX = "[Unreleased]:"

GITLAB_COMPARE_RE = re.compile(r"https://gitlab\.com/([^/]+)/([^/]+)/-/compare/(\S+?)\.\.\.(\S+)")
GITLAB_TAG_RE = re.compile(r"https://gitlab\.com/([^/]+)/([^/]+)/-/tags/(v[^\s\]]+)")

REF_LINE_RE = re.compile(r"^\[([^\]]+)\]:\s+http")
COMPARE_KEY_RE = re.compile(r"^(\d+\.\d+\.\d+)$")
TAG_KEY_RE = re.compile(r"^(\d+\.\d+\.\d+)t$")
FIRST_RELEASE_REF_RE = re.compile(r"^\[1\.0\.0\]:\s+https://github\.com/")
COMPARE_BASE_RE = re.compile(r"compare/(\S+?)\.\.\.v\d+")

# Compare base when neither a previous version nor a 1.0.0 compare link exists.
FALLBACK_COMPARE_BASE = "HEAD^"


def _terminated(line: str) -> str:
    return line if line.endswith("\n") else line + "\n"


class LinkReconciler:
    """Rewrite the footer link references of a changelog for a new release."""

    def __init__(self, owner: str | None = None, repo: str | None = None):
        self.owner = owner
        self.repo = repo

    @property
    def has_identity(self) -> bool:
        return bool(self.owner and self.repo)

    @property
    def base_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}"

    def migrate_legacy_links(self, content: str) -> str:
        """
        Convert GitLab compare and tag URLs into their GitHub equivalents.

        The configured owner/repo wins; each URL's own segments are used when
        the identity is unknown.
        """

        def _compare(m: re.Match) -> str:
            owner = self.owner or m.group(1)
            repo = self.repo or m.group(2)
            return f"https://github.com/{owner}/{repo}/compare/{m.group(3)}...{m.group(4)}"

        def _tag(m: re.Match) -> str:
            owner = self.owner or m.group(1)
            repo = self.repo or m.group(2)
            return f"https://github.com/{owner}/{repo}/releases/tag/{m.group(3)}"

        content, compares = GITLAB_COMPARE_RE.subn(_compare, content)
        content, tags = GITLAB_TAG_RE.subn(_tag, content)
        if compares or tags:
            logger.debug("Migrated %d GitLab compare links and %d tag links", compares, tags)
        return content

    @staticmethod
    def find_footer_start(lines: list[str]) -> int:
        """Index of the '[Unreleased]:' line, or len(lines) when there is none."""
        return next((i for i, line in enumerate(lines) if line.startswith(UNRELEASED_REF_PREFIX)), len(lines))

    @staticmethod
    def detect_initial_compare_base(lines: list[str]) -> str:
        """
        Find the compare base used historically for the first release.

        Projects whose 1.0.0 predates tagging often compare from a commit SHA,
        so reuse the base of an existing '[1.0.0]:' compare link if there is one.
        """
        ref = next((line for line in lines if FIRST_RELEASE_REF_RE.match(line)), None)
        if ref:
            match = COMPARE_BASE_RE.search(ref)
            if match:
                return match.group(1)
        return FALLBACK_COMPARE_BASE

    def _upsert_unreleased(self, lines: list[str], footer_start: int, new_version: str) -> None:
        unreleased_ref = f"[Unreleased]: {self.base_url}/compare/v{new_version}...HEAD\n"
        idx = next((i for i in range(footer_start, len(lines)) if lines[i].startswith(UNRELEASED_REF_PREFIX)), None)
        if idx is None:
            lines.append(unreleased_ref)
        else:
            lines[idx] = unreleased_ref

    def _add_version_refs(self, lines: list[str], prev_version: str | None, new_version: str) -> None:
        base = f"v{prev_version}" if prev_version else self.detect_initial_compare_base(lines)
        if not any(line.startswith(f"[{new_version}]:") for line in lines):
            lines.append(f"[{new_version}]: {self.base_url}/compare/{base}...v{new_version}\n")
        if not any(line.startswith(f"[{new_version}t]:") for line in lines):
            lines.append(f"[{new_version}t]: {self.base_url}/releases/tag/v{new_version}\n")

    @staticmethod
    def rebuild_footer(ref_lines: list[str]) -> list[str]:
        """
        Deduplicate and order footer reference lines.

        Later definitions of a key replace earlier ones. Only the Unreleased
        link and version compare/tag links survive.
        """
        by_key: dict[str, str] = {}
        for line in ref_lines:
            match = REF_LINE_RE.match(line)
            if match:
                by_key[match.group(1)] = _terminated(line)

        unreleased_line = by_key.pop("Unreleased", None)
        compares: dict[str, str] = {}
        tags: dict[str, str] = {}
        for key, line in by_key.items():
            if m := COMPARE_KEY_RE.match(key):
                compares[m.group(1)] = line
            elif m := TAG_KEY_RE.match(key):
                tags[m.group(1)] = line

        versions = sorted(compares.keys() | tags.keys(), key=ChangelogUtils.semver_key, reverse=True)

        block = [unreleased_line] if unreleased_line else []
        for version in versions:
            if version in compares:
                block.append(compares[version])
            if version in tags:
                block.append(tags[version])
        return block

    def reconcile(self, content: str, prev_version: str | None, new_version: str) -> str:
        """
        Produce the document with a canonical footer for ``new_version``.

        Args:
            content: Changelog text with the new release section already in place
            prev_version: Version the new release is compared against, if known
            new_version: Version being released

        Returns:
            The rewritten document; everything above the footer is untouched
        """
        content = self.migrate_legacy_links(content)
        lines = content.splitlines(keepends=True)
        footer_start = self.find_footer_start(lines)

        if self.has_identity:
            self._upsert_unreleased(lines, footer_start, new_version)
            self._add_version_refs(lines, prev_version, new_version)
        else:
            logger.debug("No owner/repo; leaving Unreleased and %s links untouched", new_version)

        preserved = lines[:footer_start]
        if preserved:
            preserved[-1] = _terminated(preserved[-1])
        footer = self.rebuild_footer(lines[footer_start:])
        return "".join(preserved) + "".join(footer) + "\n"


def update_link_refs(content: str, owner: str | None, repo: str | None, prev_version: str | None, new_version: str) -> str:
    """Convenience wrapper around LinkReconciler.reconcile."""
    return LinkReconciler(owner, repo).reconcile(content, prev_version, new_version)
