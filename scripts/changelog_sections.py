#!/usr/bin/env python3
"""
Section handling for Keep a Changelog documents.

Locates the Unreleased section, filters out empty category subsections,
builds the section for a newly cut release and regenerates the empty
Unreleased skeleton. All functions are pure text transformations; lines
keep their trailing newlines.
"""

import re
from dataclasses import dataclass

# Canonical Keep a Changelog categories, in the order they are regenerated.
CATEGORIES = ("Added", "Changed", "Deprecated", "Removed", "Fixed", "Security")

UNRELEASED_HEADING = "## [Unreleased]"
SECTION_PREFIX = "## ["

SECTION_LABEL_RE = re.compile(r"^## \[([^\]]+)\]")
RELEASE_HEADING_RE = re.compile(r"^## \[(\d+\.\d+\.\d+)\]")


@dataclass
class Section:
    """A '## [label]' heading and the lines up to the next such heading."""

    label: str
    start_index: int
    end_index: int  # exclusive
    body: list[str]


@dataclass
class UnreleasedSplit:
    """A changelog split around its Unreleased section."""

    before: str
    unreleased_block: str
    after: str


def find_sections(lines: list[str]) -> list[Section]:
    """Return every '## [label]' section in document order."""
    starts = [(i, m.group(1)) for i, line in enumerate(lines) if (m := SECTION_LABEL_RE.match(line))]
    sections = []
    for n, (start, label) in enumerate(starts):
        end = starts[n + 1][0] if n + 1 < len(starts) else len(lines)
        sections.append(Section(label=label, start_index=start, end_index=end, body=lines[start + 1 : end]))
    return sections


def has_version_section(content: str, version: str) -> bool:
    """Check whether a '## [<version>]' heading already exists."""
    return any(section.label == version for section in find_sections(content.splitlines(keepends=True)))


def extract_unreleased(content: str) -> UnreleasedSplit | None:
    """
    Split a changelog around its Unreleased section.

    Args:
        content: Full CHANGELOG.md text

    Returns:
        UnreleasedSplit with the text above the Unreleased heading, the body
        under it, and everything from the next '## [' heading to EOF; None
        when no line starts with '## [Unreleased]'.
    """
    lines = content.splitlines(keepends=True)
    start = next((i for i, line in enumerate(lines) if line.startswith(UNRELEASED_HEADING)), None)
    if start is None:
        return None

    end = start + 1
    while end < len(lines) and not lines[end].startswith(SECTION_PREFIX):
        end += 1

    return UnreleasedSplit(
        before="".join(lines[:start]),
        unreleased_block="".join(lines[start + 1 : end]),
        after="".join(lines[end:]),
    )


def detect_previous_version(after: str) -> str | None:
    """
    Return the version of the first release heading in ``after``.

    Only the first '## [' heading is considered; when it is not a
    MAJOR.MINOR.PATCH release, None is returned.
    """
    for line in after.splitlines():
        if line.startswith(SECTION_PREFIX):
            match = RELEASE_HEADING_RE.match(line)
            return match.group(1) if match else None
    return None


def filter_unreleased_sections(unreleased_block: str) -> str:
    """
    Keep only the '### ' subsections of an Unreleased body that have content.

    A subsection runs from its heading to the next '### ' or '## ' line and
    is kept when at least one of its lines is non-blank. Trailing blank
    lines are trimmed and kept subsections are separated by one blank line.
    Lines before the first subsection heading are dropped.
    Any '### ' heading is recognized, not just CATEGORIES, so custom
    subsections with entries are carried into the release unchanged.

    Args:
        unreleased_block: Body text of the Unreleased section

    Returns:
        The filtered text, or "" when no subsection has content
    """
    lines = unreleased_block.splitlines(keepends=True)
    blocks: list[str] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if not line.startswith("### "):
            i += 1
            continue

        header = line if line.endswith("\n") else line + "\n"
        i += 1
        chunk = []
        while i < len(lines) and not lines[i].startswith(("### ", "## ")):
            chunk.append(lines[i])
            i += 1

        if not any(entry.strip() for entry in chunk):
            continue
        while not chunk[-1].strip():
            chunk.pop()
        if not chunk[-1].endswith("\n"):
            chunk[-1] += "\n"
        blocks.append(header + "".join(chunk))

    return "\n".join(blocks)


def unreleased_skeleton() -> str:
    """Empty Unreleased section with every category heading."""
    return UNRELEASED_HEADING + "\n" + "".join(f"### {category}\n" for category in CATEGORIES)


def build_release_section(version: str, date: str, filtered: str, metric_lines: list[str | None] | None = None) -> str:
    """
    Build the section for a newly cut release.

    Args:
        version: Version being released (no 'v' prefix)
        date: Release date, usually YYYY-MM-DD
        filtered: Output of filter_unreleased_sections
        metric_lines: Optional metric strings; None entries are skipped

    Returns:
        The section text, ending with exactly one blank line
    """
    section = f"## [{version}] - {date}\n"
    section += f"- TAG: [v{version}][{version}t]\n"
    for metric in metric_lines or []:
        if metric:
            section += f"- {metric}\n"
    section += filtered
    return section.rstrip() + "\n\n"


def assemble_release(split: UnreleasedSplit, release_section: str) -> str:
    """Place the reset Unreleased section and the new release above the older history."""
    return split.before + unreleased_skeleton() + "\n" + release_section + split.after
