"""Tests for changelog_sections.py: Unreleased location, filtering and section building."""

import pytest

from changelog_sections import (
    CATEGORIES,
    UnreleasedSplit,
    assemble_release,
    build_release_section,
    detect_previous_version,
    extract_unreleased,
    filter_unreleased_sections,
    find_sections,
    has_version_section,
    unreleased_skeleton,
)


class TestExtractUnreleased:
    """Test suite for splitting a changelog around Unreleased."""

    def test_splits_before_body_and_after(self, sample_changelog):
        split = extract_unreleased(sample_changelog)

        assert split is not None
        assert split.before == "# Changelog\n\nAll notable changes to this project will be documented in this file.\n\n"
        assert split.unreleased_block.startswith("### Added\n- New widget API\n")
        assert split.unreleased_block.endswith("### Security\n\n")
        assert split.after.startswith("## [2.0.0] - 2024-01-15\n")
        assert split.after.endswith("[1.10.0t]: https://github.com/acme/widget/releases/tag/v1.10.0\n")

    def test_parts_reassemble_to_the_document(self, sample_changelog):
        split = extract_unreleased(sample_changelog)
        assert split.before + "## [Unreleased]\n" + split.unreleased_block + split.after == sample_changelog

    def test_missing_unreleased_returns_none(self):
        assert extract_unreleased("# Changelog\n\n## [1.0.0] - 2020-01-01\n- thing\n") is None

    def test_unreleased_at_eof(self):
        split = extract_unreleased("## [Unreleased]\n### Added\n- x\n")
        assert split == UnreleasedSplit(before="", unreleased_block="### Added\n- x\n", after="")

    def test_unreleased_on_first_line_has_empty_before(self):
        split = extract_unreleased("## [Unreleased]\n## [1.0.0] - 2020-01-01\n")
        assert split.before == ""
        assert split.unreleased_block == ""
        assert split.after == "## [1.0.0] - 2020-01-01\n"


class TestDetectPreviousVersion:
    """Test suite for previous-version detection."""

    @pytest.mark.parametrize(
        ("after", "expected"),
        [
            ("## [2.0.0] - 2024-01-15\n- stuff\n## [1.0.0] - 2023-01-01\n", "2.0.0"),
            ("## [10.2.33]\n", "10.2.33"),
            ("", None),
            ("[Unreleased]: https://github.com/acme/widget/compare/v1.0.0...HEAD\n", None),
            ("## [2.0.0-rc.1] - 2024-01-15\n## [1.0.0] - 2023-01-01\n", None),
        ],
    )
    def test_detect_previous_version(self, after, expected):
        assert detect_previous_version(after) == expected


class TestFilterUnreleasedSections:
    """Test suite for dropping empty category subsections."""

    def test_drops_empty_subsections(self):
        block = "### Added\n- Feature X\n### Changed\n### Fixed\n- Bug Y\n"
        assert filter_unreleased_sections(block) == "### Added\n- Feature X\n\n### Fixed\n- Bug Y\n"

    def test_trims_trailing_blank_lines(self, sample_changelog):
        split = extract_unreleased(sample_changelog)
        assert filter_unreleased_sections(split.unreleased_block) == "### Added\n- New widget API\n\n### Fixed\n- Crash on empty input\n"

    def test_keeps_interior_blank_lines(self):
        block = "### Added\n- one\n\n- two\n\n\n"
        assert filter_unreleased_sections(block) == "### Added\n- one\n\n- two\n"

    def test_whitespace_only_content_is_empty(self):
        assert filter_unreleased_sections("### Added\n   \n\t\n### Removed\n\n") == ""

    @pytest.mark.parametrize("block", ["", "\n\n", "### Added\n### Changed\n### Deprecated\n### Removed\n### Fixed\n### Security\n"])
    def test_empty_body_yields_empty_string(self, block):
        assert filter_unreleased_sections(block) == ""

    def test_lines_before_first_heading_are_dropped(self):
        block = "Some stray note\n\n### Added\n- x\n"
        assert filter_unreleased_sections(block) == "### Added\n- x\n"

    def test_custom_subsection_with_entries_is_kept(self):
        block = "### Added\n### Performance\n- Faster parsing\n"
        assert filter_unreleased_sections(block) == "### Performance\n- Faster parsing\n"

    def test_missing_final_newline_is_added(self):
        assert filter_unreleased_sections("### Fixed\n- y") == "### Fixed\n- y\n"

    @pytest.mark.parametrize(
        "block",
        [
            "### Added\n- Feature X\n### Changed\n### Fixed\n- Bug Y\n",
            "intro\n### Added\n\n- a\n\n### Security\n- b\n\n\n",
            "### Removed\n- gone",
        ],
    )
    def test_filtering_is_idempotent(self, block):
        once = filter_unreleased_sections(block)
        assert filter_unreleased_sections(once) == once


class TestBuildReleaseSection:
    """Test suite for building a release section."""

    def test_section_with_metrics(self):
        metrics = ["COVERAGE: 90.00% -- 9/10 lines in 2 files", None, "95.00% documented"]
        section = build_release_section("2.1.0", "2024-06-01", "### Added\n- X\n", metrics)

        assert section == (
            "## [2.1.0] - 2024-06-01\n"
            "- TAG: [v2.1.0][2.1.0t]\n"
            "- COVERAGE: 90.00% -- 9/10 lines in 2 files\n"
            "- 95.00% documented\n"
            "### Added\n"
            "- X\n"
            "\n"
        )

    def test_section_without_content_or_metrics(self):
        assert build_release_section("2.1.0", "2024-06-01", "") == "## [2.1.0] - 2024-06-01\n- TAG: [v2.1.0][2.1.0t]\n\n"

    def test_section_ends_with_single_blank_line(self):
        section = build_release_section("1.0.0", "2024-06-01", "### Fixed\n- a\n\n\n")
        assert section.endswith("- a\n\n")
        assert not section.endswith("\n\n\n")


class TestUnreleasedSkeleton:
    """Test suite for the reset Unreleased section."""

    def test_skeleton_lists_every_category_once(self):
        skeleton = unreleased_skeleton()
        assert skeleton == "## [Unreleased]\n### Added\n### Changed\n### Deprecated\n### Removed\n### Fixed\n### Security\n"
        for category in CATEGORIES:
            assert skeleton.count(f"### {category}\n") == 1

    def test_assemble_release_places_skeleton_above_new_section(self, sample_changelog):
        split = extract_unreleased(sample_changelog)
        section = build_release_section("2.1.0", "2024-06-01", filter_unreleased_sections(split.unreleased_block))

        document = assemble_release(split, section)

        assert document.startswith(split.before + unreleased_skeleton() + "\n## [2.1.0] - 2024-06-01\n")
        assert document.endswith(split.after)
        assert "- Crash on empty input\n\n## [2.0.0] - 2024-01-15" in document


class TestSectionLookup:
    """Test suite for section discovery."""

    def test_find_sections(self, sample_changelog):
        lines = sample_changelog.splitlines(keepends=True)
        sections = find_sections(lines)

        assert [s.label for s in sections] == ["Unreleased", "2.0.0", "1.10.0"]
        assert sections[0].end_index == sections[1].start_index
        assert sections[-1].end_index == len(lines)
        assert sections[1].body[0] == "- TAG: [v2.0.0][2.0.0t]\n"

    @pytest.mark.parametrize(("version", "expected"), [("2.0.0", True), ("1.10.0", True), ("2.0", False), ("1.1.0", False)])
    def test_has_version_section(self, sample_changelog, version, expected):
        assert has_version_section(sample_changelog, version) is expected
