"""
Shared pytest fixtures and utilities for test modules.

Provides common testing utilities that can be reused across multiple test files.
"""

import os
import sys
from contextlib import contextmanager
from pathlib import Path
from unittest.mock import Mock

import pytest

# Ensure `scripts/` is on sys.path for test imports
# This must be done before importing any local modules
_scripts = Path(__file__).resolve().parents[1]
if str(_scripts) not in sys.path:
    sys.path.insert(0, str(_scripts))


SAMPLE_CHANGELOG = """\
# Changelog

All notable changes to this project will be documented in this file.

## [Unreleased]
### Added
- New widget API
### Changed
### Deprecated
### Removed
### Fixed
- Crash on empty input

### Security

## [2.0.0] - 2024-01-15
- TAG: [v2.0.0][2.0.0t]
### Changed
- Dropped legacy mode
- See [gh12] for details

[gh12]: https://github.com/acme/widget/pull/12

## [1.10.0] - 2023-11-02
- TAG: [v1.10.0][1.10.0t]
### Added
- Initial widget

[Unreleased]: https://github.com/acme/widget/compare/v2.0.0...HEAD
[2.0.0]: https://github.com/acme/widget/compare/v1.10.0...v2.0.0
[2.0.0t]: https://github.com/acme/widget/releases/tag/v2.0.0
[1.10.0]: https://github.com/acme/widget/compare/abc1234...v1.10.0
[1.10.0t]: https://github.com/acme/widget/releases/tag/v1.10.0
"""


@pytest.fixture
def sample_changelog() -> str:
    """A Keep a Changelog document with two releases and a footer."""
    return SAMPLE_CHANGELOG


@pytest.fixture
def temp_chdir():
    """
    Pytest fixture for temporarily changing working directory.

    Returns a context manager that can be used to change directories
    and automatically restore the original directory.

    Usage:
        def test_something(temp_chdir):
            with temp_chdir(some_path):
                # Code that runs in some_path
                pass
            # Back to original directory
    """

    @contextmanager
    def _temp_chdir_context(path: os.PathLike | str):
        """Context manager for temporarily changing working directory."""
        original_cwd = Path.cwd()
        target = Path(path)
        if not target.exists():
            raise FileNotFoundError(target)
        os.chdir(target)
        try:
            yield
        finally:
            os.chdir(original_cwd)

    return _temp_chdir_context


@pytest.fixture
def mock_git_command_result():
    """
    Pytest fixture for creating mock CompletedProcess objects for git commands.

    Returns a function that creates a mock object with the specified stdout output.

    Usage:
        def test_something(mock_git_command_result):
            mock_result = mock_git_command_result("git@github.com:acme/widget.git")
    """

    def _create_mock_result(output: str, returncode: int = 0) -> Mock:
        """Create a mock CompletedProcess object for git commands."""
        mock_result = Mock()
        mock_result.stdout = output
        mock_result.returncode = returncode
        mock_result.args = ["git"]
        return mock_result

    return _create_mock_result
