"""
Project root discovery utilities for devark.

The project-scoped settings layers live under ``<project>/.claude/``. This
module finds that project by searching upward for marker files like
.claude/, .devark.json, or .git/.
"""

from pathlib import Path

# Markers that indicate a project root, in order of priority
PROJECT_ROOT_MARKERS = [
    ".claude",  # Host assistant project settings
    ".devark.json",  # devark project configuration
    ".git",  # Git repository
]


def find_project_root(start: Path | None = None) -> Path | None:
    """
    Find the project root directory by searching upward for marker files.

    Args:
        start: Directory to start searching from. Defaults to current working directory.

    Returns:
        Path to the project root directory, or None if not found.

    Example:
        >>> find_project_root()  # From /project/src/module/
        PosixPath('/project')
    """
    if start is None:
        start = Path.cwd()

    start = start.resolve()

    # The home directory also carries a .claude/ folder (user layer), so it
    # never counts as a project root on its own
    home = Path.home().resolve()

    current = start
    while True:
        if current != home:
            for marker in PROJECT_ROOT_MARKERS:
                if (current / marker).exists():
                    return current
        if current == current.parent:  # Stop at filesystem root
            break
        current = current.parent

    return None


def get_project_root(start: Path | None = None) -> Path:
    """
    Get the project root directory, falling back to the start directory.

    Unlike ``find_project_root`` this never fails: a directory without any
    marker is treated as its own project so that a first ``hooks install
    --layer project`` can create ``.claude/settings.json`` there.

    Args:
        start: Directory to start searching from. Defaults to current working directory.

    Returns:
        Path to the project root directory.
    """
    root = find_project_root(start)
    if root is None:
        return (start or Path.cwd()).resolve()
    return root
