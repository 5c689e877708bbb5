"""File scanner — expand command-line paths into schema source files."""

from collections.abc import Iterable
from pathlib import Path

# Directories to always skip
SKIP_DIRS = {
    ".git", "__pycache__", ".venv", "venv", ".env", "dist", "build", ".tox",
    ".mypy_cache", ".pytest_cache", ".ruff_cache", "node_modules", "site-packages",
}

SCHEMA_SUFFIX = ".py"


def scan_schema_files(root: Path) -> list[Path]:
    """Recursively collect Python files under ``root``, sorted by path.

    Skips common non-source directories.
    """
    return sorted(item for item in root.rglob(f"*{SCHEMA_SUFFIX}") if _should_include(item, root))


def expand_paths(paths: Iterable[str | Path]) -> list[Path]:
    """Expand files and directories into an ordered, duplicate-free file list.

    Raises:
        FileNotFoundError: If a path does not exist.
    """
    files: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            candidates = scan_schema_files(path)
        elif path.is_file():
            candidates = [path]
        else:
            raise FileNotFoundError(f"No such file or directory: {path}")
        for candidate in candidates:
            if candidate not in files:
                files.append(candidate)
    return files


def _should_include(path: Path, root: Path) -> bool:
    """Check if a file found under ``root`` should be parsed."""
    if not path.is_file():
        return False
    return not any(part in SKIP_DIRS for part in path.relative_to(root).parts)
