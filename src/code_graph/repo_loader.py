"""
Repository loader - local source file discovery.

Walks a directory, applies gitignore-style patterns (defaults, the
repository's .gitignore and .codegraphignore) and returns supported source
files with their content, in a stable path order.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import pathspec

from .parsers.base import LANGUAGE_BY_EXTENSION, detect_language
from src.logger import get_logger


logger = get_logger(__name__)


@dataclass
class RepoFile:
    """A source file handed to the pipeline."""
    path: str  # Repository-relative posix path
    content: str
    language: Optional[str] = None
    size_bytes: int = 0

    def __post_init__(self):
        if self.language is None:
            self.language = detect_language(self.path)
        if not self.size_bytes:
            self.size_bytes = len(self.content.encode('utf-8'))


class RepositoryLoader:
    """
    Loader for local repositories.

    Handles file filtering and reading for code repositories.
    """

    # Default ignore patterns (like .gitignore)
    DEFAULT_IGNORE_PATTERNS = [
        # Dependencies
        "node_modules/",
        "vendor/",
        "venv/",
        "env/",
        ".venv/",
        "__pycache__/",
        "*.pyc",

        # Build artifacts
        "dist/",
        "build/",
        ".next/",
        "out/",
        "target/",
        "*.egg-info/",

        # IDE
        ".vscode/",
        ".idea/",

        # Version control
        ".git/",
        ".svn/",
        ".hg/",

        # Minified/bundled
        "*.min.js",
        "*.bundle.js",
        "*.chunk.js",
        "*.d.ts",

        # Test coverage
        "coverage/",
        ".nyc_output/",
    ]

    IGNORE_FILES = (".gitignore", ".codegraphignore")

    def __init__(
        self,
        extensions: Optional[List[str]] = None,
        max_file_size: int = 512 * 1024,
        custom_ignore: Optional[List[str]] = None,
    ):
        """
        Initialize loader.

        Args:
            extensions: File extensions to keep (default: every supported language)
            max_file_size: Files larger than this many bytes are skipped
            custom_ignore: Additional ignore patterns
        """
        self.extensions = {e.lower() for e in (extensions or LANGUAGE_BY_EXTENSION)}
        self.max_file_size = max_file_size
        self.custom_ignore = custom_ignore or []
        self.skipped: List[str] = []

    def _ignore_spec(self, root: Path) -> pathspec.PathSpec:
        ignore_patterns = self.DEFAULT_IGNORE_PATTERNS.copy()

        for name in self.IGNORE_FILES:
            ignore_path = root / name
            if ignore_path.exists():
                with open(ignore_path, encoding='utf-8', errors='ignore') as f:
                    ignore_patterns.extend(
                        line.strip() for line in f
                        if line.strip() and not line.startswith('#')
                    )

        ignore_patterns.extend(self.custom_ignore)
        return pathspec.PathSpec.from_lines('gitwildmatch', ignore_patterns)

    def get_files(self, root: Path) -> List[Path]:
        """
        Get list of supported files in a directory, respecting ignore patterns.

        Args:
            root: Repository root

        Returns:
            File paths sorted by relative path
        """
        root = Path(root)
        spec = self._ignore_spec(root)

        files = []
        for current, dirs, filenames in os.walk(root):
            current_path = Path(current)
            rel_root = current_path.relative_to(root)

            # Filter directories (modify in-place to affect os.walk)
            dirs[:] = sorted(
                d for d in dirs
                if not spec.match_file((rel_root / d).as_posix() + '/')
            )

            for filename in sorted(filenames):
                rel_path = (rel_root / filename).as_posix()
                if Path(filename).suffix.lower() not in self.extensions:
                    continue
                if spec.match_file(rel_path):
                    continue
                files.append(current_path / filename)

        files.sort(key=lambda p: p.relative_to(root).as_posix())
        logger.info(f"Found {len(files)} source files in {root} (after filtering)")
        return files

    def load(self, root: Path) -> List[RepoFile]:
        """
        Read all supported files under a directory.

        Files that are too large or not valid UTF-8 are skipped with a
        warning; their paths are kept in `self.skipped` until the next load.
        """
        root = Path(root)
        self.skipped = []
        repo_files = []
        for path in self.get_files(root):
            rel_path = path.relative_to(root).as_posix()
            size = path.stat().st_size
            if size > self.max_file_size:
                logger.warning(f"Skipping {rel_path}: {size} bytes exceeds {self.max_file_size}")
                self.skipped.append(rel_path)
                continue
            try:
                content = path.read_text(encoding='utf-8')
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping {rel_path}: {e}")
                self.skipped.append(rel_path)
                continue
            repo_files.append(RepoFile(path=rel_path, content=content, size_bytes=size))
        return repo_files
