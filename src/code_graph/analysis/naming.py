"""
Name heuristics shared by the analyzers.
"""

import re
from collections import Counter
from pathlib import PurePosixPath
from typing import Iterable, List, Optional

STOPWORDS = frozenset({
    'get', 'set', 'has', 'add', 'new', 'init', 'the', 'and', 'for', 'with',
    'from', 'into', 'this', 'self', 'none', 'true', 'false', 'test', 'tests',
    'util', 'utils', 'helper', 'helpers', 'impl', 'base', 'main', 'run',
    'handle', 'make', 'default', 'index', 'async',
})

_CAMEL_BOUNDARY = re.compile(r'([a-z0-9])([A-Z])')
_ACRONYM_BOUNDARY = re.compile(r'([A-Z]+)([A-Z][a-z])')
_SEPARATORS = re.compile(r'[^A-Za-z0-9]+')


def split_identifier(name: str) -> List[str]:
    """Split camelCase / PascalCase / snake_case into lowercase tokens."""
    name = _ACRONYM_BOUNDARY.sub(r'\1 \2', name)
    name = _CAMEL_BOUNDARY.sub(r'\1 \2', name)
    return [t.lower() for t in _SEPARATORS.split(name) if t]


def meaningful_tokens(name: str) -> List[str]:
    return [
        t for t in split_identifier(name)
        if len(t) >= 3 and not t.isdigit() and t not in STOPWORDS
    ]


def most_frequent_token(names: Iterable[str], min_count: int = 2) -> Optional[str]:
    """
    Most frequent meaningful token across names, title-cased.

    Returns None when no token occurs at least `min_count` times.
    Ties go to the token seen first.
    """
    counts = Counter()
    for name in names:
        counts.update(meaningful_tokens(name))
    if not counts:
        return None
    token, count = counts.most_common(1)[0]
    return token.title() if count >= min_count else None


def file_label(file_path: str) -> str:
    """Human label for a file: its stem, or the package directory for index files."""
    path = PurePosixPath(file_path)
    stem = path.stem
    if stem in ('__init__', 'index', 'mod') and path.parent.name:
        stem = path.parent.name
    words = split_identifier(stem)
    return ' '.join(w.title() for w in words) if words else 'Cluster'


def dominant_file_label(file_paths: Iterable[str]) -> str:
    """Label of the file declaring most of the given symbols."""
    counts = Counter(file_paths)
    if not counts:
        return 'Cluster'
    return file_label(counts.most_common(1)[0][0])
