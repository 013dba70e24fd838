"""
Exceptions raised by the code graph pipeline and its adapters.

Per-file parse failures use ParsingError from the parsers package.
"""


class CodeGraphError(Exception):
    """Base class for code graph errors."""
    pass


class GraphStoreError(CodeGraphError, ConnectionError):
    """Graph store is unreachable or rejected a write."""
    pass


class IndexQueryError(CodeGraphError):
    """A keyword or semantic index query failed or timed out."""

    def __init__(self, index_name: str, message: str):
        super().__init__(f"{index_name}: {message}")
        self.index_name = index_name


class FatalIngestionError(CodeGraphError):
    """The ingestion run produced nothing usable or could not be persisted."""
    pass


class EntityNotFoundError(CodeGraphError, LookupError):
    """No cluster or process matches the requested name."""

    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind} not found: {name}")
        self.kind = kind
        self.name = name
