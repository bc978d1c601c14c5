"""
Error taxonomy for vector store and RAG operations.
All errors are raised to the immediate caller; nothing here is retried.
"""

from typing import Iterable, List


class RagError(Exception):
    """Base exception for all pocketrag errors."""
    pass


class InvalidArgument(RagError, ValueError):
    """Contradictory, missing or mis-sized call arguments."""

    def __init__(self, message: str, problems: Iterable[str] = ()):
        self.problems: List[str] = list(problems)
        if self.problems:
            message = f"{message}: {'; '.join(self.problems)}"
        super().__init__(message)


class DimensionMismatch(RagError, ValueError):
    """An embedding's length disagrees with the store's dimension."""

    def __init__(self, expected: int, received: int, record_id: str = None):
        self.expected = expected
        self.received = received
        self.record_id = record_id
        message = f"embedding dimension {received} does not match collection dimension {expected}"
        if record_id is not None:
            message += f" (id: {record_id})"
        super().__init__(message)


class DuplicateId(RagError):
    """Insertion targets an id that is already present."""

    def __init__(self, ids: Iterable[str]):
        self.ids = list(ids)
        super().__init__(f"id already exists: {', '.join(self.ids)}")


class NotFound(RagError, LookupError):
    """An operation references ids absent from the store."""

    def __init__(self, ids: Iterable[str]):
        self.ids = list(ids)
        super().__init__(f"id not found: {', '.join(self.ids)}")


class ShapeMismatch(RagError):
    """A caller-supplied generator returned the wrong number of items."""

    def __init__(self, what: str, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(f"{what} must return one item per chunk: expected {expected}, got {received}")


class EmptyInput(RagError, ValueError):
    """No messages were given to generate from."""
    pass


class MissingContent(RagError, ValueError):
    """The last message has no content to retrieve context for."""
    pass


class StoreNotLoaded(RagError, RuntimeError):
    """A persisted store was used before load() or after unload()."""
    pass
