"""
Shared fakes and fixtures for the pocketrag test suite.
"""

from typing import Iterator, List

import pytest

from pocketrag.rag.llm import BaseLLM
from pocketrag.rag.messages import Message
from pocketrag.vector.embeddings import IEmbeddingProvider
from pocketrag.vector.index import SimpleInMemoryVectorStore
from pocketrag.vector.sqlite_store import SqliteVectorStore


class FakeEmbeddings(IEmbeddingProvider):
    """Sums character codes into a fixed number of buckets and records every call."""

    def __init__(self, dim: int = 3):
        self.dim = dim
        self.loaded = False
        self.load_count = 0
        self.unload_count = 0
        self.embed_calls: List[str] = []

    def load(self):
        self.loaded = True
        self.load_count += 1
        return self

    def unload(self):
        self.loaded = False
        self.unload_count += 1

    def embed(self, text: str) -> list[float]:
        self.embed_calls.append(text)
        vector = [0.0] * self.dim
        for i, ch in enumerate(text):
            vector[i % self.dim] += ord(ch)
        return vector

    def get_dimension(self) -> int:
        return self.dim


class FakeLLM(BaseLLM):
    """Streams a fixed list of tokens and records the messages it was given."""

    def __init__(self, tokens=("Hello", ",", " world")):
        super().__init__("fake-model")
        self.tokens = list(tokens)
        self.calls: List[List[Message]] = []
        self.loaded = False
        self.interrupt_count = 0

    def load(self):
        self.loaded = True
        return self

    def unload(self):
        self.loaded = False

    def interrupt(self):
        self.interrupt_count += 1
        super().interrupt()

    def _stream_tokens(self, messages: List[Message]) -> Iterator[str]:
        self.calls.append(messages)
        yield from self.tokens


class FixedSizeSplitter:
    """Character windows of chunk_size with chunk_overlap, no boundary handling."""

    def __init__(self, chunk_size: int = 10, chunk_overlap: int = 0):
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def split_text(self, text: str) -> List[str]:
        chunks = []
        start = 0
        while start < len(text):
            end = min(start + self.chunk_size, len(text))
            chunks.append(text[start:end])
            if end == len(text):
                break
            start = end - self.chunk_overlap
        return chunks


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddings(dim=3)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, fake_embeddings, tmp_path):
    """A loaded store of each implementation, bound to a 3-dimensional provider."""
    if request.param == "memory":
        s = SimpleInMemoryVectorStore(fake_embeddings)
    else:
        s = SqliteVectorStore(str(tmp_path / "vectors.db"), fake_embeddings)
    s.load()
    fake_embeddings.embed_calls.clear()
    yield s
    if request.param == "sqlite" and s._conn is not None:
        s.unload()
