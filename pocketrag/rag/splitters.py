"""
Text splitters used to chunk documents before ingestion.
Thin wrappers around langchain-text-splitters exposing split_text only.
"""

from typing import List, Protocol

from langchain_text_splitters import (
    CharacterTextSplitter as LangchainCharacterTextSplitter,
    LatexTextSplitter as LangchainLatexTextSplitter,
    MarkdownTextSplitter as LangchainMarkdownTextSplitter,
    RecursiveCharacterTextSplitter as LangchainRecursiveCharacterTextSplitter,
)


class TextSplitter(Protocol):
    """Anything that can split text into an ordered list of chunks."""

    def split_text(self, text: str) -> List[str]:
        ...


class _LangchainSplitter:
    splitter_class = None

    def __init__(self, chunk_size: int = 500, chunk_overlap: int = 100):
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self._splitter = self.splitter_class(chunk_size=chunk_size, chunk_overlap=chunk_overlap)

    def split_text(self, text: str) -> List[str]:
        return self._splitter.split_text(text)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(chunk_size={self.chunk_size}, chunk_overlap={self.chunk_overlap})"


class CharacterTextSplitter(_LangchainSplitter):
    """Splits on a single separator ("\\n\\n") and merges up to chunk_size characters."""
    splitter_class = LangchainCharacterTextSplitter


class RecursiveCharacterTextSplitter(_LangchainSplitter):
    """Tries paragraph, line, word and character boundaries in turn."""
    splitter_class = LangchainRecursiveCharacterTextSplitter


class MarkdownTextSplitter(_LangchainSplitter):
    """Prefers Markdown heading and block boundaries."""
    splitter_class = LangchainMarkdownTextSplitter


class LatexTextSplitter(_LangchainSplitter):
    """Prefers LaTeX section and environment boundaries."""
    splitter_class = LangchainLatexTextSplitter
