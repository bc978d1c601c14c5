"""
Tests for the langchain-backed text splitters.
"""

import pytest

from pocketrag.rag.splitters import (
    CharacterTextSplitter,
    LatexTextSplitter,
    MarkdownTextSplitter,
    RecursiveCharacterTextSplitter,
)


def test_short_text_is_one_chunk():
    splitter = RecursiveCharacterTextSplitter(chunk_size=500, chunk_overlap=100)
    assert splitter.split_text("A short document.") == ["A short document."]


def test_recursive_splitter_respects_chunk_size():
    text = " ".join(f"word{i}" for i in range(300))
    splitter = RecursiveCharacterTextSplitter(chunk_size=100, chunk_overlap=20)

    chunks = splitter.split_text(text)

    assert len(chunks) > 1
    assert all(len(chunk) <= 100 for chunk in chunks)
    assert chunks[0].startswith("word0")
    assert chunks[-1].endswith("word299")


def test_character_splitter_uses_paragraphs():
    text = "first paragraph\n\nsecond paragraph"
    chunks = CharacterTextSplitter(chunk_size=20, chunk_overlap=0).split_text(text)
    assert chunks == ["first paragraph", "second paragraph"]


@pytest.mark.parametrize("splitter_class", [MarkdownTextSplitter, LatexTextSplitter])
def test_format_splitters_return_chunks(splitter_class):
    splitter = splitter_class(chunk_size=50, chunk_overlap=0)
    chunks = splitter.split_text("Some text that is long enough to need more than one chunk here.")
    assert chunks
    assert all(len(chunk) <= 50 for chunk in chunks)


def test_repr_shows_configuration():
    assert repr(RecursiveCharacterTextSplitter(chunk_size=500, chunk_overlap=100)) == (
        "RecursiveCharacterTextSplitter(chunk_size=500, chunk_overlap=100)"
    )
