"""
Retrieval-augmented generation: messages, models, splitters and the orchestrator.
"""

from .messages import Message, normalize_messages
from .llm import BaseLLM, OllamaLLM, MockLLM
from .splitters import (
    TextSplitter,
    CharacterTextSplitter,
    RecursiveCharacterTextSplitter,
    MarkdownTextSplitter,
    LatexTextSplitter,
)
from .orchestrator import RAG, default_prompt_generator, default_question_generator

__all__ = [
    'Message',
    'normalize_messages',
    'BaseLLM',
    'OllamaLLM',
    'MockLLM',
    'TextSplitter',
    'CharacterTextSplitter',
    'RecursiveCharacterTextSplitter',
    'MarkdownTextSplitter',
    'LatexTextSplitter',
    'RAG',
    'default_prompt_generator',
    'default_question_generator',
]
