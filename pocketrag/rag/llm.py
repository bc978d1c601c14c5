"""
Generative models.

A model streams tokens for a message history. stream() is the single ordered
token source; generate() consumes it, forwards every token to an optional
callback and returns the aggregated text.
"""

from abc import ABC, abstractmethod
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from ..util.logging import logger
from .messages import Message

TokenCallback = Callable[[str], None]


class BaseLLM(ABC):
    """
    Abstract base class for generative models.
    Subclasses implement _stream_tokens(); interruption is handled here.
    """

    def __init__(self, model_name: str):
        self.model_name = model_name
        self._interrupted = threading.Event()

    def load(self) -> "BaseLLM":
        return self

    def unload(self) -> None:
        pass

    def interrupt(self) -> None:
        """Ask the running generation to stop. Best effort: the model may emit a few more tokens."""
        self._interrupted.set()
        logger.log_provider_operation(type(self).__name__, "interrupt", {"model": self.model_name})

    @abstractmethod
    def _stream_tokens(self, messages: List[Message]) -> Iterator[str]:
        pass

    def stream(self, messages: Sequence[Message]) -> Iterator[str]:
        """Yield tokens in production order until done or interrupted."""
        self._interrupted.clear()
        tokens = self._stream_tokens(list(messages))
        try:
            for token in tokens:
                if self._interrupted.is_set():
                    break
                yield token
        finally:
            close = getattr(tokens, "close", None)
            if close is not None:
                close()

    def generate(self, messages: Sequence[Message], callback: Optional[TokenCallback] = None) -> str:
        """Run a generation to completion and return the full text."""
        parts = []
        for token in self.stream(messages):
            if callback is not None:
                callback(token)
            parts.append(token)
        return "".join(parts)


class OllamaLLM(BaseLLM):
    """
    Model served by a local Ollama instance.
    load() pulls the model into server memory; unload() asks the server to evict it.
    """

    def __init__(self, model_name: str, host: Optional[str] = None, options: Optional[Dict[str, Any]] = None,
                 keep_alive: str = "5m"):
        super().__init__(model_name)
        self.host = host
        self.options = options or {'temperature': 0.7, 'top_p': 0.9}
        self.keep_alive = keep_alive
        self._client = None

    @property
    def client(self):
        if self._client is None:
            import ollama
            self._client = ollama.Client(host=self.host)
        return self._client

    def load(self) -> "OllamaLLM":
        # An empty prompt loads the model without generating
        self.client.generate(model=self.model_name, prompt="", keep_alive=self.keep_alive)
        logger.log_provider_operation("ollama", "load", {"model": self.model_name})
        return self

    def unload(self) -> None:
        self.client.generate(model=self.model_name, prompt="", keep_alive=0)
        logger.log_provider_operation("ollama", "unload", {"model": self.model_name})

    def _stream_tokens(self, messages: List[Message]) -> Iterator[str]:
        chunks = self.client.chat(
            model=self.model_name,
            messages=[m.to_dict() for m in messages],
            stream=True,
            options=self.options,
            keep_alive=self.keep_alive,
        )
        for chunk in chunks:
            content = chunk["message"]["content"]
            if content:
                yield content


class MockLLM(BaseLLM):
    """
    Offline model for development and tests.
    Replies by echoing the last message back, one word per token.
    """

    def __init__(self, model_name: str = "mock-model", prefix: str = "Echo: "):
        super().__init__(model_name)
        self.prefix = prefix
        self.history: List[List[Message]] = []

    def _stream_tokens(self, messages: List[Message]) -> Iterator[str]:
        self.history.append(messages)
        last = messages[-1].content if messages else ""
        words = (self.prefix + last).split(" ")
        for i, word in enumerate(words):
            yield word if i == 0 else " " + word
