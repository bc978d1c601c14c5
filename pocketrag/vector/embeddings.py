"""
Embedding providers.
Every provider turns text into a fixed-dimension vector and has an explicit
load/unload lifecycle.
"""

from abc import ABC, abstractmethod
import hashlib
from typing import Optional

from ..util.logging import logger


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    def load(self) -> "IEmbeddingProvider":
        """Warm the provider up. Safe to call more than once."""
        return self

    def unload(self) -> None:
        """Release any model resources held by the provider."""
        pass

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    The same text always maps to the same vector, so a document queried by its
    own text ranks first with similarity 1.0. No model download is needed.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed(self, text: str) -> list[float]:
        """Generate deterministic embedding vector using a hash function."""
        vector = []
        block = 0
        while len(vector) < self.dimension:
            hex_dig = hashlib.sha256(f"{block}:{text}".encode()).hexdigest()
            for i in range(0, len(hex_dig), 8):
                value = int(hex_dig[i:i + 8], 16)
                # Map to [-1, 1] for cosine similarity
                vector.append((value / (2 ** 32)) * 2 - 1)
            block += 1

        return vector[:self.dimension]

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    The model is instantiated on load() (or lazily on first use) and dropped
    on unload().
    """

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def load(self) -> "SentenceTransformerEmbedding":
        if self._model is None:
            _ = self.model
            logger.log_provider_operation("sentence_transformers", "load", {"model": self.model_name})
        return self

    def unload(self) -> None:
        self._model = None
        logger.log_provider_operation("sentence_transformers", "unload", {"model": self.model_name})

    def embed(self, text: str) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            # Get dimension by encoding a dummy string
            self._dimension = len(self.embed("test"))
        return self._dimension


class OllamaEmbedding(IEmbeddingProvider):
    """Embedding provider backed by a local Ollama server."""

    def __init__(self, model_name: str = "nomic-embed-text", host: Optional[str] = None):
        self.model_name = model_name
        self.host = host
        self._client = None
        self._dimension = None

    @property
    def client(self):
        if self._client is None:
            import ollama
            self._client = ollama.Client(host=self.host)
        return self._client

    def load(self) -> "OllamaEmbedding":
        # Pulls the model into memory on the server side
        self.embed("warmup")
        logger.log_provider_operation("ollama", "load", {"model": self.model_name})
        return self

    def unload(self) -> None:
        self._client = None
        logger.log_provider_operation("ollama", "unload", {"model": self.model_name})

    def embed(self, text: str) -> list[float]:
        response = self.client.embed(model=self.model_name, input=text)
        return list(response["embeddings"][0])

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = len(self.embed("test"))
        return self._dimension
