"""
Runtime configuration, read from environment variables.
Factory functions build the configured collaborators.
"""

import os

# Vector store configuration
VECTOR_PROVIDER = os.getenv("VECTOR_PROVIDER", "memory")  # memory|sqlite
DB_PATH = os.getenv("DB_PATH", "./data/vectors.db")
INDEX_MAX_NEIGHBORS = int(os.getenv("INDEX_MAX_NEIGHBORS", "100"))
INDEX_COMPRESS_NEIGHBORS = os.getenv("INDEX_COMPRESS_NEIGHBORS", "float8")  # float1bit|float8|float16|floatb16|float32
INDEX_APPROXIMATE = os.getenv("INDEX_APPROXIMATE", "false").lower() == "true"

# Embedding configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|sentence-transformers|ollama
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "all-mpnet-base-v2")
EMBED_DIM = int(os.getenv("EMBED_DIM", "384"))  # hash provider only

# Generative model configuration
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "mock")  # mock|ollama
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.2:latest")
OLLAMA_HOST = os.getenv("OLLAMA_HOST")  # None uses the client default

# Ingestion and retrieval defaults
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "500"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "100"))
DEFAULT_N_RESULTS = int(os.getenv("DEFAULT_N_RESULTS", "3"))

VERSION = "0.1.0"


def get_embedding_provider():
    """Get configured embedding provider implementation."""
    if EMBED_PROVIDER == "sentence-transformers":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(EMBED_MODEL_NAME)
    elif EMBED_PROVIDER == "ollama":
        from ..vector.embeddings import OllamaEmbedding
        return OllamaEmbedding(EMBED_MODEL_NAME, host=OLLAMA_HOST)
    else:
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(EMBED_DIM)


def get_vector_store(embeddings=None):
    """Get configured vector store implementation bound to an embedding provider."""
    embeddings = embeddings if embeddings is not None else get_embedding_provider()

    if VECTOR_PROVIDER == "sqlite":
        from ..vector.sqlite_store import SqliteVectorStore
        return SqliteVectorStore(
            DB_PATH,
            embeddings,
            max_neighbors=INDEX_MAX_NEIGHBORS,
            compress_neighbors=INDEX_COMPRESS_NEIGHBORS,
            approximate=INDEX_APPROXIMATE,
        )
    else:
        from ..vector.index import SimpleInMemoryVectorStore
        return SimpleInMemoryVectorStore(embeddings)


def get_llm():
    """Get configured generative model."""
    if LLM_PROVIDER == "ollama":
        from ..rag.llm import OllamaLLM
        return OllamaLLM(OLLAMA_MODEL, host=OLLAMA_HOST)
    else:
        from ..rag.llm import MockLLM
        return MockLLM()


def get_text_splitter():
    """Get the default recursive text splitter."""
    from ..rag.splitters import RecursiveCharacterTextSplitter
    return RecursiveCharacterTextSplitter(chunk_size=CHUNK_SIZE, chunk_overlap=CHUNK_OVERLAP)


def build_rag():
    """Build an (unloaded) RAG orchestrator from the environment."""
    from ..rag.orchestrator import RAG
    return RAG(vector_store=get_vector_store(), llm=get_llm(), text_splitter=get_text_splitter())


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if VECTOR_PROVIDER not in ["memory", "sqlite"]:
        issues.append(f"Invalid VECTOR_PROVIDER: {VECTOR_PROVIDER}")

    if EMBED_PROVIDER not in ["hash", "sentence-transformers", "ollama"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if LLM_PROVIDER not in ["mock", "ollama"]:
        issues.append(f"Invalid LLM_PROVIDER: {LLM_PROVIDER}")

    if EMBED_DIM < 1:
        issues.append("EMBED_DIM must be >= 1")

    if CHUNK_SIZE < 1:
        issues.append("CHUNK_SIZE must be >= 1")

    if not 0 <= CHUNK_OVERLAP < CHUNK_SIZE:
        issues.append("CHUNK_OVERLAP must be >= 0 and smaller than CHUNK_SIZE")

    if INDEX_MAX_NEIGHBORS < 1:
        issues.append("INDEX_MAX_NEIGHBORS must be >= 1")

    if INDEX_COMPRESS_NEIGHBORS not in ["float1bit", "float8", "float16", "floatb16", "float32"]:
        issues.append(f"Invalid INDEX_COMPRESS_NEIGHBORS: {INDEX_COMPRESS_NEIGHBORS}")

    if DEFAULT_N_RESULTS < 1:
        issues.append("DEFAULT_N_RESULTS must be >= 1")

    return issues
