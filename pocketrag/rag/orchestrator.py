"""
Retrieval-augmented generation orchestrator.

RAG composes a vector store and a generative model:

1. Ingestion: split a document, embed the chunks and store them as one batch
2. Retrieval: embed the question and rank stored chunks by similarity
3. Generation: append a context-bearing prompt and stream the model's answer

Within one generate() call retrieval strictly precedes prompt assembly, which
strictly precedes generation. Store operations have no cancellation; only the
model can be interrupted.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from ..core.config import CHUNK_OVERLAP, CHUNK_SIZE, DEFAULT_N_RESULTS
from ..core.errors import EmptyInput, MissingContent, ShapeMismatch
from ..util.logging import logger
from ..vector.index import IVectorStore, RecordPredicate, ResultPredicate
from ..vector.types import QueryResult
from .llm import BaseLLM, TokenCallback
from .messages import Message, MessageInput, normalize_messages
from .splitters import RecursiveCharacterTextSplitter, TextSplitter

QuestionGenerator = Callable[[List[Message]], str]
PromptGenerator = Callable[[List[Message], List[QueryResult]], str]
MetadataGenerator = Callable[[List[str]], List[Dict[str, Any]]]


def default_question_generator(messages: List[Message]) -> str:
    """Search with the content of the last message."""
    return messages[-1].content if messages else ""


def default_prompt_generator(messages: List[Message], retrieved: List[QueryResult]) -> str:
    """Fixed template: the last message followed by the retrieved documents."""
    last = messages[-1].content if messages else ""
    context = "\n".join(r.document or "" for r in retrieved)
    return f"Message: {last}\nContext: {context}"


class RAG:
    """
    Coordinates a vector store and a generative model.

    >>> rag = RAG(vector_store=store, llm=llm).load()
    >>> rag.split_add_document(long_text)
    >>> answer = rag.generate("What is RAG?", callback=print)

    Token ordering: during generate() every token is passed to the caller's
    callback first and then appended to ``self.response``.
    """

    def __init__(self, vector_store: IVectorStore, llm: BaseLLM, text_splitter: Optional[TextSplitter] = None):
        self.vector_store = vector_store
        self.llm = llm
        self.text_splitter = text_splitter
        self.response = ""

    def load(self) -> "RAG":
        """Load the vector store, then the model."""
        self.vector_store.load()
        self.llm.load()
        logger.log_rag_operation("load", {"model": self.llm.model_name})
        return self

    def unload(self) -> None:
        """Unload the vector store and the model."""
        self.vector_store.unload()
        self.llm.unload()
        logger.log_rag_operation("unload", {"model": self.llm.model_name})

    # Ingestion

    def split_add_document(
        self,
        document: str,
        metadata_generator: Optional[MetadataGenerator] = None,
        text_splitter: Optional[TextSplitter] = None,
    ) -> List[str]:
        """
        Split a document into chunks and add them to the vector store as one batch.

        Args:
            document: Text to split and ingest.
            metadata_generator: Maps the chunk list to one metadata dict per chunk.
            text_splitter: Overrides the instance splitter; the fallback is a
                recursive splitter with chunk size 500 and overlap 100.

        Returns:
            The generated chunk ids, in chunk order.

        Raises:
            ShapeMismatch: metadata_generator returned the wrong number of items.
                Nothing is stored in that case.
        """
        splitter = text_splitter or self.text_splitter or RecursiveCharacterTextSplitter(
            chunk_size=CHUNK_SIZE, chunk_overlap=CHUNK_OVERLAP
        )
        chunks = splitter.split_text(document)

        metadatas = None
        if metadata_generator is not None:
            metadatas = metadata_generator(chunks)
            if len(metadatas) != len(chunks):
                raise ShapeMismatch("metadata_generator", expected=len(chunks), received=len(metadatas))

        # The store assigns the ids, drawing on its own random source
        ids = self.vector_store.add(documents=chunks, metadatas=metadatas)
        logger.log_rag_operation("split_add_document", {"chunks": len(chunks), "document_length": len(document)})
        return ids

    def add_document(self, documents, ids=None, embeddings=None, metadatas=None) -> List[str]:
        return self.vector_store.add(documents=documents, ids=ids, embeddings=embeddings, metadatas=metadatas)

    def update_document(self, ids, embeddings=None, documents=None, metadatas=None) -> None:
        self.vector_store.update(ids=ids, embeddings=embeddings, documents=documents, metadatas=metadatas)

    def delete_document(self, ids: Optional[Sequence[str]] = None, predicate: Optional[RecordPredicate] = None) -> None:
        self.vector_store.delete(ids=ids, predicate=predicate)

    def query(self, query_texts=None, query_embeddings=None, n_results=None, ids=None, predicate=None) -> List[List[QueryResult]]:
        return self.vector_store.query(
            query_texts=query_texts,
            query_embeddings=query_embeddings,
            n_results=n_results,
            ids=ids,
            predicate=predicate,
        )

    # Generation

    def _prepare_messages(
        self,
        input: MessageInput,
        augmented_generation: bool,
        n_results: int,
        predicate: Optional[ResultPredicate],
        question_generator: Optional[QuestionGenerator],
        prompt_generator: Optional[PromptGenerator],
    ) -> List[Message]:
        """Validate the input and, when augmenting, retrieve context and append the prompt."""
        messages = normalize_messages(input)
        if not messages:
            raise EmptyInput("No messages provided")

        if not augmented_generation:
            return messages

        if not messages[-1].content:
            raise MissingContent("Last message has no content")

        question = (question_generator or default_question_generator)(messages)
        retrieved = self.vector_store.query(query_texts=[question], n_results=n_results, predicate=predicate)
        hits = retrieved[0] if retrieved else []
        logger.log_rag_operation("retrieve", {"question": question, "hits": len(hits)})

        prompt = (prompt_generator or default_prompt_generator)(messages, hits)
        return messages + [Message(role="user", content=prompt)]

    def stream(
        self,
        input: MessageInput,
        augmented_generation: bool = True,
        n_results: int = DEFAULT_N_RESULTS,
        predicate: Optional[ResultPredicate] = None,
        question_generator: Optional[QuestionGenerator] = None,
        prompt_generator: Optional[PromptGenerator] = None,
    ) -> Iterator[str]:
        """
        Validate, retrieve and assemble the prompt now, then return the
        model's ordered token stream.
        """
        messages = self._prepare_messages(
            input, augmented_generation, n_results, predicate, question_generator, prompt_generator
        )
        return self.llm.stream(messages)

    def generate(
        self,
        input: MessageInput,
        augmented_generation: bool = True,
        n_results: int = DEFAULT_N_RESULTS,
        predicate: Optional[ResultPredicate] = None,
        question_generator: Optional[QuestionGenerator] = None,
        prompt_generator: Optional[PromptGenerator] = None,
        callback: Optional[TokenCallback] = None,
    ) -> str:
        """
        Generate an answer, optionally grounded in retrieved documents.

        Args:
            input: A bare string (one user message) or a list of messages.
            augmented_generation: Retrieve context before generating (default True).
            n_results: Number of documents to retrieve.
            predicate: Filter applied to retrieved results.
            question_generator: Maps the messages to a search query.
            prompt_generator: Builds the augmented prompt from messages and results.
            callback: Receives each token as it is produced.

        Returns:
            The model's final text.
        """
        messages = self._prepare_messages(
            input, augmented_generation, n_results, predicate, question_generator, prompt_generator
        )
        self.response = ""

        def on_token(token: str) -> None:
            if callback is not None:
                callback(token)
            self.response += token

        text = self.llm.generate(messages, on_token)
        logger.log_rag_operation(
            "generate",
            {"augmented": augmented_generation, "messages": len(messages), "response_length": len(text)},
        )
        return text

    def interrupt(self) -> None:
        """Forward a best-effort cancellation request to the model."""
        self.llm.interrupt()
