"""RAG pipeline: upload, question answering, session listing, deletion and clause analysis."""
import json
import logging
import uuid
from typing import Any, List, Optional

from errors import InvalidInput, NotFound, IndexUnavailable
from models.chunk import IndexedChunk
from models.results import (
    AnswerResult,
    Clause,
    ClauseAnalysis,
    DeleteResult,
    RetrievalInfo,
    UploadResult,
)
from models.session import Session
from services.chunking_engine import ChunkingEngine
from services.context_assembler import ContextAssembler
from services.embedding_model import EmbeddingModel
from services.llm_client import GenerationParams, LLMClient
from services.reranker import HybridReranker
from services.retrieval_engine import RetrievalEngine
from services.session_registry import SessionRegistry
from services.vector_store import VectorIndex

logger = logging.getLogger(__name__)

INSUFFICIENT_CONTEXT_ANSWER = "I cannot find relevant information in the document(s) to answer this question."
ANALYSIS_PARSE_ERROR = "Could not parse legal analysis"
ANALYSIS_SAMPLE_CHUNKS = 5


class RAGPipeline:
    """Wires chunking, embedding, retrieval, reranking and generation together."""

    def __init__(
        self,
        vector_store: VectorIndex,
        embedding_model: EmbeddingModel,
        llm_client: LLMClient,
        chunking_engine: Optional[ChunkingEngine] = None,
        retrieval_engine: Optional[RetrievalEngine] = None,
        reranker: Optional[HybridReranker] = None,
        context_assembler: Optional[ContextAssembler] = None,
        generation_params: Optional[GenerationParams] = None
    ):
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.llm_client = llm_client
        self.chunking_engine = chunking_engine or ChunkingEngine()
        self.retrieval_engine = retrieval_engine or RetrievalEngine(vector_store)
        self.reranker = reranker or HybridReranker()
        self.context_assembler = context_assembler or ContextAssembler()
        self.generation_params = generation_params or GenerationParams()
        self.session_registry = SessionRegistry(vector_store)

    def process_upload(
        self,
        document_text: str,
        filename: str,
        session_id: Optional[str] = None
    ) -> UploadResult:
        """
        Chunk, embed and index one document.

        The whole chunk set is written with a single add. If that write
        fails, any rows that did land are removed again so the document is
        never left half-indexed.

        Args:
            document_text: Extracted document text
            filename: Original filename shown in sources
            session_id: New id to index under (generated when omitted)

        Returns:
            UploadResult; chunk_count is 0 when the document has no text

        Raises:
            InvalidInput: If filename is missing or session_id is already indexed
            EmbeddingUnavailable: If embedding fails
            IndexUnavailable: If the index write fails
        """
        if not filename or not filename.strip():
            raise InvalidInput("No file uploaded.")

        if session_id and self.session_registry.exists(session_id):
            raise InvalidInput("Session already exists.", details={"session_id": session_id})

        session_id = session_id or uuid.uuid4().hex
        chunks = self.chunking_engine.chunk(document_text or "")

        if not chunks:
            logger.warning(f"No content extracted from {filename}; nothing indexed")
            return UploadResult(session_id=session_id, filename=filename, chunk_count=0)

        logger.info(f"Embedding {len(chunks)} chunks for {filename}")
        embeddings = self.embedding_model.embed_many([chunk.text for chunk in chunks])

        indexed = [
            IndexedChunk(chunk=chunk, session_id=session_id, filename=filename, embedding=embedding)
            for chunk, embedding in zip(chunks, embeddings)
        ]
        ids = [item.chunk_id for item in indexed]

        try:
            self.vector_store.add(
                ids=ids,
                vectors=[item.embedding for item in indexed],
                documents=[item.chunk.text for item in indexed],
                metadatas=[item.metadata() for item in indexed]
            )
        except IndexUnavailable:
            self._rollback(ids)
            raise

        logger.info(f"Stored {len(indexed)} chunks for {filename} (session {session_id})")
        return UploadResult(session_id=session_id, filename=filename, chunk_count=len(indexed))

    def _rollback(self, ids: List[str]) -> None:
        try:
            self.vector_store.delete(ids)
            logger.warning(f"Rolled back partial write of {len(ids)} chunks")
        except IndexUnavailable as e:
            logger.error(
                f"Rollback failed; session chunks {ids[0]}..{ids[-1]} must be re-uploaded: {e}",
                exc_info=True
            )

    def answer_question(self, question: str, session_id: Optional[str] = None) -> AnswerResult:
        """
        Answer a question from the indexed documents.

        Args:
            question: Natural-language question
            session_id: Restrict retrieval to this document

        Returns:
            AnswerResult. When nothing relevant is retrieved the answer is a
            fixed "cannot find" message with no sources.

        Raises:
            InvalidInput: If the question is missing
            NotFound: If session_id is given but unknown
        """
        if not question or not question.strip():
            raise InvalidInput("Missing question.")

        if session_id and not self.session_registry.exists(session_id):
            raise NotFound("Session not found", details={"session_id": session_id})

        logger.info(f"Question: {question[:100]}")
        settings = self._settings()

        query_vector = self.embedding_model.embed_text(question)
        candidates = self.retrieval_engine.retrieve(query_vector, scope_session_id=session_id)
        reranked = self.reranker.rerank(question, candidates)

        if not reranked:
            logger.info("No usable context retrieved")
            return AnswerResult(
                answer=INSUFFICIENT_CONTEXT_ANSWER,
                sources=[],
                retrieval_info=RetrievalInfo(
                    initial_retrieved=len(candidates),
                    after_reranking=0,
                    documents_searched=0,
                    settings=settings
                )
            )

        context = self.context_assembler.assemble(reranked)
        prompt = LLMClient.build_prompt(question, context.context_text)
        response = self.llm_client.generate(prompt, self.generation_params)

        return AnswerResult(
            answer=response.text,
            sources=context.chunks,
            retrieval_info=RetrievalInfo(
                initial_retrieved=len(candidates),
                after_reranking=len(reranked),
                documents_searched=context.document_count,
                settings=settings
            )
        )

    def _settings(self) -> dict:
        return {
            "retrieval_count": self.retrieval_engine.top_n,
            "rerank_count": self.reranker.top_k,
            "temperature": self.generation_params.temperature,
            "top_p": self.generation_params.top_p,
            "top_k": self.generation_params.top_k,
            "strategy": "hybrid",
        }

    def list_sessions(self) -> List[Session]:
        return self.session_registry.list_sessions()

    def delete_session(self, session_id: str) -> DeleteResult:
        deleted = self.session_registry.delete_session(session_id)
        return DeleteResult(session_id=session_id, deleted_count=deleted)

    def analyze_session(self, session_id: str) -> ClauseAnalysis:
        """
        Ask the generator to identify key clauses in the start of a document.

        Raises:
            InvalidInput: If session_id is missing
            NotFound: If the session has no chunks
        """
        if not session_id:
            raise InvalidInput("Missing session ID.")

        records = self.vector_store.get(where={"session_id": session_id})
        if not records:
            raise NotFound("Document not found.", details={"session_id": session_id})

        records.sort(key=lambda record: record["metadata"].get("position", 0))
        sample_text = "\n\n".join(record["text"] for record in records[:ANALYSIS_SAMPLE_CHUNKS])

        logger.info(f"Analyzing document for legal clauses: {session_id}")
        response = self.llm_client.generate(LLMClient.build_analysis_prompt(sample_text))

        clauses = parse_clauses(response.text)
        if clauses is None:
            logger.warning(f"Could not parse clause analysis for {session_id}")
            return ClauseAnalysis(session_id=session_id, clauses=[], error=ANALYSIS_PARSE_ERROR)
        return ClauseAnalysis(session_id=session_id, clauses=clauses)


def parse_clauses(text: str) -> Optional[List[Clause]]:
    """
    Parse the generator's JSON clause list.

    Models often wrap JSON in prose or code fences, so the outermost
    ``[...]`` span is parsed.

    Returns:
        Parsed clauses, or None when no valid JSON array is present
    """
    start, end = text.find("["), text.rfind("]")
    if start == -1 or end <= start:
        return None

    try:
        items: Any = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None

    if not isinstance(items, list):
        return None

    return [
        Clause(
            clause_name=str(item.get("clauseName", "")),
            clause_type=str(item.get("clauseType", "")),
            risk_level=str(item.get("riskLevel", "")).lower(),
            description=str(item.get("description", ""))
        )
        for item in items
        if isinstance(item, dict)
    ]
