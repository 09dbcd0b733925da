"""Main entry point for the LegalLens RAG API."""
import logging
import time
from typing import List, Optional
from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from config import PORT, CORS_ORIGINS, LOG_LEVEL, LOG_FORMAT
from errors import (
    RAGError,
    InvalidInput,
    NotFound,
    DataIntegrityViolation,
    EmbeddingUnavailable,
    GenerationUnavailable,
    IndexUnavailable,
)
from logger import setup_logging
from models.api import (
    AskRequest,
    AskResponse,
    AnalyzeRequest,
    AnalyzeResponse,
    ClauseModel,
    DeleteResponse,
    RetrievalInfoModel,
    SessionModel,
    Source,
    UploadResponse,
)
from services.document_loader import DocumentLoader
from services.embedding_model import EmbeddingModel
from services.llm_client import LLMClient
from services.rag_pipeline import RAGPipeline
from services.vector_store import create_vector_store

setup_logging(LOG_LEVEL, LOG_FORMAT)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="LegalLens RAG",
    description="Question answering over uploaded legal documents",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

STATUS_CODES = {
    InvalidInput: 400,
    NotFound: 404,
    DataIntegrityViolation: 409,
    EmbeddingUnavailable: 503,
    GenerationUnavailable: 503,
    IndexUnavailable: 503,
}

# Initialize services (will be done on startup)
pipeline: RAGPipeline = None
document_loader: DocumentLoader = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup. An unreachable index is fatal."""
    global pipeline, document_loader

    logger.info("Initializing LegalLens RAG services...")

    try:
        vector_store = create_vector_store()
        chunk_total = vector_store.count()
        logger.info(f"Vector store ready with {chunk_total} chunks")

        embedding_model = EmbeddingModel()
        embedding_model.warmup()

        llm_client = LLMClient()
        pipeline = RAGPipeline(vector_store, embedding_model, llm_client)
        document_loader = DocumentLoader()

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


def _http_error(e: RAGError) -> HTTPException:
    status_code = next(
        (code for error_type, code in STATUS_CODES.items() if isinstance(e, error_type)),
        500
    )
    log = logger.warning if status_code < 500 else logger.error
    log(f"{e.error.code}: {e.error.message}", extra={"error_code": e.error.code})
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": e.error.code,
                "message": e.error.message,
                "details": e.error.details,
                "retryable": e.error.retryable
            }
        }
    )


def _unexpected(e: Exception, action: str) -> HTTPException:
    logger.error(f"Unexpected error during {action}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "LegalLens RAG API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "legallens-rag",
        "version": "1.0.0"
    }


@app.post("/upload", response_model=UploadResponse)
def upload_endpoint(file: Optional[UploadFile] = File(None)) -> UploadResponse:
    """Extract, chunk, embed and index an uploaded PDF, DOCX or TXT file."""
    start_time = time.time()

    try:
        if file is None or not file.filename:
            raise InvalidInput("No file uploaded.")

        logger.info(f"File received: {file.filename}")
        document = document_loader.extract_text(file.file.read(), file.filename)
        result = pipeline.process_upload(document.text, document.filename)

        message = "File uploaded, processed, and stored."
        if result.chunk_count == 0:
            message = "File uploaded but no text could be extracted."

        logger.info(f"Upload processed in {int((time.time() - start_time) * 1000)}ms")
        return UploadResponse(
            message=message,
            filename=result.filename,
            chunk_count=result.chunk_count,
            session_id=result.session_id
        )
    except RAGError as e:
        raise _http_error(e)
    except Exception as e:
        raise _unexpected(e, "upload")


@app.post("/ask", response_model=AskResponse)
def ask_endpoint(request: AskRequest) -> AskResponse:
    """Answer a question from one document or from all documents."""
    start_time = time.time()

    try:
        result = pipeline.answer_question(request.question, request.session_id)

        sources = [
            Source(
                text=chunk.text,
                filename=chunk.filename,
                rank=chunk.rank,
                scores=chunk.scores.as_dict()
            )
            for chunk in result.sources
        ]
        info = result.retrieval_info

        logger.info(f"Question answered in {int((time.time() - start_time) * 1000)}ms")
        return AskResponse(
            answer=result.answer,
            sources=sources,
            retrieval_info=RetrievalInfoModel(
                initial_retrieved=info.initial_retrieved,
                after_reranking=info.after_reranking,
                documents_searched=info.documents_searched,
                settings=info.settings
            )
        )
    except RAGError as e:
        raise _http_error(e)
    except Exception as e:
        raise _unexpected(e, "ask")


@app.get("/sessions", response_model=List[SessionModel])
def sessions_endpoint() -> List[SessionModel]:
    """List uploaded documents."""
    try:
        return [
            SessionModel(
                session_id=session.session_id,
                filename=session.filename,
                chunk_count=session.chunk_count
            )
            for session in pipeline.list_sessions()
        ]
    except RAGError as e:
        raise _http_error(e)
    except Exception as e:
        raise _unexpected(e, "session listing")


@app.post("/analyze", response_model=AnalyzeResponse)
def analyze_endpoint(request: AnalyzeRequest) -> AnalyzeResponse:
    """Identify key legal clauses in a document."""
    try:
        analysis = pipeline.analyze_session(request.session_id)
        return AnalyzeResponse(
            clauses=[
                ClauseModel(
                    clause_name=clause.clause_name,
                    clause_type=clause.clause_type,
                    risk_level=clause.risk_level,
                    description=clause.description
                )
                for clause in analysis.clauses
            ],
            error=analysis.error
        )
    except RAGError as e:
        raise _http_error(e)
    except Exception as e:
        raise _unexpected(e, "analysis")


@app.delete("/session/{session_id}", response_model=DeleteResponse)
def delete_session_endpoint(session_id: str) -> DeleteResponse:
    """Delete every chunk of a document."""
    try:
        result = pipeline.delete_session(session_id)
        return DeleteResponse(
            message=f"Deleted {result.deleted_count} chunks for session {session_id}",
            deleted_count=result.deleted_count
        )
    except RAGError as e:
        raise _http_error(e)
    except Exception as e:
        raise _unexpected(e, "delete")


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting LegalLens RAG API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
