"""
Document Ingestion Script for LegalLens RAG.

This script:
1. Connects to the configured vector store
2. Extracts text from every PDF/DOCX/TXT file in a directory
3. Chunks, embeds and indexes each file as its own session

Usage:
    python ingest_documents.py path/to/contracts [--clear]
"""
import argparse
import sys
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from errors import RAGError
from services.document_loader import DocumentLoader, SUPPORTED_EXTENSIONS
from services.embedding_model import EmbeddingModel
from services.llm_client import LLMClient
from services.rag_pipeline import RAGPipeline
from services.vector_store import create_vector_store

logger = logging.getLogger(__name__)


def main():
    """Main ingestion process."""
    parser = argparse.ArgumentParser(description="Index a directory of documents")
    parser.add_argument("directory", help="Directory containing PDF, DOCX or TXT files")
    parser.add_argument("--clear", action="store_true", help="Delete all existing sessions first")
    args = parser.parse_args()

    docs_path = Path(args.directory)
    if not docs_path.is_dir():
        logger.error(f"Documents directory not found: {docs_path}")
        sys.exit(1)

    try:
        logger.info("=" * 60)
        logger.info("Starting LegalLens Document Ingestion")
        logger.info("=" * 60)

        vector_store = create_vector_store()
        embedding_model = EmbeddingModel()
        pipeline = RAGPipeline(vector_store, embedding_model, LLMClient())
        loader = DocumentLoader()

        if args.clear:
            for session in pipeline.list_sessions():
                pipeline.delete_session(session.session_id)
                logger.info(f"Removed {session.filename} ({session.chunk_count} chunks)")

        embedding_model.warmup()

        files = sorted(p for p in docs_path.iterdir() if p.suffix.lower() in SUPPORTED_EXTENSIONS)
        logger.info(f"Found {len(files)} documents in {docs_path}")

        total_chunks = 0
        failed = []
        for path in files:
            try:
                document = loader.extract_text(path.read_bytes(), path.name)
                result = pipeline.process_upload(document.text, document.filename)
                total_chunks += result.chunk_count
                logger.info(f"  ✓ {path.name}: {result.chunk_count} chunks (session {result.session_id})")
            except RAGError as e:
                # Skip this file and continue with the rest
                failed.append(path.name)
                logger.error(f"  ✗ {path.name}: {e.error.code} {e.error.message}")

        logger.info("=" * 60)
        logger.info("INGESTION COMPLETE!")
        logger.info(f"Documents processed: {len(files) - len(failed)}/{len(files)}")
        logger.info(f"Total chunks indexed: {total_chunks}")
        logger.info("=" * 60)

        if failed:
            sys.exit(1)

    except KeyboardInterrupt:
        logger.warning("\nIngestion interrupted by user")
        sys.exit(1)
    except RAGError as e:
        logger.error(f"\nIngestion failed: {e.error.code} {e.error.message}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
