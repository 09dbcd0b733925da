"""Services for LegalLens RAG."""
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel
from .vector_store import VectorIndex, InMemoryVectorStore, SupabaseVectorStore, create_vector_store
from .retrieval_engine import RetrievalEngine
from .reranker import HybridReranker, RerankWeights, BM25Params
from .context_assembler import ContextAssembler, AssembledContext
from .llm_client import LLMClient, LLMResponse, GenerationParams
from .session_registry import SessionRegistry
from .rag_pipeline import RAGPipeline

__all__ = ['DocumentLoader', 'ChunkingEngine', 'EmbeddingModel', 'VectorIndex', 'InMemoryVectorStore', 'SupabaseVectorStore', 'create_vector_store', 'RetrievalEngine', 'HybridReranker', 'RerankWeights', 'BM25Params', 'ContextAssembler', 'AssembledContext', 'LLMClient', 'LLMResponse', 'GenerationParams', 'SessionRegistry', 'RAGPipeline']
