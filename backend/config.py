"""Configuration management for LegalLens RAG."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "3001"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173"
).split(",")

# Model Configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
EMBEDDING_PROVIDER = os.getenv("EMBEDDING_PROVIDER", "ollama")  # "ollama" or "huggingface"
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "nomic-embed-text")
GENERATION_PROVIDER = os.getenv("GENERATION_PROVIDER", "ollama")  # "ollama" or "groq"
GENERATION_MODEL = os.getenv("GENERATION_MODEL", "llama3.2")

# Vector store Configuration
VECTOR_STORE = os.getenv("VECTOR_STORE", "supabase")  # "supabase" or "memory"
SUPABASE_TABLE = os.getenv("SUPABASE_TABLE", "document_chunks")

# Chunking Configuration
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1200"))  # characters
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "200"))  # characters

# Retrieval Configuration
INITIAL_FETCH = int(os.getenv("INITIAL_FETCH", "20"))
AFTER_RERANKING = int(os.getenv("AFTER_RERANKING", "5"))
MAX_CONTEXT_CHARS = int(os.getenv("MAX_CONTEXT_CHARS", "12000"))

# Reranking weights and BM25 constants (empirical defaults)
RERANK_SEMANTIC_WEIGHT = float(os.getenv("RERANK_SEMANTIC_WEIGHT", "0.45"))
RERANK_BM25_WEIGHT = float(os.getenv("RERANK_BM25_WEIGHT", "0.30"))
RERANK_PHRASE_WEIGHT = float(os.getenv("RERANK_PHRASE_WEIGHT", "0.15"))
RERANK_POSITION_WEIGHT = float(os.getenv("RERANK_POSITION_WEIGHT", "0.05"))
RERANK_LENGTH_WEIGHT = float(os.getenv("RERANK_LENGTH_WEIGHT", "0.05"))
BM25_K1 = float(os.getenv("BM25_K1", "1.5"))
BM25_B = float(os.getenv("BM25_B", "0.75"))
BM25_AVG_DOC_LENGTH = float(os.getenv("BM25_AVG_DOC_LENGTH", "300"))
BM25_IDF_WEIGHT = float(os.getenv("BM25_IDF_WEIGHT", "2.0"))

# Generation defaults tuned for legal document analysis
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.2"))
LLM_TOP_P = float(os.getenv("LLM_TOP_P", "0.85"))
LLM_TOP_K = int(os.getenv("LLM_TOP_K", "30"))
LLM_REPEAT_PENALTY = float(os.getenv("LLM_REPEAT_PENALTY", "1.15"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "600"))

# External call behaviour
EMBEDDING_CONCURRENCY = int(os.getenv("EMBEDDING_CONCURRENCY", "4"))
EMBEDDING_TIMEOUT = float(os.getenv("EMBEDDING_TIMEOUT", "30"))
GENERATION_TIMEOUT = float(os.getenv("GENERATION_TIMEOUT", "120"))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "2"))
RETRY_INITIAL_DELAY = float(os.getenv("RETRY_INITIAL_DELAY", "1.0"))

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
