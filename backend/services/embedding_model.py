"""Embedding model integration over HTTP (Ollama or Hugging Face Inference API)."""
import time
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional
import httpx

from errors import EmbeddingUnavailable, InvalidInput
from config import (
    EMBEDDING_PROVIDER,
    EMBEDDING_MODEL,
    HUGGINGFACE_API_KEY,
    OLLAMA_BASE_URL,
    EMBEDDING_TIMEOUT,
    EMBEDDING_CONCURRENCY,
    MAX_RETRIES,
    RETRY_INITIAL_DELAY,
)

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("ollama", "huggingface")
RETRYABLE_STATUS_CODES = {429, 502, 503, 504}


class EmbeddingModel:
    """Client for a text -> fixed-length vector embedding service."""

    def __init__(
        self,
        provider: str = EMBEDDING_PROVIDER,
        model_name: str = EMBEDDING_MODEL,
        api_key: Optional[str] = HUGGINGFACE_API_KEY,
        base_url: str = OLLAMA_BASE_URL,
        max_retries: int = MAX_RETRIES,
        initial_delay: float = RETRY_INITIAL_DELAY,
        timeout: float = EMBEDDING_TIMEOUT,
        max_workers: int = EMBEDDING_CONCURRENCY
    ):
        """
        Initialize the embedding model client.

        Args:
            provider: "ollama" (local server) or "huggingface" (Inference API)
            model_name: Model identifier (default: nomic-embed-text)
            api_key: Hugging Face API key, required for the huggingface provider
            base_url: Ollama server URL
            max_retries: Attempts per text for transient failures
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds
            max_workers: Concurrent requests used by embed_many
        """
        if provider not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported embedding provider: {provider}")

        if provider == "huggingface" and not api_key:
            raise ValueError("HUGGINGFACE_API_KEY environment variable is required")

        self.provider = provider
        self.model_name = model_name
        self.api_key = api_key
        self.max_retries = max(1, max_retries)
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.max_workers = max(1, max_workers)

        if provider == "ollama":
            self.api_url = f"{base_url.rstrip('/')}/api/embeddings"
        else:
            self.api_url = f"https://api-inference.huggingface.co/models/{model_name}"

        logger.info(f"Initialized EmbeddingModel with {provider} model: {model_name}")

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            InvalidInput: If text is empty
            EmbeddingUnavailable: If the service fails after all retries
        """
        if not text or not text.strip():
            raise InvalidInput("Text cannot be empty")

        return self._embed_with_retry(text)

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        """
        Embed several texts with a bounded pool of concurrent requests.

        Results are returned in input order regardless of which request
        finishes first.

        Args:
            texts: Texts to embed

        Returns:
            One embedding per input text
        """
        if not texts:
            return []

        for text in texts:
            if not text or not text.strip():
                raise InvalidInput("Text cannot be empty")

        if self.max_workers == 1 or len(texts) == 1:
            return [self._embed_with_retry(text) for text in texts]

        workers = min(self.max_workers, len(texts))
        logger.debug(f"Embedding {len(texts)} texts with {workers} workers")
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._embed_with_retry, texts))

    def _build_request(self, text: str):
        if self.provider == "ollama":
            headers = {"Content-Type": "application/json"}
            payload = {"model": self.model_name, "prompt": text}
        else:
            headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json"
            }
            payload = {
                "inputs": [text],
                "options": {
                    "wait_for_model": True  # Wait for model to load if sleeping
                }
            }
        return headers, payload

    def _parse_embedding(self, data) -> List[float]:
        if self.provider == "ollama":
            embedding = data.get("embedding") if isinstance(data, dict) else None
        else:
            embedding = data[0] if isinstance(data, list) and data else None

        if not embedding or not isinstance(embedding, list):
            raise EmbeddingUnavailable(
                "Embedding service returned no vector",
                details={"provider": self.provider, "model": self.model_name}
            )
        return [float(value) for value in embedding]

    def _embed_with_retry(self, text: str) -> List[float]:
        """
        Call the embedding service with exponential backoff.

        Timeouts, network errors and 429/5xx gateway responses are retried
        up to ``max_retries`` attempts; other failures are raised at once.

        Raises:
            EmbeddingUnavailable: On non-retryable failure or when retries run out
        """
        headers, payload = self._build_request(text)
        details = {"provider": self.provider, "model": self.model_name}

        delay = self.initial_delay
        last_error = None

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()

                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(
                        self.api_url,
                        headers=headers,
                        json=payload
                    )

                elapsed = time.time() - start_time

                if response.status_code in RETRYABLE_STATUS_CODES:
                    last_error = f"Embedding service returned {response.status_code}"
                    logger.warning(
                        f"{last_error} on attempt {attempt + 1}/{self.max_retries}"
                    )
                elif response.status_code == 401:
                    logger.error("Authentication failed for embedding service")
                    raise EmbeddingUnavailable("Invalid API key", details=details)
                elif response.status_code != 200:
                    error_msg = (
                        f"Embedding request failed with status {response.status_code}: {response.text}"
                    )
                    logger.error(error_msg)
                    raise EmbeddingUnavailable(
                        error_msg,
                        details={**details, "status_code": response.status_code}
                    )
                else:
                    try:
                        data = response.json()
                    except ValueError as e:
                        raise EmbeddingUnavailable(
                            "Embedding service returned a malformed response",
                            details={**details, "original_error": str(e)}
                        ) from e
                    embedding = self._parse_embedding(data)
                    logger.debug(f"Generated embedding ({len(embedding)} dims) in {elapsed:.2f}s")
                    return embedding

            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"
                logger.warning(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
                logger.warning(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            if attempt < self.max_retries - 1:
                time.sleep(delay)
                delay = min(delay * 2, 30.0)

        # All retries exhausted
        error_msg = f"Failed to generate embedding after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise EmbeddingUnavailable(
            error_msg,
            details={**details, "attempts": self.max_retries},
            retryable=True
        )

    def warmup(self) -> bool:
        """
        Warm up the model with a dummy query to avoid cold start delays.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()

            self.embed_text("warmup query")

            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        except EmbeddingUnavailable as e:
            logger.warning(f"Model warmup failed: {str(e)}")
            return False
