"""LLM client for answer generation (Groq API or a local Ollama server)."""
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError, APIConnectionError
import httpx
import logging

from errors import GenerationUnavailable
from config import (
    GROQ_API_KEY,
    GENERATION_PROVIDER,
    GENERATION_MODEL,
    OLLAMA_BASE_URL,
    GENERATION_TIMEOUT,
    MAX_RETRIES,
    RETRY_INITIAL_DELAY,
    LLM_TEMPERATURE,
    LLM_TOP_P,
    LLM_TOP_K,
    LLM_REPEAT_PENALTY,
    LLM_MAX_TOKENS,
)

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("ollama", "groq")


@dataclass(frozen=True)
class GenerationParams:
    """Sampling parameters, defaulting to values tuned for factual legal answers."""
    temperature: float = LLM_TEMPERATURE
    top_p: float = LLM_TOP_P
    top_k: int = LLM_TOP_K
    repeat_penalty: float = LLM_REPEAT_PENALTY
    max_tokens: int = LLM_MAX_TOKENS

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str
    details: Dict[str, Any] = field(default_factory=dict)


class LLMClient:
    """Client for text generation with bounded retries on transient failures."""

    def __init__(
        self,
        provider: str = GENERATION_PROVIDER,
        model: str = GENERATION_MODEL,
        api_key: Optional[str] = None,
        base_url: str = OLLAMA_BASE_URL,
        timeout: float = GENERATION_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        initial_delay: float = RETRY_INITIAL_DELAY
    ):
        """
        Initialize LLM client.

        Args:
            provider: "ollama" or "groq"
            model: Model name
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            base_url: Ollama server URL
            timeout: Request timeout in seconds
            max_retries: Attempts for retryable failures (timeouts, rate limits, network)
            initial_delay: Initial backoff delay in seconds
        """
        if provider not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported generation provider: {provider}")

        self.provider = provider
        self.model = model
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.initial_delay = initial_delay
        self.client = None

        if provider == "groq":
            self.api_key = api_key or GROQ_API_KEY
            if not self.api_key:
                raise ValueError("GROQ_API_KEY must be provided or set in environment")
            # Retries are handled here, not by the SDK
            self.client = Groq(api_key=self.api_key, timeout=timeout, max_retries=0)
        else:
            self.api_key = None
            self.api_url = f"{base_url.rstrip('/')}/api/generate"

        logger.info(f"LLMClient initialized: provider={provider}, model={model}")

    def generate(self, prompt: str, params: Optional[GenerationParams] = None) -> LLMResponse:
        """
        Generate a completion for prompt.

        Args:
            prompt: Complete prompt with context and question
            params: Sampling parameters (defaults to GenerationParams())

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            GenerationUnavailable: Structured error with code, message, and details
        """
        params = params or GenerationParams()
        delay = self.initial_delay

        for attempt in range(self.max_retries):
            try:
                if self.provider == "groq":
                    return self._generate_groq(prompt, params)
                return self._generate_ollama(prompt, params)
            except GenerationUnavailable as e:
                if not e.error.retryable or attempt == self.max_retries - 1:
                    raise
                logger.warning(
                    f"{e.error.code} on attempt {attempt + 1}/{self.max_retries}; retrying in {delay}s"
                )
                time.sleep(delay)
                delay = min(delay * 2, 30.0)

    def _generate_groq(self, prompt: str, params: GenerationParams) -> LLMResponse:
        # top_k and repeat_penalty have no Groq equivalent
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {self.model}")

            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": prompt
                    }
                ],
                max_tokens=params.max_tokens,
                temperature=params.temperature,
                top_p=params.top_p
            )

            latency_ms = int((time.time() - start_time) * 1000)
            text = response.choices[0].message.content
            tokens_input = response.usage.prompt_tokens
            tokens_output = response.usage.completion_tokens

            logger.info(
                f"Generated response: model={self.model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=self.model
            )

        except RateLimitError as e:
            raise self._error(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                e, start_time, retryable=True, retry_after=60
            ) from e

        except AuthenticationError as e:
            raise self._error(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                e, start_time
            ) from e

        except APITimeoutError as e:
            raise self._error(
                "TIMEOUT_ERROR", "Request timed out. Please try again.",
                e, start_time, retryable=True
            ) from e

        except APIConnectionError as e:
            raise self._error(
                "CONNECTION_ERROR", "Could not reach the generation service.",
                e, start_time, retryable=True
            ) from e

        except APIError as e:
            raise self._error("API_ERROR", f"Groq API error: {str(e)}", e, start_time) from e

        except Exception as e:
            raise self._error(
                "UNKNOWN_ERROR", f"Unexpected error during generation: {str(e)}",
                e, start_time, error_type=type(e).__name__
            ) from e

    def _generate_ollama(self, prompt: str, params: GenerationParams) -> LLMResponse:
        start_time = time.time()
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": params.temperature,
                "top_p": params.top_p,
                "top_k": params.top_k,
                "repeat_penalty": params.repeat_penalty,
                "num_predict": params.max_tokens,
            }
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.api_url, json=payload)
        except httpx.TimeoutException as e:
            raise self._error(
                "TIMEOUT_ERROR", "Request timed out. Please try again.",
                e, start_time, retryable=True
            ) from e
        except httpx.RequestError as e:
            raise self._error(
                "CONNECTION_ERROR", "Could not reach the generation service.",
                e, start_time, retryable=True
            ) from e

        if response.status_code != 200:
            raise self._error(
                "API_ERROR",
                f"Ollama returned status {response.status_code}",
                response.text, start_time,
                retryable=response.status_code in (429, 502, 503, 504),
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise self._error("API_ERROR", "Ollama returned a malformed response", e, start_time) from e

        latency_ms = int((time.time() - start_time) * 1000)
        text = data.get("response")
        if text is None:
            raise self._error("API_ERROR", "Ollama response has no text", data, start_time)

        tokens_input = data.get("prompt_eval_count", 0)
        tokens_output = data.get("eval_count", 0)
        logger.info(
            f"Generated response: model={self.model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )
        return LLMResponse(
            text=text,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=self.model
        )

    def _error(
        self,
        code: str,
        message: str,
        original: Any,
        start_time: float,
        retryable: bool = False,
        **extra: Any
    ) -> GenerationUnavailable:
        latency_ms = int((time.time() - start_time) * 1000)
        details = {
            "provider": self.provider,
            "model": self.model,
            "latency_ms": latency_ms,
            "original_error": str(original),
            **extra
        }
        logger.error(
            f"Generation error: code={code}, model={self.model}, latency={latency_ms}ms, error={original}",
            extra={"error_code": code, "error_details": details}
        )
        return GenerationUnavailable(message, details=details, retryable=retryable, code=code)

    @staticmethod
    def build_prompt(question: str, context: str) -> str:
        """
        Build the question-answering prompt.

        Args:
            question: User question
            context: Source-tagged contract excerpts

        Returns:
            Complete prompt string
        """
        return f"""You are a legal contract analysis expert. Answer the user's question based on the contract excerpts provided below.

Focus on:
- Identifying relevant clauses and provisions
- Explaining obligations and rights
- Highlighting risks and liabilities
- Providing clear legal interpretations

If the information is not in the provided contract text, say "I cannot find this information in the contract."

CONTRACT EXCERPTS:
{context}

QUESTION: {question}

ANSWER:"""

    @staticmethod
    def build_analysis_prompt(contract_text: str) -> str:
        """Build the clause-extraction prompt."""
        return f"""Analyze the following contract text and identify key legal clauses. Return a JSON array with objects containing: clauseName, clauseType, riskLevel (low/medium/high), and description.

CONTRACT TEXT:
{contract_text}

Return ONLY valid JSON, no other text."""
