"""
Tadoku Backend — Google Gemini Story Generator
===============================================

What:  StoryGenerator backed by Google Gemini.
How:   Sends the learner's prompt wrapped in a graded-reader instruction
       template and returns the plain-text passage, with tenacity retries
       and a circuit breaker around the API call.
Who:   Instantiated once at import; called by StoryService per generation.
When:  Only after the daily quota gate admitted the request. A generation
       that fails here is never counted against the quota.

Resilience:
    1. Tenacity retry with exponential backoff + jitter
    2. Circuit breaker: after N consecutive failed generations, calls fail
       instantly until the recovery timeout elapses
    3. Per-call timeout (settings.generation_timeout)
"""

import logging
import time
import uuid
from typing import Optional

import google.generativeai as genai
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from tadoku.config import settings
from tadoku.exceptions import CircuitBreakerOpenError, LLMServiceError
from tadoku.services.llm_base import StoryGenerator

logger = logging.getLogger(__name__)


class EmptyGenerationError(Exception):
    """The model answered without any text. Retried like a transport failure."""


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    CLOSED → (failure_threshold failures) → OPEN
    OPEN → (recovery_timeout seconds) → HALF_OPEN, one trial call allowed
    HALF_OPEN → success → CLOSED, failure → OPEN

    Not shared across processes; each uvicorn worker keeps its own.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Raises:
            CircuitBreakerOpenError: OPEN and the recovery timeout has not elapsed.
        """
        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed < self.recovery_timeout:
                raise CircuitBreakerOpenError(
                    recovery_time=int(self.recovery_timeout - elapsed)
                )
            logger.info("Circuit breaker HALF_OPEN after %.1fs", elapsed)
            self.state = self.HALF_OPEN
        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker CLOSED (generator recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker back to OPEN (trial generation failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPEN after %d consecutive failures", self.failure_count
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

class GeminiService(StoryGenerator):
    """Google Gemini implementation of StoryGenerator."""

    STORY_PROMPT = """You write short graded-reader stories for language learners
practising extensive reading (tadoku).

Instructions:
1. Write one self-contained story that follows the learner's request below
2. Prefer common vocabulary and short sentences unless the request asks otherwise
3. Use plain paragraphs separated by blank lines
4. Return ONLY the story text: no title, no commentary, no translation

Learner's request:
{prompt}"""

    def __init__(self):
        if settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here":
            genai.configure(api_key=settings.gemini_api_key)

        self.model = genai.GenerativeModel(settings.gemini_model)
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with model=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            settings.gemini_model,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def generate_story(self, prompt: str) -> str:
        """
        Flow:
            1. Circuit breaker check (may raise CircuitBreakerOpenError)
            2. Gemini call with retries
            3. Record success/failure in the circuit breaker

        Raises:
            CircuitBreakerOpenError: circuit is open
            LLMServiceError: generation failed after all attempts
        """
        request_id = str(uuid.uuid4())[:8]

        self.circuit_breaker.can_execute()

        logger.info("[%s] Starting Gemini generation (%d char prompt)", request_id, len(prompt))

        try:
            result = await self._call_gemini_with_retry(prompt, request_id)
            self.circuit_breaker.record_success()
            return result

        except RetryError as e:
            self.circuit_breaker.record_failure()
            last_error = e.last_attempt.exception() if e.last_attempt else None
            if isinstance(last_error, EmptyGenerationError):
                logger.error("[%s] Gemini returned no text on every attempt", request_id)
                raise LLMServiceError(
                    message="The story generator returned an empty response. Please try again.",
                    context={"request_id": request_id, "attempts": settings.retry_max_attempts},
                ) from last_error
            logger.error(
                "[%s] All Gemini retries exhausted: %s",
                request_id,
                str(last_error) if last_error else "Unknown error",
            )
            raise LLMServiceError(
                message="Story generation failed after multiple attempts. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "attempts": settings.retry_max_attempts},
            ) from e
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Unexpected Gemini error: %s", request_id, str(e), exc_info=True)
            raise LLMServiceError(
                message="An unexpected error occurred during story generation.",
                context={"request_id": request_id, "error_type": type(e).__name__},
            ) from e

    @retry(
        # The SDK raises plain exceptions for API errors, so everything retries.
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    async def _call_gemini_with_retry(self, prompt: str, request_id: str) -> str:
        start_time = time.time()

        try:
            response = await self.model.generate_content_async(
                self.STORY_PROMPT.format(prompt=prompt),
                request_options={"timeout": settings.generation_timeout},
            )
            duration_ms = (time.time() - start_time) * 1000

            story_text = response.text.strip() if response.text else ""
            if not story_text:
                raise EmptyGenerationError(request_id)

            logger.info(
                "[%s] Gemini generation completed in %.0fms, %d chars",
                request_id,
                duration_ms,
                len(story_text),
            )
            return story_text

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s", request_id, duration_ms, str(e)
            )
            raise

    async def health_check(self) -> bool:
        """Lists models (no token cost) to confirm the key and connectivity."""
        try:
            model_names = [m.name for m in genai.list_models()]
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False

        target = f"models/{settings.gemini_model}"
        if target not in model_names:
            logger.warning("Configured model %s not found in available models", target)
        return True


# ── Singleton Instance ────────────────────────────────────────────────────
# Holds the circuit breaker state shared by all requests.
gemini_service = GeminiService()
