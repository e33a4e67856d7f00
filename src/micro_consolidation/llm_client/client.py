"""Completion client for OpenAI-compatible LLM servers.

This module provides BaseLLMClient, the single entry point used for utility
model calls. It handles request building, bounded retries, abort signals,
error classification and telemetry.
"""

import asyncio
import time
from typing import Any

import httpx

from micro_consolidation.config.settings import get_settings
from micro_consolidation.llm_client.adapters import (
    adapt_chat_completions_response,
    build_chat_completions_request,
    contents_to_messages,
)
from micro_consolidation.llm_client.types import (
    GenerateContentRequest,
    GenerateContentResponse,
    LLMAborted,
    LLMClientError,
    LLMConnectionError,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMServerError,
    LLMTimeout,
)
from micro_consolidation.telemetry import (
    MODEL_CALL_ABORTED,
    MODEL_CALL_COMPLETED,
    MODEL_CALL_ERROR,
    MODEL_CALL_RETRY,
    MODEL_CALL_STARTED,
    TraceContext,
    get_logger,
)

log = get_logger(__name__)


class BaseLLMClient:
    """Client for single-shot completions against an OpenAI-compatible API.

    Attributes:
        base_url: Base URL for the LLM API (e.g., "http://localhost:8000/v1").
        api_key: Optional bearer token.
        timeout_seconds: Read timeout for model generation.
        max_retries: Retries used when a request does not set max_attempts.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_seconds: int | None = None,
        max_retries: int | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL for the LLM API. If None, uses settings.llm_base_url.
            api_key: Bearer token. If None, uses settings.llm_api_key.
            timeout_seconds: Request timeout. If None, uses settings.llm_timeout_seconds.
            max_retries: Default retry count. If None, uses settings.llm_max_retries.
        """
        settings = get_settings()
        self.base_url = base_url or settings.llm_base_url
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds
        self.max_retries = settings.llm_max_retries if max_retries is None else max_retries

    @property
    def endpoint(self) -> str:
        """Chat completions endpoint derived from base_url."""
        base = self.base_url.rstrip("/")
        if base.endswith("/v1"):
            return f"{base}/chat/completions"
        return f"{base}/v1/chat/completions"

    def _headers(self) -> dict[str, str]:
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    async def _post_with_abort(
        self,
        client: httpx.AsyncClient,
        payload: dict[str, Any],
        abort_signal: asyncio.Event,
    ) -> httpx.Response:
        """POST the payload, cancelling the request if abort_signal is set."""
        if abort_signal.is_set():
            raise LLMAborted("Request aborted before it was sent")

        post_task = asyncio.ensure_future(
            client.post(self.endpoint, json=payload, headers=self._headers())
        )
        abort_task = asyncio.ensure_future(abort_signal.wait())
        try:
            done, _ = await asyncio.wait(
                {post_task, abort_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (post_task, abort_task):
                if not task.done():
                    task.cancel()

        if post_task in done:
            return post_task.result()
        raise LLMAborted("Request aborted while waiting for the model")

    async def generate_content(
        self,
        request: GenerateContentRequest,
        trace_ctx: TraceContext | None = None,
    ) -> GenerateContentResponse:
        """Make a single completion call.

        Args:
            request: Completion request. ``max_attempts`` bounds the total
                number of attempts; 1 disables retries.
            trace_ctx: Trace context for telemetry correlation.

        Returns:
            Normalized GenerateContentResponse.

        Raises:
            LLMTimeout: If the request times out.
            LLMConnectionError: If the connection fails.
            LLMRateLimit: If the server keeps returning 429.
            LLMServerError: If the server returns a 5xx error.
            LLMInvalidResponse: If the response format is invalid.
            LLMAborted: If request.abort_signal is set first.
        """
        model_id = request.model_config_key.model
        max_attempts = (
            request.max_attempts if request.max_attempts is not None else self.max_retries + 1
        )
        max_attempts = max(1, max_attempts)

        messages = contents_to_messages(request.contents, request.system_instruction)
        payload = build_chat_completions_request(messages=messages, model=model_id)

        if trace_ctx is None:
            trace_ctx = TraceContext.new_trace()
        _, span_id = trace_ctx.new_span()

        start_time = time.time()
        log.info(
            MODEL_CALL_STARTED,
            role=request.role.value,
            model_id=model_id,
            is_chat_model=request.model_config_key.is_chat_model,
            prompt_id=request.prompt_id,
            max_attempts=max_attempts,
            trace_id=trace_ctx.trace_id,
            span_id=span_id,
        )

        timeout_config = httpx.Timeout(
            connect=10.0,
            read=float(self.timeout_seconds),
            write=10.0,
            pool=10.0,
        )

        last_error: Exception | None = None
        attempt = 1
        while attempt <= max_attempts:
            retryable = False
            try:
                async with httpx.AsyncClient(timeout=timeout_config) as client:
                    response = await self._post_with_abort(client, payload, request.abort_signal)
                    response.raise_for_status()
                    llm_response = adapt_chat_completions_response(response.json())

                log.info(
                    MODEL_CALL_COMPLETED,
                    role=request.role.value,
                    model_id=model_id,
                    prompt_id=request.prompt_id,
                    attempt=attempt,
                    latency_ms=int((time.time() - start_time) * 1000),
                    prompt_tokens=llm_response.usage.get("prompt_tokens", 0),
                    completion_tokens=llm_response.usage.get("completion_tokens", 0),
                    trace_id=trace_ctx.trace_id,
                    span_id=span_id,
                )
                return llm_response

            except LLMAborted as e:
                log.info(
                    MODEL_CALL_ABORTED,
                    prompt_id=request.prompt_id,
                    trace_id=trace_ctx.trace_id,
                )
                last_error = e
                break

            except httpx.TimeoutException:
                last_error = LLMTimeout(
                    f"Request to {self.endpoint} timed out after {self.timeout_seconds}s"
                )
                retryable = True

            except httpx.ConnectError as e:
                # Server is likely down; do not retry
                last_error = LLMConnectionError(f"Failed to connect to {self.endpoint}: {e}")

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status == 429:
                    last_error = LLMRateLimit(f"Rate limit exceeded: {e}")
                    retryable = True
                elif status >= 500:
                    last_error = LLMServerError(f"Server error {status}: {e}")
                    retryable = True
                else:
                    last_error = LLMClientError(f"HTTP error {status}: {e}")

            except httpx.RequestError as e:
                last_error = LLMConnectionError(f"Request error: {e}")

            except LLMInvalidResponse as e:
                last_error = e

            except (ValueError, KeyError, TypeError) as e:
                last_error = LLMInvalidResponse(f"Invalid response format: {e}")

            if not retryable or attempt >= max_attempts:
                break

            wait_time = 2 ** (attempt - 1)
            log.warning(
                MODEL_CALL_RETRY,
                attempt=attempt,
                wait_time=wait_time,
                error=str(last_error),
                prompt_id=request.prompt_id,
                trace_id=trace_ctx.trace_id,
            )
            await asyncio.sleep(wait_time)
            attempt += 1

        log.error(
            MODEL_CALL_ERROR,
            role=request.role.value,
            model_id=model_id,
            prompt_id=request.prompt_id,
            attempt=attempt,
            error_type=type(last_error).__name__ if last_error else "UnknownError",
            error=str(last_error) if last_error else "Unknown error",
            latency_ms=int((time.time() - start_time) * 1000),
            trace_id=trace_ctx.trace_id,
            span_id=span_id,
        )

        if last_error:
            raise last_error
        raise LLMClientError("Request failed with unknown error")
