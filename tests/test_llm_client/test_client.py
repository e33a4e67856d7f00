"""Tests for BaseLLMClient."""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from micro_consolidation.llm_client.client import BaseLLMClient
from micro_consolidation.llm_client.types import (
    GenerateContentRequest,
    LLMAborted,
    LLMClientError,
    LLMConnectionError,
    LLMInvalidResponse,
    LLMRole,
    LLMServerError,
    LLMTimeout,
    ModelConfigKey,
)
from micro_consolidation.telemetry.trace import TraceContext

OK_BODY: dict[str, Any] = {
    "choices": [
        {"message": {"role": "assistant", "content": "A fact."}, "finish_reason": "stop"}
    ],
    "usage": {"prompt_tokens": 12, "completion_tokens": 3},
}


def _request(**overrides: Any) -> GenerateContentRequest:
    fields: dict[str, Any] = {
        "model_config_key": ModelConfigKey(model="test-flash", is_chat_model=False),
        "contents": [{"role": "user", "parts": [{"text": "payload"}]}],
        "system_instruction": "Extract one fact.",
        "prompt_id": "micro-consolidation-1",
        "role": LLMRole.UTILITY_SUMMARIZER,
        "max_attempts": 1,
    }
    fields.update(overrides)
    return GenerateContentRequest(**fields)


def _response(body: dict[str, Any] | None = None) -> MagicMock:
    response = MagicMock()
    response.json.return_value = body if body is not None else OK_BODY
    response.raise_for_status = MagicMock()
    return response


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    return httpx.HTTPStatusError(
        f"HTTP {status_code}",
        request=MagicMock(),
        response=MagicMock(status_code=status_code),
    )


class TestBaseLLMClient:
    """Test BaseLLMClient.generate_content."""

    @pytest.fixture
    def client(self) -> BaseLLMClient:
        """Create a client against a fake local server."""
        return BaseLLMClient(
            base_url="http://localhost:1234/v1",
            api_key=None,
            timeout_seconds=30,
            max_retries=2,
        )

    def test_endpoint(self) -> None:
        """The chat completions path is appended once."""
        assert (
            BaseLLMClient(base_url="http://h:1/v1/", api_key="").endpoint
            == "http://h:1/v1/chat/completions"
        )
        assert (
            BaseLLMClient(base_url="http://h:1", api_key="").endpoint
            == "http://h:1/v1/chat/completions"
        )

    @pytest.mark.asyncio
    async def test_generate_content_success(self, client: BaseLLMClient) -> None:
        """A successful call returns the text and sends a flat payload."""
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(return_value=_response())
            mock_client_class.return_value.__aenter__.return_value = mock_client

            response = await client.generate_content(
                _request(), trace_ctx=TraceContext.new_trace()
            )

        assert response.text == "A fact."
        assert response.finish_reason == "stop"
        assert response.usage["prompt_tokens"] == 12

        url = mock_client.post.call_args.args[0]
        payload = mock_client.post.call_args.kwargs["json"]
        assert url == "http://localhost:1234/v1/chat/completions"
        assert payload["model"] == "test-flash"
        assert payload["messages"] == [
            {"role": "system", "content": "Extract one fact."},
            {"role": "user", "content": "payload"},
        ]
        assert mock_client.post.call_args.kwargs["headers"] == {}

    @pytest.mark.asyncio
    async def test_api_key_sent_as_bearer(self) -> None:
        """A configured API key becomes an Authorization header."""
        client = BaseLLMClient(base_url="http://localhost:1234/v1", api_key="secret")
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(return_value=_response())
            mock_client_class.return_value.__aenter__.return_value = mock_client

            await client.generate_content(_request())

        assert mock_client.post.call_args.kwargs["headers"] == {"Authorization": "Bearer secret"}

    @pytest.mark.asyncio
    async def test_null_content_returns_none_text(self, client: BaseLLMClient) -> None:
        """A null message content is surfaced as text=None."""
        body = {"choices": [{"message": {"role": "assistant", "content": None}}]}
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(return_value=_response(body))
            mock_client_class.return_value.__aenter__.return_value = mock_client

            response = await client.generate_content(_request())

        assert response.text is None

    @pytest.mark.asyncio
    async def test_single_attempt_is_not_retried(self, client: BaseLLMClient) -> None:
        """max_attempts=1 makes exactly one request even for retryable errors."""
        with (
            patch("httpx.AsyncClient") as mock_client_class,
            patch("micro_consolidation.llm_client.client.asyncio.sleep") as mock_sleep,
        ):
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(side_effect=httpx.TimeoutException("slow"))
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(LLMTimeout):
                await client.generate_content(_request(max_attempts=1))

        assert mock_client.post.call_count == 1
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_server_error_retried_up_to_max_attempts(self, client: BaseLLMClient) -> None:
        """5xx responses are retried while attempts remain."""
        failing = _response()
        failing.raise_for_status = MagicMock(side_effect=_status_error(503))

        with (
            patch("httpx.AsyncClient") as mock_client_class,
            patch(
                "micro_consolidation.llm_client.client.asyncio.sleep", new=AsyncMock()
            ) as mock_sleep,
        ):
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(side_effect=[failing, _response()])
            mock_client_class.return_value.__aenter__.return_value = mock_client

            response = await client.generate_content(_request(max_attempts=3))

        assert response.text == "A fact."
        assert mock_client.post.call_count == 2
        mock_sleep.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_server_error_exhausts_attempts(self, client: BaseLLMClient) -> None:
        """The last error is raised once attempts run out."""
        failing = _response()
        failing.raise_for_status = MagicMock(side_effect=_status_error(500))

        with (
            patch("httpx.AsyncClient") as mock_client_class,
            patch("micro_consolidation.llm_client.client.asyncio.sleep", new=AsyncMock()),
        ):
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(return_value=failing)
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(LLMServerError):
                await client.generate_content(_request(max_attempts=2))

        assert mock_client.post.call_count == 2

    @pytest.mark.asyncio
    async def test_default_attempts_follow_max_retries(self, client: BaseLLMClient) -> None:
        """Without max_attempts the client's max_retries applies."""
        with (
            patch("httpx.AsyncClient") as mock_client_class,
            patch("micro_consolidation.llm_client.client.asyncio.sleep", new=AsyncMock()),
        ):
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(side_effect=httpx.TimeoutException("slow"))
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(LLMTimeout):
                await client.generate_content(_request(max_attempts=None))

        assert mock_client.post.call_count == 3

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, client: BaseLLMClient) -> None:
        """4xx errors other than 429 fail immediately."""
        failing = _response()
        failing.raise_for_status = MagicMock(side_effect=_status_error(400))

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(return_value=failing)
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(LLMClientError, match="HTTP error 400"):
                await client.generate_content(_request(max_attempts=3))

        assert mock_client.post.call_count == 1

    @pytest.mark.asyncio
    async def test_connect_error(self, client: BaseLLMClient) -> None:
        """Connection failures map to LLMConnectionError."""
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(LLMConnectionError):
                await client.generate_content(_request(max_attempts=3))

        assert mock_client.post.call_count == 1

    @pytest.mark.asyncio
    async def test_invalid_response(self, client: BaseLLMClient) -> None:
        """A body without choices raises LLMInvalidResponse."""
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(return_value=_response({"object": "error"}))
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(LLMInvalidResponse):
                await client.generate_content(_request())

    @pytest.mark.asyncio
    async def test_preset_abort_signal(self, client: BaseLLMClient) -> None:
        """A request whose abort signal is already set is never sent."""
        abort = asyncio.Event()
        abort.set()

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.post = AsyncMock(return_value=_response())
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(LLMAborted):
                await client.generate_content(_request(abort_signal=abort))

        mock_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_abort_during_request(self, client: BaseLLMClient) -> None:
        """Setting the abort signal cancels an in-flight request."""
        abort = asyncio.Event()
        never = asyncio.Event()
        post_cancelled = False

        async def _slow_post(*args: Any, **kwargs: Any) -> MagicMock:
            nonlocal post_cancelled
            try:
                await never.wait()
            except asyncio.CancelledError:
                post_cancelled = True
                raise
            return _response()

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.post = _slow_post
            mock_client_class.return_value.__aenter__.return_value = mock_client

            call = asyncio.ensure_future(client.generate_content(_request(abort_signal=abort)))
            for _ in range(5):
                await asyncio.sleep(0)
            assert not call.done()

            abort.set()
            with pytest.raises(LLMAborted):
                await call

        await asyncio.sleep(0)
        assert post_cancelled
