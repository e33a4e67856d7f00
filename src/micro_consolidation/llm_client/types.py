"""Type definitions for the LLM client module.

This module defines the core types used by BaseLLMClient:
- LLMRole: Enum tagging which kind of caller issued a request
- Part / Content: Role-tagged conversational content blocks
- ModelConfigKey, GenerateContentRequest, GenerateContentResponse
- Error classes: Hierarchy of LLM client errors
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from typing_extensions import NotRequired, TypedDict


class LLMRole(str, Enum):
    """Caller roles, used to attribute model calls in telemetry."""

    MAIN = "main"
    SUBAGENT = "subagent"
    UTILITY_SUMMARIZER = "utility_summarizer"
    UTILITY_TOOL = "utility_tool"


class Part(TypedDict, total=False):
    """One part of a content block.

    Exactly one of the keys is normally present. Function calls and
    responses are kept as plain dicts.
    """

    text: str
    function_call: dict[str, Any]
    function_response: dict[str, Any]


class Content(TypedDict):
    """A role-tagged content block ("user", "model", "function", ...)."""

    role: str
    parts: list[Part]
    name: NotRequired[str]


@dataclass(frozen=True)
class ModelConfigKey:
    """Selects which model serves a request.

    Attributes:
        model: Model identifier sent to the backend.
        is_chat_model: False for single-shot utility calls with no history.
    """

    model: str
    is_chat_model: bool = True


@dataclass
class GenerateContentRequest:
    """A single completion request.

    Attributes:
        model_config_key: Model selection.
        contents: Ordered content blocks sent as messages.
        system_instruction: Optional system prompt.
        abort_signal: Event that cancels the request when set.
        prompt_id: Correlation identifier for tracing.
        role: Caller role for telemetry.
        max_attempts: Total attempts allowed (1 disables retries).
    """

    model_config_key: ModelConfigKey
    contents: list[Content]
    prompt_id: str
    role: LLMRole
    system_instruction: str | None = None
    abort_signal: asyncio.Event = field(default_factory=asyncio.Event)
    max_attempts: int | None = None


@dataclass
class GenerateContentResponse:
    """Normalized completion response.

    Attributes:
        text: Generated text, or None when the backend returned no content.
        finish_reason: Backend finish reason, if reported.
        usage: Token usage information.
        raw: Raw backend payload for debugging.
    """

    text: str | None
    finish_reason: str | None = None
    usage: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)


# Error hierarchy


class LLMClientError(Exception):
    """Base exception for all LLM client errors."""

    pass


class LLMTimeout(LLMClientError):
    """Raised when an LLM request times out."""

    pass


class LLMConnectionError(LLMClientError):
    """Raised when connection to the LLM server fails."""

    pass


class LLMRateLimit(LLMClientError):
    """Raised when the LLM server returns a rate limit error."""

    pass


class LLMServerError(LLMClientError):
    """Raised when the LLM server returns an error (5xx)."""

    pass


class LLMInvalidResponse(LLMClientError):
    """Raised when the LLM server returns an invalid or unexpected response."""

    pass


class LLMAborted(LLMClientError):
    """Raised when a request's abort signal is set before it completes."""

    pass
