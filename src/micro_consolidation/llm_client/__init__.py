"""LLM client module.

This module provides BaseLLMClient for single-shot completions against an
OpenAI-compatible server, together with its request/response types and
error hierarchy.
"""

from micro_consolidation.llm_client.client import BaseLLMClient
from micro_consolidation.llm_client.types import (
    Content,
    GenerateContentRequest,
    GenerateContentResponse,
    LLMAborted,
    LLMClientError,
    LLMConnectionError,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMRole,
    LLMServerError,
    LLMTimeout,
    ModelConfigKey,
    Part,
)

__all__ = [
    "BaseLLMClient",
    "Content",
    "Part",
    "ModelConfigKey",
    "GenerateContentRequest",
    "GenerateContentResponse",
    "LLMRole",
    "LLMClientError",
    "LLMTimeout",
    "LLMConnectionError",
    "LLMRateLimit",
    "LLMServerError",
    "LLMInvalidResponse",
    "LLMAborted",
]
