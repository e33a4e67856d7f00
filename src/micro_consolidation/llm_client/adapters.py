"""Adapters between role-tagged contents and the chat completions API.

Requests are always sent to an OpenAI-compatible ``/v1/chat/completions``
endpoint. Function call and function response parts are flattened to JSON
text so that no backend ever sees a structured tool-call sequence.
"""

from typing import Any

import orjson

from micro_consolidation.llm_client.types import (
    Content,
    GenerateContentResponse,
    LLMInvalidResponse,
    Part,
)

_ROLE_MAP = {
    "model": "assistant",
    "assistant": "assistant",
    "system": "system",
}


def part_to_text(part: Part) -> str:
    """Render a single content part as plain text."""
    if "text" in part:
        return part["text"]
    return orjson.dumps(part).decode()


def contents_to_messages(
    contents: list[Content], system_instruction: str | None = None
) -> list[dict[str, Any]]:
    """Convert content blocks to chat completions messages.

    Args:
        contents: Ordered content blocks.
        system_instruction: Optional system prompt, prepended as a system message.

    Returns:
        List of ``{"role", "content"}`` message dicts in original order.
    """
    messages: list[dict[str, Any]] = []
    if system_instruction:
        messages.append({"role": "system", "content": system_instruction})

    for content in contents:
        role = _ROLE_MAP.get(content.get("role", "user"), "user")
        text = "\n".join(part_to_text(part) for part in content.get("parts", []))
        messages.append({"role": role, "content": text})

    return messages


def build_chat_completions_request(
    messages: list[dict[str, Any]],
    model: str,
) -> dict[str, Any]:
    """Build a chat completions request payload."""
    return {
        "model": model,
        "messages": messages,
        "stream": False,
    }


def adapt_chat_completions_response(response_data: dict[str, Any]) -> GenerateContentResponse:
    """Adapt a chat completions response to GenerateContentResponse.

    Args:
        response_data: Raw response body.

    Returns:
        Normalized response. ``text`` is None when the first choice carries
        no content.

    Raises:
        LLMInvalidResponse: If the response has no usable choices.
    """
    choices = response_data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise LLMInvalidResponse("Response has no choices")

    first = choices[0]
    if not isinstance(first, dict):
        raise LLMInvalidResponse(f"Unexpected choice format: {type(first).__name__}")

    message = first.get("message") or {}
    content = message.get("content")
    if content is not None and not isinstance(content, str):
        raise LLMInvalidResponse(f"Unexpected content type: {type(content).__name__}")

    return GenerateContentResponse(
        text=content,
        finish_reason=first.get("finish_reason"),
        usage=response_data.get("usage") or {},
        raw=response_data,
    )
