"""Micro-consolidation: distill each agent turn into one knowledge log fact.

After every turn in forever mode the agent loop calls
:meth:`MemoryConsolidationService.trigger_micro_consolidation`. The call
returns immediately; a detached background task serializes the turn, asks a
small pinned model for a single factual takeaway and appends it to the
knowledge log. Failures are logged and never reach the agent loop.
"""

import asyncio
import time
from enum import Enum
from typing import TYPE_CHECKING

import orjson

from micro_consolidation.llm_client.types import (
    Content,
    GenerateContentRequest,
    LLMRole,
    ModelConfigKey,
)
from micro_consolidation.memory.background import run_in_background
from micro_consolidation.memory.storage import to_single_line
from micro_consolidation.telemetry import (
    MICRO_CONSOLIDATION_COMPLETED,
    MICRO_CONSOLIDATION_DISPATCH_FAILED,
    MICRO_CONSOLIDATION_DISPATCHED,
    MICRO_CONSOLIDATION_FAILED,
    MICRO_CONSOLIDATION_NO_FACTS,
    MICRO_CONSOLIDATION_SKIPPED,
    get_logger,
)

if TYPE_CHECKING:
    from micro_consolidation.config.agent import AgentConfig

log = get_logger(__name__)

NO_SIGNIFICANT_FACTS = "NO_SIGNIFICANT_FACTS"

# Small, fast model pinned for this background task
MICRO_CONSOLIDATION_MODEL = "gemini-3-flash-preview"

MICRO_CONSOLIDATION_PROMPT = f"""
You are the background subconscious memory module of an autonomous engineering agent.
Your task is to extract a single, highly condensed factual takeaway from the immediately preceding interaction turn.

Rules:
1. Ignore conversational filler, pleasantries, or planning. Focus STRICTLY on hard technical facts, file paths discovered, tool outcomes (especially errors), or immediate workarounds.
2. If the turn was a failure or error, note what failed and the root cause if known.
3. If the turn was a success, note the successful path, command, or location of logic.
4. Output MUST be a single concise bullet point (max 1-2 sentences).
5. Do NOT output markdown formatting like ``` or bold text, just the raw text of the bullet point.
6. If the interaction contains NO hard technical facts, outcomes, or errors (e.g., just conversational filler or planning), output exactly: {NO_SIGNIFICANT_FACTS}

Example Outputs:
- `pytest` failed because `httpx` is missing from the test dependencies in pyproject.toml.
- Found the request retry logic in src/app/llm_client/client.py; it backs off exponentially.
- Attempted to patch settings.py but the edit failed due to mismatched indentation.
- {NO_SIGNIFICANT_FACTS}
""".strip()


class ConsolidationStage(str, Enum):
    """Stages of a single consolidation attempt."""

    IDLE = "idle"
    SERIALIZING = "serializing"
    INVOKING = "invoking"
    FILTERING = "filtering"
    SKIPPED = "skipped"
    PERSISTING = "persisting"
    DONE = "done"


def serialize_turn(latest_turn_context: list[Content]) -> str:
    """Serialize a turn into one flat JSON text payload.

    The model receives this as a single user message instead of the
    structured turn; alternating function call/response blocks sent as real
    messages are rejected by some backends.
    """
    return orjson.dumps(latest_turn_context).decode()


def extract_fact(text: str | None) -> str | None:
    """Fold a model response onto one trimmed line and drop empty or sentinel answers.

    Returns:
        The fact to record, or None if there is nothing worth recording.
    """
    fact = to_single_line(text or "")
    if not fact or fact == NO_SIGNIFICANT_FACTS:
        return None
    return fact


class MemoryConsolidationService:
    """Turns agent interaction turns into knowledge log facts.

    Usage:
        service = MemoryConsolidationService(AgentConfig())
        service.trigger_micro_consolidation(turn_contents)
    """

    def __init__(self, config: "AgentConfig") -> None:
        self.config = config

    def trigger_micro_consolidation(self, latest_turn_context: list[Content]) -> None:
        """Start a background consolidation for the latest turn.

        No-op unless forever mode is enabled and the turn has content. Returns
        without waiting for the background task; its outcome is only logged.

        Args:
            latest_turn_context: Content blocks exchanged in the latest turn.
        """
        if not self.config.is_forever_mode():
            return

        if not latest_turn_context:
            log.debug(MICRO_CONSOLIDATION_SKIPPED, reason="empty_turn")
            return

        coro = self.perform_consolidation(latest_turn_context)
        try:
            task = run_in_background(coro, name="micro-consolidation")
        except RuntimeError as e:
            coro.close()
            log.error(MICRO_CONSOLIDATION_DISPATCH_FAILED, error=str(e), error_type=type(e).__name__)
            return

        log.debug(
            MICRO_CONSOLIDATION_DISPATCHED,
            task_name=task.get_name(),
            content_blocks=len(latest_turn_context),
        )

    async def perform_consolidation(self, latest_turn_context: list[Content]) -> str | None:
        """Run one consolidation attempt.

        Serializes the turn, asks the pinned model for a fact, and appends it
        to the knowledge log unless the answer is empty or the no-facts
        sentinel. No retries. Errors at any stage are logged and swallowed.

        Args:
            latest_turn_context: Content blocks exchanged in the latest turn.

        Returns:
            The persisted fact, or None if nothing was written.
        """
        stage = ConsolidationStage.IDLE
        prompt_id = f"micro-consolidation-{int(time.time() * 1000)}"

        try:
            stage = ConsolidationStage.SERIALIZING
            serialized_context = serialize_turn(latest_turn_context)

            stage = ConsolidationStage.INVOKING
            base_client = self.config.get_base_llm_client()
            response = await base_client.generate_content(
                GenerateContentRequest(
                    model_config_key=ModelConfigKey(
                        model=MICRO_CONSOLIDATION_MODEL, is_chat_model=False
                    ),
                    contents=[{"role": "user", "parts": [{"text": serialized_context}]}],
                    system_instruction=MICRO_CONSOLIDATION_PROMPT,
                    # Never set: the call is not externally cancellable
                    abort_signal=asyncio.Event(),
                    prompt_id=prompt_id,
                    role=LLMRole.UTILITY_SUMMARIZER,
                    max_attempts=1,
                )
            )

            stage = ConsolidationStage.FILTERING
            fact = extract_fact(response.text)
            if fact is None:
                stage = ConsolidationStage.SKIPPED
                log.debug(MICRO_CONSOLIDATION_NO_FACTS, prompt_id=prompt_id)
                return None

            stage = ConsolidationStage.PERSISTING
            path = await self.config.storage.append_fact(fact)

            stage = ConsolidationStage.DONE
            log.info(MICRO_CONSOLIDATION_COMPLETED, prompt_id=prompt_id, path=str(path))
            return fact

        except Exception as e:
            log.error(
                MICRO_CONSOLIDATION_FAILED,
                stage=stage.value,
                error=str(e),
                error_type=type(e).__name__,
                prompt_id=prompt_id,
            )
            return None
