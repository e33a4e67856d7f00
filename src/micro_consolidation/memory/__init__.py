"""Memory: background micro-consolidation into the knowledge log."""

from micro_consolidation.memory.background import (
    cancel_background_tasks,
    get_background_task_count,
    run_in_background,
    wait_for_background_tasks,
)
from micro_consolidation.memory.consolidation import (
    MICRO_CONSOLIDATION_MODEL,
    MICRO_CONSOLIDATION_PROMPT,
    NO_SIGNIFICANT_FACTS,
    ConsolidationStage,
    MemoryConsolidationService,
)
from micro_consolidation.memory.storage import (
    KNOWLEDGE_LOG_FILENAME,
    KnowledgeLogEntry,
    KnowledgeStorage,
)

__all__ = [
    "MemoryConsolidationService",
    "ConsolidationStage",
    "MICRO_CONSOLIDATION_MODEL",
    "MICRO_CONSOLIDATION_PROMPT",
    "NO_SIGNIFICANT_FACTS",
    "KnowledgeStorage",
    "KnowledgeLogEntry",
    "KNOWLEDGE_LOG_FILENAME",
    "run_in_background",
    "wait_for_background_tasks",
    "cancel_background_tasks",
    "get_background_task_count",
]
