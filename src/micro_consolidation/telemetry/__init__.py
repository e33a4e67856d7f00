"""Telemetry module for structured logging and trace correlation.

This module provides:
- Structured logging via structlog
- TraceContext for correlating model calls
- Semantic event constants
"""

from micro_consolidation.telemetry.events import (
    BACKGROUND_TASK_ERROR,
    KNOWLEDGE_FACT_APPENDED,
    MICRO_CONSOLIDATION_COMPLETED,
    MICRO_CONSOLIDATION_DISPATCH_FAILED,
    MICRO_CONSOLIDATION_DISPATCHED,
    MICRO_CONSOLIDATION_FAILED,
    MICRO_CONSOLIDATION_NO_FACTS,
    MICRO_CONSOLIDATION_SKIPPED,
    MODEL_CALL_ABORTED,
    MODEL_CALL_COMPLETED,
    MODEL_CALL_ERROR,
    MODEL_CALL_RETRY,
    MODEL_CALL_STARTED,
)
from micro_consolidation.telemetry.logger import configure_logging, get_logger
from micro_consolidation.telemetry.trace import TraceContext

__all__ = [
    "TraceContext",
    "get_logger",
    "configure_logging",
    # Event constants
    "MODEL_CALL_STARTED",
    "MODEL_CALL_COMPLETED",
    "MODEL_CALL_ERROR",
    "MODEL_CALL_RETRY",
    "MODEL_CALL_ABORTED",
    "MICRO_CONSOLIDATION_SKIPPED",
    "MICRO_CONSOLIDATION_DISPATCHED",
    "MICRO_CONSOLIDATION_DISPATCH_FAILED",
    "MICRO_CONSOLIDATION_NO_FACTS",
    "MICRO_CONSOLIDATION_COMPLETED",
    "MICRO_CONSOLIDATION_FAILED",
    "KNOWLEDGE_FACT_APPENDED",
    "BACKGROUND_TASK_ERROR",
]
