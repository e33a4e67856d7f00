"""Semantic event constants for structured logging.

All log events should use these constants rather than magic strings to ensure
consistency and enable reliable querying and analysis.
"""

# LLM Client events
MODEL_CALL_STARTED = "model_call_started"
MODEL_CALL_COMPLETED = "model_call_completed"
MODEL_CALL_ERROR = "model_call_error"
MODEL_CALL_RETRY = "model_call_retry"
MODEL_CALL_ABORTED = "model_call_aborted"

# Micro-consolidation events
MICRO_CONSOLIDATION_SKIPPED = "micro_consolidation_skipped"
MICRO_CONSOLIDATION_DISPATCHED = "micro_consolidation_dispatched"
MICRO_CONSOLIDATION_DISPATCH_FAILED = "micro_consolidation_dispatch_failed"
MICRO_CONSOLIDATION_NO_FACTS = "micro_consolidation_no_facts"
MICRO_CONSOLIDATION_COMPLETED = "micro_consolidation_completed"
MICRO_CONSOLIDATION_FAILED = "micro_consolidation_failed"

# Knowledge storage events
KNOWLEDGE_FACT_APPENDED = "knowledge_fact_appended"

# Background task events
BACKGROUND_TASK_ERROR = "background_task_error"
