"""Runtime configuration handed to agent services.

AgentConfig wraps the validated AppConfig and owns the collaborators that
services reach through it: the session's forever-mode flag, the completion
client and the knowledge storage.
"""

from typing import TYPE_CHECKING

from micro_consolidation.config.settings import AppConfig, get_settings
from micro_consolidation.memory.storage import KnowledgeStorage

if TYPE_CHECKING:
    from micro_consolidation.llm_client.client import BaseLLMClient


class AgentConfig:
    """Session-level configuration.

    Args:
        settings: Application settings. If None, uses the settings singleton.
        llm_client: Completion client. If None, one is built from settings on
            first use.
        storage: Knowledge storage. If None, uses settings.knowledge_dir.
    """

    def __init__(
        self,
        settings: AppConfig | None = None,
        llm_client: "BaseLLMClient | None" = None,
        storage: KnowledgeStorage | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._forever_mode = self.settings.forever_mode
        self._llm_client = llm_client
        self.storage = storage or KnowledgeStorage(self.settings.knowledge_dir)

    def is_forever_mode(self) -> bool:
        return self._forever_mode

    def set_forever_mode(self, enabled: bool) -> None:
        self._forever_mode = enabled

    def get_base_llm_client(self) -> "BaseLLMClient":
        """Get the completion client, creating it from settings if needed."""
        if self._llm_client is None:
            from micro_consolidation.llm_client.client import BaseLLMClient  # noqa: PLC0415

            self._llm_client = BaseLLMClient(
                base_url=self.settings.llm_base_url,
                api_key=self.settings.llm_api_key,
                timeout_seconds=self.settings.llm_timeout_seconds,
                max_retries=self.settings.llm_max_retries,
            )
        return self._llm_client
