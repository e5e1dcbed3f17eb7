"""
Agent Factory
Builds agent configurations from settings and hands out agent instances
"""

from typing import Optional, Dict, List, Tuple

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import AgentNotConfiguredError
from dentalhub.services.openai_service import OpenAIService
from .base import BaseAgent
from .prompts import AGENT_PROMPTS
from .types import AgentConfig, AgentType

logger = get_logger(__name__)


class AgentFactory:
    """
    Registry of configured agents

    An agent type is configured when OpenAI credentials exist and the type
    has an assistant id or a system prompt. Instances are created on first
    use and kept per session key so conversation history is never shared
    between practices.
    """

    def __init__(
        self,
        openai_service: Optional[OpenAIService] = None,
        assistants: Optional[Dict[str, str]] = None,
        api_key: Optional[str] = None
    ):
        self.openai_service = openai_service
        self.configs: Dict[AgentType, AgentConfig] = {}
        self.agents: Dict[Tuple[AgentType, Optional[str]], BaseAgent] = {}
        self._initialize_configs(
            assistants if assistants is not None else settings.agent_assistants,
            api_key or settings.openai_api_key,
        )

    def _initialize_configs(self, assistants: Dict[str, str], api_key: Optional[str]):
        if not api_key and self.openai_service is None:
            logger.warning("OPENAI_API_KEY not set, no agents configured")
            return

        for agent_type in AgentType:
            assistant_id = assistants.get(agent_type.value) or assistants.get(agent_type.value.lower())
            system_prompt = AGENT_PROMPTS.get(agent_type)
            if not assistant_id and not system_prompt:
                continue

            self.configs[agent_type] = AgentConfig(
                agent_type=agent_type,
                assistant_id=assistant_id,
                model=settings.openai_model,
                system_prompt=system_prompt,
                api_key=api_key,
            )

        logger.info(f"Configured {len(self.configs)} agents")

    def is_configured(self, agent_type: AgentType) -> bool:
        return AgentType(agent_type) in self.configs

    def get_config(self, agent_type: AgentType) -> AgentConfig:
        agent_type = AgentType(agent_type)
        config = self.configs.get(agent_type)
        if not config:
            raise AgentNotConfiguredError(agent_type.value)
        return config

    def get_agent(self, agent_type: AgentType, session_key: Optional[str] = None) -> BaseAgent:
        """
        Get an agent instance

        Args:
            agent_type: Which agent
            session_key: Keeps a separate conversation per key (e.g. practice id)

        Raises:
            AgentNotConfiguredError: If the agent type has no configuration
        """
        agent_type = AgentType(agent_type)
        key = (agent_type, session_key)
        if key not in self.agents:
            self.agents[key] = BaseAgent(self.get_config(agent_type), self.openai_service)
        return self.agents[key]

    def available_agents(self) -> List[AgentType]:
        return list(self.configs.keys())


# Singleton instance
_agent_factory: Optional[AgentFactory] = None


def get_agent_factory() -> AgentFactory:
    """Get the AgentFactory singleton instance"""
    global _agent_factory
    if _agent_factory is None:
        _agent_factory = AgentFactory()
    return _agent_factory


def reset_agent_factory():
    global _agent_factory
    _agent_factory = None
