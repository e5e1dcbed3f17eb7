"""Practice advisor agents"""

from .types import AgentType, AgentConfig, AIResponse, AgentQuery, OrchestrationResult
from .base import BaseAgent
from .factory import AgentFactory, get_agent_factory, reset_agent_factory
from .orchestrator import HeadBrainOrchestrator

__all__ = [
    "AgentType",
    "AgentConfig",
    "AIResponse",
    "AgentQuery",
    "OrchestrationResult",
    "BaseAgent",
    "AgentFactory",
    "get_agent_factory",
    "reset_agent_factory",
    "HeadBrainOrchestrator",
]
