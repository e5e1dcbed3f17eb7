"""
Head Brain Orchestrator
Routes a practice question to specialist agents and synthesizes their answers
"""

import asyncio
import re
from typing import Optional, Dict, Any, List

from dentalhub.core.logging import get_logger
from .factory import AgentFactory, get_agent_factory
from .prompts import DEFAULT_ORCHESTRATION_AGENTS, HEAD_BRAIN_METRICS, ROUTING_PROMPT, SYNTHESIS_PROMPT
from .types import AgentType, AIResponse, OrchestrationResult

logger = get_logger(__name__)

RECOMMENDATION_LINE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.+?)\s*$")


def parse_agent_names(text: str) -> List[AgentType]:
    """Agent types named in a reply, in order of appearance"""
    found = []
    upper = (text or "").upper()
    for agent_type in AgentType:
        if agent_type == AgentType.BRAIN_CONSULTANT:
            continue
        match = re.search(rf"\b{agent_type.value}\b", upper)
        if match:
            found.append((match.start(), agent_type))
    return [agent_type for _, agent_type in sorted(found, key=lambda item: item[0])]


def parse_recommendations(text: str) -> List[str]:
    """Bullet and numbered lines of a synthesis"""
    recommendations = []
    for line in (text or "").splitlines():
        match = RECOMMENDATION_LINE.match(line)
        if match:
            recommendations.append(match.group(1))
    return recommendations


class HeadBrainOrchestrator:

    def __init__(self, factory: Optional[AgentFactory] = None, session_key: Optional[str] = None):
        self._factory = factory
        self.session_key = session_key

    @property
    def factory(self) -> AgentFactory:
        return self._factory or get_agent_factory()

    async def process_query(self, query: str, context: Optional[Dict[str, Any]] = None) -> OrchestrationResult:
        """
        Answer a question with the specialist agents

        The brain consultant picks the agents, DATA_RETRIEVAL runs first,
        the rest run concurrently, then the consultant synthesizes.
        """
        consultant = self.factory.get_agent(AgentType.BRAIN_CONSULTANT, self.session_key)

        required = await self.identify_required_agents(query)
        responses = await self.gather_agent_responses(query, required, context)

        combined = "\n\n".join(
            f"{agent_type.value} Response: {response.content}"
            for agent_type, response in responses.items()
        )
        synthesis = await consultant.process_message(SYNTHESIS_PROMPT.format(query=query, responses=combined))

        return OrchestrationResult(
            summary=synthesis.content,
            recommendations=parse_recommendations(synthesis.content) if not synthesis.error else [],
            metrics=HEAD_BRAIN_METRICS,
            agents_involved=list(responses.keys()),
        )

    async def identify_required_agents(self, query: str) -> List[AgentType]:
        consultant = self.factory.get_agent(AgentType.BRAIN_CONSULTANT, self.session_key)
        candidates = "\n".join(t.value for t in AgentType if t != AgentType.BRAIN_CONSULTANT)
        reply = await consultant.process_message(ROUTING_PROMPT.format(agents=candidates, query=query))

        agents = [] if reply.error else parse_agent_names(reply.content)
        if not agents:
            logger.info("No agents identified by the consultant, using defaults")
            agents = list(DEFAULT_ORCHESTRATION_AGENTS)
        return agents

    async def gather_agent_responses(
        self,
        query: str,
        agents: List[AgentType],
        context: Optional[Dict[str, Any]] = None
    ) -> Dict[AgentType, AIResponse]:
        responses: Dict[AgentType, AIResponse] = {}

        if self.factory.is_configured(AgentType.DATA_RETRIEVAL):
            data_agent = self.factory.get_agent(AgentType.DATA_RETRIEVAL, self.session_key)
            responses[AgentType.DATA_RETRIEVAL] = await data_agent.process_message(query, context)
        else:
            logger.warning("DATA_RETRIEVAL agent not configured, skipping")

        others = []
        for agent_type in agents:
            if agent_type == AgentType.DATA_RETRIEVAL or agent_type in others:
                continue
            if not self.factory.is_configured(agent_type):
                logger.warning(f"{agent_type.value} agent not configured, skipping")
                continue
            others.append(agent_type)

        if AgentType.DATA_RETRIEVAL in responses:
            context = {**(context or {}), "retrieved_data": responses[AgentType.DATA_RETRIEVAL].content}

        results = await asyncio.gather(*[
            self.factory.get_agent(agent_type, self.session_key).process_message(query, context)
            for agent_type in others
        ])
        responses.update(zip(others, results))
        return responses
