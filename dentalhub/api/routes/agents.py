"""
AI Agent API Routes
Query the specialist practice agents or the Head Brain orchestrator
"""

from typing import List
from fastapi import APIRouter, Depends

from dentalhub.core.logging import get_logger
from dentalhub.agents import (
    AgentFactory,
    AgentQuery,
    AgentType,
    AIResponse,
    HeadBrainOrchestrator,
    OrchestrationResult,
    get_agent_factory,
)
from dentalhub.agents.types import AgentInfo
from dentalhub.models.practice import PracticeContext
from dentalhub.api.middleware.auth import get_practice_context
from dentalhub.api.middleware.rate_limit import rate_limit_practice

logger = get_logger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"], dependencies=[Depends(rate_limit_practice)])


def get_factory() -> AgentFactory:
    """Dependency to get the agent factory"""
    return get_agent_factory()


def _agent_context(query: AgentQuery, context: PracticeContext) -> dict:
    return {**(query.context or {}), "practice_id": context.practice_id}


@router.get("/agents", response_model=List[AgentInfo])
async def list_agents(
    context: PracticeContext = Depends(get_practice_context),
    factory: AgentFactory = Depends(get_factory)
):
    """
    List configured agents and their settings
    """
    return [
        AgentInfo(agent_type=agent_type, config=factory.get_config(agent_type))
        for agent_type in factory.available_agents()
    ]


@router.post("/agents/{agent_type}/query", response_model=AIResponse)
async def query_agent(
    agent_type: AgentType,
    query: AgentQuery,
    context: PracticeContext = Depends(get_practice_context),
    factory: AgentFactory = Depends(get_factory)
):
    """
    Ask a single agent

    Conversation history is kept per practice. Failures come back as an
    `error` in the response rather than an HTTP error.
    """
    agent = factory.get_agent(agent_type, session_key=context.practice_id)
    return await agent.process_message(query.query, _agent_context(query, context))


@router.post("/orchestrate", response_model=OrchestrationResult)
async def orchestrate(
    query: AgentQuery,
    context: PracticeContext = Depends(get_practice_context),
    factory: AgentFactory = Depends(get_factory)
):
    """
    Answer a question with the agents the brain consultant selects

    Returns the synthesized summary, parsed recommendations and the agents
    that contributed.
    """
    orchestrator = HeadBrainOrchestrator(factory, session_key=context.practice_id)
    result = await orchestrator.process_query(query.query, _agent_context(query, context))
    logger.info(f"Orchestrated query for {context.practice_id} with {len(result.agents_involved)} agents")
    return result
