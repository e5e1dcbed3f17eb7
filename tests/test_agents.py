"""
Tests for practice agents and the Head Brain orchestrator
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from dentalhub.core.exceptions import AgentNotConfiguredError
from dentalhub.agents import AgentFactory, AgentType, AIResponse, HeadBrainOrchestrator
from dentalhub.agents.base import ERROR_REPLY, MAX_HISTORY_LENGTH
from dentalhub.agents.orchestrator import parse_agent_names, parse_recommendations
from dentalhub.agents.prompts import DEFAULT_ORCHESTRATION_AGENTS


class TestAgentFactory:
    """Tests for agent configuration"""

    def test_every_agent_with_a_prompt_is_configured(self, mock_openai_service):
        factory = AgentFactory(openai_service=mock_openai_service, assistants={})
        assert len(factory.available_agents()) == len(AgentType)
        assert factory.is_configured(AgentType.OSHA_COMPLIANCE)

    def test_assistant_ids_are_attached(self, mock_openai_service):
        factory = AgentFactory(openai_service=mock_openai_service, assistants={"data_retrieval": "asst_1"})
        assert factory.get_config(AgentType.DATA_RETRIEVAL).assistant_id == "asst_1"
        assert factory.get_config(AgentType.ANALYSIS).assistant_id is None

    def test_agents_are_kept_per_session(self, mock_openai_service):
        factory = AgentFactory(openai_service=mock_openai_service, assistants={})
        first = factory.get_agent(AgentType.ANALYSIS, "practice-1")
        assert factory.get_agent(AgentType.ANALYSIS, "practice-1") is first
        assert factory.get_agent(AgentType.ANALYSIS, "practice-2") is not first

    @patch("dentalhub.agents.factory.settings")
    def test_no_agents_without_credentials(self, mock_settings):
        mock_settings.openai_api_key = None
        mock_settings.agent_assistants = {}
        factory = AgentFactory()

        assert factory.available_agents() == []
        with pytest.raises(AgentNotConfiguredError) as exc_info:
            factory.get_agent(AgentType.ANALYSIS)
        assert exc_info.value.status_code == 404

    def test_config_hides_api_key(self, mock_openai_service):
        factory = AgentFactory(openai_service=mock_openai_service, assistants={}, api_key="sk-secret")
        config = factory.get_agent(AgentType.ANALYSIS).get_config()
        assert "api_key" not in config
        assert "system_prompt" not in config


class TestBaseAgent:
    """Tests for answering messages"""

    @pytest.fixture
    def factory(self, mock_openai_service):
        return AgentFactory(openai_service=mock_openai_service, assistants={"DATA_RETRIEVAL": "asst_1"})

    @pytest.mark.asyncio
    async def test_chat_completion_reply(self, factory, mock_openai_service):
        agent = factory.get_agent(AgentType.ANALYSIS, "practice-1")
        response = await agent.process_message("How is production this month?", {"practice_id": "practice-1"})

        assert response.content == "Test response"
        assert response.agent_type == AgentType.ANALYSIS
        assert response.error is None
        assert response.metadata["usage"] == {"total_tokens": 42}

        kwargs = mock_openai_service.chat_completion.call_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "How is production this month?"}]
        assert "practice-1" in kwargs["system_prompt"]
        assert [m.role for m in agent.get_history()] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_assistant_reply(self, factory, mock_openai_service):
        agent = factory.get_agent(AgentType.DATA_RETRIEVAL)
        response = await agent.process_message("Pull last week's schedule")

        assert response.content == "Assistant response"
        assert response.metadata["thread_id"] == "thread-1"
        assert mock_openai_service.run_assistant.call_args.args[0] == "asst_1"
        mock_openai_service.chat_completion.assert_not_called()

    @pytest.mark.asyncio
    async def test_history_is_capped(self, factory):
        agent = factory.get_agent(AgentType.ANALYSIS)
        for i in range(8):
            await agent.process_message(f"question {i}")

        history = agent.get_history()
        assert len(history) == MAX_HISTORY_LENGTH
        assert history[-1].role == "assistant"
        assert history[-2].content == "question 7"

    @pytest.mark.asyncio
    async def test_api_error_is_reported_not_retried(self, factory, mock_openai_service):
        mock_openai_service.chat_completion.return_value = {
            "success": False,
            "error": "invalid request",
            "error_type": "api",
        }
        agent = factory.get_agent(AgentType.ANALYSIS)
        response = await agent.process_message("Hello")

        assert response.content == ERROR_REPLY
        assert response.error.code == "OPENAI_ERROR"
        assert response.error.retryable is False
        assert mock_openai_service.chat_completion.await_count == 1
        assert len(agent.get_history()) == 1

    @pytest.mark.asyncio
    async def test_network_error_is_retried(self, factory, mock_openai_service):
        mock_openai_service.chat_completion.side_effect = [
            {"success": False, "error": "timeout: read timed out", "error_type": "network"},
            {"success": True, "content": "Recovered", "usage": {"total_tokens": 7}},
        ]
        agent = factory.get_agent(AgentType.ANALYSIS)

        with patch("dentalhub.utils.retry.asyncio.sleep", new=AsyncMock()):
            response = await agent.process_message("Hello")

        assert response.error is None
        assert response.content == "Recovered"
        assert mock_openai_service.chat_completion.await_count == 2

    @pytest.mark.asyncio
    async def test_persistent_network_error_is_retryable(self, factory, mock_openai_service):
        mock_openai_service.chat_completion.return_value = {
            "success": False,
            "error": "timeout: read timed out",
            "error_type": "network",
        }
        agent = factory.get_agent(AgentType.ANALYSIS)

        with patch("dentalhub.utils.retry.asyncio.sleep", new=AsyncMock()):
            response = await agent.process_message("Hello")

        assert response.error.code == "OPENAI_ERROR"
        assert response.error.retryable is True
        assert mock_openai_service.chat_completion.await_count == agent.config.retry.max_retries + 1

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reported(self, factory, mock_openai_service):
        mock_openai_service.chat_completion.side_effect = RuntimeError("boom")
        response = await factory.get_agent(AgentType.ANALYSIS).process_message("Hello")

        assert response.content == ERROR_REPLY
        assert response.error.code == "RuntimeError"


class TestOrchestratorParsing:

    def test_agent_names_in_order(self):
        text = "Start with RECOMMENDATION, then DATA_RETRIEVAL. BRAIN_CONSULTANT will summarize."
        assert parse_agent_names(text) == [AgentType.RECOMMENDATION, AgentType.DATA_RETRIEVAL]

    def test_agent_names_are_whole_words(self):
        assert parse_agent_names("DATA_ANALYSIS") == [AgentType.DATA_ANALYSIS]
        assert parse_agent_names("") == []

    def test_recommendations(self):
        text = "Summary line\n- Recall overdue patients\n* Add hygiene slots\n1. Review fees\n2) Train staff\nDone."
        assert parse_recommendations(text) == [
            "Recall overdue patients",
            "Add hygiene slots",
            "Review fees",
            "Train staff",
        ]


def make_agent(content: str) -> MagicMock:
    agent = MagicMock()
    agent.process_message = AsyncMock(return_value=AIResponse(content=content))
    return agent


class TestHeadBrainOrchestrator:
    """Tests for routing and synthesis"""

    @pytest.fixture
    def agents(self):
        consultant = MagicMock()
        consultant.process_message = AsyncMock(side_effect=[
            AIResponse(content="Use ANALYSIS and DATA_RETRIEVAL"),
            AIResponse(content="Production is below target.\n- Recall overdue patients\n2. Add hygiene slots"),
        ])
        return {
            AgentType.BRAIN_CONSULTANT: consultant,
            AgentType.DATA_RETRIEVAL: make_agent("42 open hygiene slots"),
            AgentType.ANALYSIS: make_agent("Hygiene is underbooked"),
            AgentType.RECOMMENDATION: make_agent("Run a recall campaign"),
        }

    @pytest.fixture
    def factory(self, agents):
        factory = MagicMock()
        factory.is_configured.side_effect = lambda agent_type: agent_type in agents
        factory.get_agent.side_effect = lambda agent_type, session_key=None: agents[agent_type]
        return factory

    @pytest.mark.asyncio
    async def test_process_query(self, factory, agents):
        orchestrator = HeadBrainOrchestrator(factory, session_key="practice-1")
        result = await orchestrator.process_query("Why is production down?", {"practice_id": "practice-1"})

        assert result.agents_involved == [AgentType.DATA_RETRIEVAL, AgentType.ANALYSIS]
        assert result.recommendations == ["Recall overdue patients", "Add hygiene slots"]
        assert result.summary.startswith("Production is below target.")
        assert "clinical" in result.metrics

        assert agents[AgentType.BRAIN_CONSULTANT].process_message.await_count == 2
        synthesis_prompt = agents[AgentType.BRAIN_CONSULTANT].process_message.call_args.args[0]
        assert "DATA_RETRIEVAL Response: 42 open hygiene slots" in synthesis_prompt

        analysis_context = agents[AgentType.ANALYSIS].process_message.call_args.args[1]
        assert analysis_context["retrieved_data"] == "42 open hygiene slots"
        assert analysis_context["practice_id"] == "practice-1"
        agents[AgentType.RECOMMENDATION].process_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_defaults_when_no_agents_named(self, factory, agents):
        agents[AgentType.BRAIN_CONSULTANT].process_message.side_effect = None
        agents[AgentType.BRAIN_CONSULTANT].process_message.return_value = AIResponse(content="Not sure")

        orchestrator = HeadBrainOrchestrator(factory)
        assert await orchestrator.identify_required_agents("Anything?") == DEFAULT_ORCHESTRATION_AGENTS

    @pytest.mark.asyncio
    async def test_unconfigured_agents_are_skipped(self, factory, agents):
        del agents[AgentType.DATA_RETRIEVAL]
        orchestrator = HeadBrainOrchestrator(factory)

        responses = await orchestrator.gather_agent_responses(
            "Why?", [AgentType.DATA_RETRIEVAL, AgentType.RECOMMENDATION, AgentType.OSHA_COMPLIANCE]
        )
        assert list(responses) == [AgentType.RECOMMENDATION]
        assert agents[AgentType.RECOMMENDATION].process_message.call_args.args[1] is None
