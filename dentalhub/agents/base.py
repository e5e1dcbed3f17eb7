"""
Base Agent
Conversation history and OpenAI calls shared by every practice agent
"""

import json
from typing import Optional, Dict, Any, List

from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import DentalHubException, OpenAIServiceError
from dentalhub.services.openai_service import OpenAIService, get_openai_service
from dentalhub.utils.retry import RetryError, backoff_delays, retry_async_operation
from .types import AgentConfig, AgentMessage, AIError, AIResponse

logger = get_logger(__name__)

MAX_HISTORY_LENGTH = 10
ERROR_REPLY = "An error occurred while processing your message."

# Failures worth another attempt; rejected requests ("api", "run_failed") are not
RETRYABLE_ERROR_TYPES = ("rate_limit", "network", "unknown")


class BaseAgent:
    """
    An agent answering questions through OpenAI

    Agents with an assistant id run that OpenAI assistant; the others use
    chat completions with their system prompt and recent history.
    """

    def __init__(self, config: AgentConfig, openai_service: Optional[OpenAIService] = None):
        self.config = config
        self._openai = openai_service
        self.history: List[AgentMessage] = []

    @property
    def openai(self) -> OpenAIService:
        return self._openai or get_openai_service()

    @property
    def agent_type(self):
        return self.config.agent_type

    def get_config(self) -> Dict[str, Any]:
        return self.config.model_dump(mode="json")

    def get_history(self) -> List[AgentMessage]:
        return list(self.history)

    def _add_to_history(self, message: AgentMessage):
        self.history.append(message)
        if len(self.history) > MAX_HISTORY_LENGTH:
            self.history = self.history[-MAX_HISTORY_LENGTH:]

    async def process_message(self, message: str, context: Optional[Dict[str, Any]] = None) -> AIResponse:
        """
        Answer a message; failures come back as an AIResponse with error set

        Args:
            message: The user's question
            context: Optional practice data to ground the answer

        Returns:
            The agent's reply
        """
        self._add_to_history(AgentMessage(role="user", content=message))

        try:
            result = await self._generate(message, context)
        except DentalHubException as e:
            logger.error(f"{self.agent_type.value} agent failed: {e.message}")
            return AIResponse(
                content=ERROR_REPLY,
                agent_type=self.agent_type,
                error=AIError(code=e.error_code, message=e.message, retryable=getattr(e, "retryable", False)),
            )
        except Exception as e:
            logger.exception(f"{self.agent_type.value} agent failed unexpectedly")
            return AIResponse(
                content=ERROR_REPLY,
                agent_type=self.agent_type,
                error=AIError(code=type(e).__name__, message=str(e), retryable=True),
            )

        metadata = {k: v for k, v in result.items() if k in ("usage", "finish_reason", "thread_id", "run_id")}
        self._add_to_history(AgentMessage(role="assistant", content=result["content"], metadata=metadata))
        return AIResponse(content=result["content"], agent_type=self.agent_type, metadata=metadata)

    async def _generate(self, message: str, context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        retry = self.config.retry

        async def attempt():
            result = await self._request(message, context)
            if not result.get("success"):
                raise OpenAIServiceError(
                    result.get("error", "unknown error"),
                    retryable=result.get("error_type") in RETRYABLE_ERROR_TYPES,
                )
            return result

        try:
            return await retry_async_operation(
                attempt,
                exceptions=(OpenAIServiceError,),
                operation_name=f"{self.agent_type.value} agent",
                delays=backoff_delays(retry.max_retries + 1, retry.initial_delay, retry.backoff_factor),
            )
        except RetryError as e:
            raise e.last_exception

    async def _request(self, message: str, context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if self.config.assistant_id:
            prompt = message
            if context:
                prompt += f"\n\nPractice context:\n{json.dumps(context, default=str)}"
            return await self.openai.run_assistant(self.config.assistant_id, prompt)

        system_prompt = self.config.system_prompt or ""
        if context:
            system_prompt += f"\n\nPractice context:\n{json.dumps(context, default=str)}"

        messages = [{"role": m.role, "content": m.content} for m in self.history]
        return await self.openai.chat_completion(
            messages=messages,
            model=self.config.model,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            system_prompt=system_prompt or None,
        )
