"""
OpenAI LLM Service
Chat completions and assistant runs used by the practice agents
"""

import asyncio
from typing import Optional, Dict, Any, List
import openai
from openai import AsyncOpenAI

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import ServiceNotConfiguredError

logger = get_logger(__name__)

RUN_POLL_INTERVAL_SECONDS = 1.0
RUN_MAX_POLLS = 60


class OpenAIService:
    """Service for interacting with OpenAI API"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_model
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise ServiceNotConfiguredError("OpenAI", "OPENAI_API_KEY")
            # Retries are handled by the agents
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=30.0, max_retries=0)
        return self._client

    @staticmethod
    def _error(e: Exception) -> Dict[str, Any]:
        if isinstance(e, openai.RateLimitError):
            return {"success": False, "error": f"rate limit: {str(e)}", "error_type": "rate_limit"}
        if isinstance(e, (openai.APITimeoutError, openai.APIConnectionError)):
            return {"success": False, "error": f"timeout: {str(e)}", "error_type": "network"}
        if isinstance(e, openai.APIError):
            return {"success": False, "error": f"API error: {str(e)}", "error_type": "api"}
        return {"success": False, "error": str(e), "error_type": "unknown"}

    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
        system_prompt: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Generate a chat completion

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Optional model override
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
            system_prompt: Optional system prompt to prepend

        Returns:
            Completion response
        """
        logger.debug(f"Generating chat completion with {len(messages)} messages")

        try:
            full_messages = []

            if system_prompt:
                full_messages.append({
                    "role": "system",
                    "content": system_prompt
                })

            full_messages.extend(messages)

            response = await self.client.chat.completions.create(
                model=model or self.model,
                messages=full_messages,
                temperature=temperature,
                max_tokens=max_tokens
            )

            return {
                "success": True,
                "content": response.choices[0].message.content,
                "role": response.choices[0].message.role,
                "finish_reason": response.choices[0].finish_reason,
                "usage": {
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "total_tokens": response.usage.total_tokens
                }
            }

        except ServiceNotConfiguredError:
            raise
        except Exception as e:
            logger.error(f"Failed to generate completion: {str(e)}")
            return self._error(e)

    async def run_assistant(
        self,
        assistant_id: str,
        prompt: str,
        poll_interval: float = RUN_POLL_INTERVAL_SECONDS,
        max_polls: int = RUN_MAX_POLLS
    ) -> Dict[str, Any]:
        """
        Run a configured OpenAI assistant on a fresh thread

        Args:
            assistant_id: Assistant to run
            prompt: User message
            poll_interval: Seconds between run status checks
            max_polls: Checks before giving up

        Returns:
            Response dict with the last assistant message as content
        """
        logger.debug(f"Running assistant {assistant_id}")

        try:
            client = self.client
            thread = await client.beta.threads.create()
            await client.beta.threads.messages.create(thread.id, role="user", content=prompt)
            run = await client.beta.threads.runs.create(thread.id, assistant_id=assistant_id)

            for _ in range(max_polls):
                run = await client.beta.threads.runs.retrieve(run.id, thread_id=thread.id)
                if run.status == "completed":
                    break
                if run.status in ("failed", "cancelled", "expired"):
                    message = run.last_error.message if run.last_error else f"Run {run.status}"
                    return {"success": False, "error": message, "error_type": "run_failed"}
                await asyncio.sleep(poll_interval)
            else:
                return {"success": False, "error": "timeout: assistant run did not finish", "error_type": "network"}

            messages = await client.beta.threads.messages.list(thread.id, order="desc")
            for message in messages.data:
                if message.role == "assistant" and message.content:
                    return {
                        "success": True,
                        "content": message.content[0].text.value,
                        "role": "assistant",
                        "thread_id": thread.id,
                        "run_id": run.id
                    }

            return {"success": False, "error": "No response received from assistant", "error_type": "api"}

        except ServiceNotConfiguredError:
            raise
        except Exception as e:
            logger.error(f"Assistant run failed: {str(e)}")
            return self._error(e)


# Singleton instance
_openai_service: Optional[OpenAIService] = None


def get_openai_service() -> OpenAIService:
    global _openai_service
    if _openai_service is None:
        _openai_service = OpenAIService()
    return _openai_service
