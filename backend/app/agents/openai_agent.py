from openai import AsyncOpenAI, OpenAIError
from app.agents.base import InferenceAgent
from app.agents.prompts import build_chat_messages
from app.core import config
from app.core.errors import TransportError
from app.schemas.workspace import InferenceResponse
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class OpenAIInferenceAgent(InferenceAgent):
    """Direct OpenAI chat completion; used when no hosted inference URL is configured."""

    def __init__(self):
        self._client: Optional[AsyncOpenAI] = None
        self.model = config.settings.openai_model or "gpt-4o-mini"

    @property
    def client(self) -> AsyncOpenAI:
        # Built on first use so a missing key only fails the request that needs it
        if self._client is None:
            client_config = {"api_key": config.settings.openai_api_key or None}
            if config.settings.openai_base_url:
                client_config["base_url"] = config.settings.openai_base_url
            self._client = AsyncOpenAI(**client_config)
        return self._client

    async def complete(self, messages: List[dict], template: Optional[str] = None) -> InferenceResponse:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=build_chat_messages(messages, template),
            )
        except OpenAIError as e:
            logger.error("OpenAI completion failed: %s", e)
            raise TransportError(f"Inference request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if content is None:
            return InferenceResponse(error="Model returned no content")
        return InferenceResponse(response=content)


def get_inference_agent():
    """Factory: hosted function when ``inference_url`` is set, OpenAI otherwise."""
    from app.agents.http_agent import HttpInferenceAgent

    if config.settings.inference_url:
        return HttpInferenceAgent()
    return OpenAIInferenceAgent()
