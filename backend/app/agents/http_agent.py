"""Inference through a hosted HTTP function that takes {messages, template}."""

import logging
from typing import List, Optional

import httpx

from app.agents.base import InferenceAgent
from app.core import config
from app.core.errors import TransportError
from app.schemas.workspace import InferenceResponse

logger = logging.getLogger(__name__)


class HttpInferenceAgent(InferenceAgent):
    """POSTs the context window to the configured inference URL and returns its JSON reply."""

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None):
        self.url = url or config.settings.inference_url
        self.timeout = timeout or config.settings.inference_timeout

    async def complete(self, messages: List[dict], template: Optional[str] = None) -> InferenceResponse:
        if not self.url:
            raise TransportError("No inference URL configured")

        payload = {"messages": messages, "template": template}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=payload)
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Inference request to %s failed: %s", self.url, e)
            raise TransportError(f"Inference request failed: {e}") from e

        if not isinstance(data, dict):
            raise TransportError("Inference endpoint returned an unexpected payload")

        return InferenceResponse(
            response=data.get("response") or "",
            html=data.get("html"),
            error=data.get("error") or (None if response.is_success else f"HTTP {response.status_code}"),
        )
