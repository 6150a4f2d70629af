from abc import ABC, abstractmethod
from typing import List, Optional

from app.schemas.workspace import InferenceResponse


class InferenceAgent(ABC):
    @abstractmethod
    async def complete(
        self,
        messages: List[dict],
        template: Optional[str] = None
    ) -> InferenceResponse:
        """
        Produce one complete assistant reply.

        Args:
            messages: Context window, oldest first, each reduced to {role, content}
            template: Optional starter template the project was created from

        Returns:
            The reply text, optional side-channel HTML and an optional error
            field. Exactly one response per request; nothing is streamed.
        """
        ...
