"""Base interface for generative AI completion services."""

from abc import ABC, abstractmethod
from typing import Optional

from .models import CompletionRequest


class CompletionClient(ABC):
    """Abstract base class for AI completion clients.

    A client is built once at process start-up and handed to the pipeline,
    which only ever calls :meth:`complete` or :meth:`complete_async`.
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Get the model name used by this client."""
        pass

    @abstractmethod
    def complete(self, request: CompletionRequest) -> Optional[str]:
        """Send a single request to the service.

        Args:
            request: Instruction text plus optional inline media and history

        Returns:
            The reply text, or None when the service produced no text part.
            The text is untrusted: it may be blank, truncated or wrapped in
            prose, whatever the instruction asked for.
        """
        pass

    async def complete_async(self, request: CompletionRequest) -> Optional[str]:
        """Asynchronously send a single request to the service.

        Args:
            request: Instruction text plus optional inline media and history

        Returns:
            The reply text, or None
        """
        # Default implementation falls back to synchronous version
        return self.complete(request)
