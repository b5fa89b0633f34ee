"""Abstract base for LLM providers."""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from dataclasses import dataclass

from src.logging.audit import get_audit_logger
from src.relay.models import Message, Service


@dataclass
class StreamChunk:
    text_delta: str        # Extracted text for relay/accumulation
    is_done: bool = False  # True for terminal signal


class LLMProvider(ABC):
    """Base class for LLM provider implementations."""

    service: Service

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model/deployment used when the request names none."""
        ...

    def resolve_model(self, deployment: str | None) -> str:
        if deployment:
            return deployment
        model = self.default_model
        get_audit_logger().info(
            "No deployment provided, using default",
            extra={"audit_data": {"service": self.service.value, "deployment": model}},
        )
        return model

    @abstractmethod
    def stream_chat(
        self, messages: list[Message], model: str, params: dict
    ) -> AsyncGenerator[StreamChunk, None]:
        """Stream a chat completion.

        Args:
            messages: Ordered conversation, system message first.
            model: Provider-specific model or deployment identifier.
            params: Generation options (temperature, max tokens, ...).

        Yields StreamChunk objects; raises HTTPException on provider failure.
        """
        ...

    async def close(self) -> None:
        """Cleanup resources. Override if provider holds connections."""
        pass
