"""
Protocol definitions for AI model services.

These protocols define the interface that LLM implementations must follow,
so the safety classifier can run against any chat-completions backend.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class ModelInfo:
    """Metadata about a configured model."""
    name: str
    model_id: str
    is_loaded: bool
    device: str
    capabilities: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "model_id": self.model_id,
            "is_loaded": self.is_loaded,
            "device": self.device,
            "capabilities": self.capabilities,
        }


@dataclass
class Message:
    """A chat message for LLM conversation."""
    role: str  # "system", "user", "assistant"
    content: str


@runtime_checkable
class LLMService(Protocol):
    """Protocol for async chat-completion services."""

    @property
    def model_info(self) -> ModelInfo:
        """Return metadata about the current model."""
        ...

    @property
    def is_loaded(self) -> bool:
        """Whether the client is ready for requests."""
        ...

    def load(self) -> None:
        """Create the underlying client."""
        ...

    async def aclose(self) -> None:
        """Release the underlying client."""
        ...

    async def chat_async(
        self,
        messages: list[Message],
        max_tokens: int = 256,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        """Generate a response in a chat conversation."""
        ...
