"""
AI model services for PulseCheck Brain.

This module provides:
- Protocol definitions for LLM services
- The OpenAI-compatible chat client used by the safety classifier
"""

from .llm import OpenAICompatLLM
from .protocols import (
    LLMService,
    Message,
    ModelInfo,
)

__all__ = [
    # Protocols
    "LLMService",
    "ModelInfo",
    "Message",
    # Implementations
    "OpenAICompatLLM",
]
