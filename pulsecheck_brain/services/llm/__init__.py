"""LLM service implementations."""

from .openai import OpenAICompatLLM

__all__ = ["OpenAICompatLLM"]
