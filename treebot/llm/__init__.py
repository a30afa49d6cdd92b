"""Language model adapters."""

from .gemini import GeminiModel, LanguageModel

__all__ = ["GeminiModel", "LanguageModel"]
