"""Break suggestion generation (Gemini client and prompt templates)."""

from .client import DEFAULT_MODEL, GeminiClient, extract_suggestion
from .models import SuggestionError, SuggestionGenerator, SuggestionRequest
from .prompt_builder import SYSTEM_PROMPT, build_user_prompt

__all__ = [
    "DEFAULT_MODEL",
    "GeminiClient",
    "SYSTEM_PROMPT",
    "SuggestionError",
    "SuggestionGenerator",
    "SuggestionRequest",
    "build_user_prompt",
    "extract_suggestion",
]
