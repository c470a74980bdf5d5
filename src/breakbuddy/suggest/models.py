"""Request/response types shared by the suggestion client and the engine."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..timer.models import Mood


class SuggestionError(Exception):
    """A suggestion could not be produced. The message is shown to the user."""


class SuggestionRequest(BaseModel):
    focus_minutes: int = Field(ge=1)
    mood: Optional[Mood] = None
    previous_suggestion: Optional[str] = None
    session_count: Optional[int] = Field(default=None, ge=0)


# Anything that turns a request into text. Plain callables run in a worker
# thread; coroutine functions are awaited directly.
SuggestionGenerator = Callable[[SuggestionRequest], Union[str, Awaitable[str]]]


# ---- Gemini response shapes ----

class GeminiPart(BaseModel):
    text: Optional[str] = None


class GeminiContent(BaseModel):
    parts: list[GeminiPart] = Field(default_factory=list)


class GeminiCandidate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: Optional[GeminiContent] = None
    finish_reason: Optional[str] = Field(default=None, alias="finishReason")


class GeminiResponse(BaseModel):
    candidates: list[GeminiCandidate] = Field(default_factory=list)
