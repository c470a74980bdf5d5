"""Gemini-backed break suggestion generator.

One request per call, no retries. Every failure surfaces as a
``SuggestionError`` carrying a human-readable reason.
"""

from __future__ import annotations

import json
import logging

import requests
from pydantic import ValidationError

from .models import GeminiResponse, SuggestionError, SuggestionRequest
from .prompt_builder import SYSTEM_PROMPT, build_user_prompt

logger = logging.getLogger("breakbuddy.suggest")

DEFAULT_MODEL = "gemini-2.5-flash"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_TIMEOUT = 20


def extract_suggestion(raw_text: str) -> str:
    """Unwrap ``{"break_suggestion": ...}`` / ``{"suggestion": ...}`` bodies."""
    cleaned = raw_text.strip()
    if cleaned.startswith("{"):
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError:
            return cleaned
        if isinstance(parsed, dict):
            value = parsed.get("break_suggestion") or parsed.get("suggestion")
            if isinstance(value, str) and value.strip():
                return value.strip()
    return cleaned


class GeminiClient:
    """Callable suggestion generator backed by the Gemini REST API."""

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, request: SuggestionRequest) -> str:
        return self.generate(request)

    def build_payload(self, request: SuggestionRequest) -> dict:
        return {
            "contents": [
                {"role": "user", "parts": [{"text": build_user_prompt(request)}]},
            ],
            "systemInstruction": {"role": "system", "parts": [{"text": SYSTEM_PROMPT}]},
            "generationConfig": {
                "temperature": 0.8,
                "topP": 0.8,
                "maxOutputTokens": 1000,
                "responseMimeType": "application/json",
            },
        }

    def generate(self, request: SuggestionRequest) -> str:
        if not self.api_key:
            raise SuggestionError("Gemini API key missing. Set GEMINI_API_KEY and try again.")

        url = GEMINI_URL.format(model=self.model)
        try:
            response = self.session.post(
                url,
                params={"key": self.api_key},
                json=self.build_payload(request),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning(f"Gemini: timeout after {self.timeout}s")
            raise SuggestionError("Gemini took too long to answer. Try again in a moment.")
        except requests.exceptions.RequestException as e:
            logger.warning(f"Gemini: transport error: {e}")
            raise SuggestionError(f"Gemini request failed: {e}")

        if not response.ok:
            detail = response.text[:200] if response.text else "Unknown error"
            logger.warning(f"Gemini: HTTP {response.status_code}")
            raise SuggestionError(f"Gemini request failed ({response.status_code}): {detail}")

        try:
            data = GeminiResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"Gemini: unreadable response: {e}")
            raise SuggestionError("Gemini returned an unreadable response.")

        candidate = data.candidates[0] if data.candidates else None
        raw_text = None
        if candidate is not None and candidate.content is not None:
            raw_text = next((part.text for part in candidate.content.parts if part.text), None)

        if not raw_text:
            if candidate is not None and candidate.finish_reason == "MAX_TOKENS":
                raise SuggestionError(
                    "Gemini hit the token cap before finishing the suggestion. Try again or shorten the prompt."
                )
            raise SuggestionError("Gemini returned an empty suggestion.")

        suggestion = extract_suggestion(raw_text)
        logger.info(f"Gemini: brewed {len(suggestion.split())}-word suggestion")
        return suggestion
