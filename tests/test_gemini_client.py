"""GeminiClient tests with a mocked requests session (no network)."""

from unittest.mock import MagicMock

import pytest
import requests

from breakbuddy.suggest import GeminiClient, SuggestionError, SuggestionRequest, build_user_prompt, extract_suggestion
from breakbuddy.timer.models import Mood


def make_response(status: int = 200, payload=None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


def gemini_payload(text=None, finish_reason="STOP") -> dict:
    parts = [{"text": text}] if text is not None else []
    return {"candidates": [{"content": {"parts": parts}, "finishReason": finish_reason}]}


def make_client(response=None, error=None, api_key="test-key") -> GeminiClient:
    session = MagicMock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = response
    return GeminiClient(api_key=api_key, model="gemini-test", timeout=5, session=session)


REQUEST = SuggestionRequest(focus_minutes=25, mood=Mood.ANGRY, previous_suggestion="Drink water.", session_count=3)


class TestGenerate:
    def test_success_unwraps_json_body(self):
        client = make_client(make_response(payload=gemini_payload('{"break_suggestion": "Unclench your jaw."}')))
        assert client(REQUEST) == "Unclench your jaw."

    def test_plain_text_body(self):
        client = make_client(make_response(payload=gemini_payload("  Go touch grass.  ")))
        assert client.generate(REQUEST) == "Go touch grass."

    def test_request_shape(self):
        client = make_client(make_response(payload=gemini_payload("ok")))
        client(REQUEST)

        args, kwargs = client.session.post.call_args
        assert args[0].endswith("/models/gemini-test:generateContent")
        assert kwargs["params"] == {"key": "test-key"}
        assert kwargs["timeout"] == 5
        body = kwargs["json"]
        assert body["generationConfig"]["responseMimeType"] == "application/json"
        assert "under 25 words" in body["systemInstruction"]["parts"][0]["text"]
        assert "25 minutes" in body["contents"][0]["parts"][0]["text"]

    def test_missing_key(self):
        client = make_client(make_response(payload=gemini_payload("ok")), api_key=None)
        with pytest.raises(SuggestionError, match="API key"):
            client(REQUEST)
        client.session.post.assert_not_called()

    def test_http_error(self):
        client = make_client(make_response(status=429, text="quota exceeded"))
        with pytest.raises(SuggestionError, match="429"):
            client(REQUEST)

    def test_timeout(self):
        client = make_client(error=requests.exceptions.Timeout())
        with pytest.raises(SuggestionError, match="too long"):
            client(REQUEST)

    def test_connection_error(self):
        client = make_client(error=requests.exceptions.ConnectionError("dns down"))
        with pytest.raises(SuggestionError, match="request failed"):
            client(REQUEST)

    def test_unreadable_json(self):
        client = make_client(make_response(payload=ValueError("bad json")))
        with pytest.raises(SuggestionError, match="unreadable"):
            client(REQUEST)

    def test_max_tokens(self):
        client = make_client(make_response(payload=gemini_payload(finish_reason="MAX_TOKENS")))
        with pytest.raises(SuggestionError, match="token cap"):
            client(REQUEST)

    def test_empty_candidates(self):
        client = make_client(make_response(payload={"candidates": []}))
        with pytest.raises(SuggestionError, match="empty"):
            client(REQUEST)


class TestPrompt:
    def test_includes_mood_session_and_previous(self):
        prompt = build_user_prompt(REQUEST)
        assert "😠" in prompt
        assert "Session count today: 3." in prompt
        assert '"Drink water."' in prompt

    def test_defaults(self):
        prompt = build_user_prompt(SuggestionRequest(focus_minutes=5))
        assert "none provided" in prompt
        assert "not provided" in prompt
        assert "No previous suggestion" in prompt

    def test_request_rejects_zero_minutes(self):
        with pytest.raises(ValueError):
            SuggestionRequest(focus_minutes=0)


class TestExtractSuggestion:
    def test_alternate_key(self):
        assert extract_suggestion('{"suggestion": "Blink."}') == "Blink."

    def test_invalid_json_passthrough(self):
        assert extract_suggestion("{oops") == "{oops"
