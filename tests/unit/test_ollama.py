"""Tests for the Ollama client against a mocked HTTP session."""

from unittest.mock import MagicMock

import pytest
import requests

from context_forge.core.exceptions import LLMError
from context_forge.llm import OllamaClient


def response(payload: dict | None = None, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.ok = status < 400
    resp.json.return_value = payload or {}
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} error")
    return resp


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session: MagicMock) -> OllamaClient:
    return OllamaClient("http://ollama:11434/", "tiny", timeout=7.5, session=session)


class TestAvailability:
    """Tests for the server availability check."""

    def test_available(self, client: OllamaClient, session: MagicMock) -> None:
        session.get.return_value = response({"models": []})

        assert client.is_available()
        session.get.assert_called_once_with("http://ollama:11434/api/tags", timeout=5.0)

    def test_error_status(self, client: OllamaClient, session: MagicMock) -> None:
        session.get.return_value = response(status=500)

        assert not client.is_available()

    def test_connection_refused(self, client: OllamaClient, session: MagicMock) -> None:
        session.get.side_effect = requests.exceptions.ConnectionError("refused")

        assert not client.is_available()


class TestGenerate:
    """Tests for completions."""

    def test_payload_and_timeout(self, client: OllamaClient, session: MagicMock) -> None:
        session.post.return_value = response({"response": "hi"})

        assert client.generate("hello") == "hi"
        session.post.assert_called_once_with(
            "http://ollama:11434/api/generate",
            json={"model": "tiny", "prompt": "hello", "stream": False},
            timeout=7.5,
        )

    def test_missing_response_field(self, client: OllamaClient, session: MagicMock) -> None:
        session.post.return_value = response({"done": True})

        assert client.generate("hello") == ""

    def test_http_error(self, client: OllamaClient, session: MagicMock) -> None:
        session.post.return_value = response(status=404)

        with pytest.raises(LLMError):
            client.generate("hello")

    def test_timeout(self, client: OllamaClient, session: MagicMock) -> None:
        session.post.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(LLMError) as exc_info:
            client.generate("hello")

        assert "slow" in str(exc_info.value)

    def test_bad_json(self, client: OllamaClient, session: MagicMock) -> None:
        resp = response()
        resp.json.side_effect = ValueError("not json")
        session.post.return_value = resp

        with pytest.raises(LLMError):
            client.generate("hello")


class TestPrompts:
    """Tests for the prompt helpers."""

    def test_summarize_mentions_budget(self, client: OllamaClient, session: MagicMock) -> None:
        session.post.return_value = response({"response": "brief"})

        assert client.summarize("long text", max_tokens=200) == "brief"
        prompt = session.post.call_args.kwargs["json"]["prompt"]
        assert "under 200 tokens" in prompt
        assert prompt.endswith("long text")

    def test_extract_facts_strips_bullets(self, client: OllamaClient, session: MagicMock) -> None:
        session.post.return_value = response(
            {"response": "- Use SQLite\n\n-Index on save\n  \nplain line"}
        )

        assert client.extract_facts("text") == ["Use SQLite", "Index on save", "plain line"]

    def test_conflict_detected(self, client: OllamaClient, session: MagicMock) -> None:
        session.post.return_value = response(
            {"response": "CONFLICTS: Yes\nRESOLUTION: keep the newer one "}
        )

        check = client.check_conflict("use REST", "use gRPC")

        assert check.conflicts
        assert check.resolution == "keep the newer one"

    def test_no_conflict(self, client: OllamaClient, session: MagicMock) -> None:
        session.post.return_value = response({"response": "CONFLICTS: no"})

        check = client.check_conflict("a", "b")

        assert not check.conflicts
        assert check.resolution is None
