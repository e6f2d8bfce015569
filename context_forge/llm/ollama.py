"""Client for a local Ollama server, used to condense long session history."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import requests

from context_forge.core.exceptions import LLMError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "llama3.1:8b"
DEFAULT_TIMEOUT = 30.0
PROBE_TIMEOUT = 5.0

_CONFLICTS_RE = re.compile(r"CONFLICTS:\s*(yes|no)", re.IGNORECASE)
_RESOLUTION_RE = re.compile(r"RESOLUTION:\s*(.+)", re.IGNORECASE)
_BULLET_RE = re.compile(r"^-\s*")


@dataclass
class ConflictCheck:
    conflicts: bool
    resolution: str | None = None


class OllamaClient:
    """Thin wrapper over the Ollama HTTP API.

    Every call carries a timeout. Callers are expected to check
    :meth:`is_available` and take a non-model path when it returns False.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._session = session or requests.Session()

    def is_available(self) -> bool:
        """Probe the server's model list with a short timeout."""
        try:
            response = self._session.get(f"{self.base_url}/api/tags", timeout=PROBE_TIMEOUT)
        except requests.exceptions.RequestException as e:
            logger.debug("ollama unavailable at %s: %s", self.base_url, e)
            return False
        return response.ok

    def generate(self, prompt: str) -> str:
        """Run a single non-streaming completion.

        Raises:
            LLMError: the request failed or the server returned an error status
        """
        payload = {"model": self.model, "prompt": prompt, "stream": False}
        try:
            response = self._session.post(
                f"{self.base_url}/api/generate", json=payload, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise LLMError(f"Ollama request failed: {e}") from e
        return data.get("response", "")

    def summarize(self, text: str, max_tokens: int = 500) -> str:
        prompt = (
            "Summarize the following conversation/content into a concise briefing.\n"
            "Focus on: key decisions made, important technical details, and action items.\n"
            f"Keep the summary under {max_tokens} tokens.\n"
            "Output only the summary, no preamble.\n\n"
            f"Content:\n{text}"
        )
        return self.generate(prompt)

    def extract_facts(self, text: str) -> list[str]:
        """Ask the model for one fact per line and strip list bullets."""
        prompt = (
            "Extract key facts and decisions from the following text.\n"
            'Return each fact on a new line, prefixed with "- ".\n'
            "Focus on: architectural decisions, design patterns chosen, "
            "requirements clarified, problems solved.\n"
            "Output only the facts, no other text.\n\n"
            f"Text:\n{text}"
        )
        response = self.generate(prompt)
        facts = (_BULLET_RE.sub("", line).strip() for line in response.split("\n"))
        return [fact for fact in facts if fact]

    def check_conflict(self, existing: str, new: str) -> ConflictCheck:
        prompt = (
            "Compare these two statements and determine if they conflict:\n\n"
            f"Existing: {existing}\n"
            f"New: {new}\n\n"
            "If they conflict, explain briefly how to resolve it.\n"
            "Format response as:\n"
            "CONFLICTS: yes/no\n"
            "RESOLUTION: (only if conflicts=yes) brief explanation\n\n"
            "Output only in this format."
        )
        response = self.generate(prompt)
        conflicts = _CONFLICTS_RE.search(response)
        resolution = _RESOLUTION_RE.search(response)
        return ConflictCheck(
            conflicts=bool(conflicts) and conflicts.group(1).lower() == "yes",
            resolution=resolution.group(1).strip() if resolution else None,
        )
