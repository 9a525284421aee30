"""Completion client for title, summary and chat requests."""

import logging
from typing import Any

from openai import OpenAI, OpenAIError

from lumen.config import get_settings

logger = logging.getLogger("lumen")

TITLE_INSTRUCTION = (
    "You are an expert at creating concise, informative titles for notes based on their content. "
    "Generate a short title (max 5 words) for the following text. "
    "Do not add any prefix like 'Title:' or quotes."
)
SUMMARY_INSTRUCTION = (
    "You are an expert at summarizing text. Provide a concise summary of the following content. "
    "Do not include phrases like 'Here is your summary:' or 'In summary,'. "
    "Just provide the summary directly. Do not use bullet points."
)
SUMMARY_PREFIXES = ("Here's a summary:", "Here is a summary:", "Summary:")

TITLE_MAX_TOKENS = 20
SUMMARY_MAX_TOKENS = 200
CHAT_MAX_TOKENS = 500


class CompletionError(Exception):
    """Raised when the completion endpoint cannot produce a usable answer."""


class CompletionClient:
    """Stateless client for one OpenAI-compatible chat-completion endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.COMPLETION_API_KEY
        self.base_url = base_url or settings.COMPLETION_BASE_URL
        self.model = model or settings.COMPLETION_MODEL
        self.temperature = temperature if temperature is not None else settings.COMPLETION_TEMPERATURE
        self._client: OpenAI | None = None

    def _get_client(self) -> OpenAI:
        if not self.api_key:
            raise CompletionError("Completion API key missing")
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def _complete(self, messages: list[dict[str, str]], max_tokens: int) -> str:
        """Send one chat-completion request and return the trimmed first choice."""
        client = self._get_client()
        try:
            completion = client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=self.temperature,
            )
        except OpenAIError as e:
            logger.warning("Completion request failed: %s", e)
            raise CompletionError(f"Request failed: {e}") from e

        if not completion or not completion.choices:
            raise CompletionError("Invalid response: no choices returned")
        content = completion.choices[0].message.content
        if content is None:
            raise CompletionError("Invalid response: empty message")
        return content.strip()

    def generate_title(self, text: str) -> str:
        """Generate a short title. Quote characters are removed."""
        messages = [{"role": "user", "content": f"{TITLE_INSTRUCTION}\n\n{text}"}]
        title = self._complete(messages, max_tokens=TITLE_MAX_TOKENS)
        return title.replace('"', "").strip()

    def generate_summary(self, text: str) -> str:
        """Generate a summary with boilerplate lead-ins stripped."""
        messages = [{"role": "user", "content": f"{SUMMARY_INSTRUCTION}\n\n{text}"}]
        summary = self._complete(messages, max_tokens=SUMMARY_MAX_TOKENS)
        return strip_summary_prefixes(summary)

    def generate_chat_response(self, prompt: str, notes_context: str, history: list[Any]) -> str:
        """Answer a chat turn with the note corpus as system context.

        ``history`` items need ``role`` and ``content`` attributes (ChatMessage rows).
        """
        system_instruction = (
            "CONTEXT FROM USER'S NOTES (Use this to inform your responses):\n"
            f"{notes_context}\n\n"
            "IMPORTANT: Keep your responses concise and to the point."
        )
        messages = [{"role": "system", "content": system_instruction}]
        for turn in history:
            messages.append({"role": turn.role, "content": turn.content})
        messages.append({"role": "user", "content": prompt})
        return self._complete(messages, max_tokens=CHAT_MAX_TOKENS)

    def check_connection(self) -> bool:
        """Probe the endpoint. Logs and returns False instead of raising."""
        try:
            self._get_client().models.list()
        except (CompletionError, OpenAIError) as e:
            logger.warning("Completion endpoint unreachable at %s: %s", self.base_url, e)
            return False
        logger.info("Completion endpoint reachable at %s", self.base_url)
        return True


def strip_summary_prefixes(summary: str) -> str:
    """Remove known lead-in phrases from a generated summary."""
    for prefix in SUMMARY_PREFIXES:
        if summary.lower().startswith(prefix.lower()):
            summary = summary[len(prefix) :].strip()
    return summary


_completion_client: CompletionClient | None = None


def get_completion_client() -> CompletionClient:
    """Get singleton completion client instance."""
    global _completion_client
    if _completion_client is None:
        _completion_client = CompletionClient()
    return _completion_client
