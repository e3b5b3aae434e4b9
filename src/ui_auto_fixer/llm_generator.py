"""
LLM Generator

Thin ``generate(prompt) -> text`` collaborator over Ollama, Azure OpenAI or
OpenAI. Calls never raise: a missing credential yields "" and a failed call
yields ``ERROR_RESPONSE``, both of which callers treat as "no output".
"""

import os
import re
import time
from typing import Any, Callable, Optional

from . import openai_client
from .logger import ScopedLogger

ERROR_RESPONSE = "An error occurred while fetching the response."

Generate = Callable[[str], str]

# Whole response is one fenced block: keep the body, without the newline before the closing fence
_FENCED_BLOCK = re.compile(r"\A\s*```[A-Za-z0-9_+-]*[ \t]*\r?\n(.*?)\r?\n?```\s*\Z", re.DOTALL)
# Any other line holding only a fence marker
_FENCE_LINE = re.compile(r"^[ \t]*```[A-Za-z0-9_+-]*[ \t]*(?:\r?\n|\Z)", re.MULTILINE)
_JSON_FENCE = re.compile(r"```json\n?")


class GenerationError(Exception):
    """The generator produced no usable content for an item."""


def is_usable_response(text: Optional[str]) -> bool:
    """False for empty output and for the error sentinel."""
    if not text or not text.strip():
        return False
    return text.strip() != ERROR_RESPONSE


def strip_code_fences(text: str) -> str:
    """
    Remove markdown code fences (``` or ```lang) and leading blank lines.

    A response of the form "```typescript\\nBODY\\n```" becomes exactly BODY.
    Text outside the fence markers, trailing whitespace included, is kept.
    """
    text = text or ""
    block = _FENCED_BLOCK.match(text)
    cleaned = block.group(1) if block else _FENCE_LINE.sub("", text)
    return cleaned.lstrip("\r\n")


def clean_json_response(text: str) -> str:
    """Remove ```json fences and surrounding whitespace before json.loads."""
    cleaned = _JSON_FENCE.sub("", text or "")
    cleaned = re.sub(r"```\n?", "", cleaned)
    return cleaned.strip()


class LLMGenerator:
    """
    Sends prompts to the configured LLM provider.

    Provider order: Ollama when OLLAMA_MODEL is set, Azure OpenAI when an
    Azure endpoint is set, OpenAI when OPENAI_API_KEY is set, otherwise none.
    """

    def __init__(
        self,
        logger: ScopedLogger,
        client: Any = None,
        chat_model: Optional[str] = None,
        code_model: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.log = logger.with_scope("LLMGenerator")
        self.sleep = sleep
        self.client = client
        self.provider = "custom" if client is not None else "none"
        self.chat_model = chat_model
        self.code_model = code_model

        if self.client is None:
            self._select_provider()

    def _select_provider(self) -> None:
        ollama_model = os.getenv("OLLAMA_MODEL", "").strip()
        if ollama_model:
            from .ollama_client import get_ollama_llm_client

            self.client = get_ollama_llm_client()
            self.provider = "ollama"
            self.chat_model = self.chat_model or ollama_model
            self.code_model = self.code_model or ollama_model
            self.log.debug(f"Using Ollama LLM: {ollama_model}")
            return

        if not (openai_client.azure_configured() or openai_client.openai_configured()):
            return

        try:
            self.client = openai_client.create_client()
            self.chat_model = self.chat_model or openai_client.get_chat_model()
            self.code_model = self.code_model or openai_client.get_code_model() or self.chat_model
        except RuntimeError as e:
            self.log.warning(f"Could not initialize OpenAI client: {e}")
            self.client = None
            return

        self.provider = "azure" if openai_client.azure_configured() else "openai"
        self.log.debug(f"Using {self.provider} models: chat={self.chat_model}, code={self.code_model}")

    @property
    def available(self) -> bool:
        return self.client is not None

    def ask(self, prompt: str) -> str:
        """
        Send a conversational prompt through chat completions.

        Returns:
            Response text, "" when no provider is configured, or
            ERROR_RESPONSE when the call fails
        """
        log = self.log.with_scope("ask")
        if not self.client:
            log.error("LLM API key missing. Set OPENAI_API_KEY, AZURE_OPENAI_* or OLLAMA_MODEL and try again.")
            return ""
        return self._chat(log, self.chat_model, prompt)

    def ask_code(self, prompt: str) -> str:
        """
        Send a code-generation prompt.

        Uses the responses API (reasoning effort "medium") when the client
        offers it, chat completions otherwise.
        """
        log = self.log.with_scope("askCode")
        if not self.client:
            log.error("LLM API key missing. Set OPENAI_API_KEY, AZURE_OPENAI_* or OLLAMA_MODEL and try again.")
            return ""

        model = self.code_model or self.chat_model
        if getattr(self.client, "responses", None) is None:
            return self._chat(log, model, prompt)

        try:
            start = time.monotonic()
            response = self._with_retries(log, lambda: self.client.responses.create(
                model=model,
                input=prompt,
                reasoning={"effort": "medium"},
            ))
            log.info(f"LLM processing time: {int((time.monotonic() - start) * 1000)}ms")
            usage = getattr(response, "usage", None)
            if usage is not None:
                log.info(
                    f"Input tokens: {getattr(usage, 'input_tokens', None)}, "
                    f"output tokens: {getattr(usage, 'output_tokens', None)}, "
                    f"total: {getattr(usage, 'total_tokens', None)}"
                )
            return getattr(response, "output_text", "") or ""
        except Exception as e:
            log.error(f"LLM API error: {e}")
            return ERROR_RESPONSE

    def _chat(self, log: ScopedLogger, model: Optional[str], prompt: str) -> str:
        try:
            response = self._with_retries(log, lambda: self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
            ))
            usage = getattr(response, "usage", None)
            if usage is not None:
                log.info(
                    f"Input tokens: {getattr(usage, 'prompt_tokens', None)}, "
                    f"output tokens: {getattr(usage, 'completion_tokens', None)}, "
                    f"total: {getattr(usage, 'total_tokens', None)}"
                )
            if not response.choices:
                return ""
            return response.choices[0].message.content or ""
        except Exception as e:
            log.error(f"LLM API error: {e}")
            return ERROR_RESPONSE

    def _with_retries(self, log: ScopedLogger, request: Callable[[], Any]) -> Any:
        return openai_client.call_with_retries(
            request,
            sleep=self.sleep,
            on_retry=lambda attempt, error: log.warning(f"Attempt {attempt} failed ({error}), retrying..."),
        )
