"""
Ollama Client

Chat completions against a local Ollama server, exposed through the same
``client.chat.completions.create()`` shape as the OpenAI client.
"""

import os
from typing import Any, Dict, List, Optional

import requests

DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "deepseek-r1:latest"


class OllamaLLMClient:
    """Client for chat completions using Ollama."""

    def __init__(self, host: str = None, model: str = None, timeout: float = 600):
        """
        Initialize Ollama LLM client.

        Args:
            host: Ollama host URL (defaults to OLLAMA_HOST env var)
            model: Model name (defaults to OLLAMA_MODEL env var)
            timeout: Request timeout in seconds; reasoning models are slow
        """
        self.host = (host or os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST)).rstrip("/")
        self.model = model or os.getenv("OLLAMA_MODEL", DEFAULT_OLLAMA_MODEL)
        self.timeout = timeout
        self.chat_url = f"{self.host}/api/chat"

    def chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Generate chat completion.

        Returns:
            Response dict in OpenAI format

        Raises:
            RuntimeError: Request failed or returned no content
        """
        model = model or self.model
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "stream": False,
        }
        if temperature is not None:
            payload["options"] = {"temperature": temperature}

        try:
            response = requests.post(self.chat_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise RuntimeError(f"Ollama chat request failed: {e}") from e
        except ValueError as e:
            raise RuntimeError(f"Invalid Ollama response format: {e}") from e

        content = (data.get("message") or {}).get("content", "")
        if not content:
            raise RuntimeError("Empty response from Ollama")

        prompt_tokens = data.get("prompt_eval_count", 0)
        completion_tokens = data.get("eval_count", 0)
        return {
            "choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": "stop", "index": 0}],
            "model": model,
            "usage": {
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        }


class OllamaUsage:
    def __init__(self, usage: Dict[str, int]):
        self.prompt_tokens = usage.get("prompt_tokens", 0)
        self.completion_tokens = usage.get("completion_tokens", 0)
        self.total_tokens = usage.get("total_tokens", 0)


class OllamaMessage:
    def __init__(self, message_data: Dict[str, str]):
        self.role = message_data.get("role", "assistant")
        self.content = message_data.get("content", "")


class OllamaChoice:
    def __init__(self, choice_data: Dict[str, Any]):
        self.message = OllamaMessage(choice_data.get("message", {}))
        self.finish_reason = choice_data.get("finish_reason", "stop")
        self.index = choice_data.get("index", 0)


class OllamaChatResponse:
    """Response object compatible with OpenAI chat completion response."""

    def __init__(self, response_dict: Dict[str, Any]):
        self.choices = [OllamaChoice(c) for c in response_dict.get("choices", [])]
        self.model = response_dict.get("model", "")
        self.usage = OllamaUsage(response_dict.get("usage", {}))


class OllamaLLMAdapter:
    """
    Adapter to make Ollama LLM client compatible with OpenAI client interface.

    Provides client.chat.completions.create(). There is no ``responses``
    attribute, so code prompts fall back to chat completions.
    """

    def __init__(self, host: str = None, model: str = None):
        self.client = OllamaLLMClient(host, model)
        self.chat = self
        self.completions = self

    def create(self, model: str, messages: List[Dict[str, str]], temperature: Optional[float] = None, **kwargs):
        return OllamaChatResponse(
            self.client.chat_completion(messages=messages, model=model, temperature=temperature)
        )


def get_ollama_llm_client() -> OllamaLLMAdapter:
    return OllamaLLMAdapter()
