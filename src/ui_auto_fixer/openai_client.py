# src/ui_auto_fixer/openai_client.py
import time
from typing import Any, Callable, Optional, Union

from openai import APIError, APITimeoutError, AzureOpenAI, OpenAI, RateLimitError

from .env import get_any_env, get_optional_env

DEFAULT_CHAT_MODEL = "gpt-5"
DEFAULT_CODE_MODEL = "gpt-5-codex"
DEFAULT_AZURE_API_VERSION = "2024-10-21"

RETRY_DELAYS = [1, 3, 6]  # Progressive backoff
NON_RETRYABLE_STATUS = (400, 401, 403)


def call_with_retries(
    request: Callable[[], Any],
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, str], None]] = None,
) -> Any:
    """
    Run an API request with progressive backoff.

    Rate limits, timeouts and other API errors are retried; 400/401/403
    fail immediately. Errors that are not API errors propagate unchanged.

    Args:
        request: Zero-argument callable performing the API call
        sleep: Sleep function (seconds)
        on_retry: Called with (attempt number, error text) before each retry

    Returns:
        Whatever ``request`` returns

    Raises:
        RuntimeError: Non-retryable API error, or all attempts failed
    """
    last_error = None

    for attempt, delay in enumerate(RETRY_DELAYS + [0], 1):  # Extra attempt without delay
        try:
            return request()
        except RateLimitError as e:
            last_error = f"Rate limit exceeded: {e}"
        except APITimeoutError as e:
            last_error = f"API timeout: {e}"
        except APIError as e:
            if getattr(e, "status_code", None) in NON_RETRYABLE_STATUS:
                raise RuntimeError(f"Non-retryable API error: {e}") from e
            last_error = f"API error: {e}"

        if delay > 0:
            if on_retry:
                on_retry(attempt, last_error)
            sleep(delay)

    raise RuntimeError(f"Request failed after {len(RETRY_DELAYS) + 1} attempts. Last error: {last_error}")


def azure_configured() -> bool:
    return bool(get_optional_env("AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_ENDPOINT"))


def openai_configured() -> bool:
    return bool(get_optional_env("OPENAI_API_KEY"))


def create_azure_client() -> AzureOpenAI:
    """Create Azure OpenAI client from AZURE_OPENAI_* variables."""
    try:
        return AzureOpenAI(
            api_key=get_any_env("AZURE_OPENAI_KEY", "AZURE_OPENAI_API_KEY"),
            azure_endpoint=get_any_env("AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_ENDPOINT"),
            api_version=get_optional_env(
                "AZURE_OPENAI_API_VERSION", "OPENAI_API_VERSION", default=DEFAULT_AZURE_API_VERSION
            ),
        )
    except Exception as e:
        raise RuntimeError(f"Failed to create Azure OpenAI client: {e}") from e


def create_openai_client() -> OpenAI:
    """Create OpenAI client from OPENAI_API_KEY."""
    try:
        return OpenAI(api_key=get_any_env("OPENAI_API_KEY"))
    except Exception as e:
        raise RuntimeError(f"Failed to create OpenAI client: {e}") from e


def create_client() -> Union[AzureOpenAI, OpenAI]:
    """Azure when an endpoint is configured, plain OpenAI otherwise."""
    if azure_configured():
        return create_azure_client()
    return create_openai_client()


def get_chat_model() -> str:
    """Model (or Azure deployment) used for conversational prompts."""
    if azure_configured():
        return get_any_env("AZURE_OPENAI_DEPLOYMENT", "OPENAI_DEPLOYMENT")
    return get_optional_env("UITEST_CHAT_MODEL", default=DEFAULT_CHAT_MODEL)


def get_code_model() -> str:
    """Model (or Azure deployment) used for code generation prompts."""
    if azure_configured():
        return get_optional_env("AZURE_OPENAI_CODE_DEPLOYMENT", "AZURE_OPENAI_DEPLOYMENT", "OPENAI_DEPLOYMENT")
    return get_optional_env("UITEST_CODE_MODEL", default=DEFAULT_CODE_MODEL)
