"""Environment-driven configuration.

Values come from environment variables (the server loads a `.env` file with
python-dotenv before reading them). OPENAI_MAX_TOKENS and OPENAI_TEMPERATURE
keep their historical names but apply to whichever provider is selected.
"""

import os

from pydantic import BaseModel, ValidationError

from threadgraph.models.context import ContextConfig


SUPPORTED_PROVIDERS = {"openai", "anthropic"}

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_ANTHROPIC_MODEL = "claude-3-5-sonnet-latest"
DEFAULT_BASE_URL = "https://api.openai.com/v1"


class ConfigurationError(ValueError):
    """Raised when the environment does not describe a usable setup."""


class LLMConfig(BaseModel):
    """Settings for the language model client."""

    model_config = {"frozen": True, "protected_namespaces": ()}

    provider: str = "openai"
    api_key: str
    model: str = DEFAULT_OPENAI_MODEL
    max_tokens: int = 4000
    temperature: float = 0.7
    base_url: str | None = None


def _parse_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _parse_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def load_llm_config() -> LLMConfig:
    """Read LLM settings for the provider named by LLM_PROVIDER.

    Raises:
        ConfigurationError: on a missing API key, an unknown provider,
            OPENAI_MAX_TOKENS <= 0 or OPENAI_TEMPERATURE outside [0, 2].
    """
    provider = os.getenv("LLM_PROVIDER", "openai").strip().lower()
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(
            f"LLM_PROVIDER must be one of {sorted(SUPPORTED_PROVIDERS)}, got {provider!r}"
        )

    max_tokens = _parse_int("OPENAI_MAX_TOKENS", 4000)
    if max_tokens <= 0:
        raise ConfigurationError("OPENAI_MAX_TOKENS must be a positive number")

    temperature = _parse_float("OPENAI_TEMPERATURE", 0.7)
    if temperature < 0 or temperature > 2:
        raise ConfigurationError("OPENAI_TEMPERATURE must be between 0 and 2")

    if provider == "anthropic":
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY environment variable is required")
        return LLMConfig(
            provider=provider,
            api_key=api_key,
            model=os.getenv("ANTHROPIC_MODEL") or DEFAULT_ANTHROPIC_MODEL,
            max_tokens=max_tokens,
            temperature=temperature,
        )

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY environment variable is required")
    return LLMConfig(
        provider=provider,
        api_key=api_key,
        model=os.getenv("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
        max_tokens=max_tokens,
        temperature=temperature,
        base_url=os.getenv("OPENAI_BASE_URL") or DEFAULT_BASE_URL,
    )


def load_context_config() -> ContextConfig:
    """Read truncation limits from CONTEXT_* variables, falling back to defaults.

    Raises:
        ConfigurationError: if a value is not a positive integer or the
            strategy is not one of head, tail, smart.
    """
    values: dict = {}
    if os.getenv("CONTEXT_MAX_TOKENS"):
        values["max_tokens"] = _parse_int("CONTEXT_MAX_TOKENS", 0)
    if os.getenv("CONTEXT_MAX_MESSAGES"):
        values["max_messages"] = _parse_int("CONTEXT_MAX_MESSAGES", 0)
    if os.getenv("CONTEXT_TRUNCATION_STRATEGY"):
        values["truncation_strategy"] = os.getenv("CONTEXT_TRUNCATION_STRATEGY", "").strip().lower()

    try:
        return ContextConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid context configuration: {e}") from e


def validate_environment() -> LLMConfig:
    """Load the LLM configuration, prefixing any error for health checks."""
    try:
        return load_llm_config()
    except ConfigurationError as e:
        raise ConfigurationError(f"Environment validation failed: {e}") from e
