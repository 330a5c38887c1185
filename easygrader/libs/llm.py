"""LLM utilities for creating and configuring AI agents."""


import logging
from typing import Optional, Dict, Any

from pydantic_ai import Agent

from easygrader.libs.config_loader import ConfigType, get_config


# Fix up logging level for httpx to WARNING to reduce noise
logging.getLogger("httpx").setLevel(logging.WARNING)

LOG = logging.getLogger(__name__)

DEFAULT_MODELS = {
    "google": "gemini-2.5-flash",
    "openai": "gpt-4.1-mini",
}


def _build_model(provider: str, model: str, api_key: Optional[str]) -> Any:
    """Instantiate the pydantic-ai model object for a provider name."""
    if provider == "google":
        from pydantic_ai.models.google import GoogleModel
        from pydantic_ai.providers.google import GoogleProvider

        return GoogleModel(model, provider=GoogleProvider(api_key=api_key))
    if provider == "openai":
        from pydantic_ai.models.openai import OpenAIResponsesModel
        from pydantic_ai.providers.openai import OpenAIProvider

        return OpenAIResponsesModel(model, provider=OpenAIProvider(api_key=api_key))
    raise ValueError(f"Unsupported LLM provider: {provider!r} (expected one of {sorted(DEFAULT_MODELS)})")


def _build_settings(provider: str, settings_dict: Dict[str, Any]) -> Any:
    if not settings_dict:
        return None
    if provider == "google":
        from pydantic_ai.models.google import GoogleModelSettings

        return GoogleModelSettings(**settings_dict)
    from pydantic_ai.models.openai import OpenAIResponsesModelSettings

    return OpenAIResponsesModelSettings(**settings_dict)


def create_agent(configs: ConfigType,
                 api_key: Optional[str] = None,
                 model: Optional[str] = None,
                 settings_dict: Optional[Dict[str, Any]] = None,
                 system_prompt: Optional[str] = None,
                 output_type: Any = None) -> Agent:
    """
    Create a pydantic-ai Agent for the configured provider.

    Args:
        configs: Configuration dictionary (required)
        api_key: Provider API key (overrides config value; the provider falls
            back to its environment variable when neither is set)
        model: Model to use (overrides config value)
        settings_dict: Pydantic AI settings dict (overrides config values)
        system_prompt: System prompt for the agent (optional)
        output_type: Structured output type for the agent (optional)

    Returns:
        Configured Agent. Agent-level retries are disabled; callers own
        the retry policy.

    Raises:
        ValueError: If the provider is unknown
    """
    provider = get_config("llm.provider", configs, default="google")
    api_key = api_key or get_config("llm.api_key", configs, default=None)
    model = model or get_config("llm.model", configs, default=None) or DEFAULT_MODELS.get(provider)
    base_settings = get_config("llm.model_settings", configs, default={}) or {}

    settings_dict = base_settings | (settings_dict or {})
    model_settings = _build_settings(provider, settings_dict)
    llm_model = _build_model(provider, model, api_key)
    LOG.debug("Creating %s agent for model %s", provider, model)

    kwargs: Dict[str, Any] = {
        "model": llm_model,
        "model_settings": model_settings,
        "retries": 0,
    }
    if system_prompt:
        kwargs["system_prompt"] = system_prompt
    if output_type is not None:
        kwargs["output_type"] = output_type
    return Agent(**kwargs)
