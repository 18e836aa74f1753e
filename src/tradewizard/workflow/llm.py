"""Chat model instances for the agent nodes."""
import logging

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from tradewizard.config import ConfigError, EngineConfig, ProviderConfig

logger = logging.getLogger(__name__)

AGENT_NAMES = ("market_microstructure", "probability_baseline", "risk_assessment")

# Preferred provider per agent in multi-provider mode.
PREFERRED_PROVIDERS = {
    "market_microstructure": "openai",
    "probability_baseline": "google",
    "risk_assessment": "anthropic",
}


def create_chat_model(provider: str, settings: ProviderConfig) -> BaseChatModel:
    if provider == "openai":
        return ChatOpenAI(model=settings.default_model, api_key=settings.api_key)
    if provider == "anthropic":
        return ChatAnthropic(model=settings.default_model, api_key=settings.api_key)
    if provider == "google":
        return ChatGoogleGenerativeAI(
            model=settings.default_model, google_api_key=settings.api_key
        )
    raise ConfigError(f"Unknown LLM provider '{provider}'")


def assign_providers(config: EngineConfig) -> dict[str, str]:
    """Provider name per agent.

    Single-provider mode gives every agent the same provider. Otherwise each
    agent gets its preferred provider when configured, else the configured
    providers are handed out in rotation.
    """
    llm = config.llm
    if llm.single_provider is not None:
        return {name: llm.single_provider for name in AGENT_NAMES}
    configured = llm.configured_providers()
    if not configured:
        raise ConfigError("No LLM provider is configured")
    assignment = {}
    for i, name in enumerate(AGENT_NAMES):
        preferred = PREFERRED_PROVIDERS[name]
        assignment[name] = preferred if preferred in configured else configured[i % len(configured)]
    return assignment


def create_llm_instances(config: EngineConfig) -> dict[str, BaseChatModel]:
    """One chat model per agent; agents sharing a provider share the instance."""
    assignment = assign_providers(config)
    models: dict[str, BaseChatModel] = {}
    instances = {}
    for agent_name, provider in assignment.items():
        if provider not in models:
            models[provider] = create_chat_model(provider, getattr(config.llm, provider))
        instances[agent_name] = models[provider]
    logger.info("LLM assignment: %s", assignment)
    return instances
