"""Engine configuration loaded from environment variables.

Two LLM modes are supported:

- Single-provider: set LLM_SINGLE_PROVIDER to openai, anthropic or google.
  Every agent shares that provider's model.
- Multi-provider (default): configure any of the providers; agents are
  spread across the configured ones.
"""
import os
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

load_dotenv()

ProviderName = Literal["openai", "anthropic", "google"]
LogLevel = Literal["debug", "info", "warn", "error"]


class ConfigError(ValueError):
    """Raised when the engine configuration is missing or invalid."""


class PolymarketConfig(BaseModel):
    gamma_api_url: str = "https://gamma-api.polymarket.com"
    clob_api_url: str = "https://clob.polymarket.com"
    rate_limit_buffer: int = Field(default=80, ge=0, le=100)


class LangGraphConfig(BaseModel):
    checkpointer: Literal["memory", "sqlite", "postgres"] = "memory"
    recursion_limit: int = Field(default=25, gt=0)
    stream_mode: Literal["values", "updates"] = "values"
    sqlite_path: str = "data/checkpoints.db"


class ProviderConfig(BaseModel):
    api_key: str = Field(min_length=1)
    default_model: str = Field(min_length=1)


class LLMConfig(BaseModel):
    single_provider: ProviderName | None = None
    openai: ProviderConfig | None = None
    anthropic: ProviderConfig | None = None
    google: ProviderConfig | None = None

    def configured_providers(self) -> list[str]:
        """Names of providers that have credentials, in a stable order."""
        return [
            name
            for name in ("openai", "anthropic", "google")
            if getattr(self, name) is not None
        ]


class AgentsConfig(BaseModel):
    timeout_ms: int = Field(default=10_000, gt=0)
    min_agents_required: int = Field(default=2, ge=1)


class ConsensusConfig(BaseModel):
    min_edge_threshold: float = Field(default=0.05, ge=0, le=1)
    high_disagreement_threshold: float = Field(default=0.15, ge=0, le=1)


class LoggingConfig(BaseModel):
    level: LogLevel = "info"
    audit_trail_retention_days: int = Field(default=30, gt=0)


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///data/tradewizard.db"
    echo: bool = False


class MonitorConfig(BaseModel):
    interval_seconds: float = Field(default=3600.0, gt=0)
    max_markets_per_cycle: int = Field(default=3, ge=1)
    update_interval_hours: float = Field(default=24.0, gt=0)


class EngineConfig(BaseModel):
    """Validated configuration for the whole service."""

    polymarket: PolymarketConfig = Field(default_factory=PolymarketConfig)
    langgraph: LangGraphConfig = Field(default_factory=LangGraphConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    consensus: ConsensusConfig = Field(default_factory=ConsensusConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)

    @model_validator(mode="after")
    def _check_llm_providers(self) -> "EngineConfig":
        llm = self.llm
        if llm.single_provider is not None:
            if getattr(llm, llm.single_provider) is None:
                raise ValueError(
                    f"LLM configuration invalid: single-provider mode selects "
                    f"'{llm.single_provider}' but that provider is not configured"
                )
        elif not llm.configured_providers():
            raise ValueError(
                "LLM configuration invalid: at least one of openai, anthropic "
                "or google must be configured"
            )
        return self


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got '{raw}'") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got '{raw}'") from exc


def _provider_from_env(key_var: str, model_var: str, default_model: str) -> dict | None:
    api_key = os.getenv(key_var)
    if not api_key:
        return None
    return {"api_key": api_key, "default_model": os.getenv(model_var) or default_model}


def _raw_config_from_env() -> dict[str, Any]:
    return {
        "polymarket": {
            "gamma_api_url": os.getenv(
                "POLYMARKET_GAMMA_API_URL", "https://gamma-api.polymarket.com"
            ),
            "clob_api_url": os.getenv(
                "POLYMARKET_CLOB_API_URL", "https://clob.polymarket.com"
            ),
            "rate_limit_buffer": _env_int("POLYMARKET_RATE_LIMIT_BUFFER", 80),
        },
        "langgraph": {
            "checkpointer": os.getenv("LANGGRAPH_CHECKPOINTER") or "memory",
            "recursion_limit": _env_int("LANGGRAPH_RECURSION_LIMIT", 25),
            "stream_mode": os.getenv("LANGGRAPH_STREAM_MODE") or "values",
            "sqlite_path": os.getenv("LANGGRAPH_SQLITE_PATH", "data/checkpoints.db"),
        },
        "llm": {
            "single_provider": os.getenv("LLM_SINGLE_PROVIDER") or None,
            "openai": _provider_from_env(
                "OPENAI_API_KEY", "OPENAI_DEFAULT_MODEL", "gpt-4-turbo"
            ),
            "anthropic": _provider_from_env(
                "ANTHROPIC_API_KEY", "ANTHROPIC_DEFAULT_MODEL", "claude-3-sonnet-20240229"
            ),
            "google": _provider_from_env(
                "GOOGLE_API_KEY", "GOOGLE_DEFAULT_MODEL", "gemini-1.5-flash"
            ),
        },
        "agents": {
            "timeout_ms": _env_int("AGENT_TIMEOUT_MS", 10_000),
            "min_agents_required": _env_int("MIN_AGENTS_REQUIRED", 2),
        },
        "consensus": {
            "min_edge_threshold": _env_float("MIN_EDGE_THRESHOLD", 0.05),
            "high_disagreement_threshold": _env_float("HIGH_DISAGREEMENT_THRESHOLD", 0.15),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL") or "info",
            "audit_trail_retention_days": _env_int("AUDIT_TRAIL_RETENTION_DAYS", 30),
        },
        "database": {
            "url": os.getenv("DATABASE_URL", "sqlite:///data/tradewizard.db"),
            "echo": os.getenv("SQL_ECHO", "0") == "1",
        },
        "monitor": {
            "interval_seconds": _env_float("MONITOR_INTERVAL_SECONDS", 3600.0),
            "max_markets_per_cycle": _env_int("MAX_MARKETS_PER_CYCLE", 3),
            "update_interval_hours": _env_float("UPDATE_INTERVAL_HOURS", 24.0),
        },
    }


def _validate(raw: dict[str, Any]) -> EngineConfig:
    try:
        return EngineConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def load_config() -> EngineConfig:
    """Load and validate configuration from the environment."""
    return _validate(_raw_config_from_env())


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def create_config(overrides: dict[str, Any]) -> EngineConfig:
    """Load the environment config, deep-merge overrides, and re-validate.

    Example:
        create_config({"llm": {"single_provider": "openai",
                               "openai": {"api_key": "sk-...",
                                          "default_model": "gpt-4o-mini"}}})
    """
    return _validate(_deep_merge(_raw_config_from_env(), overrides))


def get_default_config() -> dict[str, Any]:
    """Default values for every section except llm, without reading the environment."""
    return {
        "polymarket": PolymarketConfig().model_dump(),
        "langgraph": LangGraphConfig().model_dump(),
        "agents": AgentsConfig().model_dump(),
        "consensus": ConsensusConfig().model_dump(),
        "logging": LoggingConfig().model_dump(),
        "database": DatabaseConfig().model_dump(),
        "monitor": MonitorConfig().model_dump(),
    }


def load_polymarket_config() -> PolymarketConfig:
    """Polymarket section alone; does not require LLM credentials."""
    return PolymarketConfig.model_validate(_raw_config_from_env()["polymarket"])


def load_database_config() -> DatabaseConfig:
    """Database section alone; does not require LLM credentials."""
    return DatabaseConfig.model_validate(_raw_config_from_env()["database"])
