import pytest

from tradewizard.cli.main import build_config, build_parser, main
from tradewizard.config import ConfigError, DatabaseConfig
from tradewizard.db import (DatabasePersistence, MarketInput, create_db_engine,
                            init_db)

_ENV_VARS = ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GOOGLE_API_KEY", "LLM_SINGLE_PROVIDER")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_single_provider_override(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
    args = build_parser().parse_args(
        ["analyze", "0xabc", "--single-provider", "anthropic", "--model", "claude-test"]
    )
    config = build_config(args)
    assert config.llm.single_provider == "anthropic"
    assert config.llm.anthropic.default_model == "claude-test"
    assert config.llm.anthropic.api_key == "sk-ant"


def test_missing_credentials_exit_code(capsys):
    assert main(["checkpoint", "0xabc"]) == 2
    assert "Configuration error" in capsys.readouterr().err


def test_history(monkeypatch, tmp_path, capsys):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    engine = create_db_engine(DatabaseConfig(url=url))
    init_db(engine)
    DatabasePersistence(engine).upsert_market(
        MarketInput(condition_id="0xabc", question="Q?", event_type="election")
    )
    engine.dispose()

    assert main(["history", "0xabc"]) == 0
    assert main(["history", "0xother"]) == 1
    assert "No stored analysis for 0xother" in capsys.readouterr().out


def test_single_provider_without_key_is_config_error(capsys):
    args = build_parser().parse_args(
        ["analyze", "0xabc", "--single-provider", "openai", "--model", "gpt-4o"]
    )
    with pytest.raises(ConfigError):
        build_config(args)

    assert main(["analyze", "0xabc", "--single-provider", "openai", "--model", "gpt-4o"]) == 2
    assert "api_key" in capsys.readouterr().err
