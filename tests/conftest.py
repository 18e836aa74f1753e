"""Shared fixtures: engine config, in-memory database and fake provider."""
import pytest

from tradewizard.config import DatabaseConfig, EngineConfig
from tradewizard.db import DatabasePersistence, create_db_engine, init_db
from tests.factories import (CONDITION_ID, FakeProvider, make_briefing,
                             make_config)


@pytest.fixture
def config() -> EngineConfig:
    return make_config()


@pytest.fixture
def engine():
    db_engine = create_db_engine(DatabaseConfig(url="sqlite://"))
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def persistence(engine) -> DatabasePersistence:
    return DatabasePersistence(engine)


@pytest.fixture
def provider() -> FakeProvider:
    fake = FakeProvider()
    fake.briefings[CONDITION_ID] = make_briefing()
    fake.quotes[CONDITION_ID] = 0.6
    return fake
