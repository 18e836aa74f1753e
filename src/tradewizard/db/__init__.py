"""Database package: models, sessions, persistence and workflow checkpointers."""
from tradewizard.db.models import (AgentSignalRecord, AnalysisHistory, Market,
                                   Recommendation)
from tradewizard.db.persistence import (AnalysisRecord, DatabasePersistence,
                                        MarketInput)
from tradewizard.db.sessions import create_db_engine, get_session, init_db

__all__ = [
    "AgentSignalRecord",
    "AnalysisHistory",
    "AnalysisRecord",
    "DatabasePersistence",
    "Market",
    "MarketInput",
    "Recommendation",
    "create_db_engine",
    "get_session",
    "init_db",
]
