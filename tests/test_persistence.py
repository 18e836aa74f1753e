from datetime import timedelta

import pytest
from sqlmodel import select

from tradewizard.db import (AnalysisHistory, AnalysisRecord, DatabasePersistence,
                            Market, MarketInput, Recommendation, get_session)
from tradewizard.db.models import utcnow
from tradewizard.db.persistence import confidence_label
from tradewizard.providers.core import as_utc
from tradewizard.schemas import (AgentSignal, IngestionError,
                                 TradeExplanation, TradeMetadata,
                                 TradeRecommendation)
from tradewizard.services.recommendations import RecommendationService
from tradewizard.workflow import create_workflow
from tests.factories import CONDITION_ID, FakeStructuredLLM, make_llms


def make_recommendation(action: str = "LONG_YES", band=(0.65, 0.75)) -> TradeRecommendation:
    return TradeRecommendation(
        market_id="will-x-win",
        action=action,
        entry_zone=(0.48, 0.5),
        target_zone=(0.68, 0.72),
        expected_value=40.0,
        win_probability=0.7,
        liquidity_risk="medium",
        explanation=TradeExplanation(
            summary="Buy YES",
            core_thesis="Polls",
            key_catalysts=["Debate"],
            failure_scenarios=["Scandal"],
        ),
        metadata=TradeMetadata(
            consensus_probability=0.7,
            market_probability=0.5,
            edge=0.2,
            confidence_band=band,
        ),
    )


def add_market(persistence: DatabasePersistence, condition_id: str = CONDITION_ID, **fields) -> str:
    return persistence.upsert_market(
        MarketInput(condition_id=condition_id, question="Will X win?", event_type="election", **fields)
    )


@pytest.mark.parametrize(("band", "label"), [((0.6, 0.7), "high"), ((0.5, 0.7), "moderate"), ((0.3, 0.7), "low")])
def test_confidence_label(band, label):
    assert confidence_label(band) == label


class TestMarkets:
    def test_upsert_keeps_id_and_unset_fields(self, persistence):
        market_id = add_market(persistence, liquidity=5000.0, trending_score=2.5)
        again = persistence.upsert_market(
            MarketInput(condition_id=CONDITION_ID, question="Will X win now?", event_type="election")
        )
        assert again == market_id
        market = persistence.get_market(market_id)
        assert market.question == "Will X win now?"
        assert market.liquidity == 5000.0
        assert market.trending_score == 2.5

    def test_timestamps_are_aware_utc(self, persistence):
        before = utcnow()
        assert before.tzinfo is not None
        market_id = add_market(persistence)
        persistence.mark_market_resolved(market_id, "YES")
        market = persistence.get_market(market_id)
        assert as_utc(market.created_at) >= before - timedelta(seconds=1)
        assert as_utc(market.updated_at) >= as_utc(market.created_at)

    def test_lookup_by_condition_id(self, persistence):
        market_id = add_market(persistence)
        assert persistence.get_market_by_condition_id(CONDITION_ID).id == market_id
        assert persistence.get_market_by_condition_id("0xnone") is None

    def test_mark_resolved(self, persistence):
        market_id = add_market(persistence)
        persistence.mark_market_resolved(market_id, "YES")
        market = persistence.get_market(market_id)
        assert market.status == "resolved"
        assert market.resolved_outcome == "YES"
        assert persistence.get_active_markets() == []

    def test_mark_missing_market(self, persistence):
        with pytest.raises(ValueError):
            persistence.mark_market_resolved("missing", "NO")

    def test_markets_for_update(self, persistence):
        fresh = add_market(persistence, "0xfresh")
        stale = add_market(persistence, "0xstale")
        never = add_market(persistence, "0xnever")
        resolved = add_market(persistence, "0xresolved")
        persistence.mark_market_resolved(resolved, "NO")

        persistence.store_recommendation(fresh, make_recommendation())
        persistence.store_recommendation(stale, make_recommendation())
        with get_session(persistence.engine) as session:
            market = session.get(Market, stale)
            market.last_analyzed_at = utcnow() - timedelta(days=2)
            session.add(market)

        due = [m.id for m in persistence.get_markets_for_update(timedelta(hours=24))]
        assert set(due) == {stale, never}


class TestRecommendations:
    def test_store_stamps_market(self, persistence):
        market_id = add_market(persistence)
        rec_id = persistence.store_recommendation(market_id, make_recommendation())

        market = persistence.get_market(market_id)
        assert market.last_analyzed_at is not None
        assert market.market_probability == 0.5
        stored = persistence.get_latest_recommendation(market_id)
        assert stored.id == rec_id
        assert stored.direction == "LONG_YES"
        assert stored.confidence == "high"
        assert stored.catalysts == ["Debate"]
        assert stored.risks == ["Scandal"]
        assert (stored.entry_zone_min, stored.target_zone_max) == (0.48, 0.72)

    def test_history_newest_first(self, persistence):
        market_id = add_market(persistence)
        older = persistence.store_recommendation(market_id, make_recommendation("LONG_NO"))
        newer = persistence.store_recommendation(market_id, make_recommendation())
        with get_session(persistence.engine) as session:
            row = session.get(Recommendation, older)
            row.created_at = utcnow() - timedelta(days=1)
            session.add(row)

        assert [r.id for r in persistence.get_recommendation_history(market_id)] == [newer, older]
        assert len(persistence.get_recommendation_history(market_id, limit=1)) == 1
        assert persistence.get_latest_recommendation("other") is None

    def test_agent_signals(self, persistence):
        market_id = add_market(persistence)
        rec_id = persistence.store_recommendation(market_id, make_recommendation())
        persistence.store_agent_signals(
            market_id,
            rec_id,
            [
                AgentSignal(
                    agent_name="risk_assessment",
                    confidence=0.6,
                    direction="NO",
                    fair_probability=0.4,
                    key_drivers=["Turnout"],
                    risk_factors=["Recount"],
                )
            ],
        )
        [record] = persistence.get_agent_signals(rec_id)
        assert record.agent_name == "risk_assessment"
        assert record.key_drivers == ["Turnout"]
        assert record.signal_metadata == {"risk_factors": ["Recount"]}


def test_purge_analysis_history(persistence):
    market_id = add_market(persistence)
    persistence.record_analysis(market_id, AnalysisRecord(type="initial", status="success"))
    persistence.record_analysis(market_id, AnalysisRecord(type="update", status="failed"))
    with get_session(persistence.engine) as session:
        old = session.exec(select(AnalysisHistory).where(AnalysisHistory.analysis_type == "initial")).one()
        old.created_at = utcnow() - timedelta(days=40)
        session.add(old)

    assert persistence.purge_analysis_history(timedelta(days=30)) == 1
    assert [r.analysis_type for r in analysis_rows(persistence)] == ["update"]
    assert persistence.purge_analysis_history(timedelta(days=30)) == 0


def analysis_rows(persistence):
    with get_session(persistence.engine) as session:
        return list(session.exec(select(AnalysisHistory)).all())


class TestRecommendationService:
    def service(self, provider, config, persistence, llms=None):
        workflow = create_workflow(provider, config, llms=llms or make_llms())
        return RecommendationService(workflow, config, persistence)

    async def test_analyze_persists_everything(self, provider, config, persistence):
        outcome = await self.service(provider, config, persistence).analyze(
            CONDITION_ID, trending_score=3.0
        )
        assert outcome.ok
        market = persistence.get_market_by_condition_id(CONDITION_ID)
        assert market.id == outcome.market_id
        assert market.trending_score == 3.0
        assert persistence.get_latest_recommendation(market.id).id == outcome.recommendation_id
        assert len(persistence.get_agent_signals(outcome.recommendation_id)) == 3
        [history] = analysis_rows(persistence)
        assert history.status == "success"
        assert history.analysis_type == "initial"
        assert len(history.agents_used) == 3

    async def test_partial_when_an_agent_fails(self, provider, config, persistence):
        llms = make_llms(risk_assessment=FakeStructuredLLM(error=RuntimeError("down")))
        outcome = await self.service(provider, config, persistence, llms).analyze(
            CONDITION_ID, "update"
        )
        assert outcome.ok
        [history] = analysis_rows(persistence)
        assert history.status == "partial"
        assert history.error_message == "risk_assessment: EXECUTION_FAILED"

    async def test_ingestion_failure_stores_nothing_for_unknown_market(self, provider, config, persistence):
        provider.errors["0xdown"] = IngestionError.api_unavailable("503")
        outcome = await self.service(provider, config, persistence).analyze("0xdown")
        assert not outcome.ok
        assert outcome.ingestion_error.type == "API_UNAVAILABLE"
        assert outcome.market_id is None
        assert analysis_rows(persistence) == []

    async def test_ingestion_failure_recorded_for_known_market(self, provider, config, persistence):
        market_id = add_market(persistence, "0xknown")
        outcome = await self.service(provider, config, persistence).analyze("0xknown", "update")
        assert not outcome.ok
        [history] = analysis_rows(persistence)
        assert history.market_id == market_id
        assert history.status == "failed"
        assert history.error_message == "Invalid market ID: 0xknown"

    async def test_latest_with_history(self, provider, config, persistence):
        service = self.service(provider, config, persistence)
        assert service.latest_with_history(CONDITION_ID) == (None, None, [])
        await service.analyze(CONDITION_ID)
        market, latest, history = service.latest_with_history(CONDITION_ID)
        assert market.condition_id == CONDITION_ID
        assert latest.id == history[0].id
