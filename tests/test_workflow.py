import pytest
from langgraph.checkpoint.memory import MemorySaver

from tradewizard.schemas import IngestionError
from tradewizard.workflow import (analyze_market, create_workflow,
                                  get_audit_trail, get_state_at_checkpoint,
                                  list_checkpoints, run_workflow)
from tradewizard.workflow.graph import AGENT_NODE_NAMES
from tests.factories import (CONDITION_ID, FakeStructuredLLM, make_config,
                             make_llms)

EXPECTED_STAGES = {
    "market_ingestion",
    "agent_market_microstructure",
    "agent_probability_baseline",
    "agent_risk_assessment",
    "thesis_construction",
    "cross_examination",
    "consensus_engine",
    "recommendation_generation",
}


async def test_happy_path_recommends_long_yes(provider, config):
    app = create_workflow(provider, config, llms=make_llms())
    result = await run_workflow(app, CONDITION_ID, config)

    rec = result["recommendation"]
    assert rec.action == "LONG_YES"
    # debate: bull 0.56, bear 0.11 -> consensus 0.7 + 0.05 * 0.45
    assert rec.metadata.consensus_probability == pytest.approx(0.7225)
    assert rec.expected_value == pytest.approx(44.5)
    assert rec.metadata.confidence_band == pytest.approx((0.6725, 0.7725))
    assert len(result["agent_signals"]) == 3
    assert result["agent_errors"] == []
    assert {e.stage for e in result["audit_log"]} == EXPECTED_STAGES
    assert len(result["audit_log"]) == 8


async def test_rerun_on_same_thread_starts_clean(provider, config):
    app = create_workflow(provider, config, checkpointer=MemorySaver(), llms=make_llms())
    await run_workflow(app, CONDITION_ID, config)
    result = await run_workflow(app, CONDITION_ID, config)
    assert len(result["audit_log"]) == 8
    assert len(result["agent_signals"]) == 3


async def test_ingestion_error_ends_run(provider, config):
    provider.errors["0xbad"] = IngestionError.invalid_market("0xbad")
    llms = make_llms()
    result = await run_workflow(create_workflow(provider, config, llms=llms), "0xbad", config)

    assert result["recommendation"] is None
    assert result["ingestion_error"].type == "INVALID_MARKET_ID"
    assert [e.stage for e in result["audit_log"]] == ["market_ingestion"]
    assert all(not llm.structured.calls for llm in llms.values())


async def test_agent_timeout_is_tolerated(provider):
    config = make_config(agents={"timeout_ms": 50})
    llms = make_llms(risk_assessment=FakeStructuredLLM(delay=1.0))
    result = await run_workflow(create_workflow(provider, config, llms=llms), CONDITION_ID, config)

    [error] = result["agent_errors"]
    assert error.type == "TIMEOUT"
    assert error.agent_name == "risk_assessment"
    assert len(result["agent_signals"]) == 2
    assert result["recommendation"] is not None
    assert result["recommendation"].action == "LONG_YES"


async def test_too_few_agents_yields_no_trade(provider, config):
    llms = make_llms(
        market_microstructure=FakeStructuredLLM(error=RuntimeError("down")),
        risk_assessment=FakeStructuredLLM(error=RuntimeError("down")),
    )
    result = await run_workflow(create_workflow(provider, config, llms=llms), CONDITION_ID, config)

    assert result["consensus"] is None
    assert result["consensus_error"].type == "INSUFFICIENT_DATA"
    assert result["recommendation"].action == "NO_TRADE"
    assert result["recommendation"].expected_value == 0


async def test_streaming_updates_reports_each_node(provider):
    config = make_config(langgraph={"stream_mode": "updates"})
    seen = []
    app = create_workflow(provider, config, llms=make_llms())
    result = await run_workflow(
        app, CONDITION_ID, config, on_update=lambda node, update: seen.append(node)
    )
    assert seen[0] == "market_ingestion"
    assert set(AGENT_NODE_NAMES) <= set(seen)
    assert seen[-1] == "recommendation_generation"
    assert result["recommendation"].action == "LONG_YES"


async def test_streaming_values_reports_full_state(provider, config):
    states = []
    app = create_workflow(provider, config, llms=make_llms())
    await run_workflow(
        app, CONDITION_ID, config, on_update=lambda label, state: states.append((label, state))
    )
    assert {label for label, _ in states} == {"state"}
    assert states[-1][1]["recommendation"].action == "LONG_YES"


async def test_analyze_market(provider, config):
    rec = await analyze_market(CONDITION_ID, config, provider, llms=make_llms())
    assert rec.market_id == "will-x-win"
    assert await analyze_market("0xmissing", config, provider, llms=make_llms()) is None


class TestAuditTrail:
    async def test_trail_from_checkpointer(self, provider, config):
        checkpointer = MemorySaver()
        app = create_workflow(provider, config, checkpointer=checkpointer, llms=make_llms())
        await run_workflow(app, CONDITION_ID, config)

        trail = await get_audit_trail(checkpointer, CONDITION_ID)
        assert trail.market_id == CONDITION_ID
        assert trail.checkpoint_id is not None
        assert {e.stage for e in trail.stages} == EXPECTED_STAGES

        checkpoints = await list_checkpoints(checkpointer, CONDITION_ID)
        assert checkpoints
        state = await get_state_at_checkpoint(
            checkpointer, CONDITION_ID, checkpoints[0]["checkpoint_id"]
        )
        assert state["recommendation"].action == "LONG_YES"

    async def test_unknown_thread(self):
        checkpointer = MemorySaver()
        trail = await get_audit_trail(checkpointer, "0xnone")
        assert trail.stages == []
        assert trail.checkpoint_id is None
        assert await get_state_at_checkpoint(checkpointer, "0xnone") is None
        assert await list_checkpoints(checkpointer, "0xnone") == []
