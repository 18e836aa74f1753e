"""The recommendation workflow as a LangGraph StateGraph.

    START -> market_ingestion -> (error) END
                              -> market_microstructure_agent  \
                              -> probability_baseline_agent    > thesis_construction
                              -> risk_assessment_agent        /
          thesis_construction -> cross_examination -> consensus_engine
                              -> recommendation_generation -> END

Runs are checkpointed per market: thread_id is the condition ID.
"""
import logging
from collections.abc import Callable
from typing import Any

from langchain_core.language_models import BaseChatModel
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from tradewizard.config import EngineConfig
from tradewizard.providers.core import PredictionMarketProviderABC
from tradewizard.schemas import TradeRecommendation
from tradewizard.workflow.audit import GraphExecutionLogger
from tradewizard.workflow.llm import AGENT_NAMES, create_llm_instances
from tradewizard.workflow.nodes import (create_agent_nodes,
                                        create_consensus_engine_node,
                                        create_cross_examination_node,
                                        create_market_ingestion_node,
                                        create_recommendation_generation_node,
                                        create_thesis_construction_node)
from tradewizard.workflow.state import GraphState, initial_state

logger = logging.getLogger(__name__)

AGENT_NODE_NAMES = tuple(f"{name}_agent" for name in AGENT_NAMES)


def route_after_ingestion(state: GraphState) -> list[str] | str:
    if state.get("ingestion_error") is not None:
        return END
    return list(AGENT_NODE_NAMES)


def create_workflow(
    client: PredictionMarketProviderABC,
    config: EngineConfig,
    *,
    checkpointer: BaseCheckpointSaver | None = None,
    llms: dict[str, BaseChatModel] | None = None,
) -> CompiledStateGraph:
    """Build and compile the graph. Without a checkpointer, runs are kept in memory."""
    llms = llms if llms is not None else create_llm_instances(config)

    builder = StateGraph(GraphState)
    builder.add_node("market_ingestion", create_market_ingestion_node(client))
    for node_name, node in create_agent_nodes(config, llms).items():
        builder.add_node(node_name, node)
    builder.add_node("thesis_construction", create_thesis_construction_node(config))
    builder.add_node("cross_examination", create_cross_examination_node())
    builder.add_node("consensus_engine", create_consensus_engine_node(config))
    builder.add_node(
        "recommendation_generation", create_recommendation_generation_node(config)
    )

    builder.add_edge(START, "market_ingestion")
    builder.add_conditional_edges(
        "market_ingestion", route_after_ingestion, [*AGENT_NODE_NAMES, END]
    )
    # Waits for all three agents.
    builder.add_edge(list(AGENT_NODE_NAMES), "thesis_construction")
    builder.add_edge("thesis_construction", "cross_examination")
    builder.add_edge("cross_examination", "consensus_engine")
    builder.add_edge("consensus_engine", "recommendation_generation")
    builder.add_edge("recommendation_generation", END)

    return builder.compile(checkpointer=checkpointer or MemorySaver())


def run_config(condition_id: str, config: EngineConfig) -> dict[str, Any]:
    return {
        "configurable": {"thread_id": condition_id},
        "recursion_limit": config.langgraph.recursion_limit,
    }


async def run_workflow(
    app: CompiledStateGraph,
    condition_id: str,
    config: EngineConfig,
    *,
    on_update: Callable[[str, dict[str, Any]], None] | None = None,
) -> dict[str, Any]:
    """Run the graph for one market and return the final state values.

    With on_update, the run is streamed in langgraph.stream_mode. In
    "updates" mode the callback gets (node_name, update) per node; in
    "values" mode it gets ("state", full_state) after each step.
    """
    cfg = run_config(condition_id, config)
    if on_update is None:
        return await app.ainvoke(initial_state(condition_id), cfg)

    mode = config.langgraph.stream_mode
    async for chunk in app.astream(initial_state(condition_id), cfg, stream_mode=mode):
        if mode == "updates":
            for node_name, update in chunk.items():
                on_update(node_name, update or {})
        else:
            on_update("state", chunk)
    snapshot = await app.aget_state(cfg)
    return dict(snapshot.values)


async def analyze_market(
    condition_id: str,
    config: EngineConfig,
    client: PredictionMarketProviderABC,
    *,
    checkpointer: BaseCheckpointSaver | None = None,
    llms: dict[str, BaseChatModel] | None = None,
) -> TradeRecommendation | None:
    """Analyze one market end to end; None when ingestion failed."""
    execution_log = GraphExecutionLogger()
    execution_log.info("workflow", "Starting market analysis", {"condition_id": condition_id})

    app = create_workflow(client, config, checkpointer=checkpointer, llms=llms)
    try:
        result = await run_workflow(app, condition_id, config)
    except Exception as exc:
        execution_log.error("workflow", "Market analysis failed", {"error": str(exc)})
        raise

    recommendation = result.get("recommendation")
    execution_log.info(
        "workflow",
        "Market analysis completed",
        {
            "action": recommendation.action if recommendation else None,
            "expected_value": recommendation.expected_value if recommendation else None,
        },
    )
    return recommendation
