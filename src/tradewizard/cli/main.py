"""TradeWizard command line.

Usage:
  tradewizard analyze 0xabc... [--debug] [--visualize] [--single-provider openai --model gpt-4o]
  tradewizard checkpoint 0xabc...
  tradewizard history 0xabc...
  tradewizard discover --limit 10
  tradewizard monitor [--once]
  tradewizard serve
"""
import argparse
import asyncio
import json
import os
import sys
from typing import Any

from tradewizard.config import (ConfigError, EngineConfig, create_config,
                                load_config, load_database_config)
from tradewizard.db import DatabasePersistence, create_db_engine, init_db
from tradewizard.db.checkpointer import open_checkpointer
from tradewizard.logging_setup import configure_logging
from tradewizard.monitor import MonitorService
from tradewizard.providers import PolymarketClient
from tradewizard.schemas import TradeRecommendation
from tradewizard.services import MarketDiscoveryService
from tradewizard.services.recommendations import RecommendationService
from tradewizard.workflow import (create_workflow, get_state_at_checkpoint,
                                  list_checkpoints, run_workflow)

_API_KEY_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "google": "GOOGLE_API_KEY",
}


def print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str))


def build_config(args: argparse.Namespace) -> EngineConfig:
    """Environment config, with --single-provider / --model overrides applied."""
    provider = getattr(args, "single_provider", None)
    if not provider:
        return load_config()
    overrides: dict[str, Any] = {"llm": {"single_provider": provider}}
    model = getattr(args, "model", None)
    if model:
        overrides["llm"][provider] = {
            "api_key": os.getenv(_API_KEY_VARS[provider], ""),
            "default_model": model,
        }
    return create_config(overrides)


def display_recommendation(rec: TradeRecommendation) -> None:
    print("\nTrade Recommendation")
    print("-" * 60)
    print(f"Action:          {rec.action}")
    print(f"Entry zone:      {rec.entry_zone[0]:.2f} - {rec.entry_zone[1]:.2f}")
    print(f"Target zone:     {rec.target_zone[0]:.2f} - {rec.target_zone[1]:.2f}")
    print(f"Expected value:  ${rec.expected_value:.2f} per $100")
    print(f"Win probability: {rec.win_probability:.1%}")
    print(f"Liquidity risk:  {rec.liquidity_risk}")
    print(f"Edge:            {rec.metadata.edge:.1%}")
    print(f"\n{rec.explanation.summary}")
    print(f"\nThesis: {rec.explanation.core_thesis}")
    for catalyst in rec.explanation.key_catalysts:
        print(f"  catalyst: {catalyst}")
    for scenario in rec.explanation.failure_scenarios:
        print(f"  risk: {scenario}")
    if rec.explanation.uncertainty_note:
        print(f"\nNote: {rec.explanation.uncertainty_note}")


async def cmd_analyze(args: argparse.Namespace) -> int:
    config = build_config(args)
    configure_logging("debug" if args.debug else config.logging.level)
    if args.debug:
        print(
            f"LLM mode: {config.llm.single_provider or 'multi-provider'}; "
            f"min agents {config.agents.min_agents_required}; "
            f"edge threshold {config.consensus.min_edge_threshold:.1%}"
        )

    def on_update(node: str, update: dict[str, Any]) -> None:
        print(f"[{node}] {', '.join(sorted(update)) or 'no changes'}")

    async with PolymarketClient(config.polymarket) as client:
        async with open_checkpointer(config) as checkpointer:
            app = create_workflow(client, config, checkpointer=checkpointer)
            if args.visualize:
                print(app.get_graph().draw_mermaid())
            state = await run_workflow(
                app, args.condition_id, config, on_update=on_update if args.debug else None
            )

    error = state.get("ingestion_error")
    if error is not None:
        print(f"Ingestion failed: {error.describe()}", file=sys.stderr)
        return 1
    recommendation = state.get("recommendation")
    if recommendation is None:
        print("No recommendation generated")
        return 1
    display_recommendation(recommendation)
    if args.debug:
        for agent_error in state.get("agent_errors") or []:
            print(f"agent error: {agent_error.agent_name} {agent_error.type}")
    return 0


async def cmd_checkpoint(args: argparse.Namespace) -> int:
    config = load_config()
    async with open_checkpointer(config) as checkpointer:
        state = await get_state_at_checkpoint(checkpointer, args.condition_id)
        checkpoints = await list_checkpoints(checkpointer, args.condition_id, limit=10)
    if state is None:
        print(f"No checkpoint found for {args.condition_id}")
        return 1

    print(f"Checkpoint state for {args.condition_id}")
    for key in ("mbd", "bull_thesis", "bear_thesis", "debate_record", "consensus", "recommendation"):
        print(f"  {key}: {'present' if state.get(key) is not None else 'missing'}")
    print(f"  agent_signals: {len(state.get('agent_signals') or [])}")
    print(f"  audit_log: {len(state.get('audit_log') or [])} entries")
    for key in ("ingestion_error", "consensus_error"):
        if state.get(key) is not None:
            print(f"  {key}: {state[key].type}")
    if state.get("agent_errors"):
        print(f"  agent_errors: {len(state['agent_errors'])}")
    print("Recent checkpoints:")
    print_json(checkpoints)
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    persistence = DatabasePersistence(create_db_engine(load_database_config()))
    market = persistence.get_market_by_condition_id(args.condition_id)
    if market is None:
        print(f"No stored analysis for {args.condition_id}")
        return 1
    for rec in persistence.get_recommendation_history(market.id, limit=args.limit):
        print(
            f"{rec.created_at:%Y-%m-%d %H:%M}  {rec.direction:<8}  "
            f"fair={rec.fair_probability or 0:.3f}  edge={rec.market_edge or 0:.3f}  "
            f"EV=${rec.expected_value or 0:.2f}  {rec.confidence}"
        )
    return 0


async def cmd_discover(args: argparse.Namespace) -> int:
    async with PolymarketClient() as client:
        ranked = await MarketDiscoveryService(client).discover_markets(args.limit)
    print_json([m.model_dump() for m in ranked])
    return 0


async def cmd_monitor(args: argparse.Namespace) -> int:
    config = load_config()
    configure_logging(config.logging.level)
    engine = create_db_engine(config.database)
    init_db(engine)
    persistence = DatabasePersistence(engine)

    async with PolymarketClient(config.polymarket) as client:
        async with open_checkpointer(config) as checkpointer:
            workflow = create_workflow(client, config, checkpointer=checkpointer)
            monitor = MonitorService(
                config,
                client,
                MarketDiscoveryService(client),
                RecommendationService(workflow, config, persistence),
            )
            if args.once:
                report = await monitor.run_cycle()
                print_json(
                    {
                        "resolved": report.resolved,
                        "analyzed": report.analyzed,
                        "failed": report.failed,
                        "purged": report.purged,
                        "duration_ms": report.duration_ms,
                    }
                )
                return 0 if not report.failed else 1
            await monitor.start()
            try:
                await asyncio.Event().wait()
            finally:
                await monitor.stop()
    return 0


def cmd_serve(_: argparse.Namespace) -> int:
    from tradewizard.main import run  # pylint: disable=import-outside-toplevel

    run()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tradewizard", description="Polymarket multi-agent trade recommendations"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze one market")
    analyze.add_argument("condition_id", help="Polymarket condition ID")
    analyze.add_argument("-d", "--debug", action="store_true", help="Show node progress and state")
    analyze.add_argument("-v", "--visualize", action="store_true", help="Print the graph as Mermaid")
    analyze.add_argument("--single-provider", choices=sorted(_API_KEY_VARS), help="Use one LLM provider")
    analyze.add_argument("--model", help="Model override for --single-provider")
    analyze.set_defaults(func=cmd_analyze)

    checkpoint = sub.add_parser("checkpoint", help="Inspect the checkpointed state of a market")
    checkpoint.add_argument("condition_id")
    checkpoint.set_defaults(func=cmd_checkpoint)

    history = sub.add_parser("history", help="Stored recommendations for a market")
    history.add_argument("condition_id")
    history.add_argument("--limit", type=int, default=20)
    history.set_defaults(func=cmd_history)

    discover = sub.add_parser("discover", help="Rank trending political markets")
    discover.add_argument("--limit", type=int, default=10)
    discover.set_defaults(func=cmd_discover)

    monitor = sub.add_parser("monitor", help="Run the analysis monitor")
    monitor.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    monitor.set_defaults(func=cmd_monitor)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.set_defaults(func=cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        result = args.func(args)
        if asyncio.iscoroutine(result):
            result = asyncio.run(result)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130
    return result


if __name__ == "__main__":
    sys.exit(main())
