"""CLI to smoke-test a running TradeWizard API and the Polymarket stream.

Usage:
  poetry run test-routers health
  poetry run test-routers polymarket list --limit 5 --with-prices
  poetry run test-routers recommendations get 0xabc...
  poetry run test-routers analysis run 0xabc...
  poetry run test-routers orders validate 10 --limit-price 0.55
  poetry run test-routers stream 0xabc... --messages 5
"""
import argparse
import asyncio
import json
import sys

import httpx

from tradewizard.providers import PolymarketClient


def print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_health(client: httpx.Client, args: argparse.Namespace) -> int:
    params = {"tag": args.tag} if args.tag else None
    r = client.get("/", params=params)
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_polymarket_list(client: httpx.Client, args: argparse.Namespace) -> int:
    params = {"limit": args.limit, "offset": args.offset, "with_prices": args.with_prices}
    if args.tag_id:
        params["tag_id"] = args.tag_id
    r = client.get("/api/polymarket/markets", params=params)
    r.raise_for_status()
    data = r.json()
    print(f"Found {len(data)} markets")
    print_json(data[: args.head] if args.head else data)
    return 0


def cmd_polymarket_get(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get(f"/api/polymarket/markets/{args.market_id}")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_polymarket_prices(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get("/api/polymarket/prices", params={"token_ids": ",".join(args.token_ids)})
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_polymarket_refresh(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.post("/api/polymarket/refresh")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_recommendations_get(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get(f"/api/recommendations/{args.condition_id}", params={"limit": args.limit})
    r.raise_for_status()
    data = r.json()
    print(f"{len(data['history'])} stored recommendations")
    print_json(data)
    return 0


def cmd_recommendations_performance(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get(f"/api/recommendations/{args.condition_id}/performance")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_analysis_run(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.post(f"/api/analysis/{args.condition_id}")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_analysis_audit(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get(f"/api/analysis/{args.condition_id}/audit")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_orders_validate(client: httpx.Client, args: argparse.Namespace) -> int:
    body = {
        "size": args.size,
        "limit_price": args.limit_price,
        "order_type": "limit" if args.limit_price is not None else "market",
        "tick_size": args.tick_size,
    }
    r = client.post("/api/orders/validate", json=body)
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_stream(args: argparse.Namespace) -> int:
    """Print MarketQuotes from the CLOB WebSocket; no server required."""
    count = 0

    async def run() -> None:
        nonlocal count
        async with PolymarketClient() as client:
            print(
                f"Streaming {args.symbols} "
                f"(duration={args.duration}s, max_messages={args.messages or 'unlimited'})",
                file=sys.stderr,
            )
            async for quote in client.stream(args.symbols):
                count += 1
                print_json(quote.model_dump(mode="json"))
                if args.messages and count >= args.messages:
                    return

    async def run_with_timeout() -> None:
        if args.duration and args.duration > 0:
            try:
                await asyncio.wait_for(run(), timeout=args.duration)
            except asyncio.TimeoutError:
                print(f"Stopped after {args.duration}s ({count} messages)", file=sys.stderr)
        else:
            await run()

    try:
        asyncio.run(run_with_timeout())
    except KeyboardInterrupt:
        print(f"\nStopped by user ({count} messages)", file=sys.stderr)
        return 130
    except Exception as e:  # pylint: disable=broad-except
        print(f"Stream error: {e}", file=sys.stderr)
        return 1
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Smoke-test TradeWizard API routes and the Polymarket stream.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="API base URL (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=120.0,
        help="Request timeout in seconds; analysis runs are slow (default: 120)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command")

    p = subparsers.add_parser("health", help="GET / health check")
    p.add_argument("--tag", default=None, help="Political tag (e.g. elections)")

    poly = subparsers.add_parser("polymarket", help="Market data routes (/api/polymarket)")
    poly_sub = poly.add_subparsers(dest="polymarket_cmd", required=True)
    p = poly_sub.add_parser("list", help="GET /api/polymarket/markets")
    p.add_argument("--limit", type=int, default=10, help="Max markets (default: 10)")
    p.add_argument("--offset", type=int, default=0, help="Markets to skip")
    p.add_argument("--tag-id", default=None, help="Filter by tag ID")
    p.add_argument("--with-prices", action="store_true", help="Attach CLOB prices")
    p.add_argument("--head", type=int, default=0, help="Show only first N (0 = all)")
    p = poly_sub.add_parser("get", help="GET /api/polymarket/markets/{market_id}")
    p.add_argument("market_id", help="Market slug or condition ID")
    p = poly_sub.add_parser("prices", help="GET /api/polymarket/prices")
    p.add_argument("token_ids", nargs="+", help="CLOB token IDs")
    poly_sub.add_parser("refresh", help="POST /api/polymarket/refresh")

    recs = subparsers.add_parser("recommendations", help="Stored recommendations")
    recs_sub = recs.add_subparsers(dest="recommendations_cmd", required=True)
    p = recs_sub.add_parser("get", help="GET /api/recommendations/{condition_id}")
    p.add_argument("condition_id")
    p.add_argument("--limit", type=int, default=20)
    p = recs_sub.add_parser("performance", help="GET /api/recommendations/{condition_id}/performance")
    p.add_argument("condition_id")

    analysis = subparsers.add_parser("analysis", help="Run or audit an analysis")
    analysis_sub = analysis.add_subparsers(dest="analysis_cmd", required=True)
    p = analysis_sub.add_parser("run", help="POST /api/analysis/{condition_id}")
    p.add_argument("condition_id")
    p = analysis_sub.add_parser("audit", help="GET /api/analysis/{condition_id}/audit")
    p.add_argument("condition_id")

    orders = subparsers.add_parser("orders", help="Order input checks")
    orders_sub = orders.add_subparsers(dest="orders_cmd", required=True)
    p = orders_sub.add_parser("validate", help="POST /api/orders/validate")
    p.add_argument("size", help="Order size in shares")
    p.add_argument("--limit-price", default=None, help="Limit price; omit for a market order")
    p.add_argument("--tick-size", type=float, default=0.01)

    p = subparsers.add_parser("stream", help="Polymarket CLOB WebSocket stream")
    p.add_argument("symbols", nargs="+", help="Market slugs or condition IDs")
    p.add_argument("--duration", type=float, default=None, metavar="SECS",
                   help="Stop after SECS seconds (default: run until Ctrl+C)")
    p.add_argument("--messages", type=int, default=None, metavar="N",
                   help="Stop after N messages (default: no limit)")

    args = parser.parse_args()
    base_url = args.base_url.rstrip("/")

    handlers = {
        "polymarket": {
            "list": cmd_polymarket_list,
            "get": cmd_polymarket_get,
            "prices": cmd_polymarket_prices,
            "refresh": cmd_polymarket_refresh,
        },
        "recommendations": {
            "get": cmd_recommendations_get,
            "performance": cmd_recommendations_performance,
        },
        "analysis": {"run": cmd_analysis_run, "audit": cmd_analysis_audit},
        "orders": {"validate": cmd_orders_validate},
    }

    cmd = args.command
    if cmd == "stream":
        return cmd_stream(args)
    if cmd == "health":
        handler = cmd_health
    else:
        handler = handlers[cmd][getattr(args, f"{cmd}_cmd")]

    try:
        with httpx.Client(base_url=base_url, timeout=args.timeout) as client:
            return handler(client, args)
    except httpx.HTTPStatusError as e:
        print(f"HTTP error: {e.response.status_code}", file=sys.stderr)
        if e.response.content:
            try:
                print(e.response.json(), file=sys.stderr)
            except ValueError:
                print(e.response.text, file=sys.stderr)
        return 1
    except httpx.RequestError as e:
        print(f"Request error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
