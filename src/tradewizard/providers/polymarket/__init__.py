"""Polymarket provider: Gamma/CLOB client, DTOs and briefing builder."""
from tradewizard.providers.polymarket.client import PolymarketClient

__all__ = ["PolymarketClient"]
