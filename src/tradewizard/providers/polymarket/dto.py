"""Data Transfer Objects for Polymarket API responses.

DTOs validate the raw Gamma/CLOB payloads and compile parsed fields. Gamma
sends camelCase keys and JSON-encoded list strings; the older CLOB market
payload uses snake_case, so identity and date fields accept both spellings.
"""
from datetime import datetime, timezone
from typing import Any

from pydantic import (AliasChoices, BaseModel, ConfigDict, Field,
                      computed_field, field_validator)

from tradewizard.providers.core import (parse_iso_datetime, parse_json_list,
                                        round2, to_float,
                                        utc_from_millis)
from tradewizard.schemas import MarketQuote, OrderBook, OrderLevel, Source


class PolymarketMarketDTO(BaseModel):
    """DTO for a market from Polymarket's Gamma API.

    Unknown upstream keys are kept (extra="allow") so the listing proxy can
    pass records through unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | int | None = None
    slug: str | None = Field(
        default=None, validation_alias=AliasChoices("slug", "market_slug")
    )
    question: str | None = None
    description: str | None = None
    condition_id: str | None = Field(
        default=None, validation_alias=AliasChoices("conditionId", "condition_id")
    )

    # Gamma sends these as JSON array strings
    outcomes: str | list | None = None
    outcome_prices: str | list | None = Field(
        default=None, validation_alias=AliasChoices("outcomePrices", "outcome_prices")
    )
    clob_token_ids: str | list | None = Field(
        default=None, validation_alias=AliasChoices("clobTokenIds", "clob_token_ids")
    )

    volume: str | float | None = None
    volume_num: float | None = Field(default=None, alias="volumeNum")
    volume_24hr: str | float | None = Field(default=None, alias="volume24hr")
    liquidity: str | float | None = None
    liquidity_num: float | None = Field(default=None, alias="liquidityNum")

    active: bool | None = None
    closed: bool | None = None
    archived: bool | None = None
    resolved: bool | None = None
    accepting_orders: bool | None = Field(default=None, alias="acceptingOrders")
    group_item_title: str | None = Field(default=None, alias="groupItemTitle")
    tags: list[dict[str, Any]] | None = None

    end_date: str | None = Field(
        default=None, validation_alias=AliasChoices("endDate", "end_date_iso", "endDateIso")
    )
    game_start_time: str | None = Field(
        default=None, validation_alias=AliasChoices("gameStartTime", "game_start_time")
    )
    updated_at: str | None = Field(default=None, alias="updatedAt")
    created_at: str | None = Field(default=None, alias="createdAt")

    @computed_field
    @property
    def outcomes_parsed(self) -> list[str]:
        return [str(x) for x in parse_json_list(self.outcomes)]

    @computed_field
    @property
    def outcome_prices_parsed(self) -> list[float]:
        return [to_float(p) for p in parse_json_list(self.outcome_prices)]

    @computed_field
    @property
    def clob_token_ids_parsed(self) -> list[str]:
        return [
            str(x)
            for x in parse_json_list(self.clob_token_ids, allow_comma_split=True)
        ]

    @computed_field
    @property
    def value(self) -> float:
        """Probability of the first (YES) outcome, 0-1."""
        prices = self.outcome_prices_parsed
        return prices[0] if prices else 0.0

    @computed_field
    @property
    def symbol(self) -> str:
        return self.slug or self.condition_id or self.question or "unknown"

    @computed_field
    @property
    def volume_compiled(self) -> float | None:
        if self.volume_num is not None:
            return float(self.volume_num)
        if self.volume is None or self.volume == "":
            return None
        return to_float(self.volume)

    @computed_field
    @property
    def liquidity_compiled(self) -> float:
        if self.liquidity_num is not None:
            return float(self.liquidity_num)
        return to_float(self.liquidity)

    @computed_field
    @property
    def tag_ids(self) -> list[int]:
        ids: list[int] = []
        for tag in self.tags or []:
            try:
                ids.append(int(tag.get("id")))
            except (TypeError, ValueError):
                continue
        return ids

    @property
    def timestamp_compiled(self) -> datetime:
        return parse_iso_datetime(self.updated_at) or datetime.now(timezone.utc)

    def to_metadata_dict(self) -> dict:
        return {
            "question": self.question,
            "condition_id": self.condition_id,
            "slug": self.slug,
            "outcomes": self.outcomes_parsed,
            "outcome_prices": self.outcome_prices_parsed,
            "clob_token_ids": self.clob_token_ids_parsed,
        }

    def to_market_quote(self) -> MarketQuote:
        return MarketQuote(
            source=Source.POLYMARKET,
            symbol=self.symbol,
            value=round2(self.value),
            volume=round2(self.volume_compiled),
            timestamp=self.timestamp_compiled,
            metadata=self.to_metadata_dict(),
        )


class PolymarketEventDTO(BaseModel):
    """Event from Gamma API; markets stay raw for pass-through listing."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | int | None = None
    title: str | None = None
    slug: str | None = None
    image: str | None = None
    icon: str | None = None
    active: bool | None = None
    closed: bool | None = None
    ended: bool | None = None
    neg_risk: bool | None = Field(default=None, alias="negRisk")
    markets: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("markets", mode="before")
    @classmethod
    def _null_markets(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def is_open(self) -> bool:
        return bool(self.active) and not self.closed and not self.ended


class _BookLevelDTO(BaseModel):
    price: str | float
    size: str | float


class PolymarketOrderBookDTO(BaseModel):
    """Order book from CLOB `/book`. Levels arrive as price/size strings."""

    model_config = ConfigDict(extra="ignore")

    market: str | None = None
    asset_id: str | None = None
    bids: list[_BookLevelDTO] = Field(default_factory=list)
    asks: list[_BookLevelDTO] = Field(default_factory=list)
    timestamp: str | int | None = None

    def to_order_book(self) -> OrderBook:
        """Normalize so the best bid and best ask come first."""
        bids = sorted(
            (OrderLevel(price=to_float(b.price), size=to_float(b.size)) for b in self.bids),
            key=lambda level: level.price,
            reverse=True,
        )
        asks = sorted(
            (OrderLevel(price=to_float(a.price), size=to_float(a.size)) for a in self.asks),
            key=lambda level: level.price,
        )
        return OrderBook(
            market=self.market,
            asset_id=self.asset_id,
            bids=bids,
            asks=asks,
            timestamp=utc_from_millis(self.timestamp),
        )
