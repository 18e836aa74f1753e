"""Background monitor: resolve finished markets, discover new ones, refresh stale analyses."""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import text

from tradewizard.config import EngineConfig
from tradewizard.db.persistence import AnalysisRecord, DatabasePersistence
from tradewizard.providers.core import PredictionMarketProviderABC
from tradewizard.services.discovery import MarketDiscoveryService
from tradewizard.services.recommendations import (AnalysisType,
                                                  RecommendationService)

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    started_at: datetime
    resolved: list[str] = field(default_factory=list)
    analyzed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    purged: int = 0
    duration_ms: int = 0


class MonitorService:
    """Runs analysis cycles on a fixed interval.

    Each cycle analyzes at most monitor.max_markets_per_cycle markets:
    newly discovered ones first, then the stalest tracked markets.
    """

    def __init__(
        self,
        config: EngineConfig,
        client: PredictionMarketProviderABC,
        discovery: MarketDiscoveryService,
        recommendations: RecommendationService,
    ) -> None:
        self._config = config
        self._client = client
        self._discovery = discovery
        self._recommendations = recommendations
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._started_at: float | None = None
        self.last_report: CycleReport | None = None

    @property
    def persistence(self) -> DatabasePersistence:
        return self._recommendations.persistence

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def check_resolutions(self, report: CycleReport) -> None:
        for market in self.persistence.get_active_markets():
            resolution = await self._client.check_market_resolution(market.condition_id)
            if not resolution.resolved:
                continue
            outcome = resolution.outcome or "UNKNOWN"
            self.persistence.mark_market_resolved(market.id, outcome)
            self.persistence.record_analysis(
                market.id, AnalysisRecord(type="resolution", status="success")
            )
            report.resolved.append(market.condition_id)

    async def _analyze(
        self,
        report: CycleReport,
        condition_id: str,
        analysis_type: AnalysisType,
        trending_score: float | None = None,
    ) -> None:
        try:
            outcome = await self._recommendations.analyze(
                condition_id, analysis_type, trending_score=trending_score
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Analysis of %s failed: %s", condition_id, exc)
            report.failed.append(condition_id)
            return
        if outcome.ok:
            report.analyzed.append(condition_id)
        else:
            report.failed.append(condition_id)

    async def run_cycle(self) -> CycleReport:
        """One monitor pass. Discovery or resolution errors are logged, not raised."""
        started = time.monotonic()
        report = CycleReport(started_at=datetime.now(timezone.utc))
        budget = self._config.monitor.max_markets_per_cycle

        try:
            await self.check_resolutions(report)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Resolution check failed: %s", exc)

        try:
            discovered = await self._discovery.discover_markets(budget)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Market discovery failed: %s", exc)
            discovered = []

        attempted: set[str] = set()
        for ranked in discovered:
            if len(attempted) >= budget:
                break
            if not ranked.condition_id:
                continue
            if self.persistence.get_market_by_condition_id(ranked.condition_id) is not None:
                continue
            attempted.add(ranked.condition_id)
            await self._analyze(report, ranked.condition_id, "initial", ranked.trending_score)

        interval = timedelta(hours=self._config.monitor.update_interval_hours)
        for market in self.persistence.get_markets_for_update(interval):
            if len(attempted) >= budget:
                break
            if market.condition_id in attempted:
                continue
            attempted.add(market.condition_id)
            await self._analyze(report, market.condition_id, "update")

        retention = timedelta(days=self._config.logging.audit_trail_retention_days)
        report.purged = self.persistence.purge_analysis_history(retention)

        report.duration_ms = int((time.monotonic() - started) * 1000)
        self.last_report = report
        logger.info(
            "Monitor cycle done in %d ms: %d resolved, %d analyzed, %d failed",
            report.duration_ms,
            len(report.resolved),
            len(report.analyzed),
            len(report.failed),
        )
        return report

    async def _loop(self) -> None:
        interval = self._config.monitor.interval_seconds
        while not self._stop_event.is_set():
            try:
                await self.run_cycle()
            except Exception as exc:  # pylint: disable=broad-except
                logger.exception("Monitor cycle failed: %s", exc)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    async def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._started_at = time.monotonic()
        self._task = asyncio.create_task(self._loop())
        logger.info("Monitor started (interval %.0fs)", self._config.monitor.interval_seconds)

    async def stop(self) -> None:
        """Stop after the cycle in progress completes."""
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        logger.info("Monitor stopped")

    def _database_connected(self) -> bool:
        try:
            with self.persistence.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Database health check failed: %s", exc)
            return False
        return True

    def get_health(self) -> dict[str, Any]:
        """healthy when the database answers and the scheduler runs; degraded if only the database answers."""
        connected = self._database_connected()
        running = self.running
        if not connected:
            status = "unhealthy"
        elif not running:
            status = "degraded"
        else:
            status = "healthy"
        last = self.last_report
        return {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": time.monotonic() - self._started_at if self._started_at else 0.0,
            "database": {"connected": connected},
            "scheduler": {
                "running": running,
                "interval_seconds": self._config.monitor.interval_seconds,
            },
            "last_cycle": {
                "started_at": last.started_at.isoformat(),
                "resolved": len(last.resolved),
                "analyzed": len(last.analyzed),
                "failed": len(last.failed),
            }
            if last
            else None,
        }
