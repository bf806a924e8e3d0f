"""
Anomaly detection service: owns the configuration registry, the rolling
windows and the anomaly history, runs detection ticks on a fixed interval and
fans detected anomalies out to monitoring, persistence and alerting.

A tick lists the metrics that reported recently, fetches each configured
metric's history concurrently (bounded by a semaphore and a per-fetch
timeout), runs the configured detector over the refreshed window and processes
everything found. Failures are contained at the smallest unit: one metric, one
anomaly, or one collaborator call. Nothing stops the loop.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional, Union

from api.requests import DetectionConfig, DetectionConfigUpdate
from api.responses import AnomalyResult, DetectionStatistics, DetectionStatus, PatternView
from config import settings
from datasources.base import MetricSource
from datasources.exceptions import DataSourceError
from engine.anomaly import PATTERNS, get_detector
from engine.configs import DetectionConfigRegistry
from engine.exceptions import InsufficientDataError, MetricFetchError
from engine.history import AnomalyHistory
from engine.window import RollingWindowStore
from services.alerting import AlertChannel, LoggingAlertChannel
from services.monitoring import InMemoryMonitoringSink, MonitoringSink
from services.persistence import AnomalyStore, NullAnomalyStore
from store import configs as config_store

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnomalyDetectionService:
    def __init__(
        self,
        source: MetricSource,
        *,
        registry: Optional[DetectionConfigRegistry] = None,
        store: Optional[AnomalyStore] = None,
        alerts: Optional[AlertChannel] = None,
        monitoring: Optional[MonitoringSink] = None,
        history: Optional[AnomalyHistory] = None,
        windows: Optional[RollingWindowStore] = None,
        interval_seconds: Optional[float] = None,
        lookback_seconds: Optional[float] = None,
        fetch_timeout_seconds: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        persist_configs: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.source = source
        self.registry = registry or DetectionConfigRegistry()
        self.store = store or NullAnomalyStore()
        self.alerts = alerts or LoggingAlertChannel()
        self.monitoring = monitoring or InMemoryMonitoringSink()
        self.history = history or AnomalyHistory()
        self.windows = windows or RollingWindowStore()

        self.interval_seconds = float(interval_seconds if interval_seconds is not None else settings.detection_interval_seconds)
        self.lookback_seconds = float(lookback_seconds if lookback_seconds is not None else settings.detection_lookback_seconds)
        self.fetch_timeout_seconds = float(
            fetch_timeout_seconds if fetch_timeout_seconds is not None else settings.detection_fetch_timeout_seconds
        )
        self.persist_configs = persist_configs
        self._clock = clock
        self._alert_severities = {s.lower() for s in settings.alert_severities}

        self._semaphore = asyncio.Semaphore(max(1, int(max_concurrency or settings.detection_max_concurrency)))
        self._history_lock = asyncio.Lock()
        self._cycle_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

        self._cycles_completed = 0
        self._last_started: Optional[datetime] = None
        self._last_finished: Optional[datetime] = None
        self._last_count = 0

    # configuration

    async def load_persisted_configs(self) -> int:
        restored = 0
        for config in await config_store.load_all():
            if self.registry.get(config.metric) is None:
                log.debug("Skipping stored config for unconfigured metric %s", config.metric)
                continue
            self.registry.register(config)
            restored += 1
        if restored:
            log.info("Restored %d detection configuration overrides", restored)
        return restored

    async def update_config(
        self,
        metric: str,
        partial: Union[DetectionConfigUpdate, Mapping[str, Any]],
    ) -> Optional[DetectionConfig]:
        merged = self.registry.update(metric, partial)
        if merged is not None and self.persist_configs:
            await config_store.save(merged)
        return merged

    async def reset_config(self, metric: str) -> Optional[DetectionConfig]:
        restored = self.registry.reset(metric)
        if restored is not None and self.persist_configs:
            await config_store.delete(metric)
        return restored

    def get_config(self, metric: str) -> Optional[DetectionConfig]:
        return self.registry.get(metric)

    def get_configs(self) -> List[DetectionConfig]:
        return self.registry.all()

    @staticmethod
    def get_patterns() -> List[PatternView]:
        return [
            PatternView(
                id=p.id,
                name=p.name,
                description=p.description,
                frequency=p.frequency,
                severity=p.severity,
                examples=list(p.examples),
                detection_rules=list(p.detection_rules),
            )
            for p in PATTERNS
        ]

    # queries

    def get_recent_anomalies(self, limit: Optional[int] = None) -> List[AnomalyResult]:
        return self.history.recent(limit)

    async def get_stored_anomalies(self, limit: Optional[int] = None) -> List[AnomalyResult]:
        """Anomalies read back from the persistence store; empty when nothing is persisted."""
        if limit is None:
            limit = settings.anomaly_recent_default_limit
        return await self.store.recent(limit)

    def get_detection_statistics(self) -> DetectionStatistics:
        return self.history.statistics()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def status(self) -> DetectionStatus:
        return DetectionStatus(
            running=self.running,
            cycles_completed=self._cycles_completed,
            last_cycle_started_at=self._last_started,
            last_cycle_finished_at=self._last_finished,
            last_cycle_anomalies=self._last_count,
            interval_seconds=self.interval_seconds,
        )

    # detection

    async def _fetch_history(self, metric: str, window_size: int):
        try:
            return await asyncio.wait_for(
                self.source.get_history(metric, window_size),
                timeout=self.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise MetricFetchError(f"history fetch for {metric} timed out after {self.fetch_timeout_seconds:g}s") from exc
        except DataSourceError as exc:
            raise MetricFetchError(f"history fetch for {metric} failed: {exc}") from exc

    async def evaluate_metric(self, config: DetectionConfig) -> List[AnomalyResult]:
        metric = config.metric
        async with self._semaphore:
            samples = await self._fetch_history(metric, config.window_size)
            window = self.windows.refresh(metric, config.window_size, samples)
            if len(window) < config.min_samples:
                raise InsufficientDataError(metric, len(window), config.min_samples)
            values = self.windows.values(metric)
            detector = get_detector(config.algorithm.value)
            return detector.safe_detect(metric, values, config)

    async def _evaluate_contained(self, config: DetectionConfig) -> List[AnomalyResult]:
        try:
            return await self.evaluate_metric(config)
        except InsufficientDataError as exc:
            log.debug("Skipping %s", exc)
        except MetricFetchError as exc:
            log.warning("Detection skipped: %s", exc)
        except Exception:
            log.exception("Detection failed for %s", config.metric)
        return []

    async def _list_recent(self) -> List[str]:
        since = self._clock() - self.lookback_seconds
        try:
            recent = await asyncio.wait_for(
                self.source.list_recent_metrics(since),
                timeout=self.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise MetricFetchError("listing recent metrics timed out") from exc
        except DataSourceError as exc:
            raise MetricFetchError(f"listing recent metrics failed: {exc}") from exc
        return list(dict.fromkeys(sample.metric for sample in recent))

    async def run_cycle(self) -> List[AnomalyResult]:
        async with self._cycle_lock:
            self._last_started = _utcnow()
            try:
                metrics = await self._list_recent()
            except Exception as exc:
                log.error("Anomaly detection cycle aborted: %s", exc)
                self._finish_cycle(0)
                return []

            configs = [
                config for config in (self.registry.get(m) for m in metrics)
                if config is not None and config.enabled
            ]
            results = await asyncio.gather(*(self._evaluate_contained(c) for c in configs))
            anomalies = [anomaly for found in results for anomaly in found]

            for anomaly in anomalies:
                await self.process(anomaly)

            if anomalies:
                log.warning(
                    "Detected %d anomalies: %s",
                    len(anomalies),
                    ", ".join(f"{a.metric}/{a.severity.value}" for a in anomalies),
                )
            self._finish_cycle(len(anomalies))
            return anomalies

    def _finish_cycle(self, count: int) -> None:
        self._cycles_completed += 1
        self._last_count = count
        self._last_finished = _utcnow()

    async def process(self, anomaly: AnomalyResult) -> None:
        async with self._history_lock:
            self.history.append(anomaly)

        try:
            self.monitoring.record_counter(
                "anomalies_detected",
                1,
                {"metric": anomaly.metric, "severity": anomaly.severity.value, "algorithm": anomaly.algorithm},
            )
        except Exception:
            log.exception("Failed to record anomaly counter for %s", anomaly.metric)

        try:
            await self.store.save_anomaly(anomaly)
        except Exception as exc:
            log.error("Failed to persist anomaly %s: %s", anomaly.id, exc)

        if anomaly.severity.value in self._alert_severities:
            try:
                await self.alerts.dispatch(anomaly)
            except Exception as exc:
                log.error("Failed to send anomaly alert for %s: %s", anomaly.metric, exc)

    # loop control

    async def _loop(self) -> None:
        log.info("Anomaly detection loop started (interval=%gs)", self.interval_seconds)
        while not self._stop_event.is_set():
            try:
                await self.run_cycle()
            except Exception:
                log.exception("Anomaly detection cycle failed")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        log.info("Anomaly detection loop stopped")

    def start(self) -> bool:
        if self.running:
            log.warning("Anomaly detection already running")
            return False
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        return True

    async def stop(self) -> bool:
        task = self._task
        if task is None or task.done():
            self._task = None
            return False
        # the loop exits at its next check; an in-flight tick runs to completion
        self._stop_event.set()
        await task
        self._task = None
        return True

    async def aclose(self) -> None:
        await self.stop()
        await self.alerts.aclose()
        await self.source.aclose()
