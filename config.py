"""
Constants and configuration for Sentinel.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import os
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings


REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CONFIG_TTL: int = int(os.getenv("CONFIG_TTL", "0"))

METRICS_BACKEND_DATABASE = "database"
METRICS_BACKEND_HTTP = "http"

SENTINEL_METRICS_BACKEND = os.getenv("SENTINEL_METRICS_BACKEND", METRICS_BACKEND_HTTP).lower()
SENTINEL_TELEMETRY_URL = os.getenv("SENTINEL_TELEMETRY_URL", "http://telemetry:8080").rstrip("/")
SENTINEL_CONNECTOR_TIMEOUT = int(os.getenv("SENTINEL_CONNECTOR_TIMEOUT", "30"))
SENTINEL_ALERT_WEBHOOK_URL = os.getenv("SENTINEL_ALERT_WEBHOOK_URL", "").strip()


SEVERITY_WEIGHTS: Dict[str, int] = {
    "low": 1,
    "medium": 2,
    "high": 3,
    "critical": 4,
}

# (critical, high, medium) score cutoffs per sensitivity tier; a more
# sensitive tier reaches each severity at a lower score.
SEVERITY_CUTOFFS: Dict[str, Dict[str, float]] = {
    "low": {"critical": 5.0, "high": 3.0, "medium": 2.0},
    "medium": {"critical": 4.0, "high": 2.5, "medium": 1.5},
    "high": {"critical": 3.0, "high": 2.0, "medium": 1.0},
}

# detection settings applied at startup for every metric the collector is
# known to emit
DEFAULT_DETECTION_CONFIGS: Dict[str, Dict[str, object]] = {
    "error_rate": {
        "algorithm": "statistical",
        "sensitivity": "high",
        "window_size": 100,
        "threshold": 2.0,
        "min_samples": 20,
        "enabled": True,
    },
    "response_time_ms": {
        "algorithm": "time_series",
        "sensitivity": "medium",
        "window_size": 200,
        "threshold": 1.5,
        "min_samples": 50,
        "enabled": True,
    },
    "memory_usage_percent": {
        "algorithm": "statistical",
        "sensitivity": "medium",
        "window_size": 150,
        "threshold": 2.5,
        "min_samples": 30,
        "enabled": True,
    },
    "cpu_usage_percent": {
        "algorithm": "statistical",
        "sensitivity": "medium",
        "window_size": 150,
        "threshold": 2.0,
        "min_samples": 30,
        "enabled": True,
    },
    "ai_cost_per_hour": {
        "algorithm": "time_series",
        "sensitivity": "high",
        "window_size": 100,
        "threshold": 1.8,
        "min_samples": 25,
        "enabled": True,
    },
    "throughput": {
        "algorithm": "pattern",
        "sensitivity": "low",
        "window_size": 300,
        "threshold": 1.2,
        "min_samples": 100,
        "enabled": True,
    },
}

SUGGESTED_ACTIONS: Dict[str, List[str]] = {
    "error_rate": [
        "Check application logs for error patterns",
        "Review recent deployments for issues",
        "Implement circuit breaker pattern",
        "Scale up resources if needed",
    ],
    "response_time_ms": [
        "Optimize database queries",
        "Implement caching layer",
        "Check for resource bottlenecks",
        "Review API endpoint performance",
    ],
    "memory_usage_percent": [
        "Check for memory leaks",
        "Optimize data structures",
        "Implement garbage collection tuning",
        "Scale up memory resources",
    ],
    "cpu_usage_percent": [
        "Check for CPU-intensive operations",
        "Optimize algorithms",
        "Implement load balancing",
        "Scale up CPU resources",
    ],
    "ai_cost_per_hour": [
        "Optimize AI model usage",
        "Implement request batching",
        "Review prompt efficiency",
        "Consider model alternatives",
    ],
}
DEFAULT_SUGGESTED_ACTIONS: List[str] = ["Investigate the issue", "Check system logs"]


class Settings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 4330
    log_level: str = "info"
    startup_timeout: int = 60

    metrics_backend: str = SENTINEL_METRICS_BACKEND
    telemetry_url: str = SENTINEL_TELEMETRY_URL
    connector_timeout: int = SENTINEL_CONNECTOR_TIMEOUT

    database_url: Optional[str] = None
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800
    alert_webhook_url: Optional[str] = SENTINEL_ALERT_WEBHOOK_URL or None

    # detection loop
    detection_enabled: bool = True
    detection_interval_seconds: float = 60.0
    detection_lookback_seconds: float = 24 * 60 * 60
    detection_fetch_timeout_seconds: float = 10.0
    detection_max_concurrency: int = 4

    # bounded in-memory anomaly history
    anomaly_history_max: int = 10_000
    anomaly_recent_default_limit: int = 50

    # statistical detector
    iqr_multiplier: float = 1.5
    zscore_confidence_cap: float = 0.95
    zscore_confidence_divisor: float = 5.0
    iqr_confidence: float = 0.8

    # trend detector
    trend_slope_points: int = 10
    trend_moving_average_max: int = 20
    trend_epsilon: float = 0.001
    # noise floor as a fraction of the series level, used when the history is noise-free
    trend_noise_floor_ratio: float = 0.01
    trend_confidence_cap: float = 0.9
    trend_confidence_divisor: float = 3.0

    # pattern rules
    pattern_spike_zscore: float = 3.0
    pattern_drop_ratio: float = 0.5
    pattern_drop_confidence: float = 0.8
    pattern_trend_slope: float = 0.1
    pattern_trend_confidence: float = 0.7

    # ensemble voting
    ensemble_min_agreement: int = 2

    # alerting
    alert_severities: List[str] = ["high", "critical"]
    alert_webhook_timeout: float = 5.0

    # connector retry policy
    connector_retry_attempts: int = 3
    connector_retry_delay: float = 0.5
    connector_retry_backoff: float = 2.0
    connector_retry_max_delay: float = 5.0

    store_redis_retry_cooldown_seconds: float = 10.0
    store_fallback_max_items: int = 10_000

    model_config = {
        "env_prefix": "SENTINEL_",
        "extra": "ignore",
    }


settings = Settings()
