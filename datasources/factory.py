"""
Factory for creating the metric source selected by configuration.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from connectors.telemetry import TelemetryConnector
from datasources.base import MetricSource
from datasources.sql import SqlMetricSource


class DataSourceFactory:

    @staticmethod
    def create_metrics(config) -> MetricSource:
        from config import METRICS_BACKEND_DATABASE, METRICS_BACKEND_HTTP

        backend = str(config.metrics_backend).lower()
        if backend == METRICS_BACKEND_HTTP:
            return TelemetryConnector(config.telemetry_url, timeout=config.connector_timeout)
        if backend == METRICS_BACKEND_DATABASE:
            if not config.database_url:
                raise ValueError("metrics backend 'database' requires SENTINEL_DATABASE_URL")
            return SqlMetricSource()
        raise ValueError(f"Unsupported metrics backend: {config.metrics_backend}")
