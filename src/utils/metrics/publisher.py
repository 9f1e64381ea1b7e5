"""
Prometheus HTTP endpoint for a running export.

An export is a batch job, so the endpoint only lives as long as the
process. It is useful to watch progress of long exports.
"""

import logging
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Info, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """
    Exposes the metrics registry on ``/metrics``

    Also publishes an ``export_application`` info metric with the
    application name and version.
    """

    def __init__(
        self,
        port: int = 9091,
        registry: Optional[CollectorRegistry] = None,
        app_name: str = "schema-export",
        version: str = "1.0.0",
    ):
        """
        Initialize metrics publisher

        Args:
            port: Port to expose metrics on (default: 9091)
            registry: Custom Prometheus registry (default: global REGISTRY)
            app_name: Value of the ``name`` label of the info metric
            version: Value of the ``version`` label of the info metric
        """
        self.port = port
        self.registry = registry or REGISTRY
        self.app_name = app_name
        self.version = version
        self._server_started = False

    def start(self) -> None:
        """Start the metrics HTTP server"""
        if self._server_started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            start_http_server(self.port, registry=self.registry)
        except OSError as e:
            raise RuntimeError(
                f"Cannot start metrics server on port {self.port}: {e}"
            ) from e

        info = Info("export_application", "Application metadata", registry=self.registry)
        info.info({"name": self.app_name, "version": self.version})
        self._server_started = True
        logger.info(f"Metrics server started on port {self.port}")

    def is_started(self) -> bool:
        """Check if metrics server is running"""
        return self._server_started
