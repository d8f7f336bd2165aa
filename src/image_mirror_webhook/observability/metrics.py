"""
Prometheus metrics for the image mirror webhook.

This module provides metrics for admission requests, image rewrites and
pull secret provisioning, and the HTTP server that exposes them.
"""

import logging
import time
from contextlib import contextmanager

from aiohttp.web import Application, AppRunner, Request, Response, TCPSite
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None

# Metrics definitions
ADMISSION_REQUESTS_TOTAL = Counter(
    "image_mirror_webhook_admission_requests_total",
    "Total number of admission requests handled",
    ["operation", "result"],
    registry=None,  # Registered in get_metrics_registry()
)

MUTATION_DURATION = Histogram(
    "image_mirror_webhook_mutation_duration_seconds",
    "Time spent computing pod mutations, secret provisioning included",
    [],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=None,
)

IMAGE_REWRITES_TOTAL = Counter(
    "image_mirror_webhook_image_rewrites_total",
    "Total number of container images rewritten",
    ["container_type"],
    registry=None,
)

SECRET_PROVISIONING_TOTAL = Counter(
    "image_mirror_webhook_secret_provisioning_total",
    "Pull secret provisioning outcomes (existing, created, converged, failed)",
    ["outcome"],
    registry=None,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry

    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()

        for metric in [
            ADMISSION_REQUESTS_TOTAL,
            MUTATION_DURATION,
            IMAGE_REWRITES_TOTAL,
            SECRET_PROVISIONING_TOTAL,
        ]:
            _metrics_registry.register(metric)

    return _metrics_registry


class MetricsCollector:
    """Records webhook metrics."""

    def __init__(self):
        self.registry = get_metrics_registry()

    @contextmanager
    def track_mutation(self):
        """Context manager timing one pod mutation."""
        start_time = time.monotonic()
        try:
            yield
        finally:
            MUTATION_DURATION.observe(time.monotonic() - start_time)

    def record_admission(self, operation: str, result: str) -> None:
        """
        Count an admission request.

        Args:
            operation: Admission operation (CREATE, UPDATE, ...)
            result: patched, unchanged, skipped, rejected or error
        """
        ADMISSION_REQUESTS_TOTAL.labels(operation=operation, result=result).inc()

    def record_image_rewrite(self, container_type: str) -> None:
        IMAGE_REWRITES_TOTAL.labels(container_type=container_type).inc()

    def record_secret_provisioning(self, outcome: str) -> None:
        SECRET_PROVISIONING_TOTAL.labels(outcome=outcome).inc()


class MetricsServer:
    """HTTP server for the Prometheus scrape endpoint."""

    def __init__(self, port: int = 8081, host: str = "0.0.0.0"):
        """
        Initialize metrics server.

        Args:
            port: Port to listen on
            host: Host address to bind to
        """
        self.port = port
        self.host = host
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None

        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            metrics_data = generate_latest(get_metrics_registry())
            return Response(
                body=metrics_data, headers={"Content-Type": CONTENT_TYPE_LATEST}
            )
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _healthz_handler(self, request: Request) -> Response:
        return Response(text="ok")

    async def start(self) -> None:
        """Start the metrics server."""
        self.runner = AppRunner(self.app)
        await self.runner.setup()

        self.site = TCPSite(self.runner, self.host, self.port)
        await self.site.start()

        logger.info(f"Metrics available at http://{self.host}:{self.port}/metrics")

    async def stop(self) -> None:
        """Stop the metrics server."""
        if self.site:
            await self.site.stop()
            self.site = None

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        logger.info("Metrics server stopped")


# Global metrics collector instance
metrics_collector = MetricsCollector()
