"""OpenTelemetry bootstrap utilities for the NeuroLab API."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from . import __version__
from .config import TelemetryConfig

LOGGER = logging.getLogger(__name__)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from fastapi import FastAPI


@dataclass
class TelemetryManager:
    """Configure tracing/metrics exporters when the SDK is installed and enabled."""

    config: TelemetryConfig
    _shutdown_hooks: List[Callable[[], None]] = field(default_factory=list)
    _instrument_fastapi: Optional[Callable[["FastAPI"], None]] = None
    _enabled: bool = False
    _event_counter: Optional[Any] = None
    _snr_histogram: Optional[Any] = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    def configure(self) -> None:
        if not self.config.enabled:
            LOGGER.debug("Telemetry disabled by configuration")
            return
        if not self.config.capture_traces and not self.config.capture_metrics:
            LOGGER.debug("Telemetry has nothing to capture")
            return
        try:
            from opentelemetry import metrics, trace
            from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
            from opentelemetry.sdk.resources import Resource
            from opentelemetry.sdk.trace import TracerProvider
            from opentelemetry.sdk.trace.export import BatchSpanProcessor
            from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
                OTLPSpanExporter,
            )
            from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
                OTLPMetricExporter,
            )
            from opentelemetry.sdk.metrics import MeterProvider
            from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        except ImportError:
            LOGGER.warning("OpenTelemetry SDK not available; telemetry disabled")
            return

        resource = Resource.create(
            {
                "service.name": self.config.service_name,
                "deployment.environment": self.config.environment,
                "service.version": __version__,
            }
        )
        if self.config.capture_traces:
            try:
                provider = TracerProvider(resource=resource, sampler=TraceIdRatioBased(self.config.sampling_ratio))
                provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=self.config.exporter_endpoint)))
                trace.set_tracer_provider(provider)
                self._shutdown_hooks.append(provider.shutdown)
                LOGGER.info("OpenTelemetry tracing configured (endpoint=%s)", self.config.exporter_endpoint)
            except Exception as exc:  # pragma: no cover - exporter wiring
                LOGGER.warning("Failed to initialise OTLP span exporter: %s", exc)
        if self.config.capture_metrics:
            try:
                reader = PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=self.config.exporter_endpoint))
                meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
                metrics.set_meter_provider(meter_provider)
                self._shutdown_hooks.append(meter_provider.shutdown)  # type: ignore[arg-type]
                meter = metrics.get_meter("neurolab", __version__)
                self._event_counter = meter.create_counter(
                    "neurolab.game_events",
                    description="Scan outcomes, optical attempts and debate verdicts",
                )
                self._snr_histogram = meter.create_histogram(
                    "neurolab.scan_snr",
                    description="Predicted SNR of scans that reached the SNR gate",
                )
                LOGGER.info("OpenTelemetry metrics configured (endpoint=%s)", self.config.exporter_endpoint)
            except Exception as exc:  # pragma: no cover - exporter wiring
                LOGGER.warning("Failed to initialise OTLP metric exporter: %s", exc)

        self._instrument_fastapi = FastAPIInstrumentor().instrument_app  # type: ignore[attr-defined]
        self._enabled = True

    def instrument_app(self, app: "FastAPI") -> None:
        if self._instrument_fastapi is None:
            return
        try:
            self._instrument_fastapi(app)
        except Exception as exc:  # pragma: no cover - instrumentation failure
            LOGGER.warning("Failed to instrument FastAPI: %s", exc)

    def record_event(self, kind: str, outcome: str) -> None:
        """Count one game outcome; a no-op unless metrics are being exported."""

        if self._event_counter is None:
            return
        self._event_counter.add(1, {"kind": kind, "outcome": outcome})

    def record_scan(self, snr: float, outcome: str) -> None:
        """Record a resolved scan: one game event plus its SNR when one was computed."""

        self.record_event("scan", outcome)
        if self._snr_histogram is not None and snr > 0:
            self._snr_histogram.record(snr, {"outcome": outcome})

    def shutdown(self) -> None:
        for hook in reversed(self._shutdown_hooks):
            try:
                hook()
            except Exception as exc:  # pragma: no cover - best effort cleanup
                LOGGER.debug("Telemetry shutdown hook failed: %s", exc)


def configure_telemetry(config: TelemetryConfig) -> TelemetryManager:
    manager = TelemetryManager(config=config)
    manager.configure()
    return manager


__all__ = ["TelemetryManager", "configure_telemetry"]
