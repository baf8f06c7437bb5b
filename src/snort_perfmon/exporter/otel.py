"""OpenTelemetry exporter – pushes perfmon samples via OTLP/HTTP."""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.metrics import CallbackOptions, Observation
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource, SERVICE_NAME

from ..collector.base import DataSourceType, ValueSample
from ..config import OtelExporterConfig
from .base import BaseExporter

logger = logging.getLogger(__name__)


def _attributes(sample: ValueSample) -> dict[str, str]:
    return {
        "host": sample.host,
        "plugin_instance": sample.plugin_instance,
        "interface": sample.interface,
        "type_instance": sample.type_instance,
    }


class OtelExporter(BaseExporter):
    """Exports perfmon samples to an OpenTelemetry endpoint.

    There is one instrument per data source type, named
    ``snort.<ds type>``; the free-form type instance travels as an
    attribute. GAUGE values are set on a gauge, ABSOLUTE values are added
    to a counter, and COUNTER / DERIVE values are cumulative totals reported
    through observable (up-down) counters. The SDK's
    ``PeriodicExportingMetricReader`` flushes them to the configured
    OTLP/HTTP endpoint.
    """

    def __init__(self, config: OtelExporterConfig) -> None:
        self._config = config
        resource = Resource.create({SERVICE_NAME: config.service_name})

        exporter_kwargs: dict[str, Any] = {
            "endpoint": f"{config.endpoint.rstrip('/')}/v1/metrics",
        }
        if config.headers:
            exporter_kwargs["headers"] = config.headers

        reader = PeriodicExportingMetricReader(
            OTLPMetricExporter(**exporter_kwargs),
            export_interval_millis=config.export_interval_ms,
        )
        self._provider = MeterProvider(resource=resource, metric_readers=[reader])
        metrics.set_meter_provider(self._provider)
        self._meter = self._provider.get_meter("snort_perfmon")
        self._instruments: dict[DataSourceType, Any] = {}
        # latest cumulative value per data source type and attribute set
        self._observed: dict[DataSourceType, dict[tuple[tuple[str, str], ...], float]] = {}
        self._lock = threading.Lock()

        logger.info(
            "OtelExporter initialized → %s (service=%s)",
            config.endpoint,
            config.service_name,
        )

    def _observe(self, ds_type: DataSourceType) -> Any:
        def callback(_options: CallbackOptions) -> Iterable[Observation]:
            with self._lock:
                current = list(self._observed.get(ds_type, {}).items())
            return [Observation(value, dict(attrs)) for attrs, value in current]
        return callback

    def _get_instrument(self, name: str, ds_type: DataSourceType) -> Any:
        if ds_type in self._instruments:
            return self._instruments[ds_type]

        description = f"Snort perfmon {ds_type.name.lower()} value"
        if ds_type is DataSourceType.GAUGE:
            instrument = self._meter.create_gauge(name=name, unit="1", description=description)
        elif ds_type is DataSourceType.ABSOLUTE:
            instrument = self._meter.create_counter(name=name, unit="1", description=description)
        elif ds_type is DataSourceType.COUNTER:
            instrument = self._meter.create_observable_counter(
                name=name, callbacks=[self._observe(ds_type)], unit="1", description=description,
            )
        else:
            instrument = self._meter.create_observable_up_down_counter(
                name=name, callbacks=[self._observe(ds_type)], unit="1", description=description,
            )
        self._instruments[ds_type] = instrument
        return instrument

    def submit(self, sample: ValueSample) -> None:
        name = f"{sample.plugin}.{sample.ds_type.value}"
        attributes = _attributes(sample)
        with self._lock:
            instrument = self._get_instrument(name, sample.ds_type)
            if sample.ds_type in (DataSourceType.COUNTER, DataSourceType.DERIVE):
                key = tuple(sorted(attributes.items()))
                self._observed.setdefault(sample.ds_type, {})[key] = sample.value
                return
        if sample.ds_type is DataSourceType.GAUGE:
            instrument.set(sample.value, attributes=attributes)
        else:
            instrument.add(sample.value, attributes=attributes)

    def shutdown(self) -> None:
        self._provider.shutdown()
        logger.info("OtelExporter shut down")
