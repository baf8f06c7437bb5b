"""Value submission engine – turns the latest perfmon row into samples."""

from __future__ import annotations

import logging
import socket
from typing import Callable, Iterable

from ..errors import ColumnIndexError, FormatError, SnortPerfmonError
from .base import ValueSample, parse_timestamp, parse_value
from .catalog import MetricDefinition
from .instance import InstanceDefinition
from .perfmon import read_last_row

logger = logging.getLogger(__name__)

PLUGIN_NAME = "snort"
TYPE_NAME = "snort"

Sink = Callable[[ValueSample], None]


class SubmissionEngine:
    """Polls instances and dispatches one sample per configured metric.

    Register sinks via :meth:`add_sink`; every sample is handed to each
    sink as soon as it is built, so samples dispatched before a later
    metric fails stay dispatched.
    """

    def __init__(self, sinks: Iterable[Sink] = (), hostname: str | None = None) -> None:
        self._sinks: list[Sink] = list(sinks)
        self._hostname = hostname or socket.gethostname()

    @property
    def hostname(self) -> str:
        return self._hostname

    def add_sink(self, sink: Sink) -> None:
        """Register a callback to receive dispatched samples."""
        self._sinks.append(sink)

    def _dispatch(self, sample: ValueSample) -> None:
        for sink in self._sinks:
            try:
                sink(sample)
            except Exception:
                logger.exception("Sink failed")

    def build_sample(
        self,
        instance: InstanceDefinition,
        metric: MetricDefinition,
        fields: list[str],
    ) -> ValueSample:
        """Map *metric* onto *fields* and convert the value.

        Raises :class:`ColumnIndexError` or :class:`FormatError`.
        """
        if metric.index >= len(fields):
            raise ColumnIndexError(metric.index, len(fields))
        text = fields[metric.index]
        logger.debug(
            "plugin_instance=%s type_instance=%s value=%s",
            instance.name, metric.type_instance, text,
        )
        return ValueSample(
            host=self._hostname,
            plugin=PLUGIN_NAME,
            plugin_instance=instance.name,
            type=TYPE_NAME,
            type_instance=metric.type_instance,
            value=parse_value(text, metric.ds_type),
            ds_type=metric.ds_type,
            time=instance.last_timestamp,
            interval=instance.interval,
            interface=instance.interface,
        )

    def poll(self, instance: InstanceDefinition) -> bool:
        """Read the latest row of *instance* and dispatch its metrics.

        Returns False when the row could not be read at all; per-metric
        failures are logged and skipped without failing the tick.
        """
        with instance.lock:
            try:
                fields = read_last_row(instance.path)
            except SnortPerfmonError as exc:
                logger.error("Instance %s: %s", instance.name, exc)
                return False

            try:
                instance.last_timestamp = parse_timestamp(fields[0])
            except FormatError as exc:
                logger.error("Instance %s: %s in %s", instance.name, exc, instance.path)
                return False

            for metric in instance.metrics:
                try:
                    sample = self.build_sample(instance, metric, fields)
                except (ColumnIndexError, FormatError) as exc:
                    logger.warning("Instance %s, metric %s: %s", instance.name, metric.name, exc)
                    continue
                self._dispatch(sample)

        return True
