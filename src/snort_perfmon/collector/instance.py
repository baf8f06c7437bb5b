"""Instance registry – polling units binding a file to a set of metrics."""

from __future__ import annotations

import functools
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from ..errors import (
    DuplicateNameError,
    InvalidOptionError,
    MissingFieldError,
    SchedulerError,
    UnknownMetricError,
)
from .catalog import MetricCatalog, MetricDefinition
from .manager import Scheduler

logger = logging.getLogger(__name__)

CALLBACK_PREFIX = "snort-"


@dataclass
class InstanceDefinition:
    """One configured (file, metric subset, interval) polling unit."""

    name: str
    interface: str
    path: str
    metrics: tuple[MetricDefinition, ...]
    interval: float
    last_timestamp: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def callback_name(self) -> str:
        return f"{CALLBACK_PREFIX}{self.name}"


class InstanceRegistry:
    """Builds instances against a metric catalog and schedules their polls.

    Each accepted instance is handed to the *scheduler* together with a
    teardown callback; the registry forgets the instance when the scheduler
    discards it.
    """

    def __init__(
        self,
        catalog: MetricCatalog,
        scheduler: Scheduler,
        poll: Callable[[InstanceDefinition], bool],
    ) -> None:
        self._catalog = catalog
        self._scheduler = scheduler
        self._poll = poll
        self._instances: dict[str, InstanceDefinition] = {}
        self._lock = threading.Lock()

    def resolve(self, names: Iterable[str]) -> tuple[MetricDefinition, ...]:
        """Look up every name in the catalog, preserving order."""
        resolved: list[MetricDefinition] = []
        for name in names:
            try:
                resolved.append(self._catalog.lookup(name))
            except KeyError:
                raise UnknownMetricError(name) from None
        return tuple(resolved)

    def define(
        self,
        name: str,
        interface: str | None,
        path: str | None,
        collect: Iterable[str] | None,
        interval: float | None,
    ) -> InstanceDefinition:
        """Validate, build and schedule an instance.

        Raises a :class:`~snort_perfmon.errors.ConfigError` subclass when a
        field is missing or a metric cannot be resolved, and
        :class:`~snort_perfmon.errors.SchedulerError` when the scheduler
        refuses the registration; in either case nothing is kept.
        """
        if not name:
            raise InvalidOptionError("instance name must not be empty")
        block = f"Instance `{name}'"

        metrics = self.resolve(collect or ())
        if not interface:
            raise MissingFieldError(block, "Interface")
        if not path:
            raise MissingFieldError(block, "Path")
        if not metrics:
            raise MissingFieldError(block, "Collect")
        if not interval:
            raise MissingFieldError(block, "Interval")
        if interval < 0:
            raise InvalidOptionError(f"{block}: `Interval' must be positive")

        with self._lock:
            if name.lower() in self._instances:
                raise DuplicateNameError("Instance", name)
            instance = InstanceDefinition(
                name=name,
                interface=interface,
                path=path,
                metrics=metrics,
                interval=float(interval),
            )
            self._instances[name.lower()] = instance

        logger.debug(
            "Defined instance %s (interface=%s, path=%s, metrics=%s)",
            name, interface, path, ", ".join(m.name for m in metrics),
        )

        try:
            self._scheduler.register_periodic(
                instance.callback_name,
                instance.interval,
                functools.partial(self._poll, instance),
                functools.partial(self._destroy, instance),
            )
        except SchedulerError:
            logger.error("Registering read callback %s failed", instance.callback_name)
            self._destroy(instance)
            raise

        return instance

    def _destroy(self, instance: InstanceDefinition) -> None:
        logger.debug("Destroying instance definition %s", instance.name)
        with self._lock:
            if self._instances.get(instance.name.lower()) is instance:
                del self._instances[instance.name.lower()]

    def get(self, name: str) -> InstanceDefinition:
        return self._instances[name.lower()]

    def __iter__(self) -> Iterator[InstanceDefinition]:
        with self._lock:
            return iter(list(self._instances.values()))

    def __len__(self) -> int:
        return len(self._instances)
