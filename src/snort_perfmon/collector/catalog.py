"""Metric catalog – named column definitions shared by all instances."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from ..errors import ConfigError, DuplicateNameError, InvalidOptionError, MissingFieldError
from .base import DataSourceType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricDefinition:
    """Which column of a perfmon row to read and how to interpret it."""

    name: str
    type_instance: str
    ds_type: DataSourceType
    index: int


class MetricCatalog:
    """Registry of metric definitions keyed by case-insensitive name.

    The catalog is filled while the configuration is parsed and sealed
    afterwards; from then on it is only read, so instances polled from
    different threads may share it without locking.
    """

    def __init__(self) -> None:
        self._metrics: dict[str, MetricDefinition] = {}
        self._sealed = False

    def define(
        self,
        name: str,
        type_instance: str | None,
        ds_type: DataSourceType | str | None,
        index: int | None,
    ) -> MetricDefinition:
        """Validate and register a metric definition.

        *ds_type* may be given as a :class:`DataSourceType` or as one of the
        strings GAUGE, COUNTER, DERIVE, ABSOLUTE in any case.
        """
        if self._sealed:
            raise ConfigError(f"metric catalog is sealed, cannot define `{name}'")
        if not name:
            raise InvalidOptionError("metric name must not be empty")

        block = f"Metric `{name}'"
        if not type_instance:
            raise MissingFieldError(block, "TypeInstance")
        if ds_type is None:
            raise MissingFieldError(block, "DataSourceType")
        if isinstance(ds_type, str):
            try:
                ds_type = DataSourceType.from_string(ds_type)
            except ValueError:
                raise InvalidOptionError(
                    f"{block}: unrecognized value for `DataSourceType' `{ds_type}'"
                ) from None
        if index is None:
            raise MissingFieldError(block, "Index")
        if index <= 0:
            raise InvalidOptionError(f"{block}: `Index' must be higher than 0")

        key = name.lower()
        if key in self._metrics:
            raise DuplicateNameError("Metric", name)

        metric = MetricDefinition(name=name, type_instance=type_instance, ds_type=ds_type, index=index)
        self._metrics[key] = metric
        logger.debug(
            "Defined metric %s (type_instance=%s, ds_type=%s, index=%d)",
            name, type_instance, ds_type.name, index,
        )
        return metric

    def lookup(self, name: str) -> MetricDefinition:
        """Return the definition registered as *name*; raise KeyError if absent."""
        return self._metrics[name.lower()]

    def seal(self) -> None:
        """Refuse further definitions."""
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def clear(self) -> None:
        for metric in self._metrics.values():
            logger.debug("Destroying metric definition %s", metric.name)
        self._metrics.clear()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._metrics

    def __iter__(self) -> Iterator[MetricDefinition]:
        return iter(list(self._metrics.values()))

    def __len__(self) -> int:
        return len(self._metrics)
