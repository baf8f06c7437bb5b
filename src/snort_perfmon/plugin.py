"""Snort plugin – builds metrics and instances from the configuration tree.

Configuration grammar (keys are case-insensitive)::

    Metric "<name>"
      TypeInstance "<string>"
      DataSourceType "GAUGE" | "COUNTER" | "DERIVE" | "ABSOLUTE"
      Index <positive integer>

    Instance "<name>"
      Interface "<string>"
      Path "<string>"
      Collect "<metric>" ...
      Interval <seconds>

A block that fails validation is dropped with a warning; its siblings are
still processed. Instances can only collect metrics defined before them.
"""

from __future__ import annotations

import logging

from .collector.catalog import MetricCatalog, MetricDefinition
from .collector.engine import SubmissionEngine
from .collector.instance import InstanceDefinition, InstanceRegistry
from .collector.manager import Scheduler
from .config import ConfigItem, ConfigValue
from .errors import InvalidOptionError, SnortPerfmonError

logger = logging.getLogger(__name__)


def _is_number(value: ConfigValue) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _string_arg(item: ConfigItem) -> str:
    if len(item.values) != 1 or not isinstance(item.values[0], str):
        raise InvalidOptionError(f"`{item.key}' needs exactly one string argument")
    return item.values[0]


def _integer_arg(item: ConfigItem) -> int:
    value = item.values[0] if len(item.values) == 1 else None
    if value is None or not _is_number(value) or not float(value).is_integer():
        raise InvalidOptionError(f"`{item.key}' needs exactly one integer argument")
    return int(value)


def _duration_arg(item: ConfigItem) -> float:
    if len(item.values) != 1 or not _is_number(item.values[0]):
        raise InvalidOptionError(f"`{item.key}' needs exactly one numeric argument")
    value = float(item.values[0])
    if value <= 0:
        raise InvalidOptionError(f"`{item.key}' must be positive")
    return value


def _collect_args(item: ConfigItem) -> list[str]:
    if not item.values:
        raise InvalidOptionError(f"`{item.key}' needs at least one argument")
    if not all(isinstance(v, str) for v in item.values):
        raise InvalidOptionError(f"All arguments to `{item.key}' must be strings")
    names = [name for value in item.values for name in value.split()]
    if not names:
        raise InvalidOptionError(f"`{item.key}' needs at least one argument")
    return names


class SnortPlugin:
    """Owns the metric catalog and instance registry of one configuration.

    Lifecycle: :meth:`configure` once per ``snort`` tree, :meth:`init` to
    freeze the catalog, :meth:`shutdown` to tear every instance down.
    """

    def __init__(self, scheduler: Scheduler, engine: SubmissionEngine | None = None) -> None:
        self.scheduler = scheduler
        self.engine = engine or SubmissionEngine()
        self.catalog = MetricCatalog()
        self.registry = InstanceRegistry(self.catalog, scheduler, self.engine.poll)

    def add_metric(self, item: ConfigItem) -> MetricDefinition:
        name = _string_arg(item)
        options: dict[str, object] = {"type_instance": None, "ds_type": None, "index": None}

        for option in item.children:
            if option.is_key("TypeInstance"):
                options["type_instance"] = _string_arg(option)
            elif option.is_key("DataSourceType"):
                options["ds_type"] = _string_arg(option)
            elif option.is_key("Index"):
                options["index"] = _integer_arg(option)
            else:
                raise InvalidOptionError(f"Option `{option.key}' not allowed here")

        return self.catalog.define(name, **options)  # type: ignore[arg-type]

    def add_instance(self, item: ConfigItem) -> InstanceDefinition:
        name = _string_arg(item)
        interface: str | None = None
        path: str | None = None
        collect: list[str] = []
        interval: float | None = None

        for option in item.children:
            if option.is_key("Interface"):
                interface = _string_arg(option)
            elif option.is_key("Path"):
                path = _string_arg(option)
            elif option.is_key("Collect"):
                collect = _collect_args(option)
            elif option.is_key("Interval"):
                interval = _duration_arg(option)
            else:
                raise InvalidOptionError(f"Option `{option.key}' not allowed here")

        return self.registry.define(name, interface, path, collect, interval)

    def configure(self, root: ConfigItem) -> int:
        """Process every block of *root* in order.

        Returns the number of blocks that were accepted.
        """
        accepted = 0
        for child in root.children:
            if child.is_key("Metric"):
                build = self.add_metric
            elif child.is_key("Instance"):
                build = self.add_instance
            else:
                logger.warning("Ignore unknown config option `%s'", child.key)
                continue

            try:
                build(child)
            except SnortPerfmonError as exc:
                logger.warning(
                    "%s %s dropped: %s", child.key, " ".join(map(str, child.values)), exc,
                )
                continue
            accepted += 1
        return accepted

    def init(self) -> None:
        self.catalog.seal()
        logger.info(
            "Snort plugin initialized (%d metrics, %d instances)",
            len(self.catalog), len(self.registry),
        )

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        self.catalog.clear()
