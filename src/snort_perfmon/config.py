"""Configuration loading and validation for snort_perfmon."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import yaml

ConfigValue = Union[str, int, float, bool]


@dataclass
class OtelExporterConfig:
    """OpenTelemetry exporter settings."""

    endpoint: str = "http://localhost:4318"
    service_name: str = "snort-perfmon"
    headers: dict[str, str] = field(default_factory=dict)
    export_interval_ms: int = 10000


@dataclass
class LocalExporterConfig:
    """Local file exporter settings."""

    enabled: bool = True
    output_dir: str = "./perfmon_data"
    format: str = "jsonl"


@dataclass
class ConfigItem:
    """One node of the nested configuration tree.

    A node has a case-insensitive *key*, zero or more scalar *values* and
    child nodes. ``Metric "name"`` blocks and their options are all items.
    """

    key: str
    values: list[ConfigValue] = field(default_factory=list)
    children: list[ConfigItem] = field(default_factory=list)

    def is_key(self, key: str) -> bool:
        return self.key.lower() == key.lower()


@dataclass
class SnortPerfmonConfig:
    """Top-level snort_perfmon configuration."""

    mode: str = "local"
    hostname: str = ""
    log_level: str = "INFO"
    otel: OtelExporterConfig = field(default_factory=OtelExporterConfig)
    local_exporter: LocalExporterConfig = field(default_factory=LocalExporterConfig)
    snort: ConfigItem = field(default_factory=lambda: ConfigItem("snort"))


def _to_values(raw: Any) -> list[ConfigValue]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return [v for v in raw if v is not None]
    return [raw]


def _block_to_item(block: dict[str, Any]) -> ConfigItem:
    """Turn ``{"Metric": "name", "Index": 3, ...}`` into a ConfigItem.

    The first key names the block, the remaining keys are its options.
    """
    items = iter(block.items())
    key, raw = next(items)
    item = ConfigItem(str(key), _to_values(raw))
    for opt_key, opt_raw in items:
        item.children.append(ConfigItem(str(opt_key), _to_values(opt_raw)))
    return item


def build_config_tree(blocks: Any, key: str = "snort") -> ConfigItem:
    """Convert the YAML ``snort`` section into a :class:`ConfigItem` tree.

    Entries that are not non-empty mappings become childless items so the
    plugin can report and skip them.
    """
    root = ConfigItem(key)
    if blocks is None:
        return root
    if isinstance(blocks, dict):
        blocks = [blocks]
    if not isinstance(blocks, list):
        root.children.append(ConfigItem(str(blocks)))
        return root
    for block in blocks:
        if isinstance(block, dict) and block:
            root.children.append(_block_to_item(block))
        else:
            root.children.append(ConfigItem(str(block)))
    return root


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides using SNORT_PERFMON_ prefix."""
    env_map = {
        "SNORT_PERFMON_MODE": ("mode",),
        "SNORT_PERFMON_HOSTNAME": ("hostname",),
        "SNORT_PERFMON_LOG_LEVEL": ("log_level",),
        "SNORT_PERFMON_OTEL_ENDPOINT": ("otel", "endpoint"),
        "SNORT_PERFMON_OTEL_SERVICE_NAME": ("otel", "service_name"),
        "SNORT_PERFMON_LOCAL_OUTPUT_DIR": ("local_exporter", "output_dir"),
    }
    for env_key, path in env_map.items():
        value = os.environ.get(env_key)
        if value is not None:
            obj = data
            for part in path[:-1]:
                obj = obj.setdefault(part, {})
            obj[path[-1]] = value
    return data


def _dict_to_config(data: dict[str, Any]) -> SnortPerfmonConfig:
    """Convert a raw dictionary to a SnortPerfmonConfig dataclass."""
    otel_data = data.get("otel") or {}
    local_data = data.get("local_exporter") or {}

    return SnortPerfmonConfig(
        mode=data.get("mode", "local"),
        hostname=data.get("hostname") or "",
        log_level=str(data.get("log_level", "INFO")).upper(),
        otel=OtelExporterConfig(**{
            k: v for k, v in otel_data.items()
            if k in OtelExporterConfig.__dataclass_fields__
        }),
        local_exporter=LocalExporterConfig(**{
            k: v for k, v in local_data.items()
            if k in LocalExporterConfig.__dataclass_fields__
        }),
        snort=build_config_tree(data.get("snort")),
    )


def load_config(path: str | Path | None = None) -> SnortPerfmonConfig:
    """Load configuration from a YAML file with environment overrides.

    Looks for ``snort_perfmon.yaml`` in the current directory if *path* is None.
    """
    data: dict[str, Any] = {}
    if path is None:
        path = Path("snort_perfmon.yaml")
    else:
        path = Path(path)

    if path.exists():
        with open(path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
            if isinstance(loaded, dict):
                data = loaded

    data = _apply_env_overrides(data)
    return _dict_to_config(data)
