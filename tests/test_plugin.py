"""Tests for configuration block parsing and the plugin lifecycle."""

import logging

import pytest

from snort_perfmon.collector.base import DataSourceType, ValueSample
from snort_perfmon.collector.engine import SubmissionEngine
from snort_perfmon.collector.manager import ManualScheduler
from snort_perfmon.config import ConfigItem, build_config_tree
from snort_perfmon.plugin import SnortPlugin


def _metric(name, type_instance="label", ds_type="GAUGE", index=1):
    return {"Metric": name, "TypeInstance": type_instance, "DataSourceType": ds_type, "Index": index}


def _instance(name, path="/tmp/snort.stats", collect="drop", interval=10, **extra):
    block = {"Instance": name, "Interface": "eth0", "Path": str(path), "Collect": collect, "Interval": interval}
    block.update(extra)
    return block


@pytest.fixture
def plugin():
    scheduler = ManualScheduler()
    collected: list[ValueSample] = []
    engine = SubmissionEngine([collected.append], hostname="sensor")
    p = SnortPlugin(scheduler, engine)
    p.collected = collected  # type: ignore[attr-defined]
    yield p
    p.shutdown()


class TestMetricBlocks:

    def test_valid_metric(self, plugin):
        assert plugin.configure(build_config_tree([_metric("drop", "pkt_drop_percent", "gauge", 1)])) == 1
        metric = plugin.catalog.lookup("drop")
        assert metric.type_instance == "pkt_drop_percent"
        assert metric.ds_type is DataSourceType.GAUGE
        assert metric.index == 1

    def test_option_keys_are_case_insensitive(self, plugin):
        tree = build_config_tree([{"metric": "m", "typeinstance": "t", "DATASOURCETYPE": "Derive", "index": 4}])
        assert plugin.configure(tree) == 1
        assert plugin.catalog.lookup("m").ds_type is DataSourceType.DERIVE

    @pytest.mark.parametrize("block", [
        _metric("m", ds_type="RATE"),
        _metric("m", index=0),
        _metric("m", index=1.5),
        _metric("m", index="3"),
        _metric("m", index=True),
        _metric("m", type_instance=["a", "b"]),
        {"Metric": "m", "DataSourceType": "GAUGE", "Index": 1},
        {"Metric": "m", "TypeInstance": "t", "Index": 1},
        {"Metric": "m", "TypeInstance": "t", "DataSourceType": "GAUGE"},
        {**_metric("m"), "Scale": 2},
        {"Metric": ["a", "b"], "TypeInstance": "t", "DataSourceType": "GAUGE", "Index": 1},
        {"Metric": 5, "TypeInstance": "t", "DataSourceType": "GAUGE", "Index": 1},
    ])
    def test_invalid_metric_blocks_are_dropped(self, plugin, block, caplog):
        with caplog.at_level(logging.WARNING):
            assert plugin.configure(build_config_tree([block])) == 0
        assert len(plugin.catalog) == 0
        assert "dropped" in caplog.text

    def test_integral_float_index_is_accepted(self, plugin):
        assert plugin.configure(build_config_tree([_metric("m", index=3.0)])) == 1
        assert plugin.catalog.lookup("m").index == 3

    def test_duplicate_metric_is_dropped(self, plugin):
        tree = build_config_tree([_metric("drop", "first"), _metric("Drop", "second")])
        assert plugin.configure(tree) == 1
        assert plugin.catalog.lookup("drop").type_instance == "first"


class TestInstanceBlocks:

    def test_valid_instance(self, plugin):
        tree = build_config_tree([
            _metric("drop"),
            _metric("wire", index=2),
            _instance("sensor0", collect="drop wire"),
        ])
        assert plugin.configure(tree) == 3
        instance = plugin.registry.get("sensor0")
        assert [m.name for m in instance.metrics] == ["drop", "wire"]
        assert plugin.scheduler.names == ["snort-sensor0"]

    def test_collect_accepts_a_list(self, plugin):
        tree = build_config_tree([_metric("drop"), _metric("wire", index=2), _instance("s", collect=["wire", "drop"])])
        plugin.configure(tree)
        assert [m.name for m in plugin.registry.get("s").metrics] == ["wire", "drop"]

    def test_undefined_metric_is_not_registered(self, plugin, caplog):
        tree = build_config_tree([_metric("drop"), _instance("s", collect="drop missing")])
        with caplog.at_level(logging.WARNING):
            assert plugin.configure(tree) == 1
        assert len(plugin.registry) == 0
        assert plugin.scheduler.names == []
        assert "missing" in caplog.text

    def test_metric_defined_after_instance_is_not_visible(self, plugin):
        tree = build_config_tree([_instance("s", collect="drop"), _metric("drop")])
        assert plugin.configure(tree) == 1
        assert len(plugin.registry) == 0

    @pytest.mark.parametrize("block", [
        {"Instance": "s", "Path": "/tmp/x", "Collect": "drop", "Interval": 10},
        {"Instance": "s", "Interface": "eth0", "Collect": "drop", "Interval": 10},
        {"Instance": "s", "Interface": "eth0", "Path": "/tmp/x", "Interval": 10},
        {"Instance": "s", "Interface": "eth0", "Path": "/tmp/x", "Collect": "drop"},
        _instance("s", interval=0),
        _instance("s", interval=-5),
        _instance("s", interval="10s"),
        _instance("s", collect=[]),
        _instance("s", collect=[1, 2]),
        _instance("s", Debug=True),
    ])
    def test_invalid_instance_blocks_are_dropped(self, plugin, block):
        assert plugin.configure(build_config_tree([_metric("drop"), block])) == 1
        assert len(plugin.registry) == 0
        assert plugin.scheduler.names == []

    def test_sibling_blocks_survive_a_bad_block(self, plugin):
        tree = build_config_tree([
            _metric("drop"),
            _metric("bad", ds_type="nope"),
            _instance("a", collect="bad"),
            _instance("b"),
        ])
        assert plugin.configure(tree) == 2
        assert [i.name for i in plugin.registry] == ["b"]


class TestLifecycle:

    def test_unknown_top_level_block_is_ignored(self, plugin, caplog):
        root = ConfigItem("snort", children=[ConfigItem("Sensor", ["x"]), ConfigItem("Metric", ["m"], [
            ConfigItem("TypeInstance", ["t"]),
            ConfigItem("DataSourceType", ["ABSOLUTE"]),
            ConfigItem("Index", [2]),
        ])])
        with caplog.at_level(logging.WARNING):
            assert plugin.configure(root) == 1
        assert "Sensor" in caplog.text

    def test_init_seals_catalog(self, plugin):
        plugin.configure(build_config_tree([_metric("drop")]))
        plugin.init()
        assert plugin.catalog.sealed
        assert plugin.configure(build_config_tree([_metric("late")])) == 0

    def test_tick_polls_file(self, plugin, tmp_path):
        path = tmp_path / "snort.stats"
        path.write_text("#time,drop,wire\n100,0.5,900\n")
        plugin.configure(build_config_tree([
            _metric("drop", "pkt_drop_percent", "GAUGE", 1),
            _metric("wire", "wire_mbits", "COUNTER", 2),
            _instance("sensor0", path=path, collect="drop wire"),
        ]))
        plugin.init()

        assert plugin.scheduler.tick() == {"snort-sensor0": True}
        assert [(s.type_instance, s.value, s.time) for s in plugin.collected] == [
            ("pkt_drop_percent", 0.5, 100),
            ("wire_mbits", 900, 100),
        ]

    def test_shutdown_tears_everything_down(self, plugin):
        plugin.configure(build_config_tree([_metric("drop"), _instance("a"), _instance("b")]))
        assert len(plugin.registry) == 2
        plugin.shutdown()
        assert len(plugin.registry) == 0
        assert len(plugin.catalog) == 0
        assert plugin.scheduler.names == []
