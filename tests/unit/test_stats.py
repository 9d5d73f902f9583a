"""Unit tests for container stats monitoring."""

import json
from datetime import datetime, timezone

import pytest

from dockstream.models.errors import StreamDecodeError, is_not_found
from dockstream.models.stats import NetworkStats, Stats


def snapshot(total_usage: int, system_usage: int, memory: int = 50 * 1024 * 1024) -> dict:
    return {
        "read": "2015-01-08T22:57:31.547920715Z",
        "networks": {
            "eth0": {"rx_bytes": 100, "tx_bytes": 10},
            "eth1": {"rx_bytes": 5, "tx_bytes": 1},
        },
        "memory_stats": {"usage": memory, "max_usage": memory, "limit": 200 * 1024 * 1024},
        "cpu_stats": {
            "cpu_usage": {"total_usage": total_usage, "percpu_usage": [1, 2]},
            "system_cpu_usage": system_usage,
            "online_cpus": 2,
        },
        "precpu_stats": {
            "cpu_usage": {"total_usage": 1000},
            "system_cpu_usage": 10000,
        },
    }


class TestStatsModel:
    """Derived metrics."""

    def test_cpu_percent(self):
        stats = Stats.model_validate(snapshot(total_usage=1500, system_usage=20000))
        # (500 / 10000) * 2 cpus
        assert stats.cpu_percent() == pytest.approx(10.0)

    def test_cpu_percent_without_previous_sample(self):
        assert Stats().cpu_percent() == 0.0

    def test_memory(self):
        stats = Stats.model_validate(snapshot(1500, 20000))
        assert stats.memory_percent() == pytest.approx(25.0)
        assert stats.memory_usage_mb == pytest.approx(50.0)
        assert Stats().memory_percent() == 0.0

    def test_network_totals(self):
        stats = Stats.model_validate(snapshot(1500, 20000))
        total = stats.total_network_io()
        assert total.rx_bytes == 105
        assert total.tx_bytes == 11

    def test_legacy_network_block(self):
        stats = Stats.model_validate({"network": {"rx_bytes": 7}})
        assert stats.total_network_io() == NetworkStats(rx_bytes=7)

    def test_read_at_truncates_to_microseconds(self):
        stats = Stats.model_validate(snapshot(1500, 20000))
        assert stats.read_at == datetime(2015, 1, 8, 22, 57, 31, 547920, tzinfo=timezone.utc)
        assert Stats().read_at is None


class TestMonitorStats:
    @pytest.mark.asyncio
    async def test_every_snapshot_forwarded(self, daemon, docker, recorder):
        daemon.route_json(
            "containers/web/stats", snapshot(1100, 11000), snapshot(1200, 12000)
        )

        token = docker.monitor_stats("web", recorder)
        await docker.monitor_task(token)

        assert [s.cpu_stats.cpu_usage.total_usage for s in recorder.units] == [1100, 1200]
        assert recorder.errors == []
        assert daemon.last_request.url.path == "/v1.17/containers/web/stats"

    @pytest.mark.asyncio
    async def test_missing_container(self, daemon, docker, recorder):
        token = docker.monitor_stats("ghost", recorder)
        await docker.monitor_task(token)

        assert recorder.units == []
        unit, error = recorder.errors[0]
        assert is_not_found(error)
        assert unit == Stats()

    @pytest.mark.asyncio
    async def test_unexpected_payload_is_decode_error(self, daemon, docker, recorder):
        daemon.route_json("containers/web/stats", {"memory_stats": {"usage": "lots"}})

        token = docker.monitor_stats("web", recorder)
        await docker.monitor_task(token)

        assert isinstance(recorder.errors[0][1], StreamDecodeError)


class TestGetStats:
    @pytest.mark.asyncio
    async def test_returns_first_snapshot_and_closes(self, daemon, docker):
        daemon.route_json(
            "containers/web/stats", snapshot(1100, 11000), snapshot(1200, 12000)
        )

        stats = await docker.get_stats("web")

        assert stats.cpu_stats.cpu_usage.total_usage == 1100
        assert daemon.streams[0].closed
        assert daemon.streams[0].sent == 1

    @pytest.mark.asyncio
    async def test_empty_stream(self, daemon, docker):
        daemon.route("containers/web/stats")
        with pytest.raises(StreamDecodeError):
            await docker.get_stats("web")

    @pytest.mark.asyncio
    async def test_iter_stats(self, daemon, docker):
        daemon.route(
            "containers/web/stats",
            [json.dumps(snapshot(1, 2)).encode() + json.dumps(snapshot(3, 4)).encode()],
        )
        usages = [s.cpu_stats.cpu_usage.total_usage async for s in docker.iter_stats("web")]
        assert usages == [1, 3]
