"""Unit tests for container log demultiplexing and retrieval."""

import asyncio
import struct
from datetime import datetime, timezone

import pytest

from dockstream.models.errors import StreamDecodeError
from dockstream.models.logs import LogEntry, StreamType
from dockstream.services.logs import copy_raw, demultiplex, read_all_logs


def frame(stream: int, payload: bytes) -> bytes:
    return struct.pack(">BxxxL", stream, len(payload)) + payload


async def chunks_of(*parts: bytes):
    for part in parts:
        yield part


async def collect(entries):
    return [entry async for entry in entries]


class TestDemultiplex:
    """Framed output."""

    @pytest.mark.asyncio
    async def test_frames(self):
        entries = await collect(
            demultiplex(chunks_of(frame(1, b"hello\n") + frame(2, b"bye\n")))
        )
        assert entries == [
            LogEntry(StreamType.STDOUT, b"hello\n"),
            LogEntry(StreamType.STDERR, b"bye\n"),
        ]

    @pytest.mark.asyncio
    async def test_frames_split_byte_by_byte(self):
        raw = frame(1, b"hello") + frame(0, b"") + frame(2, b"bye")
        entries = await collect(demultiplex(chunks_of(*[raw[i:i + 1] for i in range(len(raw))])))
        assert [(e.stream, e.payload) for e in entries] == [
            (StreamType.STDOUT, b"hello"),
            (StreamType.STDIN, b""),
            (StreamType.STDERR, b"bye"),
        ]

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        assert await collect(demultiplex(chunks_of())) == []

    @pytest.mark.asyncio
    async def test_truncated_header(self):
        received = []
        with pytest.raises(StreamDecodeError, match="header"):
            async for entry in demultiplex(chunks_of(frame(1, b"ok"), b"\x01\x00\x00")):
                received.append(entry)
        assert [e.payload for e in received] == [b"ok"]

    @pytest.mark.asyncio
    async def test_truncated_payload(self):
        with pytest.raises(StreamDecodeError, match="payload"):
            await collect(demultiplex(chunks_of(frame(1, b"hello")[:-2])))

    @pytest.mark.asyncio
    async def test_unknown_stream(self):
        with pytest.raises(StreamDecodeError, match="stream type 3"):
            await collect(demultiplex(chunks_of(frame(3, b"x"))))

    @pytest.mark.asyncio
    async def test_timestamps(self):
        raw = frame(1, b"2015-01-01T10:00:00.123456789Z hello world\n")
        entries = await collect(demultiplex(chunks_of(raw), timestamps=True))
        assert entries[0].payload == b"hello world\n"
        assert entries[0].timestamp == datetime(2015, 1, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_missing_timestamp(self):
        with pytest.raises(StreamDecodeError):
            await collect(demultiplex(chunks_of(frame(1, b"hello world")), timestamps=True))


class TestRawLogs:
    """tty output."""

    @pytest.mark.asyncio
    async def test_copy_raw_attributes_to_stdout(self):
        entries = await collect(copy_raw(chunks_of(b"abc", b"", b"def")))
        assert entries == [
            LogEntry(StreamType.STDOUT, b"abc"),
            LogEntry(StreamType.STDOUT, b"def"),
        ]

    @pytest.mark.asyncio
    async def test_read_all_joins_raw_output(self):
        entries = await read_all_logs(chunks_of(b"abc", b"def"), tty=True)
        assert entries == [LogEntry(StreamType.STDOUT, b"abcdef")]

    @pytest.mark.asyncio
    async def test_read_all_empty_raw_output(self):
        assert await read_all_logs(chunks_of(), tty=True) == []

    @pytest.mark.asyncio
    async def test_raw_bytes_are_not_parsed_as_frames(self):
        raw = frame(2, b"looks framed")
        entries = await read_all_logs(chunks_of(raw), tty=True)
        assert entries[0].stream == StreamType.STDOUT
        assert entries[0].payload == raw


class TestContainerLogs:
    @pytest.mark.asyncio
    async def test_framed(self, daemon, docker):
        daemon.route("containers/web/logs", [frame(1, b"hello\n"), frame(2, b"bye\n")])

        entries = await docker.container_logs("web", tty=False, tail=10)

        assert [(e.stream, e.text) for e in entries] == [
            (StreamType.STDOUT, "hello\n"),
            (StreamType.STDERR, "bye\n"),
        ]
        assert daemon.params() == {
            "stdout": "true",
            "stderr": "true",
            "timestamps": "false",
            "follow": "false",
            "tail": "10",
        }
        assert daemon.streams[0].closed

    @pytest.mark.asyncio
    async def test_negative_tail_means_all(self, daemon, docker):
        daemon.route("containers/web/logs")
        await docker.container_logs("web", tty=False, tail=-1)
        assert "tail" not in daemon.params()

    @pytest.mark.asyncio
    async def test_raw(self, daemon, docker):
        daemon.route("containers/web/logs", [b"line 1\n", b"line 2\n"])
        entries = await docker.container_logs("web", tty=True, stderr=False)
        assert entries == [LogEntry(StreamType.STDOUT, b"line 1\nline 2\n")]
        assert daemon.params()["stderr"] == "false"

    @pytest.mark.asyncio
    async def test_tty_from_inspect(self, daemon, docker):
        daemon.route_json("containers/web/json", {"Id": "web", "Config": {"Tty": True}})
        detail = await docker.inspect_container("web")
        assert detail.tty is True
        assert detail.id == "web"


class TestMonitorLogs:
    """Followed logs."""

    @pytest.mark.asyncio
    async def test_follow(self, daemon, docker, recorder):
        daemon.route("containers/web/logs", [frame(1, b"a"), frame(2, b"b")])

        token = docker.monitor_logs("web", recorder, tty=False, timestamps=False)
        await docker.monitor_task(token)

        assert [(e.stream, e.payload) for e in recorder.units] == [
            (StreamType.STDOUT, b"a"),
            (StreamType.STDERR, b"b"),
        ]
        assert daemon.params()["follow"] == "true"
        assert recorder.errors == []

    @pytest.mark.asyncio
    async def test_raw_follow_yields_chunks(self, daemon, docker, recorder):
        daemon.route("containers/web/logs", [b"one", b"two"])

        token = docker.monitor_logs("web", recorder, tty=True)
        await docker.monitor_task(token)

        assert [e.payload for e in recorder.units] == [b"one", b"two"]

    @pytest.mark.asyncio
    async def test_broken_frame_reports_one_error(self, daemon, docker, recorder):
        daemon.route("containers/web/logs", [frame(1, b"ok"), b"\x02\x00"])

        token = docker.monitor_logs("web", recorder, tty=False)
        await docker.monitor_task(token)

        assert [e.payload for e in recorder.units] == [b"ok"]
        assert len(recorder.errors) == 1
        unit, error = recorder.errors[0]
        assert unit == LogEntry(StreamType.STDOUT, b"")
        assert isinstance(error, StreamDecodeError)

    @pytest.mark.asyncio
    async def test_stop(self, daemon, docker, recorder):
        gate = asyncio.Event()
        daemon.route("containers/web/logs", [frame(1, b"a"), gate, frame(1, b"b")])

        token = docker.monitor_logs("web", recorder, tty=False)
        task = docker.monitor_task(token)
        await recorder.wait_for(1)
        docker.stop_monitor(token)
        gate.set()
        await asyncio.wait_for(task, 2)

        assert [e.payload for e in recorder.units] == [b"a"]
        assert daemon.streams[0].closed
