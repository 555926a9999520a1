"""Unit tests for the shared client socket and the local live-state mirror."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import json
from datetime import timedelta

import pytest

from app.client.occupancy_sync import OccupancySync
from app.client.socket import SharedSocket, get_shared_socket
from conftest import T0, FakeClock


class FakeServer:
    """Stands in for websockets.connect. Each connect() pops the next frame script."""

    def __init__(self, *scripts, refuse_first=False):
        self.scripts = list(scripts)
        self.refuse_first = refuse_first
        self.attempts = 0
        self.connections = []

    def __call__(self, url):
        self.attempts += 1
        if self.refuse_first and self.attempts == 1:
            return RefusedConnection()
        frames = self.scripts.pop(0) if self.scripts else []
        conn = FakeConnection(frames, hold_open=not self.scripts)
        self.connections.append(conn)
        return conn


class RefusedConnection:
    async def __aenter__(self):
        raise ConnectionRefusedError("nobody home")

    async def __aexit__(self, *exc):
        return False


class FakeConnection:
    def __init__(self, frames, hold_open):
        self.frames = frames
        self.hold_open = hold_open
        self.sent = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def send(self, text):
        self.sent.append(json.loads(text))

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        for frame in self.frames:
            yield frame if isinstance(frame, str) else json.dumps(frame)
        if self.hold_open:
            await asyncio.Event().wait()


async def wait_for(predicate, timeout=1.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.005)
    await asyncio.wait_for(poll(), timeout)


OCCUPANCY = {
    "current": 120, "total": 400, "percentage": 30,
    "zones": [{"id": 1, "name": "Zone A - Reading Area", "current": 32, "capacity": 100, "percentage": 32}],
}
OCCUPANCY_FRAME = {"type": "occupancyUpdate", "data": OCCUPANCY}


class TestSharedSocket:
    @pytest.mark.asyncio
    async def test_commands_queue_until_open_then_flush_once(self):
        server = FakeServer([])
        sock = SharedSocket("ws://test/queue", reconnect_delay=0.01, connect=server)

        assert await sock.send("getOccupancy") is False
        assert await sock.send("getOccupancy") is False   # deduplicated
        sock.acquire()
        await wait_for(lambda: sock.is_connected)

        assert server.connections[0].sent == [{"type": "getOccupancy", "data": {}}]
        assert await sock.send("getAdminData") is True
        await sock.release()
        assert not sock.is_connected

    @pytest.mark.asyncio
    async def test_frames_fan_out_to_subscribers_in_order(self):
        server = FakeServer([{"type": "occupancyUpdate", "data": {"current": 1}}, "garbage"])
        sock = SharedSocket("ws://test/fanout", reconnect_delay=0.01, connect=server)
        seen_a, seen_b = [], []
        sock.subscribe(seen_a.append)
        unsubscribe_b = sock.subscribe(seen_b.append)
        unsubscribe_b()

        sock.acquire()
        await wait_for(lambda: seen_a)
        await sock.release()

        assert seen_a == [{"type": "occupancyUpdate", "data": {"current": 1}}]
        assert seen_b == []

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_starve_the_rest(self):
        server = FakeServer([{"type": "newAnnouncement", "data": {"id": 1}}])
        sock = SharedSocket("ws://test/isolation", reconnect_delay=0.01, connect=server)
        received = []

        def explode(message):
            raise KeyError("boom")

        sock.subscribe(explode)
        sock.subscribe(received.append)
        sock.acquire()
        await wait_for(lambda: received)
        await sock.release()
        assert received == [{"type": "newAnnouncement", "data": {"id": 1}}]

    @pytest.mark.asyncio
    async def test_reconnects_after_close_and_after_refusal(self):
        server = FakeServer([{"type": "initialData", "data": {}}], [], refuse_first=True)
        sock = SharedSocket("ws://test/reconnect", reconnect_delay=0.01, connect=server)
        sock.acquire()

        await wait_for(lambda: len(server.connections) == 2 and sock.is_connected)
        assert server.attempts == 3
        await sock.release()

    @pytest.mark.asyncio
    async def test_last_release_closes(self):
        server = FakeServer([])
        sock = SharedSocket("ws://test/holders", reconnect_delay=0.01, connect=server)
        sock.acquire()
        sock.acquire()
        await wait_for(lambda: sock.is_connected)

        await sock.release()
        assert sock.holders == 1 and sock.is_connected
        await sock.release()
        assert sock.holders == 0 and not sock.is_connected
        assert server.attempts == 1

    def test_one_socket_per_url(self):
        first = get_shared_socket("ws://test/shared", connect=FakeServer())
        assert get_shared_socket("ws://test/shared") is first
        assert get_shared_socket("ws://test/other") is not first


class TestOccupancySync:
    def make_sync(self):
        return OccupancySync(socket=SharedSocket("ws://test/unused"), poll_interval=60)

    def test_starts_loading(self):
        assert self.make_sync().state.loading

    def test_occupancy_update_replaces_totals_and_zones(self):
        sync = self.make_sync()
        assert sync.apply({"type": "occupancyUpdate", "data": OCCUPANCY})
        assert not sync.state.loading
        assert sync.state.occupancy == {"current": 120, "total": 400, "percentage": 30}
        assert sync.state.zones[0]["current"] == 32
        assert sync.state.total_capacity == 400
        assert sync.state.last_updated is not None

    def test_initial_data_replaces_lists(self):
        sync = self.make_sync()
        sync.state.seat_posts = [{"id": 99, "status": "active"}]
        sync.apply({"type": "initialData", "data": {
            "occupancy": OCCUPANCY,
            "announcements": [{"id": 1, "isActive": True}],
            "seatPosts": [{"id": 5, "status": "active"}],
        }})
        assert [p["id"] for p in sync.state.seat_posts] == [5]
        assert [a["id"] for a in sync.state.announcements] == [1]

    def test_seat_post_updates(self):
        sync = self.make_sync()
        sync.apply({"type": "newSeatPost", "data": {"id": 1, "status": "active"}})
        sync.apply({"type": "newSeatPost", "data": {"id": 2, "status": "active"}})
        assert [p["id"] for p in sync.state.seat_posts] == [2, 1]

        sync.apply({"type": "seatPostUpdate", "data": {"id": 1, "status": "active", "verifications": {"positive": 3}}})
        assert sync.state.seat_posts[0]["verifications"] == {"positive": 3}

        sync.apply({"type": "seatPostUpdate", "data": {"id": 1, "status": "removed"}})
        assert [p["id"] for p in sync.state.seat_posts] == [2]

    def test_announcement_updates(self):
        sync = self.make_sync()
        sync.apply({"type": "newAnnouncement", "data": {"id": 4, "isActive": True, "message": "Hi"}})
        sync.apply({"type": "announcementUpdate", "data": {"id": 4, "isActive": False}})
        assert sync.state.announcements == []

    def test_already_expired_entries_are_not_mirrored(self):
        sync = OccupancySync(socket=SharedSocket("ws://test/unused"), poll_interval=60, clock=FakeClock())
        sync.apply({"type": "newAnnouncement", "data": {
            "id": 1, "isActive": True, "expiry": (T0 - timedelta(hours=1)).isoformat(),
        }})
        sync.apply({"type": "newAnnouncement", "data": {
            "id": 2, "isActive": True, "expiry": "2026-03-02T11:00:00Z",
        }})
        sync.apply({"type": "newSeatPost", "data": {
            "id": 7, "status": "active", "endTime": (T0 - timedelta(minutes=1)).isoformat(),
        }})
        sync.apply({"type": "newSeatPost", "data": {
            "id": 8, "status": "active", "endTime": (T0 + timedelta(minutes=30)).isoformat(),
        }})

        assert [a["id"] for a in sync.state.announcements] == [2]
        assert [p["id"] for p in sync.state.seat_posts] == [8]
        assert sync.state.last_updated == T0

    def test_capacity_update(self):
        sync = self.make_sync()
        sync.apply({"type": "capacityUpdate", "data": {"zones": OCCUPANCY["zones"], "totalCapacity": 450}})
        assert sync.state.total_capacity == 450
        assert sync.state.occupancy is None

    def test_unknown_type_ignored(self):
        sync = self.make_sync()
        assert sync.apply({"type": "somethingElse", "data": {}}) is False
        assert sync.state.last_updated is None

    @pytest.mark.asyncio
    async def test_mount_requests_occupancy_and_polls(self):
        server = FakeServer([OCCUPANCY_FRAME])
        sock = SharedSocket("ws://test/mount", reconnect_delay=0.01, connect=server)

        async with OccupancySync(socket=sock, poll_interval=0.02) as sync:
            await wait_for(lambda: not sync.state.loading)
            await wait_for(lambda: len(server.connections[0].sent) >= 3)

        assert all(m["type"] == "getOccupancy" for m in server.connections[0].sent)
        assert sync.state.occupancy["current"] == 120
        assert sock.holders == 0

    @pytest.mark.asyncio
    async def test_two_widgets_share_one_connection(self):
        server = FakeServer([])
        sock = SharedSocket("ws://test/widgets", reconnect_delay=0.01, connect=server)
        first = OccupancySync(socket=sock, poll_interval=60)
        second = OccupancySync(socket=sock, poll_interval=60)

        await first.start()
        await second.start()
        await wait_for(lambda: sock.is_connected)
        assert server.attempts == 1

        await first.stop()
        assert sock.is_connected
        await second.stop()
        assert not sock.is_connected

