"""
Pytest configuration and fixtures
"""
import json

import pytest

from nodes.node import DeviceStoreNode, start_server
from nodes.store_api import StoreError


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeStore:
    """In-memory stand-in for StoreClient."""

    def __init__(self, devices):
        self.devices = {d["id"]: dict(d) for d in devices}
        self.updates = []
        self.fail_updates = False
        self.fail_list = False

    def list_devices(self):
        if self.fail_list:
            raise StoreError(1, "UNAVAILABLE")
        return [dict(d) for _, d in sorted(self.devices.items())]

    def update_device(self, device_id, fields):
        if self.fail_updates:
            raise StoreError(2, "NO_SUCH_DEVICE")
        self.updates.append((device_id, dict(fields)))
        self.devices[device_id].update(fields)
        return "UPDATED"


class FakeResponse:
    """Looks enough like a streamed requests.Response."""

    def __init__(self, chunks=(), status_code=200, reason="OK"):
        self.chunks = list(chunks)
        self.status_code = status_code
        self.reason = reason
        self.closed = False

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def iter_content(self, chunk_size=None):
        for chunk in self.chunks:
            yield chunk

    def close(self):
        self.closed = True


def sse_chunks(*fragments):
    """Encode fragments the way the completion API streams them."""
    lines = []
    for frag in fragments:
        lines.append("data: " + json.dumps({"choices": [{"delta": {"content": frag}}]}) + "\n\n")
    lines.append("data: [DONE]\n\n")
    return [line.encode("utf-8") for line in lines]


class FakeCompletionClient:
    def __init__(self, fragments=(), error=None):
        self.fragments = list(fragments)
        self.error = error
        self.calls = []

    def stream(self, messages):
        self.calls.append(messages)
        for frag in self.fragments:
            yield frag
        if self.error is not None:
            raise self.error


FLEET = [
    {"id": "WC-001", "status": "available", "location": "Gate A3", "battery": 95, "distance": "50m away",
     "estimatedTime": "1 min"},
    {"id": "WC-002", "status": "in_use", "location": "Security", "battery": 64, "distance": "200m away"},
    {"id": "WC-003", "status": "available", "location": "Gate B7", "battery": 100, "distance": "500m away"},
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_store():
    return FakeStore(FLEET)


@pytest.fixture
def store_node(tmp_path):
    """A live device-store node on an ephemeral port; yields (node, address)."""
    node = DeviceStoreNode("test", path=str(tmp_path / "node_test.json"))
    server, port = start_server(node, "127.0.0.1:0", max_workers=4)
    try:
        yield node, f"127.0.0.1:{port}"
    finally:
        server.stop(None)
