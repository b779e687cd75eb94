# nodes/node.py
import copy
import json
import logging
import os
import sys
import threading
import time
from concurrent import futures

import grpc

# allow `python nodes/node.py` from the repo root
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from nodes import store_api
from nodes.devices import DEFAULT_FLEET, validate_fields, with_id

log = logging.getLogger(__name__)


# -----------------------
# Simple persistent storage
# -----------------------
class Storage:
    def __init__(self, path):
        self.path = path
        try:
            with open(self.path, "r") as fh:
                payload = json.load(fh)
            self.devices = payload["devices"]
        except (OSError, ValueError, KeyError, TypeError):
            # default initial state
            log.info("no usable store at %s, seeding default fleet", self.path)
            self.devices = copy.deepcopy(DEFAULT_FLEET)
            self._flush()

    def list(self):
        return [with_id(did, rec) for did, rec in sorted(self.devices.items())]

    def get(self, device_id):
        rec = self.devices.get(device_id)
        if rec is None:
            raise KeyError(device_id)
        return with_id(device_id, rec)

    def update(self, device_id, fields):
        if device_id not in self.devices:
            raise KeyError(device_id)
        clean = validate_fields(fields)
        rec = self.devices[device_id]
        for key, value in clean.items():
            if value is None:
                rec.pop(key, None)
            else:
                rec[key] = value
        self._flush()
        return with_id(device_id, rec)

    def put(self, device_id, record):
        clean = validate_fields(record)
        self.devices[device_id] = {k: v for k, v in clean.items() if v is not None}
        self._flush()

    def _flush(self):
        with open(self.path, "w") as fh:
            json.dump({"devices": self.devices}, fh, indent=2)


# -----------------------
# Node implementation
# -----------------------
class DeviceStoreNode(store_api.DeviceStoreServicer):
    def __init__(self, node_name, path=None):
        self.node_name = node_name
        self.store = Storage(path or f"node_{node_name}.json")
        self.lock = threading.Lock()

    def ListDevices(self, request, context):
        with self.lock:
            return {"status": store_api.OK, "devices": self.store.list()}

    def GetDevice(self, request, context):
        did = (request or {}).get("device_id", "")
        with self.lock:
            try:
                return {"code": store_api.OK, "msg": "OK", "device": self.store.get(did)}
            except KeyError:
                return {"code": store_api.NO_SUCH_DEVICE, "msg": "NO_SUCH_DEVICE", "device": None}

    def UpdateDevice(self, request, context):
        did = (request or {}).get("device_id", "")
        fields = (request or {}).get("fields") or {}
        with self.lock:
            try:
                self.store.update(did, fields)
            except KeyError:
                return {"code": store_api.NO_SUCH_DEVICE, "msg": "NO_SUCH_DEVICE"}
            except ValueError as exc:
                return {"code": store_api.INVALID_FIELD, "msg": f"INVALID_FIELD:{exc}"}
        log.info("[STORE] %s updated %s -> %s", self.node_name, did, sorted(fields))
        return {"code": store_api.OK, "msg": "UPDATED"}


# -----------------------
# Server bootstrap
# -----------------------
def start_server(node, addr, max_workers=10):
    """Start a gRPC server for node on addr; returns (server, bound_port)."""
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=max_workers))
    store_api.add_DeviceStoreServicer_to_server(node, server)
    port = server.add_insecure_port(addr)
    server.start()
    return server, port


def serve(name, addr):
    node = DeviceStoreNode(name)
    server, _ = start_server(node, addr)
    log.info("Node %s listening on %s (%d devices)", name, addr, len(node.store.devices))
    try:
        while True:
            time.sleep(60)
    except KeyboardInterrupt:
        log.info("Shutting down %s", name)
        server.stop(0)


if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"), format="[%(name)s] %(message)s")
    if len(sys.argv) < 3:
        print("usage: python nodes/node.py <node_id> <host:port>")
        sys.exit(1)
    serve(sys.argv[1], sys.argv[2])
