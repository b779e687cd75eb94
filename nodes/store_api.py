# nodes/store_api.py
# gRPC surface of the device store. Messages are plain dicts encoded as JSON,
# so both sides share this module instead of generated protobuf code.

import json
import grpc

SERVICE = "wheelport.DeviceStore"

# reply codes
OK = 0
NO_SUCH_DEVICE = 2
INVALID_FIELD = 3


def _encode(message):
    return json.dumps(message).encode("utf-8")


def _decode(raw):
    if not raw:
        return {}
    return json.loads(raw.decode("utf-8"))


class DeviceStoreStub:
    """Client-side callables, one per RPC."""

    def __init__(self, channel):
        self.ListDevices = channel.unary_unary(
            f"/{SERVICE}/ListDevices", request_serializer=_encode, response_deserializer=_decode)
        self.GetDevice = channel.unary_unary(
            f"/{SERVICE}/GetDevice", request_serializer=_encode, response_deserializer=_decode)
        self.UpdateDevice = channel.unary_unary(
            f"/{SERVICE}/UpdateDevice", request_serializer=_encode, response_deserializer=_decode)


class DeviceStoreServicer:
    """Base class for store implementations."""

    def ListDevices(self, request, context):
        context.set_code(grpc.StatusCode.UNIMPLEMENTED)
        context.set_details("ListDevices not implemented")
        raise NotImplementedError("ListDevices not implemented")

    def GetDevice(self, request, context):
        context.set_code(grpc.StatusCode.UNIMPLEMENTED)
        context.set_details("GetDevice not implemented")
        raise NotImplementedError("GetDevice not implemented")

    def UpdateDevice(self, request, context):
        context.set_code(grpc.StatusCode.UNIMPLEMENTED)
        context.set_details("UpdateDevice not implemented")
        raise NotImplementedError("UpdateDevice not implemented")


def add_DeviceStoreServicer_to_server(servicer, server):
    handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(servicer, name), request_deserializer=_decode, response_serializer=_encode)
        for name in ("ListDevices", "GetDevice", "UpdateDevice")
    }
    server.add_generic_rpc_handlers((grpc.method_handlers_generic_handler(SERVICE, handlers),))


def create_store_stub(address):
    """Return a DeviceStore stub for the given host:port."""
    channel = grpc.insecure_channel(address)
    return DeviceStoreStub(channel)


class StoreError(Exception):
    """The store answered with a non-zero reply code."""

    def __init__(self, code, msg):
        super().__init__(f"{code}: {msg}")
        self.code = code
        self.msg = msg


class StoreClient:
    """Thin wrapper turning store replies into records or StoreError."""

    def __init__(self, stub, timeout=3):
        self.stub = stub
        self.timeout = timeout

    def list_devices(self):
        resp = self.stub.ListDevices({}, timeout=self.timeout)
        status = resp.get("status", OK)
        if status != OK:
            raise StoreError(status, resp.get("msg", ""))
        return list(resp.get("devices", []))

    def get_device(self, device_id):
        resp = self.stub.GetDevice({"device_id": device_id}, timeout=self.timeout)
        if resp.get("code", OK) != OK:
            raise StoreError(resp.get("code"), resp.get("msg", ""))
        return resp.get("device")

    def update_device(self, device_id, fields):
        resp = self.stub.UpdateDevice({"device_id": device_id, "fields": fields}, timeout=self.timeout)
        code = resp.get("code", OK)
        if code != OK:
            raise StoreError(code, resp.get("msg", ""))
        return resp.get("msg", "")
