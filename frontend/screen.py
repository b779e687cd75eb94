# frontend/screen.py
# State of one WheelPort screen: which view is showing, the booked chair,
# the ride timer and the chat widget. Store calls go through a StoreClient.

import logging
import time

import grpc

from frontend import qrcodes
from llm.assistant import RideAssistant
from nodes.devices import AVAILABLE, IN_USE, is_available
from nodes.store_api import StoreError

log = logging.getLogger(__name__)

MAP, SCANNER, BOOKING, ACTIVE = "map", "scanner", "booking", "active"
VIEWS = (MAP, SCANNER, BOOKING, ACTIVE)

NOTICE_SECONDS = 2
CURRENT_LOCATION = "Terminal 1 - Main Entrance"
SUPPORT_LINE = "Call support at 1-800-HELP for immediate assistance."

BOOKING_CONFIRMED = "Booking confirmed successfully!"
RIDE_STARTED = "Ride started successfully!"
LOAD_FAILED = "Could not load wheelchairs. Please try again."
BOOKING_FAILED = "Failed to confirm booking. Please try again."
END_FAILED = "Failed to end ride. Please try again."

STORE_ERRORS = (StoreError, grpc.RpcError)


def format_time(seconds):
    mins, secs = divmod(int(seconds), 60)
    return f"{mins}:{secs:02d}"


class RideTimer:
    """Whole seconds since start(); 0 while stopped."""

    def __init__(self, clock=time.monotonic):
        self.clock = clock
        self.started_at = None

    @property
    def running(self):
        return self.started_at is not None

    def start(self):
        if self.started_at is None:
            self.started_at = self.clock()

    def reset(self):
        self.started_at = None

    def elapsed(self):
        if self.started_at is None:
            return 0
        return max(0, int(self.clock() - self.started_at))


class Screen:
    def __init__(self, store, assistant_factory=RideAssistant, clock=time.monotonic):
        self.store = store
        self.assistant_factory = assistant_factory
        self.clock = clock

        self.view = MAP
        self.devices = []
        self.selected = None
        self.ride_started = False
        self.timer = RideTimer(clock)
        self.confirm_end = False
        self.chat = None
        self.notice = None
        self.notice_until = 0
        self.alert = None

    # ---- helpers ----
    def _notify(self, text):
        self.notice = text
        self.notice_until = self.clock() + NOTICE_SECONDS

    def current_notice(self):
        if self.notice and self.clock() >= self.notice_until:
            self.notice = None
        return self.notice

    def _find(self, device_id):
        for dev in self.devices:
            if dev.get("id") == device_id:
                return dev
        return None

    # ---- map ----
    def load_devices(self):
        try:
            self.devices = self.store.list_devices()
        except STORE_ERRORS as exc:
            log.error("Error loading wheelchairs: %s", exc, exc_info=True)
            self.alert = LOAD_FAILED
            return False
        if self.alert == LOAD_FAILED:
            self.alert = None
        return True

    def select_device(self, device_id):
        dev = self._find(device_id)
        if self.view != MAP or not is_available(dev):
            return False
        self.selected = dict(dev)
        self.view = BOOKING
        self.alert = None
        return True

    # ---- booking ----
    def cancel_booking(self):
        if self.view != BOOKING:
            return False
        self.view = MAP
        self.selected = None
        return True

    def confirm_booking(self):
        if self.view != BOOKING or not self.selected:
            return False
        did = self.selected["id"]
        try:
            qr = qrcodes.to_data_url(qrcodes.booking_payload(did))
            self.store.update_device(did, {"status": IN_USE, "qrCode": qr})
        except STORE_ERRORS + (OSError, ValueError) as exc:
            log.error("Error confirming booking for %s: %s", did, exc, exc_info=True)
            self.alert = BOOKING_FAILED
            return False
        self.selected["status"] = IN_USE
        self.selected["qrCode"] = qr
        self.alert = None
        self._notify(BOOKING_CONFIRMED)
        self.view = ACTIVE
        log.info("booked %s", did)
        return True

    # ---- ride ----
    def begin_ride(self):
        if self.view != ACTIVE or self.ride_started:
            return False
        self.view = SCANNER
        return True

    def handle_scan(self, data):
        """Scan callback: any non-empty scanned string starts the ride."""
        if self.view != SCANNER or not data:
            return False
        self.ride_started = True
        self.timer.start()
        self.view = ACTIVE
        self._notify(RIDE_STARTED)
        log.info("ride started on %s", (self.selected or {}).get("id"))
        return True

    def cancel_scan(self):
        if self.view != SCANNER:
            return False
        self.view = ACTIVE
        return True

    def request_end_ride(self):
        if not self.ride_started:
            return False
        self.confirm_end = True
        return True

    def dismiss_end_ride(self):
        self.confirm_end = False
        return True

    def end_ride(self):
        if self.view != ACTIVE or not self.selected:
            return False
        did = self.selected["id"]
        try:
            self.store.update_device(did, {"status": AVAILABLE})
        except STORE_ERRORS as exc:
            log.error("Error ending ride on %s: %s", did, exc, exc_info=True)
            self.alert = END_FAILED
            return False
        log.info("ride ended on %s after %s", did, format_time(self.timer.elapsed()))
        self.ride_started = False
        self.timer.reset()
        self.view = MAP
        self.selected = None
        self.confirm_end = False
        self.chat = None
        self.alert = None
        self.load_devices()
        return True

    # ---- chat ----
    def open_chat(self):
        if not self.ride_started:
            return False
        self.chat = self.assistant_factory()
        return True

    def close_chat(self):
        self.chat = None
        return True

    def snapshot(self):
        sel = self.selected
        card = None
        if sel:
            card = {
                "name": sel["id"],
                "status": sel.get("status"),
                "distance": sel.get("distance"),
                "estimatedTime": sel.get("estimatedTime") or "N/A",
                "battery": sel.get("battery"),
            }
        elapsed = self.timer.elapsed()
        return {
            "view": self.view,
            "current_location": CURRENT_LOCATION,
            "support": SUPPORT_LINE,
            "devices": self.devices,
            "selected": sel,
            "map_card": card,
            "ride_started": self.ride_started,
            "timer": elapsed,
            "timer_text": format_time(elapsed),
            "confirm_end": self.confirm_end,
            "notice": self.current_notice(),
            "alert": self.alert,
            "chat": None if self.chat is None else {
                "messages": list(self.chat.messages),
                "loading": self.chat.loading,
            },
        }
