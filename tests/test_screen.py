import pytest

from conftest import FakeCompletionClient
from frontend import screen as screen_mod
from frontend.screen import Screen, RideTimer, format_time
from llm.assistant import GREETING, RideAssistant


@pytest.fixture
def screen(fake_store, clock):
    s = Screen(fake_store, assistant_factory=lambda: RideAssistant(FakeCompletionClient(["ok"])), clock=clock)
    s.load_devices()
    return s


@pytest.fixture
def no_qr(monkeypatch):
    monkeypatch.setattr(screen_mod.qrcodes, "to_data_url", lambda content: "data:image/png;base64," + content)


def _book(screen, device_id="WC-001"):
    assert screen.select_device(device_id)
    assert screen.confirm_booking()


def _start_ride(screen, device_id="WC-001"):
    _book(screen, device_id)
    assert screen.begin_ride()
    assert screen.handle_scan("wheelchair:" + device_id)


@pytest.mark.parametrize("seconds,text", [(0, "0:00"), (5, "0:05"), (65, "1:05"), (3660, "61:00")])
def test_format_time(seconds, text):
    assert format_time(seconds) == text


def test_ride_timer(clock):
    timer = RideTimer(clock)
    assert timer.elapsed() == 0
    timer.start()
    clock.advance(3.7)
    assert timer.elapsed() == 3
    timer.reset()
    assert timer.elapsed() == 0 and not timer.running


def test_starts_on_map_with_devices(screen):
    assert screen.view == "map"
    assert [d["id"] for d in screen.devices] == ["WC-001", "WC-002", "WC-003"]


def test_select_available_device_moves_to_booking(screen):
    assert screen.select_device("WC-001")
    assert screen.view == "booking"
    assert screen.selected["id"] == "WC-001"


@pytest.mark.parametrize("device_id", ["WC-002", "WC-404"])
def test_select_in_use_or_unknown_device_is_ignored(screen, device_id):
    assert not screen.select_device(device_id)
    assert screen.view == "map"
    assert screen.selected is None


def test_cancel_booking(screen):
    screen.select_device("WC-001")
    assert screen.cancel_booking()
    assert screen.view == "map" and screen.selected is None


def test_confirm_booking_marks_in_use_and_activates(screen, fake_store, no_qr):
    screen.select_device("WC-001")
    assert screen.confirm_booking()
    assert screen.view == "active"
    assert fake_store.updates == [("WC-001", {"status": "in_use", "qrCode": "data:image/png;base64,wheelchair:WC-001"})]
    assert screen.selected["status"] == "in_use"
    assert screen.snapshot()["notice"] == "Booking confirmed successfully!"
    assert not screen.ride_started


def test_confirm_booking_failure_shows_alert(screen, fake_store, no_qr):
    fake_store.fail_updates = True
    screen.select_device("WC-001")
    assert not screen.confirm_booking()
    assert screen.view == "booking"
    assert screen.alert == "Failed to confirm booking. Please try again."


def test_notice_expires(screen, clock, no_qr):
    _book(screen)
    clock.advance(2)
    assert screen.snapshot()["notice"] is None


def test_scan_starts_ride_and_timer(screen, clock, no_qr):
    _book(screen)
    assert screen.begin_ride()
    assert screen.view == "scanner"
    assert screen.handle_scan("wheelchair:WC-001")
    assert screen.view == "active"
    assert screen.ride_started
    clock.advance(65)
    snap = screen.snapshot()
    assert snap["timer"] == 65 and snap["timer_text"] == "1:05"
    assert snap["notice"] is None


def test_empty_scan_is_ignored(screen, no_qr):
    _book(screen)
    screen.begin_ride()
    assert not screen.handle_scan("")
    assert screen.view == "scanner" and not screen.ride_started
    assert screen.cancel_scan()
    assert screen.view == "active"


def test_scan_outside_scanner_is_ignored(screen):
    assert not screen.handle_scan("wheelchair:WC-001")
    assert not screen.ride_started


def test_end_ride_resets_device_and_state(screen, fake_store, clock, no_qr):
    _start_ride(screen)
    clock.advance(30)
    assert screen.request_end_ride()
    assert screen.snapshot()["confirm_end"]
    assert screen.end_ride()
    assert fake_store.updates[-1] == ("WC-001", {"status": "available"})
    assert screen.view == "map"
    assert screen.selected is None
    assert not screen.ride_started and not screen.confirm_end
    assert screen.timer.elapsed() == 0
    assert fake_store.devices["WC-001"]["status"] == "available"
    assert screen.devices[0]["status"] == "available"


def test_end_ride_failure_keeps_ride(screen, fake_store, no_qr):
    _start_ride(screen)
    fake_store.fail_updates = True
    screen.request_end_ride()
    assert not screen.end_ride()
    assert screen.alert == "Failed to end ride. Please try again."
    assert screen.ride_started and screen.view == "active"


def test_dismiss_end_ride(screen, no_qr):
    _start_ride(screen)
    screen.request_end_ride()
    screen.dismiss_end_ride()
    assert not screen.confirm_end


def test_request_end_ride_needs_running_ride(screen):
    assert not screen.request_end_ride()


def test_end_ride_outside_active_view_is_ignored(screen, fake_store):
    assert screen.select_device("WC-001")
    assert not screen.end_ride()
    assert screen.view == "booking"
    assert screen.selected["id"] == "WC-001"
    assert fake_store.updates == []


def test_load_failure_keeps_previous_list(screen, fake_store):
    fake_store.fail_list = True
    assert not screen.load_devices()
    assert len(screen.devices) == 3
    assert screen.alert == "Could not load wheelchairs. Please try again."


def test_successful_reload_clears_load_alert(screen, fake_store):
    fake_store.fail_list = True
    screen.load_devices()
    fake_store.fail_list = False
    assert screen.load_devices()
    assert screen.snapshot()["alert"] is None


def test_chat_only_during_ride(screen, no_qr):
    assert not screen.open_chat()
    _start_ride(screen)
    assert screen.open_chat()
    assert screen.snapshot()["chat"]["messages"] == [{"role": "assistant", "content": GREETING}]
    screen.chat.send("hi")
    screen.close_chat()
    screen.open_chat()
    assert len(screen.chat.messages) == 1


def test_booking_map_card_defaults_eta(screen):
    screen.select_device("WC-003")
    card = screen.snapshot()["map_card"]
    assert card == {"name": "WC-003", "status": "available", "distance": "500m away",
                    "estimatedTime": "N/A", "battery": 100}
