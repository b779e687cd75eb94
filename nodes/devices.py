# nodes/devices.py
# Device record helpers shared by the store node and the front-end.

AVAILABLE = "available"
IN_USE = "in_use"
STATUSES = (AVAILABLE, IN_USE)

# fields a record may carry; "id" is the document key and never stored inside
FIELDS = ("status", "location", "battery", "distance", "estimatedTime", "qrCode")

DEFAULT_FLEET = {
    "WC-001": {"status": AVAILABLE, "location": "Terminal 1 - Gate A3", "battery": 95,
               "distance": "50m away", "estimatedTime": "1 min"},
    "WC-002": {"status": AVAILABLE, "location": "Terminal 1 - Check-in Hall", "battery": 80,
               "distance": "120m away", "estimatedTime": "2 min"},
    "WC-003": {"status": IN_USE, "location": "Terminal 1 - Security", "battery": 64,
               "distance": "200m away"},
    "WC-004": {"status": AVAILABLE, "location": "Terminal 1 - Baggage Claim", "battery": 45,
               "distance": "350m away", "estimatedTime": "5 min"},
    "WC-005": {"status": AVAILABLE, "location": "Terminal 1 - Gate B7", "battery": 100,
               "distance": "500m away"},
}


def validate_fields(fields):
    """
    Check a partial update and return a clean copy.
    Raises ValueError naming the first offending field.
    """
    if not isinstance(fields, dict) or not fields:
        raise ValueError("fields")
    clean = {}
    for key, value in fields.items():
        if key not in FIELDS:
            raise ValueError(key)
        if key == "status" and value not in STATUSES:
            raise ValueError(f"status={value}")
        if key == "battery":
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
                raise ValueError(f"battery={value}")
        elif value is not None and not isinstance(value, str):
            raise ValueError(key)
        clean[key] = value
    return clean


def with_id(device_id, record):
    """Flatten a stored record into the shape callers see (id + fields)."""
    out = {"id": device_id}
    out.update({k: v for k, v in record.items() if k in FIELDS and v is not None})
    return out


def is_available(device):
    return (device or {}).get("status") == AVAILABLE
