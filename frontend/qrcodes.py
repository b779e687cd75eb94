# frontend/qrcodes.py
import base64
import io

import qrcode


def booking_payload(device_id):
    return f"wheelchair:{device_id}"


def to_data_url(content):
    """Render content as a QR code PNG and return it as a data: URL."""
    img = qrcode.make(content)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
