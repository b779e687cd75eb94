# watch_device.py
# Simple watcher that polls store node files and prints the status of a chosen wheelchair.

import json
import time
from pathlib import Path


def describe(path, device_id):
    """One status line for device_id as recorded in the node file at path."""
    if not path.exists():
        return f"{path.name}: file not found"
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        return f"{path.name}: error reading file ({exc})"
    info = data.get("devices", {}).get(device_id)
    if info is None:
        return f"{path.name}: UNKNOWN"
    status = info.get("status")
    if status == "in_use":
        text = "IN USE"
    elif status == "available":
        text = "AVAILABLE"
    else:
        text = f"UNKNOWN ({status})"
    return f"{path.name}: {text} at {info.get('location') or '?'}, battery {info.get('battery', '?')}%"


def main():
    device_id = input("Enter wheelchair to monitor (example: WC-001): ").strip().upper()
    print(f"Monitoring {device_id} - press Ctrl+C to exit\n")
    try:
        while True:
            timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
            print(f"[{timestamp}]")
            files = sorted(Path(".").glob("node_*.json"))
            if not files:
                print("no node_*.json files in the current directory")
            for p in files:
                print(describe(p, device_id))
            print("-" * 50)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopped monitoring.")


if __name__ == "__main__":
    main()
