# scripts/add_device.py
import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from nodes.devices import AVAILABLE
from nodes.node import Storage


def add_device(node_file, device_id, location, battery=100, distance=""):
    store = Storage(node_file)
    store.put(device_id, {
        "status": AVAILABLE,
        "location": location,
        "battery": battery,
        "distance": distance,
    })
    return store.get(device_id)


def main(argv):
    if len(argv) < 3:
        print("usage: python scripts/add_device.py <device_id> <location> [battery] [distance] [node_file]")
        print("node_file default: node_store1.json")
        return 1

    device_id = argv[1]
    location = argv[2]
    distance = argv[4] if len(argv) > 4 else ""
    node_file = argv[5] if len(argv) > 5 else "node_store1.json"

    try:
        battery = int(argv[3]) if len(argv) > 3 else 100
        rec = add_device(node_file, device_id, location, battery, distance)
    except ValueError as exc:
        print("Invalid device field:", exc)
        return 1
    print("Added device", rec["id"], "to", node_file)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
