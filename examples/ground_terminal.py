#!/usr/bin/env python3
"""
Interactive ground station terminal.

Connects to the launch pad, prints status and thrust updates, and sends
commands typed at the prompt:

    a = ARM, s = SAFE, t = TEST, i = LAUNCH, w = save CSV, q = quit
"""

import sys
import logging
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from groundstation import (
    Command,
    ConnectionManager,
    GroundStationError,
    LinkState,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)

KEYS = {
    "a": Command.ARM,
    "s": Command.SAFE,
    "t": Command.TEST,
    "i": Command.LAUNCH,
}


def on_chart(labels, values):
    if values:
        print(f"[CHART] {labels[-1]}  thrust={values[-1]:.2f} N  ({len(values)} points)")


def main():
    port = sys.argv[1] if len(sys.argv) > 1 else None
    manager = ConnectionManager(port=port, inactivity_timeout=5.0)
    manager.subscribe_status(lambda text: print(text))
    manager.subscribe_chart(on_chart)

    print("Connecting...")
    try:
        manager.connect()
    except GroundStationError as e:
        print(f"Failed to connect: {e}")
        return

    try:
        while manager.state == LinkState.CONNECTED:
            key = input("cmd [a/s/t/i/w/q]> ").strip().lower()
            if key == "q":
                break
            if key == "w":
                try:
                    print(f"Saved {manager.history.save_csv()}")
                except ValueError as e:
                    print(e)
                continue
            command = KEYS.get(key)
            if command is None:
                continue
            if command == Command.LAUNCH and input("Confirm LAUNCH [yes]: ") != "yes":
                continue
            try:
                manager.send(command)
            except GroundStationError as e:
                print(f"Send failed: {e}")

    except (KeyboardInterrupt, EOFError):
        print("\nInterrupted by user.")
    finally:
        print("\nDisconnecting...")
        manager.disconnect()
        if len(manager.history):
            print(f"Session saved to {manager.history.save_csv()}")
        print("Done.")


if __name__ == "__main__":
    main()
