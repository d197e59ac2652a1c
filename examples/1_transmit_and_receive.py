"""
Transmit and Receive Example

This script opens a CANFD-WIFI-100U-TCP as a TCP client and walks through the
immediate transmit path:

1. open() - open the device, push the connection properties, start channel 0
2. transmit() - send a classic frame, an extended frame and a 64-byte CAN FD frame
3. transmit_batch() - send a mixed CAN / CAN FD batch
4. receive() - listen for frames (echo frames included) for a few seconds

Set ZLG_IP / ZLG_PORT to point at your device and ZLGCAN_LIBRARY at the
vendor library.
"""

import logging
import os
import time

from zlg_canfd.zlg_canfd import CanfdWifi100uTcp, DeviceConfig
from zlg_canfd.zlg_canfd_frame import CanFdMessage, CanMessage


def main():
    config = DeviceConfig(
        ip=os.environ.get("ZLG_IP", "192.168.0.178"),
        port=int(os.environ.get("ZLG_PORT", "8000")),
    )

    print(f"Connecting to {config.ip}:{config.port}...")
    with CanfdWifi100uTcp.from_library(config) as dev:
        print(f"Opened {dev}")
        print()

        print("=== Step 1: Single Frames ===")
        for msg in (
            CanMessage(id=0x123, data=bytes([0x11, 0x22, 0x33, 0x44])),
            CanMessage(id=0x12345678, data=bytes(8), is_extended=True),
            CanFdMessage(id=0x456, data=bytes(range(64)), brs=True),
        ):
            dev.transmit(msg)
            print(f"TX  {msg}")
        print()

        print("=== Step 2: Mixed Batch ===")
        batch = [
            CanMessage(id=0x100, data=[1, 2, 3]),
            CanFdMessage(id=0x200, data=bytes(32), brs=True),
            CanMessage(id=0x101, data=[4, 5, 6]),
            CanFdMessage(id=0x201, data=bytes(64), esi=True),
        ]
        sent = dev.transmit_batch(batch)
        print(f"Batch accepted {sent} of {len(batch)} frames")
        print()

        print("=== Step 3: Receive (5 seconds) ===")
        print("(Echo frames of the messages above appear here too)")
        end_time = time.time() + 5
        frame_count = 0
        while time.time() < end_time:
            for msg in dev.receive(max_count=100, timeout=100):
                frame_count += 1
                print(f"RX  {msg.timestamp:>12} us  {msg}")
        print()
        print(f"Total frames: {frame_count}")
        print(f"Still buffered: {dev.get_buffer_count()}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        main()
    except KeyboardInterrupt:
        print("\nInterrupted by user")
    except Exception as e:
        print(f"Error: {e}")
        raise
