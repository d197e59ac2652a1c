"""
Periodic (Auto-Send) Example

The device can repeat staged frames on its own. This script:

1. add_auto_send() - stages a CAN frame in slot 0 (100 ms) and a CAN FD frame in slot 1 (250 ms)
2. apply_auto_send() - starts periodic transmission
3. get_auto_send_count() / get_auto_send_data() - reads the slots back
4. clear_auto_send() - stops and removes all periodic frames
"""

import logging
import os
import time

from zlg_canfd.zlg_canfd import AutoSendEntry, CanfdWifi100uTcp, DeviceConfig
from zlg_canfd.zlg_canfd_frame import CanFdMessage, CanMessage


def main():
    config = DeviceConfig(
        ip=os.environ.get("ZLG_IP", "192.168.0.178"),
        port=int(os.environ.get("ZLG_PORT", "8000")),
    )

    with CanfdWifi100uTcp.from_library(config) as dev:
        print("=== Step 1: Stage Periodic Frames ===")
        dev.add_auto_send(
            AutoSendEntry(index=0, message=CanMessage(0x300, [0xAA, 0x55]), interval=100)
        )
        dev.add_auto_send(
            AutoSendEntry(
                index=1,
                message=CanFdMessage(0x301, bytes(range(16)), brs=True),
                interval=250,
            )
        )
        print("Staged slot 0 (CAN, 100 ms) and slot 1 (CAN FD, 250 ms)")
        print()

        print("=== Step 2: Apply ===")
        dev.apply_auto_send()
        print("Periodic transmission running")
        print()

        print("=== Step 3: Read Back ===")
        print(f"CAN slots: {dev.get_auto_send_count()}")
        print(f"CAN FD slots: {dev.get_auto_send_count(is_fd=True)}")
        for index, is_fd in ((0, False), (1, True)):
            entry = dev.get_auto_send_data(index, is_fd)
            if entry is None:
                print(f"Slot {index}: not readable")
            else:
                print(f"Slot {index}: every {entry.interval} ms  {entry.message}")
        print()

        time.sleep(3)
        received = dev.receive(max_count=1000)
        print(f"Received {len(received)} echo frames in 3 seconds")
        print()

        print("=== Step 4: Clear ===")
        dev.clear_auto_send()
        print("Periodic transmission stopped")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        main()
    except KeyboardInterrupt:
        print("\nInterrupted by user")
