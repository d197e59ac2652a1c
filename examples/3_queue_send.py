"""
Delayed Queue Send Example

Queued frames are held by the device and released after a per-frame delay,
which gives millisecond-accurate spacing without host timing. This script
queues a ramp of frames 10 ms apart and checks the free queue space.
"""

import logging
import os
import time

from zlg_canfd.zlg_canfd import CanfdWifi100uTcp, DeviceConfig, QueueSendItem
from zlg_canfd.zlg_canfd_frame import CanFdMessage, CanMessage


def main():
    config = DeviceConfig(
        ip=os.environ.get("ZLG_IP", "192.168.0.178"),
        port=int(os.environ.get("ZLG_PORT", "8000")),
    )

    with CanfdWifi100uTcp.from_library(config) as dev:
        print(f"Available queue space: {dev.get_available_tx_count()}")

        items = [QueueSendItem(CanMessage(0x400, [i]), delay=10) for i in range(10)]
        items.append(QueueSendItem(CanFdMessage(0x401, bytes(48), brs=True), delay=300))
        sent = dev.transmit_queue(items)
        print(f"Queued {sent} of {len(items)} frames")
        print(f"Available queue space: {dev.get_available_tx_count()}")

        time.sleep(1)
        for msg in dev.receive(max_count=100):
            print(f"RX  {msg.timestamp:>12} us  {msg}")

        dev.clear_delay_queue()
        print("Delay queue cleared")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        main()
    except KeyboardInterrupt:
        print("\nInterrupted by user")
