from zlg_canfd.constants import ZCAN_ERROR_DEVICEOPEN, ZCAN_ERROR_SEND_TOO_FAST
from zlg_canfd.errors import (
    DeviceNotOpenError,
    OpenFailedError,
    PropertyError,
    TransmitFailedError,
    ZlgCanError,
    error_message,
)


def test_error_message() -> None:
    assert error_message("open_device") == "open_device failed"
    assert error_message("open_device", ZCAN_ERROR_DEVICEOPEN) == (
        "open_device failed: failed to open device (0x200)"
    )
    assert error_message("transmit", ZCAN_ERROR_SEND_TOO_FAST) == (
        "transmit failed: sending too fast (0x30007)"
    )
    assert error_message("transmit", 0x12345) == "transmit failed (0x12345)"


def test_base_error() -> None:
    error = ZlgCanError("clear_buffer", ZCAN_ERROR_DEVICEOPEN)
    assert error.operation == "clear_buffer"
    assert error.error_code == ZCAN_ERROR_DEVICEOPEN
    assert str(error) == error_message("clear_buffer", ZCAN_ERROR_DEVICEOPEN)
    assert str(ZlgCanError("x", message="custom")) == "custom"


def test_subclasses() -> None:
    not_open = DeviceNotOpenError("receive")
    assert isinstance(not_open, ZlgCanError)
    assert str(not_open) == "receive: device not open"

    cause = ZlgCanError("start_channel", 0x20)
    open_failed = OpenFailedError("start_channel", cause)
    assert open_failed.operation == "open"
    assert open_failed.step == "start_channel"
    assert open_failed.cause is cause
    assert open_failed.error_code == 0x20
    assert "start_channel" in str(open_failed)

    transmit = TransmitFailedError("CAN", 0)
    assert str(transmit) == "transmit failed: CAN frame accepted 0 of 1"

    prop = PropertyError("set_property", "0/ip", 0x4000)
    assert prop.path == "0/ip"
    assert str(prop) == "set_property failed for '0/ip' (0x4000)"
