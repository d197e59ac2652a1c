import logging
import typing

import pytest

from zlg_canfd.errors import PropertyError, ZlgCanError
from zlg_canfd.transport import Transport
from zlg_canfd.zlg_canfd import CanfdWifi100uTcp, DeviceConfig
from zlg_canfd.zlg_canfd_frame import ZcanFrame

_logger = logging.getLogger(__name__)

DEVICE_HANDLE = 0x1000
CHANNEL_HANDLE = 0x2000


class RecordingTransport(Transport):
    """
    In-memory transport that records every call.

    ``fail_at`` holds call names (or property paths) that raise, ``accept`` caps the
    number of frames accepted per transmit call, ``rx``/``rx_fd`` are the packed
    envelopes handed out by receive calls, ``values`` answers get_property.
    """

    def __init__(self) -> None:
        self.calls: typing.List[typing.Tuple[typing.Any, ...]] = []
        self.fail_at: typing.Set[str] = set()
        self.accept: typing.Optional[int] = None
        self.rx: typing.List[bytes] = []
        self.rx_fd: typing.List[bytes] = []
        self.receive_counts = {0: 0, 1: 0}
        self.values: typing.Dict[str, typing.Any] = {}

    def _call(self, name: str, *args: typing.Any) -> None:
        self.calls.append((name,) + args)
        _logger.debug("transport call %s%r", name, args)
        if name in self.fail_at:
            raise ZlgCanError(name, 0x0200)

    def named(self, name: str) -> typing.List[typing.Tuple[typing.Any, ...]]:
        return [call for call in self.calls if call[0] == name]

    def open_device(self, device_type, device_index):
        self._call("open_device", device_type, device_index)
        return DEVICE_HANDLE

    def close_device(self, device_handle):
        self._call("close_device", device_handle)

    def init_channel(self, device_handle, channel_index, config):
        self._call("init_channel", device_handle, channel_index, config)
        return CHANNEL_HANDLE

    def start_channel(self, channel_handle):
        self._call("start_channel", channel_handle)

    def clear_buffer(self, channel_handle):
        self._call("clear_buffer", channel_handle)

    def get_receive_count(self, channel_handle, data_type=2):
        self._call("get_receive_count", channel_handle, data_type)
        return self.receive_counts[data_type]

    def _accepted(self, envelopes):
        if self.accept is None:
            return len(envelopes)
        return min(self.accept, len(envelopes))

    def transmit(self, channel_handle, envelopes):
        self._call("transmit", channel_handle, list(envelopes))
        return self._accepted(envelopes)

    def transmit_fd(self, channel_handle, envelopes):
        self._call("transmit_fd", channel_handle, list(envelopes))
        return self._accepted(envelopes)

    def receive(self, channel_handle, max_count, timeout=-1):
        self._call("receive", channel_handle, max_count, timeout)
        return self.rx[:max_count]

    def receive_fd(self, channel_handle, max_count, timeout=-1):
        self._call("receive_fd", channel_handle, max_count, timeout)
        return self.rx_fd[:max_count]

    def set_property(self, device_handle, path, value):
        self._call("set_property", device_handle, path, value)
        if path in self.fail_at:
            raise PropertyError("set_property", path, 0x0200)

    def get_property(self, device_handle, path, size=None):
        self._call("get_property", device_handle, path, size)
        if path not in self.values:
            raise PropertyError("get_property", path)
        return self.values[path]


def received(can_id, data=b"", flags=0, fd=False, timestamp_us=0) -> bytes:
    """Packed receive envelope as delivered by the library."""
    return ZcanFrame(can_id, len(data), flags, data, fd=fd, timestamp_us=timestamp_us).pack_received()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def config() -> DeviceConfig:
    return DeviceConfig(ip="192.168.0.178", port=8000)


@pytest.fixture
def closed_device(config: DeviceConfig, transport: RecordingTransport) -> CanfdWifi100uTcp:
    return CanfdWifi100uTcp(config, transport)


@pytest.fixture
def device(closed_device: CanfdWifi100uTcp, transport: RecordingTransport) -> CanfdWifi100uTcp:
    closed_device.open()
    transport.calls.clear()
    return closed_device
