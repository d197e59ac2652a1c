"""
Transport port between the device session and the vendor library.

The session only ever hands packed envelopes to a :class:`Transport` and gets
packed envelopes back; :class:`ZlgCanLib` implements the port on top of the
ZLG shared library through ``ctypes``. Tests substitute their own recording
implementation.
"""

import abc
import ctypes
import logging
import os
import platform
from typing import List, Optional, Sequence, Union

from .constants import ZCAN_STATUS_OK, ZCAN_TYPE_ALL_DATA
from .errors import PropertyError, ZlgCanError
from .zlg_canfd_frame import ZcanFrame
from .zlg_canfd_structures import ChannelErrorInfo, ChannelInitConfig, encode_property_value

LIBRARY_ENV = "ZLGCAN_LIBRARY"

_logger = logging.getLogger(__name__)


class Transport(abc.ABC):
    @abc.abstractmethod
    def open_device(self, device_type: int, device_index: int) -> int:
        """Open a device and return its handle; raises ZlgCanError on failure."""
        raise NotImplementedError

    @abc.abstractmethod
    def close_device(self, device_handle: int) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def init_channel(
        self, device_handle: int, channel_index: int, config: ChannelInitConfig
    ) -> int:
        """Initialise a channel and return its handle; raises ZlgCanError on failure."""
        raise NotImplementedError

    @abc.abstractmethod
    def start_channel(self, channel_handle: int) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def clear_buffer(self, channel_handle: int) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def get_receive_count(self, channel_handle: int, data_type: int = ZCAN_TYPE_ALL_DATA) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def transmit(self, channel_handle: int, envelopes: Sequence[bytes]) -> int:
        """Send packed ZCAN_Transmit_Data envelopes; return the accepted count."""
        raise NotImplementedError

    @abc.abstractmethod
    def transmit_fd(self, channel_handle: int, envelopes: Sequence[bytes]) -> int:
        """Send packed ZCAN_TransmitFD_Data envelopes; return the accepted count."""
        raise NotImplementedError

    @abc.abstractmethod
    def receive(self, channel_handle: int, max_count: int, timeout: int = -1) -> List[bytes]:
        """
        Receive packed ZCAN_Receive_Data envelopes.

        :param timeout: wait time in ms, 0 returns immediately, -1 waits forever
        """
        raise NotImplementedError

    @abc.abstractmethod
    def receive_fd(self, channel_handle: int, max_count: int, timeout: int = -1) -> List[bytes]:
        raise NotImplementedError

    @abc.abstractmethod
    def set_property(self, device_handle: int, path: str, value) -> None:
        """Set a property; raises PropertyError on failure."""
        raise NotImplementedError

    @abc.abstractmethod
    def get_property(
        self, device_handle: int, path: str, size: Optional[int] = None
    ) -> Union[str, bytes]:
        """
        Read a property.

        :param size: number of raw bytes to read; ``None`` reads a NUL-terminated string
        """
        raise NotImplementedError


def default_library_path() -> str:
    path = os.environ.get(LIBRARY_ENV)
    if path:
        return path
    if platform.system() == "Windows":
        return "zlgcan.dll"
    return "libzlgcan.so"


class ZlgCanLib(Transport):
    """ZLG ``zlgcan`` shared library bound through ctypes."""

    def __init__(self, library_path: Optional[str] = None):
        self.library_path = library_path or default_library_path()
        if platform.system() == "Windows":
            self._lib = ctypes.WinDLL(self.library_path)
        else:
            self._lib = ctypes.CDLL(self.library_path)
        self._bind()
        _logger.info("Loaded ZLG CAN library %s", self.library_path)

    def _bind(self):
        lib = self._lib
        handle = ctypes.c_void_p
        uint = ctypes.c_uint

        lib.ZCAN_OpenDevice.argtypes = [uint, uint, uint]
        lib.ZCAN_OpenDevice.restype = handle
        lib.ZCAN_CloseDevice.argtypes = [handle]
        lib.ZCAN_CloseDevice.restype = uint
        lib.ZCAN_InitCAN.argtypes = [handle, uint, ctypes.c_char_p]
        lib.ZCAN_InitCAN.restype = handle
        lib.ZCAN_StartCAN.argtypes = [handle]
        lib.ZCAN_StartCAN.restype = uint
        lib.ZCAN_ClearBuffer.argtypes = [handle]
        lib.ZCAN_ClearBuffer.restype = uint
        lib.ZCAN_ReadChannelErrInfo.argtypes = [handle, ctypes.c_char_p]
        lib.ZCAN_ReadChannelErrInfo.restype = uint
        lib.ZCAN_GetReceiveNum.argtypes = [handle, ctypes.c_ubyte]
        lib.ZCAN_GetReceiveNum.restype = uint
        for name in ("ZCAN_Transmit", "ZCAN_TransmitFD"):
            getattr(lib, name).argtypes = [handle, ctypes.c_char_p, uint]
            getattr(lib, name).restype = uint
        for name in ("ZCAN_Receive", "ZCAN_ReceiveFD"):
            getattr(lib, name).argtypes = [handle, ctypes.c_char_p, uint, ctypes.c_int]
            getattr(lib, name).restype = uint
        lib.ZCAN_SetValue.argtypes = [handle, ctypes.c_char_p, ctypes.c_char_p]
        lib.ZCAN_SetValue.restype = uint
        lib.ZCAN_GetValue.argtypes = [handle, ctypes.c_char_p]
        lib.ZCAN_GetValue.restype = ctypes.c_void_p

    def read_channel_error(self, channel_handle: int) -> Optional[int]:
        """Return the last ZCAN error code of the channel, or None if unavailable."""
        buffer = ctypes.create_string_buffer(8)
        if self._lib.ZCAN_ReadChannelErrInfo(channel_handle, buffer) != ZCAN_STATUS_OK:
            return None
        return ChannelErrorInfo.unpack(buffer.raw).error_code

    def open_device(self, device_type, device_index):
        device_handle = self._lib.ZCAN_OpenDevice(device_type, device_index, 0)
        if not device_handle:
            raise ZlgCanError("open_device")
        return device_handle

    def close_device(self, device_handle):
        if self._lib.ZCAN_CloseDevice(device_handle) != ZCAN_STATUS_OK:
            raise ZlgCanError("close_device")

    def init_channel(self, device_handle, channel_index, config):
        channel_handle = self._lib.ZCAN_InitCAN(device_handle, channel_index, config.pack())
        if not channel_handle:
            raise ZlgCanError("init_channel")
        return channel_handle

    def start_channel(self, channel_handle):
        if self._lib.ZCAN_StartCAN(channel_handle) != ZCAN_STATUS_OK:
            raise ZlgCanError("start_channel", self.read_channel_error(channel_handle))

    def clear_buffer(self, channel_handle):
        if self._lib.ZCAN_ClearBuffer(channel_handle) != ZCAN_STATUS_OK:
            raise ZlgCanError("clear_buffer", self.read_channel_error(channel_handle))

    def get_receive_count(self, channel_handle, data_type=ZCAN_TYPE_ALL_DATA):
        return self._lib.ZCAN_GetReceiveNum(channel_handle, data_type)

    def transmit(self, channel_handle, envelopes):
        return self._lib.ZCAN_Transmit(channel_handle, b"".join(envelopes), len(envelopes))

    def transmit_fd(self, channel_handle, envelopes):
        return self._lib.ZCAN_TransmitFD(channel_handle, b"".join(envelopes), len(envelopes))

    def _receive(self, function, item_size, channel_handle, max_count, timeout):
        buffer = ctypes.create_string_buffer(item_size * max_count)
        count = min(function(channel_handle, buffer, max_count, timeout), max_count)
        raw = buffer.raw
        return [raw[i * item_size : (i + 1) * item_size] for i in range(count)]

    def receive(self, channel_handle, max_count, timeout=-1):
        return self._receive(
            self._lib.ZCAN_Receive,
            ZcanFrame.size(fd=False, received=True),
            channel_handle,
            max_count,
            timeout,
        )

    def receive_fd(self, channel_handle, max_count, timeout=-1):
        return self._receive(
            self._lib.ZCAN_ReceiveFD,
            ZcanFrame.size(fd=True, received=True),
            channel_handle,
            max_count,
            timeout,
        )

    def set_property(self, device_handle, path, value):
        payload = encode_property_value(value)
        if self._lib.ZCAN_SetValue(device_handle, path.encode("ascii"), payload) != ZCAN_STATUS_OK:
            raise PropertyError("set_property", path)

    def get_property(self, device_handle, path, size=None):
        pointer = self._lib.ZCAN_GetValue(device_handle, path.encode("ascii"))
        if not pointer:
            raise PropertyError("get_property", path)
        if size is None:
            return ctypes.string_at(pointer).decode("utf-8", errors="replace")
        return ctypes.string_at(pointer, size)
