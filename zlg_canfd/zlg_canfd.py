import enum
import logging
import struct
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from .constants import (
    INVALID_CHANNEL_HANDLE,
    INVALID_DEVICE_HANDLE,
    PATH_APPLY_AUTO_SEND,
    PATH_AUTO_SEND,
    PATH_AUTO_SEND_CAN_COUNT,
    PATH_AUTO_SEND_CAN_DATA,
    PATH_AUTO_SEND_CANFD_COUNT,
    PATH_AUTO_SEND_CANFD_DATA,
    PATH_AVAILABLE_TX_COUNT,
    PATH_CANFD_EXP,
    PATH_CLEAR_AUTO_SEND,
    PATH_CLEAR_DELAY_QUEUE,
    PATH_IP,
    PATH_PROTOCOL,
    PATH_TX_ECHO,
    PATH_WORK_MODE,
    PATH_WORK_PORT,
    TCP_CLIENT,
    ZCAN_CANFDNET_200U_TCP,
    ZCAN_TRANSMIT_NORMAL,
    ZCAN_TYPE_ALL_DATA,
    ZCAN_TYPE_CAN,
    ZCAN_TYPE_CANFD,
)
from .errors import (
    DeviceNotOpenError,
    OpenFailedError,
    TransmitFailedError,
    ZlgCanError,
)
from .transport import Transport, ZlgCanLib
from .zlg_canfd_frame import (
    Message,
    ZcanFrame,
    apply_delay,
    decode,
    decode_can,
    decode_canfd,
    encode,
)
from .zlg_canfd_structures import AutoTransmitObj, ChannelInitConfig

_logger = logging.getLogger(__name__)


class MessageKind(enum.Enum):
    CAN = "can"
    CANFD = "canfd"
    ALL = "all"


@dataclass
class DeviceConfig:
    """
    Connection settings of a CANFD-WIFI-100U-TCP.

    :param ip: device IP address
    :param port: device work port
    :param device_index: index passed to ZCAN_OpenDevice
    :param echo: request transmit echo on the device and in every sent frame
    :param device_type: ZCAN device type used to open the device. The library
        does not accept ZCAN_CANFDWIFI_100U_TCP yet, so the compatible
        ZCAN_CANFDNET_200U_TCP is the default.
    """

    ip: str
    port: int
    device_index: int = 0
    echo: bool = True
    device_type: int = ZCAN_CANFDNET_200U_TCP

    def __post_init__(self):
        errors = []
        if not self.ip:
            errors.append("ip is required")
        if not 0 < self.port <= 0xFFFF:
            errors.append("port %r out of range 1..65535" % (self.port,))
        if self.device_index < 0:
            errors.append("device_index must not be negative")
        if errors:
            raise ValueError("invalid device config: %s" % "; ".join(errors))


@dataclass
class AutoSendEntry:
    """A periodic send slot: ``message`` is sent every ``interval`` ms once applied."""

    index: int
    message: Message
    interval: int
    enable: bool = True


@dataclass
class QueueSendItem:
    message: Message
    delay: int  # ms


class CanfdWifi100uTcp:
    """
    CANFD-WIFI-100U-TCP Ethernet CAN FD bridge.

    The device is reached as a TCP client, has a single channel and takes its
    bit rates from its own configuration. Instances are not thread-safe.
    """

    CHANNEL_INDEX = 0

    def __init__(self, config: DeviceConfig, transport: Transport):
        self.config = config
        self.transport = transport
        self._device_handle = INVALID_DEVICE_HANDLE
        self._channel_handle = INVALID_CHANNEL_HANDLE

    @classmethod
    def from_library(cls, config: DeviceConfig, library_path: Optional[str] = None):
        r"""
        Create a device bound to its own instance of the ZLG library
        :param library_path: shared library path, defaults to $ZLGCAN_LIBRARY
        """
        return cls(config, ZlgCanLib(library_path))

    def __str__(self):
        return "CANFD-WIFI-100U-TCP (%s:%u, %s)" % (
            self.config.ip,
            self.config.port,
            "open" if self.is_open() else "closed",
        )

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def _path(self, template: str, **kwargs) -> str:
        return template.format(ch=self.CHANNEL_INDEX, **kwargs)

    def _open_properties(self) -> List[Tuple[str, str]]:
        properties = [
            (PATH_IP, self.config.ip),
            (PATH_WORK_PORT, str(self.config.port)),
            (PATH_WORK_MODE, str(TCP_CLIENT)),
        ]
        if self.config.echo:
            properties.append((PATH_TX_ECHO, "1"))
        properties.append((PATH_CANFD_EXP, "1"))
        properties.append((PATH_PROTOCOL, str(ZCAN_TYPE_ALL_DATA)))
        return properties

    def open(self):
        r"""
        Open the device and start its channel

        Sequence: open device, set ip / work_port / client mode / tx echo /
        CAN FD enhancement / ALL_DATA protocol, init the channel as CAN FD
        with an accept-all filter, start the channel. A failure at any step
        closes what was acquired and raises OpenFailedError.
        """
        if self.is_open():
            return

        _logger.info(
            "Opening %s:%u (type %u, index %u)",
            self.config.ip,
            self.config.port,
            self.config.device_type,
            self.config.device_index,
        )
        step = "open_device"
        try:
            self._device_handle = self.transport.open_device(
                self.config.device_type, self.config.device_index
            )
            for template, value in self._open_properties():
                step = self._path(template)
                self.transport.set_property(self._device_handle, step, value)

            step = "init_channel"
            self._channel_handle = self.transport.init_channel(
                self._device_handle, self.CHANNEL_INDEX, ChannelInitConfig()
            )

            step = "start_channel"
            self.transport.start_channel(self._channel_handle)
        except Exception as error:
            _logger.error("Open failed at %s: %s", step, error)
            self._close_internal()
            raise OpenFailedError(step, error) from error

        _logger.info("Device open, channel %u started", self.CHANNEL_INDEX)

    def close(self):
        r"""
        Close the device; closing a closed device does nothing
        """
        if not self.is_open():
            return
        self._close_internal()
        _logger.info("Device closed")

    def _close_internal(self):
        if self._device_handle != INVALID_DEVICE_HANDLE:
            try:
                self.transport.close_device(self._device_handle)
            except Exception:
                _logger.warning("Ignoring failure to close device", exc_info=True)
        self._device_handle = INVALID_DEVICE_HANDLE
        self._channel_handle = INVALID_CHANNEL_HANDLE

    def is_open(self) -> bool:
        return (
            self._device_handle != INVALID_DEVICE_HANDLE
            and self._channel_handle != INVALID_CHANNEL_HANDLE
        )

    def _ensure_open(self, operation: str):
        if not self.is_open():
            raise DeviceNotOpenError(operation)

    def receive(
        self,
        max_count: int = 100,
        timeout: int = 0,
        kind: Union[MessageKind, str] = MessageKind.ALL,
    ) -> List[Message]:
        r"""
        Receive messages
        :param max_count: maximum number of frames read per frame kind
        :param timeout: wait time in ms, 0 returns what is already buffered
        :param kind: "can", "canfd" or "all"
        :return: decoded messages; with "all", stably ordered by timestamp
        """
        self._ensure_open("receive")
        kind = MessageKind(kind)
        result: List[Message] = []

        if kind in (MessageKind.CAN, MessageKind.ALL):
            for raw in self.transport.receive(self._channel_handle, max_count, timeout):
                result.append(decode_can(ZcanFrame.from_bytes(raw, fd=False)))

        if kind in (MessageKind.CANFD, MessageKind.ALL):
            for raw in self.transport.receive_fd(self._channel_handle, max_count, timeout):
                result.append(decode_canfd(ZcanFrame.from_bytes(raw, fd=True)))

        if kind is MessageKind.ALL:
            result.sort(key=lambda msg: msg.timestamp or 0)

        _logger.debug("Received %d %s message(s)", len(result), kind.value)
        return result

    def _send_frames(self, frames: Sequence[ZcanFrame]) -> int:
        can_envelopes = [frame.pack() for frame in frames if not frame.fd]
        canfd_envelopes = [frame.pack() for frame in frames if frame.fd]

        sent = 0
        if can_envelopes:
            sent += self.transport.transmit(self._channel_handle, can_envelopes)
        if canfd_envelopes:
            sent += self.transport.transmit_fd(self._channel_handle, canfd_envelopes)
        _logger.debug(
            "Sent %d of %d CAN + %d CANFD frame(s)",
            sent,
            len(can_envelopes),
            len(canfd_envelopes),
        )
        return sent

    def transmit(self, message: Message):
        r"""
        Send one message immediately
        :raises TransmitFailedError: if the device did not accept the frame
        """
        self._ensure_open("transmit")
        frame = encode(message, ZCAN_TRANSMIT_NORMAL, self.config.echo)
        if frame.fd:
            sent = self.transport.transmit_fd(self._channel_handle, [frame.pack()])
        else:
            sent = self.transport.transmit(self._channel_handle, [frame.pack()])
        if sent != 1:
            raise TransmitFailedError("CANFD" if frame.fd else "CAN", sent)
        _logger.debug("Sent %s", message)

    def transmit_batch(self, messages: Sequence[Message]) -> int:
        r"""
        Send a mix of CAN and CAN FD messages, one library call per kind
        :return: number of frames accepted
        """
        self._ensure_open("transmit_batch")
        frames = [
            encode(msg, ZCAN_TRANSMIT_NORMAL, self.config.echo) for msg in messages
        ]
        return self._send_frames(frames)

    def clear_buffer(self):
        self._ensure_open("clear_buffer")
        self.transport.clear_buffer(self._channel_handle)

    def get_buffer_count(self, kind: Union[MessageKind, str] = MessageKind.ALL) -> int:
        r"""
        Get the number of frames waiting in the receive buffer
        :param kind: "can", "canfd" or "all"
        """
        self._ensure_open("get_buffer_count")
        kind = MessageKind(kind)
        count = 0
        if kind in (MessageKind.CAN, MessageKind.ALL):
            count += self.transport.get_receive_count(self._channel_handle, ZCAN_TYPE_CAN)
        if kind in (MessageKind.CANFD, MessageKind.ALL):
            count += self.transport.get_receive_count(self._channel_handle, ZCAN_TYPE_CANFD)
        return count

    def add_auto_send(self, entry: AutoSendEntry):
        r"""
        Stage a periodic message; the slot is chosen by ``entry.index``
        """
        self._ensure_open("add_auto_send")
        obj = AutoTransmitObj(
            entry.enable,
            entry.index,
            entry.interval,
            encode(entry.message, ZCAN_TRANSMIT_NORMAL, self.config.echo),
        )
        self.transport.set_property(self._device_handle, self._path(PATH_AUTO_SEND), obj)
        _logger.debug(
            "Staged auto-send slot %u every %u ms: %s",
            entry.index,
            entry.interval,
            entry.message,
        )

    def apply_auto_send(self):
        r"""
        Start sending the staged periodic messages
        """
        self._ensure_open("apply_auto_send")
        self.transport.set_property(
            self._device_handle, self._path(PATH_APPLY_AUTO_SEND), "0"
        )

    def clear_auto_send(self):
        r"""
        Stop and remove all periodic messages
        """
        self._ensure_open("clear_auto_send")
        self.transport.set_property(
            self._device_handle, self._path(PATH_CLEAR_AUTO_SEND), "0"
        )

    @staticmethod
    def _parse_count(value) -> int:
        if isinstance(value, int):
            return value
        if isinstance(value, bytes):
            value = value.split(b"\0", 1)[0].decode("ascii", errors="replace")
        try:
            return int(str(value).strip(), 10)
        except ValueError:
            return 0

    def get_auto_send_count(self, is_fd: bool = False) -> int:
        self._ensure_open("get_auto_send_count")
        template = PATH_AUTO_SEND_CANFD_COUNT if is_fd else PATH_AUTO_SEND_CAN_COUNT
        return self._parse_count(
            self.transport.get_property(self._device_handle, self._path(template))
        )

    def get_auto_send_data(self, index: int, is_fd: bool = False) -> Optional[AutoSendEntry]:
        r"""
        Read back a periodic message
        :return: the staged entry, or None if it cannot be read
        """
        self._ensure_open("get_auto_send_data")
        template = PATH_AUTO_SEND_CANFD_DATA if is_fd else PATH_AUTO_SEND_CAN_DATA
        path = self._path(template, index=index)
        try:
            raw = self.transport.get_property(
                self._device_handle, path, AutoTransmitObj.size(is_fd)
            )
            obj = AutoTransmitObj.unpack(raw, is_fd)
        except (ZlgCanError, ValueError, TypeError, struct.error) as error:
            _logger.debug("No auto-send data at %s: %s", path, error)
            return None
        return AutoSendEntry(
            index=obj.index,
            message=decode(obj.frame),
            interval=obj.interval,
            enable=obj.enable,
        )

    def get_available_tx_count(self) -> int:
        r"""
        Get the free space of the device's delayed send queue
        """
        self._ensure_open("get_available_tx_count")
        return self._parse_count(
            self.transport.get_property(
                self._device_handle, self._path(PATH_AVAILABLE_TX_COUNT)
            )
        )

    def transmit_queue(self, items: Sequence[QueueSendItem]) -> int:
        r"""
        Queue messages on the device, each released after its own ``delay`` ms
        :return: number of frames accepted
        """
        self._ensure_open("transmit_queue")
        frames = [
            apply_delay(
                encode(item.message, ZCAN_TRANSMIT_NORMAL, self.config.echo),
                item.delay,
                self.config.echo,
            )
            for item in items
        ]
        return self._send_frames(frames)

    def clear_delay_queue(self):
        self._ensure_open("clear_delay_queue")
        self.transport.set_property(
            self._device_handle, self._path(PATH_CLEAR_DELAY_QUEUE), "0"
        )
