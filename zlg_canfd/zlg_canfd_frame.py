"""
Frame codec for the ZLG CAN/CAN FD bridge.

Byte layout of the vendor structures (little-endian, offsets in bytes)::

    can_frame (16)              canfd_frame (72)
     0  u32  can_id + EFF/RTR    0  u32  can_id + EFF/RTR
     4  u8   can_dlc             4  u8   len
     5  u8   __pad (CanFlag)     5  u8   flags (CanfdFlag)
     6  u8   __res0 (delay lo)   6  u8   __res0 (delay lo)
     7  u8   __res1 (delay hi)   7  u8   __res1 (delay hi)
     8  u8[8] data               8  u8[64] data

A transmit envelope appends ``u32 transmit_type`` to the frame, a receive
envelope appends ``u64 timestamp`` (microseconds).
"""

from dataclasses import dataclass
from struct import pack, unpack
from typing import ClassVar, Optional, Tuple, Union

from .constants import (
    CAN_EFF_FLAG,
    CAN_EFF_MASK,
    CAN_MAX_DLEN,
    CAN_RTR_FLAG,
    CAN_SFF_MASK,
    CANFD_MAX_DLEN,
    ZCAN_TRANSMIT_NORMAL,
    CanfdFlag,
    CanFlag,
)

# Frame sizes
ZCAN_FRAME_SIZE = 16
ZCAN_FRAME_SIZE_FD = 72

# Frame + transmit_type
ZCAN_TRANSMIT_SIZE = 20
ZCAN_TRANSMIT_SIZE_FD = 76

# Frame + timestamp
ZCAN_RECEIVE_SIZE = 24
ZCAN_RECEIVE_SIZE_FD = 80

_FRAME_FORMAT = "<I4B8s"
_FRAME_FORMAT_FD = "<I4B64s"


@dataclass
class CanMessage:
    """
    Classic CAN message as seen by the caller.

    :param id: 11-bit (standard) or 29-bit (extended) identifier, without flag bits
    :param data: payload, at most 8 bytes
    :param timestamp: receive timestamp in microseconds, ``None`` for outgoing messages
    """

    id: int
    data: bytes = b""
    is_extended: bool = False
    is_remote: bool = False
    timestamp: Optional[int] = None

    is_fd: ClassVar[bool] = False

    def __post_init__(self):
        if isinstance(self.data, (int, str)):
            raise TypeError(
                "payload must be bytes or an iterable of ints, not %s" % type(self.data).__name__
            )
        self.data = bytes(self.data)

    def _indicators(self) -> str:
        return ""

    def __str__(self) -> str:
        data = (
            "remote request"
            if self.is_remote
            else " ".join("{:02X}".format(b) for b in self.data)
        )
        return "{: >8X}{}   [{}]  {}".format(
            self.id, self._indicators(), len(self.data), data
        )


@dataclass
class CanFdMessage(CanMessage):
    """CAN FD message: up to 64 bytes of payload plus the BRS and ESI bits."""

    brs: bool = False
    esi: bool = False

    is_fd: ClassVar[bool] = True

    def _indicators(self) -> str:
        return " FD" + (" BRS" if self.brs else "") + (" ESI" if self.esi else "")


Message = Union[CanMessage, CanFdMessage]


class ZcanFrame:
    def __init__(
        self,
        can_id=0,
        length=0,
        flags=0,
        data=None,
        fd=False,
        transmit_type=ZCAN_TRANSMIT_NORMAL,
        timestamp_us=None,
    ):
        """
        Create a wire frame.

        :param can_id: CAN identifier including CAN_EFF_FLAG / CAN_RTR_FLAG
        :param length: declared payload length (can_dlc / len)
        :param flags: control byte, CanFlag for classic and CanfdFlag for FD frames
        :param data: frame data (bytes or list of ints), zero-padded to capacity
        :param fd: True for the 64-byte canfd_frame layout
        :param transmit_type: transmit envelope field
        :param timestamp_us: receive envelope field
        """
        self.can_id = can_id
        self.length = length
        self.flags = flags
        self.res0 = 0
        self.res1 = 0
        self.fd = fd
        self.transmit_type = transmit_type
        self.timestamp_us = timestamp_us

        if data is None:
            data = b""
        data = bytes(data)

        capacity = self.capacity
        data_len = min(len(data), capacity)
        self.data = data[:data_len] + bytes(capacity - data_len)

    @property
    def capacity(self) -> int:
        return CANFD_MAX_DLEN if self.fd else CAN_MAX_DLEN

    @property
    def delay(self) -> int:
        """Delay in ms carried in the reserved bytes of a queued frame."""
        return self.res0 | (self.res1 << 8)

    @staticmethod
    def size(fd=False, received=False) -> int:
        """Return envelope size in bytes."""
        if received:
            return ZCAN_RECEIVE_SIZE_FD if fd else ZCAN_RECEIVE_SIZE
        return ZCAN_TRANSMIT_SIZE_FD if fd else ZCAN_TRANSMIT_SIZE

    def __repr__(self) -> str:
        return (
            "ZcanFrame(can_id=0x%08X, length=%u, flags=0x%02X, res=(0x%02X, 0x%02X), fd=%s)"
            % (self.can_id, self.length, self.flags, self.res0, self.res1, self.fd)
        )

    def pack_frame(self) -> bytes:
        """Pack the bare can_frame / canfd_frame."""
        return pack(
            _FRAME_FORMAT_FD if self.fd else _FRAME_FORMAT,
            self.can_id & 0xFFFFFFFF,
            self.length,
            self.flags,
            self.res0,
            self.res1,
            self.data,
        )

    def pack(self) -> bytes:
        """Pack into a ZCAN_Transmit_Data / ZCAN_TransmitFD_Data envelope."""
        return self.pack_frame() + pack("<I", self.transmit_type)

    def pack_received(self) -> bytes:
        """Pack into a ZCAN_Receive_Data / ZCAN_ReceiveFD_Data envelope."""
        return self.pack_frame() + pack("<Q", self.timestamp_us or 0)

    @staticmethod
    def unpack_into(frame, data: bytes, fd=False, received=True):
        """
        Unpack envelope bytes into an existing frame object.

        :param frame: ZcanFrame object to populate
        :param data: raw envelope bytes
        :param fd: canfd_frame layout
        :param received: receive envelope (timestamp) rather than transmit envelope
        """
        frame_size = ZCAN_FRAME_SIZE_FD if fd else ZCAN_FRAME_SIZE
        expected = ZcanFrame.size(fd, received)
        if len(data) < expected:
            raise ValueError(
                "envelope too short: %d bytes, expected %d" % (len(data), expected)
            )
        (
            frame.can_id,
            frame.length,
            frame.flags,
            frame.res0,
            frame.res1,
            frame.data,
        ) = unpack(_FRAME_FORMAT_FD if fd else _FRAME_FORMAT, data[:frame_size])
        frame.fd = fd
        if received:
            (frame.timestamp_us,) = unpack("<Q", data[frame_size:expected])
        else:
            (frame.transmit_type,) = unpack("<I", data[frame_size:expected])

    @classmethod
    def from_bytes(cls, data: bytes, fd=False, received=True):
        """
        Create a new frame from envelope bytes.

        :return: New ZcanFrame object
        """
        frame = cls(fd=fd)
        cls.unpack_into(frame, data, fd, received)
        return frame


def _pack_can_id(msg: CanMessage) -> int:
    mask = CAN_EFF_MASK if msg.is_extended else CAN_SFF_MASK
    if not 0 <= msg.id <= mask:
        raise ValueError(
            "CAN id 0x%X does not fit a %s frame"
            % (msg.id, "extended" if msg.is_extended else "standard")
        )
    can_id = msg.id
    if msg.is_extended:
        can_id |= CAN_EFF_FLAG
    if msg.is_remote:
        can_id |= CAN_RTR_FLAG
    return can_id


def _unpack_can_id(can_id: int) -> Tuple[int, bool, bool]:
    is_extended = bool(can_id & CAN_EFF_FLAG)
    is_remote = bool(can_id & CAN_RTR_FLAG)
    return can_id & (CAN_EFF_MASK if is_extended else CAN_SFF_MASK), is_extended, is_remote


def _check_payload(msg: CanMessage, capacity: int):
    if len(msg.data) > capacity:
        raise ValueError(
            "payload of %d bytes exceeds %s frame capacity of %d"
            % (len(msg.data), "CAN FD" if capacity == CANFD_MAX_DLEN else "CAN", capacity)
        )


def encode_can(msg: CanMessage, transmit_type=ZCAN_TRANSMIT_NORMAL, echo=False) -> ZcanFrame:
    """Encode a classic message into a transmit envelope."""
    _check_payload(msg, CAN_MAX_DLEN)
    flags = CanFlag(0)
    if echo:
        flags |= CanFlag.ECHO
    return ZcanFrame(
        _pack_can_id(msg),
        len(msg.data),
        int(flags),
        msg.data,
        fd=False,
        transmit_type=transmit_type,
    )


def encode_canfd(msg: CanFdMessage, transmit_type=ZCAN_TRANSMIT_NORMAL, echo=False) -> ZcanFrame:
    """Encode a CAN FD message into a transmit envelope."""
    _check_payload(msg, CANFD_MAX_DLEN)
    flags = CanfdFlag(0)
    if msg.brs:
        flags |= CanfdFlag.BRS
    if msg.esi:
        flags |= CanfdFlag.ESI
    if echo:
        flags |= CanfdFlag.ECHO
    return ZcanFrame(
        _pack_can_id(msg),
        len(msg.data),
        int(flags),
        msg.data,
        fd=True,
        transmit_type=transmit_type,
    )


def encode(msg: Message, transmit_type=ZCAN_TRANSMIT_NORMAL, echo=False) -> ZcanFrame:
    if msg.is_fd:
        return encode_canfd(msg, transmit_type, echo)
    return encode_can(msg, transmit_type, echo)


def apply_delay(frame: ZcanFrame, delay_ms: int, echo=False) -> ZcanFrame:
    """
    Turn an encoded frame into a delayed-queue frame.

    Sets DELAY_SEND (and ECHO when requested) on top of the bits already in
    the control byte and stores the delay low byte first in __res0/__res1.
    """
    if not 0 <= delay_ms <= 0xFFFF:
        raise ValueError("delay %r ms out of range 0..65535" % (delay_ms,))
    flag = CanfdFlag if frame.fd else CanFlag
    flags = flag(frame.flags) | flag.DELAY_SEND
    if echo:
        flags |= flag.ECHO
    frame.flags = int(flags)
    frame.res0 = delay_ms & 0xFF
    frame.res1 = (delay_ms >> 8) & 0xFF
    return frame


def decode_can(frame: ZcanFrame) -> CanMessage:
    """Decode a classic frame; a corrupt length is clamped to 8."""
    msg_id, is_extended, is_remote = _unpack_can_id(frame.can_id)
    length = min(frame.length, CAN_MAX_DLEN)
    return CanMessage(
        id=msg_id,
        data=bytes(frame.data[:length]),
        is_extended=is_extended,
        is_remote=is_remote,
        timestamp=frame.timestamp_us,
    )


def decode_canfd(frame: ZcanFrame) -> CanFdMessage:
    """Decode a CAN FD frame; transmit-only control bits are ignored."""
    msg_id, is_extended, is_remote = _unpack_can_id(frame.can_id)
    length = min(frame.length, CANFD_MAX_DLEN)
    return CanFdMessage(
        id=msg_id,
        data=bytes(frame.data[:length]),
        is_extended=is_extended,
        is_remote=is_remote,
        timestamp=frame.timestamp_us,
        brs=bool(frame.flags & CanfdFlag.BRS),
        esi=bool(frame.flags & CanfdFlag.ESI),
    )


def decode(frame: ZcanFrame) -> Message:
    if frame.fd:
        return decode_canfd(frame)
    return decode_can(frame)
