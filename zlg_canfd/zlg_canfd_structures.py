from struct import pack, unpack

from .constants import ZCAN_ACC_MASK_ALL, ZCAN_CHANNEL_TYPE_CANFD
from .errors import UnsupportedValueError
from .zlg_canfd_frame import ZCAN_TRANSMIT_SIZE, ZCAN_TRANSMIT_SIZE_FD, ZcanFrame


class ChannelInitConfig:
    """
    ZCAN_CHANNEL_INIT_CONFIG with the CAN FD member of the union (32 bytes).

    Network devices ignore the timing fields; bit rates are configured on the
    device itself.
    """

    def __init__(
        self,
        can_type=ZCAN_CHANNEL_TYPE_CANFD,
        acc_code=0,
        acc_mask=ZCAN_ACC_MASK_ALL,
        abit_timing=0,
        dbit_timing=0,
        brp=0,
        filter=0,
        mode=0,
    ):
        self.can_type = can_type
        self.acc_code = acc_code
        self.acc_mask = acc_mask
        self.abit_timing = abit_timing
        self.dbit_timing = dbit_timing
        self.brp = brp
        self.filter = filter
        self.mode = mode

    def __str__(self):
        return (
            "CAN type: %u\r\n"
            "Acceptance code: 0x%08x\r\n"
            "Acceptance mask: 0x%08x\r\n"
            "Filter: %u\r\n"
            "Mode: %u\r\n"
            % (self.can_type, self.acc_code, self.acc_mask, self.filter, self.mode)
        )

    def pack(self):
        return pack(
            "<6I2BHI",
            self.can_type,
            self.acc_code,
            self.acc_mask,
            self.abit_timing,
            self.dbit_timing,
            self.brp,
            self.filter,
            self.mode,
            0,
            0,
        )

    @staticmethod
    def unpack(data: bytes) -> "ChannelInitConfig":
        fields = unpack("<6I2BHI", data)
        return ChannelInitConfig(*fields[:8])


class AutoTransmitObj:
    """
    ZCAN_AUTO_TRANSMIT_OBJ / ZCANFD_AUTO_TRANSMIT_OBJ.

    Field order enable, index, interval, envelope is fixed by the library:
    u16 enable @0, u16 index @2, u32 interval (ms) @4, transmit envelope @8.
    """

    HEADER_SIZE = 8

    def __init__(self, enable: bool, index: int, interval: int, frame: ZcanFrame):
        self.enable = enable
        self.index = index
        self.interval = interval
        self.frame = frame

    @staticmethod
    def size(fd=False) -> int:
        return AutoTransmitObj.HEADER_SIZE + (
            ZCAN_TRANSMIT_SIZE_FD if fd else ZCAN_TRANSMIT_SIZE
        )

    def __str__(self):
        return "Enable: %u\r\nIndex: %u\r\nInterval: %u ms\r\nFrame: %r\r\n" % (
            self.enable,
            self.index,
            self.interval,
            self.frame,
        )

    def pack(self):
        if not 0 <= self.index <= 0xFFFF:
            raise ValueError("auto-send index %r out of range" % (self.index,))
        if not 0 <= self.interval <= 0xFFFFFFFF:
            raise ValueError("auto-send interval %r out of range" % (self.interval,))
        return (
            pack("<HHI", 1 if self.enable else 0, self.index, self.interval)
            + self.frame.pack()
        )

    @staticmethod
    def unpack(data: bytes, fd=False) -> "AutoTransmitObj":
        if len(data) < AutoTransmitObj.size(fd):
            raise ValueError(
                "auto-send object too short: %d bytes, expected %d"
                % (len(data), AutoTransmitObj.size(fd))
            )
        enable, index, interval = unpack("<HHI", data[: AutoTransmitObj.HEADER_SIZE])
        frame = ZcanFrame.from_bytes(
            data[AutoTransmitObj.HEADER_SIZE : AutoTransmitObj.size(fd)],
            fd=fd,
            received=False,
        )
        return AutoTransmitObj(bool(enable), index, interval, frame)


class ChannelErrorInfo:
    """ZCAN_CHANNEL_ERR_INFO (8 bytes)."""

    def __init__(self, error_code, passive_err_data, ar_lost_err_data):
        self.error_code = error_code
        self.passive_err_data = passive_err_data
        self.ar_lost_err_data = ar_lost_err_data

    def __str__(self):
        return "Error code: 0x%08x\r\nPassive: %s\r\nArbitration lost: 0x%02x\r\n" % (
            self.error_code,
            " ".join("{:02X}".format(b) for b in self.passive_err_data),
            self.ar_lost_err_data,
        )

    @staticmethod
    def unpack(data: bytes) -> "ChannelErrorInfo":
        error_code, passive, ar_lost = unpack("<I3sB", data)
        return ChannelErrorInfo(error_code, passive, ar_lost)


def encode_property_value(value) -> bytes:
    """
    Encode a value for ZCAN_SetValue.

    Strings are sent NUL-terminated, integers as u32, structures through
    their ``pack()`` method.
    """
    if isinstance(value, str):
        return value.encode("utf-8") + b"\0"
    if isinstance(value, bool):
        raise UnsupportedValueError(value)
    if isinstance(value, int):
        if not 0 <= value <= 0xFFFFFFFF:
            raise ValueError("property value 0x%x does not fit in 32 bits" % value)
        return pack("<I", value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if callable(getattr(value, "pack", None)):
        return value.pack()
    raise UnsupportedValueError(value)
