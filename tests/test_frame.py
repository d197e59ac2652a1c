import pytest

from zlg_canfd.constants import (
    CAN_EFF_FLAG,
    CAN_RTR_FLAG,
    ZCAN_TRANSMIT_NORMAL,
    ZCAN_TRANSMIT_SINGLE,
    CanfdFlag,
    CanFlag,
)
from zlg_canfd.zlg_canfd_frame import (
    CanFdMessage,
    CanMessage,
    ZcanFrame,
    apply_delay,
    decode,
    decode_can,
    decode_canfd,
    encode,
    encode_can,
    encode_canfd,
)


def test_flag_values() -> None:
    assert CAN_EFF_FLAG == 0x80000000
    assert CAN_RTR_FLAG == 0x40000000
    assert CanfdFlag.BRS == 0x01
    assert CanfdFlag.ESI == 0x02
    assert CanFlag.ECHO == CanfdFlag.ECHO == 0x20
    assert CanFlag.DELAY_SEND == CanfdFlag.DELAY_SEND == 0x80


def test_envelope_sizes() -> None:
    assert len(encode_can(CanMessage(0x100)).pack()) == 20
    assert len(encode_canfd(CanFdMessage(0x100)).pack()) == 76
    assert len(ZcanFrame(fd=False).pack_received()) == 24
    assert len(ZcanFrame(fd=True).pack_received()) == 80
    assert ZcanFrame.size(fd=False) == 20
    assert ZcanFrame.size(fd=True, received=True) == 80


def test_classic_layout() -> None:
    frame = encode_can(CanMessage(0x123, bytes([0x11, 0x22, 0x33])), echo=True)
    raw = frame.pack()
    assert raw[0:4] == bytes([0x23, 0x01, 0x00, 0x00])
    assert raw[4] == 3
    assert raw[5] == CanFlag.ECHO
    assert raw[6:8] == b"\x00\x00"
    assert raw[8:16] == bytes([0x11, 0x22, 0x33, 0, 0, 0, 0, 0])
    assert raw[16:20] == ZCAN_TRANSMIT_NORMAL.to_bytes(4, "little")


def test_fd_layout() -> None:
    msg = CanFdMessage(0x200, bytes(range(12)), brs=True, esi=True)
    raw = encode_canfd(msg, ZCAN_TRANSMIT_SINGLE).pack()
    assert raw[4] == 12
    assert raw[5] == CanfdFlag.BRS | CanfdFlag.ESI
    assert raw[8:20] == bytes(range(12))
    assert raw[20:72] == bytes(52)
    assert raw[72:76] == b"\x01\x00\x00\x00"


def test_extended_remote_id_bits() -> None:
    frame = encode_can(CanMessage(0x12345678, is_extended=True, is_remote=True))
    assert frame.can_id == 0x12345678 | CAN_EFF_FLAG | CAN_RTR_FLAG
    assert frame.pack()[0:4] == bytes([0x78, 0x56, 0x34, 0xD2])


@pytest.mark.parametrize(
    "msg",
    [
        CanMessage(0x7FF, b"\x01\x02"),
        CanMessage(0x12345678, bytes(8), is_extended=True),
        CanMessage(0x100, is_remote=True),
        CanFdMessage(0x1FFFFFFF, bytes(range(64)), is_extended=True, brs=True),
        CanFdMessage(0x55, bytes(range(20)), esi=True),
    ],
)
def test_round_trip(msg: CanMessage) -> None:
    assert decode(encode(msg)) == msg
    frame = ZcanFrame.from_bytes(encode(msg).pack(), fd=msg.is_fd, received=False)
    assert decode(frame) == msg


def test_extended_id_survives_bytes() -> None:
    raw = ZcanFrame(0x12345678 | CAN_EFF_FLAG, 0, timestamp_us=5).pack_received()
    msg = decode_can(ZcanFrame.from_bytes(raw))
    assert msg.id == 0x12345678
    assert msg.is_extended
    assert not msg.is_remote
    assert msg.timestamp == 5


def test_standard_id_is_masked_on_decode() -> None:
    msg = decode_can(ZcanFrame(0x0000F123, 0))
    assert msg.id == 0x123
    assert not msg.is_extended


def test_payload_over_capacity_is_rejected() -> None:
    with pytest.raises(ValueError):
        encode_can(CanMessage(0x1, bytes(9)))
    with pytest.raises(ValueError):
        encode_canfd(CanFdMessage(0x1, bytes(65)))


def test_id_out_of_range_is_rejected() -> None:
    with pytest.raises(ValueError):
        encode_can(CanMessage(0x800))
    with pytest.raises(ValueError):
        encode_canfd(CanFdMessage(0x20000000, is_extended=True))
    with pytest.raises(ValueError):
        encode_can(CanMessage(-1))


def test_decode_clamps_corrupt_length() -> None:
    frame = ZcanFrame(0x10, 0, data=bytes(range(8)))
    frame.length = 200
    assert decode_can(frame).data == bytes(range(8))

    fd_frame = ZcanFrame(0x10, 0, data=bytes(range(64)), fd=True)
    fd_frame.length = 255
    assert decode_canfd(fd_frame).data == bytes(range(64))


def test_fd_decode_ignores_control_bits() -> None:
    flags = CanfdFlag.BRS | CanfdFlag.ECHO | CanfdFlag.DELAY_SEND
    msg = decode_canfd(ZcanFrame(0x10, 1, int(flags), b"\xAA", fd=True))
    assert msg.brs
    assert not msg.esi
    assert msg.data == b"\xAA"


def test_classic_delay_overlay() -> None:
    frame = apply_delay(encode_can(CanMessage(0x100, b"\x01")), 300, echo=True)
    raw = frame.pack()
    assert raw[5] == CanFlag.DELAY_SEND | CanFlag.ECHO
    assert raw[6:8] == bytes([0x2C, 0x01])
    assert frame.delay == 300


def test_fd_delay_overlay_keeps_existing_bits() -> None:
    frame = encode_canfd(CanFdMessage(0x100, b"\x01", brs=True, esi=True))
    apply_delay(frame, 0xABCD)
    assert frame.flags == CanfdFlag.BRS | CanfdFlag.ESI | CanfdFlag.DELAY_SEND
    assert (frame.res0, frame.res1) == (0xCD, 0xAB)


def test_delay_out_of_range() -> None:
    frame = encode_can(CanMessage(0x100))
    with pytest.raises(ValueError):
        apply_delay(frame, 0x10000)
    with pytest.raises(ValueError):
        apply_delay(frame, -1)


def test_short_envelope_is_rejected() -> None:
    with pytest.raises(ValueError):
        ZcanFrame.from_bytes(bytes(16))


def test_message_kind_is_explicit() -> None:
    assert not CanMessage(0x1).is_fd
    assert CanFdMessage(0x1, esi=False).is_fd
    assert CanMessage(0x1) != CanFdMessage(0x1)
    assert CanMessage(0x1, [1, 2]).data == b"\x01\x02"


@pytest.mark.parametrize("payload", [3, "abc"])
def test_payload_must_be_bytes(payload) -> None:
    with pytest.raises(TypeError):
        CanMessage(0x1, payload)
    with pytest.raises(TypeError):
        CanFdMessage(0x1, payload)


def test_fd_length_is_sent_literally() -> None:
    raw = encode_canfd(CanFdMessage(0x1, bytes(10))).pack()
    assert raw[4] == 10
    assert decode_canfd(ZcanFrame.from_bytes(raw, fd=True, received=False)).data == bytes(10)


def test_str() -> None:
    assert str(CanMessage(0x123, b"\x01\xAB")) == "     123   [2]  01 AB"
    assert str(CanFdMessage(0x7, b"", brs=True)) == "       7 FD BRS   [0]  "
    assert str(CanMessage(0x5, is_remote=True)).endswith("remote request")
