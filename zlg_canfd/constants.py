from enum import IntFlag

# ZLG device types
ZCAN_CANFDNET_200U_TCP = 48
ZCAN_CANFDWIFI_100U_TCP = 50

# Return status of the vendor library
ZCAN_STATUS_ERR = 0
ZCAN_STATUS_OK = 1
ZCAN_STATUS_ONLINE = 2
ZCAN_STATUS_OFFLINE = 3
ZCAN_STATUS_UNSUPPORTED = 4

INVALID_DEVICE_HANDLE = 0
INVALID_CHANNEL_HANDLE = 0

# Data types for GetReceiveNum and the "protocol" property
ZCAN_TYPE_CAN = 0
ZCAN_TYPE_CANFD = 1
ZCAN_TYPE_ALL_DATA = 2

# Transmit types
ZCAN_TRANSMIT_NORMAL = 0
ZCAN_TRANSMIT_SINGLE = 1

# Channel init config
ZCAN_CHANNEL_TYPE_CAN = 0
ZCAN_CHANNEL_TYPE_CANFD = 1
ZCAN_ACC_MASK_ALL = 0xFFFFFFFF

# TCP work mode ("work_mode" property)
TCP_CLIENT = 0
TCP_SERVER = 1

# Special address description flags for the CAN_ID
CAN_EFF_FLAG = 0x80000000  # EFF/SFF is set in the MSB
CAN_RTR_FLAG = 0x40000000  # remote transmission request
CAN_ERR_FLAG = 0x20000000  # error message frame

# Valid bits in CAN ID for frame formats
CAN_SFF_MASK = 0x000007FF  # standard frame format (SFF)
CAN_EFF_MASK = 0x1FFFFFFF  # extended frame format (EFF)

# CAN payload length
CAN_MAX_DLEN = 8

# CAN FD payload length
CANFD_MAX_DLEN = 64


class CanFlag(IntFlag):
    """Control bits of the classic frame ``__pad`` byte (transmit only)."""

    ECHO = 1 << 5
    DELAY_SEND = 1 << 7


class CanfdFlag(IntFlag):
    """Bits of the CAN FD frame ``flags`` byte.

    BRS and ESI are frame attributes; ECHO and DELAY_SEND share the byte
    as transmit-only control bits.
    """

    BRS = 1 << 0
    ESI = 1 << 1
    ECHO = 1 << 5
    DELAY_SEND = 1 << 7


# Property paths, formatted with the channel index (and list index where given)
PATH_IP = "{ch}/ip"
PATH_WORK_PORT = "{ch}/work_port"
PATH_WORK_MODE = "{ch}/work_mode"
PATH_TX_ECHO = "{ch}/set_device_tx_echo"
PATH_CANFD_EXP = "{ch}/canfd_exp"
PATH_PROTOCOL = "{ch}/protocol"
PATH_AUTO_SEND = "{ch}/auto_send"
PATH_APPLY_AUTO_SEND = "{ch}/apply_auto_send"
PATH_CLEAR_AUTO_SEND = "{ch}/clear_auto_send"
PATH_AUTO_SEND_CAN_COUNT = "{ch}/get_auto_send_can_count/1"
PATH_AUTO_SEND_CANFD_COUNT = "{ch}/get_auto_send_canfd_count/1"
PATH_AUTO_SEND_CAN_DATA = "{ch}/get_auto_send_can_data/{index}"
PATH_AUTO_SEND_CANFD_DATA = "{ch}/get_auto_send_canfd_data/{index}"
PATH_AVAILABLE_TX_COUNT = "{ch}/get_device_available_tx_count/1"
PATH_CLEAR_DELAY_QUEUE = "{ch}/clear_delay_send_queue"

# ZCAN error codes (ZCAN_CHANNEL_ERR_INFO.error_code)
ZCAN_ERROR_CAN_OVERFLOW = 0x0001
ZCAN_ERROR_CAN_ERRALARM = 0x0002
ZCAN_ERROR_CAN_PASSIVE = 0x0004
ZCAN_ERROR_CAN_LOSE = 0x0008
ZCAN_ERROR_CAN_BUSERR = 0x0010
ZCAN_ERROR_CAN_BUSOFF = 0x0020
ZCAN_ERROR_CAN_BUFFER_OVERFLOW = 0x0040
ZCAN_ERROR_DEVICEOPENED = 0x0100
ZCAN_ERROR_DEVICEOPEN = 0x0200
ZCAN_ERROR_DEVICENOTOPEN = 0x0400
ZCAN_ERROR_BUFFEROVERFLOW = 0x0800
ZCAN_ERROR_DEVICENOTEXIST = 0x1000
ZCAN_ERROR_LOADKERNELDLL = 0x2000
ZCAN_ERROR_CMDFAILED = 0x4000
ZCAN_ERROR_BUFFERCREATE = 0x8000
ZCAN_ERROR_CANETE_PORTOPENED = 0x00010000
ZCAN_ERROR_CANETE_INDEXUSED = 0x00020000
ZCAN_ERROR_REF_TYPE_ID = 0x00030001
ZCAN_ERROR_CREATE_SOCKET = 0x00030002
ZCAN_ERROR_OPEN_CONNECT = 0x00030003
ZCAN_ERROR_NO_STARTUP = 0x00030004
ZCAN_ERROR_NO_CONNECTED = 0x00030005
ZCAN_ERROR_SEND_PARTIAL = 0x00030006
ZCAN_ERROR_SEND_TOO_FAST = 0x00030007

ZCAN_ERROR_NAMES = {
    ZCAN_ERROR_CAN_OVERFLOW: "CAN overflow",
    ZCAN_ERROR_CAN_ERRALARM: "CAN error alarm",
    ZCAN_ERROR_CAN_PASSIVE: "CAN error passive",
    ZCAN_ERROR_CAN_LOSE: "CAN arbitration lost",
    ZCAN_ERROR_CAN_BUSERR: "CAN bus error",
    ZCAN_ERROR_CAN_BUSOFF: "CAN bus off",
    ZCAN_ERROR_CAN_BUFFER_OVERFLOW: "CAN buffer overflow",
    ZCAN_ERROR_DEVICEOPENED: "device already opened",
    ZCAN_ERROR_DEVICEOPEN: "failed to open device",
    ZCAN_ERROR_DEVICENOTOPEN: "device not open",
    ZCAN_ERROR_BUFFEROVERFLOW: "buffer overflow",
    ZCAN_ERROR_DEVICENOTEXIST: "device does not exist",
    ZCAN_ERROR_LOADKERNELDLL: "failed to load kernel driver",
    ZCAN_ERROR_CMDFAILED: "command failed",
    ZCAN_ERROR_BUFFERCREATE: "failed to create buffer",
    ZCAN_ERROR_CANETE_PORTOPENED: "CANETE port already opened",
    ZCAN_ERROR_CANETE_INDEXUSED: "CANETE index already used",
    ZCAN_ERROR_REF_TYPE_ID: "invalid reference type id",
    ZCAN_ERROR_CREATE_SOCKET: "failed to create socket",
    ZCAN_ERROR_OPEN_CONNECT: "failed to open connection",
    ZCAN_ERROR_NO_STARTUP: "not started",
    ZCAN_ERROR_NO_CONNECTED: "not connected",
    ZCAN_ERROR_SEND_PARTIAL: "partially sent",
    ZCAN_ERROR_SEND_TOO_FAST: "sending too fast",
}
