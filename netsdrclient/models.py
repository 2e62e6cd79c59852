"""Data structures for NetSDR messages and connection settings."""

import os
from dataclasses import dataclass
from enum import Enum, IntEnum

from .common import DEFAULT_HOST, NETSDR_TCP_PORT, NETSDR_UDP_PORT

class MsgType(IntEnum):
    """3-bit message type carried in the top bits of the header word."""
    SET_CONTROL_ITEM     = 0
    CURRENT_CONTROL_ITEM = 1
    CONTROL_ITEM_RANGE   = 2
    ACK                  = 3
    DATA_ITEM0           = 4
    DATA_ITEM1           = 5
    DATA_ITEM2           = 6
    DATA_ITEM3           = 7

    @property
    def is_data(self) -> bool:
        return self >= MsgType.DATA_ITEM0

class ControlItemCode(IntEnum):
    NONE                       = 0x0000   # no code field on the wire
    IQ_OUTPUT_DATA_SAMPLE_RATE = 0x00B8
    RF_FILTER                  = 0x0044
    AD_MODES                   = 0x008A
    RECEIVER_STATE             = 0x0018
    RECEIVER_FREQUENCY         = 0x0020

class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING   = "connecting"
    CONNECTED    = "connected"

@dataclass(frozen=True)
class DecodedMessage:
    """One frame translated back into its fields."""
    msg_type:        MsgType
    item_code:       ControlItemCode
    sequence_number: int        # uint16, 0 for control items
    body:            bytes

@dataclass
class NetSdrEndpoint:
    host:     str = DEFAULT_HOST
    tcp_port: int = NETSDR_TCP_PORT
    udp_port: int = NETSDR_UDP_PORT

    @classmethod
    def from_env(cls) -> "NetSdrEndpoint":
        return cls(
            host=os.getenv("NETSDR_HOST", DEFAULT_HOST),
            tcp_port=int(os.getenv("NETSDR_TCP_PORT", str(NETSDR_TCP_PORT))),
            udp_port=int(os.getenv("NETSDR_UDP_PORT", str(NETSDR_UDP_PORT))),
        )
