"""NetSDR client package: wire codec plus TCP control and UDP data channels."""

from .common import (
	DEFAULT_HOST,
	NETSDR_TCP_PORT,
	NETSDR_UDP_PORT,
	MAX_MESSAGE_LENGTH,
	MAX_DATA_ITEM_MESSAGE_LENGTH,
	CancellationScope,
	EventHook,
	MessageLengthError,
	NetSdrError,
	NotConnectedError,
	OperationCancelledError,
	setup_logging,
	_pick_udp_listen_port,
)
from .models import ConnectionState, ControlItemCode, DecodedMessage, MsgType, NetSdrEndpoint
from .messages import (
	SampleSequence,
	decode_message,
	decode_samples,
	encode_control_message,
	encode_data_message,
)
from .transport import AsyncioDatagramSocket, AsyncioTcpTransport
from .tcp_client import NetSdrTcpClient
from .udp_client import NetSdrUdpListener, Sha256Adapter
from .echo_server import ClientHandler, EchoServer, UdpTimedSender

__all__ = [
	"DEFAULT_HOST",
	"NETSDR_TCP_PORT",
	"NETSDR_UDP_PORT",
	"MAX_MESSAGE_LENGTH",
	"MAX_DATA_ITEM_MESSAGE_LENGTH",
	"CancellationScope",
	"EventHook",
	"MessageLengthError",
	"NetSdrError",
	"NotConnectedError",
	"OperationCancelledError",
	"setup_logging",
	"_pick_udp_listen_port",
	"ConnectionState",
	"ControlItemCode",
	"DecodedMessage",
	"MsgType",
	"NetSdrEndpoint",
	"SampleSequence",
	"decode_message",
	"decode_samples",
	"encode_control_message",
	"encode_data_message",
	"AsyncioDatagramSocket",
	"AsyncioTcpTransport",
	"NetSdrTcpClient",
	"NetSdrUdpListener",
	"Sha256Adapter",
	"ClientHandler",
	"EchoServer",
	"UdpTimedSender",
]
