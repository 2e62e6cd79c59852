"""NetSDR wire-protocol codec: frame encoding, decoding and sample unpacking."""

import struct
from typing import Iterator, Optional, Union

import numpy as np

from .common import (
    MAX_DATA_ITEM_MESSAGE_LENGTH,
    MAX_MESSAGE_LENGTH,
    MSG_CONTROL_ITEM_LENGTH,
    MSG_HEADER_LENGTH,
    MSG_SEQUENCE_NUMBER_LENGTH,
    MessageLengthError,
)
from .models import ControlItemCode, DecodedMessage, MsgType

_CONTROL_ITEM_CODES = frozenset(int(code) for code in ControlItemCode)

BytesLike = Union[bytes, bytearray, memoryview]

def encode_control_message(msg_type: MsgType, item_code: ControlItemCode,
                           parameters: BytesLike) -> bytes:
    """
    Frame a control item message.

    ControlItemCode.NONE leaves the code field out entirely, which is how
    data items are framed (see encode_data_message).
    """
    code_bytes = b""
    if item_code != ControlItemCode.NONE:
        code_bytes = struct.pack("<H", int(item_code))

    header = _get_header(MsgType(msg_type), len(code_bytes) + len(parameters))
    return header + code_bytes + bytes(parameters)

def encode_data_message(msg_type: MsgType, parameters: BytesLike) -> bytes:
    """Frame a data item; `parameters` must already start with the 2-byte sequence number."""
    return encode_control_message(msg_type, ControlItemCode.NONE, parameters)

def decode_message(msg: Optional[BytesLike]) -> Optional[DecodedMessage]:
    """
    Translate one complete frame.
    Returns None for anything malformed: short input, a length mismatch
    against the header, a missing code/sequence field or an unknown
    control item code.
    """
    if msg is None or len(msg) < MSG_HEADER_LENGTH:
        return None
    data = bytes(msg)

    msg_type, total_length = _translate_header(data[:MSG_HEADER_LENGTH])
    if len(data) != total_length:
        return None

    offset    = MSG_HEADER_LENGTH
    remaining = total_length - MSG_HEADER_LENGTH

    item_code = ControlItemCode.NONE
    sequence_number = 0

    if not msg_type.is_data:
        if remaining < MSG_CONTROL_ITEM_LENGTH:
            return None
        value = struct.unpack_from("<H", data, offset)[0]
        if value not in _CONTROL_ITEM_CODES:
            return None
        item_code = ControlItemCode(value)
        offset    += MSG_CONTROL_ITEM_LENGTH
        remaining -= MSG_CONTROL_ITEM_LENGTH
    else:
        if remaining < MSG_SEQUENCE_NUMBER_LENGTH:
            return None
        sequence_number = struct.unpack_from("<H", data, offset)[0]
        offset    += MSG_SEQUENCE_NUMBER_LENGTH
        remaining -= MSG_SEQUENCE_NUMBER_LENGTH

    return DecodedMessage(
        msg_type=msg_type,
        item_code=item_code,
        sequence_number=sequence_number,
        body=data[offset:offset + remaining],
    )

class SampleSequence:
    """
    Samples unpacked from a data item body. Nothing is decoded until the
    sequence is iterated, and it can be iterated any number of times.

    Each sample is zero padded to 32 bits rather than sign extended, so a
    negative 8/16/24-bit sample comes back as a positive int. Consumers
    rely on this exact behaviour; do not change it here.
    """

    def __init__(self, sample_size: int, body: BytesLike):
        sample_bytes = sample_size // 8
        if sample_size % 8 != 0 or not 1 <= sample_bytes <= 4:
            raise ValueError(
                f"Sample size must be a multiple of 8 between 8 and 32 bits, got {sample_size}")
        self.sample_size  = sample_size
        self._sample_bytes = sample_bytes
        self._body = bytes(body)

    def __len__(self) -> int:
        # Trailing partial sample is dropped
        return len(self._body) // self._sample_bytes

    def __iter__(self) -> Iterator[int]:
        return iter(self.to_array().tolist())

    def __repr__(self) -> str:
        return f"SampleSequence(sample_size={self.sample_size}, count={len(self)})"

    def to_array(self) -> np.ndarray:
        """Decode all complete samples into a little-endian int32 array."""
        n_samples = len(self)
        raw = np.frombuffer(self._body[:n_samples * self._sample_bytes], dtype=np.uint8)
        padded = np.zeros((n_samples, 4), dtype=np.uint8)
        padded[:, :self._sample_bytes] = raw.reshape(n_samples, self._sample_bytes)
        return padded.view("<i4").reshape(n_samples).astype(np.int32)

def decode_samples(sample_size: int, body: BytesLike) -> SampleSequence:
    """Unpack `sample_size`-bit samples from a data item body. Raises ValueError on a bad width."""
    return SampleSequence(sample_size, body)

def _get_header(msg_type: MsgType, msg_length: int) -> bytes:
    # msg_length covers code/sequence + parameters, not the header itself
    length_with_header = msg_length + MSG_HEADER_LENGTH

    # A full-size data item does not fit in 13 bits; it goes out as 0
    if msg_type.is_data and length_with_header == MAX_DATA_ITEM_MESSAGE_LENGTH:
        length_with_header = 0

    if msg_length < 0 or length_with_header > MAX_MESSAGE_LENGTH:
        raise MessageLengthError(
            f"Message length {msg_length + MSG_HEADER_LENGTH} exceeds allowed value "
            f"{MAX_MESSAGE_LENGTH}")

    return struct.pack("<H", length_with_header | (int(msg_type) << 13))

def _translate_header(header: bytes) -> tuple[MsgType, int]:
    """Return (type, total frame length including header)."""
    word     = struct.unpack("<H", header)[0]
    msg_type = MsgType(word >> 13)
    length   = word & 0x1FFF

    if msg_type.is_data and length == 0:
        length = MAX_DATA_ITEM_MESSAGE_LENGTH

    return msg_type, length
