"""
Unit tests for the NetSDR message codec.

Covers header bit packing, the data-item length sentinel, decode failure
reporting and sample unpacking.
"""

import struct
import unittest

import numpy as np

from netsdrclient.common import MessageLengthError
from netsdrclient.messages import (
    decode_message,
    decode_samples,
    encode_control_message,
    encode_data_message,
)
from netsdrclient.models import ControlItemCode, MsgType


class TestEnums(unittest.TestCase):
    def test_control_item_codes_match_wire_values(self):
        self.assertEqual(ControlItemCode.NONE, 0)
        self.assertEqual(ControlItemCode.IQ_OUTPUT_DATA_SAMPLE_RATE, 0x00B8)
        self.assertEqual(ControlItemCode.RF_FILTER, 0x0044)
        self.assertEqual(ControlItemCode.AD_MODES, 0x008A)
        self.assertEqual(ControlItemCode.RECEIVER_STATE, 0x0018)
        self.assertEqual(ControlItemCode.RECEIVER_FREQUENCY, 0x0020)

    def test_data_types_start_at_data_item0(self):
        self.assertFalse(MsgType.ACK.is_data)
        self.assertFalse(MsgType.SET_CONTROL_ITEM.is_data)
        for msg_type in (MsgType.DATA_ITEM0, MsgType.DATA_ITEM1,
                         MsgType.DATA_ITEM2, MsgType.DATA_ITEM3):
            self.assertTrue(msg_type.is_data)


class TestEncodeControlMessage(unittest.TestCase):
    def test_header_code_and_parameters_layout(self):
        """Header word holds total length and type; code follows little-endian."""
        msg = encode_control_message(MsgType.SET_CONTROL_ITEM,
                                     ControlItemCode.RECEIVER_FREQUENCY,
                                     b"\x01\x02\x03")
        self.assertEqual(msg, b"\x07\x00" + b"\x20\x00" + b"\x01\x02\x03")

    def test_type_is_packed_into_top_three_bits(self):
        msg = encode_control_message(MsgType.CURRENT_CONTROL_ITEM,
                                     ControlItemCode.AD_MODES, b"\x00\x01")
        header = struct.unpack("<H", msg[:2])[0]
        self.assertEqual(header >> 13, MsgType.CURRENT_CONTROL_ITEM)
        self.assertEqual(header & 0x1FFF, len(msg))
        self.assertEqual(msg[:2], b"\x06\x20")

    def test_none_code_omits_code_field(self):
        msg = encode_control_message(MsgType.ACK, ControlItemCode.NONE, b"\xAA")
        self.assertEqual(msg, b"\x03\x60\xAA")

    def test_maximum_control_length_is_accepted(self):
        params = bytes(8191 - 4)
        msg = encode_control_message(MsgType.SET_CONTROL_ITEM,
                                     ControlItemCode.RECEIVER_STATE, params)
        self.assertEqual(len(msg), 8191)
        self.assertEqual(struct.unpack("<H", msg[:2])[0] & 0x1FFF, 8191)

    def test_oversized_control_message_raises(self):
        params = bytes(8191 - 4 + 1)
        with self.assertRaises(MessageLengthError):
            encode_control_message(MsgType.SET_CONTROL_ITEM,
                                   ControlItemCode.RECEIVER_STATE, params)

    def test_length_error_is_a_value_error(self):
        with self.assertRaises(ValueError):
            encode_control_message(MsgType.ACK, ControlItemCode.NONE, bytes(8190))

    def test_control_type_never_uses_sentinel(self):
        """Total length 8194 is only special for data items."""
        with self.assertRaises(MessageLengthError):
            encode_control_message(MsgType.SET_CONTROL_ITEM, ControlItemCode.NONE, bytes(8192))


class TestEncodeDataMessage(unittest.TestCase):
    def test_data_message_layout(self):
        msg = encode_data_message(MsgType.DATA_ITEM0, b"\x05\x00" + b"\x01\x02\x03\x04")
        self.assertEqual(msg[:2], b"\x08\x80")
        self.assertEqual(msg[2:], b"\x05\x00\x01\x02\x03\x04")

    def test_full_size_data_item_uses_zero_length_sentinel(self):
        msg = encode_data_message(MsgType.DATA_ITEM1, bytes(8192))
        self.assertEqual(len(msg), 8194)
        header = struct.unpack("<H", msg[:2])[0]
        self.assertEqual(header & 0x1FFF, 0)
        self.assertEqual(header >> 13, MsgType.DATA_ITEM1)

    def test_data_item_between_limits_raises(self):
        with self.assertRaises(MessageLengthError):
            encode_data_message(MsgType.DATA_ITEM0, bytes(8191))

    def test_data_item_above_sentinel_raises(self):
        with self.assertRaises(MessageLengthError):
            encode_data_message(MsgType.DATA_ITEM0, bytes(8193))


class TestDecodeMessage(unittest.TestCase):
    def test_control_round_trip(self):
        params = b"\x10\x20\x30\x40\x50"
        for msg_type in (MsgType.SET_CONTROL_ITEM, MsgType.CURRENT_CONTROL_ITEM,
                         MsgType.CONTROL_ITEM_RANGE, MsgType.ACK):
            for code in (ControlItemCode.RECEIVER_FREQUENCY,
                         ControlItemCode.IQ_OUTPUT_DATA_SAMPLE_RATE):
                decoded = decode_message(encode_control_message(msg_type, code, params))
                self.assertIsNotNone(decoded)
                self.assertEqual(decoded.msg_type, msg_type)
                self.assertEqual(decoded.item_code, code)
                self.assertEqual(decoded.sequence_number, 0)
                self.assertEqual(decoded.body, params)

    def test_data_round_trip(self):
        payload = bytes(range(16))
        decoded = decode_message(
            encode_data_message(MsgType.DATA_ITEM2, struct.pack("<H", 0xBEEF) + payload))
        self.assertEqual(decoded.msg_type, MsgType.DATA_ITEM2)
        self.assertEqual(decoded.item_code, ControlItemCode.NONE)
        self.assertEqual(decoded.sequence_number, 0xBEEF)
        self.assertEqual(decoded.body, payload)

    def test_sentinel_length_decodes_to_full_size(self):
        payload = bytes([0x5A]) * 8190
        decoded = decode_message(
            encode_data_message(MsgType.DATA_ITEM0, b"\x01\x00" + payload))
        self.assertIsNotNone(decoded)
        self.assertEqual(decoded.sequence_number, 1)
        self.assertEqual(len(decoded.body), 8190)

    def test_empty_body(self):
        decoded = decode_message(encode_control_message(
            MsgType.CURRENT_CONTROL_ITEM, ControlItemCode.RECEIVER_STATE, b""))
        self.assertEqual(decoded.body, b"")

    def test_truncated_frame_fails(self):
        msg = encode_control_message(MsgType.SET_CONTROL_ITEM,
                                     ControlItemCode.RF_FILTER, b"\x01\x02")
        self.assertIsNone(decode_message(msg[:-1]))

    def test_frame_longer_than_header_fails(self):
        msg = encode_data_message(MsgType.DATA_ITEM0, b"\x01\x00\x02")
        self.assertIsNone(decode_message(msg + b"\x00"))

    def test_unknown_control_code_fails(self):
        self.assertIsNone(decode_message(b"\x04\x00\xFF\xFF"))

    def test_missing_header_fails(self):
        self.assertIsNone(decode_message(b""))
        self.assertIsNone(decode_message(b"\x02"))
        self.assertIsNone(decode_message(None))

    def test_control_frame_without_code_fails(self):
        self.assertIsNone(decode_message(b"\x02\x00"))

    def test_data_frame_without_sequence_number_fails(self):
        self.assertIsNone(decode_message(b"\x02\x80"))
        self.assertIsNone(decode_message(b"\x03\x80\x01"))

    def test_zero_length_control_header_fails(self):
        self.assertIsNone(decode_message(b"\x00\x00"))

    def test_body_does_not_alias_input(self):
        buf = bytearray(encode_data_message(MsgType.DATA_ITEM3, b"\x07\x00\x11\x22"))
        decoded = decode_message(buf)
        buf[-1] = 0x99
        self.assertEqual(decoded.body, b"\x11\x22")


class TestDecodeSamples(unittest.TestCase):
    def test_sixteen_bit_samples(self):
        self.assertEqual(list(decode_samples(16, b"\x01\x00\x02\x00")), [1, 2])

    def test_invalid_widths_raise_immediately(self):
        for width in (0, 4, 12, 40, 64):
            with self.assertRaises(ValueError):
                decode_samples(width, b"\x00" * 8)

    def test_trailing_partial_sample_is_dropped(self):
        self.assertEqual(list(decode_samples(16, b"\x01")), [])
        self.assertEqual(list(decode_samples(16, b"\x01\x00\x02\x00\x03")), [1, 2])
        self.assertEqual(len(decode_samples(24, bytes(10))), 3)

    def test_narrow_samples_are_zero_padded(self):
        """Negative 8/16/24-bit values are not sign extended."""
        self.assertEqual(list(decode_samples(8, b"\xFF\x80")), [255, 128])
        self.assertEqual(list(decode_samples(16, b"\xFF\xFF")), [65535])
        self.assertEqual(list(decode_samples(24, b"\xFF\xFF\xFF")), [0xFFFFFF])

    def test_thirty_two_bit_samples_are_signed(self):
        body = struct.pack("<ii", -1, 123456)
        self.assertEqual(list(decode_samples(32, body)), [-1, 123456])

    def test_sequence_is_restartable(self):
        samples = decode_samples(8, b"\x01\x02\x03")
        self.assertEqual(list(samples), [1, 2, 3])
        self.assertEqual(list(samples), [1, 2, 3])

    def test_samples_are_python_ints(self):
        first = next(iter(decode_samples(16, b"\x01\x00")))
        self.assertIsInstance(first, int)

    def test_to_array(self):
        arr = decode_samples(24, b"\x01\x00\x00\x00\x01\x00").to_array()
        self.assertEqual(arr.dtype, np.int32)
        np.testing.assert_array_equal(arr, np.array([1, 256], dtype=np.int32))


if __name__ == '__main__':
    unittest.main()
