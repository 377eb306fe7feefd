# Copyright 2026 The Pigweed Authors
#
# Licensed under the Apache License, Version 2.0 (the "License"); you may not
# use this file except in compliance with the License. You may obtain a copy of
# the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
# WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied. See the
# License for the specific language governing permissions and limitations under
# the License.
"""Protobuf wire format streams used by generated builder classes.

Generated message classes serialize themselves through a CodedOutputStream and
builders parse from a CodedInputStream. Sizes are computed with the
compute_*_size functions, which mirror the stream's write methods exactly so
that a message's serialized_size() always matches the length of its encoding.
"""

import enum
import math
import struct
from typing import Any, Callable, Iterable, Protocol, TypeVar

T = TypeVar('T')  # pylint: disable=invalid-name

# Maximum nesting of embedded messages and groups accepted while decoding.
RECURSION_LIMIT = 100

_MAX_VARINT_BYTES = 10
_UINT32_MASK = (1 << 32) - 1
_UINT64_MASK = (1 << 64) - 1
_FLOAT32_MAX = struct.unpack('<f', b'\xff\xff\x7f\x7f')[0]


class WireType(enum.IntEnum):
    """The wire type stored in the low three bits of a field tag."""

    VARINT = 0
    FIXED64 = 1
    LENGTH_DELIMITED = 2
    START_GROUP = 3
    END_GROUP = 4
    FIXED32 = 5


class DecodeError(Exception):
    """Serialized protobuf data is truncated or otherwise malformed."""


class _Encodable(Protocol):
    def serialized_size(self) -> int:
        ...

    def write_to(self, stream: 'CodedOutputStream') -> None:
        ...


class _Decodable(Protocol):
    def merge_from_stream(self, stream: 'CodedInputStream') -> Any:
        ...


def make_tag(field_number: int, wire_type: int) -> int:
    return (field_number << 3) | wire_type


def tag_field_number(tag: int) -> int:
    return tag >> 3


def tag_wire_type(tag: int) -> int:
    return tag & 0x7


def zigzag_encode(value: int) -> int:
    """Maps a signed integer to an unsigned one with zig-zag encoding."""
    if value < 0:
        return ((value ^ -1) << 1) | 1
    return value << 1


def zigzag_decode(value: int) -> int:
    """Inverse of zigzag_encode()."""
    return (value >> 1) ^ -(value & 1)


def _to_signed(value: int, bits: int) -> int:
    if value >= 1 << (bits - 1):
        return value - (1 << bits)
    return value


#
# Size computation. Each compute_<type>_size function returns the encoded size
# of a field including its tag; the _no_tag variants omit the tag and are used
# for packed repeated fields.
#


def varint_size(value: int) -> int:
    """Returns the number of bytes needed to encode an unsigned varint."""
    if value < 0:
        raise ValueError('Encoded varint must be positive')
    return max(1, (value.bit_length() + 6) // 7)


def tag_size(field_number: int) -> int:
    return varint_size(make_tag(field_number, 0))


def compute_int32_size_no_tag(value: int) -> int:
    # Negative values are sign-extended to 64 bits, taking 10 bytes.
    return varint_size(value & _UINT64_MASK)


def compute_int64_size_no_tag(value: int) -> int:
    return varint_size(value & _UINT64_MASK)


def compute_uint32_size_no_tag(value: int) -> int:
    return varint_size(value)


def compute_uint64_size_no_tag(value: int) -> int:
    return varint_size(value)


def compute_sint32_size_no_tag(value: int) -> int:
    return varint_size(zigzag_encode(value))


def compute_sint64_size_no_tag(value: int) -> int:
    return varint_size(zigzag_encode(value))


def compute_bool_size_no_tag(unused_value: bool) -> int:
    return 1


def compute_enum_size_no_tag(value: int) -> int:
    return compute_int32_size_no_tag(value)


def compute_fixed32_size_no_tag(unused_value: int) -> int:
    return 4


def compute_sfixed32_size_no_tag(unused_value: int) -> int:
    return 4


def compute_float_size_no_tag(unused_value: float) -> int:
    return 4


def compute_fixed64_size_no_tag(unused_value: int) -> int:
    return 8


def compute_sfixed64_size_no_tag(unused_value: int) -> int:
    return 8


def compute_double_size_no_tag(unused_value: float) -> int:
    return 8


def compute_bytes_size_no_tag(value: bytes) -> int:
    return varint_size(len(value)) + len(value)


def compute_string_size_no_tag(value: str) -> int:
    return compute_bytes_size_no_tag(value.encode('utf-8'))


def compute_int32_size(field_number: int, value: int) -> int:
    return tag_size(field_number) + compute_int32_size_no_tag(value)


def compute_int64_size(field_number: int, value: int) -> int:
    return tag_size(field_number) + compute_int64_size_no_tag(value)


def compute_uint32_size(field_number: int, value: int) -> int:
    return tag_size(field_number) + compute_uint32_size_no_tag(value)


def compute_uint64_size(field_number: int, value: int) -> int:
    return tag_size(field_number) + compute_uint64_size_no_tag(value)


def compute_sint32_size(field_number: int, value: int) -> int:
    return tag_size(field_number) + compute_sint32_size_no_tag(value)


def compute_sint64_size(field_number: int, value: int) -> int:
    return tag_size(field_number) + compute_sint64_size_no_tag(value)


def compute_bool_size(field_number: int, value: bool) -> int:
    return tag_size(field_number) + compute_bool_size_no_tag(value)


def compute_enum_size(field_number: int, value: int) -> int:
    return tag_size(field_number) + compute_enum_size_no_tag(value)


def compute_fixed32_size(field_number: int, value: int) -> int:
    return tag_size(field_number) + compute_fixed32_size_no_tag(value)


def compute_sfixed32_size(field_number: int, value: int) -> int:
    return tag_size(field_number) + compute_sfixed32_size_no_tag(value)


def compute_float_size(field_number: int, value: float) -> int:
    return tag_size(field_number) + compute_float_size_no_tag(value)


def compute_fixed64_size(field_number: int, value: int) -> int:
    return tag_size(field_number) + compute_fixed64_size_no_tag(value)


def compute_sfixed64_size(field_number: int, value: int) -> int:
    return tag_size(field_number) + compute_sfixed64_size_no_tag(value)


def compute_double_size(field_number: int, value: float) -> int:
    return tag_size(field_number) + compute_double_size_no_tag(value)


def compute_string_size(field_number: int, value: str) -> int:
    return tag_size(field_number) + compute_string_size_no_tag(value)


def compute_bytes_size(field_number: int, value: bytes) -> int:
    return tag_size(field_number) + compute_bytes_size_no_tag(value)


def compute_message_size_no_tag(message: _Encodable) -> int:
    size = message.serialized_size()
    return varint_size(size) + size


def compute_message_size(field_number: int, message: _Encodable) -> int:
    return tag_size(field_number) + compute_message_size_no_tag(message)


def compute_group_size(field_number: int, message: _Encodable) -> int:
    # A group is bracketed by a START_GROUP and an END_GROUP tag.
    return 2 * tag_size(field_number) + message.serialized_size()


def compute_packed_size(
    field_number: int,
    values: Iterable[T],
    size_no_tag: Callable[[T], int],
) -> int:
    """Returns the size of a packed repeated field; 0 if it has no values."""
    data_size = sum(size_no_tag(value) for value in values)
    if not data_size:
        return 0
    return tag_size(field_number) + varint_size(data_size) + data_size


class CodedOutputStream:
    """Accumulates the wire encoding of a message."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def getvalue(self) -> bytes:
        return bytes(self._buffer)

    def write_raw_bytes(self, data: bytes) -> None:
        self._buffer += data

    def write_varint(self, value: int) -> None:
        if value < 0:
            raise ValueError('Encoded varint must be positive')

        while value > 0x7F:
            self._buffer.append((value & 0x7F) | 0x80)
            value >>= 7
        self._buffer.append(value)

    def write_tag(self, field_number: int, wire_type: int) -> None:
        self.write_varint(make_tag(field_number, wire_type))

    def write_int32_no_tag(self, value: int) -> None:
        self.write_varint(value & _UINT64_MASK)

    def write_int64_no_tag(self, value: int) -> None:
        self.write_varint(value & _UINT64_MASK)

    def write_uint32_no_tag(self, value: int) -> None:
        self.write_varint(value)

    def write_uint64_no_tag(self, value: int) -> None:
        self.write_varint(value)

    def write_sint32_no_tag(self, value: int) -> None:
        self.write_varint(zigzag_encode(value))

    def write_sint64_no_tag(self, value: int) -> None:
        self.write_varint(zigzag_encode(value))

    def write_bool_no_tag(self, value: bool) -> None:
        self.write_varint(1 if value else 0)

    def write_enum_no_tag(self, value: int) -> None:
        self.write_int32_no_tag(value)

    def write_fixed32_no_tag(self, value: int) -> None:
        self._buffer += struct.pack('<I', value)

    def write_sfixed32_no_tag(self, value: int) -> None:
        self._buffer += struct.pack('<i', value)

    def write_float_no_tag(self, value: float) -> None:
        # Finite values beyond the float32 range are written as infinities.
        if abs(value) > _FLOAT32_MAX and not math.isinf(value):
            value = math.copysign(math.inf, value)
        self._buffer += struct.pack('<f', value)

    def write_fixed64_no_tag(self, value: int) -> None:
        self._buffer += struct.pack('<Q', value)

    def write_sfixed64_no_tag(self, value: int) -> None:
        self._buffer += struct.pack('<q', value)

    def write_double_no_tag(self, value: float) -> None:
        self._buffer += struct.pack('<d', value)

    def write_bytes_no_tag(self, value: bytes) -> None:
        self.write_varint(len(value))
        self._buffer += value

    def write_string_no_tag(self, value: str) -> None:
        self.write_bytes_no_tag(value.encode('utf-8'))

    def write_message_no_tag(self, message: _Encodable) -> None:
        self.write_varint(message.serialized_size())
        message.write_to(self)

    def write_int32(self, field_number: int, value: int) -> None:
        self.write_tag(field_number, WireType.VARINT)
        self.write_int32_no_tag(value)

    def write_int64(self, field_number: int, value: int) -> None:
        self.write_tag(field_number, WireType.VARINT)
        self.write_int64_no_tag(value)

    def write_uint32(self, field_number: int, value: int) -> None:
        self.write_tag(field_number, WireType.VARINT)
        self.write_uint32_no_tag(value)

    def write_uint64(self, field_number: int, value: int) -> None:
        self.write_tag(field_number, WireType.VARINT)
        self.write_uint64_no_tag(value)

    def write_sint32(self, field_number: int, value: int) -> None:
        self.write_tag(field_number, WireType.VARINT)
        self.write_sint32_no_tag(value)

    def write_sint64(self, field_number: int, value: int) -> None:
        self.write_tag(field_number, WireType.VARINT)
        self.write_sint64_no_tag(value)

    def write_bool(self, field_number: int, value: bool) -> None:
        self.write_tag(field_number, WireType.VARINT)
        self.write_bool_no_tag(value)

    def write_enum(self, field_number: int, value: int) -> None:
        self.write_tag(field_number, WireType.VARINT)
        self.write_enum_no_tag(value)

    def write_fixed32(self, field_number: int, value: int) -> None:
        self.write_tag(field_number, WireType.FIXED32)
        self.write_fixed32_no_tag(value)

    def write_sfixed32(self, field_number: int, value: int) -> None:
        self.write_tag(field_number, WireType.FIXED32)
        self.write_sfixed32_no_tag(value)

    def write_float(self, field_number: int, value: float) -> None:
        self.write_tag(field_number, WireType.FIXED32)
        self.write_float_no_tag(value)

    def write_fixed64(self, field_number: int, value: int) -> None:
        self.write_tag(field_number, WireType.FIXED64)
        self.write_fixed64_no_tag(value)

    def write_sfixed64(self, field_number: int, value: int) -> None:
        self.write_tag(field_number, WireType.FIXED64)
        self.write_sfixed64_no_tag(value)

    def write_double(self, field_number: int, value: float) -> None:
        self.write_tag(field_number, WireType.FIXED64)
        self.write_double_no_tag(value)

    def write_string(self, field_number: int, value: str) -> None:
        self.write_tag(field_number, WireType.LENGTH_DELIMITED)
        self.write_string_no_tag(value)

    def write_bytes(self, field_number: int, value: bytes) -> None:
        self.write_tag(field_number, WireType.LENGTH_DELIMITED)
        self.write_bytes_no_tag(value)

    def write_message(self, field_number: int, message: _Encodable) -> None:
        self.write_tag(field_number, WireType.LENGTH_DELIMITED)
        self.write_message_no_tag(message)

    def write_group(self, field_number: int, message: _Encodable) -> None:
        self.write_tag(field_number, WireType.START_GROUP)
        message.write_to(self)
        self.write_tag(field_number, WireType.END_GROUP)

    def write_packed(
        self,
        field_number: int,
        values: Iterable[T],
        size_no_tag: Callable[[T], int],
        write_no_tag: Callable[[T], None],
    ) -> None:
        """Writes a packed repeated field; nothing is written for no values."""
        values = list(values)
        if not values:
            return

        self.write_tag(field_number, WireType.LENGTH_DELIMITED)
        self.write_varint(sum(size_no_tag(value) for value in values))
        for value in values:
            write_no_tag(value)


class CodedInputStream:
    """Reads wire format data for a builder's merge_from_stream().

    Embedded messages are decoded by narrowing the stream's limit to the
    message's length; read_tag() returns 0 once the current limit is reached.
    """

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0
        self._limit = len(self._data)
        self._last_tag = 0
        self._recursion_depth = 0

    def position(self) -> int:
        return self._pos

    def at_end(self) -> bool:
        return self._pos >= self._limit

    def last_tag(self) -> int:
        """The tag most recently returned by read_tag()."""
        return self._last_tag

    def read_tag(self) -> int:
        """Reads a field tag, or returns 0 at the end of the current limit."""
        if self.at_end():
            self._last_tag = 0
            return 0

        start = self._pos
        tag = self.read_raw_varint()
        if tag_field_number(tag) == 0:
            raise DecodeError(f'Invalid tag {tag} at offset {start}')

        self._last_tag = tag
        return tag

    def check_last_tag_was(self, tag: int) -> None:
        """Raises DecodeError unless the most recently read tag was tag."""
        if self._last_tag != tag:
            raise DecodeError(
                f'Mismatched tag: expected {tag} but found {self._last_tag} '
                f'at offset {self._pos}'
            )

    def read_raw_varint(self) -> int:
        start = self._pos
        result = 0
        shift = 0

        for _ in range(_MAX_VARINT_BYTES):
            if self._pos >= self._limit:
                raise DecodeError(f'Truncated varint at offset {start}')

            byte = self._data[self._pos]
            self._pos += 1
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result & _UINT64_MASK
            shift += 7

        raise DecodeError(f'Malformed varint at offset {start}')

    def read_raw_bytes(self, size: int) -> bytes:
        if size > self._limit - self._pos:
            raise DecodeError(
                f'Truncated message: {size} bytes requested at offset '
                f'{self._pos}, but only {self._limit - self._pos} remain'
            )

        data = self._data[self._pos : self._pos + size]
        self._pos += size
        return data

    def read_int32(self) -> int:
        return _to_signed(self.read_raw_varint() & _UINT32_MASK, 32)

    def read_int64(self) -> int:
        return _to_signed(self.read_raw_varint(), 64)

    def read_uint32(self) -> int:
        return self.read_raw_varint() & _UINT32_MASK

    def read_uint64(self) -> int:
        return self.read_raw_varint()

    def read_sint32(self) -> int:
        return zigzag_decode(self.read_raw_varint() & _UINT32_MASK)

    def read_sint64(self) -> int:
        return zigzag_decode(self.read_raw_varint())

    def read_bool(self) -> bool:
        return self.read_raw_varint() != 0

    def read_enum(self) -> int:
        return self.read_int32()

    def read_fixed32(self) -> int:
        return struct.unpack('<I', self.read_raw_bytes(4))[0]

    def read_sfixed32(self) -> int:
        return struct.unpack('<i', self.read_raw_bytes(4))[0]

    def read_float(self) -> float:
        return struct.unpack('<f', self.read_raw_bytes(4))[0]

    def read_fixed64(self) -> int:
        return struct.unpack('<Q', self.read_raw_bytes(8))[0]

    def read_sfixed64(self) -> int:
        return struct.unpack('<q', self.read_raw_bytes(8))[0]

    def read_double(self) -> float:
        return struct.unpack('<d', self.read_raw_bytes(8))[0]

    def read_bytes(self) -> bytes:
        return self.read_raw_bytes(self.read_raw_varint())

    def read_string(self) -> str:
        start = self._pos
        try:
            return self.read_bytes().decode('utf-8')
        except UnicodeDecodeError as err:
            raise DecodeError(
                f'String field at offset {start} is not valid UTF-8'
            ) from err

    def push_limit(self, length: int) -> int:
        """Narrows the readable region; returns the limit to restore."""
        if length > self._limit - self._pos:
            raise DecodeError(
                f'Truncated message: embedded region of {length} bytes at '
                f'offset {self._pos} exceeds the {self._limit - self._pos} '
                'bytes remaining'
            )

        old_limit = self._limit
        self._limit = self._pos + length
        return old_limit

    def pop_limit(self, old_limit: int) -> None:
        self._limit = old_limit

    def read_message(self, builder: _Decodable) -> None:
        """Merges a length-delimited embedded message into builder."""
        old_limit = self.push_limit(self.read_raw_varint())

        self._enter_nested()
        try:
            builder.merge_from_stream(self)
        finally:
            self._recursion_depth -= 1

        # A message ends at its limit, never on an end-group tag.
        if self._last_tag != 0:
            raise DecodeError(
                f'Unexpected end-group tag {self._last_tag} in embedded '
                f'message ending at offset {self._limit}'
            )

        self.pop_limit(old_limit)

    def read_group(self, field_number: int, builder: _Decodable) -> None:
        """Merges a group, bounded by its START/END_GROUP tags, into builder.

        The START_GROUP tag has already been consumed by the caller.
        """
        self._enter_nested()
        try:
            builder.merge_from_stream(self)
        finally:
            self._recursion_depth -= 1

        if self._last_tag == 0:
            raise DecodeError(
                f'Unterminated group for field {field_number}: reached '
                f'offset {self._pos} without an end-group tag'
            )
        self.check_last_tag_was(make_tag(field_number, WireType.END_GROUP))

    def read_packed(self, read_value: Callable[[], T]) -> list[T]:
        """Reads all values of a packed repeated field occurrence."""
        old_limit = self.push_limit(self.read_raw_varint())

        values = []
        while not self.at_end():
            values.append(read_value())

        self.pop_limit(old_limit)
        return values

    def skip_field(self, tag: int) -> bool:
        """Skips the field with the given tag.

        Returns:
          False if the tag is an END_GROUP tag, which ends the enclosing
          group or message; True otherwise.
        """
        wire_type = tag_wire_type(tag)

        if wire_type == WireType.VARINT:
            self.read_raw_varint()
        elif wire_type == WireType.FIXED64:
            self.read_raw_bytes(8)
        elif wire_type == WireType.LENGTH_DELIMITED:
            self.read_raw_bytes(self.read_raw_varint())
        elif wire_type == WireType.START_GROUP:
            self._skip_group(tag_field_number(tag))
        elif wire_type == WireType.END_GROUP:
            return False
        elif wire_type == WireType.FIXED32:
            self.read_raw_bytes(4)
        else:
            raise DecodeError(
                f'Invalid wire type {wire_type} for field '
                f'{tag_field_number(tag)} at offset {self._pos}'
            )

        return True

    def _skip_group(self, field_number: int) -> None:
        self._enter_nested()
        try:
            while True:
                tag = self.read_tag()
                if tag == 0 or not self.skip_field(tag):
                    break
        finally:
            self._recursion_depth -= 1

        self.check_last_tag_was(make_tag(field_number, WireType.END_GROUP))

    def _enter_nested(self) -> None:
        if self._recursion_depth >= RECURSION_LIMIT:
            raise DecodeError(
                f'Message nesting exceeds the limit of {RECURSION_LIMIT}'
            )
        self._recursion_depth += 1
