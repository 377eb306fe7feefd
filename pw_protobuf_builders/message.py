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
"""Base classes for generated messages and their builders.

Every generated message class derives from Message and holds an immutable
snapshot of its fields. Values are assembled with the message's nested Builder
class, which derives from MessageBuilder, and frozen with Builder.build():

  builder = Outer.new_builder()
  builder.set_child(Child.new_builder().set_a(1))
  builder.add_items(Child.new_builder().set_b(2).build())
  outer = builder.build()

Repeated fields are exposed as ReadOnlyList projections. Builders start out
with the shared EMPTY_LIST and switch to a private list the first time the
field is modified.

build() raises UninitializedMessageError while a required field of the message,
or of a message nested in it, is unset. build_partial() skips that check; it is
what merging and parsing use for nested values.
"""

import collections.abc
from typing import Any, Iterable, Iterator, Optional, Type, TypeVar

from pw_protobuf_builders import wire

_MessageT = TypeVar('_MessageT', bound='Message')


class UninitializedMessageError(Exception):
    """A message was built while some of its required fields are unset."""

    def __init__(self, message_type: str, missing_fields: list[str]):
        super().__init__(
            f'{message_type} is missing required fields: '
            + ', '.join(missing_fields)
        )
        self.missing_fields = missing_fields


class ReadOnlyList(collections.abc.Sequence):
    """An immutable view of the values of a repeated field."""

    __slots__ = ('_items',)

    def __init__(self, items: Iterable[Any] = ()) -> None:
        if not isinstance(items, (list, tuple)):
            items = tuple(items)
        object.__setattr__(self, '_items', items)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"'{type(self).__name__}' object is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"'{type(self).__name__}' object is read-only")

    def __getitem__(self, index):
        if isinstance(index, slice):
            return ReadOnlyList(self._items[index])
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ReadOnlyList):
            other = other._items  # pylint: disable=protected-access
        elif not isinstance(other, (list, tuple)):
            return NotImplemented

        return len(self._items) == len(other) and all(
            a == b for a, b in zip(self._items, other)
        )

    def __hash__(self) -> int:
        return hash(tuple(self._items))

    def __repr__(self) -> str:
        return f'ReadOnlyList({list(self._items)!r})'


# The empty value shared by every unset repeated field in the process.
EMPTY_LIST = ReadOnlyList(())


class Message:
    """Base class for generated, immutable message classes.

    Subclasses declare their field state in __slots__; the nested Builder
    class declares the same slots so that build() can copy them over.
    """

    __slots__ = ('_memoized_size',)

    _DEFAULT_INSTANCE: 'Message'
    Builder: Type['MessageBuilder']

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(
            f'{type(self).__qualname__} is immutable; modify a copy with '
            'to_builder() instead'
        )

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f'{type(self).__qualname__} is immutable')

    @classmethod
    def default_instance(cls: Type[_MessageT]) -> _MessageT:
        """Returns the instance of this message with no fields set."""
        return cls._DEFAULT_INSTANCE  # type: ignore[return-value]

    @classmethod
    def new_builder(cls, prototype: Optional['Message'] = None) -> Any:
        """Creates a builder, optionally initialized from prototype."""
        builder = cls.Builder()
        if prototype is not None:
            builder.merge_from(prototype)
        return builder

    @classmethod
    def parse_from(cls: Type[_MessageT], data: bytes) -> _MessageT:
        """Decodes a message from its wire format.

        Raises:
          wire.DecodeError: The data is truncated or malformed, or a
            required field is missing.
        """
        builder = cls.Builder().merge_from_bytes(data)

        missing_fields = builder.find_initialization_errors()
        if missing_fields:
            raise wire.DecodeError(
                f'Parsed {cls.__qualname__} is missing required fields: '
                + ', '.join(missing_fields)
            )

        return builder.build_partial()

    @classmethod
    def _from_builder(
        cls: Type[_MessageT], builder: 'MessageBuilder'
    ) -> _MessageT:
        message = object.__new__(cls)
        message._copy_state(builder)  # pylint: disable=protected-access
        return message

    def _copy_state(self, source: 'MessageBuilder') -> None:
        object.__setattr__(self, '_memoized_size', None)
        for name in type(self).__slots__:
            object.__setattr__(self, name, getattr(source, name))

    def to_builder(self) -> Any:
        """Creates a builder initialized with this message's fields."""
        return type(self).new_builder(self)

    def to_bytes(self) -> bytes:
        stream = wire.CodedOutputStream()
        self.write_to(stream)
        return stream.getvalue()

    def serialized_size(self) -> int:
        """Returns the encoded size of the message in bytes."""
        size = self._memoized_size
        if size is None:
            size = self._compute_serialized_size()
            object.__setattr__(self, '_memoized_size', size)
        return size

    def write_to(self, stream: wire.CodedOutputStream) -> None:
        raise NotImplementedError

    def _compute_serialized_size(self) -> int:
        raise NotImplementedError

    def find_initialization_errors(self, prefix: str = '') -> list[str]:
        """Returns the paths of all unset required fields, nested or not."""
        raise NotImplementedError

    def is_initialized(self) -> bool:
        return not self.find_initialization_errors()

    def _fields(self) -> Iterator[tuple[str, Any]]:
        """Yields the name and value of each field that is set."""
        for name in type(self).__slots__:
            if name.startswith('_has_'):
                continue

            value = getattr(self, name)
            present = getattr(self, f'_has{name}', None)
            if present is False or (present is None and not value):
                continue

            yield name[1:], value

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(self) is not type(other):
            return NotImplemented

        return all(
            getattr(self, name) == getattr(other, name)
            for name in type(self).__slots__
        )

    def __hash__(self) -> int:
        return hash(
            (type(self), tuple(getattr(self, n) for n in type(self).__slots__))
        )

    def __repr__(self) -> str:
        fields = ', '.join(
            f'{name}={value!r}' for name, value in self._fields()
        )
        return f'{type(self).__qualname__}({fields})'


class MessageBuilder:
    """Base class for the mutable Builder nested in each message class."""

    __slots__ = ()

    def merge_from(self, other: Any) -> 'MessageBuilder':
        raise NotImplementedError

    def merge_from_stream(
        self, stream: wire.CodedInputStream
    ) -> 'MessageBuilder':
        raise NotImplementedError

    def find_initialization_errors(self, prefix: str = '') -> list[str]:
        raise NotImplementedError

    def is_initialized(self) -> bool:
        """True if every required field, including nested ones, is set."""
        return not self.find_initialization_errors()

    def build_partial(self) -> Any:
        """Builds the message without checking its required fields."""
        raise NotImplementedError

    def build(self) -> Any:
        """Builds the message.

        Raises:
          UninitializedMessageError: A required field is unset.
        """
        missing_fields = self.find_initialization_errors()
        if missing_fields:
            raise UninitializedMessageError(
                type(self).__qualname__.rpartition('.')[0], missing_fields
            )
        return self.build_partial()

    def merge_from_bytes(self, data: bytes) -> 'MessageBuilder':
        """Merges the fields encoded in data into this builder.

        Raises:
          wire.DecodeError: The data is truncated or malformed.
        """
        stream = wire.CodedInputStream(data)
        self.merge_from_stream(stream)

        # merge_from_stream() also stops at an END_GROUP tag, which is only
        # valid inside of a group.
        if stream.last_tag() != 0:
            raise wire.DecodeError(
                f'Unexpected end-group tag {stream.last_tag()} at offset '
                f'{stream.position()}'
            )

        return self


def init_default_instances(*message_types: Type[Message]) -> None:
    """Creates the default instance of each generated message class.

    Default instances are created in two passes so that builders of
    self-referencing or mutually recursive messages can refer to each other's
    default instances while they are initialized.
    """
    for message_type in message_types:
        message_type._DEFAULT_INSTANCE = object.__new__(message_type)

    for message_type in message_types:
        # pylint: disable=protected-access
        message_type._DEFAULT_INSTANCE._copy_state(message_type.Builder())


def check_message_type(value: Any, message_type: type, field: str) -> None:
    """Raises TypeError unless value is an instance of message_type."""
    if not isinstance(value, message_type):
        raise TypeError(
            f'{field} expects a {message_type.__qualname__} message, but got '
            f'{type(value).__name__}'
        )


_INT32_RANGE = (-(1 << 31), (1 << 31) - 1)
_UINT32_RANGE = (0, (1 << 32) - 1)
_INT64_RANGE = (-(1 << 63), (1 << 63) - 1)
_UINT64_RANGE = (0, (1 << 64) - 1)

# Inclusive bounds of the integer scalar kinds.
_INTEGER_RANGES = {
    'int32': _INT32_RANGE,
    'sint32': _INT32_RANGE,
    'sfixed32': _INT32_RANGE,
    'enum': _INT32_RANGE,
    'uint32': _UINT32_RANGE,
    'fixed32': _UINT32_RANGE,
    'int64': _INT64_RANGE,
    'sint64': _INT64_RANGE,
    'sfixed64': _INT64_RANGE,
    'uint64': _UINT64_RANGE,
    'fixed64': _UINT64_RANGE,
}

_NON_INTEGER_TYPES = {
    'double': float,
    'float': float,
    'bool': bool,
    'string': str,
    'bytes': bytes,
}


def check_scalar_type(value: Any, kind: str, field: str) -> None:
    """Raises if value cannot be stored in a scalar field of the given kind.

    Raises:
      TypeError: The value is not of the field's Python type.
      ValueError: An integer is out of range for the field.
    """
    bounds = _INTEGER_RANGES.get(kind)
    if bounds is None:
        python_type = _NON_INTEGER_TYPES[kind]
        if python_type is float and isinstance(value, int):
            return
    else:
        python_type = int

    if not isinstance(value, python_type):
        raise TypeError(
            f'{field} expects a value of type {python_type.__name__}, but got '
            f'{type(value).__name__}'
        )

    if bounds is not None and not bounds[0] <= value <= bounds[1]:
        raise ValueError(
            f'Value {value} is out of range for {kind} field {field}'
        )
