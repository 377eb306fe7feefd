#!/usr/bin/env python3
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
"""Tests the behavior of generated message classes and builders."""

import sys
import unittest

from google.protobuf import descriptor_pb2, text_format

from pw_protobuf_builders import codegen, python_builders, wire
from pw_protobuf_builders.field_generator import CodegenError, GeneratorOptions
from pw_protobuf_builders.message import (
    EMPTY_LIST,
    ReadOnlyList,
    UninitializedMessageError,
)

_MESSAGES = """
name: "codegen_test_messages.proto"
package: "pw.builders.test"
syntax: "proto2"
message_type {
  name: "Child"
  field { name: "a" number: 1 label: LABEL_OPTIONAL type: TYPE_INT32 }
  field { name: "b" number: 2 label: LABEL_OPTIONAL type: TYPE_INT32 }
  field { name: "x" number: 3 label: LABEL_OPTIONAL type: TYPE_INT32 }
}
message_type {
  name: "Outer"
  field {
    name: "child"
    number: 1
    label: LABEL_OPTIONAL
    type: TYPE_MESSAGE
    type_name: ".pw.builders.test.Child"
  }
  field {
    name: "items"
    number: 2
    label: LABEL_REPEATED
    type: TYPE_MESSAGE
    type_name: ".pw.builders.test.Child"
  }
  field {
    name: "grp"
    number: 3
    label: LABEL_OPTIONAL
    type: TYPE_GROUP
    type_name: ".pw.builders.test.Outer.Grp"
  }
  field {
    name: "rgrp"
    number: 5
    label: LABEL_REPEATED
    type: TYPE_GROUP
    type_name: ".pw.builders.test.Outer.RGrp"
  }
  field { name: "id" number: 7 label: LABEL_OPTIONAL type: TYPE_UINT32 }
  field { name: "tags" number: 8 label: LABEL_REPEATED type: TYPE_STRING }
  field {
    name: "color"
    number: 9
    label: LABEL_OPTIONAL
    type: TYPE_ENUM
    type_name: ".pw.builders.test.Outer.Color"
    default_value: "GREEN"
  }
  field {
    name: "samples"
    number: 10
    label: LABEL_REPEATED
    type: TYPE_SINT32
    options { packed: true }
  }
  field {
    name: "next"
    number: 11
    label: LABEL_OPTIONAL
    type: TYPE_MESSAGE
    type_name: ".pw.builders.test.Outer"
  }
  field {
    name: "ratio"
    number: 12
    label: LABEL_OPTIONAL
    type: TYPE_DOUBLE
    default_value: "0.5"
  }
  field {
    name: "blob"
    number: 13
    label: LABEL_OPTIONAL
    type: TYPE_BYTES
    default_value: "abc"
  }
  nested_type {
    name: "Grp"
    field { name: "value" number: 4 label: LABEL_OPTIONAL type: TYPE_INT32 }
  }
  nested_type {
    name: "RGrp"
    field { name: "value" number: 6 label: LABEL_OPTIONAL type: TYPE_INT32 }
  }
  enum_type {
    name: "Color"
    value { name: "RED" number: 0 }
    value { name: "GREEN" number: 1 }
    value { name: "BLUE" number: 2 }
  }
}
message_type {
  name: "Scalars"
  field { name: "i" number: 1 label: LABEL_OPTIONAL type: TYPE_INT32 }
  field { name: "u" number: 2 label: LABEL_OPTIONAL type: TYPE_UINT32 }
  field { name: "f" number: 3 label: LABEL_OPTIONAL type: TYPE_FIXED32 }
  field { name: "s" number: 4 label: LABEL_REPEATED type: TYPE_SINT32 }
  field { name: "fl" number: 5 label: LABEL_OPTIONAL type: TYPE_FLOAT }
}
message_type {
  name: "Required"
  field { name: "x" number: 1 label: LABEL_REQUIRED type: TYPE_INT32 }
}
message_type {
  name: "Container"
  field {
    name: "opt"
    number: 1
    label: LABEL_OPTIONAL
    type: TYPE_MESSAGE
    type_name: ".pw.builders.test.Required"
  }
  field {
    name: "req"
    number: 2
    label: LABEL_REQUIRED
    type: TYPE_MESSAGE
    type_name: ".pw.builders.test.Required"
  }
  field {
    name: "many"
    number: 3
    label: LABEL_REPEATED
    type: TYPE_MESSAGE
    type_name: ".pw.builders.test.Required"
  }
}
"""

_CROSS_FILE_DEPENDENCY = """
name: "codegen_test_dep/leaf.proto"
package: "pw.builders.dep"
syntax: "proto3"
message_type {
  name: "Leaf"
  field { name: "label" number: 1 label: LABEL_OPTIONAL type: TYPE_STRING }
}
"""

_CROSS_FILE = """
name: "codegen_test_cross.proto"
package: "pw.builders.test"
syntax: "proto3"
dependency: "codegen_test_dep/leaf.proto"
message_type {
  name: "Holder"
  field {
    name: "leaf"
    number: 1
    label: LABEL_OPTIONAL
    type: TYPE_MESSAGE
    type_name: ".pw.builders.dep.Leaf"
  }
  field {
    name: "leaves"
    number: 2
    label: LABEL_REPEATED
    type: TYPE_MESSAGE
    type_name: ".pw.builders.dep.Leaf"
  }
}
"""


def _parse(text: str) -> descriptor_pb2.FileDescriptorProto:
    return text_format.Parse(text, descriptor_pb2.FileDescriptorProto())


class _GeneratedMessagesTest(unittest.TestCase):
    """Generates and imports the test messages once per test class."""

    @classmethod
    def setUpClass(cls) -> None:
        module = python_builders.generate_and_import_file(_parse(_MESSAGES))
        cls.Outer = module.Outer
        cls.Child = module.Child
        cls.Scalars = module.Scalars
        cls.Required = module.Required
        cls.Container = module.Container

    def _child(self, **fields):
        builder = self.Child.new_builder()
        for name, value in fields.items():
            getattr(builder, f'set_{name}')(value)
        return builder.build()


class SingularMessageFieldTest(_GeneratedMessagesTest):
    """Tests singular message fields."""

    def test_default_presence(self) -> None:
        outer = self.Outer.new_builder().build()

        self.assertFalse(outer.has_child())
        self.assertIs(outer.get_child(), self.Child.default_instance())

    def test_default_instance(self) -> None:
        self.assertIs(
            self.Outer.default_instance(), self.Outer.default_instance()
        )
        self.assertEqual(
            self.Outer.default_instance(), self.Outer.new_builder().build()
        )
        self.assertFalse(self.Outer.default_instance().has_child())

    def test_set(self) -> None:
        child = self._child(a=1)
        outer = self.Outer.new_builder().set_child(child).build()

        self.assertTrue(outer.has_child())
        self.assertIs(outer.get_child(), child)

    def test_set_from_builder_equals_set_from_value(self) -> None:
        child_builder = self.Child.new_builder().set_a(3)

        from_builder = self.Outer.new_builder().set_child(child_builder)
        from_value = self.Outer.new_builder().set_child(child_builder.build())

        self.assertEqual(from_builder.build(), from_value.build())

    def test_set_rejects_wrong_types(self) -> None:
        builder = self.Outer.new_builder()

        with self.assertRaises(TypeError):
            builder.set_child(None)
        with self.assertRaises(TypeError):
            builder.set_child(self.Outer.default_instance())
        self.assertFalse(builder.has_child())

    def test_clear(self) -> None:
        builder = self.Outer.new_builder().set_child(self._child(a=1))
        builder.clear_child()

        self.assertFalse(builder.has_child())
        self.assertIs(builder.get_child(), self.Child.default_instance())

    def test_merge_with_absent_field_keeps_value(self) -> None:
        builder = self.Outer.new_builder().set_child(self._child(a=1))
        builder.merge_from(self.Outer.new_builder().set_id(1).build())

        self.assertTrue(builder.has_child())
        self.assertEqual(builder.get_child(), self._child(a=1))

    def test_merge_into_absent_field_adopts_value(self) -> None:
        child = self._child(b=2)
        builder = self.Outer.new_builder()
        builder.merge_from(self.Outer.new_builder().set_child(child).build())

        self.assertTrue(builder.has_child())
        self.assertIs(builder.get_child(), child)

    def test_merge_is_recursive(self) -> None:
        builder = self.Outer.new_builder().set_child(self._child(a=1))
        builder.merge_from(
            self.Outer.new_builder().set_child(self._child(b=2)).build()
        )

        self.assertEqual(builder.get_child(), self._child(a=1, b=2))

    def test_merge_overwrites_nested_scalar(self) -> None:
        builder = self.Outer.new_builder().set_child(self._child(x=5))
        builder.merge_child(self._child(x=7))

        self.assertEqual(builder.get_child().get_x(), 7)

    def test_merge_into_default_instance_value(self) -> None:
        child = self._child(a=4)
        builder = self.Outer.new_builder().set_child(
            self.Child.default_instance()
        )
        builder.merge_child(child)

        self.assertIs(builder.get_child(), child)

    def test_message_round_trip(self) -> None:
        outer = self.Outer.new_builder().set_child(self._child(a=1)).build()
        data = outer.to_bytes()

        self.assertEqual(data, b'\x0a\x02\x08\x01')
        self.assertEqual(self.Outer.parse_from(data), outer)

    def test_group_round_trip(self) -> None:
        grp = self.Outer.Grp.new_builder().set_value(1).build()
        outer = self.Outer.new_builder().set_grp(grp).build()
        data = outer.to_bytes()

        self.assertEqual(data, b'\x1b\x20\x01\x1c')
        self.assertEqual(self.Outer.parse_from(data), outer)
        self.assertEqual(outer.serialized_size(), len(data))

    def test_repeated_occurrences_merge(self) -> None:
        outer = self.Outer.parse_from(b'\x0a\x02\x08\x01\x0a\x02\x10\x02')
        self.assertEqual(outer.get_child(), self._child(a=1, b=2))

    def test_self_reference(self) -> None:
        inner = self.Outer.new_builder().set_id(2).build()
        outer = self.Outer.new_builder().set_next(inner).build()

        self.assertIs(
            self.Outer.default_instance().get_next(),
            self.Outer.default_instance(),
        )
        self.assertEqual(self.Outer.parse_from(outer.to_bytes()), outer)
        self.assertEqual(outer.get_next().get_id(), 2)


class RepeatedMessageFieldTest(_GeneratedMessagesTest):
    """Tests repeated message and group fields."""

    def test_default_is_shared_empty_list(self) -> None:
        self.assertIs(
            self.Outer.default_instance().get_items_list(), EMPTY_LIST
        )
        self.assertIs(self.Outer.new_builder().get_items_list(), EMPTY_LIST)

    def test_cleared_field_shares_empty_list(self) -> None:
        first = self.Outer.new_builder().add_items(self._child(a=1))
        second = self.Outer.new_builder().add_items(self._child(a=2))

        first_built = first.clear_items().build()
        second_built = second.clear_items().build()

        self.assertIs(first_built.get_items_list(), EMPTY_LIST)
        self.assertIs(
            first_built.get_items_list(), second_built.get_items_list()
        )
        self.assertEqual(len(EMPTY_LIST), 0)

    def test_add_preserves_order(self) -> None:
        children = [self._child(a=i) for i in range(3)]
        builder = self.Outer.new_builder()
        for child in children:
            builder.add_items(child)
        outer = builder.build()

        self.assertEqual(outer.get_items_count(), 3)
        self.assertEqual(list(outer.get_items_list()), children)
        self.assertIs(outer.get_items(1), children[1])

    def test_add_builder(self) -> None:
        outer = (
            self.Outer.new_builder()
            .add_items(self.Child.new_builder().set_a(1))
            .build()
        )
        self.assertEqual(outer.get_items(0), self._child(a=1))

    def test_add_all_then_clear(self) -> None:
        builder = self.Outer.new_builder()
        builder.add_all_items([self._child(a=1), self._child(a=2)])
        self.assertEqual(builder.get_items_count(), 2)

        builder.clear_items()
        self.assertEqual(builder.get_items_count(), 0)
        self.assertIs(builder.build().get_items_list(), EMPTY_LIST)

    def test_add_all_empty_keeps_shared_list(self) -> None:
        builder = self.Outer.new_builder().add_all_items([])
        self.assertIs(builder.get_items_list(), EMPTY_LIST)

    def test_add_rejects_wrong_types(self) -> None:
        builder = self.Outer.new_builder()

        with self.assertRaises(TypeError):
            builder.add_items(None)
        with self.assertRaises(TypeError):
            builder.add_all_items([self._child(a=1), 'not a message'])
        self.assertEqual(builder.get_items_count(), 0)

    def test_set_index(self) -> None:
        builder = self.Outer.new_builder().add_items(self._child(a=1))
        builder.set_items(0, self._child(a=2))

        self.assertEqual(builder.get_items(0), self._child(a=2))

    def test_set_invalid_index_keeps_shared_list(self) -> None:
        builder = self.Outer.new_builder()

        with self.assertRaises(IndexError):
            builder.set_items(0, self._child(a=1))
        self.assertIs(builder.get_items_list(), EMPTY_LIST)

    def test_built_list_rejects_mutation(self) -> None:
        outer = self.Outer.new_builder().add_items(self._child(a=1)).build()
        items = outer.get_items_list()

        self.assertIsInstance(items, ReadOnlyList)
        with self.assertRaises(AttributeError):
            items.append(self._child(a=2))
        with self.assertRaises(TypeError):
            items[0] = self._child(a=2)

    def test_builder_list_rejects_mutation(self) -> None:
        builder = self.Outer.new_builder().add_items(self._child(a=1))

        with self.assertRaises(AttributeError):
            builder.get_items_list().append(self._child(a=2))

    def test_built_message_does_not_observe_later_mutations(self) -> None:
        builder = self.Outer.new_builder().add_items(self._child(a=1))
        first = builder.build()
        builder.add_items(self._child(a=2))
        second = builder.build()

        self.assertEqual(first.get_items_count(), 1)
        self.assertEqual(second.get_items_count(), 2)

    def test_build_twice_shares_frozen_list(self) -> None:
        builder = self.Outer.new_builder().add_items(self._child(a=1))
        first = builder.build()
        second = builder.build()

        self.assertIs(first.get_items_list(), second.get_items_list())

    def test_merge_appends_in_order(self) -> None:
        builder = self.Outer.new_builder().add_items(self._child(a=1))
        builder.merge_from(
            self.Outer.new_builder()
            .add_items(self._child(a=2))
            .add_items(self._child(a=3))
            .build()
        )

        self.assertEqual(
            [child.get_a() for child in builder.get_items_list()], [1, 2, 3]
        )

    def test_merge_empty_keeps_shared_list(self) -> None:
        builder = self.Outer.new_builder()
        builder.merge_from(self.Outer.new_builder().set_id(1).build())

        self.assertIs(builder.get_items_list(), EMPTY_LIST)

    def test_merge_does_not_alias_other_list(self) -> None:
        other = self.Outer.new_builder().add_items(self._child(a=1)).build()
        builder = other.to_builder().add_items(self._child(a=2))

        self.assertEqual(other.get_items_count(), 1)
        self.assertEqual(builder.get_items_count(), 2)

    def test_occurrences_decode_to_separate_elements(self) -> None:
        data = b'\x12\x02\x08\x01' * 3
        outer = self.Outer.parse_from(data)

        self.assertEqual(outer.get_items_count(), 3)
        self.assertEqual(list(outer.get_items_list()), [self._child(a=1)] * 3)

    def test_repeated_group_round_trip(self) -> None:
        builder = self.Outer.new_builder()
        for value in (1, 2):
            builder.add_rgrp(self.Outer.RGrp.new_builder().set_value(value))
        outer = builder.build()
        data = outer.to_bytes()

        self.assertEqual(data, b'\x2b\x30\x01\x2c\x2b\x30\x02\x2c')
        self.assertEqual(self.Outer.parse_from(data), outer)
        self.assertEqual(outer.serialized_size(), len(data))


class PrimitiveFieldTest(_GeneratedMessagesTest):
    """Tests the scalar, enum, string and bytes fields of messages."""

    def test_defaults(self) -> None:
        outer = self.Outer.default_instance()

        self.assertFalse(outer.has_color())
        self.assertEqual(outer.get_color(), self.Outer.Color.GREEN)
        self.assertEqual(outer.get_ratio(), 0.5)
        self.assertEqual(outer.get_blob(), b'abc')
        self.assertEqual(outer.get_id(), 0)

    def test_enum(self) -> None:
        outer = (
            self.Outer.new_builder().set_color(self.Outer.Color.BLUE).build()
        )

        self.assertEqual(outer.to_bytes(), b'\x48\x02')
        self.assertEqual(
            self.Outer.parse_from(b'\x48\x02').get_color(),
            self.Outer.Color.BLUE,
        )

    def test_set_rejects_wrong_types(self) -> None:
        with self.assertRaises(TypeError):
            self.Outer.new_builder().set_id('7')
        with self.assertRaises(TypeError):
            self.Outer.new_builder().add_tags(b'bytes')

    def test_merge_overwrites(self) -> None:
        builder = self.Outer.new_builder().set_id(5)
        builder.merge_from(self.Outer.new_builder().set_id(7).build())

        self.assertEqual(builder.get_id(), 7)

    def test_strings(self) -> None:
        outer = self.Outer.new_builder().add_all_tags(['a', 'bc']).build()

        self.assertEqual(outer.to_bytes(), b'\x42\x01a\x42\x02bc')
        self.assertEqual(self.Outer.parse_from(outer.to_bytes()), outer)

    def test_packed(self) -> None:
        outer = self.Outer.new_builder().add_all_samples([-1, 2]).build()

        self.assertEqual(outer.to_bytes(), b'\x52\x02\x01\x04')
        self.assertEqual(outer.serialized_size(), 4)

    def test_parse_accepts_unpacked(self) -> None:
        outer = self.Outer.parse_from(b'\x50\x01\x50\x04')
        self.assertEqual(list(outer.get_samples_list()), [-1, 2])

    def test_field_number_order(self) -> None:
        outer = (
            self.Outer.new_builder()
            .set_id(1)
            .set_child(self._child(a=1))
            .build()
        )
        self.assertEqual(outer.to_bytes(), b'\x0a\x02\x08\x01\x38\x01')


class ScalarRangeTest(_GeneratedMessagesTest):
    """Tests that mutators reject integers outside of a field's range."""

    def test_int32(self) -> None:
        builder = self.Scalars.new_builder()
        with self.assertRaises(ValueError):
            builder.set_i(2**40)
        self.assertFalse(builder.has_i())

        scalars = builder.set_i(-(2**31)).build()
        self.assertEqual(
            self.Scalars.parse_from(scalars.to_bytes()).get_i(), -(2**31)
        )

    def test_uint32(self) -> None:
        with self.assertRaises(ValueError):
            self.Scalars.new_builder().set_u(-1)

        scalars = self.Scalars.new_builder().set_u(2**32 - 1).build()
        self.assertEqual(scalars.serialized_size(), len(scalars.to_bytes()))

    def test_fixed32(self) -> None:
        with self.assertRaises(ValueError):
            self.Scalars.new_builder().set_f(-1)
        with self.assertRaises(ValueError):
            self.Scalars.new_builder().set_f(2**32)

    def test_sint32(self) -> None:
        builder = self.Scalars.new_builder()
        with self.assertRaises(ValueError):
            builder.add_s(2**31)
        with self.assertRaises(ValueError):
            builder.add_all_s([1, -(2**31) - 1])
        self.assertIs(builder.get_s_list(), EMPTY_LIST)

        builder.add_all_s([2**31 - 1, -(2**31)])
        self.assertEqual(list(builder.get_s_list()), [2**31 - 1, -(2**31)])

    def test_float_beyond_range_serializes_as_infinity(self) -> None:
        scalars = self.Scalars.new_builder().set_fl(1e39).build()

        self.assertEqual(scalars.serialized_size(), len(scalars.to_bytes()))
        self.assertEqual(
            self.Scalars.parse_from(scalars.to_bytes()).get_fl(), float('inf')
        )


class MessageTest(_GeneratedMessagesTest):
    """Tests behavior common to all generated messages."""

    def test_messages_are_immutable(self) -> None:
        outer = self.Outer.new_builder().set_id(1).build()

        with self.assertRaises(AttributeError):
            outer._id = 2  # pylint: disable=protected-access
        with self.assertRaises(AttributeError):
            outer.set_id  # pylint: disable=pointless-statement

    def test_to_builder(self) -> None:
        outer = self.Outer.new_builder().set_id(1).build()
        changed = outer.to_builder().set_id(2).build()

        self.assertEqual(outer.get_id(), 1)
        self.assertEqual(changed.get_id(), 2)

    def test_merge_from_rejects_other_types(self) -> None:
        with self.assertRaises(TypeError):
            self.Outer.new_builder().merge_from(self.Child.default_instance())

    def test_serialized_size_matches_encoding(self) -> None:
        outer = (
            self.Outer.new_builder()
            .set_child(self._child(a=-1))
            .add_items(self._child(b=300))
            .set_grp(self.Outer.Grp.new_builder().set_value(2))
            .set_id(2**32 - 1)
            .add_all_samples([-(2**31), 2**31 - 1])
            .set_ratio(1.5)
            .set_blob(b'\x00' * 200)
            .build()
        )

        self.assertEqual(outer.serialized_size(), len(outer.to_bytes()))
        self.assertEqual(self.Outer.parse_from(outer.to_bytes()), outer)

    def test_unknown_fields_are_skipped(self) -> None:
        outer = self.Outer.parse_from(b'\x78\x05\x38\x01\x7a\x01z')
        self.assertEqual(outer, self.Outer.new_builder().set_id(1).build())

    def test_merge_from_bytes_merges(self) -> None:
        builder = self.Outer.new_builder().set_child(self._child(a=1))
        builder.merge_from_bytes(b'\x0a\x02\x10\x02')

        self.assertEqual(builder.get_child(), self._child(a=1, b=2))

    def test_repr(self) -> None:
        outer = self.Outer.new_builder().set_id(1).build()
        self.assertEqual(repr(outer), 'Outer(id=1)')


class RequiredFieldTest(_GeneratedMessagesTest):
    """Tests building and parsing messages with required fields."""

    def _required(self, x: int):
        return self.Required.new_builder().set_x(x).build()

    def test_build_rejects_missing_field(self) -> None:
        builder = self.Required.new_builder()

        self.assertFalse(builder.is_initialized())
        with self.assertRaises(UninitializedMessageError) as context:
            builder.build()
        self.assertEqual(context.exception.missing_fields, ['x'])
        self.assertIn('Required', str(context.exception))

    def test_build_partial(self) -> None:
        partial = self.Required.new_builder().build_partial()

        self.assertFalse(partial.is_initialized())
        self.assertFalse(self.Required.default_instance().is_initialized())
        self.assertTrue(self._required(1).is_initialized())

    def test_unset_optional_field_with_required_subfields(self) -> None:
        container = (
            self.Container.new_builder().set_req(self._required(1)).build()
        )
        self.assertTrue(container.is_initialized())

    def test_optional_field_with_missing_subfield(self) -> None:
        builder = self.Container.new_builder().set_req(self._required(1))
        builder.merge_opt(self.Required.new_builder())

        self.assertTrue(builder.has_opt())
        self.assertEqual(builder.find_initialization_errors(), ['opt.x'])
        with self.assertRaises(UninitializedMessageError):
            builder.build()

        partial = builder.build_partial()
        self.assertFalse(partial.is_initialized())

        builder.set_opt(self._required(5))
        self.assertTrue(builder.build().is_initialized())

    def test_set_from_builder_requires_initialized_value(self) -> None:
        with self.assertRaises(UninitializedMessageError):
            self.Container.new_builder().set_opt(self.Required.new_builder())

    def test_errors_name_nested_paths(self) -> None:
        builder = self.Container.new_builder()
        builder.add_many(self._required(1))
        builder.add_many(self.Required.new_builder().build_partial())

        self.assertEqual(
            builder.find_initialization_errors(), ['req', 'many[1].x']
        )

    def test_merge_keeps_partial_values(self) -> None:
        partial = self.Required.new_builder().build_partial()
        builder = self.Container.new_builder().set_opt(partial)
        builder.merge_from(
            self.Container.new_builder().set_opt(partial).build_partial()
        )

        self.assertEqual(builder.get_opt(), partial)
        self.assertEqual(builder.find_initialization_errors(), ['opt.x', 'req'])

    def test_parse_rejects_missing_fields(self) -> None:
        with self.assertRaisesRegex(wire.DecodeError, 'req.x'):
            self.Container.parse_from(b'\x12\x00')

        builder = self.Container.new_builder().merge_from_bytes(b'\x12\x00')
        self.assertEqual(builder.find_initialization_errors(), ['req.x'])
        self.assertTrue(builder.build_partial().has_req())

    def test_parse_initialized(self) -> None:
        container = (
            self.Container.new_builder()
            .set_req(self._required(3))
            .add_many(self._required(4))
            .build()
        )

        self.assertEqual(
            self.Container.parse_from(container.to_bytes()), container
        )


class DecodeErrorTest(_GeneratedMessagesTest):
    """Tests that malformed input raises DecodeError."""

    def _assert_decode_error(self, data: bytes) -> None:
        with self.assertRaises(wire.DecodeError):
            self.Outer.parse_from(data)

    def test_truncated_length(self) -> None:
        self._assert_decode_error(b'\x0a\x05\x08')

    def test_truncated_varint(self) -> None:
        self._assert_decode_error(b'\x38\x80')

    def test_unterminated_group(self) -> None:
        self._assert_decode_error(b'\x1b\x20\x01')

    def test_mismatched_group_end(self) -> None:
        self._assert_decode_error(b'\x1b\x2c')

    def test_stray_end_group(self) -> None:
        self._assert_decode_error(b'\x1c')

    def test_end_group_in_embedded_message(self) -> None:
        self._assert_decode_error(b'\x0a\x01\x0c')

    def test_invalid_wire_type(self) -> None:
        self._assert_decode_error(b'\x0f')

    def test_field_number_zero(self) -> None:
        self._assert_decode_error(b'\x00\x01')

    def test_invalid_utf8(self) -> None:
        self._assert_decode_error(b'\x42\x01\xff')

    def test_nesting_limit(self) -> None:
        outer = self.Outer.default_instance()
        for _ in range(wire.RECURSION_LIMIT + 10):
            outer = self.Outer.new_builder().set_next(outer).build()

        self._assert_decode_error(outer.to_bytes())


class CrossFileTest(unittest.TestCase):
    """Tests messages that reference types from other files."""

    @classmethod
    def setUpClass(cls) -> None:
        cls.module = python_builders.generate_and_import_file(
            _parse(_CROSS_FILE), [_parse(_CROSS_FILE_DEPENDENCY)]
        )
        cls.leaf_module = sys.modules['codegen_test_dep.leaf_builders']

    def test_references_dependency_classes(self) -> None:
        holder = self.module.Holder.default_instance()
        self.assertIs(
            holder.get_leaf(), self.leaf_module.Leaf.default_instance()
        )

    def test_round_trip(self) -> None:
        leaf = self.leaf_module.Leaf.new_builder().set_label('hi').build()
        holder = (
            self.module.Holder.new_builder()
            .set_leaf(leaf)
            .add_leaves(leaf)
            .build()
        )

        self.assertEqual(
            self.module.Holder.parse_from(holder.to_bytes()), holder
        )

    def test_generated_import(self) -> None:
        output = codegen.generate_module(
            _parse(_CROSS_FILE), [_parse(_CROSS_FILE_DEPENDENCY)]
        )
        self.assertIn(
            'from codegen_test_dep import leaf_builders as '
            'codegen__test__dep_dot_leaf__builders',
            output.content(),
        )


class GeneratorOptionsTest(unittest.TestCase):
    """Tests generating code with non-default options."""

    def test_without_type_checks(self) -> None:
        proto = _parse(_MESSAGES)
        proto.name = 'codegen_test_unchecked.proto'
        module = python_builders.generate_and_import_file(
            proto, options=GeneratorOptions(type_checks=False)
        )

        builder = module.Outer.new_builder().set_id('not checked')
        self.assertEqual(builder.get_id(), 'not checked')

    def test_runtime_package(self) -> None:
        output = codegen.generate_module(
            _parse(_MESSAGES), options=GeneratorOptions(runtime_package='rt')
        )

        self.assertIn('from rt import message as _pb_message', output.content())
        self.assertIn('from rt import wire as _pb_wire', output.content())


class CodegenErrorTest(unittest.TestCase):
    """Tests protos which cannot be generated."""

    def _proto(self, message: str) -> descriptor_pb2.FileDescriptorProto:
        return _parse(f'name: "errors.proto" package: "pkg" {message}')

    def test_unresolved_type(self) -> None:
        proto = self._proto(
            """
            message_type {
              name: "Msg"
              field {
                name: "missing"
                number: 1
                label: LABEL_OPTIONAL
                type: TYPE_MESSAGE
                type_name: ".other.Missing"
              }
            }
            """
        )

        with self.assertRaisesRegex(CodegenError, 'could not be resolved'):
            codegen.generate_module(proto)

        with self.assertLogs('pw_protobuf_builders.codegen', 'ERROR'):
            self.assertIsNone(codegen.process_proto_file(proto))

    def test_keyword_name(self) -> None:
        with self.assertRaises(CodegenError):
            codegen.generate_module(self._proto('message_type { name: "def" }'))

    def test_nested_builder(self) -> None:
        proto = self._proto(
            'message_type { name: "Msg" nested_type { name: "Builder" } }'
        )
        with self.assertRaisesRegex(CodegenError, 'Builder'):
            codegen.generate_module(proto)

    def test_conflicting_fields(self) -> None:
        proto = self._proto(
            """
            message_type {
              name: "Msg"
              field { name: "foo" number: 1 type: TYPE_INT32 }
              field { name: "has_foo" number: 2 type: TYPE_INT32 }
            }
            """
        )
        with self.assertRaises(CodegenError) as context:
            codegen.generate_module(proto)

        self.assertIn('in field has_foo', context.exception.formatted_message())


if __name__ == '__main__':
    unittest.main()
