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
"""Template variables describing a single message field.

Field generators substitute these into their code templates. The mapping is a
pure function of the field; it is computed once per field generator.

  name              camelCase field name, e.g. childMessage
  capitalized_name  CapitalizedCamelCase field name, e.g. ChildMessage
  field_name        the proto field name, used for Python identifiers
  full_name         fully-qualified proto name, e.g. pkg.Outer.child_message
  number            the field number
  tag               the wire tag of an occurrence of the field
  type              Python expression naming the field's value type
  containing_type   Python path of the message class holding the field
  group_or_message  "group" or "message" (message-typed fields only)
  packed_tag        wire tag of a packed occurrence (packable fields only)
"""

from typing import Dict

from google.protobuf import descriptor_pb2

from pw_protobuf_builders import wire
from pw_protobuf_builders.proto_tree import ProtoMessageField

_FieldType = descriptor_pb2.FieldDescriptorProto.Type

WIRE_TYPES: Dict[int, wire.WireType] = {
    _FieldType.TYPE_DOUBLE: wire.WireType.FIXED64,
    _FieldType.TYPE_FLOAT: wire.WireType.FIXED32,
    _FieldType.TYPE_INT64: wire.WireType.VARINT,
    _FieldType.TYPE_UINT64: wire.WireType.VARINT,
    _FieldType.TYPE_INT32: wire.WireType.VARINT,
    _FieldType.TYPE_FIXED64: wire.WireType.FIXED64,
    _FieldType.TYPE_FIXED32: wire.WireType.FIXED32,
    _FieldType.TYPE_BOOL: wire.WireType.VARINT,
    _FieldType.TYPE_STRING: wire.WireType.LENGTH_DELIMITED,
    _FieldType.TYPE_GROUP: wire.WireType.START_GROUP,
    _FieldType.TYPE_MESSAGE: wire.WireType.LENGTH_DELIMITED,
    _FieldType.TYPE_BYTES: wire.WireType.LENGTH_DELIMITED,
    _FieldType.TYPE_UINT32: wire.WireType.VARINT,
    _FieldType.TYPE_ENUM: wire.WireType.VARINT,
    _FieldType.TYPE_SFIXED32: wire.WireType.FIXED32,
    _FieldType.TYPE_SFIXED64: wire.WireType.FIXED64,
    _FieldType.TYPE_SINT32: wire.WireType.VARINT,
    _FieldType.TYPE_SINT64: wire.WireType.VARINT,
}

# Python types stored in fields that do not reference a message or enum.
PYTHON_TYPES: Dict[int, str] = {
    _FieldType.TYPE_DOUBLE: 'float',
    _FieldType.TYPE_FLOAT: 'float',
    _FieldType.TYPE_INT64: 'int',
    _FieldType.TYPE_UINT64: 'int',
    _FieldType.TYPE_INT32: 'int',
    _FieldType.TYPE_FIXED64: 'int',
    _FieldType.TYPE_FIXED32: 'int',
    _FieldType.TYPE_BOOL: 'bool',
    _FieldType.TYPE_STRING: 'str',
    _FieldType.TYPE_BYTES: 'bytes',
    _FieldType.TYPE_UINT32: 'int',
    _FieldType.TYPE_SFIXED32: 'int',
    _FieldType.TYPE_SFIXED64: 'int',
    _FieldType.TYPE_SINT32: 'int',
    _FieldType.TYPE_SINT64: 'int',
}


def field_variables(field: ProtoMessageField) -> Dict[str, str]:
    """Returns the template variables for a field.

    The field's type, if it references a message or enum, must have been
    resolved to a node in the proto tree.
    """
    wire_type = WIRE_TYPES[field.type()]

    variables = {
        'name': field.name(),
        'capitalized_name': field.capitalized_name(),
        'field_name': field.field_name(),
        'full_name': field.full_name(),
        'number': str(field.number()),
        'tag': str(wire.make_tag(field.number(), wire_type)),
        'containing_type': field.message().python_path(),
    }

    type_node = field.type_node()
    if type_node is not None:
        proto_file = field.proto_file()
        assert proto_file is not None
        variables['type'] = type_node.python_reference(proto_file)
    else:
        variables['type'] = PYTHON_TYPES[field.type()]

    wire_kind = field.wire_kind()
    if wire_kind is not None:
        variables['group_or_message'] = wire_kind.value

    if field.is_packable():
        variables['packed_tag'] = str(
            wire.make_tag(field.number(), wire.WireType.LENGTH_DELIMITED)
        )

    return variables
