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
"""Code generators for scalar, enum, string and bytes fields."""

import math
from typing import NamedTuple

from google.protobuf import descriptor_pb2
from google.protobuf import text_encoding

from pw_protobuf_builders.field_generator import (
    CodegenError,
    FieldGenerator,
    GeneratorOptions,
    RepeatedFieldGenerator,
)
from pw_protobuf_builders.output_file import OutputFile
from pw_protobuf_builders.proto_tree import (
    ProtoEnum,
    ProtoMessageField,
    ProtoNode,
)

_FieldType = descriptor_pb2.FieldDescriptorProto.Type


class _ScalarType(NamedTuple):
    # Suffix of the wire module's read_*, write_* and compute_*_size routines.
    kind: str
    python_type: str
    zero: str


_SCALAR_TYPES = {
    _FieldType.TYPE_DOUBLE: _ScalarType('double', 'float', '0.0'),
    _FieldType.TYPE_FLOAT: _ScalarType('float', 'float', '0.0'),
    _FieldType.TYPE_INT64: _ScalarType('int64', 'int', '0'),
    _FieldType.TYPE_UINT64: _ScalarType('uint64', 'int', '0'),
    _FieldType.TYPE_INT32: _ScalarType('int32', 'int', '0'),
    _FieldType.TYPE_FIXED64: _ScalarType('fixed64', 'int', '0'),
    _FieldType.TYPE_FIXED32: _ScalarType('fixed32', 'int', '0'),
    _FieldType.TYPE_BOOL: _ScalarType('bool', 'bool', 'False'),
    _FieldType.TYPE_STRING: _ScalarType('string', 'str', "''"),
    _FieldType.TYPE_BYTES: _ScalarType('bytes', 'bytes', "b''"),
    _FieldType.TYPE_UINT32: _ScalarType('uint32', 'int', '0'),
    _FieldType.TYPE_ENUM: _ScalarType('enum', 'int', '0'),
    _FieldType.TYPE_SFIXED32: _ScalarType('sfixed32', 'int', '0'),
    _FieldType.TYPE_SFIXED64: _ScalarType('sfixed64', 'int', '0'),
    _FieldType.TYPE_SINT32: _ScalarType('sint32', 'int', '0'),
    _FieldType.TYPE_SINT64: _ScalarType('sint64', 'int', '0'),
}


def _float_literal(text: str) -> str:
    value = float(text)
    if math.isnan(value):
        return "float('nan')"
    if math.isinf(value):
        return "float('-inf')" if value < 0 else "float('inf')"
    return repr(value)


def _enum_default(field: ProtoMessageField, enum_type: str) -> str:
    enum_node = field.type_node()
    assert enum_node is not None and enum_node.type() is ProtoNode.Type.ENUM
    assert isinstance(enum_node, ProtoEnum)

    values = enum_node.values()
    if not values:
        raise CodegenError(
            f'Enum {enum_node.proto_path()} has no values',
            field.message(),
            field,
        )

    default = field.default_value()
    if default is None:
        return f'{enum_type}.{values[0][0]}'

    if default not in (name for name, _ in values):
        raise CodegenError(
            f'Default value {default} is not a value of enum '
            f'{enum_node.proto_path()}',
            field.message(),
            field,
        )

    return f'{enum_type}.{default}'


def default_value_literal(field: ProtoMessageField, python_type: str) -> str:
    """Python expression for the initial value of a singular field.

    protoc passes explicit defaults as text: numbers in decimal, bools as
    "true"/"false", strings verbatim and bytes C-escaped.

    Raises:
      CodegenError: The default value is invalid for the field's type.
    """
    field_type = field.type()
    scalar = _SCALAR_TYPES[field_type]

    if field_type == _FieldType.TYPE_ENUM:
        return _enum_default(field, python_type)

    default = field.default_value()
    if default is None:
        return scalar.zero

    try:
        if scalar.python_type == 'float':
            return _float_literal(default)
        if scalar.python_type == 'int':
            return str(int(default))
        if scalar.python_type == 'bool':
            return 'True' if default == 'true' else 'False'
        if scalar.python_type == 'str':
            return repr(default)
        return repr(text_encoding.CUnescape(default))
    except ValueError as err:
        raise CodegenError(
            f'Invalid default value {default!r}: {err}', field.message(), field
        ) from err


class _PrimitiveMixin:
    """Variables and type checks shared by singular and repeated fields."""

    _field: ProtoMessageField
    _variables: dict[str, str]

    def _init_primitive_variables(self) -> None:
        scalar = _SCALAR_TYPES[self._field.type()]
        self._variables['kind'] = scalar.kind

    def _type_check(self) -> tuple[str, str]:
        return '_pb_message.check_scalar_type', repr(self._variables['kind'])


class SingularPrimitiveFieldGenerator(_PrimitiveMixin, FieldGenerator):
    """An optional or required field holding a scalar, string or bytes.

    Merging overwrites the value if the other message has the field set.
    """

    def __init__(self, field: ProtoMessageField, options: GeneratorOptions):
        super().__init__(field, options)
        self._init_primitive_variables()
        self._variables['default'] = default_value_literal(
            field, self._variables['type']
        )

    def slots(self) -> list[str]:
        name = self._field.field_name()
        return [f'_has_{name}', f'_{name}']

    def generate_initializers(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            self._has_$field_name$ = False
            self._$field_name$ = $default$
            """,
        )

    def generate_members(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            def has_$field_name$(self):
                return self._has_$field_name$

            def get_$field_name$(self):
                return self._$field_name$
            """,
        )

    def generate_builder_members(self, output: OutputFile) -> None:
        self.generate_members(output)

        output.write_line()
        output.write_template(
            self._variables, 'def set_$field_name$(self, value):'
        )
        with output.indent():
            self._write_type_check(output, 'value')
            output.write_template(
                self._variables,
                """
                self._$field_name$ = value
                self._has_$field_name$ = True
                return self
                """,
            )

        output.write_line()
        output.write_template(
            self._variables,
            """
            def clear_$field_name$(self):
                self._has_$field_name$ = False
                self._$field_name$ = $default$
                return self
            """,
        )

    def generate_merging_code(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            if other.has_$field_name$():
                self.set_$field_name$(other.get_$field_name$())
            """,
        )

    def generate_building_code(self, output: OutputFile) -> None:
        pass

    def generate_parsing_code(self, output: OutputFile, tag: int) -> None:
        output.write_template(
            self._variables,
            """
            self._$field_name$ = stream.read_$kind$()
            self._has_$field_name$ = True
            """,
        )

    def generate_serialization_code(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            if self._has_$field_name$:
                stream.write_$kind$($number$, self._$field_name$)
            """,
        )

    def generate_serialized_size_code(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            if self._has_$field_name$:
                size += _pb_wire.compute_$kind$_size(
                    $number$, self._$field_name$
                )
            """,
        )


class RepeatedPrimitiveFieldGenerator(_PrimitiveMixin, RepeatedFieldGenerator):
    """A repeated field holding scalars, strings or bytes.

    Numeric fields accept both the packed and the unpacked encoding when
    parsing, and are written in the encoding the field declares.
    """

    def __init__(self, field: ProtoMessageField, options: GeneratorOptions):
        super().__init__(field, options)
        self._init_primitive_variables()

    def wire_tags(self) -> list[int]:
        tags = super().wire_tags()
        if self._field.is_packable():
            tags.append(int(self._variables['packed_tag']))
        return tags

    def generate_parsing_code(self, output: OutputFile, tag: int) -> None:
        if str(tag) == self._variables.get('packed_tag'):
            output.write_template(
                self._variables,
                'self.add_all_$field_name$(stream.read_packed('
                'stream.read_$kind$))',
            )
        else:
            output.write_template(
                self._variables,
                'self.add_$field_name$(stream.read_$kind$())',
            )

    def generate_serialization_code(self, output: OutputFile) -> None:
        if self._field.is_packed():
            output.write_template(
                self._variables,
                """
                stream.write_packed(
                    $number$,
                    self._$field_name$,
                    _pb_wire.compute_$kind$_size_no_tag,
                    stream.write_$kind$_no_tag,
                )
                """,
            )
            return

        output.write_template(
            self._variables,
            """
            for value in self._$field_name$:
                stream.write_$kind$($number$, value)
            """,
        )

    def generate_serialized_size_code(self, output: OutputFile) -> None:
        if self._field.is_packed():
            output.write_template(
                self._variables,
                """
                size += _pb_wire.compute_packed_size(
                    $number$,
                    self._$field_name$,
                    _pb_wire.compute_$kind$_size_no_tag,
                )
                """,
            )
            return

        output.write_template(
            self._variables,
            """
            for value in self._$field_name$:
                size += _pb_wire.compute_$kind$_size($number$, value)
            """,
        )
