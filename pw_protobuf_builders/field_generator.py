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
"""Interface shared by the per-field code generators.

A FieldGenerator emits every piece of code that concerns one field of a
message: the state it occupies in the message and builder, accessors, builder
mutators and the field's part of merging, building, parsing, serialization and
size computation. The message generator in codegen.py calls each of these in
turn while it lays out the message and builder classes.

Generated code refers to the runtime modules through the aliases _pb_message
and _pb_wire.
"""

import abc
import dataclasses

from pw_protobuf_builders.field_variables import field_variables
from pw_protobuf_builders.output_file import OutputFile
from pw_protobuf_builders.proto_tree import ProtoMessageField, ProtoNode


@dataclasses.dataclass
class GeneratorOptions:
    """Settings which apply to all code generated for a request.

    Attributes:
      runtime_package: Package from which generated modules import the
        message and wire runtime modules.
      type_checks: Whether generated mutators check the types of the values
        they store, raising TypeError for mismatches.
    """

    runtime_package: str = 'pw_protobuf_builders'
    type_checks: bool = True


class CodegenError(Exception):
    def __init__(
        self,
        error_message: str,
        node: ProtoNode,
        field: ProtoMessageField | None = None,
    ):
        super().__init__(f'pwpb_py codegen error: {error_message}')
        self.error_message = error_message
        self.node = node
        self.field = field

    def formatted_message(self) -> str:
        lines = [
            f'pwpb_py codegen error: {self.error_message}',
            f'    at {self.node.proto_path()}',
        ]

        if self.field is not None:
            lines.append(f'    in field {self.field.field_name()}')

        return '\n'.join(lines)


class FieldGenerator(abc.ABC):
    """Generates the code for one field of a message."""

    def __init__(self, field: ProtoMessageField, options: GeneratorOptions):
        self._field = field
        self._options = options
        self._variables = field_variables(field)

    def field(self) -> ProtoMessageField:
        return self._field

    def variables(self) -> dict[str, str]:
        return dict(self._variables)

    @abc.abstractmethod
    def slots(self) -> list[str]:
        """Names of the attributes holding the field's state."""

    def wire_tags(self) -> list[int]:
        """Tags which introduce an occurrence of the field when parsing."""
        return [int(self._variables['tag'])]

    @abc.abstractmethod
    def generate_initializers(self, output: OutputFile) -> None:
        """Sets the field's state to its initial value in Builder.clear()."""

    @abc.abstractmethod
    def generate_members(self, output: OutputFile) -> None:
        """Read accessors for the message class."""

    @abc.abstractmethod
    def generate_builder_members(self, output: OutputFile) -> None:
        """Read accessors and mutators for the builder class."""

    @abc.abstractmethod
    def generate_merging_code(self, output: OutputFile) -> None:
        """Merges the field of the message `other` into the builder."""

    @abc.abstractmethod
    def generate_building_code(self, output: OutputFile) -> None:
        """Finalizes the builder's state for the field before it is shared."""

    @abc.abstractmethod
    def generate_parsing_code(self, output: OutputFile, tag: int) -> None:
        """Decodes an occurrence of the field from `stream` after `tag`."""

    def checks_initialization(self) -> bool:
        """Whether the field can make its message uninitialized."""
        return self._field.is_required()

    def generate_initialization_check(self, output: OutputFile) -> None:
        """Appends the paths of unset required fields to `errors`.

        Paths are relative to the outermost message being checked, which is
        passed down in `prefix`.
        """
        if self._field.is_required():
            output.write_template(
                self._variables,
                """
                if not self._has_$field_name$:
                    errors.append(prefix + '$field_name$')
                """,
            )

    @abc.abstractmethod
    def generate_serialization_code(self, output: OutputFile) -> None:
        """Writes the field to `stream`."""

    @abc.abstractmethod
    def generate_serialized_size_code(self, output: OutputFile) -> None:
        """Adds the field's encoded size to `size`."""

    def _write_type_check(self, output: OutputFile, value: str) -> None:
        """Emits a check of the type of the named value, if enabled."""
        if self._options.type_checks:
            check, checked_type = self._type_check()
            output.write_template(
                dict(
                    self._variables,
                    value=value,
                    check=check,
                    checked_type=checked_type,
                ),
                "$check$($value$, $checked_type$, '$full_name$')",
            )

    @abc.abstractmethod
    def _type_check(self) -> tuple[str, str]:
        """The runtime check function and the type it requires of values."""


class RepeatedFieldGenerator(FieldGenerator):
    """Code common to all repeated fields.

    The backing sequence of a repeated field is either the shared
    _pb_message.EMPTY_LIST, a ReadOnlyList that was handed to a built message,
    or a list private to the builder. Mutators promote the first two to a
    fresh list before they modify it; build() freezes a private list into a
    ReadOnlyList, so the built message never sees later mutations.
    """

    def slots(self) -> list[str]:
        return [f'_{self._field.field_name()}']

    def generate_initializers(self, output: OutputFile) -> None:
        output.write_template(
            self._variables, 'self._$field_name$ = _pb_message.EMPTY_LIST'
        )

    def generate_members(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            def get_$field_name$_list(self):
                return self._$field_name$

            def get_$field_name$_count(self):
                return len(self._$field_name$)

            def get_$field_name$(self, index):
                return self._$field_name$[index]
            """,
        )

    def generate_builder_members(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            def get_$field_name$_list(self):
                if isinstance(self._$field_name$, list):
                    return _pb_message.ReadOnlyList(self._$field_name$)
                return self._$field_name$

            def get_$field_name$_count(self):
                return len(self._$field_name$)

            def get_$field_name$(self, index):
                return self._$field_name$[index]

            def set_$field_name$(self, index, value):
            """,
        )
        with output.indent():
            self._write_value_conversion(output, 'value')
            self._write_type_check(output, 'value')
            # The promoted list is only kept once the assignment succeeded, so
            # an invalid index leaves the field untouched.
            output.write_template(
                self._variables,
                """
                items = self._$field_name$
                if not isinstance(items, list):
                    items = list(items)
                items[index] = value
                self._$field_name$ = items
                return self
                """,
            )

        output.write_line()
        output.write_template(
            self._variables, 'def add_$field_name$(self, value):'
        )
        with output.indent():
            self._write_value_conversion(output, 'value')
            self._write_type_check(output, 'value')
            output.write_template(
                self._variables,
                """
                if not isinstance(self._$field_name$, list):
                    self._$field_name$ = list(self._$field_name$)
                self._$field_name$.append(value)
                return self
                """,
            )

        output.write_line()
        output.write_template(
            self._variables, 'def add_all_$field_name$(self, values):'
        )
        with output.indent():
            self._write_values_conversion(output)
            output.write_line('if not values:')
            with output.indent():
                output.write_line('return self')
            if self._options.type_checks:
                output.write_line('for value in values:')
                with output.indent():
                    self._write_type_check(output, 'value')
            output.write_template(
                self._variables,
                """
                if not isinstance(self._$field_name$, list):
                    self._$field_name$ = list(self._$field_name$)
                self._$field_name$.extend(values)
                return self
                """,
            )

        output.write_line()
        output.write_template(
            self._variables,
            """
            def clear_$field_name$(self):
                self._$field_name$ = _pb_message.EMPTY_LIST
                return self
            """,
        )

    def generate_merging_code(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            if other.get_$field_name$_count():
                if not isinstance(self._$field_name$, list):
                    self._$field_name$ = list(self._$field_name$)
                self._$field_name$.extend(other.get_$field_name$_list())
            """,
        )

    def generate_building_code(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            if isinstance(self._$field_name$, list):
                self._$field_name$ = _pb_message.ReadOnlyList(
                    self._$field_name$
                )
            """,
        )

    def _write_value_conversion(self, output: OutputFile, value: str) -> None:
        """Emits code that normalizes a value before it is stored."""

    def _write_values_conversion(self, output: OutputFile) -> None:
        """Emits code that turns `values` into a list of normalized values."""
        output.write_line('values = list(values)')
