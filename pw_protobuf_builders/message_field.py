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
"""Code generators for fields whose values are embedded messages.

A message-typed field is framed either as a length-delimited message or, for
proto2 groups, between START_GROUP and END_GROUP tags. The framing only
changes which wire routines the generated code calls, selected through the
$group_or_message$ variable.
"""

from pw_protobuf_builders.field_generator import (
    FieldGenerator,
    RepeatedFieldGenerator,
)
from pw_protobuf_builders.output_file import OutputFile


def _write_builder_conversion(
    output: OutputFile, value: str, variables, build: str = 'build'
) -> None:
    """Emits code that builds a value given as a builder of the field type."""
    output.write_template(
        dict(variables, value=value, build=build),
        """
        if isinstance($value$, $type$.Builder):
            $value$ = $value$.$build$()
        """,
    )


def _write_read_call(output: OutputFile, variables) -> None:
    if variables['group_or_message'] == 'group':
        output.write_template(
            variables, 'stream.read_group($number$, sub_builder)'
        )
    else:
        output.write_template(variables, 'stream.read_message(sub_builder)')


class SingularMessageFieldGenerator(FieldGenerator):
    """An optional or required field holding a message.

    Presence is tracked separately from the value; an absent field reads as
    the default instance of its type.
    """

    def slots(self) -> list[str]:
        name = self._field.field_name()
        return [f'_has_{name}', f'_{name}']

    def _type_check(self) -> tuple[str, str]:
        return '_pb_message.check_message_type', self._variables['type']

    def generate_initializers(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            self._has_$field_name$ = False
            self._$field_name$ = $type$.default_instance()
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
            _write_builder_conversion(output, 'value', self._variables)
            self._write_type_check(output, 'value')
            output.write_template(
                self._variables,
                """
                self._$field_name$ = value
                self._has_$field_name$ = True
                return self
                """,
            )

        # Merging into an unset field, or one still holding the default
        # instance, is the same as setting it.
        output.write_line()
        output.write_template(
            self._variables, 'def merge_$field_name$(self, value):'
        )
        with output.indent():
            _write_builder_conversion(
                output, 'value', self._variables, build='build_partial'
            )
            self._write_type_check(output, 'value')
            output.write_template(
                self._variables,
                """
                if (
                    self._has_$field_name$
                    and self._$field_name$ is not $type$.default_instance()
                ):
                    self._$field_name$ = (
                        $type$.new_builder(self._$field_name$)
                        .merge_from(value)
                        .build_partial()
                    )
                else:
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
                self._$field_name$ = $type$.default_instance()
                return self
            """,
        )

    def generate_merging_code(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            if other.has_$field_name$():
                self.merge_$field_name$(other.get_$field_name$())
            """,
        )

    def generate_building_code(self, output: OutputFile) -> None:
        # Built messages are immutable, so the value can be shared as is.
        pass

    def generate_parsing_code(self, output: OutputFile, tag: int) -> None:
        # A repeated occurrence of a singular message merges into the value
        # decoded so far.
        output.write_template(
            self._variables,
            """
            sub_builder = $type$.new_builder()
            if self.has_$field_name$():
                sub_builder.merge_from(self.get_$field_name$())
            """,
        )
        _write_read_call(output, self._variables)
        output.write_template(
            self._variables,
            'self.set_$field_name$(sub_builder.build_partial())',
        )

    def checks_initialization(self) -> bool:
        return True

    def generate_initialization_check(self, output: OutputFile) -> None:
        super().generate_initialization_check(output)
        output.write_template(
            self._variables,
            """
            if self._has_$field_name$:
                errors.extend(
                    self._$field_name$.find_initialization_errors(
                        prefix + '$field_name$.'
                    )
                )
            """,
        )

    def generate_serialization_code(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            if self._has_$field_name$:
                stream.write_$group_or_message$($number$, self._$field_name$)
            """,
        )

    def generate_serialized_size_code(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            if self._has_$field_name$:
                size += _pb_wire.compute_$group_or_message$_size(
                    $number$, self._$field_name$
                )
            """,
        )


class RepeatedMessageFieldGenerator(RepeatedFieldGenerator):
    """A repeated field holding messages.

    Each occurrence on the wire is a separate element; occurrences are never
    merged into each other.
    """

    def _type_check(self) -> tuple[str, str]:
        return '_pb_message.check_message_type', self._variables['type']

    def _write_value_conversion(self, output: OutputFile, value: str) -> None:
        _write_builder_conversion(output, value, self._variables)

    def _write_values_conversion(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            values = [
                value.build() if isinstance(value, $type$.Builder) else value
                for value in values
            ]
            """,
        )

    def generate_parsing_code(self, output: OutputFile, tag: int) -> None:
        output.write_template(
            self._variables, 'sub_builder = $type$.new_builder()'
        )
        _write_read_call(output, self._variables)
        output.write_template(
            self._variables,
            'self.add_$field_name$(sub_builder.build_partial())',
        )

    def checks_initialization(self) -> bool:
        return True

    def generate_initialization_check(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            for index, value in enumerate(self._$field_name$):
                errors.extend(
                    value.find_initialization_errors(
                        f'{prefix}$field_name$[{index}].'
                    )
                )
            """,
        )

    def generate_serialization_code(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            for value in self._$field_name$:
                stream.write_$group_or_message$($number$, value)
            """,
        )

    def generate_serialized_size_code(self, output: OutputFile) -> None:
        output.write_template(
            self._variables,
            """
            for value in self._$field_name$:
                size += _pb_wire.compute_$group_or_message$_size(
                    $number$, value
                )
            """,
        )
