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
"""This module defines the generated Python code for protobuf messages.

Each .proto file generates one Python module. For every message it holds an
immutable message class with a nested Builder class, and for every enum an
enum.IntEnum class. Nested messages and enums become nested classes.
"""

import keyword
import logging
import os
from typing import Iterable, Type
from typing import cast

from google.protobuf import descriptor_pb2

from pw_protobuf_builders.field_generator import (
    CodegenError,
    FieldGenerator,
    GeneratorOptions,
)
from pw_protobuf_builders.field_variables import WIRE_TYPES
from pw_protobuf_builders.message_field import (
    RepeatedMessageFieldGenerator,
    SingularMessageFieldGenerator,
)
from pw_protobuf_builders.output_file import OutputFile
from pw_protobuf_builders.primitive_field import (
    RepeatedPrimitiveFieldGenerator,
    SingularPrimitiveFieldGenerator,
)
from pw_protobuf_builders.proto_tree import (
    Cardinality,
    ProtoEnum,
    ProtoMessage,
    ProtoMessageField,
    ProtoNode,
    build_node_tree,
    generated_file_name,
    generated_module_import,
)

_LOG = logging.getLogger(__name__)

PLUGIN_NAME = 'pw_protobuf_builders'
PLUGIN_VERSION = '0.1.0'

# Names which generated nested classes may not take, since the message class
# defines them itself.
_RESERVED_NESTED_NAMES = frozenset(['Builder'])

# Attributes of the message base class which field state may not shadow.
_RESERVED_SLOTS = frozenset(
    [
        '_DEFAULT_INSTANCE',
        '_compute_serialized_size',
        '_copy_state',
        '_fields',
        '_from_builder',
        '_memoized_size',
    ]
)

_FIELD_GENERATORS: dict[tuple[Cardinality, bool], Type[FieldGenerator]] = {
    (Cardinality.SINGULAR, True): SingularMessageFieldGenerator,
    (Cardinality.REPEATED, True): RepeatedMessageFieldGenerator,
    (Cardinality.SINGULAR, False): SingularPrimitiveFieldGenerator,
    (Cardinality.REPEATED, False): RepeatedPrimitiveFieldGenerator,
}

_TYPES_WITH_TYPE_NAME = (
    descriptor_pb2.FieldDescriptorProto.TYPE_MESSAGE,
    descriptor_pb2.FieldDescriptorProto.TYPE_GROUP,
    descriptor_pb2.FieldDescriptorProto.TYPE_ENUM,
)


def field_generator(
    field: ProtoMessageField, options: GeneratorOptions
) -> FieldGenerator:
    """Selects and creates the code generator for a field.

    Raises:
      CodegenError: The field's type is unsupported or cannot be resolved.
    """
    if field.type() not in WIRE_TYPES:
        raise CodegenError(
            f'Unsupported field type {field.type()}', field.message(), field
        )

    if field.type() in _TYPES_WITH_TYPE_NAME:
        type_node = field.type_node()
        if type_node is None or type_node.type() is ProtoNode.Type.EXTERNAL:
            raise CodegenError(
                'Field type could not be resolved; is the .proto file that '
                'defines it missing from the request?',
                field.message(),
                field,
            )

    generator_class = _FIELD_GENERATORS[
        (field.cardinality(), field.is_message())
    ]
    return generator_class(field, options)


def _check_type_name(node: ProtoNode) -> None:
    if keyword.iskeyword(node.name()):
        raise CodegenError(
            f'{node.name()} is a Python keyword and cannot name a class', node
        )

    parent = node.parent()
    if (
        parent is not None
        and parent.type() is ProtoNode.Type.MESSAGE
        and node.name() in _RESERVED_NESTED_NAMES
    ):
        raise CodegenError(
            f'Nested type {node.name()} conflicts with the generated '
            f'{parent.name()}.{node.name()} class',
            node,
        )


def generate_code_for_enum(proto_enum: ProtoEnum, output: OutputFile) -> None:
    """Creates an enum.IntEnum class for a protobuf enum."""
    _check_type_name(proto_enum)

    output.write_line(f'class {proto_enum.name()}(_enum.IntEnum):')
    with output.indent():
        if not proto_enum.values():
            output.write_line('pass')

        for name, number in proto_enum.values():
            if keyword.iskeyword(name) or name.startswith('_'):
                raise CodegenError(
                    f'Enum value {name} is not a valid Python attribute name',
                    proto_enum,
                )
            output.write_line(f'{name} = {number}')


def _write_slots(slots: list[str], output: OutputFile) -> None:
    if not slots:
        output.write_line('__slots__ = ()')
        return

    output.write_line('__slots__ = (')
    with output.indent():
        for slot in slots:
            output.write_line(f"'{slot}',")
    output.write_line(')')


def _write_initialization_check(
    generators: list[FieldGenerator], output: OutputFile
) -> None:
    """Emits find_initialization_errors() for a message or builder class."""
    checked = [g for g in generators if g.checks_initialization()]

    output.write_line("def find_initialization_errors(self, prefix=''):")
    with output.indent():
        if not checked:
            output.write_line('return []')
            return

        output.write_line('errors = []')
        for generator in checked:
            generator.generate_initialization_check(output)
        output.write_line('return errors')


def generate_builder_for_message(
    message: ProtoMessage,
    generators: list[FieldGenerator],
    output: OutputFile,
    options: GeneratorOptions,
) -> None:
    """Creates the Builder class nested in a message class."""
    message_type = message.python_path()
    slots = [slot for generator in generators for slot in generator.slots()]

    output.write_line('class Builder(_pb_message.MessageBuilder):')
    with output.indent():
        _write_slots(slots, output)

        output.write_line()
        output.write_line('def __init__(self):')
        with output.indent():
            output.write_line('self.clear()')

        output.write_line()
        output.write_line('def clear(self):')
        with output.indent():
            for generator in generators:
                generator.generate_initializers(output)
            output.write_line('return self')

        for generator in generators:
            output.write_line()
            generator.generate_builder_members(output)

        output.write_line()
        output.write_line('def merge_from(self, other):')
        with output.indent():
            if options.type_checks:
                output.write_line(
                    '_pb_message.check_message_type('
                    f"other, {message_type}, '{message.proto_path()}')"
                )
            output.write_line(f'if other is {message_type}.default_instance():')
            with output.indent():
                output.write_line('return self')
            for generator in generators:
                generator.generate_merging_code(output)
            output.write_line('return self')

        output.write_line()
        _write_initialization_check(generators, output)

        output.write_line()
        output.write_line('def merge_from_stream(self, stream):')
        with output.indent():
            output.write_line('while True:')
            with output.indent():
                output.write_line('tag = stream.read_tag()')
                output.write_line('if tag == 0:')
                with output.indent():
                    output.write_line('return self')
                for generator in generators:
                    for tag in generator.wire_tags():
                        output.write_line(f'elif tag == {tag}:')
                        with output.indent():
                            generator.generate_parsing_code(output, tag)
                output.write_line('elif not stream.skip_field(tag):')
                with output.indent():
                    output.write_line('return self')

        output.write_line()
        output.write_line('def build_partial(self):')
        with output.indent():
            for generator in generators:
                generator.generate_building_code(output)
            output.write_line(f'return {message_type}._from_builder(self)')


def generate_class_for_message(
    message: ProtoMessage, output: OutputFile, options: GeneratorOptions
) -> None:
    """Creates a message class and its Builder for a protobuf message."""
    _check_type_name(message)

    generators = [
        field_generator(field, options) for field in message.fields()
    ]

    slots: list[str] = []
    for generator in generators:
        for slot in generator.slots():
            if slot in slots or slot in _RESERVED_SLOTS:
                raise CodegenError(
                    f'Attribute {slot} of the field conflicts with another '
                    'field or a message method',
                    message,
                    generator.field(),
                )
            slots.append(slot)

    # Fields are written in field number order, regardless of the order in
    # which they are declared.
    by_number = sorted(generators, key=lambda g: g.field().number())

    output.write_line(f'class {message.name()}(_pb_message.Message):')
    with output.indent():
        output.write_line(
            f'"""Generated from message {message.proto_path()}."""'
        )
        output.write_line()
        _write_slots(slots, output)

        for child in message.children():
            output.write_line()
            if child.type() is ProtoNode.Type.ENUM:
                generate_code_for_enum(cast(ProtoEnum, child), output)
            elif child.type() is ProtoNode.Type.MESSAGE:
                generate_class_for_message(
                    cast(ProtoMessage, child), output, options
                )

        for generator in generators:
            output.write_line()
            generator.generate_members(output)

        output.write_line()
        output.write_line('def write_to(self, stream):')
        with output.indent():
            if not by_number:
                output.write_line('pass')
            for generator in by_number:
                generator.generate_serialization_code(output)

        output.write_line()
        output.write_line('def _compute_serialized_size(self):')
        with output.indent():
            output.write_line('size = 0')
            for generator in by_number:
                generator.generate_serialized_size_code(output)
            output.write_line('return size')

        output.write_line()
        _write_initialization_check(generators, output)

        output.write_line()
        generate_builder_for_message(message, generators, output, options)


def _file_nodes(package: ProtoNode, proto_file_name: str) -> list[ProtoNode]:
    """The top-level messages and enums defined in a file."""
    return [
        node
        for node in package.children()
        if node.type() in (ProtoNode.Type.MESSAGE, ProtoNode.Type.ENUM)
        and node.proto_file() == proto_file_name
    ]


def _imported_files(
    messages: Iterable[ProtoMessage], proto_file_name: str
) -> list[str]:
    """Files whose generated modules define types referenced by messages."""
    files = set()
    for message in messages:
        for field in message.fields():
            type_node = field.type_node()
            if type_node is None:
                continue
            type_file = type_node.proto_file()
            if type_file is not None and type_file != proto_file_name:
                files.add(type_file)
    return sorted(files)


def generate_code_for_package(
    file_descriptor_proto,
    package: ProtoNode,
    output: OutputFile,
    options: GeneratorOptions,
) -> None:
    """Generates the Python module corresponding to a .proto file."""
    proto_file_name = file_descriptor_proto.name
    top_level = _file_nodes(package, proto_file_name)

    messages = [
        cast(ProtoMessage, node)
        for top_node in top_level
        for node in top_node
        if node.type() is ProtoNode.Type.MESSAGE
    ]
    has_enums = any(
        node.type() is ProtoNode.Type.ENUM
        for top_node in top_level
        for node in top_node
    )

    output.write_line(
        f'# {os.path.basename(output.name())} automatically generated by '
        f'{PLUGIN_NAME} {PLUGIN_VERSION}'
    )
    output.write_line(f'# from {proto_file_name}. Do not edit.')
    output.write_line(
        f'"""Message classes generated from {proto_file_name}."""'
    )
    output.write_line()

    if has_enums:
        output.write_line('import enum as _enum')
        output.write_line()

    runtime = options.runtime_package
    output.write_line(f'from {runtime} import message as _pb_message')
    output.write_line(f'from {runtime} import wire as _pb_wire')

    for imported_file in _imported_files(messages, proto_file_name):
        output.write_line(generated_module_import(imported_file))

    for node in top_level:
        output.write_line()
        output.write_line()
        if node.type() is ProtoNode.Type.ENUM:
            generate_code_for_enum(cast(ProtoEnum, node), output)
        else:
            generate_class_for_message(
                cast(ProtoMessage, node), output, options
            )

    if messages:
        output.write_line()
        output.write_line()
        output.write_line('_pb_message.init_default_instances(')
        with output.indent():
            for message in messages:
                output.write_line(f'{message.python_path()},')
        output.write_line(')')


def generate_module(
    proto_file,
    dependencies: Iterable = (),
    options: GeneratorOptions | None = None,
) -> OutputFile:
    """Generates the Python module for a single .proto file.

    Args:
      proto_file: The FileDescriptorProto to generate code for.
      dependencies: FileDescriptorProtos of the files proto_file imports,
        directly or indirectly. Types referenced from them resolve to their
        generated modules.
      options: Generator settings; defaults to GeneratorOptions().

    Raises:
      CodegenError: The file uses a construct that cannot be generated.
    """
    if options is None:
        options = GeneratorOptions()

    # Two passes are made through the file. The first builds the tree of all
    # message/enum nodes, then the second creates the fields in each. This is
    # done as message fields need references to their types, which requires
    # the entire tree to have been parsed into memory.
    _, package_root = build_node_tree(proto_file, dependencies)

    output = OutputFile(generated_file_name(proto_file.name))
    _LOG.debug('Generating %s from %s', output.name(), proto_file.name)
    generate_code_for_package(proto_file, package_root, output, options)
    return output


def process_proto_file(
    proto_file,
    dependencies: Iterable = (),
    options: GeneratorOptions | None = None,
) -> list[OutputFile] | None:
    """Generates code for a single .proto file.

    Returns the generated files, or None if generation failed; the error is
    logged.
    """
    try:
        return [generate_module(proto_file, dependencies, options)]
    except CodegenError as e:
        _LOG.error('%s', e.formatted_message())
        return None
