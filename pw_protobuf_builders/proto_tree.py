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
"""This module defines data structures for protobuf entities."""

import abc
import collections
import enum

from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple
from typing import TypeVar, cast

from google.protobuf import descriptor_pb2

T = TypeVar('T')  # pylint: disable=invalid-name

GENERATED_MODULE_SUFFIX = '_builders'

_FieldType = descriptor_pb2.FieldDescriptorProto.Type

# Scalar types which may use the packed encoding when repeated.
_PACKABLE_TYPES = frozenset(
    (
        _FieldType.TYPE_DOUBLE,
        _FieldType.TYPE_FLOAT,
        _FieldType.TYPE_INT64,
        _FieldType.TYPE_UINT64,
        _FieldType.TYPE_INT32,
        _FieldType.TYPE_FIXED64,
        _FieldType.TYPE_FIXED32,
        _FieldType.TYPE_BOOL,
        _FieldType.TYPE_UINT32,
        _FieldType.TYPE_ENUM,
        _FieldType.TYPE_SFIXED32,
        _FieldType.TYPE_SFIXED64,
        _FieldType.TYPE_SINT32,
        _FieldType.TYPE_SINT64,
    )
)


def _module_path(proto_file_name: str) -> str:
    """Strips the .proto extension; hyphens are not valid in module names."""
    if proto_file_name.endswith('.proto'):
        proto_file_name = proto_file_name[: -len('.proto')]
    return proto_file_name.replace('-', '_') + GENERATED_MODULE_SUFFIX


def generated_file_name(proto_file_name: str) -> str:
    """Name of the Python file generated for a .proto file.

    For example, foo/bar.proto generates foo/bar_builders.py.
    """
    return _module_path(proto_file_name) + '.py'


def generated_module_name(proto_file_name: str) -> str:
    """Importable module name of the code generated for a .proto file."""
    return _module_path(proto_file_name).replace('/', '.')


def generated_module_alias(proto_file_name: str) -> str:
    """Unique identifier under which a generated module is imported.

    Underscores are doubled before dots are replaced so that distinct module
    names never map to the same alias, e.g. foo.bar_builders becomes
    foo_dot_bar__builders.
    """
    return (
        generated_module_name(proto_file_name)
        .replace('_', '__')
        .replace('.', '_dot_')
    )


def generated_module_import(proto_file_name: str) -> str:
    """Import statement for a generated module, bound to its alias."""
    package, _, module = generated_module_name(proto_file_name).rpartition('.')
    alias = generated_module_alias(proto_file_name)

    if package:
        return f'from {package} import {module} as {alias}'
    return f'import {module} as {alias}'


class ProtoNode(abc.ABC):
    """A ProtoNode represents a Python scope of an entity in a .proto file.

    Nodes form a tree beginning at a top-level (global) scope, descending into a
    hierarchy of .proto packages and the messages and enums defined within them.
    The tree may hold the entities of several .proto files; each message and
    enum node records the file that defines it.
    """

    class Type(enum.Enum):
        """The type of a ProtoNode.

        PACKAGE only groups nodes; it has no Python counterpart.
        MESSAGE maps to a message class and its nested Builder class.
        ENUM maps to an enum.IntEnum class within its parent's scope.
        EXTERNAL represents a node whose definition was not provided.
        """

        PACKAGE = 1
        MESSAGE = 2
        ENUM = 3
        EXTERNAL = 4

    def __init__(self, name: str, proto_file: Optional[str] = None):
        self._name: str = name
        self._proto_file: Optional[str] = proto_file
        self._children: Dict[str, 'ProtoNode'] = collections.OrderedDict()
        self._parent: Optional['ProtoNode'] = None

    @abc.abstractmethod
    def type(self) -> 'ProtoNode.Type':
        """The type of the node."""

    def children(self) -> List['ProtoNode']:
        return list(self._children.values())

    def name(self) -> str:
        return self._name

    def proto_file(self) -> Optional[str]:
        """Name of the .proto file that defines this node, if known."""
        return self._proto_file

    def proto_path(self) -> str:
        """Fully-qualified package path of the node."""
        path = '.'.join(self._attr_hierarchy(lambda node: node.name(), None))
        return path.lstrip('.')

    def python_path(self) -> str:
        """Dotted path of the node's class within its generated module.

        Packages do not appear in the path; a message Inner nested in a
        message Outer has the path Outer.Inner.
        """
        return '.'.join(
            name
            for name in self._attr_hierarchy(
                lambda node: (
                    node.name()
                    if node.type() in (self.Type.MESSAGE, self.Type.ENUM)
                    else ''
                ),
                None,
            )
            if name
        )

    def python_reference(self, from_file: str) -> str:
        """Expression naming this node's class in the module of from_file.

        Nodes from a different file are referenced through the alias under
        which that file's generated module is imported.
        """
        if self._proto_file is None or self._proto_file == from_file:
            return self.python_path()

        alias = generated_module_alias(self._proto_file)
        return f'{alias}.{self.python_path()}'

    def add_child(self, child: 'ProtoNode') -> None:
        """Inserts a new node into the tree as a child of this node.

        Args:
          child: The node to insert.

        Raises:
          ValueError: This node does not allow nesting the given type of child.
        """
        if not self._supports_child(child):
            raise ValueError(
                'Invalid child %s for node of type %s'
                % (child.type(), self.type())
            )

        # pylint: disable=protected-access
        if child._parent is not None:
            del child._parent._children[child.name()]

        child._parent = self
        self._children[child.name()] = child
        # pylint: enable=protected-access

    def find(self, path: str) -> Optional['ProtoNode']:
        """Finds a node within this node's subtree."""
        node = self

        # pylint: disable=protected-access
        for section in path.split('.'):
            child = node._children.get(section)
            if child is None:
                return None
            node = child
        # pylint: enable=protected-access

        return node

    def parent(self) -> Optional['ProtoNode']:
        return self._parent

    def __iter__(self) -> Iterator['ProtoNode']:
        """Iterates depth-first through all nodes in this node's subtree."""
        yield self
        for child_iterator in self._children.values():
            for child in child_iterator:
                yield child

    def _attr_hierarchy(
        self,
        attr_accessor: Callable[['ProtoNode'], T],
        root: Optional['ProtoNode'],
    ) -> Iterator[T]:
        """Fetches node attributes at each level of the tree from the root.

        Args:
          attr_accessor: Function which extracts attributes from a ProtoNode.
          root: The node at which to terminate.

        Returns:
          An iterator to a list of the selected attributes from the root to the
          current node.
        """
        hierarchy = []
        node: Optional['ProtoNode'] = self
        while node is not None and node != root:
            hierarchy.append(attr_accessor(node))
            node = node.parent()
        return reversed(hierarchy)

    @abc.abstractmethod
    def _supports_child(self, child: 'ProtoNode') -> bool:
        """Returns True if child is a valid child type for the current node."""


class ProtoPackage(ProtoNode):
    """A protobuf package."""

    def type(self) -> ProtoNode.Type:
        return ProtoNode.Type.PACKAGE

    def _supports_child(self, child: ProtoNode) -> bool:
        return True


class ProtoEnum(ProtoNode):
    """Representation of an enum in a .proto file."""

    def __init__(self, name: str, proto_file: Optional[str] = None):
        super().__init__(name, proto_file)
        self._values: List[Tuple[str, int]] = []

    def type(self) -> ProtoNode.Type:
        return ProtoNode.Type.ENUM

    def values(self) -> List[Tuple[str, int]]:
        return list(self._values)

    def add_value(self, name: str, value: int) -> None:
        self._values.append((name, value))

    def _supports_child(self, child: ProtoNode) -> bool:
        # Enums cannot have nested children.
        return False


class ProtoMessage(ProtoNode):
    """Representation of a message in a .proto file."""

    def __init__(self, name: str, proto_file: Optional[str] = None):
        super().__init__(name, proto_file)
        self._fields: List['ProtoMessageField'] = []

    def type(self) -> ProtoNode.Type:
        return ProtoNode.Type.MESSAGE

    def fields(self) -> List['ProtoMessageField']:
        return list(self._fields)

    def add_field(self, field: 'ProtoMessageField') -> None:
        self._fields.append(field)

    def _supports_child(self, child: ProtoNode) -> bool:
        return (
            child.type() == self.Type.ENUM or child.type() == self.Type.MESSAGE
        )


class ProtoExternal(ProtoNode):
    """A node whose definition is not part of the tree.

    An external node is created for a type reference that could not be
    resolved, most likely because the file that defines it was not provided.
    Its type is not known, so it does not have any members or additional data.
    """

    def type(self) -> ProtoNode.Type:
        return ProtoNode.Type.EXTERNAL

    def _supports_child(self, child: ProtoNode) -> bool:
        return True


class Cardinality(enum.Enum):
    SINGULAR = 'singular'
    REPEATED = 'repeated'


class WireKind(enum.Enum):
    """How a message-typed field's content is framed on the wire.

    The values are the suffixes of the wire module's read_*, write_* and
    compute_*_size routines for the kind.
    """

    MESSAGE = 'message'
    GROUP = 'group'


def underscores_to_camel_case(name: str, capitalize_first: bool) -> str:
    """Converts a proto identifier to camelCase or CapitalizedCamelCase.

    Underscores and other non-alphanumeric characters are dropped and start a
    new word, as does a digit; the first letter is lowercased unless
    capitalize_first is set.
    """
    result = []
    capitalize_next = capitalize_first

    for i, char in enumerate(name):
        if 'a' <= char <= 'z':
            result.append(char.upper() if capitalize_next else char)
            capitalize_next = False
        elif 'A' <= char <= 'Z':
            if i == 0 and not capitalize_next:
                result.append(char.lower())
            else:
                result.append(char)
            capitalize_next = False
        elif '0' <= char <= '9':
            result.append(char)
            capitalize_next = True
        else:
            capitalize_next = True

    return ''.join(result)


# This class is not a node and does not appear in the proto tree.
# Fields belong to proto messages and are processed separately.
class ProtoMessageField:
    """Representation of a field within a protobuf message."""

    def __init__(
        self,
        message: ProtoMessage,
        field_name: str,
        field_number: int,
        field_type: int,
        type_node: Optional[ProtoNode] = None,
        repeated: bool = False,
        default_value: Optional[str] = None,
        packed: Optional[bool] = None,
        proto3: bool = False,
        required: bool = False,
    ):
        self._message = message
        self._field_name = field_name
        self._number: int = field_number
        self._type: int = field_type
        self._type_node: Optional[ProtoNode] = type_node
        self._repeated: bool = repeated
        self._default_value = default_value
        self._packed = packed
        self._proto3 = proto3
        self._required = required

    def message(self) -> ProtoMessage:
        """The message which contains this field."""
        return self._message

    def field_name(self) -> str:
        """The field's name as written in the .proto file."""
        return self._field_name

    def name(self) -> str:
        """The field's camelCase name."""
        return underscores_to_camel_case(self._base_name(), False)

    def capitalized_name(self) -> str:
        return underscores_to_camel_case(self._base_name(), True)

    def _base_name(self) -> str:
        # Group fields are named after their group type rather than the
        # lowercased field name protoc derives from it.
        if self._type == _FieldType.TYPE_GROUP and self._type_node is not None:
            return self._type_node.name()
        return self._field_name

    def full_name(self) -> str:
        return f'{self._message.proto_path()}.{self._field_name}'

    def number(self) -> int:
        return self._number

    def type(self) -> int:
        return self._type

    def type_node(self) -> Optional[ProtoNode]:
        return self._type_node

    def proto_file(self) -> Optional[str]:
        return self._message.proto_file()

    def cardinality(self) -> Cardinality:
        return Cardinality.REPEATED if self._repeated else Cardinality.SINGULAR

    def is_repeated(self) -> bool:
        return self._repeated

    def is_required(self) -> bool:
        return self._required

    def is_message(self) -> bool:
        """True for fields whose value is an embedded message or group."""
        return self._type in (_FieldType.TYPE_MESSAGE, _FieldType.TYPE_GROUP)

    def wire_kind(self) -> Optional[WireKind]:
        """The framing of a message-typed field; None for other fields."""
        if self._type == _FieldType.TYPE_GROUP:
            return WireKind.GROUP
        if self._type == _FieldType.TYPE_MESSAGE:
            return WireKind.MESSAGE
        return None

    def default_value(self) -> Optional[str]:
        """The field's explicit default, in protoc's text representation."""
        return self._default_value

    def is_packable(self) -> bool:
        return self._repeated and self._type in _PACKABLE_TYPES

    def is_packed(self) -> bool:
        """Whether the field is serialized with the packed encoding.

        Repeated numeric fields of proto3 files are packed unless the field
        explicitly sets packed = false.
        """
        if not self.is_packable():
            return False
        if self._packed is not None:
            return self._packed
        return self._proto3


def _add_enum_fields(enum_node: ProtoNode, proto_enum) -> None:
    """Adds fields from a protobuf enum descriptor to an enum node."""
    assert enum_node.type() == ProtoNode.Type.ENUM
    enum_node = cast(ProtoEnum, enum_node)

    for value in proto_enum.value:
        enum_node.add_value(value.name, value.number)


def _create_external_nodes(root: ProtoNode, path: str) -> ProtoNode:
    """Creates external nodes for a path starting from the given root."""

    node = root
    for part in path.split('.'):
        child = node.find(part)
        if not child:
            child = ProtoExternal(part)
            node.add_child(child)
        node = child

    return node


def _find_or_create_node(
    global_root: ProtoNode, package_root: ProtoNode, path: str
) -> ProtoNode:
    """Searches the proto tree for a node by path, creating it if not found."""

    if path[0] == '.':
        # Fully qualified path.
        root_relative_path = path[1:]
        search_root = global_root
    else:
        root_relative_path = path
        search_root = package_root

    node = search_root.find(root_relative_path)
    if node is None:
        # Create nodes for field types that don't exist within this
        # compilation context, such as those from .proto files which were not
        # provided.
        node = _create_external_nodes(search_root, root_relative_path)

    return node


def _add_message_fields(
    global_root: ProtoNode,
    package_root: ProtoNode,
    message: ProtoNode,
    proto_message,
    proto3: bool,
) -> None:
    """Adds fields from a protobuf message descriptor to a message node."""
    assert message.type() == ProtoNode.Type.MESSAGE
    message = cast(ProtoMessage, message)

    type_node: Optional[ProtoNode]

    for field in proto_message.field:
        if field.type_name:
            # The "type_name" member contains the global .proto path of the
            # field's type object, for example ".pw.protobuf.test.KeyValuePair".
            # Try to find the node for this object within the current context.
            type_node = _find_or_create_node(
                global_root, package_root, field.type_name
            )
        else:
            type_node = None

        repeated = (
            field.label == descriptor_pb2.FieldDescriptorProto.LABEL_REPEATED
        )
        required = (
            field.label == descriptor_pb2.FieldDescriptorProto.LABEL_REQUIRED
        )
        message.add_field(
            ProtoMessageField(
                message,
                field.name,
                field.number,
                field.type,
                type_node,
                repeated,
                (
                    field.default_value
                    if field.HasField('default_value')
                    else None
                ),
                field.options.packed
                if field.options.HasField('packed')
                else None,
                proto3,
                required,
            )
        )


def _populate_fields(
    proto_file, global_root: ProtoNode, package_root: ProtoNode
) -> None:
    """Traverses a proto file, adding all message and enum fields to a tree."""
    proto3 = proto_file.syntax == 'proto3'

    def populate_message(node, message):
        """Recursively populates nested messages and enums."""
        _add_message_fields(global_root, package_root, node, message, proto3)

        for proto_enum in message.enum_type:
            _add_enum_fields(node.find(proto_enum.name), proto_enum)
        for msg in message.nested_type:
            populate_message(node.find(msg.name), msg)

    # Iterate through the proto file, populating top-level objects.
    for proto_enum in proto_file.enum_type:
        enum_node = package_root.find(proto_enum.name)
        assert enum_node is not None
        _add_enum_fields(enum_node, proto_enum)

    for message in proto_file.message_type:
        populate_message(package_root.find(message.name), message)


def _populate_enum_values(proto_file, package_root: ProtoNode) -> None:
    """Adds enum values only; used for files whose code is not generated."""

    def populate_message(node, message):
        for proto_enum in message.enum_type:
            _add_enum_fields(node.find(proto_enum.name), proto_enum)
        for msg in message.nested_type:
            populate_message(node.find(msg.name), msg)

    for proto_enum in proto_file.enum_type:
        _add_enum_fields(package_root.find(proto_enum.name), proto_enum)

    for message in proto_file.message_type:
        populate_message(package_root.find(message.name), message)


def _build_hierarchy(proto_file, root: ProtoNode) -> ProtoNode:
    """Adds the nodes of a proto file to a tree; returns its package node."""

    package_root = root

    if proto_file.package:
        for part in proto_file.package.split('.'):
            package = package_root.find(part)
            if package is None:
                package = ProtoPackage(part)
                package_root.add_child(package)
            package_root = package

    def build_message_subtree(proto_message):
        node = ProtoMessage(proto_message.name, proto_file.name)
        for proto_enum in proto_message.enum_type:
            node.add_child(ProtoEnum(proto_enum.name, proto_file.name))
        for submessage in proto_message.nested_type:
            node.add_child(build_message_subtree(submessage))

        return node

    for proto_enum in proto_file.enum_type:
        package_root.add_child(ProtoEnum(proto_enum.name, proto_file.name))

    for message in proto_file.message_type:
        package_root.add_child(build_message_subtree(message))

    return package_root


def build_node_tree(
    file_descriptor_proto, dependencies: Iterable = ()
) -> Tuple[ProtoNode, ProtoNode]:
    """Constructs a tree of proto nodes from a file descriptor.

    The messages and enums of each dependency are added to the tree so that
    references to them resolve, but only the fields of file_descriptor_proto
    are populated.

    Returns the root node of the entire proto package tree and the node
    representing the file's package.
    """
    global_root = ProtoPackage('')

    for dependency in dependencies:
        if dependency.name != file_descriptor_proto.name:
            _populate_enum_values(
                dependency, _build_hierarchy(dependency, global_root)
            )

    package_root = _build_hierarchy(file_descriptor_proto, global_root)
    _populate_fields(file_descriptor_proto, global_root, package_root)
    return global_root, package_root
