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
"""Tools for generating and importing builder modules on the fly.

These take FileDescriptorProtos directly, so no protoc invocation is needed:

  from google.protobuf import descriptor_pb2, text_format

  proto = text_format.Parse(PROTO_TEXT, descriptor_pb2.FileDescriptorProto())
  module = generate_and_import_file(proto)
  message = module.Outer.new_builder().set_x(5).build()
"""

import importlib
import logging
import os
from pathlib import Path
import sys
import tempfile
from types import ModuleType
from typing import Iterable, Iterator, List, Optional, Union

from google.protobuf import descriptor_pb2

from pw_protobuf_builders import codegen
from pw_protobuf_builders.field_generator import GeneratorOptions
from pw_protobuf_builders.proto_tree import generated_module_name

_LOG = logging.getLogger(__name__)

PathOrStr = Union[Path, str]


def generate_files(
    output_dir: PathOrStr,
    proto_files: Iterable[descriptor_pb2.FileDescriptorProto],
    options: Optional[GeneratorOptions] = None,
) -> List[Path]:
    """Generates the builder modules for proto files into a directory.

    Every file may reference types defined in any of the other files.

    Raises:
      CodegenError: Code could not be generated for one of the files.
    """
    proto_files = list(proto_files)
    paths = []

    for proto_file in proto_files:
        output = codegen.generate_module(proto_file, proto_files, options)

        path = Path(output_dir, output.name())
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(output.content())

        _LOG.debug('Wrote %s', path)
        paths.append(path)

    return paths


def _forget_module(name: str) -> None:
    """Drops a previously generated module so it is imported anew.

    Namespace packages containing the module are dropped as well, since they
    may refer to a directory from an earlier import.
    """
    sys.modules.pop(name, None)

    parts = name.split('.')[:-1]
    for i in range(len(parts), 0, -1):
        package_name = '.'.join(parts[:i])
        package = sys.modules.get(package_name)
        if package is not None and getattr(package, '__file__', None) is None:
            del sys.modules[package_name]


def import_modules(
    directory: PathOrStr, module_names: Iterable[str]
) -> Iterator[ModuleType]:
    """Imports modules from a directory and yields them.

    The directory is on the module search path while the modules are imported
    so that generated modules can import each other.
    """
    module_names = list(module_names)
    for name in module_names:
        _forget_module(name)

    search_path = os.fspath(directory)
    sys.path.insert(0, search_path)
    importlib.invalidate_caches()

    try:
        for name in module_names:
            yield importlib.import_module(name)
    finally:
        sys.path.remove(search_path)


def generate_and_import(
    proto_files: Iterable[descriptor_pb2.FileDescriptorProto],
    output_dir: Optional[PathOrStr] = None,
    options: Optional[GeneratorOptions] = None,
) -> Iterator[ModuleType]:
    """Generates builder modules and imports them; yields the modules.

    Args:
      proto_files: FileDescriptorProtos to generate code for, dependencies
          before the files that import them
      output_dir: where to place the generated modules; a temporary directory
          is used if omitted
      options: generator settings

    Yields:
      the generated modules, in the order of proto_files
    """
    proto_files = list(proto_files)
    names = [generated_module_name(f.name) for f in proto_files]

    if output_dir:
        generate_files(output_dir, proto_files, options)
        yield from import_modules(output_dir, names)
    else:
        with tempfile.TemporaryDirectory(prefix='pwpb_py_') as tempdir:
            generate_files(tempdir, proto_files, options)
            yield from import_modules(tempdir, names)


def generate_and_import_file(
    proto_file: descriptor_pb2.FileDescriptorProto,
    dependencies: Iterable[descriptor_pb2.FileDescriptorProto] = (),
    output_dir: Optional[PathOrStr] = None,
    options: Optional[GeneratorOptions] = None,
) -> ModuleType:
    """Generates and imports the module for a single proto file."""
    modules = list(
        generate_and_import(
            [*dependencies, proto_file], output_dir=output_dir, options=options
        )
    )
    return modules[-1]
