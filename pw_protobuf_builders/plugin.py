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
"""pw_protobuf_builders compiler plugin.

This file implements a protobuf compiler plugin which generates Python modules
with immutable message classes and builders for protobuf messages.

  protoc --plugin=protoc-gen-pwpb_py=$(which protoc-gen-pwpb_py) \\
      --pwpb_py_out=OUT_DIR --pwpb_py_opt=--no-type-checks foo.proto
"""

import logging
import sys
from argparse import ArgumentParser, Namespace
from shlex import shlex

from google.protobuf.compiler import plugin_pb2

from pw_protobuf_builders import codegen
from pw_protobuf_builders.field_generator import GeneratorOptions

_LOG = logging.getLogger(__name__)


def parse_parameter_options(parameter: str) -> Namespace:
    """Parses parameters passed through from protoc.

    These parameters come in via passing `--${NAME}_opt` parameters to protoc,
    where protoc-gen-${NAME} is the supplied name of the plugin.
    """
    parser = ArgumentParser()
    parser.add_argument(
        '--runtime-package',
        default=GeneratorOptions.runtime_package,
        help='Package from which generated code imports the message and '
        'wire runtime modules',
    )
    parser.add_argument(
        '--no-type-checks',
        dest='type_checks',
        action='store_false',
        help='Do not check the types of values passed to generated mutators',
    )
    parser.add_argument(
        '-v',
        '--verbose',
        action='store_true',
        help='Log debug messages to stderr',
    )

    # protoc passes the custom arguments in shell quoted form, separated by
    # commas. Use shlex to split them, correctly handling quoted sections, with
    # equivalent options to IFS=","
    lex = shlex(parameter, posix=True)
    lex.whitespace_split = True
    lex.whitespace = ','
    lex.commenters = ''
    args = list(lex)

    return parser.parse_args(args)


def process_proto_request(
    req: plugin_pb2.CodeGeneratorRequest, res: plugin_pb2.CodeGeneratorResponse
) -> bool:
    """Handles a protoc CodeGeneratorRequest message.

    Generates code for the files in the request and writes the output to the
    specified CodeGeneratorResponse message.

    Args:
      req: A CodeGeneratorRequest for a proto compilation.
      res: A CodeGeneratorResponse to populate with the plugin's output.

    Returns:
      False if code could not be generated for one of the files; res.error
      then describes the failure.
    """
    args = parse_parameter_options(req.parameter)
    if args.verbose:
        logging.getLogger('pw_protobuf_builders').setLevel(logging.DEBUG)

    codegen_options = GeneratorOptions(
        runtime_package=args.runtime_package,
        type_checks=args.type_checks,
    )

    # proto_file holds every file in the request along with all of the files
    # they import, so it is what message references resolve against.
    failed = []
    for proto_file in req.proto_file:
        if proto_file.name not in req.file_to_generate:
            continue

        output_files = codegen.process_proto_file(
            proto_file, req.proto_file, codegen_options
        )

        if output_files is None:
            failed.append(proto_file.name)
            continue

        for output_file in output_files:
            fd = res.file.add()
            fd.name = output_file.name()
            fd.content = output_file.content()

    if failed:
        res.error = 'Failed to generate code for ' + ', '.join(failed)
        return False

    return True


def main() -> int:
    """Protobuf compiler plugin entrypoint.

    Reads a CodeGeneratorRequest proto from stdin and writes a
    CodeGeneratorResponse to stdout.
    """
    # protoc captures stdout, so log to stderr.
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.INFO,
        format=f'{codegen.PLUGIN_NAME}: %(levelname)s: %(message)s',
    )

    data = sys.stdin.buffer.read()
    request = plugin_pb2.CodeGeneratorRequest.FromString(data)
    response = plugin_pb2.CodeGeneratorResponse()

    # Declare that this plugin supports optional fields in proto3.
    response.supported_features |= (  # type: ignore[attr-defined]
        response.FEATURE_PROTO3_OPTIONAL
    )  # type: ignore[attr-defined]

    success = process_proto_request(request, response)

    # Errors are reported through the response, which protoc prints.
    sys.stdout.buffer.write(response.SerializeToString())

    if not success:
        _LOG.error('Failed to generate protobuf code')
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
