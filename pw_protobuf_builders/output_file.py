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
"""Text buffer for generated source files."""

import re
from typing import Mapping

_VARIABLE = re.compile(r'\$(\w*)\$')


class OutputFile:
    """A buffer to which data is written.

    Example:

    ```
    output = OutputFile('hello.py')
    output.write_line('def main():')
    with output.indent():
        output.write_template({'who': 'world'}, 'print("Hello, $who$")')
    ```

    Produces:
    ```
    def main():
        print("Hello, world")
    ```
    """

    INDENT_WIDTH = 4

    def __init__(self, filename: str):
        self._filename: str = filename
        self._content: list[str] = []
        self._indentation: int = 0

    def write_line(self, line: str = '') -> None:
        if line:
            self._content.append(' ' * self._indentation)
            self._content.append(line)
        self._content.append('\n')

    def write_template(self, variables: Mapping[str, object], template: str):
        """Writes a template, replacing $name$ with variables['name'].

        The template is dedented as a block and each of its lines is written
        at the current indentation. Leading and trailing blank lines are
        dropped. $$ produces a literal $.

        Raises:
          ValueError: The template refers to a variable that is not defined.
        """

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if not name:
                return '$'
            if name not in variables:
                raise ValueError(f'Undefined template variable ${name}$')
            return str(variables[name])

        lines = template.split('\n')
        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()

        margin = min(
            (len(line) - len(line.lstrip()) for line in lines if line.strip()),
            default=0,
        )

        for line in lines:
            self.write_line(_VARIABLE.sub(substitute, line[margin:].rstrip()))

    def indent(
        self, width: int = INDENT_WIDTH
    ) -> 'OutputFile._IndentationContext':
        """Increases the indentation level of the output."""
        return self._IndentationContext(self, width)

    def name(self) -> str:
        return self._filename

    def content(self) -> str:
        return ''.join(self._content)

    class _IndentationContext:
        """Context that increases the output's indentation when it is active."""

        def __init__(self, output: 'OutputFile', width: int):
            self._output = output
            self._width = width

        def __enter__(self):
            self._output._indentation += self._width

        def __exit__(self, typ, value, traceback):
            self._output._indentation -= self._width
