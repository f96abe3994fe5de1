from argparse import ArgumentParser, HelpFormatter, RawTextHelpFormatter
from dataclasses import dataclass
import json
import logging
import os
import sys
from textwrap import dedent
import traceback

from .driver import DEFAULT_ACCESSOR, DEFAULT_PORT
from .node import run_with_node
from .rewriter import DEFAULT_INPUT, DEFAULT_OUTPUT, rewrite_file


def parser() -> ArgumentParser:
    try:
        width = min(os.get_terminal_size()[0], 70)
    except OSError:
        width = 70

    def width_limited_formatter(prog: str) -> HelpFormatter:
        return RawTextHelpFormatter(prog, width=width)

    parser = ArgumentParser('elmesm',
        description=dedent("""
            Convert the output of "elm make" into an ES module.

            The Elm compiler wraps a program in a function that runs
            immediately and installs the program's modules as "Elm" in the
            global scope. elmesm comments out that wrapper and the export
            machinery and instead appends "export const Elm = ...;", so that
            the program can be imported like any other module.

            The rewritten module retains all original code, with the disabled
            parts turned into comments, so that it remains easy to inspect.
            If the bundle does not have the expected shape, elmesm stops and
            names the step that failed without writing any output.

            Use --run to execute the module once with Node.js. elmesm then
            calls Elm.Binding.init() with the given flags and prints the first
            value the module sends through its "out" port.
        """),
        formatter_class=width_limited_formatter)
    parser.add_argument(
        '-o', '--output',
        metavar='FILENAME',
        help=f'write module to this file (default: {DEFAULT_OUTPUT})')
    parser.add_argument(
        '--run',
        metavar='FLAGS',
        help='run the module with Node.js, using these\nflags written as JSON')
    parser.add_argument(
        '--accessor',
        metavar='PATH',
        help=f'module to initialize (default: {DEFAULT_ACCESSOR})')
    parser.add_argument(
        '--port',
        metavar='NAME',
        help=f'port to read the result from (default: {DEFAULT_PORT})')
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='enable verbose output')
    parser.add_argument(
        'bundle',
        metavar='BUNDLE', nargs='?',
        help=f'the compiled Elm bundle (default: {DEFAULT_INPUT})')
    return parser


@dataclass
class ToolOptions:
    bundle: 'None | str' = None
    output: 'None | str' = None
    run: 'None | str' = None
    accessor: 'None | str' = None
    port: 'None | str' = None
    verbose: bool = False


def main() -> None:
    options = parser().parse_args(namespace=ToolOptions())
    logging.basicConfig(
        format='%(name)s: %(message)s',
        level=logging.DEBUG if options.verbose else logging.WARNING,
    )

    try:
        flags = None if options.run is None else json.loads(options.run)
        module = rewrite_file(
            options.bundle or DEFAULT_INPUT,
            options.output or DEFAULT_OUTPUT,
        )

        if options.run is not None:
            output = run_with_node(
                module,
                flags,
                accessor=options.accessor or DEFAULT_ACCESSOR,
                port=options.port or DEFAULT_PORT,
            )
            print(json.dumps(output))
    except Exception as x:
        if options.verbose:
            traceback.print_exception(x)
        else:
            print(f'Error: {x}')
        sys.exit(1)


if __name__ == '__main__':
    main()
