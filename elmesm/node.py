"""
Run a rewritten Elm module with Node.js.

This is the out-of-process counterpart to `elmesm.driver`: it writes the module
and a small runner script into a temporary directory, has Node.js import the
module, initialize it with the given flags, and print the first value sent
through the port as JSON.
"""

import json
import logging
from pathlib import Path
import re
import subprocess
import tempfile
from typing import Any

from packaging.version import InvalidVersion, Version

from .driver import DEFAULT_ACCESSOR, DEFAULT_PORT
from .error import DiskIOError, NodeRuntimeError


__all__ = ('MINIMUM_NODE_VERSION', 'node_version', 'parse_node_version', 'run_with_node')

logger = logging.getLogger('elmesm.node')


# Node.js supports ES modules without flags since version 14.
MINIMUM_NODE_VERSION = Version('14')

_NODE_VERSION = re.compile(r'^\s*v?(?P<version>\S+)\s*$')

_MODULE_FILE = 'module.mjs'
_RUNNER_FILE = 'run.mjs'

_RUNNER = """\
import * as bindings from "./module.mjs";

const [path, port, flags] = JSON.parse(process.argv[2]);

let target = bindings;
for (const segment of path) {
  target = target[segment];
}

const channel = target.init({ flags }).ports[port];
const listener = (output) => {
  channel.unsubscribe(listener);
  const json = JSON.stringify(output === undefined ? null : output);
  process.stdout.write(json, () => process.exit(0));
};
channel.subscribe(listener);
"""


def parse_node_version(text: str) -> Version:
    """Parse the output of `node --version`, e.g., `v20.11.1`."""
    match = _NODE_VERSION.match(text)
    if match is None:
        raise NodeRuntimeError(f'unrecognized Node.js version "{text.strip()}"')
    try:
        return Version(match.group('version'))
    except InvalidVersion as x:
        raise NodeRuntimeError(f'unrecognized Node.js version "{text.strip()}"') from x


def node_version(node: str = 'node') -> Version:
    try:
        completion = subprocess.run(
            [node, '--version'], capture_output=True, text=True, check=True)
    except FileNotFoundError as x:
        raise NodeRuntimeError(f'Node.js executable "{node}" not found') from x
    except subprocess.CalledProcessError as x:
        raise NodeRuntimeError(
            f'"{node} --version" failed with exit status {x.returncode}') from x
    return parse_node_version(completion.stdout)


def run_with_node(
    module_text: str,
    initial_value: object,
    *,
    accessor: str = DEFAULT_ACCESSOR,
    port: str = DEFAULT_PORT,
    node: str = 'node',
    timeout: 'None | float' = None,
) -> Any:
    """
    Run the ES module with Node.js and return the first value sent through the
    port. The initial value must be serializable as JSON. Without timeout, a
    module that keeps Node.js busy but never sends a value blocks forever.
    """
    version = node_version(node)
    if version < MINIMUM_NODE_VERSION:
        raise NodeRuntimeError(
            f'Node.js {version} is too old; elmesm requires {MINIMUM_NODE_VERSION} or later')

    argument = json.dumps([accessor.split('.'), port, initial_value])

    with tempfile.TemporaryDirectory(prefix='elmesm-') as tmpdir:
        directory = Path(tmpdir)
        for name, content in ((_MODULE_FILE, module_text), (_RUNNER_FILE, _RUNNER)):
            try:
                (directory / name).write_text(content, encoding='utf8')
            except OSError as x:
                raise DiskIOError(directory / name, x) from x

        logger.debug('running "%s" with Node.js %s', accessor, version)
        try:
            completion = subprocess.run(
                [node, _RUNNER_FILE, argument],
                capture_output=True,
                text=True,
                cwd=directory,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as x:
            raise NodeRuntimeError(
                f'port "{port}" sent no value within {timeout} seconds') from x

    if completion.returncode != 0:
        raise NodeRuntimeError(
            f'Node.js exited with status {completion.returncode}: '
            f'{completion.stderr.strip()}')
    if completion.stdout == '':
        raise NodeRuntimeError(f'module exited without sending a value to port "{port}"')

    try:
        return json.loads(completion.stdout)
    except json.JSONDecodeError as x:
        raise NodeRuntimeError(f'port "{port}" sent malformed JSON ({x})') from x
