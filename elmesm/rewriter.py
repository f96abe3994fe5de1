"""
Rewrite a compiled Elm bundle into an ES module.

The Elm compiler emits a single script of the following shape:

    (function(scope){
    'use strict';
    ...
    function _Platform_export(exports)
    {
        ...
    }
    function _Platform_mergeExportsProd(obj, exports)
    {
        ...
    }
    ...
    _Platform_export({'Main':{'init':...}});}(this));

Running that script installs the exports as `Elm` in the global scope. Modules
can't rely on that side effect. So this module comments out the wrapper's
header, the strict-mode directive, both export helpers, and the terminal export
call, and then appends `export const Elm = {'Main':{'init':...}};`.

Every step is anchored on a regular expression that must match exactly once.
When it doesn't, the step raises a `MalformedBundleError` naming itself, so a
bundle never gets half rewritten.
"""

import logging
import os
from pathlib import Path
import re
import tempfile
from typing import Callable, NamedTuple

from .error import DiskIOError, MalformedBundleError


__all__ = (
    'extract_export',
    'disable_wrapper_header',
    'disable_strict_directive',
    'neutralize_export_machinery',
    'emit_public_export',
    'rewrite',
    'rewrite_file',
    'survey',
)

logger = logging.getLogger('elmesm.rewriter')


DEFAULT_EXPORT_NAME = 'Elm'
DEFAULT_INPUT = 'binding.js'
DEFAULT_OUTPUT = 'binding2.js'

LINE_COMMENT = '// -- '

JS_IDENTIFIER = re.compile(r'[A-Za-z_$][\w$]*', re.ASCII)
JS_RESERVED_WORDS = frozenset((
    'await', 'break', 'case', 'catch', 'class', 'const', 'continue',
    'debugger', 'default', 'delete', 'do', 'else', 'enum', 'export',
    'extends', 'false', 'finally', 'for', 'function', 'if', 'implements',
    'import', 'in', 'instanceof', 'interface', 'let', 'new', 'null',
    'package', 'private', 'protected', 'public', 'return', 'static', 'super',
    'switch', 'this', 'throw', 'true', 'try', 'typeof', 'var', 'void',
    'while', 'with', 'yield',
))

WRAPPER_HEADER = re.compile(r'^\(function\s*\(scope\)\s*\{$', re.MULTILINE)
STRICT_DIRECTIVE = re.compile(r'''^[ \t]*['"]use strict['"];$''', re.MULTILINE)
EXPORT_HELPER = re.compile(r'function _Platform_export\b.*?\}\n', re.DOTALL)
MERGE_HELPER = re.compile(r'function _Platform_mergeExports\w*.*?\}\n\s*\}', re.DOTALL)
EXPORT_CALL = re.compile(r'^[ \t]*_Platform_export\(', re.MULTILINE)

# The greedy group plus the lookahead make sure the captured expression runs
# all the way to the wrapper's closing, which must end the bundle.
TERMINAL_CALL = re.compile(
    r'^[ \t]*_Platform_export\((?P<exports>.*)\);\n?\}\(this\)\);(?=\s*\Z)',
    re.MULTILINE | re.DOTALL,
)


class Anchor(NamedTuple):
    """A pattern some pipeline step requires to match exactly once."""
    step: str
    name: str
    pattern: 're.Pattern[str]'


ANCHORS = (
    Anchor('extract_export', 'export call', EXPORT_CALL),
    Anchor('extract_export', 'terminal export call', TERMINAL_CALL),
    Anchor('disable_wrapper_header', 'wrapper header', WRAPPER_HEADER),
    Anchor('disable_strict_directive', 'strict-mode directive', STRICT_DIRECTIVE),
    Anchor('neutralize_export_machinery', '_Platform_export definition', EXPORT_HELPER),
    Anchor(
        'neutralize_export_machinery',
        '_Platform_mergeExports definition',
        MERGE_HELPER,
    ),
)


def survey(text: str) -> 'list[tuple[Anchor, int]]':
    """Count the matches for every anchor. A well-formed bundle has all ones."""
    return [(anchor, len(anchor.pattern.findall(text))) for anchor in ANCHORS]


# --------------------------------------------------------------------------------------


def _count_problem(name: str, count: int) -> str:
    if count == 0:
        return f'no {name} found'
    return f'found {count} matches for {name}, expected exactly one'


def _replace_once(
    step: str,
    name: str,
    pattern: 're.Pattern[str]',
    text: str,
    replace: 'Callable[[str], str]',
) -> str:
    matches = list(pattern.finditer(text))
    if len(matches) != 1:
        raise MalformedBundleError(step, _count_problem(name, len(matches)))

    match = matches[0]
    logger.debug('%s: rewriting %s at offset %d', step, name, match.start())
    return text[:match.start()] + replace(match.group(0)) + text[match.end():]


def _comment_line(line: str) -> str:
    return LINE_COMMENT + line


def _comment_block(block: str) -> str:
    return f'/*\n{block}\n*/'


def _skip_string(text: str, start: int) -> int:
    quote = text[start]
    index = start + 1
    while index < len(text):
        char = text[index]
        if char == '\\':
            index += 2
            continue
        if char == quote:
            return index + 1
        if char == '\n' and quote != '`':
            return -1
        index += 1
    return -1


_CLOSING = {'(': ')', '[': ']', '{': '}'}


def is_self_contained(expression: str) -> bool:
    """
    Determine whether the expression's brackets balance. String literals and
    comments are skipped. This is no JavaScript parser, but it does reject
    captures that start or stop in the middle of a nested construct.
    """
    if not expression.strip():
        return False

    pending: 'list[str]' = []
    index = 0
    while index < len(expression):
        char = expression[index]
        if char in '\'"`':
            index = _skip_string(expression, index)
            if index < 0:
                return False
            continue
        if expression.startswith('//', index):
            index = expression.find('\n', index)
            if index < 0:
                break
            continue
        if expression.startswith('/*', index):
            index = expression.find('*/', index + 2)
            if index < 0:
                return False
            index += 2
            continue

        if char in _CLOSING:
            pending.append(_CLOSING[char])
        elif char in ')]}':
            if not pending or pending.pop() != char:
                return False
        index += 1

    return not pending


# --------------------------------------------------------------------------------------


def extract_export(text: str) -> str:
    """Capture the argument of the bundle's terminal `_Platform_export()` call."""
    step = 'extract_export'

    count = len(EXPORT_CALL.findall(text))
    if count != 1:
        raise MalformedBundleError(step, _count_problem('export call', count))

    match = TERMINAL_CALL.search(text)
    if match is None:
        raise MalformedBundleError(
            step, 'export call is not followed by "}(this));" at the end of the bundle')

    expression = match.group('exports')
    if not is_self_contained(expression):
        raise MalformedBundleError(
            step, 'exported expression is empty or has unbalanced brackets')

    logger.debug('%s: captured %d characters of exports', step, len(expression))
    return expression


def disable_wrapper_header(text: str) -> str:
    return _replace_once(
        'disable_wrapper_header', 'wrapper header', WRAPPER_HEADER, text, _comment_line)


def disable_strict_directive(text: str) -> str:
    return _replace_once(
        'disable_strict_directive',
        'strict-mode directive',
        STRICT_DIRECTIVE,
        text,
        _comment_line,
    )


def neutralize_export_machinery(text: str) -> str:
    """
    Turn both export helpers and the terminal export call into block comments.
    Since the terminal call's anchor is the same one `extract_export()` uses,
    this function must run after the exports have been captured.
    """
    step = 'neutralize_export_machinery'
    for name, pattern in (
        ('_Platform_export definition', EXPORT_HELPER),
        ('_Platform_mergeExports definition', MERGE_HELPER),
        ('terminal export call', TERMINAL_CALL),
    ):
        text = _replace_once(step, name, pattern, text, _comment_block)
    return text


def emit_public_export(
    text: str,
    expression: str,
    name: str = DEFAULT_EXPORT_NAME,
) -> str:
    if JS_IDENTIFIER.fullmatch(name) is None or name in JS_RESERVED_WORDS:
        raise ValueError(f'"{name}" is not a valid export name')
    return f'{text}\nexport const {name} = {expression};\n'


def rewrite(text: str, name: str = DEFAULT_EXPORT_NAME) -> str:
    """
    Rewrite the bundle into an ES module exporting its namespace as `name`.

    The exports are captured from the original text before any step touches it.
    Rewriting is deterministic, but not idempotent: Rewriting a module again
    fails because its export call no longer ends the text.
    """
    expression = extract_export(text)
    module = disable_wrapper_header(text)
    module = disable_strict_directive(module)
    module = neutralize_export_machinery(module)
    return emit_public_export(module, expression, name)


def rewrite_file(
    source: 'str | Path' = DEFAULT_INPUT,
    target: 'str | Path' = DEFAULT_OUTPUT,
    *,
    name: str = DEFAULT_EXPORT_NAME,
) -> str:
    """Rewrite the bundle at `source` and write the module to `target`."""
    try:
        bundle = Path(source).read_text(encoding='utf8')
    except (OSError, UnicodeDecodeError) as x:
        raise DiskIOError(source, x) from x

    module = rewrite(bundle, name)

    # Write next to the target and then rename, so that a failed write never
    # leaves a truncated module behind.
    target = Path(target)
    temporary: 'None | Path' = None
    try:
        with tempfile.NamedTemporaryFile(
            'w',
            encoding='utf8',
            dir=target.parent,
            prefix=f'.{target.name}.',
            delete=False,
        ) as file:
            temporary = Path(file.name)
            file.write(module)
        os.replace(temporary, target)
    except OSError as x:
        if temporary is not None:
            temporary.unlink(missing_ok=True)
        raise DiskIOError(target, x) from x

    logger.debug('wrote module "%s" with %d characters', target, len(module))
    return module
