from pathlib import Path
import sys

from elmesm.rewriter import survey


if __name__ == '__main__':
    if len(sys.argv) != 2:
        print('Usage: python -m elmesm.debug <path-to-bundle>')
        sys.exit(1)

    bundle = Path(sys.argv[1])
    if bundle.suffix not in ('.js', '.mjs'):
        print(f'Error: bundle "{bundle}" does not appear to be JavaScript')
        sys.exit(1)

    try:
        text = bundle.read_text(encoding='utf8')
    except Exception as x:
        print(f'Error: unable to read bundle ({x})')
        sys.exit(1)

    problems = 0
    for anchor, count in survey(text):
        if count == 1:
            print(f'{anchor.step}: {anchor.name} found once')
            continue

        problems += 1
        print(f'Error: {anchor.step}: {anchor.name} found {count} times')
        for match in list(anchor.pattern.finditer(text))[:3]:
            line = text.count('\n', 0, match.start()) + 1
            snippet = match.group(0).strip().partition('\n')[0]
            print(f'    line {line}: {snippet[:60]!r}')

    if problems:
        print(f'{problems} anchor(s) do not match exactly once; the bundle cannot be rewritten')
        sys.exit(1)
    print('bundle can be rewritten')
