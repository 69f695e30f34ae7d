#!/usr/bin/env python3
"""
Command-line diagram repair.

Reads a model message (file, --code or stdin), runs the repair pipeline
and writes the resulting Mermaid text.  With --validate-only the input is
validated as-is, without extraction or repair.

Exit code is 0 when the diagram is valid and 1 otherwise.

Usage:
    diagram-repair -i answer.md -o diagram.mmd
    diagram-repair -c "$(cat answer.md)" --json
    cat diagram.mmd | diagram-repair --validate-only --kind sequence
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from diagram_repair.errors import DiagramRepairError, InvalidInputError
from diagram_repair.kinds import DiagramKind, parse_kind
from diagram_repair.pipeline import process
from diagram_repair.validator import validate


def _read_input(args: argparse.Namespace) -> str:
    if args.input:
        path = Path(args.input)
        if not path.exists():
            raise InvalidInputError(f"File not found: {path}")
        return path.read_text(encoding='utf-8')
    if args.code is not None:
        return args.code.replace('\\n', '\n')
    return sys.stdin.read()


def _parse_kind(value: Optional[str]) -> Optional[DiagramKind]:
    try:
        return parse_kind(value)
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc


def _write_output(text: str, output: Optional[str]) -> None:
    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text + '\n', encoding='utf-8')
        print(f"[repair] Wrote {path}", file=sys.stderr)
    else:
        print(text)


def _run_validate(text: str, kind: Optional[DiagramKind], args: argparse.Namespace) -> int:
    outcome = validate(text, kind)
    if args.json:
        _write_output(json.dumps(outcome.to_dict(), indent=2), args.output)
    elif outcome.valid:
        print("VALID", file=sys.stderr)
    else:
        print(f"INVALID ({outcome.severity.value}):", file=sys.stderr)
        for error in outcome.errors:
            print(f"  - {error}", file=sys.stderr)
    return 0 if outcome.valid else 1


def _run_process(text: str, kind: Optional[DiagramKind], args: argparse.Namespace) -> int:
    result = process(text, kind)

    badges = []
    if result.converted:
        badges.append('converted')
    if result.auto_fixed:
        badges.append('auto-fixed')
    if result.used_fallback:
        badges.append('fallback')
    print(
        f"[repair] kind={result.kind.value} {' '.join(badges) or 'unchanged'}",
        file=sys.stderr,
    )
    for error in result.outcome.errors:
        print(f"[repair]   - {error}", file=sys.stderr)

    if args.json:
        _write_output(json.dumps(result.to_dict(), indent=2), args.output)
    else:
        _write_output(result.text, args.output)
    return 0 if result.outcome.valid else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Repair and validate Mermaid diagrams from model output')
    source = parser.add_mutually_exclusive_group()
    source.add_argument('--input', '-i', help='Input file (model message or .mmd)')
    source.add_argument('--code', '-c', help='Message text given inline')
    source.add_argument('--stdin', action='store_true', help='Read the message from stdin (default)')
    parser.add_argument('--kind', help='Diagram kind hint (flowchart, sequence, class, er, ...)')
    parser.add_argument('--output', '-o', help='Write the result to this file instead of stdout')
    parser.add_argument('--json', action='store_true', help='Output the full result as JSON')
    parser.add_argument('--validate-only', action='store_true',
                        help='Validate the input as-is without extraction or repair')
    args = parser.parse_args(argv)

    try:
        text = _read_input(args)
        kind = _parse_kind(args.kind)
        if args.validate_only:
            return _run_validate(text, kind, args)
        return _run_process(text, kind, args)
    except DiagramRepairError as exc:
        print(f"[repair] Error: {exc.message}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
