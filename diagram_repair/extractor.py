"""
Pull the best diagram candidate out of a free-form model message.

Priority, first success wins:
  1. a fence tagged ```mermaid (an unclosed one counts: streams get cut off)
  2. any other fence whose first non-blank line opens with a diagram keyword
  3. the whole message, when it opens with a keyword or is legacy dialect
  4. a line sweep that starts at the first keyword line and keeps every
     line that still looks like diagram syntax

Nothing here raises: a message without a diagram comes back whole with
kind UNKNOWN and the validator reports it.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from diagram_repair.kinds import DiagramKind, classify_line, detect_kind, first_content_line
from diagram_repair.legacy import is_legacy


TAGGED_FENCE_RE = re.compile(r'```[ \t]*mermaid\b[^\n]*\n(.*?)```', re.DOTALL | re.IGNORECASE)
UNCLOSED_TAGGED_FENCE_RE = re.compile(r'```[ \t]*mermaid\b[^\n]*\n(.*)$', re.DOTALL | re.IGNORECASE)
ANY_FENCE_RE = re.compile(r'```([^\n`]*)\n(.*?)```', re.DOTALL)

# Lines that plausibly belong to a diagram body during the line sweep.
PLAUSIBLE_LINE_RES = [
    re.compile(r'^%%'),
    re.compile(r'-->|->|--|==>|-\.|<\||\|>|\.\.>|<\.\.|~~~'),
    re.compile(r'^[\w-]+\s*(?:\[|\(|\{|>)'),
    re.compile(
        r'^(?:participant|actor|class|section|title|note|Note|loop|alt|else|opt|par|and|'
        r'end|rect|activate|deactivate|autonumber|subgraph|direction|state|classDef|style|'
        r'linkStyle|click|dateFormat|axisFormat|excludes|todayMarker|commit|branch|checkout|'
        r'merge|cherry-pick|root|accTitle|accDescr|Person|System|Container|Component|Rel|'
        r'Boundary|Enterprise_Boundary|System_Boundary|Container_Boundary)\b'
    ),
    re.compile(r'^[^:.!?]{1,60}:\s*[^\s.!?][^.!?]*$'),
    re.compile(r'^\}\s*$'),
]

INDENTED_KINDS = (DiagramKind.MINDMAP, DiagramKind.TIMELINE)


@dataclass
class CandidateDiagram:
    text: str
    kind: DiagramKind


def _is_plausible(line: str) -> bool:
    stripped = line.strip()
    return any(p.search(stripped) for p in PLAUSIBLE_LINE_RES)


def _from_fences(message: str) -> Optional[str]:
    m = TAGGED_FENCE_RE.search(message)
    if m:
        return m.group(1).strip()

    for m in ANY_FENCE_RE.finditer(message):
        info, body = m.group(1).strip().lower(), m.group(2)
        if info.startswith('mermaid'):
            continue
        if classify_line(first_content_line(body)) != DiagramKind.UNKNOWN or is_legacy(body):
            return body.strip()

    m = UNCLOSED_TAGGED_FENCE_RE.search(message)
    if m:
        return m.group(1).rstrip('`').strip()
    return None


def _sweep_lines(message: str) -> Optional[str]:
    """Accumulate plausible lines starting at the first keyword line."""
    collected: List[str] = []
    kind = DiagramKind.UNKNOWN
    depth = 0

    for line in message.split('\n'):
        if kind == DiagramKind.UNKNOWN:
            kind = classify_line(line)
            if kind != DiagramKind.UNKNOWN:
                collected.append(line.strip())
            continue

        if depth > 0 or not line.strip():
            keep = True
        elif kind in INDENTED_KINDS and line[:1].isspace():
            keep = True
        else:
            keep = _is_plausible(line)
        if not keep:
            break

        collected.append(line.rstrip())
        depth += line.count('{') - line.count('}')
        depth = max(depth, 0)

    if not collected:
        return None
    return '\n'.join(collected).strip()


def _resolve_kind(text: str, hint: Optional[DiagramKind]) -> DiagramKind:
    kind = detect_kind(text)
    if kind == DiagramKind.UNKNOWN and is_legacy(text):
        kind = DiagramKind.FLOWCHART
    if kind == DiagramKind.UNKNOWN and hint is not None:
        kind = hint
    return kind


def extract(message: str, hint: Optional[DiagramKind] = None) -> CandidateDiagram:
    """Extract the best-candidate diagram text from *message*.

    *hint* only fills in the kind when no keyword decides it.
    """
    trimmed = (message or '').strip()

    text = _from_fences(trimmed)
    if text is None:
        if classify_line(first_content_line(trimmed)) != DiagramKind.UNKNOWN or is_legacy(trimmed):
            text = trimmed
        else:
            text = _sweep_lines(trimmed)
    if text is None:
        text = trimmed

    return CandidateDiagram(text=text, kind=_resolve_kind(text, hint))
