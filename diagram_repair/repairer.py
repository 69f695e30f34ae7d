"""
Structural repair passes.

Every diagram goes through three stages in order:

    generic cleanup  ->  kind-specific pass  ->  whitespace normalization

All passes are total.  A construct a pass does not recognize is passed
through untouched and left for the validator to report.  Running repair on
its own output changes nothing.
"""

import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from diagram_repair import patterns as p
from diagram_repair.kinds import HEADERS, DiagramKind, detect_kind


@dataclass
class RepairStep:
    stage: str
    changed: bool


RepairTrace = List[RepairStep]

# Indentation is structure in a mindmap.
INDENT_SENSITIVE = (DiagramKind.MINDMAP,)

BODY_INDENT = '    '
BLOCK_INDENT = '  '
DEFAULT_PARTICIPANT = 'Actor1'


# ─── Generic cleanup ──────────────────────────────────────────────

def _collapse_blank_runs(lines: List[str]) -> List[str]:
    """Collapse runs of 3+ blank lines to one and trim blank edges."""
    out: List[str] = []
    run = 0
    for line in lines:
        if line.strip():
            if run >= 3:
                out.append('')
            else:
                out.extend([''] * run)
            run = 0
            out.append(line)
        else:
            run += 1
    while out and not out[0].strip():
        out.pop(0)
    return out


def generic_cleanup(text: str, kind: DiagramKind) -> str:
    keep_indent = kind in INDENT_SENSITIVE
    lines: List[str] = []
    for line in text.replace('\r\n', '\n').replace('\r', '\n').split('\n'):
        if p.FENCE_LINE_RE.match(line):
            continue
        line = line.rstrip() if keep_indent else line.strip()
        if p.ERROR_LINE_RE.match(line):
            continue
        lines.append(line)
    lines = _collapse_blank_runs(lines)
    # A kind known from a hint but missing its header line gets one.
    if lines and kind in HEADERS and detect_kind('\n'.join(lines)) == DiagramKind.UNKNOWN:
        lines.insert(_header_index(lines), HEADERS[kind])
    return '\n'.join(lines)


def _header_index(lines: List[str]) -> int:
    """Index of the header line: the first one that is not blank or a `%%` line."""
    for i, line in enumerate(lines):
        if line.strip() and not p.COMMENT_RE.match(line):
            return i
    return len(lines)


def _split_header(lines: List[str]) -> Tuple[List[str], List[str]]:
    """Split off everything up to and including the header line."""
    i = _header_index(lines)
    return lines[:i + 1], lines[i + 1:]


# ─── Sequence diagrams ────────────────────────────────────────────

class _SequenceState:
    """Running state for one sequence pass: last sender and declarations."""

    def __init__(self) -> None:
        self.last_sender: Optional[str] = None
        self.declared: 'OrderedDict[str, str]' = OrderedDict()

    def declare(self, name: str, keyword: str = 'participant', alias: Optional[str] = None) -> None:
        key = p.unquote(name)
        if key in self.declared:
            return
        line = f'{keyword} {p.quote_if_spaced(name)}'
        if alias:
            line += f' as {alias.strip()}'
        self.declared[key] = line

    def default_sender(self) -> str:
        """Sender for a line that starts with an arrow."""
        if self.last_sender:
            return self.last_sender
        if self.declared:
            return next(iter(self.declared))
        return DEFAULT_PARTICIPANT


def _sanitize_message(message: str) -> str:
    return p.EMBEDDED_ARROW_RE.sub(
        lambda m: f'{m.group("left")} {p.ARROW_PLACEHOLDER} ', message
    )


def _format_message(m: 're.Match', state: _SequenceState) -> str:
    sender, receiver = m.group('sender'), m.group('receiver')
    state.declare(sender)
    state.declare(receiver)
    state.last_sender = sender

    arrow = p.BARE_ARROWS.get(m.group('arrow'), m.group('arrow'))
    message = _sanitize_message((m.group('message') or '').strip())
    line = f'{sender}{arrow}{m.group("act")}{receiver}:'
    return f'{line} {message}' if message else line


def repair_sequence(lines: List[str]) -> List[str]:
    header, body = _split_header(lines)
    state = _SequenceState()
    out: List[str] = []

    for line in body:
        stripped = line.strip()
        if not stripped or p.COMMENT_RE.match(stripped):
            out.append(line)
            continue

        m = p.SEQ_PARTICIPANT_RE.match(stripped)
        if m:
            state.declare(m.group('name'), m.group('keyword').lower(), m.group('alias'))
            continue

        if p.SEQ_CONTROL_RE.match(stripped):
            out.append(stripped)
            continue

        if p.SEQ_LEADING_ARROW_RE.match(stripped):
            sender = state.default_sender()
            m = p.SEQ_MESSAGE_RE.match(f'{sender}{stripped}')
            if m:
                out.append(_format_message(m, state))
            else:
                out.append(stripped)
            continue

        m = p.SEQ_MESSAGE_RE.match(stripped)
        if m:
            out.append(_format_message(m, state))
            continue

        out.append(stripped)

    return header + list(state.declared.values()) + out


# ─── Flowcharts ───────────────────────────────────────────────────

def _quote_paren_labels(line: str) -> str:
    return p.UNQUOTED_PAREN_LABEL_RE.sub(lambda m: f'["{m.group(1)}"]', line)


def repair_flowchart(lines: List[str]) -> List[str]:
    header, body = _split_header(lines)
    out: List[str] = []

    for line in body:
        stripped = line.strip()
        if (not stripped or p.COMMENT_RE.match(stripped)
                or p.FLOW_CONTROL_RE.match(stripped)):
            out.append(line)
            continue

        stripped = _quote_paren_labels(stripped)
        if p.FLOW_ARROW_RE.search(stripped) or p.NODE_DEF_RE.match(stripped):
            out.append(stripped)
            continue

        tokens = p.split_node_tokens(stripped)
        if tokens and len(tokens) >= 2:
            out.append(' --> '.join(tokens))
            continue

        out.append(stripped)

    return header + out


# ─── Class diagrams ───────────────────────────────────────────────

def _expand_inline_class(m: 're.Match') -> Tuple[List[str], str]:
    """'class A { +x +y() } rest' -> (block lines, rest)."""
    head = re.sub(r'\s+', ' ', m.group('head').strip())
    body = m.group('body').strip()
    if not body:
        return [head], m.group('rest').strip()
    members = [s for s in re.split(r'\s+(?=[+\-#~])', body) if s.strip()]
    block = [f'{head} {{'] + [BLOCK_INDENT + member.strip() for member in members] + ['}']
    return block, m.group('rest').strip()


def _quote_relation_label(line: str) -> str:
    m = p.CLASS_REL_RE.match(line)
    if not m or not m.group('label'):
        return line
    label = m.group('label')
    quoted = p.quote_if_spaced(label)
    if quoted == label:
        return line
    return line[:m.start('label')] + quoted + line[m.end('label'):]


def repair_class(lines: List[str]) -> List[str]:
    header, body = _split_header(lines)
    out: List[str] = []
    in_body = False
    pending = list(body)

    while pending:
        stripped = pending.pop(0).strip()
        if not stripped:
            out.append('')
            continue

        if in_body:
            if stripped == '}':
                in_body = False
                out.append('}')
            elif stripped.startswith('}'):
                in_body = False
                out.append('}')
                pending.insert(0, stripped[1:])
            else:
                out.append(BLOCK_INDENT + stripped)
            continue

        m = p.CLASS_INLINE_BODY_RE.match(stripped)
        if m:
            block, rest = _expand_inline_class(m)
            out.extend(block)
            if rest:
                pending.insert(0, rest)
            continue

        if stripped.endswith('{'):
            in_body = True
            out.append(re.sub(r'\s*\{$', ' {', stripped))
            continue

        if stripped.startswith('}') and len(stripped) > 1:
            pending.insert(0, stripped[1:])
            continue

        out.append(_quote_relation_label(stripped))

    return header + out


# ─── Entity-relationship diagrams ─────────────────────────────────

def _normalize_attribute(line: str) -> str:
    m = p.ER_ATTR_RE.match(line)
    if not m:
        return BLOCK_INDENT + line
    parts = [m.group('type'), m.group('name')]
    keys = re.findall(r'\b(?:PK|FK|UK)\b', m.group('keys') or '')
    if keys:
        parts.append(', '.join(keys))
    if m.group('comment'):
        parts.append(m.group('comment'))
    return BLOCK_INDENT + ' '.join(parts)


def _split_inline_attributes(body: str) -> List[str]:
    """'int id PK string name "comment"' -> one attribute per entry."""
    tokens = re.findall(r'"[^"]*"|[^\s,]+', body)
    attributes: List[List[str]] = []
    i = 0
    while i + 1 < len(tokens):
        attr = [tokens[i], tokens[i + 1]]
        i += 2
        keys = []
        while i < len(tokens) and tokens[i] in p.ER_KEYS:
            keys.append(tokens[i])
            i += 1
        if keys:
            attr.append(', '.join(keys))
        if i < len(tokens) and tokens[i].startswith('"'):
            attr.append(tokens[i])
            i += 1
        attributes.append(attr)
    if i < len(tokens):
        attributes.append(tokens[i:])
    return [' '.join(attr) for attr in attributes]


def _quote_er_label(m: 're.Match') -> str:
    label = m.group('label')
    if not p.is_quoted(label):
        label = p.quote(label)
    return f'{m.group("left")} {m.group("card")} {m.group("right")} : {label}'


def repair_er(lines: List[str]) -> List[str]:
    header, body = _split_header(lines)
    out: List[str] = []
    in_block = False

    for line in body:
        stripped = line.strip()
        if not stripped:
            out.append('')
            continue

        if in_block:
            if stripped == '}':
                in_block = False
                out.append('}')
            else:
                out.append(_normalize_attribute(stripped))
            continue

        if p.ER_BLOCK_OPEN_RE.match(stripped):
            in_block = True
            out.append(re.sub(r'\s*\{$', ' {', stripped))
            continue

        m = p.ER_INLINE_BLOCK_RE.match(stripped)
        if m:
            out.append(f'{m.group("entity")} {{')
            out.extend(_normalize_attribute(attr) for attr in _split_inline_attributes(m.group('body')))
            out.append('}')
            continue

        m = p.ER_REL_RE.match(stripped)
        if m:
            out.append(_quote_er_label(m))
            continue

        out.append(stripped)

    return header + out


# ─── Journeys ─────────────────────────────────────────────────────

def _complete_task(line: str) -> str:
    parts = [part.strip() for part in line.split(':')]
    task = parts[0]
    if len(parts) == 1:
        return f'{task}: {p.DEFAULT_JOURNEY_SCORE}: {p.DEFAULT_JOURNEY_ACTOR}'
    if len(parts) == 2:
        second = parts[1]
        if second.isdigit():
            return f'{task}: {second}: {p.DEFAULT_JOURNEY_ACTOR}'
        return f'{task}: {p.DEFAULT_JOURNEY_SCORE}: {second or p.DEFAULT_JOURNEY_ACTOR}'
    score = parts[1] if parts[1].isdigit() else p.DEFAULT_JOURNEY_SCORE
    actors = ': '.join(part for part in parts[2:] if part) or p.DEFAULT_JOURNEY_ACTOR
    return f'{task}: {score}: {actors}'


def repair_journey(lines: List[str]) -> List[str]:
    header, body = _split_header(lines)
    out: List[str] = []
    for line in body:
        stripped = line.strip()
        if not stripped or p.COMMENT_RE.match(stripped) or p.JOURNEY_HEADER_RE.match(stripped):
            out.append(stripped)
            continue
        out.append(_complete_task(stripped) if stripped.strip(':') else stripped)
    return header + out


# ─── Whitespace normalization ─────────────────────────────────────

def normalize_whitespace(text: str, kind: DiagramKind) -> str:
    lines = [line.rstrip() for line in text.split('\n')]
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    if not lines or kind in INDENT_SENSITIVE:
        return '\n'.join(lines)

    header, body = _split_header(lines)
    header = [line.strip() for line in header]
    return '\n'.join(header + [BODY_INDENT + line if line else '' for line in body])


# ─── Dispatch ─────────────────────────────────────────────────────

KIND_PASSES: Dict[DiagramKind, Callable[[List[str]], List[str]]] = {
    DiagramKind.SEQUENCE: repair_sequence,
    DiagramKind.FLOWCHART: repair_flowchart,
    DiagramKind.CLASS: repair_class,
    DiagramKind.ER: repair_er,
    DiagramKind.JOURNEY: repair_journey,
}


def repair(text: str, kind: DiagramKind) -> Tuple[str, RepairTrace]:
    """Run generic cleanup, the pass for *kind* and whitespace normalization."""
    trace: RepairTrace = []

    cleaned = generic_cleanup(text or '', kind)
    trace.append(RepairStep('generic_cleanup', cleaned != (text or '')))

    kind_pass = KIND_PASSES.get(kind)
    passed = '\n'.join(kind_pass(cleaned.split('\n'))) if kind_pass else cleaned
    trace.append(RepairStep(f'{kind.value}_pass', passed != cleaned))

    normalized = normalize_whitespace(passed, kind)
    trace.append(RepairStep('whitespace_normalization', normalized != passed))

    return normalized, trace
