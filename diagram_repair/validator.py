"""
Approximate-grammar validation.

Checks accumulate independently; a failing check appends a diagnostic and
the next check still runs.  Two conditions short-circuit with a single
High-severity error: empty text, and text whose kind cannot be decided.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from diagram_repair import patterns as p
from diagram_repair.kinds import DiagramKind, classify_line, detect_kind, first_content_line


class Severity(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


@dataclass
class ValidationOutcome:
    valid: bool
    errors: List[str] = field(default_factory=list)
    severity: Optional[Severity] = None

    def to_dict(self) -> dict:
        return {
            'valid': self.valid,
            'errors': list(self.errors),
            'severity': self.severity.value if self.severity else None,
        }


def severity_for(errors: List[str]) -> Optional[Severity]:
    """0 -> None, 1 -> Low, 2-3 -> Medium, more -> High."""
    count = len(errors)
    if count == 0:
        return None
    if count == 1:
        return Severity.LOW
    if count <= 3:
        return Severity.MEDIUM
    return Severity.HIGH


def _outcome(errors: List[str]) -> ValidationOutcome:
    return ValidationOutcome(valid=not errors, errors=errors, severity=severity_for(errors))


def _fatal(error: str) -> ValidationOutcome:
    return ValidationOutcome(valid=False, errors=[error], severity=Severity.HIGH)


def _body_lines(text: str) -> List[Tuple[int, str]]:
    """(line number, stripped line) for every content line after the header."""
    lines = text.split('\n')
    body: List[Tuple[int, str]] = []
    seen_header = False
    for number, line in enumerate(lines, start=1):
        stripped = line.strip()
        if not stripped:
            continue
        if not seen_header and not p.COMMENT_RE.match(stripped):
            seen_header = True
            continue
        if p.COMMENT_RE.match(stripped):
            continue
        body.append((number, stripped))
    return body


# ─── Kind-specific checks ─────────────────────────────────────────

def check_sequence(body: List[Tuple[int, str]]) -> List[str]:
    errors = []
    for number, line in body:
        if p.SEQ_PARTICIPANT_RE.match(line) or p.SEQ_CONTROL_RE.match(line):
            continue
        if not p.SEQ_STRICT_MESSAGE_RE.match(line):
            errors.append(f"Line {number}: not a message or control statement: '{line}'")
    return errors


def check_flowchart(body: List[Tuple[int, str]]) -> List[str]:
    errors = []
    for number, line in body:
        if p.FLOW_CONTROL_RE.match(line) or p.FLOW_ARROW_RE.search(line) or p.NODE_DEF_RE.match(line):
            continue
        errors.append(f"Line {number}: no arrow or node definition: '{line}'")
    return errors


def check_class(body: List[Tuple[int, str]]) -> List[str]:
    errors = []
    in_body = False
    for number, line in body:
        if in_body:
            if line == '}':
                in_body = False
            continue
        if line.startswith('class ') and not p.CLASS_DECL_RE.match(line):
            errors.append(f"Line {number}: malformed class declaration: '{line}'")
        if line.endswith('{'):
            in_body = True
    if in_body:
        errors.append('Unclosed class body')
    return errors


def check_er(body: List[Tuple[int, str]]) -> List[str]:
    errors = []
    in_block = False
    for number, line in body:
        if in_block:
            if line == '}':
                in_block = False
            continue
        if p.ER_BLOCK_OPEN_RE.match(line):
            in_block = True
            continue
        if p.ER_REL_RE.match(line) or p.ER_ENTITY_ONLY_RE.match(line):
            continue
        errors.append(f"Line {number}: not a relationship or entity block: '{line}'")
    if in_block:
        errors.append('Unclosed entity attribute block')
    return errors


def check_journey(body: List[Tuple[int, str]]) -> List[str]:
    errors = []
    for number, line in body:
        if p.JOURNEY_HEADER_RE.match(line) or p.JOURNEY_TASK_RE.match(line):
            continue
        errors.append(f"Line {number}: task must read 'task: score: actor': '{line}'")
    return errors


KIND_CHECKS: Dict[DiagramKind, Callable[[List[Tuple[int, str]]], List[str]]] = {
    DiagramKind.SEQUENCE: check_sequence,
    DiagramKind.FLOWCHART: check_flowchart,
    DiagramKind.CLASS: check_class,
    DiagramKind.ER: check_er,
    DiagramKind.JOURNEY: check_journey,
}


# ─── Residual error tokens ────────────────────────────────────────

TOKEN_CHECKED_KINDS = (
    DiagramKind.FLOWCHART,
    DiagramKind.SEQUENCE,
    DiagramKind.CLASS,
    DiagramKind.ER,
    DiagramKind.STATE,
)


def check_residual_tokens(body: List[Tuple[int, str]]) -> List[str]:
    errors = []
    depth = 0
    for number, line in body:
        if depth == 0 and p.has_residual_token(line):
            errors.append(f"Line {number}: residual error token: '{line}'")
        if line.endswith('{'):
            depth += 1
        elif line == '}' and depth:
            depth -= 1
    return errors


# ─── Entry point ──────────────────────────────────────────────────

def validate(text: str, kind: Optional[DiagramKind] = None) -> ValidationOutcome:
    """Validate *text* as a diagram of *kind* (detected from the header when omitted)."""
    if not (text or '').strip():
        return _fatal('Empty diagram text')

    header = first_content_line(text)
    errors: List[str] = []

    if kind is None or kind == DiagramKind.UNKNOWN:
        kind = detect_kind(text)
        if kind == DiagramKind.UNKNOWN:
            return _fatal(f"No recognized diagram type on first line: '{header}'")
    elif classify_line(header) == DiagramKind.UNKNOWN:
        errors.append(f"No recognized diagram type on first line: '{header}'")

    body = _body_lines(text)

    check = KIND_CHECKS.get(kind)
    if check:
        errors.extend(check(body))

    if kind in TOKEN_CHECKED_KINDS:
        errors.extend(check_residual_tokens(body))

    return _outcome(errors)
