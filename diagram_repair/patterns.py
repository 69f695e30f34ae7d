"""
Line-level Mermaid patterns shared by the repairer and the validator.

These cover only the subset of the grammar needed to spot and fix the
defects language models commonly produce.  They are not a parser.
"""

import re
from typing import List, Optional


# ─── Fences and error tokens ──────────────────────────────────────

FENCE_LINE_RE = re.compile(r'^\s*```')

ERROR_TOKENS = ('error', 'undefined', 'null')

ERROR_LINE_RE = re.compile(
    r'^\s*(?:' + '|'.join(ERROR_TOKENS) + r')\s*;?\s*$', re.IGNORECASE
)

RESIDUAL_TOKEN_RE = re.compile(
    r'(?<![\w.])(?:' + '|'.join(ERROR_TOKENS) + r')(?![\w.])', re.IGNORECASE
)

# Spans that hold label text rather than identifiers.
_LABEL_SPAN_RES = [
    re.compile(r'"[^"]*"'),
    re.compile(r'\|[^|]*\|'),
    re.compile(r'--\s.*?\s-->'),
    re.compile(r'\[[^\]]*\]'),
    re.compile(r'\([^)]*\)'),
    re.compile(r'\{[^}]*\}'),
]


def strip_labels(line: str) -> str:
    """Remove quoted, bracketed and post-colon label text from a line."""
    for pattern in _LABEL_SPAN_RES:
        line = pattern.sub(' ', line)
    return line.split(':', 1)[0]


def has_residual_token(line: str) -> bool:
    return bool(RESIDUAL_TOKEN_RE.search(strip_labels(line)))


def is_quoted(value: str) -> bool:
    value = value.strip()
    return len(value) >= 2 and value.startswith('"') and value.endswith('"')


def quote(value: str) -> str:
    """Wrap *value* in double quotes, escaping embedded quotes."""
    return '"' + value.replace('"', '#quot;') + '"'


def quote_if_spaced(value: str) -> str:
    value = value.strip()
    if is_quoted(value) or not re.search(r'\s', value):
        return value
    return quote(value)


def unquote(value: str) -> str:
    value = value.strip()
    return value[1:-1] if is_quoted(value) else value


# ─── Sequence diagrams ────────────────────────────────────────────

SEQ_ARROW = r'(?:-->>|->>|--x|-x|--\)|-\)|-->|->)'
# Bare '-' and '--' are malformed arrows the repairer normalizes.
SEQ_ARROW_LOOSE = r'(?:-->>|->>|--x|-x|--\)|-\)|-->|->|--|-)'
SEQ_NAME = r'(?:"[^"]+"|[\w.]+)'

SEQ_MESSAGE_RE = re.compile(
    rf'^(?P<sender>{SEQ_NAME})\s*(?P<arrow>{SEQ_ARROW_LOOSE})(?P<act>[+-]?)\s*'
    rf'(?P<receiver>{SEQ_NAME})\s*(?::\s*(?P<message>.*))?$'
)

SEQ_STRICT_MESSAGE_RE = re.compile(
    rf'^{SEQ_NAME}\s*{SEQ_ARROW}[+-]?\s*{SEQ_NAME}\s*(?::.*)?$'
)

SEQ_LEADING_ARROW_RE = re.compile(rf'^{SEQ_ARROW_LOOSE}[+-]?\s*{SEQ_NAME}')

SEQ_PARTICIPANT_RE = re.compile(
    r'^(?P<keyword>participant|actor)\s+(?P<name>"[^"]+"|.+?)(?:\s+as\s+(?P<alias>.+?))?\s*$',
    re.IGNORECASE,
)

SEQ_CONTROL_RE = re.compile(
    r'^(?:note|loop|alt|else|opt|par|and|end|rect|activate|deactivate|autonumber|'
    r'title|critical|option|break|box|create|destroy|links?|properties|details|'
    r'accTitle|accDescr)\b',
    re.IGNORECASE,
)

# Arrow expressions inside message text confuse the grammar.  The right
# operand is only looked at, so chained arrows are all replaced in one pass.
EMBEDDED_ARROW_RE = re.compile(r'(?P<left>[\w.]+)\s*(?:-->>|->>|-->|->)[+-]?\s*(?=[\w.])')

ARROW_PLACEHOLDER = 'to'

BARE_ARROWS = {'-': '->', '--': '-->'}


# ─── Flowcharts ───────────────────────────────────────────────────

FLOW_ARROW_RE = re.compile(r'--[->ox]|-\.+-|==[=>]|~~~|<--|<==|--\s')

FLOW_CONTROL_RE = re.compile(
    r'^(?:subgraph|end|direction|classDef|class|style|linkStyle|click|accTitle|accDescr)\b'
)

COMMENT_RE = re.compile(r'^\s*%%')

FLOW_ID = r'[A-Za-z0-9_](?:[\w-]*\w)?'

_SQ = r'(?:"[^"]*"|[^\]"])*'
_RD = r'(?:"[^"]*"|[^)"])*'
_CU = r'(?:"[^"]*"|[^}"])*'

FLOW_SHAPE = (
    r'(?:'
    rf'\(\[{_SQ}\]\)'            # stadium
    rf'|\[\[{_SQ}\]\]'           # subroutine
    rf'|\[\({_RD}\)\]'           # cylinder
    rf'|\(\(\({_RD}\)\)\)'       # double circle
    rf'|\(\({_RD}\)\)'           # circle
    rf'|\{{\{{{_CU}\}}\}}'       # hexagon
    rf'|\[[/\\]{_SQ}\]'          # parallelogram / trapezoid
    rf'|\[{_SQ}\]'               # rectangle
    rf'|\({_RD}\)'               # rounded
    rf'|\{{{_CU}\}}'             # diamond
    rf'|>{_SQ}\]'                # asymmetric
    r')'
)

NODE_TOKEN_RE = re.compile(rf'{FLOW_ID}(?:{FLOW_SHAPE})?(?::::[\w-]+)?')

NODE_DEF_RE = re.compile(rf'^{FLOW_ID}\s*{FLOW_SHAPE}(?::::[\w-]+)?\s*;?$')

# [label (with parens)] -> ["label (with parens)"]
UNQUOTED_PAREN_LABEL_RE = re.compile(r'(?<=[\w-])\[(?![\"(\[/\\])([^\]"]*[()][^\]"]*)\]')


def split_node_tokens(line: str) -> Optional[List[str]]:
    """Split a whitespace-separated run of node tokens.

    Returns None unless the whole line is made of node tokens.
    """
    tokens: List[str] = []
    pos = 0
    line = line.strip().rstrip(';').rstrip()
    while pos < len(line):
        m = NODE_TOKEN_RE.match(line, pos)
        if not m or not m.group(0):
            return None
        tokens.append(m.group(0))
        pos = m.end()
        ws = re.match(r'\s+', line[pos:])
        if ws:
            pos += ws.end()
        elif pos < len(line):
            return None
    return tokens


# ─── Class diagrams ───────────────────────────────────────────────

CLASS_ARROW = (
    r'(?:<\|--|--\|>|<\|\.\.|\.\.\|>|\*--|--\*|o--|--o|<--|-->|<\.\.|\.\.>|--|\.\.)'
)

CLASS_REL_RE = re.compile(
    r'^(?P<left>[\w`~.]+)\s*(?P<lcard>"[^"]*"\s*)?'
    rf'(?P<arrow>{CLASS_ARROW})'
    r'\s*(?P<rcard>"[^"]*"\s*)?(?P<right>[\w`~.]+)\s*(?::\s*(?P<label>.*?))?\s*$'
)

CLASS_DECL_RE = re.compile(
    r'^class\s+`?[A-Za-z_][\w]*`?(?:~[^~]+~)?(?:\s*\["[^"]*"\])?'
    r'(?:\s*:::\s*[\w-]+)?\s*\{?\s*$'
)

CLASS_INLINE_BODY_RE = re.compile(r'^(?P<head>class\s+[^{]+?)\s*\{(?P<body>[^}]*)\}\s*(?P<rest>.*)$')


# ─── Entity-relationship diagrams ─────────────────────────────────

ER_CARDINALITY = r'(?:\|o|\|\||\}o|\}\|)(?:--|\.\.)(?:o\||\|\||o\{|\|\{)'
ER_ENTITY = r'(?:"[^"]+"|[\w-]+)'

ER_REL_RE = re.compile(
    rf'^(?P<left>{ER_ENTITY})\s*(?P<card>{ER_CARDINALITY})\s*(?P<right>{ER_ENTITY})'
    r'\s*:\s*(?P<label>.*?)\s*$'
)

ER_BLOCK_OPEN_RE = re.compile(rf'^{ER_ENTITY}(?:\s*\[[^\]]*\])?\s*\{{\s*$')

ER_INLINE_BLOCK_RE = re.compile(rf'^(?P<entity>{ER_ENTITY})\s*\{{(?P<body>[^}}]+)\}}\s*$')

ER_ENTITY_ONLY_RE = re.compile(rf'^{ER_ENTITY}$')

ER_KEYS = ('PK', 'FK', 'UK')

ER_ATTR_RE = re.compile(
    r'^(?P<type>[\w\-\[\](),]+)\s+(?P<name>[\w\-*]+)'
    r'(?P<keys>(?:\s*,?\s*\b(?:PK|FK|UK)\b)*)'
    r'(?:\s+(?P<comment>"[^"]*"))?\s*$'
)


# ─── Journeys ─────────────────────────────────────────────────────

JOURNEY_HEADER_RE = re.compile(r'^(?:title|section|accTitle|accDescr)\b')

JOURNEY_TASK_RE = re.compile(r'^[^:]+:\s*\d+\s*(?::.*)?$')

DEFAULT_JOURNEY_SCORE = '3'
DEFAULT_JOURNEY_ACTOR = 'Me'
