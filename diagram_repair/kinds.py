"""
Diagram kind classification.

A diagram kind is decided only by the keyword that opens its first
non-blank line.  The keyword table is ordered and the first match wins,
so longer keywords that share a prefix must come first.
"""

import re
from enum import Enum
from typing import List, Optional, Tuple, Union


class DiagramKind(str, Enum):
    FLOWCHART = 'flowchart'
    SEQUENCE = 'sequence'
    CLASS = 'class'
    JOURNEY = 'journey'
    GANTT = 'gantt'
    STATE = 'state'
    ER = 'er'
    PIE = 'pie'
    GITGRAPH = 'gitgraph'
    MINDMAP = 'mindmap'
    TIMELINE = 'timeline'
    C4 = 'c4'
    UNKNOWN = 'unknown'


# Ordered: first match wins.
KEYWORDS: List[Tuple[str, DiagramKind]] = [
    ('flowchart', DiagramKind.FLOWCHART),
    ('graph', DiagramKind.FLOWCHART),
    ('sequenceDiagram', DiagramKind.SEQUENCE),
    ('classDiagram-v2', DiagramKind.CLASS),
    ('classDiagram', DiagramKind.CLASS),
    ('journey', DiagramKind.JOURNEY),
    ('gantt', DiagramKind.GANTT),
    ('stateDiagram-v2', DiagramKind.STATE),
    ('stateDiagram', DiagramKind.STATE),
    ('erDiagram', DiagramKind.ER),
    ('pie', DiagramKind.PIE),
    ('gitGraph', DiagramKind.GITGRAPH),
    ('mindmap', DiagramKind.MINDMAP),
    ('timeline', DiagramKind.TIMELINE),
    ('C4Context', DiagramKind.C4),
    ('C4Container', DiagramKind.C4),
    ('C4Component', DiagramKind.C4),
    ('C4Dynamic', DiagramKind.C4),
    ('C4Deployment', DiagramKind.C4),
]

# Header keyword per kind, used when a header has to be written from scratch.
HEADERS = {
    DiagramKind.FLOWCHART: 'flowchart TD',
    DiagramKind.SEQUENCE: 'sequenceDiagram',
    DiagramKind.CLASS: 'classDiagram',
    DiagramKind.JOURNEY: 'journey',
    DiagramKind.GANTT: 'gantt',
    DiagramKind.STATE: 'stateDiagram-v2',
    DiagramKind.ER: 'erDiagram',
    DiagramKind.PIE: 'pie',
    DiagramKind.GITGRAPH: 'gitGraph',
    DiagramKind.MINDMAP: 'mindmap',
    DiagramKind.TIMELINE: 'timeline',
    DiagramKind.C4: 'C4Context',
}

# Names accepted for a kind hint, beyond the enum values themselves.
_HINT_ALIASES = {
    'graph': DiagramKind.FLOWCHART,
    'c4c': DiagramKind.C4,
    'entityrelationship': DiagramKind.ER,
    'entity-relationship': DiagramKind.ER,
    'erdiagram': DiagramKind.ER,
    'sequencediagram': DiagramKind.SEQUENCE,
    'classdiagram': DiagramKind.CLASS,
    'statediagram': DiagramKind.STATE,
}

# Keyword must end at a word boundary ("Graphs show..." is prose, not a header).
_KEYWORD_RES = [
    (re.compile(r'^' + re.escape(keyword) + r'(?![A-Za-z0-9_])', re.IGNORECASE), kind)
    for keyword, kind in KEYWORDS
]


def classify_line(line: str) -> DiagramKind:
    """Map a single line to a diagram kind by keyword prefix."""
    stripped = (line or '').strip()
    for pattern, kind in _KEYWORD_RES:
        if pattern.match(stripped):
            return kind
    return DiagramKind.UNKNOWN


def first_content_line(text: str) -> str:
    """First non-blank line of *text* that is not a `%%` comment or directive.

    Stripped; '' when there is none.
    """
    for line in (text or '').split('\n'):
        stripped = line.strip()
        if stripped and not stripped.startswith('%%'):
            return stripped
    return ''


def detect_kind(text: str) -> DiagramKind:
    """Classify a whole diagram text by its header line."""
    return classify_line(first_content_line(text))


def parse_kind(value: Union[str, DiagramKind, None]) -> Optional[DiagramKind]:
    """Turn a user-supplied kind name into a DiagramKind.

    Returns None for empty input; raises ValueError for names that do not
    correspond to any kind.
    """
    if value is None or isinstance(value, DiagramKind):
        return value
    name = value.strip().lower()
    if not name:
        return None
    if name in _HINT_ALIASES:
        return _HINT_ALIASES[name]
    try:
        return DiagramKind(name)
    except ValueError:
        raise ValueError(f"Unknown diagram kind: '{value}'") from None
