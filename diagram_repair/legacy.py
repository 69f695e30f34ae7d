"""
Legacy flowchart dialect converter.

Some model answers use the older flowchart.js box-and-arrow language
instead of Mermaid:

    st=>start: Start
    op=>operation: Do something
    cond=>condition: Ready?
    st->op->cond
    cond(yes)->e
    cond(no, right)->op

Detection is a syntactic sniff only.  Conversion reads the node table
first, then the edge chains, and emits all nodes before all edges, each
group in first-seen order.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from diagram_repair import config
from diagram_repair.patterns import ERROR_TOKENS


LEGACY_DELIMITER = '=>'
SECTION_KEYWORDS = ('start:', 'operation:', 'condition:', 'end:')

MERMAID_RESERVED = {
    'end', 'graph', 'flowchart', 'subgraph', 'direction',
    'click', 'style', 'classdef', 'class', 'linkstyle',
}

# Ids emitted with a `_node` suffix.
RENAMED_IDS = MERMAID_RESERVED | set(ERROR_TOKENS)

DIRECTION_WORDS = {'left', 'right', 'top', 'bottom'}

_NODE_RE = re.compile(r'^(?P<id>\w+)\s*=>\s*(?P<type>\w+)\s*(?::\s*(?P<label>.*))?$')

_SEGMENT_RE = re.compile(r'^(\w+)\s*(?:\((.*)\))?$')


@dataclass
class LegacyNode:
    id: str
    type: str
    label: str


@dataclass
class LegacyEdge:
    source: str
    target: str
    label: str = ''


def is_legacy(text: str) -> bool:
    """True when *text* looks like the legacy dialect."""
    if not text or LEGACY_DELIMITER not in text:
        return False
    return any(keyword in text for keyword in SECTION_KEYWORDS)


# ─── Parsing ──────────────────────────────────────────────────────

def _parse_node(line: str) -> Optional[LegacyNode]:
    m = _NODE_RE.match(line)
    if not m:
        return None
    node_id = m.group('id')
    label = (m.group('label') or '').strip()
    return LegacyNode(id=node_id, type=m.group('type').lower(), label=label or node_id)


def _parse_segment(segment: str) -> Optional[Tuple[str, str]]:
    """Split 'id(condition, direction)' into (id, condition); None when not an id."""
    m = _SEGMENT_RE.match(segment.strip())
    if not m:
        return None
    node_id, args = m.group(1), m.group(2)
    if not args:
        return node_id, ''
    condition = args.split(',')[0].strip()
    if condition.lower() in DIRECTION_WORDS:
        return node_id, ''
    return node_id, condition


def parse_legacy(text: str) -> Tuple[List[LegacyNode], List[LegacyEdge]]:
    """Two passes: node table, then edges.  Both in first-seen order."""
    lines = [line.strip() for line in text.split('\n') if line.strip()]

    nodes: Dict[str, LegacyNode] = {}
    for line in lines:
        if LEGACY_DELIMITER not in line:
            continue
        node = _parse_node(line)
        if node and node.id not in nodes:
            nodes[node.id] = node

    edges: List[LegacyEdge] = []
    seen = set()
    for line in lines:
        if LEGACY_DELIMITER in line or '->' not in line:
            continue
        segments = [s for s in (seg.strip() for seg in line.split('->')) if s]
        for left, right in zip(segments, segments[1:]):
            parsed_left, parsed_right = _parse_segment(left), _parse_segment(right)
            if parsed_left is None or parsed_right is None:
                continue
            source, condition = parsed_left
            target, _ = parsed_right
            key = (source, target, condition)
            if key in seen:
                continue
            seen.add(key)
            edges.append(LegacyEdge(source=source, target=target, label=condition))

    return list(nodes.values()), edges


# ─── Emission ─────────────────────────────────────────────────────

def _safe_id(node_id: str) -> str:
    if node_id.lower() in RENAMED_IDS:
        return f'{node_id}_node'
    return node_id


def _escape_label(label: str) -> str:
    return label.replace('"', '#quot;')


def _format_node(node: LegacyNode) -> str:
    nid = _safe_id(node.id)
    label = _escape_label(node.label)
    if node.type in ('start', 'end'):
        return f'{nid}(["{label}"])'
    if node.type == 'condition':
        return f'{nid}{{"{label}"}}'
    return f'{nid}["{label}"]'


def _format_edge(edge: LegacyEdge) -> str:
    source, target = _safe_id(edge.source), _safe_id(edge.target)
    if edge.label:
        return f'{source} -- {_escape_label(edge.label)} --> {target}'
    return f'{source} --> {target}'


def convert_legacy(text: str) -> str:
    """Translate legacy dialect text into a Mermaid flowchart."""
    nodes, edges = parse_legacy(text)
    lines = [f'flowchart {config.DEFAULT_DIRECTION}']
    lines.extend(f'    {_format_node(node)}' for node in nodes)
    lines.extend(f'    {_format_edge(edge)}' for edge in edges)
    return '\n'.join(lines)
