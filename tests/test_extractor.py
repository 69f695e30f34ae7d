from __future__ import annotations

from diagram_repair.extractor import extract
from diagram_repair.kinds import DiagramKind
from tests.conftest import (
    FENCED_FLOWCHART,
    LEGACY_LOGIN,
    PROSE_ONLY,
    SEQUENCE_IN_PROSE,
)


def test_tagged_fence():
    candidate = extract(FENCED_FLOWCHART)
    assert candidate.text == "graph TD\nA-->B"
    assert candidate.kind == DiagramKind.FLOWCHART


def test_tagged_fence_wins_over_untagged():
    message = (
        "First attempt:\n```\nsequenceDiagram\nA->>B: hi\n```\n"
        "Better:\n```mermaid\ngraph TD\nA-->B\n```"
    )
    candidate = extract(message)
    assert candidate.text == "graph TD\nA-->B"
    assert candidate.kind == DiagramKind.FLOWCHART


def test_untagged_fence_with_keyword():
    candidate = extract("Diagram:\n```\nsequenceDiagram\nA->>B: hi\n```\nDone.")
    assert candidate.text == "sequenceDiagram\nA->>B: hi"
    assert candidate.kind == DiagramKind.SEQUENCE


def test_untagged_fence_without_keyword_is_skipped():
    message = "```python\nprint(1)\n```\nNo diagram here."
    candidate = extract(message)
    assert candidate.kind == DiagramKind.UNKNOWN
    assert candidate.text == message


def test_unclosed_tagged_fence():
    candidate = extract("```mermaid\ngraph TD\nA-->B")
    assert candidate.text == "graph TD\nA-->B"


def test_whole_message_with_keyword():
    candidate = extract("  flowchart LR\nA --> B  ")
    assert candidate.text == "flowchart LR\nA --> B"
    assert candidate.kind == DiagramKind.FLOWCHART


def test_line_sweep_stops_at_prose():
    candidate = extract(SEQUENCE_IN_PROSE)
    assert candidate.text == "sequenceDiagram\nAlice->>Bob: Hello\nBob-->>Alice: Hi"
    assert candidate.kind == DiagramKind.SEQUENCE


def test_line_sweep_keeps_brace_blocks():
    message = (
        "The model:\nclassDiagram\nclass User {\n+String name\n+login()\n}\n"
        "User --> Order\nThat's all folks."
    )
    candidate = extract(message)
    assert candidate.text.startswith("classDiagram\nclass User {")
    assert candidate.text.endswith("User --> Order")


def test_no_diagram_is_unknown():
    candidate = extract(PROSE_ONLY)
    assert candidate.kind == DiagramKind.UNKNOWN
    assert candidate.text == PROSE_ONLY


def test_legacy_message_is_flowchart():
    candidate = extract(LEGACY_LOGIN)
    assert candidate.kind == DiagramKind.FLOWCHART
    assert candidate.text == LEGACY_LOGIN


def test_hint_fills_unknown_kind():
    candidate = extract("A-->B", hint=DiagramKind.FLOWCHART)
    assert candidate.kind == DiagramKind.FLOWCHART


def test_hint_never_overrides_keyword():
    candidate = extract("sequenceDiagram\nA->>B: hi", hint=DiagramKind.FLOWCHART)
    assert candidate.kind == DiagramKind.SEQUENCE


def test_empty_message():
    candidate = extract("")
    assert candidate.text == ""
    assert candidate.kind == DiagramKind.UNKNOWN
