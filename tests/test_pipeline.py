from __future__ import annotations

import json

import pytest

from diagram_repair.fallback import GENERIC_FALLBACK, fallback
from diagram_repair.kinds import DiagramKind
from diagram_repair.pipeline import process
from diagram_repair.validator import Severity
from tests.conftest import (
    FENCED_FLOWCHART,
    LEGACY_LOGIN,
    LEGACY_MINIMAL,
    MISSING_SENDER,
    PROSE_ONLY,
)


def _stages(result):
    return [step.stage for step in result.trace]


def test_fenced_flowchart():
    result = process(FENCED_FLOWCHART)
    assert result.kind == DiagramKind.FLOWCHART
    assert result.text == "graph TD\n    A-->B"
    assert result.outcome.valid
    assert not result.used_fallback
    assert not result.converted
    assert result.auto_fixed


def test_missing_sender_is_repaired():
    result = process(MISSING_SENDER)
    assert result.kind == DiagramKind.SEQUENCE
    assert result.outcome.valid
    assert "participant Actor1" in result.text
    assert "Actor1->>B: hi" in result.text


def test_legacy_dialect_is_converted():
    result = process(LEGACY_MINIMAL)
    assert result.kind == DiagramKind.FLOWCHART
    assert result.converted
    assert result.outcome.valid
    lines = result.text.split("\n")
    assert lines[0] == "flowchart TD"
    assert '    st(["Start"])' in lines
    assert '    op["Do"]' in lines
    assert lines[-1] == "    st --> op"


def test_legacy_in_fence():
    result = process(f"Here it is:\n```\n{LEGACY_LOGIN}\n```")
    assert result.converted
    assert result.outcome.valid
    assert "    cond -- yes --> e" in result.text


def test_stray_delimiter_in_sequence_is_not_legacy():
    result = process(
        "```mermaid\nsequenceDiagram\nA->>B: map x => y\nNote over A: restart: retry\n```"
    )
    assert result.kind == DiagramKind.SEQUENCE
    assert not result.converted
    assert not result.used_fallback
    assert "    A->>B: map x => y" in result.text


def test_init_directive_before_header():
    result = process("```mermaid\n%%{init: {'theme': 'dark'}}%%\ngraph TD\nA-->B\n```")
    assert result.kind == DiagramKind.FLOWCHART
    assert not result.used_fallback
    assert result.text == "%%{init: {'theme': 'dark'}}%%\ngraph TD\n    A-->B"


def test_no_diagram_falls_back_to_generic():
    result = process(PROSE_ONLY)
    assert result.kind == DiagramKind.UNKNOWN
    assert len(result.outcome.errors) == 1
    assert result.outcome.severity == Severity.HIGH
    assert result.used_fallback
    assert result.text == GENERIC_FALLBACK
    assert _stages(result)[-1] == "fallback"


def test_unrepairable_diagram_uses_kind_fallback():
    result = process("```mermaid\nsequenceDiagram\nthis is not valid\n```")
    assert result.kind == DiagramKind.SEQUENCE
    assert result.used_fallback
    assert result.text == fallback(DiagramKind.SEQUENCE)
    assert "this is not valid" in result.repaired_text
    assert not result.outcome.valid


def test_hint_supplies_kind_and_header():
    result = process("A --> B", "flowchart")
    assert result.kind == DiagramKind.FLOWCHART
    assert result.text == "flowchart TD\n    A --> B"
    assert result.outcome.valid


def test_unknown_hint_raises():
    with pytest.raises(ValueError):
        process("A --> B", "venn")


def test_trace_order():
    result = process(FENCED_FLOWCHART)
    assert _stages(result) == [
        "extract",
        "legacy_conversion",
        "generic_cleanup",
        "flowchart_pass",
        "whitespace_normalization",
    ]


def test_to_dict_is_json_ready():
    data = json.loads(json.dumps(process(MISSING_SENDER).to_dict()))
    assert data["kind"] == "sequence"
    assert data["outcome"]["valid"] is True
    assert data["auto_fixed"] is True
    assert data["converted"] is False
    assert data["trace"][0] == {"stage": "extract", "changed": False}


def test_process_is_pure():
    assert process(FENCED_FLOWCHART).to_dict() == process(FENCED_FLOWCHART).to_dict()
