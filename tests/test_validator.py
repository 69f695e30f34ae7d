from __future__ import annotations

import pytest

from diagram_repair.kinds import DiagramKind
from diagram_repair.validator import Severity, severity_for, validate
from tests.conftest import PROSE_ONLY


@pytest.mark.parametrize("count, severity", [
    (0, None),
    (1, Severity.LOW),
    (2, Severity.MEDIUM),
    (3, Severity.MEDIUM),
    (4, Severity.HIGH),
    (9, Severity.HIGH),
])
def test_severity_for(count, severity):
    assert severity_for(["e"] * count) == severity


def test_valid_outcome():
    outcome = validate("graph TD\nA-->B")
    assert outcome.valid
    assert outcome.errors == []
    assert outcome.severity is None
    assert outcome.to_dict() == {"valid": True, "errors": [], "severity": None}


def test_empty_text_is_high():
    outcome = validate("   \n ")
    assert not outcome.valid
    assert outcome.errors == ["Empty diagram text"]
    assert outcome.severity == Severity.HIGH


def test_no_keyword_is_single_high_error():
    outcome = validate(PROSE_ONLY)
    assert len(outcome.errors) == 1
    assert "No recognized diagram type" in outcome.errors[0]
    assert outcome.severity == Severity.HIGH


def test_missing_header_with_known_kind_is_reported():
    outcome = validate("A --> B", DiagramKind.FLOWCHART)
    assert len(outcome.errors) == 1
    assert outcome.severity == Severity.LOW


def test_sequence_rejects_free_text():
    outcome = validate("sequenceDiagram\nAlice->>Bob: hi\nthis is wrong")
    assert outcome.errors == ["Line 3: not a message or control statement: 'this is wrong'"]
    assert outcome.severity == Severity.LOW


def test_sequence_accepts_control_and_declarations():
    text = (
        "sequenceDiagram\n"
        "    autonumber\n"
        "    participant A as Alice\n"
        "    actor B\n"
        "    %% a comment\n"
        "    loop Retry\n"
        "    A->>+B: ping\n"
        "    B-->>-A: pong\n"
        "    end\n"
        "    Note over A,B: done"
    )
    assert validate(text).valid


def test_flowchart_errors_accumulate():
    outcome = validate("flowchart TD\nfoo bar\nbaz qux\nA --> B")
    assert len(outcome.errors) == 2
    assert outcome.severity == Severity.MEDIUM


def test_many_errors_are_high():
    outcome = validate("flowchart TD\na b!\nc d!\ne f!\ng h!")
    assert len(outcome.errors) == 4
    assert outcome.severity == Severity.HIGH


def test_flowchart_accepts_shapes_and_subgraphs():
    text = (
        "flowchart LR\n"
        "    subgraph Backend\n"
        "    db[(Database)]\n"
        "    api{{API}}\n"
        "    end\n"
        "    api --> db\n"
        "    classDef hot fill:#f96"
    )
    assert validate(text).valid


def test_arrow_glued_to_label_is_not_a_node():
    outcome = validate('flowchart TD\nA->>B: map x["label"]')
    assert not outcome.valid
    assert "no arrow or node definition" in outcome.errors[0]


def test_directive_before_header():
    outcome = validate("%%{init: {'theme': 'dark'}}%%\nsequenceDiagram\n    A->>B: hi")
    assert outcome.valid


def test_residual_error_token_is_flagged():
    outcome = validate("flowchart TD\nA --> undefined")
    assert len(outcome.errors) == 1
    assert "residual error token" in outcome.errors[0]


def test_error_words_inside_labels_are_fine():
    assert validate('flowchart TD\nA["null value"] --> B[Error: retry]').valid
    assert validate("sequenceDiagram\nA->>B: returns null").valid


def test_class_declaration_must_be_an_identifier():
    outcome = validate("classDiagram\nclass 123Bad")
    assert len(outcome.errors) == 1
    assert "malformed class declaration" in outcome.errors[0]


def test_class_body_must_close():
    outcome = validate("classDiagram\nclass A {\n+x")
    assert outcome.errors == ["Unclosed class body"]


def test_er_rejects_prose_relationships():
    outcome = validate("erDiagram\nCUSTOMER has ORDER")
    assert len(outcome.errors) == 1


def test_er_accepts_blocks_and_relationships():
    text = (
        "erDiagram\n"
        '    CUSTOMER ||--o{ ORDER : "places"\n'
        "    CUSTOMER {\n"
        "      string name\n"
        "      int id PK\n"
        "    }\n"
        "    PRODUCT"
    )
    assert validate(text).valid


def test_journey_task_form():
    outcome = validate("journey\ntitle T\nsection S\nDo thing")
    assert len(outcome.errors) == 1
    assert validate("journey\ntitle T\nsection S\nDo thing: 4: Me").valid


def test_kinds_without_checks_only_need_a_header():
    assert validate("gantt\ndateFormat YYYY-MM-DD\nsection A\nTask: a1, 2024-01-01, 1d").valid
