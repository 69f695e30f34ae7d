"""
Hand-authored minimal diagrams, one per kind.

The table is the whole contract: nothing about the failing input reaches
the output beyond the kind used as the lookup key.
"""

from typing import Dict

from diagram_repair.errors import FallbackDefectError
from diagram_repair.kinds import DiagramKind
from diagram_repair.validator import validate


GENERIC_FALLBACK = (
    'graph TD\n'
    '    A[Error: Invalid Response] --> B[Please try again with a more specific request]'
)

FALLBACKS: Dict[DiagramKind, str] = {
    DiagramKind.FLOWCHART: (
        'flowchart TD\n'
        '    A[Start] --> B[Process]\n'
        '    B --> C[End]'
    ),
    DiagramKind.SEQUENCE: (
        'sequenceDiagram\n'
        '    participant User\n'
        '    participant System\n'
        '    User->>System: Request\n'
        '    System-->>User: Response'
    ),
    DiagramKind.CLASS: (
        'classDiagram\n'
        '    class Animal\n'
        '    class Dog\n'
        '    Animal <|-- Dog'
    ),
    DiagramKind.JOURNEY: (
        'journey\n'
        '    title User Journey\n'
        '    section Start\n'
        '    Open application: 3: User'
    ),
    DiagramKind.GANTT: (
        'gantt\n'
        '    dateFormat YYYY-MM-DD\n'
        '    section Plan\n'
        '    Task: t1, 2024-01-01, 3d'
    ),
    DiagramKind.STATE: (
        'stateDiagram-v2\n'
        '    [*] --> Idle\n'
        '    Idle --> Active\n'
        '    Active --> [*]'
    ),
    DiagramKind.ER: (
        'erDiagram\n'
        '    CUSTOMER ||--o{ ORDER : "places"\n'
        '    ORDER ||--|{ LINE_ITEM : "contains"'
    ),
    DiagramKind.PIE: (
        'pie title Summary\n'
        '    "Complete" : 1\n'
        '    "Remaining" : 1'
    ),
    DiagramKind.GITGRAPH: (
        'gitGraph\n'
        '    commit\n'
        '    branch feature\n'
        '    checkout feature\n'
        '    commit'
    ),
    DiagramKind.MINDMAP: (
        'mindmap\n'
        '  root((Diagram))\n'
        '    Topic A\n'
        '    Topic B'
    ),
    DiagramKind.TIMELINE: (
        'timeline\n'
        '    title Timeline\n'
        '    Start : First event\n'
        '    Next : Second event'
    ),
    DiagramKind.C4: (
        'C4Context\n'
        '    title System Context\n'
        '    Person(user, "User")\n'
        '    System(system, "System")\n'
        '    Rel(user, system, "Uses")'
    ),
    DiagramKind.UNKNOWN: GENERIC_FALLBACK,
}


def fallback(kind: DiagramKind) -> str:
    """Minimal valid diagram for *kind*; the generic flowchart for Unknown."""
    return FALLBACKS.get(kind, GENERIC_FALLBACK)


def check_fallbacks() -> None:
    """Validate every table entry, raising FallbackDefectError on the first failure."""
    for kind in DiagramKind:
        text = fallback(kind)
        target = None if kind == DiagramKind.UNKNOWN else kind
        outcome = validate(text, target)
        if not outcome.valid:
            raise FallbackDefectError(
                f"Fallback for {kind.value} is invalid: {'; '.join(outcome.errors)}"
            )
