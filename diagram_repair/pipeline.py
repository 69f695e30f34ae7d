"""
End-to-end repair pipeline.

    raw message -> extract -> legacy conversion (when sniffed)
                -> repair -> validate -> fallback (when invalid)

Synchronous and pure.  Malformed input never raises: it always comes back
as some diagram text plus a diagnostic outcome.
"""

from dataclasses import dataclass, field
from typing import List, Union

from diagram_repair.extractor import extract
from diagram_repair.fallback import fallback
from diagram_repair.kinds import DiagramKind, detect_kind, parse_kind
from diagram_repair.legacy import convert_legacy, is_legacy
from diagram_repair.repairer import RepairStep, RepairTrace, repair
from diagram_repair.validator import ValidationOutcome, validate


@dataclass
class ProcessResult:
    text: str
    kind: DiagramKind
    outcome: ValidationOutcome
    trace: RepairTrace = field(default_factory=list)
    repaired_text: str = ''
    used_fallback: bool = False

    def _changed(self, *stages: str) -> bool:
        return any(step.changed for step in self.trace if step.stage in stages)

    @property
    def converted(self) -> bool:
        """Legacy dialect was translated."""
        return self._changed('legacy_conversion')

    @property
    def auto_fixed(self) -> bool:
        """Any repair stage changed the text."""
        return self._changed(
            'generic_cleanup',
            f'{self.kind.value}_pass',
            'whitespace_normalization',
        )

    def to_dict(self) -> dict:
        return {
            'text': self.text,
            'kind': self.kind.value,
            'outcome': self.outcome.to_dict(),
            'trace': [{'stage': s.stage, 'changed': s.changed} for s in self.trace],
            'repaired_text': self.repaired_text,
            'used_fallback': self.used_fallback,
            'auto_fixed': self.auto_fixed,
            'converted': self.converted,
        }


def process(raw: str, hint: Union[DiagramKind, str, None] = None) -> ProcessResult:
    """Turn a raw model message into renderable diagram text.

    *hint* may be a DiagramKind or a kind name; it only decides the kind
    when no header keyword does.  An unknown kind name raises ValueError.
    """
    raw = raw or ''
    trace: List[RepairStep] = []

    candidate = extract(raw, parse_kind(hint))
    trace.append(RepairStep('extract', candidate.text != raw))
    text, kind = candidate.text, candidate.kind

    # A header naming another kind wins over a stray `=>`.
    legacy = is_legacy(text) and detect_kind(text) in (DiagramKind.UNKNOWN, DiagramKind.FLOWCHART)
    if legacy:
        text = convert_legacy(text)
        kind = DiagramKind.FLOWCHART
    trace.append(RepairStep('legacy_conversion', legacy))

    repaired, steps = repair(text, kind)
    trace.extend(steps)

    outcome = validate(repaired, kind)
    if outcome.valid:
        return ProcessResult(
            text=repaired, kind=kind, outcome=outcome,
            trace=trace, repaired_text=repaired,
        )

    trace.append(RepairStep('fallback', True))
    return ProcessResult(
        text=fallback(kind), kind=kind, outcome=outcome,
        trace=trace, repaired_text=repaired, used_fallback=True,
    )
