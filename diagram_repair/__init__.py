"""Mermaid diagram repair for language-model output.

Extracts diagram text from free-form messages, converts the legacy
flowchart.js dialect, repairs common structural defects per diagram kind,
validates the result and falls back to a minimal diagram when repair is
not enough. RenderSessionController drives an asynchronous renderer and
discards results superseded by newer requests.
"""

from diagram_repair.extractor import CandidateDiagram, extract
from diagram_repair.fallback import fallback
from diagram_repair.kinds import DiagramKind, detect_kind, parse_kind
from diagram_repair.legacy import convert_legacy, is_legacy
from diagram_repair.pipeline import ProcessResult, process
from diagram_repair.repairer import RepairStep, repair
from diagram_repair.session import RenderOutcome, RenderSessionController
from diagram_repair.validator import Severity, ValidationOutcome, validate

__all__ = [
    "CandidateDiagram",
    "DiagramKind",
    "ProcessResult",
    "RenderOutcome",
    "RenderSessionController",
    "RepairStep",
    "Severity",
    "ValidationOutcome",
    "convert_legacy",
    "detect_kind",
    "extract",
    "fallback",
    "is_legacy",
    "parse_kind",
    "process",
    "repair",
    "validate",
]
