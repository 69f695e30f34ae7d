"""Exception hierarchy shared by the pipeline, renderer, CLI and server."""


class DiagramRepairError(Exception):
    code = "DIAGRAM_REPAIR_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(DiagramRepairError):
    """The request itself is unusable (missing message, unknown kind)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class RenderError(DiagramRepairError):
    """The rendering engine rejected or failed on a diagram."""

    code = "MERMAID_ERROR"
    status_code = 422

    def __init__(self, message: str, text: str = ""):
        super().__init__(message)
        self.text = text


class RenderTimeoutError(RenderError):
    pass


class FallbackDefectError(DiagramRepairError):
    """A hand-authored fallback diagram failed validation."""
