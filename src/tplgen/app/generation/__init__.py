"""Direct project generation services."""

from .service import FileWritten, GenerationRequest, GenerationResult, GenerationService, RunStatus

__all__ = [
    "FileWritten",
    "GenerationRequest",
    "GenerationResult",
    "GenerationService",
    "RunStatus",
]
