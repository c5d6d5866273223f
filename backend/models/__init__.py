from .note import (
    StructuredNote, Subjective, Objective, Assessment, Plan,
    Diagnosis, DiagnosticResult, PlannedMedication
)
from .generation import (
    TemplateHint, PromptContext, GenerationAttempt, GenerationResult,
    NoteGenerationRequest, NoteGenerationResponse, PersistedNote
)

__all__ = [
    "StructuredNote", "Subjective", "Objective", "Assessment", "Plan",
    "Diagnosis", "DiagnosticResult", "PlannedMedication",
    "TemplateHint", "PromptContext", "GenerationAttempt", "GenerationResult",
    "NoteGenerationRequest", "NoteGenerationResponse", "PersistedNote"
]
