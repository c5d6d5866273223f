from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .note import StructuredNote


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TemplateHint(CamelModel):
    """Specialty label plus optional per-section keyword suggestions"""
    specialty: str
    structure: Dict[str, Any] = Field(default_factory=dict)
    template_id: Optional[int] = None
    name: Optional[str] = None


class PromptContext(CamelModel):
    """Everything a strategy needs besides the transcript"""
    specialty: str
    template_hint: TemplateHint
    prompt: str


class GenerationAttempt(CamelModel):
    """Diagnostic record of one tier; never persisted"""
    strategy: str
    outcome: Literal["success", "failed"]
    error: Optional[str] = None


class GenerationResult(CamelModel):
    note: StructuredNote
    strategy: str
    attempts: List[GenerationAttempt] = Field(default_factory=list)


class NoteGenerationRequest(CamelModel):
    """Body of POST /api/generate-note; preconditions are checked by the service"""
    transcription: str = ""
    encounter_id: Optional[int] = None
    template_id: Optional[int] = None


class NoteGenerationResponse(CamelModel):
    encounter_id: int
    note: StructuredNote
    strategy: str
    attempts: List[GenerationAttempt] = Field(default_factory=list)
    saved: bool
    error: Optional[str] = None


class PersistedNote(CamelModel):
    """Stored note record, one per encounter"""
    encounter_id: int
    transcription: str
    visit_summary: str
    subjective: Dict[str, Any]
    objective: Dict[str, Any]
    assessment: Dict[str, Any]
    plan: Dict[str, Any]
    generated_by: str
    generated_at: datetime
    updated_at: datetime

    def to_note(self) -> StructuredNote:
        return StructuredNote.model_validate({
            "visitSummary": self.visit_summary,
            "subjective": self.subjective,
            "objective": self.objective,
            "assessment": self.assessment,
            "plan": self.plan,
        })
