from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DiagnosisType = Literal["primary", "secondary", "complication"]

# Turkish labels emitted by models prompted in Turkish
_DIAGNOSIS_TYPE_ALIASES = {
    "ana": "primary",
    "yan": "secondary",
    "komplikasyon": "complication",
}


class NoteModel(BaseModel):
    """Base for every note section: camelCase on the wire, nulls treated as absent"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Subjective(NoteModel):
    complaint: str = Field("", description="Chief complaint")
    current_complaints: str = Field("", description="History of present illness")
    medical_history: List[str] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)
    social_history: Optional[str] = None
    review_of_systems: Optional[str] = None


class DiagnosticResult(NoteModel):
    test: str = ""
    results: List[str] = Field(default_factory=list)


class Objective(NoteModel):
    vital_signs: Dict[str, str] = Field(default_factory=dict)
    physical_exam: str = ""
    diagnostic_results: List[DiagnosticResult] = Field(default_factory=list)

    @field_validator("vital_signs", mode="before")
    @classmethod
    def stringify_vitals(cls, value: Any) -> Any:
        # Models sometimes return bare numbers ("heartRate": 72)
        if isinstance(value, dict):
            return {
                str(key): str(item)
                for key, item in value.items()
                if item is not None and not isinstance(item, (dict, list))
            }
        return value


class Diagnosis(NoteModel):
    diagnosis: str = ""
    icd10_code: Optional[str] = Field(None, alias="icd10Code")
    type: DiagnosisType = "primary"

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            value = _DIAGNOSIS_TYPE_ALIASES.get(value, value)
            if value not in ("primary", "secondary", "complication"):
                return "primary"
        return value


class Assessment(NoteModel):
    general: str = ""
    diagnoses: List[Diagnosis] = Field(default_factory=list)


class PlannedMedication(NoteModel):
    name: str = ""
    dosage: str = ""
    frequency: str = ""
    duration: Optional[str] = None


class Plan(NoteModel):
    treatment: List[str] = Field(default_factory=list)
    medications: List[PlannedMedication] = Field(default_factory=list)
    follow_up: str = ""
    lifestyle: List[str] = Field(default_factory=list)


class StructuredNote(BaseModel):
    """Complete SOAP note; every section is required"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    visit_summary: str = Field(..., description="One paragraph summary of the visit")
    subjective: Subjective
    objective: Objective
    assessment: Assessment
    plan: Plan

    def to_document(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used in storage and responses"""
        return self.model_dump(by_alias=True)
