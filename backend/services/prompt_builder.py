import json
from typing import Any, Dict, Optional

DEFAULT_SPECIALTY = "General Medicine"

SYSTEM_INSTRUCTION = (
    "You are an expert medical scribe working to Turkish Ministry of Health documentation "
    "standards. You protect patient privacy under KVKK Law No. 6698 and write SOAP notes. "
    "Always respond with a single valid JSON object."
)

TRANSCRIPT_DELIMITER = '"""'

OUTPUT_SCHEMA = """{
  "visitSummary": "Patient [age]/[sex] presented with [chief complaint]. [Exam type] performed. [General condition]",
  "subjective": {
    "complaint": "Chief complaint in the patient's own words",
    "currentComplaints": "History of present illness: onset, character, duration, modifying factors",
    "medicalHistory": ["Diabetes mellitus", "Hypertension"],
    "medications": ["Drug name - dose - usage, e.g. Metformin 500mg twice daily"],
    "socialHistory": "Smoking/alcohol use, occupation, family history",
    "reviewOfSystems": "System complaints mentioned in the conversation"
  },
  "objective": {
    "vitalSigns": {
      "bloodPressure": "120/80 mmHg",
      "heartRate": "72/min",
      "temperature": "36.5 C",
      "respiratoryRate": "16/min",
      "oxygenSaturation": "SpO2 98%"
    },
    "physicalExam": "General condition, consciousness, system-based examination findings",
    "diagnosticResults": [
      {"test": "Laboratory or imaging test name", "results": ["Result values"]}
    ]
  },
  "assessment": {
    "general": "Overall clinical assessment",
    "diagnoses": [
      {"diagnosis": "Diagnosis name", "icd10Code": "ICD-10 code", "type": "primary"}
    ]
  },
  "plan": {
    "treatment": ["Medical treatment approach"],
    "medications": [
      {"name": "Drug name", "dosage": "Dose in mg/ml/g", "frequency": "1x1, 2x1, 3x1", "duration": "7 days"}
    ],
    "followUp": "Control visit in X days/weeks/months",
    "lifestyle": ["Diet", "Exercise"]
  }
}"""

CLOSING_INSTRUCTIONS = """RULES:
- Respond with ONLY the JSON object above, no prose before or after it.
- Use ONLY facts stated explicitly in the transcript. Do not infer or invent findings.
- Write "Not documented" for any value the transcript does not mention.
- Diagnosis "type" must be one of: primary, secondary, complication.
- Add ICD-10 codes only for definite diagnoses.
- Every list field must be present; use [] when nothing applies."""


def serialize_template_hint(template_structure: Optional[Dict[str, Any]]) -> str:
    """Stable JSON rendering of the template hint"""
    return json.dumps(template_structure or {}, indent=2, sort_keys=True, ensure_ascii=False)


def build_prompt(
    transcript: str,
    specialty: str = DEFAULT_SPECIALTY,
    template_structure: Optional[Dict[str, Any]] = None
) -> str:
    """
    Assemble the generation prompt.

    The skeleton never changes between calls so a failing request can be
    replayed with the exact same prompt.

    Args:
        transcript: Raw encounter transcript
        specialty: Specialty label from the template, or the generic default
        template_structure: Optional per-section keyword suggestions

    Returns:
        Prompt string
    """
    specialty = specialty or DEFAULT_SPECIALTY
    sections = [
        f"You are an expert medical scribe. Analyse the following {specialty} encounter "
        f"transcript and write a professional SOAP note.",
        "PATIENT PRIVACY NOTICE: This medical record is protected under KVKK Law No. 6698. "
        "Do not repeat identifying details beyond what the note requires.",
        f"TRANSCRIPT:\n{TRANSCRIPT_DELIMITER}\n{transcript}\n{TRANSCRIPT_DELIMITER}",
        f"SPECIALTY: {specialty}",
        f"TEMPLATE STRUCTURE (guidance only):\n{serialize_template_hint(template_structure)}",
        f"OUTPUT FORMAT (JSON):\n{OUTPUT_SCHEMA}",
        CLOSING_INSTRUCTIONS,
    ]
    return "\n\n".join(sections)
