import logging
import re
from typing import Dict, List, Optional, Sequence

from models.note import (
    Assessment, Diagnosis, DiagnosticResult, Objective, Plan,
    PlannedMedication, StructuredNote, Subjective
)
from utils.helpers import split_transcript_into_segments, truncate
from .extraction_rules import ConditionalRule, ExtractionRules, DEFAULT_RULES
from .prompt_builder import DEFAULT_SPECIALTY

logger = logging.getLogger(__name__)

# Characters after a medication mention searched for its dose and frequency
MEDICATION_WINDOW = 60


class RuleBasedExtractor:
    """
    Deterministic SOAP note extraction from the raw transcript.

    Every field comes from an ordered rule list in ExtractionRules. Where no
    rule matches, a "not documented" placeholder is used instead of a guess.
    The same transcript and specialty always yield the same note.
    """

    def __init__(self, rules: ExtractionRules = DEFAULT_RULES):
        self.rules = rules

    def extract(self, transcript: str, specialty: str = DEFAULT_SPECIALTY) -> StructuredNote:
        specialty = specialty or DEFAULT_SPECIALTY
        text = normalize_text(transcript)

        complaint = self.extract_chief_complaint(text)
        symptoms = self.extract_symptoms(text)
        risk_factors = self.extract_risk_factors(text)
        labels = self._detected_labels(text, complaint)

        diagnosis = self.extract_diagnosis(text, labels, specialty)
        medications = self.extract_medications(text)
        diagnostic_results = self.extract_diagnostic_results(transcript)

        note = StructuredNote(
            visit_summary=self._visit_summary(specialty, complaint, symptoms, diagnostic_results),
            subjective=Subjective(
                complaint=complaint,
                current_complaints=truncate(transcript.strip(), self.rules.current_complaints_limit),
                medical_history=risk_factors or [self.rules.history_placeholder],
                medications=[medication.name for medication in medications],
                social_history=self.extract_social_history(text),
                review_of_systems=self._review_of_systems(symptoms),
            ),
            objective=Objective(
                vital_signs=self.extract_vital_signs(text),
                physical_exam=self.select_physical_exam(text, specialty),
                diagnostic_results=diagnostic_results,
            ),
            assessment=Assessment(
                general=self._assessment_summary(specialty, complaint, diagnosis),
                diagnoses=[diagnosis],
            ),
            plan=Plan(
                treatment=self.assemble_treatment(text, labels, specialty),
                medications=medications,
                follow_up=self.extract_follow_up(text, labels, specialty),
                lifestyle=self._apply_rules(self.rules.lifestyle, text, labels, specialty)
                or list(self.rules.fallback_lifestyle),
            ),
        )
        logger.info(f"Rule-based extraction complete: complaint='{complaint}', {len(symptoms)} symptom labels")
        return note

    def extract_chief_complaint(self, text: str) -> str:
        """First matching complaint rule wins; order encodes clinical priority"""
        for rule in self.rules.complaints:
            if rule.matches(text):
                return rule.label
        return self.rules.complaint_placeholder

    def extract_symptoms(self, text: str) -> List[str]:
        """Every matching symptom label in declaration order, without duplicates"""
        symptoms: List[str] = []
        for rule in self.rules.symptoms:
            if rule.label not in symptoms and rule.matches(text):
                symptoms.append(rule.label)
        return symptoms or [self.rules.symptom_placeholder]

    def extract_risk_factors(self, text: str) -> List[str]:
        return [rule.label for rule in self.rules.risk_factors if rule.matches(text)]

    def select_physical_exam(self, text: str, specialty: str) -> str:
        specialty_lower = specialty.lower()
        for rule in self.rules.exam_systems:
            if _specialty_matches(specialty_lower, rule.specialties) or re.search(rule.pattern, text):
                return rule.narrative
        return self.rules.generic_exam

    def extract_vital_signs(self, text: str) -> Dict[str, str]:
        """Explicitly mentioned vitals; anything else is marked as not documented"""
        vitals: Dict[str, str] = {}
        for rule in self.rules.vital_signs:
            value = None
            for pattern in rule.patterns:
                for match in re.finditer(pattern, text):
                    candidate = re.sub(r"\s+", "", match.group(1))
                    if _in_range(candidate, rule.min_value, rule.max_value):
                        value = candidate
                        break
                if value:
                    break
            vitals[rule.key] = rule.unit_format.format(value=value) if value else self.rules.not_documented
        return vitals

    def extract_diagnosis(self, text: str, labels: Sequence[str], specialty: str) -> Diagnosis:
        """Look up the first detected label with a diagnosis entry"""
        table = {rule.label: rule for rule in self.rules.diagnoses}
        for label in labels:
            rule = table.get(label)
            if rule is None:
                continue
            text_out = rule.diagnosis
            for qualifier in rule.qualifiers:
                if qualifier.matches(text):
                    text_out = qualifier.label
                    break
            return Diagnosis(diagnosis=text_out, icd10_code=rule.icd10_code, type="primary")
        return Diagnosis(diagnosis=f"{specialty} consultation completed", icd10_code=None, type="primary")

    def assemble_treatment(self, text: str, labels: Sequence[str], specialty: str) -> List[str]:
        treatment = self._apply_rules(self.rules.treatments, text, labels, specialty)
        return treatment or list(self.rules.fallback_treatments)

    def extract_medications(self, text: str) -> List[PlannedMedication]:
        medications: List[PlannedMedication] = []
        for rule in self.rules.medications:
            match = re.search(rule.pattern, text)
            if not match:
                continue
            window = text[match.end():match.end() + MEDICATION_WINDOW]
            dose = re.search(self.rules.dose_pattern, window)
            frequency = re.search(self.rules.frequency_pattern, window)
            medications.append(PlannedMedication(
                name=rule.name,
                dosage=re.sub(r"\s+", " ", dose.group(1)) if dose else self.rules.not_documented,
                frequency=frequency.group(1) if frequency else self.rules.not_documented,
            ))
        return medications

    def extract_diagnostic_results(self, transcript: str) -> List[DiagnosticResult]:
        """Tests mentioned in the transcript, quoting the sentence that mentions them"""
        segments = split_transcript_into_segments(transcript)
        results: List[DiagnosticResult] = []
        for rule in self.rules.diagnostic_tests:
            for segment in segments:
                if rule.matches(normalize_text(segment)):
                    results.append(DiagnosticResult(
                        test=rule.label,
                        results=[truncate(segment, self.rules.diagnostic_result_limit)],
                    ))
                    break
        return results

    def extract_social_history(self, text: str) -> str:
        mentions = [rule.label for rule in self.rules.social_history if rule.matches(text)]
        return "; ".join(mentions) if mentions else self.rules.not_documented

    def extract_follow_up(self, text: str, labels: Sequence[str], specialty: str) -> str:
        explicit = re.search(self.rules.explicit_follow_up_pattern, text)
        if explicit:
            return f"Control visit {explicit.group(1)}"
        steps = self._apply_rules(self.rules.follow_up, text, labels, specialty)
        return steps[0] if steps else self.rules.default_follow_up

    def _detected_labels(self, text: str, complaint: str) -> List[str]:
        """Complaint first, then matching symptom labels, for table lookups"""
        labels = [complaint] if complaint != self.rules.complaint_placeholder else []
        for rule in self.rules.symptoms:
            if rule.label not in labels and rule.matches(text):
                labels.append(rule.label)
        return labels

    def _apply_rules(
        self,
        rules: Sequence[ConditionalRule],
        text: str,
        labels: Sequence[str],
        specialty: str
    ) -> List[str]:
        steps: List[str] = []
        specialty_lower = specialty.lower()
        for rule in rules:
            if rule.labels and not any(label in labels for label in rule.labels):
                continue
            if rule.pattern and not re.search(rule.pattern, text):
                continue
            if rule.specialties and not _specialty_matches(specialty_lower, rule.specialties):
                continue
            if not (rule.labels or rule.pattern or rule.specialties):
                continue
            for step in rule.steps:
                if step not in steps:
                    steps.append(step)
        return steps

    def _visit_summary(
        self,
        specialty: str,
        complaint: str,
        symptoms: List[str],
        diagnostic_results: List[DiagnosticResult]
    ) -> str:
        summary = f"{specialty} visit. Chief complaint: {complaint}."
        if symptoms != [self.rules.symptom_placeholder]:
            summary += f" Reported symptoms: {', '.join(symptoms)}."
        if diagnostic_results:
            summary += f" Tests discussed: {', '.join(result.test for result in diagnostic_results)}."
        return summary

    def _review_of_systems(self, symptoms: List[str]) -> str:
        if symptoms == [self.rules.symptom_placeholder]:
            return self.rules.symptom_placeholder
        return f"Positive for: {', '.join(symptoms)}"

    def _assessment_summary(self, specialty: str, complaint: str, diagnosis: Diagnosis) -> str:
        if complaint == self.rules.complaint_placeholder:
            return f"{specialty} consultation completed. No specific complaint identified in transcript."
        return f"Patient evaluated for {complaint}. Working diagnosis: {diagnosis.diagnosis}."


def normalize_text(text: str) -> str:
    # "İ".lower() leaves a combining dot that breaks Turkish patterns
    return text.lower().replace("\u0307", "")


def _specialty_matches(specialty_lower: str, keywords: Sequence[str]) -> bool:
    return any(keyword in specialty_lower for keyword in keywords)


def _in_range(value: str, minimum: Optional[float], maximum: Optional[float]) -> bool:
    if minimum is None and maximum is None:
        return True
    try:
        number = float(value.replace(",", "."))
    except ValueError:
        return False
    if minimum is not None and number < minimum:
        return False
    if maximum is not None and number > maximum:
        return False
    return True
