import json

from services.extraction_rules import (
    DEFAULT_RULES, ConditionalRule, ExtractionRules, PatternRule, load_extraction_rules
)
from services.rule_based_extractor import RuleBasedExtractor

from conftest import NO_SIGNAL_TRANSCRIPT, PALPITATION_TRANSCRIPT

extractor = RuleBasedExtractor()


def test_palpitation_transcript():
    note = extractor.extract(PALPITATION_TRANSCRIPT, "General Medicine")

    assert note.subjective.complaint == "palpitations"
    assert note.plan.treatment[0] == "ECG ordered"
    assert "24-hour Holter monitoring planned" in note.plan.treatment
    assert note.assessment.diagnoses[0].icd10_code == "R00.2"
    assert note.assessment.diagnoses[0].diagnosis == "Palpitations, likely related to anxiety and stress"


def test_explicit_vitals_are_extracted():
    vitals = extractor.extract(PALPITATION_TRANSCRIPT).objective.vital_signs

    assert vitals["heartRate"] == "96/min"
    assert vitals["bloodPressure"] == "130/85 mmHg"


def test_unmentioned_vitals_are_not_invented():
    vitals = extractor.extract(PALPITATION_TRANSCRIPT).objective.vital_signs

    assert vitals["temperature"] == "Not documented"
    assert vitals["respiratoryRate"] == "Not documented"
    assert vitals["oxygenSaturation"] == "Not documented"


def test_implausible_vital_is_skipped():
    vitals = extractor.extract("Nabız 300. Ateş 38.5 derece.").objective.vital_signs

    assert vitals["heartRate"] == "Not documented"
    assert vitals["temperature"] == "38.5 °C"


def test_no_signal_transcript_uses_placeholders():
    note = extractor.extract(NO_SIGNAL_TRANSCRIPT, "General Medicine")

    assert note.subjective.complaint == DEFAULT_RULES.complaint_placeholder
    assert note.subjective.review_of_systems == DEFAULT_RULES.symptom_placeholder
    assert note.subjective.medical_history == [DEFAULT_RULES.history_placeholder]
    assert len(note.assessment.diagnoses) == 1
    assert note.assessment.diagnoses[0].diagnosis == "General Medicine consultation completed"
    assert note.assessment.diagnoses[0].icd10_code is None
    assert note.plan.treatment == DEFAULT_RULES.fallback_treatments
    assert note.plan.follow_up == DEFAULT_RULES.default_follow_up
    assert note.objective.physical_exam == DEFAULT_RULES.generic_exam


def test_negated_smoking_is_not_recorded():
    note = extractor.extract("Hasta: Sigara içmiyorum, alkol de kullanmıyorum.")

    assert "Smoking history" not in note.subjective.medical_history
    assert "Smoking cessation advised" not in note.plan.lifestyle
    assert note.subjective.social_history == "Alcohol use: mentioned in transcript"


def test_english_negated_smoking_is_not_recorded():
    note = extractor.extract("Patient: I don't smoke and I am a non-smoker for years.")

    assert "Smoking history" not in note.subjective.medical_history
    assert note.subjective.social_history == DEFAULT_RULES.not_documented


def test_active_smoking_is_recorded():
    note = extractor.extract("Hasta: Günde bir paket sigara içiyorum.")

    assert "Smoking history" in note.subjective.medical_history
    assert "Smoking cessation advised" in note.plan.lifestyle


def test_extraction_is_deterministic():
    first = extractor.extract(PALPITATION_TRANSCRIPT, "Cardiology").to_document()
    second = RuleBasedExtractor().extract(PALPITATION_TRANSCRIPT, "Cardiology").to_document()
    assert json.dumps(first, sort_keys=False) == json.dumps(second, sort_keys=False)


def test_symptoms_are_ordered_and_unique():
    symptoms = extractor.extract_symptoms(PALPITATION_TRANSCRIPT.lower())
    assert symptoms == ["palpitations", "ongoing for about two months", "several times a day"]


def test_risk_factors_follow_rule_order():
    risks = extractor.extract_risk_factors(PALPITATION_TRANSCRIPT.lower())
    assert risks == ["Stress and anxiety", "Caffeine intake", "Thyroid disease to be evaluated"]


def test_exam_narrative_by_specialty():
    cardiac = extractor.select_physical_exam("hasta: kontrol", "Kardiyoloji")
    neuro = extractor.select_physical_exam("hasta: başım ağrıyor", "General Medicine")

    assert "Cardiovascular" in cardiac
    assert "Neurological" in neuro


def test_cardiology_specialty_adds_ecg_without_complaint():
    note = extractor.extract(NO_SIGNAL_TRANSCRIPT, "Cardiology")
    assert note.plan.treatment == ["ECG ordered"]


def test_treatment_steps_are_not_duplicated():
    note = extractor.extract(PALPITATION_TRANSCRIPT, "Cardiology")
    assert note.plan.treatment.count("ECG ordered") == 1


def test_medication_dose_near_mention():
    medications = extractor.extract_medications("sabah euthyrox 50 mcg kullanıyorum, günde bir kez.")

    assert len(medications) == 1
    assert medications[0].name == "Levothyroxine"
    assert medications[0].dosage == "50 mcg"
    assert medications[0].frequency == "günde bir kez"


def test_medication_without_dose():
    medications = extractor.extract_medications("aspirin kullanıyorum")
    assert medications[0].dosage == "Not documented"


def test_diagnostic_results_quote_the_sentence():
    results = extractor.extract_diagnostic_results(PALPITATION_TRANSCRIPT)

    assert [result.test for result in results] == ["ECG", "Holter monitoring"]
    assert results[0].results == ["EKG çekelim, gerekirse 24 saatlik Holter takalım."]


def test_explicit_follow_up_interval():
    note = extractor.extract("Hasta: Başım ağrıyor. Doktor: Ağrı kesici verelim, iki hafta sonra kontrole gelin.")
    assert note.plan.follow_up == "Control visit iki hafta sonra"


def test_cardiac_follow_up_without_interval():
    note = extractor.extract(PALPITATION_TRANSCRIPT)
    assert note.plan.follow_up.startswith("Heart rate and rhythm monitoring")


def test_english_transcript():
    note = extractor.extract("Patient: I have had a bad headache and a fever since yesterday.")

    assert note.subjective.complaint == "headache"
    assert "Analgesic therapy" in note.plan.treatment
    assert "Antipyretic therapy" in note.plan.treatment


def test_custom_rules():
    rules = DEFAULT_RULES.model_copy(update={
        "complaints": [PatternRule(label="rash", pattern=r"döküntü|rash")],
        "treatments": [ConditionalRule(steps=["Topical therapy"], labels=["rash"])],
    })
    note = RuleBasedExtractor(rules).extract("Hasta: Kolumda döküntü var.")

    assert note.subjective.complaint == "rash"
    assert note.plan.treatment == ["Topical therapy"]


def test_load_rules_from_json(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(DEFAULT_RULES.model_dump_json(), encoding="utf-8")

    rules = load_extraction_rules(str(path))

    assert isinstance(rules, ExtractionRules)
    assert rules.model_dump() == DEFAULT_RULES.model_dump()
    assert load_extraction_rules(None) is DEFAULT_RULES
