"""
Extraction policy for the rule-based note generator.

Every field is driven by an ordered list of (label, pattern) pairs so the
decision procedure is data. Patterns are matched against the lowercased
transcript and cover Turkish and English phrasing. A JSON file with the same
shape as ExtractionRules can replace the defaults (see load_extraction_rules).
"""
import re
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

# Up to three words between two keywords, e.g. "kalbim çok hızlı çarpıyor"
GAP = r"(?:\s+\S+){0,3}?\s+"

NOT_DOCUMENTED = "Not documented"


def _compile_check(pattern: Optional[str]) -> Optional[str]:
    if pattern is not None:
        try:
            re.compile(pattern)
        except re.error as e:
            raise ValueError(f"Invalid pattern {pattern!r}: {e}") from e
    return pattern


class PatternRule(BaseModel):
    label: str
    pattern: str

    @field_validator("pattern")
    @classmethod
    def check_pattern(cls, pattern):
        return _compile_check(pattern)

    def search(self, text: str) -> Optional[re.Match]:
        return re.search(self.pattern, text)

    def matches(self, text: str) -> bool:
        return self.search(text) is not None


class ExamRule(BaseModel):
    """Canned exam narrative for one body system"""
    system: str
    narrative: str
    pattern: str
    specialties: List[str] = Field(default_factory=list)

    @field_validator("pattern")
    @classmethod
    def check_pattern(cls, pattern):
        return _compile_check(pattern)


class VitalRule(BaseModel):
    """Explicit vital sign mention; group 1 of the first matching pattern is the value"""
    key: str
    patterns: List[str]
    unit_format: str = "{value}"
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    @field_validator("patterns")
    @classmethod
    def check_patterns(cls, patterns: List[str]) -> List[str]:
        for pattern in patterns:
            _compile_check(pattern)
        return patterns


class DiagnosisRule(BaseModel):
    label: str
    diagnosis: str
    icd10_code: Optional[str] = None
    # First matching qualifier replaces the diagnosis text
    qualifiers: List[PatternRule] = Field(default_factory=list)


class ConditionalRule(BaseModel):
    """
    Steps appended when every given condition holds: any of `labels` was
    detected, `pattern` matches the transcript, any of `specialties` is part
    of the specialty label.
    """
    steps: List[str]
    labels: List[str] = Field(default_factory=list)
    pattern: Optional[str] = None
    specialties: List[str] = Field(default_factory=list)

    @field_validator("pattern")
    @classmethod
    def check_pattern(cls, pattern):
        return _compile_check(pattern)


class MedicationRule(BaseModel):
    name: str
    pattern: str

    @field_validator("pattern")
    @classmethod
    def check_pattern(cls, pattern):
        return _compile_check(pattern)


class ExtractionRules(BaseModel):
    complaints: List[PatternRule]
    symptoms: List[PatternRule]
    risk_factors: List[PatternRule]
    exam_systems: List[ExamRule]
    vital_signs: List[VitalRule]
    diagnoses: List[DiagnosisRule]
    treatments: List[ConditionalRule]
    medications: List[MedicationRule]
    diagnostic_tests: List[PatternRule]
    follow_up: List[ConditionalRule]
    lifestyle: List[ConditionalRule]
    social_history: List[PatternRule]

    dose_pattern: str = r"(\d+(?:[.,]\d+)?(?:/\d+(?:[.,]\d+)?)?\s*(?:mg|mcg|µg|g|ml|iu|ünite))\b"
    frequency_pattern: str = (
        r"(günde\s+(?:\d|bir|iki|üç|dört)\s+(?:kez|defa)|\d\s*x\s*\d|"
        r"(?:once|twice|three times|\d times)\s+(?:a|per)\s+day|daily|her gün|sabah akşam)"
    )
    explicit_follow_up_pattern: str = (
        r"((?:\d+|bir|iki|üç|dört|altı)\s+(?:gün|hafta|ay)\s+sonra|"
        r"in\s+(?:\d+|one|two|three|four|six)\s+(?:days?|weeks?|months?))"
    )
    generic_exam: str = "Physical examination performed. General condition good."
    fallback_treatments: List[str] = Field(
        default_factory=lambda: ["Symptomatic treatment", "Follow-up recommended"]
    )
    default_follow_up: str = "Control visit in 1-2 weeks recommended"
    fallback_lifestyle: List[str] = Field(
        default_factory=lambda: ["Healthy lifestyle advice", "Regular check-ups"]
    )
    complaint_placeholder: str = "Chief complaint not documented in transcript"
    symptom_placeholder: str = "No specific symptoms documented in transcript"
    history_placeholder: str = "Past medical history inquired; no conditions documented"
    not_documented: str = NOT_DOCUMENTED
    current_complaints_limit: int = 300
    diagnostic_result_limit: int = 200


PALPITATIONS = (
    rf"çarpıntı|kalb?\w*{GAP}çarp|çarpıyor|hızlı{GAP}çarp|palpitation|"
    rf"heart\w*{GAP}(?:racing|pounding|beating fast)|(?:racing|pounding) heart"
)
CHEST_PAIN = (
    rf"göğ(?:üs|s)\w*{GAP}(?:ağrı|baskı|sıkış)|göğ(?:üs|s)\w*\s+(?:ağrı|baskı|sıkış)|"
    r"chest (?:pain|pressure|tightness)"
)
DIZZINESS = rf"baş\w*{GAP}dön|başım\s+dön|bayıl|dizz|faint|lightheaded"
DYSPNEA = (
    rf"nefes\w*{GAP}(?:daral|darlı|sıkış)|nefes\w*\s+(?:daral|darlı)|nefes alma\w*{GAP}güçlük|"
    r"short(?:ness)? of breath|breathless|difficulty breathing"
)
ANXIETY = r"huzursuz|anksiyete|kaygı|korku|anxi|restless"
HEADACHE = rf"baş\s+ağrı|başım\w*(?:{GAP}|\s+)ağrı|headache"
ABDOMINAL_PAIN = (
    rf"karın\w*(?:{GAP}|\s+)ağrı|karn\w*(?:{GAP}|\s+)ağrı|"
    r"abdominal pain|stomach ?ache|belly pain"
)
FEVER = r"ateş|fever"
COUGH = r"öksür|cough"
NAUSEA = r"bulantı|mide\w*\s+bulan|nause"
FATIGUE = r"yorgun|halsiz|güçsüz|fatigue|tired|exhausted"
SLEEP = rf"uyku\w*{GAP}(?:problem|sorun)|uyku\w*\s+(?:problem|sorun)|uyuyam|uykusuz|insomnia|trouble sleeping"
APPETITE = r"iştah\w*\s+(?:kayb|yok)|iştahsız|loss of appetite|no appetite"
# Negated mentions ("sigara içmiyorum", "I don't smoke", "non-smoker") do not count
SMOKING = (
    r"sigara(?!\w*(?:\s+\S+)?\s+(?:içmiyor|içmem|içmedi|içmez|kullanmıyor|kullanmam|kullanmadı|yok))"
    r"|(?<!don't )(?<!don’t )(?<!do not )(?<!doesn't )(?<!does not )(?<!never )"
    r"(?<!non-)(?<!non)(?<!not a )(?<!no )smok"
)

CARDIAC_LABELS = ["palpitations", "chest pain", "chest pain/pressure"]
CARDIOLOGY = ["kardiyoloji", "cardiology"]


DEFAULT_RULES = ExtractionRules(
    # First match wins; cardiac alarm symptoms before generic complaints
    complaints=[
        PatternRule(label="palpitations", pattern=PALPITATIONS),
        PatternRule(label="chest pain", pattern=CHEST_PAIN),
        PatternRule(label="dizziness", pattern=DIZZINESS),
        PatternRule(label="shortness of breath", pattern=DYSPNEA),
        PatternRule(label="anxiety", pattern=ANXIETY),
        PatternRule(label="headache", pattern=HEADACHE),
        PatternRule(label="abdominal pain", pattern=ABDOMINAL_PAIN),
        PatternRule(label="fever", pattern=FEVER),
        PatternRule(label="cough", pattern=COUGH),
        PatternRule(label="nausea", pattern=NAUSEA),
        PatternRule(label="fatigue", pattern=FATIGUE),
        PatternRule(label="sleep problems", pattern=SLEEP),
        PatternRule(label="loss of appetite", pattern=APPETITE),
    ],
    symptoms=[
        PatternRule(label="palpitations", pattern=PALPITATIONS),
        PatternRule(
            label="palpitations triggered by stress or caffeine",
            pattern=rf"stres\w*{GAP}çarp|kahve\w*{GAP}çarp|(?:stress|caffeine|coffee)\w*{GAP}palpitation",
        ),
        PatternRule(label="dizziness", pattern=DIZZINESS),
        PatternRule(label="shortness of breath", pattern=DYSPNEA),
        PatternRule(
            label="ongoing for about two months",
            pattern=r"iki\s+ay|\b2\s+ay|yaklaşık\s+(?:\d+\s+|bir\s+|iki\s+|üç\s+)?ay|two months|\b2 months",
        ),
        PatternRule(
            label="several times a day",
            pattern=rf"günde{GAP}(?:kez|defa)|birkaç\s+(?:kez|defa)|several times a day|\d+ times a day",
        ),
        PatternRule(label="under psychiatric follow-up", pattern=r"psikiyatr|psychiatr"),
        PatternRule(label="chest pain/pressure", pattern=CHEST_PAIN),
        PatternRule(
            label="pain worse on exertion",
            pattern=rf"merdiven\w*{GAP}çık|merdiven\w*\s+çık|yürü\w*{GAP}ağrı|on exertion|climbing stairs",
        ),
        PatternRule(
            label="pain radiating to the left arm",
            pattern=r"sol\s+kol|kola\s+yayıl|koluma\s+vur|left arm",
        ),
        PatternRule(
            label="relieved by rest",
            pattern=rf"dinlen\w*{GAP}geç|dinlen\w*\s+geç|relieved by rest|goes away (?:with|when i) rest",
        ),
        PatternRule(
            label="episodes lasting 5-10 minutes",
            pattern=r"\b(?:beş|on|\d+)\s+dakika|\b(?:five|ten|\d+) minutes",
        ),
        PatternRule(label="headache", pattern=HEADACHE),
        PatternRule(label="fever", pattern=FEVER),
        PatternRule(label="cough", pattern=COUGH),
        PatternRule(label="nausea", pattern=NAUSEA),
    ],
    risk_factors=[
        PatternRule(
            label="Family history of heart disease",
            pattern=rf"baba\w*{GAP}kalp|anne\w*{GAP}kalp|aile\w*{GAP}kalp|kalp krizi|family history|heart attack",
        ),
        PatternRule(label="Smoking history", pattern=SMOKING),
        PatternRule(label="Diabetes mellitus", pattern=r"diyabet|şeker hastal|diabet"),
        PatternRule(
            label="Hypertension",
            pattern=rf"tansiyon\w*{GAP}yüksek|tansiyon\w*\s+yüksek|yüksek tansiyon|hipertansiyon|hypertension|high blood pressure",
        ),
        PatternRule(label="Stress and anxiety", pattern=r"stres|kaygı|anksiyete|anxiety"),
        PatternRule(label="Caffeine intake", pattern=r"kahve|kafein|coffee|caffeine"),
        PatternRule(label="Psychiatric follow-up history", pattern=r"psikiyatr|psikolog|ruhsal|psychiatr|therapist"),
        PatternRule(label="Thyroid disease to be evaluated", pattern=r"tiroid|tiroit|thyroid"),
    ],
    exam_systems=[
        ExamRule(
            system="cardiac",
            narrative=(
                "General condition fair, alert. Cardiovascular system examined. "
                "Pulmonary system evaluated."
            ),
            pattern=r"göğ(?:üs|s)|kalp|kalb|nefes|chest|heart|breath",
            specialties=CARDIOLOGY,
        ),
        ExamRule(
            system="neurological",
            narrative="Neurological examination performed. General condition good, alert and oriented.",
            pattern=r"baş\s+ağrı|başım|nöro|headache|dizz|neuro|numb",
            specialties=["nöroloji", "neurology"],
        ),
        ExamRule(
            system="abdominal",
            narrative="Abdominal examination performed. General condition assessed.",
            pattern=r"karın|karn|mide|iştah|abdom|stomach",
            specialties=["gastroenteroloji", "gastroenterology"],
        ),
    ],
    vital_signs=[
        VitalRule(
            key="heartRate",
            patterns=[
                r"(?:nabız|nabzı|kalp hızı|heart rate|pulse|\bhr\b)\D{0,15}?(\d{2,3})",
                r"(\d{2,3})\s*(?:bpm|/dk|atım)",
            ],
            unit_format="{value}/min",
            min_value=25,
            max_value=250,
        ),
        VitalRule(
            key="bloodPressure",
            patterns=[
                r"(?:tansiyon\w*|kan basıncı|blood pressure|\bbp\b)\D{0,15}?(\d{2,3}\s*/\s*\d{2,3})",
                r"(\d{2,3}\s*/\s*\d{2,3})\s*mm\s*hg",
            ],
            unit_format="{value} mmHg",
        ),
        VitalRule(
            key="temperature",
            patterns=[
                r"(?:ateş\w*|vücut sıcaklığı|temperature|\btemp\b)\D{0,15}?(\d{2}(?:[.,]\d)?)",
                r"(\d{2}(?:[.,]\d)?)\s*(?:°\s*c\b|derece)",
            ],
            unit_format="{value} °C",
            min_value=33,
            max_value=43,
        ),
        VitalRule(
            key="respiratoryRate",
            patterns=[
                r"(?:solunum(?: sayısı| hızı)?|respiratory rate|respirations|\brr\b)\D{0,15}?(\d{1,2})\b",
            ],
            unit_format="{value}/min",
            min_value=5,
            max_value=60,
        ),
        VitalRule(
            key="oxygenSaturation",
            patterns=[
                r"(?:satürasyon\w*|saturasyon\w*|sao2|spo2|oxygen saturation|o2 sat\w*)\D{0,15}?(\d{2,3})",
            ],
            unit_format="{value}%",
            min_value=50,
            max_value=100,
        ),
    ],
    diagnoses=[
        DiagnosisRule(
            label="palpitations",
            diagnosis="Palpitations, etiology to be investigated",
            icd10_code="R00.2",
            qualifiers=[
                PatternRule(
                    label="Palpitations, likely related to anxiety and stress",
                    pattern=r"stres|anksiyete|kaygı|stress|anxiety",
                ),
                PatternRule(
                    label="Palpitations, thyroid dysfunction to be excluded",
                    pattern=r"tiroid|tiroit|thyroid",
                ),
            ],
        ),
        DiagnosisRule(
            label="chest pain",
            diagnosis="Chest pain, etiology to be investigated",
            icd10_code="R07.9",
            qualifiers=[
                PatternRule(
                    label="Atypical chest pain, cardiac etiology to be investigated",
                    pattern=r"kalp|kardiyak|heart|cardiac",
                ),
            ],
        ),
        DiagnosisRule(label="dizziness", diagnosis="Dizziness", icd10_code="R42"),
        DiagnosisRule(
            label="shortness of breath",
            diagnosis="Dyspnea, etiology to be investigated",
            icd10_code="R06.0",
        ),
        DiagnosisRule(label="anxiety", diagnosis="Anxiety", icd10_code="F41.9"),
        DiagnosisRule(label="headache", diagnosis="Primary headache", icd10_code="R51"),
        DiagnosisRule(label="abdominal pain", diagnosis="Abdominal pain", icd10_code="R10.4"),
        DiagnosisRule(label="fever", diagnosis="Fever of unknown origin", icd10_code="R50.9"),
        DiagnosisRule(label="cough", diagnosis="Cough", icd10_code="R05"),
        DiagnosisRule(label="nausea", diagnosis="Nausea", icd10_code="R11"),
        DiagnosisRule(label="fatigue", diagnosis="Malaise and fatigue", icd10_code="R53"),
        DiagnosisRule(label="sleep problems", diagnosis="Sleep disorder", icd10_code="G47.9"),
        DiagnosisRule(label="loss of appetite", diagnosis="Anorexia", icd10_code="R63.0"),
        DiagnosisRule(
            label="chest pain/pressure",
            diagnosis="Chest pain, etiology to be investigated",
            icd10_code="R07.9",
        ),
    ],
    treatments=[
        ConditionalRule(steps=["ECG ordered"], labels=["palpitations"]),
        ConditionalRule(
            steps=["24-hour Holter monitoring planned"],
            labels=["palpitations"],
            pattern=r"holter|24 saat|yirmi dört|24-hour|24 hour",
        ),
        ConditionalRule(
            steps=["Thyroid function tests to be repeated"],
            labels=["palpitations"],
            pattern=r"tiroid|tiroit|thyroid",
        ),
        ConditionalRule(
            steps=["Stress and anxiety management", "Continue psychiatric follow-up"],
            labels=["palpitations"],
            pattern=r"stres|anksiyete|stress|anxiety",
        ),
        ConditionalRule(
            steps=["Caffeine and stimulant restriction advised", "Cardiology follow-up planned"],
            labels=["palpitations"],
        ),
        ConditionalRule(
            steps=[
                "ECG and exercise stress test planned",
                "Cardiology consultation recommended",
                "Risk factor modification",
            ],
            labels=["chest pain", "chest pain/pressure"],
        ),
        ConditionalRule(steps=["ECG ordered"], specialties=CARDIOLOGY),
        ConditionalRule(
            steps=["Analgesic therapy", "Identify headache triggers"],
            labels=["headache"],
        ),
        ConditionalRule(
            steps=["Antipyretic therapy", "Investigate source of infection"],
            labels=["fever"],
        ),
    ],
    medications=[
        MedicationRule(name="Aspirin", pattern=r"aspirin|coraspin|ecopirin"),
        MedicationRule(name="Blood thinner", pattern=r"kan sulandırıcı|blood thinner|anticoagulant"),
        MedicationRule(name="Atacand Plus", pattern=r"atacand"),
        MedicationRule(name="Metformin", pattern=r"metformin|glifor|glucophage"),
        MedicationRule(name="Levothyroxine", pattern=r"levotiron|euthyrox|levothyroxine|tefor"),
        MedicationRule(name="Metoprolol", pattern=r"metoprolol|beloc"),
        MedicationRule(name="Paracetamol", pattern=r"parasetamol|paracetamol|parol|acetaminophen"),
        MedicationRule(name="Ibuprofen", pattern=r"ibuprofen|brufen|advil"),
    ],
    diagnostic_tests=[
        PatternRule(label="ECG", pattern=r"\bekg\b|\becg\b|elektrokardiyo|electrocardiogra"),
        PatternRule(label="Echocardiography", pattern=r"ekokardiyo|ekokardio|echocardiogra|\becho\b|\beko\b"),
        PatternRule(label="Angiography", pattern=r"anjiyo|anjio|angiogra"),
        PatternRule(label="Holter monitoring", pattern=r"holter"),
        PatternRule(label="Thyroid function tests", pattern=r"\btsh\b|tiroid fonksiyon|thyroid function"),
        PatternRule(label="Blood tests", pattern=r"kan tahlil|kan testi|hemogram|blood test|blood work"),
    ],
    follow_up=[
        ConditionalRule(
            steps=["Heart rate and rhythm monitoring to continue; cardiology control visit"],
            labels=CARDIAC_LABELS,
        ),
        ConditionalRule(
            steps=["Control visit if fever persists beyond 3 days"],
            labels=["fever"],
        ),
    ],
    lifestyle=[
        ConditionalRule(
            steps=["Regular heart rate monitoring", "Stress management", "Regular exercise program"],
            labels=CARDIAC_LABELS,
        ),
        ConditionalRule(steps=["Limit caffeine intake"], pattern=r"kahve|kafein|coffee|caffeine"),
        ConditionalRule(steps=["Smoking cessation advised"], pattern=SMOKING),
    ],
    social_history=[
        PatternRule(label="Smoking: mentioned in transcript", pattern=SMOKING),
        PatternRule(label="Alcohol use: mentioned in transcript", pattern=r"alkol|alcohol|içki"),
        PatternRule(label="Caffeine use: mentioned in transcript", pattern=r"kahve|kafein|coffee|caffeine"),
    ],
)


def load_extraction_rules(path: Optional[str] = None) -> ExtractionRules:
    """Load rules from a JSON file, or the built-in defaults when no path is given"""
    if not path:
        return DEFAULT_RULES
    return ExtractionRules.model_validate_json(Path(path).read_text(encoding="utf-8"))
