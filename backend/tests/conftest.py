import asyncio
import copy
import json
from types import SimpleNamespace

import httpx
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from models.generation import PromptContext, TemplateHint
from services.prompt_builder import build_prompt

PALPITATION_TRANSCRIPT = (
    "Doktor: Merhaba, şikayetiniz nedir? "
    "Hasta: Son iki aydır kalbim çok hızlı çarpıyor, günde birkaç kez oluyor. "
    "Stresliyken daha çok oluyor, kahve de içiyorum. Tiroid tahlili yaptırmıştım. "
    "Doktor: Nabız 96, tansiyon 130/85. EKG çekelim, gerekirse 24 saatlik Holter takalım."
)

NO_SIGNAL_TRANSCRIPT = "Doktor: Merhaba, nasılsınız? Hasta: İyiyim, sadece rutin kontrol için geldim."

LLM_NOTE = {
    "visitSummary": "Patient presented with palpitations.",
    "subjective": {
        "complaint": "Palpitations",
        "currentComplaints": "Two months of fast heartbeat",
        "medicalHistory": [],
        "medications": [],
    },
    "objective": {
        "vitalSigns": {"heartRate": 96, "bloodPressure": "130/85 mmHg"},
        "physicalExam": "Not documented",
        "diagnosticResults": [],
    },
    "assessment": {
        "general": "Palpitations",
        "diagnoses": [{"diagnosis": "Palpitations", "icd10Code": "R00.2", "type": "ana"}],
    },
    "plan": {
        "treatment": ["ECG ordered"],
        "medications": [],
        "followUp": "Not documented",
        "lifestyle": [],
    },
}


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def llm_note_dict():
    return copy.deepcopy(LLM_NOTE)


@pytest.fixture
def llm_note_json():
    return json.dumps(LLM_NOTE)


def make_context(transcript: str, specialty: str = "General Medicine") -> PromptContext:
    return PromptContext(
        specialty=specialty,
        template_hint=TemplateHint(specialty=specialty),
        prompt=build_prompt(transcript, specialty),
    )


def fake_request() -> httpx.Request:
    return httpx.Request("POST", "https://provider.test/v1")


class FakeCollection:
    """In-memory stand-in for a motor collection with equality filters"""

    def __init__(self, documents=None):
        self.documents = list(documents or [])
        self.calls = []

    def _matches(self, document, query):
        return all(document.get(key) == value for key, value in query.items())

    async def find_one(self, query):
        self.calls.append(("find_one", query))
        for document in self.documents:
            if self._matches(document, query):
                return dict(document)
        return None

    async def find_one_and_update(self, query, update, upsert=False, return_document=None):
        self.calls.append(("find_one_and_update", query))
        # Yield like a network round trip so concurrent callers interleave
        await asyncio.sleep(0)
        for document in self.documents:
            if self._matches(document, query):
                document.update(update["$set"])
                return dict(document)
        if not upsert:
            return None
        document = {**query, **update.get("$setOnInsert", {}), **update["$set"], "_id": len(self.documents) + 1}
        self.documents.append(document)
        return dict(document)


class FailingCollection:
    async def find_one(self, query):
        raise ServerSelectionTimeoutError("mongo unreachable")

    async def find_one_and_update(self, query, update, upsert=False, return_document=None):
        raise ServerSelectionTimeoutError("mongo unreachable")


class StubStrategy:
    """Strategy double returning a fixed note or raising a fixed error"""

    def __init__(self, name, note=None, error=None):
        self.name = name
        self.note = note
        self.error = error
        self.calls = 0

    async def generate(self, transcript, context):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.note


class FakeAnthropicClient:
    def __init__(self, text=None, error=None, delay=0):
        self.text = text
        self.error = error
        self.delay = delay
        self.requests = []
        self.messages = SimpleNamespace(create=self._create)

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.text)])


class FakeOpenAIClient:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])
