import asyncio
import json

import pytest

from services.exceptions import PersistenceError
from services.note_repository import NoteRepository
from services.response_extractor import extract_note

from conftest import FailingCollection, FakeCollection, run


def test_first_save_creates_document(llm_note_json):
    collection = FakeCollection()
    repository = NoteRepository(collection)

    saved = run(repository.upsert(42, extract_note(llm_note_json), "transcript", "anthropic"))

    assert len(collection.documents) == 1
    document = collection.documents[0]
    assert document["encounter_id"] == 42
    assert document["generated_by"] == "anthropic"
    assert document["subjective"]["complaint"] == "Palpitations"
    assert document["generated_at"] == document["updated_at"]
    assert saved.to_note().to_document() == extract_note(llm_note_json).to_document()


def test_second_save_overwrites_in_place(llm_note_json, llm_note_dict):
    collection = FakeCollection()
    repository = NoteRepository(collection)
    first = run(repository.upsert(42, extract_note(llm_note_json), "first", "anthropic"))

    llm_note_dict["subjective"]["complaint"] = "Chest pain"
    second = run(repository.upsert(42, extract_note(json.dumps(llm_note_dict)), "second", "rule_based"))

    assert len(collection.documents) == 1
    assert collection.documents[0]["transcription"] == "second"
    assert collection.documents[0]["subjective"]["complaint"] == "Chest pain"
    assert second.generated_at == first.generated_at
    assert second.updated_at >= first.updated_at
    assert [call[0] for call in collection.calls] == ["find_one_and_update", "find_one_and_update"]


def test_get_returns_stored_note(llm_note_json):
    collection = FakeCollection()
    repository = NoteRepository(collection)
    run(repository.upsert(7, extract_note(llm_note_json), "transcript", "openai"))
    collection.documents[0]["_id"] = "object-id"

    stored = run(repository.get(7))

    assert stored.encounter_id == 7
    assert stored.generated_by == "openai"
    assert run(repository.get(8)) is None


def test_storage_failure_raises_persistence_error(llm_note_json):
    repository = NoteRepository(FailingCollection())

    with pytest.raises(PersistenceError):
        run(repository.upsert(42, extract_note(llm_note_json), "transcript", "anthropic"))
    with pytest.raises(PersistenceError):
        run(repository.get(42))


def test_concurrent_first_saves_keep_one_document(llm_note_json, llm_note_dict):
    collection = FakeCollection()
    repository = NoteRepository(collection)
    llm_note_dict["subjective"]["complaint"] = "Chest pain"

    async def save_both():
        return await asyncio.gather(
            repository.upsert(1, extract_note(llm_note_json), "first", "anthropic"),
            repository.upsert(1, extract_note(json.dumps(llm_note_dict)), "second", "rule_based"),
        )

    first, second = run(save_both())

    assert len(collection.documents) == 1
    assert collection.documents[0]["transcription"] == "second"
    assert first.generated_at == second.generated_at


def test_missing_store_raises_persistence_error(llm_note_json):
    repository = NoteRepository(None)

    with pytest.raises(PersistenceError):
        run(repository.upsert(42, extract_note(llm_note_json), "transcript", "anthropic"))
    with pytest.raises(PersistenceError):
        run(repository.get(42))
