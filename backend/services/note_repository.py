import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from models.generation import PersistedNote
from models.note import StructuredNote
from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


class NoteRepository:
    """
    One stored note per encounter, overwritten on re-generation.

    A repository without a collection (database unreachable at request time)
    raises PersistenceError on every call.
    """

    def __init__(self, collection: Optional[Any]):
        self.collection = collection

    def _require_collection(self, encounter_id: int) -> Any:
        if self.collection is None:
            raise PersistenceError(f"Note store unavailable for encounter {encounter_id}")
        return self.collection

    async def upsert(
        self,
        encounter_id: int,
        note: StructuredNote,
        transcript: str,
        generated_by: str
    ) -> PersistedNote:
        """
        Create the encounter's note, or overwrite it in place.

        A single atomic upsert, so concurrent generations for the same
        encounter never collide on the unique index; the last write wins.

        Raises:
            PersistenceError: On any storage failure
        """
        collection = self._require_collection(encounter_id)
        now = datetime.now(timezone.utc)
        fields = self._note_fields(note, transcript, generated_by)
        fields["updated_at"] = now

        try:
            document = await collection.find_one_and_update(
                {"encounter_id": encounter_id},
                {"$set": fields, "$setOnInsert": {"generated_at": now}},
                upsert=True,
                return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            logger.error(f"❌ Failed to save note for encounter {encounter_id}: {e}")
            raise PersistenceError(f"Failed to save note for encounter {encounter_id}: {e}") from e

        logger.info(f"✅ Medical note saved for encounter {encounter_id}")
        return self._to_model(document)

    async def get(self, encounter_id: int) -> Optional[PersistedNote]:
        collection = self._require_collection(encounter_id)
        try:
            document = await collection.find_one({"encounter_id": encounter_id})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to load note for encounter {encounter_id}: {e}") from e
        return self._to_model(document) if document else None

    @staticmethod
    def _note_fields(note: StructuredNote, transcript: str, generated_by: str) -> Dict[str, Any]:
        data = note.to_document()
        return {
            "transcription": transcript,
            "visit_summary": data["visitSummary"],
            "subjective": data["subjective"],
            "objective": data["objective"],
            "assessment": data["assessment"],
            "plan": data["plan"],
            "generated_by": generated_by,
        }

    @staticmethod
    def _to_model(document: Dict[str, Any]) -> PersistedNote:
        document = {key: value for key, value in document.items() if key != "_id"}
        return PersistedNote.model_validate(document)
