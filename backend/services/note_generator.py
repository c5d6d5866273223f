import logging
from datetime import datetime
from typing import Optional

from models.generation import NoteGenerationResponse, PromptContext
from utils.helpers import sanitize_transcript
from .exceptions import InvalidEncounterError, InvalidTranscriptError, PersistenceError
from .generation_chain import GenerationChain
from .note_repository import NoteRepository
from .prompt_builder import build_prompt
from .template_resolver import TemplateResolver

logger = logging.getLogger(__name__)


class NoteGenerationService:
    """Turns an encounter transcript into a stored SOAP note"""

    def __init__(
        self,
        chain: GenerationChain,
        repository: NoteRepository,
        template_resolver: TemplateResolver
    ):
        self.chain = chain
        self.repository = repository
        self.template_resolver = template_resolver

    async def generate_note(
        self,
        transcript: str,
        encounter_id: Optional[int],
        template_id: Optional[int] = None
    ) -> NoteGenerationResponse:
        """
        Generate and persist the note for an encounter

        Args:
            transcript: Raw encounter transcript
            encounter_id: Encounter the note belongs to
            template_id: Optional template supplying specialty and section hints

        Returns:
            NoteGenerationResponse; `saved` is False when storage failed

        Raises:
            InvalidTranscriptError: If the transcript is empty
            InvalidEncounterError: If no encounter id was given
        """
        if encounter_id is None:
            raise InvalidEncounterError("encounterId is required")
        transcript = sanitize_transcript(transcript or "")
        if not transcript:
            raise InvalidTranscriptError("Transcription is required")

        start_time = datetime.now()
        hint = await self.template_resolver.resolve(template_id)
        context = PromptContext(
            specialty=hint.specialty,
            template_hint=hint,
            prompt=build_prompt(transcript, hint.specialty, hint.structure),
        )

        logger.info(
            f"📝 Generating note for encounter {encounter_id} "
            f"({hint.specialty}, {len(transcript)} chars)"
        )
        result = await self.chain.generate(transcript, context)

        saved = True
        error = None
        try:
            await self.repository.upsert(encounter_id, result.note, transcript, result.strategy)
        except PersistenceError as e:
            # The generated note is still returned to the caller
            saved = False
            error = str(e)

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Encounter {encounter_id}: note from '{result.strategy}' in {elapsed:.2f}s, saved={saved}"
        )

        return NoteGenerationResponse(
            encounter_id=encounter_id,
            note=result.note,
            strategy=result.strategy,
            attempts=result.attempts,
            saved=saved,
            error=error,
        )
