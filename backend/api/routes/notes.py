import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import PyMongoError
from models.generation import NoteGenerationRequest, NoteGenerationResponse, PersistedNote
from database.connection import DatabaseManager, get_database
from services.exceptions import GenerationChainExhausted, PersistenceError, PreconditionError
from services.generation_chain import GenerationChain, get_generation_chain
from services.note_generator import NoteGenerationService
from services.note_repository import NoteRepository
from services.template_resolver import TemplateResolver
from config.settings import settings

router = APIRouter(prefix="/api", tags=["notes"])
logger = logging.getLogger(__name__)

async def get_available_database() -> Optional[DatabaseManager]:
    """Database manager, or None while MongoDB is unreachable"""
    try:
        return await get_database()
    except PyMongoError as e:
        logger.warning(f"⚠️ Database unavailable, serving without storage: {e}")
        return None

async def get_note_repository(
    db: Optional[DatabaseManager] = Depends(get_available_database)
) -> NoteRepository:
    return NoteRepository(db.medical_notes if db else None)

async def get_note_service(
    db: Optional[DatabaseManager] = Depends(get_available_database),
    repository: NoteRepository = Depends(get_note_repository),
    chain: GenerationChain = Depends(get_generation_chain)
) -> NoteGenerationService:
    return NoteGenerationService(
        chain=chain,
        repository=repository,
        template_resolver=TemplateResolver(db.templates if db else None, settings.default_specialty)
    )

@router.post("/generate-note", response_model=NoteGenerationResponse)
async def generate_note(
    request: NoteGenerationRequest,
    service: NoteGenerationService = Depends(get_note_service)
):
    """Generate the SOAP note for an encounter and store it"""
    try:
        return await service.generate_note(
            request.transcription,
            request.encounter_id,
            request.template_id
        )
    except PreconditionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GenerationChainExhausted as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception(f"Medical note generation error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to generate medical note: {str(e)}")

@router.get("/notes/{encounter_id}", response_model=PersistedNote)
async def get_note(
    encounter_id: int,
    repository: NoteRepository = Depends(get_note_repository)
):
    """Get the stored note of an encounter"""
    try:
        note = await repository.get(encounter_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if not note:
        raise HTTPException(status_code=404, detail="Medical note not found")
    return note
