import logging
from typing import Any, Optional
from pymongo.errors import PyMongoError

from models.generation import TemplateHint
from .prompt_builder import DEFAULT_SPECIALTY

logger = logging.getLogger(__name__)


class TemplateResolver:
    """Looks up the specialty and section hints of a note template"""

    def __init__(self, collection: Optional[Any] = None, default_specialty: str = DEFAULT_SPECIALTY):
        self.collection = collection
        self.default_specialty = default_specialty

    def default_hint(self) -> TemplateHint:
        return TemplateHint(specialty=self.default_specialty)

    async def resolve(self, template_id: Optional[int]) -> TemplateHint:
        """
        Resolve a template id to a hint.

        Templates only guide generation, so an unknown id or an unreachable
        store falls back to the generic hint instead of failing the request.
        """
        if template_id is None or self.collection is None:
            return self.default_hint()

        try:
            document = await self.collection.find_one({"template_id": template_id})
        except PyMongoError as e:
            logger.warning(f"Template lookup failed for {template_id}: {e}")
            return self.default_hint()

        if not document:
            logger.info(f"Template {template_id} not found, using {self.default_specialty}")
            return self.default_hint()

        return TemplateHint(
            template_id=template_id,
            name=document.get("name"),
            specialty=document.get("specialty") or self.default_specialty,
            structure=document.get("structure") or {},
        )
