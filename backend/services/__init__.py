from .generation_chain import GenerationChain, build_default_chain
from .note_generator import NoteGenerationService
from .note_repository import NoteRepository
from .rule_based_extractor import RuleBasedExtractor
from .strategies import AnthropicStrategy, OpenAIStrategy, RuleBasedStrategy
from .template_resolver import TemplateResolver

__all__ = [
    "GenerationChain",
    "build_default_chain",
    "NoteGenerationService",
    "NoteRepository",
    "RuleBasedExtractor",
    "AnthropicStrategy",
    "OpenAIStrategy",
    "RuleBasedStrategy",
    "TemplateResolver"
]
