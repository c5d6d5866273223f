import logging
from typing import Callable, Dict, List, Optional, Sequence

from config.settings import Settings, settings
from models.generation import GenerationAttempt, GenerationResult, PromptContext
from .exceptions import GenerationChainExhausted, GenerationError, InvalidTranscriptError
from .extraction_rules import load_extraction_rules
from .rule_based_extractor import RuleBasedExtractor
from .strategies import (
    AnthropicStrategy, GenerationStrategy, OpenAIStrategy, RuleBasedStrategy
)

logger = logging.getLogger(__name__)


class GenerationChain:
    """
    Ordered fallback over generation strategies.

    Strategies run one at a time; the first note produced is returned. A
    GenerationError moves on to the next tier, anything else (including
    cancellation) propagates untouched.
    """

    def __init__(self, strategies: Sequence[GenerationStrategy]):
        if not strategies:
            raise ValueError("GenerationChain needs at least one strategy")
        self.strategies: List[GenerationStrategy] = list(strategies)

    @property
    def strategy_names(self) -> List[str]:
        return [strategy.name for strategy in self.strategies]

    async def generate(self, transcript: str, context: PromptContext) -> GenerationResult:
        """
        Run the chain for one transcript

        Args:
            transcript: Sanitized, non-empty transcript
            context: Prompt and template information shared by every tier

        Returns:
            GenerationResult with the note, the winning strategy and every attempt

        Raises:
            InvalidTranscriptError: If the transcript is empty
            GenerationChainExhausted: If every strategy failed
        """
        if not transcript or not transcript.strip():
            raise InvalidTranscriptError("Transcript is empty")

        attempts: List[GenerationAttempt] = []
        for strategy in self.strategies:
            try:
                note = await strategy.generate(transcript, context)
            except GenerationError as e:
                logger.warning(f"⚠️ Strategy '{strategy.name}' failed ({type(e).__name__}): {e}")
                attempts.append(GenerationAttempt(
                    strategy=strategy.name,
                    outcome="failed",
                    error=f"{type(e).__name__}: {e}"
                ))
                continue

            attempts.append(GenerationAttempt(strategy=strategy.name, outcome="success"))
            logger.info(f"✅ Note generated by '{strategy.name}' after {len(attempts)} attempt(s)")
            return GenerationResult(note=note, strategy=strategy.name, attempts=attempts)

        raise GenerationChainExhausted(
            f"All strategies failed: {', '.join(self.strategy_names)}"
        )


def build_default_chain(settings: Settings) -> GenerationChain:
    """
    Build the chain from settings.generation_strategies.

    The rule-based tier is appended when the configured list omits it so the
    chain stays total.
    """
    rules = load_extraction_rules(settings.extraction_rules_path)
    factories: Dict[str, Callable[[], GenerationStrategy]] = {
        AnthropicStrategy.name: lambda: AnthropicStrategy(settings),
        OpenAIStrategy.name: lambda: OpenAIStrategy(settings),
        RuleBasedStrategy.name: lambda: RuleBasedStrategy(RuleBasedExtractor(rules)),
    }

    strategies: List[GenerationStrategy] = []
    for name in settings.generation_strategies:
        key = name.strip().lower()
        if key not in factories:
            raise ValueError(f"Unknown generation strategy: {name}")
        if key in (strategy.name for strategy in strategies):
            continue
        strategies.append(factories[key]())

    if not strategies or strategies[-1].name != RuleBasedStrategy.name:
        strategies = [s for s in strategies if s.name != RuleBasedStrategy.name]
        strategies.append(factories[RuleBasedStrategy.name]())

    logger.info(f"Generation chain: {' -> '.join(s.name for s in strategies)}")
    return GenerationChain(strategies)


_default_chain: Optional[GenerationChain] = None

def get_generation_chain() -> GenerationChain:
    """Get the process-wide chain built from application settings"""
    global _default_chain
    if _default_chain is None:
        _default_chain = build_default_chain(settings)
    return _default_chain
