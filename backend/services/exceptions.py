class ScribeError(Exception):
    pass


class GenerationError(ScribeError):
    """A single strategy failed; the chain moves on to the next tier."""
    pass


class ProviderError(GenerationError):
    pass


class ProviderAuthError(ProviderError):
    """Missing or rejected credentials."""
    pass


class ProviderRateLimitError(ProviderError):
    pass


class ProviderTimeoutError(ProviderError):
    pass


class ProviderNetworkError(ProviderError):
    """Connection failures, 5xx and otherwise unusable provider responses."""
    pass


class ResponseParseError(GenerationError):
    """No balanced JSON object could be found or decoded."""
    pass


class ResponseValidationError(GenerationError):
    """JSON was found but lacks a required section or has the wrong shape."""
    pass


class GenerationChainExhausted(ScribeError):
    pass


class PersistenceError(ScribeError):
    pass


class PreconditionError(ScribeError):
    """Request rejected before any strategy runs."""
    pass


class InvalidTranscriptError(PreconditionError):
    pass


class InvalidEncounterError(PreconditionError):
    pass
