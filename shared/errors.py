"""
Error taxonomy for the chunking service.

Every failure of a chunking run surfaces as one of these. There is no
partial-result state: a run either returns the full chunk list or raises.
"""


class ChunkingError(Exception):
    """Base class for chunking pipeline errors."""

    pass


class ProviderError(ChunkingError):
    """Embedding or tokenizer backend failed (quota, auth, network, load)."""

    pass


class ConfigurationError(ChunkingError):
    """Invalid chunking parameters. Raised before any provider call."""

    pass


class DegenerateInputError(ChunkingError):
    """Document has no content. Only raised when the caller asks for strict mode."""

    pass


class PipelineCancelledError(ChunkingError):
    """The caller cancelled the run before it finished."""

    pass
