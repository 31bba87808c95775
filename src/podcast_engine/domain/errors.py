"""Exception types raised by the generation pipeline."""


class PodcastEngineError(Exception):
    """Base class for all engine errors."""


class StageFailedError(PodcastEngineError):
    """A fatal pipeline step failed and the generation run must stop."""

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


class ContentValidationError(PodcastEngineError):
    """Generated or supplied content does not meet a hard requirement."""


class ProviderParseError(PodcastEngineError):
    """A provider response could not be turned into the requested structure."""

    def __init__(self, message: str, raw: str = "") -> None:
        self.raw = raw
        super().__init__(message)


class LogTerminatedError(PodcastEngineError):
    """A write was attempted on a generation log that already completed or failed."""


class PodcastNotFoundError(PodcastEngineError):
    """The requested podcast does not exist."""


class EpisodeNotFoundError(PodcastEngineError):
    """The requested episode does not exist."""


class DocumentNotFoundError(PodcastEngineError):
    """A document update targeted an id that does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} not found")


class AudioGenerationError(PodcastEngineError):
    """Speech synthesis or audio upload failed."""
