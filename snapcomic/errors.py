class ComicError(Exception):
    """Base class for every error raised by snapcomic."""


class ConfigurationError(ComicError):
    """Missing or invalid credential for the generation service."""


class EmptyResponseError(ComicError):
    """A generation call returned no usable content."""


class ParseError(ComicError):
    """The script response was not valid structured data."""


class TransportError(ComicError):
    """The underlying SDK or network call failed."""


class PipelineError(ComicError):
    """A pipeline stage failed; the run was aborted and its panels discarded.

    ``cause`` keeps the original stage error so callers can tell a
    ``ParseError`` from a ``TransportError`` without parsing the message.
    """

    def __init__(self, stage: str, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} failed: {cause}")

    @property
    def kind(self) -> str:
        return type(self.cause).__name__
