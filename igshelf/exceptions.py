"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class IgshelfError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(IgshelfError):
    """Raised for issues related to configuration loading or validation."""


class IteratorStateError(IgshelfError):
    """Raised when a media iterator is read before it was advanced."""


class SourceError(IgshelfError):
    """
    Raised by a media source when the timeline itself cannot be read.
    A media iterator keeps it as its sticky error.
    """


class ManifestMissingError(SourceError):
    """Raised when the archive has no media.json or the file is empty."""


class ManifestDecodeError(SourceError):
    """Raised when the archive's media.json cannot be decoded."""


class InstagramAPIError(SourceError):
    """
    The response returned when an Instagram API call is unsuccessful.

    Attributes mirror the Graph API error envelope, e.g.
    {"error": {"message": "...", "type": "OAuthException", "code": 190,
    "fbtrace_id": "..."}}, plus the HTTP status and the raw body.
    """

    def __init__(
        self,
        message: str = "",
        type: str = "",
        code: int = 0,
        fbtrace_id: str = "",
        status: int = 0,
        body: str = "",
        inner: Exception | None = None,
    ):
        self.message = message
        self.type = type
        self.code = code
        self.fbtrace_id = fbtrace_id
        self.status = status
        self.body = body
        self.inner = inner
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.inner is not None:
            return str(self.inner)
        return f"{self.type} {self.code}: {self.message}"


def error_code(err: BaseException) -> int:
    """Returns the machine-readable Instagram error code, if available."""
    while err is not None:
        if isinstance(err, InstagramAPIError):
            return err.code
        err = err.__cause__
    return 0


class ListingError(IgshelfError):
    """Raised when a timeline could not be fetched from a media source."""


class PersistenceError(IgshelfError):
    """Raised when the timeline could not be stored or loaded."""


class ItemFetchError(IgshelfError):
    """
    Raised by a media source when a single file could not be copied.
    The download manager logs it and moves on.
    """


class WriteError(IgshelfError):
    """Raised when a downloaded file could not be written to disk."""
