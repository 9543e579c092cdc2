class PixelpressError(Exception):
    """Base error for Pixelpress."""

    code = "UNKNOWN"


class RecoverableError(PixelpressError):
    """Indicates the operation can be retried safely."""

    code = "RECOVERABLE"


class PermanentError(PixelpressError):
    """Indicates the operation should not be retried."""

    code = "PERMANENT"


class ValidationError(PixelpressError):
    """Input validation failure."""

    code = "VALIDATION"


class CompressError(PixelpressError):
    """The compression provider did not produce a result."""


class CompressTransportError(CompressError, RecoverableError):
    code = "COMPRESS_TRANSPORT"


class ProviderRejectedError(CompressError, PermanentError):
    code = "PROVIDER_REJECTED"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class FetchError(PixelpressError):
    """The optimized result could not be staged locally."""


class FetchNetworkError(FetchError, RecoverableError):
    code = "FETCH_NETWORK"


class FetchIOError(FetchError, RecoverableError):
    code = "FETCH_IO"


class PublishError(PixelpressError):
    """The staged result could not be written back to storage."""


class MissingStagedError(PublishError, RecoverableError):
    code = "PUBLISH_MISSING_STAGED"


class PublishIOError(PublishError, RecoverableError):
    code = "PUBLISH_IO"


class PublishCommitError(PublishError, RecoverableError):
    code = "PUBLISH_COMMIT"
