"""Exception hierarchy for catalog synchronization."""


class CatalogSyncError(Exception):
    """Base class for all catalog sync errors."""

    pass


class FatalSyncError(CatalogSyncError):
    """Raised when a sync run cannot continue at all."""

    pass


class FetchError(FatalSyncError):
    """Raised when a catalog cannot be read completely."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Failed to read {source} catalog: {message}")


class CredentialNotFoundError(FatalSyncError):
    """Raised when no credential is stored for an account."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"No credential found for account: {account_id}")


class RecordValidationError(CatalogSyncError):
    """Raised when a record lacks a field required by the requested operation."""

    def __init__(self, reason: str, source_id: str | None = None):
        self.reason = reason
        self.source_id = source_id
        super().__init__(f"Record {source_id or '<unknown>'} not eligible: {reason}")


class WriteError(CatalogSyncError):
    """Raised when a mutation against an external system fails."""

    pass


class PartialWriteError(WriteError):
    """Raised when a multi-call update was only partially applied."""

    def __init__(self, failed_call: str, completed_calls: list[str], cause: Exception):
        self.failed_call = failed_call
        self.completed_calls = list(completed_calls)
        self.cause = cause
        super().__init__(
            f"Update partially applied: {failed_call} failed after "
            f"{', '.join(self.completed_calls)} succeeded: {cause}"
        )


class LinkInconsistency(WriteError):
    """Raised when a record was created in the commerce store but its link could not be stored."""

    def __init__(self, source_id: str, external_id: str, cause: Exception):
        self.source_id = source_id
        self.external_id = external_id
        self.cause = cause
        super().__init__(
            f"Created product {external_id} for {source_id} but failed to store link: {cause}"
        )


class ApiError(CatalogSyncError):
    """Raised when an external API responds with an error status."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class NotFoundError(ApiError):
    """The requested resource does not exist (HTTP 404)."""

    pass


class RateLimitedError(ApiError):
    """The API throttled the request (HTTP 429)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = 429,
        body: str = "",
        retry_after: float | None = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, status_code=status_code, body=body)


class UnauthenticatedError(ApiError):
    """The stored credential was rejected (HTTP 401/403)."""

    pass
