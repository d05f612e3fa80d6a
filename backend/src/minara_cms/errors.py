"""Error taxonomy shared by the API, the pages and the storage layer."""


class CmsError(Exception):
    """Base error carrying a wire code and an HTTP status."""

    status_code = 500

    def __init__(self, message: str, code: str = "SERVER"):
        self.message = message
        self.code = code
        super().__init__(self.message)


class ValidationError(CmsError):
    """Missing or invalid input field."""

    status_code = 400

    def __init__(self, message: str = "Validation failed"):
        super().__init__(message, "VALIDATION")


class NotFoundError(CmsError):
    """Id does not resolve to a live, non-deleted record."""

    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, "NOT_FOUND")


class StorageError(CmsError):
    status_code = 500

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, "DB")


class ServerError(CmsError):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, "SERVER")


class UpstreamError(CmsError):
    """Content API fetch failed or returned a non-success status."""

    status_code = 502

    def __init__(self, message: str = "Upstream content API failed", status: int | None = None):
        self.status = status
        super().__init__(message, "UPSTREAM")
