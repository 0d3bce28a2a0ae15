"""Wiki client exceptions."""


class WikiClientError(Exception):
    """Base exception for wiki client errors."""

    pass


class ResponseDecodeError(WikiClientError):
    """Raised when a response body cannot be decoded into its document model."""

    def __init__(self, message: str, endpoint: str) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class InvalidEndpointError(WikiClientError):
    """Raised when an endpoint does not name the kind of resource an operation needs."""

    pass
