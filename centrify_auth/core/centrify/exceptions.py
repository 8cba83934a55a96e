"""Centrify-specific exceptions for error handling."""


class CentrifyError(Exception):
    """Base exception for all Centrify platform operations."""
    pass


class TransportError(CentrifyError):
    """Network or protocol failure talking to the platform.

    Attributes:
        endpoint: URL that was being called
        message: Description of the failure
    """

    def __init__(self, endpoint: str, message: str):
        self.endpoint = endpoint
        self.message = message
        super().__init__(f"{endpoint}: {message}")


class DecodeError(TransportError):
    """Response body does not have the expected shape."""
    pass


class ApiError(CentrifyError):
    """Platform answered with a failure envelope (success=false).
    
    Attributes:
        endpoint: API method that failed
        message: Message reported by the platform
    """

    def __init__(self, endpoint: str, message: str):
        self.endpoint = endpoint
        self.message = message
        super().__init__(f"{endpoint}: {message}")
