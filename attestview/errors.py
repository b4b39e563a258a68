class AttestviewError(Exception):
    """
    Base exception for all attestview failures.
    """

    pass


class InvalidJsonError(AttestviewError, ValueError):
    """
    Raised when the top-level input is not valid JSON text.

    The message is user-facing; no partial output accompanies it.
    """

    def __init__(self, message: str = "Invalid JSON format") -> None:
        super().__init__(message)


class ShareTokenError(AttestviewError, ValueError):
    """
    Raised when a share token cannot be decoded back into text.
    """

    pass
