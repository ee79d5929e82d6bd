"""Typed failures raised by file sync backends."""


class SyncBackendError(Exception):
    """Reading or writing the board document failed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DocumentNotFound(SyncBackendError):
    """The board document does not exist yet."""

    def __init__(self, message: str = "File not found"):
        super().__init__(message)
