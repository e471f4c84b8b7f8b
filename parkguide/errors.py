"""
Errors raised by the storage layer.
"""


class StorageError(Exception):
    """Base class for storage failures."""


class StorageNotInitializedError(StorageError):
    """The relational backend was used without a connection URL."""

    def __init__(self, message: str = "Database not initialized"):
        super().__init__(message)


class StorageUnavailableError(StorageError):
    """The database could not be reached or rejected a statement."""


class UsernameTakenError(StorageError):
    def __init__(self, username: str):
        super().__init__(f"Username already exists: {username}")
        self.username = username
