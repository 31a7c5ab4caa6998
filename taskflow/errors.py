"""Domain errors raised by the taxonomy and task stores.

Every error is recoverable by the caller. The HTTP layer renders them as
``{"detail": message}`` with the class' ``status_code``.
"""


class TaskflowError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TaskflowError):
    status_code = 404


class DuplicateNameError(TaskflowError):
    status_code = 409


class DuplicateRankError(TaskflowError):
    status_code = 409


class ProtectedDefaultError(TaskflowError):
    status_code = 403


class ReferencedEntryError(TaskflowError):
    """Raised when deleting a taxonomy entry that tasks still point at."""

    status_code = 409

    def __init__(self, message: str, count: int):
        super().__init__(message)
        self.count = count


class AlreadyInitializedError(TaskflowError):
    status_code = 400


class ValidationError(TaskflowError):
    status_code = 422


class StorageUnavailableError(TaskflowError):
    status_code = 503
