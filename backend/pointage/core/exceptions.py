"""
Domain errors raised by the storage-side services.

The computation engine never raises these: it degrades bad input to neutral
values. They are raised by the absence / employee stores and mapped to HTTP
status codes in the API layer.
"""


class PointageError(Exception):
    """Base class for all application errors."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AbsenceConflictError(PointageError):
    """Another absence from the same source already exists for that day."""

    status_code = 409


class AbsenceOnHolidayError(PointageError):
    """Absences cannot be recorded on (or moved to) a public holiday."""

    status_code = 409


class AbsenceNotFoundError(PointageError):
    status_code = 404


class EmployeeNotFoundError(PointageError):
    status_code = 404


class DuplicateAbsenceTypeError(PointageError):
    status_code = 409
