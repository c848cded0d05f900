"""Application-specific exceptions for consistent error handling.

Every engine failure that a caller is expected to distinguish derives from
``AppError`` so the HTTP adapter can render it, while services and jobs can
catch the narrow subclasses.
"""

from typing import Any

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Application error with standardized error code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | list[Any] | None = None,
    ):
        """Initialize application error."""
        super().__init__(
            status_code=status_code,
            detail={
                "code": code,
                "message": message,
                "details": details,
            },
        )
        self.code = code
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ScoringConfigError(AppError):
    """Subject configuration or answer key is not in a scoreable state."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, "SCORING_CONFIG_ERROR", message, details)


class AnswerValidationError(AppError):
    """Malformed, duplicate or incomplete answer rows."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, "ANSWER_VALIDATION_ERROR", message, details)


class PopulationNotFoundError(AppError):
    """No comparable population for a ranking request."""

    def __init__(self, message: str = "No comparable participants", details: dict[str, Any] | None = None):
        super().__init__(status.HTTP_404_NOT_FOUND, "POPULATION_NOT_FOUND", message, details)


class PredictionUnavailableError(AppError):
    """Prediction view cannot be produced for this submission."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code, "PREDICTION_UNAVAILABLE", message)


class NotFoundError(AppError):
    """Referenced exam, submission or region does not exist."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(status.HTTP_404_NOT_FOUND, "NOT_FOUND", message, details)


class ReleaseValidationError(AppError):
    """Invalid pass-cut release parameters."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code, "RELEASE_INVALID", message)


class ReleaseConflictError(AppError):
    """Release number already published for the exam."""

    def __init__(self, exam_id: int, release_number: int):
        super().__init__(
            status.HTTP_409_CONFLICT,
            "RELEASE_DUPLICATED",
            f"Release {release_number} already exists for exam {exam_id}",
            {"exam_id": exam_id, "release_number": release_number},
        )
        self.exam_id = exam_id
        self.release_number = release_number


def raise_app_error(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | list[Any] | None = None,
) -> None:
    """Raise an application error with standardized format."""
    raise AppError(status_code=status_code, code=code, message=message, details=details)
