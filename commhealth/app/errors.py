from __future__ import annotations


class AppError(Exception):
    # Base class for domain errors (intended, meaningful failures).
    pass


class InvalidScoreShape(AppError):
    # Raised when a stored score is neither a number on the 1-4 scale nor a {percentage} record.
    def __init__(self, value: object, message: str = ""):
        self.value = value
        super().__init__(message or f"Unsupported score value: {value!r}")


class InsufficientAnswers(AppError):
    # Raised at submission time when no section has an answered scale question.
    pass


class InvalidAnswer(AppError):
    # Raised when a scale answer is not one of the question's option values.
    pass


class ResponseAlreadyCompleted(AppError):
    # Raised when an answer is recorded on a response that has been submitted.
    pass


class InvalidQuestionConfig(AppError):
    # Raised for malformed question definitions (weight, type, options).
    pass


class ImporterError(AppError):
    # Raised for importer-related failures (schema mismatch, unreadable file, etc.).
    pass


class RepositoryError(AppError):
    # Raised when a stored row cannot be decoded.
    pass
