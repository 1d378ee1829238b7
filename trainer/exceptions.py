"""
Custom exceptions for the trainer.
"""


class TrainerException(Exception):
    """Base exception for all trainer exceptions."""
    pass


class ValidationError(TrainerException):
    """Raised when submitted content has the wrong shape."""
    pass


class NotFoundError(TrainerException):
    """Raised when a requested profile or lesson does not exist."""
    pass


class AuthorizationError(TrainerException):
    """Raised when a non-admin profile attempts an admin-only action."""
    pass


class NoActiveProfileError(TrainerException):
    """Raised when no profile id was given and no profile is active."""
    pass


class StorageError(TrainerException):
    """Raised when a document could not be written to the database."""
    pass
