"""Application-wide exception classes.

Every error the request layer knows how to turn into a response derives from
:class:`CarShowError`. Each class carries the HTTP status and the default
message shown to the client.
"""
from __future__ import annotations


class CarShowError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500
    default_message: str = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationFailure(CarShowError):
    """Missing, invalid or expired session, or rejected credentials."""

    status_code = 401
    default_message = "Invalid username or password"


class AuthorizationFailure(CarShowError):
    """Authenticated principal lacks the role or ownership a route needs."""

    status_code = 403
    default_message = "Access denied"


class ValidationFailure(CarShowError):
    """User input rejected before any write happened."""

    status_code = 400
    default_message = "Invalid input"


class ConflictError(ValidationFailure):
    """A value that must be unique is already taken."""

    status_code = 409
    default_message = "Value already in use"

    def __init__(self, message: str | None = None, value: str | None = None) -> None:
        self.value = value
        super().__init__(message)


class AssetProcessingFailure(CarShowError):
    """Base exception for upload and image pipeline errors."""

    status_code = 400
    default_message = "Error processing image. Please try a different file."


class NoFileError(AssetProcessingFailure):
    """No file was supplied for an upload."""

    default_message = "Please select an image file to upload."


class UnsupportedMediaError(AssetProcessingFailure):
    """Declared MIME type is outside the allow-list."""

    status_code = 415
    default_message = "Invalid file type. Only JPEG, PNG, GIF, and WebP are allowed."


class FileTooLargeError(AssetProcessingFailure):
    """Upload exceeds the configured byte ceiling."""

    status_code = 413
    default_message = "File is too large."


class ImageProcessingError(AssetProcessingFailure):
    """Decoding, transforming or writing the image failed."""

    status_code = 422


class StorageFailure(CarShowError):
    """Database operation failed; details are logged, never returned."""

    status_code = 500
