"""Exception taxonomy shared by the revision services and the HTTP layer."""

from __future__ import annotations

from enum import Enum

APP_NOT_FOUND = "App not found"
DOWNLOAD_NOT_FOUND_FOR_CHANNEL = "Download not available for this channel"
INVALID_ARCH = "The provided architecture is not valid"
PERMISSION_DENIED = "You do not have permission to update this app"
APP_LOCKED = "Sorry this app has been locked by an admin"
AUTHENTICATION_REQUIRED = "User not authenticated"
LOCK_TIMEOUT = "The app is busy with another upload, please try again later"
UPLOAD_FAILED = "There was an error updating your app, please try again later"
INVALID_CHANNEL = "The provided channel is not valid"


class ValidationKind(str, Enum):
    NO_FILE = "no_file"
    INVALID_CHANNEL = "invalid_channel"
    BAD_FILE = "bad_file"
    NEEDS_MANUAL_REVIEW = "needs_manual_review"
    MALFORMED_MANIFEST = "malformed_manifest"
    WRONG_PACKAGE = "wrong_package"
    EXISTING_VERSION = "existing_version"
    NO_ALL = "no_all"
    NO_NON_ALL = "no_non_all"
    MISMATCHED_FRAMEWORK = "mismatched_framework"
    MISMATCHED_PERMISSIONS = "mismatched_permissions"


VALIDATION_MESSAGES: dict[ValidationKind, str] = {
    ValidationKind.NO_FILE: "No file upload specified",
    ValidationKind.INVALID_CHANNEL: INVALID_CHANNEL,
    ValidationKind.BAD_FILE: "The file must be a click package",
    ValidationKind.NEEDS_MANUAL_REVIEW: "This app needs to be reviewed manually",
    ValidationKind.MALFORMED_MANIFEST: "Your package manifest is malformed",
    ValidationKind.WRONG_PACKAGE: (
        "The uploaded package does not match the name of the package you are editing"
    ),
    ValidationKind.EXISTING_VERSION: "A revision already exists with this version and architecture",
    ValidationKind.NO_ALL: (
        'You cannot upload a click with the architecture "all" for the same version '
        "as an architecture specific click"
    ),
    ValidationKind.NO_NON_ALL: (
        "You cannot upload and architecture specific click for the same version "
        'as a click with the architecture "all"'
    ),
    ValidationKind.MISMATCHED_FRAMEWORK: (
        "Framework does not match existing click of a different architecture"
    ),
    ValidationKind.MISMATCHED_PERMISSIONS: (
        "Permissions do not match existing click of a different architecture"
    ),
}


class StoreError(Exception):
    """Base error carrying a user-facing message and an HTTP status."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StoreValidationError(StoreError):
    status_code = 400
    error = "bad_request"

    def __init__(self, kind: ValidationKind, detail: str | None = None) -> None:
        message = VALIDATION_MESSAGES[kind]
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.kind = kind
        self.detail = detail


class BadRequestError(StoreError):
    status_code = 400
    error = "bad_request"


class AuthenticationError(StoreError):
    status_code = 401
    error = "unauthorized"

    def __init__(self, message: str = AUTHENTICATION_REQUIRED) -> None:
        super().__init__(message)


class AuthorizationError(StoreError):
    status_code = 403
    error = "forbidden"


class NotFoundError(StoreError):
    status_code = 404
    error = "not_found"


class LockTimeoutError(StoreError):
    """Raised when a named lock could not be acquired within the retry budget."""

    status_code = 503
    error = "lock_timeout"

    def __init__(self, name: str, attempts: int) -> None:
        super().__init__(LOCK_TIMEOUT)
        self.name = name
        self.attempts = attempts


class LockReleaseError(Exception):
    """Raised by the lock repository when a held lock row could not be removed."""


__all__ = [
    "APP_LOCKED",
    "APP_NOT_FOUND",
    "AuthenticationError",
    "AuthorizationError",
    "BadRequestError",
    "DOWNLOAD_NOT_FOUND_FOR_CHANNEL",
    "INVALID_ARCH",
    "INVALID_CHANNEL",
    "LockReleaseError",
    "LockTimeoutError",
    "NotFoundError",
    "PERMISSION_DENIED",
    "StoreError",
    "StoreValidationError",
    "UPLOAD_FAILED",
    "VALIDATION_MESSAGES",
    "ValidationKind",
]
