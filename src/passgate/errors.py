"""Error taxonomy shared by the services and the HTTP layer.

Every failure the core can report is a PassgateError subclass carrying
its kind, HTTP status, a stable machine-readable code and a client-safe
message. Services raise them; api/errors.py is the only place that turns
them into responses.

Invalid email and invalid password both become InvalidCredentialsError,
and every token problem becomes UnauthenticatedError, so the client
can't tell which factor failed.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAUTHENTICATED = "unauthenticated"
    INVALID_CREDENTIALS = "invalid_credentials"
    WRONG_RESET_CODE = "wrong_reset_code"
    MALFORMED_CHALLENGE = "malformed_challenge"
    HASHING = "hashing"
    NOTIFICATION = "notification"
    STORE = "store"


class PassgateError(Exception):
    """Base class for all expected failures."""

    kind: ErrorKind = ErrorKind.STORE
    http_status: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Unknown Error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


# ─── Invalid input ──────────────────────────────────────


class InvalidInputError(PassgateError):
    kind = ErrorKind.INVALID_INPUT
    http_status = 422
    code = "INVALID_INPUT"
    message = "Request body is invalid"


class InvalidPhoneNumberError(InvalidInputError):
    http_status = 400
    code = "WRONG_TELEPHONE_NUMBER"
    message = "Telephone number must look like +374 XXXXXXXX"


class InvalidProfileImageError(InvalidInputError):
    http_status = 400
    code = "INVALID_PROFILE_PICTURE"
    message = "Profile picture must be a JPEG, PNG, GIF or WebP image"


# ─── Conflicts / lookups ────────────────────────────────


class EmailAlreadyInUseError(PassgateError):
    kind = ErrorKind.CONFLICT
    http_status = 409
    code = "EMAIL_EXISTS"
    message = "Email is already in use"


class ResetTokenConsumedError(PassgateError):
    kind = ErrorKind.CONFLICT
    http_status = 409
    code = "RESET_TOKEN_USED"
    message = "This reset token has already been used"


class UserNotFoundError(PassgateError):
    kind = ErrorKind.NOT_FOUND
    http_status = 404
    code = "USER_NOT_FOUND"
    message = "User not found"


# ─── Authentication ─────────────────────────────────────


class UnauthenticatedError(PassgateError):
    kind = ErrorKind.UNAUTHENTICATED
    http_status = 401
    code = "UNAUTHENTICATED"
    message = "Authentication required"


class InvalidCredentialsError(PassgateError):
    kind = ErrorKind.INVALID_CREDENTIALS
    http_status = 401
    code = "WRONG_LOGIN_OR_PASSWORD"
    message = "Wrong email or password"


# ─── Reset challenge ────────────────────────────────────


class WrongResetCodeError(PassgateError):
    kind = ErrorKind.WRONG_RESET_CODE
    http_status = 400
    code = "RESET_CODE_IS_WRONG"
    message = "Reset code is wrong"


class MalformedChallengeError(PassgateError):
    kind = ErrorKind.MALFORMED_CHALLENGE
    http_status = 400
    code = "MALFORMED_CHALLENGE"
    message = "Token is not valid for this step of the password reset"


# ─── Infrastructure ─────────────────────────────────────


class HashingError(PassgateError):
    kind = ErrorKind.HASHING
    http_status = 500
    code = "HASHING_FAILED"
    message = "Hashing failed"


class NotificationError(PassgateError):
    kind = ErrorKind.NOTIFICATION
    http_status = 502
    code = "NOTIFICATION_FAILED"
    message = "Could not send the email"


class StoreError(PassgateError):
    kind = ErrorKind.STORE
    http_status = 503
    code = "STORE_UNAVAILABLE"
    message = "User store is unavailable"
