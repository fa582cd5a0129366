"""Pydantic schemas for the auth API.

Learn: Every auth endpoint answers with the same envelope, success or not:

    {"meta": {"status": 200, "error": null}, "data": {...}}
    {"meta": {"status": 401, "error": {"code": "...", "message": "..."}}, "data": {}}

Registration is multipart (it may carry a profile picture), so its
fields are declared as Form params in the route instead of a model here.
"""

from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field


# ─── Envelope ───────────────────────────────────────────


class ErrorInfo(BaseModel):
    code: str
    message: str


class Meta(BaseModel):
    status: int = 200
    error: Optional[ErrorInfo] = None


class Envelope(BaseModel):
    meta: Meta = Field(default_factory=Meta)
    data: dict[str, Any] = Field(default_factory=dict)


def ok(data: Optional[dict[str, Any]] = None, status: int = 200) -> Envelope:
    return Envelope(meta=Meta(status=status), data=data or {})


def failure(status: int, code: str, message: str) -> dict[str, Any]:
    """Error envelope as a plain dict, ready for JSONResponse."""
    return Envelope(
        meta=Meta(status=status, error=ErrorInfo(code=code, message=message))
    ).model_dump()


# ─── Request bodies ─────────────────────────────────────


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ForgetPasswordRequest(BaseModel):
    email: EmailStr


class SubmitCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=8, max_length=16)


# ─── Read models ────────────────────────────────────────


class UserRead(BaseModel):
    """An identity as shown to its owner. Never includes the hash."""
    uid: str
    email: str
    name: str
    surname: str
    telephone: str
    profile_picture: Optional[str] = None
