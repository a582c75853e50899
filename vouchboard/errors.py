"""
vouchboard.errors — Error taxonomy
===================================

Every error a service can raise carries the HTTP status it maps to.  The
API installs one handler for the base class (see
:mod:`vouchboard.api.main`); services never import FastAPI.
"""

from __future__ import annotations


class VouchboardError(Exception):
    """Base class for errors that surface to the HTTP caller."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(VouchboardError):
    """A required field is missing or malformed."""

    status_code = 400


class UnauthenticatedError(VouchboardError):
    """No principal is attached to the request."""

    status_code = 401


class ForbiddenError(VouchboardError):
    """The principal is authenticated but not a guild admin."""

    status_code = 403


class NotFoundError(VouchboardError):
    """The referenced guild record, vouch, list entry or product is absent."""

    status_code = 404


class StorageError(VouchboardError):
    """The persistence layer failed.  Details are logged, never returned."""

    status_code = 500


class UploadRejectedError(VouchboardError):
    """An uploaded file failed type or size validation."""

    status_code = 500


class NotificationError(VouchboardError):
    """A best-effort outbound call failed.  Logged and swallowed."""
