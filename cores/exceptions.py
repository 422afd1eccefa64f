# cores/exceptions.py
"""
Error taxonomy shared by the exam session engine, the bulk import and the
authoring views. Views turn these into ``{"error": ...}`` payloads through
``error_response``.
"""
from rest_framework import status
from rest_framework.response import Response


class PortalError(Exception):
    """Base class for every error the portal reports to a caller."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotFound(PortalError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(PortalError):
    pass


class UploadError(PortalError):
    """The image store rejected or failed an upload."""
    status_code = status.HTTP_502_BAD_GATEWAY


class ConcurrencyConflict(PortalError):
    status_code = status.HTTP_409_CONFLICT


class ImportAborted(ValidationError):
    """A bulk import failed; nothing it wrote to the database was kept."""

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.cause = cause
        if isinstance(cause, UploadError):
            self.status_code = cause.status_code


def error_response(exc):
    return Response({"error": exc.message}, status=exc.status_code)
