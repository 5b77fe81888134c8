# backend/projects/exceptions.py
"""
Agreement and signing errors.

Each one is a DRF APIException so views can let them propagate and DRF renders the
status code and detail. Request validation uses rest_framework's own ValidationError,
and missing credentials surface as DRF's NotAuthenticated (401).
"""
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError  # noqa: F401


class AgreementNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Agreement not found."
    default_code = "agreement_not_found"


class EditWindowClosed(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Agreement can only be edited within 48 hours of creation."
    default_code = "edit_window_closed"


class SignatureConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Agreement has already been signed."
    default_code = "already_signed"


class LinkExpired(APIException):
    status_code = status.HTTP_410_GONE
    default_detail = "This signing link has expired."
    default_code = "link_expired"


class InvalidToken(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid signing link."
    default_code = "invalid_token"


class InternalFailure(APIException):
    """Unexpected failure; the cause is logged, never returned."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Something went wrong. Please try again later."
    default_code = "internal_error"


class ProjectNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Project not found or unauthorized."
    default_code = "project_not_found"
