# backend/core/exceptions.py
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

GENERIC_ERROR_DETAIL = "Something went wrong. Please try again later."


def api_exception_handler(exc, context):
    """
    DRF exception handler.

    Known API exceptions (including the domain errors in projects.exceptions)
    keep DRF's default rendering. Anything else is logged with full detail and
    answered with a generic 500 so internals never reach the caller.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get("view")
    logger.exception(
        "Unhandled error in %s",
        view.__class__.__name__ if view is not None else "unknown view",
        exc_info=exc,
    )
    return Response({"detail": GENERIC_ERROR_DETAIL}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
