import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def flatten_errors(detail, prefix=""):
    """
    Turn DRF's nested validation payload into a flat list of
    ``"field: message"`` strings.
    """
    messages = []
    if isinstance(detail, dict):
        for field, value in detail.items():
            label = field if field != "non_field_errors" else ""
            nested = f"{prefix}.{label}" if prefix and label else (label or prefix)
            messages.extend(flatten_errors(value, nested))
    elif isinstance(detail, (list, tuple)):
        for value in detail:
            messages.extend(flatten_errors(value, prefix))
    else:
        messages.append(f"{prefix}: {detail}" if prefix else str(detail))
    return messages


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.error(
            "Unhandled error in %s",
            view.__class__.__name__ if view else "unknown view",
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        return Response(
            {"success": False, "message": "Internal server error."},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, ValidationError):
        errors = flatten_errors(response.data)
        response.data = {
            "success": False,
            "message": errors[0] if errors else "Invalid input.",
            "errors": errors,
        }
        return response

    detail = response.data.get("detail") if isinstance(response.data, dict) else response.data
    response.data = {
        "success": False,
        "message": str(detail),
    }
    return response
