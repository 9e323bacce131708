from rest_framework import status
from rest_framework.exceptions import APIException


class InvalidTransition(APIException):
    """A lifecycle action that the project or bid's current state forbids."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "This action is not allowed in the current state."
    default_code = "invalid_transition"
