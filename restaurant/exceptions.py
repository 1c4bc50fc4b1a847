"""
Error kinds raised by the order services, and the boundary that turns them
into JSON responses.

Clients only ever see a stable message; tracebacks and exception text from
unexpected failures stay in the logs.
"""
import functools
import logging

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class POSError(Exception):
    """Base class for failures the caller can act on."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def as_payload(self):
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(POSError):
    status_code = status.HTTP_404_NOT_FOUND

    @classmethod
    def for_model(cls, model):
        return cls(f"{model._meta.verbose_name.capitalize()} not found")


class ValidationFailure(POSError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransition(POSError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, current, requested):
        super().__init__(f"Cannot change order from {current} to {requested}")
        self.current = current
        self.requested = requested


class Conflict(POSError):
    status_code = status.HTTP_409_CONFLICT


def handle_errors(failure_message):
    """
    Wrap a function view so every failure leaves as `{"error": ...}`.

    Place it under `@api_view`. Unexpected exceptions are logged with their
    traceback and answered with `failure_message` and a 500.
    """

    def decorator(view_func):
        @functools.wraps(view_func)
        def wrapper(request, *args, **kwargs):
            try:
                return view_func(request, *args, **kwargs)
            except POSError as exc:
                logger.info("%s %s rejected: %s", request.method, request.path, exc.message)
                return Response(exc.as_payload(), status=exc.status_code)
            except Http404:
                return Response({"error": "Not found"}, status=status.HTTP_404_NOT_FOUND)
            except ValidationError as exc:
                logger.info("%s %s invalid input: %s", request.method, request.path, exc.detail)
                return Response(
                    {"error": "Invalid request data", "details": exc.detail},
                    status=status.HTTP_400_BAD_REQUEST,
                )
            except APIException as exc:
                return Response({"error": str(exc.detail)}, status=exc.status_code)
            except Exception:
                logger.exception("%s %s failed", request.method, request.path)
                return Response({"error": failure_message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return wrapper

    return decorator
