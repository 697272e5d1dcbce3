"""
================================================================================
OAUSCONNECT - CUSTOM MIDDLEWARE
================================================================================

@file        middleware.py
@description Centralized JSON error handling for the OausConnect API

MODULE PURPOSE
================================================================================
ApiErrorMiddleware turns every exception escaping a view into the API's error
envelope:

    {"success": false, "message": "..."}

EXCEPTION MAPPING
================================================================================
    AppError                     -> its own status_code / message
    django ValidationError       -> 400 "Validation failed: ..."
    IntegrityError               -> 409 duplicate value
    ObjectDoesNotExist / Http404 -> 404 "Resource not found"
    jwt.ExpiredSignatureError    -> 401 "Token expired"
    jwt.InvalidTokenError        -> 401 "Invalid token"
    anything else                -> 500 "Internal Server Error"

With DEBUG on, 500 responses also carry the exception text and stack trace.

================================================================================
"""

import logging
import traceback

import jwt
from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.db import IntegrityError
from django.http import Http404, JsonResponse

from .errors import AppError

logger = logging.getLogger(__name__)


def _validation_message(exc):
    if hasattr(exc, 'message_dict'):
        parts = [f"{field}: {' '.join(messages)}" for field, messages in exc.message_dict.items()]
    else:
        parts = list(exc.messages)
    return "Validation failed: " + "; ".join(parts)


def error_response(message, status):
    return JsonResponse({"success": False, "message": message}, status=status)


class ApiErrorMiddleware:
    """
    Map exceptions raised by views to JSON error responses.

    Must sit last in MIDDLEWARE so it wraps the view directly; Django calls
    process_exception for exceptions raised by the view (and its decorators).
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if isinstance(exception, AppError):
            if exception.status_code >= 500:
                logger.error(f"{request.method} {request.path}: {exception.message}")
            return error_response(exception.message, exception.status_code)

        if isinstance(exception, ValidationError):
            return error_response(_validation_message(exception), 400)

        if isinstance(exception, jwt.ExpiredSignatureError):
            return error_response("Token expired", 401)

        if isinstance(exception, jwt.InvalidTokenError):
            return error_response("Invalid token", 401)

        if isinstance(exception, IntegrityError):
            logger.warning(f"IntegrityError on {request.method} {request.path}: {exception}")
            return error_response("Duplicate value violates a unique constraint", 409)

        if isinstance(exception, (ObjectDoesNotExist, Http404)):
            return error_response("Resource not found", 404)

        logger.exception(f"Unhandled error on {request.method} {request.path}")
        payload = {"success": False, "message": "Internal Server Error"}
        if settings.DEBUG:
            payload["error"] = str(exception)
            payload["stack"] = traceback.format_exc()
        return JsonResponse(payload, status=500)
