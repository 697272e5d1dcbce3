"""
JWT authentication for the API.

Tokens are HS256 JWTs signed with settings.JWT_SECRET and carry a snapshot of
the user's profile under ``data``:

    {"data": {"id", "firstname", "lastname", "username", "email", "bio"},
     "iat": ..., "exp": ...}

The snapshot is informational only: ``verify_token`` re-reads the user from
the database on every request, so deleted or deactivated accounts are
rejected immediately while profile edits only show up in the token after
the next login.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from django.db.models import Q

from .errors import Forbidden, Unauthorized
from .models import User

logger = logging.getLogger(__name__)


# ==================== TOKENS ====================

def token_payload(user):
    return {
        "id": user.id,
        "firstname": user.first_name,
        "lastname": user.last_name,
        "username": user.username,
        "email": user.email,
        "bio": user.bio,
    }


def issue_token(user):
    now = datetime.now(tz=timezone.utc)
    claims = {
        "data": token_payload(user),
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token):
    """Decode and verify a token; PyJWT errors propagate to the error middleware."""
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


def _bearer_token(request):
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    token = header[len('Bearer '):].strip()
    return token or None


def _user_from_claims(claims):
    user_id = (claims.get('data') or {}).get('id')
    if user_id is None:
        raise jwt.InvalidTokenError("Token carries no user id")
    return User.objects.filter(pk=user_id, is_active=True).first()


def authenticate_credentials(identifier, password):
    """Look a user up by username or email and check the password."""
    user = User.objects.filter(Q(username=identifier) | Q(email__iexact=identifier)).first()
    if user is None or not user.is_active or not user.check_password(password):
        return None
    return user


# ==================== DECORATORS ====================

def verify_token(view_func):
    """
    Require a valid bearer token; sets ``request.user`` to the fresh User.

    Raises Unauthorized for a missing token or an unknown user; expired and
    malformed tokens surface as PyJWT errors and are mapped to 401 by
    ApiErrorMiddleware.
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        token = _bearer_token(request)
        if token is None:
            raise Unauthorized("Access denied. No token provided.")

        user = _user_from_claims(decode_token(token))
        if user is None:
            raise Unauthorized("User not found or inactive")

        request.user = user
        return view_func(request, *args, **kwargs)

    return wrapper


def optional_auth(view_func):
    """Attach the user when a valid token is present, otherwise continue anonymously."""

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        user = None
        token = _bearer_token(request)
        if token is not None:
            try:
                user = _user_from_claims(decode_token(token))
            except jwt.PyJWTError as e:
                logger.info(f"Ignoring invalid optional token: {e}")

        request.user = user or AnonymousUser()
        return view_func(request, *args, **kwargs)

    return wrapper


def staff_required(view_func):
    """Use under verify_token; only staff accounts may pass."""

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_staff:
            raise Forbidden("Admin access required")
        return view_func(request, *args, **kwargs)

    return wrapper


# ==================== ONE-TIME TOKENS ====================

def hash_one_time_token(raw_token):
    return hashlib.sha256(raw_token.encode()).hexdigest()


def new_one_time_token():
    """Return ``(raw, digest)``; email the raw token and store the digest."""
    raw = secrets.token_hex(32)
    return raw, hash_one_time_token(raw)
