"""
Request validation helpers.

Each validator raises ``BadRequest`` with a client-facing message; views call
them before touching the database. Field limits mirror the ones enforced by
the web client's forms.
"""

import json
import re

from django.conf import settings

from .errors import BadRequest

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
USERNAME_RE = re.compile(r'^[a-zA-Z0-9_]{3,20}$')

MIN_PASSWORD_LENGTH = 6
NAME_LENGTH = (2, 50)

CONTENT_TITLE_MAX = 200
CONTENT_BODY_MAX = 10000
MAX_TAGS = 10
TAG_MAX = 30

COMMUNITY_NAME_LENGTH = (3, 50)
COMMUNITY_DESCRIPTION_MAX = 500
MAX_RULES = 20
RULE_MAX = 200

COMMENT_MAX = 1000

MAX_PAGE_LIMIT = 100

REGISTRATION_LABELS = (
    ('firstname', "First name"), ('lastname', "Last name"), ('username', "Username"),
    ('email', "Email"), ('password', "Password"),
)
COMMUNITY_STRING_FIELDS = (
    ('name', "Community name"), ('description', "Description"), ('avatar', "Avatar"),
    ('banner', "Banner"), ('category', "Category"),
)

ALLOWED_UPLOAD_TYPES = {
    'image/jpeg', 'image/jpg', 'image/png', 'image/gif',
    'video/mp4', 'video/mov', 'video/quicktime', 'video/avi', 'video/x-msvideo',
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
}


# ==================== REQUEST BODY ====================

def parse_body(request):
    """Decode a JSON request body into a dict; an empty body is ``{}``."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BadRequest("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    return data


def require_fields(data, fields):
    missing = [field for field in fields if not data.get(field)]
    if missing:
        raise BadRequest(f"Missing required fields: {', '.join(missing)}")


def clean_string(data, key, label=None):
    """Return ``data[key]`` trimmed, '' when absent or null; 400 for non-string values."""
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise BadRequest(f"{label or key} must be a string")
    return value.strip()


def _type_errors(data, labels):
    return [f"{label} must be a string" for key, label in labels
            if data.get(key) is not None and not isinstance(data[key], str)]


def parse_id(value, label="resource"):
    """Coerce a client supplied id to int or fail with 400."""
    if isinstance(value, bool):
        raise BadRequest(f"Invalid {label} ID")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise BadRequest(f"Invalid {label} ID")
    if parsed < 1:
        raise BadRequest(f"Invalid {label} ID")
    return parsed


def parse_id_list(values, label="user"):
    if not isinstance(values, list):
        raise BadRequest(f"{label}Ids must be an array")
    return [parse_id(value, label) for value in values]


# ==================== USERS ====================

def is_valid_email(email):
    return isinstance(email, str) and EMAIL_RE.match(email) is not None


def is_valid_username(username):
    return isinstance(username, str) and USERNAME_RE.match(username) is not None


def is_valid_password(password):
    return isinstance(password, str) and len(password) >= MIN_PASSWORD_LENGTH


def _name_error(label, value):
    low, high = NAME_LENGTH
    if not isinstance(value, str) or not low <= len(value.strip()) <= high:
        return f"{label} must be between {low} and {high} characters"
    return None


def validate_password(password):
    if not is_valid_password(password):
        raise BadRequest(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def validate_user_registration(data):
    require_fields(data, ['firstname', 'lastname', 'username', 'email', 'password'])
    type_errors = _type_errors(data, REGISTRATION_LABELS)
    if type_errors:
        raise BadRequest("; ".join(type_errors))

    errors = []
    if not is_valid_email(data['email']):
        errors.append("Please provide a valid email address")
    if not is_valid_password(data['password']):
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not is_valid_username(data['username']):
        errors.append("Username must be 3-20 characters and contain only letters, numbers and underscores")
    for label, key in (("First name", 'firstname'), ("Last name", 'lastname')):
        error = _name_error(label, data[key])
        if error:
            errors.append(error)

    if errors:
        raise BadRequest("; ".join(errors))


def validate_profile_update(data):
    errors = []
    for label, key in (("First name", 'firstname'), ("Last name", 'lastname')):
        if key in data:
            error = _name_error(label, data[key])
            if error:
                errors.append(error)
    if 'bio' in data and len(str(data['bio'] or '')) > 500:
        errors.append("Bio cannot exceed 500 characters")
    if 'interests' in data and not isinstance(data['interests'], list):
        errors.append("Interests must be an array")
    if errors:
        raise BadRequest("; ".join(errors))


# ==================== CONTENT / COMMUNITIES / COMMENTS ====================

def _validate_string_list(values, label, max_items, max_length):
    if not isinstance(values, list):
        return [f"{label}s must be an array"]
    errors = []
    if len(values) > max_items:
        errors.append(f"Maximum {max_items} {label.lower()}s allowed")
    if any(not isinstance(value, str) or len(value) > max_length for value in values):
        errors.append(f"Each {label.lower()} must be a string of at most {max_length} characters")
    return errors


def validate_content(data, partial=False):
    if not partial:
        if not data.get('title') or not data.get('content'):
            raise BadRequest("Title and content are required")

    errors = _type_errors(data, (('title', "Title"), ('content', "Content")))
    if errors:
        raise BadRequest("; ".join(errors))
    if 'title' in data and len(str(data['title'])) > CONTENT_TITLE_MAX:
        errors.append(f"Title cannot exceed {CONTENT_TITLE_MAX} characters")
    if 'content' in data and len(str(data['content'])) > CONTENT_BODY_MAX:
        errors.append(f"Content cannot exceed {CONTENT_BODY_MAX} characters")
    if 'tags' in data:
        errors.extend(_validate_string_list(data['tags'], "Tag", MAX_TAGS, TAG_MAX))
    if 'media' in data and not isinstance(data['media'], list):
        errors.append("Media must be an array")
    if errors:
        raise BadRequest("; ".join(errors))


def validate_community(data, partial=False):
    if not partial and not data.get('name'):
        raise BadRequest("Community name is required")

    errors = _type_errors(data, COMMUNITY_STRING_FIELDS)
    if errors:
        raise BadRequest("; ".join(errors))
    if 'name' in data:
        low, high = COMMUNITY_NAME_LENGTH
        name = str(data['name'] or '').strip()
        if not low <= len(name) <= high:
            errors.append(f"Community name must be between {low} and {high} characters")
    if 'description' in data and len(str(data['description'] or '')) > COMMUNITY_DESCRIPTION_MAX:
        errors.append(f"Description cannot exceed {COMMUNITY_DESCRIPTION_MAX} characters")
    if 'rules' in data:
        errors.extend(_validate_string_list(data['rules'], "Rule", MAX_RULES, RULE_MAX))
    if 'tags' in data:
        errors.extend(_validate_string_list(data['tags'], "Tag", MAX_TAGS, TAG_MAX))
    if errors:
        raise BadRequest("; ".join(errors))


def clean_comment(text):
    """Return the trimmed comment text or raise."""
    if not isinstance(text, str) or not text.strip():
        raise BadRequest("Comment text is required")
    text = text.strip()
    if len(text) > COMMENT_MAX:
        raise BadRequest(f"Comment cannot exceed {COMMENT_MAX} characters")
    return text


# ==================== PAGINATION ====================

def validate_pagination(request, default_limit=10):
    """Read ``page``/``limit`` query params; returns ``(page, limit)``."""
    try:
        page = int(request.GET.get('page', 1))
        limit = int(request.GET.get('limit', default_limit))
    except (TypeError, ValueError):
        raise BadRequest("Page and limit must be integers")

    if page < 1:
        raise BadRequest("Page must be greater than 0")
    if not 1 <= limit <= MAX_PAGE_LIMIT:
        raise BadRequest(f"Limit must be between 1 and {MAX_PAGE_LIMIT}")
    return page, limit


# ==================== UPLOADS ====================

def validate_upload(uploaded_file):
    if uploaded_file.content_type not in ALLOWED_UPLOAD_TYPES:
        raise BadRequest(
            f"File type {uploaded_file.content_type} is not allowed. "
            "Only images, videos, PDF and Word documents are accepted"
        )
    if uploaded_file.size > settings.UPLOAD_MAX_FILE_SIZE:
        max_mb = settings.UPLOAD_MAX_FILE_SIZE // (1024 * 1024)
        raise BadRequest(f"File {uploaded_file.name} exceeds the {max_mb}MB limit")
