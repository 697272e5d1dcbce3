import logging
import re
from datetime import timedelta

from django.conf import settings
from django.db import connection, transaction
from django.db.models import Count, F, Q
from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import emails, uploads
from .auth import (
    authenticate_credentials, hash_one_time_token, issue_token, new_one_time_token,
    optional_auth, staff_required, token_payload, verify_token,
)
from .errors import AppError, BadRequest, Conflict, Forbidden, NotFound
from .models import DELETED_MESSAGE_TEXT, MESSAGE_TYPE_CHOICES, Chat, Comment, Community, Content, Message, MessageRead, User
from .notifications import (
    PLATFORMS, community_topic, push_service, send_community_notification,
    send_new_message_notification,
)
from .serializers import (
    chat_to_dict, comment_to_dict, community_to_dict, content_to_dict, message_to_dict,
    paginate, user_profile, user_summary,
)
from .validation import (
    clean_comment, clean_string, parse_body, parse_id, parse_id_list, require_fields, validate_community,
    validate_content, validate_pagination, validate_password, validate_profile_update,
    validate_user_registration,
)
from .voting import cast_vote


# Logger
logger = logging.getLogger(__name__)

TOPIC_RE = re.compile(r'^[a-zA-Z0-9\-_.~%]+$')
MESSAGE_TYPES = {choice for choice, _ in MESSAGE_TYPE_CHOICES}
REPLY_PREVIEW_COUNT = 5


def _dispatch(request, handlers, *args, **kwargs):
    handler = handlers.get(request.method)
    if handler is None:
        return JsonResponse({"success": False, "message": f"Method {request.method} not allowed"}, status=405)
    return handler(request, *args, **kwargs)


def _user_queryset():
    return User.objects.filter(is_active=True)


def _content_queryset():
    return (
        Content.objects.select_related('author', 'community')
        .prefetch_related('upvoted_by', 'downvoted_by')
        .annotate(comment_count=Count('comments', distinct=True))
    )


def _comment_queryset():
    return Comment.objects.select_related('author').prefetch_related('upvoted_by', 'downvoted_by')


def _community_queryset():
    return (
        Community.objects.filter(is_active=True)
        .select_related('organizer')
        .prefetch_related('members', 'moderators')
    )


def _chat_queryset():
    return (
        Chat.objects.select_related('created_by', 'last_message_sender')
        .prefetch_related('participants', 'admin_users')
    )


def _message_queryset():
    return Message.objects.select_related('sender').prefetch_related('read_receipts')


def _display_name(user):
    full_name = f"{user.first_name} {user.last_name}".strip()
    return full_name or user.username


# ============================================================================
# SECTION 1: HEALTH & FALLBACKS
# ============================================================================

@require_GET
def health(request):
    return JsonResponse({
        "status": "OK",
        "message": "Server is running",
        "timestamp": timezone.now(),
    })


def route_not_found(request, exception=None):
    return JsonResponse({"success": False, "message": "Route not found"}, status=404)


def server_error(request):
    return JsonResponse({"success": False, "message": "Internal Server Error"}, status=500)


# ============================================================================
# SECTION 2: AUTHENTICATION
# ============================================================================

def _login_response(request, status):
    data = parse_body(request)
    identifier = clean_string(data, 'username')
    password = data.get('password') or ''
    if not identifier or not password or not isinstance(password, str):
        raise BadRequest("Username and password are required")

    user = authenticate_credentials(identifier, password)
    if user is None:
        logger.info(f"Failed login for {identifier}")
        raise AppError("Invalid credentials", 401)

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])
    return JsonResponse({
        "success": True,
        "message": "Login successful",
        "data": {"token": issue_token(user), **token_payload(user)},
    }, status=status)


@csrf_exempt
@require_POST
def login(request):
    return _login_response(request, 200)


@csrf_exempt
@require_POST
def legacy_token(request):
    return _login_response(request, 201)


@csrf_exempt
@require_POST
def forgot_password(request):
    data = parse_body(request)
    email = clean_string(data, 'email')
    if not email:
        raise BadRequest("Email is required")

    user = _user_queryset().filter(email__iexact=email).first()
    if user is not None:
        raw, digest = new_one_time_token()
        user.reset_password_token = digest
        user.reset_password_expires = timezone.now() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRES_MINUTES)
        user.save(update_fields=['reset_password_token', 'reset_password_expires'])
        emails.send_password_reset_email(user, f"{settings.CLIENT_URL}/reset-password/{raw}")
    else:
        logger.info(f"Password reset requested for unknown email {email}")

    return JsonResponse({
        "success": True,
        "message": "If an account with that email exists, a password reset link has been sent",
    })


@csrf_exempt
@require_POST
def reset_password(request, token):
    data = parse_body(request)
    password = data.get('password')
    validate_password(password)

    user = _user_queryset().filter(
        reset_password_token=hash_one_time_token(token),
        reset_password_expires__gt=timezone.now(),
    ).first()
    if user is None:
        raise BadRequest("Invalid or expired reset token")

    user.set_password(password)
    user.reset_password_token = None
    user.reset_password_expires = None
    user.save()
    logger.info(f"Password reset for {user.username}")
    return JsonResponse({"success": True, "message": "Password has been reset successfully"})


@csrf_exempt
@require_POST
@optional_auth
def request_verification(request):
    data = parse_body(request)
    email = clean_string(data, 'email')
    if not email and request.user.is_authenticated:
        email = request.user.email
    if not email:
        raise BadRequest("Email is required")

    user = _user_queryset().filter(email__iexact=email).first()
    if user is None:
        raise NotFound("User not found")
    if user.email_verified:
        raise BadRequest("Email is already verified")

    raw = _issue_verification_token(user)
    emails.send_email_verification(user, f"{settings.CLIENT_URL}/verify-email/{raw}")
    return JsonResponse({"success": True, "message": "Verification email sent"})


def _issue_verification_token(user):
    raw, digest = new_one_time_token()
    user.email_verification_token = digest
    user.email_verification_expires = timezone.now() + timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRES_HOURS)
    user.save(update_fields=['email_verification_token', 'email_verification_expires'])
    return raw


@require_GET
def verify_email(request, token):
    user = _user_queryset().filter(
        email_verification_token=hash_one_time_token(token),
        email_verification_expires__gt=timezone.now(),
    ).first()
    if user is None:
        raise BadRequest("Invalid or expired verification token")

    user.email_verified = True
    user.email_verification_token = None
    user.email_verification_expires = None
    user.save(update_fields=['email_verified', 'email_verification_token', 'email_verification_expires'])
    return JsonResponse({"success": True, "message": "Email verified successfully"})


# ============================================================================
# SECTION 3: USER ACCOUNTS
# ============================================================================

@csrf_exempt
def users(request):
    return _dispatch(request, {
        "GET": list_users,
        "POST": create_user,
        "PUT": update_profile,
        "DELETE": delete_account,
    })


@optional_auth
def list_users(request):
    page, limit = validate_pagination(request)
    items, pagination = paginate(_user_queryset().order_by('-date_joined', '-id'), page, limit)
    return JsonResponse({
        "success": True,
        "data": [{**user_summary(user), "bio": user.bio} for user in items],
        "pagination": pagination,
    })


def create_user(request):
    data = parse_body(request)
    validate_user_registration(data)

    username = data['username'].strip()
    email = data['email'].strip().lower()
    if User.objects.filter(username__iexact=username).exists():
        raise Conflict("Username already exists")
    if User.objects.filter(email__iexact=email).exists():
        raise Conflict("Email already exists")

    user = User.objects.create_user(
        username=username,
        email=email,
        password=data['password'],
        first_name=data['firstname'].strip(),
        last_name=data['lastname'].strip(),
        bio=data.get('bio') or '',
    )
    logger.info(f"Account created for {username}")

    try:
        raw = _issue_verification_token(user)
        emails.send_welcome_email(user, f"{settings.CLIENT_URL}/verify-email/{raw}")
    except AppError as email_error:
        logger.warning(f"Welcome email not sent to {email}: {email_error}")

    return JsonResponse({
        "success": True,
        "message": "Account created successfully",
        "data": user_profile(user),
    }, status=201)


@verify_token
def update_profile(request):
    data = parse_body(request)
    validate_profile_update(data)
    user = request.user

    field_map = {
        'firstname': 'first_name',
        'lastname': 'last_name',
        'bio': 'bio',
        'avatar': 'avatar',
        'interests': 'interests',
        'facebook': 'facebook',
        'phone': 'phone',
    }
    for key, field in field_map.items():
        if key in data:
            value = data[key]
            setattr(user, field, value.strip() if isinstance(value, str) else value)

    if 'dob' in data:
        user.dob = _parse_dob(data['dob'])

    user.full_clean(exclude=['password', 'username', 'email'])
    user.save()
    return JsonResponse({
        "success": True,
        "message": "Profile updated successfully",
        "data": user_profile(user),
    })


def _parse_dob(value):
    if not value:
        return None
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise BadRequest("dob must be a date in YYYY-MM-DD format")
    return parsed


@verify_token
def delete_account(request):
    user = request.user
    push_service.remove_user_token(user.id)
    username = user.username
    user.delete()
    logger.info(f"Account deleted for {username}")
    return JsonResponse({"success": True, "message": "Account deleted successfully"})


@require_GET
@verify_token
def me(request):
    return JsonResponse({"success": True, "data": user_profile(request.user)})


@require_GET
@verify_token
def search_users(request):
    query = request.GET.get('q', '').strip()
    if not query:
        raise BadRequest("Search query is required")

    matches = (
        _user_queryset()
        .filter(Q(first_name__icontains=query) | Q(last_name__icontains=query) | Q(username__icontains=query))
        .exclude(pk=request.user.pk)
        .order_by('username')[:20]
    )
    return JsonResponse({"success": True, "data": [user_summary(user) for user in matches]})


@csrf_exempt
@require_http_methods(["PUT"])
@verify_token
def change_password(request):
    data = parse_body(request)
    old_password = data.get('oldPassword')
    new_password = data.get('newPassword')
    if not old_password or not new_password:
        raise BadRequest("Old password and new password are required")
    if not request.user.check_password(old_password):
        raise BadRequest("Current password is incorrect")
    validate_password(new_password)

    request.user.set_password(new_password)
    request.user.save()
    return JsonResponse({"success": True, "message": "Password changed successfully"})


@require_GET
def user_detail(request, user_id):
    user = _user_queryset().filter(pk=user_id).first()
    if user is None:
        raise NotFound("User not found")
    return JsonResponse({"success": True, "data": user_profile(user)})


# ============================================================================
# SECTION 4: CONTENT
# ============================================================================

@csrf_exempt
def content_collection(request):
    return _dispatch(request, {"GET": list_content, "POST": create_content})


def _filter_by_tag(queryset, tag):
    if connection.features.supports_json_field_contains:
        return queryset.filter(tags__contains=[tag])
    # SQLite has no JSON containment lookup
    matching = [pk for pk, tags in queryset.prefetch_related(None).values_list('pk', 'tags') if tag in (tags or [])]
    return queryset.filter(pk__in=matching)


@optional_auth
def list_content(request):
    page, limit = validate_pagination(request)
    visible = Q(is_public=True)
    if request.user.is_authenticated:
        visible |= Q(author=request.user)
    queryset = _content_queryset().filter(visible)

    if request.GET.get('community'):
        queryset = queryset.filter(community_id=parse_id(request.GET['community'], 'community'))
    if request.GET.get('tag'):
        queryset = _filter_by_tag(queryset, request.GET['tag'].strip())

    items, pagination = paginate(queryset.order_by('-created_at', '-id'), page, limit)
    return JsonResponse({
        "success": True,
        "data": [content_to_dict(item, request.user) for item in items],
        "pagination": pagination,
    })


@verify_token
def create_content(request):
    data = parse_body(request)
    validate_content(data)

    community = None
    if data.get('communityId'):
        community = Community.objects.filter(pk=parse_id(data['communityId'], 'community'), is_active=True).first()
        if community is None:
            raise NotFound("Community not found")
        if not community.members.filter(pk=request.user.pk).exists():
            raise Forbidden("You must be a member of this community to post in it")

    content = Content.objects.create(
        author=request.user,
        title=data['title'].strip(),
        body=data['content'],
        tags=[tag.strip() for tag in data.get('tags', [])],
        media=data.get('media', []),
        community=community,
        is_public=bool(data.get('isPublic', True)),
    )
    logger.info(f"Content {content.id} created by {request.user.username}")

    if community is not None:
        send_community_notification(
            community.id,
            f"New post in {community.name}",
            content.title,
        )

    return JsonResponse({
        "success": True,
        "message": "Content created successfully",
        "data": content_to_dict(_content_queryset().get(pk=content.pk), request.user),
    }, status=201)


@csrf_exempt
def content_detail(request, content_id):
    return _dispatch(request, {
        "GET": get_content,
        "PUT": update_content,
        "DELETE": delete_content,
    }, content_id)


def _get_content(content_id):
    content = Content.objects.filter(pk=content_id).first()
    if content is None:
        raise NotFound("Content not found")
    return content


@optional_auth
def get_content(request, content_id):
    content = _get_content(content_id)
    if not content.is_public and content.author_id != request.user.id:
        raise NotFound("Content not found")

    Content.objects.filter(pk=content_id).update(views=F('views') + 1)
    return JsonResponse({
        "success": True,
        "data": content_to_dict(_content_queryset().get(pk=content_id), request.user),
    })


@verify_token
def update_content(request, content_id):
    content = _get_content(content_id)
    if content.author_id != request.user.id:
        raise Forbidden("You can only update your own content")

    data = parse_body(request)
    validate_content(data, partial=True)
    if 'title' in data:
        title = clean_string(data, 'title')
        if not title:
            raise BadRequest("Title cannot be empty")
        content.title = title
    if 'content' in data:
        if not clean_string(data, 'content'):
            raise BadRequest("Content cannot be empty")
        content.body = data['content']
    if 'tags' in data:
        content.tags = [tag.strip() for tag in data['tags']]
    if 'media' in data:
        content.media = data['media']
    if 'isPublic' in data:
        content.is_public = bool(data['isPublic'])
    content.save()

    return JsonResponse({
        "success": True,
        "message": "Content updated successfully",
        "data": content_to_dict(_content_queryset().get(pk=content_id), request.user),
    })


@verify_token
def delete_content(request, content_id):
    content = _get_content(content_id)
    if content.author_id != request.user.id:
        raise Forbidden("You can only delete your own content")
    content.delete()
    logger.info(f"Content {content_id} deleted by {request.user.username}")
    return JsonResponse({"success": True, "message": "Content deleted successfully"})


@csrf_exempt
@require_POST
@verify_token
def vote_content(request, content_id):
    data = parse_body(request)
    result = cast_vote(Content, content_id, request.user, data.get('voteType'))
    return JsonResponse({
        "success": True,
        "message": "Vote updated successfully",
        "data": result.as_dict(),
    })


@require_GET
@optional_auth
def user_content(request, user_id):
    author = _user_queryset().filter(pk=user_id).first()
    if author is None:
        raise NotFound("User not found")

    page, limit = validate_pagination(request)
    queryset = _content_queryset().filter(author=author)
    if request.user.id != author.id:
        queryset = queryset.filter(is_public=True)

    items, pagination = paginate(queryset.order_by('-created_at', '-id'), page, limit)
    return JsonResponse({
        "success": True,
        "data": [content_to_dict(item, request.user) for item in items],
        "pagination": pagination,
    })


# ============================================================================
# SECTION 5: COMMENTS
# ============================================================================

@csrf_exempt
def content_comments(request, content_id):
    return _dispatch(request, {"GET": list_comments, "POST": create_comment}, content_id)


@optional_auth
def list_comments(request, content_id):
    _get_content(content_id)
    page, limit = validate_pagination(request)

    top_level = (
        _comment_queryset()
        .filter(content_id=content_id, parent__isnull=True)
        .annotate(reply_count=Count('replies', distinct=True))
        .order_by('-created_at', '-id')
    )
    items, pagination = paginate(top_level, page, limit)

    data = []
    for comment in items:
        replies = _comment_queryset().filter(parent=comment).order_by('created_at', 'id')[:REPLY_PREVIEW_COUNT]
        data.append({
            **comment_to_dict(comment, request.user),
            "replies": [comment_to_dict(reply, request.user) for reply in replies],
            "replyCount": comment.reply_count,
        })

    return JsonResponse({"success": True, "data": data, "pagination": pagination})


@verify_token
def create_comment(request, content_id):
    content = _get_content(content_id)
    data = parse_body(request)
    text = clean_comment(data.get('comment'))

    parent = None
    if data.get('parentComment'):
        parent = Comment.objects.filter(pk=parse_id(data['parentComment'], 'parent comment')).first()
        if parent is None:
            raise NotFound("Parent comment not found")
        if parent.content_id != content.id:
            raise BadRequest("Parent comment does not belong to this content")

    comment = Comment.objects.create(author=request.user, content=content, parent=parent, body=text)
    return JsonResponse({
        "success": True,
        "message": "Comment created successfully",
        "data": comment_to_dict(_comment_queryset().get(pk=comment.pk), request.user),
    }, status=201)


@csrf_exempt
def comment_detail(request, comment_id):
    return _dispatch(request, {"PUT": update_comment, "DELETE": delete_comment}, comment_id)


def _get_comment(comment_id):
    comment = Comment.objects.filter(pk=comment_id).first()
    if comment is None:
        raise NotFound("Comment not found")
    return comment


@verify_token
def update_comment(request, comment_id):
    comment = _get_comment(comment_id)
    if comment.author_id != request.user.id:
        raise Forbidden("You can only update your own comments")

    comment.body = clean_comment(parse_body(request).get('comment'))
    comment.save()
    return JsonResponse({
        "success": True,
        "message": "Comment updated successfully",
        "data": comment_to_dict(_comment_queryset().get(pk=comment_id), request.user),
    })


@verify_token
def delete_comment(request, comment_id):
    comment = _get_comment(comment_id)
    if comment.author_id != request.user.id:
        raise Forbidden("You can only delete your own comments")
    comment.delete()
    return JsonResponse({"success": True, "message": "Comment deleted successfully"})


@require_GET
@optional_auth
def comment_replies(request, comment_id):
    _get_comment(comment_id)
    page, limit = validate_pagination(request)
    replies = _comment_queryset().filter(parent_id=comment_id).order_by('created_at', 'id')
    items, pagination = paginate(replies, page, limit)
    return JsonResponse({
        "success": True,
        "data": [comment_to_dict(reply, request.user) for reply in items],
        "pagination": pagination,
    })


@csrf_exempt
@require_POST
@verify_token
def vote_comment(request, comment_id):
    data = parse_body(request)
    result = cast_vote(Comment, comment_id, request.user, data.get('voteType'),
                       not_found_message="Comment not found")
    return JsonResponse({
        "success": True,
        "message": "Vote updated successfully",
        "data": result.as_dict(),
    })


# ============================================================================
# SECTION 6: COMMUNITIES
# ============================================================================

@csrf_exempt
def communities(request):
    return _dispatch(request, {"GET": list_communities, "POST": create_community})


@optional_auth
def list_communities(request):
    page, limit = validate_pagination(request)
    queryset = _community_queryset()
    if request.GET.get('search'):
        queryset = queryset.filter(name__icontains=request.GET['search'].strip())
    if request.GET.get('category'):
        queryset = queryset.filter(category__iexact=request.GET['category'].strip())

    items, pagination = paginate(queryset.order_by('-created_at', '-id'), page, limit)
    return JsonResponse({
        "success": True,
        "data": [community_to_dict(community, request.user) for community in items],
        "pagination": pagination,
    })


def _apply_community_fields(community, data):
    if 'description' in data:
        community.description = clean_string(data, 'description')
    for key, field in (('avatar', 'avatar'), ('banner', 'banner'), ('category', 'category')):
        if key in data:
            setattr(community, field, clean_string(data, key))
    if 'rules' in data:
        community.rules = data['rules']
    if 'tags' in data:
        community.tags = [tag.strip() for tag in data['tags']]
    if 'isPrivate' in data:
        community.is_private = bool(data['isPrivate'])


@verify_token
def create_community(request):
    data = parse_body(request)
    validate_community(data)

    name = data['name'].strip()
    if Community.objects.filter(name__iexact=name).exists():
        raise Conflict("A community with this name already exists")

    with transaction.atomic():
        community = Community(name=name, organizer=request.user)
        _apply_community_fields(community, data)
        community.save()
        community.members.add(request.user)
        community.refresh_member_count()

    push_service.subscribe_user_to_topic(request.user.id, community_topic(community.id))
    logger.info(f"Community {community.name} created by {request.user.username}")
    return JsonResponse({
        "success": True,
        "message": "Community created successfully",
        "data": community_to_dict(_community_queryset().get(pk=community.pk), request.user),
    }, status=201)


@require_GET
@verify_token
def my_communities(request):
    page, limit = validate_pagination(request)
    queryset = _community_queryset().filter(members=request.user).order_by('-created_at', '-id')
    items, pagination = paginate(queryset, page, limit)
    return JsonResponse({
        "success": True,
        "data": [community_to_dict(community, request.user) for community in items],
        "pagination": pagination,
    })


@csrf_exempt
def community_detail(request, community_id):
    return _dispatch(request, {
        "GET": get_community,
        "PUT": update_community,
        "DELETE": delete_community,
    }, community_id)


def _get_community(community_id, lock=False):
    queryset = Community.objects.filter(pk=community_id, is_active=True)
    if lock:
        queryset = queryset.select_for_update()
    community = queryset.first()
    if community is None:
        raise NotFound("Community not found")
    return community


@optional_auth
def get_community(request, community_id):
    _get_community(community_id)
    community = _community_queryset().get(pk=community_id)
    return JsonResponse({
        "success": True,
        "data": community_to_dict(community, request.user, include_members=True),
    })


@verify_token
def update_community(request, community_id):
    community = _get_community(community_id)
    if community.organizer_id != request.user.id:
        raise Forbidden("Only the organizer can update this community")

    data = parse_body(request)
    data.pop('organizer', None)
    validate_community(data, partial=True)

    if 'name' in data:
        name = data['name'].strip()
        if Community.objects.filter(name__iexact=name).exclude(pk=community.pk).exists():
            raise Conflict("A community with this name already exists")
        community.name = name
    _apply_community_fields(community, data)
    community.save()

    return JsonResponse({
        "success": True,
        "message": "Community updated successfully",
        "data": community_to_dict(_community_queryset().get(pk=community_id), request.user),
    })


@verify_token
def delete_community(request, community_id):
    community = _get_community(community_id)
    if community.organizer_id != request.user.id:
        raise Forbidden("Only the organizer can delete this community")

    community.is_active = False
    community.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Community {community.name} deactivated by {request.user.username}")
    return JsonResponse({"success": True, "message": "Community deleted successfully"})


@csrf_exempt
@require_POST
@verify_token
def join_community(request, community_id):
    with transaction.atomic():
        community = _get_community(community_id, lock=True)
        if community.members.filter(pk=request.user.pk).exists():
            raise BadRequest("You are already a member of this community")
        community.members.add(request.user)
        community.refresh_member_count()

    push_service.subscribe_user_to_topic(request.user.id, community_topic(community.id))
    return JsonResponse({
        "success": True,
        "message": "Successfully joined the community",
        "data": {"memberCount": community.member_count},
    })


@csrf_exempt
@require_POST
@verify_token
def leave_community(request, community_id):
    with transaction.atomic():
        community = _get_community(community_id, lock=True)
        if not community.members.filter(pk=request.user.pk).exists():
            raise BadRequest("You are not a member of this community")
        if community.organizer_id == request.user.id:
            raise BadRequest("Community organizer cannot leave the community")
        community.members.remove(request.user)
        community.moderators.remove(request.user)
        community.refresh_member_count()

    push_service.unsubscribe_user_from_topic(request.user.id, community_topic(community.id))
    return JsonResponse({
        "success": True,
        "message": "Successfully left the community",
        "data": {"memberCount": community.member_count},
    })


# ============================================================================
# SECTION 7: CHAT
# ============================================================================

@csrf_exempt
def chats(request):
    return _dispatch(request, {"GET": list_chats, "POST": create_chat})


@verify_token
def list_chats(request):
    user_chats = (
        _chat_queryset()
        .filter(participants=request.user, is_active=True)
        .order_by(F('last_message_at').desc(nulls_last=True), '-updated_at')
    )
    return JsonResponse({"success": True, "data": [chat_to_dict(chat) for chat in user_chats]})


def _load_users(user_ids):
    found = list(_user_queryset().filter(pk__in=user_ids))
    if len(found) != len(set(user_ids)):
        raise NotFound("One or more users not found")
    return found


@verify_token
def create_chat(request):
    data = parse_body(request)
    participant_ids = parse_id_list(data.get('participantIds'), 'participant')
    chat_type = data.get('chatType') or 'direct'
    if chat_type not in ('direct', 'group'):
        raise BadRequest("Invalid chat type")

    other_ids = sorted({pid for pid in participant_ids if pid != request.user.id})
    others = _load_users(other_ids)

    if chat_type == 'direct':
        if len(others) != 1:
            raise BadRequest("Direct chats must have exactly one other participant")
        other = others[0]
        with transaction.atomic():
            chat, created = Chat.objects.get_or_create(
                direct_key=Chat.direct_key_for(request.user.id, other.id),
                defaults={'chat_type': 'direct', 'created_by': request.user},
            )
            if created:
                chat.participants.set([request.user, other])
            elif not chat.is_active:
                chat.is_active = True
                chat.save(update_fields=['is_active', 'updated_at'])

        payload = chat_to_dict(_chat_queryset().get(pk=chat.pk))
        if not created:
            return JsonResponse({"success": True, "message": "Chat already exists", "data": payload})
        return JsonResponse({"success": True, "message": "Chat created successfully", "data": payload}, status=201)

    chat_name = clean_string(data, 'chatName')
    if not chat_name:
        raise BadRequest("Group chats require a chat name")
    if not others:
        raise BadRequest("Group chats need at least one other participant")

    with transaction.atomic():
        chat = Chat.objects.create(
            chat_type='group',
            chat_name=chat_name,
            chat_description=clean_string(data, 'chatDescription'),
            chat_avatar=clean_string(data, 'chatAvatar'),
            created_by=request.user,
        )
        chat.participants.set([request.user, *others])
        chat.admin_users.set([request.user])

    logger.info(f"Group chat {chat.id} created by {request.user.username}")
    return JsonResponse({
        "success": True,
        "message": "Chat created successfully",
        "data": chat_to_dict(_chat_queryset().get(pk=chat.pk)),
    }, status=201)


def _get_participant_chat(chat_id, user):
    chat = _chat_queryset().filter(pk=chat_id, participants=user, is_active=True).first()
    if chat is None:
        raise NotFound("Chat not found or access denied")
    return chat


@require_GET
@verify_token
def chat_detail(request, chat_id):
    chat = _get_participant_chat(chat_id, request.user)
    page, limit = validate_pagination(request, default_limit=50)

    newest_first = _message_queryset().filter(chat=chat, is_deleted=False).order_by('-created_at', '-id')
    items, pagination = paginate(newest_first, page, limit)
    items.reverse()

    return JsonResponse({
        "success": True,
        "data": {
            **chat_to_dict(chat),
            "messages": [message_to_dict(message) for message in items],
        },
        "pagination": pagination,
    })


@csrf_exempt
@require_POST
@verify_token
def send_message(request, chat_id):
    chat = _get_participant_chat(chat_id, request.user)
    data = parse_body(request)

    content = clean_string(data, 'content')
    file_url = clean_string(data, 'fileUrl')
    if not content and not file_url:
        raise BadRequest("Message content or file is required")

    message_type = data.get('messageType') or ('file' if file_url and not content else 'text')
    if message_type not in MESSAGE_TYPES:
        raise BadRequest("Invalid message type")

    with transaction.atomic():
        message = Message.objects.create(
            chat=chat,
            sender=request.user,
            content=content,
            message_type=message_type,
            file_url=file_url,
            file_name=clean_string(data, 'fileName'),
        )
        chat.last_message_content = content or message.file_name or "Attachment"
        chat.last_message_sender = request.user
        chat.last_message_at = message.created_at
        chat.save(update_fields=['last_message_content', 'last_message_sender', 'last_message_at', 'updated_at'])

    sender_name = _display_name(request.user)
    for participant in chat.participants.all():
        if participant.id != request.user.id:
            send_new_message_notification(participant.id, sender_name, chat.last_message_content, chat.id)

    return JsonResponse({
        "success": True,
        "message": "Message sent successfully",
        "data": message_to_dict(_message_queryset().get(pk=message.pk)),
    }, status=201)


@csrf_exempt
@require_POST
@verify_token
def mark_messages_read(request, chat_id):
    chat = _get_participant_chat(chat_id, request.user)
    unread = (
        Message.objects.filter(chat=chat, is_deleted=False)
        .exclude(sender=request.user)
        .exclude(read_receipts__user=request.user)
    )
    receipts = [MessageRead(message=message, user=request.user) for message in unread]
    MessageRead.objects.bulk_create(receipts, ignore_conflicts=True)
    return JsonResponse({
        "success": True,
        "message": "Messages marked as read",
        "data": {"count": len(receipts)},
    })


@csrf_exempt
@require_http_methods(["DELETE"])
@verify_token
def delete_message(request, message_id):
    message = Message.objects.select_related('chat').filter(pk=message_id).first()
    if message is None or message.is_deleted:
        raise NotFound("Message not found")
    if message.sender_id != request.user.id:
        raise Forbidden("You can only delete your own messages")

    with transaction.atomic():
        message.soft_delete()
        chat = message.chat
        if chat.last_message_at == message.created_at and chat.last_message_sender_id == message.sender_id:
            chat.last_message_content = DELETED_MESSAGE_TEXT
            chat.save(update_fields=['last_message_content', 'updated_at'])

    return JsonResponse({"success": True, "message": "Message deleted successfully"})


def _get_group_chat(chat_id, action):
    chat = Chat.objects.select_for_update().filter(pk=chat_id, is_active=True).first()
    if chat is None:
        raise NotFound("Chat not found")
    if not chat.is_group:
        raise BadRequest(f"Can only {action} members in group chats")
    return chat


@csrf_exempt
@require_POST
@verify_token
def add_chat_members(request, chat_id):
    data = parse_body(request)
    user_ids = parse_id_list(data.get('userIds'), 'user')
    if not user_ids:
        raise BadRequest("userIds must be a non-empty array")

    with transaction.atomic():
        chat = _get_group_chat(chat_id, 'add')
        if not chat.can_manage_members(request.user):
            raise Forbidden("Only group admins can add members")

        candidates = _load_users(user_ids)
        existing = set(chat.participants.values_list('id', flat=True))
        new_members = [user for user in candidates if user.id not in existing]
        if not new_members:
            raise BadRequest("All users are already members of this group")
        chat.participants.add(*new_members)
        chat.save(update_fields=['updated_at'])

    return JsonResponse({
        "success": True,
        "message": f"{len(new_members)} member(s) added successfully",
        "data": chat_to_dict(_chat_queryset().get(pk=chat_id)),
    })


@csrf_exempt
@require_http_methods(["DELETE"])
@verify_token
def remove_chat_member(request, chat_id, user_id):
    with transaction.atomic():
        chat = _get_group_chat(chat_id, 'remove')
        if not chat.participants.filter(pk=user_id).exists():
            raise BadRequest("User is not a member of this group")
        if chat.created_by_id == user_id:
            raise Forbidden("Cannot remove the group creator")
        if user_id != request.user.id and not chat.can_manage_members(request.user):
            raise Forbidden("Only group admins can remove members")

        chat.participants.remove(user_id)
        chat.admin_users.remove(user_id)
        chat.save(update_fields=['updated_at'])

    return JsonResponse({
        "success": True,
        "message": "Member removed successfully",
        "data": chat_to_dict(_chat_queryset().get(pk=chat_id)),
    })


# ============================================================================
# SECTION 8: UPLOADS
# ============================================================================

POST_MEDIA_FIELDS = {
    'images': (5, 'image/'),
    'videos': (2, 'video/'),
    'documents': (3, 'application/'),
}


@csrf_exempt
@require_POST
@verify_token
def upload_single(request):
    uploaded_file = request.FILES.get('file')
    if uploaded_file is None:
        raise BadRequest("No file uploaded")
    return JsonResponse({
        "success": True,
        "message": "File uploaded successfully",
        "data": uploads.upload_file(uploaded_file),
    })


@csrf_exempt
@require_POST
@verify_token
def upload_multiple(request):
    descriptors = uploads.upload_files(request.FILES.getlist('files'), max_count=5)
    return JsonResponse({
        "success": True,
        "message": f"{len(descriptors)} file(s) uploaded successfully",
        "data": descriptors,
    })


@csrf_exempt
@require_POST
@verify_token
def upload_avatar(request):
    uploaded_file = request.FILES.get('avatar')
    if uploaded_file is None:
        raise BadRequest("No file uploaded")
    if not uploaded_file.content_type.startswith('image/'):
        raise BadRequest("Avatar must be an image")

    descriptor = uploads.upload_file(uploaded_file)
    request.user.avatar = descriptor['url']
    request.user.save(update_fields=['avatar', 'updated_at'])
    return JsonResponse({
        "success": True,
        "message": "Avatar uploaded successfully",
        "data": descriptor,
    })


@csrf_exempt
@require_POST
@verify_token
def upload_post_media(request):
    grouped = {}
    for field, (max_count, type_prefix) in POST_MEDIA_FIELDS.items():
        files = request.FILES.getlist(field)
        if len(files) > max_count:
            raise BadRequest(f"Too many {field}: at most {max_count} allowed")
        for uploaded_file in files:
            if not uploaded_file.content_type.startswith(type_prefix):
                raise BadRequest(f"{uploaded_file.name} is not a valid {field[:-1]}")
        if files:
            grouped[field] = files

    if not grouped:
        raise BadRequest("No files uploaded")

    data = {field: uploads.upload_files(files, max_count=POST_MEDIA_FIELDS[field][0])
            for field, files in grouped.items()}
    return JsonResponse({"success": True, "message": "Files uploaded successfully", "data": data})


@csrf_exempt
@require_http_methods(["DELETE"])
@verify_token
def delete_upload(request, public_id):
    uploads.delete_file(public_id)
    return JsonResponse({"success": True, "message": "File deleted successfully"})


@require_GET
@verify_token
def optimize_upload(request, public_id):
    options = {}
    for key in ('width', 'height'):
        if request.GET.get(key):
            try:
                options[key] = int(request.GET[key])
            except ValueError:
                raise BadRequest(f"{key} must be an integer")
    if request.GET.get('quality'):
        options['quality'] = request.GET['quality']
    if request.GET.get('format'):
        options['format'] = request.GET['format']

    return JsonResponse({
        "success": True,
        "data": {
            "originalPublicId": public_id,
            "optimizedUrl": uploads.optimized_url(public_id, **options),
            "options": options,
        },
    })


# ============================================================================
# SECTION 9: PUSH NOTIFICATIONS
# ============================================================================

@require_GET
def notification_status(request):
    configured = push_service.is_configured()
    return JsonResponse({
        "success": True,
        "data": {
            "configured": configured,
            "message": "Push notifications are enabled" if configured
            else "Push notifications are disabled - Firebase Admin not configured",
        },
    })


@csrf_exempt
def notification_token(request):
    return _dispatch(request, {"POST": store_token, "DELETE": remove_token})


@verify_token
def store_token(request):
    data = parse_body(request)
    token = data.get('token')
    platform = data.get('platform') or 'web'
    if not token:
        raise BadRequest("FCM token is required")
    if platform not in PLATFORMS:
        raise BadRequest(f"Platform must be one of: {', '.join(PLATFORMS)}")

    if not push_service.store_user_token(request.user.id, token, platform):
        raise AppError("Failed to store FCM token", 500)
    return JsonResponse({"success": True, "message": "FCM token stored successfully"})


@verify_token
def remove_token(request):
    if not push_service.remove_user_token(request.user.id):
        raise AppError("Failed to remove FCM token", 500)
    return JsonResponse({"success": True, "message": "FCM token removed successfully"})


@csrf_exempt
@require_POST
@verify_token
def test_notification(request):
    sent = push_service.send_notification_to_user(
        request.user.id,
        "Test Notification",
        "This is a test notification from OausConnect",
        {'type': 'system'},
    )
    if sent:
        return JsonResponse({"success": True, "message": "Test notification sent successfully"})
    return JsonResponse({
        "success": False,
        "message": "Failed to send test notification (this is normal if push notifications are not configured)",
    })


@require_GET
@verify_token
def list_notifications(request):
    try:
        limit = int(request.GET.get('limit', 50))
    except ValueError:
        raise BadRequest("Limit must be an integer")
    if not 1 <= limit <= 100:
        raise BadRequest("Limit must be between 1 and 100")
    return JsonResponse({
        "success": True,
        "data": push_service.get_user_notifications(request.user.id, limit),
    })


@csrf_exempt
@require_http_methods(["PATCH"])
@verify_token
def mark_notification_read(request, notification_id):
    if not push_service.mark_notification_as_read(notification_id, request.user.id):
        raise NotFound("Notification not found")
    return JsonResponse({"success": True, "message": "Notification marked as read"})


def _topic_from(request):
    topic = clean_string(parse_body(request), 'topic')
    if not topic:
        raise BadRequest("Topic is required")
    if not TOPIC_RE.match(topic):
        raise BadRequest("Invalid topic name")
    return topic


@csrf_exempt
@require_POST
@verify_token
def subscribe_topic(request):
    topic = _topic_from(request)
    if not push_service.subscribe_user_to_topic(request.user.id, topic):
        raise AppError("Failed to subscribe to topic", 500)
    return JsonResponse({"success": True, "message": f"Subscribed to topic: {topic}"})


@csrf_exempt
@require_POST
@verify_token
def unsubscribe_topic(request):
    topic = _topic_from(request)
    if not push_service.unsubscribe_user_from_topic(request.user.id, topic):
        raise AppError("Failed to unsubscribe from topic", 500)
    return JsonResponse({"success": True, "message": f"Unsubscribed from topic: {topic}"})


def _notification_fields(data):
    require_fields(data, ['title', 'body'])
    extra = data.get('data') or {}
    if not isinstance(extra, dict):
        raise BadRequest("data must be an object")
    return data['title'], data['body'], extra


@csrf_exempt
@require_POST
@verify_token
@staff_required
def send_to_user(request):
    data = parse_body(request)
    title, body, extra = _notification_fields(data)
    user_id = parse_id(data.get('userId'), 'user')
    if not push_service.send_notification_to_user(user_id, title, body, extra):
        raise AppError("Failed to send notification", 500)
    return JsonResponse({"success": True, "message": "Notification sent successfully"})


@csrf_exempt
@require_POST
@verify_token
@staff_required
def send_to_users(request):
    data = parse_body(request)
    title, body, extra = _notification_fields(data)
    user_ids = parse_id_list(data.get('userIds'), 'user')
    if not user_ids:
        raise BadRequest("userIds must be a non-empty array")

    result = push_service.send_notification_to_users(user_ids, title, body, extra)
    return JsonResponse({
        "success": True,
        "message": f"Notifications sent: {result['successCount']} successful, {result['failureCount']} failed",
        "data": result,
    })


@csrf_exempt
@require_POST
@verify_token
@staff_required
def send_to_topic(request):
    data = parse_body(request)
    title, body, extra = _notification_fields(data)
    topic = clean_string(data, 'topic')
    if not topic or not TOPIC_RE.match(topic):
        raise BadRequest("A valid topic is required")
    if not push_service.send_notification_to_topic(topic, title, body, extra):
        raise AppError("Failed to send topic notification", 500)
    return JsonResponse({"success": True, "message": "Topic notification sent successfully"})
