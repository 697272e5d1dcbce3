"""
Model -> JSON representations used by the API views.

Keys are camelCase to match the web client. Voter sets are rendered as id
lists; callers should prefetch ``upvoted_by``/``downvoted_by`` (and the other
relations listed per function) when serializing querysets.
"""

import math

from django.core.paginator import EmptyPage, Paginator

from .voting import DOWNVOTE, UPVOTE


# ==================== PAGINATION ====================

def paginate(queryset, page, limit):
    """
    Slice ``queryset`` for ``page``/``limit``.

    Returns ``(items, pagination)``. Pages past the end are empty rather than
    an error.
    """
    paginator = Paginator(queryset, limit)
    total = paginator.count
    try:
        items = list(paginator.page(page).object_list) if total else []
    except EmptyPage:
        items = []
    pages = math.ceil(total / limit) if total else 0
    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "hasNext": page < pages,
        "hasPrev": page > 1,
    }


# ==================== USERS ====================

def user_summary(user):
    if user is None:
        return None
    return {
        "id": user.id,
        "firstname": user.first_name,
        "lastname": user.last_name,
        "username": user.username,
        "avatar": user.avatar,
    }


def user_profile(user):
    """Full profile; never includes the password hash or pending tokens."""
    return {
        "id": user.id,
        "firstname": user.first_name,
        "lastname": user.last_name,
        "username": user.username,
        "email": user.email,
        "bio": user.bio,
        "interests": user.interests,
        "dob": user.dob,
        "facebook": user.facebook,
        "phone": user.phone,
        "avatar": user.avatar,
        "emailVerified": user.email_verified,
        "createdAt": user.date_joined,
        "updatedAt": user.updated_at,
    }


# ==================== CONTENT & COMMENTS ====================

def _voter_ids(manager):
    return [user.id for user in manager.all()]


def _user_vote(upvoted_ids, downvoted_ids, viewer):
    if viewer is None or not viewer.is_authenticated:
        return None
    if viewer.id in upvoted_ids:
        return UPVOTE
    if viewer.id in downvoted_ids:
        return DOWNVOTE
    return None


def content_to_dict(content, viewer=None):
    """Prefetch: author, community, upvoted_by, downvoted_by. Annotate: comment_count."""
    upvoted_ids = _voter_ids(content.upvoted_by)
    downvoted_ids = _voter_ids(content.downvoted_by)
    comment_count = getattr(content, 'comment_count', None)
    if comment_count is None:
        comment_count = content.comments.count()
    community = content.community
    return {
        "id": content.id,
        "title": content.title,
        "content": content.body,
        "author": user_summary(content.author),
        "tags": content.tags,
        "media": content.media,
        "community": {"id": community.id, "name": community.name} if community else None,
        "isPublic": content.is_public,
        "upvotes": content.upvotes,
        "downvotes": content.downvotes,
        "upvotedBy": upvoted_ids,
        "downvotedBy": downvoted_ids,
        "userVote": _user_vote(upvoted_ids, downvoted_ids, viewer),
        "commentCount": comment_count,
        "views": content.views,
        "createdAt": content.created_at,
        "updatedAt": content.updated_at,
    }


def comment_to_dict(comment, viewer=None):
    """Prefetch: author, upvoted_by, downvoted_by."""
    upvoted_ids = _voter_ids(comment.upvoted_by)
    downvoted_ids = _voter_ids(comment.downvoted_by)
    return {
        "id": comment.id,
        "comment": comment.body,
        "author": user_summary(comment.author),
        "contentId": comment.content_id,
        "parentComment": comment.parent_id,
        "upvotes": comment.upvotes,
        "downvotes": comment.downvotes,
        "upvotedBy": upvoted_ids,
        "downvotedBy": downvoted_ids,
        "userVote": _user_vote(upvoted_ids, downvoted_ids, viewer),
        "createdAt": comment.created_at,
        "updatedAt": comment.updated_at,
    }


# ==================== COMMUNITIES ====================

def community_to_dict(community, viewer=None, include_members=False):
    """Prefetch: organizer, members (membership check), moderators."""
    member_ids = [user.id for user in community.members.all()]
    data = {
        "id": community.id,
        "name": community.name,
        "description": community.description,
        "organizer": user_summary(community.organizer),
        "moderators": [user.id for user in community.moderators.all()],
        "memberCount": community.member_count,
        "avatar": community.avatar,
        "banner": community.banner,
        "rules": community.rules,
        "tags": community.tags,
        "category": community.category,
        "isPrivate": community.is_private,
        "isActive": community.is_active,
        "isMember": bool(viewer and viewer.is_authenticated and viewer.id in member_ids),
        "createdAt": community.created_at,
        "updatedAt": community.updated_at,
    }
    if include_members:
        data["members"] = [user_summary(user) for user in community.members.all()]
    return data


# ==================== CHATS ====================

def message_to_dict(message):
    """Prefetch: sender, read_receipts."""
    return {
        "id": message.id,
        "chatId": message.chat_id,
        "sender": user_summary(message.sender),
        "content": message.content,
        "messageType": message.message_type,
        "fileUrl": message.file_url,
        "fileName": message.file_name,
        "readBy": [
            {"userId": receipt.user_id, "readAt": receipt.read_at}
            for receipt in message.read_receipts.all()
        ],
        "isDeleted": message.is_deleted,
        "editedAt": message.edited_at,
        "createdAt": message.created_at,
    }


def chat_to_dict(chat):
    """Prefetch: participants, admin_users, created_by, last_message_sender."""
    last_message = None
    if chat.last_message_at is not None:
        last_message = {
            "content": chat.last_message_content,
            "sender": user_summary(chat.last_message_sender),
            "timestamp": chat.last_message_at,
        }
    return {
        "id": chat.id,
        "chatType": chat.chat_type,
        "chatName": chat.chat_name,
        "chatDescription": chat.chat_description,
        "chatAvatar": chat.chat_avatar,
        "participants": [user_summary(user) for user in chat.participants.all()],
        "adminUsers": [user.id for user in chat.admin_users.all()],
        "createdBy": chat.created_by_id,
        "lastMessage": last_message,
        "isActive": chat.is_active,
        "createdAt": chat.created_at,
        "updatedAt": chat.updated_at,
    }
