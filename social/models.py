"""
================================================================================
OAUSCONNECT - DATABASE MODELS
================================================================================

@file        models.py
@description Django ORM models for the OausConnect university social network

MODULE PURPOSE
================================================================================
This module defines all database models behind the OausConnect JSON API:
- User model (extended from AbstractUser)
- Content feed items and their comments, both vote-tracked
- Communities with organizer / moderator / member roles
- Direct and group chats with messages and read receipts

DATABASE STRUCTURE
================================================================================
1. User & Authentication
   - User (AbstractUser extension, bcrypt password, inline reset tokens)

2. Content Models
   - VoteTrackedModel (abstract: counters + voter sets)
   - Content (feed posts with media descriptors)
   - Comment (tree of replies under a Content item)

3. Communities
   - Community (soft-deletable group with a single organizer)

4. Messaging System
   - Chat (direct or group)
   - Message (chat messages, soft-deletable)
   - MessageRead (per-user read receipts)

MODEL RELATIONSHIPS
================================================================================
User (1) ──────> (N) Content
User (1) ──────> (N) Comment
User (1) ──────> (N) Message
User (1) ──────> (N) Community (as organizer)

Content (1) ───> (N) Comment
Comment (1) ───> (N) Comment (nested replies)
Community (1) ─> (N) Content

User (N) <─────> (N) Community (members, moderators)
User (N) <─────> (N) Chat (participants, admin_users)
User (N) <─────> (N) Content / Comment (upvoted_by, downvoted_by)

VOTE INVARIANTS
================================================================================
- A user appears in at most one of upvoted_by / downvoted_by.
- upvotes == upvoted_by.count() and downvotes == downvoted_by.count().
Both are maintained by social.voting.cast_vote, never by views directly.

CHAT INVARIANTS
================================================================================
- Direct chats have exactly two participants.
- At most one direct chat exists per unordered pair (unique direct_key).
- created_by of a group chat can never be removed from it.

================================================================================
"""

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models.functions import Lower


# ============================================================================
# CONSTANTS & CHOICES
# ============================================================================

CHAT_TYPE_CHOICES = [
    ('direct', 'Direct'),
    ('group', 'Group'),
]

MESSAGE_TYPE_CHOICES = [
    ('text', 'Text'),
    ('image', 'Image'),
    ('file', 'File'),
]

DELETED_MESSAGE_TEXT = "This message was deleted"


# ============================================================================
# SECTION 1: USER & AUTHENTICATION MODELS
# ============================================================================

class User(AbstractUser):
    """
    Extended User model for OausConnect.

    Passwords are hashed with bcrypt (see PASSWORD_HASHERS). Reset and
    verification tokens are stored as SHA-256 digests next to their expiry,
    so a leaked database row cannot be replayed as a link.

    Attributes:
        email (EmailField): Unique login email
        bio (TextField): Profile biography (max 500 chars)
        interests (JSONField): List of interest strings
        dob (DateField): Date of birth (optional)
        facebook (CharField): Facebook handle or URL
        phone (CharField): Phone number
        avatar (URLField): Cloudinary avatar URL
        email_verified (BooleanField): Email ownership confirmed
        reset_password_token (CharField): Digest of the pending reset token
        reset_password_expires (DateTimeField): Reset token expiry
        email_verification_token (CharField): Digest of the verification token
        email_verification_expires (DateTimeField): Verification token expiry

    Related Names:
        contents: Content authored by the user
        comments: Comments authored by the user
        communities: Communities the user is a member of
        chats: Chats the user participates in
    """

    email = models.EmailField(
        unique=True,
        help_text="Unique email address used for login and notifications"
    )

    # --- Profile Information ---
    bio = models.TextField(
        max_length=500,
        blank=True,
        help_text="Profile biography or description"
    )
    interests = models.JSONField(
        default=list,
        blank=True,
        help_text="List of interest tags"
    )
    dob = models.DateField(
        null=True,
        blank=True,
        help_text="Date of birth"
    )
    facebook = models.CharField(
        max_length=200,
        blank=True,
        help_text="Facebook profile handle or URL"
    )
    phone = models.CharField(
        max_length=20,
        blank=True,
        help_text="Contact phone number"
    )
    avatar = models.URLField(
        max_length=500,
        blank=True,
        help_text="Avatar image URL (Cloudinary)"
    )

    # --- Verification & Recovery ---
    email_verified = models.BooleanField(
        default=False,
        help_text="True once the user followed the verification link"
    )
    reset_password_token = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="SHA-256 digest of the password reset token"
    )
    reset_password_expires = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Password reset token expiry"
    )
    email_verification_token = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="SHA-256 digest of the email verification token"
    )
    email_verification_expires = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Email verification token expiry"
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Last profile update"
    )

    def __str__(self):
        return self.username


# ============================================================================
# SECTION 2: CONTENT MODELS (Content & Comments)
# ============================================================================

class VoteTrackedModel(models.Model):
    """
    Abstract base for anything users can up/down vote.

    Counters are denormalized copies of the voter set sizes so list views can
    sort and render without counting M2M rows.

    Attributes:
        upvotes (PositiveIntegerField): Size of upvoted_by
        downvotes (PositiveIntegerField): Size of downvoted_by
        upvoted_by (ManyToManyField): Users with an active upvote
        downvoted_by (ManyToManyField): Users with an active downvote
    """

    upvotes = models.PositiveIntegerField(
        default=0,
        help_text="Number of upvotes (mirrors upvoted_by)"
    )
    downvotes = models.PositiveIntegerField(
        default=0,
        help_text="Number of downvotes (mirrors downvoted_by)"
    )
    upvoted_by = models.ManyToManyField(
        User,
        related_name='upvoted_%(class)ss',
        blank=True,
        help_text="Users who upvoted"
    )
    downvoted_by = models.ManyToManyField(
        User,
        related_name='downvoted_%(class)ss',
        blank=True,
        help_text="Users who downvoted"
    )

    class Meta:
        abstract = True


class Content(VoteTrackedModel):
    """
    Feed item posted by a user, optionally inside a community.

    Attributes:
        author (ForeignKey): Content author
        title (CharField): Title (max 200 chars)
        body (TextField): Main text, exposed as "content" in the API
        tags (JSONField): List of tag strings
        media (JSONField): List of {url, publicId, type} descriptors
        community (ForeignKey): Community the item was posted in (optional)
        is_public (BooleanField): Visible in the public feed
        views (PositiveIntegerField): Detail view counter

    Related Names:
        comments: QuerySet of Comment objects
    """

    author = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='contents',
        help_text="Author of this content"
    )
    title = models.CharField(
        max_length=200,
        help_text="Content title"
    )
    body = models.TextField(
        help_text="Content text"
    )
    tags = models.JSONField(
        default=list,
        blank=True,
        help_text="Tag strings"
    )
    media = models.JSONField(
        default=list,
        blank=True,
        help_text="Uploaded media descriptors"
    )
    community = models.ForeignKey(
        'Community',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='contents',
        help_text="Community this content was posted in"
    )
    is_public = models.BooleanField(
        default=True,
        help_text="Listed in the public feed"
    )
    views = models.PositiveIntegerField(
        default=0,
        help_text="Number of detail views"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Creation timestamp"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Last edit timestamp"
    )

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.author} - {self.title[:50]}"


class Comment(VoteTrackedModel):
    """
    Comment on a Content item; replies point at their parent comment.

    Deleting a comment deletes its whole reply subtree (CASCADE on parent).

    Attributes:
        author (ForeignKey): Comment author
        content (ForeignKey): Content item being discussed
        parent (ForeignKey): Parent comment for replies
        body (TextField): Comment text, exposed as "comment" in the API
    """

    author = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='comments',
        help_text="Comment author"
    )
    content = models.ForeignKey(
        Content,
        on_delete=models.CASCADE,
        related_name='comments',
        help_text="Content being commented on"
    )
    parent = models.ForeignKey(
        'self',
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name='replies',
        help_text="Parent comment for nested replies"
    )
    body = models.TextField(
        max_length=1000,
        help_text="Comment text"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Creation timestamp"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Last edit timestamp"
    )

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.author} on {self.content_id}: {self.body[:50]}"


# ============================================================================
# SECTION 3: COMMUNITY MODELS
# ============================================================================

class Community(models.Model):
    """
    Interest group with a single immutable organizer.

    The organizer is added to members on creation and cannot leave; the
    community is soft-deleted by flipping is_active.

    Attributes:
        name (CharField): Unique name (case-insensitive)
        description (TextField): Short description
        organizer (ForeignKey): Owner, never changes after creation
        moderators (ManyToManyField): Moderating users
        members (ManyToManyField): Member users
        member_count (PositiveIntegerField): Denormalized members.count()
        avatar / banner (URLField): Cloudinary image URLs
        rules (JSONField): List of rule strings
        tags (JSONField): List of tag strings
        category (CharField): Free-form category
        is_private (BooleanField): Hidden from non-members
        is_active (BooleanField): False once deleted
    """

    name = models.CharField(
        max_length=50,
        unique=True,
        help_text="Community name"
    )
    description = models.TextField(
        max_length=500,
        blank=True,
        help_text="Community description"
    )
    organizer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='organized_communities',
        help_text="User who created and owns the community"
    )
    moderators = models.ManyToManyField(
        User,
        related_name='moderated_communities',
        blank=True,
        help_text="Community moderators"
    )
    members = models.ManyToManyField(
        User,
        related_name='communities',
        blank=True,
        help_text="Community members"
    )
    member_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of members"
    )
    avatar = models.URLField(
        max_length=500,
        blank=True,
        help_text="Avatar image URL"
    )
    banner = models.URLField(
        max_length=500,
        blank=True,
        help_text="Banner image URL"
    )
    rules = models.JSONField(
        default=list,
        blank=True,
        help_text="Community rules"
    )
    tags = models.JSONField(
        default=list,
        blank=True,
        help_text="Community tags"
    )
    category = models.CharField(
        max_length=50,
        blank=True,
        help_text="Community category"
    )
    is_private = models.BooleanField(
        default=False,
        help_text="Private community"
    )
    is_active = models.BooleanField(
        default=True,
        help_text="False once the organizer deleted the community"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Creation timestamp"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Last update timestamp"
    )

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'communities'
        constraints = [
            models.UniqueConstraint(Lower('name'), name='community_name_ci_unique'),
        ]

    def __str__(self):
        return self.name

    def refresh_member_count(self):
        self.member_count = self.members.count()
        self.save(update_fields=['member_count', 'updated_at'])


# ============================================================================
# SECTION 4: MESSAGING SYSTEM MODELS
# ============================================================================

class Chat(models.Model):
    """
    Direct (two users) or group conversation.

    Attributes:
        participants (ManyToManyField): Users in the chat
        chat_type (CharField): 'direct' or 'group'
        chat_name (CharField): Group name (required for groups)
        chat_description (TextField): Group description
        chat_avatar (URLField): Group avatar URL
        admin_users (ManyToManyField): Participants allowed to manage members
        created_by (ForeignKey): Creator, never removable from a group
        direct_key (CharField): "<low id>:<high id>" for direct chats only
        last_message_content (TextField): Preview of the latest message
        last_message_sender (ForeignKey): Sender of the latest message
        last_message_at (DateTimeField): Time of the latest message
        is_active (BooleanField): Listed for its participants

    Example:
        key = Chat.direct_key_for(alice.id, bob.id)
        chat, created = Chat.objects.get_or_create(
            direct_key=key,
            defaults={'chat_type': 'direct', 'created_by': alice},
        )
    """

    participants = models.ManyToManyField(
        User,
        related_name='chats',
        help_text="Chat participants"
    )
    chat_type = models.CharField(
        max_length=10,
        choices=CHAT_TYPE_CHOICES,
        default='direct',
        help_text="Direct message or group chat"
    )
    chat_name = models.CharField(
        max_length=100,
        blank=True,
        help_text="Group chat name"
    )
    chat_description = models.TextField(
        max_length=500,
        blank=True,
        help_text="Group chat description"
    )
    chat_avatar = models.URLField(
        max_length=500,
        blank=True,
        help_text="Group chat avatar URL"
    )
    admin_users = models.ManyToManyField(
        User,
        related_name='administered_chats',
        blank=True,
        help_text="Group admins"
    )
    created_by = models.ForeignKey(
        User,
        null=True,
        on_delete=models.SET_NULL,
        related_name='created_chats',
        help_text="User who created the chat"
    )
    direct_key = models.CharField(
        max_length=64,
        unique=True,
        null=True,
        blank=True,
        help_text="Unordered participant pair for direct chats"
    )
    last_message_content = models.TextField(
        blank=True,
        help_text="Latest message preview"
    )
    last_message_sender = models.ForeignKey(
        User,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        help_text="Sender of the latest message"
    )
    last_message_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp of the latest message"
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Listed for participants"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Creation timestamp"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Last activity timestamp"
    )

    def __str__(self):
        if self.chat_type == 'group':
            return self.chat_name or f"Group #{self.id}"
        return f"DM #{self.id}"

    @staticmethod
    def direct_key_for(first_id, second_id):
        low, high = sorted((int(first_id), int(second_id)))
        return f"{low}:{high}"

    @property
    def is_group(self):
        return self.chat_type == 'group'

    def can_manage_members(self, user):
        return self.created_by_id == user.id or self.admin_users.filter(pk=user.pk).exists()


class Message(models.Model):
    """
    Chat message. Deletion is soft: is_deleted is set and the text replaced.

    Attributes:
        chat (ForeignKey): Chat this message belongs to
        sender (ForeignKey): Author
        content (TextField): Message text
        message_type (CharField): text, image or file
        file_url (URLField): Attached file URL
        file_name (CharField): Original attachment name
        is_deleted (BooleanField): Soft-delete flag
        edited_at (DateTimeField): Last edit time

    Related Names:
        read_receipts: QuerySet of MessageRead objects
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name='messages',
        help_text="Chat this message belongs to"
    )
    sender = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sent_messages',
        help_text="Message author"
    )
    content = models.TextField(
        blank=True,
        help_text="Message text"
    )
    message_type = models.CharField(
        max_length=10,
        choices=MESSAGE_TYPE_CHOICES,
        default='text',
        help_text="Kind of message"
    )
    file_url = models.URLField(
        max_length=500,
        blank=True,
        help_text="Attachment URL"
    )
    file_name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Attachment original filename"
    )
    is_deleted = models.BooleanField(
        default=False,
        help_text="Soft-deleted by its sender"
    )
    edited_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last edit timestamp"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Send timestamp"
    )

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.sender} in {self.chat_id}: {self.content[:50]}"

    def soft_delete(self):
        self.is_deleted = True
        self.content = DELETED_MESSAGE_TEXT
        self.file_url = ''
        self.file_name = ''
        self.save(update_fields=['is_deleted', 'content', 'file_url', 'file_name'])


class MessageRead(models.Model):
    """Read receipt: one row per (message, reader)."""

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name='read_receipts',
        help_text="Message that was read"
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='message_reads',
        help_text="Reader"
    )
    read_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the message was read"
    )

    class Meta:
        unique_together = ('message', 'user')
