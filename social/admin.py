from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.models import Group
from django.urls import reverse
from django.utils.html import format_html

from .models import Chat, Comment, Community, Content, Message, MessageRead, User


def _shorten(text, length, empty="(no content)"):
    if text:
        return text[:length] + '...' if len(text) > length else text
    return empty


# ==================== ADMIN CLASSES ====================

@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'email_verified', 'is_staff', 'is_active', 'date_joined')
    list_filter = ('email_verified', 'is_staff', 'is_active')
    search_fields = ('username', 'email', 'first_name', 'last_name')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Profile', {'fields': ('bio', 'interests', 'dob', 'facebook', 'phone', 'avatar', 'email_verified')}),
    )
    actions = ['activate_users', 'deactivate_users', 'mark_email_verified']

    def activate_users(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f"{updated} users activated")
    activate_users.short_description = "Activate selected users"

    def deactivate_users(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} users deactivated")
    deactivate_users.short_description = "Deactivate selected users"

    def mark_email_verified(self, request, queryset):
        updated = queryset.update(email_verified=True, email_verification_token=None,
                                  email_verification_expires=None)
        self.message_user(request, f"{updated} users marked as verified")
    mark_email_verified.short_description = "Mark email as verified"


@admin.register(Content)
class ContentAdmin(admin.ModelAdmin):
    list_display = ('id', 'author_link', 'title', 'community', 'is_public', 'upvotes', 'downvotes',
                    'views', 'created_at')
    list_filter = ('is_public', 'created_at')
    search_fields = ('title', 'body', 'author__username')
    raw_id_fields = ('author', 'community')
    filter_horizontal = ('upvoted_by', 'downvoted_by')

    def author_link(self, obj):
        url = reverse("admin:social_user_change", args=[obj.author.id])
        return format_html('<a href="{}">{}</a>', url, obj.author.username)
    author_link.short_description = 'Author'
    author_link.admin_order_field = 'author__username'


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ('id', 'author', 'content', 'parent', 'created_at', 'comment_short')
    search_fields = ('body', 'author__username', 'content__id')
    raw_id_fields = ('author', 'content', 'parent')

    def comment_short(self, obj):
        return _shorten(obj.body, 50)
    comment_short.short_description = 'Comment'


@admin.register(Community)
class CommunityAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'organizer', 'member_count', 'category', 'is_private', 'is_active')
    list_filter = ('is_private', 'is_active', 'category')
    search_fields = ('name', 'description', 'organizer__username')
    raw_id_fields = ('organizer',)
    filter_horizontal = ('members', 'moderators')
    actions = ['recount_members']

    def recount_members(self, request, queryset):
        for community in queryset:
            community.refresh_member_count()
        self.message_user(request, f"{queryset.count()} member counts refreshed")
    recount_members.short_description = "Recalculate member counts"


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ('id', '__str__', 'chat_type', 'created_by', 'last_message_at', 'participant_count', 'is_active')
    list_filter = ('chat_type', 'is_active')
    search_fields = ('chat_name', 'created_by__username')
    filter_horizontal = ('participants', 'admin_users')

    def participant_count(self, obj):
        return obj.participants.count()
    participant_count.short_description = 'Participants'


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'chat', 'sender', 'message_type', 'is_deleted', 'created_at', 'content_short')
    list_filter = ('message_type', 'is_deleted', 'created_at')
    search_fields = ('content', 'sender__username')

    def content_short(self, obj):
        return _shorten(obj.content, 50, empty="(file)")
    content_short.short_description = 'Content'


@admin.register(MessageRead)
class MessageReadAdmin(admin.ModelAdmin):
    list_display = ('id', 'message', 'user', 'read_at')
    search_fields = ('user__username',)


# Unregister Django's default Group
admin.site.unregister(Group)

# Basic admin site configuration
admin.site.site_header = "OausConnect Admin"
admin.site.site_title = "OausConnect Admin Portal"
admin.site.index_title = "Welcome"
