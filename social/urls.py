"""
================================================================================
OAUSCONNECT - URL CONFIGURATION
================================================================================

@file        urls.py
@description JSON API routing for OausConnect

MODULE PURPOSE
================================================================================
Maps every API path to its view function. Paths carry no trailing slash
(APPEND_SLASH is off). Where one path serves several HTTP methods the view is
a small dispatcher that forwards to one handler per method and answers 405
for anything else.

URL STRUCTURE OVERVIEW
================================================================================
1. Authentication (login, legacy token, password reset, email verification)
2. Users (account CRUD, current profile, search, password change)
3. Content (feed, CRUD, voting, per-user listing)
4. Comments (threaded comments, replies, voting)
5. Communities (CRUD, membership)
6. Chat (direct and group chats, messages, read receipts, members)
7. Uploads (Cloudinary proxy)
8. Push Notifications (FCM tokens, history, topics, admin sends)

URL PARAMETER TYPES
================================================================================
- <int:...>: Primary keys
- <str:token>: One-time password reset / email verification tokens
- <path:public_id>: Cloudinary public ids (may contain '/')
- <str:notification_id>: Firestore document id

TESTING
================================================================================
    from django.urls import reverse
    url = reverse('content_detail', kwargs={'content_id': 1})
    # Returns: '/content/1'

================================================================================
"""

from django.urls import path

from . import views


urlpatterns = [

    # ========================================================================
    # SECTION 1: AUTHENTICATION
    # ========================================================================

    path("auth/login", views.login, name="login"),
    path("auth/token", views.legacy_token, name="legacy_token"),
    path("auth/forgot-password", views.forgot_password, name="forgot_password"),
    path("auth/reset-password/<str:token>", views.reset_password, name="reset_password"),
    path("auth/request-verification", views.request_verification, name="request_verification"),
    path("auth/verify-email/<str:token>", views.verify_email, name="verify_email"),


    # ========================================================================
    # SECTION 2: USERS
    # ========================================================================

    path("users", views.users, name="users"),  # GET list, POST register, PUT profile, DELETE account
    path("users/me", views.me, name="me"),
    path("users/search", views.search_users, name="search_users"),
    path("users/change-password", views.change_password, name="change_password"),
    path("users/<int:user_id>", views.user_detail, name="user_detail"),


    # ========================================================================
    # SECTION 3: CONTENT
    # ========================================================================

    path("content", views.content_collection, name="content"),
    path("content/user/<int:user_id>", views.user_content, name="user_content"),
    path("content/<int:content_id>", views.content_detail, name="content_detail"),
    path("content/<int:content_id>/upvote", views.vote_content, name="vote_content"),


    # ========================================================================
    # SECTION 4: COMMENTS
    # ========================================================================

    path("content/<int:content_id>/comments", views.content_comments, name="content_comments"),
    path("content/comments/<int:comment_id>", views.comment_detail, name="comment_detail"),
    path("content/comments/<int:comment_id>/replies", views.comment_replies, name="comment_replies"),
    path("content/comments/<int:comment_id>/vote", views.vote_comment, name="vote_comment"),


    # ========================================================================
    # SECTION 5: COMMUNITIES
    # ========================================================================

    path("communities", views.communities, name="communities"),
    path("communities/my", views.my_communities, name="my_communities"),
    path("communities/<int:community_id>", views.community_detail, name="community_detail"),
    path("communities/<int:community_id>/join", views.join_community, name="join_community"),
    path("communities/<int:community_id>/leave", views.leave_community, name="leave_community"),


    # ========================================================================
    # SECTION 6: CHAT
    # ========================================================================

    path("chat", views.chats, name="chats"),
    path("chat/messages/<int:message_id>", views.delete_message, name="delete_message"),
    path("chat/<int:chat_id>", views.chat_detail, name="chat_detail"),
    path("chat/<int:chat_id>/messages", views.send_message, name="send_message"),
    path("chat/<int:chat_id>/read", views.mark_messages_read, name="mark_messages_read"),
    path("chat/<int:chat_id>/members", views.add_chat_members, name="add_chat_members"),
    path("chat/<int:chat_id>/members/<int:user_id>", views.remove_chat_member, name="remove_chat_member"),


    # ========================================================================
    # SECTION 7: UPLOADS
    # ========================================================================

    path("upload/single", views.upload_single, name="upload_single"),
    path("upload/multiple", views.upload_multiple, name="upload_multiple"),
    path("upload/avatar", views.upload_avatar, name="upload_avatar"),
    path("upload/post-media", views.upload_post_media, name="upload_post_media"),
    path("upload/delete/<path:public_id>", views.delete_upload, name="delete_upload"),
    path("upload/optimize/<path:public_id>", views.optimize_upload, name="optimize_upload"),


    # ========================================================================
    # SECTION 8: PUSH NOTIFICATIONS
    # ========================================================================

    path("notifications", views.list_notifications, name="notifications"),
    path("notifications/status", views.notification_status, name="notification_status"),
    path("notifications/token", views.notification_token, name="notification_token"),
    path("notifications/test", views.test_notification, name="test_notification"),
    path("notifications/subscribe", views.subscribe_topic, name="subscribe_topic"),
    path("notifications/unsubscribe", views.unsubscribe_topic, name="unsubscribe_topic"),
    path("notifications/send/user", views.send_to_user, name="send_to_user"),
    path("notifications/send/users", views.send_to_users, name="send_to_users"),
    path("notifications/send/topic", views.send_to_topic, name="send_to_topic"),
    path("notifications/<str:notification_id>/read", views.mark_notification_read,
         name="mark_notification_read"),
]
