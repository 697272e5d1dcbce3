"""
Push notifications through Firebase Cloud Messaging.

FCM registration tokens and the per-user notification history live in
Firestore (``fcmTokens/<userId>`` and ``notifications``). Everything here is
best-effort: when Firebase Admin is not configured, or any Firebase call
fails, the error is logged and the method returns False / an empty result
instead of raising, so callers never fail a request because of a push.
"""

import logging
from datetime import datetime, timezone

import firebase_admin
from django.conf import settings
from firebase_admin import credentials, firestore, messaging

logger = logging.getLogger(__name__)

FCM_TOKENS_COLLECTION = 'fcmTokens'
NOTIFICATIONS_COLLECTION = 'notifications'
PLATFORMS = ('web', 'android', 'ios')

_app = None


def is_firebase_configured():
    creds = settings.FIREBASE_CREDENTIALS
    return all(creds.get(key) for key in ('project_id', 'private_key', 'client_email'))


def get_firebase_app():
    """Initialize the Firebase Admin app once per process; None when unconfigured."""
    global _app
    if _app is not None:
        return _app
    if not is_firebase_configured():
        return None
    try:
        _app = firebase_admin.get_app()
    except ValueError:
        creds = settings.FIREBASE_CREDENTIALS
        _app = firebase_admin.initialize_app(
            credentials.Certificate(creds),
            {'projectId': creds['project_id']},
        )
        logger.info("Firebase Admin initialized")
    return _app


def _string_data(data):
    return {key: str(value) for key, value in (data or {}).items() if value is not None}


def _webpush(title, body):
    # FCM rejects non-HTTPS click-through links
    fcm_options = None
    if settings.CLIENT_URL.startswith('https://'):
        fcm_options = messaging.WebpushFCMOptions(link=settings.CLIENT_URL)
    return messaging.WebpushConfig(
        notification=messaging.WebpushNotification(
            title=title,
            body=body,
            icon='/favicon.ico',
            badge='/favicon.ico',
            require_interaction=True,
        ),
        fcm_options=fcm_options,
    )


class PushNotificationService:
    """FCM sender plus the Firestore token / history store."""

    def is_configured(self):
        return is_firebase_configured()

    def _app(self):
        return get_firebase_app()

    def _db(self):
        return firestore.client(self._app())

    # ==================== TOKENS ====================

    def store_user_token(self, user_id, token, platform='web'):
        if not self.is_configured():
            return False
        now = datetime.now(timezone.utc)
        try:
            self._db().collection(FCM_TOKENS_COLLECTION).document(str(user_id)).set({
                'userId': str(user_id),
                'token': token,
                'platform': platform,
                'createdAt': now,
                'updatedAt': now,
            }, merge=True)
        except Exception as e:
            logger.error(f"Error storing FCM token for user {user_id}: {e}")
            return False
        logger.info(f"FCM token stored for user {user_id}")
        return True

    def remove_user_token(self, user_id):
        if not self.is_configured():
            return False
        try:
            self._db().collection(FCM_TOKENS_COLLECTION).document(str(user_id)).delete()
        except Exception as e:
            logger.error(f"Error removing FCM token for user {user_id}: {e}")
            return False
        logger.info(f"FCM token removed for user {user_id}")
        return True

    def get_user_token(self, user_id):
        if not self.is_configured():
            return None
        try:
            snapshot = self._db().collection(FCM_TOKENS_COLLECTION).document(str(user_id)).get()
        except Exception as e:
            logger.error(f"Error getting FCM token for user {user_id}: {e}")
            return None
        if not snapshot.exists:
            return None
        return (snapshot.to_dict() or {}).get('token')

    def get_user_tokens(self, user_ids):
        tokens = []
        for user_id in user_ids:
            token = self.get_user_token(user_id)
            if token:
                tokens.append(token)
        return tokens

    # ==================== SENDING ====================

    def send_notification_to_user(self, user_id, title, body, data=None):
        if not self.is_configured():
            logger.info(f"Push disabled; would notify user {user_id}: {title}")
            return False

        token = self.get_user_token(user_id)
        if not token:
            logger.info(f"No FCM token found for user {user_id}")
            return False

        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            data=_string_data(data),
            webpush=_webpush(title, body),
        )
        try:
            response = messaging.send(message, app=self._app())
        except Exception as e:
            logger.error(f"Error sending push notification to user {user_id}: {e}")
            return False

        logger.info(f"Push notification sent to user {user_id}: {response}")
        self._store_notification(user_id, title, body, data)
        return True

    def send_notification_to_users(self, user_ids, title, body, data=None):
        """Returns ``{"successCount": n, "failureCount": m}``."""
        failed = {"successCount": 0, "failureCount": len(user_ids)}
        if not self.is_configured():
            logger.info(f"Push disabled; would notify {len(user_ids)} users: {title}")
            return failed

        tokens = self.get_user_tokens(user_ids)
        if not tokens:
            logger.info("No FCM tokens found for any of the users")
            return failed

        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            data=_string_data(data),
            webpush=_webpush(title, body),
        )
        try:
            response = messaging.send_each_for_multicast(message, app=self._app())
        except Exception as e:
            logger.error(f"Error sending multicast push notification: {e}")
            return failed

        logger.info(f"Push notifications sent: {response.success_count} successful, "
                    f"{response.failure_count} failed")
        for user_id in user_ids:
            self._store_notification(user_id, title, body, data)
        return {"successCount": response.success_count, "failureCount": response.failure_count}

    def send_notification_to_topic(self, topic, title, body, data=None):
        if not self.is_configured():
            logger.info(f"Push disabled; would notify topic {topic}: {title}")
            return False

        message = messaging.Message(
            topic=topic,
            notification=messaging.Notification(title=title, body=body),
            data=_string_data(data),
            webpush=_webpush(title, body),
        )
        try:
            messaging.send(message, app=self._app())
        except Exception as e:
            logger.error(f"Error sending push notification to topic {topic}: {e}")
            return False
        return True

    # ==================== TOPICS ====================

    def subscribe_user_to_topic(self, user_id, topic):
        token = self.get_user_token(user_id)
        if not token:
            return False
        try:
            messaging.subscribe_to_topic([token], topic, app=self._app())
        except Exception as e:
            logger.error(f"Error subscribing user {user_id} to {topic}: {e}")
            return False
        return True

    def unsubscribe_user_from_topic(self, user_id, topic):
        token = self.get_user_token(user_id)
        if not token:
            return False
        try:
            messaging.unsubscribe_from_topic([token], topic, app=self._app())
        except Exception as e:
            logger.error(f"Error unsubscribing user {user_id} from {topic}: {e}")
            return False
        return True

    # ==================== HISTORY ====================

    def _store_notification(self, user_id, title, body, data=None):
        try:
            self._db().collection(NOTIFICATIONS_COLLECTION).add({
                'userId': str(user_id),
                'title': title,
                'body': body,
                'data': _string_data(data),
                'createdAt': datetime.now(timezone.utc),
                'read': False,
            })
        except Exception as e:
            logger.error(f"Error storing notification for user {user_id}: {e}")

    def get_user_notifications(self, user_id, limit=50):
        if not self.is_configured():
            return []
        try:
            query = (
                self._db().collection(NOTIFICATIONS_COLLECTION)
                .where('userId', '==', str(user_id))
                .order_by('createdAt', direction=firestore.Query.DESCENDING)
                .limit(limit)
            )
            return [{'id': doc.id, **doc.to_dict()} for doc in query.stream()]
        except Exception as e:
            logger.error(f"Error getting notifications for user {user_id}: {e}")
            return []

    def mark_notification_as_read(self, notification_id, user_id):
        """Only the notification's recipient may mark it read."""
        if not self.is_configured():
            return False
        try:
            ref = self._db().collection(NOTIFICATIONS_COLLECTION).document(notification_id)
            snapshot = ref.get()
            if not snapshot.exists or (snapshot.to_dict() or {}).get('userId') != str(user_id):
                return False
            ref.update({'read': True, 'readAt': datetime.now(timezone.utc)})
        except Exception as e:
            logger.error(f"Error marking notification {notification_id} as read: {e}")
            return False
        return True


push_service = PushNotificationService()


# ==================== COMMON NOTIFICATIONS ====================

def community_topic(community_id):
    return f"community_{community_id}"


def send_new_message_notification(recipient_id, sender_name, message_content, chat_id):
    return push_service.send_notification_to_user(
        recipient_id,
        f"New message from {sender_name}",
        message_content,
        {
            'type': 'message',
            'entityId': chat_id,
            'senderName': sender_name,
            'url': f"/chat/{chat_id}",
        },
    )


def send_community_notification(community_id, title, body):
    return push_service.send_notification_to_topic(
        community_topic(community_id),
        title,
        body,
        {
            'type': 'community',
            'entityId': community_id,
            'url': f"/communities/{community_id}",
        },
    )
