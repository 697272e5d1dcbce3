from unittest import mock

from social.models import DELETED_MESSAGE_TEXT, Chat, Message, MessageRead

from .base import ApiTestCase, make_user


class DirectChatTests(ApiTestCase):

    def setUp(self):
        self.alice = make_user('alice')
        self.bob = make_user('bob')

    def test_create_direct_chat_is_idempotent(self):
        first = self.post('/chat', {'participantIds': [self.bob.id]}, user=self.alice)
        self.assertEqual(first.status_code, 201)

        second = self.post('/chat', {'participantIds': [self.alice.id]}, user=self.bob)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()['message'], "Chat already exists")
        self.assertEqual(first.json()['data']['id'], second.json()['data']['id'])
        self.assertEqual(Chat.objects.count(), 1)

    def test_participant_ids_must_be_array(self):
        response = self.post('/chat', {'participantIds': self.bob.id}, user=self.alice)
        self.assertError(response, 400, "participantIds must be an array")

    def test_direct_chat_needs_exactly_one_other(self):
        carol = make_user('carol')
        response = self.post('/chat', {'participantIds': [self.bob.id, carol.id]}, user=self.alice)
        self.assertError(response, 400, "Direct chats must have exactly one other participant")

    def test_unknown_participant(self):
        response = self.post('/chat', {'participantIds': [9999]}, user=self.alice)
        self.assertError(response, 404, "One or more users not found")


class MessagingTests(ApiTestCase):

    def setUp(self):
        self.alice = make_user('alice')
        self.bob = make_user('bob')
        self.outsider = make_user('outsider')
        self.chat = Chat.objects.create(direct_key=Chat.direct_key_for(self.alice.id, self.bob.id),
                                        created_by=self.alice)
        self.chat.participants.set([self.alice, self.bob])

    def test_send_message_updates_last_message_and_pushes(self):
        with mock.patch('social.views.send_new_message_notification') as notify:
            response = self.post(f'/chat/{self.chat.id}/messages', {'content': 'hello bob'}, user=self.alice)

        self.assertEqual(response.status_code, 201)
        self.chat.refresh_from_db()
        self.assertEqual(self.chat.last_message_content, 'hello bob')
        self.assertEqual(self.chat.last_message_sender, self.alice)
        notify.assert_called_once_with(self.bob.id, 'Alice Tester', 'hello bob', self.chat.id)

    def test_message_needs_content_or_file(self):
        response = self.post(f'/chat/{self.chat.id}/messages', {'content': '  '}, user=self.alice)
        self.assertError(response, 400, "Message content or file is required")

    def test_outsider_cannot_read_or_send(self):
        self.assertError(self.get(f'/chat/{self.chat.id}', user=self.outsider), 404,
                         "Chat not found or access denied")
        response = self.post(f'/chat/{self.chat.id}/messages', {'content': 'hi'}, user=self.outsider)
        self.assertError(response, 404, "Chat not found or access denied")

    def test_chat_detail_returns_latest_page_oldest_first(self):
        for i in range(4):
            Message.objects.create(chat=self.chat, sender=self.alice, content=f'm{i}')

        body = self.get(f'/chat/{self.chat.id}', user=self.bob, params={'limit': 3}).json()

        self.assertEqual([m['content'] for m in body['data']['messages']], ['m1', 'm2', 'm3'])
        self.assertEqual(body['pagination']['total'], 4)

    def test_list_chats_latest_activity_first(self):
        quiet = Chat.objects.create(direct_key=Chat.direct_key_for(self.alice.id, self.outsider.id))
        quiet.participants.set([self.alice, self.outsider])
        self.post(f'/chat/{self.chat.id}/messages', {'content': 'ping'}, user=self.bob)

        data = self.get('/chat', user=self.alice).json()['data']
        self.assertEqual([chat['id'] for chat in data], [self.chat.id, quiet.id])
        self.assertEqual(data[0]['lastMessage']['content'], 'ping')
        self.assertIsNone(data[1]['lastMessage'])

    def test_mark_read_skips_own_messages(self):
        Message.objects.create(chat=self.chat, sender=self.alice, content='one')
        Message.objects.create(chat=self.chat, sender=self.alice, content='two')
        Message.objects.create(chat=self.chat, sender=self.bob, content='mine')

        response = self.post(f'/chat/{self.chat.id}/read', user=self.bob)
        self.assertEqual(response.json()['data']['count'], 2)

        again = self.post(f'/chat/{self.chat.id}/read', user=self.bob)
        self.assertEqual(again.json()['data']['count'], 0)
        self.assertEqual(MessageRead.objects.filter(user=self.bob).count(), 2)

    def test_delete_message_is_soft(self):
        message = Message.objects.create(chat=self.chat, sender=self.alice, content='oops')
        response = self.delete(f'/chat/messages/{message.id}', user=self.alice)

        self.assertEqual(response.status_code, 200)
        message.refresh_from_db()
        self.assertTrue(message.is_deleted)
        self.assertEqual(message.content, DELETED_MESSAGE_TEXT)
        messages = self.get(f'/chat/{self.chat.id}', user=self.alice).json()['data']['messages']
        self.assertEqual(messages, [])

    def test_only_sender_deletes_message(self):
        message = Message.objects.create(chat=self.chat, sender=self.alice, content='mine')
        response = self.delete(f'/chat/messages/{message.id}', user=self.bob)
        self.assertError(response, 403, "You can only delete your own messages")


class GroupChatTests(ApiTestCase):

    def setUp(self):
        self.creator = make_user('creator')
        self.admin = make_user('admin')
        self.member = make_user('member')
        self.newcomer = make_user('newcomer')
        response = self.post('/chat', {
            'participantIds': [self.admin.id, self.member.id],
            'chatType': 'group',
            'chatName': 'Study group',
        }, user=self.creator)
        self.chat = Chat.objects.get(pk=response.json()['data']['id'])
        self.chat.admin_users.add(self.admin)

    def test_group_created_with_creator_as_admin(self):
        self.assertEqual(self.chat.chat_name, 'Study group')
        self.assertEqual(self.chat.created_by, self.creator)
        self.assertEqual(self.chat.participants.count(), 3)
        self.assertTrue(self.chat.admin_users.filter(pk=self.creator.pk).exists())

    def test_group_needs_name(self):
        response = self.post('/chat', {'participantIds': [self.member.id], 'chatType': 'group'}, user=self.creator)
        self.assertError(response, 400, "Group chats require a chat name")

    def test_admin_adds_members(self):
        response = self.post(f'/chat/{self.chat.id}/members', {'userIds': [self.newcomer.id]}, user=self.admin)

        self.assertEqual(response.status_code, 200)
        self.assertTrue(self.chat.participants.filter(pk=self.newcomer.pk).exists())

    def test_member_cannot_add(self):
        response = self.post(f'/chat/{self.chat.id}/members', {'userIds': [self.newcomer.id]}, user=self.member)
        self.assertError(response, 403, "Only group admins can add members")

    def test_adding_existing_members(self):
        response = self.post(f'/chat/{self.chat.id}/members', {'userIds': [self.member.id]}, user=self.creator)
        self.assertError(response, 400, "All users are already members of this group")

    def test_cannot_add_to_direct_chat(self):
        direct = Chat.objects.create(direct_key=Chat.direct_key_for(self.creator.id, self.member.id))
        direct.participants.set([self.creator, self.member])
        response = self.post(f'/chat/{direct.id}/members', {'userIds': [self.newcomer.id]}, user=self.creator)
        self.assertError(response, 400, "Can only add members in group chats")

    def test_admin_removes_member(self):
        response = self.delete(f'/chat/{self.chat.id}/members/{self.member.id}', user=self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(self.chat.participants.filter(pk=self.member.pk).exists())

    def test_removed_admin_loses_admin_rights(self):
        response = self.delete(f'/chat/{self.chat.id}/members/{self.admin.id}', user=self.creator)

        self.assertEqual(response.status_code, 200)
        self.assertNotIn(self.admin.id, response.json()['data']['adminUsers'])
        self.assertFalse(self.chat.admin_users.filter(pk=self.admin.pk).exists())
        self.assertFalse(self.chat.participants.filter(pk=self.admin.pk).exists())

    def test_member_can_leave(self):
        response = self.delete(f'/chat/{self.chat.id}/members/{self.member.id}', user=self.member)
        self.assertEqual(response.status_code, 200)

    def test_member_cannot_remove_others(self):
        response = self.delete(f'/chat/{self.chat.id}/members/{self.admin.id}', user=self.member)
        self.assertError(response, 403, "Only group admins can remove members")

    def test_creator_cannot_be_removed(self):
        response = self.delete(f'/chat/{self.chat.id}/members/{self.creator.id}', user=self.admin)
        self.assertError(response, 403, "Cannot remove the group creator")

    def test_remove_non_member(self):
        response = self.delete(f'/chat/{self.chat.id}/members/{self.newcomer.id}', user=self.creator)
        self.assertError(response, 400, "User is not a member of this group")
