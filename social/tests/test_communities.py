from unittest import mock

from social.models import Community

from .base import ApiTestCase, make_community, make_user


class CreateCommunityTests(ApiTestCase):

    def setUp(self):
        self.user = make_user('alice')

    def test_create_makes_organizer_a_member(self):
        response = self.post('/communities', {
            'name': 'Chess Lovers',
            'description': 'Openings and endgames',
            'rules': ['Be kind'],
            'tags': ['chess'],
        }, user=self.user)

        self.assertEqual(response.status_code, 201)
        data = response.json()['data']
        self.assertEqual(data['organizer']['username'], 'alice')
        self.assertEqual(data['memberCount'], 1)
        self.assertTrue(data['isMember'])

    def test_duplicate_name_is_case_insensitive(self):
        make_community(self.user, name='Chess Lovers')
        response = self.post('/communities', {'name': 'chess lovers'}, user=self.user)
        self.assertError(response, 409, "A community with this name already exists")

    def test_name_required(self):
        self.assertError(self.post('/communities', {}, user=self.user), 400, "Community name is required")

    def test_name_length(self):
        response = self.post('/communities', {'name': 'ab'}, user=self.user)
        self.assertError(response, 400, "Community name must be between 3 and 50 characters")


class MembershipTests(ApiTestCase):

    def setUp(self):
        self.organizer = make_user('organizer')
        self.member = make_user('member')
        self.community = make_community(self.organizer)

    def test_join_and_leave(self):
        response = self.post(f'/communities/{self.community.id}/join', user=self.member)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['memberCount'], 2)

        response = self.post(f'/communities/{self.community.id}/leave', user=self.member)
        self.assertEqual(response.json()['data']['memberCount'], 1)
        self.community.refresh_from_db()
        self.assertEqual(self.community.member_count, self.community.members.count())

    def test_join_twice(self):
        self.post(f'/communities/{self.community.id}/join', user=self.member)
        response = self.post(f'/communities/{self.community.id}/join', user=self.member)
        self.assertError(response, 400, "You are already a member of this community")
        self.community.refresh_from_db()
        self.assertEqual(self.community.member_count, 2)
        self.assertEqual(self.community.members.count(), 2)

    def test_join_subscribes_to_community_topic(self):
        with mock.patch('social.views.push_service.subscribe_user_to_topic') as subscribe:
            self.post(f'/communities/{self.community.id}/join', user=self.member)
        subscribe.assert_called_once_with(self.member.id, f'community_{self.community.id}')

    def test_leave_without_membership(self):
        response = self.post(f'/communities/{self.community.id}/leave', user=self.member)
        self.assertError(response, 400, "You are not a member of this community")

    def test_organizer_cannot_leave(self):
        response = self.post(f'/communities/{self.community.id}/leave', user=self.organizer)
        self.assertError(response, 400, "Community organizer cannot leave the community")
        self.community.refresh_from_db()
        self.assertTrue(self.community.members.filter(pk=self.organizer.pk).exists())
        self.assertEqual(self.community.member_count, 1)

    def test_join_missing_community(self):
        self.assertError(self.post('/communities/9999/join', user=self.member), 404, "Community not found")

    def test_my_communities(self):
        make_community(self.member, name='Other Club')
        response = self.get('/communities/my', user=self.member)
        self.assertEqual([c['name'] for c in response.json()['data']], ['Other Club'])


class CommunityDetailTests(ApiTestCase):

    def setUp(self):
        self.organizer = make_user('organizer')
        self.other = make_user('other')
        self.community = make_community(self.organizer)

    def test_detail_lists_members(self):
        response = self.get(f'/communities/{self.community.id}')
        members = response.json()['data']['members']
        self.assertEqual([m['username'] for m in members], ['organizer'])

    def test_update_by_organizer_keeps_organizer(self):
        response = self.put(f'/communities/{self.community.id}', {
            'description': 'New description',
            'organizer': self.other.id,
        }, user=self.organizer)

        self.assertEqual(response.status_code, 200)
        self.community.refresh_from_db()
        self.assertEqual(self.community.description, 'New description')
        self.assertEqual(self.community.organizer, self.organizer)

    def test_update_by_non_organizer(self):
        response = self.put(f'/communities/{self.community.id}', {'description': 'x'}, user=self.other)
        self.assertError(response, 403, "Only the organizer can update this community")

    def test_delete_is_soft(self):
        response = self.delete(f'/communities/{self.community.id}', user=self.organizer)

        self.assertEqual(response.status_code, 200)
        self.community.refresh_from_db()
        self.assertFalse(self.community.is_active)
        self.assertError(self.get(f'/communities/{self.community.id}'), 404, "Community not found")
        self.assertEqual(self.get('/communities').json()['data'], [])

    def test_delete_by_non_organizer(self):
        response = self.delete(f'/communities/{self.community.id}', user=self.other)
        self.assertError(response, 403, "Only the organizer can delete this community")
        self.assertTrue(Community.objects.get(pk=self.community.pk).is_active)


class CommunityTypeValidationTests(ApiTestCase):

    def setUp(self):
        self.user = make_user('alice')

    def test_non_string_name(self):
        response = self.post('/communities', {'name': 12345}, user=self.user)
        self.assertError(response, 400, "Community name must be a string")
        self.assertFalse(Community.objects.exists())

    def test_non_string_optional_fields(self):
        response = self.post('/communities', {
            'name': 'Valid Club', 'description': 5, 'category': ['a'],
        }, user=self.user)
        self.assertError(response, 400, "Description must be a string; Category must be a string")

    def test_null_optional_fields_are_cleared(self):
        response = self.post('/communities', {'name': 'Valid Club', 'avatar': None, 'banner': None},
                             user=self.user)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['data']['avatar'], '')

    def test_non_string_field_on_update(self):
        community = make_community(self.user)
        response = self.put(f'/communities/{community.id}', {'banner': {'url': 'x'}}, user=self.user)
        self.assertError(response, 400, "Banner must be a string")
