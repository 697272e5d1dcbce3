from social.errors import BadRequest, NotFound
from social.models import Comment, Content
from social.voting import cast_vote

from .base import ApiTestCase, make_content, make_user


class CastVoteTests(ApiTestCase):

    def setUp(self):
        self.author = make_user('author')
        self.voter = make_user('voter')
        self.content = make_content(self.author)

    def test_upvote_then_repeat_removes_it(self):
        result = cast_vote(Content, self.content.id, self.voter, 'upvote')
        self.assertEqual((result.upvotes, result.downvotes, result.user_vote), (1, 0, 'upvote'))

        result = cast_vote(Content, self.content.id, self.voter, 'upvote')
        self.assertEqual((result.upvotes, result.downvotes, result.user_vote), (0, 0, None))
        self.assertFalse(self.content.upvoted_by.filter(pk=self.voter.pk).exists())

    def test_switching_moves_voter_between_sets(self):
        cast_vote(Content, self.content.id, self.voter, 'upvote')
        result = cast_vote(Content, self.content.id, self.voter, 'downvote')

        self.assertEqual((result.upvotes, result.downvotes, result.user_vote), (0, 1, 'downvote'))
        self.content.refresh_from_db()
        self.assertFalse(self.content.upvoted_by.filter(pk=self.voter.pk).exists())
        self.assertTrue(self.content.downvoted_by.filter(pk=self.voter.pk).exists())

    def test_remove_clears_any_vote(self):
        cast_vote(Content, self.content.id, self.voter, 'downvote')
        result = cast_vote(Content, self.content.id, self.voter, 'remove')
        self.assertEqual((result.upvotes, result.downvotes, result.user_vote), (0, 0, None))

    def test_remove_without_vote_is_a_no_op(self):
        result = cast_vote(Content, self.content.id, self.voter, 'remove')
        self.assertEqual((result.upvotes, result.downvotes), (0, 0))

    def test_counters_match_sets_after_many_votes(self):
        others = [make_user(f'user{i}') for i in range(4)]
        for user in others:
            cast_vote(Content, self.content.id, user, 'upvote')
        cast_vote(Content, self.content.id, others[0], 'downvote')
        cast_vote(Content, self.content.id, others[1], 'upvote')

        self.content.refresh_from_db()
        self.assertEqual(self.content.upvotes, self.content.upvoted_by.count())
        self.assertEqual(self.content.downvotes, self.content.downvoted_by.count())
        self.assertEqual((self.content.upvotes, self.content.downvotes), (2, 1))

    def test_stale_instance_does_not_overwrite_counters(self):
        stale = Content.objects.get(pk=self.content.pk)
        cast_vote(Content, self.content.id, self.voter, 'upvote')
        cast_vote(Content, stale.id, make_user('late'), 'upvote')

        self.content.refresh_from_db()
        self.assertEqual(self.content.upvotes, 2)

    def test_invalid_vote_type(self):
        with self.assertRaisesMessage(BadRequest, "Invalid vote type"):
            cast_vote(Content, self.content.id, self.voter, 'sideways')

    def test_missing_comment_uses_custom_message(self):
        with self.assertRaisesMessage(NotFound, "Comment not found"):
            cast_vote(Comment, 999, self.voter, 'upvote', not_found_message="Comment not found")


class VoteEndpointTests(ApiTestCase):

    def setUp(self):
        self.author = make_user('author')
        self.voter = make_user('voter')
        self.content = make_content(self.author)

    def test_vote_content(self):
        response = self.post(f'/content/{self.content.id}/upvote', {'voteType': 'upvote'}, user=self.voter)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['message'], "Vote updated successfully")
        self.assertEqual(body['data'], {'upvotes': 1, 'downvotes': 0, 'userVote': 'upvote'})

    def test_vote_requires_token(self):
        response = self.post(f'/content/{self.content.id}/upvote', {'voteType': 'upvote'})
        self.assertError(response, 401, "Access denied. No token provided.")

    def test_vote_on_missing_content(self):
        response = self.post('/content/9999/upvote', {'voteType': 'upvote'}, user=self.voter)
        self.assertError(response, 404, "Content not found")

    def test_vote_comment(self):
        comment = Comment.objects.create(author=self.author, content=self.content, body="Nice")
        response = self.post(f'/content/comments/{comment.id}/vote', {'voteType': 'downvote'}, user=self.voter)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['downvotes'], 1)

    def test_vote_on_missing_comment(self):
        response = self.post('/content/comments/9999/vote', {'voteType': 'upvote'}, user=self.voter)
        self.assertError(response, 404, "Comment not found")
