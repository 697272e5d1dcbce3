"""
Up/down vote toggling for Content and Comment.

Votes are toggles: repeating the same vote removes it, voting the other way
moves the user between sets, and ``remove`` clears both. The target row is
locked for the duration of the change and the counters are rewritten from
the voter sets, so concurrent requests from the same user are serialized
and the counters never drift from the sets.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction

from .errors import BadRequest, NotFound

logger = logging.getLogger(__name__)

UPVOTE = 'upvote'
DOWNVOTE = 'downvote'
REMOVE = 'remove'
VOTE_TYPES = (UPVOTE, DOWNVOTE, REMOVE)


@dataclass
class VoteResult:
    upvotes: int
    downvotes: int
    user_vote: Optional[str]

    def as_dict(self):
        return {
            "upvotes": self.upvotes,
            "downvotes": self.downvotes,
            "userVote": self.user_vote,
        }


def cast_vote(model, pk, user, vote_type, not_found_message="Content not found"):
    """
    Apply ``vote_type`` from ``user`` to ``model`` row ``pk``.

    Args:
        model: Content or Comment (any VoteTrackedModel subclass)
        pk: Primary key of the voted item
        user: Voting user
        vote_type: One of 'upvote', 'downvote', 'remove'

    Returns:
        VoteResult with the refreshed counters and the user's resulting vote

    Raises:
        BadRequest: Unknown vote type
        NotFound: No such row
    """
    if vote_type not in VOTE_TYPES:
        raise BadRequest("Invalid vote type")

    with transaction.atomic():
        item = model.objects.select_for_update().filter(pk=pk).first()
        if item is None:
            raise NotFound(not_found_message)

        has_upvoted = item.upvoted_by.filter(pk=user.pk).exists()
        has_downvoted = item.downvoted_by.filter(pk=user.pk).exists()

        if vote_type == UPVOTE:
            if has_upvoted:
                item.upvoted_by.remove(user)
            else:
                item.upvoted_by.add(user)
                if has_downvoted:
                    item.downvoted_by.remove(user)
        elif vote_type == DOWNVOTE:
            if has_downvoted:
                item.downvoted_by.remove(user)
            else:
                item.downvoted_by.add(user)
                if has_upvoted:
                    item.upvoted_by.remove(user)
        else:
            if has_upvoted:
                item.upvoted_by.remove(user)
            if has_downvoted:
                item.downvoted_by.remove(user)

        item.upvotes = item.upvoted_by.count()
        item.downvotes = item.downvoted_by.count()
        item.save(update_fields=['upvotes', 'downvotes'])

    user_vote = None
    if vote_type == UPVOTE and not has_upvoted:
        user_vote = UPVOTE
    elif vote_type == DOWNVOTE and not has_downvoted:
        user_vote = DOWNVOTE

    logger.info(f"{model.__name__} {pk}: {user.username} {vote_type} -> {item.upvotes}/{item.downvotes}")
    return VoteResult(item.upvotes, item.downvotes, user_vote)
