"""
Canonical ordering for unordered user pairs.

Matches and event matches are stored once per unordered pair as
``(user_a_id, user_b_id)`` with ``user_a_id < user_b_id``. Every write path
goes through :func:`canonical_pair` before touching the database.
"""

from typing import NamedTuple
from uuid import UUID


class MatchKey(NamedTuple):
    user_a_id: UUID
    user_b_id: UUID

    def contains(self, user_id: UUID) -> bool:
        return user_id == self.user_a_id or user_id == self.user_b_id


def canonical_pair(first: UUID, second: UUID) -> MatchKey:
    """
    Normalise two user ids into the stored (low, high) ordering.

    Args:
        first: One user id
        second: The other user id

    Returns:
        MatchKey with ``user_a_id < user_b_id``

    Raises:
        ValueError: If both ids are the same user

    Example:
        key = canonical_pair(liker_id, liked_id)
        match = await match_repo.get_by_pair(db, key)
    """
    if first == second:
        raise ValueError("A pair needs two distinct users")
    if first < second:
        return MatchKey(first, second)
    return MatchKey(second, first)
