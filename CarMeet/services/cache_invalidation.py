"""
Invalidation hints emitted after club and inbox mutations, and the
Redis-backed notifier that drops the cached views they name.

Cached views live under ``view:<tag>:<name>``; publishing a hint for a tag
removes every view stored under it.
"""
import logging

from CarMeet.services.redis_cache_service import get_cache_service

logger = logging.getLogger(__name__)

VIEW_PREFIX = 'view'


def view_key(tag, name):
    return f"{VIEW_PREFIX}:{tag}:{name}"


class InvalidationHints:
    """Ordered, de-duplicated set of cache tags touched by a mutation"""

    def __init__(self, *tags):
        self._tags = []
        for tag in tags:
            self.add(tag)

    def add(self, tag):
        if tag and tag not in self._tags:
            self._tags.append(tag)
        return self

    def club(self, club_id):
        return self.add(f'club-{club_id}')

    def club_members(self, club_id):
        return self.add(f'club-{club_id}-members')

    def clubs(self):
        return self.add('clubs')

    def leaderboards(self):
        return self.add('leaderboards')

    def user(self, user_id):
        return self.add(f'user-{user_id}')

    def user_clubs(self, user_id):
        return self.add(f'user-{user_id}-clubs')

    def inbox(self):
        return self.add('inbox')

    def user_inbox(self, user_id):
        self.add(f'user-{user_id}-inbox')
        return self.add(f'user-{user_id}-unread')

    def membership_changed(self, club_id, *user_ids):
        """Tags every membership or likes change must refresh"""
        self.club(club_id).club_members(club_id).clubs().leaderboards()
        for user_id in user_ids:
            self.user(user_id).user_clubs(user_id)
        return self

    @property
    def tags(self):
        return list(self._tags)

    def __iter__(self):
        return iter(self._tags)

    def __len__(self):
        return len(self._tags)

    def __contains__(self, tag):
        return tag in self._tags

    def __repr__(self):
        return f"InvalidationHints({', '.join(self._tags)})"


class CacheInvalidator:
    """Drops cached views named by invalidation hints"""

    def __init__(self, cache_service=None):
        self._cache_service = cache_service

    @property
    def cache(self):
        return self._cache_service or get_cache_service()

    def publish(self, hints):
        """Invalidate every tag; returns the number of cache keys removed"""
        removed = 0
        for tag in hints:
            removed += self.cache.delete_pattern(view_key(tag, '*'))
        logger.debug(f"Published {len(hints)} invalidation hints ({removed} cached views removed): {hints.tags}")
        return removed

    def get_view(self, tag, name):
        return self.cache.get(view_key(tag, name))

    def store_view(self, tag, name, value, ttl_seconds):
        return self.cache.set(view_key(tag, name), value, expire_seconds=ttl_seconds)
