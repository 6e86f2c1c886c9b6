"""
Wiring for the club services, stored on the Flask app under ``extensions['carmeet']``
"""
from flask import current_app

from CarMeet.services.cache_invalidation import CacheInvalidator
from CarMeet.services.club_governance import ClubGovernanceService
from CarMeet.services.club_inbox import ClubInboxService
from CarMeet.services.club_likes import ClubLikesAggregator
from CarMeet.services.club_repository import ClubRepository

EXTENSION_KEY = 'carmeet'


class ClubServices:

    def __init__(self, supabase_client, cache_service=None, view_ttl_seconds=300):
        self.repository = ClubRepository(supabase_client)
        self.invalidator = CacheInvalidator(cache_service)
        self.likes = ClubLikesAggregator(self.repository, self.invalidator)
        self.governance = ClubGovernanceService(
            self.repository, self.likes, self.invalidator, view_ttl_seconds=view_ttl_seconds
        )
        self.inbox = ClubInboxService(
            self.repository, self.governance, self.invalidator, view_ttl_seconds=view_ttl_seconds
        )


def get_services() -> ClubServices:
    return current_app.extensions[EXTENSION_KEY]
