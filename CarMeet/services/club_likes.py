"""
Keeps clubs.total_likes equal to the sum of the current members' car likes
"""
import logging

from CarMeet.services.cache_invalidation import InvalidationHints
from CarMeet.services.errors import StoreError, club_operation, NotAuthenticatedError

logger = logging.getLogger(__name__)


class ClubLikesAggregator:
    """Full recompute of a club's aggregate likes; cheap because clubs are small"""

    def __init__(self, repository, invalidator):
        self.repository = repository
        self.invalidator = invalidator

    def compute_total_likes(self, club_id):
        members = self.repository.list_members(club_id)
        if not members:
            return 0, 0
        member_ids = [member['user_id'] for member in members]
        car_likes = self.repository.get_car_likes_for_owners(member_ids)
        logger.debug(f"Club {club_id}: {len(car_likes)} cars across {len(members)} members")
        return sum(car_likes), len(members)

    def update_club_total_likes(self, club_id):
        """Recompute and store the total; False when the store could not be read or written"""
        try:
            total_likes, member_count = self.compute_total_likes(club_id)
            self.repository.update_club_total_likes(club_id, total_likes)
        except StoreError as e:
            logger.error(f"Error recalculating total likes for club {club_id}: {e.message}")
            return False

        logger.info(f"Club {club_id} total_likes set to {total_likes} ({member_count} members)")
        self.invalidator.publish(InvalidationHints().club(club_id).clubs().leaderboards())
        return True

    @club_operation('refresh_all_club_total_likes')
    def refresh_all_club_total_likes(self, actor_id):
        if not actor_id:
            raise NotAuthenticatedError()

        club_ids = self.repository.list_club_ids()
        if not club_ids:
            return {'success': True, 'message': 'No clubs to update'}

        updated_count = sum(1 for club_id in club_ids if self.update_club_total_likes(club_id))
        logger.info(f"Refreshed total likes for {updated_count}/{len(club_ids)} clubs")
        return {
            'success': True,
            'message': f'Updated {updated_count} out of {len(club_ids)} clubs',
            'updated': updated_count,
            'total': len(club_ids),
        }
