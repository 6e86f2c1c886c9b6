"""
Club governance: membership and leadership transitions.

Roles move member -> co-leader -> leader. Only the current leader (``clubs.leader_id``)
may promote, demote, kick, transfer leadership or delete the club; everyone else
may only join or leave on their own behalf. Every operation takes the already
verified acting user id and returns a result dict instead of raising.
"""
import logging

from CarMeet.services.cache_invalidation import InvalidationHints
from CarMeet.services.club_repository import (
    ROLE_MEMBER, ROLE_CO_LEADER, ROLE_LEADER,
    CLUB_OPEN, CLUB_INVITE, CLUB_CLOSED, CLUB_TYPES,
)
from CarMeet.services.errors import (
    club_operation, require,
    ClubError, StoreError, StaleStateError,
    NotAuthenticatedError, NotAuthorizedError, NotAMemberError, ActorIsTargetError,
    ClubNotFoundError, ClubNotOpenError, AlreadyMemberError, LeaderCannotLeaveError,
    TargetNotMemberError, TargetHasRoleError, TargetIsLeaderError,
    InvalidActionError, InvalidInputError,
)

logger = logging.getLogger(__name__)

MEMBER_ACTIONS = ('promote', 'demote', 'kick', 'promote_to_leader')

CLUB_TYPE_MESSAGES = {
    CLUB_INVITE: 'This is an invite-only club. Please request to join or wait for an invitation.',
    CLUB_CLOSED: 'This club is currently closed and not accepting new members.',
}


class ClubGovernanceService:

    def __init__(self, repository, likes, invalidator, view_ttl_seconds=300):
        self.repository = repository
        self.likes = likes
        self.invalidator = invalidator
        self.view_ttl_seconds = view_ttl_seconds

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_actor(actor_id):
        if not actor_id:
            raise NotAuthenticatedError()

    def _load_club(self, club_id):
        club = self.repository.get_club(club_id)
        if not club:
            raise ClubNotFoundError()
        return club

    @staticmethod
    def _require_leader(club, actor_id, message=None):
        if club.get('leader_id') != actor_id:
            raise NotAuthorizedError(message)

    def _after_membership_change(self, club_id, hints, result):
        """Recompute likes and invalidate views; a likes failure is a soft error"""
        if not self.likes.update_club_total_likes(club_id):
            result['warning'] = 'Club total likes could not be recalculated'
        self.invalidator.publish(hints)
        return result

    def _delete_club_cascade(self, club_id):
        """Messages, then memberships, then the club row. Not rolled back on failure."""
        steps = (
            ('delete club messages', self.repository.delete_messages_for_club),
            ('delete club memberships', self.repository.delete_memberships_for_club),
            ('delete club', self.repository.delete_club),
        )
        completed = []
        for description, step in steps:
            try:
                step(club_id)
            except StoreError:
                logger.error(
                    f"Club {club_id} deletion stopped at '{description}'; "
                    f"already applied: {completed or 'nothing'}"
                )
                raise
            completed.append(description)
        logger.info(f"Club {club_id} deleted with its memberships and messages")

    def _compensate(self, club_id, undo_steps):
        for description, undo in reversed(undo_steps):
            try:
                if not undo():
                    logger.error(f"Compensation '{description}' for club {club_id} matched no rows")
            except StoreError as e:
                logger.error(f"Compensation '{description}' for club {club_id} failed: {e.message}")

    def add_member(self, club_id, user_id):
        """
        Insert a plain membership without the open-club check. Used by
        join-request approval and invitation acceptance. Raises ClubError.
        """
        club = self._load_club(club_id)
        return self._add_member(club, user_id)

    def _add_member(self, club, user_id):
        club_id = club['id']
        if self.repository.get_membership(club_id, user_id):
            raise AlreadyMemberError()

        try:
            self.repository.add_membership(club_id, user_id, ROLE_MEMBER)
        except StoreError as e:
            # a concurrent join won the unique (club_id, user_id) constraint
            if self.repository.get_membership(club_id, user_id):
                raise AlreadyMemberError() from e
            raise
        logger.info(f"User {user_id} joined club {club_id}")

        result = {'success': True, 'message': f"Successfully joined {club.get('name', 'the club')}!"}
        hints = InvalidationHints().membership_changed(club_id, user_id)
        return self._after_membership_change(club_id, hints, result)

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    @club_operation('create_club')
    def create_club(self, actor_id, name, description='', location=None,
                    club_type=CLUB_OPEN, banner_image_url=None):
        self._require_actor(actor_id)
        name = (name or '').strip()
        require(name, message='Club name is required')
        if club_type not in CLUB_TYPES:
            raise InvalidInputError(f"Club type must be one of: {', '.join(CLUB_TYPES)}")

        club = self.repository.insert_club({
            'name': name,
            'description': (description or '').strip(),
            'location': location,
            'club_type': club_type,
            'banner_image_url': banner_image_url or None,
            'leader_id': actor_id,
        })
        club_id = club['id']

        try:
            self.repository.add_membership(club_id, actor_id, ROLE_LEADER)
        except StoreError:
            logger.error(f"Could not add leader {actor_id} to new club {club_id}; removing the club")
            self._compensate(club_id, [('remove club without leader', lambda: self.repository.delete_club(club_id))])
            raise

        logger.info(f"Club created: {club_id} by user {actor_id}")
        self.invalidator.publish(InvalidationHints().membership_changed(club_id, actor_id))
        return {'success': True, 'message': 'Club created successfully', 'club': club}

    @club_operation('join_club')
    def join_club(self, actor_id, club_id, user_id):
        self._require_actor(actor_id)
        require(club_id, user_id, message='Club ID and user ID are required')
        if user_id != actor_id:
            raise NotAuthorizedError('You can only join yourself to clubs')

        club = self._load_club(club_id)
        if club.get('club_type') != CLUB_OPEN:
            raise ClubNotOpenError(CLUB_TYPE_MESSAGES.get(club.get('club_type')))

        return self._add_member(club, user_id)

    @club_operation('leave_club')
    def leave_club(self, actor_id, club_id, user_id):
        self._require_actor(actor_id)
        require(club_id, user_id, message='Club ID and user ID are required')
        if user_id != actor_id:
            raise NotAuthorizedError('You can only remove yourself from clubs')

        club = self._load_club(club_id)
        membership = self.repository.get_membership(club_id, user_id)
        if not membership:
            raise NotAMemberError()

        if membership['role'] == ROLE_LEADER or club.get('leader_id') == user_id:
            others = [m for m in self.repository.list_members(club_id) if m['user_id'] != user_id]
            if others:
                raise LeaderCannotLeaveError()

            self._delete_club_cascade(club_id)
            self.invalidator.publish(
                InvalidationHints().membership_changed(club_id, user_id).inbox().user_inbox(user_id)
            )
            return {
                'success': True,
                'deleted': True,
                'message': 'Left club and club was deleted (you were the only member)',
            }

        if not self.repository.remove_membership(club_id, user_id):
            raise NotAMemberError()

        logger.info(f"User {user_id} left club {club_id}")
        result = {'success': True, 'deleted': False, 'message': f"You have left {club.get('name', 'the club')}"}
        hints = InvalidationHints().membership_changed(club_id, user_id)
        return self._after_membership_change(club_id, hints, result)

    @club_operation('manage_member')
    def manage_member(self, actor_id, club_id, target_user_id, action):
        self._require_actor(actor_id)
        require(club_id, target_user_id, action)
        if action not in MEMBER_ACTIONS:
            raise InvalidActionError(f"Invalid action. Must be one of: {', '.join(MEMBER_ACTIONS)}")

        club = self._load_club(club_id)
        self._require_leader(club, actor_id, 'Unauthorized - Only club leaders can manage members')
        if target_user_id == actor_id:
            raise ActorIsTargetError()

        membership = self.repository.get_membership(club_id, target_user_id)
        if not membership:
            raise TargetNotMemberError()
        role = membership['role']
        if role == ROLE_LEADER:
            raise TargetIsLeaderError('Cannot manage other leaders')

        hints = InvalidationHints().membership_changed(club_id, target_user_id, actor_id)

        if action == 'promote_to_leader':
            result = self.transfer_leadership(actor_id, club_id, target_user_id)
            if result.get('success'):
                result['action'] = action
            return result

        if action == 'kick':
            if not self.repository.remove_membership(club_id, target_user_id):
                raise TargetNotMemberError()
            logger.info(f"User {target_user_id} removed from club {club_id} by {actor_id}")
            result = {'success': True, 'action': action, 'message': 'Member removed from club'}
            return self._after_membership_change(club_id, hints, result)

        if action == 'promote':
            if role != ROLE_MEMBER:
                raise TargetHasRoleError('Can only promote members to co-leaders')
            expected_role, new_role, message = ROLE_MEMBER, ROLE_CO_LEADER, 'Member promoted to co-leader'
        else:
            if role != ROLE_CO_LEADER:
                raise TargetHasRoleError('Can only demote co-leaders to members')
            expected_role, new_role, message = ROLE_CO_LEADER, ROLE_MEMBER, 'Co-leader demoted to member'

        if not self.repository.update_role(club_id, target_user_id, new_role, expected_role=expected_role):
            raise StaleStateError()

        logger.info(f"User {target_user_id} in club {club_id} is now {new_role} ({action} by {actor_id})")
        self.invalidator.publish(hints)
        return {'success': True, 'action': action, 'message': message}

    @club_operation('transfer_leadership')
    def transfer_leadership(self, actor_id, club_id, new_leader_id):
        self._require_actor(actor_id)
        require(club_id, new_leader_id, message='Club ID and new leader ID are required')

        club = self._load_club(club_id)
        self._require_leader(club, actor_id, 'Only the current leader can transfer leadership')
        if new_leader_id == actor_id:
            raise ActorIsTargetError('You are already the club leader')

        target = self.repository.get_membership(club_id, new_leader_id)
        if not target:
            raise TargetNotMemberError('Target user is not a member of this club')
        if target['role'] != ROLE_CO_LEADER:
            raise TargetHasRoleError('Leadership can only be transferred to a co-leader')

        repository = self.repository
        applied = []
        try:
            if not repository.set_club_leader(club_id, new_leader_id, expected_leader_id=actor_id):
                raise StaleStateError()
            applied.append((
                'restore club leader',
                lambda: repository.set_club_leader(club_id, actor_id, expected_leader_id=new_leader_id),
            ))

            if not repository.update_role(club_id, new_leader_id, ROLE_LEADER, expected_role=ROLE_CO_LEADER):
                raise StaleStateError()
            applied.append((
                'restore new leader role',
                lambda: repository.update_role(club_id, new_leader_id, ROLE_CO_LEADER, expected_role=ROLE_LEADER),
            ))

            if not repository.update_role(club_id, actor_id, ROLE_CO_LEADER, expected_role=ROLE_LEADER):
                raise StaleStateError()
        except ClubError as e:
            logger.error(f"Leadership transfer in club {club_id} failed ({e.code}); undoing {len(applied)} step(s)")
            self._compensate(club_id, applied)
            raise

        logger.info(f"Leadership of club {club_id} transferred from {actor_id} to {new_leader_id}")
        self.invalidator.publish(InvalidationHints().membership_changed(club_id, new_leader_id, actor_id))
        return {'success': True, 'message': 'Leadership transferred successfully'}

    @club_operation('delete_club')
    def delete_club(self, actor_id, club_id):
        self._require_actor(actor_id)
        require(club_id, message='Club ID is required')

        club = self._load_club(club_id)
        self._require_leader(club, actor_id, 'Only the club leader can delete the club')

        member_ids = [member['user_id'] for member in self.repository.list_members(club_id)]
        self._delete_club_cascade(club_id)

        hints = InvalidationHints().membership_changed(club_id, actor_id, *member_ids).inbox()
        for member_id in member_ids:
            hints.user_inbox(member_id)
        self.invalidator.publish(hints)
        return {'success': True, 'message': 'Club deleted successfully'}

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    @club_operation('get_club')
    def get_club(self, viewer_id, club_id):
        self._require_actor(viewer_id)
        tag = f'club-{club_id}'

        detail = self.invalidator.get_view(tag, 'detail')
        if detail is None:
            club = self._load_club(club_id)
            members = self.repository.list_members(club_id)
            detail = dict(club, members=members, member_count=len(members))
            self.invalidator.store_view(tag, 'detail', detail, self.view_ttl_seconds)

        user_role = next((m['role'] for m in detail['members'] if m['user_id'] == viewer_id), None)
        return {'success': True, 'club': dict(detail, user_role=user_role)}

    @club_operation('list_user_clubs')
    def list_user_clubs(self, actor_id):
        """The caller's clubs with role, join time and member count, newest membership first"""
        self._require_actor(actor_id)
        tag = f'user-{actor_id}-clubs'

        clubs = self.invalidator.get_view(tag, 'mine')
        if clubs is None:
            memberships = self.repository.list_memberships_for_user(actor_id)
            club_ids = [m['club_id'] for m in memberships]
            clubs_by_id = {club['id']: club for club in self.repository.list_clubs_by_ids(club_ids)}
            member_counts = self.repository.count_members_by_club(club_ids)

            clubs = []
            for membership in memberships:
                club = clubs_by_id.get(membership['club_id'])
                if not club:
                    logger.warning(f"Membership of {actor_id} points at missing club {membership['club_id']}")
                    continue
                clubs.append({
                    'club': dict(club, is_invite_only=club.get('club_type') == CLUB_INVITE),
                    'role': membership['role'],
                    'joined_at': membership.get('joined_at'),
                    'member_count': member_counts.get(club['id'], 0),
                })
            self.invalidator.store_view(tag, 'mine', clubs, self.view_ttl_seconds)

        return {'success': True, 'clubs': clubs, 'total': len(clubs)}

    @club_operation('list_led_clubs')
    def list_led_clubs(self, actor_id):
        """Clubs the caller leads, for picking a club to invite someone into"""
        self._require_actor(actor_id)
        tag = f'user-{actor_id}-clubs'

        clubs = self.invalidator.get_view(tag, 'led')
        if clubs is None:
            led = self.repository.list_clubs_led_by(actor_id)
            member_counts = self.repository.count_members_by_club([club['id'] for club in led])
            clubs = [dict(club, member_count=member_counts.get(club['id'], 0)) for club in led]
            self.invalidator.store_view(tag, 'led', clubs, self.view_ttl_seconds)

        return {'success': True, 'clubs': clubs}

    @club_operation('get_club_leaderboard')
    def get_club_leaderboard(self, limit=50):
        name = f'clubs-{limit}'
        clubs = self.invalidator.get_view('leaderboards', name)
        if clubs is None:
            clubs = self.repository.list_clubs_by_likes(limit)
            self.invalidator.store_view('leaderboards', name, clubs, self.view_ttl_seconds)
        return {'success': True, 'clubs': clubs}
