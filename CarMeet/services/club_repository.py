"""
Supabase-backed access to the clubs, club_members, cars, users and messages tables
"""
import logging
from datetime import datetime, timezone

from CarMeet.services.errors import StoreError

logger = logging.getLogger(__name__)

# Membership roles, lowest to highest
ROLE_MEMBER = 'member'
ROLE_CO_LEADER = 'co-leader'
ROLE_LEADER = 'leader'

# Club types
CLUB_OPEN = 'open'
CLUB_INVITE = 'invite'
CLUB_CLOSED = 'closed'
CLUB_TYPES = (CLUB_OPEN, CLUB_INVITE, CLUB_CLOSED)

# Message types
MESSAGE_GENERAL = 'general'
MESSAGE_JOIN_REQUEST = 'club_join_request'
MESSAGE_INVITATION = 'club_invitation'
MESSAGE_ANNOUNCEMENT = 'club_announcement'


def utcnow_iso():
    return datetime.now(timezone.utc).isoformat()


class ClubRepository:
    """Thin wrapper over a Supabase client; every failure surfaces as StoreError"""

    def __init__(self, client):
        self.client = client

    def _execute(self, query, description):
        try:
            return query.execute()
        except Exception as e:
            logger.error(f"Store error while trying to {description}: {e}")
            raise StoreError(f'Failed to {description}') from e

    def _first(self, query, description):
        result = self._execute(query.limit(1), description)
        return result.data[0] if result.data else None

    # ------------------------------------------------------------------
    # clubs
    # ------------------------------------------------------------------

    def get_club(self, club_id):
        return self._first(
            self.client.table('clubs').select('*').eq('id', club_id),
            'load club'
        )

    def list_club_ids(self):
        result = self._execute(self.client.table('clubs').select('id'), 'list clubs')
        return [club['id'] for club in result.data or []]

    def list_clubs_by_likes(self, limit=50):
        result = self._execute(
            self.client.table('clubs')
                .select('id, name, club_type, location, banner_image_url, leader_id, total_likes')
                .order('total_likes', desc=True)
                .limit(limit),
            'load club leaderboard'
        )
        return result.data or []

    def list_clubs_by_ids(self, club_ids):
        if not club_ids:
            return []
        result = self._execute(
            self.client.table('clubs').select('*').in_('id', list(club_ids)),
            'load clubs'
        )
        return result.data or []

    def list_clubs_led_by(self, user_id):
        result = self._execute(
            self.client.table('clubs')
                .select('id, name, description, banner_image_url, club_type, location, total_likes, created_at')
                .eq('leader_id', user_id)
                .order('created_at', desc=True),
            'load led clubs'
        )
        return result.data or []

    def insert_club(self, club_data):
        now = utcnow_iso()
        row = dict(club_data, total_likes=0, created_at=now, updated_at=now)
        result = self._execute(self.client.table('clubs').insert(row), 'create club')
        if not result.data:
            raise StoreError('Failed to create club')
        return result.data[0]

    def delete_club(self, club_id):
        result = self._execute(self.client.table('clubs').delete().eq('id', club_id), 'delete club')
        return bool(result.data)

    def update_club_total_likes(self, club_id, total_likes):
        self._execute(
            self.client.table('clubs')
                .update({'total_likes': total_likes, 'updated_at': utcnow_iso()})
                .eq('id', club_id),
            'update club total likes'
        )

    def set_club_leader(self, club_id, new_leader_id, expected_leader_id):
        """Compare-and-swap the club leader; False when the leader changed underneath us"""
        result = self._execute(
            self.client.table('clubs')
                .update({'leader_id': new_leader_id, 'updated_at': utcnow_iso()})
                .eq('id', club_id)
                .eq('leader_id', expected_leader_id),
            'update club leader'
        )
        return bool(result.data)

    # ------------------------------------------------------------------
    # club_members
    # ------------------------------------------------------------------

    def get_membership(self, club_id, user_id):
        return self._first(
            self.client.table('club_members').select('*').eq('club_id', club_id).eq('user_id', user_id),
            'load membership'
        )

    def list_members(self, club_id):
        result = self._execute(
            self.client.table('club_members').select('*').eq('club_id', club_id),
            'load club members'
        )
        return result.data or []

    def list_memberships_for_user(self, user_id):
        """Every membership row of a user, most recently joined first"""
        result = self._execute(
            self.client.table('club_members').select('*').eq('user_id', user_id).order('joined_at', desc=True),
            'load user memberships'
        )
        return result.data or []

    def count_members_by_club(self, club_ids):
        if not club_ids:
            return {}
        result = self._execute(
            self.client.table('club_members').select('club_id').in_('club_id', list(club_ids)),
            'count club members'
        )
        counts = {}
        for row in result.data or []:
            counts[row['club_id']] = counts.get(row['club_id'], 0) + 1
        return counts

    def add_membership(self, club_id, user_id, role=ROLE_MEMBER):
        now = utcnow_iso()
        result = self._execute(
            self.client.table('club_members').insert({
                'club_id': club_id,
                'user_id': user_id,
                'role': role,
                'joined_at': now,
                'updated_at': now,
            }),
            'add club member'
        )
        if not result.data:
            raise StoreError('Failed to add club member')
        return result.data[0]

    def remove_membership(self, club_id, user_id):
        result = self._execute(
            self.client.table('club_members').delete().eq('club_id', club_id).eq('user_id', user_id),
            'remove club member'
        )
        return bool(result.data)

    def delete_memberships_for_club(self, club_id):
        self._execute(
            self.client.table('club_members').delete().eq('club_id', club_id),
            'delete club memberships'
        )

    def update_role(self, club_id, user_id, new_role, expected_role):
        """Compare-and-swap a member's role; False when the role was not the expected one"""
        result = self._execute(
            self.client.table('club_members')
                .update({'role': new_role, 'updated_at': utcnow_iso()})
                .eq('club_id', club_id)
                .eq('user_id', user_id)
                .eq('role', expected_role),
            'update member role'
        )
        return bool(result.data)

    # ------------------------------------------------------------------
    # cars / users
    # ------------------------------------------------------------------

    def get_car_likes_for_owners(self, owner_ids):
        if not owner_ids:
            return []
        result = self._execute(
            self.client.table('cars').select('owner_id, total_likes').in_('owner_id', list(owner_ids)),
            'load member car likes'
        )
        return [car.get('total_likes') or 0 for car in result.data or []]

    def get_user(self, user_id):
        return self._first(
            self.client.table('users').select('id, username, display_name, last_seen_inbox').eq('id', user_id),
            'load user'
        )

    def touch_last_seen_inbox(self, user_id, when=None):
        self._execute(
            self.client.table('users').update({'last_seen_inbox': when or utcnow_iso()}).eq('id', user_id),
            'update last seen inbox'
        )

    # ------------------------------------------------------------------
    # messages
    # ------------------------------------------------------------------

    def insert_message(self, message):
        result = self._execute(
            self.client.table('messages').insert(dict(message, created_at=utcnow_iso())),
            'send message'
        )
        if not result.data:
            raise StoreError('Failed to send message')
        return result.data[0]

    def insert_messages(self, messages):
        now = utcnow_iso()
        result = self._execute(
            self.client.table('messages').insert([dict(message, created_at=now) for message in messages]),
            'send messages'
        )
        return result.data or []

    def get_message(self, message_id):
        return self._first(
            self.client.table('messages').select('*').eq('id', message_id),
            'load message'
        )

    def delete_message(self, message_id, receiver_id=None):
        query = self.client.table('messages').delete().eq('id', message_id)
        if receiver_id is not None:
            query = query.eq('receiver_id', receiver_id)
        result = self._execute(query, 'delete message')
        return bool(result.data)

    def delete_messages_for_club(self, club_id):
        self._execute(
            self.client.table('messages').delete().eq('club_id', club_id),
            'delete club messages'
        )

    def list_messages_for_receiver(self, receiver_id):
        result = self._execute(
            self.client.table('messages').select('*').eq('receiver_id', receiver_id).order('created_at', desc=True),
            'load inbox messages'
        )
        return result.data or []

    def list_messages_of_type(self, receiver_id, message_type):
        result = self._execute(
            self.client.table('messages').select('*').eq('receiver_id', receiver_id).eq('message_type', message_type),
            'load messages'
        )
        return result.data or []

    def count_messages_since(self, receiver_id, since):
        result = self._execute(
            self.client.table('messages')
                .select('id', count='exact')
                .eq('receiver_id', receiver_id)
                .gt('created_at', since),
            'count unread messages'
        )
        if result.count is not None:
            return result.count
        return len(result.data or [])
