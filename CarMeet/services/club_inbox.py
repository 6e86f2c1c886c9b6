"""
Club join requests, invitations and announcements carried over the inbox.

Requests and invitations are ordinary messages tagged with a
``club_join_request`` / ``club_invitation`` type and a metadata record
(see ``CarMeet.utils.message_metadata``). Acting on one consumes it: the
message is deleted once approved, rejected, accepted or declined.
"""
import logging

from CarMeet.services.cache_invalidation import InvalidationHints
from CarMeet.services.club_repository import (
    ROLE_LEADER, ROLE_CO_LEADER, CLUB_OPEN, CLUB_CLOSED, MESSAGE_GENERAL,
    MESSAGE_JOIN_REQUEST, MESSAGE_INVITATION, MESSAGE_ANNOUNCEMENT,
)
from CarMeet.services.errors import (
    club_operation, require,
    StoreError, NotAuthenticatedError, NotAuthorizedError,
    ClubNotFoundError, MessageNotFoundError, UserNotFoundError,
    ClubNotOpenError, AlreadyMemberError, InvitationPendingError, InvalidActionError,
)
from CarMeet.utils.message_metadata import (
    ClubJoinRequestMetadata, ClubInvitationMetadata,
    JOIN_REQUEST_MARKER, INVITATION_MARKER,
    encode_message_body, decode_message, metadata_to_column, strip_metadata,
)

logger = logging.getLogger(__name__)

JOIN_REQUEST_ACTIONS = ('approve', 'reject')
INVITATION_ACTIONS = ('accept', 'reject')

DEFAULT_JOIN_REQUEST_TEXT = 'I would like to join your club.'
EPOCH = '1970-01-01T00:00:00+00:00'

_METADATA_KEYS = {
    JOIN_REQUEST_MARKER: 'club_join_request',
    INVITATION_MARKER: 'club_invitation',
}


def _display_name(user, fallback='A member'):
    if not user:
        return fallback
    return user.get('display_name') or user.get('username') or fallback


class ClubInboxService:

    def __init__(self, repository, governance, invalidator, view_ttl_seconds=300):
        self.repository = repository
        self.governance = governance
        self.invalidator = invalidator
        self.view_ttl_seconds = view_ttl_seconds

    @staticmethod
    def _require_actor(actor_id):
        if not actor_id:
            raise NotAuthenticatedError()

    def _load_club(self, club_id):
        club = self.repository.get_club(club_id)
        if not club:
            raise ClubNotFoundError()
        return club

    def _notify(self, sender_id, receiver_id, subject, text, club_id):
        """Send a plain club announcement; failure is logged, not surfaced"""
        try:
            self.repository.insert_message({
                'sender_id': sender_id,
                'receiver_id': receiver_id,
                'subject': subject,
                'message': text,
                'message_type': MESSAGE_ANNOUNCEMENT,
                'club_id': club_id,
            })
            return True
        except StoreError as e:
            logger.error(f"Failed to notify user {receiver_id} about club {club_id}: {e.message}")
            return False

    def _consume(self, message_id):
        """Processed requests and invitations are deleted, not archived"""
        try:
            if not self.repository.delete_message(message_id):
                logger.warning(f"Processed message {message_id} was already gone")
        except StoreError as e:
            logger.error(f"Error deleting processed message {message_id}: {e.message}")

    @staticmethod
    def _invites_to(message, club_id):
        metadata = decode_message(message)
        if metadata is not None:
            return metadata.club_id == club_id
        return message.get('club_id') == club_id or club_id in (message.get('message') or '')

    # ------------------------------------------------------------------
    # join requests
    # ------------------------------------------------------------------

    @club_operation('send_club_join_request')
    def send_club_join_request(self, actor_id, club_id, message=None):
        self._require_actor(actor_id)
        require(club_id, message='Club ID is required')

        club = self._load_club(club_id)
        if self.repository.get_membership(club_id, actor_id):
            raise AlreadyMemberError('You are already a member of this club')

        if club.get('club_type') == CLUB_CLOSED:
            raise ClubNotOpenError('This club is closed and not accepting new members')
        if club.get('club_type') == CLUB_OPEN:
            result = self.governance.add_member(club_id, actor_id)
            return dict(result, direct_join=True, message=f"Successfully joined {club['name']}!")

        requester = self.repository.get_user(actor_id)
        if not requester:
            raise UserNotFoundError('Failed to load user profile')
        username = requester.get('username') or _display_name(requester)

        metadata = ClubJoinRequestMetadata(
            club_id=club_id,
            club_name=club['name'],
            user_id=actor_id,
            username=username,
        )
        self.repository.insert_message({
            'sender_id': actor_id,
            'receiver_id': club['leader_id'],
            'subject': f'Join Request from {username}',
            'message': encode_message_body(message or DEFAULT_JOIN_REQUEST_TEXT, metadata),
            'message_type': MESSAGE_JOIN_REQUEST,
            'club_id': club_id,
            'metadata': metadata_to_column(metadata),
        })
        logger.info(f"Join request for club {club_id} sent by {actor_id} to leader {club['leader_id']}")

        self.invalidator.publish(InvalidationHints().inbox().user_inbox(club['leader_id']))
        return {'success': True, 'direct_join': False, 'message': f"Join request sent to {club['name']}!"}

    @club_operation('handle_join_request')
    def handle_join_request(self, actor_id, message_id, action, club_id, user_id):
        self._require_actor(actor_id)
        require(message_id, action, club_id, user_id)
        if action not in JOIN_REQUEST_ACTIONS:
            raise InvalidActionError('Invalid action. Must be approve or reject')

        club = self._load_club(club_id)
        # leader_id is re-read here so a request addressed to a former leader cannot be acted on
        if club.get('leader_id') != actor_id:
            raise NotAuthorizedError('You are not authorized to handle this request')

        request = self.repository.get_message(message_id)
        if (not request
                or request.get('receiver_id') != actor_id
                or request.get('message_type') != MESSAGE_JOIN_REQUEST
                or request.get('sender_id') != user_id):
            raise MessageNotFoundError('Join request not found')
        metadata = decode_message(request)
        if metadata is not None and metadata.club_id != club_id:
            raise MessageNotFoundError('Join request not found')

        club_name = club['name']
        result = {'success': True, 'action': action}

        if action == 'approve':
            joined = self.governance.add_member(club_id, user_id)
            if 'warning' in joined:
                result['warning'] = joined['warning']
            self._notify(
                actor_id, user_id,
                f'Welcome to {club_name}!',
                f'Congratulations! Your request to join {club_name} has been approved. Welcome to the club!',
                club_id,
            )
            result['message'] = 'Join request approved'
        else:
            self._notify(
                actor_id, user_id,
                f'{club_name} - Join Request Update',
                f'Thank you for your interest in {club_name}. '
                f'Unfortunately, we cannot accept your membership request at this time.',
                club_id,
            )
            result['message'] = 'Join request declined'

        self._consume(message_id)
        logger.info(f"Join request {message_id} for club {club_id} {action}d by {actor_id}")

        self.invalidator.publish(InvalidationHints().inbox().user_inbox(actor_id).user_inbox(user_id))
        return result

    # ------------------------------------------------------------------
    # invitations
    # ------------------------------------------------------------------

    @club_operation('send_club_invitation')
    def send_club_invitation(self, actor_id, target_user_id, club_id, message=None):
        self._require_actor(actor_id)
        require(target_user_id, club_id, message='Target user ID and club ID are required')

        club = self._load_club(club_id)
        membership = self.repository.get_membership(club_id, actor_id)
        if not membership or membership['role'] != ROLE_LEADER or club.get('leader_id') != actor_id:
            raise NotAuthorizedError('You are not authorized to send invitations for this club')

        target = self.repository.get_user(target_user_id)
        if not target:
            raise UserNotFoundError('Target user not found')
        if self.repository.get_membership(club_id, target_user_id):
            raise AlreadyMemberError('User is already a member of this club')

        pending = self.repository.list_messages_of_type(target_user_id, MESSAGE_INVITATION)
        if any(self._invites_to(invitation, club_id) for invitation in pending):
            raise InvitationPendingError()

        inviter = self.repository.get_user(actor_id)
        if not inviter:
            raise UserNotFoundError('Failed to load user profile')

        club_name = club['name']
        metadata = ClubInvitationMetadata(
            club_id=club_id,
            club_name=club_name,
            inviter_id=actor_id,
            inviter_username=inviter.get('username') or _display_name(inviter),
            target_user_id=target_user_id,
        )
        text = message or f"You've been invited to join {club_name}! We'd love to have you as a member."
        self.repository.insert_message({
            'sender_id': actor_id,
            'receiver_id': target_user_id,
            'subject': f'Invitation to join {club_name}',
            'message': encode_message_body(text, metadata),
            'message_type': MESSAGE_INVITATION,
            'club_id': club_id,
            'metadata': metadata_to_column(metadata),
        })
        logger.info(f"Club invitation for {club_id} sent from {actor_id} to {target_user_id}")

        self.invalidator.publish(InvalidationHints().inbox().user_inbox(target_user_id))
        return {'success': True, 'message': f"Invitation sent to {target.get('username') or 'user'}"}

    @club_operation('handle_club_invitation')
    def handle_club_invitation(self, actor_id, message_id, action, club_id, inviter_id):
        self._require_actor(actor_id)
        require(message_id, action, club_id, inviter_id,
                message='Missing required parameters: messageId, action, clubId, inviterId')
        if action not in INVITATION_ACTIONS:
            raise InvalidActionError('Invalid action. Must be accept or reject')

        invitation = self.repository.get_message(message_id)
        if (not invitation
                or invitation.get('receiver_id') != actor_id
                or invitation.get('message_type') != MESSAGE_INVITATION
                or invitation.get('sender_id') != inviter_id):
            raise MessageNotFoundError('Invitation not found')
        metadata = decode_message(invitation)
        if metadata is not None and metadata.club_id != club_id:
            raise MessageNotFoundError('Invitation not found')

        club = self._load_club(club_id)
        club_name = club['name']
        result = {'success': True, 'action': action, 'club_name': club_name}

        if action == 'accept':
            joined = self.governance.add_member(club_id, actor_id)
            if 'warning' in joined:
                result['warning'] = joined['warning']
            username = _display_name(self.repository.get_user(actor_id))
            self._notify(
                actor_id, inviter_id,
                f'{username} joined {club_name}',
                f'{username} has accepted your invitation and joined {club_name}.',
                club_id,
            )
            result['message'] = f'Successfully joined {club_name}!'
        else:
            # Declines are silent: the inviter is not told
            result['message'] = f'Invitation to {club_name} declined.'

        self._consume(message_id)
        logger.info(f"Club invitation {message_id} {action}ed by {actor_id}")

        self.invalidator.publish(InvalidationHints().inbox().user_inbox(actor_id).user_inbox(inviter_id))
        return result

    # ------------------------------------------------------------------
    # announcements
    # ------------------------------------------------------------------

    @club_operation('send_club_mail')
    def send_club_mail(self, actor_id, club_id, subject, message):
        self._require_actor(actor_id)
        require(club_id, subject, message, message='Club ID, subject, and message are required')

        club = self._load_club(club_id)
        membership = self.repository.get_membership(club_id, actor_id)
        if not membership or membership['role'] not in (ROLE_LEADER, ROLE_CO_LEADER):
            raise NotAuthorizedError('You are not authorized to send club mail')

        members = self.repository.list_members(club_id)
        self.repository.insert_messages([
            {
                'sender_id': actor_id,
                'receiver_id': member['user_id'],
                'subject': f"[{club['name']}] {subject}",
                'message': message,
                'message_type': MESSAGE_ANNOUNCEMENT,
                'club_id': club_id,
            }
            for member in members
        ])
        logger.info(f"Club mail for {club_id} sent by {actor_id} to {len(members)} members")

        hints = InvalidationHints().inbox()
        for member in members:
            hints.user_inbox(member['user_id'])
        self.invalidator.publish(hints)
        return {
            'success': True,
            'recipients': len(members),
            'message': f'Club mail sent to {len(members)} members (including yourself)',
        }

    # ------------------------------------------------------------------
    # inbox
    # ------------------------------------------------------------------

    @club_operation('get_inbox_messages')
    def get_inbox_messages(self, actor_id):
        self._require_actor(actor_id)

        messages = []
        for row in self.repository.list_messages_for_receiver(actor_id):
            item = dict(row, message=strip_metadata(row.get('message')), metadata=None)
            item.setdefault('message_type', MESSAGE_GENERAL)
            metadata = decode_message(row)
            if metadata is not None:
                item['metadata'] = {_METADATA_KEYS[metadata.kind]: metadata.to_dict()}
                item['club_id'] = metadata.club_id
                item['club_name'] = metadata.club_name
            messages.append(item)
        return {'success': True, 'messages': messages}

    @club_operation('get_unread_count')
    def get_unread_count(self, actor_id):
        self._require_actor(actor_id)
        tag = f'user-{actor_id}-unread'

        count = self.invalidator.get_view(tag, 'count')
        if count is None:
            user = self.repository.get_user(actor_id)
            if not user:
                raise UserNotFoundError()
            count = self.repository.count_messages_since(actor_id, user.get('last_seen_inbox') or EPOCH)
            self.invalidator.store_view(tag, 'count', count, self.view_ttl_seconds)
        return {'success': True, 'count': int(count)}

    @club_operation('mark_inbox_read')
    def mark_inbox_read(self, actor_id):
        self._require_actor(actor_id)
        self.repository.touch_last_seen_inbox(actor_id)
        self.invalidator.publish(InvalidationHints().user_inbox(actor_id))
        return {'success': True}

    @club_operation('delete_message')
    def delete_message(self, actor_id, message_id):
        self._require_actor(actor_id)
        require(message_id, message='Message ID is required')
        if not self.repository.delete_message(message_id, receiver_id=actor_id):
            raise MessageNotFoundError()
        self.invalidator.publish(InvalidationHints().inbox().user_inbox(actor_id))
        return {'success': True}
