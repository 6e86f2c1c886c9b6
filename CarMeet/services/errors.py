"""
Error taxonomy for club operations.

Services raise these internally; the ``club_operation`` decorator turns them
into ``{'success': False, 'error': ..., 'code': ...}`` results so no exception
crosses an operation boundary.
"""
import logging
from functools import wraps

logger = logging.getLogger(__name__)

AUTHENTICATION = 'authentication'
AUTHORIZATION = 'authorization'
PRECONDITION = 'precondition'
STORE = 'store'


class ClubError(Exception):
    """Base class for every failure an operation can report"""
    category = PRECONDITION
    code = 'club_error'
    default_message = 'Club operation failed'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_result(self):
        result = {
            'success': False,
            'error': self.message,
            'code': self.code,
            'category': self.category,
        }
        if self.details:
            result['details'] = self.details
        return result


# Authentication / authorization

class NotAuthenticatedError(ClubError):
    category = AUTHENTICATION
    code = 'not_authenticated'
    default_message = 'Authentication required'


class NotAMemberError(ClubError):
    category = AUTHORIZATION
    code = 'not_a_member'
    default_message = 'You are not a member of this club'


class NotAuthorizedError(ClubError):
    category = AUTHORIZATION
    code = 'not_authorized'
    default_message = 'Only the club leader can perform this action'


class ActorIsTargetError(ClubError):
    category = AUTHORIZATION
    code = 'actor_is_target'
    default_message = 'Cannot manage your own membership'


# Preconditions

class ClubNotFoundError(ClubError):
    code = 'club_not_found'
    default_message = 'Club not found'


class MessageNotFoundError(ClubError):
    code = 'message_not_found'
    default_message = 'Message not found'


class UserNotFoundError(ClubError):
    code = 'user_not_found'
    default_message = 'User not found'


class TargetNotMemberError(ClubError):
    code = 'target_not_member'
    default_message = 'Member not found in club'


class TargetHasRoleError(ClubError):
    code = 'target_has_role'
    default_message = 'Member already has the requested role'


class TargetIsLeaderError(ClubError):
    code = 'target_is_leader'
    default_message = 'Cannot manage the club leader'


class ClubNotOpenError(ClubError):
    code = 'club_not_open'
    default_message = 'You cannot join this club directly.'


class AlreadyMemberError(ClubError):
    code = 'already_member'
    default_message = 'Already a member of this club'


class LeaderCannotLeaveError(ClubError):
    code = 'leader_cannot_leave'
    default_message = 'Transfer leadership to another member before leaving, or remove all other members first'


class InvitationPendingError(ClubError):
    code = 'invitation_pending'
    default_message = 'Invitation already sent to this user'


class InvalidActionError(ClubError):
    code = 'invalid_action'
    default_message = 'Invalid action'


class InvalidInputError(ClubError):
    code = 'invalid_input'
    default_message = 'Missing required parameters'


class StaleStateError(ClubError):
    code = 'stale_state'
    default_message = 'Club changed while processing the request, please retry'


# Store

class StoreError(ClubError):
    category = STORE
    code = 'store_error'
    default_message = 'Internal server error'


def require(*values, message=None):
    """Raise InvalidInputError unless every value is present"""
    if not all(values):
        raise InvalidInputError(message)


def club_operation(name):
    """Convert ClubError (and anything unexpected) into a failure result"""
    def decorator(f):
        @wraps(f)
        def wrapped(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except StoreError as e:
                logger.error(f"{name}: store failure: {e.message}")
                return e.to_result()
            except ClubError as e:
                logger.info(f"{name}: rejected ({e.code}): {e.message}")
                return e.to_result()
            except Exception as e:
                logger.error(f"Unexpected error in {name}: {e}", exc_info=True)
                return StoreError().to_result()
        return wrapped
    return decorator
