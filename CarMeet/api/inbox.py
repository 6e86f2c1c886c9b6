"""
Inbox API endpoints: listing, unread count and acting on club requests/invitations
"""
import logging

from flask import Blueprint
from flask_restful import Api, Resource

from CarMeet.api.auth import auth_required, get_user_id
from CarMeet.api.schemas import parse_body, HandleJoinRequestSchema, HandleInvitationSchema
from CarMeet.services.container import get_services
from CarMeet.utils.api_response import result_response

logger = logging.getLogger(__name__)

inbox_bp = Blueprint('inbox', __name__)
api = Api(inbox_bp)


class InboxMessagesResource(Resource):

    @auth_required
    def get(self):
        """Messages for the caller, newest first, with decoded club metadata"""
        return result_response(get_services().inbox.get_inbox_messages(get_user_id()))


class InboxMessageResource(Resource):

    @auth_required
    def delete(self, message_id):
        return result_response(get_services().inbox.delete_message(get_user_id(), message_id))


class InboxUnreadCountResource(Resource):

    @auth_required
    def get(self):
        return result_response(get_services().inbox.get_unread_count(get_user_id()))


class InboxMarkReadResource(Resource):

    @auth_required
    def post(self):
        return result_response(get_services().inbox.mark_inbox_read(get_user_id()))


class HandleJoinRequestResource(Resource):

    @auth_required
    def post(self):
        """Approve or reject a join request addressed to the caller"""
        data, error = parse_body(HandleJoinRequestSchema())
        if error:
            return error
        result = get_services().inbox.handle_join_request(
            get_user_id(), data['message_id'], data['action'], data['club_id'], data['user_id']
        )
        return result_response(result)


class HandleClubInvitationResource(Resource):

    @auth_required
    def post(self):
        """Accept or reject a club invitation addressed to the caller"""
        data, error = parse_body(HandleInvitationSchema())
        if error:
            return error
        result = get_services().inbox.handle_club_invitation(
            get_user_id(), data['message_id'], data['action'], data['club_id'], data['inviter_id']
        )
        return result_response(result)


api.add_resource(InboxMessagesResource, '/inbox/messages')
api.add_resource(InboxMessageResource, '/inbox/messages/<message_id>')
api.add_resource(InboxUnreadCountResource, '/inbox/unread-count')
api.add_resource(InboxMarkReadResource, '/inbox/mark-read')
api.add_resource(HandleJoinRequestResource, '/inbox/handle-join-request')
api.add_resource(HandleClubInvitationResource, '/inbox/handle-club-invitation')
