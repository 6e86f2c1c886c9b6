"""
Clubs API endpoints for club management, membership and governance
"""
import logging

from flask import Blueprint, request
from flask_restful import Api, Resource

from CarMeet.api.auth import auth_required, get_user_id
from CarMeet.api.schemas import (
    parse_body,
    CreateClubSchema, ManageMemberSchema, TransferLeadershipSchema,
    ClubMailSchema, JoinRequestSchema, InvitationSchema,
)
from CarMeet.services.container import get_services
from CarMeet.utils.api_response import result_response

logger = logging.getLogger(__name__)

clubs_bp = Blueprint('clubs', __name__)
api = Api(clubs_bp)


class ClubListResource(Resource):
    """Handle club creation"""

    @auth_required
    def post(self):
        """Create a new club led by the caller"""
        data, error = parse_body(CreateClubSchema())
        if error:
            return error
        result = get_services().governance.create_club(get_user_id(), **data)
        return result_response(result, success_status=201)


class ClubMineResource(Resource):

    @auth_required
    def get(self):
        """Clubs the caller belongs to, with role and member count"""
        return result_response(get_services().governance.list_user_clubs(get_user_id()))


class ClubLedResource(Resource):

    @auth_required
    def get(self):
        return result_response(get_services().governance.list_led_clubs(get_user_id()))


class ClubResource(Resource):

    @auth_required
    def get(self, club_id):
        """Club detail with members and the caller's role"""
        return result_response(get_services().governance.get_club(get_user_id(), club_id))

    @auth_required
    def delete(self, club_id):
        return result_response(get_services().governance.delete_club(get_user_id(), club_id))


class ClubJoinResource(Resource):

    @auth_required
    def post(self, club_id):
        """Join an open club"""
        current_user_id = get_user_id()
        user_id = (request.get_json(silent=True) or {}).get('userId') or current_user_id
        return result_response(get_services().governance.join_club(current_user_id, club_id, user_id))


class ClubLeaveResource(Resource):

    @auth_required
    def post(self, club_id):
        """Leave a club; a sole leader leaving deletes it"""
        current_user_id = get_user_id()
        user_id = (request.get_json(silent=True) or {}).get('userId') or current_user_id
        return result_response(get_services().governance.leave_club(current_user_id, club_id, user_id))


class ClubMemberManagementResource(Resource):
    """Handle club member management (leader operations)"""

    @auth_required
    def put(self, club_id, user_id):
        """Promote, demote, kick or hand leadership to a member"""
        data, error = parse_body(ManageMemberSchema())
        if error:
            return error
        result = get_services().governance.manage_member(get_user_id(), club_id, user_id, data['action'])
        return result_response(result)


class ClubLeadershipResource(Resource):

    @auth_required
    def post(self, club_id):
        data, error = parse_body(TransferLeadershipSchema())
        if error:
            return error
        result = get_services().governance.transfer_leadership(get_user_id(), club_id, data['new_leader_id'])
        return result_response(result)


class ClubLikesRefreshResource(Resource):

    @auth_required
    def post(self):
        """Recompute total likes for every club"""
        return result_response(get_services().likes.refresh_all_club_total_likes(get_user_id()))


class ClubLeaderboardResource(Resource):

    @auth_required
    def get(self):
        try:
            limit = min(max(int(request.args.get('limit', 50)), 1), 100)
        except ValueError:
            limit = 50
        return result_response(get_services().governance.get_club_leaderboard(limit))


class ClubMailResource(Resource):

    @auth_required
    def post(self, club_id):
        """Send an announcement to every club member"""
        data, error = parse_body(ClubMailSchema())
        if error:
            return error
        result = get_services().inbox.send_club_mail(get_user_id(), club_id, data['subject'], data['message'])
        return result_response(result)


class ClubJoinRequestResource(Resource):

    @auth_required
    def post(self, club_id):
        data, error = parse_body(JoinRequestSchema())
        if error:
            return error
        result = get_services().inbox.send_club_join_request(get_user_id(), club_id, data['message'])
        return result_response(result)


class ClubInvitationResource(Resource):

    @auth_required
    def post(self, club_id):
        """Invite a user to the club (leader only)"""
        data, error = parse_body(InvitationSchema())
        if error:
            return error
        result = get_services().inbox.send_club_invitation(
            get_user_id(), data['target_user_id'], club_id, data['message']
        )
        return result_response(result)


api.add_resource(ClubListResource, '/clubs')
api.add_resource(ClubLeaderboardResource, '/clubs/leaderboard')
api.add_resource(ClubMineResource, '/clubs/mine')
api.add_resource(ClubLedResource, '/clubs/led')
api.add_resource(ClubLikesRefreshResource, '/clubs/likes/refresh')
api.add_resource(ClubResource, '/clubs/<club_id>')
api.add_resource(ClubJoinResource, '/clubs/<club_id>/join')
api.add_resource(ClubLeaveResource, '/clubs/<club_id>/leave')
api.add_resource(ClubMemberManagementResource, '/clubs/<club_id>/members/<user_id>')
api.add_resource(ClubLeadershipResource, '/clubs/<club_id>/leadership')
api.add_resource(ClubMailResource, '/clubs/<club_id>/mail')
api.add_resource(ClubJoinRequestResource, '/clubs/<club_id>/join-request')
api.add_resource(ClubInvitationResource, '/clubs/<club_id>/invitations')
