from flask import request
from marshmallow import Schema, fields, validate, ValidationError, EXCLUDE

from CarMeet.services.club_repository import CLUB_OPEN
from CarMeet.utils.api_response import error_response


class _RequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE  # Ignore unknown fields gracefully


class CreateClubSchema(_RequestSchema):
    """Schema for validating club creation"""
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    description = fields.Str(load_default='')
    location = fields.Str(load_default=None, allow_none=True)
    club_type = fields.Str(load_default=CLUB_OPEN)
    banner_image_url = fields.Str(load_default=None, allow_none=True)


class ManageMemberSchema(_RequestSchema):
    action = fields.Str(required=True)


class TransferLeadershipSchema(_RequestSchema):
    new_leader_id = fields.Str(required=True, data_key='newLeaderId')


class ClubMailSchema(_RequestSchema):
    subject = fields.Str(required=True, validate=validate.Length(min=1))
    message = fields.Str(required=True, validate=validate.Length(min=1))


class JoinRequestSchema(_RequestSchema):
    message = fields.Str(load_default=None, allow_none=True)


class InvitationSchema(_RequestSchema):
    """Schema for a leader inviting a user to their club"""
    target_user_id = fields.Str(required=True, data_key='targetUserId')
    message = fields.Str(load_default=None, allow_none=True)


class HandleJoinRequestSchema(_RequestSchema):
    message_id = fields.Str(required=True, data_key='messageId')
    action = fields.Str(required=True)
    club_id = fields.Str(required=True, data_key='clubId')
    user_id = fields.Str(required=True, data_key='userId')


class HandleInvitationSchema(_RequestSchema):
    message_id = fields.Str(required=True, data_key='messageId')
    action = fields.Str(required=True)
    club_id = fields.Str(required=True, data_key='clubId')
    inviter_id = fields.Str(required=True, data_key='inviterId')


def parse_body(schema):
    """Load the JSON body through a schema; returns (data, None) or (None, error response)"""
    try:
        return schema.load(request.get_json(silent=True) or {}), None
    except ValidationError as err:
        return None, error_response('Invalid request data', details=err.messages, status_code=400)
