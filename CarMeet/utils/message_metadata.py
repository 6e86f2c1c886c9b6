"""
Structured club request/invitation records carried by inbox messages.

A record is stored in the ``messages.metadata`` column and, for clients that
only read the message text, appended to the body as a single-line comment::

    I would like to join your club.

    <!-- METADATA:CLUB_JOIN_REQUEST:{"club_id": "c1", ...} -->

Decoding never raises: anything malformed is treated as "no metadata".
"""
import json
import logging
import re
from dataclasses import dataclass, asdict, fields as dataclass_fields
from typing import ClassVar, Optional, Union

from marshmallow import Schema, fields, validate, ValidationError, EXCLUDE

logger = logging.getLogger(__name__)

JOIN_REQUEST_MARKER = 'CLUB_JOIN_REQUEST'
INVITATION_MARKER = 'CLUB_INVITATION'

METADATA_PATTERN = re.compile(
    r'<!-- METADATA:(' + JOIN_REQUEST_MARKER + '|' + INVITATION_MARKER + r'):(\{.*\}) -->'
)


class ClubJoinRequestPayloadSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    club_id = fields.Str(required=True)
    club_name = fields.Str(required=True)
    user_id = fields.Str(required=True)
    username = fields.Str(required=True)
    status = fields.Str(load_default='pending', validate=validate.OneOf(['pending', 'approved', 'rejected']))


class ClubInvitationPayloadSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    club_id = fields.Str(required=True)
    club_name = fields.Str(required=True)
    inviter_id = fields.Str(required=True)
    inviter_username = fields.Str(required=True)
    target_user_id = fields.Str(required=True)
    status = fields.Str(load_default='pending', validate=validate.OneOf(['pending', 'accepted', 'rejected']))


@dataclass
class ClubJoinRequestMetadata:
    club_id: str
    club_name: str
    user_id: str
    username: str
    status: str = 'pending'

    kind: ClassVar[str] = JOIN_REQUEST_MARKER
    schema: ClassVar[Schema] = ClubJoinRequestPayloadSchema()

    def to_dict(self):
        return asdict(self)


@dataclass
class ClubInvitationMetadata:
    club_id: str
    club_name: str
    inviter_id: str
    inviter_username: str
    target_user_id: str
    status: str = 'pending'

    kind: ClassVar[str] = INVITATION_MARKER
    schema: ClassVar[Schema] = ClubInvitationPayloadSchema()

    def to_dict(self):
        return asdict(self)


ClubMessageMetadata = Union[ClubJoinRequestMetadata, ClubInvitationMetadata]

_RECORD_TYPES = {
    JOIN_REQUEST_MARKER: ClubJoinRequestMetadata,
    INVITATION_MARKER: ClubInvitationMetadata,
}


def _load(kind, payload) -> Optional[ClubMessageMetadata]:
    record_type = _RECORD_TYPES.get(kind)
    if record_type is None or not isinstance(payload, dict):
        return None
    try:
        data = record_type.schema.load(payload)
    except ValidationError as e:
        logger.debug(f"Ignoring malformed {kind} metadata: {e.messages}")
        return None
    names = {field.name for field in dataclass_fields(record_type)}
    return record_type(**{key: value for key, value in data.items() if key in names})


def encode_message_body(text: str, metadata: ClubMessageMetadata) -> str:
    """Append the metadata comment block to human-readable text"""
    payload = json.dumps(metadata.to_dict(), separators=(',', ':'))
    return f"{text}\n\n<!-- METADATA:{metadata.kind}:{payload} -->"


def decode_message_body(body: Optional[str]) -> Optional[ClubMessageMetadata]:
    """Extract the metadata record embedded in a message body, if any"""
    if not body:
        return None
    match = METADATA_PATTERN.search(body)
    if not match:
        return None
    try:
        payload = json.loads(match.group(2))
    except json.JSONDecodeError:
        logger.debug("Ignoring message metadata that is not valid JSON")
        return None
    return _load(match.group(1), payload)


def strip_metadata(body: Optional[str]) -> str:
    """Message text without the metadata comment block"""
    if not body:
        return ''
    return METADATA_PATTERN.sub('', body).rstrip()


def metadata_to_column(metadata: ClubMessageMetadata) -> dict:
    return dict(metadata.to_dict(), kind=metadata.kind)


def metadata_from_column(value) -> Optional[ClubMessageMetadata]:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    if not isinstance(value, dict):
        return None
    payload = {key: item for key, item in value.items() if key != 'kind'}
    return _load(value.get('kind'), payload)


def decode_message(message: dict) -> Optional[ClubMessageMetadata]:
    """Structured column first, body comment as the fallback for older rows"""
    return metadata_from_column(message.get('metadata')) or decode_message_body(message.get('message'))
