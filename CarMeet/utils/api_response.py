"""
Utility functions for API responses
"""
from CarMeet.services.errors import AUTHENTICATION, AUTHORIZATION, STORE

NOT_FOUND_CODES = ('club_not_found', 'message_not_found', 'user_not_found', 'target_not_member')
CONFLICT_CODES = ('stale_state',)


def error_response(message, details=None, status_code=400):
    response_body = {
        "success": False,
        "error": message
    }
    if details is not None:
        response_body["details"] = details
    return response_body, status_code


def status_for_result(result, success_status=200):
    """HTTP status for an operation result dict"""
    if result.get('success'):
        return success_status

    category = result.get('category')
    code = result.get('code')
    if category == AUTHENTICATION:
        return 401
    if category == AUTHORIZATION:
        return 403
    if category == STORE:
        return 500
    if code in NOT_FOUND_CODES:
        return 404
    if code in CONFLICT_CODES:
        return 409
    return 400


def result_response(result, success_status=200):
    """Pass an operation result through unchanged with the matching status"""
    return result, status_for_result(result, success_status)
