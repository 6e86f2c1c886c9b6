import pytest

from CarMeet.services.errors import (
    club_operation, require,
    ClubNotFoundError, StaleStateError, StoreError, InvalidInputError, NotAuthorizedError,
)
from CarMeet.utils.api_response import status_for_result


def test_error_result_shape():
    result = ClubNotFoundError(club_id='c1').to_result()

    assert result == {
        'success': False,
        'error': 'Club not found',
        'code': 'club_not_found',
        'category': 'precondition',
        'details': {'club_id': 'c1'},
    }


def test_require_rejects_missing_values():
    require('a', 1)
    with pytest.raises(InvalidInputError) as excinfo:
        require('a', '', message='Club ID is required')
    assert excinfo.value.message == 'Club ID is required'


def test_club_operation_converts_errors_to_results():
    @club_operation('demo')
    def demo(kind):
        if kind == 'club':
            raise NotAuthorizedError()
        if kind == 'store':
            raise StoreError('Failed to load club')
        if kind == 'bug':
            raise KeyError('leader_id')
        return {'success': True}

    assert demo('ok') == {'success': True}
    assert demo('club')['code'] == 'not_authorized'
    assert demo('store')['error'] == 'Failed to load club'
    unexpected = demo('bug')
    assert unexpected['code'] == 'store_error'
    assert unexpected['error'] == 'Internal server error'


@pytest.mark.parametrize('error,status', [
    (NotAuthorizedError(), 403),
    (ClubNotFoundError(), 404),
    (StaleStateError(), 409),
    (InvalidInputError(), 400),
    (StoreError(), 500),
])
def test_status_for_result(error, status):
    assert status_for_result(error.to_result()) == status


def test_status_for_success():
    assert status_for_result({'success': True}) == 200
    assert status_for_result({'success': True}, success_status=201) == 201
