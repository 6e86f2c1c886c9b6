def test_compute_total_likes_counts_missing_likes_as_zero(likes, club_world):
    assert likes.compute_total_likes('gt') == (15, 3)


def test_compute_total_likes_for_empty_club(likes, supabase):
    assert likes.compute_total_likes('ghost') == (0, 0)


def test_update_club_total_likes_writes_total(likes, club_world):
    assert likes.update_club_total_likes('gt') is True
    assert club_world.club('gt')['total_likes'] == 15


def test_update_club_total_likes_reports_store_failure(likes, club_world):
    club_world.club('gt')['total_likes'] = 99
    club_world.fail('cars', 'select')

    assert likes.update_club_total_likes('gt') is False
    assert club_world.club('gt')['total_likes'] == 99


def test_refresh_all_club_total_likes(likes, club_world):
    club_world.add_club('vw', 'dave', club_type='open')

    result = likes.refresh_all_club_total_likes('alice')

    assert result == {
        'success': True,
        'message': 'Updated 2 out of 2 clubs',
        'updated': 2,
        'total': 2,
    }
    assert club_world.club('gt')['total_likes'] == 15
    assert club_world.club('vw')['total_likes'] == 7


def test_refresh_all_counts_partial_failures(likes, club_world):
    club_world.add_club('vw', 'dave', club_type='open')
    club_world.fail('clubs', 'update', times=1)

    result = likes.refresh_all_club_total_likes('alice')

    assert result['success'] is True
    assert result['message'] == 'Updated 1 out of 2 clubs'


def test_refresh_all_with_no_clubs(likes):
    assert likes.refresh_all_club_total_likes('alice') == {'success': True, 'message': 'No clubs to update'}


def test_refresh_all_requires_actor(likes):
    result = likes.refresh_all_club_total_likes(None)

    assert result['code'] == 'not_authenticated'
    assert result['category'] == 'authentication'


def test_membership_change_survives_likes_failure(governance, supabase):
    supabase.add_user('dave')
    supabase.add_club('open1', 'alice', club_type='open')
    supabase.fail('cars', 'select')

    result = governance.join_club('dave', 'open1', 'dave')

    assert result['success'] is True
    assert 'warning' in result
    assert supabase.role_of('open1', 'dave') == 'member'


def test_likes_update_invalidates_leaderboard(governance, likes, club_world):
    before = governance.get_club_leaderboard()['clubs']
    assert before[0]['total_likes'] == 0

    likes.update_club_total_likes('gt')

    after = governance.get_club_leaderboard()['clubs']
    assert after[0]['total_likes'] == 15
