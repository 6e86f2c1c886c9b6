import pytest

from CarMeet.services.errors import StoreError


@pytest.fixture
def repository(services):
    return services.repository


def test_list_memberships_for_user_newest_first(repository, supabase):
    supabase.add_club('a', 'alice')
    supabase.add_club('b', 'bob')
    supabase.add_club('c', 'carol')
    supabase.add_member('a', 'dave', joined_at='2024-01-01T00:00:00+00:00')
    supabase.add_member('b', 'dave', 'co-leader', joined_at='2024-06-01T00:00:00+00:00')

    memberships = repository.list_memberships_for_user('dave')

    assert [(m['club_id'], m['role']) for m in memberships] == [('b', 'co-leader'), ('a', 'member')]
    assert repository.list_memberships_for_user('erin') == []


def test_list_memberships_for_user_wraps_store_failures(repository, supabase):
    supabase.fail('club_members', 'select', times=1)

    with pytest.raises(StoreError):
        repository.list_memberships_for_user('dave')


def test_count_members_by_club(repository, club_world):
    club_world.add_club('solo', 'dave')

    assert repository.count_members_by_club(['gt', 'solo', 'missing']) == {'gt': 3, 'solo': 1}
    assert repository.count_members_by_club([]) == {}
