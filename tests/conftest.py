import fakeredis
import pytest

from fake_supabase import FakeSupabase

from CarMeet.app import create_app
from CarMeet.config import Config
from CarMeet.services.container import ClubServices
from CarMeet.services.redis_cache_service import RedisCacheService, set_cache_service


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def redis_client():
    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def cache(redis_client):
    service = RedisCacheService(redis_client=redis_client)
    yield service
    set_cache_service(None)


@pytest.fixture
def services(supabase, cache):
    return ClubServices(supabase, cache_service=cache)


@pytest.fixture
def governance(services):
    return services.governance


@pytest.fixture
def inbox(services):
    return services.inbox


@pytest.fixture
def likes(services):
    return services.likes


@pytest.fixture
def app(supabase, cache):
    config = Config(
        FLASK_ENV='testing',
        SENTRY_DSN=None,
        REDIS_URL=None,
        DISABLE_RATE_LIMITING=True,
        VERBOSE_LOGS=False,
    )
    app = create_app(config, supabase_client=supabase, cache_service=cache)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(supabase):
    """Register a bearer token for a user and return the request headers"""
    def _login(user_id):
        token = f'token-{user_id}'
        supabase.auth.tokens[token] = user_id
        return {'Authorization': f'Bearer {token}'}
    return _login


@pytest.fixture
def club_world(supabase):
    """
    alice leads 'gt' (invite-only) with bob as co-leader and carol as member.
    dave and erin have no club. Cars give gt 10 + 5 + 0 likes.
    """
    for user_id in ('alice', 'bob', 'carol', 'dave', 'erin'):
        supabase.add_user(user_id)
    supabase.add_club('gt', 'alice', name='GT Owners', club_type='invite')
    supabase.add_member('gt', 'bob', 'co-leader')
    supabase.add_member('gt', 'carol', 'member')
    supabase.add_car('alice', 10)
    supabase.add_car('bob', 5)
    supabase.add_car('carol', None)
    supabase.add_car('dave', 7)
    return supabase
