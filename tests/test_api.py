def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'


def test_requests_without_valid_token_are_rejected(client, club_world):
    assert client.get('/api/clubs/gt').status_code == 401
    response = client.get('/api/clubs/gt', headers={'Authorization': 'Bearer forged'})
    assert response.status_code == 401
    assert response.get_json()['code'] == 'not_authenticated'


def test_create_and_fetch_club(client, supabase, login):
    supabase.add_user('alice')
    headers = login('alice')

    created = client.post('/api/clubs', json={'name': 'Miata Club', 'club_type': 'open'}, headers=headers)

    assert created.status_code == 201
    club_id = created.get_json()['club']['id']
    fetched = client.get(f'/api/clubs/{club_id}', headers=headers)
    assert fetched.status_code == 200
    assert fetched.get_json()['club']['user_role'] == 'leader'


def test_create_club_validates_body(client, login):
    response = client.post('/api/clubs', json={'description': 'no name'}, headers=login('alice'))

    assert response.status_code == 400
    assert 'name' in response.get_json()['details']


def test_error_statuses(client, club_world, login):
    assert client.get('/api/clubs/nope', headers=login('alice')).status_code == 404
    assert client.post('/api/clubs/gt/join', headers=login('dave')).status_code == 400
    response = client.put('/api/clubs/gt/members/carol', json={'action': 'kick'}, headers=login('bob'))
    assert response.status_code == 403
    assert response.get_json()['code'] == 'not_authorized'


def test_member_management_routes(client, club_world, login):
    headers = login('alice')

    promoted = client.put('/api/clubs/gt/members/carol', json={'action': 'promote'}, headers=headers)
    assert promoted.status_code == 200
    assert club_world.role_of('gt', 'carol') == 'co-leader'

    transferred = client.post('/api/clubs/gt/leadership', json={'newLeaderId': 'bob'}, headers=headers)
    assert transferred.status_code == 200
    assert club_world.club('gt')['leader_id'] == 'bob'


def test_leave_route(client, club_world, login):
    response = client.post('/api/clubs/gt/leave', headers=login('carol'))

    assert response.status_code == 200
    assert response.get_json()['deleted'] is False
    assert club_world.role_of('gt', 'carol') is None


def test_join_request_round_trip_over_http(client, club_world, login):
    sent = client.post('/api/clubs/gt/join-request', json={'message': 'Hello!'}, headers=login('dave'))
    assert sent.status_code == 200

    leader = login('alice')
    messages = client.get('/api/inbox/messages', headers=leader).get_json()['messages']
    request_message = next(m for m in messages if m['message_type'] == 'club_join_request')
    assert request_message['message'] == 'Hello!'
    assert client.get('/api/inbox/unread-count', headers=leader).get_json()['count'] == 1

    handled = client.post('/api/inbox/handle-join-request', headers=leader, json={
        'messageId': request_message['id'],
        'action': 'approve',
        'clubId': 'gt',
        'userId': 'dave',
    })
    assert handled.status_code == 200
    assert club_world.role_of('gt', 'dave') == 'member'

    replay = client.post('/api/inbox/handle-join-request', headers=leader, json={
        'messageId': request_message['id'],
        'action': 'approve',
        'clubId': 'gt',
        'userId': 'dave',
    })
    assert replay.status_code == 404


def test_invitation_round_trip_over_http(client, club_world, login):
    sent = client.post('/api/clubs/gt/invitations', json={'targetUserId': 'erin'}, headers=login('alice'))
    assert sent.status_code == 200
    duplicate = client.post('/api/clubs/gt/invitations', json={'targetUserId': 'erin'}, headers=login('alice'))
    assert duplicate.status_code == 400
    assert duplicate.get_json()['code'] == 'invitation_pending'

    invitee = login('erin')
    invitation = client.get('/api/inbox/messages', headers=invitee).get_json()['messages'][0]
    handled = client.post('/api/inbox/handle-club-invitation', headers=invitee, json={
        'messageId': invitation['id'],
        'action': 'accept',
        'clubId': 'gt',
        'inviterId': 'alice',
    })

    assert handled.status_code == 200
    assert club_world.role_of('gt', 'erin') == 'member'


def test_handle_request_requires_all_fields(client, club_world, login):
    response = client.post('/api/inbox/handle-join-request', json={'action': 'approve'}, headers=login('alice'))

    assert response.status_code == 400
    assert 'messageId' in response.get_json()['details']


def test_club_mail_and_inbox_housekeeping(client, club_world, login):
    sent = client.post('/api/clubs/gt/mail', json={'subject': 'Meet', 'message': 'Sunday'}, headers=login('alice'))
    assert sent.status_code == 200
    assert sent.get_json()['recipients'] == 3

    carol = login('carol')
    assert client.get('/api/inbox/unread-count', headers=carol).get_json()['count'] == 1
    assert client.post('/api/inbox/mark-read', headers=carol).status_code == 200
    assert client.get('/api/inbox/unread-count', headers=carol).get_json()['count'] == 0

    mail = client.get('/api/inbox/messages', headers=carol).get_json()['messages'][0]
    assert client.delete(f"/api/inbox/messages/{mail['id']}", headers=carol).status_code == 200
    assert client.delete(f"/api/inbox/messages/{mail['id']}", headers=carol).status_code == 404


def test_leaderboard_and_likes_refresh(client, club_world, login):
    headers = login('alice')

    refreshed = client.post('/api/clubs/likes/refresh', headers=headers)
    assert refreshed.status_code == 200
    assert refreshed.get_json()['message'] == 'Updated 1 out of 1 clubs'

    board = client.get('/api/clubs/leaderboard?limit=5', headers=headers).get_json()
    assert board['clubs'][0]['total_likes'] == 15


def test_delete_club_route(client, club_world, login):
    assert client.delete('/api/clubs/gt', headers=login('bob')).status_code == 403
    assert client.delete('/api/clubs/gt', headers=login('alice')).status_code == 200
    assert club_world.club('gt') is None


def test_join_request_to_closed_club_is_rejected(client, supabase, login):
    supabase.add_user('dave')
    supabase.add_club('shut', 'alice', club_type='closed')

    response = client.post('/api/clubs/shut/join-request', json={'message': 'let me in'}, headers=login('dave'))

    assert response.status_code == 400
    assert response.get_json()['code'] == 'club_not_open'
    assert supabase.messages_to('alice') == []


def test_my_clubs_and_led_clubs_routes(client, club_world, login):
    carol = client.get('/api/clubs/mine', headers=login('carol'))
    assert carol.status_code == 200
    entry = carol.get_json()['clubs'][0]
    assert entry['club']['name'] == 'GT Owners'
    assert entry['role'] == 'member'
    assert entry['member_count'] == 3

    led = client.get('/api/clubs/led', headers=login('alice')).get_json()['clubs']
    assert [club['id'] for club in led] == ['gt']
    assert client.get('/api/clubs/led', headers=login('carol')).get_json()['clubs'] == []
    assert client.get('/api/clubs/mine').status_code == 401


def test_my_clubs_route_sees_new_membership(client, club_world, login):
    headers = login('dave')
    assert client.get('/api/clubs/mine', headers=headers).get_json()['total'] == 0

    club_world.add_club('open1', 'erin', club_type='open')
    assert client.post('/api/clubs/open1/join', headers=headers).status_code == 200

    clubs = client.get('/api/clubs/mine', headers=headers).get_json()['clubs']
    assert [c['club']['id'] for c in clubs] == ['open1']
