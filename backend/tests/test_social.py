from datetime import date, timedelta

from quizhub import db
from quizhub.models import Score


def _befriend(a, b, b_name):
    res = a.post('/api/friends/requests', json={'username': b_name})
    assert res.status_code == 201
    request_id = res.get_json()['friendship']['id']
    assert b.post(f'/api/friends/requests/{request_id}/accept').status_code == 200
    return request_id


def test_friend_request_rules(make_user):
    alice, _ = make_user('alice')
    bob, _ = make_user('bob')

    assert alice.post('/api/friends/requests', json={'username': 'alice'}).status_code == 400
    assert alice.post('/api/friends/requests', json={'username': 'nobody'}).status_code == 404

    sent = alice.post('/api/friends/requests', json={'username': 'BOB'})
    assert sent.status_code == 201
    assert sent.get_json()['status'] == 'pending'
    assert alice.post('/api/friends/requests', json={'username': 'bob'}).status_code == 409

    lists = bob.get('/api/friends').get_json()
    assert len(lists['incoming']) == 1
    assert lists['incoming'][0]['other']['username'] == 'alice'
    assert alice.get('/api/friends').get_json()['outgoing'][0]['other']['username'] == 'bob'

    # A reverse request matches the pending one
    matched = bob.post('/api/friends/requests', json={'username': 'alice'})
    assert matched.status_code == 200
    assert matched.get_json()['status'] == 'accepted'
    assert matched.get_json()['outcome'] == 'matched'

    assert alice.post('/api/friends/requests', json={'username': 'bob'}).status_code == 409
    friends = alice.get('/api/friends').get_json()['friends']
    assert [f['other']['username'] for f in friends] == ['bob']


def test_decline_then_reopen(make_user):
    alice, _ = make_user('alice')
    bob, _ = make_user('bob')
    request_id = alice.post('/api/friends/requests', json={'username': 'bob'}).get_json()['friendship']['id']

    assert alice.post(f'/api/friends/requests/{request_id}/accept').status_code == 403
    declined = bob.post(f'/api/friends/requests/{request_id}/decline')
    assert declined.get_json()['friendship']['status'] == 'declined'
    assert declined.get_json()['friendship']['responded_at'] is not None

    again = alice.post('/api/friends/requests', json={'username': 'bob'})
    assert again.status_code == 201
    assert again.get_json()['status'] == 'pending'


def test_remove_friend(make_user):
    alice, _ = make_user('alice')
    bob, _ = make_user('bob')
    carol, _ = make_user('carol')
    friendship_id = _befriend(alice, bob, 'bob')
    assert carol.delete(f'/api/friends/{friendship_id}').status_code == 403
    assert bob.delete(f'/api/friends/{friendship_id}').status_code == 200
    assert alice.get('/api/friends').get_json()['friends'] == []


def test_private_leaderboard_lifecycle(flask_app, make_user):
    alice, alice_user = make_user('alice')
    bob, bob_user = make_user('bob')
    carol, carol_user = make_user('carol')
    _befriend(alice, bob, 'bob')

    strangers = alice.post('/api/private-leaderboards', json={
        'name': 'Office', 'quiz_type': 'JDQ', 'jdq_scope': 'all_time', 'member_ids': [carol_user['id']],
    })
    assert strangers.status_code == 400

    bad_jvq = alice.post('/api/private-leaderboards', json={
        'name': 'Pub', 'quiz_type': 'JVQ', 'jvq_days': ['thursday', 'saturday'], 'jvq_scope': 'all_time',
    })
    assert bad_jvq.status_code == 400

    res = alice.post('/api/private-leaderboards', json={
        'name': 'Office', 'quiz_type': 'JDQ', 'jdq_scope': 'all_time', 'member_ids': [bob_user['id']],
    })
    assert res.status_code == 201
    board = res.get_json()['leaderboard']
    assert {m['username'] for m in board['members']} == {'alice', 'bob'}

    with flask_app.app_context():
        day = date(2024, 1, 1)
        for i in range(2):
            db.session.add(Score(user_id=bob_user['id'], username='bob', quiz_type='JDQ',
                                 quiz_date=day + timedelta(days=i), score=4, tiebreaker=7))
        db.session.commit()

    # bob sees the board as an unseen invite until he opens it
    assert bob.get('/api/notifications').get_json()['leaderboard_invites'] == 1
    detail = bob.get(f"/api/private-leaderboards/{board['id']}").get_json()
    standings = detail['standings']
    assert [r['username'] for r in standings] == ['bob', 'alice']
    assert standings[0] == {'user_id': bob_user['id'], 'username': 'bob', 'avg': 4.0, 'avg_tb': 7.0, 'entries': 2}
    assert standings[1]['entries'] == 0 and standings[1]['avg'] == 0
    assert bob.get('/api/notifications').get_json()['leaderboard_invites'] == 0

    assert carol.get(f"/api/private-leaderboards/{board['id']}").status_code == 403
    assert [b['id'] for b in bob.get('/api/private-leaderboards').get_json()] == [board['id']]

    assert alice.post(f"/api/private-leaderboards/{board['id']}/leave").status_code == 400
    assert bob.delete(f"/api/private-leaderboards/{board['id']}").status_code == 403
    assert bob.post(f"/api/private-leaderboards/{board['id']}/leave").status_code == 200
    assert bob.get('/api/private-leaderboards').get_json() == []
    assert alice.delete(f"/api/private-leaderboards/{board['id']}").status_code == 200


def test_private_leaderboard_start_date_and_day_filter(flask_app, make_user):
    alice, alice_user = make_user('alice')
    with flask_app.app_context():
        for d, day_type, score in [
            (date(2024, 1, 4), 'Thursday', 30),
            (date(2024, 1, 6), 'Saturday', 50),
            (date(2024, 1, 11), 'Thursday', 40),
        ]:
            db.session.add(Score(user_id=alice_user['id'], username='alice', quiz_type='JVQ',
                                 quiz_date=d, score=score, tiebreaker=2, day_type=day_type))
        db.session.commit()

    res = alice.post('/api/private-leaderboards', json={
        'name': 'Thursdays', 'quiz_type': 'JVQ', 'jvq_days': ['thursday'], 'jvq_scope': 'all_time',
        'start_date': '2024-01-05',
    })
    board_id = res.get_json()['leaderboard']['id']
    standings = alice.get(f'/api/private-leaderboards/{board_id}').get_json()['standings']
    assert standings[0]['entries'] == 1
    assert standings[0]['avg'] == 40.0


def test_remove_member(make_user):
    alice, _ = make_user('alice')
    bob, bob_user = make_user('bob')
    _befriend(alice, bob, 'bob')
    board = alice.post('/api/private-leaderboards', json={
        'name': 'Duo', 'quiz_type': 'JDQ', 'member_ids': [bob_user['id']],
    }).get_json()['leaderboard']
    res = alice.delete(f"/api/private-leaderboards/{board['id']}/members/{bob_user['id']}")
    assert res.status_code == 200
    assert [m['username'] for m in res.get_json()['leaderboard']['members']] == ['alice']


def test_notification_counts_and_clear(make_user, admin_client):
    alice, _ = make_user('alice')
    bob, _ = make_user('bob')
    bob.post('/api/friends/requests', json={'username': 'alice'})
    thread = alice.post('/api/contact/threads', json={'message': 'Hi'}).get_json()['thread']
    admin_client.post(f"/api/admin/messages/{thread['id']}/reply", json={'message': 'Hello!'})

    counts = alice.get('/api/notifications').get_json()
    assert counts == {'friend_requests': 1, 'leaderboard_invites': 0, 'admin_messages': 1, 'total': 2}

    cleared = alice.post('/api/notifications/clear', json={'kind': 'admin_messages'}).get_json()
    assert cleared['admin_messages'] == 0
    assert cleared['total'] == 1
    assert alice.post('/api/notifications/clear', json={'kind': 'everything'}).status_code == 400
