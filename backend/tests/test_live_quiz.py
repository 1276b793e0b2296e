import pytest
from sqlalchemy import insert

from quizhub import db
from quizhub.api.admin import _last_controller_action
from quizhub.errors import ApiError
from quizhub.models import LiveAnswer, LiveQuiz, LiveScore, MarkingAssignment, PubMember, User
from quizhub.services.live_quiz import quizzes
from conftest import LIVE_PARTS, create_live_quiz as create_quiz, expire_stage, quiz_action as action


def room(player, quiz_id, pub_id):
    res = player.get(f'/api/live/quizzes/{quiz_id}/pubs/{pub_id}')
    assert res.status_code == 200, res.get_json()
    return res.get_json()


def test_pub_validation(admin_client):
    assert admin_client.post('/api/admin/pubs', json={'name': ''}).status_code == 400
    assert admin_client.post('/api/admin/pubs', json={'name': 'Tiny', 'max_teams': 0}).status_code == 400
    assert admin_client.post('/api/admin/pubs', json={'name': 'Huge', 'max_teams': 101}).status_code == 400
    pub = admin_client.post('/api/admin/pubs', json={'name': 'Default'}).get_json()
    assert pub['max_teams'] == 10
    assert [p['name'] for p in admin_client.get('/api/admin/pubs').get_json()] == ['Default']
    assert admin_client.delete(f"/api/admin/pubs/{pub['id']}").status_code == 200


def test_create_quiz_requires_a_pub(admin_client):
    res = admin_client.post('/api/admin/quizzes', json={'title': 'Empty', 'parts': LIVE_PARTS, 'pub_ids': []})
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Please select at least one pub for this quiz.'


def test_create_quiz_normalises_parts(admin_client):
    flat = [{'roundName': 'Picture', 'numQuestions': 5}, {'round_name': 'Sport', 'num_questions': 3}]
    quiz = create_quiz(admin_client, parts=flat, pubs=2)
    assert quiz['parts'] == [{'name': 'All Rounds', 'rounds': [
        {'round_name': 'Picture', 'num_questions': 5},
        {'round_name': 'Sport', 'num_questions': 3},
    ]}]
    assert quiz['status'] == 'waiting'
    assert quiz['current_part'] == 1
    assert [p['member_count'] for p in quiz['pubs']] == [0, 0]


def test_join_rules(admin_client, make_user):
    quiz = create_quiz(admin_client, max_teams=1)
    quiz_id, pub_id = quiz['id'], quiz['pubs'][0]['id']
    alice, _ = make_user('alice')
    bob, _ = make_user('bob')

    locked = admin_client.post(f'/api/admin/quizzes/{quiz_id}/lock').get_json()
    assert locked['locked'] is True
    res = alice.post(f'/api/live/quizzes/{quiz_id}/join', json={'pub_id': pub_id})
    assert res.status_code == 403
    assert res.get_json()['error'] == 'Unable to join the quiz this evening.'
    admin_client.post(f'/api/admin/quizzes/{quiz_id}/lock')

    assert alice.post(f'/api/live/quizzes/{quiz_id}/join', json={'pub_id': pub_id}).status_code == 201
    again = alice.post(f'/api/live/quizzes/{quiz_id}/join', json={'pub_id': pub_id})
    assert again.status_code == 409
    assert again.get_json()['pub_id'] == pub_id

    full = bob.post(f'/api/live/quizzes/{quiz_id}/join', json={'pub_id': pub_id})
    assert full.status_code == 409
    random_join = bob.post(f'/api/live/quizzes/{quiz_id}/join-random')
    assert random_join.status_code == 409
    assert random_join.get_json()['error'] == 'No available pubs!'

    assert bob.get(f'/api/live/quizzes/{quiz_id}/pubs/{pub_id}').status_code == 403


def test_join_random_and_player_listing(admin_client, make_user):
    quiz = create_quiz(admin_client, pubs=2)
    alice, _ = make_user('alice')
    res = alice.post(f"/api/live/quizzes/{quiz['id']}/join-random")
    assert res.status_code == 201
    pub_id = res.get_json()['pub_id']
    assert pub_id in [p['id'] for p in quiz['pubs']]

    listing = alice.get('/api/live/quizzes').get_json()
    assert listing[0]['phase'] == 'upcoming'
    assert listing[0]['my_pub_id'] == pub_id
    assert sum(p['member_count'] for p in listing[0]['pubs']) == 1


def test_invalid_actions(admin_client):
    quiz = create_quiz(admin_client)
    res = action(admin_client, quiz['id'], 'lock')
    assert res.status_code == 409
    assert res.get_json()['error'] == 'Cannot lock while quiz is waiting'
    assert action(admin_client, quiz['id'], 'explode').status_code == 400
    assert action(admin_client, quiz['id'], 'end').status_code == 409


def test_countdown_catches_up_on_read(flask_app, admin_client):
    quiz = create_quiz(admin_client)
    started = action(admin_client, quiz['id'], 'start').get_json()
    assert started['quiz']['status'] == 'countdown'
    assert 25 <= started['quiz']['seconds_remaining'] <= 30
    assert started['actions'][0]['enabled'] is False
    assert started['actions'][0]['label'].startswith('Countdown in progress')

    expire_stage(flask_app, quiz['id'])
    dash = admin_client.get(f"/api/admin/quizzes/{quiz['id']}/dashboard").get_json()
    assert dash['quiz']['status'] == 'answering'
    assert dash['quiz']['stage_deadline'] is None
    assert dash['actions'] == [{'action': 'lock', 'label': 'Lock Answers', 'enabled': True}]


def test_answer_sheet_rules(flask_app, admin_client, make_user):
    quiz = create_quiz(admin_client)
    quiz_id, pub_id = quiz['id'], quiz['pubs'][0]['id']
    alice, _ = make_user('alice')
    alice.post(f'/api/live/quizzes/{quiz_id}/join', json={'pub_id': pub_id})
    url = f'/api/live/quizzes/{quiz_id}/pubs/{pub_id}/answers'

    assert alice.put(url, json={'answers': {'General': ['a', 'b']}}).status_code == 409

    action(admin_client, quiz_id, 'start')
    expire_stage(flask_app, quiz_id)
    assert alice.put(url, json={'answers': {'General': ['x' * 201]}}).status_code == 400
    saved = alice.put(url, json={'answers': {'General': ['Paris'], 'Bogus': ['?']}})
    assert saved.status_code == 200
    assert saved.get_json()['sheet']['answers'] == {'General': ['Paris', '']}

    action(admin_client, quiz_id, 'lock')
    # still editable while locking
    assert alice.put(url, json={'answers': {'General': ['Paris', 'Mars']}}).status_code == 200
    expire_stage(flask_app, quiz_id)

    my_room = room(alice, quiz_id, pub_id)
    assert my_room['quiz']['status'] == 'locked'
    assert my_room['my_answers']['submitted'] is True
    assert 1 <= my_room['my_answers']['sheet_number'] <= 10
    assert alice.put(url, json={'answers': {'General': ['Rome', 'Mars']}}).status_code == 409


def _mark_for(task):
    # alice's sheet is fully right, everyone else gets one of two
    if task['target_username'] == 'alice':
        return {'General': [True, True]}
    return {'General': [True, False]}


def test_full_two_part_quiz(flask_app, admin_client, make_user):
    quiz = create_quiz(admin_client)
    quiz_id, pub_id = quiz['id'], quiz['pubs'][0]['id']
    players = {}
    for name in ('alice', 'bob', 'carol'):
        player_client, user = make_user(name)
        assert player_client.post(f'/api/live/quizzes/{quiz_id}/join', json={'pub_id': pub_id}).status_code == 201
        players[name] = (player_client, user)
    base = f'/api/live/quizzes/{quiz_id}/pubs/{pub_id}'

    # ---- Part 1 ----
    assert action(admin_client, quiz_id, 'start').status_code == 200
    expire_stage(flask_app, quiz_id)
    answers = {
        'alice': ['Paris', 'Jupiter'],
        'bob': ['Rome', 'Saturn'],
        'carol': ['Paris', ''],
    }
    for name, (player_client, _) in players.items():
        assert player_client.put(f'{base}/answers', json={'answers': {'General': answers[name]}}).status_code == 200

    action(admin_client, quiz_id, 'lock')
    expire_stage(flask_app, quiz_id)
    dash = admin_client.get(f'/api/admin/quizzes/{quiz_id}/dashboard').get_json()
    assert dash['quiz']['status'] == 'locked'
    assert [a['label'] for a in dash['actions']] == ['Assign Sheets For Marking', 'Start Marking']

    started = action(admin_client, quiz_id, 'start_marking').get_json()
    assert started['quiz']['status'] == 'marking'

    for name, (player_client, user) in players.items():
        task = room(player_client, quiz_id, pub_id)['marking']
        assert task is not None
        assert task['target_user_id'] != user['id']
        assert task['target_answers']['General'] == answers[task['target_username']]
        funny = {'General': [False, task['target_username'] == 'bob']}
        res = player_client.post(f'{base}/marking/submit', json={'marks': _mark_for(task), 'funny_flags': funny})
        assert res.status_code == 200
        again = player_client.post(f'{base}/marking/submit', json={'marks': _mark_for(task)})
        assert again.status_code == 409

    action(admin_client, quiz_id, 'close_marking')
    dash = admin_client.get(f'/api/admin/quizzes/{quiz_id}/dashboard').get_json()
    assert dash['quiz']['status'] == 'collecting'
    assert dash['actions'][0]['label'] == 'Show Current Leaderboard'

    board_dash = action(admin_client, quiz_id, 'show_leaderboard').get_json()
    assert board_dash['quiz']['status'] == 'leaderboard'
    assert board_dash['actions'][0]['label'] == 'Start Next Part (2)'
    assert board_dash['stats']['top_entries'][0] == {'name': 'alice', 'score': 2, 'pub_name': 'The Crown 1'}

    board = room(players['bob'][0], quiz_id, pub_id)['leaderboard']
    assert board['scope'] == 'part'
    assert [e['name'] for e in board['pub_entries']] == ['alice', 'bob', 'carol']
    assert board['pub_averages'] == [{'pub_id': pub_id, 'name': 'The Crown 1', 'score': 1.33}]
    assert board['funny_answers'] == [{'round': 'General', 'question': 1, 'answer': 'Saturn', 'team': 'bob'}]

    # ---- Part 2: only alice plays, marks her own sheet and never submits ----
    nxt = action(admin_client, quiz_id, 'next_part').get_json()
    assert nxt['quiz']['status'] == 'countdown'
    assert nxt['quiz']['current_part'] == 2
    expire_stage(flask_app, quiz_id)
    alice = players['alice'][0]
    alice_room = room(alice, quiz_id, pub_id)
    assert alice_room['rounds'] == [{'round_name': 'Music', 'num_questions': 2}]
    assert alice_room['my_answers'] is None
    alice.put(f'{base}/answers', json={'answers': {'Music': ['Adele', 'Queen']}})

    action(admin_client, quiz_id, 'lock')
    expire_stage(flask_app, quiz_id)
    assert action(admin_client, quiz_id, 'assign').status_code == 200
    action(admin_client, quiz_id, 'start_marking')
    task = room(alice, quiz_id, pub_id)['marking']
    assert task['target_username'] == 'alice'
    draft = alice.put(f'{base}/marking', json={'marks': {'Music': [True, False]}})
    assert draft.status_code == 200

    action(admin_client, quiz_id, 'close_marking')
    dash = admin_client.get(f'/api/admin/quizzes/{quiz_id}/dashboard').get_json()
    assert dash['actions'][0]['label'] == 'Show Final Leaderboard'
    final = action(admin_client, quiz_id, 'show_leaderboard').get_json()
    assert final['stats']['scope'] == 'combined'
    assert final['stats']['top_entries'][0] == {'name': 'alice', 'score': 3, 'pub_name': 'The Crown 1'}
    assert [a['label'] for a in final['actions']] == ['End Quiz']

    ended = action(admin_client, quiz_id, 'end').get_json()
    assert ended['quiz']['status'] == 'finished'
    assert ended['actions'][0]['label'] == 'Close Quiz & Remove Data'

    listing = players['bob'][0].get('/api/live/quizzes').get_json()
    assert listing[0]['phase'] == 'finished'
    assert listing[0]['my_stats'] == {'total_score': 1, 'pub_position': 2, 'global_position': 2}

    assert action(admin_client, quiz_id, 'cleanup').status_code == 200
    with flask_app.app_context():
        assert LiveAnswer.query.filter_by(quiz_id=quiz_id).count() == 0
        assert MarkingAssignment.query.filter_by(quiz_id=quiz_id).count() == 0
        assert LiveScore.query.filter_by(quiz_id=quiz_id).count() == 4

    board = room(alice, quiz_id, pub_id)['leaderboard']
    assert board['funny_answers'][0]['answer'] == '(No answer found)'


def test_delete_quiz_removes_live_rows(flask_app, admin_client, make_user):
    quiz = create_quiz(admin_client)
    alice, _ = make_user('alice')
    alice.post(f"/api/live/quizzes/{quiz['id']}/join", json={'pub_id': quiz['pubs'][0]['id']})
    assert admin_client.delete(f"/api/admin/quizzes/{quiz['id']}").status_code == 200
    with flask_app.app_context():
        assert db.session.get(LiveQuiz, quiz['id']) is None
    assert admin_client.get(f"/api/admin/quizzes/{quiz['id']}/dashboard").status_code == 404


def _finish_pair_quiz(flask_app, admin_client, make_user):
    """alice and bob play a one-part quiz, mark each other and finish it."""
    quiz = create_quiz(admin_client, parts=[{'round_name': 'General', 'num_questions': 2}])
    quiz_id, pub_id = quiz['id'], quiz['pubs'][0]['id']
    base = f'/api/live/quizzes/{quiz_id}/pubs/{pub_id}'
    alice, _ = make_user('alice')
    bob, _ = make_user('bob')
    for player in (alice, bob):
        player.post(f'/api/live/quizzes/{quiz_id}/join', json={'pub_id': pub_id})
    action(admin_client, quiz_id, 'start')
    expire_stage(flask_app, quiz_id)
    alice.put(f'{base}/answers', json={'answers': {'General': ['Paris', 'Jupiter']}})
    bob.put(f'{base}/answers', json={'answers': {'General': ['Rome', 'Saturn']}})
    action(admin_client, quiz_id, 'lock')
    expire_stage(flask_app, quiz_id)
    action(admin_client, quiz_id, 'start_marking')
    # two sheets always swap
    alice.post(f'{base}/marking/submit', json={'marks': {'General': [True, False]}})
    bob.post(f'{base}/marking/submit', json={'marks': {'General': [True, True]}})
    action(admin_client, quiz_id, 'close_marking')
    action(admin_client, quiz_id, 'show_leaderboard')
    action(admin_client, quiz_id, 'end')
    return quiz_id, pub_id, alice, bob


def test_players_see_their_marked_sheets(flask_app, admin_client, make_user):
    quiz_id, pub_id, alice, bob = _finish_pair_quiz(flask_app, admin_client, make_user)
    expected = [{
        'part': 1,
        'rounds': [{'round_name': 'General', 'num_questions': 2}],
        'answers': {'General': ['Paris', 'Jupiter']},
        'marks': {'General': [True, True]},
        'score': 2,
    }]
    assert room(alice, quiz_id, pub_id)['my_results'] == expected

    # results outlive the answer sheets
    action(admin_client, quiz_id, 'cleanup')
    assert room(alice, quiz_id, pub_id)['my_results'] == expected
    assert room(bob, quiz_id, pub_id)['my_results'][0]['score'] == 1


def test_deleted_marker_keeps_other_players_scores(flask_app, admin_client, make_user):
    quiz_id, pub_id, alice, bob = _finish_pair_quiz(flask_app, admin_client, make_user)
    assert alice.delete('/api/auth/me').status_code == 200

    listing = bob.get('/api/live/quizzes').get_json()
    assert listing[0]['my_stats'] == {'total_score': 1, 'pub_position': 1, 'global_position': 1}
    board = room(bob, quiz_id, pub_id)['leaderboard']
    assert [e['name'] for e in board['pub_entries']] == ['bob']
    with flask_app.app_context():
        rows = LiveScore.query.filter_by(quiz_id=quiz_id).all()
        assert [(r.target_username, r.marker_id) for r in rows] == [('bob', None)]


def test_join_counts_members_from_the_database(flask_app, admin_client, make_user):
    quiz = create_quiz(admin_client, max_teams=1)
    _, alice = make_user('alice')
    _, bob = make_user('bob')
    with flask_app.app_context():
        live = db.session.get(LiveQuiz, quiz['id'])
        quiz_pub = live.pubs[0]
        assert quiz_pub.members == []
        # another request fills the pub after this session loaded it
        db.session.execute(insert(PubMember).values(quiz_id=live.id, quiz_pub_id=quiz_pub.id, user_id=alice['id']))
        bob_user = db.session.get(User, bob['id'])
        with pytest.raises(ApiError) as full:
            quizzes.join_pub(live, bob_user, quiz_pub.id)
        assert full.value.status_code == 409
        with pytest.raises(ApiError) as none_open:
            quizzes.join_random(live, bob_user)
        assert none_open.value.message == 'No available pubs!'


def test_action_debounce_forgets_old_clicks(flask_app, admin_client):
    flask_app.config['CONTROLLER_DEBOUNCE_MS'] = 60000
    _last_controller_action.clear()
    _last_controller_action['start:999:1'] = 0.0
    quiz = create_quiz(admin_client)
    try:
        assert action(admin_client, quiz['id'], 'start').status_code == 200
        repeat = action(admin_client, quiz['id'], 'start')
        assert repeat.status_code == 202
        assert repeat.get_json() == {'message': 'debounced'}
        assert 'start:999:1' not in _last_controller_action
        assert len(_last_controller_action) == 1
    finally:
        _last_controller_action.clear()
