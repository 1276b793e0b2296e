from quizhub import db
from quizhub.models import LiveQuiz, LiveScore, MarkingAssignment, PubMember
from quizhub.services.live_quiz import leaderboard
from quizhub.services.live_quiz.marking import count_marks, derangement, shape_flags
from conftest import create_live_quiz, expire_stage, quiz_action


def test_derangement_has_no_fixed_points():
    for n in range(2, 9):
        for _ in range(25):
            perm = derangement(n)
            assert sorted(perm) == list(range(n))
            assert all(perm[i] != i for i in range(n))


def test_shape_flags_and_count():
    rounds = [{'round_name': 'General', 'num_questions': 3}, {'round_name': 'Music', 'num_questions': 1}]
    shaped = shape_flags(rounds, {'General': [1, 0], 'Music': 'yes', 'Extra': [True]})
    assert shaped == {'General': [True, False, False], 'Music': [False]}
    assert count_marks(shaped) == 1
    assert shape_flags(rounds, None) == {'General': [False, False, False], 'Music': [False]}


def _play_first_part(flask_app, admin, quiz, players):
    """Join players to pubs, answer, lock and let the lock expire."""
    quiz_id = quiz['id']
    for (player, _), pub_id, sheet in players:
        assert player.post(f'/api/live/quizzes/{quiz_id}/join', json={'pub_id': pub_id}).status_code == 201
    quiz_action(admin, quiz_id, 'start')
    expire_stage(flask_app, quiz_id)
    for (player, _), pub_id, sheet in players:
        res = player.put(f'/api/live/quizzes/{quiz_id}/pubs/{pub_id}/answers', json={'answers': {'General': sheet}})
        assert res.status_code == 200
    quiz_action(admin, quiz_id, 'lock')
    expire_stage(flask_app, quiz_id)


def test_assignments_stay_inside_each_pub(flask_app, admin_client, make_user):
    quiz = create_live_quiz(admin_client, pubs=2)
    pub_a, pub_b = [p['id'] for p in quiz['pubs']]
    players = [
        (make_user('alice'), pub_a, ['a', 'b']),
        (make_user('bob'), pub_a, ['c', 'd']),
        (make_user('carol'), pub_a, ['e', 'f']),
        (make_user('dave'), pub_b, ['g', 'h']),
        (make_user('erin'), pub_b, ['i', 'j']),
    ]
    _play_first_part(flask_app, admin_client, quiz, players)

    assert quiz_action(admin_client, quiz['id'], 'assign').status_code == 200
    # re-assigning replaces the earlier set
    assert quiz_action(admin_client, quiz['id'], 'assign').status_code == 200

    with flask_app.app_context():
        rows = MarkingAssignment.query.filter_by(quiz_id=quiz['id'], part=1).all()
        assert len(rows) == 5
        pub_of = {m.user_id: m.quiz_pub_id for m in PubMember.query.filter_by(quiz_id=quiz['id'])}
        for row in rows:
            assert row.marker_id != row.target_user_id
            assert pub_of[row.marker_id] == pub_of[row.target_user_id] == row.quiz_pub_id
            assert row.answer.user_id == row.target_user_id
        assert sorted(r.target_user_id for r in rows) == sorted(pub_of)


def test_marking_drafts_and_submission(flask_app, admin_client, make_user):
    quiz = create_live_quiz(admin_client)
    quiz_id, pub_id = quiz['id'], quiz['pubs'][0]['id']
    alice = make_user('alice')
    bob = make_user('bob')
    _play_first_part(flask_app, admin_client, quiz, [(alice, pub_id, ['x', 'y']), (bob, pub_id, ['z', ''])])
    base = f'/api/live/quizzes/{quiz_id}/pubs/{pub_id}/marking'
    alice_client = alice[0]

    closed = alice_client.put(base, json={'marks': {'General': [True, True]}})
    assert closed.status_code == 409
    assert closed.get_json()['error'] == 'Marking is not open'

    quiz_action(admin_client, quiz_id, 'start_marking')
    draft = alice_client.put(base, json={'marks': {'General': [1]}, 'funny_flags': {'General': [False, True]}})
    assert draft.status_code == 200
    task = draft.get_json()['task']
    assert task['target_username'] == 'bob'
    assert task['marks'] == {'General': [True, False]}
    assert task['target_answers'] == {'General': ['z', '']}

    assert alice_client.post(f'{base}/submit', json={}).status_code == 400
    done = alice_client.post(f'{base}/submit', json={'marks': {'General': [True, False]}, 'funny_flags': task['funny_flags']})
    assert done.get_json() == {'success': True, 'score': 1, 'target_username': 'bob'}
    assert alice_client.put(base, json={'marks': {}}).status_code == 409

    with flask_app.app_context():
        board = leaderboard.part_leaderboard(db.session.get(LiveQuiz, quiz_id), 1, pub_id)
    assert board['pub_entries'] == [{'name': 'bob', 'score': 1, 'pub_name': 'The Crown 1'}]
    assert board['funny_answers'] == [{'round': 'General', 'question': 1, 'answer': '(No answer found)', 'team': 'bob'}]


def test_collecting_expiry_submits_drafts(flask_app, admin_client, make_user):
    quiz = create_live_quiz(admin_client, parts=[{'round_name': 'General', 'num_questions': 2}])
    quiz_id, pub_id = quiz['id'], quiz['pubs'][0]['id']
    alice = make_user('alice')
    bob = make_user('bob')
    _play_first_part(flask_app, admin_client, quiz, [(alice, pub_id, ['x', 'y']), (bob, pub_id, ['z', 'w'])])
    quiz_action(admin_client, quiz_id, 'start_marking')
    base = f'/api/live/quizzes/{quiz_id}/pubs/{pub_id}/marking'
    alice[0].put(base, json={'marks': {'General': [True, True]}})

    quiz_action(admin_client, quiz_id, 'close_marking')
    expire_stage(flask_app, quiz_id)
    dash = admin_client.get(f'/api/admin/quizzes/{quiz_id}/dashboard').get_json()
    assert dash['quiz']['status'] == 'collecting'
    assert dash['quiz']['stage_deadline'] is None
    assert dash['actions'][0]['label'] == 'Show Final Leaderboard'

    with flask_app.app_context():
        scores = {s.target_username: s.score for s in LiveScore.query.filter_by(quiz_id=quiz_id)}
    # bob's sheet was drafted by alice; alice's marker never touched hers
    assert scores == {'bob': 2, 'alice': 0}

    final = quiz_action(admin_client, quiz_id, 'show_leaderboard').get_json()
    assert final['stats']['scope'] == 'part'
    assert final['stats']['top_entries'][0]['name'] == 'bob'
