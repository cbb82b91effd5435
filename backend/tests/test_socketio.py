NS = '/ws'


def _events(sio_client, name):
    return [pkt['args'][0] for pkt in sio_client.get_received(NS) if pkt['name'] == name]


def _drain(*clients):
    for c in clients:
        c.get_received(NS)


def test_join_unknown_code(sio_factory, seeded_code):
    player = sio_factory()
    assert player.is_connected(NS)
    player.emit('join-session', {'code': 'nope', 'displayName': 'Alice'}, namespace=NS)
    assert _events(player, 'session-error') == [{'message': 'Quiz not found'}]


def test_full_round_over_socketio(flask_app, sio_factory, seeded_code, flask_timers):
    host = sio_factory()
    host.emit('host-session', {'code': seeded_code.lower()}, namespace=NS)
    hosted = _events(host, 'session-hosted')
    assert hosted and hosted[0]['code'] == 'ABCD1'
    assert hosted[0]['quizMeta']['totalPoints'] == 150

    alice = sio_factory()
    alice.emit('join-session', {'code': 'abcd1', 'displayName': 'Alice'}, namespace=NS)
    received = alice.get_received(NS)
    names = [pkt['name'] for pkt in received]
    assert 'joined-session' in names
    assert 'player-list' in names
    joined = next(pkt['args'][0] for pkt in received if pkt['name'] == 'joined-session')
    assert joined['quizMeta']['title'] == 'Capitals and sums'
    assert _events(host, 'player-joined') == [{'displayName': 'Alice', 'totalPlayers': 1}]

    # players cannot drive the session
    alice.emit('admin-start', {'code': 'ABCD1'}, namespace=NS)
    assert _events(alice, 'question-start') == []

    host.emit('admin-start', {'code': 'abcd1'}, namespace=NS)
    started = _events(alice, 'question-start')
    assert started[0]['index'] == 0
    assert 'correctAnswer' not in started[0]

    alice.emit('submit-answer', {'answer': 1, 'timeRemaining': 8}, namespace=NS)
    received = alice.get_received(NS)
    result = [pkt['args'][0] for pkt in received if pkt['name'] == 'answer-result']
    assert result == [{'isCorrect': True, 'points': 130, 'correctAnswer': 1}]
    assert [pkt['args'][0] for pkt in received if pkt['name'] == 'leaderboard-update'][-1] == [
        {'name': 'Alice', 'score': 130},
    ]
    _drain(host)

    flask_timers.advance(10)
    assert _events(alice, 'question-end') == [{'index': 0, 'correctAnswer': 1}]

    host.emit('admin-end', {'code': 'ABCD1'}, namespace=NS)
    ended = _events(alice, 'session-ended')
    assert ended == [{
        'finalLeaderboard': [{'position': 1, 'name': 'Alice', 'score': 130}],
        'totalQuestions': 2,
    }]


def test_disconnect_updates_leaderboard(sio_factory, seeded_code):
    alice = sio_factory()
    bob = sio_factory()
    alice.emit('join-session', {'code': seeded_code, 'displayName': 'Alice'}, namespace=NS)
    bob.emit('join-session', {'code': seeded_code, 'displayName': 'Bob'}, namespace=NS)
    _drain(alice, bob)

    bob.disconnect(namespace=NS)
    assert _events(alice, 'leaderboard-update') == [[{'name': 'Alice', 'score': 0}]]


def test_player_list_on_request(sio_factory, seeded_code):
    alice = sio_factory()
    viewer = sio_factory()
    alice.emit('join-session', {'code': seeded_code, 'displayName': 'Alice'}, namespace=NS)
    _drain(viewer)
    viewer.emit('get-player-list', {'code': 'abcd1'}, namespace=NS)
    players = _events(viewer, 'player-list')
    assert [p['name'] for p in players[0]] == ['Alice']


def test_malformed_payload_does_not_break_connection(sio_factory, seeded_code):
    player = sio_factory()
    player.emit('join-session', 'not a dict', namespace=NS)
    assert _events(player, 'session-error') == [{'message': 'Quiz code is required'}]
    player.emit('submit-answer', None, namespace=NS)
    assert player.is_connected(NS)


def test_switching_sessions_leaves_the_old_room(flask_app, sio_factory, seeded_code):
    from quizlive import db
    from quizlive.models import Quiz, Question
    other = Quiz(code='WXYZ9', title='Other')
    other.questions = [Question(position=0, prompt='?', options='["a", "b", "c", "d"]',
                                correct_answer=0, points=10, time_limit=10)]
    db.session.add(other)
    db.session.commit()

    alice = sio_factory()
    bob = sio_factory()
    alice.emit('join-session', {'code': seeded_code, 'displayName': 'Alice'}, namespace=NS)
    bob.emit('join-session', {'code': seeded_code, 'displayName': 'Bob'}, namespace=NS)
    alice.emit('join-session', {'code': 'wxyz9', 'displayName': 'Alice'}, namespace=NS)
    assert _events(bob, 'leaderboard-update')[-1] == [{'name': 'Bob', 'score': 0}]
    _drain(alice)

    carol = sio_factory()
    carol.emit('join-session', {'code': seeded_code, 'displayName': 'Carol'}, namespace=NS)
    assert _events(alice, 'player-joined') == []
    roster = flask_app.extensions['quiz_registry'].get(seeded_code).roster
    assert [p.display_name for p in roster.values()] == ['Bob', 'Carol']
