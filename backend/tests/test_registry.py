import pytest

from spyfall.errors import (
    AlreadyInRoom,
    ConnectionLimitExceeded,
    InvalidName,
    InvalidRoomCode,
    NameTaken,
    RoomFull,
    RoomNotFound,
    RoomNotJoinable,
)
from spyfall.models import ENDED, LOBBY, PLAYING, VOTING
from spyfall.sanitize import ROOM_CODE_ALPHABET
from spyfall.services import games
from spyfall.services import rooms as rooms_module


def test_create_room_seats_host(registry, sent):
    game, player = registry.create_room('host', '  Alice ')
    assert len(game.code) == 4
    assert set(game.code) <= set(ROOM_CODE_ALPHABET)
    assert game.phase == LOBBY
    assert player.name == 'Alice'
    assert player.is_host and game.host_id == 'host'
    assert registry.resolve_player('host') == (game, player)
    assert registry.get_room(game.code.lower()) is game


def test_create_room_rejects_short_name(registry):
    with pytest.raises(InvalidName):
        registry.create_room('host', 'A')
    assert len(registry) == 0


def test_room_codes_are_collision_checked(registry, monkeypatch):
    codes = iter(['AAAA', 'AAAA', 'AAAA', 'BBBB'])
    monkeypatch.setattr(rooms_module, 'generate_room_code', lambda: next(codes))
    first, _ = registry.create_room('one', 'First')
    second, _ = registry.create_room('two', 'Second')
    assert (first.code, second.code) == ('AAAA', 'BBBB')


def test_join_room(registry, seat):
    game, sids = seat(2)
    _, player = registry.join_room('new', game.code.lower(), 'Carol')
    assert not player.is_host
    assert len(game.players) == 3
    assert registry.resolve_player('new')[0] is game


def test_join_errors(registry, seat, sent):
    game, sids = seat(4)
    with pytest.raises(InvalidRoomCode):
        registry.join_room('x', 'TOO-LONG', 'Xavier')
    with pytest.raises(RoomNotFound):
        registry.join_room('x', 'ZZZZ' if game.code != 'ZZZZ' else 'YYYY', 'Xavier')
    with pytest.raises(NameTaken):
        registry.join_room('x', game.code, 'Player 1')
    with pytest.raises(AlreadyInRoom):
        registry.join_room(sids[1], game.code, 'Someone')

    # Names are compared case-sensitively
    registry.join_room('x', game.code, 'player 1')

    games.start_game(game, sids[0])
    with pytest.raises(RoomNotJoinable):
        registry.join_room('late', game.code, 'Latecomer')


def test_join_full_room(registry, seat):
    game, _ = seat(15)
    with pytest.raises(RoomFull):
        registry.join_room('sixteen', game.code, 'Sixteenth')
    assert len(game.players) == 15


def test_host_departure_promotes_earliest_member(registry, seat, sent):
    game, sids = seat(4)
    departure = registry.leave_room(sids[0])
    assert departure.player.id == sids[0]
    assert not departure.room_destroyed
    assert len(game.players) == 3
    hosts = [p for p in game.players.values() if p.is_host]
    assert [p.id for p in hosts] == [sids[1]]
    assert game.host_id == sids[1]
    assert registry.resolve_player(sids[0]) is None

    (left,) = [data for event, data, _ in sent if event == 'playerLeft']
    assert left['newHost'] == sids[1]
    assert left['player']['id'] == sids[0]
    assert len(left['players']) == 3


def test_last_player_leaving_destroys_room(registry, seat):
    game, sids = seat(1)
    departure = registry.leave_room(sids[0])
    assert departure.room_destroyed
    assert game.closed
    with pytest.raises(RoomNotFound):
        registry.get_room(game.code)
    assert registry.leave_room(sids[0]) is None


def test_destroying_a_room_cancels_its_countdown(registry, seat, sent):
    game, sids = seat(4)
    games.start_game(game, sids[0])
    countdown = game.countdown
    for sid in sids:
        registry.leave_room(sid)
    assert countdown.cancelled
    assert game.countdown is None
    assert len(registry) == 0


def test_spy_leaving_ends_round(registry, seat, sent):
    game, sids = seat(5)
    games.start_game(game, sids[0])
    spy_id = game.spy_id
    registry.leave_room(spy_id)
    assert game.phase == ENDED
    (result,) = [data for event, data, _ in sent if event == 'gameEnded']
    assert result['reason'] == 'spy_left'
    assert result['winner'] == 'non-spies'
    assert result['spy']['id'] == spy_id


def test_roster_below_minimum_ends_round(registry, seat, sent):
    game, sids = seat(4)
    games.start_game(game, sids[0])
    leaver = next(sid for sid in sids if sid != game.spy_id)
    registry.leave_room(leaver)
    assert game.phase == ENDED
    (result,) = [data for event, data, _ in sent if event == 'gameEnded']
    assert result['reason'] == 'not_enough_players'
    assert result['winner'] is None


def test_departure_during_vote_can_complete_the_tally(registry, seat, sent):
    game, sids = seat(6)
    games.start_game(game, sids[0])
    games.call_vote(game, sids[0])
    innocents = [sid for sid in sids if sid != game.spy_id]
    straggler = innocents[-1]
    for sid in sids:
        if sid != straggler:
            target = game.spy_id if sid != game.spy_id else innocents[0]
            games.submit_vote(game, sid, target)
    assert game.phase == VOTING

    registry.leave_room(straggler)
    assert game.phase == ENDED
    (result,) = [data for event, data, _ in sent if event == 'gameEnded']
    assert result['reason'] == 'spy_caught'


def test_sweep_destroys_expired_rooms(registry, seat, sent):
    old, old_sids = seat(4, prefix='old')
    games.start_game(old, old_sids[0])
    countdown = old.countdown
    fresh, _ = seat(2, prefix='fresh')
    old.created_at -= 7201

    assert registry.sweep() == 1
    assert countdown.cancelled
    assert old.closed
    with pytest.raises(RoomNotFound):
        registry.get_room(old.code)
    assert registry.get_room(fresh.code) is fresh
    assert registry.resolve_player(old_sids[1]) is None
    closed = [data for event, data, _ in sent if event == 'roomClosed']
    assert closed == [{'roomCode': old.code, 'reason': 'expired'}]


def test_connection_guard_limits_per_address(registry, flask_app):
    flask_app.config['MAX_CONNECTIONS_PER_ADDRESS'] = 3
    for i in range(3):
        registry.register_connection(f'c{i}', '10.0.0.1')
    with pytest.raises(ConnectionLimitExceeded):
        registry.register_connection('c3', '10.0.0.1')
    registry.register_connection('other', '10.0.0.2')

    registry.release_connection('c0')
    registry.release_connection('c0')
    assert registry.connections_from('10.0.0.1') == 2
    registry.register_connection('c3', '10.0.0.1')


def test_room_state_is_public_but_secret_free(client, seat):
    game, sids = seat(4)
    games.start_game(game, sids[0])
    res = client.get(f'/api/rooms/{game.code.lower()}')
    assert res.status_code == 200
    data = res.get_json()
    assert data['roomCode'] == game.code
    assert data['phase'] == PLAYING
    assert data['host'] == 'Player 0'
    assert data['playerCount'] == 4
    assert set(data) == {'roomCode', 'phase', 'host', 'players', 'playerCount'}
    assert game.location not in data['players']


def test_missing_room_is_404(client):
    res = client.get('/api/rooms/QQQQ')
    assert res.status_code == 404
    assert res.get_json()['code'] == 'RoomNotFound'
    assert client.get('/api/rooms/bad!').status_code == 400


def test_locations_and_health(client):
    data = client.get('/api/locations').get_json()
    assert 'Beach' in data['locations']
    assert 'Travel' in data['categories']
    assert client.get('/healthz').get_json()['status'] == 'ok'
    assert 'Spyfall' in client.get('/').get_json()['message']


def test_close_room_command(flask_app, registry, seat, sent):
    game, sids = seat(4)
    games.start_game(game, sids[0])
    countdown = game.countdown
    runner = flask_app.test_cli_runner()

    listing = runner.invoke(args=['rooms'])
    assert game.code in listing.output

    result = runner.invoke(args=['close-room', game.code.lower()])
    assert result.exit_code == 0
    assert f'Closed room {game.code}.' in result.output
    assert countdown.cancelled
    with pytest.raises(RoomNotFound):
        registry.get_room(game.code)
    assert registry.resolve_player(sids[1]) is None
    closed = [data for event, data, _ in sent if event == 'roomClosed']
    assert closed == [{'roomCode': game.code, 'reason': 'closed'}]

    missing = runner.invoke(args=['close-room', game.code])
    assert missing.exit_code != 0
    assert 'Room not found' in missing.output
    assert 'No live rooms.' in runner.invoke(args=['rooms']).output
