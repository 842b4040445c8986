from bluffmaster.services.game.deck import rank_of


def received(sio_client):
    return sio_client.get_received('/ws')


def named(packets, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in packets if pkt['name'] == name]


def join(sio_client, code, name):
    sio_client.emit('join-room', {'roomCode': code, 'playerName': name}, namespace='/ws')
    packets = received(sio_client)
    return named(packets, 'player-id')[0], packets


def test_socket_connect_and_join(sio_client):
    assert sio_client.is_connected('/ws')
    assert any(pkt['name'] == 'connected' for pkt in received(sio_client))

    player_id, packets = join(sio_client, 'abcd', 'Alice')
    assert player_id
    names = [pkt['name'] for pkt in packets]
    assert 'room-joined' in names
    state = named(packets, 'game-state')[-1]
    assert state['roomCode'] == 'ABCD'
    assert state['hostId'] == player_id
    assert state['players'][0]['name'] == 'Alice'
    assert state['started'] is False


def test_join_is_broadcast_to_the_room(make_sio_client):
    host, guest = make_sio_client(), make_sio_client()
    join(host, 'ROOM', 'Alice')
    received(host)
    join(guest, 'ROOM', 'Bob')

    roster = named(received(host), 'room-joined')[-1]['players']
    assert [p['name'] for p in roster] == ['Alice', 'Bob']
    assert [p['isHost'] for p in roster] == [True, False]


def test_rejection_only_reaches_requester(make_sio_client):
    host, guest = make_sio_client(), make_sio_client()
    join(host, 'NOPE', 'Alice')
    join(guest, 'NOPE', 'Bob')
    received(host)

    guest.emit('start-game', {'roomCode': 'NOPE'}, namespace='/ws')
    errors = named(received(guest), 'error')
    assert errors and errors[0]['code'] == 'not_host'
    assert named(received(host), 'error') == []


def test_start_deals_private_hands(make_sio_client):
    host, guest = make_sio_client(), make_sio_client()
    join(host, 'DEAL', 'Alice')
    join(guest, 'DEAL', 'Bob')
    received(host)

    host.emit('start-game', {'roomCode': 'DEAL'}, namespace='/ws')
    host_packets, guest_packets = received(host), received(guest)
    host_hand = named(host_packets, 'your-cards')[0]
    guest_hand = named(guest_packets, 'your-cards')[0]
    assert len(host_hand) == 26 and len(guest_hand) == 26
    assert not set(host_hand) & set(guest_hand)
    # Only one private hand each
    assert len(named(host_packets, 'your-cards')) == 1
    assert named(guest_packets, 'game-started')


def test_play_then_call_bluff_flow(make_sio_client, engine_of):
    host, guest = make_sio_client(), make_sio_client()
    host_id, _ = join(host, 'FLOW', 'Alice')
    guest_id, _ = join(guest, 'FLOW', 'Bob')
    received(host)
    host.emit('start-game', {'roomCode': 'FLOW'}, namespace='/ws')
    hand = named(received(host), 'your-cards')[0]
    received(guest)

    card = hand[0]
    host.emit('play-cards', {'roomCode': 'FLOW', 'cards': [card], 'claimedRank': rank_of(card)},
              namespace='/ws')
    guest_packets = received(guest)
    play = named(guest_packets, 'play-made')[0]
    assert play == {'playerId': host_id, 'playerName': 'Alice', 'count': 1, 'rank': rank_of(card)}
    # The card itself is never broadcast
    assert named(guest_packets, 'your-cards') == []
    assert named(guest_packets, 'game-state')[-1]['currentPlayerId'] == guest_id
    assert len(named(received(host), 'your-cards')[0]) == 25

    guest.emit('call-bluff', {'roomCode': 'FLOW'}, namespace='/ws')
    outcome = named(received(host), 'bluff-called')[0]
    assert outcome['wasBluff'] is False
    assert outcome['penalizedPlayerId'] == guest_id
    assert outcome['revealedCards'] == [card]
    assert len(named(received(guest), 'your-cards')[0]) == 27
    room = engine_of.get_room('FLOW')
    assert room.current_player.id == host_id
    assert room.current_rank is None


def test_out_of_turn_play_is_rejected(make_sio_client):
    host, guest = make_sio_client(), make_sio_client()
    join(host, 'TURN', 'Alice')
    join(guest, 'TURN', 'Bob')
    host.emit('start-game', {'roomCode': 'TURN'}, namespace='/ws')
    hand = named(received(guest), 'your-cards')[0]

    guest.emit('play-cards', {'roomCode': 'TURN', 'cards': [hand[0]], 'claimedRank': 'A'},
               namespace='/ws')
    errors = named(received(guest), 'error')
    assert errors[0]['code'] == 'not_your_turn'


def test_bot_answers_after_human_move(sio_client, engine_of):
    host_id, _ = join(sio_client, 'BOTS', 'Alice')
    sio_client.emit('add-bot', {'roomCode': 'BOTS'}, namespace='/ws')
    roster = named(received(sio_client), 'room-joined')[-1]['players']
    assert roster[1]['isBot'] is True and roster[1]['name'] == 'Bot 1'

    sio_client.emit('start-game', {'roomCode': 'BOTS'}, namespace='/ws')
    hand = named(received(sio_client), 'your-cards')[0]
    card = hand[0]
    sio_client.emit('play-cards', {'roomCode': 'BOTS', 'cards': [card], 'claimedRank': rank_of(card)},
                    namespace='/ws')
    packets = received(sio_client)

    plays = named(packets, 'play-made')
    calls = named(packets, 'bluff-called')
    # The bot either answers with its own claim or challenges the honest one and loses
    assert len(plays) == 2 or calls
    if calls:
        assert calls[0]['penalizedPlayerId'] == roster[1]['id']
    assert engine_of.get_room('BOTS').current_player.id == host_id


def test_host_disconnect_hands_over_host(make_sio_client):
    host, guest = make_sio_client(), make_sio_client()
    join(host, 'HOST', 'Alice')
    guest_id, _ = join(guest, 'HOST', 'Bob')

    host.disconnect(namespace='/ws')
    roster = named(received(guest), 'room-joined')[-1]['players']
    assert [p['id'] for p in roster] == [guest_id]
    assert roster[0]['isHost'] is True


def test_last_human_leaving_closes_room(sio_client, client, engine_of):
    join(sio_client, 'GONE', 'Alice')
    sio_client.emit('add-bot', {'roomCode': 'GONE'}, namespace='/ws')
    sio_client.disconnect(namespace='/ws')

    assert engine_of.get_room('GONE') is None
    assert client.get('/api/rooms/GONE/state').status_code == 404


def test_disconnect_leaves_every_joined_room(make_sio_client, engine_of):
    roamer, stayer = make_sio_client(), make_sio_client()
    join(roamer, 'one', 'Alice')
    stayer_id, _ = join(stayer, 'one', 'Bob')
    join(roamer, 'two', 'Alice')
    received(stayer)

    roamer.disconnect(namespace='/ws')
    assert [p.id for p in engine_of.get_room('ONE').players] == [stayer_id]
    assert engine_of.get_room('ONE').host_id == stayer_id
    assert engine_of.get_room('TWO') is None
    roster = named(received(stayer), 'room-joined')[-1]['players']
    assert [p['id'] for p in roster] == [stayer_id]
