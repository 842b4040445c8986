from flask_socketio import join_room, emit
from bluffmaster import socketio
from flask import current_app, request
from bluffmaster.services.game import GameError, Outcome
from typing import Dict, Set

NAMESPACE = '/ws'

# A connection may be seated in several rooms at once
_sid_to_rooms: Dict[str, Set[str]] = {}
_scheduled_bot_rooms: Set[str] = set()
_scheduled_cleanups: Set[str] = set()


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(reason=None):
    sid = _get_sid()
    app = current_app._get_current_object()
    for room_code in sorted(_sid_to_rooms.pop(sid, ())):
        _after(app, _engine().disconnect(room_code, sid))


def handle_join_room(data):
    room_code = _room_code(data)
    player_name = (data or {}).get('playerName')

    def _join():
        outcome = _engine().join(room_code, player_name, _get_sid())
        # Subscribe before the room-wide broadcasts go out
        join_room(_channel(outcome.room_code))
        _sid_to_rooms.setdefault(_get_sid(), set()).add(outcome.room_code)
        return outcome

    _run(_join)


def handle_add_bot(data):
    room_code = _room_code(data)
    _run(lambda: _engine().add_bot(room_code, _get_sid()))


def handle_start_game(data):
    room_code = _room_code(data)
    _run(lambda: _engine().start(room_code, _get_sid()))


def handle_play_cards(data):
    data = data or {}
    room_code = _room_code(data)
    cards = data.get('cards')
    if not isinstance(cards, list):
        cards = []
    _run(lambda: _engine().play(room_code, _get_sid(), cards, data.get('claimedRank')))


def handle_call_bluff(data):
    room_code = _room_code(data)
    _run(lambda: _engine().call_bluff(room_code, _get_sid()))


def handle_pass(data):
    room_code = _room_code(data)
    _run(lambda: _engine().pass_turn(room_code, _get_sid()))

# ---- Delivery and follow-up scheduling ----

def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore

def _engine():
    return current_app.extensions['game_engine']

def _channel(room_code: str) -> str:
    return f"room:{room_code}"

def _room_code(data) -> str:
    return str((data or {}).get('roomCode') or '').strip().upper()

def _run(action) -> None:
    """Apply one engine transition for the requesting socket.

    Rejections go back to the requester only; successful outcomes are
    delivered and may schedule bot turns or room cleanup.
    """
    app = current_app._get_current_object()
    try:
        outcome = action()
    except GameError as exc:
        app.logger.info(f"[rejected] sid={_get_sid()} code={exc.code} message={exc}")
        emit('error', exc.to_dict())
        return
    _after(app, outcome)

def _deliver(outcome: Outcome) -> None:
    for event in outcome.events:
        target = event.to or _channel(outcome.room_code)
        socketio.emit(event.name, event.payload, to=target, namespace=NAMESPACE)

def _after(app, outcome: Outcome) -> None:
    _deliver(outcome)
    if outcome.persistence_error is not None:
        app.logger.error(f"[persist-error] room={outcome.room_code} error={outcome.persistence_error}")
    if outcome.room_closed:
        for sid, codes in list(_sid_to_rooms.items()):
            codes.discard(outcome.room_code)
            if not codes:
                _sid_to_rooms.pop(sid, None)
        _scheduled_bot_rooms.discard(outcome.room_code)
        return
    if outcome.game_over:
        _schedule_cleanup(app, outcome.room_code)
        return
    _schedule_bot_turn(app, outcome.room_code)

def _schedule_bot_turn(app, room_code: str) -> None:
    """Let a bot act after a short presentation delay.

    The bot move is an ordinary engine transition: it takes the room lock
    and re-checks that a bot still holds the turn, so a human action that
    lands first simply wins. In TESTING mode the move runs inline.
    """
    engine = app.extensions['game_engine']
    if room_code in _scheduled_bot_rooms or not engine.bot_to_move(room_code):
        return
    _scheduled_bot_rooms.add(room_code)

    def _worker(code: str, delay: float):
        if delay > 0:
            socketio.sleep(delay)
        with app.app_context():
            _scheduled_bot_rooms.discard(code)
            try:
                outcome = engine.run_bot_turn(code)
            except GameError as exc:
                app.logger.warning(f"[bot-rejected] room={code} code={exc.code} message={exc}")
                return
            if outcome.events:
                _after(app, outcome)

    if app.config.get('TESTING'):
        _worker(room_code, 0)
    else:
        socketio.start_background_task(_worker, room_code, float(app.config.get('BOT_MOVE_DELAY_SEC', 0)))

def _schedule_cleanup(app, room_code: str) -> None:
    # Finished rooms linger so clients can show the results; no-op in TESTING
    if app.config.get('TESTING') and not app.config.get('ENABLE_CLEANUP_IN_TESTS'):
        return
    if room_code in _scheduled_cleanups:
        return
    _scheduled_cleanups.add(room_code)

    def _worker(code: str, delay: float):
        if delay > 0:
            socketio.sleep(delay)
        with app.app_context():
            _scheduled_cleanups.discard(code)
            outcome = app.extensions['game_engine'].discard_room(code)
            _after(app, outcome)
            app.logger.info(f"[cleanup] room={code} discarded after game over")

    delay = float(app.config.get('GAME_OVER_CLEANUP_SEC', 5))
    if app.config.get('TESTING'):
        _worker(room_code, 0)
    else:
        socketio.start_background_task(_worker, room_code, delay)


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('join-room', handle_join_room, namespace=NAMESPACE)
    socketio.on_event('add-bot', handle_add_bot, namespace=NAMESPACE)
    socketio.on_event('start-game', handle_start_game, namespace=NAMESPACE)
    socketio.on_event('play-cards', handle_play_cards, namespace=NAMESPACE)
    socketio.on_event('call-bluff', handle_call_bluff, namespace=NAMESPACE)
    socketio.on_event('pass', handle_pass, namespace=NAMESPACE)
