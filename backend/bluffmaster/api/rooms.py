from flask import Blueprint, current_app, jsonify

from bluffmaster.services.game import GameError, public_state

rooms = Blueprint('rooms', __name__)


@rooms.route('/<string:room_code>/state', methods=['GET'])
def get_room_state(room_code):
    """Public snapshot of a room, the same payload broadcast as game-state."""
    engine = current_app.extensions['game_engine']
    try:
        room = engine.get_room(room_code)
    except GameError as exc:
        return jsonify({'error': str(exc)}), 404
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(public_state(room))
