from flask import Blueprint, jsonify

from spyfall.errors import GameError
from spyfall.events import RoomSummary
from spyfall.locations import catalog_to_dict, sorted_locations
from spyfall.services.rooms import get_registry

rooms = Blueprint('rooms', __name__)


@rooms.errorhandler(GameError)
def handle_game_error(exc):
    status = 404 if exc.code == 'RoomNotFound' else 400
    return jsonify({'error': exc.message, 'code': exc.code}), status


@rooms.route('/locations', methods=['GET'])
def get_locations():
    """
    Returns the location catalog, flat and grouped by category.
    """
    return jsonify({
        'locations': sorted_locations(),
        'categories': catalog_to_dict(),
    }), 200


@rooms.route('/rooms/<string:room_code>', methods=['GET'])
def get_room(room_code):
    """
    Returns a public summary of a room. Never includes roles or the location.
    """
    game = get_registry().get_room(room_code)
    with game.lock:
        summary = RoomSummary.of(game)
    return jsonify(summary.model_dump(by_alias=True)), 200
