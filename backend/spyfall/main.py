from flask import Blueprint, jsonify

from spyfall.services.rooms import get_registry

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Spyfall game server!'})


@main.route('/healthz')
def health():
    return jsonify({'status': 'ok', 'rooms': len(get_registry())}), 200
