import time

from flask import Blueprint, jsonify

main = Blueprint('main', __name__)


@main.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok', 'timestamp': int(time.time() * 1000)})
