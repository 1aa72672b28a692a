"""
HTTP API

Flask blueprint exposing the chain over HTTP:

    GET  /           full chain, newest last
    POST /           {"BPM": <int>} appends a block, returns it
    GET  /test       echoes the `name` query parameter
"""
import json

from flask import Blueprint, Flask, Response, current_app, jsonify, request

from ..blockchain.errors import ChainNotExtended, PayloadParseError, ValidationFailed
from ..blockchain.ledger import chain_to_json
from ..blockchain.producer import parse_payload
from ..integration.arbitrator import SubmissionArbitrator
from ..logs import get_logger

logger = get_logger(__name__)

chain_api = Blueprint('chain_api', __name__)

# Accepted body keys, in order of preference
PAYLOAD_KEYS = ('BPM', 'payload')


def _arbitrator() -> SubmissionArbitrator:
    return current_app.extensions['pulsechain']


def _respond(data, status: int) -> Response:
    return Response(json.dumps(data, indent=2), status=status, mimetype='application/json')


@chain_api.route('/', methods=['GET'])
def get_chain():
    body = chain_to_json(_arbitrator().store.snapshot(), indent=2)
    return Response(body, status=200, mimetype='application/json')


@chain_api.route('/', methods=['POST'])
def write_block():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _respond({'error': 'request body must be a JSON object'}, 400)

    key = next((k for k in PAYLOAD_KEYS if k in data), None)
    if key is None:
        return _respond({'error': f"missing field: {PAYLOAD_KEYS[0]}"}, 400)

    try:
        block = _arbitrator().submit(parse_payload(data[key]))
    except PayloadParseError as e:
        return _respond({'error': str(e)}, 400)
    except ValidationFailed as e:
        return _respond({'error': str(e)}, 422)
    except ChainNotExtended as e:
        return _respond({'error': str(e)}, 409)

    return _respond(block.to_dict(), 201)


@chain_api.route('/test', methods=['GET'])
def test_echo():
    return jsonify({'name': request.args.get('name', '')})


def create_app(arbitrator: SubmissionArbitrator) -> Flask:
    """Build the Flask app serving one arbitrator."""
    app = Flask(__name__)
    app.extensions['pulsechain'] = arbitrator
    app.register_blueprint(chain_api)
    logger.debug("HTTP API created")
    return app
