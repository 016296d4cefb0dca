"""
API tests for `api/webhook.py` and `api/health.py` using FastAPI's TestClient.

Covers:
- POST /api/webhook: first turn of a new session through the default conversation, a follow-up
  turn carrying the returned contexts, containment of handler errors (still 200) and request validation (422)
- GET /health: status and registry summary
"""

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from core import Intent, Orchestrator, Sequence
from main import build_orchestrator, create_app

SESSION = 'projects/acme/locations/us-east1/agent/sessions/s-1'
CONTEXT_PREFIX = 'projects/acme/agent/sessions/s-1/contexts/'


def webhook_body(action, fulfillment_text='', contexts=None, payload=None):
    return {
        'session': SESSION,
        'queryResult': {
            'queryText': 'hi',
            'action': action,
            'fulfillmentText': fulfillment_text,
            'outputContexts': contexts or [],
        },
        'originalDetectIntentRequest': {'payload': payload or {}},
    }


def contexts_by_name(body):
    return {c['name'][len(CONTEXT_PREFIX):]: c for c in body['outputContexts']}


def test_first_turn_answers_welcome():
    client = TestClient(create_app(build_orchestrator()))

    resp = client.post('/api/webhook', json=webhook_body(
        'welcome', 'Hi, how can I help?', payload={'customerIdentified': 'true', 'interactionSource': 'chat'},
    ))

    assert resp.status_code == 200
    body = resp.json()
    assert body['fulfillmentText'] == 'Hi, how can I help?'
    assert 'followupEventInput' not in body
    session = contexts_by_name(body)['sessionprops']
    assert session['lifespanCount'] == 99
    assert session['parameters']['sessionInitialized'] == '1'
    assert session['parameters']['customerIdentified'] == '1'
    assert session['parameters']['customerValidated'] == '0'
    assert session['parameters']['responseAlreadySet'] == '0'
    assert session['parameters']['sessionId'] == 's-1'


def test_follow_up_turn_reuses_returned_contexts():
    orchestrator = build_orchestrator()
    client = TestClient(create_app(orchestrator))
    first = client.post('/api/webhook', json=webhook_body('welcome', 'Hello!')).json()

    resp = client.post('/api/webhook', json=webhook_body(
        'input.unknown', 'Sorry, say that again?', contexts=first['outputContexts'],
    ))

    body = resp.json()
    assert body['fulfillmentText'] == 'Sorry, say that again?'
    session = contexts_by_name(body)['sessionprops']
    assert session['parameters']['lastFulfillmentText'] == 'Sorry, say that again?'


def test_handler_error_still_returns_200():
    orchestrator = Orchestrator()
    orchestrator.register_sequence(Sequence(name='welcome', activity='greeting each other', navigate=MagicMock()))
    orchestrator.register_intent(Intent(action='welcome', handler=MagicMock(side_effect=RuntimeError('boom'))))
    client = TestClient(create_app(orchestrator))

    resp = client.post('/api/webhook', json=webhook_body('welcome'))

    assert resp.status_code == 200
    assert resp.json()['fulfillmentText'] == ''
    session = contexts_by_name(resp.json())['sessionprops']
    assert session['parameters']['responseAlreadySet'] == '0'


def test_missing_session_is_rejected():
    client = TestClient(create_app(build_orchestrator()))

    resp = client.post('/api/webhook', json={'queryResult': {'action': 'welcome'}})

    assert resp.status_code == 422


def test_health_reports_registry():
    client = TestClient(create_app(build_orchestrator()))

    resp = client.get('/health')

    assert resp.status_code == 200
    body = resp.json()
    assert body['status'] == 'ok'
    assert body['registry']['sequences'] == ['authentication', 'reasonforcontact', 'welcome']
    assert body['registry']['intents'] == 1
