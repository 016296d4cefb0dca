"""
Unit tests for `config/logging_config.py`.

Covers the JSON rendering of log records by StructuredLogFormatter, including the turn fields
attached through `get_logger` adapters.
"""

import json
import logging

from config.logging_config import StructuredLogFormatter, get_logger


def _format_through_adapter(adapter, message):
    records = []

    class Capture(logging.Handler):
        def emit(self, record):
            records.append(record)

    handler = Capture()
    adapter.logger.addHandler(handler)
    try:
        adapter.warning(message)
    finally:
        adapter.logger.removeHandler(handler)
    return json.loads(StructuredLogFormatter().format(records[0]))


def test_adapter_fields_are_rendered():
    adapter = get_logger('tests.logging.fields', session_id='abc', sequence='billing', action='pay.bill')

    data = _format_through_adapter(adapter, 'paying')

    assert data['message'] == 'paying'
    assert data['level'] == 'WARNING'
    assert (data['session_id'], data['sequence'], data['action']) == ('abc', 'billing', 'pay.bill')


def test_adapter_defaults_when_turn_unknown():
    data = _format_through_adapter(get_logger('tests.logging.defaults'), 'idle')

    assert (data['session_id'], data['sequence'], data['action']) == ('no_session', 'no_sequence', 'no_action')
