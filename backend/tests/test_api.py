"""
Tests for the API boundary helpers.
"""
import logging
from decimal import Decimal

from helpers import api_event, response_body
from shared.api import api_handler
from shared.errors import InsufficientBalance
from shared.logging import log_event
from shared.utils import format_response


def test_decimals_serialize_as_numbers():
    response = format_response(200, {'coin': Decimal('50'), 'cash': Decimal('12.50')})

    assert response_body(response) == {'coin': 50, 'cash': 12.5}
    assert response['headers']['Access-Control-Allow-Origin'] == '*'
    assert response['headers']['Content-Type'] == 'application/json'


def test_error_payload_carries_details():
    @api_handler
    def handler(event, context):
        raise InsufficientBalance('Not enough coins', {'balance': 100, 'required': 250})

    response = handler(api_event('worker@x.io'), None)

    assert response['statusCode'] == 409
    assert response_body(response) == {
        'error': 'InsufficientBalance',
        'message': 'Not enough coins',
        'details': {'balance': 100, 'required': 250},
    }


def test_log_event_leaves_out_body(caplog):
    caplog.set_level(logging.INFO, logger='microjob')
    event = api_event('worker@x.io', body={'accountNumber': '01700000000'}, path={'taskId': 't1'})

    log_event(event)

    assert 'worker@x.io' in caplog.text
    assert 't1' in caplog.text
    assert '01700000000' not in caplog.text
