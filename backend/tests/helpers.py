"""
Helpers for faking DynamoDB responses and API Gateway events.
"""
import json
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from shared.dynamo import serialize

# Cancellation reason for a transaction item whose condition held
OK = {'Code': 'None'}


def client_error(code: str, operation: str = 'UpdateItem', **extra) -> ClientError:
    response = {'Error': {'Code': code, 'Message': code}}
    response.update(extra)
    return ClientError(response, operation)


def condition_failed(old_item: Optional[Dict[str, Any]] = None) -> ClientError:
    """ConditionalCheckFailedException as returned with ALL_OLD."""
    extra = {'Item': serialize(old_item)} if old_item else {}
    return client_error('ConditionalCheckFailedException', **extra)


def failed(old_item: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Cancellation reason for a transaction item whose condition failed."""
    reason = {'Code': 'ConditionalCheckFailed', 'Message': 'The conditional request failed'}
    if old_item:
        reason['Item'] = serialize(old_item)
    return reason


def cancelled(*reasons: Dict[str, Any]) -> ClientError:
    return client_error(
        'TransactionCanceledException',
        'TransactWriteItems',
        CancellationReasons=list(reasons),
    )


def transact_items(storage) -> list:
    """TransactItems of the last transact_write_items call."""
    return storage.client.transact_write_items.call_args.kwargs['TransactItems']


def update_params(storage) -> dict:
    """Params of the last low-level update_item call."""
    return storage.client.update_item.call_args.kwargs


def api_event(
    email: Optional[str] = None,
    body: Optional[Dict[str, Any]] = None,
    path: Optional[Dict[str, str]] = None,
    query: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """API Gateway proxy event with Cognito claims for ``email``."""
    event = {
        'httpMethod': 'POST',
        'body': json.dumps(body) if body is not None else None,
        'pathParameters': path,
        'queryStringParameters': query,
        'requestContext': {},
    }
    if email:
        event['requestContext'] = {'authorizer': {'claims': {'email': email, 'sub': 'sub-' + email}}}
    return event


def response_body(response: Dict[str, Any]) -> Dict[str, Any]:
    return json.loads(response['body'])
