"""
Request and response helpers for the API Gateway proxy integration.
"""
import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from .errors import InvalidInput

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Credentials': True,
    'Access-Control-Allow-Headers': 'Content-Type,Authorization',
}


class DecimalEncoder(json.JSONEncoder):
    """DynamoDB numbers come back as Decimal: whole ones become int, the rest float."""

    def default(self, o):
        if isinstance(o, Decimal):
            return int(o) if o == o.to_integral_value() else float(o)
        return super().default(o)


def format_response(status_code: int, body: Any, headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Build a proxy response: JSON body, CORS headers, plus any ``headers`` given.
    """
    return {
        'statusCode': status_code,
        'headers': {**CORS_HEADERS, 'Content-Type': 'application/json', **(headers or {})},
        'body': json.dumps(body, cls=DecimalEncoder),
    }


def parse_body(event: dict) -> dict:
    """
    JSON object sent as the request body.

    A missing body, malformed JSON or a non-object payload all yield ``{}``;
    the operation's own validation then names the missing field.
    """
    raw = event.get('body')
    if not raw:
        return {}
    try:
        body = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def get_path_param(event: dict, param_name: str) -> Optional[str]:
    return (event.get('pathParameters') or {}).get(param_name)


def get_query_param(event: dict, param_name: str, default: Optional[str] = None) -> Optional[str]:
    return (event.get('queryStringParameters') or {}).get(param_name, default)


def require_path_param(event: dict, param_name: str) -> str:
    """Path parameter or InvalidInput."""
    value = get_path_param(event, param_name)
    if not value:
        raise InvalidInput(f'Missing {param_name}', {'field': param_name})
    return value


def utc_now() -> str:
    """Timezone-aware ISO timestamp; sorts lexicographically."""
    return datetime.now(timezone.utc).isoformat()
