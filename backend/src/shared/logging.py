"""
Logger shared by the handlers and the marketplace components.
"""
import json
import logging

from .config import config

logger = logging.getLogger('microjob')
logger.setLevel(config.LOG_LEVEL)

if not logger.handlers:
    _stream = logging.StreamHandler()
    _stream.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logger.addHandler(_stream)

# Request fields worth a log line; body and headers may carry tokens or account numbers
EVENT_FIELDS = ('httpMethod', 'resource', 'path', 'pathParameters', 'queryStringParameters')


def log_event(event: dict) -> None:
    """Log the routing part of an API Gateway event and the caller, if known."""
    try:
        summary = {k: event.get(k) for k in EVENT_FIELDS if event.get(k)}
        request_context = event.get('requestContext') or {}
        if request_context.get('requestId'):
            summary['requestId'] = request_context['requestId']
        claims = (request_context.get('authorizer') or {}).get('claims') or {}
        if claims.get('email'):
            summary['caller'] = claims['email']
        logger.info(f"Request: {json.dumps(summary, default=str)}")
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Could not log event: {e}")
