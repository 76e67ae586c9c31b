"""
API Gateway boundary for Lambda handlers.

Handlers raise MicrojobError subclasses; api_handler turns them into
structured JSON responses, and turns anything unexpected into a logged 500,
so no request can crash the function.
"""
import functools

from .errors import Internal, MicrojobError
from .logging import logger, log_event
from .utils import format_response


def api_handler(func):
    """Wrap a Lambda handler returning an API Gateway proxy response."""

    @functools.wraps(func)
    def wrapper(event, context):
        log_event(event)
        try:
            return func(event, context)
        except MicrojobError as e:
            logger.warning(f"{e.kind} ({e.status_code}) in {func.__module__}: {e.message}")
            return format_response(e.status_code, e.to_dict())
        except Exception:
            logger.exception(f"Unhandled error in {func.__module__}")
            error = Internal()
            return format_response(error.status_code, error.to_dict())

    return wrapper
