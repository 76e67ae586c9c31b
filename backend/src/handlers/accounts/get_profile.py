"""
Get Profile Handler.
GET /users/me
"""
from shared.api import api_handler
from shared.auth import require_identity
from shared.services import Services
from shared.utils import format_response

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)
    return format_response(200, {'user': services.accounts.get(email)})
