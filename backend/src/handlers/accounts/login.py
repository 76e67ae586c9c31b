"""
Login Handler - creates the account on first login, refreshes it afterwards.
POST /users
Body: { "role": "buyer" | "worker", "name": "...", "photoUrl": "..." }

Token issuance itself is done by Cognito; this only records the account.
"""
from shared.api import api_handler
from shared.auth import get_user_name, require_identity
from shared.services import Services
from shared.utils import format_response, parse_body

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)
    body = parse_body(event)

    account = services.accounts.upsert_on_login(
        email,
        role=body.get('role'),
        name=body.get('name') or get_user_name(event),
        photo_url=body.get('photoUrl'),
    )
    return format_response(200, {'user': account})
