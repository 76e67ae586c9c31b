"""
Get Wallet Handler - current coin balance of the caller.
GET /wallet
"""
from shared.api import api_handler
from shared.auth import require_identity
from shared.services import Services
from shared.utils import format_response

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)

    return format_response(200, {
        'email': email,
        'balance': services.accounts.get_balance(email),
        'currency': 'COIN',
    })
