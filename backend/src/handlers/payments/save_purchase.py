"""
Save Purchase Handler - credit coins after a completed charge.
POST /payments
Body: { "paymentIntentId": "pi_..." }

Credits the coins of the stored intent; saving the same paymentIntentId
twice fails with AlreadyProcessed.
"""
from shared.api import api_handler
from shared.auth import require_identity, require_role
from shared.models import Role
from shared.services import Services
from shared.utils import format_response, parse_body

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)
    require_role(services.accounts, email, Role.BUYER)

    payment = services.payments.save_purchase(email, parse_body(event))
    return format_response(201, {
        'message': 'Purchase saved',
        'payment': payment,
        'balance': services.accounts.get_balance(email),
    })
