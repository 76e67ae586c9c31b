"""
Create Payment Intent Handler.
POST /payments/intent
Body: { "coins": 150 }

Returns the client secret the buyer's browser uses to complete the charge.
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

    intent = services.payments.create_payment_intent(email, parse_body(event))
    return format_response(200, intent)
