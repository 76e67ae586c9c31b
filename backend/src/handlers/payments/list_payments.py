"""
List Payments Handler - purchase history of the calling buyer.
GET /payments
"""
from shared.api import api_handler
from shared.auth import require_identity, require_role
from shared.models import Role
from shared.services import Services
from shared.utils import format_response

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)
    require_role(services.accounts, email, Role.BUYER)

    payments = services.payments.list_for(email)
    return format_response(200, {'payments': payments, 'total': len(payments)})
