"""
Withdraw Funds Handler - worker requests a cash payout.
POST /wallet/withdrawals
Body: {
    "coinAmount": 400, "cashAmount": 20.00,
    "paymentMethod": "bkash", "accountNumber": "..."
}

The coins leave the balance immediately and are held until an admin
approves or rejects the request.
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
    worker = require_role(services.accounts, email, Role.WORKER)

    withdrawal = services.withdrawals.request(worker, parse_body(event))
    return format_response(201, {
        'message': 'Withdrawal requested',
        'withdrawal': withdrawal,
        'balance': services.accounts.get_balance(email),
    })
