"""
Review Withdrawal Handler (admin).
POST /withdrawals/{withdrawalId}/approve
POST /withdrawals/{withdrawalId}/reject

Reject refunds the escrowed coins. A request can be reviewed once.
"""
from shared.api import api_handler
from shared.auth import require_identity, require_role
from shared.models import Role
from shared.services import Services
from shared.utils import format_response, require_path_param

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)
    require_role(services.accounts, email, Role.ADMIN)

    withdrawal_id = require_path_param(event, 'withdrawalId')
    action = require_path_param(event, 'action').lower()

    withdrawal = services.withdrawals.review(withdrawal_id, email, action)
    return format_response(200, {
        'message': f"Withdrawal {withdrawal['status']}",
        'withdrawal': withdrawal,
    })
