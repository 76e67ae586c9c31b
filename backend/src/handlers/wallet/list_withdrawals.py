"""
List Withdrawals Handler.
GET /wallet/withdrawals

Workers get their own requests; admins get the pending queue.
"""
from shared.api import api_handler
from shared.auth import is_admin, require_identity, require_role
from shared.models import Role
from shared.services import Services
from shared.utils import format_response

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)
    account = require_role(services.accounts, email, Role.WORKER, Role.ADMIN)

    if is_admin(account):
        withdrawals = services.withdrawals.list_pending()
    else:
        withdrawals = services.withdrawals.list_for_worker(email)

    return format_response(200, {'withdrawals': withdrawals, 'total': len(withdrawals)})
