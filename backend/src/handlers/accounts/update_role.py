"""
Update Role Handler (admin).
PATCH /users/{email}/role
Body: { "role": "admin" | "buyer" | "worker" }
"""
from shared.api import api_handler
from shared.auth import require_identity, require_role
from shared.models import Role
from shared.services import Services
from shared.utils import format_response, parse_body, require_path_param

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)
    require_role(services.accounts, email, Role.ADMIN)

    target = require_path_param(event, 'email').strip().lower()
    account = services.accounts.set_role(target, parse_body(event).get('role'))
    return format_response(200, {'user': account})
