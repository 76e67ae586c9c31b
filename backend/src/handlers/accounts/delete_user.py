"""
Delete User Handler (admin).
DELETE /users/{email}
"""
from shared.api import api_handler
from shared.auth import require_identity, require_role
from shared.errors import InvalidInput
from shared.models import Role
from shared.services import Services
from shared.utils import format_response, require_path_param

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)
    require_role(services.accounts, email, Role.ADMIN)

    target = require_path_param(event, 'email').strip().lower()
    if target == email:
        raise InvalidInput('Admins cannot delete their own account')

    services.accounts.delete(target)
    return format_response(200, {'email': target, 'deleted': True})
