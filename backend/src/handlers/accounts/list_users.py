"""
List Users Handler (admin).
GET /users
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
    require_role(services.accounts, email, Role.ADMIN)

    users = services.accounts.list_all()
    return format_response(200, {'users': users, 'total': len(users)})
