"""
My Tasks Handler - tasks posted by the calling buyer.
GET /buyer/tasks
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

    tasks = services.tasks.list_for_buyer(email)
    return format_response(200, {'tasks': tasks, 'totalTasks': len(tasks)})
