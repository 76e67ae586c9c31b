"""
Delete Task Handler - owner or admin.
DELETE /tasks/{taskId}

Coins held by the task's open slots go back to its buyer.
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
    caller = require_role(services.accounts, email, Role.BUYER, Role.ADMIN)

    result = services.tasks.delete(require_path_param(event, 'taskId'), caller)
    return format_response(200, result)
