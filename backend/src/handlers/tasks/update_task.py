"""
Update Task Handler - owner or admin.
PATCH /tasks/{taskId}
Body: any of title, detail, submissionInfo, imageUrl, completionDate
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
    caller = require_role(services.accounts, email, Role.BUYER, Role.ADMIN)

    task_id = require_path_param(event, 'taskId')
    task = services.tasks.update(task_id, caller, parse_body(event))
    return format_response(200, {'task': task})
