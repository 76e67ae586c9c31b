"""
Submit Work Handler.
POST /tasks/{taskId}/submissions
Body: { "submissionDetails": "..." }

Takes one open slot of the task; fails with NoSlotsAvailable when the task
is full.
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
    worker = require_role(services.accounts, email, Role.WORKER)

    task_id = require_path_param(event, 'taskId')
    submission = services.submissions.submit(task_id, worker, parse_body(event))
    return format_response(201, {
        'message': 'Work submitted successfully',
        'submission': submission,
    })
