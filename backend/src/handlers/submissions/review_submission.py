"""
Review Submission Handler - task owner approves or rejects.
POST /submissions/{submissionId}/approve
POST /submissions/{submissionId}/reject

Approve credits the worker the submission's payable amount; reject returns
the slot to the task. A submission can be reviewed once.
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
    require_role(services.accounts, email, Role.BUYER)

    submission_id = require_path_param(event, 'submissionId')
    action = require_path_param(event, 'action').lower()

    submission = services.submissions.review(submission_id, email, action)
    return format_response(200, {
        'message': f"Submission {submission['status']}",
        'submission': submission,
    })
