"""
List Submissions Handler - the calling worker's submissions.
GET /worker/submissions?status=approved
"""
from shared.api import api_handler
from shared.auth import require_identity, require_role
from shared.models import Role, SubmissionStatus
from shared.services import Services
from shared.utils import format_response, get_query_param
from shared.validation import require_one_of

services = Services.open()

STATUSES = (SubmissionStatus.PENDING,) + SubmissionStatus.TERMINAL


@api_handler
def handler(event, context):
    email = require_identity(event)
    require_role(services.accounts, email, Role.WORKER)

    submissions = services.submissions.list_for_worker(email)
    status = get_query_param(event, 'status')
    if status:
        require_one_of(status, 'status', STATUSES)
        submissions = [s for s in submissions if s.get('status') == status]

    return format_response(200, {'submissions': submissions, 'total': len(submissions)})
