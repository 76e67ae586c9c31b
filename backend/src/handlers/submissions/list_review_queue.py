"""
List Review Queue Handler - pending submissions on the calling buyer's tasks.
GET /buyer/submissions
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

    submissions = services.submissions.list_for_buyer(email)
    return format_response(200, {'submissions': submissions, 'total': len(submissions)})
