"""
Create Task Handler.
POST /tasks
Body: {
    "title": "...", "detail": "...", "submissionInfo": "...",
    "requiredWorkers": 5, "payableAmount": 10,
    "completionDate": "2026-12-01", "imageUrl": "https://..."
}

requiredWorkers * payableAmount coins are debited from the buyer when the
task is posted.
"""
from shared.api import api_handler
from shared.auth import require_identity, require_role
from shared.models import Role
from shared.services import Services
from shared.utils import format_response, parse_body

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)
    buyer = require_role(services.accounts, email, Role.BUYER)

    task = services.tasks.create(buyer, parse_body(event))
    return format_response(201, {
        'message': 'Task created',
        'task': task,
        'balance': services.accounts.get_balance(email),
    })
