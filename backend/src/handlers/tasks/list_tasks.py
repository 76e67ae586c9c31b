"""
List Tasks Handler - tasks with open slots.
GET /tasks
"""
from shared.api import api_handler
from shared.auth import require_identity
from shared.services import Services
from shared.utils import format_response

services = Services.open()


@api_handler
def handler(event, context):
    require_identity(event)

    tasks = services.tasks.list_open()
    return format_response(200, {'tasks': tasks, 'totalTasks': len(tasks)})
