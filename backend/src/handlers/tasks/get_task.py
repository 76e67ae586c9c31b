"""
Get Task Handler.
GET /tasks/{taskId}
"""
from shared.api import api_handler
from shared.auth import require_identity
from shared.services import Services
from shared.tasks import present
from shared.utils import format_response, require_path_param

services = Services.open()


@api_handler
def handler(event, context):
    require_identity(event)

    task = services.tasks.get(require_path_param(event, 'taskId'))
    return format_response(200, {'task': present(task)})
