"""
Mark Notification Read Handler.
PATCH /notifications/{notificationId}/read
"""
from shared.api import api_handler
from shared.auth import require_identity
from shared.services import Services
from shared.utils import format_response, require_path_param

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)

    notification = services.notifications.mark_read(
        require_path_param(event, 'notificationId'), email
    )
    return format_response(200, {'notification': notification})
