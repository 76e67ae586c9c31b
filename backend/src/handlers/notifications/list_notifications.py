"""
List Notifications Handler.
GET /notifications
"""
from shared.api import api_handler
from shared.auth import require_identity
from shared.services import Services
from shared.utils import format_response

services = Services.open()


@api_handler
def handler(event, context):
    email = require_identity(event)

    notifications = services.notifications.list_for(email)
    unread = len([n for n in notifications if not n.get('isRead')])
    return format_response(200, {'notifications': notifications, 'unread': unread})
