"""
Notification Sink - append-only record of workflow outcomes.
Optionally mirrors each notification by email through Amazon SES.
"""
import uuid
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from .config import config
from .dynamo import ConditionFailed, StorageContext
from .errors import Forbidden, MicrojobError, NotFound
from .logging import logger
from .utils import utc_now

RECIPIENT_INDEX = 'RecipientIndex'


class NotificationSink:
    """Notifications table access."""

    def __init__(self, storage: StorageContext, cfg=None, ses_client=None):
        self.storage = storage
        self.table_name = storage.tables.notifications
        self.config = cfg or config
        self._ses = ses_client

    @property
    def ses(self):
        if self._ses is None:
            self._ses = boto3.client('ses', region_name=self.config.AWS_REGION)
        return self._ses

    def record(
        self,
        to_email: str,
        message: str,
        notification_type: str,
        from_email: Optional[str] = None,
        action_ref: Optional[str] = None
    ) -> Dict[str, Any]:
        """Append a notification. Raises Internal if the table is unavailable."""
        notification = {
            'notificationId': str(uuid.uuid4()),
            'toEmail': to_email,
            'message': message,
            'type': notification_type,
            'isRead': False,
            'createdAt': utc_now(),
        }
        if from_email:
            notification['fromEmail'] = from_email
        if action_ref:
            notification['actionRef'] = action_ref

        return self.storage.put(self.table_name, notification)

    def send(self, to_email: str, message: str, notification_type: str,
             from_email: Optional[str] = None, action_ref: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Best-effort record used by the workflows: failures are logged and
        swallowed so they never turn a committed transition into an error.
        """
        try:
            notification = self.record(to_email, message, notification_type, from_email, action_ref)
        except MicrojobError as e:
            logger.warning(f"Notification to {to_email} not recorded (non-critical): {e}")
            return None

        if self.config.NOTIFICATION_EMAIL_SOURCE:
            self._send_email(to_email, message)
        return notification

    def _send_email(self, to_email: str, message: str) -> None:
        try:
            self.ses.send_email(
                Source=self.config.NOTIFICATION_EMAIL_SOURCE,
                Destination={'ToAddresses': [to_email]},
                Message={
                    'Subject': {'Data': 'Micro Job update'},
                    'Body': {'Text': {'Data': message}},
                }
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"SES Error (non-critical): {e}")

    def list_for(self, email: str) -> List[Dict[str, Any]]:
        """Notifications addressed to ``email``, newest first."""
        return self.storage.query(self.table_name, RECIPIENT_INDEX, Key('toEmail').eq(email))

    def mark_read(self, notification_id: str, requester_email: str) -> Dict[str, Any]:
        try:
            return self.storage.update({
                'TableName': self.table_name,
                'Key': {'notificationId': notification_id},
                'UpdateExpression': 'SET isRead = :read',
                'ConditionExpression': 'attribute_exists(notificationId) AND toEmail = :requester',
                'ExpressionAttributeValues': {':read': True, ':requester': requester_email},
            })
        except ConditionFailed as e:
            if not e.old_item:
                raise NotFound(f'Notification {notification_id} not found')
            raise Forbidden('Not the recipient of this notification')
