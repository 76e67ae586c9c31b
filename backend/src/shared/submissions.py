"""
Submission Workflow.

State machine per submission:

    pending --approve--> approved   (worker credited payableAmount)
    pending --reject---> rejected   (task slot returned)

Both end states are terminal. Each transition is a single DynamoDB
transaction whose first item is the status flip conditioned on
``status = pending``, so a retried or concurrent second review fails with
AlreadyProcessed and applies nothing. Task ownership is re-checked inside the
same transaction against the current task item.

Notifications are sent after the transaction commits and never undo it.
"""
import uuid
from typing import Any, Dict, List

from boto3.dynamodb.conditions import Attr, Key

from .accounts import AccountStore
from .dynamo import StorageContext, TransactionCancelled
from .errors import AlreadyProcessed, Forbidden, Internal, NotFound
from .logging import logger
from .models import NotificationType, ReviewAction, SubmissionStatus
from .notifications import NotificationSink
from .tasks import TaskStore
from .utils import utc_now
from .validation import require_one_of, require_str

WORKER_INDEX = 'WorkerIndex'
BUYER_INDEX = 'BuyerIndex'


class SubmissionWorkflow:
    """Submit, approve and reject worker submissions."""

    def __init__(
        self,
        storage: StorageContext,
        accounts: AccountStore,
        tasks: TaskStore,
        notifications: NotificationSink
    ):
        self.storage = storage
        self.accounts = accounts
        self.tasks = tasks
        self.notifications = notifications
        self.table_name = storage.tables.submissions

    def get(self, submission_id: str) -> Dict[str, Any]:
        submission = self.storage.get(self.table_name, {'submissionId': submission_id})
        if not submission:
            raise NotFound(f'Submission {submission_id} not found')
        return submission

    def list_for_worker(self, worker_email: str) -> List[Dict[str, Any]]:
        return self.storage.query(
            self.table_name, WORKER_INDEX, Key('workerEmail').eq(worker_email)
        )

    def list_for_buyer(self, buyer_email: str, status: str = SubmissionStatus.PENDING) -> List[Dict[str, Any]]:
        """Review queue of a buyer, newest first."""
        return self.storage.query(
            self.table_name,
            BUYER_INDEX,
            Key('buyerEmail').eq(buyer_email),
            filter_expression=Attr('status').eq(status),
        )

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    def submit(self, task_id: str, worker: Dict[str, Any], fields: dict) -> Dict[str, Any]:
        """
        Consume one slot of the task and record a pending submission,
        in one transaction. The payable amount is copied from the task now.
        """
        details = require_str(fields, 'submissionDetails')
        task = self.tasks.get(task_id)

        worker_email = worker['email']
        if task['buyerEmail'] == worker_email:
            raise Forbidden('Cannot submit work to your own task')

        submission = {
            'submissionId': str(uuid.uuid4()),
            'taskId': task_id,
            'taskTitle': task.get('title', ''),
            'buyerEmail': task['buyerEmail'],
            'buyerName': task.get('buyerName', ''),
            'workerEmail': worker_email,
            'workerName': worker.get('name', ''),
            'submissionDetails': details,
            'payableAmount': int(task['payableAmount']),
            'status': SubmissionStatus.PENDING,
            'createdAt': utc_now(),
        }

        try:
            self.storage.transact([
                self.tasks.claim_slot_op(task_id),
                ('Put', {
                    'TableName': self.table_name,
                    'Item': submission,
                    'ConditionExpression': 'attribute_not_exists(submissionId)',
                }),
            ])
        except TransactionCancelled as e:
            index, old_item = e.first_failure() or (None, None)
            if index == 0:
                raise self.tasks.slot_error(task_id, old_item)
            raise Internal('Could not save submission, retry the request')

        logger.info(f"Submission {submission['submissionId']} created by {worker_email} for task {task_id}")

        self.notifications.send(
            to_email=task['buyerEmail'],
            from_email=worker_email,
            message=f"{submission['workerName'] or worker_email} submitted work for \"{submission['taskTitle']}\"",
            notification_type=NotificationType.SUBMISSION_CREATED,
            action_ref=f"/buyer/submissions/{submission['submissionId']}",
        )
        return submission

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    def approve(self, submission_id: str, caller_email: str) -> Dict[str, Any]:
        return self.review(submission_id, caller_email, ReviewAction.APPROVE)

    def reject(self, submission_id: str, caller_email: str) -> Dict[str, Any]:
        return self.review(submission_id, caller_email, ReviewAction.REJECT)

    def review(self, submission_id: str, caller_email: str, action: str) -> Dict[str, Any]:
        """
        Apply approve or reject.

        Transaction items, in order:
            0  submission status flip (status = pending)
            1  task counters (buyerEmail = caller)
            2  worker credit (approve only; account must exist)
        """
        require_one_of(action, 'action', ReviewAction.ALL)
        submission = self.get(submission_id)
        if submission['status'] != SubmissionStatus.PENDING:
            raise AlreadyProcessed(
                f"Submission {submission_id} is already {submission['status']}",
                {'status': submission['status']}
            )

        task_id = submission['taskId']
        worker_email = submission['workerEmail']
        payable = int(submission['payableAmount'])
        new_status = (
            SubmissionStatus.APPROVED if action == ReviewAction.APPROVE else SubmissionStatus.REJECTED
        )
        reviewed_at = utc_now()

        ops = [self._status_op(submission_id, new_status, caller_email, reviewed_at)]
        if action == ReviewAction.APPROVE:
            ops.append(self.tasks.settle_review_op(task_id, caller_email))
            ops.append(self.accounts.adjust_op(worker_email, payable))
        else:
            ops.append(self.tasks.release_slot_op(task_id, caller_email))

        try:
            self.storage.transact(ops)
        except TransactionCancelled as e:
            index, old_item = e.first_failure() or (None, None)
            if index == 0:
                status = (old_item or {}).get('status')
                raise AlreadyProcessed(
                    f'Submission {submission_id} is already {status}', {'status': status}
                )
            if index == 1:
                raise self.tasks.review_error(task_id, caller_email, old_item)
            if index == 2:
                raise NotFound(f'Worker {worker_email} not found')
            raise Internal('Could not update submission, retry the request')

        logger.info(f"Submission {submission_id} {new_status} by {caller_email}")

        submission = {
            **submission,
            'status': new_status,
            'reviewedBy': caller_email,
            'reviewedAt': reviewed_at,
        }
        self._notify_worker(submission)
        return submission

    def _status_op(self, submission_id: str, new_status: str, caller_email: str, reviewed_at: str):
        return 'Update', {
            'TableName': self.table_name,
            'Key': {'submissionId': submission_id},
            'UpdateExpression': 'SET #status = :new_status, reviewedBy = :caller, reviewedAt = :ts',
            'ConditionExpression': '#status = :pending',
            'ExpressionAttributeNames': {'#status': 'status'},
            'ExpressionAttributeValues': {
                ':new_status': new_status,
                ':pending': SubmissionStatus.PENDING,
                ':caller': caller_email,
                ':ts': reviewed_at,
            },
        }

    def _notify_worker(self, submission: Dict[str, Any]) -> None:
        if submission['status'] == SubmissionStatus.APPROVED:
            message = (
                f"You earned {submission['payableAmount']} coins from "
                f"{submission.get('buyerName') or submission['buyerEmail']} for \"{submission['taskTitle']}\""
            )
            notification_type = NotificationType.SUBMISSION_APPROVED
        else:
            message = f"Your submission for \"{submission['taskTitle']}\" was rejected"
            notification_type = NotificationType.SUBMISSION_REJECTED

        self.notifications.send(
            to_email=submission['workerEmail'],
            from_email=submission['reviewedBy'],
            message=message,
            notification_type=notification_type,
            action_ref='/worker/submissions',
        )
