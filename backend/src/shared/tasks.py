"""
Task Store - job postings and their worker slots.

A task holds two counters:
    requiredWorkers  slots still open for submissions
    pendingReviews   slots consumed by submissions awaiting review

Posting a task escrows ``requiredWorkers * payableAmount`` coins from the
buyer in the same transaction that creates it; deleting refunds what the open
slots still hold. Slot changes are conditional updates so two workers racing
for the last slot cannot both win.
"""
import uuid
from typing import Any, Dict, List, Optional, Tuple

from boto3.dynamodb.conditions import Attr, Key

from .accounts import AccountStore
from .auth import is_admin
from .dynamo import ConditionFailed, StorageContext, TransactionCancelled
from .errors import Conflict, Forbidden, Internal, InvalidInput, NoSlotsAvailable, NotFound
from .logging import logger
from .models import EDITABLE_TASK_FIELDS, task_status
from .utils import utc_now
from .validation import optional_str, positive_int, require_str

BUYER_INDEX = 'BuyerIndex'


def present(task: Dict[str, Any]) -> Dict[str, Any]:
    """Task item plus its derived status."""
    return {**task, 'status': task_status(task)}


class TaskStore:
    """Tasks table access."""

    def __init__(self, storage: StorageContext, accounts: AccountStore):
        self.storage = storage
        self.accounts = accounts
        self.table_name = storage.tables.tasks

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find(self, task_id: str) -> Optional[Dict[str, Any]]:
        return self.storage.get(self.table_name, {'taskId': task_id})

    def get(self, task_id: str) -> Dict[str, Any]:
        task = self.find(task_id)
        if not task:
            raise NotFound(f'Task {task_id} not found')
        return task

    def list_open(self) -> List[Dict[str, Any]]:
        """Tasks with at least one free slot, newest first."""
        tasks = self.storage.scan(self.table_name, Attr('requiredWorkers').gt(0))
        tasks.sort(key=lambda t: t.get('createdAt', ''), reverse=True)
        return [present(t) for t in tasks]

    def list_for_buyer(self, buyer_email: str) -> List[Dict[str, Any]]:
        tasks = self.storage.query(self.table_name, BUYER_INDEX, Key('buyerEmail').eq(buyer_email))
        return [present(t) for t in tasks]

    # ------------------------------------------------------------------
    # Create / update / delete
    # ------------------------------------------------------------------

    def create(self, buyer: Dict[str, Any], fields: dict) -> Dict[str, Any]:
        """
        Post a task for ``buyer`` (an account item). The full payout is
        debited from the buyer atomically with the insert.
        """
        required_workers = positive_int(fields.get('requiredWorkers'), 'requiredWorkers')
        payable_amount = positive_int(fields.get('payableAmount'), 'payableAmount')
        now = utc_now()

        task = {
            'taskId': str(uuid.uuid4()),
            'buyerEmail': buyer['email'],
            'buyerName': buyer.get('name', ''),
            'title': require_str(fields, 'title', max_length=200),
            'detail': require_str(fields, 'detail'),
            'submissionInfo': require_str(fields, 'submissionInfo'),
            'imageUrl': optional_str(fields, 'imageUrl'),
            'completionDate': optional_str(fields, 'completionDate', max_length=40),
            'payableAmount': payable_amount,
            'requiredWorkers': required_workers,
            'postedWorkers': required_workers,
            'pendingReviews': 0,
            'createdAt': now,
            'updatedAt': now,
        }
        total_cost = required_workers * payable_amount

        try:
            self.storage.transact([
                self.accounts.adjust_op(buyer['email'], -total_cost),
                ('Put', {
                    'TableName': self.table_name,
                    'Item': task,
                    'ConditionExpression': 'attribute_not_exists(taskId)',
                }),
            ])
        except TransactionCancelled as e:
            index, old_item = e.first_failure() or (None, None)
            if index == 0:
                raise self.accounts.balance_error(buyer['email'], -total_cost, old_item)
            raise Internal('Could not create task, retry the request')

        logger.info(f"Task {task['taskId']} posted by {buyer['email']}, escrowed {total_cost} coins")
        return present(task)

    def update(self, task_id: str, caller: Dict[str, Any], fields: dict) -> Dict[str, Any]:
        """Edit descriptive fields. Owner or admin only."""
        changes = {}
        for field in EDITABLE_TASK_FIELDS:
            if field in fields:
                if field in ('imageUrl', 'completionDate'):
                    changes[field] = optional_str(fields, field)
                else:
                    changes[field] = require_str(fields, field)
        if not changes:
            raise InvalidInput(
                f"Nothing to update; editable fields: {', '.join(EDITABLE_TASK_FIELDS)}"
            )

        names = {f'#{field}': field for field in changes}
        values = {f':{field}': value for field, value in changes.items()}
        values[':ts'] = utc_now()
        assignments = ', '.join(f'#{field} = :{field}' for field in changes)

        condition = 'attribute_exists(taskId)'
        if not is_admin(caller):
            condition += ' AND buyerEmail = :caller'
            values[':caller'] = caller['email']

        try:
            task = self.storage.update({
                'TableName': self.table_name,
                'Key': {'taskId': task_id},
                'UpdateExpression': f'SET {assignments}, updatedAt = :ts',
                'ConditionExpression': condition,
                'ExpressionAttributeNames': names,
                'ExpressionAttributeValues': values,
            })
        except ConditionFailed as e:
            if not e.old_item:
                raise NotFound(f'Task {task_id} not found')
            raise Forbidden('Only the task owner can edit this task')

        logger.info(f"Task {task_id} updated by {caller['email']}: {sorted(changes)}")
        return present(task)

    def delete(self, task_id: str, caller: Dict[str, Any]) -> Dict[str, Any]:
        """
        Delete a task and refund the coins its open slots still hold.
        Refused while submissions await review.
        """
        task = self.get(task_id)
        if not is_admin(caller) and task['buyerEmail'] != caller['email']:
            raise Forbidden('Only the task owner can delete this task')
        if int(task.get('pendingReviews', 0)) > 0:
            raise Conflict(
                'Task has submissions awaiting review',
                {'pendingReviews': task['pendingReviews']}
            )

        open_slots = int(task['requiredWorkers'])
        refund = open_slots * int(task['payableAmount'])
        ops = [('Delete', {
            'TableName': self.table_name,
            'Key': {'taskId': task_id},
            'ConditionExpression': 'requiredWorkers = :slots AND pendingReviews = :zero',
            'ExpressionAttributeValues': {':slots': open_slots, ':zero': 0},
        })]
        if refund > 0:
            ops.append(self.accounts.adjust_op(task['buyerEmail'], refund))

        try:
            self.storage.transact(ops)
        except TransactionCancelled as e:
            index, old_item = e.first_failure() or (None, None)
            if index == 0:
                if not old_item:
                    raise NotFound(f'Task {task_id} not found')
                raise Conflict('Task changed while deleting, retry the request')
            if index == 1:
                raise NotFound(f"Buyer {task['buyerEmail']} not found")
            raise Internal('Could not delete task, retry the request')

        logger.info(f"Task {task_id} deleted by {caller['email']}, refunded {refund} coins")
        return {'taskId': task_id, 'deleted': True, 'refundedCoins': refund}

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def claim_slot_spec(self, task_id: str) -> Dict[str, Any]:
        """requiredWorkers -= 1, pendingReviews += 1; only while a slot is free."""
        return {
            'TableName': self.table_name,
            'Key': {'taskId': task_id},
            'UpdateExpression': (
                'SET requiredWorkers = requiredWorkers - :one, '
                'pendingReviews = pendingReviews + :one, updatedAt = :ts'
            ),
            'ConditionExpression': 'attribute_exists(taskId) AND requiredWorkers > :zero',
            'ExpressionAttributeValues': {':one': 1, ':zero': 0, ':ts': utc_now()},
        }

    def release_slot_spec(self, task_id: str, buyer_email: str) -> Dict[str, Any]:
        """
        requiredWorkers += 1, pendingReviews -= 1, guarded by task
        ownership. No upper bound: each release pairs with one claim.
        """
        return {
            'TableName': self.table_name,
            'Key': {'taskId': task_id},
            'UpdateExpression': (
                'SET requiredWorkers = requiredWorkers + :one, '
                'pendingReviews = pendingReviews - :one, updatedAt = :ts'
            ),
            'ConditionExpression': (
                'attribute_exists(taskId) AND buyerEmail = :buyer AND pendingReviews > :zero'
            ),
            'ExpressionAttributeValues': {
                ':one': 1, ':zero': 0, ':buyer': buyer_email, ':ts': utc_now()
            },
        }

    def settle_review_spec(self, task_id: str, buyer_email: str) -> Dict[str, Any]:
        """pendingReviews -= 1 for an approved submission, guarded by ownership."""
        return {
            'TableName': self.table_name,
            'Key': {'taskId': task_id},
            'UpdateExpression': 'SET pendingReviews = pendingReviews - :one, updatedAt = :ts',
            'ConditionExpression': (
                'attribute_exists(taskId) AND buyerEmail = :buyer AND pendingReviews > :zero'
            ),
            'ExpressionAttributeValues': {
                ':one': 1, ':zero': 0, ':buyer': buyer_email, ':ts': utc_now()
            },
        }

    def claim_slot_op(self, task_id: str) -> Tuple[str, Dict[str, Any]]:
        return 'Update', self.claim_slot_spec(task_id)

    def release_slot_op(self, task_id: str, buyer_email: str) -> Tuple[str, Dict[str, Any]]:
        return 'Update', self.release_slot_spec(task_id, buyer_email)

    def settle_review_op(self, task_id: str, buyer_email: str) -> Tuple[str, Dict[str, Any]]:
        return 'Update', self.settle_review_spec(task_id, buyer_email)

    def decrement_slot(self, task_id: str) -> Dict[str, Any]:
        try:
            task = self.storage.update(self.claim_slot_spec(task_id))
        except ConditionFailed as e:
            raise self.slot_error(task_id, e.old_item)
        return present(task)

    def increment_slot(self, task_id: str, buyer_email: str) -> Dict[str, Any]:
        try:
            task = self.storage.update(self.release_slot_spec(task_id, buyer_email))
        except ConditionFailed as e:
            raise self.review_error(task_id, buyer_email, e.old_item)
        return present(task)

    @staticmethod
    def slot_error(task_id: str, old_item: Optional[Dict[str, Any]]):
        if not old_item:
            return NotFound(f'Task {task_id} not found')
        return NoSlotsAvailable(f'Task {task_id} has no open slots')

    @staticmethod
    def review_error(task_id: str, buyer_email: str, old_item: Optional[Dict[str, Any]]):
        """Map a failed ownership-guarded review condition."""
        if not old_item:
            return NotFound(f'Task {task_id} not found')
        if old_item.get('buyerEmail') != buyer_email:
            return Forbidden('Only the task owner can review its submissions')
        logger.error(f"Task {task_id} has no pending reviews to settle")
        return Internal('Task review counters are inconsistent')
