"""
Withdrawal Workflow.

Coins are escrowed when the request is made: the debit and the request row
are written in one transaction, so a request exists exactly when its coins
have left the balance. Approval only flips the status; rejection flips the
status and refunds the escrow in one transaction, guarded by
``status = pending`` so the refund can never be applied twice.
"""
import uuid
from decimal import Decimal
from typing import Any, Dict, List

from boto3.dynamodb.conditions import Key

from .accounts import AccountStore
from .config import config
from .dynamo import ConditionFailed, StorageContext, TransactionCancelled
from .errors import AlreadyProcessed, Internal, InvalidInput, NotFound
from .logging import logger
from .models import NotificationType, ReviewAction, WithdrawalStatus
from .notifications import NotificationSink
from .utils import utc_now
from .validation import positive_decimal, positive_int, require_one_of, require_str

WORKER_INDEX = 'WorkerIndex'
STATUS_INDEX = 'StatusIndex'

CENTS = Decimal('0.01')


class WithdrawalWorkflow:
    """Request, approve and reject coin withdrawals."""

    def __init__(
        self,
        storage: StorageContext,
        accounts: AccountStore,
        notifications: NotificationSink,
        cfg=None
    ):
        self.storage = storage
        self.accounts = accounts
        self.notifications = notifications
        self.table_name = storage.tables.withdrawals
        self.config = cfg or config

    def get(self, withdrawal_id: str) -> Dict[str, Any]:
        withdrawal = self.storage.get(self.table_name, {'withdrawalId': withdrawal_id})
        if not withdrawal:
            raise NotFound(f'Withdrawal {withdrawal_id} not found')
        return withdrawal

    def list_for_worker(self, worker_email: str) -> List[Dict[str, Any]]:
        return self.storage.query(
            self.table_name, WORKER_INDEX, Key('workerEmail').eq(worker_email)
        )

    def list_pending(self) -> List[Dict[str, Any]]:
        """Admin queue, oldest first."""
        return self.storage.query(
            self.table_name,
            STATUS_INDEX,
            Key('status').eq(WithdrawalStatus.PENDING),
            scan_forward=True,
        )

    def cash_for(self, coins: int) -> Decimal:
        """USD paid out for ``coins`` at the configured rate."""
        return (Decimal(coins) / Decimal(self.config.COINS_PER_DOLLAR)).quantize(CENTS)

    # ------------------------------------------------------------------
    # Request
    # ------------------------------------------------------------------

    def request(self, worker: Dict[str, Any], fields: dict) -> Dict[str, Any]:
        coin_amount = positive_int(fields.get('coinAmount'), 'coinAmount')
        if coin_amount < self.config.MIN_WITHDRAW_COINS:
            raise InvalidInput(
                f'Minimum withdrawal is {self.config.MIN_WITHDRAW_COINS} coins',
                {'field': 'coinAmount', 'minimum': self.config.MIN_WITHDRAW_COINS}
            )

        cash_amount = self.cash_for(coin_amount)
        if fields.get('cashAmount') is not None:
            requested_cash = positive_decimal(fields['cashAmount'], 'cashAmount')
            if requested_cash.quantize(CENTS) != cash_amount:
                raise InvalidInput(
                    f'cashAmount must be {cash_amount} for {coin_amount} coins',
                    {'field': 'cashAmount', 'expected': str(cash_amount)}
                )

        worker_email = worker['email']
        withdrawal = {
            'withdrawalId': str(uuid.uuid4()),
            'workerEmail': worker_email,
            'workerName': worker.get('name', ''),
            'coinAmount': coin_amount,
            'cashAmount': cash_amount,
            'paymentMethod': require_str(fields, 'paymentMethod', max_length=50),
            'accountNumber': require_str(fields, 'accountNumber', max_length=100),
            'status': WithdrawalStatus.PENDING,
            'createdAt': utc_now(),
        }

        try:
            self.storage.transact([
                self.accounts.adjust_op(worker_email, -coin_amount),
                ('Put', {
                    'TableName': self.table_name,
                    'Item': withdrawal,
                    'ConditionExpression': 'attribute_not_exists(withdrawalId)',
                }),
            ])
        except TransactionCancelled as e:
            index, old_item = e.first_failure() or (None, None)
            if index == 0:
                raise self.accounts.balance_error(worker_email, -coin_amount, old_item)
            raise Internal('Could not save withdrawal, retry the request')

        logger.info(
            f"Withdrawal {withdrawal['withdrawalId']} requested by {worker_email}: "
            f"{coin_amount} coins escrowed for ${cash_amount}"
        )
        return withdrawal

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    def approve(self, withdrawal_id: str, admin_email: str) -> Dict[str, Any]:
        return self.review(withdrawal_id, admin_email, ReviewAction.APPROVE)

    def reject(self, withdrawal_id: str, admin_email: str) -> Dict[str, Any]:
        return self.review(withdrawal_id, admin_email, ReviewAction.REJECT)

    def review(self, withdrawal_id: str, admin_email: str, action: str) -> Dict[str, Any]:
        require_one_of(action, 'action', ReviewAction.ALL)
        withdrawal = self.get(withdrawal_id)
        if withdrawal['status'] != WithdrawalStatus.PENDING:
            raise AlreadyProcessed(
                f"Withdrawal {withdrawal_id} is already {withdrawal['status']}",
                {'status': withdrawal['status']}
            )

        reviewed_at = utc_now()
        worker_email = withdrawal['workerEmail']
        coin_amount = int(withdrawal['coinAmount'])

        if action == ReviewAction.APPROVE:
            new_status = WithdrawalStatus.APPROVED
            try:
                self.storage.update(self._status_spec(withdrawal_id, new_status, admin_email, reviewed_at))
            except ConditionFailed as e:
                raise self._status_error(withdrawal_id, e.old_item)
        else:
            new_status = WithdrawalStatus.REJECTED
            try:
                self.storage.transact([
                    ('Update', self._status_spec(withdrawal_id, new_status, admin_email, reviewed_at)),
                    self.accounts.adjust_op(worker_email, coin_amount),
                ])
            except TransactionCancelled as e:
                index, old_item = e.first_failure() or (None, None)
                if index == 0:
                    raise self._status_error(withdrawal_id, old_item)
                if index == 1:
                    raise NotFound(f'Worker {worker_email} not found')
                raise Internal('Could not update withdrawal, retry the request')

        logger.info(f"Withdrawal {withdrawal_id} {new_status} by {admin_email}")

        withdrawal = {
            **withdrawal,
            'status': new_status,
            'reviewedBy': admin_email,
            'reviewedAt': reviewed_at,
        }
        self._notify_worker(withdrawal)
        return withdrawal

    def _status_spec(self, withdrawal_id: str, new_status: str, admin_email: str, reviewed_at: str):
        return {
            'TableName': self.table_name,
            'Key': {'withdrawalId': withdrawal_id},
            'UpdateExpression': 'SET #status = :new_status, reviewedBy = :admin, reviewedAt = :ts',
            'ConditionExpression': '#status = :pending',
            'ExpressionAttributeNames': {'#status': 'status'},
            'ExpressionAttributeValues': {
                ':new_status': new_status,
                ':pending': WithdrawalStatus.PENDING,
                ':admin': admin_email,
                ':ts': reviewed_at,
            },
        }

    @staticmethod
    def _status_error(withdrawal_id: str, old_item):
        if not old_item:
            return NotFound(f'Withdrawal {withdrawal_id} not found')
        return AlreadyProcessed(
            f"Withdrawal {withdrawal_id} is already {old_item.get('status')}",
            {'status': old_item.get('status')}
        )

    def _notify_worker(self, withdrawal: Dict[str, Any]) -> None:
        if withdrawal['status'] == WithdrawalStatus.APPROVED:
            message = (
                f"Your withdrawal of {withdrawal['coinAmount']} coins "
                f"(${withdrawal['cashAmount']}) was approved"
            )
            notification_type = NotificationType.WITHDRAWAL_APPROVED
        else:
            message = (
                f"Your withdrawal of {withdrawal['coinAmount']} coins was rejected; "
                f"the coins are back in your balance"
            )
            notification_type = NotificationType.WITHDRAWAL_REJECTED

        self.notifications.send(
            to_email=withdrawal['workerEmail'],
            from_email=withdrawal['reviewedBy'],
            message=message,
            notification_type=notification_type,
            action_ref='/worker/withdrawals',
        )
