"""
Component wiring for a handler process.

The entry point opens one StorageContext and builds every component on it;
nothing below this module creates storage handles.
"""
from .accounts import AccountStore
from .config import config
from .dynamo import StorageContext
from .notifications import NotificationSink
from .payments import PurchaseLedger
from .submissions import SubmissionWorkflow
from .tasks import TaskStore
from .withdrawals import WithdrawalWorkflow


class Services:
    """All marketplace components sharing one storage context."""

    def __init__(self, storage: StorageContext, cfg=None):
        cfg = cfg or config
        self.storage = storage
        self.accounts = AccountStore(storage, cfg)
        self.notifications = NotificationSink(storage, cfg)
        self.tasks = TaskStore(storage, self.accounts)
        self.submissions = SubmissionWorkflow(storage, self.accounts, self.tasks, self.notifications)
        self.withdrawals = WithdrawalWorkflow(storage, self.accounts, self.notifications, cfg)
        self.payments = PurchaseLedger(storage, self.accounts)

    @classmethod
    def open(cls, cfg=None) -> 'Services':
        return cls(StorageContext.open(cfg), cfg)

    def close(self) -> None:
        self.storage.close()
