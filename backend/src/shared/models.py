"""
Data models and status constants for the micro-job marketplace.
Submission and withdrawal lifecycle: Pending → Approved | Rejected (both terminal).
"""


class Role:
    """Account roles."""
    ADMIN = 'admin'
    BUYER = 'buyer'
    WORKER = 'worker'

    ALL = (ADMIN, BUYER, WORKER)
    SELF_SERVICE = (BUYER, WORKER)  # Roles a user may pick at first login


class SubmissionStatus:
    """Submission review statuses."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    TERMINAL = (APPROVED, REJECTED)


class WithdrawalStatus:
    """Withdrawal request statuses."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    TERMINAL = (APPROVED, REJECTED)


class PaymentStatus:
    """Coin purchase statuses."""
    CREATED = 'created'  # Intent issued, charge not yet reported
    PAID = 'paid'


class ReviewAction:
    """Path actions accepted by the review endpoints."""
    APPROVE = 'approve'
    REJECT = 'reject'

    ALL = (APPROVE, REJECT)


class TaskStatus:
    """
    Derived task status. Never stored: computed from the slot counters.
    """
    OPEN = 'open'            # At least one slot free
    FULL = 'full'            # No slot free, submissions still awaiting review
    COMPLETED = 'completed'  # No slot free and every submission reviewed


class NotificationType:
    """Notification type tags."""
    SUBMISSION_CREATED = 'submission_created'
    SUBMISSION_APPROVED = 'submission_approved'
    SUBMISSION_REJECTED = 'submission_rejected'
    WITHDRAWAL_APPROVED = 'withdrawal_approved'
    WITHDRAWAL_REJECTED = 'withdrawal_rejected'


# Coin packages on sale: coins -> price in USD cents
COIN_PACKAGES = {
    10: 100,
    150: 1000,
    500: 2000,
    1000: 3500,
}

# Task fields the owner may edit after posting. Coin fields are escrowed.
EDITABLE_TASK_FIELDS = ('title', 'detail', 'submissionInfo', 'imageUrl', 'completionDate')


def task_status(task: dict) -> str:
    """Compute the derived status of a task item."""
    if int(task.get('requiredWorkers', 0)) > 0:
        return TaskStatus.OPEN
    if int(task.get('pendingReviews', 0)) > 0:
        return TaskStatus.FULL
    return TaskStatus.COMPLETED


def signup_coins(role: str, buyer_coins: int, worker_coins: int) -> int:
    """One-time balance granted when an account is created."""
    return buyer_coins if role == Role.BUYER else worker_coins
