"""
Coin conservation across a full marketplace sequence.

Each committed transaction is replayed into a small ledger model: account
balances, coins escrowed in pending withdrawals, and task escrow
``(requiredWorkers + pendingReviews) * payableAmount``. Their sum must not
move, and no balance or slot counter may go negative.
"""
import re

import pytest

from helpers import transact_items
from shared.dynamo import deserialize
from shared.models import WithdrawalStatus

BUYER = {'email': 'buyer@x.io', 'name': 'Bea', 'role': 'buyer', 'coin': 50}
WORKER = {'email': 'worker@x.io', 'name': 'Wes', 'role': 'worker', 'coin': 300}
SECOND_WORKER = {'email': 'late@x.io', 'name': 'Lee', 'role': 'worker', 'coin': 10}

SLOT_TERM = re.compile(r'(requiredWorkers|pendingReviews) = \1 ([+-]) :one')


class Ledger:
    """Coins held by accounts, pending withdrawals and task escrow."""

    def __init__(self, *accounts):
        self.balances = {a['email']: a['coin'] for a in accounts}
        self.tasks = {}
        self.withdrawals = {}

    def total(self) -> int:
        task_escrow = sum(
            (t['requiredWorkers'] + t['pendingReviews']) * t['payableAmount']
            for t in self.tasks.values()
        )
        return sum(self.balances.values()) + sum(self.withdrawals.values()) + task_escrow

    def apply(self, items) -> None:
        for entry in items:
            (kind, params), = entry.items()
            table = params['TableName']
            key = deserialize(params.get('Key')) or {}
            values = deserialize(params.get('ExpressionAttributeValues')) or {}

            if table == 'users':
                self.balances[key['email']] += int(values[':delta'])
            elif table == 'tasks' and kind == 'Put':
                item = deserialize(params['Item'])
                self.tasks[item['taskId']] = {
                    field: int(item[field])
                    for field in ('requiredWorkers', 'pendingReviews', 'payableAmount')
                }
            elif table == 'tasks' and kind == 'Delete':
                self.tasks.pop(key['taskId'])
            elif table == 'tasks' and kind == 'Update':
                for counter, sign in SLOT_TERM.findall(params['UpdateExpression']):
                    self.tasks[key['taskId']][counter] += 1 if sign == '+' else -1
            elif table == 'withdrawals' and kind == 'Put':
                item = deserialize(params['Item'])
                self.withdrawals[item['withdrawalId']] = int(item['coinAmount'])
            elif table == 'withdrawals' and kind == 'Update':
                if values[':new_status'] in WithdrawalStatus.TERMINAL:
                    self.withdrawals.pop(key['withdrawalId'])

    def assert_non_negative(self) -> None:
        assert all(balance >= 0 for balance in self.balances.values()), self.balances
        for task in self.tasks.values():
            assert task['requiredWorkers'] >= 0
            assert task['pendingReviews'] >= 0


@pytest.fixture
def ledger():
    return Ledger(BUYER, WORKER, SECOND_WORKER)


@pytest.fixture
def commit(storage, ledger):
    """Run one operation and replay the transaction it wrote."""
    def _commit(operation, *args):
        before = ledger.total()
        storage.client.transact_write_items.reset_mock()

        result = operation(*args)

        storage.client.transact_write_items.assert_called_once()
        ledger.apply(transact_items(storage))
        assert ledger.total() == before
        ledger.assert_non_negative()
        return result
    return _commit


def test_coins_are_conserved_across_workflows(services, tables, ledger, commit):
    task = commit(services.tasks.create, BUYER, {
        'title': 'Watch my video',
        'detail': 'Watch and comment',
        'submissionInfo': 'Screenshot',
        'requiredWorkers': 2,
        'payableAmount': 5,
    })
    assert ledger.balances[BUYER['email']] == 40
    tables['tasks'].get_item.return_value = {'Item': task}

    # submit -> approve
    submission = commit(services.submissions.submit, task['taskId'], WORKER, {'submissionDetails': 'done'})
    tables['submissions'].get_item.return_value = {'Item': submission}
    commit(services.submissions.approve, submission['submissionId'], BUYER['email'])
    assert ledger.balances[WORKER['email']] == 305

    # submit -> reject
    submission = commit(services.submissions.submit, task['taskId'], SECOND_WORKER, {'submissionDetails': 'meh'})
    tables['submissions'].get_item.return_value = {'Item': submission}
    commit(services.submissions.reject, submission['submissionId'], BUYER['email'])
    assert ledger.balances[SECOND_WORKER['email']] == 10
    assert ledger.tasks[task['taskId']] == {'requiredWorkers': 1, 'pendingReviews': 0, 'payableAmount': 5}

    # withdraw -> reject
    withdrawal = commit(services.withdrawals.request, WORKER, {
        'coinAmount': 250,
        'paymentMethod': 'bkash',
        'accountNumber': '01700000000',
    })
    assert ledger.balances[WORKER['email']] == 55
    tables['withdrawals'].get_item.return_value = {'Item': withdrawal}
    commit(services.withdrawals.reject, withdrawal['withdrawalId'], 'admin@x.io')
    assert ledger.balances[WORKER['email']] == 305
    assert ledger.withdrawals == {}


def test_task_deletion_refunds_remaining_escrow(services, tables, ledger, commit):
    task = commit(services.tasks.create, BUYER, {
        'title': 'Follow my page',
        'detail': 'Follow and like',
        'submissionInfo': 'Username',
        'requiredWorkers': 3,
        'payableAmount': 4,
    })
    tables['tasks'].get_item.return_value = {'Item': task}

    commit(services.tasks.delete, task['taskId'], BUYER)

    assert ledger.balances[BUYER['email']] == 50
