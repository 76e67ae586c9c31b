"""
Shared fixtures: a StorageContext over mocked boto3 handles, and the
marketplace components built on it.
"""
from collections import defaultdict
from unittest.mock import MagicMock

import pytest

from shared.config import Config
from shared.dynamo import StorageContext, TableNames
from shared.services import Services


def make_table():
    table = MagicMock()
    table.get_item.return_value = {}
    table.query.return_value = {'Items': []}
    table.scan.return_value = {'Items': []}
    return table


@pytest.fixture
def cfg():
    cfg = Config()
    cfg.MIN_WITHDRAW_COINS = 200
    cfg.COINS_PER_DOLLAR = 20
    cfg.BUYER_SIGNUP_COINS = 50
    cfg.WORKER_SIGNUP_COINS = 10
    cfg.NOTIFICATION_EMAIL_SOURCE = ''
    return cfg


@pytest.fixture
def tables():
    """Resource-level tables by name, created on first use."""
    return defaultdict(make_table)


@pytest.fixture
def storage(tables):
    resource = MagicMock()
    resource.Table.side_effect = lambda name: tables[name]
    client = MagicMock()
    client.update_item.return_value = {'Attributes': {}}
    names = TableNames(
        users='users',
        tasks='tasks',
        submissions='submissions',
        withdrawals='withdrawals',
        notifications='notifications',
        payments='payments',
    )
    return StorageContext(client, resource, names)


@pytest.fixture
def services(storage, cfg):
    return Services(storage, cfg)


@pytest.fixture
def put_items(tables):
    """Items put into a table, by table name."""
    def _put_items(name):
        return [c.kwargs['Item'] for c in tables[name].put_item.call_args_list]
    return _put_items
