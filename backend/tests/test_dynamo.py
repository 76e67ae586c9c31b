"""
Tests for the DynamoDB storage context.
"""
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import EndpointConnectionError

from helpers import OK, cancelled, client_error, condition_failed, failed
from shared.dynamo import ConditionFailed, StorageContext, TransactionCancelled, deserialize
from shared.errors import Internal


class TestUpdate:

    def test_serializes_values_and_returns_new_item(self, storage):
        storage.client.update_item.return_value = {
            'Attributes': {'email': {'S': 'w@x.io'}, 'coin': {'N': '15'}}
        }

        item = storage.update({
            'TableName': 'users',
            'Key': {'email': 'w@x.io'},
            'UpdateExpression': 'ADD coin :delta',
            'ExpressionAttributeValues': {':delta': 5},
        })

        params = storage.client.update_item.call_args.kwargs
        assert params['Key'] == {'email': {'S': 'w@x.io'}}
        assert params['ExpressionAttributeValues'] == {':delta': {'N': '5'}}
        assert params['ReturnValues'] == 'ALL_NEW'
        assert params['ReturnValuesOnConditionCheckFailure'] == 'ALL_OLD'
        assert item == {'email': 'w@x.io', 'coin': Decimal('15')}

    def test_condition_failure_carries_old_item(self, storage):
        storage.client.update_item.side_effect = condition_failed({'email': 'w@x.io', 'coin': 3})

        with pytest.raises(ConditionFailed) as exc:
            storage.update({'TableName': 'users', 'Key': {'email': 'w@x.io'}})

        assert exc.value.old_item == {'email': 'w@x.io', 'coin': Decimal('3')}

    def test_condition_failure_on_missing_item(self, storage):
        storage.client.update_item.side_effect = condition_failed()

        with pytest.raises(ConditionFailed) as exc:
            storage.update({'TableName': 'users', 'Key': {'email': 'ghost@x.io'}})

        assert exc.value.old_item is None

    def test_other_client_errors_become_internal(self, storage):
        storage.client.update_item.side_effect = client_error('ProvisionedThroughputExceededException')

        with pytest.raises(Internal):
            storage.update({'TableName': 'users', 'Key': {'email': 'w@x.io'}})

    def test_connection_errors_become_internal(self, storage):
        storage.client.update_item.side_effect = EndpointConnectionError(endpoint_url='http://localhost:8000')

        with pytest.raises(Internal):
            storage.update({'TableName': 'users', 'Key': {'email': 'w@x.io'}})


class TestTransact:

    def test_builds_typed_items(self, storage):
        storage.transact([
            ('Update', {
                'TableName': 'users',
                'Key': {'email': 'w@x.io'},
                'UpdateExpression': 'ADD coin :delta',
                'ConditionExpression': 'attribute_exists(email)',
                'ExpressionAttributeValues': {':delta': -5},
            }),
            ('Put', {'TableName': 'tasks', 'Item': {'taskId': 't1'}}),
        ])

        items = storage.client.transact_write_items.call_args.kwargs['TransactItems']
        assert items[0]['Update']['ExpressionAttributeValues'] == {':delta': {'N': '-5'}}
        assert items[0]['Update']['ReturnValuesOnConditionCheckFailure'] == 'ALL_OLD'
        assert items[1] == {'Put': {'TableName': 'tasks', 'Item': {'taskId': {'S': 't1'}}}}

    def test_cancellation_reasons_line_up_with_ops(self, storage):
        storage.client.transact_write_items.side_effect = cancelled(OK, failed({'taskId': 't1'}))

        with pytest.raises(TransactionCancelled) as exc:
            storage.transact([('Put', {'TableName': 'a'}), ('Update', {'TableName': 'b'})])

        assert [r.code for r in exc.value.reasons] == ['None', 'ConditionalCheckFailed']
        assert exc.value.first_failure() == (1, {'taskId': 't1'})

    def test_conflict_without_failed_condition(self, storage):
        storage.client.transact_write_items.side_effect = cancelled(
            {'Code': 'TransactionConflict'}, OK
        )

        with pytest.raises(TransactionCancelled) as exc:
            storage.transact([('Put', {'TableName': 'a'}), ('Put', {'TableName': 'b'})])

        assert exc.value.first_failure() is None

    def test_validation_error_becomes_internal(self, storage):
        storage.client.transact_write_items.side_effect = client_error(
            'ValidationException', 'TransactWriteItems'
        )

        with pytest.raises(Internal):
            storage.transact([('Put', {'TableName': 'a'})])


class TestReads:

    def test_query_follows_pagination(self, storage, tables):
        tables['tasks'].query.side_effect = [
            {'Items': [{'taskId': '1'}], 'LastEvaluatedKey': {'taskId': '1'}},
            {'Items': [{'taskId': '2'}]},
        ]

        items = storage.query('tasks', 'BuyerIndex', key_condition='cond')

        assert [i['taskId'] for i in items] == ['1', '2']
        second = tables['tasks'].query.call_args_list[1].kwargs
        assert second['ExclusiveStartKey'] == {'taskId': '1'}
        assert second['ScanIndexForward'] is False

    def test_get_returns_none_when_absent(self, storage):
        assert storage.get('users', {'email': 'ghost@x.io'}) is None

    def test_put_condition_failure(self, storage, tables):
        tables['users'].put_item.side_effect = condition_failed()

        with pytest.raises(ConditionFailed):
            storage.put('users', {'email': 'w@x.io'}, condition='attribute_not_exists(email)')

    def test_tables_are_cached(self, storage):
        assert storage.table('users') is storage.table('users')
        storage.resource.Table.assert_called_once_with('users')


class TestLifecycle:

    def test_open_uses_configured_endpoint(self, cfg):
        cfg.DYNAMODB_ENDPOINT_URL = 'http://localhost:8000'
        cfg.AWS_REGION = 'eu-west-1'

        with patch('shared.dynamo.boto3') as boto3:
            storage = StorageContext.open(cfg)

        boto3.client.assert_called_once_with(
            'dynamodb', region_name='eu-west-1', endpoint_url='http://localhost:8000'
        )
        assert storage.tables.users == cfg.USERS_TABLE

    def test_context_manager_closes_clients(self, storage):
        with storage:
            pass

        storage.client.close.assert_called_once()
        storage.resource.meta.client.close.assert_called_once()


def test_deserialize_empty_item():
    assert deserialize({}) is None
    assert deserialize(None) is None
