"""
DynamoDB storage context.

One StorageContext owns the boto3 client and resource for the process. The
entry point opens it and hands it to every store; stores never create their
own handles.

Writes are described as plain request dicts with native Python values
(``Key``, ``Item``, ``ExpressionAttributeValues``); they are serialized to the
low-level attribute format here, so the same request works for a single
conditional update and as one item of a transaction.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from .config import config as default_config
from .errors import Internal
from .logging import logger

CONDITIONAL_CHECK_FAILED = 'ConditionalCheckFailedException'
TRANSACTION_CANCELED = 'TransactionCanceledException'

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()

# Request fields carrying native values that must be serialized
_VALUE_FIELDS = ('Key', 'Item', 'ExpressionAttributeValues')


def serialize(values: Dict[str, Any]) -> Dict[str, Any]:
    """Native dict -> DynamoDB attribute-value dict."""
    return {k: _serializer.serialize(v) for k, v in values.items()}


def deserialize(item: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """DynamoDB attribute-value dict -> native dict (None stays None)."""
    if not item:
        return None
    return {k: _deserializer.deserialize(v) for k, v in item.items()}


def error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', '')


def _prepare(spec: Dict[str, Any]) -> Dict[str, Any]:
    params = dict(spec)
    for field in _VALUE_FIELDS:
        if field in params:
            params[field] = serialize(params[field])
    return params


class ConditionFailed(Exception):
    """A conditional single-item write was refused."""

    def __init__(self, old_item: Optional[Dict[str, Any]]):
        super().__init__('Conditional check failed')
        self.old_item = old_item


class CancellationReason:
    """Why one item of a cancelled transaction failed."""

    def __init__(self, code: str, old_item: Optional[Dict[str, Any]]):
        self.code = code
        self.old_item = old_item

    @property
    def condition_failed(self) -> bool:
        return self.code == 'ConditionalCheckFailed'


class TransactionCancelled(Exception):
    """
    transact_write_items was cancelled. ``reasons`` lines up with the
    submitted ops, so callers can tell which precondition failed.
    """

    def __init__(self, reasons: List[CancellationReason]):
        super().__init__('Transaction cancelled')
        self.reasons = reasons

    def first_failure(self) -> Optional[Tuple[int, Optional[Dict[str, Any]]]]:
        """(index, old item) of the first failed condition, or None."""
        for index, reason in enumerate(self.reasons):
            if reason.condition_failed:
                return index, reason.old_item
        return None


class TableNames:
    """Physical table names, resolved once from configuration."""

    def __init__(self, users, tasks, submissions, withdrawals, notifications, payments):
        self.users = users
        self.tasks = tasks
        self.submissions = submissions
        self.withdrawals = withdrawals
        self.notifications = notifications
        self.payments = payments

    @classmethod
    def from_config(cls, cfg) -> 'TableNames':
        return cls(
            users=cfg.USERS_TABLE,
            tasks=cfg.TASKS_TABLE,
            submissions=cfg.SUBMISSIONS_TABLE,
            withdrawals=cfg.WITHDRAWALS_TABLE,
            notifications=cfg.NOTIFICATIONS_TABLE,
            payments=cfg.PAYMENTS_TABLE,
        )


class StorageContext:
    """Shared DynamoDB handles plus the table-name map."""

    def __init__(self, client, resource, table_names: TableNames):
        self.client = client
        self.resource = resource
        self.tables = table_names
        self._table_cache = {}

    @classmethod
    def open(cls, cfg=None) -> 'StorageContext':
        cfg = cfg or default_config
        kwargs = {'region_name': cfg.AWS_REGION}
        if cfg.DYNAMODB_ENDPOINT_URL:
            kwargs['endpoint_url'] = cfg.DYNAMODB_ENDPOINT_URL

        client = boto3.client('dynamodb', **kwargs)
        resource = boto3.resource('dynamodb', **kwargs)
        logger.info(f"Opened DynamoDB storage in {cfg.AWS_REGION}")
        return cls(client, resource, TableNames.from_config(cfg))

    def close(self) -> None:
        self.client.close()
        self.resource.meta.client.close()
        self._table_cache.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def table(self, name: str):
        """Resource-level table, cached per name."""
        if name not in self._table_cache:
            self._table_cache[name] = self.resource.Table(name)
        return self._table_cache[name]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, table_name: str, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Get a single item, None if absent."""
        try:
            response = self.table(table_name).get_item(Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._internal(f"getting item from {table_name}", e)
        return response.get('Item')

    def query(
        self,
        table_name: str,
        index_name: str,
        key_condition: Any,
        filter_expression: Optional[Any] = None,
        scan_forward: bool = False
    ) -> List[Dict[str, Any]]:
        """
        Query a GSI, following LastEvaluatedKey until exhausted.
        Newest first by default (sort keys are createdAt timestamps).
        """
        params = {
            'IndexName': index_name,
            'KeyConditionExpression': key_condition,
            'ScanIndexForward': scan_forward,
        }
        if filter_expression is not None:
            params['FilterExpression'] = filter_expression

        items = []
        try:
            table = self.table(table_name)
            while True:
                response = table.query(**params)
                items.extend(response.get('Items', []))
                last_key = response.get('LastEvaluatedKey')
                if not last_key:
                    return items
                params['ExclusiveStartKey'] = last_key
        except (ClientError, BotoCoreError) as e:
            raise self._internal(f"querying {table_name}", e)

    def scan(self, table_name: str, filter_expression: Optional[Any] = None) -> List[Dict[str, Any]]:
        params = {}
        if filter_expression is not None:
            params['FilterExpression'] = filter_expression

        items = []
        try:
            table = self.table(table_name)
            while True:
                response = table.scan(**params)
                items.extend(response.get('Items', []))
                last_key = response.get('LastEvaluatedKey')
                if not last_key:
                    return items
                params['ExclusiveStartKey'] = last_key
        except (ClientError, BotoCoreError) as e:
            raise self._internal(f"scanning {table_name}", e)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, table_name: str, item: Dict[str, Any], condition: Optional[str] = None) -> Dict[str, Any]:
        """Put an item; a failed ``condition`` raises ConditionFailed."""
        params = {'Item': item}
        if condition:
            params['ConditionExpression'] = condition
        try:
            self.table(table_name).put_item(**params)
        except ClientError as e:
            if error_code(e) == CONDITIONAL_CHECK_FAILED:
                raise ConditionFailed(None)
            raise self._internal(f"putting item into {table_name}", e)
        except BotoCoreError as e:
            raise self._internal(f"putting item into {table_name}", e)
        return item

    def delete(self, table_name: str, key: Dict[str, Any], condition: Optional[str] = None) -> None:
        params = {'Key': key}
        if condition:
            params['ConditionExpression'] = condition
        try:
            self.table(table_name).delete_item(**params)
        except ClientError as e:
            if error_code(e) == CONDITIONAL_CHECK_FAILED:
                raise ConditionFailed(None)
            raise self._internal(f"deleting item from {table_name}", e)
        except BotoCoreError as e:
            raise self._internal(f"deleting item from {table_name}", e)

    def update(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        """
        Conditional single-item update. Returns the item after the write.
        Raises ConditionFailed carrying the item as it was before.
        """
        params = _prepare(spec)
        params['ReturnValues'] = 'ALL_NEW'
        params['ReturnValuesOnConditionCheckFailure'] = 'ALL_OLD'
        try:
            response = self.client.update_item(**params)
        except ClientError as e:
            if error_code(e) == CONDITIONAL_CHECK_FAILED:
                raise ConditionFailed(deserialize(e.response.get('Item')))
            raise self._internal(f"updating {spec.get('TableName')}", e)
        except BotoCoreError as e:
            raise self._internal(f"updating {spec.get('TableName')}", e)
        return deserialize(response.get('Attributes')) or {}

    def transact(self, ops: Iterable[Tuple[str, Dict[str, Any]]]) -> None:
        """
        All-or-nothing write of (kind, spec) ops, kind being one of
        Put, Update, Delete or ConditionCheck.
        """
        items = []
        for kind, spec in ops:
            params = _prepare(spec)
            if 'ConditionExpression' in params:
                params['ReturnValuesOnConditionCheckFailure'] = 'ALL_OLD'
            items.append({kind: params})

        try:
            self.client.transact_write_items(TransactItems=items)
        except ClientError as e:
            if error_code(e) == TRANSACTION_CANCELED:
                reasons = [
                    CancellationReason(r.get('Code', ''), deserialize(r.get('Item')))
                    for r in e.response.get('CancellationReasons', [])
                ]
                logger.info(f"Transaction cancelled: {[r.code for r in reasons]}")
                raise TransactionCancelled(reasons)
            raise self._internal('writing transaction', e)
        except BotoCoreError as e:
            raise self._internal('writing transaction', e)

    @staticmethod
    def _internal(action: str, error: Exception) -> Internal:
        logger.error(f"Error {action}: {error}")
        return Internal('Storage unavailable')
