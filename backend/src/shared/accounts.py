"""
Account Store - user role and coin balance.

The store is the only authority for the non-negative balance rule: every
balance change is one conditional DynamoDB update (``ADD coin :delta`` guarded
by ``coin >= :needed`` for debits), so concurrent debits against the same
account serialize in DynamoDB and at most the affordable ones succeed.
"""
from typing import Any, Dict, List, Optional, Tuple

from .config import config
from .dynamo import ConditionFailed, StorageContext
from .errors import InsufficientBalance, Internal, InvalidInput, NotFound
from .logging import logger
from .models import Role, signup_coins
from .utils import utc_now


class AccountStore:
    """Users table access: login upsert, balance changes, admin management."""

    def __init__(self, storage: StorageContext, cfg=None):
        self.storage = storage
        self.table_name = storage.tables.users
        self.config = cfg or config

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find(self, email: str) -> Optional[Dict[str, Any]]:
        return self.storage.get(self.table_name, {'email': email})

    def get(self, email: str) -> Dict[str, Any]:
        account = self.find(email)
        if not account:
            raise NotFound(f'User {email} not found')
        return account

    def get_balance(self, email: str) -> int:
        """Current coins; 0 for unknown accounts."""
        account = self.find(email)
        if not account:
            return 0
        return int(account.get('coin', 0))

    def list_all(self) -> List[Dict[str, Any]]:
        accounts = self.storage.scan(self.table_name)
        accounts.sort(key=lambda a: a.get('createdAt', ''))
        return accounts

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def upsert_on_login(
        self,
        email: str,
        role: Optional[str] = None,
        name: Optional[str] = None,
        photo_url: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Refresh lastLoginAt for an existing account, otherwise create it
        with the one-time signup coins for its role. The balance and role of
        an existing account are never touched here.
        """
        now = utc_now()
        account = self._refresh_login(email, now)
        if account is not None:
            return account

        role = role or Role.WORKER
        if role not in Role.SELF_SERVICE:
            raise InvalidInput(
                f"role must be one of: {', '.join(Role.SELF_SERVICE)}",
                {'field': 'role'}
            )

        account = {
            'email': email,
            'name': name or email.split('@')[0],
            'role': role,
            'coin': signup_coins(
                role, self.config.BUYER_SIGNUP_COINS, self.config.WORKER_SIGNUP_COINS
            ),
            'createdAt': now,
            'lastLoginAt': now,
        }
        if photo_url:
            account['photoUrl'] = photo_url

        try:
            self.storage.put(self.table_name, account, condition='attribute_not_exists(email)')
        except ConditionFailed:
            # A concurrent first login created it
            logger.info(f"Account {email} created concurrently, refreshing login")
            account = self._refresh_login(email, now)
            if account is not None:
                return account
            raise Internal('Account changed during login, retry the request')

        logger.info(f"Created {role} account {email} with {account['coin']} coins")
        return account

    def _refresh_login(self, email: str, now: str) -> Optional[Dict[str, Any]]:
        """Set lastLoginAt on an existing account; None if there is none."""
        try:
            return self.storage.update({
                'TableName': self.table_name,
                'Key': {'email': email},
                'UpdateExpression': 'SET lastLoginAt = :ts',
                'ConditionExpression': 'attribute_exists(email)',
                'ExpressionAttributeValues': {':ts': now},
            })
        except ConditionFailed:
            return None

    # ------------------------------------------------------------------
    # Balance
    # ------------------------------------------------------------------

    def adjust_spec(self, email: str, delta: int) -> Dict[str, Any]:
        """
        Update spec applying ``coin += delta``. Debits carry the
        sufficiency condition; credits only require the account to exist.
        Usable directly or as one op of a transaction.
        """
        condition = 'attribute_exists(email)'
        values = {':delta': delta, ':ts': utc_now()}
        if delta < 0:
            condition += ' AND coin >= :needed'
            values[':needed'] = -delta

        return {
            'TableName': self.table_name,
            'Key': {'email': email},
            'UpdateExpression': 'ADD coin :delta SET updatedAt = :ts',
            'ConditionExpression': condition,
            'ExpressionAttributeValues': values,
        }

    def adjust_op(self, email: str, delta: int) -> Tuple[str, Dict[str, Any]]:
        return 'Update', self.adjust_spec(email, delta)

    def adjust_balance(self, email: str, delta: int) -> Dict[str, Any]:
        """Atomically apply ``coin += delta`` and return the account."""
        try:
            account = self.storage.update(self.adjust_spec(email, delta))
        except ConditionFailed as e:
            raise self.balance_error(email, delta, e.old_item)

        logger.info(f"Adjusted {email} balance by {delta} to {account.get('coin')}")
        return account

    @staticmethod
    def balance_error(email: str, delta: int, old_item: Optional[Dict[str, Any]]):
        """Map a failed balance condition to the domain error."""
        if not old_item:
            return NotFound(f'User {email} not found')
        return InsufficientBalance(
            f'Insufficient balance: {email} has {old_item.get("coin", 0)} coins, needs {-delta}',
            {'balance': old_item.get('coin', 0), 'required': -delta}
        )

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def set_role(self, email: str, role: str) -> Dict[str, Any]:
        if role not in Role.ALL:
            raise InvalidInput(f"role must be one of: {', '.join(Role.ALL)}", {'field': 'role'})
        try:
            account = self.storage.update({
                'TableName': self.table_name,
                'Key': {'email': email},
                'UpdateExpression': 'SET #role = :role, updatedAt = :ts',
                'ConditionExpression': 'attribute_exists(email)',
                'ExpressionAttributeNames': {'#role': 'role'},
                'ExpressionAttributeValues': {':role': role, ':ts': utc_now()},
            })
        except ConditionFailed:
            raise NotFound(f'User {email} not found')

        logger.info(f"Set role of {email} to {role}")
        return account

    def delete(self, email: str) -> None:
        try:
            self.storage.delete(self.table_name, {'email': email}, condition='attribute_exists(email)')
        except ConditionFailed:
            raise NotFound(f'User {email} not found')
        logger.info(f"Deleted account {email}")
