"""
Coin purchases.

create_payment_intent asks the gateway for a client secret for the package
price and stores the intent as a ``created`` payment row owned by the buyer.
When the buyer's browser reports the completed charge, save_purchase flips
that row to ``paid`` and credits the coins stored on it, in one transaction
guarded by ``status = created``. The request body never decides how many
coins are credited, and a replayed report credits nothing.
"""
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr, Key

from .accounts import AccountStore
from .dynamo import StorageContext, TransactionCancelled
from .errors import AlreadyProcessed, Forbidden, Internal, InvalidInput, NotFound
from .logging import logger
from .models import COIN_PACKAGES, PaymentStatus
from .utils import utc_now
from .validation import positive_int, require_str

BUYER_INDEX = 'BuyerIndex'


class MockPaymentGateway:
    """
    Mock payment intent creation - in production this would call the
    card processor's payment-intent API with the same amount.
    """

    def create_intent(self, amount_cents: int, currency: str = 'usd') -> Dict[str, Any]:
        intent_id = f'pi_mock_{uuid.uuid4().hex[:24]}'
        return {
            'paymentIntentId': intent_id,
            'clientSecret': f'{intent_id}_secret_{uuid.uuid4().hex[:16]}',
            'amount': amount_cents,
            'currency': currency,
        }


def package_price(coins: Any) -> int:
    """Price in cents of a coin package; InvalidInput for unknown packages."""
    coins = positive_int(coins, 'coins')
    if coins not in COIN_PACKAGES:
        raise InvalidInput(
            f"Unknown coin package; available: {', '.join(str(c) for c in sorted(COIN_PACKAGES))}",
            {'field': 'coins'}
        )
    return COIN_PACKAGES[coins]


class PurchaseLedger:
    """Payments table access and purchase crediting."""

    def __init__(self, storage: StorageContext, accounts: AccountStore, gateway=None):
        self.storage = storage
        self.accounts = accounts
        self.gateway = gateway or MockPaymentGateway()
        self.table_name = storage.tables.payments

    def create_payment_intent(self, buyer_email: str, fields: dict) -> Dict[str, Any]:
        coins = positive_int(fields.get('coins'), 'coins')
        price_cents = package_price(coins)
        intent = self.gateway.create_intent(price_cents)

        self.storage.put(self.table_name, {
            'paymentId': intent['paymentIntentId'],
            'buyerEmail': buyer_email,
            'coins': coins,
            'price': (Decimal(price_cents) / 100).quantize(Decimal('0.01')),
            'currency': intent['currency'],
            'status': PaymentStatus.CREATED,
            'createdAt': utc_now(),
        }, condition='attribute_not_exists(paymentId)')

        logger.info(f"Payment intent {intent['paymentIntentId']} created for {buyer_email}: {coins} coins")
        return {**intent, 'coins': coins}

    def save_purchase(self, buyer_email: str, fields: dict) -> Dict[str, Any]:
        """Credit the coins of a completed intent. Body ``coins``, if sent, must match it."""
        payment_id = require_str(fields, 'paymentIntentId', max_length=255)
        payment = self.storage.get(self.table_name, {'paymentId': payment_id})
        self._check_payable(payment_id, buyer_email, payment)

        coins = int(payment['coins'])
        if fields.get('coins') is not None and positive_int(fields['coins'], 'coins') != coins:
            raise InvalidInput(
                f'Payment {payment_id} is for {coins} coins',
                {'field': 'coins', 'expected': coins}
            )

        paid_at = utc_now()
        try:
            self.storage.transact([
                ('Update', {
                    'TableName': self.table_name,
                    'Key': {'paymentId': payment_id},
                    'UpdateExpression': 'SET #status = :paid, paidAt = :ts',
                    'ConditionExpression': (
                        'attribute_exists(paymentId) AND #status = :created AND buyerEmail = :buyer'
                    ),
                    'ExpressionAttributeNames': {'#status': 'status'},
                    'ExpressionAttributeValues': {
                        ':paid': PaymentStatus.PAID,
                        ':created': PaymentStatus.CREATED,
                        ':buyer': buyer_email,
                        ':ts': paid_at,
                    },
                }),
                self.accounts.adjust_op(buyer_email, coins),
            ])
        except TransactionCancelled as e:
            index, old_item = e.first_failure() or (None, None)
            if index == 0:
                self._check_payable(payment_id, buyer_email, old_item)
                raise AlreadyProcessed(f'Payment {payment_id} already saved')
            if index == 1:
                raise NotFound(f'User {buyer_email} not found')
            raise Internal('Could not save purchase, retry the request')

        logger.info(f"Purchase {payment_id}: {buyer_email} credited {coins} coins")
        return {**payment, 'status': PaymentStatus.PAID, 'paidAt': paid_at}

    @staticmethod
    def _check_payable(payment_id: str, buyer_email: str, payment: Optional[Dict[str, Any]]) -> None:
        if not payment:
            raise NotFound(f'Payment intent {payment_id} not found')
        if payment.get('buyerEmail') != buyer_email:
            raise Forbidden('Payment intent belongs to another buyer')
        if payment.get('status') != PaymentStatus.CREATED:
            raise AlreadyProcessed(
                f'Payment {payment_id} already saved', {'status': payment.get('status')}
            )

    def list_for(self, buyer_email: str) -> List[Dict[str, Any]]:
        """Completed purchases, newest first."""
        return self.storage.query(
            self.table_name,
            BUYER_INDEX,
            Key('buyerEmail').eq(buyer_email),
            filter_expression=Attr('status').eq(PaymentStatus.PAID),
        )
