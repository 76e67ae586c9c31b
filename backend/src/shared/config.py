"""
Configuration module for Lambda handlers.
Loads all environment variables needed by the platform.
"""
import os


class Config:
    """Centralized configuration from environment variables."""

    # AWS Region
    AWS_REGION = os.environ.get('AWS_REGION', 'us-east-1')

    # Local DynamoDB (e.g. http://localhost:8000), empty in AWS
    DYNAMODB_ENDPOINT_URL = os.environ.get('DYNAMODB_ENDPOINT_URL', '')

    # DynamoDB Tables
    USERS_TABLE = os.environ.get('USERS_TABLE', 'microjob-users')
    TASKS_TABLE = os.environ.get('TASKS_TABLE', 'microjob-tasks')
    SUBMISSIONS_TABLE = os.environ.get('SUBMISSIONS_TABLE', 'microjob-submissions')
    WITHDRAWALS_TABLE = os.environ.get('WITHDRAWALS_TABLE', 'microjob-withdrawals')
    NOTIFICATIONS_TABLE = os.environ.get('NOTIFICATIONS_TABLE', 'microjob-notifications')
    PAYMENTS_TABLE = os.environ.get('PAYMENTS_TABLE', 'microjob-payments')

    # Coin economy
    MIN_WITHDRAW_COINS = int(os.environ.get('MIN_WITHDRAW_COINS', '200'))
    COINS_PER_DOLLAR = int(os.environ.get('COINS_PER_DOLLAR', '20'))
    BUYER_SIGNUP_COINS = int(os.environ.get('BUYER_SIGNUP_COINS', '50'))
    WORKER_SIGNUP_COINS = int(os.environ.get('WORKER_SIGNUP_COINS', '10'))

    # SES sender for notification emails (disabled when empty)
    NOTIFICATION_EMAIL_SOURCE = os.environ.get('NOTIFICATION_EMAIL_SOURCE', '')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


config = Config()
