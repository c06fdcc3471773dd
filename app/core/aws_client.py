# core/aws_client.py
"""
Centralized AWS client factory to ensure proper credential handling.
S3, SQS, SNS and DynamoDB use the process credentials; the Mechanical Turk
client uses the requester credentials stored in the stack configuration.
"""
import boto3
from botocore.config import Config
from core.config import settings
from core.logger import logger
import os


def _process_credentials():
    # Settings (which loads from .env) take precedence over the environment
    return {
        "aws_access_key_id": getattr(settings, 'AWS_ACCESS_KEY_ID', None) or os.getenv('AWS_ACCESS_KEY_ID'),
        "aws_secret_access_key": getattr(settings, 'AWS_SECRET_ACCESS_KEY', None) or os.getenv('AWS_SECRET_ACCESS_KEY'),
        "aws_session_token": getattr(settings, 'AWS_SESSION_TOKEN', None) or os.getenv('AWS_SESSION_TOKEN'),
    }


def _client(service_name: str, config: Config = None):
    try:
        client = boto3.client(
            service_name,
            region_name=settings.AWS_REGION,
            config=config,
            **_process_credentials()
        )
        logger.debug(f"{service_name} client initialized with credentials")
        return client
    except Exception as e:
        logger.error(f"Failed to initialize {service_name} client: {str(e)}")
        raise


def get_s3_client():
    """Get S3 client with proper credentials."""
    return _client("s3")


def get_sqs_client():
    """Get SQS client with proper credentials."""
    return _client("sqs")


def get_sns_client():
    """Get SNS client with proper credentials."""
    return _client("sns")


def get_dynamodb_client():
    """Get DynamoDB client with proper credentials."""
    return _client("dynamodb")


def get_mturk_client(access_key: str, secret_key: str, sandbox: bool):
    """
    Get a Mechanical Turk requester client.

    MTurk only runs in us-east-1; `sandbox` switches to the requester sandbox endpoint.
    """
    endpoint = settings.MTURK_SANDBOX_ENDPOINT if sandbox else settings.MTURK_ENDPOINT
    try:
        client = boto3.client(
            "mturk",
            region_name=settings.MTURK_REGION,
            endpoint_url=endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            # CreateHIT is not idempotent; a retried timeout can create a duplicate HIT
            config=Config(retries={'total_max_attempts': 1, 'mode': 'standard'})
        )
        logger.info(f"MTurk client initialized (sandbox={sandbox})")
        return client
    except Exception as e:
        logger.error(f"Failed to initialize MTurk client: {str(e)}")
        raise


def validate_aws_credentials():
    """Validate that AWS credentials are properly configured."""
    creds = _process_credentials()

    if not creds["aws_access_key_id"] or not creds["aws_secret_access_key"]:
        # Lambda and ECS task roles supply credentials through the default chain
        logger.info("No explicit AWS credentials configured; using the default credential chain")
        return False

    logger.info("AWS credentials found and validated")
    return True
