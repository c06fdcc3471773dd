# integrations/remote.py
from contextlib import contextmanager

from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import RemoteCallError
from core.logger import logger


@contextmanager
def remote_call(operation: str):
    """Translate botocore failures for `operation` into RemoteCallError."""
    try:
        yield
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Remote call {operation} failed: {e}")
        raise RemoteCallError(operation, e) from e
