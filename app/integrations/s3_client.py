# integrations/s3_client.py
from core.logger import logger
from integrations.remote import remote_call


class ObjectStore:

    def __init__(self, client):
        self._client = client

    def get_object_bytes(self, bucket: str, key: str) -> bytes:
        with remote_call("s3.GetObject"):
            resp = self._client.get_object(Bucket=bucket, Key=key)
            body = resp["Body"].read()
        logger.info(f"Fetched s3://{bucket}/{key} ({len(body)} bytes)")
        return body
