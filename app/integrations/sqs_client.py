# app/integrations/sqs_client.py
from typing import Any, Dict, List

from core.logger import logger
from integrations.remote import remote_call


class QueueGateway:
    """Receive/delete access to the MTurk notification queue."""

    def __init__(self, client, queue_url: str):
        self._client = client
        self.queue_url = queue_url

    def receive(self, max_messages: int = 10, wait_time_seconds: int = 0) -> List[Dict[str, Any]]:
        with remote_call("sqs.ReceiveMessage"):
            resp = self._client.receive_message(
                QueueUrl=self.queue_url,
                MaxNumberOfMessages=max_messages,
                WaitTimeSeconds=wait_time_seconds,
            )
        messages = resp.get("Messages", [])
        logger.debug(f"SQS receive returned {len(messages)} message(s)")
        return messages

    def delete(self, receipt_handle: str) -> None:
        with remote_call("sqs.DeleteMessage"):
            self._client.delete_message(QueueUrl=self.queue_url, ReceiptHandle=receipt_handle)

    def queue_arn(self) -> str:
        with remote_call("sqs.GetQueueAttributes"):
            resp = self._client.get_queue_attributes(
                QueueUrl=self.queue_url,
                AttributeNames=["QueueArn"]
            )
        return resp["Attributes"]["QueueArn"]
