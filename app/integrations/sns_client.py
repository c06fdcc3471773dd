# app/integrations/sns_client.py
import json
from typing import Any, Dict

from core.logger import logger
from integrations.remote import remote_call


class TopicGateway:
    """Topic creation and JSON publishing on SNS."""

    def __init__(self, client):
        self._client = client

    def create_topic(self, name: str) -> str:
        # CreateTopic is idempotent by name and returns the existing ARN
        with remote_call("sns.CreateTopic"):
            arn = self._client.create_topic(Name=name)["TopicArn"]
        logger.info(f"Resolved SNS topic {name} -> {arn}")
        return arn

    def publish_json(self, topic_arn: str, payload: Dict[str, Any]) -> str:
        """Publish `payload` as a compact JSON message and return the SNS MessageId."""
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        with remote_call("sns.Publish"):
            resp = self._client.publish(TopicArn=topic_arn, Message=body)
        msg_id = resp.get("MessageId", "")
        logger.info(f"Sending message to SNS: {body}", extra={"topic_arn": topic_arn, "msg_id": msg_id})
        return msg_id
