import io
import json

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from core.aws_client import get_mturk_client
from core.config import settings
from core.exceptions import RemoteCallError
from integrations.mturk_client import MTurkGateway
from integrations.s3_client import ObjectStore
from integrations.sns_client import TopicGateway
from integrations.sqs_client import QueueGateway
from schemas.turk_models import HitRequest

from conftest import LAYOUT, QUEUE_URL


def _client(service):
    return boto3.client(
        service,
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def mturk_stub():
    client = _client("mturk")
    with Stubber(client) as stubber:
        yield MTurkGateway(client), stubber
        stubber.assert_no_pending_responses()


class TestMTurkGateway:

    def test_create_hit_sends_layout_parameters(self, mturk_stub):
        gateway, stubber = mturk_stub
        request = HitRequest(
            layout_fields=LAYOUT,
            HITLayoutId="L1",
            HITLayoutParameters={"q1": "ok"},
        )
        expected = dict(LAYOUT, HITLayoutId="L1", HITLayoutParameters=[{"Name": "q1", "Value": "ok"}])
        stubber.add_response("create_hit", {"HIT": {"HITId": "H1", "HITTypeId": "T1"}}, expected)

        assert gateway.create_hit(request) == "H1"

    def test_get_hit_type_id(self, mturk_stub):
        gateway, stubber = mturk_stub
        stubber.add_response("get_hit", {"HIT": {"HITId": "H1", "HITTypeId": "T1"}}, {"HITId": "H1"})

        assert gateway.get_hit_type_id("H1") == "T1"

    def test_get_assignment(self, mturk_stub):
        gateway, stubber = mturk_stub
        stubber.add_response(
            "get_assignment",
            {"Assignment": {"AssignmentId": "A1", "HITId": "H1", "Answer": "<x/>"}},
            {"AssignmentId": "A1"},
        )

        assert gateway.get_assignment("A1")["HITId"] == "H1"

    def test_account_balance(self, mturk_stub):
        gateway, stubber = mturk_stub
        stubber.add_response("get_account_balance", {"AvailableBalance": "10000.00"}, {})

        assert gateway.get_account_balance() == "10000.00"

    def test_enable_notifications(self, mturk_stub):
        gateway, stubber = mturk_stub
        stubber.add_response("update_notification_settings", {}, {
            "HITTypeId": "T1",
            "Notification": {
                "Destination": QUEUE_URL,
                "Transport": "SQS",
                "Version": "2014-08-15",
                "EventTypes": ["AssignmentSubmitted"],
            },
            "Active": True,
        })

        gateway.enable_notifications("T1", QUEUE_URL)

    def test_client_errors_become_remote_call_errors(self, mturk_stub):
        gateway, stubber = mturk_stub
        stubber.add_client_error("get_hit", service_error_code="RequestError", service_message="no such HIT")

        with pytest.raises(RemoteCallError) as exc_info:
            gateway.get_hit("missing")
        assert exc_info.value.operation == "mturk.GetHIT"


class TestQueueGateway:

    def test_receive_and_delete(self):
        client = _client("sqs")
        gateway = QueueGateway(client, QUEUE_URL)
        message = {"MessageId": "m1", "ReceiptHandle": "rh-1", "Body": "{}"}
        with Stubber(client) as stubber:
            stubber.add_response(
                "receive_message",
                {"Messages": [message]},
                {"QueueUrl": QUEUE_URL, "MaxNumberOfMessages": 10, "WaitTimeSeconds": 0},
            )
            stubber.add_response("receive_message", {}, None)
            stubber.add_response("delete_message", {}, {"QueueUrl": QUEUE_URL, "ReceiptHandle": "rh-1"})

            assert gateway.receive(10, 0) == [message]
            assert gateway.receive(10, 0) == []
            gateway.delete("rh-1")


class TestTopicGateway:

    def test_create_and_publish(self):
        client = _client("sns")
        gateway = TopicGateway(client)
        arn = "arn:aws:sns:us-east-1:123456789012:stack-T1"
        with Stubber(client) as stubber:
            stubber.add_response("create_topic", {"TopicArn": arn}, {"Name": "stack-T1"})
            stubber.add_response(
                "publish",
                {"MessageId": "sns-1"},
                {"TopicArn": arn, "Message": json.dumps({"q": "é"}, separators=(",", ":"), ensure_ascii=False)},
            )

            assert gateway.create_topic("stack-T1") == arn
            assert gateway.publish_json(arn, {"q": "é"}) == "sns-1"

    def test_publish_failure(self):
        client = _client("sns")
        with Stubber(client) as stubber:
            stubber.add_client_error("publish", service_error_code="Throttling")
            with pytest.raises(RemoteCallError):
                TopicGateway(client).publish_json("arn:aws:sns:us-east-1:1:t", {})


class TestObjectStore:

    def test_get_object_bytes(self):
        client = _client("s3")
        data = b"q1,q2\na,b\n"
        with Stubber(client) as stubber:
            stubber.add_response(
                "get_object",
                {"Body": StreamingBody(io.BytesIO(data), len(data))},
                {"Bucket": "uploads", "Key": "L1/a.csv"},
            )
            assert ObjectStore(client).get_object_bytes("uploads", "L1/a.csv") == data


def test_mturk_client_does_not_retry():
    client = get_mturk_client(access_key="AK", secret_key="SK", sandbox=True)

    assert client.meta.config.retries["total_max_attempts"] == 1
    assert client.meta.endpoint_url == settings.MTURK_SANDBOX_ENDPOINT
