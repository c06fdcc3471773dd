import itertools
import os
import threading

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-task-integrator-suite")
os.environ.setdefault("RATE_LIMIT_MIN", "1000")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

import pytest

from core.exceptions import RemoteCallError
from schemas.turk_models import TurkAuth, TurkConfig
from services.topic_cache import topic_arn_cache
from services.turk_context import TurkContext

LAYOUT = {
    "Title": "Label the sentiment",
    "Description": "Read a sentence and pick its sentiment",
    "Reward": "0.05",
    "AssignmentDurationInSeconds": 600,
    "LifetimeInSeconds": 86400,
    "MaxAssignments": 1,
}

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/turk-notifications"


def answer_xml(**answers):
    parts = "".join(
        f"<Answer><QuestionIdentifier>{q}</QuestionIdentifier><FreeText>{a}</FreeText></Answer>"
        for q, a in answers.items()
    )
    return (
        '<?xml version="1.0" encoding="ASCII"?>'
        '<QuestionFormAnswers xmlns="http://mechanicalturk.amazonaws.com/'
        'AWSMechanicalTurkDataSchemas/2005-10-01/QuestionFormAnswers.xsd">'
        f"{parts}</QuestionFormAnswers>"
    )


class FakeMTurk:
    """In-memory stand-in for MTurkGateway."""

    def __init__(self, fail_when=None):
        self.fail_when = fail_when
        self.hits = {}
        self.assignments = {}
        self.created = []
        self.notifications = []
        self.balance = "10000.00"
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create_hit(self, request):
        if self.fail_when and self.fail_when(request):
            raise RemoteCallError("mturk.CreateHIT", RuntimeError("ServiceUnavailable"))
        with self._lock:
            hit_id = f"HIT{next(self._ids)}"
            self.hits[hit_id] = {"HITId": hit_id, "HITTypeId": f"TYPE-{request.hit_layout_id}"}
            self.created.append(request)
        return hit_id

    def get_hit(self, hit_id):
        if hit_id not in self.hits:
            raise RemoteCallError("mturk.GetHIT", KeyError(hit_id))
        return self.hits[hit_id]

    def get_hit_type_id(self, hit_id):
        return self.get_hit(hit_id)["HITTypeId"]

    def get_assignment(self, assignment_id):
        if assignment_id not in self.assignments:
            raise RemoteCallError("mturk.GetAssignment", KeyError(assignment_id))
        return self.assignments[assignment_id]

    def get_account_balance(self):
        return self.balance

    def enable_notifications(self, hit_type_id, destination, event_types=None):
        self.notifications.append((hit_type_id, destination))

    def add_assignment(self, assignment_id, hit_id, hit_type_id, answer):
        self.hits[hit_id] = {"HITId": hit_id, "HITTypeId": hit_type_id}
        self.assignments[assignment_id] = {
            "AssignmentId": assignment_id,
            "HITId": hit_id,
            "Answer": answer,
        }


class FakeTopics:
    """In-memory stand-in for TopicGateway."""

    def __init__(self, fail_when=None):
        self.fail_when = fail_when
        self.created = []
        self.published = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create_topic(self, name):
        with self._lock:
            self.created.append(name)
        return f"arn:aws:sns:us-east-1:123456789012:{name}"

    def publish_json(self, topic_arn, payload):
        if self.fail_when and self.fail_when(payload):
            raise RemoteCallError("sns.Publish", RuntimeError("Throttled"))
        with self._lock:
            self.published.append((topic_arn, payload))
            return f"sns-{next(self._ids)}"


class FakeQueue:
    """
    SQS stand-in: undeleted messages become visible again on the next receive.
    `rounds` optionally scripts what each receive returns.
    """

    def __init__(self, messages=None, rounds=None):
        self.queue_url = QUEUE_URL
        self.messages = list(messages or [])
        self.rounds = list(rounds) if rounds is not None else None
        self.receive_calls = 0
        self.deleted = []
        self.delivered = []

    def receive(self, max_messages=10, wait_time_seconds=0):
        self.receive_calls += 1
        if self.rounds is not None:
            batch = self.rounds.pop(0) if self.rounds else []
        else:
            batch = [m for m in self.messages if m["ReceiptHandle"] not in self.deleted][:max_messages]
        self.delivered.append([m["MessageId"] for m in batch])
        return [dict(m) for m in batch]

    def delete(self, receipt_handle):
        self.deleted.append(receipt_handle)


class FakeObjects:

    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.fetched = []

    def get_object_bytes(self, bucket, key):
        self.fetched.append((bucket, key))
        return self.objects[(bucket, key)]


def s3_record(key, bucket="uploads"):
    return {"eventName": "ObjectCreated:Put", "s3": {"bucket": {"name": bucket}, "object": {"key": key}}}


@pytest.fixture(autouse=True)
def _clear_topic_cache():
    topic_arn_cache.clear()
    yield
    topic_arn_cache.clear()


@pytest.fixture
def turk_config():
    return TurkConfig(
        auth=TurkAuth(access_key="AKIDEXAMPLE", secret_key="secret"),
        sandbox=True,
        layouts={"L1": LAYOUT, "L2": dict(LAYOUT, Reward="0.10")},
        turk_notification_queue=QUEUE_URL,
    )


@pytest.fixture
def fake_mturk():
    return FakeMTurk()


@pytest.fixture
def turk_context(turk_config, fake_mturk):
    return TurkContext(stack_name="teststack", config=turk_config, mturk=fake_mturk)
