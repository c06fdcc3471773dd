import json

import pytest

from core.exceptions import ParseError, RelayError
from services.notification_relay import NotificationRelay, parse_notification
from services.topic_cache import TopicArnCache

from conftest import FakeMTurk, FakeQueue, FakeTopics, answer_xml


def sqs_message(message_id, *assignment_ids, event_type="AssignmentSubmitted"):
    events = [
        {"EventType": event_type, "EventTimestamp": "2026-10-18T10:00:00Z", "AssignmentId": a}
        for a in assignment_ids
    ]
    return {
        "MessageId": message_id,
        "ReceiptHandle": f"rh-{message_id}",
        "Body": json.dumps({"Events": events, "EventDocVersion": "2014-08-15"}),
    }


@pytest.fixture
def mturk():
    mturk = FakeMTurk()
    mturk.add_assignment("A1", "H1", "T1", answer_xml(sentiment="positive"))
    mturk.add_assignment("A2", "H2", "T1", answer_xml(sentiment="negative"))
    mturk.add_assignment("A3", "H3", "T2", answer_xml(label="cat"))
    return mturk


def make_relay(mturk, queue, topics, **kwargs):
    kwargs.setdefault("max_rounds", 10)
    return NotificationRelay(
        mturk=mturk,
        queue=queue,
        topics=topics,
        topic_prefix="teststack",
        cache=TopicArnCache(),
        **kwargs
    )


def test_ten_empty_rounds_publish_nothing(mturk):
    queue, topics = FakeQueue(), FakeTopics()

    result = make_relay(mturk, queue, topics).run()

    assert result.message_ids == []
    assert result.summary == "0 messages pushed to SNS."
    assert result.rounds == 10
    assert queue.receive_calls == 10
    assert queue.deleted == []


def test_message_is_flattened_published_and_deleted(mturk):
    queue, topics = FakeQueue([sqs_message("m1", "A1", "A3")]), FakeTopics()

    result = make_relay(mturk, queue, topics, max_rounds=1).run()

    assert len(result.message_ids) == 2
    assert topics.published == [
        ("arn:aws:sns:us-east-1:123456789012:teststack-T1", {"sentiment": "positive"}),
        ("arn:aws:sns:us-east-1:123456789012:teststack-T2", {"label": "cat"}),
    ]
    assert queue.deleted == ["rh-m1"]


def test_topic_is_created_once_per_hit_type(mturk):
    queue = FakeQueue([sqs_message("m1", "A1"), sqs_message("m2", "A2")])
    topics = FakeTopics()

    result = make_relay(mturk, queue, topics, max_rounds=1).run()

    assert len(result.message_ids) == 2
    assert topics.created == ["teststack-T1"]
    assert sorted(queue.deleted) == ["rh-m1", "rh-m2"]


def test_partial_failure_leaves_message_for_redelivery(mturk):
    queue = FakeQueue([sqs_message("m1", "A1", "A2")])
    topics = FakeTopics(fail_when=lambda payload: payload == {"sentiment": "negative"})

    with pytest.raises(RelayError) as exc_info:
        make_relay(mturk, queue, topics, max_rounds=2).run()

    result = exc_info.value.result
    assert queue.deleted == []
    # redelivered on the second poll
    assert queue.delivered == [["m1"], ["m1"]]
    # the event that succeeded went out again: at-least-once
    assert topics.published == [
        ("arn:aws:sns:us-east-1:123456789012:teststack-T1", {"sentiment": "positive"}),
        ("arn:aws:sns:us-east-1:123456789012:teststack-T1", {"sentiment": "positive"}),
    ]
    assert len(result.message_ids) == 2
    assert [f.message_id for f in result.failures] == ["m1", "m1"]
    assert all(len(f.published_ids) == 1 for f in result.failures)


def test_other_messages_are_still_relayed_when_one_fails(mturk):
    queue = FakeQueue([sqs_message("bad", "A-unknown"), sqs_message("good", "A1")])
    topics = FakeTopics()

    with pytest.raises(RelayError) as exc_info:
        make_relay(mturk, queue, topics, max_rounds=1).run()

    assert queue.deleted == ["rh-good"]
    assert exc_info.value.result.message_ids != []


def test_malformed_body_is_not_deleted(mturk):
    bad = {"MessageId": "m1", "ReceiptHandle": "rh-m1", "Body": "{not json"}
    queue, topics = FakeQueue([bad]), FakeTopics()

    with pytest.raises(RelayError) as exc_info:
        make_relay(mturk, queue, topics, max_rounds=1).run()

    assert isinstance(exc_info.value.result.failures[0].error, ParseError)
    assert queue.deleted == []


def test_events_without_assignment_are_skipped(mturk):
    queue = FakeQueue([sqs_message("ping", None, event_type="Ping")])
    topics = FakeTopics()

    result = make_relay(mturk, queue, topics, max_rounds=1).run()

    assert result.message_ids == []
    assert queue.deleted == ["rh-ping"]


def test_stop_after_consecutive_empty_polls(mturk):
    queue = FakeQueue(rounds=[[sqs_message("m1", "A1")], [], [], [sqs_message("m2", "A2")]])
    topics = FakeTopics()

    result = make_relay(mturk, queue, topics, stop_after_empty_polls=2).run()

    assert queue.receive_calls == 3
    assert result.rounds == 3
    assert len(result.message_ids) == 1


def test_deadline_stops_polling(mturk):
    ticks = iter([0.0, 0.0, 1.0, 5.0, 99.0])
    queue, topics = FakeQueue(), FakeTopics()

    result = make_relay(mturk, queue, topics, clock=lambda: next(ticks)).run(deadline_seconds=5.0)

    assert queue.receive_calls == 2
    assert result.rounds == 2


def test_parse_notification_rejects_wrong_shape():
    with pytest.raises(ParseError):
        parse_notification(json.dumps({"Events": [{"AssignmentId": "A1"}]}))
