# services/notification_relay.py
"""
MTurk notification queue -> SNS relay.

Each SQS message carries one or more assignment events. For every event the
relay loads the assignment and its HIT, flattens the answer document and
publishes it to the '{stack}-{HITTypeId}' topic. The SQS message is deleted
only after all of its events were published.

Delivery is at-least-once: if a later event of a message fails, the message
stays on the queue and the events that already went out are published again
when it is redelivered. Topic subscribers must tolerate duplicates.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from core.config import settings
from core.exceptions import ParseError, RelayError
from core.logger import logger
from integrations.mturk_client import MTurkGateway
from integrations.sns_client import TopicGateway
from integrations.sqs_client import QueueGateway
from schemas.turk_models import NotificationEvent, NotificationMessage
from services.document_flattener import extract_answers
from services.topic_cache import TopicArnCache, topic_arn_cache
from utils.fanout import map_bounded


@dataclass
class MessageFailure:
    message_id: str
    error: Exception
    published_ids: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"message {self.message_id}: {self.error} "
            f"({len(self.published_ids)} event(s) already published)"
        )


@dataclass
class RelayResult:
    message_ids: List[str] = field(default_factory=list)
    rounds: int = 0
    failures: List[MessageFailure] = field(default_factory=list)

    @property
    def summary(self) -> str:
        return f"{len(self.message_ids)} messages pushed to SNS."


def parse_notification(body: str) -> NotificationMessage:
    try:
        return NotificationMessage.model_validate(json.loads(body))
    except (ValueError, ValidationError) as e:
        raise ParseError(f"Malformed notification body: {e}") from e


class NotificationRelay:
    """
    Drains the notification queue for a bounded number of polling rounds.

    Rounds: Idle -> Polling -> (empty -> Idle) | (delivered -> Processing ->
    Acked -> Idle). The relay stops after `max_rounds`, after
    `stop_after_empty_polls` consecutive empty polls when set, or once a
    caller deadline has passed. It never promises the queue is empty.
    """

    def __init__(
        self,
        mturk: MTurkGateway,
        queue: QueueGateway,
        topics: TopicGateway,
        topic_prefix: str,
        cache: TopicArnCache = topic_arn_cache,
        max_rounds: Optional[int] = None,
        batch_size: Optional[int] = None,
        wait_time_seconds: Optional[int] = None,
        stop_after_empty_polls: Optional[int] = None,
        max_workers: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.mturk = mturk
        self.queue = queue
        self.topics = topics
        self.topic_prefix = topic_prefix
        self.cache = cache
        self.max_rounds = max_rounds if max_rounds is not None else settings.RELAY_MAX_ROUNDS
        self.batch_size = batch_size or settings.RELAY_BATCH_SIZE
        self.wait_time_seconds = (
            wait_time_seconds if wait_time_seconds is not None else settings.RELAY_WAIT_TIME_SECONDS
        )
        self.stop_after_empty_polls = (
            stop_after_empty_polls if stop_after_empty_polls is not None
            else settings.RELAY_STOP_AFTER_EMPTY_POLLS
        )
        self.max_workers = max_workers
        self.clock = clock

    # ========================================================================
    # EVENT / MESSAGE PROCESSING
    # ========================================================================

    def relay_event(self, event: NotificationEvent) -> str:
        """Publish one assignment's answers and return the SNS MessageId."""
        assignment = self.mturk.get_assignment(event.AssignmentId)
        hit_id = assignment.get("HITId") or event.HITId
        hit_type_id = self.mturk.get_hit_type_id(hit_id)
        topic_arn = self.cache.resolve(hit_type_id, self.topic_prefix, self.topics)
        answers = extract_answers(assignment.get("Answer", ""))
        return self.topics.publish_json(topic_arn, answers)

    def relay_message(self, message: Dict[str, Any]) -> Tuple[List[str], Optional[MessageFailure]]:
        """
        Relay every event of one SQS message, then delete it.

        Returns the published MessageIds and, when something failed, the
        failure; a failed message is left on the queue.
        """
        message_id = message.get("MessageId", "unknown")
        published: List[str] = []
        try:
            body = message.get("Body", "")
            logger.info(f"Received Mechanical Turk notification: {body}")
            notification = parse_notification(body)

            for event in notification.Events:
                if not event.AssignmentId:
                    logger.info(
                        f"Skipping {event.EventType} event without an assignment",
                        extra={"sqs_message_id": message_id}
                    )
                    continue
                published.append(self.relay_event(event))

            self.queue.delete(message["ReceiptHandle"])
        except Exception as e:  # pylint: disable=broad-except
            logger.exception(f"Failed to relay SQS message {message_id}")
            return published, MessageFailure(message_id=message_id, error=e, published_ids=published)

        return published, None

    # ========================================================================
    # POLLING LOOP
    # ========================================================================

    def _deadline_passed(self, started: float, deadline_seconds: Optional[float]) -> bool:
        return deadline_seconds is not None and self.clock() - started >= deadline_seconds

    def run(self, deadline_seconds: Optional[float] = None) -> RelayResult:
        """
        Poll and relay until a stop condition is reached.

        Raises:
            RemoteCallError: if the queue itself cannot be polled
            RelayError: if any message failed; carries the partial RelayResult
        """
        result = RelayResult()
        started = self.clock()
        empty_streak = 0

        for _ in range(self.max_rounds):
            if self._deadline_passed(started, deadline_seconds):
                logger.info(f"Relay deadline reached after {result.rounds} round(s)")
                break

            messages = self.queue.receive(self.batch_size, self.wait_time_seconds)
            result.rounds += 1

            if not messages:
                empty_streak += 1
                if self.stop_after_empty_polls and empty_streak >= self.stop_after_empty_polls:
                    logger.info(f"Queue empty for {empty_streak} consecutive poll(s); stopping")
                    break
                continue

            empty_streak = 0
            for outcome in map_bounded(self.relay_message, messages, self.max_workers):
                if not outcome.ok:
                    failure = MessageFailure(
                        message_id=outcome.item.get("MessageId", "unknown"),
                        error=outcome.error
                    )
                    result.failures.append(failure)
                    continue
                published, failure = outcome.value
                result.message_ids.extend(published)
                if failure is not None:
                    result.failures.append(failure)

        logger.info(
            f"[{','.join(result.message_ids)}] messages created",
            extra={"rounds": result.rounds, "failed_messages": len(result.failures)}
        )

        if result.failures:
            raise RelayError(result)
        return result
