# services/pipelines.py
"""
Entry points shared by the Lambda handlers and the HTTP router.
Each builds a fresh TurkContext for the stack it is given.
"""

from typing import Any, Dict, List, Optional

from core.aws_client import get_s3_client, get_sns_client, get_sqs_client
from core.logger import logger
from integrations.s3_client import ObjectStore
from integrations.sns_client import TopicGateway
from integrations.sqs_client import QueueGateway
from services.batch_orchestrator import BatchOrchestrator
from services.notification_relay import NotificationRelay, RelayResult
from services.turk_context import build_turk_context, check_balance


def run_balance_check(stack_name: str) -> str:
    logger.info("Running Mechanical Turk balance check")
    return check_balance(build_turk_context(stack_name))


def run_ingest(stack_name: str, records: List[Dict[str, Any]]) -> List[str]:
    logger.info(f"Running Mechanical Turk upload for {len(records)} record(s)")
    context = build_turk_context(stack_name)
    orchestrator = BatchOrchestrator(context, ObjectStore(get_s3_client()))
    return orchestrator.run(records)


def run_relay(stack_name: str, deadline_seconds: Optional[float] = None) -> RelayResult:
    logger.info("Running Mechanical Turk notification relay")
    context = build_turk_context(stack_name)
    relay = NotificationRelay(
        mturk=context.mturk,
        queue=QueueGateway(get_sqs_client(), context.config.turk_notification_queue),
        topics=TopicGateway(get_sns_client()),
        topic_prefix=stack_name,
    )
    return relay.run(deadline_seconds=deadline_seconds)
