# services/batch_orchestrator.py
from typing import Any, Dict, List
from urllib.parse import unquote_plus

from core.exceptions import BatchCreationError
from core.logger import logger
from integrations.s3_client import ObjectStore
from schemas.turk_models import HitSubmission
from services.hit_builder import HitBuilder, build, layout_id_from_key, resolve_layout
from services.notification_setup import NotificationSetupCoordinator
from services.turk_context import TurkContext


class BatchOrchestrator:
    """
    Runs one ingest invocation: every S3 record becomes HITs, then
    notifications are set up once for the combined batch.

    There is no compensation: when a row or a later step fails, HITs that
    were already created stay on MTurk and are reported in the error.
    """

    def __init__(
        self,
        context: TurkContext,
        objects: ObjectStore,
        builder: HitBuilder = None,
        coordinator: NotificationSetupCoordinator = None
    ):
        self.context = context
        self.objects = objects
        self.builder = builder or HitBuilder(context.mturk)
        self.coordinator = coordinator or NotificationSetupCoordinator(context.mturk)

    def create_hits_for_record(self, record: Dict[str, Any]) -> List[HitSubmission]:
        bucket = record["s3"]["bucket"]["name"]
        # Event notifications URL-encode object keys
        key = unquote_plus(record["s3"]["object"]["key"])

        layouts = self.context.config.layouts
        # A bad key fails before anything is fetched from S3
        layout_id = layout_id_from_key(key)
        resolve_layout(layouts, layout_id)

        body = self.objects.get_object_bytes(bucket, key)
        requests = build(body, layouts, layout_id)
        return self.builder.submit_all(requests)

    def run(self, records: List[Dict[str, Any]]) -> List[str]:
        """
        Create HITs for every record and enable notifications for the batch.

        Returns the created HIT ids.

        Raises:
            BatchCreationError: if any row failed; lists the stranded HIT ids
        """
        hit_ids: List[str] = []
        failures: List[HitSubmission] = []

        for record in records:
            for submission in self.create_hits_for_record(record):
                if submission.ok:
                    hit_ids.append(submission.hit_id)
                else:
                    failures.append(submission)

        if failures:
            logger.error(
                f"{len(failures)} row(s) failed; {len(hit_ids)} HIT(s) left in place",
                extra={"stranded_hit_ids": hit_ids}
            )
            raise BatchCreationError(failures, hit_ids)

        self.coordinator.ensure_notifications(hit_ids, self.context.config.turk_notification_queue)
        logger.info(f"[{len(hit_ids)}] HITs created.")
        return hit_ids
