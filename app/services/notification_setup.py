# services/notification_setup.py
from typing import List, Set

from core.exceptions import MixedHitTypesError, RemoteCallError, SetupError
from core.logger import logger
from integrations.mturk_client import MTurkGateway
from utils.fanout import map_bounded


class NotificationSetupCoordinator:
    """
    Enables SQS notifications for the HIT type of one upload batch.

    A batch comes from uploads of a single layout, so all of its HITs share a
    HIT type; that is checked rather than assumed. One coordinator lives for
    one ingest invocation and remembers which types it already configured.
    """

    def __init__(self, mturk: MTurkGateway, max_workers: int = None):
        self.mturk = mturk
        self.max_workers = max_workers
        self.configured_types: Set[str] = set()

    def _hit_types(self, hit_ids: List[str]) -> Set[str]:
        outcomes = map_bounded(self.mturk.get_hit_type_id, hit_ids, self.max_workers)
        for outcome in outcomes:
            if not outcome.ok:
                raise SetupError(f"Cannot read HIT type of {outcome.item}: {outcome.error}") from outcome.error
        return {outcome.value for outcome in outcomes}

    def ensure_notifications(self, hit_ids: List[str], destination_queue_url: str) -> List[str]:
        """
        Make sure the batch's HIT type notifies `destination_queue_url`.

        Returns the HIT ids unchanged; an empty batch is a no-op.

        Raises:
            MixedHitTypesError: if the HITs span more than one HIT type
            SetupError: if a HIT cannot be read or notifications cannot be enabled
        """
        if not hit_ids:
            logger.info("No HITs in batch; skipping notification setup")
            return []

        hit_types = self._hit_types(hit_ids)
        if len(hit_types) > 1:
            raise MixedHitTypesError(sorted(hit_types))

        hit_type_id = hit_types.pop()
        if hit_type_id in self.configured_types:
            logger.debug(f"Notifications already configured for HITTypeId {hit_type_id}")
            return hit_ids

        try:
            self.mturk.enable_notifications(hit_type_id, destination_queue_url)
        except RemoteCallError as e:
            raise SetupError(f"Cannot enable notifications for HITTypeId {hit_type_id}: {e}") from e

        self.configured_types.add(hit_type_id)
        return hit_ids
