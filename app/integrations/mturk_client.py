# integrations/mturk_client.py
from typing import Any, Dict, List

from core.config import settings
from core.logger import logger
from integrations.remote import remote_call
from schemas.turk_models import HitRequest


class MTurkGateway:
    """Thin wrapper over the boto3 `mturk` client returning plain values."""

    def __init__(self, client):
        self._client = client

    def create_hit(self, request: HitRequest) -> str:
        with remote_call("mturk.CreateHIT"):
            resp = self._client.create_hit(**request.to_create_hit_kwargs())
        hit_id = resp["HIT"]["HITId"]
        logger.info(f"Created HIT {hit_id}", extra={"hit_layout_id": request.hit_layout_id})
        return hit_id

    def get_hit(self, hit_id: str) -> Dict[str, Any]:
        with remote_call("mturk.GetHIT"):
            return self._client.get_hit(HITId=hit_id)["HIT"]

    def get_hit_type_id(self, hit_id: str) -> str:
        return self.get_hit(hit_id)["HITTypeId"]

    def get_assignment(self, assignment_id: str) -> Dict[str, Any]:
        with remote_call("mturk.GetAssignment"):
            return self._client.get_assignment(AssignmentId=assignment_id)["Assignment"]

    def get_account_balance(self) -> str:
        with remote_call("mturk.GetAccountBalance"):
            return self._client.get_account_balance()["AvailableBalance"]

    def enable_notifications(
        self,
        hit_type_id: str,
        destination: str,
        event_types: List[str] = None
    ) -> None:
        """Route `event_types` for `hit_type_id` to the SQS queue at `destination`."""
        with remote_call("mturk.UpdateNotificationSettings"):
            self._client.update_notification_settings(
                HITTypeId=hit_type_id,
                Notification={
                    "Destination": destination,
                    "Transport": "SQS",
                    "Version": settings.NOTIFICATION_VERSION,
                    "EventTypes": event_types or settings.NOTIFICATION_EVENT_TYPES,
                },
                Active=True
            )
        logger.info(f"Set up notifications for HITTypeId {hit_type_id}")
