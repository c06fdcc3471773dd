# schemas/turk_models.py
from dataclasses import dataclass
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


# ============================================================================
# STACK CONFIGURATION
# ============================================================================

class TurkAuth(BaseModel):
    access_key: str
    secret_key: str


class TurkConfig(BaseModel):
    """
    Per-stack configuration loaded from '{stack}-config'.

    `layouts` maps a HITLayoutId to the CreateHIT fields shared by every HIT
    built from that layout (Title, Reward, AssignmentDurationInSeconds, ...).
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    auth: TurkAuth
    sandbox: bool = True
    layouts: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    turk_notification_queue: str


# ============================================================================
# HIT CREATION
# ============================================================================

class HitRequest(BaseModel):
    """
    One CreateHIT request: layout fields plus the row's layout parameters.
    Built fresh per CSV row and never mutated afterwards.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    layout_fields: Dict[str, Any]
    hit_layout_id: str = Field(alias="HITLayoutId")
    hit_layout_parameters: Dict[str, str] = Field(alias="HITLayoutParameters")
    # CSV line the row starts on; not sent to MTurk
    line_number: Optional[int] = None

    def to_create_hit_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for boto3 `mturk.create_hit`."""
        kwargs = dict(self.layout_fields)
        kwargs["HITLayoutId"] = self.hit_layout_id
        kwargs["HITLayoutParameters"] = [
            {"Name": name, "Value": value}
            for name, value in self.hit_layout_parameters.items()
        ]
        return kwargs


@dataclass(frozen=True)
class HitSubmission:
    """Outcome of submitting one CSV row; `row_number` is its line in the upload."""
    row_number: int
    hit_id: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        if self.ok:
            return f"line {self.row_number}: {self.hit_id}"
        return f"line {self.row_number}: {self.error}"


# ============================================================================
# MTURK NOTIFICATIONS
# ============================================================================

class NotificationEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    EventType: str
    EventTimestamp: Optional[str] = None
    HITId: Optional[str] = None
    HITTypeId: Optional[str] = None
    AssignmentId: Optional[str] = None


class NotificationMessage(BaseModel):
    """Body of an SQS message delivered by MTurk notifications."""
    model_config = ConfigDict(extra="allow")

    Events: List[NotificationEvent] = Field(default_factory=list)
    EventDocId: Optional[str] = None
    EventDocVersion: Optional[str] = None
    SourceAccount: Optional[str] = None
    CustomerId: Optional[str] = None
