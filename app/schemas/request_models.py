# schemas/request_models.py
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


# ============================================================================
# INGEST
# ============================================================================

class S3ObjectRef(BaseModel):
    key: str
    size: Optional[int] = None


class S3BucketRef(BaseModel):
    name: str


class S3Entity(BaseModel):
    bucket: S3BucketRef
    object: S3ObjectRef


class S3EventRecord(BaseModel):
    """One record of an S3 ObjectCreated event notification."""
    eventName: Optional[str] = None
    s3: S3Entity


class IngestRequest(BaseModel):
    """
    S3 event notification forwarded as-is.
    Each object key must be '{HITLayoutId}/{filename}'.
    """
    Records: List[S3EventRecord] = Field(..., min_length=1)

    def records(self) -> List[Dict[str, Any]]:
        return [record.model_dump() for record in self.Records]


class IngestResponse(BaseModel):
    message: str
    hit_ids: List[str] = []


# ============================================================================
# RELAY
# ============================================================================

class RelayRequest(BaseModel):
    deadline_seconds: Optional[float] = Field(
        None,
        gt=0,
        description="Stop polling once this many seconds have elapsed"
    )


class RelayResponse(BaseModel):
    message: str
    message_ids: List[str] = []
    rounds: int = 0


# ============================================================================
# BALANCE / HEALTH
# ============================================================================

class BalanceResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    message: str
    config_status: Optional[str] = None
    queue_status: Optional[str] = None
