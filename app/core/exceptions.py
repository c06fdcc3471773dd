# core/exceptions.py
from typing import Any, List, Optional


class TaskIntegratorError(Exception):
    """Base exception for the task integrator."""


class ConfigError(TaskIntegratorError):
    """Raised when stack configuration is missing or malformed."""


class InputKeyError(TaskIntegratorError):
    """Raised when an uploaded object key cannot be mapped to a layout."""


class MissingLayoutId(InputKeyError):
    """Raised when the object key has no '{layoutId}/' prefix."""

    def __init__(self, object_key: str):
        self.object_key = object_key
        super().__init__(f"Object [{object_key}] does not have a HITLayoutId in its path.")


class LayoutNotFound(InputKeyError):
    """Raised when the layout id has no entry in configuration."""

    def __init__(self, layout_id: str):
        self.layout_id = layout_id
        super().__init__(f"HitLayoutId [{layout_id}] does not have an entry in configuration.")


class ParseError(TaskIntegratorError):
    """Raised when a CSV upload, notification body or answer document cannot be parsed."""


class RemoteCallError(TaskIntegratorError):
    """Raised when any MTurk, S3, SQS, SNS or DynamoDB call fails."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")


class SetupError(TaskIntegratorError):
    """Raised when HIT type notifications cannot be enabled."""


class MixedHitTypesError(SetupError):
    """Raised when one upload batch produced HITs of more than one HIT type."""

    def __init__(self, hit_types: List[str]):
        self.hit_types = hit_types
        super().__init__(
            f"Batch spans {len(hit_types)} HIT types {sorted(hit_types)}; "
            "notifications are configured per batch and require a single type"
        )


class BatchCreationError(TaskIntegratorError):
    """
    Raised when one or more CSV rows failed to become HITs.

    HITs already created are left in place; `created_hit_ids` lists them.
    """

    def __init__(self, failures: List[Any], created_hit_ids: List[str]):
        self.failures = failures
        self.created_hit_ids = created_hit_ids
        labels = "; ".join(str(f) for f in failures)
        super().__init__(
            f"{len(failures)} row(s) failed ({len(created_hit_ids)} HITs already created): {labels}"
        )


class RelayError(TaskIntegratorError):
    """Raised when one or more queue messages could not be relayed."""

    def __init__(self, result: Optional[Any]):
        self.result = result
        failures = result.failures if result is not None else []
        published = len(result.message_ids) if result is not None else 0
        super().__init__(
            f"{len(failures)} message(s) failed to relay after {published} publish(es): "
            + "; ".join(str(f) for f in failures)
        )
