"""
Lambda entry points.

Function logical ids in the CloudFormation template:
- ping:   balance check, no payload
- upload: 'MTurkImporterFunction', triggered by S3 ObjectCreated on CSV uploads
- export: 'MTurkExporterFunction', scheduled; relays MTurk notifications to SNS
"""

from typing import Any, Dict

from core.logger import logger
from services.pipelines import run_balance_check, run_ingest, run_relay
from services.turk_context import derive_stack_name

IMPORTER_FUNCTION = "MTurkImporterFunction"
EXPORTER_FUNCTION = "MTurkExporterFunction"


def ping(event: Dict[str, Any], context: Any) -> str:
    logger.info("Running task-integrator Mechanical Turk ping function")
    stack_name = derive_stack_name(context.function_name, "")
    try:
        return run_balance_check(stack_name)
    except Exception:
        logger.exception("Error in ping", extra={"stack": stack_name})
        raise


def upload(event: Dict[str, Any], context: Any) -> str:
    logger.info("Running task-integrator Mechanical Turk upload function")
    stack_name = derive_stack_name(context.function_name, IMPORTER_FUNCTION)
    records = event.get("Records", [])
    try:
        hit_ids = run_ingest(stack_name, records)
    except Exception:
        logger.exception("Error in upload", extra={"stack": stack_name, "records": len(records)})
        raise
    return f"[{len(hit_ids)}] HITs created."


def export(event: Dict[str, Any], context: Any) -> str:
    logger.info("Running task-integrator Mechanical Turk export function")
    stack_name = derive_stack_name(context.function_name, EXPORTER_FUNCTION)
    # Leave a margin so the invocation can log its result before Lambda times out
    deadline = None
    if hasattr(context, "get_remaining_time_in_millis"):
        deadline = max(context.get_remaining_time_in_millis() / 1000.0 - 5.0, 0.0)
    try:
        result = run_relay(stack_name, deadline_seconds=deadline)
    except Exception:
        logger.exception("Error in export", extra={"stack": stack_name})
        raise
    return result.summary
