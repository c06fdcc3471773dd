# integrations/config_store.py
"""
Stack configuration loader.

Configuration for a stack lives in the DynamoDB table '{stack}-config'. Each
item is one top-level setting:

    {"key": "layouts", "value": {"3MCDHXBQ4Z7SJ2ZT2XZACNE142JWKX": {...}}}
    {"key": "sandbox", "value": true}

String values holding a JSON object or array are decoded, so settings can be
edited as raw JSON in the console. For local runs CONFIG_FILE points at a
JSON file with the same top-level shape.
"""

import json
from decimal import Decimal
from typing import Any, Dict, Optional

from boto3.dynamodb.types import TypeDeserializer
from pydantic import ValidationError

from core.aws_client import get_dynamodb_client
from core.config import settings
from core.exceptions import ConfigError, RemoteCallError
from core.logger import logger
from integrations.remote import remote_call
from schemas.turk_models import TurkConfig

deserializer = TypeDeserializer()


def config_table_name(stack_name: str) -> str:
    return f"{stack_name}{settings.CONFIG_TABLE_SUFFIX}"


def _plain(value: Any) -> Any:
    """Convert DynamoDB Decimals into ints/floats so boto3 request validation accepts them."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, set, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, str) and value.strip()[:1] in ("{", "["):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def _scan_table(client, table_name: str) -> Dict[str, Any]:
    raw: Dict[str, Any] = {}
    params = {"TableName": table_name}
    while True:
        with remote_call("dynamodb.Scan"):
            response = client.scan(**params)
        for item in response.get("Items", []):
            record = {k: deserializer.deserialize(v) for k, v in item.items()}
            if "key" not in record:
                logger.warning(f"Skipping config item without 'key' in {table_name}")
                continue
            raw[record["key"]] = _plain(record.get("value"))
        if "LastEvaluatedKey" not in response:
            return raw
        params["ExclusiveStartKey"] = response["LastEvaluatedKey"]


def _read_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e


def load_turk_config(stack_name: str, dynamodb_client: Optional[Any] = None) -> TurkConfig:
    """
    Load and validate the TurkConfig for `stack_name`.

    Raises:
        ConfigError: when the source is unreachable, empty or fails validation
    """
    if settings.CONFIG_FILE:
        logger.info(f"Loading configuration from file {settings.CONFIG_FILE}")
        raw = _read_file(settings.CONFIG_FILE)
    else:
        table_name = config_table_name(stack_name)
        logger.info(f"Loading configuration from DynamoDB table {table_name}")
        try:
            raw = _scan_table(dynamodb_client or get_dynamodb_client(), table_name)
        except RemoteCallError as e:
            raise ConfigError(f"Cannot load configuration table {table_name}: {e}") from e

    if not raw:
        raise ConfigError(f"No configuration found for stack {stack_name}")

    try:
        config = TurkConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration for stack {stack_name}: {e}") from e

    logger.info(
        "Configuration loaded",
        extra={
            "stack": stack_name,
            "sandbox": config.sandbox,
            "layouts": sorted(config.layouts),
        }
    )
    return config
