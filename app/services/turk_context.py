# services/turk_context.py
from dataclasses import dataclass
from typing import Optional

from core.aws_client import get_mturk_client
from core.logger import logger
from integrations.config_store import load_turk_config
from integrations.mturk_client import MTurkGateway
from schemas.turk_models import TurkConfig


@dataclass
class TurkContext:
    """Everything one invocation needs: the stack, its config and an MTurk gateway."""
    stack_name: str
    config: TurkConfig
    mturk: MTurkGateway


def derive_stack_name(function_name: str, function_identifier: str) -> str:
    """
    Recover the stack name from a Lambda function name.

    CloudFormation names functions '{stack}-{LogicalId}-{suffix}', so the
    stack is everything before '-{function_identifier}'. Without an
    identifier, or when it is absent, the whole function name is used.
    """
    if function_identifier:
        i = function_name.find(f"-{function_identifier}")
        if i >= 0:
            return function_name[:i]
    return function_name


def build_turk_context(stack_name: str, config: Optional[TurkConfig] = None) -> TurkContext:
    config = config or load_turk_config(stack_name)
    client = get_mturk_client(
        access_key=config.auth.access_key,
        secret_key=config.auth.secret_key,
        sandbox=config.sandbox
    )
    logger.info(f"Initialized context for stack {stack_name}")
    return TurkContext(stack_name=stack_name, config=config, mturk=MTurkGateway(client))


def check_balance(context: TurkContext) -> str:
    balance = context.mturk.get_account_balance()
    return f"{balance} credits in the account"
