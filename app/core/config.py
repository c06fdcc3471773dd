# core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional, List


class Settings(BaseSettings):
    """
    Process-level configuration for the task integrator.
    Per-stack Mechanical Turk configuration (credentials, layouts, queue)
    lives in the config table and is loaded per invocation.
    """

    # ------------------------------------------------------------
    # Project / Runtime
    # ------------------------------------------------------------
    PROJECT_NAME: str = "task-integrator"
    DEBUG: bool = False
    ENABLE_CORS: bool = True

    # HTTP / API
    FRONTEND_ENDPOINT: str = ""
    BACKEND_ENDPOINT: str = ""
    RATE_LIMIT_MIN: str = "10"

    """
    Stack name used to locate '{stack}-config' and to prefix SNS topic names.
    Lambda invocations derive it from the function name instead.
    """
    STACK_NAME: str = "task-integrator"

    # ------------------------------------------------------------
    # AWS Core
    # ------------------------------------------------------------
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_SESSION_TOKEN: Optional[str] = None

    # ------------------------------------------------------------
    # Stack configuration source
    # ------------------------------------------------------------
    CONFIG_TABLE_SUFFIX: str = "-config"
    CONFIG_FILE: Optional[str] = Field(
        default=None,
        description="Local JSON file used instead of the DynamoDB config table (development only)"
    )

    # ------------------------------------------------------------
    # Mechanical Turk
    # ------------------------------------------------------------
    MTURK_REGION: str = "us-east-1"
    MTURK_ENDPOINT: str = "https://mturk-requester.us-east-1.amazonaws.com"
    MTURK_SANDBOX_ENDPOINT: str = "https://mturk-requester-sandbox.us-east-1.amazonaws.com"
    NOTIFICATION_VERSION: str = "2014-08-15"
    NOTIFICATION_EVENT_TYPES: List[str] = ["AssignmentSubmitted"]

    # ------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------
    MAX_CONCURRENCY: int = Field(
        default=8,
        description="Upper bound on concurrent remote calls for HIT creation and relay processing"
    )

    # ------------------------------------------------------------
    # Relay (SQS -> SNS)
    # ------------------------------------------------------------

    """
    SQS does not guarantee a single receive sees every message,
    so the relay polls a bounded number of rounds per invocation
    """
    RELAY_MAX_ROUNDS: int = 10
    RELAY_BATCH_SIZE: int = Field(default=10, ge=1, le=10)
    RELAY_WAIT_TIME_SECONDS: int = Field(default=0, ge=0, le=20)
    RELAY_STOP_AFTER_EMPTY_POLLS: Optional[int] = Field(
        default=None,
        description="Stop early after this many consecutive empty polls (disabled when unset)"
    )

    # ------------------------------------------------------------
    # Security
    # ------------------------------------------------------------
    # Only the HTTP surface needs it; the Lambda handlers import without it
    JWT_SECRET_KEY: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "task-integrator-api"
    JWT_ISSUER: str = "task-integrator-auth"
    JWT_LEEWAY_SECONDS: int = 30

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
