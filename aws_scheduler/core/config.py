"""Configuration management for AWS Scheduler."""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from aws_scheduler.core.exceptions import ConfigurationError


# Environment variable -> config field
ENV_VARS = {
    'LIMIT_TO_ACCOUNTS': 'account_allow_list',
    'LIMIT_TO_ENVIRONMENT': 'environment_filter',
    'WHAT_IF': 'what_if',
    'LIST_SKIPPED_INSTANCES': 'list_skipped_instances',
    'CHILD_ACCOUNT_ROLE_NAME': 'child_account_role_name',
    'AWS_REGION': 'aws_region',
    'AWS_ACCOUNT_ID': 'aws_account_id',
    'EM_URL': 'em_url',
    'EM_TOKEN': 'em_token',
    'CONSUL_URL': 'consul_url',
    'CONSUL_TOKEN': 'consul_token',
    'AUTOSCALING_CONCURRENCY': 'autoscaling_concurrency',
    'REQUEST_TIMEOUT': 'request_timeout',
}


class SchedulerConfig(BaseModel):
    """Settings for a single scheduling pass."""

    account_allow_list: List[str] = Field(default_factory=list, description="Account names to limit the pass to; empty means all")
    environment_filter: Optional[str] = Field(default=None, description="Regular expression environment names must match")
    what_if: bool = Field(default=False, description="Report intended changes without performing them")
    list_skipped_instances: bool = Field(default=False, description="List skipped instances in the report")
    child_account_role_name: Optional[str] = Field(default=None, description="Role assumed in accounts other than our own")
    aws_region: str = Field(default="eu-west-1", description="AWS region to operate in")
    aws_account_id: Optional[str] = Field(default=None, description="Our own account number; resolved via STS when absent")
    em_url: str = Field(..., description="Environment Manager base URL")
    em_token: Optional[str] = Field(default=None, description="Environment Manager bearer token")
    consul_url: str = Field(default="http://localhost:8500", description="Consul HTTP API base URL")
    consul_token: Optional[str] = Field(default=None, description="Consul ACL token")
    autoscaling_concurrency: int = Field(default=10, ge=1, description="Concurrent AutoScaling calls per account")
    max_account_workers: int = Field(default=10, ge=1, description="Accounts processed concurrently")
    request_timeout: float = Field(default=30.0, gt=0, description="Per-call timeout in seconds")

    @field_validator('account_allow_list', mode='before')
    @classmethod
    def split_account_list(cls, v: Any) -> Any:
        """Accept a comma separated string as well as a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [name.strip() for name in v.split(',') if name.strip()]
        return v

    @field_validator('environment_filter')
    @classmethod
    def validate_environment_filter(cls, v: Optional[str]) -> Optional[str]:
        """Empty filters match everything; anything else must compile."""
        if not v:
            return None
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid environment filter {v!r}: {e}")
        return v

    @field_validator('aws_region')
    @classmethod
    def validate_region(cls, v: str) -> str:
        """Validate AWS region format."""
        region_pattern = r'^[a-z]{2,3}-[a-z]+-\d+$'
        if not re.match(region_pattern, v):
            raise ValueError(
                f"Invalid AWS region format: {v}. "
                "Expected format: us-east-1, eu-west-1, ap-southeast-3, etc."
            )
        return v

    @field_validator('aws_account_id', mode='before')
    @classmethod
    def validate_account_id(cls, v: Any) -> Any:
        if v is None or v == '':
            return None
        v = str(v)
        if not re.match(r'^\d{12}$', v):
            raise ValueError(f"Invalid AWS account id: {v}. Expected 12 digits")
        return v

    def role_arn_for(self, account_number: str) -> str:
        """Cross-account role ARN for the given account number."""
        if not self.child_account_role_name:
            raise ConfigurationError(
                f"No child account role configured; cannot access account {account_number}. "
                "Set CHILD_ACCOUNT_ROLE_NAME."
            )
        return f"arn:aws:iam::{account_number}:role/{self.child_account_role_name}"


class ConfigManager:
    """Builds a SchedulerConfig from a JSON file, the environment and overrides."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """Initialize configuration manager.

        Args:
            environ: Environment mapping to read from. Defaults to os.environ.
        """
        self.environ = os.environ if environ is None else environ

    def load_config(
        self,
        config_file: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None
    ) -> SchedulerConfig:
        """Load configuration.

        Later sources win: defaults, the JSON file, environment variables, overrides.

        Args:
            config_file: Optional path to a JSON configuration file.
            overrides: Values that take precedence over everything else
                (typically CLI options). None values are ignored.

        Returns:
            Validated SchedulerConfig.

        Raises:
            ConfigurationError: If any source is unreadable or the result is invalid.
        """
        config_data: Dict[str, Any] = {}

        if config_file is not None:
            config_data.update(self._read_file(Path(config_file)))

        config_data.update(self._read_environment())

        for key, value in (overrides or {}).items():
            if value is not None:
                config_data[key] = value

        try:
            return SchedulerConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}", details=str(e))

    def _read_file(self, config_file: Path) -> Dict[str, Any]:
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_file}")
        try:
            with open(config_file, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Invalid configuration file: {e}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a JSON object: {config_file}")
        return data

    def _read_environment(self) -> Dict[str, Any]:
        values = {}
        for env_name, field_name in ENV_VARS.items():
            value = self.environ.get(env_name)
            if value is not None and value != '':
                values[field_name] = value
        return values
