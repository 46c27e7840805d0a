"""
Base service manager interface for AWS services.
"""
from abc import ABC, abstractmethod
from typing import Optional

import boto3
from botocore.config import Config

from ..core.exceptions import ServiceError


DEFAULT_TIMEOUT = 30.0


def client_config(timeout: float = DEFAULT_TIMEOUT) -> Config:
    """botocore config with call-level timeouts so a hung API call cannot block a pass forever."""
    return Config(
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={'max_attempts': 5, 'mode': 'standard'}
    )


class BaseServiceManager(ABC):
    """Abstract base class for all AWS service managers."""

    def __init__(self, session: boto3.Session, region: str, config: Optional[Config] = None):
        """Initialize the service manager with AWS session and region.

        Args:
            session: Authenticated boto3 session scoped to one account
            region: AWS region to operate in
            config: Optional botocore client config
        """
        self.session = session
        self.region = region
        self.config = config or client_config()
        self._client = None

    @property
    def client(self):
        """Lazy-loaded AWS service client."""
        if self._client is None:
            self._client = self.session.client(self.service_name, region_name=self.region, config=self.config)
        return self._client

    @property
    @abstractmethod
    def service_name(self) -> str:
        """AWS service name (e.g., 'ec2', 'autoscaling')."""
        pass

    def _handle_aws_error(self, error: Exception, operation: str, resource_id: str = None) -> None:
        """Handle AWS API errors and convert to ServiceError.

        Args:
            error: The original AWS error
            operation: Operation that failed
            resource_id: ID of resource being operated on (if applicable)

        Raises:
            ServiceError: Wrapped error with context
        """
        resource_context = f" for resource {resource_id}" if resource_id else ""
        error_message = f"AWS {self.service_name} {operation} failed{resource_context}: {str(error)}"
        raise ServiceError(error_message, details=str(error)) from error
