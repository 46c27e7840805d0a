"""
EC2 service manager for starting and stopping instances.
"""
from typing import Any, Dict

from botocore.exceptions import BotoCoreError, ClientError

from .base import BaseServiceManager


class EC2ServiceManager(BaseServiceManager):
    """Service manager for EC2 instances."""

    @property
    def service_name(self) -> str:
        return 'ec2'

    def start_instance(self, instance_id: str) -> Dict[str, Any]:
        """Start an EC2 instance.

        Args:
            instance_id: Instance to start

        Returns:
            The StartInstances response

        Raises:
            ServiceError: If the request fails
        """
        try:
            return self.client.start_instances(InstanceIds=[instance_id])
        except (ClientError, BotoCoreError) as e:
            self._handle_aws_error(e, 'start', instance_id)

    def stop_instance(self, instance_id: str) -> Dict[str, Any]:
        """Stop an EC2 instance.

        Args:
            instance_id: Instance to stop

        Returns:
            The StopInstances response

        Raises:
            ServiceError: If the request fails
        """
        try:
            return self.client.stop_instances(InstanceIds=[instance_id])
        except (ClientError, BotoCoreError) as e:
            self._handle_aws_error(e, 'stop', instance_id)
