"""
Auto Scaling service manager for moving instances in and out of standby.
"""
from typing import Any, Dict

from botocore.exceptions import BotoCoreError, ClientError

from .base import BaseServiceManager


class AutoScalingServiceManager(BaseServiceManager):
    """Service manager for Auto Scaling Group membership."""

    @property
    def service_name(self) -> str:
        return 'autoscaling'

    def enter_standby(
        self,
        asg_name: str,
        instance_id: str,
        should_decrement_desired_capacity: bool = True
    ) -> Dict[str, Any]:
        """Put an instance into standby so it stops serving traffic.

        Args:
            asg_name: Auto Scaling Group the instance belongs to
            instance_id: Instance to move
            should_decrement_desired_capacity: Lower desired capacity so the
                group does not launch a replacement

        Raises:
            ServiceError: If the request fails
        """
        try:
            return self.client.enter_standby(
                AutoScalingGroupName=asg_name,
                InstanceIds=[instance_id],
                ShouldDecrementDesiredCapacity=should_decrement_desired_capacity
            )
        except (ClientError, BotoCoreError) as e:
            self._handle_aws_error(e, 'enter standby', instance_id)

    def exit_standby(self, asg_name: str, instance_id: str) -> Dict[str, Any]:
        """Return a standby instance to service.

        Raises:
            ServiceError: If the request fails
        """
        try:
            return self.client.exit_standby(
                AutoScalingGroupName=asg_name,
                InstanceIds=[instance_id]
            )
        except (ClientError, BotoCoreError) as e:
            self._handle_aws_error(e, 'exit standby', instance_id)
