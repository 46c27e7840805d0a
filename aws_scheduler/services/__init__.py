"""AWS service management package."""

from .base import BaseServiceManager
from .models import (
    Account,
    AccountResult,
    ActionGroups,
    ActionKind,
    ChangeResult,
    EnvironmentType,
    Instance,
    ScheduledInstanceAction,
)
from .ec2 import EC2ServiceManager
from .autoscaling import AutoScalingServiceManager

__all__ = [
    'BaseServiceManager',
    'Account',
    'AccountResult',
    'ActionGroups',
    'ActionKind',
    'ChangeResult',
    'EnvironmentType',
    'Instance',
    'ScheduledInstanceAction',
    'EC2ServiceManager',
    'AutoScalingServiceManager'
]
