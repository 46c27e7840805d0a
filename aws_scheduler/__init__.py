"""
AWS Scheduler - scheduled start, stop and standby of EC2 instances.

Runs one pass per invocation: reads the schedule from Environment Manager and
applies it across every account, flagging instances in Consul as cold standby
while they are withdrawn from service.
"""

__version__ = "1.0.0"

from aws_scheduler.core.exceptions import SchedulerError

__all__ = ["SchedulerError"]
