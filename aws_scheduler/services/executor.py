"""
Per-account executor for the four instance-mutating operations.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import boto3
from botocore.config import Config

from .aggregator import collect, run_all
from .autoscaling import AutoScalingServiceManager
from .base import client_config
from .ec2 import EC2ServiceManager
from .locks import ColdStandbyLock
from .models import Account, ActionKind, Instance
from .rate_limiter import DEFAULT_CONCURRENCY, RateLimiter
from ..core.exceptions import InstanceOperationError, ServiceError


Handler = Callable[[Sequence[Instance]], List[Any]]


class AccountActionExecutor:
    """Starts, stops and toggles service membership of instances in one account.

    Every operation takes the instances of one action group, runs the
    per-instance calls concurrently and raises ``AggregateGroupError`` once all
    of them have finished if any failed. The two Auto Scaling operations go
    through a rate limiter because that API throttles far more aggressively
    than EC2.
    """

    def __init__(
        self,
        account: Account,
        session: boto3.Session,
        lock: ColdStandbyLock,
        region: str,
        rate_limiter: Optional[RateLimiter] = None,
        what_if: bool = False,
        logger: Optional[logging.Logger] = None,
        config: Optional[Config] = None
    ):
        """Initialize the executor.

        Args:
            account: Account the session is scoped to
            session: boto3 session with credentials for ``account``
            lock: Cold-standby lock coordinator
            region: AWS region to operate in
            rate_limiter: Limiter for Auto Scaling calls. One is created when omitted.
            what_if: Report success without calling anything
            logger: Logger for lock and mutation decisions
            config: botocore client config for the provider clients
        """
        self.account = account
        self.lock = lock
        self.what_if = what_if
        self.logger = logger or logging.getLogger(__name__)
        self.rate_limiter = rate_limiter or RateLimiter(DEFAULT_CONCURRENCY, name=f'autoscaling-{account.name}')

        self.ec2 = EC2ServiceManager(session, region, config)
        self.autoscaling = AutoScalingServiceManager(session, region, config)

    @classmethod
    def for_account(
        cls,
        account: Account,
        authenticator,
        lock: ColdStandbyLock,
        region: str,
        autoscaling_concurrency: int = DEFAULT_CONCURRENCY,
        what_if: bool = False,
        logger: Optional[logging.Logger] = None,
        timeout: Optional[float] = None
    ) -> 'AccountActionExecutor':
        """Build an executor, assuming the cross-account role first when needed.

        Args:
            authenticator: Object with ``session_for(account) -> boto3.Session``
        """
        session = authenticator.session_for(account)
        return cls(
            account,
            session,
            lock,
            region,
            rate_limiter=RateLimiter(autoscaling_concurrency, name=f'autoscaling-{account.name}'),
            what_if=what_if,
            logger=logger,
            config=client_config(timeout) if timeout else None
        )

    def handlers(self) -> Dict[ActionKind, Handler]:
        """Fixed table of the operation for each mutating action kind."""
        return {
            ActionKind.SWITCH_ON: self.switch_on,
            ActionKind.SWITCH_OFF: self.switch_off,
            ActionKind.PUT_IN_SERVICE: self.put_in_service,
            ActionKind.PUT_OUT_OF_SERVICE: self.put_out_of_service,
        }

    def switch_on(self, instances: Sequence[Instance]) -> List[Any]:
        """Clear each instance's cold-standby flag, then start it."""
        if self._is_noop(instances):
            return []

        def start(instance: Instance) -> Callable[[], Any]:
            def run():
                self._call(instance, 'clear cold standby',
                           lambda: self.lock.set_off(instance.id, instance.cold_standby_data_center))
                return self._call(instance, 'start', lambda: self.ec2.start_instance(instance.id))
            return run

        return run_all([start(instance) for instance in instances])

    def switch_off(self, instances: Sequence[Instance]) -> List[Any]:
        """Stop each instance."""
        if self._is_noop(instances):
            return []

        def stop(instance: Instance) -> Callable[[], Any]:
            return lambda: self._call(instance, 'stop', lambda: self.ec2.stop_instance(instance.id))

        return run_all([stop(instance) for instance in instances])

    def put_in_service(self, instances: Sequence[Instance]) -> List[Any]:
        """Take each instance out of Auto Scaling standby."""
        if self._is_noop(instances):
            return []

        def exit_standby(instance: Instance) -> Callable[[], Any]:
            def run():
                asg_name = self._asg_name(instance, 'exit standby')
                return self._call(instance, 'exit standby',
                                  lambda: self.autoscaling.exit_standby(asg_name, instance.id))
            return run

        return collect([self.rate_limiter.queue(exit_standby(instance)) for instance in instances])

    def put_out_of_service(self, instances: Sequence[Instance]) -> List[Any]:
        """Set each instance's cold-standby flag, then move it into standby."""
        if self._is_noop(instances):
            return []

        def enter_standby(instance: Instance) -> Callable[[], Any]:
            def run():
                asg_name = self._asg_name(instance, 'enter standby')
                self._call(instance, 'set cold standby',
                           lambda: self.lock.set_on(instance.id, instance.cold_standby_data_center))
                return self._call(
                    instance, 'enter standby',
                    lambda: self.autoscaling.enter_standby(asg_name, instance.id, should_decrement_desired_capacity=True)
                )
            return run

        return collect([self.rate_limiter.queue(enter_standby(instance)) for instance in instances])

    def close(self) -> None:
        self.rate_limiter.shutdown()

    def __enter__(self) -> 'AccountActionExecutor':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _is_noop(self, instances: Sequence[Instance]) -> bool:
        return not instances or self.what_if

    def _asg_name(self, instance: Instance, operation: str) -> str:
        if not instance.auto_scaling_group:
            raise InstanceOperationError(
                instance.id, operation, ServiceError(f"Instance {instance.id} is not in an Auto Scaling Group")
            )
        return instance.auto_scaling_group

    def _call(self, instance: Instance, operation: str, call: Callable[[], Any]) -> Any:
        try:
            return call()
        except Exception as e:
            self.logger.error(f"{operation} failed for {instance.id} in {self.account.name}: {e}")
            raise InstanceOperationError(instance.id, operation, e) from e
