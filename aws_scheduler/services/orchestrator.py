"""
Scheduling pass orchestrator: fans the schedule out across accounts and
action groups and assembles the report.
"""
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .executor import AccountActionExecutor, Handler
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
from ..core.config import SchedulerConfig
from ..core.exceptions import AccountPipelineError, AggregateGroupError, ServiceError
from ..reporting.report import Report, create_report


logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[Account], AccountActionExecutor]


def environment_matches_filter(environment_name: Optional[str], environment_filter: Optional[str]) -> bool:
    """True when no filter is set, or the environment name contains a match for it."""
    if not environment_filter:
        return True
    if not environment_name:
        return False
    return re.search(environment_filter, environment_name) is not None


def filter_accounts(accounts: Iterable[Account], allow_list: Sequence[str]) -> List[Account]:
    """Keep the accounts named in ``allow_list``; an empty list keeps all."""
    accounts = list(accounts)
    if not allow_list:
        return accounts
    allowed = set(allow_list)
    return [account for account in accounts if account.name in allowed]


def annotate_cold_standby(
    actions: Iterable[ScheduledInstanceAction],
    environment_types: Iterable[EnvironmentType]
) -> None:
    """Copy the Consul data center of each instance's environment type onto the instance.

    Environment type names are matched case-insensitively and the first match
    wins. Instances without a matching type are left untouched.
    """
    by_name: Dict[str, EnvironmentType] = {}
    for environment_type in environment_types:
        by_name.setdefault(environment_type.name.lower(), environment_type)

    for action in actions:
        instance = action.instance
        if not instance.environment_type_name:
            continue
        environment_type = by_name.get(instance.environment_type_name.lower())
        if environment_type is not None:
            instance.cold_standby_data_center = environment_type.data_center_id


def check_handlers(handlers: Mapping[ActionKind, Handler]) -> None:
    """Every kind must be either executable or skip."""
    missing = set(ActionKind.mutating()) - set(handlers)
    unexpected = set(handlers) - set(ActionKind.mutating())
    if missing or unexpected or ActionKind.SKIP in handlers:
        raise ServiceError(
            f"Handler table mismatch: missing {sorted(missing)}, unexpected {sorted(unexpected)}"
        )


class SchedulingOrchestrator:
    """Runs one scheduling pass across every account."""

    def __init__(
        self,
        environment_manager,
        executor_factory: ExecutorFactory,
        reporter: Callable[[List[AccountResult], bool], Report] = create_report
    ):
        """Initialize the orchestrator.

        Args:
            environment_manager: Source of accounts, environment types and
                scheduled actions (see ``EnvironmentManagerClient``)
            executor_factory: Builds the AccountActionExecutor for an account
            reporter: Turns the account results into a report
        """
        self.environment_manager = environment_manager
        self.executor_factory = executor_factory
        self.reporter = reporter

    def run_pass(self, config: SchedulerConfig) -> Report:
        """Run a single pass and return its report.

        Failures inside one account are recorded on that account's result.
        Failing to list accounts or environment types aborts the pass.
        """
        accounts = self.get_accounts(config.account_allow_list)
        environment_types = self.environment_manager.get_environment_types()

        logger.info(f"Scheduling {len(accounts)} accounts (what-if: {config.what_if})")

        account_results: List[AccountResult] = []
        if accounts:
            max_workers = min(config.max_account_workers, len(accounts))
            with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='account') as executor:
                futures = [
                    executor.submit(self.schedule_account, account, environment_types, config)
                    for account in accounts
                ]
                account_results = [future.result() for future in futures]

        failed = [result.account_name for result in account_results if not result.success]
        logger.info(f"Pass complete: {len(account_results) - len(failed)} accounts succeeded, {len(failed)} had failures")

        return self.reporter(account_results, config.list_skipped_instances)

    def get_accounts(self, allow_list: Sequence[str]) -> List[Account]:
        return filter_accounts(self.environment_manager.get_accounts(), allow_list)

    def get_action_groups(
        self,
        account: Account,
        environment_types: Sequence[EnvironmentType],
        environment_filter: Optional[str]
    ) -> ActionGroups:
        """Fetch, filter, annotate and partition the schedule of one account."""
        actions = self.environment_manager.get_scheduled_instance_actions(account.name)
        actions = [
            action for action in actions
            if environment_matches_filter(action.instance.environment_name, environment_filter)
        ]
        annotate_cold_standby(actions, environment_types)
        return ActionGroups.partition(actions)

    def schedule_account(
        self,
        account: Account,
        environment_types: Sequence[EnvironmentType],
        config: SchedulerConfig
    ) -> AccountResult:
        """Schedule one account. Never raises; failures end up on the result."""
        try:
            executor = self.executor_factory(account)
        except Exception as e:
            return self._failed_account(account, e)

        with executor:
            try:
                action_groups = self.get_action_groups(account, environment_types, config.environment_filter)

                logger.info(
                    f"Account {account.name}: "
                    + ", ".join(f"{kind.value}={len(action_groups[kind])}" for kind in ActionKind)
                )

                change_results = self.perform_changes(executor, action_groups, config.what_if)
            except Exception as e:
                return self._failed_account(account, e)

        return AccountResult(
            account_name=account.name,
            action_groups=action_groups,
            change_results=change_results
        )

    def perform_changes(
        self,
        executor: AccountActionExecutor,
        action_groups: ActionGroups,
        what_if: bool = False
    ) -> Dict[ActionKind, ChangeResult]:
        """Run the four mutating groups concurrently, one ChangeResult each."""
        handlers = executor.handlers()
        check_handlers(handlers)

        kinds = ActionKind.mutating()
        with ThreadPoolExecutor(max_workers=len(kinds), thread_name_prefix='action-group') as pool:
            futures = {
                kind: pool.submit(self.perform_change, handlers[kind], action_groups.instances(kind), what_if)
                for kind in kinds
            }
            return {kind: future.result() for kind, future in futures.items()}

    def perform_change(self, handler: Handler, instances: List[Instance], what_if: bool = False) -> ChangeResult:
        if not instances or what_if:
            return ChangeResult(success=True)

        try:
            handler(instances)
            return ChangeResult(success=True)
        except AggregateGroupError as e:
            logger.warning(f"{e.message}")
            return ChangeResult(success=False, error=e)
        except Exception as e:
            logger.error(f"Unexpected error during change: {e}")
            return ChangeResult(success=False, error=AggregateGroupError([e]))

    def _failed_account(self, account: Account, error: Exception) -> AccountResult:
        logger.error(f"Scheduling failed for account {account.name}: {error}")
        return AccountResult(
            account_name=account.name,
            error=AccountPipelineError(account.name, error)
        )
