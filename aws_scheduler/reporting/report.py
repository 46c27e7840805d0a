"""Report of a scheduling pass."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from aws_scheduler.core.exceptions import AggregateGroupError
from aws_scheduler.services.models import AccountResult, ActionKind


@dataclass
class GroupReport:
    """One action group of one account."""
    kind: ActionKind
    count: int
    instance_ids: Optional[List[str]]  # None when the listing is suppressed
    success: Optional[bool] = None  # None for skip, which is never executed
    errors: List[str] = field(default_factory=list)


@dataclass
class AccountReport:
    account_name: str
    groups: List[GroupReport] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and all(group.success is not False for group in self.groups)


@dataclass
class Report:
    accounts: List[AccountReport]
    list_skipped_instances: bool = False

    @property
    def success(self) -> bool:
        return all(account.success for account in self.accounts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'accounts': [
                {
                    'accountName': account.account_name,
                    'success': account.success,
                    'error': account.error,
                    'actionGroups': {
                        group.kind.value: {
                            'count': group.count,
                            'instances': group.instance_ids,
                            'success': group.success,
                            'errors': group.errors,
                        }
                        for group in account.groups
                    },
                }
                for account in self.accounts
            ],
        }


def _error_messages(error: Optional[Exception]) -> List[str]:
    if error is None:
        return []
    if isinstance(error, AggregateGroupError):
        return [str(e) for e in error.errors]
    return [str(error)]


def create_report(account_results: List[AccountResult], list_skipped_instances: bool = False) -> Report:
    """Summarise account results.

    Skipped instances are only counted unless ``list_skipped_instances`` is set.
    """
    accounts = []
    for result in account_results:
        account = AccountReport(
            account_name=result.account_name,
            error=str(result.error) if result.error is not None else None
        )
        if result.error is None:
            for kind in ActionKind:
                actions = result.action_groups[kind]
                listed = kind is not ActionKind.SKIP or list_skipped_instances
                change_result = result.change_results.get(kind)
                account.groups.append(GroupReport(
                    kind=kind,
                    count=len(actions),
                    instance_ids=[action.instance.id for action in actions] if listed else None,
                    success=change_result.success if change_result is not None else None,
                    errors=_error_messages(change_result.error) if change_result is not None else []
                ))
        accounts.append(account)

    return Report(accounts=accounts, list_skipped_instances=list_skipped_instances)


def render_report(report: Report, console: Console) -> None:
    """Print the report as a table per account."""
    for account in report.accounts:
        status = "[green]OK[/green]" if account.success else "[red]FAILED[/red]"
        console.print(f"[bold]{escape(account.account_name)}[/bold] {status}")

        if account.error:
            console.print(f"  [red]{escape(account.error)}[/red]")
            continue

        table = Table(show_header=True, header_style="bold")
        table.add_column("Action")
        table.add_column("Count", justify="right")
        table.add_column("Result")
        table.add_column("Instances")

        for group in account.groups:
            if group.success is None:
                result = "-"
            elif group.success:
                result = "[green]ok[/green]"
            else:
                result = "[red]" + escape("\n".join(group.errors)) + "[/red]"
            instances = ", ".join(group.instance_ids) if group.instance_ids is not None else "(not listed)"
            table.add_row(group.kind.value, str(group.count), result, instances)

        console.print(table)
