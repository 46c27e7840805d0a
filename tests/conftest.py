"""
Pytest configuration and shared fixtures for AWS Scheduler tests.
"""

import os
import threading
from typing import Dict, List, Optional

import pytest
from moto import mock_aws
from unittest.mock import MagicMock, Mock

from aws_scheduler.core.config import SchedulerConfig
from aws_scheduler.services.models import (
    Account,
    ActionKind,
    EnvironmentType,
    Instance,
    ScheduledInstanceAction,
)


OWN_ACCOUNT_ID = "111111111111"
CHILD_ACCOUNT_ID = "222222222222"


@pytest.fixture(autouse=True, scope="session")
def aws_credentials():
    """Fake credentials so nothing can reach a real account."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def mock_aws_services():
    """Mock all AWS services used by the application."""
    with mock_aws():
        yield


@pytest.fixture
def scheduler_config():
    return SchedulerConfig(
        em_url="http://em.example.com",
        aws_region="us-east-1",
        aws_account_id=OWN_ACCOUNT_ID,
        child_account_role_name="EnvironmentManagerScheduler",
    )


def make_action(
    instance_id: str,
    kind: ActionKind,
    environment: Optional[str] = "prod-1",
    environment_type: Optional[str] = "Prod",
    asg: Optional[str] = "asg-web",
) -> ScheduledInstanceAction:
    return ScheduledInstanceAction(
        instance=Instance(
            id=instance_id,
            auto_scaling_group=asg,
            environment_name=environment,
            environment_type_name=environment_type,
        ),
        action_kind=kind,
    )


class FakeEnvironmentManager:
    """In-memory stand-in for EnvironmentManagerClient."""

    def __init__(
        self,
        accounts: List[Account],
        environment_types: List[EnvironmentType],
        actions: Dict[str, List[ScheduledInstanceAction]],
        failing_accounts: Optional[Dict[str, Exception]] = None,
    ):
        self.accounts = accounts
        self.environment_types = environment_types
        self.actions = actions
        self.failing_accounts = failing_accounts or {}
        self.environment_type_calls = 0
        self.requested_accounts: List[str] = []
        self._lock = threading.Lock()

    def get_accounts(self):
        return list(self.accounts)

    def get_environment_types(self):
        self.environment_type_calls += 1
        return list(self.environment_types)

    def get_scheduled_instance_actions(self, account_name):
        with self._lock:
            self.requested_accounts.append(account_name)
        if account_name in self.failing_accounts:
            raise self.failing_accounts[account_name]
        return list(self.actions.get(account_name, []))


def make_executor_mock() -> MagicMock:
    """Executor double whose handler table records the instances it receives."""
    executor = MagicMock()
    executor.handlers.return_value = {kind: Mock(return_value=[]) for kind in ActionKind.mutating()}
    return executor


@pytest.fixture
def accounts():
    return [
        Account(name="Prod", account_number=OWN_ACCOUNT_ID),
        Account(name="Sandbox", account_number=CHILD_ACCOUNT_ID),
    ]


@pytest.fixture
def environment_types():
    return [
        EnvironmentType(name="Prod", data_center_id="eu-west-1-prod"),
        EnvironmentType(name="Cluster", data_center_id="eu-west-1-cluster"),
    ]
