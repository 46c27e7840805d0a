"""
Data models for a scheduling pass.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class ActionKind(str, Enum):
    """Disposition assigned to an instance for the current pass."""
    SWITCH_ON = 'switchOn'
    SWITCH_OFF = 'switchOff'
    PUT_IN_SERVICE = 'putInService'
    PUT_OUT_OF_SERVICE = 'putOutOfService'
    SKIP = 'skip'

    @classmethod
    def mutating(cls) -> Tuple['ActionKind', ...]:
        """The kinds that are executed, in report order."""
        return (cls.SWITCH_ON, cls.SWITCH_OFF, cls.PUT_IN_SERVICE, cls.PUT_OUT_OF_SERVICE)


@dataclass(frozen=True)
class Account:
    """An AWS account known to Environment Manager."""
    name: str
    account_number: str


@dataclass(frozen=True)
class EnvironmentType:
    """Environment type metadata shared by all accounts."""
    name: str
    data_center_id: Optional[str] = None


@dataclass
class Instance:
    """An EC2 instance the schedule has an opinion about."""
    id: str
    auto_scaling_group: Optional[str]
    environment_name: Optional[str]
    environment_type_name: Optional[str] = None
    cold_standby_data_center: Optional[str] = None  # set by annotation only


@dataclass
class ScheduledInstanceAction:
    """What to do with one instance in this pass."""
    instance: Instance
    action_kind: ActionKind
    reason: Optional[str] = None


class ActionGroups(dict):
    """Scheduled actions partitioned by kind. Always holds all five kinds."""

    def __init__(self):
        super().__init__((kind, []) for kind in ActionKind)

    @classmethod
    def partition(cls, actions: Iterable[ScheduledInstanceAction]) -> 'ActionGroups':
        groups = cls()
        for action in actions:
            groups[ActionKind(action.action_kind)].append(action)
        return groups

    def instances(self, kind: ActionKind) -> List[Instance]:
        return [action.instance for action in self[kind]]

    def total(self) -> int:
        return sum(len(actions) for actions in self.values())


@dataclass
class ChangeResult:
    """Outcome of executing one action group."""
    success: bool
    error: Optional[Exception] = None


@dataclass
class AccountResult:
    """Everything the pass did (or failed to do) for one account."""
    account_name: str
    action_groups: ActionGroups = field(default_factory=ActionGroups)
    change_results: Dict[ActionKind, ChangeResult] = field(default_factory=dict)
    error: Optional[Exception] = None  # AccountPipelineError when the branch failed

    @property
    def success(self) -> bool:
        return self.error is None and all(r.success for r in self.change_results.values())
