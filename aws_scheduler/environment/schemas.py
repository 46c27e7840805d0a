"""Wire formats returned by Environment Manager."""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from aws_scheduler.services.models import (
    Account,
    ActionKind,
    EnvironmentType,
    Instance,
    ScheduledInstanceAction,
)


class AccountRecord(BaseModel):
    model_config = ConfigDict(extra='ignore')

    AccountName: str
    AccountNumber: Union[str, int]

    def to_model(self) -> Account:
        return Account(name=self.AccountName, account_number=str(self.AccountNumber))


class ConsulSettings(BaseModel):
    model_config = ConfigDict(extra='ignore')

    DataCenter: Optional[str] = None


class EnvironmentTypeValue(BaseModel):
    model_config = ConfigDict(extra='ignore')

    Consul: Optional[ConsulSettings] = None


class EnvironmentTypeRecord(BaseModel):
    model_config = ConfigDict(extra='ignore')

    EnvironmentType: str
    Value: Optional[EnvironmentTypeValue] = None

    def to_model(self) -> EnvironmentType:
        data_center = None
        if self.Value is not None and self.Value.Consul is not None:
            data_center = self.Value.Consul.DataCenter
        return EnvironmentType(name=self.EnvironmentType, data_center_id=data_center)


class InstanceRecord(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    id: str
    asg: Optional[str] = None
    environment: Optional[str] = None
    environment_type: Optional[str] = Field(default=None, alias='environmentType')


class ActionRecord(BaseModel):
    model_config = ConfigDict(extra='ignore')

    action: ActionKind
    reason: Optional[str] = None

    @field_validator('action', mode='before')
    @classmethod
    def validate_action(cls, v):
        """Unknown kinds are rejected rather than silently skipped."""
        valid = [kind.value for kind in ActionKind]
        if v not in valid:
            raise ValueError(f"Unknown action {v!r}; expected one of {', '.join(valid)}")
        return v


class ScheduledActionRecord(BaseModel):
    model_config = ConfigDict(extra='ignore')

    instance: InstanceRecord
    action: ActionRecord

    def to_model(self) -> ScheduledInstanceAction:
        return ScheduledInstanceAction(
            instance=Instance(
                id=self.instance.id,
                auto_scaling_group=self.instance.asg,
                environment_name=self.instance.environment,
                environment_type_name=self.instance.environment_type
            ),
            action_kind=self.action.action,
            reason=self.action.reason
        )
