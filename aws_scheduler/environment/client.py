"""
HTTP client for Environment Manager, the source of accounts, environment
types and the instance schedule.
"""
import logging
from typing import Any, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from aws_scheduler.core.exceptions import EnvironmentAuthorityError
from aws_scheduler.environment.schemas import (
    AccountRecord,
    EnvironmentTypeRecord,
    ScheduledActionRecord,
)
from aws_scheduler.services.models import Account, EnvironmentType, ScheduledInstanceAction


logger = logging.getLogger(__name__)

R = TypeVar('R', bound=BaseModel)

ACCOUNTS_PATH = '/api/v1/config/accounts'
ENVIRONMENT_TYPES_PATH = '/api/v1/config/environment-types'
SCHEDULE_ACTIONS_PATH = '/api/v1/instances/schedule-actions'


class EnvironmentManagerClient:
    """Read-only access to the Environment Manager API."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None
    ):
        headers = {'Authorization': f'Bearer {token}'} if token else {}
        self.client = client or httpx.Client(base_url=base_url, headers=headers, timeout=timeout)

    def get_accounts(self) -> List[Account]:
        records = self._get_list(ACCOUNTS_PATH, AccountRecord)
        return [record.to_model() for record in records]

    def get_environment_types(self) -> List[EnvironmentType]:
        records = self._get_list(ENVIRONMENT_TYPES_PATH, EnvironmentTypeRecord)
        return [record.to_model() for record in records]

    def get_scheduled_instance_actions(self, account_name: str) -> List[ScheduledInstanceAction]:
        """Schedule decisions for every instance in ``account_name``."""
        records = self._get_list(SCHEDULE_ACTIONS_PATH, ScheduledActionRecord, params={'account': account_name})
        return [record.to_model() for record in records]

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> 'EnvironmentManagerClient':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _get_list(self, path: str, record_type: Type[R], params: Optional[dict] = None) -> List[R]:
        payload = self._get(path, params)
        if not isinstance(payload, list):
            raise EnvironmentAuthorityError(f"Expected a list from {path}, got {type(payload).__name__}")
        try:
            return [record_type.model_validate(item) for item in payload]
        except ValidationError as e:
            raise EnvironmentAuthorityError(f"Invalid response from {path}: {e}", details=str(e))

    def _get(self, path: str, params: Optional[dict] = None) -> Any:
        logger.debug(f"GET {path} {params or ''}")
        try:
            response = self.client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise EnvironmentAuthorityError(
                f"Environment Manager returned HTTP {e.response.status_code} for {path}",
                details=e.response.text
            )
        except httpx.HTTPError as e:
            raise EnvironmentAuthorityError(f"Environment Manager request to {path} failed: {e}")
        except ValueError as e:
            raise EnvironmentAuthorityError(f"Environment Manager returned invalid JSON for {path}: {e}")
