"""Cross-account credentials via STS assume role."""

import logging
import threading
import uuid
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from aws_scheduler.core.config import SchedulerConfig
from aws_scheduler.core.exceptions import AuthenticationError
from aws_scheduler.services.models import Account


logger = logging.getLogger(__name__)

RETRYABLE_ERROR_CODES = {'Throttling', 'ThrottlingException', 'RequestLimitExceeded', 'ServiceUnavailable', 'InternalFailure'}


def _is_retryable(error: BaseException) -> bool:
    if isinstance(error, NoCredentialsError):
        return False
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Code') in RETRYABLE_ERROR_CODES
    return isinstance(error, BotoCoreError)


class CrossAccountAuthenticator:
    """Builds boto3 sessions scoped to a target account.

    Our own account uses the ambient credentials. Any other account is reached
    by assuming the configured child account role there.
    """

    def __init__(
        self,
        config: SchedulerConfig,
        sts_client: Any = None,
        max_attempts: int = 3,
        retry_wait: float = 1.0
    ):
        """Initialize the authenticator.

        Args:
            config: Scheduler configuration (region, own account, role name)
            sts_client: Optional pre-built STS client
            max_attempts: Attempts per STS call before giving up
            retry_wait: Base of the exponential backoff between attempts
        """
        self.config = config
        self._sts_client = sts_client
        self._own_account_id: Optional[str] = config.aws_account_id
        self._lock = threading.Lock()
        self._retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=retry_wait, max=20),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )

    @property
    def sts_client(self):
        if self._sts_client is None:
            self._sts_client = boto3.client('sts', region_name=self.config.aws_region)
        return self._sts_client

    @property
    def own_account_id(self) -> str:
        """Account number of the caller, resolved once through STS when not configured."""
        with self._lock:
            if self._own_account_id is None:
                identity = self.get_caller_identity()
                self._own_account_id = str(identity['Account'])
            return self._own_account_id

    def get_caller_identity(self) -> Dict[str, Any]:
        """Get the current caller identity information.

        Raises:
            AuthenticationError: If unable to get caller identity.
        """
        try:
            return self._retrying(self.sts_client.get_caller_identity)
        except (ClientError, BotoCoreError) as e:
            raise AuthenticationError(f"Failed to get caller identity: {e}", details=str(e))

    def session_for(self, account: Account) -> boto3.Session:
        """Get a boto3 session for ``account``.

        Role assumption, when needed, completes before the session exists.

        Raises:
            ConfigurationError: If no child account role is configured.
            AuthenticationError: If role assumption fails.
        """
        if str(account.account_number) == self.own_account_id:
            logger.debug(f"Using ambient credentials for account {account.name}")
            return boto3.Session(region_name=self.config.aws_region)

        credentials = self.assume_role(self.config.role_arn_for(account.account_number))
        return boto3.Session(
            aws_access_key_id=credentials['AccessKeyId'],
            aws_secret_access_key=credentials['SecretAccessKey'],
            aws_session_token=credentials['SessionToken'],
            region_name=self.config.aws_region
        )

    def assume_role(self, role_arn: str) -> Dict[str, Any]:
        """Assume ``role_arn`` under a fresh, unique session name.

        Returns:
            The temporary credentials from the AssumeRole response.

        Raises:
            AuthenticationError: If role assumption fails.
        """
        session_name = str(uuid.uuid1())

        try:
            logger.info(f"Assuming IAM role: {role_arn}")
            response = self._retrying(
                self.sts_client.assume_role,
                RoleArn=role_arn,
                RoleSessionName=session_name
            )
            return response['Credentials']

        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            error_message = e.response.get('Error', {}).get('Message', str(e))

            if error_code == 'AccessDenied':
                raise AuthenticationError(
                    f"Access denied when assuming role {role_arn}. "
                    "Check that the role exists in the target account and trusts this account.",
                    details=error_message
                )
            raise AuthenticationError(
                f"Failed to assume IAM role {role_arn}: {error_code} - {error_message}",
                details=error_message
            )

        except NoCredentialsError:
            raise AuthenticationError(
                "No AWS credentials found. Configure credentials through the environment, "
                "a shared credentials file or an instance profile."
            )

        except BotoCoreError as e:
            raise AuthenticationError(f"AWS configuration error: {e}")
