"""
Shared helper utilities for transform configuration.

This module provides:
- Region and environment lookup from environment variables
- Partition (stack) names used when assigning resources
- The TransformConfig passed into every transform run
"""

import os
from dataclasses import dataclass
from typing import Optional

# Partition holding every resource created by the @firehose transform.
FIREHOSE_DIRECTIVE_STACK = "FirehoseDirectiveStack"

# Partition holding the API itself and anything not owned by a model type.
ROOT_STACK = "root"

# Parameter value CloudFormation receives when no environment is bound.
NO_ENV = "NONE"


def get_region() -> str:
    """Get the AWS region from environment variables or default to us-east-1."""
    return os.getenv("AWS_REGION") or os.getenv("CDK_DEFAULT_REGION") or "us-east-1"


def get_env_name(context_value: Optional[str] = None) -> Optional[str]:
    """Get the environment name bound for this run.

    Args:
        context_value: Value from CDK context or the command line. Takes
            precedence over the ENVIRONMENT variable.

    Returns:
        Environment name, or None when no environment is bound
    """
    value = context_value or os.getenv("ENVIRONMENT")
    if not value or value == NO_ENV:
        return None
    return value


def get_account_id() -> Optional[str]:
    """Get the AWS account ID from environment variables, if set."""
    return os.getenv("AWS_ACCOUNT_ID") or os.getenv("CDK_DEFAULT_ACCOUNT")


@dataclass(frozen=True)
class TransformConfig:
    """Settings for one transform run."""

    env_name: Optional[str] = None
    region: str = "us-east-1"
    account_id: Optional[str] = None
    firehose_stack: str = FIREHOSE_DIRECTIVE_STACK
    root_stack: str = ROOT_STACK

    @classmethod
    def from_env(
        cls,
        env_name: Optional[str] = None,
        region: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> "TransformConfig":
        """Build a config, falling back to environment variables for unset values."""
        return cls(
            env_name=get_env_name(env_name),
            region=region or get_region(),
            account_id=account_id or get_account_id(),
        )

    def parameters(self) -> dict[str, str]:
        """Deployment parameter and pseudo-parameter bindings for previewing intrinsics."""
        parameters = {"env": self.env_name or NO_ENV, "AWS::Region": self.region}
        if self.account_id:
            parameters["AWS::AccountId"] = self.account_id
        return parameters
