"""
Lambda function references.

Turns the ``name``/``region`` arguments of @firehose into the ARN expression
every resource for that function points at. The expression is decided at
deploy time: with an ``env`` parameter bound the ``${env}`` placeholder is
substituted, without one the placeholder segment is dropped so stacks that
never had an environment suffix keep working.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from . import intrinsics

ENV_PLACEHOLDER = "${env}"

_ENV_SEGMENT = re.compile(r"-\$\{env\}")


def lambda_arn_key(name: str, region: Optional[str] = None) -> str:
    """Fn::Sub template for the ARN of function ``name``."""
    if region:
        return f"arn:aws:lambda:{region}:${{AWS::AccountId}}:function:{name}"
    return f"arn:aws:lambda:${{AWS::Region}}:${{AWS::AccountId}}:function:{name}"


def references_env(value: str) -> bool:
    return ENV_PLACEHOLDER in value


def remove_env_reference(value: str) -> str:
    return _ENV_SEGMENT.sub("", value).replace(ENV_PLACEHOLDER, "")


def lambda_arn_resource(name: str, region: Optional[str] = None) -> Dict[str, Any]:
    """Conditional ARN expression for function ``name``.

    Always a two-branch ``Fn::If`` on HasEnvironmentParameter, so the output
    only depends on ``name`` and ``region``.
    """
    substitutions: Dict[str, Any] = {}
    if references_env(name):
        substitutions[intrinsics.ENV_PARAMETER] = intrinsics.env_ref()
    return intrinsics.if_(
        intrinsics.HAS_ENVIRONMENT_PARAMETER,
        intrinsics.sub(lambda_arn_key(name, region), substitutions),
        intrinsics.sub(lambda_arn_key(remove_env_reference(name), region), {}),
    )


@dataclass(frozen=True)
class FunctionReference:
    """The function a @firehose directive points at."""

    name: str
    region: Optional[str] = None

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        return (self.name, self.region)

    @property
    def target(self) -> Dict[str, Any]:
        return lambda_arn_resource(self.name, self.region)
