"""
Shared infrastructure for intercepting functions.

Every annotated type pointing at the same ``(name, region)`` shares one IAM
role, one Lambda data source and one invoke pipeline function. They are
created the first time a type needs them and reused afterwards; an existing
resource is never modified.
"""

from typing import Any, Dict

from . import intrinsics
from .graph import FunctionInfrastructure, Resource, TransformContext
from .mapping_templates import FUNCTION_VERSION, invoke_request, invoke_response
from .reference import FunctionReference
from .resource_ids import FunctionResourceIDs
from .utils.errors import InternalInvariantError

APPSYNC_SERVICE_PRINCIPAL = "appsync.amazonaws.com"


def _role_name(name: str) -> Dict[str, Any]:
    return intrinsics.if_(
        intrinsics.HAS_ENVIRONMENT_PARAMETER,
        intrinsics.join(
            "-",
            [
                FunctionResourceIDs.iam_role_name(name, True),
                intrinsics.api_id(),
                intrinsics.env_ref(),
            ],
        ),
        intrinsics.join(
            "-",
            [
                FunctionResourceIDs.iam_role_name(name, False),
                intrinsics.api_id(),
            ],
        ),
    )


class InterceptorInfrastructure:
    """
    Creates the resources a function reference needs, at most once per run.

    The cache lives on the TransformContext, so two instances working on the
    same context share it.

    Example:
        infra = InterceptorInfrastructure(ctx)
        ids = infra.ensure(FunctionReference("auditlog-${env}"))
        ids.function_id  # "InvokeAuditlogEnvLambdaDataSource"
    """

    def __init__(self, ctx: TransformContext):
        self.ctx = ctx

    @property
    def partition(self) -> str:
        return self.ctx.config.firehose_stack

    def ensure(self, ref: FunctionReference) -> FunctionInfrastructure:
        """Ensure role, data source and invoke function exist, in that order."""
        cached = self.ctx.infrastructure.get(ref.key)
        if cached is not None:
            self.ctx.log.debug("Reusing interceptor infrastructure", function=ref.name, region=ref.region)
            return cached

        # Distinct keys can simplify to the same IDs, e.g. "audit-log" and "auditLog"
        function_id = FunctionResourceIDs.function_configuration_id(ref.name, ref.region)
        for key, existing in self.ctx.infrastructure.items():
            if existing.function_id == function_id:
                raise InternalInvariantError(
                    f"Function references {key} and {ref.key} both map to {function_id}.",
                    {"resourceId": function_id, "function": ref.name, "region": ref.region},
                )

        role_id = self.ensure_role(ref)
        data_source_id = self.ensure_data_source(ref, role_id)
        function_id = self.ensure_invocation_function(ref, data_source_id)

        infra = FunctionInfrastructure(role_id=role_id, data_source_id=data_source_id, function_id=function_id)
        self.ctx.infrastructure[ref.key] = infra
        return infra

    def ensure_role(self, ref: FunctionReference) -> str:
        role_id = FunctionResourceIDs.iam_role_id(ref.name, ref.region)
        if self.ctx.get_resource(role_id) is not None:
            return role_id

        role = Resource(
            "AWS::IAM::Role",
            {
                "RoleName": _role_name(ref.name),
                "AssumeRolePolicyDocument": {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Principal": {"Service": APPSYNC_SERVICE_PRINCIPAL},
                            "Action": "sts:AssumeRole",
                        }
                    ],
                },
                "Policies": [
                    {
                        "PolicyName": "InvokeLambdaFunction",
                        "PolicyDocument": {
                            "Version": "2012-10-17",
                            "Statement": [
                                {
                                    "Effect": "Allow",
                                    "Action": ["lambda:InvokeFunction"],
                                    "Resource": ref.target,
                                }
                            ],
                        },
                    }
                ],
            },
        )
        self.ctx.set_resource(role_id, role, self.partition)
        self.ctx.log.info("Created interceptor role", resource_id=role_id, function=ref.name)
        return role_id

    def ensure_data_source(self, ref: FunctionReference, role_id: str) -> str:
        data_source_id = FunctionResourceIDs.data_source_id(ref.name, ref.region)
        if self.ctx.get_resource(data_source_id) is not None:
            return data_source_id

        data_source = Resource(
            "AWS::AppSync::DataSource",
            {
                "ApiId": intrinsics.api_id(),
                "Name": data_source_id,
                "Type": "AWS_LAMBDA",
                "ServiceRoleArn": intrinsics.get_att(role_id, "Arn"),
                "LambdaConfig": {"LambdaFunctionArn": ref.target},
            },
        ).depends(role_id)
        self.ctx.set_resource(data_source_id, data_source, self.partition)
        self.ctx.log.info("Created interceptor data source", resource_id=data_source_id, function=ref.name)
        return data_source_id

    def ensure_invocation_function(self, ref: FunctionReference, data_source_id: str) -> str:
        function_id = FunctionResourceIDs.function_configuration_id(ref.name, ref.region)
        if self.ctx.get_resource(function_id) is not None:
            return function_id

        function = Resource(
            "AWS::AppSync::FunctionConfiguration",
            {
                "ApiId": intrinsics.api_id(),
                "Name": function_id,
                "DataSourceName": intrinsics.get_att(data_source_id, "Name"),
                "FunctionVersion": FUNCTION_VERSION,
                "RequestMappingTemplate": invoke_request(data_source_id),
                "ResponseMappingTemplate": invoke_response(),
            },
        ).depends(data_source_id)
        self.ctx.set_resource(function_id, function, self.partition)
        self.ctx.log.info("Created interceptor function", resource_id=function_id, function=ref.name)
        return function_id
