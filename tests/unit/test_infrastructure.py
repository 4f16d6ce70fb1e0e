"""Tests for shared interceptor infrastructure."""

import json
from typing import Any

import pytest

from firehose_transformer.graph import Resource
from firehose_transformer.helpers import FIREHOSE_DIRECTIVE_STACK
from firehose_transformer.infrastructure import InterceptorInfrastructure
from firehose_transformer.mapping_templates import PAYLOAD_FIELDS
from firehose_transformer.reference import FunctionReference
from firehose_transformer.utils.errors import InternalInvariantError


class TestEnsure:
    """Tests for InterceptorInfrastructure.ensure."""

    def test_creates_triple(self, ctx):
        """Role, data source and invoke function are created in the firehose partition."""
        infra = InterceptorInfrastructure(ctx).ensure(FunctionReference("auditlog"))

        assert infra.role_id == "AuditlogLambdaDataSourceRole"
        assert infra.data_source_id == "AuditlogLambdaDataSource"
        assert infra.function_id == "InvokeAuditlogLambdaDataSource"
        for logical_id in (infra.role_id, infra.data_source_id, infra.function_id):
            assert ctx.get_resource(logical_id) is not None
            assert ctx.partitions.partition_of(logical_id) == FIREHOSE_DIRECTIVE_STACK

    def test_dependency_chain(self, ctx):
        """Invoke function depends on the data source, which depends on the role."""
        infra = InterceptorInfrastructure(ctx).ensure(FunctionReference("auditlog"))

        assert ctx.get_resource(infra.data_source_id).depends_on == [infra.role_id]
        assert ctx.get_resource(infra.function_id).depends_on == [infra.data_source_id]

    def test_same_key_created_once(self, ctx):
        """A second ensure for the same (name, region) creates nothing."""
        infrastructure = InterceptorInfrastructure(ctx)
        first = infrastructure.ensure(FunctionReference("auditlog", "eu-west-1"))
        count = len(ctx.graph)

        second = infrastructure.ensure(FunctionReference("auditlog", "eu-west-1"))

        assert second == first
        assert len(ctx.graph) == count

    def test_cache_shared_across_instances(self, ctx):
        """The cache lives on the context, not the instance."""
        first = InterceptorInfrastructure(ctx).ensure(FunctionReference("auditlog"))
        second = InterceptorInfrastructure(ctx).ensure(FunctionReference("auditlog"))

        assert first is second

    def test_different_region_is_a_different_triple(self, ctx):
        infrastructure = InterceptorInfrastructure(ctx)

        first = infrastructure.ensure(FunctionReference("auditlog"))
        second = infrastructure.ensure(FunctionReference("auditlog", "eu-west-1"))

        assert first.function_id != second.function_id
        assert len(ctx.graph.of_type("AWS::AppSync::FunctionConfiguration")) == 2


class TestEnsureRole:
    """Tests for ensure_role."""

    def test_trust_and_permission(self, ctx):
        ref = FunctionReference("auditlog-${env}")
        role_id = InterceptorInfrastructure(ctx).ensure_role(ref)
        properties = ctx.get_resource(role_id).properties

        trust = properties["AssumeRolePolicyDocument"]["Statement"]
        assert trust == [
            {"Effect": "Allow", "Principal": {"Service": "appsync.amazonaws.com"}, "Action": "sts:AssumeRole"}
        ]
        (policy,) = properties["Policies"]
        (statement,) = policy["PolicyDocument"]["Statement"]
        assert statement["Action"] == ["lambda:InvokeFunction"]
        assert statement["Resource"] == ref.target

    def test_role_name_conditional_on_env(self, ctx):
        role_id = InterceptorInfrastructure(ctx).ensure_role(FunctionReference("auditlog"))
        condition, with_env, without_env = ctx.get_resource(role_id).properties["RoleName"]["Fn::If"]

        assert condition == "HasEnvironmentParameter"
        assert with_env["Fn::Join"][1][-1] == {"Ref": "env"}
        assert len(without_env["Fn::Join"][1]) == 2

    def test_existing_role_untouched(self, ctx):
        """An existing resource under the role ID is returned as-is."""
        existing = Resource("AWS::IAM::Role", {"RoleName": "kept"})
        ctx.set_resource("AuditlogLambdaDataSourceRole", existing)

        role_id = InterceptorInfrastructure(ctx).ensure_role(FunctionReference("auditlog"))

        assert ctx.get_resource(role_id) is existing
        assert existing.properties == {"RoleName": "kept"}


class TestEnsureDataSource:
    """Tests for ensure_data_source."""

    def test_lambda_config(self, ctx):
        ref = FunctionReference("auditlog", "eu-west-1")
        infrastructure = InterceptorInfrastructure(ctx)
        role_id = infrastructure.ensure_role(ref)

        data_source_id = infrastructure.ensure_data_source(ref, role_id)
        properties = ctx.get_resource(data_source_id).properties

        assert properties["Type"] == "AWS_LAMBDA"
        assert properties["Name"] == data_source_id
        assert properties["ServiceRoleArn"] == {"Fn::GetAtt": [role_id, "Arn"]}
        assert properties["LambdaConfig"] == {"LambdaFunctionArn": ref.target}


class TestEnsureInvocationFunction:
    """Tests for ensure_invocation_function."""

    def _function(self, ctx) -> Any:
        infra = InterceptorInfrastructure(ctx).ensure(FunctionReference("auditlog"))
        return ctx.get_resource(infra.function_id).properties

    def test_payload_fields_in_order(self, ctx):
        request = self._function(ctx)["RequestMappingTemplate"]

        positions = [request.index(f'"{name}":') for name, _ in PAYLOAD_FIELDS]
        assert [name for name, _ in PAYLOAD_FIELDS] == [
            "typeName",
            "fieldName",
            "arguments",
            "identity",
            "source",
            "request",
            "prev",
        ]
        assert positions == sorted(positions)

    def test_payload_reads_stash_and_serializes(self, ctx):
        request = self._function(ctx)["RequestMappingTemplate"]

        assert '"typeName": $util.toJson($ctx.stash.get("typeName"))' in request
        assert '"fieldName": $util.toJson($ctx.stash.get("fieldName"))' in request
        assert '"prev": $util.toJson($ctx.prev)' in request
        assert '"operation": "Invoke"' in request
        assert "AuditlogLambdaDataSource" in request

    def test_request_is_json_once_vtl_references_are_replaced(self, ctx):
        request = self._function(ctx)["RequestMappingTemplate"]
        body = "\n".join(line for line in request.splitlines() if not line.startswith("##"))
        for _, expr in PAYLOAD_FIELDS:
            body = body.replace(f"$util.toJson({expr})", "null")

        parsed = json.loads(body)

        assert list(parsed["payload"]) == [name for name, _ in PAYLOAD_FIELDS]

    def test_response_surfaces_error(self, ctx):
        response = self._function(ctx)["ResponseMappingTemplate"]

        assert "#if( $ctx.error )" in response
        assert "$util.error($ctx.error.message, $ctx.error.type)" in response
        assert response.index("$util.error") < response.index("$util.toJson($ctx.result)")

    def test_data_source_reference(self, ctx):
        properties = self._function(ctx)

        assert properties["DataSourceName"] == {"Fn::GetAtt": ["AuditlogLambdaDataSource", "Name"]}
        assert properties["FunctionVersion"] == "2018-05-29"


class TestColliding:
    """Distinct references whose logical IDs coincide."""

    @pytest.mark.parametrize(
        "first, second",
        [
            (FunctionReference("audit-log"), FunctionReference("auditLog")),
            (FunctionReference("auditlogUs"), FunctionReference("auditlog", "us")),
        ],
    )
    def test_second_reference_raises(self, ctx, first, second):
        infrastructure = InterceptorInfrastructure(ctx)
        infrastructure.ensure(first)
        count = len(ctx.graph)

        with pytest.raises(InternalInvariantError) as exc_info:
            infrastructure.ensure(second)

        assert exc_info.value.details["function"] == second.name
        assert len(ctx.graph) == count
        assert second.key not in ctx.infrastructure
