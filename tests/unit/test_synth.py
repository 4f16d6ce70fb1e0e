"""Tests for CDK synthesis of a transform result."""

import pytest
from aws_cdk import App, assertions

from firehose_transformer.graph import Resource, TransformContext
from firehose_transformer.helpers import FIREHOSE_DIRECTIVE_STACK, TransformConfig
from firehose_transformer.synth import TransformStack, creation_order
from firehose_transformer.transform import GraphQLTransform
from tests.unit.fixtures import SHARED_TARGET_SCHEMA


class TestCreationOrder:
    """Tests for creation_order."""

    def test_references_come_first(self):
        ctx = TransformContext()
        ctx.set_resource("Resolver", Resource("AWS::AppSync::Resolver", {"DataSourceName": {"Fn::GetAtt": ["Ds", "Name"]}}))
        ctx.set_resource("Ds", Resource("AWS::AppSync::DataSource", {"ServiceRoleArn": {"Fn::GetAtt": ["Role", "Arn"]}}))
        ctx.set_resource("Role", Resource("AWS::IAM::Role"))

        assert creation_order(ctx) == ["Role", "Ds", "Resolver"]

    def test_depends_on_counts(self):
        ctx = TransformContext()
        ctx.set_resource("Second", Resource("AWS::IAM::Role").depends("First"))
        ctx.set_resource("First", Resource("AWS::IAM::Role"))

        assert creation_order(ctx) == ["First", "Second"]

    def test_unknown_and_parameter_refs_ignored(self):
        ctx = TransformContext()
        ctx.set_resource("Table", Resource("AWS::DynamoDB::Table", {"Name": {"Ref": "env"}}))

        assert creation_order(ctx) == ["Table"]

    def test_cycle_raises(self):
        ctx = TransformContext()
        ctx.set_resource("A", Resource("AWS::IAM::Role").depends("B"))
        ctx.set_resource("B", Resource("AWS::IAM::Role").depends("A"))

        with pytest.raises(ValueError, match="Circular"):
            creation_order(ctx)


class TestTransformStack:
    """Tests for TransformStack."""

    @pytest.fixture
    def stack(self, config):
        app = App()
        ctx = GraphQLTransform(config).transform(SHARED_TARGET_SCHEMA)
        return TransformStack(app, "TestApi", ctx=ctx)

    def test_one_stack_per_partition(self, stack):
        assert set(stack.partition_stacks) == {"root", "Todo", "Note", "Tag", FIREHOSE_DIRECTIVE_STACK}

    def test_root_template(self, stack):
        template = assertions.Template.from_stack(stack)

        template.resource_count_is("AWS::CloudFormation::Stack", 4)
        template.has_resource_properties("AWS::AppSync::GraphQLApi", {"AuthenticationType": "API_KEY"})
        template.has_parameter("env", {"Type": "String", "Default": "NONE"})
        template.has_condition("HasEnvironmentParameter", assertions.Match.any_value())

    def test_firehose_template(self, stack):
        template = assertions.Template.from_stack(stack.partition_stacks[FIREHOSE_DIRECTIVE_STACK])

        template.resource_count_is("AWS::AppSync::Resolver", 10)
        template.resource_count_is("AWS::AppSync::FunctionConfiguration", 11)
        template.resource_count_is("AWS::AppSync::DataSource", 1)
        template.resource_count_is("AWS::IAM::Role", 1)
        template.has_resource_properties(
            "AWS::AppSync::Resolver",
            {"Kind": "PIPELINE", "TypeName": "Mutation", "FieldName": "createTodo"},
        )
        template.has_parameter("env", {"Type": "String"})
        template.has_condition("HasEnvironmentParameter", assertions.Match.any_value())

    def test_logical_ids_and_dependencies_kept(self, stack):
        resources = assertions.Template.from_stack(stack.partition_stacks[FIREHOSE_DIRECTIVE_STACK]).to_json()[
            "Resources"
        ]

        assert "InvokeAuditlogEuWest1LambdaDataSource" in resources
        assert set(resources["MutationCreateTodoPipelineResolver"]["DependsOn"]) == {
            "InvokeAuditlogEuWest1LambdaDataSource",
            "MutationCreateTodoFunction",
        }

    def test_model_template_untouched_type(self, stack):
        template = assertions.Template.from_stack(stack.partition_stacks["Tag"])

        template.resource_count_is("AWS::AppSync::Resolver", 5)
        template.resource_count_is("AWS::DynamoDB::Table", 1)
        template.has_resource_properties("AWS::AppSync::Resolver", {"FieldName": "listTags"})

    def test_intercepted_model_keeps_only_data(self, stack):
        template = assertions.Template.from_stack(stack.partition_stacks["Todo"])

        template.resource_count_is("AWS::AppSync::Resolver", 0)
        template.resource_count_is("AWS::AppSync::DataSource", 1)

    def test_env_default_from_config(self):
        app = App()
        config = TransformConfig(env_name="dev", region="us-east-1")
        stack = TransformStack(app, "DevApi", ctx=GraphQLTransform(config).transform(SHARED_TARGET_SCHEMA))

        assertions.Template.from_stack(stack).has_parameter("env", {"Type": "String", "Default": "dev"})
