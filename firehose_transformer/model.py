"""
DynamoDB-backed @model resources.

Generates, per model type, a table, the role AppSync uses to reach it, a
DynamoDB data source and the five standard single-stage resolvers. Default
values (ids and timestamps) for create and update are not written into the
templates directly: they are registered as hoisted content and prepended in
``finalize``, after every other directive has run.

Resolver IDs follow ResolverResourceIDs, which is what lets the @firehose
rewriter find them.
"""

from typing import List

from graphql import ObjectTypeDefinitionNode

from . import intrinsics
from .graph import HoistedContentGenerator, Resource, TransformContext
from .mapping_templates import FORWARD_RESULT, FUNCTION_VERSION, print_block
from .resource_ids import STANDARD_OPERATIONS, ModelOperation, ModelResourceIDs
from .utils.errors import InternalInvariantError

API_NAME = "AppSyncModelAPI"


def _named_with_env(name: str):
    return intrinsics.if_(
        intrinsics.HAS_ENVIRONMENT_PARAMETER,
        intrinsics.join("-", [name, intrinsics.api_id(), intrinsics.env_ref()]),
        intrinsics.join("-", [name, intrinsics.api_id()]),
    )


def _key_condition() -> str:
    return '"key": {\n      "id": $util.dynamodb.toDynamoDBJson($ctx.args.input.id)\n  }'


def create_request(type_name: str) -> str:
    body = (
        f'$util.qr($context.args.input.put("__typename", "{type_name}"))\n'
        "{\n"
        f'  "version": "{FUNCTION_VERSION}",\n'
        '  "operation": "PutItem",\n'
        f"  {_key_condition()},\n"
        '  "attributeValues": $util.dynamodb.toMapValuesJson($context.args.input),\n'
        '  "condition": {\n'
        '      "expression": "attribute_not_exists(#id)",\n'
        '      "expressionNames": {\n'
        '          "#id": "id"\n'
        "      }\n"
        "  }\n"
        "}"
    )
    return print_block("Prepare DynamoDB PutItem Request", body)


def update_request(type_name: str) -> str:
    body = (
        f'$util.qr($context.args.input.put("__typename", "{type_name}"))\n'
        '#set( $expNames = {} )\n'
        '#set( $expValues = {} )\n'
        '#set( $expSet = [] )\n'
        '#foreach( $entry in $util.map.copyAndRemoveAllKeys($context.args.input, ["id"]).entrySet() )\n'
        '  $util.qr($expSet.add("#$entry.key = :$entry.key"))\n'
        '  $util.qr($expNames.put("#$entry.key", "$entry.key"))\n'
        '  $util.qr($expValues.put(":$entry.key", $util.dynamodb.toDynamoDB($entry.value)))\n'
        "#end\n"
        "{\n"
        f'  "version": "{FUNCTION_VERSION}",\n'
        '  "operation": "UpdateItem",\n'
        f"  {_key_condition()},\n"
        '  "update": {\n'
        '      "expression": "SET $util.join(\\", \\", $expSet)",\n'
        '      "expressionNames": $util.toJson($expNames),\n'
        '      "expressionValues": $util.toJson($expValues)\n'
        "  },\n"
        '  "condition": {\n'
        '      "expression": "attribute_exists(#id)",\n'
        '      "expressionNames": {\n'
        '          "#id": "id"\n'
        "      }\n"
        "  }\n"
        "}"
    )
    return print_block("Prepare DynamoDB UpdateItem Request", body)


def delete_request() -> str:
    body = (
        "{\n"
        f'  "version": "{FUNCTION_VERSION}",\n'
        '  "operation": "DeleteItem",\n'
        f"  {_key_condition()}\n"
        "}"
    )
    return print_block("Prepare DynamoDB DeleteItem Request", body)


def get_request() -> str:
    body = (
        "{\n"
        f'  "version": "{FUNCTION_VERSION}",\n'
        '  "operation": "GetItem",\n'
        '  "key": {\n'
        '      "id": $util.dynamodb.toDynamoDBJson($ctx.args.id)\n'
        "  }\n"
        "}"
    )
    return print_block("Prepare DynamoDB GetItem Request", body)


def list_request() -> str:
    body = (
        "#set( $limit = $util.defaultIfNull($context.args.limit, 100) )\n"
        "{\n"
        f'  "version": "{FUNCTION_VERSION}",\n'
        '  "operation": "Scan",\n'
        '  "limit": $limit,\n'
        '  "nextToken": $util.toJson($util.defaultIfNullOrBlank($ctx.args.nextToken, null))\n'
        "}"
    )
    return print_block("Prepare DynamoDB Scan Request", body)


def list_response() -> str:
    return print_block(
        "Return list of items",
        '$util.toJson({"items": $ctx.result.items, "nextToken": $ctx.result.nextToken})',
    )


def create_defaults() -> str:
    body = (
        '$util.qr($context.args.input.put("id", $util.defaultIfNull($ctx.args.input.id, $util.autoId())))\n'
        "#set( $createdAt = $util.time.nowISO8601() )\n"
        '$util.qr($context.args.input.put("createdAt", $util.defaultIfNull($ctx.args.input.createdAt, $createdAt)))\n'
        '$util.qr($context.args.input.put("updatedAt", $util.defaultIfNull($ctx.args.input.updatedAt, $createdAt)))'
    )
    return print_block("Set default values", body)


def update_defaults() -> str:
    body = (
        '$util.qr($context.args.input.put("updatedAt", '
        "$util.defaultIfNull($ctx.args.input.updatedAt, $util.time.nowISO8601())))"
    )
    return print_block("Set default values", body)


def _request_template(operation: ModelOperation, type_name: str) -> str:
    if operation.name == "Create":
        return create_request(type_name)
    if operation.name == "Update":
        return update_request(type_name)
    if operation.name == "Delete":
        return delete_request()
    if operation.name == "Get":
        return get_request()
    if operation.name == "List":
        return list_request()
    raise ValueError(f"Unknown model operation: {operation.name}")


def _hoisted_generator(operation: ModelOperation) -> HoistedContentGenerator | None:
    if operation.name == "Create":
        return create_defaults
    if operation.name == "Update":
        return update_defaults
    return None


class ModelResourceGenerator:
    """
    Produces the baseline resources for @model types.

    ``before`` and ``generate`` run ahead of the @firehose rewrite;
    ``finalize`` runs after it.
    """

    def __init__(self, ctx: TransformContext):
        self.ctx = ctx

    def before(self) -> None:
        """Create the GraphQL API every model resource attaches to."""
        api = Resource(
            "AWS::AppSync::GraphQLApi",
            {
                "Name": intrinsics.if_(
                    intrinsics.HAS_ENVIRONMENT_PARAMETER,
                    intrinsics.join("-", [API_NAME, intrinsics.env_ref()]),
                    API_NAME,
                ),
                "AuthenticationType": "API_KEY",
            },
        )
        self.ctx.set_resource(intrinsics.GRAPHQL_API_ID, api, self.ctx.config.root_stack)

    def generate(self, definition: ObjectTypeDefinitionNode) -> List[str]:
        """Create table, role, data source and resolvers for one model type.

        Returns:
            Logical IDs of the resolvers created, in STANDARD_OPERATIONS order
        """
        type_name = definition.name.value
        table_id = ModelResourceIDs.table_id(type_name)
        role_id = ModelResourceIDs.iam_role_id(type_name)
        data_source_id = ModelResourceIDs.data_source_id(type_name)

        table = Resource(
            "AWS::DynamoDB::Table",
            {
                "TableName": _named_with_env(type_name),
                "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
                "AttributeDefinitions": [{"AttributeName": "id", "AttributeType": "S"}],
                "BillingMode": "PAY_PER_REQUEST",
                "StreamSpecification": {"StreamViewType": "NEW_AND_OLD_IMAGES"},
            },
        )
        self.ctx.set_resource(table_id, table, type_name)

        table_arn = intrinsics.get_att(table_id, "Arn")
        role = Resource(
            "AWS::IAM::Role",
            {
                "RoleName": _named_with_env(f"{type_name}IAMRole"),
                "AssumeRolePolicyDocument": {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Principal": {"Service": "appsync.amazonaws.com"},
                            "Action": "sts:AssumeRole",
                        }
                    ],
                },
                "Policies": [
                    {
                        "PolicyName": "DynamoDBAccess",
                        "PolicyDocument": {
                            "Version": "2012-10-17",
                            "Statement": [
                                {
                                    "Effect": "Allow",
                                    "Action": [
                                        "dynamodb:BatchGetItem",
                                        "dynamodb:BatchWriteItem",
                                        "dynamodb:PutItem",
                                        "dynamodb:DeleteItem",
                                        "dynamodb:GetItem",
                                        "dynamodb:Scan",
                                        "dynamodb:Query",
                                        "dynamodb:UpdateItem",
                                    ],
                                    "Resource": [table_arn, intrinsics.join("/", [table_arn, "*"])],
                                }
                            ],
                        },
                    }
                ],
            },
        )
        self.ctx.set_resource(role_id, role, type_name)

        data_source = Resource(
            "AWS::AppSync::DataSource",
            {
                "ApiId": intrinsics.api_id(),
                "Name": type_name,
                "Type": "AMAZON_DYNAMODB",
                "ServiceRoleArn": intrinsics.get_att(role_id, "Arn"),
                "DynamoDBConfig": {
                    "AwsRegion": intrinsics.ref("AWS::Region"),
                    "TableName": intrinsics.ref(table_id),
                },
            },
        ).depends(role_id)
        self.ctx.set_resource(data_source_id, data_source, type_name)

        resolver_ids = []
        for operation in STANDARD_OPERATIONS:
            resolver_id = operation.resolver_id(type_name)
            resolver = Resource(
                "AWS::AppSync::Resolver",
                {
                    "ApiId": intrinsics.api_id(),
                    "DataSourceName": intrinsics.get_att(data_source_id, "Name"),
                    "TypeName": operation.parent_type,
                    "FieldName": operation.field_name(type_name),
                    "RequestMappingTemplate": _request_template(operation, type_name),
                    "ResponseMappingTemplate": list_response() if operation.name == "List" else FORWARD_RESULT,
                },
            )
            self.ctx.set_resource(resolver_id, resolver, type_name)

            generator = _hoisted_generator(operation)
            if generator is not None:
                self.ctx.hoisted.register(resolver_id, generator)
            resolver_ids.append(resolver_id)

        self.ctx.log.debug("Generated model resources", type_name=type_name, resolvers=resolver_ids)
        return resolver_ids

    def finalize(self) -> None:
        """Prepend every still-pending hoisted content to its resolver."""
        for resolver_id in self.ctx.hoisted.begin_finalize():
            resolver = self.ctx.get_resource(resolver_id)
            if resolver is None:
                raise InternalInvariantError(
                    f"Hoisted content is registered for {resolver_id}, which no longer exists.",
                    {"resourceId": resolver_id},
                )
            content = self.ctx.hoisted.materialize(resolver_id)
            if content:
                resolver.properties["RequestMappingTemplate"] = "\n".join(
                    [content, resolver.properties["RequestMappingTemplate"]]
                )
