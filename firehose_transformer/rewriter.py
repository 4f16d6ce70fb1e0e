"""
Resolver pipeline rewriting.

Turns each single-stage resolver the model generator produced for an
annotated type into a two-stage pipeline resolver: the interceptor's invoke
function runs first, a pipeline function carrying the original data source
and templates runs second. The original resolver is removed entirely.

All new resources go into the firehose partition. The model partitions never
reference them, which keeps the stacks free of circular dependencies.
"""

from dataclasses import dataclass
from typing import List

from . import intrinsics
from .graph import FunctionInfrastructure, Resource, TransformContext
from .infrastructure import InterceptorInfrastructure
from .mapping_templates import FORWARD_RESULT, FUNCTION_VERSION, stash_request
from .reference import FunctionReference
from .resource_ids import STANDARD_OPERATIONS, ModelOperation, PipelineResourceIDs
from .utils.errors import InternalInvariantError

# Properties the wrapper function copies from the single-stage resolver.
CLONED_PROPERTIES = ("DataSourceName", "RequestMappingTemplate", "ResponseMappingTemplate")


@dataclass
class RewrittenOperation:
    """IDs involved in rewriting one operation field."""

    original_resolver_id: str
    wrapper_function_id: str
    pipeline_resolver_id: str
    type_name: str
    field_name: str
    hoisted: bool = False


class ResolverPipelineRewriter:
    """
    Rewrites the standard resolvers of annotated model types into pipelines.

    Example:
        rewriter = ResolverPipelineRewriter(ctx)
        rewriter.rewrite_type("Todo", FunctionReference("auditlog"))
    """

    def __init__(self, ctx: TransformContext):
        self.ctx = ctx
        self.infrastructure = InterceptorInfrastructure(ctx)

    @property
    def partition(self) -> str:
        return self.ctx.config.firehose_stack

    def rewrite_type(self, type_name: str, ref: FunctionReference) -> List[RewrittenOperation]:
        """Rewrite every standard operation of ``type_name`` before returning."""
        infra = self.infrastructure.ensure(ref)
        rewritten = [self.rewrite_operation(type_name, operation, infra) for operation in STANDARD_OPERATIONS]
        self.ctx.log.info(
            "Intercepted model type",
            type_name=type_name,
            function=ref.name,
            region=ref.region,
            operations=[op.field_name for op in rewritten],
        )
        return rewritten

    def rewrite_operation(
        self,
        type_name: str,
        operation: ModelOperation,
        infra: FunctionInfrastructure,
    ) -> RewrittenOperation:
        original_id = operation.resolver_id(type_name)
        original = self.ctx.get_resource(original_id)
        if original is None or not original.properties:
            raise InternalInvariantError(
                f"Could not find any properties in the generated resource {original_id}.",
                {"resourceId": original_id, "typeName": type_name},
            )
        missing = [key for key in CLONED_PROPERTIES if key not in original.properties]
        if missing:
            raise InternalInvariantError(
                f"Generated resource {original_id} is missing {', '.join(missing)}.",
                {"resourceId": original_id, "typeName": type_name, "missing": missing},
            )

        # Wrapper carrying the original logic unchanged
        wrapper_id = PipelineResourceIDs.wrapper_function_id(operation.parent_type, operation.name, type_name)
        request_template = original.properties["RequestMappingTemplate"]

        # The model generator only prepends hoisted content in its finalize
        # phase, which runs after this one and no longer finds the resolver.
        hoisted_content = self.ctx.hoisted.pull(original_id)
        if hoisted_content:
            request_template = "\n".join([hoisted_content, request_template])

        wrapper = Resource(
            "AWS::AppSync::FunctionConfiguration",
            {
                "ApiId": intrinsics.api_id(),
                "DataSourceName": original.properties["DataSourceName"],
                "FunctionVersion": FUNCTION_VERSION,
                "Name": wrapper_id,
                "RequestMappingTemplate": request_template,
                "ResponseMappingTemplate": original.properties["ResponseMappingTemplate"],
            },
        ).depends(infra.function_id)

        self.ctx.remove_resource(original_id)
        self.ctx.log.debug("Removed single-stage resolver", resource_id=original_id)

        self.ctx.set_resource(wrapper_id, wrapper, self.partition)

        field_name = operation.field_name(type_name)
        pipeline_id = PipelineResourceIDs.pipeline_resolver_id(operation.parent_type, operation.name, type_name)
        pipeline = Resource(
            "AWS::AppSync::Resolver",
            {
                "ApiId": intrinsics.api_id(),
                "TypeName": operation.parent_type,
                "FieldName": field_name,
                "Kind": "PIPELINE",
                "PipelineConfig": {
                    "Functions": [
                        intrinsics.get_att(infra.function_id, "FunctionId"),
                        intrinsics.get_att(wrapper_id, "FunctionId"),
                    ]
                },
                "RequestMappingTemplate": stash_request(operation.parent_type, field_name),
                "ResponseMappingTemplate": FORWARD_RESULT,
            },
        ).depends(infra.function_id, wrapper_id)
        self.ctx.set_resource(pipeline_id, pipeline, self.partition)
        self.ctx.log.debug("Created pipeline resolver", resource_id=pipeline_id, field_name=field_name)

        return RewrittenOperation(
            original_resolver_id=original_id,
            wrapper_function_id=wrapper_id,
            pipeline_resolver_id=pipeline_id,
            type_name=operation.parent_type,
            field_name=field_name,
            hoisted=bool(hoisted_content),
        )
