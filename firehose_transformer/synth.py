"""
CDK synthesis of a transform result.

Each partition becomes a NestedStack under one root Stack (the root
partition's resources go straight into the root Stack). Every resource is a
CfnResource keeping its logical ID. Intrinsics are turned into CDK tokens, so
references between partitions are wired up by CDK as nested stack
parameters and outputs.
"""

from typing import Any, Dict, List

from aws_cdk import CfnCondition, CfnParameter, CfnResource, Fn, NestedStack, Stack, Token
from constructs import Construct

from . import intrinsics
from .graph import Resource, TransformContext
from .helpers import NO_ENV


def _references(value: Any) -> List[str]:
    """Logical IDs referenced through Ref or Fn::GetAtt anywhere in ``value``."""
    found: List[str] = []
    if isinstance(value, list):
        for item in value:
            found.extend(_references(item))
    elif isinstance(value, dict):
        if set(value) == {"Ref"}:
            found.append(value["Ref"])
        elif set(value) == {"Fn::GetAtt"}:
            found.append(value["Fn::GetAtt"][0])
        else:
            for item in value.values():
                found.extend(_references(item))
    return found


def creation_order(ctx: TransformContext) -> List[str]:
    """Logical IDs ordered so every resource comes after the ones it references."""
    pending: Dict[str, List[str]] = {}
    for logical_id, resource in ctx.graph.items():
        edges = _references(resource.properties) + resource.depends_on
        pending[logical_id] = [dep for dep in edges if dep in ctx.graph and dep != logical_id]

    ordered: List[str] = []
    placed = set()
    while pending:
        ready = [lid for lid, deps in pending.items() if all(dep in placed for dep in deps)]
        if not ready:
            raise ValueError(f"Circular references between resources: {sorted(pending)}")
        for logical_id in ready:
            ordered.append(logical_id)
            placed.add(logical_id)
            del pending[logical_id]
    return ordered


class TransformStack(Stack):
    """
    Root stack holding the API and one nested stack per partition.

    Example:
        app = App()
        TransformStack(app, "TodoApi", ctx=GraphQLTransform(config).transform(schema_sdl))
        app.synth()
    """

    def __init__(self, scope: Construct, construct_id: str, *, ctx: TransformContext, **kwargs: Any) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.ctx = ctx
        self.env_parameter = CfnParameter(self, intrinsics.ENV_PARAMETER, type="String", default=ctx.config.env_name or NO_ENV)
        self.partition_stacks: Dict[str, Stack] = {ctx.config.root_stack: self}
        self._env_parameters: Dict[str, CfnParameter] = {ctx.config.root_stack: self.env_parameter}
        self._add_condition(self, self.env_parameter)

        self.resources: Dict[str, CfnResource] = {}
        for logical_id in creation_order(ctx):
            self._add_resource(logical_id, ctx.graph.get(logical_id))

    def _add_condition(self, stack: Stack, env_parameter: CfnParameter) -> None:
        CfnCondition(
            stack,
            intrinsics.HAS_ENVIRONMENT_PARAMETER,
            expression=Fn.condition_not(Fn.condition_equals(env_parameter.value_as_string, NO_ENV)),
        )

    def stack_for(self, partition: str) -> Stack:
        """The stack for ``partition``, creating its nested stack on first use."""
        stack = self.partition_stacks.get(partition)
        if stack is None:
            stack = NestedStack(
                self,
                partition,
                parameters={intrinsics.ENV_PARAMETER: self.env_parameter.value_as_string},
            )
            env_parameter = CfnParameter(stack, intrinsics.ENV_PARAMETER, type="String", default=NO_ENV)
            self._add_condition(stack, env_parameter)
            self.partition_stacks[partition] = stack
            self._env_parameters[partition] = env_parameter
        return stack

    def _add_resource(self, logical_id: str, resource: Resource) -> None:
        partition = self.ctx.partitions.partition_of(logical_id)
        stack = self.stack_for(partition)
        cfn = CfnResource(
            stack,
            logical_id,
            type=resource.type,
            properties=self._tokens(resource.properties, partition),
        )
        cfn.override_logical_id(logical_id)
        for dependency in resource.depends_on:
            cfn.add_dependency(self.resources[dependency])
        self.resources[logical_id] = cfn

    def _tokens(self, value: Any, partition: str) -> Any:
        """Replace intrinsic dicts in ``value`` with CDK tokens."""
        if isinstance(value, list):
            return [self._tokens(item, partition) for item in value]
        if not isinstance(value, dict):
            return value

        if len(value) == 1:
            (key, args), = value.items()
            if key == "Ref":
                return self._ref(args, partition)
            if key == "Fn::GetAtt":
                logical_id, attribute = args
                return self.resources[logical_id].get_att(attribute)
            if key == "Fn::If":
                condition, when_true, when_false = args
                return Fn.condition_if(
                    condition,
                    self._tokens(when_true, partition),
                    self._tokens(when_false, partition),
                )
            if key == "Fn::Sub":
                template, variables = args
                return Fn.sub(
                    template,
                    {name: Token.as_string(self._tokens(item, partition)) for name, item in variables.items()},
                )
            if key == "Fn::Join":
                delimiter, values = args
                return Fn.join(delimiter, [Token.as_string(self._tokens(item, partition)) for item in values])

        return {key: self._tokens(item, partition) for key, item in value.items()}

    def _ref(self, name: str, partition: str) -> Any:
        if name == intrinsics.ENV_PARAMETER:
            return self._env_parameters[partition].value_as_string
        if name in self.resources:
            return self.resources[name].ref
        return Fn.ref(name)
