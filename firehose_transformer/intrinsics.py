"""
CloudFormation intrinsic function helpers.

Resources in the graph are plain CloudFormation-shaped dicts, so intrinsics
are built as plain dicts too. ``evaluate`` resolves an expression for a given
parameter binding, which is how targets are previewed for an environment
before anything is deployed.
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Optional

# Condition declared by every generated stack: true when an env is bound.
HAS_ENVIRONMENT_PARAMETER = "HasEnvironmentParameter"

# Deployment parameter carrying the environment name.
ENV_PARAMETER = "env"

# Logical ID of the GraphQL API every AppSync resource attaches to.
GRAPHQL_API_ID = "GraphQLAPI"

_SUB_VARIABLE = re.compile(r"\$\{(!?)([^}]+)\}")


def ref(name: str) -> Dict[str, Any]:
    return {"Ref": name}


def get_att(logical_id: str, attribute: str) -> Dict[str, Any]:
    return {"Fn::GetAtt": [logical_id, attribute]}


def sub(template: str, variables: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return {"Fn::Sub": [template, dict(variables or {})]}


def join(delimiter: str, values: List[Any]) -> Dict[str, Any]:
    return {"Fn::Join": [delimiter, list(values)]}


def if_(condition: str, when_true: Any, when_false: Any) -> Dict[str, Any]:
    return {"Fn::If": [condition, when_true, when_false]}


def api_id() -> Dict[str, Any]:
    """ApiId attribute of the GraphQL API."""
    return get_att(GRAPHQL_API_ID, "ApiId")


def env_ref() -> Dict[str, Any]:
    return ref(ENV_PARAMETER)


def conditions_for(parameters: Mapping[str, str]) -> Dict[str, bool]:
    """Evaluate the conditions generated stacks declare for a parameter binding."""
    return {HAS_ENVIRONMENT_PARAMETER: parameters.get(ENV_PARAMETER, "NONE") != "NONE"}


def evaluate(
    value: Any,
    parameters: Mapping[str, str],
    conditions: Optional[Mapping[str, bool]] = None,
) -> Any:
    """
    Resolve intrinsic functions in ``value`` for a parameter binding.

    Ref and Sub variables not bound in ``parameters`` are left as ``${Name}``
    placeholders, and GetAtt becomes ``${LogicalId.Attribute}``, so the result
    is always printable even when it can only be fully known at deploy time.

    Args:
        value: Expression to resolve (any JSON-like value)
        parameters: Parameter and pseudo-parameter values, e.g. {"env": "dev"}
        conditions: Condition values; derived from parameters when omitted

    Returns:
        The resolved value
    """
    if conditions is None:
        conditions = conditions_for(parameters)

    def resolve(node: Any) -> Any:
        return evaluate(node, parameters, conditions)

    if isinstance(value, list):
        return [resolve(item) for item in value]
    if not isinstance(value, dict):
        return value

    if len(value) == 1:
        (key, args), = value.items()
        handler = _HANDLERS.get(key)
        if handler is not None:
            return handler(args, parameters, conditions, resolve)

    return {key: resolve(item) for key, item in value.items()}


def _eval_ref(args, parameters, conditions, resolve):
    return parameters.get(args, "${%s}" % args)


def _eval_get_att(args, parameters, conditions, resolve):
    logical_id, attribute = args
    return "${%s.%s}" % (logical_id, attribute)


def _eval_if(args, parameters, conditions, resolve):
    condition, when_true, when_false = args
    if condition not in conditions:
        raise KeyError(f"Unknown condition: {condition}")
    return resolve(when_true if conditions[condition] else when_false)


def _eval_join(args, parameters, conditions, resolve):
    delimiter, values = args
    return delimiter.join(str(resolve(item)) for item in values)


def _eval_sub(args, parameters, conditions, resolve):
    if isinstance(args, str):
        template, variables = args, {}
    else:
        template, variables = args
    bound = {name: resolve(item) for name, item in variables.items()}

    def replace(match: "re.Match[str]") -> str:
        escape, name = match.groups()
        if escape:
            return "${%s}" % name
        if name in bound:
            return str(bound[name])
        return str(parameters.get(name, match.group(0)))

    return _SUB_VARIABLE.sub(replace, template)


_HANDLERS: Dict[str, Callable[..., Any]] = {
    "Ref": _eval_ref,
    "Fn::GetAtt": _eval_get_att,
    "Fn::If": _eval_if,
    "Fn::Join": _eval_join,
    "Fn::Sub": _eval_sub,
}
