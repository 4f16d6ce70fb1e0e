"""
@firehose directive definition and validation.

Placement and argument types are checked by graphql-core when the schema is
built; this module only checks what the SDL cannot express.
"""

from typing import Any, Dict, Optional

from graphql import DirectiveNode, ObjectTypeDefinitionNode, value_from_ast_untyped

from .reference import FunctionReference
from .utils.errors import InvalidDirectiveError, TransformerContractError

FIREHOSE_DIRECTIVE = "firehose"
MODEL_DIRECTIVE = "model"

FIREHOSE_DIRECTIVE_SDL = "directive @firehose(name: String!, region: String) on OBJECT"


def get_directive(definition: ObjectTypeDefinitionNode, name: str) -> Optional[DirectiveNode]:
    """Return the first directive called ``name`` on ``definition``, if any."""
    for directive in definition.directives or ():
        if directive.name.value == name:
            return directive
    return None


def get_directive_arguments(directive: DirectiveNode) -> Dict[str, Any]:
    return {argument.name.value: value_from_ast_untyped(argument.value) for argument in directive.arguments or ()}


def validate_firehose_directive(definition: ObjectTypeDefinitionNode, directive: DirectiveNode) -> FunctionReference:
    """
    Check a @firehose usage and return the function it points at.

    Args:
        definition: Object type carrying the directive
        directive: The @firehose directive node

    Returns:
        FunctionReference built from the directive arguments

    Raises:
        InvalidDirectiveError: The type is not also annotated with @model
        TransformerContractError: No ``name`` was supplied, or an argument is not a string
    """
    if get_directive(definition, MODEL_DIRECTIVE) is None:
        raise InvalidDirectiveError(
            "Types annotated with @firehose must also be annotated with @model.",
            {"typeName": definition.name.value},
        )

    type_name = definition.name.value
    arguments = get_directive_arguments(directive)
    name = arguments.get("name")
    if not name:
        raise TransformerContractError("Must supply a 'name' to @firehose.", {"typeName": type_name})
    if not isinstance(name, str):
        raise TransformerContractError(
            "The 'name' argument of @firehose must be a string.",
            {"typeName": type_name, "name": name},
        )

    region = arguments.get("region")
    if region is not None and not isinstance(region, str):
        raise TransformerContractError(
            "The 'region' argument of @firehose must be a string.",
            {"typeName": type_name, "region": region},
        )

    return FunctionReference(name=name, region=region or None)
