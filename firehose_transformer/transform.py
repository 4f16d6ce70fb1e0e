"""
Transform driver.

Runs one schema through the phases in a fixed order:

1. parse and validate the SDL (directive placement and argument types)
2. validate every @firehose usage, before anything is added to the graph
3. model generator: API, then per-type resources and single-stage resolvers
4. @firehose rewrite, one annotated type at a time in declaration order
5. model generator finalize (hoisted content for resolvers still present)

Step 4 must complete before step 5 begins; the hoisted content registry
rejects early pulls once finalize has started.
"""

from typing import List, Optional, Tuple

from graphql import DocumentNode, GraphQLError, ObjectTypeDefinitionNode, concat_ast, parse
from graphql.validation.validate import validate_sdl

from .directive import (
    FIREHOSE_DIRECTIVE,
    FIREHOSE_DIRECTIVE_SDL,
    MODEL_DIRECTIVE,
    get_directive,
    validate_firehose_directive,
)
from .graph import TransformContext
from .helpers import TransformConfig
from .model import ModelResourceGenerator
from .reference import FunctionReference
from .rewriter import ResolverPipelineRewriter
from .utils.errors import SchemaValidationError

MODEL_DIRECTIVE_SDL = "directive @model on OBJECT"

HOST_DIRECTIVES_SDL = "\n".join([MODEL_DIRECTIVE_SDL, FIREHOSE_DIRECTIVE_SDL])


def parse_schema(schema_sdl: str) -> DocumentNode:
    """
    Parse ``schema_sdl`` and validate it against the known directive definitions.

    Raises:
        SchemaValidationError: The SDL does not parse or fails validation
    """
    try:
        document = parse(schema_sdl)
    except GraphQLError as e:
        raise SchemaValidationError(e.message) from e

    errors = validate_sdl(concat_ast([parse(HOST_DIRECTIVES_SDL), document]))
    if errors:
        raise SchemaValidationError(errors[0].message, {"errors": [error.message for error in errors]})
    return document


def object_type_definitions(document: DocumentNode) -> List[ObjectTypeDefinitionNode]:
    return [definition for definition in document.definitions if isinstance(definition, ObjectTypeDefinitionNode)]


class GraphQLTransform:
    """
    Runs the @model and @firehose transforms over a schema.

    Example:
        ctx = GraphQLTransform(TransformConfig.from_env()).transform(schema_sdl)
        artifact = ctx.artifact()
    """

    def __init__(self, config: Optional[TransformConfig] = None):
        self.config = config or TransformConfig()

    def transform(self, schema_sdl: str) -> TransformContext:
        document = parse_schema(schema_sdl)
        definitions = object_type_definitions(document)

        annotated: List[Tuple[ObjectTypeDefinitionNode, FunctionReference]] = []
        for definition in definitions:
            directive = get_directive(definition, FIREHOSE_DIRECTIVE)
            if directive is not None:
                annotated.append((definition, validate_firehose_directive(definition, directive)))

        ctx = TransformContext(config=self.config)
        ctx.log.info("Starting transform", types=len(definitions), intercepted=len(annotated))

        model = ModelResourceGenerator(ctx)
        model.before()
        for definition in definitions:
            if get_directive(definition, MODEL_DIRECTIVE) is not None:
                model.generate(definition)

        rewriter = ResolverPipelineRewriter(ctx)
        for definition, ref in annotated:
            rewriter.rewrite_type(definition.name.value, ref)

        model.finalize()

        ctx.log.info("Finished transform", resources=len(ctx.graph))
        return ctx
