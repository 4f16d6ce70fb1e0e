"""
Test data for transform tests.

Schemas used across the suite and a helper to pull object type definitions
out of SDL.
"""

from graphql import ObjectTypeDefinitionNode, parse

TODO_SCHEMA = """
type Todo @model @firehose(name: "auditlog") {
    id: ID!
    title: String!
    description: String
}
"""

TODO_ENV_SCHEMA = """
type Todo @model @firehose(name: "auditlog-${env}") {
    id: ID!
    title: String!
    description: String
}
"""

SHARED_TARGET_SCHEMA = """
type Todo @model @firehose(name: "auditlog", region: "eu-west-1") {
    id: ID!
    title: String!
}

type Note @model @firehose(name: "auditlog", region: "eu-west-1") {
    id: ID!
    content: String!
}

type Tag @model {
    id: ID!
    label: String!
}
"""

FIELD_DIRECTIVE_SCHEMA = """
type ExpiringChatMessage @model {
    id: ID!
    title: String!
    description: String @firehose(name: "auditlog")
}
"""

MISSING_MODEL_SCHEMA = """
type Todo @firehose(name: "auditlog") {
    id: ID!
    title: String!
    description: String
}
"""

MISSING_NAME_SCHEMA = """
type Todo @firehose {
    id: ID!
    title: String!
    description: String
}
"""


def object_type(sdl: str) -> ObjectTypeDefinitionNode:
    """Parse ``sdl`` and return its first object type definition."""
    document = parse(sdl)
    return next(d for d in document.definitions if isinstance(d, ObjectTypeDefinitionNode))
