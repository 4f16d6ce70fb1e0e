"""
@firehose transform for AppSync model APIs.

Inserts a Lambda invocation ahead of every standard resolver of a @model type
annotated with @firehose, without changing what the resolver returns:

- reference.py: conditional Lambda ARN for a (name, region) pair
- infrastructure.py: role, data source and invoke function, once per function
- rewriter.py: single-stage resolvers to two-stage pipeline resolvers
- transform.py: schema parsing, validation and phase ordering
- synth.py: CDK stacks for the produced resource graph
"""

from .graph import TransformContext
from .helpers import TransformConfig
from .reference import FunctionReference
from .transform import GraphQLTransform

__all__ = ["GraphQLTransform", "TransformConfig", "TransformContext", "FunctionReference"]
