#!/usr/bin/env python3
import os
from pathlib import Path

import aws_cdk as cdk

from firehose_transformer import GraphQLTransform, TransformConfig
from firehose_transformer.synth import TransformStack

app = cdk.App()

# Get environment from context or environment variable; unset means no env suffix
env_name = app.node.try_get_context("environment")

# Schema to transform, relative to this file unless absolute
schema_path = Path(app.node.try_get_context("schema") or os.getenv("SCHEMA_PATH", "schema.graphql"))
if not schema_path.is_absolute():
    schema_path = Path(__file__).parent / schema_path

config = TransformConfig.from_env(env_name=env_name)
ctx = GraphQLTransform(config).transform(schema_path.read_text())

stack_name = app.node.try_get_context("stack_name") or os.getenv("STACK_NAME", "FirehoseModelApi")

TransformStack(
    app,
    stack_name,
    ctx=ctx,
    env=cdk.Environment(account=config.account_id, region=config.region),
    description=f"AppSync model API with @firehose interceptors ({config.env_name or 'no env'})",
)

app.synth()
