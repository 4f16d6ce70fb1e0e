"""
Command line entry point.

Runs the transform over a schema file and writes the resource graph and
partition assignments as JSON.

Usage:
    firehose-transform schema.graphql --env dev --output build/resources.json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from . import intrinsics
from .graph import TransformContext
from .helpers import TransformConfig
from .transform import GraphQLTransform
from .utils.errors import handle_error
from .utils.logging import StructuredLogger

logger = StructuredLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Insert @firehose Lambda interceptors into @model resolvers")
    parser.add_argument("schema", type=Path, help="Path to the GraphQL schema (SDL)")
    parser.add_argument("--env", default=None, help="Environment name bound at deploy time (default: $ENVIRONMENT)")
    parser.add_argument("--region", default=None, help="Deployment region (default: $AWS_REGION)")
    parser.add_argument("--account-id", default=None, help="Account ID used when previewing targets")
    parser.add_argument("--output", type=Path, default=Path("resources.json"), help="Where to write the JSON artifact")
    return parser.parse_args(argv)


def preview_targets(ctx: TransformContext) -> dict[str, str]:
    """Resolved Lambda ARN of every interceptor data source for the configured env."""
    parameters = ctx.config.parameters()
    targets = {}
    for logical_id, resource in ctx.graph.of_type("AWS::AppSync::DataSource").items():
        if resource.properties.get("Type") == "AWS_LAMBDA":
            arn = resource.properties["LambdaConfig"]["LambdaFunctionArn"]
            targets[logical_id] = intrinsics.evaluate(arn, parameters)
    return targets


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = TransformConfig.from_env(env_name=args.env, region=args.region, account_id=args.account_id)

    try:
        ctx = GraphQLTransform(config).transform(args.schema.read_text())
    except Exception as e:
        logger.error("Transform failed", error=handle_error(e))
        return 1

    for data_source_id, arn in preview_targets(ctx).items():
        ctx.log.info("Resolved interceptor target", data_source=data_source_id, env=config.env_name, target=arn)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(ctx.artifact(), indent=2) + "\n")
    ctx.log.info("Wrote artifact", path=str(args.output))
    return 0


if __name__ == "__main__":
    sys.exit(main())
