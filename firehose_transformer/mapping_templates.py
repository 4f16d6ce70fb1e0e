"""VTL mapping templates for the interceptor pipeline."""

from typing import List

FUNCTION_VERSION = "2018-05-29"

# Invocation payload, in the order Lambda functions written against it expect.
PAYLOAD_FIELDS: List[tuple[str, str]] = [
    ("typeName", '$ctx.stash.get("typeName")'),
    ("fieldName", '$ctx.stash.get("fieldName")'),
    ("arguments", "$ctx.arguments"),
    ("identity", "$ctx.identity"),
    ("source", "$ctx.source"),
    ("request", "$ctx.request"),
    ("prev", "$ctx.prev"),
]

FORWARD_RESULT = "$util.toJson($ctx.result)"


def print_block(name: str, body: str) -> str:
    """Wrap ``body`` in the start/end comment markers AppSync templates use."""
    return f"## [Start] {name}. **\n{body}\n## [End] {name}. **"


def invoke_request(data_source_name: str) -> str:
    """Request template invoking the Lambda behind ``data_source_name``."""
    payload = ",\n".join(f'      "{key}": $util.toJson({expr})' for key, expr in PAYLOAD_FIELDS)
    body = (
        "{\n"
        f'  "version": "{FUNCTION_VERSION}",\n'
        '  "operation": "Invoke",\n'
        '  "payload": {\n'
        f"{payload}\n"
        "  }\n"
        "}"
    )
    return print_block(f"Invoke AWS Lambda data source: {data_source_name}", body)


def invoke_response() -> str:
    """Response template surfacing the Lambda error, otherwise forwarding its result."""
    body = "#if( $ctx.error )\n  $util.error($ctx.error.message, $ctx.error.type)\n#end\n" + FORWARD_RESULT
    return print_block("Handle error or return result", body)


def stash_request(type_name: str, field_name: str) -> str:
    """Pipeline resolver request template stashing the resolved field's coordinates."""
    body = (
        f'$util.qr($ctx.stash.put("typeName", "{type_name}"))\n'
        f'$util.qr($ctx.stash.put("fieldName", "{field_name}"))\n'
        "{}"
    )
    return print_block("Stash resolver specific context", body)
