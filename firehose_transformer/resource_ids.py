"""
Deterministic logical IDs.

The model generator and the @firehose transform agree on resource IDs only
through the functions in this module, so both sides must use them.
"""

import hashlib
import re
from dataclasses import dataclass
from typing import Callable, Optional

import inflection

_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]+")

# Longest role name prefix that still fits the 64 character IAM limit once the
# API ID (26) and, when bound, the env name (10) are joined on.
_ROLE_NAME_PREFIX_WITH_ENV = 22
_ROLE_NAME_PREFIX_WITHOUT_ENV = 32


def simplify_name(name: str) -> str:
    """PascalCase ``name`` with every non-alphanumeric character removed.

    ``auditlog-${env}`` becomes ``AuditlogEnv`` and ``eu-west-1`` becomes
    ``EuWest1``.
    """
    return "".join(part[:1].upper() + part[1:] for part in _NON_ALPHANUMERIC.split(name) if part)


def _function_key(name: str, region: Optional[str]) -> str:
    return f"{simplify_name(name)}{simplify_name(region or '')}"


class FunctionResourceIDs:
    """IDs of the resources shared by every type intercepted by one function."""

    @staticmethod
    def iam_role_id(name: str, region: Optional[str] = None) -> str:
        return f"{_function_key(name, region)}LambdaDataSourceRole"

    @staticmethod
    def data_source_id(name: str, region: Optional[str] = None) -> str:
        return f"{_function_key(name, region)}LambdaDataSource"

    @staticmethod
    def function_configuration_id(name: str, region: Optional[str] = None) -> str:
        return f"Invoke{_function_key(name, region)}LambdaDataSource"

    @staticmethod
    def iam_role_name(name: str, with_env: bool = False) -> str:
        """Role name prefix, truncated and suffixed with a short hash of ``name``.

        The hash keeps truncated prefixes of different functions apart.
        """
        limit = _ROLE_NAME_PREFIX_WITH_ENV if with_env else _ROLE_NAME_PREFIX_WITHOUT_ENV
        digest = hashlib.md5(name.encode("utf-8")).hexdigest()[:4]
        return f"{simplify_name(name)[: limit - 4]}{digest}"


class ResolverResourceIDs:
    """IDs of the single-stage resolvers produced by the model generator."""

    @staticmethod
    def create_resolver_id(type_name: str) -> str:
        return f"Create{type_name}Resolver"

    @staticmethod
    def update_resolver_id(type_name: str) -> str:
        return f"Update{type_name}Resolver"

    @staticmethod
    def delete_resolver_id(type_name: str) -> str:
        return f"Delete{type_name}Resolver"

    @staticmethod
    def get_resolver_id(type_name: str) -> str:
        return f"Get{type_name}Resolver"

    @staticmethod
    def list_resolver_id(type_name: str) -> str:
        return f"List{type_name}Resolver"


class ModelResourceIDs:
    """IDs of the per-type resources produced by the model generator."""

    @staticmethod
    def table_id(type_name: str) -> str:
        return f"{type_name}Table"

    @staticmethod
    def data_source_id(type_name: str) -> str:
        return f"{type_name}DataSource"

    @staticmethod
    def iam_role_id(type_name: str) -> str:
        return f"{type_name}IAMRole"


class PipelineResourceIDs:
    """IDs of the resources the rewriter creates per operation."""

    @staticmethod
    def wrapper_function_id(parent_type: str, operation: str, type_name: str) -> str:
        return f"{parent_type}{operation}{type_name}Function"

    @staticmethod
    def pipeline_resolver_id(parent_type: str, operation: str, type_name: str) -> str:
        return f"{parent_type}{operation}{type_name}PipelineResolver"


def list_field_name(type_name: str) -> str:
    """Query field listing every item of a model type, e.g. ``listTodos``."""
    return f"list{inflection.pluralize(type_name)}"


@dataclass(frozen=True)
class ModelOperation:
    """One standard read/write field generated for every model type."""

    name: str
    parent_type: str
    resolver_id: Callable[[str], str]
    field_name: Callable[[str], str]


STANDARD_OPERATIONS: tuple[ModelOperation, ...] = (
    ModelOperation("Create", "Mutation", ResolverResourceIDs.create_resolver_id, lambda t: f"create{t}"),
    ModelOperation("Update", "Mutation", ResolverResourceIDs.update_resolver_id, lambda t: f"update{t}"),
    ModelOperation("Delete", "Mutation", ResolverResourceIDs.delete_resolver_id, lambda t: f"delete{t}"),
    ModelOperation("Get", "Query", ResolverResourceIDs.get_resolver_id, lambda t: f"get{t}"),
    ModelOperation("List", "Query", ResolverResourceIDs.list_resolver_id, list_field_name),
)
