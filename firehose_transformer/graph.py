"""
Resource graph, partition registry and hoisted content registry.

These three are the only mutable state of a transform run. They live on a
TransformContext that is created fresh for every run and passed explicitly
to every phase.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from .helpers import TransformConfig
from .utils.errors import InternalInvariantError
from .utils.logging import StructuredLogger, new_run_id

# Produces request mapping template content that the model generator would
# otherwise prepend during its finalize phase.
HoistedContentGenerator = Callable[[], Optional[str]]

logger = StructuredLogger(__name__)


@dataclass
class Resource:
    """A CloudFormation-shaped resource node. Edges are logical IDs."""

    type: str
    properties: Dict[str, Any] = field(default_factory=dict)
    depends_on: List[str] = field(default_factory=list)

    def depends(self, *logical_ids: str) -> "Resource":
        """Add DependsOn edges, keeping order and skipping duplicates."""
        for logical_id in logical_ids:
            if logical_id not in self.depends_on:
                self.depends_on.append(logical_id)
        return self

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"Type": self.type, "Properties": self.properties}
        if self.depends_on:
            out["DependsOn"] = list(self.depends_on)
        return out


class ResourceGraph:
    """Resources keyed by logical ID."""

    def __init__(self) -> None:
        self._resources: Dict[str, Resource] = {}

    def get(self, logical_id: str) -> Optional[Resource]:
        return self._resources.get(logical_id)

    def set(self, logical_id: str, resource: Resource) -> Resource:
        self._resources[logical_id] = resource
        return resource

    def delete(self, logical_id: str) -> None:
        del self._resources[logical_id]

    def __contains__(self, logical_id: object) -> bool:
        return logical_id in self._resources

    def __iter__(self) -> Iterator[str]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def items(self) -> Iterator[Tuple[str, Resource]]:
        return iter(self._resources.items())

    def of_type(self, resource_type: str) -> Dict[str, Resource]:
        return {lid: r for lid, r in self._resources.items() if r.type == resource_type}

    def to_dict(self) -> Dict[str, Any]:
        return {lid: r.to_dict() for lid, r in self._resources.items()}


class PartitionRegistry:
    """Maps each logical ID to the deployment partition (stack) it belongs to."""

    def __init__(self, default: str) -> None:
        self.default = default
        self._assignments: Dict[str, str] = {}

    def assign(self, partition: str, logical_id: str) -> None:
        self._assignments[logical_id] = partition

    def remove(self, logical_id: str) -> None:
        self._assignments.pop(logical_id, None)

    def partition_of(self, logical_id: str) -> str:
        return self._assignments.get(logical_id, self.default)

    def __contains__(self, logical_id: object) -> bool:
        return logical_id in self._assignments

    def members(self, partition: str) -> List[str]:
        return [lid for lid, p in self._assignments.items() if p == partition]

    def to_dict(self) -> Dict[str, str]:
        return dict(self._assignments)


@dataclass
class Pending:
    generator: HoistedContentGenerator


class Consumed:
    """Marker for an entry whose content has already been materialized."""

    def __repr__(self) -> str:
        return "Consumed()"


CONSUMED = Consumed()

HoistedState = Union[Pending, Consumed]


class HoistedContentRegistry:
    """
    Deferred request template content, keyed by resolver logical ID.

    The model generator registers content here and materializes whatever is
    still pending in its finalize phase. Other phases may pull content for a
    resolver earlier through ``materialize``, but only until finalize starts.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, HoistedState] = {}
        self._finalizing = False

    def register(self, logical_id: str, generator: HoistedContentGenerator) -> None:
        if self._finalizing:
            raise InternalInvariantError(
                f"Cannot register hoisted content for {logical_id} after finalize has started.",
                {"resourceId": logical_id},
            )
        self._entries[logical_id] = Pending(generator)

    def has_pending(self, logical_id: str) -> bool:
        return isinstance(self._entries.get(logical_id), Pending)

    def state(self, logical_id: str) -> Optional[HoistedState]:
        return self._entries.get(logical_id)

    def materialize(self, logical_id: str) -> Optional[str]:
        """Run the pending generator for ``logical_id`` and mark it consumed.

        Returns None when nothing was registered. Materializing an entry a
        second time is an error.
        """
        entry = self._entries.get(logical_id)
        if entry is None:
            return None
        if not isinstance(entry, Pending):
            raise InternalInvariantError(
                f"Hoisted content for {logical_id} was already consumed.",
                {"resourceId": logical_id},
            )
        self._entries[logical_id] = CONSUMED
        return entry.generator()

    def pull(self, logical_id: str) -> Optional[str]:
        """Materialize content ahead of finalize. Only allowed before finalize starts."""
        if self._finalizing:
            raise InternalInvariantError(
                f"Hoisted content for {logical_id} was pulled after finalize had started.",
                {"resourceId": logical_id},
            )
        return self.materialize(logical_id)

    def discard(self, logical_id: str) -> None:
        self._entries.pop(logical_id, None)

    def begin_finalize(self) -> List[str]:
        """Close the registry to early pulls and return the IDs still pending."""
        self._finalizing = True
        return [lid for lid, entry in self._entries.items() if isinstance(entry, Pending)]

    @property
    def finalizing(self) -> bool:
        return self._finalizing

    def __contains__(self, logical_id: object) -> bool:
        return logical_id in self._entries


@dataclass
class FunctionInfrastructure:
    """Logical IDs of the resources shared by every type one function intercepts."""

    role_id: str
    data_source_id: str
    function_id: str


@dataclass
class TransformContext:
    """All state for a single transform run."""

    config: TransformConfig = field(default_factory=TransformConfig)
    graph: ResourceGraph = field(default_factory=ResourceGraph)
    partitions: Optional[PartitionRegistry] = None
    hoisted: HoistedContentRegistry = field(default_factory=HoistedContentRegistry)
    infrastructure: Dict[Tuple[str, Optional[str]], FunctionInfrastructure] = field(default_factory=dict)
    run_id: str = field(default_factory=new_run_id)

    def __post_init__(self) -> None:
        if self.partitions is None:
            self.partitions = PartitionRegistry(self.config.root_stack)
        self.log = logger.bind(self.run_id)

    def get_resource(self, logical_id: str) -> Optional[Resource]:
        return self.graph.get(logical_id)

    def set_resource(self, logical_id: str, resource: Resource, partition: Optional[str] = None) -> Resource:
        self.graph.set(logical_id, resource)
        if partition is not None:
            self.partitions.assign(partition, logical_id)
        return resource

    def remove_resource(self, logical_id: str) -> None:
        """Remove a resource along with its partition membership and hoisted content."""
        self.graph.delete(logical_id)
        self.partitions.remove(logical_id)
        self.hoisted.discard(logical_id)

    def artifact(self) -> Dict[str, Any]:
        """The produced resource graph plus partition assignments."""
        return {"resources": self.graph.to_dict(), "partitions": self.partitions.to_dict()}
