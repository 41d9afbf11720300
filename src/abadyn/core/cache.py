import dataclasses
from typing import Any, Dict, Iterable, Optional, Tuple

STATE_SOURCES = ("q", "v", "parameters")


@dataclasses.dataclass
class VersionedBuffer:
    """A buffer containing a cached value and the versions of the state it was computed from.

    The versions are a snapshot of the counters of the state sources the entry depends on.
    ``None`` means that the buffer has never been filled.
    """

    data: Any = None
    versions: Optional[Tuple[int, ...]] = None


class DependencyGraph:
    """Declares the cache entries and the state sources each of them depends on.

    An entry can depend on state sources (``q``, ``v``, ``parameters``) or on other
    entries; dependencies on entries are resolved to their sources, so an entry is
    stale as soon as any of the state it transitively reads has changed.
    """

    def __init__(self) -> None:
        self._sources: Dict[str, Tuple[str, ...]] = {}

    def declare(self, name: str, depends_on: Iterable[str]) -> None:
        if name in STATE_SOURCES or name in self._sources:
            raise ValueError(f"Cache entry {name} is already declared")
        resolved = []
        for dependency in depends_on:
            if dependency in STATE_SOURCES:
                upstream = (dependency,)
            elif dependency in self._sources:
                upstream = self._sources[dependency]
            else:
                raise ValueError(f"Unknown dependency {dependency} of cache entry {name}")
            resolved.extend(s for s in upstream if s not in resolved)
        # keep a canonical order so that snapshots can be compared
        self._sources[name] = tuple(s for s in STATE_SOURCES if s in resolved)

    def sources(self, name: str) -> Tuple[str, ...]:
        try:
            return self._sources[name]
        except KeyError:
            raise ValueError(f"Unknown cache entry {name}") from None

    @property
    def entries(self) -> Tuple[str, ...]:
        return tuple(self._sources)

    def depends_on(self, name: str, source: str) -> bool:
        return source in self.sources(name)


POSITION_KINEMATICS = "position_kinematics"
VELOCITY_KINEMATICS = "velocity_kinematics"
BODY_SPATIAL_INERTIA = "body_spatial_inertia"
ARTICULATED_BODY_INERTIA = "articulated_body_inertia"

KINEMATICS_GRAPH = DependencyGraph()
KINEMATICS_GRAPH.declare(POSITION_KINEMATICS, ["q"])
KINEMATICS_GRAPH.declare(VELOCITY_KINEMATICS, [POSITION_KINEMATICS, "v"])
KINEMATICS_GRAPH.declare(BODY_SPATIAL_INERTIA, ["parameters"])
KINEMATICS_GRAPH.declare(
    ARTICULATED_BODY_INERTIA, [POSITION_KINEMATICS, BODY_SPATIAL_INERTIA]
)
