from typing import Dict, FrozenSet, List, Optional, Set
import math
import uuid
from logging import getLogger

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


class _WireModel(BaseModel):
    # Python attributes are snake_case; the stored blob and the wire use the
    # camelCase / reserved-word aliases.
    model_config = ConfigDict(populate_by_name=True)


class Position(_WireModel):
    # Non-finite coordinates would serialize as null and poison the stored blob.
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    x: float
    y: float

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


class Person(_WireModel):
    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1)
    is_user: bool = Field(False, alias="isUser")
    position: Optional[Position] = None

    def __repr__(self):
        return f"Person({self.name!r}, {self.id})"


class Connection(_WireModel):
    id: str = Field(default_factory=new_id, min_length=1)
    from_id: str = Field(..., alias="from")
    to_id: str = Field(..., alias="to")

    @property
    def pair(self) -> FrozenSet[str]:
        """Unordered endpoint pair; connections are undirected."""
        return frozenset((self.from_id, self.to_id))

    def touches(self, person_id: str) -> bool:
        return self.from_id == person_id or self.to_id == person_id

    def __repr__(self):
        return f"Connection({self.from_id} <-> {self.to_id})"


class Graph(_WireModel):
    """Aggregate root: the unit of persistence and of reset."""
    people: List[Person] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "Graph":
        return cls()

    # ── Lookups ─────────────────────────────────────────────────────────────

    def find_person(self, person_id: str) -> Optional[Person]:
        for person in self.people:
            if person.id == person_id:
                return person
        return None

    def find_user(self) -> Optional[Person]:
        for person in self.people:
            if person.is_user:
                return person
        return None

    def has_connection_between(self, a: str, b: str) -> bool:
        pair = frozenset((a, b))
        return any(c.pair == pair for c in self.connections)

    def person_ids(self) -> Set[str]:
        return {p.id for p in self.people}

    # ── Codec ───────────────────────────────────────────────────────────────

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def to_dict(self) -> Dict:
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, blob: Optional[str]) -> "Graph":
        """
        Rehydrate a graph from its stored blob. Missing or unparseable content
        yields the empty graph; parseable content breaking graph invariants is
        repaired by sanitized().
        """
        if not blob:
            return cls.empty()
        try:
            graph = cls.model_validate_json(blob)
        except ValidationError as exc:
            logger.warning(f"Stored graph could not be parsed, starting empty: {exc.error_count()} error(s)")
            return cls.empty()
        return graph.sanitized()

    # ── Invariant repair ────────────────────────────────────────────────────

    def sanitized(self) -> "Graph":
        people: List[Person] = []
        seen_ids: Set[str] = set()
        user_seen = False
        for person in self.people:
            if person.id in seen_ids:
                logger.warning(f"Dropping duplicate person id '{person.id}'")
                continue
            seen_ids.add(person.id)
            if person.is_user:
                if user_seen:
                    logger.warning(f"Clearing extra user flag on '{person.id}'")
                    person = person.model_copy(update={"is_user": False})
                user_seen = True
            people.append(person)

        connections: List[Connection] = []
        seen_pairs: Set[FrozenSet[str]] = set()
        for conn in self.connections:
            if conn.from_id == conn.to_id:
                logger.warning(f"Dropping self-connection '{conn.id}'")
                continue
            if conn.from_id not in seen_ids or conn.to_id not in seen_ids:
                logger.warning(f"Dropping dangling connection '{conn.id}'")
                continue
            if conn.pair in seen_pairs:
                logger.warning(f"Dropping duplicate connection '{conn.id}'")
                continue
            seen_pairs.add(conn.pair)
            connections.append(conn)

        return Graph(people=people, connections=connections)

