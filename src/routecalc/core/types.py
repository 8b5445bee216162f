from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

if TYPE_CHECKING:
    from routecalc.model.routing import LinkStatePacket

RouterId = str
Cost = int
Payload = Dict[str, Any]


@total_ordering
class Distance:
    """Tagged distance: either ``Finite(n)`` or ``Unreachable``.

    Unreachable sorts after every finite value and absorbs addition, so
    relaxation code never needs a large number standing in for infinity.
    """

    __slots__ = ("_value",)

    UNREACHABLE: "Distance"

    def __init__(self, value: Optional[int]) -> None:
        if value is not None:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"distance must be an int, got {value!r}")
            if value < 0:
                raise ValueError(f"distance must be non-negative, got {value}")
        self._value = value

    @classmethod
    def finite(cls, value: int) -> "Distance":
        return cls(value)

    @classmethod
    def coerce(cls, raw: Any) -> "Distance":
        if isinstance(raw, Distance):
            return raw
        if raw is None:
            return cls.UNREACHABLE
        return cls(raw)

    @property
    def is_finite(self) -> bool:
        return self._value is not None

    @property
    def value(self) -> int:
        if self._value is None:
            raise ValueError("unreachable distance has no value")
        return self._value

    def __add__(self, other: Any) -> "Distance":
        if isinstance(other, Distance):
            if not (self.is_finite and other.is_finite):
                return Distance.UNREACHABLE
            return Distance(self.value + other.value)
        if isinstance(other, int) and not isinstance(other, bool):
            if not self.is_finite:
                return Distance.UNREACHABLE
            return Distance(self.value + other)
        return NotImplemented

    __radd__ = __add__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Distance):
            return NotImplemented
        return self._value == other._value

    def __lt__(self, other: "Distance") -> bool:
        if not isinstance(other, Distance):
            return NotImplemented
        if self._value is None:
            return False
        if other._value is None:
            return True
        return self._value < other._value

    def __hash__(self) -> int:
        return hash(("distance", self._value))

    def __repr__(self) -> str:
        if self._value is None:
            return "Unreachable"
        return f"Finite({self._value})"

    def to_json(self) -> Optional[int]:
        return self._value


Distance.UNREACHABLE = Distance(None)


class LinkStatus(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class DistanceVectorUpdate:
    src: RouterId
    dst: RouterId
    vector: Mapping[RouterId, Distance]

    msg_type = "DV_UPDATE"

    def sort_key(self) -> tuple[str, str, str]:
        return (self.src, self.dst, self.msg_type)


@dataclass(frozen=True)
class LinkStateFlood:
    src: RouterId
    dst: RouterId
    lsp: "LinkStatePacket"

    msg_type = "LSP_FLOOD"

    def sort_key(self) -> tuple[str, str, str]:
        return (self.src, self.dst, self.msg_type)


@dataclass(frozen=True)
class ExternalEvent:
    action: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConvergenceReport:
    protocol: str
    converged: bool
    rounds: int
    messages_delivered: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protocol": self.protocol,
            "converged": self.converged,
            "rounds": self.rounds,
            "messages_delivered": self.messages_delivered,
        }
