from __future__ import annotations

import heapq
import itertools
import random
from dataclasses import replace
from typing import List, Optional, Tuple, Union

from routecalc.core.types import DistanceVectorUpdate, LinkStateFlood

Message = Union[DistanceVectorUpdate, LinkStateFlood]


class NetworkModel:
    """Logical links between in-process routers.

    Messages become due ``base_delay`` (+ seeded jitter) ticks after they are
    sent and are handed out in ``(due_tick, send_order)`` order, so with zero
    jitter every router sees its inbound messages in the order they were sent.
    """

    def __init__(self, base_delay: int = 1, jitter: int = 0, seed: int = 0) -> None:
        self.base_delay = max(0, int(base_delay))
        self.jitter = max(0, int(jitter))
        self.rng = random.Random(seed)
        self.now = 0
        self._inflight: List[Tuple[int, int, Message]] = []
        self._order = itertools.count()
        self.sent_messages = 0
        self.delivered_messages = 0

    def send(self, msg: Message) -> None:
        extra = self.rng.randint(0, self.jitter) if self.jitter > 0 else 0
        due_tick = self.now + self.base_delay + extra
        heapq.heappush(self._inflight, (due_tick, next(self._order), msg))
        self.sent_messages += 1

    def send_all(self, msgs: List[Message]) -> None:
        for msg in sorted(msgs, key=lambda m: m.sort_key()):
            self.send(msg)

    def pending(self) -> int:
        return len(self._inflight)

    def deliver_next(self) -> Optional[Message]:
        if not self._inflight:
            return None
        due_tick, _, msg = heapq.heappop(self._inflight)
        self.now = max(self.now, due_tick)
        self.delivered_messages += 1
        if isinstance(msg, LinkStateFlood):
            return replace(msg, lsp=msg.lsp.copy())
        return replace(msg, vector=dict(msg.vector))
