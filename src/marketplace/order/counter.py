"""Named monotonic counters (order display ids)."""

import threading

from protean.fields import Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace

ORDER_DISPLAY_ID = "order_display_id"
FIRST_DISPLAY_ID = 1000

# Serializes read-modify-write of counters within this process.
_counter_lock = threading.Lock()


@marketplace.aggregate
class Counter:
    name = String(required=True, max_length=50)
    value = Integer(required=True, min_value=0)  # last value handed out


@marketplace.repository(part_of=Counter)
class CounterRepository:
    def next_value(self, name: str, start: int = FIRST_DISPLAY_ID) -> int:
        """Increment ``name`` and return the new value; the first call returns ``start``.

        Must be called outside an enclosing unit of work so the increment is
        committed before the lock is released.
        """
        with _counter_lock:
            counter = self._dao.query.filter(name=name).all().first
            if counter is None:
                counter = Counter(name=name, value=start)
            else:
                counter.value += 1
            self.add(counter)
            return counter.value


def next_display_id() -> int:
    return current_domain.repository_for(Counter).next_value(ORDER_DISPLAY_ID)
