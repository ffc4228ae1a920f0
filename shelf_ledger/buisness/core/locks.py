"""
Keyed lock registry

Serializes read-modify-write sequences on the same ledger key inside one
process. Database row locks (SELECT ... FOR UPDATE) cover the multi-process
case on dialects that support them.

Keys are mapped onto a fixed array of re-entrant stripes, so memory does not
grow with the number of keys ever touched. Two keys may share a stripe; that
only costs some extra serialization.
"""

import threading
from contextlib import contextmanager, ExitStack

DEFAULT_STRIPES = 256


class KeyedLockRegistry:
    """Maps keys onto a fixed set of re-entrant locks"""

    def __init__(self, stripes=DEFAULT_STRIPES):
        if stripes < 1:
            raise ValueError("stripes must be at least 1")
        self._stripes = [threading.RLock() for _ in range(stripes)]

    def stripe_of(self, key):
        return hash(key) % len(self._stripes)

    @contextmanager
    def hold(self, *keys):
        """
        Acquire the stripes for all keys, in ascending stripe order.

        A nested hold must ask for a subset of what the enclosing hold
        already owns, otherwise the ordering guarantee is lost.

        Args:
            *keys: Hashable keys (tuples of str/int)
        """
        with ExitStack() as stack:
            for index in sorted({self.stripe_of(key) for key in keys}):
                stack.enter_context(self._stripes[index])
            yield

    def __len__(self):
        return len(self._stripes)


# Process-wide registry shared by ledger, transfer and availability code
ledger_locks = KeyedLockRegistry()


def stock_key(location_id, product_id):
    return ('stock', location_id, product_id)


def consumable_key(location_id, consumable_id):
    return ('consumable', location_id, consumable_id)


def availability_key(warehouse_id, product_id):
    return ('availability', warehouse_id, product_id)
