from contextlib import contextmanager
from typing import Iterator

from formula_engine.errors import CircularReferenceError


class CycleGuard:
    """Tracks the cell addresses in the active calculation chain.

    Only the current recursion path is kept, not every address ever seen, so
    the same cell may be calculated many times as long as it never encloses
    itself.
    """

    def __init__(self) -> None:
        self._stack: list[str] = []

    @property
    def stack(self) -> tuple[str, ...]:
        return tuple(self._stack)

    @property
    def depth(self) -> int:
        return len(self._stack)

    @contextmanager
    def track(self, address: str) -> Iterator[None]:
        """Hold `address` on the chain for the duration of the block.

        An empty address is not tracked. The address is released however the
        block exits.
        """
        if not address:
            yield
            return
        if address in self._stack:
            raise CircularReferenceError(self._stack + [address])
        self._stack.append(address)
        try:
            yield
        finally:
            self._stack.pop()
