from typing import Iterable, List, Optional


class CredentialPool:
    """
    Ordered, de-duplicated set of interchangeable credentials.

    The pool only ever shrinks: `mark_invalid` removes a credential and
    moves the cursor to the next surviving one, wrapping to the start when
    it runs off the end. One pool belongs to one logical call sequence and
    is never shared between concurrent invocations.
    """

    def __init__(self, credentials: Iterable[str]):
        self._pool: List[str] = []
        for credential in credentials:
            cleaned = (credential or "").strip()
            if cleaned and cleaned not in self._pool:
                self._pool.append(cleaned)
        self._index = 0

    def __len__(self) -> int:
        return len(self._pool)

    def __contains__(self, credential: str) -> bool:
        return credential in self._pool

    @property
    def remaining(self) -> List[str]:
        return list(self._pool)

    def current(self) -> Optional[str]:
        if not self._pool:
            return None
        if self._index >= len(self._pool):
            self._index = 0
        return self._pool[self._index]

    def mark_invalid(self, credential: str) -> Optional[str]:
        """Remove `credential` if present and return the new current credential."""
        try:
            position = self._pool.index((credential or "").strip())
        except ValueError:
            return self.current()

        del self._pool[position]
        if not self._pool:
            return None

        # Removing an entry before the cursor shifts everything left by one
        if position < self._index:
            self._index -= 1
        self._index %= len(self._pool)
        return self.current()
