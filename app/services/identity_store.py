from typing import Optional


class IdentityStore:
    """Client-local slot holding the id of the row this client owns.

    The browser keeps the value in a long-lived cookie; this object carries
    it for one view and remembers when a new value still has to be written
    back to the client.
    """

    def __init__(self, response_id: Optional[str] = None):
        self._response_id = response_id or None
        self._pending = False

    def load(self) -> Optional[str]:
        return self._response_id

    def save(self, response_id: str) -> None:
        self._response_id = response_id
        self._pending = True

    def take_pending(self) -> Optional[str]:
        """Return a freshly saved id once, so the caller can persist it"""
        if not self._pending:
            return None
        self._pending = False
        return self._response_id
