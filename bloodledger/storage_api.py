from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

COMPOSITE_KEY_NAMESPACE = "\x00"
MIN_UNICODE_RUNE = "\x00"
MAX_UNICODE_RUNE = "\U0010ffff"


@dataclass
class KV:
    """One live key/value pair returned by a range query."""

    key: str
    value: bytes


@dataclass
class KeyModification:
    """One past write (or deletion) of a key, as kept by the ledger history."""

    key: str
    tx_id: str
    value: bytes
    timestamp: float
    is_delete: bool = False


class ResultsIterator(object):
    """
    Cursor over query or history results.

    Exhaustion (StopIteration) is the "done" signal. close() must be called
    once the caller is finished, on every path; it is safe to call twice.
    """

    def __iter__(self) -> Iterator:
        return self

    def __next__(self):
        raise NotImplementedError()

    def close(self) -> None:
        raise NotImplementedError()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class LedgerStore(object):
    """
    Contract for how the ledger core talks to the world state.
    Implementation can use SQLite, a peer connection, etc.,
    but must keep the same method names and parameters.

    get_state returns b"" for an absent key.
    """

    def get_state(self, key: str) -> bytes:
        raise NotImplementedError()

    def put_state(self, key: str, value: bytes) -> None:
        raise NotImplementedError()

    def delete_state(self, key: str) -> None:
        raise NotImplementedError()

    def get_history_for_key(self, key: str) -> ResultsIterator:
        raise NotImplementedError()

    def get_state_by_range(self, start_key: str, end_key: str) -> ResultsIterator:
        raise NotImplementedError()

    def get_state_by_partial_composite_key(
        self, object_type: str, attributes: List[str]
    ) -> ResultsIterator:
        raise NotImplementedError()

    def transaction(self, tx_id: Optional[str] = None):
        raise NotImplementedError()

    # ------------------------------------------------------------------
    # Composite keys
    # ------------------------------------------------------------------

    def create_composite_key(self, object_type: str, attributes: List[str]) -> str:
        """
        Join object_type and attributes into a single key:
        NUL + object_type + NUL + attr1 + NUL + attr2 + NUL ...

        Raises ValueError if any component holds a NUL or U+10FFFF, since
        such a key could collide with a different (type, attributes) pair.
        """
        _validate_composite_key_attribute(object_type)
        key = COMPOSITE_KEY_NAMESPACE + object_type + MIN_UNICODE_RUNE
        for attr in attributes:
            _validate_composite_key_attribute(attr)
            key += attr + MIN_UNICODE_RUNE
        return key

    def split_composite_key(self, composite_key: str) -> Tuple[str, List[str]]:
        """Inverse of create_composite_key."""
        if not composite_key.startswith(COMPOSITE_KEY_NAMESPACE):
            raise ValueError(f"not a composite key: {composite_key!r}")
        parts = composite_key[1:].split(MIN_UNICODE_RUNE)
        # trailing separator leaves an empty last element
        return parts[0], parts[1:-1]


def _validate_composite_key_attribute(attr: str) -> None:
    if not isinstance(attr, str):
        raise ValueError(f"composite key component must be a string, got {type(attr).__name__}")
    if MIN_UNICODE_RUNE in attr or MAX_UNICODE_RUNE in attr:
        raise ValueError(
            f"composite key component {attr!r} contains a reserved code point"
        )
