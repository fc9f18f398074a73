import logging
from typing import List

from .errors import BagIndexError
from .storage_api import LedgerStore

logger = logging.getLogger(__name__)

TYPE_ID_INDEX = "type~id"

# An empty value reads back as "absent", so index markers hold a single NUL.
INDEX_SENTINEL = b"\x00"


class TypeIndex:
    """
    Maintains the `type~id` secondary index.

    Each live bag has exactly one marker entry keyed by
    composite(type~id, [type, id]). Only the key carries information; the
    bag itself is never copied into the index.
    """

    def __init__(self, storage: LedgerStore, index_name: str = TYPE_ID_INDEX):
        self.storage = storage
        self.index_name = index_name

    def index_key(self, blood_type: str, bag_id: str) -> str:
        try:
            key = self.storage.create_composite_key(self.index_name, [blood_type, bag_id])
        except ValueError as e:
            raise BagIndexError(
                f"Failed to create the composite key for ({blood_type!r}, {bag_id!r}): {e}"
            ) from e
        if not key:
            raise BagIndexError("Failed to create the composite key")
        return key

    def add(self, blood_type: str, bag_id: str) -> None:
        key = self.index_key(blood_type, bag_id)
        self.storage.put_state(key, INDEX_SENTINEL)
        logger.debug("Indexed bag %s under type %s", bag_id, blood_type)

    def remove(self, blood_type: str, bag_id: str) -> None:
        key = self.index_key(blood_type, bag_id)
        self.storage.delete_state(key)
        logger.debug("Removed index entry for bag %s (type %s)", bag_id, blood_type)

    def ids_for_type(self, blood_type: str) -> List[str]:
        """Ids of every indexed bag of blood_type, in key order."""
        try:
            iterator = self.storage.get_state_by_partial_composite_key(
                self.index_name, [blood_type]
            )
        except ValueError as e:
            raise BagIndexError(f"Invalid index prefix {blood_type!r}: {e}") from e

        ids: List[str] = []
        with iterator:
            for kv in iterator:
                _, attributes = self.storage.split_composite_key(kv.key)
                ids.append(attributes[1])
        return ids
