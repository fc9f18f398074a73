import logging
from typing import List

from .bloodbag import BloodBag, decode_bag, encode_bag
from .errors import AlreadyExists, InvalidArgument, NotFound
from .index_manager import TypeIndex
from .storage_api import MAX_UNICODE_RUNE, MIN_UNICODE_RUNE, LedgerStore

logger = logging.getLogger(__name__)


class BagRepository:
    """
    Create, read and delete blood-bag records by id.

    The record and its `type~id` index entry are written as two separate
    store calls. They are only atomic when the caller wraps the operation in
    a store transaction (the Chaincode dispatcher does); otherwise a crash
    between the two writes can leave a record without its index entry or
    the reverse.
    """

    def __init__(self, storage: LedgerStore, index: TypeIndex):
        self.storage = storage
        self.index = index

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(
        self,
        bag_id: str,
        origin_id: str,
        location: str,
        blood_type: str,
        rh: str,
        size: str,
    ) -> BloodBag:
        fields = {
            "id": bag_id,
            "originId": origin_id,
            "location": location,
            "type": blood_type,
            "rh": rh,
            "size": size,
        }
        for name, value in fields.items():
            if not value:
                raise InvalidArgument(f"{name} must be a non-empty string")

        # id and type become composite-key components
        for name in ("id", "type"):
            if MIN_UNICODE_RUNE in fields[name] or MAX_UNICODE_RUNE in fields[name]:
                raise InvalidArgument(f"{name} must not contain a reserved key separator")

        logger.info(" --- Start createBloodBag %s ---", bag_id)

        if self.storage.get_state(bag_id):
            raise AlreadyExists(f"Blood Bag: {bag_id} already exists.")

        bag = BloodBag(
            id=bag_id,
            origin_id=origin_id,
            location=location,
            blood_type=blood_type,
            rh=rh,
            size=size,
        )
        self.storage.put_state(bag_id, encode_bag(bag))
        self.index.add(blood_type, bag_id)

        logger.info(" --- end createBloodBag %s --- ", bag_id)
        return bag

    def read(self, bag_id: str) -> BloodBag:
        bag = self.load(bag_id)
        logger.info("[BLOOD BAG RETRIEVED] ~ %s", bag_id)
        return bag

    def delete(self, bag_id: str) -> None:
        # The type is needed to rebuild the index key, so an undecodable
        # record cannot be deleted.
        bag = self.load(bag_id)
        index_key = self.index.index_key(bag.blood_type, bag.id)

        self.storage.delete_state(bag_id)
        self.storage.delete_state(index_key)
        logger.info("Deleted blood bag %s and index entry", bag_id)

    # ------------------------------------------------------------------
    # Read-modify-write helpers
    # ------------------------------------------------------------------

    def load(self, bag_id: str) -> BloodBag:
        """Fetch and decode a bag. NotFound if absent, DecodeError if unreadable."""
        raw = self.storage.get_state(bag_id)
        if not raw:
            raise NotFound(f"Blood Bag [{bag_id}] does not exist")
        return decode_bag(raw, key=bag_id)

    def save(self, bag: BloodBag) -> None:
        """Overwrite an existing record. Does not touch the index."""
        self.storage.put_state(bag.id, encode_bag(bag))

    def query_by_type(self, blood_type: str) -> List[BloodBag]:
        """Every live bag of blood_type, found through the type index."""
        return [self.load(bag_id) for bag_id in self.index.ids_for_type(blood_type)]
