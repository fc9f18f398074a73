import logging

from .bloodbag import BagStatus, BloodBag
from .repository import BagRepository

logger = logging.getLogger(__name__)


class BagLifecycle:
    """
    Applies movement and assignment events to a bag.

    Nominal path: UNASSIGNED -> INTRANSIT/RECEIVED -> ASSIGNED. The two
    transitions are independent; neither checks the current status.
    """

    def __init__(self, repository: BagRepository):
        self.repository = repository

    def move_to_location(self, bag_id: str, location: str) -> BloodBag:
        """
        Move a bag. Arriving at its assigned destination marks it RECEIVED,
        any other location (including before assignment, while destination
        is still "UNASSIGNED") marks it INTRANSIT.
        """
        logger.info(" --- start moveBag %s toLocation %s ---", bag_id, location)
        bag = self.repository.load(bag_id)

        bag.location = location
        if bag.destination == location:
            bag.status = BagStatus.RECEIVED
        else:
            bag.status = BagStatus.INTRANSIT

        self.repository.save(bag)
        logger.info(" --- end moveBagToLocation %s (%s) --- ", bag_id, bag.status.value)
        return bag

    def assign_receiver(self, bag_id: str, recipient: str, destination: str) -> BloodBag:
        """Assign recipient and destination, replacing any earlier assignment."""
        logger.info(" --- start assignBloodBagReceiver %s ---", bag_id)
        bag = self.repository.load(bag_id)

        if bag.status == BagStatus.ASSIGNED:
            logger.info(
                "Re-assigning bag %s from %s@%s", bag_id, bag.recipient, bag.destination
            )
        bag.recipient = recipient
        bag.destination = destination
        bag.status = BagStatus.ASSIGNED

        self.repository.save(bag)
        logger.info(" --- end assignBloodBagReceiver %s --- ", bag_id)
        return bag
