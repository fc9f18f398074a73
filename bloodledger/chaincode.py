import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from .bloodbag import encode_bag
from .config import LedgerConfig, load_config
from .errors import InvalidArgument, LedgerError
from .history import KeyRecord, results_to_json, reconstruct
from .index_manager import TypeIndex
from .lifecycle import BagLifecycle
from .repository import BagRepository
from .storage import SQLiteLedgerStore
from .storage_api import LedgerStore

logger = logging.getLogger(__name__)

OK = 200
ERROR = 500

_ORDINALS = ["1st", "2nd", "3rd", "4th", "5th", "6th"]


class Operation(str, Enum):
    """Function names accepted by Chaincode.invoke."""

    CREATE = "createBloodBag"
    READ = "readBloodBag"
    DELETE = "deleteBloodBag"
    MOVE = "moveBagToLocation"
    ASSIGN = "assignBloodBagReceiver"
    HISTORY = "getHistoryForBloodBag"
    QUERY_BY_TYPE = "queryBloodBagsByType"
    QUERY_BY_RANGE = "queryBloodBagsByRange"


@dataclass
class Response:
    status: int
    message: str = ""
    payload: bytes = b""
    code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OK


def success(payload: Optional[bytes] = None) -> Response:
    return Response(status=OK, payload=payload or b"")


def error(message: str, code: Optional[str] = None) -> Response:
    return Response(status=ERROR, message=message, code=code)


class Chaincode:
    """
    Dispatcher: owns the repository, index, and lifecycle for one ledger
    store, parses string argument arrays and turns results or errors into
    Responses.

    Every invocation runs inside one store transaction, so the record and
    index writes of create/delete commit together and a failed invocation
    leaves the ledger untouched.
    """

    def __init__(self, config: LedgerConfig, storage: LedgerStore):
        self.config = config
        self.storage = storage
        self.index = TypeIndex(storage, config.index.name)
        self.repository = BagRepository(storage, self.index)
        self.lifecycle = BagLifecycle(self.repository)

        self._handlers: Dict[Operation, Callable[[List[str]], Optional[bytes]]] = {
            Operation.CREATE: self._create_blood_bag,
            Operation.READ: self._read_blood_bag,
            Operation.DELETE: self._delete_blood_bag,
            Operation.MOVE: self._move_bag_to_location,
            Operation.ASSIGN: self._assign_blood_bag_receiver,
            Operation.HISTORY: self._get_history_for_blood_bag,
            Operation.QUERY_BY_TYPE: self._query_blood_bags_by_type,
            Operation.QUERY_BY_RANGE: self._query_blood_bags_by_range,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def init(self, args: List[str]) -> Response:
        logger.info("Init args: %s", json.dumps(args))
        logger.info("===== Instantiated %s chaincode successfully =====", self.config.chaincode.name)
        return success()

    def invoke(self, function_name: str, args: List[str], tx_id: Optional[str] = None) -> Response:
        try:
            operation = Operation(function_name)
        except ValueError:
            logger.error("Received unknown function named: %s", function_name)
            return error(
                f"Received unknown function named: {function_name}", InvalidArgument.code
            )

        try:
            with self.storage.transaction(tx_id) as current_tx:
                logger.info("Transaction ID: %s", current_tx)
                logger.info("Args: %s %s", function_name, json.dumps(args))
                payload = self._handlers[operation](args)
            return success(payload)
        except LedgerError as e:
            logger.error("%s failed [%s]: %s", function_name, e.code, e)
            return error(str(e), e.code)
        except Exception as e:
            logger.exception("Unexpected error in %s", function_name)
            return error(str(e))

    def close(self) -> None:
        self.storage.close()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _create_blood_bag(self, args: List[str]) -> None:
        _expect_exactly(args, 6)
        for i, arg in enumerate(args):
            if not arg:
                raise InvalidArgument(f"{_ORDINALS[i]} argument must be a non-empty string literal")

        bag_id, origin_id, location, blood_type, rh, size = args
        self.repository.create(bag_id, origin_id, location, blood_type, rh, size)

    def _read_blood_bag(self, args: List[str]) -> bytes:
        if len(args) != 1:
            raise InvalidArgument("Incorrect number of arguments. Expecting ID of Blood Bag to query")
        _require_id(args[0])
        return encode_bag(self.repository.read(args[0]))

    def _delete_blood_bag(self, args: List[str]) -> None:
        if len(args) != 1:
            raise InvalidArgument("Incorrect number of arguments. Expecting ID of the Blood Bag to delete")
        _require_id(args[0])
        self.repository.delete(args[0])

    def _move_bag_to_location(self, args: List[str]) -> None:
        if len(args) < 2:
            raise InvalidArgument(
                "Incorrect number of arguments. Expecting Blood Bag's ID and new Location"
            )
        self.lifecycle.move_to_location(args[0], args[1])

    def _assign_blood_bag_receiver(self, args: List[str]) -> None:
        if len(args) < 3:
            raise InvalidArgument(
                "Incorrect number of arguments. Expecting Blood Bag's ID, recipientID and Destination"
            )
        self.lifecycle.assign_receiver(args[0], args[1], args[2])

    def _get_history_for_blood_bag(self, args: List[str]) -> bytes:
        if len(args) < 1:
            raise InvalidArgument("Incorrect number of arguments. Expecting BloodID")
        logger.info(" --- start getHistoryForBloodBag %s ---", args[0])
        iterator = self.storage.get_history_for_key(args[0])
        return results_to_json(reconstruct(iterator, include_metadata=True))

    def _query_blood_bags_by_type(self, args: List[str]) -> bytes:
        if len(args) != 1:
            raise InvalidArgument("Incorrect number of arguments. Expecting blood type")
        if not args[0]:
            raise InvalidArgument("Blood type must not be empty")
        bags = self.repository.query_by_type(args[0])
        return results_to_json([KeyRecord(key=bag.id, record=bag) for bag in bags])

    def _query_blood_bags_by_range(self, args: List[str]) -> bytes:
        if len(args) != 2:
            raise InvalidArgument("Incorrect number of arguments. Expecting start and end key")
        iterator = self.storage.get_state_by_range(args[0], args[1])
        return results_to_json(reconstruct(iterator, include_metadata=False))


def _expect_exactly(args: List[str], count: int) -> None:
    if len(args) != count:
        raise InvalidArgument(f"Incorrect number of arguments. Expecting {count}")


def _require_id(bag_id: str) -> None:
    if not bag_id:
        raise InvalidArgument("Blood Bag ID must not be empty")


def create_chaincode(
    db_path: Optional[str] = None,
    config_path: Optional[str] = None,
) -> Chaincode:
    """Create a chaincode instance backed by a SQLite ledger."""
    config = load_config(config_path)

    if db_path is not None:
        config.storage.db_path = db_path

    logger.info("Using SQLite ledger %s", config.storage.db_path)
    return Chaincode(config, SQLiteLedgerStore(config.storage.db_path))
