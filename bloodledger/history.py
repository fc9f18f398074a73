"""
History reconstruction.

Replays the results of a ledger cursor into typed entries. With metadata
(history queries) each entry carries the transaction id, timestamp and
deletion flag of one past write; without it (live range queries) each entry
is the key and its current record.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from .bloodbag import BloodBag, decode_bag
from .errors import DecodeError
from .storage_api import ResultsIterator

logger = logging.getLogger(__name__)

# A decoded bag, or the raw stored bytes when they did not decode.
BagOrRaw = Union[BloodBag, bytes]


@dataclass
class HistoryEntry:
    tx_id: str
    timestamp: float
    is_delete: bool
    value: BagOrRaw

    def to_dict(self) -> Dict[str, Any]:
        return {
            "TxId": self.tx_id,
            "Timestamp": self.timestamp,
            "IsDelete": self.is_delete,
            "Value": _jsonable(self.value),
        }


@dataclass
class KeyRecord:
    key: str
    record: BagOrRaw

    def to_dict(self) -> Dict[str, Any]:
        return {"Key": self.key, "Record": _jsonable(self.record)}


def reconstruct(
    iterator: ResultsIterator, include_metadata: bool
) -> List[Union[HistoryEntry, KeyRecord]]:
    """
    Drain iterator into a list, in the order the store delivers it.

    Entries with an empty value are skipped. An entry whose bytes fail to
    decode is kept with its raw bytes. The iterator is always closed.
    """
    results: List[Union[HistoryEntry, KeyRecord]] = []
    try:
        for item in iterator:
            if not item.value:
                continue

            value = _decode_or_raw(item.value, item.key)
            if include_metadata:
                results.append(
                    HistoryEntry(
                        tx_id=item.tx_id,
                        timestamp=item.timestamp,
                        is_delete=item.is_delete,
                        value=value,
                    )
                )
            else:
                results.append(KeyRecord(key=item.key, record=value))
        logger.debug("end of data (%d entries)", len(results))
    finally:
        iterator.close()
    return results


def results_to_json(entries: List[Union[HistoryEntry, KeyRecord]]) -> bytes:
    return json.dumps([entry.to_dict() for entry in entries]).encode("utf-8")


def _decode_or_raw(raw: bytes, key: str) -> BagOrRaw:
    try:
        return decode_bag(raw, key=key)
    except DecodeError as e:
        logger.error("%s; keeping raw bytes", e)
        return raw


def _jsonable(value: BagOrRaw) -> Any:
    if isinstance(value, BloodBag):
        return value.to_dict()
    return value.decode("utf-8", errors="replace")
