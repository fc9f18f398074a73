"""
Blood-bag record and its codec.

encode_bag/decode_bag are the only bytes <-> record boundary. The stored
form is a UTF-8 JSON document using the ledger's camelCase field names.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .errors import DecodeError

DOC_TYPE = "bloodbag"
UNASSIGNED = "UNASSIGNED"


class BagStatus(str, Enum):
    UNASSIGNED = "UNASSIGNED"
    INTRANSIT = "INTRANSIT"
    RECEIVED = "RECEIVED"
    ASSIGNED = "ASSIGNED"


@dataclass
class BloodBag:
    id: str
    origin_id: str
    location: str
    blood_type: str
    rh: str
    size: str
    status: BagStatus = BagStatus.UNASSIGNED
    recipient: str = UNASSIGNED
    destination: str = UNASSIGNED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "docType": DOC_TYPE,
            "id": self.id,
            "originId": self.origin_id,
            "location": self.location,
            "status": self.status.value,
            "recipient": self.recipient,
            "destination": self.destination,
            "type": self.blood_type,
            "rh": self.rh,
            "size": self.size,
        }


# JSON key -> dataclass field
_FIELDS = {
    "id": "id",
    "originId": "origin_id",
    "location": "location",
    "status": "status",
    "recipient": "recipient",
    "destination": "destination",
    "type": "blood_type",
    "rh": "rh",
    "size": "size",
}


def encode_bag(bag: BloodBag) -> bytes:
    """Serialize a bag to the bytes stored on the ledger."""
    return json.dumps(bag.to_dict()).encode("utf-8")


def decode_bag(raw: bytes, key: Optional[str] = None) -> BloodBag:
    """
    Parse stored bytes back into a BloodBag.

    Raises DecodeError (carrying ``key`` when given) if the bytes are not a
    JSON object holding every record field as a string, or if the status is
    not one of BagStatus.
    """
    try:
        doc = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(str(e), key=key) from e

    if not isinstance(doc, dict):
        raise DecodeError("record is not a JSON object", key=key)

    kwargs: Dict[str, Any] = {}
    for json_key, field_name in _FIELDS.items():
        value = doc.get(json_key)
        if not isinstance(value, str):
            raise DecodeError(f"missing or invalid field '{json_key}'", key=key)
        kwargs[field_name] = value

    try:
        kwargs["status"] = BagStatus(kwargs["status"])
    except ValueError as e:
        raise DecodeError(f"unknown status '{kwargs['status']}'", key=key) from e

    return BloodBag(**kwargs)
