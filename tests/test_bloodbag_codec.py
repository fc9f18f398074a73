import json

import pytest

from bloodledger.bloodbag import BagStatus, BloodBag, decode_bag, encode_bag
from bloodledger.errors import DecodeError


def _bag(**overrides):
    fields = dict(
        id="B1",
        origin_id="DONOR-7",
        location="BloodBank-A",
        blood_type="O",
        rh="+",
        size="450ml",
    )
    fields.update(overrides)
    return BloodBag(**fields)


def test_new_bag_defaults_to_unassigned():
    bag = _bag()
    assert bag.status == BagStatus.UNASSIGNED
    assert bag.recipient == "UNASSIGNED"
    assert bag.destination == "UNASSIGNED"


def test_encoded_document_uses_ledger_field_names():
    doc = json.loads(encode_bag(_bag(status=BagStatus.ASSIGNED, recipient="R1")))

    assert doc == {
        "docType": "bloodbag",
        "id": "B1",
        "originId": "DONOR-7",
        "location": "BloodBank-A",
        "status": "ASSIGNED",
        "recipient": "R1",
        "destination": "UNASSIGNED",
        "type": "O",
        "rh": "+",
        "size": "450ml",
    }


def test_decode_restores_record():
    bag = _bag(status=BagStatus.INTRANSIT, location="Truck-3")
    assert decode_bag(encode_bag(bag)) == bag


def test_decode_accepts_document_without_doc_type():
    doc = json.loads(encode_bag(_bag()))
    del doc["docType"]
    assert decode_bag(json.dumps(doc).encode()).id == "B1"


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"\xff\xfe",
        b"[1, 2, 3]",
        b'{"id": "B1"}',
    ],
)
def test_decode_rejects_malformed_bytes(raw):
    with pytest.raises(DecodeError) as exc_info:
        decode_bag(raw, key="B1")
    assert exc_info.value.key == "B1"
    assert "B1" in str(exc_info.value)


def test_decode_rejects_unknown_status():
    doc = json.loads(encode_bag(_bag()))
    doc["status"] = "LOST"
    with pytest.raises(DecodeError):
        decode_bag(json.dumps(doc).encode())


def test_decode_rejects_non_string_field():
    doc = json.loads(encode_bag(_bag()))
    doc["size"] = 450
    with pytest.raises(DecodeError):
        decode_bag(json.dumps(doc).encode())
