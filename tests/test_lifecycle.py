import pytest

from bloodledger.bloodbag import BagStatus
from bloodledger.errors import DecodeError, NotFound
from bloodledger.index_manager import TypeIndex
from bloodledger.lifecycle import BagLifecycle
from bloodledger.repository import BagRepository
from bloodledger.storage import SQLiteLedgerStore


def _make_lifecycle(tmp_path):
    storage = SQLiteLedgerStore(str(tmp_path / "lifecycle.db"))
    repo = BagRepository(storage, TypeIndex(storage))
    repo.create("B1", "DONOR-7", "BloodBank-A", "O", "+", "450ml")
    return storage, repo, BagLifecycle(repo)


def test_move_before_assignment_is_in_transit(tmp_path):
    storage, repo, lifecycle = _make_lifecycle(tmp_path)

    lifecycle.move_to_location("B1", "Hospital")

    bag = repo.read("B1")
    assert bag.location == "Hospital"
    assert bag.status == BagStatus.INTRANSIT
    assert bag.destination == "UNASSIGNED"

    storage.close()


def test_move_to_assigned_destination_is_received(tmp_path):
    storage, repo, lifecycle = _make_lifecycle(tmp_path)

    lifecycle.assign_receiver("B1", "R1", "Hospital")
    lifecycle.move_to_location("B1", "Truck-3")
    assert repo.read("B1").status == BagStatus.INTRANSIT

    lifecycle.move_to_location("B1", "Hospital")
    bag = repo.read("B1")
    assert bag.location == "Hospital"
    assert bag.status == BagStatus.RECEIVED
    assert bag.recipient == "R1"

    storage.close()


def test_assign_receiver_sets_assignment(tmp_path):
    storage, repo, lifecycle = _make_lifecycle(tmp_path)

    returned = lifecycle.assign_receiver("B1", "R1", "Hospital")

    bag = repo.read("B1")
    assert bag == returned
    assert bag.recipient == "R1"
    assert bag.destination == "Hospital"
    assert bag.status == BagStatus.ASSIGNED
    # immutable fields untouched
    assert bag.origin_id == "DONOR-7"
    assert bag.blood_type == "O"

    storage.close()


def test_reassignment_is_last_write_wins(tmp_path):
    storage, repo, lifecycle = _make_lifecycle(tmp_path)

    lifecycle.assign_receiver("B1", "R1", "Hospital")
    lifecycle.assign_receiver("B1", "R2", "Clinic")

    bag = repo.read("B1")
    assert bag.recipient == "R2"
    assert bag.destination == "Clinic"
    assert bag.status == BagStatus.ASSIGNED

    storage.close()


def test_assignment_after_receipt_overrides_status(tmp_path):
    storage, repo, lifecycle = _make_lifecycle(tmp_path)

    lifecycle.assign_receiver("B1", "R1", "Hospital")
    lifecycle.move_to_location("B1", "Hospital")
    lifecycle.assign_receiver("B1", "R2", "Clinic")

    bag = repo.read("B1")
    assert bag.status == BagStatus.ASSIGNED
    assert bag.location == "Hospital"

    storage.close()


def test_transitions_on_missing_bag_fail(tmp_path):
    storage, repo, lifecycle = _make_lifecycle(tmp_path)

    with pytest.raises(NotFound):
        lifecycle.move_to_location("B404", "Hospital")
    with pytest.raises(NotFound):
        lifecycle.assign_receiver("B404", "R1", "Hospital")

    storage.close()


def test_transitions_on_undecodable_bag_fail(tmp_path):
    storage, repo, lifecycle = _make_lifecycle(tmp_path)
    storage.put_state("B2", b"{broken")

    with pytest.raises(DecodeError):
        lifecycle.move_to_location("B2", "Hospital")
    with pytest.raises(DecodeError):
        lifecycle.assign_receiver("B2", "R1", "Hospital")
    assert storage.get_state("B2") == b"{broken"

    storage.close()
