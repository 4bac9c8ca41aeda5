"""Tests for VoteWeightAllocator and set_absence."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from commons_divisions.config import EngineConfig
from commons_divisions.roster.schema import Character, Party
from commons_divisions.roster.seats import SeatLedger
from commons_divisions.roster.weights import VoteWeightAllocator, set_absence

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _make_ledger(seats: int = 418) -> SeatLedger:
    return SeatLedger([Party(name="Labour", seats=seats, playable=True)])


def _make_labour(**overrides: dict[str, object]) -> list[Character]:
    members = {
        "Tony": {"role": "prime-minister"},
        "Gordon": {"role": "minister"},
        "Jack": {"role": "backbencher"},
    }
    for name, fields in overrides.items():
        members[name].update(fields)
    return [Character(name=name, party="Labour", **fields) for name, fields in members.items()]


@pytest.fixture()
def allocator() -> VoteWeightAllocator:
    return VoteWeightAllocator()


# ---------------------------------------------------------------------------
# Leader detection
# ---------------------------------------------------------------------------


class TestFindLeader:
    def test_explicit_flag_wins(self, allocator: VoteWeightAllocator) -> None:
        members = _make_labour(Jack={"party_leader": True})
        assert allocator.find_leader(members).name == "Jack"  # type: ignore[union-attr]

    def test_role_priority(self, allocator: VoteWeightAllocator) -> None:
        assert allocator.find_leader(_make_labour()).name == "Tony"  # type: ignore[union-attr]

    def test_falls_back_to_first_member(self, allocator: VoteWeightAllocator) -> None:
        members = [Character(name="Paddy", party="LD"), Character(name="Charles", party="LD")]
        assert allocator.find_leader(members).name == "Paddy"  # type: ignore[union-attr]

    def test_empty_party(self, allocator: VoteWeightAllocator) -> None:
        assert allocator.find_leader([]) is None


# ---------------------------------------------------------------------------
# Base allocation
# ---------------------------------------------------------------------------


class TestBaseAllocation:
    def test_sole_member_holds_every_seat(self, allocator: VoteWeightAllocator) -> None:
        allocation = allocator.allocate([Character(name="Tony", party="Labour")], _make_ledger(), NOW)
        assert allocation.weight_of("Tony") == 418

    def test_remainder_goes_to_leader(self, allocator: VoteWeightAllocator) -> None:
        allocation = allocator.allocate(_make_labour(), _make_ledger(), NOW)
        assert allocation.effective_weights == {"Tony": 140, "Gordon": 139, "Jack": 139}

    def test_party_total_conserves_seats(self, allocator: VoteWeightAllocator) -> None:
        allocation = allocator.allocate(_make_labour(), _make_ledger(), NOW)
        assert allocation.party_total("Labour") == 418

    def test_new_backbencher_gets_one(self, allocator: VoteWeightAllocator) -> None:
        members = _make_labour(Jack={"joined_at": NOW - timedelta(days=2)})
        allocation = allocator.allocate(members, _make_ledger(), NOW)
        assert allocation.effective_weights == {"Tony": 209, "Gordon": 208, "Jack": 1}

    def test_settled_backbencher_shares_split(self, allocator: VoteWeightAllocator) -> None:
        members = _make_labour(Jack={"joined_at": NOW - timedelta(days=30)})
        allocation = allocator.allocate(members, _make_ledger(), NOW)
        assert allocation.weight_of("Jack") == 139

    def test_settling_period_is_configurable(self) -> None:
        allocator = VoteWeightAllocator(settling_period_days=60)
        members = _make_labour(Jack={"joined_at": NOW - timedelta(days=30)})
        assert allocator.allocate(members, _make_ledger(), NOW).weight_of("Jack") == 1

    def test_remainder_to_first_split_member_when_leader_is_new(
        self, allocator: VoteWeightAllocator
    ) -> None:
        members = [
            Character(name="Ann", party="Labour", party_leader=True, joined_at=NOW - timedelta(days=1)),
            Character(name="Bob", party="Labour", role="minister"),
            Character(name="Cat", party="Labour", role="minister"),
        ]
        allocation = allocator.allocate(members, _make_ledger(10), NOW)
        assert allocation.effective_weights == {"Ann": 1, "Bob": 5, "Cat": 4}

    def test_all_newcomers_leader_takes_remaining(self, allocator: VoteWeightAllocator) -> None:
        members = [
            Character(name="Ann", party="Labour", party_leader=True, joined_at=NOW - timedelta(days=1)),
            Character(name="Bob", party="Labour", joined_at=NOW - timedelta(days=1)),
        ]
        allocation = allocator.allocate(members, _make_ledger(10), NOW)
        assert allocation.effective_weights == {"Ann": 9, "Bob": 1}

    def test_inactive_members_ignored(self, allocator: VoteWeightAllocator) -> None:
        members = _make_labour(Jack={"active": False})
        allocation = allocator.allocate(members, _make_ledger(), NOW)
        assert "Jack" not in allocation.effective_weights
        assert allocation.effective_weights == {"Tony": 209, "Gordon": 209}

    def test_unknown_party_weighs_nothing(self, allocator: VoteWeightAllocator) -> None:
        allocation = allocator.allocate([Character(name="James", party="Referendum")], _make_ledger(), NOW)
        assert allocation.weight_of("James") == 0

    def test_unknown_character_weighs_nothing(self, allocator: VoteWeightAllocator) -> None:
        allocation = allocator.allocate(_make_labour(), _make_ledger(), NOW)
        assert allocation.weight_of("Nobody") == 0

    def test_from_config(self) -> None:
        config = EngineConfig(settling_period_days=0)
        members = _make_labour(Jack={"joined_at": NOW - timedelta(hours=1)})
        allocation = VoteWeightAllocator.from_config(config).allocate(members, _make_ledger(), NOW)
        assert allocation.weight_of("Jack") == 139


# ---------------------------------------------------------------------------
# Absence overlay
# ---------------------------------------------------------------------------


class TestAbsences:
    def test_absent_member_weight_goes_to_leader(self, allocator: VoteWeightAllocator) -> None:
        allocation = allocator.allocate(_make_labour(Gordon={"absent": True}), _make_ledger(), NOW)
        assert allocation.effective_weights == {"Tony": 279, "Gordon": 0, "Jack": 139}

    def test_absent_leader_uses_delegate(self, allocator: VoteWeightAllocator) -> None:
        members = _make_labour(Tony={"absent": True, "delegated_to": "Gordon"})
        allocation = allocator.allocate(members, _make_ledger(), NOW)
        assert allocation.effective_weights == {"Tony": 0, "Gordon": 279, "Jack": 139}

    def test_absent_leader_without_delegate_drops_weight(self, allocator: VoteWeightAllocator) -> None:
        allocation = allocator.allocate(_make_labour(Tony={"absent": True}), _make_ledger(), NOW)
        assert allocation.party_total("Labour") == 278

    def test_member_absent_with_leader_absent_is_dropped(self, allocator: VoteWeightAllocator) -> None:
        members = _make_labour(
            Tony={"absent": True, "delegated_to": "Jack"},
            Gordon={"absent": True},
        )
        allocation = allocator.allocate(members, _make_ledger(), NOW)
        assert allocation.effective_weights == {"Tony": 0, "Gordon": 0, "Jack": 279}

    def test_delegation_uses_base_weight_only(self, allocator: VoteWeightAllocator) -> None:
        # Gordon's own share moves to Tony, then Tony's delegate does not chain on.
        members = _make_labour(Gordon={"absent": True})
        allocation = allocator.allocate(members, _make_ledger(), NOW)
        assert allocation.base_weights["Tony"] == 140
        assert allocation.weight_of("Tony") == 279

    def test_invalid_leader_delegate_drops_weight(self, allocator: VoteWeightAllocator) -> None:
        members = _make_labour(Tony={"absent": True, "delegated_to": "John"})
        allocation = allocator.allocate(members, _make_ledger(), NOW)
        assert allocation.weight_of("Tony") == 0
        assert allocation.party_total("Labour") == 278

    def test_no_absences_effective_equals_base(self, allocator: VoteWeightAllocator) -> None:
        allocation = allocator.allocate(_make_labour(), _make_ledger(), NOW)
        assert allocation.effective_weights == allocation.base_weights


class TestSetAbsence:
    def test_mark_absent_with_delegate(self) -> None:
        members = _make_labour()
        assert set_absence(members, "Tony", True, "Gordon") is True
        assert members[0].absent is True
        assert members[0].delegated_to == "Gordon"

    def test_returning_clears_delegate(self) -> None:
        members = _make_labour(Tony={"absent": True, "delegated_to": "Gordon"})
        assert set_absence(members, "Tony", False) is True
        assert members[0].absent is False
        assert members[0].delegated_to is None

    def test_invalid_delegate_rejected(self) -> None:
        members = _make_labour()
        assert set_absence(members, "Tony", True, "Tony") is False
        assert members[0].absent is False

    def test_unknown_member_rejected(self) -> None:
        assert set_absence(_make_labour(), "Nobody", True) is False
