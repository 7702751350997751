"""
Collaborator Test Suite

Coverage:
  RegistryApp        : add / remove / exists, ordering, rejections
  StakingLedger      : balances, per-owner lock ids, unlock authorization, moves
  StakeVoting        : ballots, closure, tie handling, winning stakes, execution script
  RoleAccessControl  : grant / revoke
  End-to-end         : coordinator driven by the real collaborators
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from curation.coordinator import Curation
from curation.clock import ManualClock
from curation.collaborators import (
    AlreadyExecutedError,
    AlreadyVotedError,
    InsufficientBalanceError,
    LockNotFoundError,
    RegistryApp,
    RegistryError,
    RoleAccessControl,
    StakeVoting,
    StakingError,
    StakingLedger,
    TimeUnit,
    UnauthorizedUnlockError,
    VoteNotFoundError,
    VotingClosedError,
    VotingError,
)
from curation.constants import CHANGE_PARAMS_ROLE, CHANGE_VOTING_APP_ROLE, PCT_BASE
from curation.exceptions import NoRewardError


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

ADMIN = "0xADMIN"
APPLICANT = "0xAPPLICANT"
CHALLENGER = "0xCHALLENGER"
VOTER_A = "0xVOTER_A"
VOTER_B = "0xVOTER_B"
VOTER_C = "0xVOTER_C"
CURATION_ADDR = "0xCURATION"

START = 1_700_000_000
MIN_DEPOSIT = 100
APPLY_STAGE_LEN = 3600
FUNDS = 1000


def make_system(dispensation_pct=60 * 10 ** 16):
    """Coordinator with the in-package registry, staking and voting."""
    clock = ManualClock(START)
    registry = RegistryApp()
    staking = StakingLedger()
    voting = StakeVoting()
    acl = RoleAccessControl({CHANGE_PARAMS_ROLE: {ADMIN}, CHANGE_VOTING_APP_ROLE: {ADMIN}})
    curation = Curation(CURATION_ADDR, clock=clock, acl=acl)
    curation.initialize(registry, staking, voting, MIN_DEPOSIT, APPLY_STAGE_LEN, dispensation_pct)
    for account in (APPLICANT, CHALLENGER):
        staking.deposit(account, FUNDS)
    return curation, registry, staking, voting, clock


def lock_deposit(staking, clock, owner, amount=MIN_DEPOSIT):
    return staking.lock(
        owner, amount, TimeUnit.SECONDS, clock.now() + APPLY_STAGE_LEN * 2, CURATION_ADDR,
    )


# ══════════════════════════════════════════════════════════════════════
#  REGISTRY
# ══════════════════════════════════════════════════════════════════════


class TestRegistryApp:

    def test_add_and_remove(self):
        reg = RegistryApp()
        reg.add(b"one")
        reg.add(b"two")
        assert reg.exists(b"one")
        assert reg.entries() == [b"one", b"two"]
        reg.remove(b"one")
        assert not reg.exists(b"one")
        assert reg.count == 1

    def test_empty_data_rejected(self):
        with pytest.raises(RegistryError):
            RegistryApp().add(b"")

    def test_duplicate_rejected(self):
        reg = RegistryApp()
        reg.add(b"one")
        with pytest.raises(RegistryError):
            reg.add(b"one")

    def test_remove_missing_rejected(self):
        with pytest.raises(RegistryError):
            RegistryApp().remove(b"nope")

    def test_to_dict(self):
        reg = RegistryApp()
        reg.add(b"\x01\x02")
        assert reg.to_dict() == {"count": 1, "entries": ["0102"]}


# ══════════════════════════════════════════════════════════════════════
#  STAKING
# ══════════════════════════════════════════════════════════════════════


class TestStakingLedger:

    def test_lock_ids_start_at_one_per_owner(self):
        st = StakingLedger()
        st.deposit(APPLICANT, 500)
        st.deposit(CHALLENGER, 500)
        assert st.lock(APPLICANT, 100, TimeUnit.SECONDS, 10, CURATION_ADDR) == 1
        assert st.lock(APPLICANT, 100, TimeUnit.SECONDS, 10, CURATION_ADDR) == 2
        assert st.lock(CHALLENGER, 100, TimeUnit.SECONDS, 10, CURATION_ADDR) == 1
        assert st.balance_of(APPLICANT) == 300
        assert st.locked_balance_of(APPLICANT) == 200

    def test_get_lock(self):
        st = StakingLedger()
        st.deposit(APPLICANT, 500)
        lock_id = st.lock(APPLICANT, 150, TimeUnit.BLOCKS, 99, CURATION_ADDR, b"meta")
        lock = st.get_lock(APPLICANT, lock_id)
        assert lock.amount == 150
        assert lock.time_unit == TimeUnit.BLOCKS
        assert lock.unlock_time == 99
        assert lock.unlocker == CURATION_ADDR
        assert lock.metadata == b"meta"
        assert st.get_lock(APPLICANT, 42) is None

    def test_lock_insufficient_balance(self):
        st = StakingLedger()
        st.deposit(APPLICANT, 50)
        with pytest.raises(InsufficientBalanceError):
            st.lock(APPLICANT, 100, TimeUnit.SECONDS, 10, CURATION_ADDR)

    def test_unlock_returns_amount(self):
        st = StakingLedger()
        st.deposit(APPLICANT, 500)
        lock_id = st.lock(APPLICANT, 100, TimeUnit.SECONDS, 10, CURATION_ADDR)
        st.unlock(APPLICANT, CURATION_ADDR, lock_id)
        assert st.balance_of(APPLICANT) == 500
        assert st.get_lock(APPLICANT, lock_id) is None

    def test_unlock_by_other_fails(self):
        st = StakingLedger()
        st.deposit(APPLICANT, 500)
        lock_id = st.lock(APPLICANT, 100, TimeUnit.SECONDS, 10, CURATION_ADDR)
        with pytest.raises(UnauthorizedUnlockError):
            st.unlock(APPLICANT, CHALLENGER, lock_id)

    def test_unlock_unknown_fails(self):
        with pytest.raises(LockNotFoundError):
            StakingLedger().unlock(APPLICANT, CURATION_ADDR, 1)

    def test_move_tokens(self):
        st = StakingLedger()
        st.deposit(APPLICANT, 100)
        st.move_tokens(APPLICANT, CHALLENGER, 60)
        assert st.balance_of(APPLICANT) == 40
        assert st.balance_of(CHALLENGER) == 60
        with pytest.raises(InsufficientBalanceError):
            st.move_tokens(APPLICANT, CHALLENGER, 41)

    def test_invalid_amounts(self):
        st = StakingLedger()
        with pytest.raises(StakingError):
            st.deposit(APPLICANT, 0)
        with pytest.raises(StakingError):
            st.move_tokens(APPLICANT, CHALLENGER, -1)

    def test_events(self):
        st = StakingLedger()
        st.deposit(APPLICANT, 100)
        st.move_tokens(APPLICANT, CHALLENGER, 10)
        kinds = [e.kind for e in st.events]
        assert kinds == ["Deposit", "MovedTokens"]
        assert st.events[-1].to_dict()["to"] == CHALLENGER


# ══════════════════════════════════════════════════════════════════════
#  VOTING
# ══════════════════════════════════════════════════════════════════════


class TestStakeVoting:

    def test_vote_ids_start_at_one(self):
        v = StakeVoting()
        assert v.new_vote() == 1
        assert v.new_vote() == 2

    def test_result_and_winning_stake(self):
        v = StakeVoting()
        vid = v.new_vote()
        v.cast_vote(vid, VOTER_A, True, 50)
        v.cast_vote(vid, VOTER_B, False, 20)
        outcome = v.close_vote(vid)
        assert outcome.closed is True
        assert outcome.result is True
        assert outcome.winning_total_stake == 50
        assert outcome.total_stake == 70

    def test_tie_rejects_challenge(self):
        v = StakeVoting()
        vid = v.new_vote()
        v.cast_vote(vid, VOTER_A, True, 30)
        v.cast_vote(vid, VOTER_B, False, 30)
        outcome = v.close_vote(vid)
        assert outcome.result is False
        assert outcome.winning_total_stake == 30

    def test_voter_winning_stake(self):
        v = StakeVoting()
        vid = v.new_vote()
        v.cast_vote(vid, VOTER_A, True, 50)
        v.cast_vote(vid, VOTER_B, False, 20)
        assert v.get_voter_winning_stake(vid, VOTER_A) == 0
        v.close_vote(vid)
        assert v.get_voter_winning_stake(vid, VOTER_A) == 50
        assert v.get_voter_winning_stake(vid, VOTER_B) == 0
        assert v.get_voter_winning_stake(vid, VOTER_C) == 0

    def test_double_vote_fails(self):
        v = StakeVoting()
        vid = v.new_vote()
        v.cast_vote(vid, VOTER_A, True, 10)
        with pytest.raises(AlreadyVotedError):
            v.cast_vote(vid, VOTER_A, False, 10)

    def test_vote_after_close_fails(self):
        v = StakeVoting()
        vid = v.new_vote()
        v.close_vote(vid)
        with pytest.raises(VotingClosedError):
            v.cast_vote(vid, VOTER_A, True, 10)

    def test_zero_stake_fails(self):
        v = StakeVoting()
        vid = v.new_vote()
        with pytest.raises(VotingError):
            v.cast_vote(vid, VOTER_A, True, 0)

    def test_ballots_and_has_voted(self):
        v = StakeVoting()
        vid = v.new_vote()
        assert v.get_ballots(vid) == []
        v.cast_vote(vid, VOTER_A, True, 50)
        v.cast_vote(vid, VOTER_B, False, 20)
        assert v.has_voted(vid, VOTER_A)
        assert not v.has_voted(vid, VOTER_C)
        ballots = {b.voter: (b.supports, b.stake) for b in v.get_ballots(vid)}
        assert ballots == {VOTER_A: (True, 50), VOTER_B: (False, 20)}

    def test_unknown_vote(self):
        with pytest.raises(VoteNotFoundError):
            StakeVoting().get_vote(7)

    def test_execute_runs_script_once(self):
        calls = []
        v = StakeVoting()
        vid = v.new_vote(script=lambda: calls.append("ran") or "done")
        with pytest.raises(VotingClosedError):
            v.execute(vid)
        v.close_vote(vid)
        assert v.execute(vid) == "done"
        with pytest.raises(AlreadyExecutedError):
            v.execute(vid)
        assert calls == ["ran"]

    def test_failed_script_can_be_retried(self):
        attempts = []

        def script():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("not yet")
            return "ok"

        v = StakeVoting()
        vid = v.new_vote(script=script)
        v.close_vote(vid)
        with pytest.raises(RuntimeError):
            v.execute(vid)
        assert v.execute(vid) == "ok"


class TestRoleAccessControl:

    def test_grant_and_revoke(self):
        acl = RoleAccessControl()
        assert not acl.has_permission(ADMIN, CHANGE_PARAMS_ROLE)
        acl.grant(ADMIN, CHANGE_PARAMS_ROLE)
        assert acl.has_permission(ADMIN, CHANGE_PARAMS_ROLE)
        assert not acl.has_permission(ADMIN, CHANGE_VOTING_APP_ROLE)
        acl.revoke(ADMIN, CHANGE_PARAMS_ROLE)
        assert not acl.has_permission(ADMIN, CHANGE_PARAMS_ROLE)


# ══════════════════════════════════════════════════════════════════════
#  END-TO-END
# ══════════════════════════════════════════════════════════════════════


class TestEndToEnd:
    """Coordinator with real registry, staking and voting."""

    def _challenge_and_vote(self, yea, nay, extra_yea=0):
        curation, registry, staking, voting, clock = make_system()
        app_lock = lock_deposit(staking, clock, APPLICANT)
        entry_id = curation.new_application("https://example.org", app_lock, APPLICANT)
        ch_lock = lock_deposit(staking, clock, CHALLENGER)
        ch = curation.challenge_application(entry_id, ch_lock, CHALLENGER)

        voting.cast_vote(ch.vote_id, VOTER_A, True, yea)
        voting.cast_vote(ch.vote_id, VOTER_B, False, nay)
        if extra_yea:
            voting.cast_vote(ch.vote_id, VOTER_C, True, extra_yea)
        voting.close_vote(ch.vote_id)
        receipt = voting.execute(ch.vote_id)
        return curation, registry, staking, voting, entry_id, ch.vote_id, receipt

    def test_challenge_accepted(self):
        curation, registry, staking, _, entry_id, vote_id, receipt = (
            self._challenge_and_vote(50, 20, extra_yea=20)
        )
        assert receipt.accepted is True
        assert not registry.exists(b"https://example.org")
        assert curation.get_application(entry_id) is None

        assert staking.balance_of(APPLICANT) == FUNDS - MIN_DEPOSIT
        assert staking.balance_of(CHALLENGER) == FUNDS + 60
        assert staking.balance_of(CURATION_ADDR) == 40
        assert staking.locked_balance_of(APPLICANT) == 0
        assert staking.locked_balance_of(CHALLENGER) == 0

        assert curation.claim_reward(vote_id, VOTER_A) == 40 * 50 // 70
        assert curation.claim_reward(vote_id, VOTER_C) == 40 * 20 // 70
        with pytest.raises(NoRewardError):
            curation.claim_reward(vote_id, VOTER_B)
        assert staking.balance_of(CURATION_ADDR) == 40 - 28 - 11

    def test_challenge_rejected(self):
        curation, registry, staking, _, entry_id, vote_id, receipt = (
            self._challenge_and_vote(20, 50)
        )
        assert receipt.accepted is False
        assert registry.exists(b"https://example.org")
        assert curation.get_application(entry_id).registered is True

        assert staking.balance_of(APPLICANT) == FUNDS + 60
        assert staking.balance_of(CHALLENGER) == FUNDS - MIN_DEPOSIT
        assert curation.claim_reward(vote_id, VOTER_B) == 40

    def test_unchallenged_registration_and_withdrawal(self):
        curation, registry, staking, _, clock = make_system()
        lock_id = lock_deposit(staking, clock, APPLICANT)
        entry_id = curation.new_application(b"entry", lock_id, APPLICANT)
        assert staking.balance_of(APPLICANT) == FUNDS - MIN_DEPOSIT

        clock.advance(APPLY_STAGE_LEN)
        curation.register_unchallenged_application(entry_id)
        assert registry.exists(b"entry")

        curation.remove_application(entry_id, APPLICANT)
        assert not registry.exists(b"entry")
        assert staking.balance_of(APPLICANT) == FUNDS
        assert staking.get_lock(APPLICANT, lock_id) is None

    def test_full_dispensation(self):
        curation, registry, staking, voting, clock = make_system(dispensation_pct=PCT_BASE)
        entry_id = curation.new_application("x", lock_deposit(staking, clock, APPLICANT), APPLICANT)
        ch = curation.challenge_application(entry_id, lock_deposit(staking, clock, CHALLENGER), CHALLENGER)
        voting.cast_vote(ch.vote_id, VOTER_A, True, 10)
        voting.close_vote(ch.vote_id)
        curation.resolve_challenge(entry_id)
        assert staking.balance_of(CHALLENGER) == FUNDS + MIN_DEPOSIT
        assert staking.balance_of(CURATION_ADDR) == 0
        assert curation.claim_reward(ch.vote_id, VOTER_A) == 0

    def test_rechallenge_of_surviving_entry_touches_and_removes(self):
        curation, registry, staking, voting, entry_id, _, receipt = (
            self._challenge_and_vote(20, 50)
        )
        assert receipt.accepted is False
        clock = curation.clock
        # the released deposit is locked again elsewhere
        staking.lock(
            APPLICANT, staking.balance_of(APPLICANT), TimeUnit.SECONDS,
            clock.now() + APPLY_STAGE_LEN * 2, ADMIN,
        )
        ch_lock = lock_deposit(staking, clock, CHALLENGER)

        assert curation.challenge_application(entry_id, ch_lock, CHALLENGER) is None

        assert curation.get_application(entry_id) is None
        assert curation.get_challenge(entry_id) is None
        assert not registry.exists(b"https://example.org")
        assert not curation.is_lock_used(CHALLENGER, ch_lock)
        assert staking.get_lock(CHALLENGER, ch_lock) is not None
        assert staking.locked_balance_of(APPLICANT) == FUNDS + 60
        assert staking.balance_of(APPLICANT) == 0

    def test_resolution_after_voting_app_replaced(self):
        curation, registry, staking, old_voting, _, old_vote_id, receipt = (
            self._challenge_and_vote(50, 20)
        )
        assert receipt.accepted is True
        clock = curation.clock
        new_voting = StakeVoting()
        curation.set_voting_app(new_voting, ADMIN)

        entry_id = curation.new_application(
            "https://example.net", lock_deposit(staking, clock, APPLICANT), APPLICANT,
        )
        ch = curation.challenge_application(
            entry_id, lock_deposit(staking, clock, CHALLENGER), CHALLENGER,
        )
        assert ch.vote_id == old_vote_id
        new_voting.cast_vote(ch.vote_id, VOTER_B, False, 30)
        new_voting.close_vote(ch.vote_id)

        with pytest.raises(AlreadyExecutedError):
            old_voting.execute(old_vote_id)
        second = new_voting.execute(ch.vote_id)
        assert second.accepted is False
        assert registry.exists(b"https://example.net")

        assert curation.claim_reward(ch.vote_id, VOTER_B) == 40
        assert curation.claim_reward(old_vote_id, VOTER_A, voting=old_voting) == 40
        assert curation.get_vote_snapshot(old_vote_id, voting=old_voting).accepted is True
        assert curation.get_vote_snapshot(ch.vote_id).accepted is False
        assert len(curation.to_dict()["rewardPools"]) == 2
