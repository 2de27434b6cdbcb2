"""
里程碑投票状态机测试
"""

import random
from datetime import datetime, timedelta

import pytest

from fundflow.core.exceptions import ConflictError
from fundflow.models.milestone import Milestone

NOW = datetime(2026, 3, 1, 12, 0, 0)
DEADLINE = NOW + timedelta(days=7)
AFTER_DEADLINE = DEADLINE + timedelta(seconds=1)


def voting_milestone(**overrides) -> Milestone:
    values = dict(
        campaign_id=1,
        milestone_index=0,
        title="Beta release",
        description="Ship the public beta",
        target_amount=500.0,
        start_date=NOW - timedelta(days=30),
        expected_completion_date=NOW,
        voting_deadline=DEADLINE,
        status="voting"
    )
    values.update(overrides)
    return Milestone(**values)


class TestAddVote:

    def test_new_milestone_has_empty_tally(self):
        milestone = voting_milestone()
        assert milestone.votes_for == 0
        assert milestone.votes_against == 0
        assert milestone.total_voting_power == 0
        assert milestone.approval_percentage == 0.0
        assert milestone.required_approval_percentage == 50.0

    def test_weighted_votes_from_several_investors(self):
        milestone = voting_milestone()
        milestone.add_vote("alice", 300.0, "for", now=NOW)
        milestone.add_vote("bob", 100.0, "against", now=NOW)
        milestone.add_vote("carol", 100.0, "against", now=NOW)

        assert milestone.votes_for == 1
        assert milestone.votes_against == 2
        assert milestone.voting_power_for == 300.0
        assert milestone.voting_power_against == 200.0
        assert milestone.total_voting_power == 500.0
        assert milestone.approval_percentage == pytest.approx(60.0)
        assert milestone.voting_progress == 3

    def test_changing_vote_replaces_previous_contribution(self):
        milestone = voting_milestone()
        milestone.add_vote("alice", 250.0, "for", now=NOW)
        milestone.add_vote("alice", 250.0, "against", now=NOW)
        milestone.add_vote("alice", 250.0, "for", now=NOW)

        assert len(milestone.votes) == 1
        assert milestone.votes_for == 1
        assert milestone.votes_against == 0
        assert milestone.voting_power_for == 250.0
        assert milestone.voting_power_against == 0.0
        assert milestone.total_voting_power == 250.0

    def test_revote_with_new_power_adjusts_total(self):
        milestone = voting_milestone()
        milestone.add_vote("alice", 100.0, "for", now=NOW)
        milestone.add_vote("alice", 400.0, "against", now=NOW)

        assert milestone.voting_power_for == 0.0
        assert milestone.voting_power_against == 400.0
        assert milestone.total_voting_power == 400.0
        assert milestone.find_vote("alice").investment_amount == 400.0

    def test_random_vote_sequences_only_count_latest_votes(self):
        rng = random.Random(20261019)
        investors = ["alice", "bob", "carol", "dave"]
        for _ in range(50):
            milestone = voting_milestone()
            latest = {}
            for _ in range(rng.randint(1, 25)):
                investor = rng.choice(investors)
                power = float(rng.randint(1, 1000))
                choice = rng.choice(["for", "against"])
                milestone.add_vote(investor, power, choice, now=NOW)
                latest[investor] = (power, choice)

            expected_for = sum(p for p, c in latest.values() if c == "for")
            expected_against = sum(p for p, c in latest.values() if c == "against")
            assert milestone.votes_for == sum(1 for _, c in latest.values() if c == "for")
            assert milestone.votes_against == sum(1 for _, c in latest.values() if c == "against")
            assert milestone.voting_power_for == pytest.approx(expected_for)
            assert milestone.voting_power_against == pytest.approx(expected_against)
            assert milestone.voting_power_for + milestone.voting_power_against <= milestone.total_voting_power + 1e-9
            assert len(milestone.votes) == len(latest)

    def test_vote_after_deadline_is_refused(self):
        milestone = voting_milestone()
        with pytest.raises(ConflictError):
            milestone.add_vote("alice", 100.0, "for", now=AFTER_DEADLINE)
        assert milestone.total_voting_power == 0

    def test_vote_outside_voting_phase_is_refused(self):
        milestone = voting_milestone(status="pending")
        with pytest.raises(ConflictError):
            milestone.add_vote("alice", 100.0, "for", now=NOW)

    def test_invalid_choice_is_rejected(self):
        milestone = voting_milestone()
        with pytest.raises(ValueError):
            milestone.add_vote("alice", 100.0, "abstain", now=NOW)


class TestApproval:

    def test_no_transition_before_deadline(self):
        milestone = voting_milestone()
        milestone.add_vote("alice", 100.0, "for", now=NOW)

        assert milestone.check_approval_status(now=DEADLINE) is False
        assert milestone.status == "voting"

    def test_approved_with_weighted_majority(self):
        milestone = voting_milestone(total_voting_power=100.0, voting_power_for=60.0,
                                     voting_power_against=40.0, required_approval_percentage=50.0)

        assert milestone.check_approval_status(now=AFTER_DEADLINE) is True
        assert milestone.status == "approved"

    def test_weighted_power_decides_not_head_count(self):
        milestone = voting_milestone()
        milestone.add_vote("whale", 900.0, "against", now=NOW)
        milestone.add_vote("alice", 10.0, "for", now=NOW)
        milestone.add_vote("bob", 10.0, "for", now=NOW)

        milestone.check_approval_status(now=AFTER_DEADLINE)
        assert milestone.status == "rejected"

    def test_threshold_is_inclusive(self):
        milestone = voting_milestone(required_approval_percentage=60.0)
        milestone.add_vote("alice", 60.0, "for", now=NOW)
        milestone.add_vote("bob", 40.0, "against", now=NOW)

        milestone.check_approval_status(now=AFTER_DEADLINE)
        assert milestone.status == "approved"

    def test_without_quorum_vote_stays_open(self):
        milestone = voting_milestone(minimum_voting_power=1000.0)
        milestone.add_vote("alice", 100.0, "for", now=NOW)

        assert milestone.check_approval_status(now=AFTER_DEADLINE) is False
        assert milestone.status == "voting"

    def test_no_votes_and_no_quorum_requirement_rejects(self):
        milestone = voting_milestone()
        milestone.check_approval_status(now=AFTER_DEADLINE)
        assert milestone.status == "rejected"

    def test_only_voting_milestones_are_resolved(self):
        milestone = voting_milestone(status="pending")
        assert milestone.check_approval_status(now=AFTER_DEADLINE) is False
        assert milestone.status == "pending"


class TestSubmissionAndRelease:

    def test_submit_for_voting_attaches_evidence(self):
        milestone = voting_milestone(status="in-progress")
        evidence = [{"type": "link", "url": "https://example.com/demo", "title": "Demo"}]
        milestone.submit_for_voting(evidence, "Beta is live", now=NOW)

        assert milestone.status == "voting"
        assert milestone.submitted_at == NOW
        assert milestone.submission_notes == "Beta is live"
        assert milestone.evidence[0]["url"] == "https://example.com/demo"
        assert milestone.evidence[0]["uploaded_at"] == NOW.isoformat()

    def test_release_funds_completes_milestone(self):
        milestone = voting_milestone(status="approved")
        milestone.release_funds(500.0, "0xabc", now=AFTER_DEADLINE)

        assert milestone.funds_released is True
        assert milestone.status == "completed"
        assert milestone.is_completed is True
        assert milestone.released_amount == 500.0
        assert milestone.release_transaction_id == "0xabc"
        assert milestone.actual_completion_date == AFTER_DEADLINE

    def test_released_milestone_stays_completed(self):
        milestone = voting_milestone(status="approved")
        milestone.release_funds(500.0, "0xabc", now=AFTER_DEADLINE)

        with pytest.raises(ConflictError):
            milestone.submit_for_voting([], now=AFTER_DEADLINE)
        assert milestone.check_approval_status(now=AFTER_DEADLINE) is False
        assert milestone.status == "completed"

    def test_voting_time_remaining_in_whole_days(self):
        milestone = voting_milestone()
        assert milestone.voting_time_remaining(now=NOW) == 7
        assert milestone.voting_time_remaining(now=AFTER_DEADLINE) == 0


class TestVotingWindow:

    def test_late_submission_opens_a_fresh_window(self):
        milestone = voting_milestone(status="in-progress", voting_deadline=NOW, voting_duration_days=5)
        submitted_at = NOW + timedelta(days=30)
        milestone.submit_for_voting([], now=submitted_at)

        assert milestone.voting_deadline == submitted_at + timedelta(days=5)
        milestone.add_vote("alice", 100.0, "for", now=submitted_at + timedelta(days=1))
        assert milestone.check_approval_status(now=submitted_at + timedelta(days=4)) is False

        milestone.check_approval_status(now=submitted_at + timedelta(days=5, seconds=1))
        assert milestone.status == "approved"

    def test_resubmission_after_rejection_starts_from_zero(self):
        milestone = voting_milestone()
        milestone.add_vote("alice", 300.0, "against", now=NOW)
        milestone.add_vote("bob", 100.0, "for", now=NOW)
        milestone.check_approval_status(now=AFTER_DEADLINE)
        assert milestone.status == "rejected"

        resubmitted_at = AFTER_DEADLINE + timedelta(days=10)
        milestone.submit_for_voting([{"type": "video", "url": "https://example.com/v2", "title": "Retake"}],
                                    "Fixed the issues", now=resubmitted_at)

        assert milestone.status == "voting"
        assert milestone.votes == []
        assert (milestone.votes_for, milestone.votes_against) == (0, 0)
        assert milestone.total_voting_power == 0.0
        assert milestone.voting_power_for == 0.0
        assert milestone.voting_power_against == 0.0
        assert milestone.voting_deadline == resubmitted_at + timedelta(days=7)

        milestone.add_vote("alice", 300.0, "for", now=resubmitted_at)
        assert milestone.approval_percentage == 100.0

    @pytest.mark.parametrize("status", ["voting", "approved"])
    def test_open_or_approved_milestone_cannot_be_resubmitted(self, status):
        milestone = voting_milestone(status=status)
        with pytest.raises(ConflictError):
            milestone.submit_for_voting([], now=NOW)
        assert milestone.voting_deadline == DEADLINE


class TestAdjustVotingPower:

    def test_lower_power_reweights_existing_vote(self):
        milestone = voting_milestone()
        milestone.add_vote("alice", 500.0, "for", now=NOW)
        milestone.add_vote("bob", 500.0, "against", now=NOW)

        assert milestone.adjust_voting_power("alice", 200.0) is True
        assert milestone.voting_power_for == 200.0
        assert milestone.total_voting_power == 700.0
        assert milestone.votes_for == 1
        assert milestone.find_vote("alice").investment_amount == 200.0

    def test_zero_power_withdraws_the_vote(self):
        milestone = voting_milestone()
        milestone.add_vote("alice", 500.0, "for", now=NOW)
        milestone.add_vote("bob", 100.0, "against", now=NOW)

        milestone.adjust_voting_power("alice", 0.0)

        assert milestone.find_vote("alice") is None
        assert milestone.votes_for == 0
        assert milestone.voting_power_for == 0.0
        assert milestone.total_voting_power == 100.0

    def test_non_voter_is_ignored(self):
        milestone = voting_milestone()
        assert milestone.adjust_voting_power("carol", 0.0) is False
        assert milestone.total_voting_power == 0.0
