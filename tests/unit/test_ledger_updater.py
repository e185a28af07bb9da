"""
Unit tests for the ledger updater.

Tests:
- Fair start placement
- Moving averages and status classification (incl. fast track)
- Fact streaks
- Stage advancement and its cap
- Validation and immutability
- Replay determinism
"""

import copy
import random

import pytest

from mastery_path.core.errors import ValidationError
from mastery_path.core.models import Attempt, FactStreak, Ledger, TableStat, TableStatus
from mastery_path.core.policy import Tier
from mastery_path.learning.ledger_updater import classify_status, replay, update


def apply_all(ledger, attempts, tier):
    for attempt in attempts:
        ledger = update(ledger, attempt, tier)
    return ledger


class TestFairStart:
    """Tests for advanced learner placement."""

    def test_fresh_advanced_learner_scenario(self, fresh_ledger, make_attempt):
        """A brand-new advanced learner jumps to stage 11 on the first attempt."""
        ledger = update(fresh_ledger, make_attempt(5, 3, True, 1800), Tier.ADVANCED)

        assert ledger.current_stage == 11
        stat = ledger.table_stats[5]
        assert stat.status == TableStatus.PRACTICING
        assert stat.accuracy == 100
        assert stat.avg_time == 1800
        assert stat.total_attempts == 1

    def test_basic_learner_stays_at_default_stage(self, fresh_ledger, make_attempt):
        ledger = update(fresh_ledger, make_attempt(5, 3), Tier.BASIC)
        assert ledger.current_stage == 2

    def test_advanced_learner_with_history_not_moved(self, make_attempt):
        ledger = Ledger(table_stats={2: TableStat(TableStatus.PRACTICING, 80, 3000, 4, 1)})
        ledger = update(ledger, make_attempt(2, 3), Tier.ADVANCED)
        assert ledger.current_stage == 2

    def test_advanced_learner_not_at_default_stage_not_moved(self, make_attempt):
        ledger = update(Ledger(current_stage=5), make_attempt(5, 3), Tier.ADVANCED)
        assert ledger.current_stage == 5

    def test_placement_applies_before_the_attempt(self, fresh_ledger, make_attempt):
        """Attempts on table 11 count toward the new stage immediately."""
        attempts = [make_attempt(11, m % 8 + 2, True, 1500) for m in range(10)]
        ledger = apply_all(fresh_ledger, attempts, Tier.ADVANCED)

        # Ten perfect, quick answers fast-track table 11 and advance the stage
        assert ledger.table_stats[11].status == TableStatus.MASTERED
        assert ledger.current_stage == 12


class TestTableStatistics:
    """Tests for moving averages."""

    def test_first_incorrect_attempt_sets_zero_accuracy(self, fresh_ledger, make_attempt):
        ledger = update(fresh_ledger, make_attempt(3, 4, False, 5000), Tier.BASIC)
        stat = ledger.table_stats[3]
        assert stat.accuracy == 0
        assert stat.avg_time == 5000
        assert stat.status == TableStatus.FOCUS_NEEDED

    def test_moving_averages(self, fresh_ledger, make_attempt):
        ledger = update(fresh_ledger, make_attempt(3, 4, True, 2000), Tier.BASIC)
        ledger = update(ledger, make_attempt(3, 5, False, 4000), Tier.BASIC)
        stat = ledger.table_stats[3]

        assert stat.avg_time == pytest.approx(2000 * 0.9 + 4000 * 0.1)
        assert stat.accuracy == pytest.approx(95.0)
        assert stat.total_attempts == 2

    def test_last_practiced_is_attempt_timestamp(self, fresh_ledger):
        attempt = Attempt(3, 4, True, 1000, timestamp=123456)
        ledger = update(fresh_ledger, attempt, Tier.BASIC)
        assert ledger.table_stats[3].last_practiced == 123456

    def test_total_attempts_increase_by_one_per_attempt(self, fresh_ledger, make_attempt):
        rand = random.Random(7)
        ledger = fresh_ledger
        expected = {}
        for _ in range(200):
            table = rand.randint(2, 6)
            before = ledger.stat_for(table).total_attempts
            ledger = update(
                ledger,
                make_attempt(table, rand.randint(1, 10), rand.random() < 0.7, rand.randint(500, 9000)),
                Tier.BASIC,
            )
            expected[table] = expected.get(table, 0) + 1
            assert ledger.table_stats[table].total_attempts == before + 1

        assert {t: s.total_attempts for t, s in ledger.table_stats.items()} == expected


class TestStatusClassification:
    """Tests for the status thresholds."""

    def test_fast_track_for_advanced_learner(self):
        stat = TableStat(accuracy=100, avg_time=2000, total_attempts=10)
        assert classify_status(stat, Tier.ADVANCED) == TableStatus.MASTERED

    def test_no_fast_track_for_basic_learner(self):
        stat = TableStat(accuracy=100, avg_time=2000, total_attempts=10)
        assert classify_status(stat, Tier.BASIC) == TableStatus.PRACTICING

    def test_fast_track_scenario_through_update(self, make_attempt):
        """Nine perfect answers plus a tenth: mastered before 21 attempts."""
        ledger = Ledger(
            current_stage=7,
            table_stats={7: TableStat(TableStatus.PRACTICING, 100, 2000, 9, 1)},
        )
        ledger = update(ledger, make_attempt(7, 4, True, 2000), Tier.ADVANCED)

        stat = ledger.table_stats[7]
        assert stat.accuracy == 100
        assert stat.avg_time == 2000
        assert stat.total_attempts == 10
        assert stat.status == TableStatus.MASTERED
        assert ledger.current_stage == 8

    def test_fast_track_needs_perfect_accuracy(self):
        stat = TableStat(accuracy=99.9, avg_time=2000, total_attempts=15)
        assert classify_status(stat, Tier.ADVANCED) == TableStatus.PRACTICING

    def test_standard_mastery_needs_more_than_twenty_attempts(self):
        assert classify_status(TableStat(accuracy=90, avg_time=3999, total_attempts=21), Tier.BASIC) == (
            TableStatus.MASTERED
        )
        assert classify_status(TableStat(accuracy=90, avg_time=3999, total_attempts=20), Tier.BASIC) == (
            TableStatus.PRACTICING
        )

    def test_standard_mastery_needs_speed(self):
        stat = TableStat(accuracy=95, avg_time=4000, total_attempts=30)
        assert classify_status(stat, Tier.BASIC) == TableStatus.PRACTICING

    @pytest.mark.parametrize(
        "accuracy,avg_time,expected",
        [
            (69.9, 3000, TableStatus.FOCUS_NEEDED),
            (85, 10001, TableStatus.FOCUS_NEEDED),
            (70, 10000, TableStatus.PRACTICING),
        ],
    )
    def test_focus_needed_thresholds(self, accuracy, avg_time, expected):
        stat = TableStat(accuracy=accuracy, avg_time=avg_time, total_attempts=5)
        assert classify_status(stat, Tier.BASIC) == expected

    def test_mastered_table_can_regress(self, make_attempt):
        """MASTERED is not a permanent badge: poor answers reclassify the table."""
        ledger = Ledger(
            current_stage=4,
            table_stats={3: TableStat(TableStatus.MASTERED, 95, 2000, 30, 1)},
        )

        ledger = update(ledger, make_attempt(3, 6, False, 2000), Tier.BASIC)
        assert ledger.table_stats[3].status == TableStatus.MASTERED  # 90.25

        ledger = update(ledger, make_attempt(3, 6, False, 2000), Tier.BASIC)
        assert ledger.table_stats[3].status == TableStatus.PRACTICING

        for _ in range(4):
            ledger = update(ledger, make_attempt(3, 6, False, 2000), Tier.BASIC)
        assert ledger.table_stats[3].accuracy < 70
        assert ledger.table_stats[3].status == TableStatus.FOCUS_NEEDED

        # The stage never moves backwards
        assert ledger.current_stage == 4


class TestFactStreaks:
    """Tests for per-fact streaks."""

    def test_fast_correct_increments(self, fresh_ledger, make_attempt):
        ledger = apply_all(fresh_ledger, [make_attempt(4, 6, True, 2999) for _ in range(3)], Tier.BASIC)
        assert ledger.fact_streaks[(4, 6)].streak == 3

    def test_incorrect_resets(self, make_attempt):
        ledger = Ledger(fact_streaks={(4, 6): FactStreak(streak=4, last_attempt=10)})
        ledger = update(ledger, make_attempt(4, 6, False, 1000), Tier.BASIC)
        assert ledger.fact_streaks[(4, 6)].streak == 0

    def test_slow_correct_resets(self, make_attempt):
        ledger = Ledger(fact_streaks={(4, 6): FactStreak(streak=4, last_attempt=10)})
        ledger = update(ledger, make_attempt(4, 6, True, 3000), Tier.BASIC)
        assert ledger.fact_streaks[(4, 6)].streak == 0

    def test_last_attempt_recorded(self, fresh_ledger):
        ledger = update(fresh_ledger, Attempt(4, 6, False, 4000, timestamp=999), Tier.BASIC)
        assert ledger.fact_streaks[(4, 6)] == FactStreak(streak=0, last_attempt=999)

    def test_other_facts_untouched(self, make_attempt):
        other = FactStreak(streak=7, last_attempt=10)
        ledger = Ledger(fact_streaks={(4, 7): other})
        ledger = update(ledger, make_attempt(4, 6, False), Tier.BASIC)
        assert ledger.fact_streaks[(4, 7)] == other


class TestStageAdvancement:
    """Tests for auto-advance."""

    def test_mastering_another_table_does_not_advance(self, make_attempt):
        ledger = Ledger(
            current_stage=5,
            table_stats={3: TableStat(TableStatus.MASTERED, 100, 1000, 30, 1)},
        )
        ledger = update(ledger, make_attempt(3, 3, True, 1000), Tier.BASIC)
        assert ledger.table_stats[3].status == TableStatus.MASTERED
        assert ledger.current_stage == 5

    @pytest.mark.parametrize("tier,max_stage", [(Tier.BASIC, 12), (Tier.ADVANCED, 20)])
    def test_stage_capped_at_tier_maximum(self, tier, max_stage, make_attempt):
        ledger = Ledger(
            current_stage=max_stage,
            table_stats={max_stage: TableStat(TableStatus.MASTERED, 100, 1000, 30, 1)},
        )
        ledger = update(ledger, make_attempt(max_stage, 3, True, 1000), tier)
        assert ledger.current_stage == max_stage

    @pytest.mark.parametrize("tier,max_stage", [(Tier.BASIC, 12), (Tier.ADVANCED, 20)])
    def test_stage_never_exceeds_cap_over_a_long_campaign(self, tier, max_stage, fresh_ledger, make_attempt):
        ledger = fresh_ledger
        stages = []
        for i in range(400):
            stage = ledger.current_stage
            ledger = update(ledger, make_attempt(stage, i % 8 + 2, True, 1000), tier)
            stages.append(ledger.current_stage)

        assert max(stages) == max_stage
        assert stages == sorted(stages)  # non-decreasing
        assert ledger.current_stage == max_stage

    def test_stage_above_tier_maximum_is_not_lowered(self, make_attempt):
        ledger = Ledger(current_stage=15)
        ledger = update(ledger, make_attempt(15, 3), Tier.BASIC)
        assert ledger.current_stage == 15


class TestValidation:
    """Tests for malformed attempts."""

    @pytest.mark.parametrize(
        "table,multiplier,time_taken_ms",
        [
            (0, 3, 1000),
            (-2, 3, 1000),
            (3, 0, 1000),
            (3, -1, 1000),
            (3, 4, -1),
            (True, 4, 1000),
            (3.5, 4, 1000),
            ("3", 4, 1000),
            (3, 4, float("nan")),
            (3, 4, float("inf")),
        ],
    )
    def test_rejects_malformed_attempt(self, table, multiplier, time_taken_ms):
        ledger = Ledger(current_stage=3)
        snapshot = copy.deepcopy(ledger)
        attempt = Attempt(table, multiplier, True, time_taken_ms, timestamp=1)

        with pytest.raises(ValidationError):
            update(ledger, attempt, Tier.BASIC)
        assert ledger == snapshot

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            update(Ledger(), Attempt(0, 1, True, 10, 1), Tier.BASIC)

    def test_zero_time_is_accepted(self, fresh_ledger):
        ledger = update(fresh_ledger, Attempt(2, 2, True, 0, 1), Tier.BASIC)
        assert ledger.table_stats[2].avg_time == 0


class TestImmutability:
    """The input ledger is never modified."""

    def test_update_leaves_input_untouched(self, make_attempt):
        ledger = Ledger(
            current_stage=3,
            table_stats={3: TableStat(TableStatus.PRACTICING, 80, 3000, 5, 1)},
            fact_streaks={(3, 4): FactStreak(2, 1)},
        )
        snapshot = copy.deepcopy(ledger)

        new = update(ledger, make_attempt(3, 4, True, 1000), Tier.BASIC)

        assert ledger == snapshot
        assert new is not ledger
        assert new.table_stats is not ledger.table_stats
        assert new.fact_streaks is not ledger.fact_streaks
        assert new.fact_streaks[(3, 4)].streak == 3

    def test_ledger_maps_are_read_only(self):
        ledger = Ledger(table_stats={3: TableStat()}, fact_streaks={(3, 4): FactStreak(2, 1)})

        with pytest.raises(TypeError):
            ledger.table_stats[4] = TableStat()
        with pytest.raises(TypeError):
            ledger.fact_streaks[(3, 5)] = FactStreak()

    def test_ledger_does_not_alias_caller_dicts(self):
        stats = {3: TableStat(TableStatus.PRACTICING, 80, 3000, 5, 1)}
        ledger = Ledger(current_stage=3, table_stats=stats)

        stats[4] = TableStat()
        assert 4 not in ledger.table_stats
        assert ledger == copy.deepcopy(ledger)

    def test_policy_constants_carried_over(self, make_attempt):
        ledger = Ledger.initial(target_accuracy=85, daily_goal_minutes=15)
        new = update(ledger, make_attempt(2, 2), Tier.BASIC)
        assert new.target_accuracy == 85
        assert new.daily_goal_minutes == 15


class TestReplay:
    """Rehydration must match incremental application exactly."""

    @pytest.fixture
    def history(self):
        rand = random.Random(99)
        attempts = []
        for i in range(300):
            attempts.append(
                Attempt(
                    table=rand.randint(2, 8),
                    multiplier=rand.randint(1, 10),
                    is_correct=rand.random() < 0.85,
                    time_taken_ms=rand.randint(600, 6000),
                    timestamp=1_000 + i * 10,
                )
            )
        return attempts

    @pytest.mark.parametrize("tier", [Tier.BASIC, Tier.ADVANCED])
    def test_replay_matches_incremental(self, history, tier):
        incremental = apply_all(Ledger.initial(), history, tier)
        assert replay(history, tier) == incremental

    def test_replay_is_idempotent(self, history):
        assert replay(history, Tier.BASIC) == replay(history, Tier.BASIC)

    def test_replay_orders_by_timestamp(self, history):
        shuffled = list(history)
        random.Random(3).shuffle(shuffled)
        assert replay(shuffled, Tier.ADVANCED) == replay(history, Tier.ADVANCED)

    def test_replay_discards_stored_statistics_but_keeps_policy(self, history):
        stored = Ledger(
            current_stage=9,
            table_stats={9: TableStat(TableStatus.MASTERED, 99, 900, 99, 1)},
            target_accuracy=95,
            daily_goal_minutes=20,
        )
        rebuilt = replay(history, Tier.BASIC, initial=stored)
        expected = apply_all(Ledger.initial(95, 20), history, Tier.BASIC)
        assert rebuilt == expected

    def test_empty_history_is_initial_state(self):
        assert replay([], Tier.BASIC) == Ledger.initial()
