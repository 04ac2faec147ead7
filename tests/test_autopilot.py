"""Tests for the AvoidanceHeuristic module."""

import pytest

from conftest import SequenceRandom, ZeroRandom, make_pulse
from trackweaver.config import AutopilotConfig
from trackweaver.game.autopilot import AvoidanceHeuristic


class TestAvoidanceHeuristic:
    """Tests for lane selection around upcoming hazards."""

    @pytest.fixture
    def heuristic(self):
        return AvoidanceHeuristic(rng=ZeroRandom())

    def test_no_hazards_no_change(self, heuristic):
        """An empty track never triggers a decision."""
        assert heuristic.decide(0.0, 0, [], 1.0) is None
        assert heuristic.last_decision_time is None

    def test_hazard_outside_conflict_range_ignored(self, heuristic):
        """A hazard in the car's lane beyond 8 units is not blocking."""
        pulses = [make_pulse(10.0, 0)]
        assert heuristic.decide(0.0, 0, pulses, 1.0) is None

    def test_hazard_in_other_lane_ignored(self, heuristic):
        """A close hazard in a different lane is not blocking."""
        pulses = [make_pulse(5.0, 1)]
        assert heuristic.decide(0.0, 0, pulses, 1.0) is None

    def test_upcoming_window(self, heuristic):
        """Only hazards strictly ahead and within the 25-unit lookahead count."""
        pulses = [
            make_pulse(100.0, 0),   # exactly at the car
            make_pulse(99.0, 0),    # behind
            make_pulse(110.0, 1),
            make_pulse(125.0, -1),  # exactly at the lookahead edge
            make_pulse(130.0, 0),
        ]
        upcoming = heuristic.upcoming(pulses, 100.0)

        assert upcoming == [pulses[2]]

    def test_blocking_hazard_triggers_dodge(self, heuristic):
        """A blocking hazard in lane 0 with clear side lanes moves the car."""
        pulses = [make_pulse(5.0, 0)]
        lane = heuristic.decide(0.0, 0, pulses, 1.0)

        assert lane in (-1, 1)
        assert heuristic.last_decision_time == 1.0

    def test_equal_scores_pick_first_lane(self, heuristic):
        """With randomness held at 0, identical side lanes resolve to the first (-1)."""
        pulses = [make_pulse(5.0, 0)]
        assert heuristic.decide(0.0, 0, pulses, 1.0) == -1

    def test_farther_obstacle_wins(self, heuristic):
        """The lane whose nearest hazard is farther away scores higher."""
        pulses = [make_pulse(5.0, 0), make_pulse(15.0, -1)]
        assert heuristic.decide(0.0, 0, pulses, 1.0) == 1

    def test_score_components(self, heuristic):
        """Scores follow nearest - pressure - change cost + randomness."""
        pulses = [make_pulse(5.0, 0), make_pulse(15.0, -1), make_pulse(20.0, -1)]
        upcoming = heuristic.upcoming(pulses, 0.0)

        left = heuristic.score_lane(-1, 0, upcoming, 0.0)
        right = heuristic.score_lane(1, 0, upcoming, 0.0)

        assert left.nearest_obstacle == 15.0
        assert left.obstacle_pressure == pytest.approx(1 / 15 + 1 / 20)
        assert left.lane_change_cost == pytest.approx(0.35)
        assert left.randomness == 0.0
        assert left.score == pytest.approx(15.0 - (1 / 15 + 1 / 20) - 0.35)

        assert right.nearest_obstacle == 25.0
        assert right.obstacle_pressure == 0.0
        assert right.score == pytest.approx(25.0 - 0.35)

    def test_pressure_floor_for_near_hazards(self, heuristic):
        """Hazards closer than 1 unit contribute at most 1 to pressure."""
        upcoming = [make_pulse(0.5, 1)]
        score = heuristic.score_lane(1, 0, upcoming, 0.0)

        assert score.obstacle_pressure == 1.0

    def test_two_lane_jump_costs_more(self, heuristic):
        """From lane 1, moving to 0 beats moving to -1 when both are clear."""
        pulses = [make_pulse(5.0, 1)]
        assert heuristic.decide(0.0, 1, pulses, 1.0) == 0

    def test_no_safe_lane_holds(self, heuristic):
        """If every other lane is also blocked, stay put and keep no timestamp."""
        pulses = [make_pulse(5.0, 0), make_pulse(6.0, -1), make_pulse(7.0, 1)]

        assert heuristic.decide(0.0, 0, pulses, 1.0) is None
        assert heuristic.last_decision_time is None

    def test_partially_blocked_side(self, heuristic):
        """Only lanes clear within the conflict range are candidates."""
        pulses = [make_pulse(5.0, 0), make_pulse(7.0, -1)]
        assert heuristic.safe_lanes(heuristic.upcoming(pulses, 0.0), 0, 0.0) == [1]
        assert heuristic.decide(0.0, 0, pulses, 1.0) == 1

    def test_cooldown_blocks_second_decision(self, heuristic):
        """Two blocking events 0.2s apart cause a single lane change."""
        first = heuristic.decide(0.0, 0, [make_pulse(5.0, 0)], 1.0)
        second = heuristic.decide(10.0, first, [make_pulse(15.0, first)], 1.2)

        assert first == -1
        assert second is None
        assert heuristic.last_decision_time == 1.0

    def test_cooldown_expires(self, heuristic):
        """After 0.4s the heuristic may decide again."""
        heuristic.decide(0.0, 0, [make_pulse(5.0, 0)], 1.0)
        lane = heuristic.decide(20.0, -1, [make_pulse(25.0, -1)], 1.5)

        assert lane == 0
        assert heuristic.last_decision_time == 1.5

    def test_reset_clears_cooldown(self, heuristic):
        """reset() forgets the last decision."""
        heuristic.decide(0.0, 0, [make_pulse(5.0, 0)], 1.0)
        heuristic.reset()

        assert not heuristic.in_cooldown(1.1)

    def test_randomness_breaks_ties(self):
        """The injected draw decides between otherwise equal lanes."""
        heuristic = AvoidanceHeuristic(rng=SequenceRandom([0.0, 0.9]))
        pulses = [make_pulse(5.0, 0)]

        assert heuristic.decide(0.0, 0, pulses, 1.0) == 1

    def test_randomness_is_scaled(self):
        """Draws in [0, 1) scale to [0, 0.15)."""
        heuristic = AvoidanceHeuristic(rng=SequenceRandom([0.5]))
        score = heuristic.score_lane(1, 0, [], 0.0)

        assert score.randomness == pytest.approx(0.075)

    def test_seeded_default_rng_is_reproducible(self):
        """Two heuristics with the same seed make the same choices."""
        pulses = [make_pulse(5.0, 0)]
        a = AvoidanceHeuristic(seed=7)
        b = AvoidanceHeuristic(seed=7)

        assert a.decide(0.0, 0, pulses, 1.0) == b.decide(0.0, 0, pulses, 1.0)

    def test_custom_config(self):
        """Conflict range and lookahead come from the config."""
        heuristic = AvoidanceHeuristic(
            config=AutopilotConfig(lookahead=50.0, conflict_range=20.0),
            rng=ZeroRandom(),
        )
        assert heuristic.decide(0.0, 0, [make_pulse(15.0, 0)], 1.0) == -1
