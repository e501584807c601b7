"""Tests for building action timelines from decoded replays."""

from __future__ import annotations

import pytest

from clicksynth.config import ReplayOptions
from clicksynth.errors import TimelineError
from clicksynth.normalize import (
    DEFAULT_FPS,
    MAX_FRAME_INDEX,
    build_timeline,
    collapse_repeated_states,
    resolve_fps,
)
from clicksynth.parser.types import RawReplay, event
from clicksynth.types import ActionKind, Button, Player
from fixtures.builders import create_test_action


def _raw(events, fps=240.0, **kwargs) -> RawReplay:
    return RawReplay(format="test", events=list(events), fps=fps, **kwargs)


class TestResolveFps:
    """Test FPS selection."""

    def test_override_wins(self):
        raw = _raw([event(True, 10)], fps=60.0)
        assert resolve_fps(raw, ReplayOptions(fps_override=120.0)) == 120.0

    def test_replay_fps(self):
        assert resolve_fps(_raw([], fps=360.0), ReplayOptions()) == 360.0

    def test_default_when_missing(self):
        assert resolve_fps(_raw([], fps=None), ReplayOptions()) == DEFAULT_FPS

    def test_invalid_fps_for_frame_replay(self):
        with pytest.raises(TimelineError):
            resolve_fps(_raw([event(True, 10)], fps=0.0), ReplayOptions())

    def test_invalid_fps_for_time_replay_falls_back(self):
        raw = _raw([event(True, time=0.5)], fps=float("nan"))
        assert resolve_fps(raw, ReplayOptions()) == DEFAULT_FPS


class TestBuildTimeline:
    """Test timeline construction."""

    def test_frames_become_seconds(self):
        timeline = build_timeline(_raw([event(True, 120), event(False, 240)]))

        assert [a.time for a in timeline] == [0.5, 1.0]
        assert [a.frame for a in timeline] == [120, 240]
        assert timeline.fps == 240.0
        assert timeline.duration == 1.0
        assert timeline.last_frame == 240
        assert timeline.format == "test"

    def test_time_events_keep_their_time(self):
        timeline = build_timeline(_raw([event(True, time=0.25)], fps=None))
        assert timeline.actions[0].time == 0.25
        assert timeline.last_frame == 60

    def test_sorting_is_stable(self):
        raw = _raw(
            [
                event(True, 20, player=Player.ONE),
                event(True, 10, player=Player.TWO),
                event(False, 20, player=Player.TWO),
            ]
        )
        timeline = build_timeline(raw)
        assert [(a.frame, a.player) for a in timeline] == [
            (10, Player.TWO),
            (20, Player.ONE),
            (20, Player.TWO),
        ]

    def test_per_player_times_are_non_decreasing(self):
        raw = _raw(
            [event(i % 2 == 0, frame, player=Player(1 + i % 2))
             for i, frame in enumerate([50, 10, 40, 5, 30, 60])]
        )
        timeline = build_timeline(raw)
        for player in Player:
            times = [a.time for a in timeline.for_player(player)]
            assert times == sorted(times)

    def test_unsorted_when_disabled(self):
        raw = _raw([event(True, 20), event(False, 25), event(True, 10)])
        timeline = build_timeline(raw, ReplayOptions(sort_actions=False))
        assert [a.frame for a in timeline] == [20, 25, 10]

    def test_implicit_player_and_swap(self):
        raw = _raw(
            [
                event(True, 10, player=None),
                event(True, 20, player=Player.TWO, button=Button.LEFT),
            ]
        )

        timeline = build_timeline(raw, ReplayOptions(implicit_player=Player.TWO))
        assert [a.player for a in timeline] == [Player.TWO, Player.TWO]

        swapped = build_timeline(raw, ReplayOptions(swap_players=True))
        assert [a.player for a in swapped] == [Player.TWO, Player.ONE]

    def test_inputs_before_last_death_are_discarded(self):
        raw = _raw(
            [event(True, 10), event(False, 20), event(True, 50), event(False, 60)],
            deaths=[15, 40],
        )
        timeline = build_timeline(raw)
        assert [a.frame for a in timeline] == [50, 60]

        kept = build_timeline(raw, ReplayOptions(discard_deaths=False))
        assert len(kept) == 4

    def test_repeated_states_are_collapsed(self):
        raw = _raw(
            [
                event(False, 5),
                event(True, 10),
                event(True, 12),
                event(False, 20),
                event(False, 22),
            ]
        )
        timeline = build_timeline(raw)
        assert [(a.frame, a.kind) for a in timeline] == [
            (10, ActionKind.PRESS),
            (20, ActionKind.RELEASE),
        ]

    def test_negative_frame_is_rejected(self):
        with pytest.raises(TimelineError, match="event 0"):
            build_timeline(_raw([event(True, -1)]))

    def test_frame_beyond_bound_is_rejected(self):
        with pytest.raises(TimelineError):
            build_timeline(_raw([event(True, MAX_FRAME_INDEX + 1)]))

    def test_non_finite_time_is_rejected(self):
        with pytest.raises(TimelineError):
            build_timeline(_raw([event(True, time=float("inf"))]))

    def test_empty_replay(self):
        timeline = build_timeline(_raw([]))
        assert len(timeline) == 0
        assert timeline.duration == 0.0
        assert timeline.last_frame == 0

    def test_counts(self):
        raw = _raw(
            [
                event(True, 10),
                event(False, 20),
                event(True, 15, player=Player.TWO),
            ]
        )
        assert build_timeline(raw).counts() == {
            "p1_press": 1,
            "p1_release": 1,
            "p2_press": 1,
            "p2_release": 0,
        }


class TestCollapseRepeatedStates:
    """Test per-button state tracking."""

    def test_buttons_are_tracked_separately(self):
        actions = [
            create_test_action(0.1, button=Button.LEFT),
            create_test_action(0.2, button=Button.RIGHT),
            create_test_action(0.3, button=Button.LEFT),
        ]
        kept = collapse_repeated_states(actions)
        assert [a.time for a in kept] == [0.1, 0.2]

    def test_players_are_tracked_separately(self):
        actions = [
            create_test_action(0.1, player=Player.ONE),
            create_test_action(0.1, player=Player.TWO),
        ]
        assert len(collapse_repeated_states(actions)) == 2
