"""Tests for the playback controller, driven by a virtual clock."""

import asyncio

import pytest

from territory_planner.config import settings
from territory_planner.core.planner import PlanningSession
from territory_planner.core.playback import (
    PLAYBACK_SPEEDS, AsyncioScheduler, ManualScheduler, PlaybackController, PlaybackState,
)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def session(roster):
    session = PlanningSession(base_claims={}, roster=roster, user_alliance_id="red")
    session.plan_claim(0)
    session.plan_claim(1)
    session.add_new_day()
    session.plan_claim(2)
    session.plan_clear(0)
    return session


@pytest.fixture
def controller(session, scheduler):
    return PlaybackController(session, scheduler, speed_ms=1000)


class TestManualScheduler:
    """Test the virtual clock itself."""

    def test_fires_in_order(self, scheduler):
        fired = []
        scheduler.call_later(2, lambda: fired.append("b"))
        scheduler.call_later(1, lambda: fired.append("a"))

        assert scheduler.advance(0.5) == 0
        assert scheduler.advance(2) == 2
        assert fired == ["a", "b"]
        assert scheduler.now == 2.5

    def test_cancelled_timer_does_not_fire(self, scheduler):
        fired = []
        handle = scheduler.call_later(1, lambda: fired.append(1))
        handle.cancel()
        handle.cancel()
        scheduler.advance(5)
        assert fired == []
        assert scheduler.pending == 0


class TestTransport:
    """Test play, pause, stop and the end of playback."""

    def test_initial_state(self, controller):
        assert controller.cursor == -1
        assert controller.state == PlaybackState.STOPPED

    def test_play_starts_at_first_item(self, controller, scheduler):
        controller.play()
        assert controller.state == PlaybackState.PLAYING
        assert controller.cursor == 0
        assert scheduler.pending == 1

    def test_ticks_advance(self, controller, scheduler):
        controller.play()
        scheduler.advance(1.0)
        assert controller.cursor == 1
        scheduler.advance(2.0)
        assert controller.cursor == 3

    def test_end_pauses_on_last_item(self, controller, scheduler, session):
        controller.play()
        scheduler.advance(10)

        assert controller.cursor == len(session) - 1
        assert controller.state == PlaybackState.PAUSED
        assert scheduler.pending == 0

    def test_play_at_end_restarts(self, controller, scheduler):
        controller.play()
        scheduler.advance(10)
        controller.play()
        assert controller.cursor == 0
        assert controller.is_playing

    def test_play_resumes_from_middle(self, controller, scheduler):
        controller.play()
        scheduler.advance(2)
        controller.pause()
        controller.play()
        assert controller.cursor == 2

    def test_play_empty_is_noop(self, roster, scheduler):
        empty = PlaybackController(PlanningSession(base_claims={}, roster=roster), scheduler)
        empty.play()
        assert empty.state == PlaybackState.STOPPED
        assert scheduler.pending == 0

    def test_pause_keeps_cursor_and_cancels_timer(self, controller, scheduler):
        controller.play()
        scheduler.advance(1)
        controller.pause()
        controller.pause()

        scheduler.advance(10)
        assert controller.cursor == 1
        assert controller.state == PlaybackState.PAUSED
        assert scheduler.pending == 0

    def test_stop_resets(self, controller, scheduler):
        controller.play()
        scheduler.advance(2)
        controller.stop()
        controller.stop()

        scheduler.advance(10)
        assert controller.cursor == -1
        assert controller.state == PlaybackState.STOPPED

    def test_toggle(self, controller):
        controller.toggle()
        assert controller.is_playing
        controller.toggle()
        assert controller.state == PlaybackState.PAUSED

    def test_double_play_keeps_single_timer(self, controller, scheduler):
        controller.play()
        controller.play()
        assert scheduler.pending == 1
        scheduler.advance(1)
        assert controller.cursor == 1


class TestStepping:
    """Test manual stepping and seeking."""

    def test_step_forward_bounds(self, controller, session):
        for _ in range(len(session) + 3):
            controller.step_forward()
        assert controller.cursor == len(session) - 1
        assert controller.state == PlaybackState.PAUSED

    def test_step_forward_from_stopped(self, controller):
        controller.step_forward()
        assert controller.cursor == 0

    def test_step_backward_bounds(self, controller):
        controller.step_backward()
        assert controller.cursor == 0
        controller.seek(1.0)
        for _ in range(10):
            controller.step_backward()
        assert controller.cursor == 0

    def test_step_does_not_start_playing(self, controller, scheduler):
        controller.step_forward()
        assert not controller.is_playing
        assert scheduler.pending == 0

    def test_step_while_playing_pauses(self, controller, scheduler):
        controller.play()
        controller.step_forward()
        assert controller.state == PlaybackState.PAUSED
        assert controller.cursor == 1
        scheduler.advance(10)
        assert controller.cursor == 1

    @pytest.mark.parametrize("position, expected", [(0.0, 0), (1.0, 4), (0.5, 2), (0.6, 2), (0.63, 3), (-2, 0), (7, 4)])
    def test_seek(self, controller, position, expected):
        controller.seek(position)
        assert controller.cursor == expected

    @pytest.mark.parametrize("position", [float("nan"), float("inf"), float("-inf")])
    def test_seek_non_finite(self, controller, position):
        controller.seek(position)
        assert controller.cursor == 0

    def test_progress(self, controller):
        assert controller.progress == 0.0
        controller.seek(0.5)
        assert controller.progress == pytest.approx(0.5)


class TestSpeed:
    """Test changing the playback speed."""

    def test_speed_options(self):
        assert sorted(PLAYBACK_SPEEDS) == [250, 500, 1000, 2000, 4000]

    def test_invalid_speed(self, controller, session, scheduler):
        with pytest.raises(ValueError):
            controller.set_speed(300)
        with pytest.raises(ValueError):
            PlaybackController(session, scheduler, speed_ms=123)

    def test_default_speed_from_settings(self, session, scheduler, monkeypatch):
        monkeypatch.setattr(settings, "playback_speed_ms", 250)
        controller = PlaybackController(session, scheduler)
        assert controller.speed_ms == 250

        controller.play()
        scheduler.advance(0.25)
        assert controller.cursor == 1

    def test_speed_change_while_playing(self, controller, scheduler):
        controller.play()
        scheduler.advance(0.5)
        controller.set_speed(250)

        assert controller.cursor == 0
        assert scheduler.pending == 1
        scheduler.advance(0.25)
        assert controller.cursor == 1
        scheduler.advance(0.25)
        assert controller.cursor == 2

    def test_speed_change_while_paused(self, controller, scheduler):
        controller.set_speed(4000)
        assert scheduler.pending == 0
        controller.play()
        scheduler.advance(3.5)
        assert controller.cursor == 0
        scheduler.advance(0.5)
        assert controller.cursor == 1


class TestSequenceChanges:
    """Test the cursor staying in range as the plan changes."""

    def test_shrink_clamps_cursor(self, controller, session):
        controller.seek(1.0)
        session.undo_last()
        session.undo_last()
        assert controller.cursor == 2

    def test_empty_sequence_stops(self, controller, session, scheduler):
        controller.play()
        session.clear_all()
        assert controller.state == PlaybackState.STOPPED
        scheduler.advance(10)
        assert controller.cursor == -1

    def test_tick_reads_current_length(self, controller, session, scheduler):
        controller.play()
        scheduler.advance(2)
        assert controller.cursor == 2
        session.undo_last()
        session.undo_last()

        scheduler.advance(1)
        assert controller.cursor == 2
        assert controller.state == PlaybackState.PAUSED

    def test_growth_while_playing(self, controller, session, scheduler):
        controller.play()
        scheduler.advance(3)
        session.plan_claim(7)
        scheduler.advance(2)
        assert controller.cursor == 5

    def test_close_detaches(self, controller, session, scheduler):
        controller.play()
        controller.close()
        scheduler.advance(10)
        assert controller.cursor == 0
        session.clear_all()
        assert controller.cursor == 0


class TestFrames:
    """Test the claim state shown for a cursor position."""

    def test_stopped_shows_base_claims(self, controller, session):
        frame = controller.frame()
        assert frame.claims == session.base_claims
        assert frame.highlight_tile_id is None

    def test_move_highlights_tile(self, controller):
        frame = controller.state_at(1)
        assert set(frame.claims) == {0, 1}
        assert frame.highlight_tile_id == 1

    def test_day_marker_has_no_highlight(self, controller):
        frame = controller.state_at(2)
        assert frame.highlight_tile_id is None
        assert set(frame.claims) == {0, 1}

    def test_clear_applied(self, controller):
        frame = controller.state_at(4)
        assert set(frame.claims) == {1, 2}
        assert frame.highlight_tile_id == 0

    def test_out_of_range(self, controller, session):
        frame = controller.state_at(99)
        assert frame.highlight_tile_id is None
        assert frame.claims == session.planned_claims()

    def test_frame_follows_playback(self, controller, scheduler):
        controller.play()
        scheduler.advance(3)
        assert controller.frame().highlight_tile_id == 2


class TestAsyncioScheduler:
    """Test playback on a real event loop."""

    def test_plays_to_end(self, roster):
        session = PlanningSession(base_claims={}, roster=roster, user_alliance_id="red")
        session.plan_claim(0)
        session.plan_claim(1)

        async def run():
            controller = PlaybackController(session, AsyncioScheduler(), speed_ms=250)
            controller.play()
            await asyncio.sleep(0.8)
            return controller

        controller = asyncio.run(run())
        assert controller.cursor == 1
        assert controller.state == PlaybackState.PAUSED
