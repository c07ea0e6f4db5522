"""Tests for mitomi.correct.protocol."""

from __future__ import annotations

import numpy as np
import pytest

from mitomi.core.exceptions import CommandNotAllowedError, UserAbort
from mitomi.core.feature_store import FeatureStore
from mitomi.core.models import Point, Rect
from mitomi.correct.commands import (
    Abort,
    Continue,
    FlagRegion,
    RemoveRegion,
    Reposition,
    UndoLastRemoval,
    UnflagLast,
)
from mitomi.correct.protocol import (
    BatchHistory,
    CorrectionProtocol,
    ReviewState,
    Stage,
    TranscriptSource,
    apply_command,
    is_allowed,
    review_partition,
)


@pytest.fixture
def store() -> FeatureStore:
    """3 x 3 store, buttons on a 10 px grid from (10, 10), chambers offset by (3, 2)."""
    m = np.arange(9)
    buttons = np.column_stack([10 + (m // 3) * 10, 10 + (m % 3) * 10])
    return FeatureStore.from_lattices(buttons, buttons + [3, 2], 3, 3, 3, 5)


@pytest.fixture
def state(store: FeatureStore) -> ReviewState:
    return ReviewState(store)


class TestBatchHistory:
    def test_pop_empty(self):
        assert BatchHistory().pop() is None

    def test_depth_bounds_history(self):
        history = BatchHistory(depth=2)
        for i in range(3):
            history.push(np.array([i]))
        assert len(history) == 2
        assert history.pop().tolist() == [2]
        assert history.pop().tolist() == [1]
        assert history.pop() is None


class TestPartition:
    def test_button_stage(self, store: FeatureStore):
        store.autofind_button[[0, 4]] = True
        parts = review_partition(store, Stage.BUTTON_POSITION)
        assert parts["autodetected"].tolist() == [0, 4]
        assert len(parts["manual"]) == 7

    def test_inclusion_stage_hides_removed(self, store: FeatureStore):
        store.flag[[1, 2]] = True
        store.remove[[2, 3]] = True
        parts = review_partition(store, Stage.INCLUSION)
        assert parts["flagged"].tolist() == [1]
        assert 3 not in parts["active"]
        assert len(parts["active"]) == 6

    def test_chamber_stage(self, store: FeatureStore):
        store.autofind_chamber[[0, 1]] = True
        store.flag[1] = True
        store.remove[8] = True
        parts = review_partition(store, Stage.CHAMBER_POSITION)
        assert parts["autodetected"].tolist() == [0]
        assert parts["flagged"].tolist() == [1]
        assert parts["manual"].tolist() == [2, 3, 4, 5, 6, 7]


class TestReposition:
    def test_moves_nearest_button(self, state: ReviewState):
        state.store.autofind_button[:] = True
        apply_command(state, Stage.BUTTON_POSITION, Reposition(Point(21, 19), Point(22.5, 18.4)))
        store = state.store
        # Nearest to (21, 19) is well 4 at (20, 20); target rounds half up
        assert (store.button_x[4], store.button_y[4]) == (23, 18)
        assert not store.autofind_button[4]
        assert store.autofind_button[[0, 1, 2, 3, 5]].all()

    def test_tie_picks_lowest_index(self, state: ReviewState):
        apply_command(state, Stage.BUTTON_POSITION, Reposition(Point(15, 10), Point(0, 0)))
        assert (state.store.button_x[0], state.store.button_y[0]) == (0, 0)
        assert state.store.button_x[3] == 20

    def test_chamber_stage_moves_chambers(self, state: ReviewState):
        apply_command(state, Stage.CHAMBER_POSITION, Reposition(Point(33, 32), Point(40, 41)))
        store = state.store
        assert (store.chamber_x[8], store.chamber_y[8]) == (40, 41)
        assert (store.button_x[8], store.button_y[8]) == (30, 30)


class TestFlagAndRemove:
    def test_flag_strict_interior(self, state: ReviewState):
        # Buttons on the border (x == 20) stay unflagged
        apply_command(state, Stage.INCLUSION, FlagRegion(Rect(5, 5, 20, 35)))
        assert np.flatnonzero(state.store.flag).tolist() == [0, 1, 2]

    def test_flag_skips_removed_wells(self, state: ReviewState):
        state.store.remove[1] = True
        apply_command(state, Stage.INCLUSION, FlagRegion(Rect(5, 5, 15, 35)))
        assert np.flatnonzero(state.store.flag).tolist() == [0, 2]

    def test_unflag_restores_only_the_batch(self, state: ReviewState):
        apply_command(state, Stage.INCLUSION, FlagRegion(Rect(5, 5, 15, 15)))
        apply_command(state, Stage.INCLUSION, FlagRegion(Rect(5, 5, 15, 35)))
        apply_command(state, Stage.INCLUSION, UnflagLast())
        # Well 0 was flagged by the first batch and stays flagged
        assert np.flatnonzero(state.store.flag).tolist() == [0]

    def test_remove_then_undo_is_a_no_op(self, state: ReviewState):
        state.store.remove[7] = True
        before = state.store.remove.copy()
        apply_command(state, Stage.INCLUSION, RemoveRegion(Rect(0, 0, 40, 40)))
        assert state.store.remove.all()
        apply_command(state, Stage.INCLUSION, UndoLastRemoval())
        np.testing.assert_array_equal(state.store.remove, before)

    def test_remove_and_flag_are_independent(self, state: ReviewState):
        apply_command(state, Stage.INCLUSION, FlagRegion(Rect(5, 5, 15, 35)))
        apply_command(state, Stage.INCLUSION, RemoveRegion(Rect(5, 5, 15, 35)))
        apply_command(state, Stage.INCLUSION, UndoLastRemoval())
        assert not state.store.remove.any()
        assert np.flatnonzero(state.store.flag).tolist() == [0, 1, 2]

    def test_undo_with_empty_history(self, state: ReviewState):
        assert apply_command(state, Stage.INCLUSION, UndoLastRemoval()) is False
        assert apply_command(state, Stage.INCLUSION, UnflagLast()) is False
        assert not state.store.remove.any()

    def test_history_depth_one(self, state: ReviewState):
        apply_command(state, Stage.INCLUSION, RemoveRegion(Rect(5, 5, 15, 15)))
        apply_command(state, Stage.INCLUSION, RemoveRegion(Rect(25, 25, 35, 35)))
        apply_command(state, Stage.INCLUSION, UndoLastRemoval())
        apply_command(state, Stage.INCLUSION, UndoLastRemoval())
        # Only the most recent batch can be undone
        assert np.flatnonzero(state.store.remove).tolist() == [0]

    def test_deeper_history(self, store: FeatureStore):
        state = ReviewState(store, history_depth=2)
        apply_command(state, Stage.INCLUSION, RemoveRegion(Rect(5, 5, 15, 15)))
        apply_command(state, Stage.INCLUSION, RemoveRegion(Rect(25, 25, 35, 35)))
        apply_command(state, Stage.INCLUSION, UndoLastRemoval())
        apply_command(state, Stage.INCLUSION, UndoLastRemoval())
        assert not store.remove.any()


class TestStageRules:
    @pytest.mark.parametrize("stage, command", [
        (Stage.BUTTON_POSITION, FlagRegion(Rect(0, 0, 1, 1))),
        (Stage.BUTTON_POSITION, UndoLastRemoval()),
        (Stage.INCLUSION, Reposition(Point(0, 0), Point(1, 1))),
        (Stage.CHAMBER_POSITION, RemoveRegion(Rect(0, 0, 1, 1))),
    ])
    def test_disallowed(self, state: ReviewState, stage, command):
        assert not is_allowed(stage, command)
        with pytest.raises(CommandNotAllowedError):
            apply_command(state, stage, command)

    def test_continue_and_abort_everywhere(self, state: ReviewState):
        for stage in Stage:
            assert apply_command(state, stage, Continue()) is True
            with pytest.raises(UserAbort) as exc_info:
                apply_command(state, stage, Abort())
            assert exc_info.value.stage == stage.value


class TestCorrectionProtocol:
    def test_full_transcript(self, store: FeatureStore):
        protocol = CorrectionProtocol(store)
        protocol.run(TranscriptSource([
            Reposition(Point(10, 10), Point(11, 12)),
            Continue(),
            RemoveRegion(Rect(25, 5, 35, 35)),
            FlagRegion(Rect(15, 5, 25, 15)),
            Continue(),
            Reposition(Point(13, 12), Point(14, 14)),
            Continue(),
        ]))
        assert (store.button_x[0], store.button_y[0]) == (11, 12)
        assert np.flatnonzero(store.remove).tolist() == [6, 7, 8]
        assert np.flatnonzero(store.flag).tolist() == [3]
        assert (store.chamber_x[0], store.chamber_y[0]) == (14, 14)

    def test_stage_command_count(self, store: FeatureStore):
        protocol = CorrectionProtocol(store)
        source = TranscriptSource([UnflagLast(), UndoLastRemoval(), Continue()])
        assert protocol.run_stage(Stage.INCLUSION, source) == 3

    def test_abort_keeps_state_and_stops(self, store: FeatureStore):
        protocol = CorrectionProtocol(store)
        with pytest.raises(UserAbort) as exc_info:
            protocol.run(TranscriptSource([
                Continue(),
                RemoveRegion(Rect(5, 5, 15, 35)),
                Abort(),
                Continue(),
            ]))
        assert exc_info.value.stage == "inclusion"
        assert store.remove[[0, 1, 2]].all()

    def test_exhausted_source_aborts(self, store: FeatureStore):
        with pytest.raises(UserAbort) as exc_info:
            CorrectionProtocol(store).run(TranscriptSource([Continue()]))
        assert exc_info.value.stage == "inclusion"

    def test_source_sees_current_partition(self, store: FeatureStore):
        seen = []

        class Recorder:
            def __init__(self, commands):
                self._commands = iter(commands)

            def next_command(self, stage, partition):
                seen.append((stage, {k: v.tolist() for k, v in partition.items()}))
                return next(self._commands)

        CorrectionProtocol(store).run_stage(
            Stage.INCLUSION, Recorder([FlagRegion(Rect(5, 5, 15, 15)), Continue()]),
        )
        assert seen[0][1]["flagged"] == []
        assert seen[1][1]["flagged"] == [0]
