"""
Tests for the turn engine that don't need a database: turn advancement,
session transitions, recap grouping and fog grids.
"""

from types import SimpleNamespace

import pytest

from taverna.errors import ConflictError
from taverna.fog import blank_grid, reveal_cells
from taverna.turns import advance_turn, build_recap, transition_session


def make_session(*names, active=None, current_round=0, status='LIVE'):
    entries = [SimpleNamespace(name=n, is_active=(n == active)) for n in names]
    return SimpleNamespace(id=1, session_number=1, status=status,
                           current_round=current_round, initiative_entries=entries,
                           started_at=None, ended_at=None)


def active_names(session):
    return [e.name for e in session.initiative_entries if e.is_active]


class TestAdvanceTurn:
    def test_first_activation_starts_round_one(self):
        session = make_session('Aria', 'Goblin', 'Bram')
        advance_turn(session)
        assert active_names(session) == ['Aria']
        assert session.current_round == 1

    def test_moves_to_next_entry_without_changing_round(self):
        session = make_session('Aria', 'Goblin', 'Bram', active='Aria', current_round=1)
        advance_turn(session)
        assert active_names(session) == ['Goblin']
        assert session.current_round == 1

    def test_wrapping_adds_a_round(self):
        session = make_session('Aria', 'Goblin', 'Bram', active='Bram', current_round=3)
        advance_turn(session)
        assert active_names(session) == ['Aria']
        assert session.current_round == 4

    def test_no_active_entry_mid_combat_keeps_round(self):
        # Round is only bumped by a wrap, never by the first activation past round 0
        session = make_session('Aria', 'Goblin', current_round=2)
        advance_turn(session)
        assert active_names(session) == ['Aria']
        assert session.current_round == 2

    def test_exactly_one_active_after_any_number_of_advances(self):
        session = make_session('A', 'B', 'C', 'D')
        for step in range(1, 13):
            advance_turn(session)
            assert len(active_names(session)) == 1
        # 12 advances over 4 entries: round 1 started, wrapped twice
        assert session.current_round == 3

    @pytest.mark.parametrize('size', [1, 2, 3, 5])
    def test_active_index_and_round_track_the_advance_count(self, size):
        names = [f'C{i}' for i in range(size)]
        session = make_session(*names)
        # Three full wraps and then some
        for n in range(1, 3 * size + 2):
            advance_turn(session)
            assert active_names(session) == [names[(n - 1) % size]]
            assert session.current_round == 1 + (n - 1) // size

    def test_single_entry_wraps_every_time(self):
        session = make_session('Solo')
        advance_turn(session)
        advance_turn(session)
        assert active_names(session) == ['Solo']
        assert session.current_round == 2

    def test_empty_order_is_a_no_op(self):
        session = make_session(current_round=2)
        advance_turn(session)
        assert session.current_round == 2


class TestTransitionSession:
    def test_going_live_stamps_started_at_once(self):
        session = make_session(status='LOBBY')
        transition_session(session, 'LIVE')
        first = session.started_at
        assert first is not None
        transition_session(session, 'PAUSED')
        transition_session(session, 'LIVE')
        assert session.started_at == first

    def test_ending_stamps_ended_at(self):
        session = make_session(status='LIVE')
        transition_session(session, 'ENDED')
        assert session.status == 'ENDED'
        assert session.ended_at is not None

    def test_ended_is_terminal(self):
        session = make_session(status='ENDED')
        with pytest.raises(ConflictError):
            transition_session(session, 'LIVE')

    def test_lobby_can_end_directly(self):
        session = make_session(status='LOBBY')
        transition_session(session, 'ENDED')
        assert session.status == 'ENDED'


class TestBuildRecap:
    def test_groups_by_round_and_counts_actions(self):
        def row(round_, action):
            return SimpleNamespace(round=round_, action=action,
                                   to_dict=lambda: {'round': round_, 'action': action})

        session = make_session(current_round=2)
        recap = build_recap(session, [row(1, 'DAMAGE'), row(2, 'HEALING'), row(1, 'DAMAGE')])

        assert [r['round'] for r in recap['rounds']] == [1, 2]
        assert len(recap['rounds'][0]['entries']) == 2
        assert recap['actionCounts'] == {'DAMAGE': 2, 'HEALING': 1}
        assert recap['totalEntries'] == 3


class TestFogGrid:
    def test_blank_grid_is_all_hidden(self):
        grid = blank_grid(3, 4)
        assert len(grid) == 3
        assert all(len(row) == 4 and not any(row) for row in grid)

    def test_reveal_returns_a_new_grid(self):
        grid = blank_grid(2, 2)
        updated = reveal_cells(grid, [{'row': 1, 'col': 0}])
        assert updated[1][0] is True
        assert grid[1][0] is False

    def test_out_of_bounds_cells_are_skipped(self):
        updated = reveal_cells(blank_grid(2, 2), [{'row': 5, 'col': 0}, {'row': 0, 'col': 9}])
        assert updated == blank_grid(2, 2)

    def test_reveal_is_idempotent(self):
        once = reveal_cells(blank_grid(2, 2), [{'row': 0, 'col': 0}])
        twice = reveal_cells(once, [{'row': 0, 'col': 0}])
        assert once == twice
