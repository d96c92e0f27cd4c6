import pytest

import maze_env
from conftest import RED, make_env, start_playing
from maze_env import MazeEnv, is_centered
from maze_grid import DOWN, EMPTY, LEFT, PELLET, RIGHT, UP

# The pellet at (1, 3) is unreachable and keeps the round from completing.
SHORT_CORRIDOR = [
    "#####",
    "#P..#",
    "#####",
    "#.###",
    "#####",
]

L_BEND = [
    "#####",
    "#P..#",
    "##.##",
    "##.##",
    "#####",
]

LONG_CORRIDOR = [
    "############",
    "#P.........#",
    "############",
]

TUNNEL = [
    "#####",
    ".P...",
    "#####",
]

GHOST_TUNNEL = [
    "#######",
    ".......",
    "###P###",
]

GHOST_LANE = [
    "#########",
    "#.......#",
    "#P#######",
]


def test_player_stops_at_wall():
    env = start_playing(make_env(SHORT_CORRIDOR))
    env.tick(100)
    assert (env.player.x, env.player.y) == (2.0, 1.0)
    env.tick(1000)
    assert (env.player.x, env.player.y) == (3.0, 1.0)
    assert env.player.dir == RIGHT
    env.tick(100)
    assert env.player.x == 3.0


def test_buffered_turn_waits_for_open_tile():
    env = start_playing(make_env(L_BEND))
    env.set_desired_direction(DOWN)
    env.tick(100)
    # DOWN is walled off at (1, 1), so the player keeps going right.
    assert (env.player.x, env.player.y) == (2.0, 1.0)
    assert env.player.dir == RIGHT
    assert env.player.next_dir == DOWN
    env.tick(50)
    assert env.player.dir == DOWN
    assert env.player.x == 2.0
    assert env.player.y == pytest.approx(1.5)


def test_substep_cap_limits_travel_per_tick():
    env = start_playing(make_env(LONG_CORRIDOR))
    env.tick(1000)
    assert env.player.x == 6.0


def test_reversal_happens_between_centers():
    env = start_playing(make_env(LONG_CORRIDOR))
    env.tick(50)
    assert env.player.x == pytest.approx(1.5)
    assert not is_centered(env.player.x, env.player.y)
    env.set_desired_direction(LEFT)
    env.tick(25)
    assert env.player.dir == LEFT
    assert env.player.x == pytest.approx(1.25)


def test_pellets_are_eaten_only_where_the_tick_ends():
    env = start_playing(make_env(LONG_CORRIDOR))
    env.tick(300)
    assert env.player.x == 4.0
    assert env.grid.tile_at(2, 1) == PELLET
    assert env.grid.tile_at(3, 1) == PELLET
    assert env.grid.tile_at(4, 1) == EMPTY
    assert env.score == 10


def test_player_wraps_through_tunnel():
    env = start_playing(make_env(TUNNEL))
    env.tick(300)
    assert env.player.x == 4.0
    env.tick(50)
    assert env.player.x == pytest.approx(4.5)
    env.tick(25)
    assert env.player.x == pytest.approx(-0.25)
    assert env.player_tile() == (0, 1)
    assert env.grid.tile_at(0, 1) == EMPTY
    env.tick(25)
    assert env.player.x == pytest.approx(0.0)


def test_ghost_wraps_through_tunnel():
    env = start_playing(make_env(GHOST_TUNNEL, roster=[(1, RED, (1, 1))]))
    ghost = env.ghosts[0]
    ghost.x, ghost.dir = 0.0, LEFT
    env.tick(50)
    assert ghost.x == pytest.approx(6.5)
    assert ghost.y == 1.0
    env.tick(25)
    assert ghost.x == pytest.approx(6.25)


def test_ghost_decides_once_per_center_and_caps_substeps(monkeypatch):
    calls = []

    def always_right(ghost, *args):
        calls.append((ghost.x, ghost.y))
        return RIGHT

    monkeypatch.setattr(maze_env, "next_direction", always_right)
    env = start_playing(make_env(GHOST_LANE, roster=[(1, RED, (3, 1))]))
    ghost = env.ghosts[0]
    ghost.dir = RIGHT

    env.tick(50)
    assert ghost.x == pytest.approx(3.5)
    assert calls == []

    env.tick(250)
    # Two sub-steps: finish the half tile, then one more full tile.
    assert ghost.x == 5.0
    assert calls == [(4.0, 1.0), (5.0, 1.0)]


def test_parked_ghost_facing_wall_steers_before_moving(monkeypatch):
    calls = []

    def always_right(ghost, *args):
        calls.append((ghost.x, ghost.y))
        return RIGHT

    monkeypatch.setattr(maze_env, "next_direction", always_right)
    env = start_playing(make_env(GHOST_LANE, roster=[(1, RED, (3, 1))]))
    ghost = env.ghosts[0]
    assert ghost.dir == UP
    env.tick(50)
    assert calls == [(3.0, 1.0)]
    assert ghost.dir == RIGHT
    assert ghost.x == pytest.approx(3.5)


def test_base_maze_spawn_ghost_leaves_pen_toward_corner():
    env = MazeEnv(seed=0)
    env.init_round(2)
    start_playing(env)
    poker = env.ghosts[3]
    assert poker.ghost_id == 4
    assert (poker.x, poker.y) == (9.0, 7.0)
    env.tick(16)
    assert poker.dir == LEFT
    assert poker.x < 9.0


def test_eaten_ghosts_do_not_move():
    env = start_playing(make_env(GHOST_LANE, roster=[(1, RED, (3, 1))]))
    ghost = env.ghosts[0]
    ghost.status = maze_env.EATEN
    env.tick(500)
    assert (ghost.x, ghost.y) == (3.0, 1.0)


def test_nothing_moves_during_pauses():
    env = make_env(LONG_CORRIDOR)
    env.tick(1000)
    assert env.player.x == 1.0
    assert env.clock_ms == 1000


def test_negative_elapsed_is_ignored():
    env = start_playing(make_env(LONG_CORRIDOR))
    clock = env.clock_ms
    env.tick(-250)
    assert env.player.x == 1.0
    assert env.clock_ms == clock


def test_desired_direction_must_be_cardinal():
    env = make_env(LONG_CORRIDOR)
    with pytest.raises(ValueError):
        env.set_desired_direction((0, 0))
    with pytest.raises(ValueError):
        env.set_desired_direction((1, 1))
    env.set_desired_direction([0, -1])
    assert env.player.next_dir == UP
