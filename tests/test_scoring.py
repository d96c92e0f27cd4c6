import random

from conftest import RED, make_env, start_playing
from ghost_ai import EATEN, NORMAL, VULNERABLE
from maze_env import MazeEnv
from maze_grid import EMPTY, POWER_PELLET

# Ghosts patrol the lower lane, which does not connect to the player's lane.
TWO_POWER = [
    "#########",
    "#Po.o...#",
    "#########",
    "#.......#",
    "#########",
]

ONE_POWER = [
    "#######",
    "#Po#..#",
    "#######",
    "#.....#",
    "#######",
]

BACK_TO_BACK = [
    "#######",
    "#Poo..#",
    "#######",
    "#.....#",
    "#######",
]


def lane_ghosts(count, y=3):
    return [(i + 1, RED, (1 + i % 7, y)) for i in range(count)]


def move_onto_player(env, ghost):
    ghost.x, ghost.y = env.player.x, env.player.y


def test_pellet_and_power_pellet_points():
    env = start_playing(make_env(TWO_POWER))
    env.tick(100)
    assert env.score == 50
    env.tick(100)
    assert env.score == 60


def test_power_pellet_frightens_active_ghosts():
    env = start_playing(make_env(TWO_POWER, roster=lane_ghosts(3)))
    env.ghosts[2].status = EATEN
    env.tick(100)
    assert [g.status for g in env.ghosts] == [VULNERABLE, VULNERABLE, EATEN]
    assert env.vulnerable_until == env.clock_ms + 10000
    assert env.capture_streak == 0


def test_capture_streak_doubles_without_cap():
    env = start_playing(make_env(TWO_POWER, roster=lane_ghosts(6)))
    env.tick(100)
    score = env.score
    for ghost in env.ghosts:
        move_onto_player(env, ghost)
    env.tick(0)
    assert [p["score"] for p in env.popups] == [200, 400, 800, 1600, 3200, 6400]
    assert env.score == score + 12600
    assert env.capture_streak == 6
    assert all(g.status == EATEN for g in env.ghosts)
    assert env.lives == 3


def test_new_power_pellet_resets_streak_and_refills_board():
    env = start_playing(make_env(TWO_POWER, roster=lane_ghosts(3)))
    env.tick(100)
    a, b, c = env.ghosts
    move_onto_player(env, a)
    env.tick(0)
    move_onto_player(env, b)
    env.tick(0)
    assert env.capture_streak == 2
    assert env.score == 50 + 200 + 400

    env.tick(100)
    env.tick(100)
    assert env.player_tile() == (4, 1)
    assert env.capture_streak == 0
    # The last power pellet brings back the one at (2, 1) but not the one underfoot.
    assert env.grid.tile_at(2, 1) == POWER_PELLET
    assert env.grid.tile_at(4, 1) == EMPTY
    assert env.power_pellets_on_board == 1
    assert env.pellets_remaining == env.grid.count_pellets()
    assert env.get_state()["respawn_flash"]

    move_onto_player(env, c)
    env.tick(0)
    assert env.popups[-1]["score"] == 200
    assert env.score == 50 + 200 + 400 + 10 + 50 + 200


def test_no_respawn_when_every_ghost_is_eaten():
    env = start_playing(make_env(BACK_TO_BACK, roster=lane_ghosts(2)))
    env.tick(100)
    for ghost in env.ghosts:
        move_onto_player(env, ghost)
    env.tick(0)
    assert all(g.status == EATEN for g in env.ghosts)
    env.tick(100)
    assert env.power_pellets_on_board == 0
    assert env.grid.count(POWER_PELLET) == 0
    assert not env.get_state()["respawn_flash"]


def test_vulnerability_lasts_exactly_its_duration():
    env = start_playing(make_env(ONE_POWER, roster=lane_ghosts(1)))
    env.tick(100)
    eaten_at = env.clock_ms
    ghost = env.ghosts[0]
    assert ghost.status == VULNERABLE
    env.tick(10000)
    assert env.clock_ms == eaten_at + 10000
    assert ghost.status == VULNERABLE
    env.tick(1)
    assert ghost.status == NORMAL
    assert env.vulnerable_until == 0
    assert env.capture_streak == 0


def test_popups_expire_after_a_second():
    env = start_playing(make_env(TWO_POWER, roster=lane_ghosts(1)))
    env.tick(100)
    move_onto_player(env, env.ghosts[0])
    env.tick(0)
    assert len(env.popups) == 1
    env.tick(999)
    assert len(env.popups) == 1
    env.tick(1)
    assert env.popups == []


def test_eaten_ghost_stays_out_until_next_round():
    env = start_playing(make_env(TWO_POWER, roster=lane_ghosts(2)))
    env.tick(100)
    eaten, hunter = env.ghosts
    move_onto_player(env, eaten)
    env.tick(0)
    env.tick(10001)
    assert eaten.status == EATEN
    assert hunter.status == NORMAL
    move_onto_player(env, hunter)
    env.tick(0)
    assert env.lives == 2
    assert eaten.status == EATEN
    env.init_round(2)
    assert eaten.status == NORMAL


def test_pellet_count_matches_grid_during_random_play():
    env = MazeEnv(seed=3)
    actions = random.Random(7)
    for _ in range(4000):
        env.step_action(actions.randrange(env.action_count()), dt_ms=16)
        assert env.pellets_remaining == env.grid.count_pellets()
        assert env.score % 10 == 0
        if env.is_terminal():
            break


def test_capture_and_death_in_one_tick_both_apply():
    env = start_playing(make_env(TWO_POWER, roster=lane_ghosts(2)))
    env.tick(100)
    prey, hunter = env.ghosts
    hunter.status = NORMAL
    move_onto_player(env, prey)
    move_onto_player(env, hunter)
    env.tick(0)
    assert prey.status == EATEN
    assert env.score == 50 + 200
    assert env.lives == 2
    assert (env.player.x, env.player.y) == (1.0, 1.0)
    assert (hunter.x, hunter.y) == (2.0, 3.0)


def test_death_first_moves_later_prey_out_of_reach():
    env = start_playing(make_env(TWO_POWER, roster=lane_ghosts(2)))
    env.tick(100)
    hunter, prey = env.ghosts
    hunter.status = NORMAL
    move_onto_player(env, hunter)
    move_onto_player(env, prey)
    env.tick(0)
    assert env.lives == 2
    assert prey.status == VULNERABLE
    assert (prey.x, prey.y) == (2.0, 3.0)
    assert env.score == 50
    assert env.popups == []
