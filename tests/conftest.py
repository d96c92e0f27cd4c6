from maze_env import PLAYING, MazeEnv

# Uniform speeds keep the arithmetic exact: 25 ms moves a quarter tile.
TEST_ROUNDS = {
    1: {"name": "ONE", "speed_ms": 100, "ghost_count": 6, "ghost_speed": 1.0},
    2: {"name": "TWO", "speed_ms": 100, "ghost_count": 6, "ghost_speed": 1.0},
    3: {"name": "THREE", "speed_ms": 100, "ghost_count": 6, "ghost_speed": 1.0},
}

RED = (220, 60, 60)


class RecordingStore:
    def __init__(self):
        self.calls = []

    def record_final_score(self, team, score):
        self.calls.append((team, score))

    def fetch_ranked_scores(self):
        return []


def make_env(maze, roster=(), rounds=None, **kwargs):
    kwargs.setdefault("seed", 0)
    return MazeEnv(
        base_maze=maze,
        ghost_roster=list(roster),
        round_configs=rounds or TEST_ROUNDS,
        **kwargs,
    )


def start_playing(env):
    env.tick(env.pause_timer)
    assert env.status == PLAYING
    return env
