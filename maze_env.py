import copy
import json
import math
import os
import random
import sys

import numpy as np

from ghost_ai import EATEN, NORMAL, VULNERABLE, leader_position, next_direction
from maze_grid import (
    BASE_MAZE,
    DOWN,
    GHOST_SPAWN,
    LEFT,
    NONE,
    PELLET,
    PLAYER_SPAWN,
    POWER_PELLET,
    RIGHT,
    UP,
    WALL,
    Grid,
    opposite,
    tile_of,
    wrap_x,
)


DEFAULT_CONFIG = {
    "tile_size": 32,
    "starting_lives": 3,
    "vulnerable_duration_ms": 10000,
    "respawn_pause_ms": 1500,
    "level_complete_pause_ms": 2000,
    "pellet_points": 10,
    "power_pellet_points": 50,
    "capture_base_points": 200,
    "collision_distance": 0.5,
    "popup_lifetime_ms": 1000,
    "max_player_substeps": 5,
    "max_ghost_substeps": 2,
    "respawn_flash_ms": 500,
}

CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.json")

# speed_ms is the time the player needs to cross one tile (lower is faster).
ROUND_CONFIGS = {
    1: {"name": "EASY", "speed_ms": 130, "ghost_count": 3, "ghost_speed": 0.85},
    2: {"name": "MODERATE", "speed_ms": 90, "ghost_count": 4, "ghost_speed": 0.95},
    3: {"name": "HARD", "speed_ms": 70, "ghost_count": 6, "ghost_speed": 1.05},
}

ROUND_START_PAUSE = {
    1: (2000, "GET READY"),
    2: (2000, "STAY SHARP"),
    3: (3000, "FINAL ROUND"),
}

GHOST_ROSTER = [
    (1, (220, 60, 60), (9, 8)),
    (2, (255, 105, 180), (8, 8)),
    (3, (80, 220, 220), (10, 8)),
    (4, (255, 165, 60), (9, 7)),
    (5, (170, 110, 230), (8, 7)),
    (6, (80, 200, 120), (10, 7)),
]

ROUND_STARTING = "ROUND_STARTING"
PLAYING = "PLAYING"
RESPAWNING = "RESPAWNING"
LEVEL_TRANSITION = "LEVEL_TRANSITION"

MOVE_DIRS = [NONE, UP, DOWN, LEFT, RIGHT]
MOVE_LABELS = ["none", "up", "down", "left", "right"]
CENTER_EPS = 0.01


def load_config(path=CONFIG_PATH):
    cfg = DEFAULT_CONFIG.copy()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
            if isinstance(data, dict):
                for k in cfg.keys():
                    if k in data:
                        cfg[k] = data[k]
    except FileNotFoundError:
        pass
    except json.JSONDecodeError:
        pass
    return cfg


def is_centered(x, y):
    return abs(x - tile_of(x)) < CENTER_EPS and abs(y - tile_of(y)) < CENTER_EPS


def distance_to_next_center(x, y, d):
    if d[0] > 0:
        return math.floor(x) + 1 - x
    if d[0] < 0:
        return x - (math.ceil(x) - 1)
    if d[1] > 0:
        return math.floor(y) + 1 - y
    if d[1] < 0:
        return y - (math.ceil(y) - 1)
    return 0.0


class Player:
    def __init__(self, x, y):
        self.start = (x, y)
        self.reset()

    def reset(self):
        self.x = float(self.start[0])
        self.y = float(self.start[1])
        self.dir = RIGHT
        self.next_dir = RIGHT
        self.last_move_ms = 0

    def update(self, env, move_dist):
        grid = env.grid

        # Reversing never needs a tile center.
        if self.next_dir != NONE and self.next_dir == opposite(self.dir):
            self.dir = self.next_dir

        moved = False
        loops = 0
        while move_dist > 0 and loops < env.max_player_substeps:
            loops += 1
            if is_centered(self.x, self.y):
                self.x = wrap_x(float(tile_of(self.x)), grid.width)
                self.y = float(tile_of(self.y))
                tx, ty = int(self.x), int(self.y)
                if self.next_dir != NONE and self.next_dir != self.dir:
                    if grid.player_can_enter(tx + self.next_dir[0], ty + self.next_dir[1]):
                        self.dir = self.next_dir
                if not grid.player_can_enter(tx + self.dir[0], ty + self.dir[1]):
                    break

            if self.dir == NONE:
                break
            dist = distance_to_next_center(self.x, self.y, self.dir)
            if dist <= 0.0001:
                dist = 1.0
            step = min(dist, move_dist)
            self.x = wrap_x(self.x + self.dir[0] * step, grid.width)
            self.y += self.dir[1] * step
            move_dist -= step
            moved = True
        return moved


class Ghost:
    def __init__(self, ghost_id, color, start):
        self.ghost_id = ghost_id
        self.color = color
        self.start = start
        self.status = NORMAL
        self.reset()

    def reset(self):
        self.x = float(self.start[0])
        self.y = float(self.start[1])
        self.dir = UP

    def steer(self, env):
        self.dir = next_direction(
            self,
            env.player_tile(),
            env.player.dir,
            leader_position(env.ghosts),
            env.grid,
            env.round,
            env.rng,
        )

    def update(self, env, move_dist):
        if self.status == EATEN:
            return
        grid = env.grid
        steps = 0
        while move_dist > 0 and steps < env.max_ghost_substeps:
            steps += 1
            if is_centered(self.x, self.y):
                tx, ty = tile_of(self.x), tile_of(self.y)
                if not grid.ghost_can_enter(tx + self.dir[0], ty + self.dir[1]):
                    # Parked at a center facing a wall (spawn or respawn).
                    self.x, self.y = float(tx), float(ty)
                    self.steer(env)

            dist = distance_to_next_center(self.x, self.y, self.dir)
            if dist <= 0.0001:
                dist = 1.0
            if dist <= move_dist:
                self.x += self.dir[0] * dist
                self.y += self.dir[1] * dist
                move_dist -= dist
                self.x = wrap_x(float(tile_of(self.x)), grid.width)
                self.y = float(tile_of(self.y))
                self.steer(env)
            else:
                self.x = wrap_x(self.x + self.dir[0] * move_dist, grid.width)
                self.y += self.dir[1] * move_dist
                move_dist = 0


class MazeEnv:
    def __init__(
        self,
        config=None,
        base_maze=None,
        seed=None,
        score_store=None,
        team="PLAYER",
        ghost_roster=None,
        round_configs=None,
    ):
        self.config = DEFAULT_CONFIG.copy()
        if config:
            self.config.update(config)
        self.tile = int(self.config["tile_size"])
        self.starting_lives = int(self.config["starting_lives"])
        self.vulnerable_duration_ms = int(self.config["vulnerable_duration_ms"])
        self.respawn_pause_ms = int(self.config["respawn_pause_ms"])
        self.level_complete_pause_ms = int(self.config["level_complete_pause_ms"])
        self.pellet_points = int(self.config["pellet_points"])
        self.power_pellet_points = int(self.config["power_pellet_points"])
        self.capture_base_points = int(self.config["capture_base_points"])
        self.collision_distance = float(self.config["collision_distance"])
        self.popup_lifetime_ms = int(self.config["popup_lifetime_ms"])
        self.max_player_substeps = int(self.config["max_player_substeps"])
        self.max_ghost_substeps = int(self.config["max_ghost_substeps"])
        self.respawn_flash_ms = int(self.config["respawn_flash_ms"])

        self.base_maze = base_maze or BASE_MAZE
        self.base_grid = Grid.from_rows(self.base_maze)
        spawns = self.base_grid.find(PLAYER_SPAWN)
        if not spawns:
            raise ValueError("maze has no player spawn 'P'")
        self.player_start = spawns[0]
        self.grid_w = self.base_grid.width
        self.grid_h = self.base_grid.height
        self.ghost_roster = list(ghost_roster if ghost_roster is not None else GHOST_ROSTER)
        self.round_configs = round_configs or ROUND_CONFIGS
        self.final_round = max(self.round_configs)
        self.rng = random.Random(seed)
        self.score_store = score_store
        self.team = team

        self.player = Player(*self.player_start)
        self.ghosts = []
        self.reset_all()

    def clone(self):
        # Clones never write to the leaderboard.
        cloned = copy.deepcopy(self, {id(self.score_store): None})
        cloned.rng.setstate(self.rng.getstate())
        return cloned

    def action_count(self):
        return len(MOVE_DIRS)

    def index_to_action(self, idx):
        return MOVE_DIRS[idx]

    def action_to_index(self, move_dir):
        return MOVE_DIRS.index(move_dir)

    def speed_ms_for_round(self, round_num):
        return self.round_configs[round_num]["speed_ms"]

    def ghost_speed_for_round(self, round_num):
        return self.round_configs[round_num]["ghost_speed"]

    def ghost_count_for_round(self, round_num):
        return min(len(self.ghost_roster), self.round_configs[round_num]["ghost_count"])

    def player_tile(self):
        return (tile_of(self.player.x) % self.grid_w, tile_of(self.player.y))

    def reset_all(self):
        self.score = 0
        self.lives = self.starting_lives
        self.clock_ms = 0
        self.game_over = False
        self.game_won = False
        self.score_recorded = False
        self.init_round(1)

    def init_round(self, round_num):
        duration, message = ROUND_START_PAUSE.get(round_num, (2000, "READY"))
        self.round = round_num
        self.grid = self.base_grid.copy()
        self.pellets_remaining = self.grid.count_pellets()
        self.power_pellet_locations = self.grid.power_pellet_locations()
        self.power_pellets_on_board = len(self.power_pellet_locations)
        self.player.reset()
        self._resize_roster(self.ghost_count_for_round(round_num))
        self.vulnerable_until = 0
        self.capture_streak = 0
        self.popups = []
        self.respawn_flash_until = 0
        self._enter_pause(ROUND_STARTING, duration, f"ROUND {round_num} - {message}")

    def _resize_roster(self, count):
        for i, (ghost_id, color, start) in enumerate(self.ghost_roster[:count]):
            if i < len(self.ghosts):
                ghost = self.ghosts[i]
                ghost.reset()
                ghost.status = NORMAL
            else:
                self.ghosts.append(Ghost(ghost_id, color, start))
        del self.ghosts[count:]

    def _enter_pause(self, status, duration, message):
        self.status = status
        self.pause_timer = duration
        self.pause_duration = duration
        self.pause_message = message

    @property
    def is_paused(self):
        return self.status != PLAYING

    @property
    def countdown(self):
        if self.status in (ROUND_STARTING, RESPAWNING) and self.pause_timer > 0:
            return int(math.ceil(self.pause_timer / 1000.0))
        return 0

    def set_desired_direction(self, direction):
        direction = tuple(direction)
        if direction not in (UP, DOWN, LEFT, RIGHT):
            raise ValueError(f"not a cardinal direction: {direction!r}")
        self.player.next_dir = direction

    def tick(self, elapsed_ms):
        if self.is_terminal():
            return
        elapsed = max(0, elapsed_ms)
        self.clock_ms += elapsed

        if self.status != PLAYING:
            self._run_pause(elapsed)
            return

        move_dist = elapsed / float(self.speed_ms_for_round(self.round))
        if self.player.update(self, move_dist):
            self.player.last_move_ms = self.clock_ms

        self.eat_at_player()
        if self.pellets_remaining == 0:
            self._enter_pause(LEVEL_TRANSITION, self.level_complete_pause_ms, "ROUND COMPLETE")
            return

        ghost_move = move_dist * self.ghost_speed_for_round(self.round)
        for ghost in self.ghosts:
            ghost.update(self, ghost_move)

        self.update_vulnerability()
        self.popups = [p for p in self.popups if self.clock_ms - p["created_ms"] < self.popup_lifetime_ms]
        self.resolve_collisions()

    def _run_pause(self, elapsed):
        self.pause_timer -= elapsed
        if self.pause_timer > 0:
            return
        if self.status == LEVEL_TRANSITION:
            if self.round < self.final_round:
                self.init_round(self.round + 1)
            else:
                self.pause_timer = 0
                self.pause_message = "VICTORY"
                self.game_won = True
                self.record_final_score()
            return
        self.status = PLAYING
        self.pause_timer = 0
        self.pause_message = ""

    def eat_at_player(self):
        px, py = self.player_tile()
        kind = self.grid.consume(px, py)
        if kind == PELLET:
            self.score += self.pellet_points
            self.pellets_remaining -= 1
        elif kind == POWER_PELLET:
            self.score += self.power_pellet_points
            self.pellets_remaining -= 1
            self.power_pellets_on_board -= 1
            self.start_vulnerability()
            if self.power_pellets_on_board == 0:
                self.respawn_power_pellets()
        return kind

    def start_vulnerability(self):
        self.vulnerable_until = self.clock_ms + self.vulnerable_duration_ms
        self.capture_streak = 0
        for g in self.ghosts:
            if g.status != EATEN:
                g.status = VULNERABLE

    def update_vulnerability(self):
        if self.vulnerable_until > 0 and self.clock_ms > self.vulnerable_until:
            self.vulnerable_until = 0
            self.capture_streak = 0
            for g in self.ghosts:
                if g.status == VULNERABLE:
                    g.status = NORMAL

    def respawn_power_pellets(self):
        if not any(g.status != EATEN for g in self.ghosts):
            return 0
        occupied = self.player_tile()
        restored = 0
        for x, y in self.power_pellet_locations:
            # Not under the player, or it would be eaten again on the next tick.
            if (x, y) == occupied:
                continue
            if self.grid.restore_power_pellet(x, y):
                restored += 1
        if restored:
            self.power_pellets_on_board = restored
            self.pellets_remaining += restored
            self.respawn_flash_until = self.clock_ms + self.respawn_flash_ms
        return restored

    def capture_points(self, streak):
        # No cap: 200, 400, 800, 1600, 3200, ...
        return self.capture_base_points * 2 ** (streak - 1)

    def resolve_collisions(self):
        for ghost in list(self.ghosts):
            if self.is_terminal():
                break
            if ghost.status == EATEN or ghost not in self.ghosts:
                continue
            dist = math.hypot(ghost.x - self.player.x, ghost.y - self.player.y)
            if dist >= self.collision_distance:
                continue
            if ghost.status == VULNERABLE:
                ghost.status = EATEN
                self.capture_streak += 1
                points = self.capture_points(self.capture_streak)
                self.score += points
                self.popups.append({"x": ghost.x, "y": ghost.y, "score": points, "created_ms": self.clock_ms})
            else:
                self.apply_player_hit()

    def apply_player_hit(self):
        self.lives -= 1
        if self.lives > 0:
            self.player.reset()
            for g in self.ghosts:
                if g.status != EATEN:
                    g.reset()
            self._enter_pause(RESPAWNING, self.respawn_pause_ms, "READY!")
            return

        self.status = LEVEL_TRANSITION
        if self.round == 1:
            self.pause_timer = 0
            self.pause_message = "GAME OVER"
            self.game_over = True
            self.record_final_score()
        else:
            self.lives = self.starting_lives
            self.init_round(1)

    def record_final_score(self):
        if self.score_recorded:
            return
        self.score_recorded = True
        if self.score_store is None:
            return
        try:
            self.score_store.record_final_score(self.team, self.score)
        except Exception as exc:
            print(f"Failed to record final score: {exc}", file=sys.stderr)

    def step_action(self, action_idx, dt_ms=16):
        move_dir = MOVE_DIRS[action_idx]
        prev_score = self.score
        prev_lives = self.lives
        prev_round = self.round
        if move_dir != NONE:
            self.set_desired_direction(move_dir)
        self.tick(dt_ms)
        return {
            "score_delta": self.score - prev_score,
            "lives_delta": self.lives - prev_lives,
            "round_delta": self.round - prev_round,
            "done": self.is_terminal(),
            "game_over": self.game_over,
            "game_won": self.game_won,
        }

    def is_terminal(self):
        return self.game_over or self.game_won

    def terminal_value(self):
        if self.game_won:
            return 1.0
        if self.game_over:
            return -1.0
        return 0.0

    def get_state(self):
        return {
            "grid_w": self.grid_w,
            "grid_h": self.grid_h,
            "grid": self.grid.cells.copy(),
            "round": self.round,
            "round_name": self.round_configs[self.round]["name"],
            "score": self.score,
            "lives": self.lives,
            "status": self.status,
            "pause_timer": self.pause_timer,
            "pause_duration": self.pause_duration,
            "pause_message": self.pause_message,
            "countdown": self.countdown,
            "pellets_remaining": self.pellets_remaining,
            "power_pellets_on_board": self.power_pellets_on_board,
            "player": {
                "x": self.player.x,
                "y": self.player.y,
                "dir": self.player.dir,
                "next_dir": self.player.next_dir,
                "last_move_ms": self.player.last_move_ms,
            },
            "ghosts": [
                {
                    "id": g.ghost_id,
                    "x": g.x,
                    "y": g.y,
                    "dir": g.dir,
                    "color": g.color,
                    "status": g.status,
                }
                for g in self.ghosts
            ],
            "vulnerable_until": self.vulnerable_until,
            "capture_streak": self.capture_streak,
            "popups": [dict(p) for p in self.popups],
            "respawn_flash": self.clock_ms < self.respawn_flash_until,
            "clock_ms": self.clock_ms,
            "game_over": self.game_over,
            "game_won": self.game_won,
        }

    def get_observation(self):
        walls = self.grid.mask(WALL, GHOST_SPAWN)
        pellets = self.grid.mask(PELLET)
        power = self.grid.mask(POWER_PELLET)
        player = np.zeros((self.grid_h, self.grid_w), dtype=np.float32)
        ghost = np.zeros_like(player)
        ghost_vulnerable = np.zeros_like(player)

        px, py = self.player_tile()
        if 0 <= py < self.grid_h:
            player[py, px] = 1.0

        for g in self.ghosts:
            if g.status == EATEN:
                continue
            gx = tile_of(g.x) % self.grid_w
            gy = tile_of(g.y)
            if not 0 <= gy < self.grid_h:
                continue
            if g.status == VULNERABLE:
                ghost_vulnerable[gy, gx] = 1.0
            else:
                ghost[gy, gx] = 1.0

        planes = np.stack([walls, pellets, power, player, ghost, ghost_vulnerable], axis=0)
        labels = ["walls", "pellets", "power", "player", "ghost", "ghost_vulnerable"]
        remaining_ms = max(0, self.vulnerable_until - self.clock_ms) if self.vulnerable_until else 0
        scalars = {
            "round": self.round,
            "score": self.score,
            "lives": self.lives,
            "playing": 1.0 if self.status == PLAYING else 0.0,
            "vulnerable": remaining_ms / float(self.vulnerable_duration_ms) if self.vulnerable_duration_ms else 0.0,
            "pellets_remaining": self.pellets_remaining,
            "game_over": 1.0 if self.game_over else 0.0,
            "game_won": 1.0 if self.game_won else 0.0,
        }
        return planes, labels, scalars
