from collections import deque

from ghost_ai import EATEN, VULNERABLE
from maze_env import MOVE_DIRS
from maze_grid import DIRECTION_ORDER, NONE, POWER_PELLET, PELLET, tile_of

DANGER_RADIUS = 2


def neighbours(grid, pos):
    x, y = pos
    for d in DIRECTION_ORDER:
        nx, ny = x + d[0], y + d[1]
        if grid.player_can_enter(nx, ny):
            yield d, (nx % grid.width, ny)


def first_step_to(grid, start, goal_fn, blocked=frozenset()):
    """First move of a shortest path from start to any tile where goal_fn holds."""
    q = deque([(start, None)])
    visited = {start}
    while q:
        pos, first = q.popleft()
        if first is not None and goal_fn(pos):
            return first
        for d, nxt in neighbours(grid, pos):
            if nxt in visited or nxt in blocked:
                continue
            visited.add(nxt)
            q.append((nxt, first if first is not None else d))
    return None


def danger_tiles(env):
    tiles = set()
    for g in env.ghosts:
        if g.status in (EATEN, VULNERABLE):
            continue
        gx, gy = tile_of(g.x) % env.grid_w, tile_of(g.y)
        for dy in range(-DANGER_RADIUS, DANGER_RADIUS + 1):
            for dx in range(-DANGER_RADIUS, DANGER_RADIUS + 1):
                if abs(dx) + abs(dy) <= DANGER_RADIUS:
                    tiles.add(((gx + dx) % env.grid_w, gy + dy))
    return tiles


def choose_direction(env):
    grid = env.grid
    start = env.player_tile()
    blocked = danger_tiles(env)
    blocked.discard(start)

    prey = {
        (tile_of(g.x) % env.grid_w, tile_of(g.y)) for g in env.ghosts if g.status == VULNERABLE
    }

    def is_food(pos):
        return grid.tile_at(*pos) in (PELLET, POWER_PELLET)

    goals = []
    if prey:
        goals.append(lambda pos: pos in prey)
    goals.append(is_food)

    for goal in goals:
        step = first_step_to(grid, start, goal, blocked)
        if step is not None:
            return step
    # Boxed in by ghosts: head for food regardless.
    step = first_step_to(grid, start, is_food)
    return step if step is not None else NONE


def choose_action(env):
    return MOVE_DIRS.index(choose_direction(env))
