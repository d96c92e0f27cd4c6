from maze_grid import DIRECTION_ORDER, opposite, tile_of


NORMAL = "NORMAL"
VULNERABLE = "VULNERABLE"
EATEN = "EATEN"

LEADER_ID = 1
POKER_RADIUS = 8


def manhattan(a, b):
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def ghost_tile(ghost):
    return (tile_of(ghost.x), tile_of(ghost.y))


def ahead(pos, direction, steps):
    return (pos[0] + direction[0] * steps, pos[1] + direction[1] * steps)


def target_for(ghost, player_pos, player_dir, leader_pos, round_num, grid):
    """Target tile for one ghost.

    Round 1 keeps every ghost on a direct chase. From round 2 each identity
    follows its own rule; the result may lie outside the maze since it is only
    used as a distance reference.
    """
    if round_num == 1:
        return player_pos

    gid = ghost.ghost_id
    if gid == 1:
        return player_pos
    if gid == 2:
        return ahead(player_pos, player_dir, 4)
    if gid == 3:
        if round_num < 3:
            return player_pos
        pivot = ahead(player_pos, player_dir, 2)
        return (
            leader_pos[0] + (pivot[0] - leader_pos[0]) * 2,
            leader_pos[1] + (pivot[1] - leader_pos[1]) * 2,
        )
    if gid == 4:
        if manhattan(ghost_tile(ghost), player_pos) > POKER_RADIUS:
            return player_pos
        return (0, grid.height - 1)
    if gid == 5:
        return ahead(player_pos, player_dir, -4)
    if gid == 6:
        return (grid.width - 1 - player_pos[0], grid.height - 1 - player_pos[1])
    return player_pos


def available_moves(ghost, grid, allow_reverse=False):
    tx, ty = ghost_tile(ghost)
    reverse = opposite(ghost.dir)
    moves = []
    for d in DIRECTION_ORDER:
        if not allow_reverse and d == reverse:
            continue
        if grid.ghost_can_enter(tx + d[0], ty + d[1]):
            moves.append(d)
    return moves


def next_direction(ghost, player_pos, player_dir, leader_pos, grid, round_num, rng):
    moves = available_moves(ghost, grid)

    # Frightened ghosts wander; the only reversal allowed is out of a dead end.
    if ghost.status == VULNERABLE:
        if moves:
            return rng.choice(moves)
        return opposite(ghost.dir)

    if not moves:
        return opposite(ghost.dir)
    if len(moves) == 1:
        return moves[0]

    target = target_for(ghost, player_pos, player_dir, leader_pos, round_num, grid)
    tx, ty = ghost_tile(ghost)
    best = moves[0]
    best_dist = None
    for d in moves:
        dist = manhattan((tx + d[0], ty + d[1]), target)
        if best_dist is None or dist < best_dist:
            best, best_dist = d, dist
    return best


def leader_position(ghosts):
    active = [g for g in ghosts if g.ghost_id == LEADER_ID]
    leader = active[0] if active else (ghosts[0] if ghosts else None)
    if leader is None:
        return (0, 0)
    return (leader.x, leader.y)
