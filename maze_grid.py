import math

import numpy as np


WALL = 0
PELLET = 1
EMPTY = 2
POWER_PELLET = 3
GHOST_SPAWN = 8
PLAYER_SPAWN = 9

CHAR_TO_TILE = {
    "#": WALL,
    ".": PELLET,
    " ": EMPTY,
    "o": POWER_PELLET,
    "G": GHOST_SPAWN,
    "P": PLAYER_SPAWN,
}
TILE_TO_CHAR = {v: k for k, v in CHAR_TO_TILE.items()}

UP = (0, -1)
DOWN = (0, 1)
LEFT = (-1, 0)
RIGHT = (1, 0)
NONE = (0, 0)

# Evaluation order for ghost moves; the first minimal candidate wins ties.
DIRECTION_ORDER = [UP, LEFT, DOWN, RIGHT]

BASE_MAZE = [
    "###################",
    "#o.......#.......o#",
    "#.##.###.#.###.##.#",
    "#.##.###.#.###.##.#",
    "#.................#",
    "#.##.#.#####.#.##.#",
    "#....#...#...#....#",
    "####.###   ###.####",
    "   #.#  GGG  #.#   ",
    "####.# ## ## #.####",
    "#........P........#",
    "#.##.###.#.###.##.#",
    "#..#.....#.....#..#",
    "##.#.#.#####.#.#.##",
    "#o...#...#...#...o#",
    "###################",
]


def opposite(d):
    return (-d[0], -d[1])


def tile_of(v):
    # Half-up rounding; Python's round() would send 0.5 and 2.5 to even tiles.
    return int(math.floor(v + 0.5))


def wrap_x(x, width):
    """Keep a horizontal coordinate inside the tunnel interval (-0.5, width - 0.5]."""
    if x <= -0.5:
        return x + width
    if x > width - 0.5:
        return x - width
    return x


def is_walkable(tile):
    return tile is not None and tile != WALL


class Grid:
    def __init__(self, cells):
        self.cells = np.array(cells, dtype=np.int8)
        if self.cells.ndim != 2 or self.cells.size == 0:
            raise ValueError("grid must be a non-empty 2D matrix")
        self.height, self.width = self.cells.shape

    @classmethod
    def from_rows(cls, rows):
        if not rows:
            raise ValueError("maze has no rows")
        width = len(rows[0])
        cells = []
        for y, row in enumerate(rows):
            if len(row) != width:
                raise ValueError(f"maze row {y} has width {len(row)}, expected {width}")
            try:
                cells.append([CHAR_TO_TILE[ch] for ch in row])
            except KeyError as exc:
                raise ValueError(f"unknown maze character {exc.args[0]!r} in row {y}") from None
        return cls(cells)

    def to_rows(self):
        return ["".join(TILE_TO_CHAR[int(v)] for v in row) for row in self.cells]

    def copy(self):
        return Grid(self.cells.copy())

    def tile_at(self, x, y):
        if y < 0 or y >= self.height:
            return None
        return int(self.cells[y, x % self.width])

    def player_can_enter(self, x, y):
        tile = self.tile_at(x, y)
        return is_walkable(tile) and tile != GHOST_SPAWN

    def ghost_can_enter(self, x, y):
        if x < 0 or x >= self.width:
            return True
        return is_walkable(self.tile_at(x, y))

    def consume(self, x, y):
        tile = self.tile_at(x, y)
        if tile not in (PELLET, POWER_PELLET):
            return None
        self.cells[y, x % self.width] = EMPTY
        return tile

    def restore_power_pellet(self, x, y):
        if self.tile_at(x, y) != EMPTY:
            return False
        self.cells[y, x % self.width] = POWER_PELLET
        return True

    def count_pellets(self):
        return int(np.count_nonzero((self.cells == PELLET) | (self.cells == POWER_PELLET)))

    def count(self, tile):
        return int(np.count_nonzero(self.cells == tile))

    def find(self, tile):
        ys, xs = np.nonzero(self.cells == tile)
        return [(int(x), int(y)) for y, x in zip(ys, xs)]

    def power_pellet_locations(self):
        return self.find(POWER_PELLET)

    def mask(self, *tiles):
        return np.isin(self.cells, tiles).astype(np.float32)
