import argparse
import os
import sys

import pygame

from autopilot import choose_direction
from ghost_ai import EATEN, VULNERABLE
from leaderboard import JsonLeaderboard
from maze_env import PLAYING, MazeEnv, load_config
from maze_grid import DOWN, LEFT, NONE, PELLET, POWER_PELLET, RIGHT, UP, WALL

FPS = 60
HUD_HEIGHT = 36

BLACK = (10, 10, 15)
WHITE = (240, 240, 240)
YELLOW = (250, 215, 70)
FRIGHT_BLUE = (40, 60, 220)
WALL_COLORS = {1: (40, 60, 200), 2: (120, 60, 190), 3: (190, 50, 50)}

KEY_TO_DIR = {
    pygame.K_UP: UP,
    pygame.K_w: UP,
    pygame.K_DOWN: DOWN,
    pygame.K_s: DOWN,
    pygame.K_LEFT: LEFT,
    pygame.K_a: LEFT,
    pygame.K_RIGHT: RIGHT,
    pygame.K_d: RIGHT,
}

MOUTH_ANGLES = {RIGHT: 0, UP: 90, LEFT: 180, DOWN: 270, NONE: 0}


def draw_player(screen, state, tile):
    player = state["player"]
    cx = int(player["x"] * tile + tile // 2)
    cy = int(player["y"] * tile + tile // 2)
    radius = tile // 2 - 3
    pygame.draw.circle(screen, YELLOW, (cx, cy), radius)
    # Mouth wedge, opening and closing with the clock.
    opening = 20 + 25 * abs((state["clock_ms"] // 40) % 10 - 5) / 5
    facing = MOUTH_ANGLES.get(tuple(player["dir"]), 0)
    vec = pygame.math.Vector2(radius + 2, 0)
    upper = vec.rotate(-(facing + opening))
    lower = vec.rotate(-(facing - opening))
    pygame.draw.polygon(screen, BLACK, [(cx, cy), (cx + upper.x, cy + upper.y), (cx + lower.x, cy + lower.y)])


def draw_ghost(screen, ghost, tile, flashing):
    if ghost["status"] == EATEN:
        return
    x = ghost["x"] * tile
    y = ghost["y"] * tile
    if ghost["status"] == VULNERABLE:
        color = WHITE if flashing else FRIGHT_BLUE
    else:
        color = ghost["color"]
    body_rect = pygame.Rect(int(x) + 3, int(y) + 3, tile - 6, tile - 6)
    pygame.draw.rect(screen, color, body_rect, border_top_left_radius=tile // 2, border_top_right_radius=tile // 2)

    eye_offset_x = tile // 6
    eye_offset_y = tile // 8
    cx = int(x + tile // 2)
    cy = int(y + tile // 2)
    dx, dy = ghost["dir"]
    pygame.draw.circle(screen, WHITE, (cx - eye_offset_x, cy - eye_offset_y), max(2, tile // 8))
    pygame.draw.circle(screen, WHITE, (cx + eye_offset_x, cy - eye_offset_y), max(2, tile // 8))
    pygame.draw.circle(screen, BLACK, (cx - eye_offset_x + dx * 2, cy - eye_offset_y + dy * 2), max(1, tile // 16))
    pygame.draw.circle(screen, BLACK, (cx + eye_offset_x + dx * 2, cy - eye_offset_y + dy * 2), max(1, tile // 16))


def draw(screen, env, fonts):
    state = env.get_state()
    tile = env.tile
    width = state["grid_w"] * tile
    height = state["grid_h"] * tile
    screen.fill(BLACK)

    wall_color = WALL_COLORS.get(state["round"], WALL_COLORS[1])
    if state["respawn_flash"]:
        wall_color = WHITE
    grid = state["grid"]
    for y in range(state["grid_h"]):
        for x in range(state["grid_w"]):
            cell = grid[y, x]
            center = (x * tile + tile // 2, y * tile + tile // 2)
            if cell == WALL:
                pygame.draw.rect(screen, wall_color, pygame.Rect(x * tile, y * tile, tile, tile), border_radius=4)
            elif cell == PELLET:
                pygame.draw.circle(screen, WHITE, center, max(2, tile // 12))
            elif cell == POWER_PELLET and (state["clock_ms"] // 250) % 2 == 0:
                pygame.draw.circle(screen, WHITE, center, tile // 4)

    remaining = state["vulnerable_until"] - state["clock_ms"]
    flashing = 0 < remaining < 2000 and (state["clock_ms"] // 200) % 2 == 0
    for ghost in state["ghosts"]:
        draw_ghost(screen, ghost, tile, flashing)
    draw_player(screen, state, tile)

    for popup in state["popups"]:
        text = fonts["small"].render(str(popup["score"]), True, WHITE)
        px = int(popup["x"] * tile + tile // 2 - text.get_width() // 2)
        py = int(popup["y"] * tile - (state["clock_ms"] - popup["created_ms"]) / 1000.0 * tile)
        screen.blit(text, (px, py))

    hud = fonts["hud"].render(
        f"Score: {state['score']:06d}  Lives: {state['lives']}  Round: {state['round']} ({state['round_name']})"
        f"  Pellets: {state['pellets_remaining']}",
        True,
        WHITE,
    )
    screen.blit(hud, (10, height + (HUD_HEIGHT - hud.get_height()) // 2))

    if state["status"] != PLAYING or env.is_terminal():
        overlay = pygame.Surface((width, height), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 150))
        screen.blit(overlay, (0, 0))
        msg = fonts["big"].render(state["pause_message"], True, WHITE)
        screen.blit(msg, (width // 2 - msg.get_width() // 2, height // 2 - msg.get_height()))
        if state["countdown"] > 0:
            count = fonts["big"].render(str(state["countdown"]), True, YELLOW)
            screen.blit(count, (width // 2 - count.get_width() // 2, height // 2 + 8))


def draw_leaderboard(screen, env, fonts, entries):
    width = env.grid_w * env.tile
    height = env.grid_h * env.tile
    overlay = pygame.Surface((width, height), pygame.SRCALPHA)
    overlay.fill((0, 0, 0, 210))
    screen.blit(overlay, (0, 0))
    title = "YOU WON" if env.game_won else "GAME OVER"
    y = height // 6
    text = fonts["big"].render(f"{title} - {env.score}", True, YELLOW)
    screen.blit(text, (width // 2 - text.get_width() // 2, y))
    y += text.get_height() + 20
    if not entries:
        entries_text = [fonts["hud"].render("No scores yet", True, WHITE)]
    else:
        entries_text = [
            fonts["hud"].render(f"{i + 1}. {e['team']:<12} {e['score']:>7}  {e['date'][:10]}", True, WHITE)
            for i, e in enumerate(entries)
        ]
    for line in entries_text:
        screen.blit(line, (width // 2 - line.get_width() // 2, y))
        y += line.get_height() + 6
    hint = fonts["small"].render("R = play again  |  ESC = quit", True, WHITE)
    screen.blit(hint, (width // 2 - hint.get_width() // 2, height - hint.get_height() - 16))


def main():
    parser = argparse.ArgumentParser(description="Maze Chase")
    parser.add_argument("--team", default="PLAYER")
    parser.add_argument("--fps", type=int, default=FPS)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--autopilot", action="store_true", help="let the scripted agent steer")
    args = parser.parse_args()

    cfg = load_config()
    leaderboard = JsonLeaderboard()
    env = MazeEnv(cfg, seed=args.seed, score_store=leaderboard, team=args.team)

    os.environ.setdefault("SDL_VIDEO_WINDOW_POS", "60,60")
    pygame.init()
    screen = pygame.display.set_mode((env.grid_w * env.tile, env.grid_h * env.tile + HUD_HEIGHT))
    pygame.display.set_caption("Maze Chase")
    clock = pygame.time.Clock()
    fonts = {
        "small": pygame.font.SysFont("Arial", 16),
        "hud": pygame.font.SysFont("Arial", 20),
        "big": pygame.font.SysFont("Arial", 44, bold=True),
    }

    ranked = None
    running = True
    while running:
        dt = clock.tick(args.fps)
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif env.is_terminal():
                    if event.key == pygame.K_r:
                        env.reset_all()
                        ranked = None
                elif event.key in KEY_TO_DIR:
                    env.set_desired_direction(KEY_TO_DIR[event.key])

        if args.autopilot and not env.is_terminal():
            direction = choose_direction(env)
            if direction != NONE:
                env.set_desired_direction(direction)

        env.tick(dt)
        draw(screen, env, fonts)
        if env.is_terminal():
            if ranked is None:
                ranked = leaderboard.fetch_ranked_scores()
                print(f"Run over ({'victory' if env.game_won else 'game over'}) | score={env.score} round={env.round}")
            draw_leaderboard(screen, env, fonts, ranked)
        pygame.display.flip()

    pygame.quit()
    sys.exit()


if __name__ == "__main__":
    main()
