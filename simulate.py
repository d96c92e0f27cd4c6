import argparse
import json
import os
import random
import time
from datetime import datetime

import numpy as np

from autopilot import choose_action
from leaderboard import JsonLeaderboard
from maze_env import MOVE_DIRS, PLAYING, MazeEnv, load_config

DATA_DIR = os.path.join(os.path.dirname(__file__), "data", "runs")
MODEL_PATH = os.path.join(os.path.dirname(__file__), "policy_model.pt")
LOG_PATH = os.path.join(os.path.dirname(__file__), "run_log.jsonl")


def outcome_label(env):
    if env.game_won:
        return "victory"
    if env.game_over:
        return "game_over"
    return "timeout"


def play_episode(config, select_action, dt_ms, max_steps, seed=None, score_store=None, team="AUTOPILOT"):
    env = MazeEnv(config, seed=seed, score_store=score_store, team=team)
    observations = []
    moves = []
    steps = 0

    while not env.is_terminal() and steps < max_steps:
        action = select_action(env)
        if env.status == PLAYING:
            planes, _, _ = env.get_observation()
            observations.append(planes.astype(np.uint8))
            moves.append(action)
        env.step_action(action, dt_ms=dt_ms)
        steps += 1

    channels = len(env.get_observation()[1])
    return {
        "obs": np.stack(observations, axis=0)
        if observations
        else np.zeros((0, channels, env.grid_h, env.grid_w), dtype=np.uint8),
        "move": np.asarray(moves, dtype=np.int64),
        "steps": steps,
        "score": env.score,
        "round": env.round,
        "lives": env.lives,
        "outcome": outcome_label(env),
    }


def build_policy_selector(model_path):
    from policy_model import load_model, policy_action, select_device

    env = MazeEnv()
    input_shape = env.get_observation()[0].shape
    device = select_device()
    if not os.path.exists(model_path):
        raise SystemExit(f"Model not found: {model_path}. Run train_policy.py first.")
    model = load_model(model_path, input_shape, len(MOVE_DIRS), device)
    model.eval()

    def select(env):
        return policy_action(model, env, device)

    return select


def main():
    parser = argparse.ArgumentParser(description="Run headless maze episodes and record them.")
    parser.add_argument("--episodes", type=int, default=1)
    parser.add_argument("--agent", choices=["autopilot", "policy"], default="autopilot")
    parser.add_argument("--model", default=MODEL_PATH)
    parser.add_argument("--dt-ms", type=int, default=16)
    parser.add_argument("--max-steps", type=int, default=20000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--team", default="AUTOPILOT")
    parser.add_argument("--record-scores", action="store_true", help="write final scores to the leaderboard")
    parser.add_argument("--no-save", action="store_true", help="do not write .npz datasets")
    args = parser.parse_args()

    cfg = load_config()
    if args.agent == "policy":
        select_action = build_policy_selector(args.model)
    else:
        select_action = choose_action

    score_store = JsonLeaderboard() if args.record_scores else None
    if not args.no_save:
        os.makedirs(DATA_DIR, exist_ok=True)

    if args.seed is not None:
        random.seed(args.seed)
        np.random.seed(args.seed)
    rng = random.Random(args.seed)

    for episode in range(args.episodes):
        seed = rng.randint(0, 1_000_000)
        result = play_episode(
            cfg,
            select_action,
            dt_ms=args.dt_ms,
            max_steps=args.max_steps,
            seed=seed,
            score_store=score_store,
            team=args.team,
        )
        out_path = None
        if not args.no_save and len(result["move"]):
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            out_path = os.path.join(DATA_DIR, f"run_{timestamp}_{episode:03d}.npz")
            np.savez_compressed(out_path, obs=result["obs"], move=result["move"])

        with open(LOG_PATH, "a", encoding="utf-8") as f:
            f.write(
                json.dumps(
                    {
                        "ts": time.time(),
                        "episode": episode,
                        "agent": args.agent,
                        "steps": result["steps"],
                        "score": result["score"],
                        "round": result["round"],
                        "outcome": result["outcome"],
                        "file": out_path,
                    }
                )
                + "\n"
            )
        print(
            f"Episode {episode} | steps={result['steps']} score={result['score']} "
            f"round={result['round']} outcome={result['outcome']}"
            + (f" | saved {out_path}" if out_path else "")
        )


if __name__ == "__main__":
    main()
