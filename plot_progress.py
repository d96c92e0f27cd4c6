import json
import os

import matplotlib.pyplot as plt


LOG_PATH = os.path.join(os.path.dirname(__file__), "run_log.jsonl")
OUT_PATH = os.path.join(os.path.dirname(__file__), "run_progress.png")


def read_log(path):
    episodes = []
    scores = []
    rounds = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            data = json.loads(line)
            episodes.append(len(episodes))
            scores.append(int(data.get("score", 0)))
            rounds.append(int(data.get("round", 0)))
    return episodes, scores, rounds


def main():
    if not os.path.exists(LOG_PATH):
        raise SystemExit("run_log.jsonl not found. Run simulate.py first.")

    episodes, scores, rounds = read_log(LOG_PATH)
    if not episodes:
        raise SystemExit("No log entries found.")

    fig, ax1 = plt.subplots(figsize=(8, 4))
    ax1.plot(episodes, scores, label="Score", color="tab:blue")
    ax1.set_xlabel("Episode")
    ax1.set_ylabel("Score", color="tab:blue")
    ax1.tick_params(axis="y", labelcolor="tab:blue")
    ax1.grid(True, alpha=0.3)

    ax2 = ax1.twinx()
    ax2.step(episodes, rounds, label="Final round", color="tab:red", alpha=0.6, where="mid")
    ax2.set_ylabel("Final round", color="tab:red")
    fig.tight_layout()
    plt.savefig(OUT_PATH, dpi=160)
    print(f"Saved plot to {OUT_PATH}")


if __name__ == "__main__":
    main()
