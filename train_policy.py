import argparse
import json
import os
import random

import numpy as np
import torch
from torch import nn
from torch.utils.data import DataLoader, Dataset, random_split

from maze_env import MOVE_LABELS
from policy_model import PolicyNet, select_device

DATA_DIR = os.path.join(os.path.dirname(__file__), "data", "runs")
MODEL_PATH = os.path.join(os.path.dirname(__file__), "policy_model.pt")
META_PATH = os.path.join(os.path.dirname(__file__), "policy_model_meta.json")


def set_seed(seed):
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)


class PlaneDataset(Dataset):
    def __init__(self, obs, moves):
        self.obs = obs
        self.moves = moves

    def __len__(self):
        return len(self.obs)

    def __getitem__(self, idx):
        planes = torch.from_numpy(self.obs[idx].astype(np.float32))
        return planes, int(self.moves[idx])


def load_runs(data_dir, paths=None):
    names = []
    if paths:
        names = [p for p in paths if p.endswith(".npz") and os.path.exists(p)]
    elif os.path.isdir(data_dir):
        names = [os.path.join(data_dir, n) for n in sorted(os.listdir(data_dir)) if n.endswith(".npz")]
    obs = []
    moves = []
    for path in names:
        data = np.load(path)
        if len(data["move"]) == 0:
            continue
        obs.append(data["obs"])
        moves.append(data["move"])
    if not obs:
        return None, None
    return np.concatenate(obs, axis=0), np.concatenate(moves, axis=0)


def class_weights(moves, num_classes):
    counts = np.bincount(moves, minlength=num_classes).astype(np.float32)
    weights = np.zeros_like(counts)
    total = counts.sum()
    for i, c in enumerate(counts):
        if c > 0:
            weights[i] = total / (num_classes * c)
    return counts, weights


def main():
    parser = argparse.ArgumentParser(description="Behaviour-clone a policy from recorded runs.")
    parser.add_argument("paths", nargs="*", help="explicit .npz files (default: everything in data/runs)")
    parser.add_argument("--epochs", type=int, default=10)
    parser.add_argument("--batch", type=int, default=128)
    parser.add_argument("--lr", type=float, default=1e-3)
    parser.add_argument("--val-split", type=float, default=0.1)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--fine-tune", action="store_true")
    args = parser.parse_args()

    set_seed(args.seed)
    obs, moves = load_runs(DATA_DIR, args.paths or None)
    if obs is None:
        raise SystemExit("No recorded runs found. Run simulate.py first.")

    counts, weights = class_weights(moves, len(MOVE_LABELS))
    print("Move counts:", {MOVE_LABELS[i]: int(c) for i, c in enumerate(counts)})
    print("Move weights:", {MOVE_LABELS[i]: float(f"{w:.3f}") for i, w in enumerate(weights)})

    dataset = PlaneDataset(obs, moves)
    val_len = int(len(dataset) * args.val_split)
    train_len = len(dataset) - val_len
    train_set, val_set = random_split(dataset, [train_len, val_len])
    train_loader = DataLoader(train_set, batch_size=args.batch, shuffle=True)
    val_loader = DataLoader(val_set, batch_size=args.batch, shuffle=False)

    device = select_device()
    input_shape = obs.shape[1:]
    model = PolicyNet(input_shape, len(MOVE_LABELS)).to(device)
    if args.fine_tune and os.path.exists(MODEL_PATH):
        model.load_state_dict(torch.load(MODEL_PATH, map_location=device))
        print("Loaded existing model for fine-tuning.")
    opt = torch.optim.Adam(model.parameters(), lr=args.lr)
    loss_fn = nn.CrossEntropyLoss(weight=torch.tensor(weights, dtype=torch.float32, device=device))

    for epoch in range(1, args.epochs + 1):
        model.train()
        total_loss = 0.0
        for planes, move in train_loader:
            planes = planes.to(device)
            move = move.to(device)
            opt.zero_grad()
            loss = loss_fn(model(planes), move)
            loss.backward()
            opt.step()
            total_loss += loss.item()

        model.eval()
        correct = 0
        total = 0
        with torch.no_grad():
            for planes, move in val_loader:
                planes = planes.to(device)
                move = move.to(device)
                pred = model(planes).argmax(dim=1)
                correct += (pred == move).sum().item()
                total += move.size(0)

        avg_loss = total_loss / max(1, len(train_loader))
        acc = correct / max(1, total)
        print(f"Epoch {epoch:02d} | loss {avg_loss:.4f} | move acc {acc:.3f}")

    torch.save(model.state_dict(), MODEL_PATH)
    meta = {
        "input_shape": list(input_shape),
        "move_labels": MOVE_LABELS,
        "samples": int(len(dataset)),
    }
    with open(META_PATH, "w", encoding="utf-8") as f:
        json.dump(meta, f, indent=2)
    print(f"Saved model to {MODEL_PATH}")


if __name__ == "__main__":
    main()
