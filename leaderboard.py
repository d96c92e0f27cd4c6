import json
import os
import sys
from datetime import datetime, timezone


LEADERBOARD_PATH = os.path.join(os.path.dirname(__file__), "leaderboard.json")
MAX_ENTRIES = 5


def rank_scores(entries, limit=MAX_ENTRIES):
    return sorted(entries, key=lambda e: e["score"], reverse=True)[:limit]


class JsonLeaderboard:
    """Top-N score list kept in a JSON file.

    Persistence is best-effort: unreadable files count as an empty list and
    failed writes are reported on stderr, never raised into the game loop.
    """

    def __init__(self, path=LEADERBOARD_PATH, limit=MAX_ENTRIES):
        self.path = path
        self.limit = limit

    def fetch_ranked_scores(self):
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            print(f"Failed to load leaderboard {self.path}: {exc}", file=sys.stderr)
            return []
        if not isinstance(data, list):
            return []
        entries = []
        for item in data:
            try:
                entries.append(
                    {
                        "team": str(item["team"]),
                        "score": int(item["score"]),
                        "date": str(item.get("date", "")),
                    }
                )
            except (KeyError, TypeError, ValueError, OverflowError, AttributeError):
                continue
        return rank_scores(entries, self.limit)

    def record_final_score(self, team, score):
        entry = {
            "team": str(team),
            "score": int(score),
            "date": datetime.now(timezone.utc).isoformat(),
        }
        updated = rank_scores(self.fetch_ranked_scores() + [entry], self.limit)
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(updated, f, indent=2)
        except OSError as exc:
            print(f"Failed to save leaderboard {self.path}: {exc}", file=sys.stderr)
        return updated
