from __future__ import annotations

import argparse
import random
from typing import Optional

import gymnasium as gym
import numpy as np

import block_blast.env  # noqa: F401  (registers BlockBlast-8x8-v0)


def run_random(episodes: int = 5, seed: Optional[int] = None) -> list[int]:
    """Play uniformly random valid moves; returns the final score of each episode."""
    rng = random.Random(seed)
    env = gym.make("BlockBlast-8x8-v0")
    scores: list[int] = []
    obs, info = env.reset(seed=seed)
    while len(scores) < episodes:
        valid = np.argwhere(info["action_mask"])
        if len(valid) > 0:
            action = tuple(int(v) for v in valid[rng.randrange(len(valid))])
        else:
            action = env.action_space.sample()
        obs, reward, terminated, truncated, info = env.step(action)
        if terminated or truncated:
            scores.append(int(info["score"]))
            obs, info = env.reset()
    env.close()
    return scores


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser()
    p.add_argument("--episodes", type=int, default=5)
    p.add_argument("--seed", type=int, default=None)
    return p


def main() -> None:
    args = build_parser().parse_args()
    scores = run_random(args.episodes, args.seed)
    for i, score in enumerate(scores):
        print(f"Episode {i}: score {score}")
    print(f"Random agent mean score: {sum(scores) / max(1, len(scores)):.1f}")


if __name__ == "__main__":  # pragma: no cover
    main()
