from __future__ import annotations

import gymnasium as gym
import numpy as np

import block_blast.env  # noqa: F401
from block_blast.env.block_blast_env import BlockBlastEnv
from block_blast.env.wrappers import FlattenActionWrapper
from block_blast.game import can_place


def test_reset_observation_matches_spaces():
    env = BlockBlastEnv()
    obs, info = env.reset(seed=3)
    assert env.observation_space.contains(obs)
    assert obs["grid"].sum() == 0
    assert info["action_mask"].shape == (3, 8, 8)
    assert info["action_mask"].any()


def test_action_mask_agrees_with_can_place():
    env = BlockBlastEnv()
    obs, info = env.reset(seed=5)
    state = env.game.state
    for slot, piece in enumerate(state.tray.slots):
        for r in range(8):
            for c in range(8):
                expected = piece is not None and can_place(state.grid, piece, r, c)
                assert bool(info["action_mask"][slot, r, c]) == expected


def test_valid_step_rewards_score_delta():
    env = BlockBlastEnv()
    obs, info = env.reset(seed=1)
    slot, r, c = (int(v) for v in np.argwhere(info["action_mask"])[0])
    cells = env.game.state.tray.slots[slot].cell_count
    obs, reward, terminated, truncated, info = env.step((slot, r, c))
    assert info["accepted"]
    assert reward == float(cells)
    assert obs["grid"].sum() == cells
    assert info["score"] == cells


def test_invalid_step_is_penalized_and_noop():
    env = BlockBlastEnv(invalid_action_penalty=-2.0)
    env.reset(seed=2)
    before = env.game.state
    slot = next(i for i, p in enumerate(before.tray.slots) if p is not None)
    # Every catalog shape occupies its top row, so row -1 never fits.
    obs, reward, terminated, truncated, info = env.step((slot, -1, 0))
    assert reward == -2.0
    assert not info["accepted"]
    assert env.game.state is before


def test_seeded_resets_are_reproducible():
    a, _ = BlockBlastEnv().reset(seed=9)
    b, _ = BlockBlastEnv().reset(seed=9)
    assert np.array_equal(a["pieces"], b["pieces"])


def test_random_valid_play_terminates():
    env = gym.make("BlockBlast-8x8-v0")
    obs, info = env.reset(seed=0)
    rng = np.random.default_rng(0)
    for _ in range(5000):
        valid = np.argwhere(info["action_mask"])
        assert len(valid) > 0
        obs, reward, terminated, truncated, info = env.step(tuple(valid[rng.integers(len(valid))]))
        assert reward >= 1
        if terminated:
            break
    assert terminated
    assert not info["action_mask"].any()
    env.close()


def test_flatten_wrapper_round_trip():
    env = FlattenActionWrapper(BlockBlastEnv())
    obs, info = env.reset(seed=4)
    assert env.action_space.n == 3 * 8 * 8
    mask = env.get_action_mask()
    assert mask.shape == (192,)
    idx = int(np.flatnonzero(mask)[0])
    assert tuple(env.action(idx)) == np.unravel_index(idx, (3, 8, 8))
    obs, reward, terminated, truncated, info = env.step(idx)
    assert info["accepted"]


def test_random_agent_finishes_episodes():
    from block_blast.rl.random_agent import run_random

    scores = run_random(episodes=2, seed=0)
    assert len(scores) == 2
    assert all(score > 0 for score in scores)
