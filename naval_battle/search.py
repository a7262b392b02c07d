"""
Self-play parameter search over strategy weights.

Each side is driven by a SearchAgent holding its current best weight vector
and a value table keyed by discretised vectors. Every episode:
1. each agent proposes weights (explore with probability exploration_rate,
   otherwise replay the current best)
2. one seeded match is played with the two proposals
3. each agent turns the MatchResult into a scalar reward, blends it into the
   table entry for the weights it used, and adopts those weights if their
   value beats the best known value
4. exploration decays towards its floor

Episodes are independent given their seed. The value table guards its
updates with a lock, and so does each agent when it adopts a new best, so
agents may be shared by worker threads. Per-worker tables can be folded
together with ValueTable.merge.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import numpy as np

from .config import RewardCoefficients, SearchConfig, SimulationConfig
from .game import Game, MatchResult, Winner
from .ships import Side
from .strategy import InvalidStrategyError, StrategyParams


BucketKey = Tuple[int, ...]


# =============================================================================
# REWARD
# =============================================================================

def compute_reward(
    result: MatchResult,
    side: Side,
    coefficients: Optional[RewardCoefficients] = None
) -> float:
    """
    Scalar outcome of a match from one side's perspective.

    Args:
        result: Finished match
        side: Side being rewarded
        coefficients: Linear weights (defaults apply if omitted)

    Returns:
        Reward (higher is better for `side`)
    """
    c = coefficients or RewardCoefficients()
    enemy = side.opponent

    reward = (
        c.own_ship * result.ships_remaining(side)
        - c.enemy_ship * result.ships_remaining(enemy)
        + c.own_health * result.health_remaining(side)
        - c.enemy_health * result.health_remaining(enemy)
    )

    if result.winner is Winner.DRAW:
        reward += c.draw_bonus
    elif result.winner.value == side.value:
        reward += c.win_bonus
    else:
        reward -= c.loss_penalty
    return reward


# =============================================================================
# VALUE TABLE
# =============================================================================

def discretize(params: StrategyParams, bucket_width: float) -> BucketKey:
    """
    Integer bucket of every weight.

    Two vectors share a key iff every weight falls into the same
    bucket_width-wide interval.
    """
    return tuple(int(b) for b in np.floor(params.as_array() / bucket_width))


class ValueTable:
    """
    Running value estimates keyed by discretised strategy vectors.

    Attributes:
        bucket_width: Discretisation width per dimension
    """

    def __init__(self, bucket_width: float) -> None:
        self.bucket_width = bucket_width
        self._values: Dict[BucketKey, float] = {}
        self._visits: Dict[BucketKey, int] = {}
        self._representatives: Dict[BucketKey, StrategyParams] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, params: StrategyParams) -> bool:
        return self.key_for(params) in self._values

    def key_for(self, params: StrategyParams) -> BucketKey:
        return discretize(params, self.bucket_width)

    def get(self, params: StrategyParams) -> Optional[float]:
        return self._values.get(self.key_for(params))

    def visits(self, params: StrategyParams) -> int:
        return self._visits.get(self.key_for(params), 0)

    def update(self, params: StrategyParams, target: float, learning_rate: float) -> float:
        """
        Blend a target into the entry for `params`.

        The first visit stores the target as is; later visits move the
        estimate by learning_rate towards the target.

        Returns:
            The updated estimate
        """
        key = self.key_for(params)
        with self._lock:
            old = self._values.get(key)
            new = target if old is None else (1.0 - learning_rate) * old + learning_rate * target
            self._values[key] = new
            self._visits[key] = self._visits.get(key, 0) + 1
            self._representatives.setdefault(key, params)
        return new

    def merge(self, other: ValueTable) -> None:
        """
        Fold another table into this one (visit-weighted average per key).

        Raises:
            ValueError: bucket widths differ
        """
        if other.bucket_width != self.bucket_width:
            raise ValueError("Cannot merge value tables with different bucket widths")
        with self._lock:
            for key, value in other._values.items():
                n_other = other._visits.get(key, 1)
                n_self = self._visits.get(key, 0)
                if key in self._values:
                    total = n_self + n_other
                    self._values[key] = (self._values[key] * n_self + value * n_other) / total
                else:
                    self._values[key] = value
                    self._representatives[key] = other._representatives[key]
                self._visits[key] = n_self + n_other

    def best(self) -> Optional[Tuple[StrategyParams, float]]:
        """Highest-valued entry and its representative vector."""
        if not self._values:
            return None
        key = max(self._values, key=self._values.__getitem__)
        return self._representatives[key], self._values[key]

    def items(self) -> Iterator[Tuple[StrategyParams, float]]:
        for key, value in self._values.items():
            yield self._representatives[key], value


# =============================================================================
# AGENT
# =============================================================================

@dataclass
class SearchAgent:
    """
    Parameter-search state for one side.

    Attributes:
        side: Side the agent plays
        config: Search settings
        current_best: Vector replayed when not exploring
        best_value: Value estimate of current_best (None before any update)
        exploration_rate: Current probability of exploring
        table: Value estimates per discretised vector
    """
    side: Side
    config: SearchConfig = field(default_factory=SearchConfig)
    current_best: StrategyParams = field(default_factory=StrategyParams)
    best_value: Optional[float] = None
    exploration_rate: Optional[float] = None
    table: Optional[ValueTable] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.exploration_rate is None:
            self.exploration_rate = self.config.exploration_rate
        if self.table is None:
            self.table = ValueTable(self.config.bucket_width)

    def propose(self, rng: np.random.Generator) -> Tuple[StrategyParams, bool]:
        """
        Weights to play the next episode with.

        Returns:
            (params, explored) where explored tells whether the vector was
            perturbed or drawn at random
        """
        if rng.random() >= self.exploration_rate:
            return self.current_best, False

        low, high = self.config.param_bounds
        dim = StrategyParams.dimension()
        if len(self.table) == 0:
            candidate = rng.uniform(low, high, size=dim)
        else:
            scale = self.config.perturbation_scale
            candidate = self.current_best.as_array() + rng.uniform(-scale, scale, size=dim)
        return self._sanitize(candidate), True

    def _sanitize(self, candidate: np.ndarray) -> StrategyParams:
        """Clip to bounds; a non-finite proposal falls back to the current best."""
        if not np.all(np.isfinite(candidate)):
            return self.current_best
        low, high = self.config.param_bounds
        try:
            return StrategyParams.from_array(np.clip(candidate, low, high))
        except InvalidStrategyError:
            return self.current_best

    def update(self, params: StrategyParams, reward: float) -> float:
        """
        Record the reward observed with `params`.

        The target is reward + discount * best_value. If the updated value
        exceeds the best known value, `params` becomes the current best.
        Updating the current best's own entry keeps best_value in step with it.

        Returns:
            The updated value estimate
        """
        with self._lock:
            bootstrap = self.config.discount * self.best_value if self.best_value is not None else 0.0
            value = self.table.update(params, reward + bootstrap, self.config.learning_rate)

            if self.best_value is None or value > self.best_value:
                self.current_best = params
                self.best_value = value
            elif self.table.key_for(params) == self.table.key_for(self.current_best):
                self.best_value = value
        return value

    def decay_exploration(self) -> None:
        """Multiply the exploration rate by the decay, never going below the floor."""
        floor = self.config.exploration_floor
        if self.exploration_rate > floor:
            self.exploration_rate = max(floor, self.exploration_rate * self.config.exploration_decay)


# =============================================================================
# TRAINER
# =============================================================================

@dataclass(frozen=True)
class EpisodeRecord:
    """
    One episode of self-play.

    Attributes:
        episode: Episode index
        seed: Seed used for the match
        params_a: Weights played by side A
        params_b: Weights played by side B
        explored_a: Whether side A explored
        explored_b: Whether side B explored
        result: Match outcome
        reward_a: Reward credited to side A
        reward_b: Reward credited to side B
    """
    episode: int
    seed: int
    params_a: StrategyParams
    params_b: StrategyParams
    explored_a: bool
    explored_b: bool
    result: MatchResult
    reward_a: float
    reward_b: float

    def to_dict(self) -> dict:
        return {
            "episode": self.episode,
            "seed": self.seed,
            "params_a": self.params_a.to_dict(),
            "params_b": self.params_b.to_dict(),
            "explored_a": self.explored_a,
            "explored_b": self.explored_b,
            "result": self.result.to_dict(),
            "reward_a": self.reward_a,
            "reward_b": self.reward_b,
        }


class SelfPlayTrainer:
    """
    Runs episodes of self-play and adapts both sides' weights.

    Usage:
        trainer = SelfPlayTrainer(SimulationConfig(map_size=16), SearchConfig(), seed=1)
        history = trainer.train(200)
        print(trainer.agent_a.current_best)

    Attributes:
        sim_config: Settings for every match
        search_config: Settings for both agents
        seed: Base seed; episode seeds and agent streams derive from it
        agent_a: Search state of side A
        agent_b: Search state of side B
        history: Records of the episodes played so far
    """

    def __init__(
        self,
        sim_config: Optional[SimulationConfig] = None,
        search_config: Optional[SearchConfig] = None,
        seed: Optional[int] = None,
        initial_a: Optional[StrategyParams] = None,
        initial_b: Optional[StrategyParams] = None
    ) -> None:
        self.sim_config = sim_config or SimulationConfig()
        self.search_config = search_config or SearchConfig()
        if seed is None:
            seed = int(np.random.SeedSequence().generate_state(1)[0])
        self.seed = seed

        self.agent_a = SearchAgent(Side.A, self.search_config, initial_a or StrategyParams())
        self.agent_b = SearchAgent(Side.B, self.search_config, initial_b or StrategyParams())
        self._rngs = {
            Side.A: np.random.default_rng([seed, 1]),
            Side.B: np.random.default_rng([seed, 2]),
        }
        self.history: List[EpisodeRecord] = []

    def agent(self, side: Side) -> SearchAgent:
        return self.agent_a if side is Side.A else self.agent_b

    def episode_seed(self, episode: int) -> int:
        """Deterministic match seed for an episode index."""
        return int(np.random.SeedSequence([self.seed, episode]).generate_state(1)[0])

    def run_episode(self, episode: Optional[int] = None) -> EpisodeRecord:
        """
        Play one episode and update both agents.

        Args:
            episode: Episode index (defaults to the number played so far)

        Returns:
            The episode record
        """
        if episode is None:
            episode = len(self.history)

        params_a, explored_a = self.agent_a.propose(self._rngs[Side.A])
        params_b, explored_b = self.agent_b.propose(self._rngs[Side.B])

        seed = self.episode_seed(episode)
        game = Game(self.sim_config, params_a, params_b, seed=seed, record_events=False)
        result = game.run()

        rewards = self.search_config.rewards
        reward_a = compute_reward(result, Side.A, rewards)
        reward_b = compute_reward(result, Side.B, rewards)
        self.agent_a.update(params_a, reward_a)
        self.agent_b.update(params_b, reward_b)
        self.agent_a.decay_exploration()
        self.agent_b.decay_exploration()

        record = EpisodeRecord(
            episode=episode,
            seed=seed,
            params_a=params_a,
            params_b=params_b,
            explored_a=explored_a,
            explored_b=explored_b,
            result=result,
            reward_a=reward_a,
            reward_b=reward_b,
        )
        self.history.append(record)
        return record

    def train(
        self,
        episodes: int,
        on_episode: Optional[Callable[[EpisodeRecord], None]] = None
    ) -> List[EpisodeRecord]:
        """
        Run several episodes sequentially.

        Args:
            episodes: Number of episodes to play
            on_episode: Called with each record as it completes

        Returns:
            Records of the episodes played by this call
        """
        records = []
        for _ in range(episodes):
            record = self.run_episode()
            records.append(record)
            if on_episode is not None:
                on_episode(record)
        return records

    def summary(self) -> dict:
        """Win counts and the current best weights of both sides."""
        wins = {Winner.SIDE_A: 0, Winner.SIDE_B: 0, Winner.DRAW: 0}
        for record in self.history:
            wins[record.result.winner] += 1
        return {
            "episodes": len(self.history),
            "seed": self.seed,
            "wins": {winner.value: count for winner, count in wins.items()},
            "best_a": self.agent_a.current_best.to_dict(),
            "best_value_a": self.agent_a.best_value,
            "best_b": self.agent_b.current_best.to_dict(),
            "best_value_b": self.agent_b.best_value,
            "exploration_a": self.agent_a.exploration_rate,
            "exploration_b": self.agent_b.exploration_rate,
        }
