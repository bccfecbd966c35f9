"""Reward bookkeeping over recorded actions.

Each observed action is scored (success bonus, failure penalty, time
penalty), kept in a bounded replay buffer for later training, and
recorded in the ``AgentDB`` store with its reward in the pattern
metadata so reward can be filtered on like any other metadata key.
"""

from __future__ import annotations

import json
import logging
import random
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from agentdb.core.action_pattern import PatternInput, utc_timestamp

if TYPE_CHECKING:
    from agentdb.database import AgentDB

logger = logging.getLogger(__name__)

SUCCESS_REWARD = 10.0
FAILURE_PENALTY = 5.0
MAX_TIME_PENALTY = 5.0


@dataclass(frozen=True)
class TrainingConfig:
    """
    Learner settings.

    Attributes:
        learning_rate: Step size exported for a downstream trainer
        discount_factor: Future-reward discount, in (0, 1]
        exploration_rate: Probability of a random action, in [0, 1]
        batch_size: Experiences drawn per :meth:`ReinforcementLearner.sample_batch`
        replay_buffer_size: Oldest experiences are evicted past this size
    """

    learning_rate: float = 0.001
    discount_factor: float = 0.99
    exploration_rate: float = 0.1
    batch_size: int = 32
    replay_buffer_size: int = 10_000

    def __post_init__(self) -> None:
        if self.learning_rate <= 0:
            raise ValueError(f"learning_rate must be > 0, got {self.learning_rate}")
        if not 0 < self.discount_factor <= 1:
            raise ValueError(f"discount_factor must be in (0, 1], got {self.discount_factor}")
        if not 0 <= self.exploration_rate <= 1:
            raise ValueError(f"exploration_rate must be in [0, 1], got {self.exploration_rate}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be > 0, got {self.batch_size}")
        if self.replay_buffer_size <= 0:
            raise ValueError(f"replay_buffer_size must be > 0, got {self.replay_buffer_size}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "learningRate": self.learning_rate,
            "discountFactor": self.discount_factor,
            "explorationRate": self.exploration_rate,
            "batchSize": self.batch_size,
            "replayBufferSize": self.replay_buffer_size,
        }


@dataclass(frozen=True)
class Experience:
    """One step of agent interaction."""

    state: dict[str, Any]
    action: str
    reward: float
    next_state: dict[str, Any]
    done: bool = False
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["nextState"] = data.pop("next_state")
        return data


def calculate_reward(success: bool, time_taken_ms: float) -> float:
    """Score an action: +10 on success, -5 on failure, minus up to 5 for each second taken."""
    reward = SUCCESS_REWARD if success else -FAILURE_PENALTY
    return reward - min(max(time_taken_ms, 0.0) / 1000.0, MAX_TIME_PENALTY)


class ReinforcementLearner:
    """Collects rewarded experiences and writes them through to AgentDB."""

    def __init__(
        self,
        db: AgentDB,
        config: TrainingConfig | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._db = db
        self._config = config or TrainingConfig()
        self._rng = rng or random.Random()
        self._buffer: deque[Experience] = deque(maxlen=self._config.replay_buffer_size)
        self._total_reward = 0.0
        self._episode_count = 0

    @property
    def config(self) -> TrainingConfig:
        return self._config

    def __len__(self) -> int:
        return len(self._buffer)

    def store_experience(self, experience: Experience) -> None:
        """Append to the replay buffer; totals keep counting evicted experiences."""
        self._buffer.append(experience)
        self._total_reward += experience.reward
        if experience.done:
            self._episode_count += 1

    def record_outcome(
        self,
        action: str,
        *,
        success: bool,
        time_taken_ms: float = 0.0,
        selector: str | None = None,
        url: str | None = None,
        value: str | None = None,
        next_url: str | None = None,
        done: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        """
        Score an observed action, buffer it, and record it in the store.

        The stored pattern carries ``reward`` and ``timeTakenMs`` in its
        metadata, next to any caller metadata.

        Returns:
            The id assigned by the store
        """
        reward = calculate_reward(success, time_taken_ms)
        pattern_metadata = dict(metadata or {})
        pattern_metadata["reward"] = reward
        pattern_metadata["timeTakenMs"] = time_taken_ms

        pattern_id = self._db.store(
            PatternInput(
                action=action,
                selector=selector,
                url=url,
                value=value,
                success=success,
                metadata=pattern_metadata,
            )
        )
        self.store_experience(
            Experience(
                state={"selector": selector, "url": url},
                action=action,
                reward=reward,
                next_state={"url": next_url if next_url is not None else url},
                done=done,
            )
        )
        logger.debug("Recorded %s as pattern %d with reward %.3f", action, pattern_id, reward)
        return pattern_id

    def sample_batch(self) -> list[Experience]:
        """Draw ``min(batch_size, len(buffer))`` experiences with replacement."""
        size = min(self._config.batch_size, len(self._buffer))
        return [self._rng.choice(self._buffer) for _ in range(size)]

    def average_reward(self) -> float:
        """Total reward per completed episode, 0 before the first episode ends."""
        if self._episode_count == 0:
            return 0.0
        return self._total_reward / self._episode_count

    def get_statistics(self) -> dict[str, Any]:
        return {
            "totalExperiences": len(self._buffer),
            "totalReward": self._total_reward,
            "episodeCount": self._episode_count,
            "averageReward": self.average_reward(),
            "explorationRate": self._config.exploration_rate,
        }

    def export_training_data(self) -> str:
        """JSON document with the config, statistics and buffered experiences."""
        return json.dumps(
            {
                "config": self._config.to_dict(),
                "statistics": self.get_statistics(),
                "replayBuffer": [e.to_dict() for e in self._buffer],
            },
            indent=2,
        )
