import random

from pydantic import Field
from pydantic.dataclasses import dataclass

from smsvoice import config


@dataclass
class ExponentialBackoff:
    """
    ExponentialBackoff computes the pause between two status checks of a remote resource.
    The interval grows exponentially with every check, optionally randomized within a range:

        ```
        randomized_interval = random_between(interval * (1 - randomization_factor), interval * (1 + randomization_factor))
        ```

    With the status polling defaults (initial_interval=0.1, randomization_factor=0, multiplier=2,
    max_interval=10) the pauses are 0.1, 0.2, 0.4, ... seconds, capped at 10 seconds.

    Note:
        - `max_interval` caps the base interval, not the randomized value
        - `next_pause` never returns more than the remaining time of the caller's deadline
        - The implementation is not thread-safe, use one instance per wait
    """

    initial_interval: float = Field(0.5, title="Initial backoff interval in seconds", gt=0)
    randomization_factor: float = Field(0.0, title="Factor to randomize backoff", ge=0, le=1)
    multiplier: float = Field(2.0, title="Multiply interval by this factor each check", ge=1)
    max_interval: float = Field(10.0, title="Maximum backoff interval in seconds", gt=0)

    def __post_init__(self):
        self.interval: float = 0
        self.attempts: int = 0

    @classmethod
    def for_status_polling(cls) -> "ExponentialBackoff":
        """Creates a backoff with the status polling settings of the current configuration."""
        return cls(
            initial_interval=config.STATUS_POLL_INITIAL_INTERVAL,
            multiplier=config.STATUS_POLL_MULTIPLIER,
            max_interval=config.STATUS_POLL_MAX_INTERVAL,
        )

    def next_backoff(self) -> float:
        if self.interval == 0:
            self.interval = self.initial_interval

        self.attempts += 1

        next_interval = self.interval
        if 0 < self.randomization_factor <= 1:
            min_interval = self.interval * (1 - self.randomization_factor)
            max_interval = self.interval * (1 + self.randomization_factor)
            # NOTE: the jittered value can exceed the max_interval
            next_interval = random.uniform(min_interval, max_interval)

        self.interval = min(self.max_interval, self.interval * self.multiplier)

        return next_interval

    def next_pause(self, remaining: float) -> float:
        """
        Returns the next backoff, shortened so that it does not overshoot a deadline.

        :param remaining: seconds left until the caller's deadline
        :return: seconds to sleep, 0 if the deadline has passed
        """
        return max(0.0, min(self.next_backoff(), remaining))
