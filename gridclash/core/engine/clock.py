"""Fixed-step simulation clock.

Every system that needs "now" reads the same :class:`TickClock`, which the
game advances exactly once per simulation step. Durations configured in
seconds are converted to whole ticks here.
"""


class TickClock:
    """Monotonic tick counter with a fixed tick rate."""

    def __init__(self, tick_rate: int = 50):
        if tick_rate <= 0:
            raise ValueError(f"Tick rate must be positive, got {tick_rate}")
        self.tick_rate = tick_rate
        self._tick = 0

    @property
    def now(self) -> int:
        return self._tick

    def __call__(self) -> int:
        return self._tick

    def advance(self, ticks: int = 1) -> int:
        self._tick += ticks
        return self._tick

    def seconds_to_ticks(self, seconds: float) -> int:
        """Whole number of ticks covering ``seconds``, never less than one."""
        return max(1, round(seconds * self.tick_rate))

    def reset(self) -> None:
        self._tick = 0
