from dataclasses import dataclass, field
from typing import Tuple

# Parakeet-TDT-0.6b-v3 has 8192 regular tokens, blank sits right after them.
DEFAULT_BLANK_ID = 8192
DEFAULT_DURATIONS = (0, 1, 2, 3, 4)


@dataclass(frozen=True)
class TDTConfig:
    """Immutable settings of a TDT beam search.

    Args:
        include_token_duration: Record the predicted duration of every emitted token.
        max_symbols_per_step: Upper bound of emissions per time step. Validated but
            not enforced, since the search emits exactly one token per step.
        durations: Duration value of every duration bin, in joint output order.
        blank_id: Index of the blank token. Reserved; the search does not special-case it.
        beam_size: Number of hypotheses kept between time steps. 1 behaves like greedy.
    """

    include_token_duration: bool = True
    max_symbols_per_step: int = 10
    durations: Tuple[int, ...] = field(default_factory=lambda: DEFAULT_DURATIONS)
    blank_id: int = DEFAULT_BLANK_ID
    beam_size: int = 1

    def __post_init__(self):
        durations = tuple(self.durations) if self.durations is not None else ()
        if len(durations) == 0:
            raise ValueError("durations can't be empty for a TDT model")
        if not all(isinstance(d, int) and not isinstance(d, bool) for d in durations):
            raise ValueError(f"durations must be integers, got {list(durations)}")
        object.__setattr__(self, "durations", durations)

        if (
            not isinstance(self.max_symbols_per_step, int)
            or isinstance(self.max_symbols_per_step, bool)
            or self.max_symbols_per_step < 0
        ):
            raise ValueError(
                f"Expected max_symbols_per_step >= 0, got {self.max_symbols_per_step}"
            )
        if not isinstance(self.beam_size, int) or isinstance(self.beam_size, bool) or self.beam_size < 1:
            raise ValueError(f"beam_size must be >= 1, got {self.beam_size}")
        if not isinstance(self.blank_id, int) or isinstance(self.blank_id, bool):
            raise ValueError(f"blank_id must be an integer, got {self.blank_id}")

    @property
    def num_durations(self) -> int:
        return len(self.durations)
