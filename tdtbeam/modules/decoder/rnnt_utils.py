import copy
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np
import torch


@dataclass
class DecoderState:
    """Recurrent decoder state handed to the searcher by the prediction network.

    hidden: Opaque recurrent payload, e.g. an LSTM ``(h, c)`` tuple of torch.Tensors.
        Any nesting of tensors, numpy arrays, tuples, lists and dicts is supported.

    last_token: (Optional) Token the prediction network was last conditioned on
        when `hidden` was produced. Used to seed the first hypothesis of a decode call.
        The searcher never advances the network, so clones keep this value while
        `Hypothesis.last_token` follows the emitted tokens.
    """

    hidden: Any = None
    last_token: Optional[int] = None

    def clone(self) -> "DecoderState":
        return DecoderState(hidden=clone_state(self.hidden), last_token=self.last_token)


@dataclass
class Hypothesis:
    """Hypothesis class for TDT beam search.

    score: Cumulative sum of the token scores chosen at every time step.

    y_sequence: A sequence of integer ids pointing to some vocabulary.

    dec_state: Decoder state owned by this hypothesis only. Can be None.

    text: (Optional) A decoded string after mapping `y_sequence` through the vocabulary.

    timestamp: A list of time step indices, one per emitted token.

    token_duration: (Optional) A list of predicted durations, one per emitted token.
        None when duration tracking is disabled.

    last_token: (Optional) The token which was emitted in the last step.
    """

    score: float = 0.0
    y_sequence: List[int] = field(default_factory=list)
    text: Optional[str] = None
    dec_state: Optional[Any] = None
    timestamp: List[int] = field(default_factory=list)
    token_duration: Optional[List[int]] = None
    last_token: Optional[int] = None

    def extend(
        self,
        token: int,
        score: float,
        time_idx: int,
        duration: Optional[int],
        dec_state: Any,
    ) -> "Hypothesis":
        """Return a child hypothesis with one more token; `self` is left untouched."""
        token_duration = None
        if self.token_duration is not None:
            token_duration = self.token_duration + [duration]

        return Hypothesis(
            score=self.score + score,
            y_sequence=self.y_sequence + [token],
            dec_state=dec_state,
            timestamp=self.timestamp + [time_idx],
            token_duration=token_duration,
            last_token=token,
        )

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "y_sequence": list(self.y_sequence),
            "text": self.text,
            "timestamp": list(self.timestamp),
            "token_duration": None if self.token_duration is None else list(self.token_duration),
            "last_token": self.last_token,
        }


@dataclass
class NBestHypotheses:
    """List of N best hypotheses"""

    n_best_hypotheses: Optional[List[Hypothesis]]


def clone_state(state: Any) -> Any:
    """Deep copy a decoder state so the copy and the original never alias."""
    if state is None:
        return None
    if torch.is_tensor(state):
        return state.detach().clone()
    if isinstance(state, np.ndarray):
        return state.copy()
    if isinstance(state, DecoderState):
        return state.clone()
    if isinstance(state, tuple):
        return tuple(clone_state(s) for s in state)
    if isinstance(state, list):
        return [clone_state(s) for s in state]
    if isinstance(state, dict):
        return {k: clone_state(v) for k, v in state.items()}
    return copy.deepcopy(state)
