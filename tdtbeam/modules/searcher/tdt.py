"""Beam search for TDT (Token-and-Duration Transducer) models.

The searcher consumes joint network outputs that were computed beforehand,
one vector of ``V + D`` values per time step: ``V`` token scores followed by
``D`` duration-bin scores. Every step keeps the ``beam_size`` best
continuations of the current beam, each one carrying its own copy of the
decoder state.

Not handled here:
  - Running the prediction / joint networks
  - Advancing the decoder state with the emitted token (caller's job)
  - Blank skipping and frame advance by the predicted duration
"""

import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import torch

from tdtbeam.modules.decoder.rnnt_utils import (
    DecoderState,
    Hypothesis,
    NBestHypotheses,
    clone_state,
)
from tdtbeam.modules.searcher.config import TDTConfig

logger = logging.getLogger(__name__)


class TDTDecodingError(ValueError):
    """Base class of the errors that abort a decode call."""


class DimensionMismatch(TDTDecodingError):
    """Joint logits do not have room for both token and duration scores."""


class InvalidInput(TDTDecodingError):
    """Duration scores have no usable maximum."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _as_vector(values: Union[torch.Tensor, np.ndarray, Sequence[float]]) -> torch.Tensor:
    if torch.is_tensor(values):
        vector = values.detach()
    else:
        vector = torch.as_tensor(np.asarray(values))
    if not vector.is_floating_point():
        vector = vector.float()
    return vector


def split_logits(
    logits: Union[torch.Tensor, np.ndarray, Sequence[float]],
    num_durations: int,
) -> Tuple[torch.Tensor, torch.Tensor]:
    """Split one step of joint logits into token and duration scores.

    Args:
        logits: 1-D vector of length V + D. Leading singleton dimensions,
            e.g. a joint output of shape (1, 1, 1, V + D), are flattened.
        num_durations: D, the number of duration bins.

    Returns:
        (token_logits, duration_logits) of lengths V and D.
    """
    vector = _as_vector(logits)
    if vector.dim() > 1 and all(s == 1 for s in vector.shape[:-1]):
        vector = vector.reshape(-1)
    if vector.dim() != 1:
        raise DimensionMismatch(
            f"Logits dimension mismatch: expected a 1-D vector, got shape {tuple(vector.shape)}"
        )

    total = vector.size(0)
    vocab_size = total - num_durations
    if total < num_durations or vocab_size <= 0:
        raise DimensionMismatch(
            f"Logits dimension mismatch: {total} values for {num_durations} duration bins"
        )
    return vector[:vocab_size], vector[vocab_size:]


def select_duration(
    duration_logits: Union[torch.Tensor, np.ndarray, Sequence[float]],
    durations: Sequence[int],
) -> Tuple[int, int]:
    """Return (bin index, duration) of the best duration bin; ties go to the lowest index."""
    scores = _as_vector(duration_logits).reshape(-1)
    if scores.numel() == 0:
        raise InvalidInput("Invalid duration logits: no values")
    if scores.numel() != len(durations):
        raise InvalidInput(
            f"Invalid duration logits: {scores.numel()} values for {len(durations)} duration bins"
        )

    nan_mask = torch.isnan(scores)
    if bool(nan_mask.all()):
        raise InvalidInput("Invalid duration logits: all values are NaN")

    scores = scores.masked_fill(nan_mask, float("-inf"))
    best = scores.max()
    best_idx = int(torch.nonzero((scores == best) & ~nan_mask)[0])
    return best_idx, int(durations[best_idx])


def topk_tokens(
    token_logits: Union[torch.Tensor, np.ndarray, Sequence[float]],
    k: int,
) -> List[Tuple[int, float]]:
    """Top-k (token, score) pairs, best first; equal scores keep vocabulary order.

    NaN scores rank last, as -inf.
    """
    scores = _as_vector(token_logits).reshape(-1)
    k = min(k, scores.numel())
    if k <= 0:
        return []

    scores = scores.masked_fill(torch.isnan(scores), float("-inf"))

    # torch.topk makes no promise about ties, a stable sort does
    values, indices = torch.sort(scores, descending=True, stable=True)
    return list(zip(indices[:k].tolist(), values[:k].tolist()))


# ---------------------------------------------------------------------------
# Beam TDT inference
# ---------------------------------------------------------------------------

class BeamTDTInfer:
    """Time-synchronous beam search over precomputed TDT joint logits.

    At every time step the best duration bin is picked once, the top
    `beam_size` tokens are appended to every hypothesis of the beam and the
    `beam_size` best children survive.

    Args:
        config: TDTConfig with durations, beam size and duration tracking.
        return_best_hypothesis: Return the single best hypothesis instead of
            the whole final beam wrapped in NBestHypotheses.
    """

    def __init__(self, config: TDTConfig, return_best_hypothesis: bool = True):
        self.config = config
        self.durations = config.durations
        self.beam_size = config.beam_size
        self.include_token_duration = config.include_token_duration
        self.return_best_hypothesis = return_best_hypothesis

    def __call__(self, *args, **kwargs):
        return self.forward(*args, **kwargs)

    @torch.no_grad()
    def forward(
        self,
        joint_logits: Iterable,
        initial_state: Any = None,
        last_token: Optional[int] = None,
    ) -> Union[Hypothesis, NBestHypotheses]:
        """Decode one utterance.

        Args:
            joint_logits: Sequence of per-step vectors, or a (T, V + D) tensor / array.
            initial_state: DecoderState or raw recurrent state seeding the first hypothesis.
            last_token: Seed token; defaults to `initial_state.last_token` for a DecoderState.

        Returns:
            The best Hypothesis, or NBestHypotheses when `return_best_hypothesis` is False.
        """
        kept_hyps = self.search(joint_logits, initial_state, last_token)
        if self.return_best_hypothesis:
            return self.select_best(kept_hyps)
        return NBestHypotheses(n_best_hypotheses=kept_hyps)

    @torch.no_grad()
    def search(
        self,
        joint_logits: Iterable,
        initial_state: Any = None,
        last_token: Optional[int] = None,
    ) -> List[Hypothesis]:
        """Run the beam search and return the final beam, best first."""
        kept_hyps = [self.start_hypothesis(initial_state, last_token)]
        candidates: List[Hypothesis] = []

        for time_idx, logits in enumerate(joint_logits):
            token_logits, duration_logits = split_logits(logits, len(self.durations))
            dur_idx, duration = select_duration(duration_logits, self.durations)
            top_tokens = topk_tokens(token_logits, self.beam_size)

            self.expand_beam(kept_hyps, top_tokens, duration, time_idx, candidates)
            kept_hyps = self.prune_beam(candidates)

            logger.debug(
                f"step {time_idx}: duration bin {dur_idx} ({duration}), "
                f"{len(candidates)} candidates, best score {kept_hyps[0].score:.4f}"
            )

        return kept_hyps

    def start_hypothesis(self, initial_state: Any = None, last_token: Optional[int] = None) -> Hypothesis:
        if last_token is None and isinstance(initial_state, DecoderState):
            last_token = initial_state.last_token

        return Hypothesis(
            score=0.0,
            y_sequence=[],
            dec_state=initial_state,
            timestamp=[],
            token_duration=[] if self.include_token_duration else None,
            last_token=last_token,
        )

    def expand_beam(
        self,
        beam: List[Hypothesis],
        top_tokens: List[Tuple[int, float]],
        duration: int,
        time_idx: int,
        candidates: List[Hypothesis],
    ) -> List[Hypothesis]:
        """Fill `candidates` with every (hypothesis, token) continuation.

        The list is cleared first so one buffer serves the whole decode call.
        Order is hypothesis order, then token rank.
        """
        candidates.clear()
        for hyp in beam:
            for token, score in top_tokens:
                candidates.append(
                    hyp.extend(
                        token=token,
                        score=score,
                        time_idx=time_idx,
                        duration=duration,
                        dec_state=clone_state(hyp.dec_state),
                    )
                )
        return candidates

    def prune_beam(self, candidates: List[Hypothesis]) -> List[Hypothesis]:
        # sorted() is stable with reverse=True, ties keep generation order
        return sorted(candidates, key=lambda x: x.score, reverse=True)[: self.beam_size]

    def select_best(self, beam: List[Hypothesis]) -> Hypothesis:
        best = max(beam, key=lambda x: x.score, default=None)
        if best is None:
            return Hypothesis(token_duration=[] if self.include_token_duration else None)
        return best
