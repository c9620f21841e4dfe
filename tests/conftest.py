import pytest
import torch

from tdtbeam.modules.searcher.config import TDTConfig
from tdtbeam.modules.searcher.tdt import BeamTDTInfer


@pytest.fixture
def two_step_logits():
    # 4 token scores followed by 5 duration scores per step
    return [
        torch.tensor([0.9, 0.1, 0.8, 0.0, 0.1, 0.9, 0.1, 0.1, 0.1]),
        torch.tensor([0.7, 0.4, 0.6, 0.0, 0.1, 0.9, 0.1, 0.1, 0.1]),
    ]


@pytest.fixture
def random_logits():
    generator = torch.Generator().manual_seed(0)
    return torch.randn(12, 16 + 5, generator=generator)


@pytest.fixture
def lstm_state():
    return (torch.zeros(2, 1, 8), torch.ones(2, 1, 8))


@pytest.fixture
def make_searcher():
    def _make(beam_size=2, include_token_duration=True, return_best_hypothesis=True, **kwargs):
        config = TDTConfig(
            beam_size=beam_size,
            include_token_duration=include_token_duration,
            **kwargs,
        )
        return BeamTDTInfer(config, return_best_hypothesis=return_best_hypothesis)

    return _make
