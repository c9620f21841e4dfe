import numpy as np
import pytest
import torch

from tdtbeam.modules.decoder.rnnt_utils import DecoderState, Hypothesis, clone_state
from tdtbeam.modules.searcher.config import TDTConfig


def test_clone_state_tensor_tuple(lstm_state):
    cloned = clone_state(lstm_state)
    assert isinstance(cloned, tuple)
    cloned[0].fill_(3.0)
    assert torch.equal(lstm_state[0], torch.zeros(2, 1, 8))


def test_clone_state_nested_containers():
    state = {"lstm": [torch.ones(2), np.zeros(3)], "step": 4, "meta": {"tags": ["a"]}}
    cloned = clone_state(state)

    cloned["lstm"][0].mul_(2)
    cloned["lstm"][1][0] = 1.0
    cloned["meta"]["tags"].append("b")

    assert torch.equal(state["lstm"][0], torch.ones(2))
    assert state["lstm"][1][0] == 0.0
    assert state["meta"]["tags"] == ["a"]
    assert cloned["step"] == 4


def test_clone_state_none():
    assert clone_state(None) is None


def test_clone_state_detaches_grad():
    state = torch.ones(3, requires_grad=True)
    cloned = clone_state(state)
    assert not cloned.requires_grad


def test_decoder_state_clone(lstm_state):
    state = DecoderState(hidden=lstm_state, last_token=12)
    cloned = state.clone()

    assert cloned.last_token == 12
    assert cloned.hidden[1] is not lstm_state[1]
    assert torch.equal(cloned.hidden[1], lstm_state[1])


def test_hypothesis_extend_copies():
    parent = Hypothesis(score=-1.0, y_sequence=[3], timestamp=[0], token_duration=[1], last_token=3)
    child = parent.extend(token=5, score=-0.5, time_idx=1, duration=2, dec_state=None)

    assert child.y_sequence == [3, 5]
    assert child.timestamp == [0, 1]
    assert child.token_duration == [1, 2]
    assert child.score == pytest.approx(-1.5)
    assert child.last_token == 5
    assert parent.y_sequence == [3]
    assert parent.token_duration == [1]


def test_hypothesis_extend_without_durations():
    child = Hypothesis().extend(token=1, score=0.1, time_idx=0, duration=4, dec_state=None)
    assert child.token_duration is None


def test_hypothesis_to_dict():
    hyp = Hypothesis(score=0.5, y_sequence=[1], timestamp=[0], token_duration=[2], last_token=1, text="a")
    assert hyp.to_dict() == {
        "score": 0.5,
        "y_sequence": [1],
        "text": "a",
        "timestamp": [0],
        "token_duration": [2],
        "last_token": 1,
    }


def test_config_defaults():
    config = TDTConfig()
    assert config.include_token_duration
    assert config.max_symbols_per_step == 10
    assert config.durations == (0, 1, 2, 3, 4)
    assert config.blank_id == 8192
    assert config.beam_size == 1
    assert config.num_durations == 5


def test_config_is_immutable():
    config = TDTConfig(durations=[0, 1, 2])
    assert config.durations == (0, 1, 2)
    with pytest.raises(AttributeError):
        config.beam_size = 4


@pytest.mark.parametrize(
    "kwargs",
    [
        {"beam_size": 0},
        {"beam_size": 1.5},
        {"max_symbols_per_step": -1},
        {"max_symbols_per_step": 2.0},
        {"durations": []},
        {"durations": [0, 1.5]},
        {"blank_id": "blank"},
    ],
)
def test_config_validation(kwargs):
    with pytest.raises(ValueError):
        TDTConfig(**kwargs)


def test_config_accepts_zero_max_symbols():
    assert TDTConfig(max_symbols_per_step=0).max_symbols_per_step == 0
