import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from omegaconf import DictConfig, OmegaConf
from tqdm import tqdm

from tdtbeam.modules.decoder.rnnt_utils import Hypothesis, NBestHypotheses
from tdtbeam.modules.searcher.config import DEFAULT_BLANK_ID, DEFAULT_DURATIONS, TDTConfig
from tdtbeam.modules.searcher.tdt import BeamTDTInfer, TDTDecodingError

logger = logging.getLogger(__name__)


class TDTDecoding:
    """Builds a TDT beam searcher from a decoding config and detokenizes its output.

    Args:
        decoding_cfg: DictConfig (or plain dict) with the keys
            durations, tdt_include_token_duration, blank_id and a `beam` section
            holding beam_size, max_symbols_per_step and return_best_hypothesis.
        vocabulary: (Optional) list of token strings used to fill `Hypothesis.text`.
    """

    def __init__(
        self,
        decoding_cfg: Union[DictConfig, Dict[str, Any]],
        vocabulary: Optional[List[str]] = None,
    ):
        if not isinstance(decoding_cfg, DictConfig):
            decoding_cfg = OmegaConf.create(decoding_cfg)
        self.cfg = decoding_cfg

        self.vocabulary = vocabulary
        self.labels_map = None
        if vocabulary is not None:
            self.labels_map = dict([(i, vocabulary[i]) for i in range(len(vocabulary))])

        # blank is the last token of the vocab for TDT models
        blank_id = self.cfg.get("blank_id", None)
        if blank_id is None:
            blank_id = len(vocabulary) if vocabulary is not None else DEFAULT_BLANK_ID
        self.blank_id = blank_id

        durations = self.cfg.get("durations", None)
        if durations is None or len(durations) == 0:
            logger.info(f"No durations configured, falling back to {list(DEFAULT_DURATIONS)}")
            durations = DEFAULT_DURATIONS

        beam_cfg = self.cfg.get("beam", None) or OmegaConf.create({})
        self.tdt_config = TDTConfig(
            include_token_duration=self.cfg.get("tdt_include_token_duration", True),
            max_symbols_per_step=beam_cfg.get("max_symbols_per_step", 10),
            durations=tuple(durations),
            blank_id=self.blank_id,
            beam_size=beam_cfg.get("beam_size", 1),
        )
        self.decoding = BeamTDTInfer(
            config=self.tdt_config,
            return_best_hypothesis=beam_cfg.get("return_best_hypothesis", True),
        )
        logger.info(
            f"TDT beam decoding: beam_size={self.tdt_config.beam_size}, "
            f"durations={list(self.tdt_config.durations)}, blank_id={self.blank_id}"
        )

    def decode(
        self,
        joint_logits: Iterable,
        initial_state: Any = None,
        last_token: Optional[int] = None,
    ) -> Union[Hypothesis, List[Hypothesis]]:
        """
        Decode the joint logits of one utterance.

        Returns:
            If the searcher returns the best hypothesis:
                A Hypothesis, with `text` filled when a vocabulary is set.

            Otherwise:
                A list[Hypothesis] sorted best first.
        """
        prediction = self.decoding(joint_logits, initial_state, last_token)

        if isinstance(prediction, NBestHypotheses):
            return self.decode_hypothesis(prediction.n_best_hypotheses)
        return self.decode_hypothesis([prediction])[0]

    def decode_batch(
        self,
        joint_logits_list: Sequence[Iterable],
        initial_states: Optional[Sequence[Any]] = None,
        disable_progress: bool = False,
    ) -> List[Union[Hypothesis, List[Hypothesis]]]:
        """Decode independent utterances one after another."""
        if initial_states is None:
            initial_states = [None] * len(joint_logits_list)
        if len(initial_states) != len(joint_logits_list):
            raise ValueError(
                f"Got {len(joint_logits_list)} utterances but {len(initial_states)} initial states"
            )

        hypotheses = []
        for idx, (joint_logits, initial_state) in enumerate(
            tqdm(
                zip(joint_logits_list, initial_states),
                total=len(joint_logits_list),
                desc="Beam TDT",
                unit="sample",
                disable=disable_progress,
            )
        ):
            try:
                hypotheses.append(self.decode(joint_logits, initial_state))
            except TDTDecodingError as e:
                logger.error(f"Decoding failed for utterance {idx}: {e}")
                raise
        return hypotheses

    def decode_hypothesis(self, hypotheses_list: List[Hypothesis]) -> List[Hypothesis]:
        """
        Fill `text` of every hypothesis when a vocabulary is available.

        Args:
            hypotheses_list: List of Hypothesis.

        Returns:
            The same list, updated in place.
        """
        if self.labels_map is None:
            return hypotheses_list

        for hyp in hypotheses_list:
            # drop blank and anything past it
            prediction = [p for p in hyp.y_sequence if p < self.blank_id]
            hypothesis = self.decode_tokens_to_str(prediction)

            # collapse leading spaces before . , ? for PC models
            hyp.text = re.sub(r"(\s+)([\.\,\?])", r"\2", hypothesis)

        return hypotheses_list

    def decode_tokens_to_str(self, tokens: List[int]) -> str:
        return "".join(self.decode_ids_to_tokens(tokens))

    def decode_ids_to_tokens(self, tokens: List[int]) -> List[str]:
        return [self.labels_map[c] for c in tokens if c in self.labels_map]
