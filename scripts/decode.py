#!/usr/bin/env python3
"""
Beam search decoding of precomputed TDT joint logits.

Example:
    python scripts/decode.py logits_filepaths=[utt1.npy,utt2.npy] decoding.beam.beam_size=8
"""

import logging

import hydra
from omegaconf import DictConfig, OmegaConf

from tdtbeam.modules.decoder.rnnt_utils import DecoderState
from tdtbeam.modules.decoder.tdt_decoding import TDTDecoding
from tdtbeam.utils.common import (
    hypothesis_to_dict,
    load_joint_logits,
    load_vocabulary,
    save_dataset,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@hydra.main(version_base=None, config_path="../config", config_name="decode")
def main(config: DictConfig):
    logger.info(f"Decoding config:\n{OmegaConf.to_yaml(config.decoding)}")

    vocabulary = None
    if config.get("vocab_filepath") is not None:
        vocabulary = load_vocabulary(config.vocab_filepath)
        logger.info(f"Loaded {len(vocabulary)} tokens from {config.vocab_filepath}")

    decoding = TDTDecoding(config.decoding, vocabulary=vocabulary)

    filepaths = list(config.logits_filepaths)
    joint_logits = [load_joint_logits(filepath) for filepath in filepaths]
    # seed token is blank, as for a freshly initialised prediction network
    initial_states = [DecoderState(last_token=decoding.blank_id) for _ in filepaths]

    hypotheses = decoding.decode_batch(joint_logits, initial_states)

    entries = []
    for filepath, hyp in zip(filepaths, hypotheses):
        if isinstance(hyp, list):
            entries.append({"filepath": filepath, "n_best": [h.to_dict() for h in hyp]})
        else:
            entries.append(hypothesis_to_dict(hyp, filepath=filepath))

    save_dataset(entries, config.output_filepath)
    logger.info(f"Saved {len(entries)} results to: {config.output_filepath}")


if __name__ == "__main__":
    main()
