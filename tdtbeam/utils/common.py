import json
from pathlib import Path
from typing import List, Union

import numpy as np
import orjson
import torch
from tqdm import tqdm

from tdtbeam.modules.decoder.rnnt_utils import Hypothesis


def save_dataset(x: List[dict], filepath: str):
    with open(filepath, "w", encoding="utf8") as outfile:
        for entry in tqdm(x):
            json.dump(entry, outfile, ensure_ascii=False)
            outfile.write("\n")


def load_joint_logits(filepath: str) -> Union[torch.Tensor, List[torch.Tensor]]:
    """Load precomputed joint logits of one utterance.

    .npy / .pt / .pth files hold a (T, V + D) array. A .jsonl file holds one
    JSON list of V + D numbers per line, one line per time step.
    """
    suffix = Path(filepath).suffix
    if suffix == ".npy":
        return torch.from_numpy(np.load(filepath)).float()
    if suffix in (".pt", ".pth"):
        logits = torch.load(filepath, map_location="cpu")
        return torch.as_tensor(logits).float()
    if suffix == ".jsonl":
        with open(filepath, encoding="utf-8") as f:
            return [torch.tensor(orjson.loads(line), dtype=torch.float32) for line in f if line.strip()]

    raise ValueError(f"Unsupported logits file: {filepath}")


def load_vocabulary(filepath: str) -> List[str]:
    with open(filepath, encoding="utf-8") as f:
        return f.read().splitlines()


def hypothesis_to_dict(hyp: Hypothesis, **extra) -> dict:
    entry = hyp.to_dict()
    entry.update(extra)
    return entry
