"""
Tensor lifetime helpers.
"""

import random
from contextlib import contextmanager
from typing import Iterator

import numpy as np
import torch
import torch.nn as nn


@contextmanager
def inference_scope(model: nn.Module) -> Iterator[nn.Module]:
    """
    Run a block of inference against model.

    Gradients are disabled, dropout is off, and any tensors allocated inside
    the block hold no autograd graph, so they are freed as soon as the
    block's locals go out of scope, including when it raises. The model's
    previous training flag is restored on exit.
    """
    was_training = model.training
    model.eval()
    try:
        with torch.inference_mode():
            yield model
    finally:
        if was_training:
            model.train()


def set_seed(seed: int) -> None:
    """Seed python, numpy and torch RNGs"""
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
