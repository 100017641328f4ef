# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
nn.Module view of a ledger model.

Layers that want ledger vectors inside a torch graph wrap the model here and
feed it id tensors produced by `LedgerModel.encode`.
"""

import torch
import torch.nn as nn

from deepledger.ledger.model import LedgerModel
from deepledger.ledger.words import NO_PAD


class LedgerEmbedding(nn.Module):
    """
    Embedding layer initialised from a ledger model.

    Row i of the weight is the ledger vector with id i. When the ledger has a
    pad entry its id becomes the layer's padding_idx, so the pad row gets no
    gradient if the layer is trained.

    Args:
        model: A non-empty ledger model.
        freeze: Keep the weight out of autograd (the default, since the
            ledger is a pretrained table).
    """

    def __init__(self, model: LedgerModel, freeze: bool = True) -> None:
        super().__init__()
        padding_idx = None if model.pad_id == NO_PAD else model.pad_id
        self.embedding = nn.Embedding.from_pretrained(
            model.as_tensor().clone(),
            freeze=freeze,
            padding_idx=padding_idx,
        )

    @property
    def weight(self) -> nn.Parameter:
        return self.embedding.weight

    def forward(self, ids: torch.Tensor) -> torch.Tensor:
        """
        Args:
            ids: Integer tensor of any shape.

        Returns:
            Tensor of shape ``(*ids.shape, dimension)``.
        """
        return self.embedding(ids)
