"""PyTorch multilayer perceptron adapter.

References
----------
- Farrell, Liang, Misra (2021). "Deep Neural Networks for Estimation and Inference"
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import torch
import torch.nn as nn
import torch.optim as optim
from torch.utils.data import DataLoader, TensorDataset

from .._typing import Float64Array
from .base import BaseLearner


class ProbabilityNet(nn.Module):
    """Feedforward network with a sigmoid output."""

    def __init__(self, input_dim: int, hidden_dims: Sequence[int] = (32, 16)):
        super().__init__()
        layers: list[nn.Module] = []
        prev_dim = input_dim
        for hidden_dim in hidden_dims:
            layers.append(nn.Linear(prev_dim, hidden_dim))
            layers.append(nn.ReLU())
            prev_dim = hidden_dim
        layers.append(nn.Linear(prev_dim, 1))
        self.network = nn.Sequential(*layers)

        for module in self.modules():
            if isinstance(module, nn.Linear):
                nn.init.xavier_uniform_(module.weight)
                nn.init.zeros_(module.bias)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return torch.sigmoid(self.network(x))


class TorchModel:
    """Fitted network plus the feature scaling it was trained with."""

    def __init__(self, net: ProbabilityNet, mean: Float64Array, scale: Float64Array):
        self.net = net
        self.mean = mean
        self.scale = scale

    def predict(self, X: Float64Array) -> Float64Array:
        Z = (np.asarray(X, dtype=np.float64) - self.mean) / self.scale
        self.net.eval()
        with torch.no_grad():
            pred = self.net(torch.from_numpy(Z).float()).squeeze(1).numpy()
        return pred.astype(np.float64)


class MLPLearner(BaseLearner):
    """Multilayer perceptron trained with Adam on (weighted) binary cross-entropy.

    Parameters
    ----------
    hidden_dims : sequence of int, default=(32, 16)
        Hidden layer sizes.
    epochs : int, default=30
        Passes over the training rows.
    lr : float, default=0.01
        Adam learning rate.
    batch_size : int, default=256
        Minibatch size.
    weight_decay : float, default=1e-4
        L2 penalty passed to Adam.
    random_state : int, optional
        Seed for weight initialisation and batch shuffling.
    """

    name = "mlp"

    def __init__(
        self,
        hidden_dims: Sequence[int] = (32, 16),
        epochs: int = 30,
        lr: float = 0.01,
        batch_size: int = 256,
        weight_decay: float = 1e-4,
        random_state: Optional[int] = 0,
    ):
        self.hidden_dims = tuple(hidden_dims)
        self.epochs = epochs
        self.lr = lr
        self.batch_size = batch_size
        self.weight_decay = weight_decay
        self.random_state = random_state

    def _fit(self, X, y, weights):
        generator = torch.Generator()
        if self.random_state is not None:
            generator.manual_seed(self.random_state)
            torch.manual_seed(self.random_state)

        mean = X.mean(axis=0)
        scale = X.std(axis=0)
        scale[scale == 0] = 1.0
        Z = (X - mean) / scale

        if weights is None:
            weights = np.ones(len(y))

        dataset = TensorDataset(
            torch.from_numpy(Z).float(),
            torch.from_numpy(y.astype(np.float32)).unsqueeze(1),
            torch.from_numpy(np.asarray(weights, dtype=np.float32)).unsqueeze(1),
        )
        dataloader = DataLoader(
            dataset, batch_size=self.batch_size, shuffle=True, generator=generator
        )

        net = ProbabilityNet(X.shape[1], self.hidden_dims)
        optimizer = optim.Adam(net.parameters(), lr=self.lr, weight_decay=self.weight_decay)
        loss_fn = nn.BCELoss(reduction="none")

        net.train()
        for _ in range(self.epochs):
            for batch_X, batch_y, batch_w in dataloader:
                optimizer.zero_grad()
                loss = (loss_fn(net(batch_X), batch_y) * batch_w).mean()
                loss.backward()
                optimizer.step()

        return TorchModel(net, mean, scale)

    def __repr__(self) -> str:
        return f"MLPLearner(hidden_dims={list(self.hidden_dims)}, epochs={self.epochs})"
