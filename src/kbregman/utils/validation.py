"""
Input validation utilities.

Configuration errors are reported at call time, before any clustering work
starts.
"""

from typing import Optional, Union

import numpy as np
import torch
from torch import Tensor

from ..base.data_structures import DTYPE


def validate_data(X: Union[Tensor, np.ndarray, list],
                  ensure_finite: bool = True,
                  ensure_min_samples: int = 1) -> Tensor:
    """Validate and convert input vectors to a (n, d) float64 tensor.

    Args:
        X: Input data (tensor, numpy array, or list of rows)
        ensure_finite: Whether to reject inf/nan
        ensure_min_samples: Minimum number of rows required

    Returns:
        Validated tensor

    Raises:
        TypeError: If X cannot be converted
        ValueError: If validation fails
    """
    if isinstance(X, Tensor):
        X = X.to(dtype=DTYPE)
    elif isinstance(X, np.ndarray):
        X = torch.from_numpy(np.asarray(X, dtype=np.float64))
    elif isinstance(X, list):
        X = torch.tensor(X, dtype=DTYPE)
    else:
        raise TypeError(f"Cannot convert {type(X)} to tensor")

    if X.dim() == 1:
        X = X.unsqueeze(1)
    elif X.dim() != 2:
        raise ValueError(f"Expected 2D array, got {X.dim()}D")

    if X.shape[0] < ensure_min_samples:
        raise ValueError(f"Found {X.shape[0]} samples, but need at least "
                         f"{ensure_min_samples}")

    if ensure_finite:
        if torch.isnan(X).any():
            raise ValueError("Input contains NaN values")
        if torch.isinf(X).any():
            raise ValueError("Input contains infinite values")

    return X


def validate_sample_weight(sample_weight: Optional[Union[Tensor, np.ndarray, list]],
                           n_samples: int) -> Tensor:
    """Validate per-point weights, defaulting to 1.0.

    Returns:
        (n_samples,) float64 weight tensor
    """
    if sample_weight is None:
        return torch.ones(n_samples, dtype=DTYPE)

    if isinstance(sample_weight, np.ndarray):
        sample_weight = torch.from_numpy(np.asarray(sample_weight, dtype=np.float64))
    elif not isinstance(sample_weight, Tensor):
        sample_weight = torch.tensor(sample_weight, dtype=DTYPE)
    sample_weight = sample_weight.to(dtype=DTYPE)

    if sample_weight.dim() != 1:
        raise ValueError(f"Sample weights must be 1D, got {sample_weight.dim()}D")

    if len(sample_weight) != n_samples:
        raise ValueError(f"Expected {n_samples} weights, got {len(sample_weight)}")

    if (sample_weight < 0).any():
        raise ValueError("Sample weights must be non-negative")

    if sample_weight.sum() == 0:
        raise ValueError("Sample weights sum to zero")

    return sample_weight


def check_positive(name: str, value: int) -> None:
    """Raise unless value is a positive integer."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise TypeError(f"{name} must be int, got {type(value)}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


def check_random_state(random_state: Optional[Union[int, torch.Generator]]) -> torch.Generator:
    """Create a generator from a seed, pass a generator through.

    None yields a generator seeded from torch's default RNG.
    """
    if random_state is None:
        generator = torch.Generator()
        generator.manual_seed(int(torch.randint(0, 2 ** 62, (1,)).item()))
        return generator
    elif isinstance(random_state, (int, np.integer)):
        generator = torch.Generator()
        generator.manual_seed(int(random_state))
        return generator
    elif isinstance(random_state, torch.Generator):
        return random_state
    else:
        raise TypeError(f"random_state must be int or Generator, got {type(random_state)}")
