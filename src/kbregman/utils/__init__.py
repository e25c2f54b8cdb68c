"""Utility functions and classes."""

from .convergence import IterationBudget, RunTracker
from .logging import setup_logger, verbosity_to_level
from .parallel import Broadcast, ParallelContext, PartitionedDataset
from .validation import (
    validate_data,
    validate_sample_weight,
    check_positive,
    check_random_state
)

__all__ = [
    # Convergence
    'IterationBudget',
    'RunTracker',

    # Logging
    'setup_logger',
    'verbosity_to_level',

    # Parallel substrate
    'Broadcast',
    'ParallelContext',
    'PartitionedDataset',

    # Validation
    'validate_data',
    'validate_sample_weight',
    'check_positive',
    'check_random_state'
]
