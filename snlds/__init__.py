"""Synthetic SNLDS data generation and storage, HMM inference and state-accuracy scoring."""

__version__ = "0.1.0"

__all__ = [
    "accuracy",
    "cli",
    "generate",
    "hmm",
    "io",
    "polynomial",
    "render",
    "transitions",
]