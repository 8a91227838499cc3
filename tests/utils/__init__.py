"""Shared test utilities for kdtreex."""

from .datasets import (
    brute_force_nearest,
    gaussian_points,
    labelled_points,
)

__all__ = ["gaussian_points", "labelled_points", "brute_force_nearest"]
