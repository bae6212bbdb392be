"""Exceptions raised by the clustering core and the risk classifiers."""

from __future__ import annotations


class InvalidParameterError(ValueError):
    """Rejected clustering input (bad epsilon, min_pts or points)."""


class DatasetTooLargeError(InvalidParameterError):
    """More points than a single run is allowed to cluster."""


class ClusteringCancelled(Exception):
    """A clustering run was stopped by its cancellation check."""


class ClassifierError(Exception):
    """The risk classifier failed or returned something unusable."""
