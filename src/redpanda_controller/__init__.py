"""Redpanda controller - reconciles Redpanda resources into Flux HelmReleases."""

__version__ = "0.1.0"
