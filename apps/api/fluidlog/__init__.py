"""Fluid-day intake/output tracker for caregivers."""

__version__ = "0.1.0"
