"""Packaged growth reference data (``growth_references.npz``)."""
