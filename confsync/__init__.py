"""Cluster-aware configuration resolution and propagation."""
