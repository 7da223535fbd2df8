"""Adapters package for external APIs."""
