"""Perfmon row extraction and value submission."""
