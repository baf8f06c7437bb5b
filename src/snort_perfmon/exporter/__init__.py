"""Sinks that receive dispatched value samples."""
