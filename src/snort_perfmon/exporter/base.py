"""Base interface for value sinks."""

from __future__ import annotations

import abc

from ..collector.base import ValueSample


class BaseExporter(abc.ABC):
    """Abstract base for exporters that receive dispatched samples."""

    @abc.abstractmethod
    def submit(self, sample: ValueSample) -> None:
        """Store or forward a single sample."""

    def export(self, samples: list[ValueSample]) -> None:
        """Submit a batch of samples in order."""
        for sample in samples:
            self.submit(sample)

    @abc.abstractmethod
    def shutdown(self) -> None:
        """Flush and release resources."""
