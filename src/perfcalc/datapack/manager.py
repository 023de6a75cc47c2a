"""Current data pack selection with atomic version swaps.

Calculations ask the manager for a snapshot once and use it to the end, so a
swap never mixes two data pack versions inside one calculation.
"""

import threading
from dataclasses import dataclass
from pathlib import Path

from perfcalc.core.errors import DataPackError
from perfcalc.core.event_bus import Event, EventBus
from perfcalc.core.logging_system import get_logger
from perfcalc.datapack.reader import DataPackReader
from perfcalc.performance.grid import AxisTolerance

logger = get_logger(__name__)


@dataclass
class DataPackLoaded(Event):
    """Published after a new data pack becomes current.

    Attributes:
        version: Version of the new pack.
        previous_version: Version it replaced, None for the first load.
        path: File the pack was read from, if any.
    """

    version: str = ""
    previous_version: str | None = None
    path: Path | None = None


class DataPackManager:
    """Holds the current DataPackReader and replaces it atomically.

    Args:
        event_bus: Bus for DataPackLoaded events; none are published when None.
        tolerance: Exact-hit tolerances passed to every opened reader.

    Examples:
        >>> manager = DataPackManager()
        >>> manager.load("data/packs/b1900d.sqlite")
        >>> calculator = PerformanceCalculator(manager)
    """

    def __init__(
        self, event_bus: EventBus | None = None, tolerance: AxisTolerance | None = None
    ) -> None:
        self._event_bus = event_bus
        self._tolerance = tolerance
        self._lock = threading.Lock()
        self._current: DataPackReader | None = None

    @property
    def is_loaded(self) -> bool:
        return self._current is not None

    def load(self, path: str | Path) -> DataPackReader:
        """Open a pack file and make it current.

        The previous pack stays current if opening fails.

        Raises:
            DataPackError: If the file cannot be opened.
            DataUnavailable: If the pack content is malformed.
        """
        reader = DataPackReader.open(path, tolerance=self._tolerance)
        self.swap(reader)
        return reader

    def swap(self, reader: DataPackReader) -> DataPackReader | None:
        """Make reader current.

        Returns:
            The reader it replaced, if any.
        """
        with self._lock:
            previous = self._current
            self._current = reader

        previous_version = previous.version() if previous is not None else None
        logger.info("Data pack now current: %s (was %s)", reader.version(), previous_version)
        if self._event_bus is not None:
            self._event_bus.publish(
                DataPackLoaded(
                    version=reader.version(),
                    previous_version=previous_version,
                    path=reader.source,
                )
            )
        return previous

    def snapshot(self) -> DataPackReader:
        """The current pack.

        Raises:
            DataPackError: If no pack has been loaded.
        """
        with self._lock:
            current = self._current
        if current is None:
            raise DataPackError("No data pack loaded")
        return current

    def version(self) -> str:
        return self.snapshot().version()
