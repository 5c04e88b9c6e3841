"""Output channels for values emitted by hints.

A channel is a line-oriented sink: every emitted scalar becomes one decimal
line, written immediately and in emission order.
"""

import logging
import sys
from abc import ABC, abstractmethod
from typing import TextIO

from primitives.field import FELT


class OutputChannel(ABC):
    """Sink for scalars emitted by hints."""

    @abstractmethod
    def emit(self, value: FELT | int) -> None:
        """Write one value as a line."""
        pass


class StdoutChannel(OutputChannel):
    """Writes lines to a text stream (standard output by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream

    def emit(self, value: FELT | int) -> None:
        stream = self.stream if self.stream is not None else sys.stdout
        stream.write(f"{int(value)}\n")
        stream.flush()


class LoggingChannel(OutputChannel):
    """Sends lines to a logger, for hosts that only expose a log function."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.level = level

    def emit(self, value: FELT | int) -> None:
        self.logger.log(self.level, "%d", int(value))


class CapturingChannel(OutputChannel):
    """Keeps every emitted value in memory."""

    def __init__(self) -> None:
        self.values: list[int] = []

    def emit(self, value: FELT | int) -> None:
        self.values.append(int(value))

    @property
    def lines(self) -> list[str]:
        return [str(v) for v in self.values]
