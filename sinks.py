# -*- coding: UTF-8 -*-
"""Sink factories for SitemapWriter.

A sink is a writable text stream (write, flush, close). A sink factory is a callable
taking a file name and returning a freshly opened sink for it.
"""

import logging
from io import StringIO
from pathlib import Path
from typing import Callable, TextIO, Union

logger = logging.getLogger(__name__)

SinkFactory = Callable[[str], TextIO]


class FileSinkFactory:
    """Opens sinks as UTF-8 files inside a directory (the working directory by default)."""

    def __init__(self, output_dir: Union[str, Path] = '.') -> None:
        self.output_dir = Path(output_dir)
        self.paths: list[Path] = []

    def __call__(self, file_name: str) -> TextIO:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / file_name
        logger.debug('Opening %s', path)
        sink = path.open('w', encoding='utf-8')
        self.paths.append(path)
        return sink


class MemorySink(StringIO):
    """A StringIO that hands its content over to the factory when closed."""

    def __init__(self, factory: 'MemorySinkFactory', file_name: str) -> None:
        super().__init__()
        self.factory = factory
        self.file_name = file_name

    def close(self) -> None:
        if not self.closed:
            self.factory.files[self.file_name] = self.getvalue()
        super().close()


class MemorySinkFactory:
    """Keeps every sink in memory.

    :ivar files: Content of the closed sinks by file name (a reopened name keeps the last content)
    :ivar sinks: Sinks by file name, including the ones still open
    :ivar opened: File names in opening order
    """

    def __init__(self) -> None:
        self.files: dict[str, str] = {}
        self.sinks: dict[str, MemorySink] = {}
        self.opened: list[str] = []

    def __call__(self, file_name: str) -> MemorySink:
        sink = MemorySink(self, file_name)
        self.sinks[file_name] = sink
        self.opened.append(file_name)
        return sink

    def content(self, file_name: str) -> str:
        """Returns what has been written to the sink so far, whether it's closed or not."""
        sink = self.sinks[file_name]
        if sink.closed:
            return self.files[file_name]
        return sink.getvalue()
