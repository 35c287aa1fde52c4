# -*- coding: UTF-8 -*-
"""Incremental sitemap writer.

URLs are injected one by one and written to "<prefix>-1.xml", "<prefix>-2.xml"... Each file holds
at most `limit` URLs. When the writer is done, a sitemap-index file referencing every part is written.

    writer = SitemapWriter({'limit': 1000, 'hostname': 'https://example.com'})
    writer.on_sitemap_created(print)
    for url in urls:
        writer.inject(url)
    writer.done()
"""

import logging
from collections.abc import Mapping
from enum import Enum
from re import search
from typing import Any, Callable, Optional, TextIO

from lxml import etree

from entry_validator import SitemapEntry, iso_now, validate
from sinks import FileSinkFactory, SinkFactory

logger = logging.getLogger(__name__)

SITEMAP_NS = 'http://www.sitemaps.org/schemas/sitemap/0.9'
MOBILE_NS = 'http://www.google.com/schemas/sitemap-mobile/1.0'
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
MOBILE_MARKER = '<mobile:mobile/>'

DEFAULT_CONFIG = {
    'limit': 50_000,
    'is_mobile': False,
    'hostname': 'http://www.example.com',
    'index_name': 'sitemapindex.xml',
    'file_name_prefix': 'sitemap',
}


class InvalidParameters(ValueError):
    """Raised when a writer is built with a bad configuration. `keys` lists every offending key."""

    def __init__(self, keys: list[str]) -> None:
        self.keys = keys
        super().__init__(f'Invalid parameters: {", ".join(keys)}')


class WriterClosedError(RuntimeError):
    """Raised when a URL is injected into a writer whose output has been finalized."""


class WriterState(Enum):
    IDLE = 'idle'  # no sitemap file opened yet
    FILE_OPEN = 'file open'
    CLOSED = 'closed'


def limit_validator(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def is_mobile_validator(value: Any) -> bool:
    return isinstance(value, bool)


def hostname_validator(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def filename_prefix_validator(value: Any) -> bool:
    """Checks if the string is usable as (a part of) a file name on a server.

    :param value: A value to check

    :return: True if it is a non-empty string without any of the unallowable symbols
    """
    return isinstance(value, str) and bool(value) and not search(r'[#<>$+%!`&*‘|{}?"=/:\\ @[\]]', value)


CONFIG_VALIDATORS = {
    'limit': limit_validator,
    'is_mobile': is_mobile_validator,
    'hostname': hostname_validator,
    'index_name': filename_prefix_validator,
    'file_name_prefix': filename_prefix_validator,
}


def validate_config(config: Optional[Mapping]) -> dict:
    """Merges the configuration with the defaults and checks every key of the result.

    :param config: User configuration, may be None

    :raise InvalidParameters: If any key is unknown or has an invalid value. All of them are reported at once

    :return: The merged configuration
    """
    merged = {**DEFAULT_CONFIG, **(config or {})}
    invalid = [key for key, value in merged.items()
               if key not in CONFIG_VALIDATORS or not CONFIG_VALIDATORS[key](value)]
    if invalid:
        raise InvalidParameters(invalid)
    return merged


def render_tag(name: str, text: Any) -> str:
    """Serializes a single text element, escaping its content, eg. <loc>/a?b=1&amp;c=2</loc>."""
    element = etree.Element(name)
    element.text = str(text)
    return etree.tostring(element, encoding='unicode')


class SitemapWriter:
    """Writes injected URLs to a rolling set of sitemap files, then an index of them.

    State is explicit (`state`), the counters are auxiliary data:
      * nb_injected_urls - URLs written to the current file, reset when a file is opened;
      * nb_files_written - files finalized by rotation; the next file's ordinal is this plus one;
      * date - timestamp stamped when a file is opened, reused as the index "lastmod".
    """

    def __init__(self, config: Optional[Mapping] = None, sink_factory: Optional[SinkFactory] = None) -> None:
        config = validate_config(config)
        self.limit: int = config['limit']
        self.is_mobile: bool = config['is_mobile']
        self.hostname: str = config['hostname']
        self.index_name: str = config['index_name']
        self.file_name_prefix: str = config['file_name_prefix']

        self.sink_factory = sink_factory if sink_factory is not None else FileSinkFactory()
        self.sink: Optional[TextIO] = None
        self.state = WriterState.IDLE
        self.nb_injected_urls = 0
        self.nb_files_written = 0
        self.date = iso_now()

        self._sitemap_created_observers: list[Callable[[str], None]] = []
        self._sitemap_index_created_observers: list[Callable[[], None]] = []

    def on_sitemap_created(self, callback: Callable[[str], None]) -> None:
        """Registers a callback called with the file name each time a sitemap file is created."""
        self._sitemap_created_observers.append(callback)

    def on_sitemap_index_created(self, callback: Callable[[], None]) -> None:
        """Registers a callback called once the sitemap-index file is written."""
        self._sitemap_index_created_observers.append(callback)

    def file_name(self, ordinal: int) -> str:
        return f'{self.file_name_prefix}-{ordinal}.xml'

    def inject(self, entry) -> None:
        """Adds a URL to the sitemap, opening the next file first if needed.

        A file is opened before the very first URL and each time the current one holds `limit` URLs.
        Reaching `limit` doesn't rotate by itself: the next injection does.

        :param entry: A URL string or a mapping (see entry_validator.validate)

        :raise WriterClosedError: If the writer output has been finalized
        :raise ValidationError: If the entry is invalid
        """
        if self.state is WriterState.CLOSED:
            raise WriterClosedError('Cannot inject a URL into a closed sitemap writer')

        needs_new_file = (self.state is WriterState.IDLE and self.nb_injected_urls == 0
                          or self.nb_injected_urls >= self.limit)
        # A new file gets a new date, so does an entry without "lastmod"
        date = iso_now() if needs_new_file else self.date
        sitemap_entry = validate(entry, now=date)

        if needs_new_file:
            self.change_write_stream(date)

        self.sink.write(self._serialize(sitemap_entry))
        self.nb_injected_urls += 1

    def _serialize(self, entry: SitemapEntry) -> str:
        tags = [render_tag('loc', entry.url), render_tag('lastmod', entry.lastmod)]
        if entry.change_freq is not None:
            tags.append(render_tag('changefreq', entry.change_freq))
        if entry.priority is not None:
            tags.append(render_tag('priority', f'{entry.priority:g}'))
        if self.is_mobile:
            tags.append(MOBILE_MARKER)

        return ''.join(f'{tag}\n' for tag in tags)

    def change_write_stream(self, date: Optional[str] = None) -> None:
        """Finalizes the current file if it has content and opens the next one.

        :param date: Timestamp of the new file (the current time by default)
        """
        if self.nb_injected_urls > 0:
            self.end_of_file()
            self.nb_files_written += 1
        elif self.sink is not None:
            # Nothing was written, the file is reopened under the same ordinal
            self.sink.close()
            self.sink = None

        file_name = self.file_name(self.nb_files_written + 1)
        self.date = date or iso_now()
        self.sink = self.sink_factory(file_name)

        mobile_ns = f' xmlns:mobile="{MOBILE_NS}"' if self.is_mobile else ''
        self.sink.write(f'{XML_DECLARATION}<urlset xmlns="{SITEMAP_NS}"{mobile_ns}>')
        self.sink.flush()

        self.nb_injected_urls = 0
        self.state = WriterState.FILE_OPEN
        logger.info('Sitemap file %s created', file_name)

        for callback in self._sitemap_created_observers:
            callback(file_name)

    def end_of_file(self) -> None:
        """Closes the urlset element and the current sink."""
        if self.sink is None:
            logger.warning('No sitemap file is open, nothing to finalize')
            return

        self.sink.write('</urlset>')
        self.sink.close()
        self.sink = None
        self.state = WriterState.CLOSED
        logger.debug('Sitemap file finalized after %d URL(s)', self.nb_injected_urls)

    def nb_index_entries(self) -> int:
        """Number of sitemap files to reference: the finalized ones plus the current one if it holds URLs.

        A counter set above `limit` from outside is read as that many URLs spread over full files.
        """
        if self.nb_injected_urls > self.limit:
            return self.nb_files_written + self.nb_injected_urls // self.limit + 1
        return self.nb_files_written + (1 if self.nb_injected_urls > 0 else 0)

    def generate_index_file(self) -> None:
        """Writes the sitemap-index file referencing files 1..N.

        The sitemapindex root element is left unclosed, consumers rely on this exact output.
        """
        base_url = self.hostname.rstrip('/')
        sink = self.sink_factory(self.index_name)
        sink.write(f'{XML_DECLARATION}\n<sitemapindex xmlns="{SITEMAP_NS}">\n')

        nb_entries = self.nb_index_entries()
        for ordinal in range(1, nb_entries + 1):
            loc = render_tag('loc', f'{base_url}/{self.file_name(ordinal)}')
            lastmod = render_tag('lastmod', self.date)
            sink.write(f'<sitemap>\n{loc}\n{lastmod}\n</sitemap>\n')

        sink.close()
        logger.info('Sitemap index %s created with %d entries', self.index_name, nb_entries)

        for callback in self._sitemap_index_created_observers:
            callback()

    def done(self) -> None:
        """Finalizes the last sitemap file and writes the index. No URL can be injected afterwards."""
        self.end_of_file()
        self.generate_index_file()
        self.state = WriterState.CLOSED
