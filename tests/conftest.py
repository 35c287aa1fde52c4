"""Shared fixtures for the sitemap writer tests."""

import pytest

from sinks import MemorySinkFactory
from sitemap_writer import SitemapWriter


@pytest.fixture
def sinks():
    return MemorySinkFactory()


@pytest.fixture
def make_writer(sinks):
    """Build a SitemapWriter writing to memory, recording the notifications it sends.

    Usage:
        def test_something(make_writer):
            writer = make_writer({'limit': 2})
            writer.inject('/a')
            assert writer.created == ['sitemap-1.xml']
    """

    def _make(config=None):
        writer = SitemapWriter(config, sink_factory=sinks)
        writer.created = []
        writer.index_created = []
        writer.on_sitemap_created(writer.created.append)
        writer.on_sitemap_index_created(lambda: writer.index_created.append(True))
        return writer

    return _make
