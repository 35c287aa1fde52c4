"""Tests for the sink factories."""

from sinks import FileSinkFactory, MemorySinkFactory


class TestFileSinkFactory:
    def test_creates_the_directory(self, tmp_path):
        factory = FileSinkFactory(tmp_path / 'a' / 'b')
        with factory('sitemap-1.xml') as sink:
            sink.write('<urlset>é</urlset>')

        path = tmp_path / 'a' / 'b' / 'sitemap-1.xml'
        assert path.read_text(encoding='utf-8') == '<urlset>é</urlset>'
        assert factory.paths == [path]

    def test_defaults_to_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        factory = FileSinkFactory()
        factory('sitemapindex.xml').close()
        assert (tmp_path / 'sitemapindex.xml').exists()


class TestMemorySinkFactory:
    def test_keeps_content_after_close(self):
        factory = MemorySinkFactory()
        sink = factory('sitemap-1.xml')
        sink.write('<urlset>')
        assert factory.content('sitemap-1.xml') == '<urlset>'
        assert 'sitemap-1.xml' not in factory.files

        sink.close()
        assert factory.files == {'sitemap-1.xml': '<urlset>'}
        assert factory.content('sitemap-1.xml') == '<urlset>'

    def test_reopened_name_keeps_last_content(self):
        factory = MemorySinkFactory()
        factory('a.xml').close()
        sink = factory('a.xml')
        sink.write('second')
        sink.close()
        assert factory.files['a.xml'] == 'second'
        assert factory.opened == ['a.xml', 'a.xml']
