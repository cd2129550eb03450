import pytest

from mapcheck.errors import SourcemapIndexUnsupported, SourcemapSyntaxError
from mapcheck.models import EMBEDDED, INVALID, SCRAPEABLE, UNREACHABLE
from mapcheck.sourcemap import UNCHECKED, IndexMap, RegularMap, SourcemapValidator, decode, is_sourcemap

from conftest import make_map, to_bytes

MAP_URL = 'https://example.com/maps/app.js.map'


def index_map(*sections):
    return {
        'version': 3,
        'sections': [
            dict(section, offset={'line': i * 10, 'column': 0})
            for i, section in enumerate(sections)
        ],
    }


class TestSniff:

    def test_regular_map(self):
        assert is_sourcemap(to_bytes(make_map(['a.js'])))

    def test_index_map(self):
        assert is_sourcemap(to_bytes(index_map({'map': make_map(['a.js'])})))

    def test_xssi_prefix(self):
        assert is_sourcemap(b")]}'\n" + to_bytes(make_map(['a.js'])))

    @pytest.mark.parametrize('data', [
        b'not json at all',
        b'{"foo": 1}',
        b'[1, 2, 3]',
        b'\xff\xfe\x00',
        b'<html>404</html>',
    ])
    def test_rejects(self, data):
        assert not is_sourcemap(data)


class TestDecode:

    def test_regular(self):
        decoded = decode(to_bytes(make_map(['a.js', 'b.js', 'c.js'], contents=['a', 'b', None])))
        assert isinstance(decoded, RegularMap)
        sm = decoded.sourcemap
        assert sm.source_count == 3
        assert sm.token_count == 3
        assert list(sm.iter_sources()) == [(0, 'a.js', 'a'), (1, 'b.js', 'b'), (2, 'c.js', None)]

    def test_missing_contents_are_none(self):
        sm = decode(to_bytes(make_map(['a.js', 'b.js']))).sourcemap
        assert [content for _, _, content in sm.iter_sources()] == [None, None]

    def test_names_are_optional(self):
        document = make_map(['a.js'])
        del document['names']
        assert decode(to_bytes(document)).sourcemap.source_count == 1

    def test_index_is_not_flattened_by_decode(self):
        decoded = decode(to_bytes(index_map({'map': make_map(['a.js'])})))
        assert isinstance(decoded, IndexMap)
        assert len(decoded.sections) == 1

    def test_missing_sources(self):
        document = make_map(['a.js'])
        del document['sources']
        with pytest.raises(SourcemapSyntaxError):
            decode(to_bytes(document))

    @pytest.mark.parametrize('field, value', [
        ('mappings', None),
        ('mappings', 42),
        ('sources', 'a.js'),
        ('names', 'x'),
        ('sourcesContent', 'console.log(1)'),
        ('sourceRoot', ['src']),
    ])
    def test_malformed_field_is_a_syntax_error(self, field, value):
        document = make_map(['a.js'])
        document[field] = value
        with pytest.raises(SourcemapSyntaxError):
            decode(to_bytes(document))

    def test_source_root_is_joined(self):
        sm = decode(to_bytes(make_map(['a.js', 'lib/b.js'], sourceRoot='src/'))).sourcemap
        assert sm.sources == ['src/a.js', 'src/lib/b.js']

    def test_null_source_survives_source_root(self):
        sm = decode(to_bytes(make_map([None, 'b.js'], sourceRoot='src'))).sourcemap
        assert sm.sources == [None, 'src/b.js']
        assert sm.token_count == 2

    def test_not_json(self):
        with pytest.raises(SourcemapSyntaxError):
            decode(b'garbage')


class TestFlatten:

    def test_source_count_is_sum_of_children(self, fetcher):
        fetcher.add('https://example.com/maps/child-b.map', make_map(['c.js'], contents=['c']))
        decoded = decode(to_bytes(index_map(
            {'map': make_map(['a.js', 'b.js'], contents=['a', 'b'])},
            {'url': 'child-b.map'},
        )))

        flat = decoded.flatten(fetcher, MAP_URL).sourcemap

        assert flat.source_count == 3
        assert flat.token_count == 3
        assert list(flat.iter_sources()) == [(0, 'a.js', 'a'), (1, 'b.js', 'b'), (2, 'c.js', 'c')]
        assert fetcher.urls() == ['https://example.com/maps/child-b.map']

    def test_nested_index_is_unsupported(self):
        decoded = decode(to_bytes(index_map({'map': index_map({'map': make_map(['a.js'])})})))
        with pytest.raises(SourcemapIndexUnsupported):
            decoded.flatten()

    def test_unreachable_child_is_unsupported(self, fetcher):
        decoded = decode(to_bytes(index_map({'url': 'gone.map'})))
        with pytest.raises(SourcemapIndexUnsupported):
            decoded.flatten(fetcher, MAP_URL)
        assert fetcher.urls() == ['https://example.com/maps/gone.map']

    def test_transport_failure_is_unsupported(self, fetcher):
        fetcher.add_error('https://example.com/maps/child.map')
        decoded = decode(to_bytes(index_map({'url': 'child.map'})))
        with pytest.raises(SourcemapIndexUnsupported):
            decoded.flatten(fetcher, MAP_URL)

    def test_url_child_without_fetcher(self):
        decoded = decode(to_bytes(index_map({'url': 'child.map'})))
        with pytest.raises(SourcemapIndexUnsupported):
            decoded.flatten()

    def test_section_without_map_or_url(self):
        decoded = IndexMap(sections=[{'offset': {'line': 0, 'column': 0}}])
        with pytest.raises(SourcemapIndexUnsupported):
            decoded.flatten()


class TestValidator:

    def test_embedded_sources_are_never_scraped(self, fetcher):
        data = to_bytes(make_map(['a.js', 'b.js', 'c.js'], contents=['a', 'b', 'c']))
        report = SourcemapValidator(fetcher).validate(MAP_URL, data)

        assert report.kind == 'regular'
        assert report.source_count == 3
        assert report.missing_sources == 0
        assert [check.state for check in report.sources] == [EMBEDDED] * 3
        assert fetcher.calls == []

    def test_sources_resolve_against_sourcemap_url(self, fetcher):
        fetcher.add('https://example.com/src/a.js', 'source')
        data = to_bytes(make_map(['../src/a.js', 'b.js'], contents=[None, None]))

        report = SourcemapValidator(fetcher).validate(MAP_URL, data)

        assert fetcher.calls == [
            ('HEAD', 'https://example.com/src/a.js'),
            ('HEAD', 'https://example.com/maps/b.js'),
        ]
        scrapeable, unreachable = report.sources
        assert scrapeable.state == SCRAPEABLE
        assert scrapeable.url == 'https://example.com/src/a.js'
        assert unreachable.state == UNREACHABLE
        assert unreachable.status == 404
        assert report.missing_sources == 1

    def test_invalid_source_reference_makes_no_request(self, fetcher):
        data = to_bytes(make_map(['http://[broken/a.js', 'b.js'], contents=[None, 'b']))

        report = SourcemapValidator(fetcher).validate(MAP_URL, data)

        assert [check.state for check in report.sources] == [INVALID, EMBEDDED]
        assert fetcher.calls == []

    def test_transport_failure_is_isolated(self, fetcher):
        fetcher.add_error('https://example.com/maps/a.js', 'timed out')
        fetcher.add('https://example.com/maps/b.js')
        data = to_bytes(make_map(['a.js', 'b.js']))

        report = SourcemapValidator(fetcher).validate(MAP_URL, data)

        first, second = report.sources
        assert first.state == UNREACHABLE
        assert first.reason == 'timed out'
        assert second.state == SCRAPEABLE

    def test_source_checks_disabled(self, fetcher):
        data = to_bytes(make_map(['a.js']))
        report = SourcemapValidator(fetcher, check_sources=False).validate(MAP_URL, data)
        assert report.sources[0].state == UNCHECKED
        assert report.missing_sources == 1
        assert fetcher.calls == []

    def test_flattened_index(self, fetcher):
        data = to_bytes(index_map(
            {'map': make_map(['a.js'], contents=['a'])},
            {'map': make_map(['b.js', 'c.js'], contents=['b', 'c'])},
        ))
        report = SourcemapValidator(fetcher).validate(MAP_URL, data)
        assert report.kind == 'index'
        assert report.error is None
        assert report.source_count == 3

    def test_unsupported_index_is_reported(self, fetcher):
        data = to_bytes(index_map({'url': 'missing.map'}, {'map': make_map(['a.js'])}))

        report = SourcemapValidator(fetcher).validate(MAP_URL, data)

        assert report.kind == 'index'
        assert 'section 0' in report.error
        assert report.sources == []
        assert fetcher.urls('HEAD') == []

    def test_inline_map_uses_base_url(self, fetcher):
        data = to_bytes(make_map(['src/a.js']))
        SourcemapValidator(fetcher).validate('data:application/json,...', data,
                                             base_url='https://example.com/js/app.js')
        assert fetcher.calls == [('HEAD', 'https://example.com/js/src/a.js')]

    def test_syntax_error_is_raised(self, fetcher):
        with pytest.raises(SourcemapSyntaxError):
            SourcemapValidator(fetcher).validate(MAP_URL, b'nope')

    def test_null_source_with_source_root_is_invalid_per_entry(self, fetcher):
        fetcher.add('https://example.com/maps/src/b.js', 'source')
        data = to_bytes(make_map([None, 'b.js'], sourceRoot='src/'))

        report = SourcemapValidator(fetcher).validate(MAP_URL, data)

        invalid, scrapeable = report.sources
        assert invalid.state == INVALID
        assert scrapeable.state == SCRAPEABLE
        assert scrapeable.url == 'https://example.com/maps/src/b.js'
        assert fetcher.calls == [('HEAD', 'https://example.com/maps/src/b.js')]

    def test_non_string_embedded_content_is_not_embedded(self, fetcher):
        data = to_bytes(make_map(['a.js'], contents=[{'not': 'text'}]))
        report = SourcemapValidator(fetcher, check_sources=False).validate(MAP_URL, data)
        assert report.sources[0].state == UNCHECKED
