"""URL normalization and header argument tests"""

import pytest

from Jockey import Endpoint, parse_fuzzy_url, parse_header_args


class TestParseFuzzyUrl:
    """Loose URL strings to endpoints"""

    @pytest.mark.parametrize("raw,scheme,host,port,path", [
        ("www.google.com", "http", "www.google.com", 80, "/"),
        ("www.google.com:80", "http", "www.google.com", 80, "/"),
        ("http://google.com", "http", "google.com", 80, "/"),
        ("google.com:80", "http", "google.com", 80, "/"),
        ("www.cloudflare.com:8000", "http", "www.cloudflare.com", 8000, "/"),
        ("http://www.cloudflare.com:80/index.html", "http", "www.cloudflare.com", 80, "/index.html"),
        ("https://example.com", "https", "example.com", 443, "/"),
        ("HTTPS://Example.com:8443/a", "https", "example.com", 8443, "/a"),
        ("localhost:8080/x", "http", "localhost", 8080, "/x"),
    ])
    def test_valid_urls(self, raw, scheme, host, port, path):
        endpoint = parse_fuzzy_url(raw)
        assert (endpoint.scheme, endpoint.host, endpoint.port, endpoint.path) == (scheme, host, port, path)

    @pytest.mark.parametrize("raw", [
        "wss://google.com",
        "ftp://example.com",
        "www.google.com:badport",
        "http://example.com:70000",
        "http://example.com:0",
        "http://",
        "",
        "   ",
    ])
    def test_invalid_urls(self, raw):
        with pytest.raises(ValueError):
            parse_fuzzy_url(raw)

    def test_scheme_error_message(self):
        with pytest.raises(ValueError, match="expected http or https, got wss"):
            parse_fuzzy_url("WSS://google.com")

    def test_query_preserved(self):
        endpoint = parse_fuzzy_url("example.com/search?q=jockey&n=1")
        assert endpoint.request_uri == "/search?q=jockey&n=1"

    def test_ipv6_host(self):
        endpoint = parse_fuzzy_url("http://[::1]:8080/")
        assert endpoint.host == "::1"
        assert endpoint.authority == "[::1]:8080"
        assert endpoint.url == "http://[::1]:8080/"


class TestEndpoint:
    """Endpoint validation"""

    def test_rejects_unknown_scheme(self):
        with pytest.raises(ValueError):
            Endpoint('ftp', 'example.com', 21)

    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_rejects_bad_port(self, port):
        with pytest.raises(ValueError):
            Endpoint('http', 'example.com', port)

    def test_rejects_empty_host(self):
        with pytest.raises(ValueError):
            Endpoint('http', '', 80)

    def test_empty_path_requests_root(self):
        assert Endpoint('http', 'example.com', 80, '').request_uri == "/"


class TestParseHeaderArgs:
    """'Name: value' header arguments"""

    def test_parses_and_strips(self):
        assert parse_header_args(["Accept: text/html", " X-Token :abc:def "]) == {
            "Accept": "text/html",
            "X-Token": "abc:def",
        }

    def test_empty_value_allowed(self):
        assert parse_header_args(["X-Empty:"]) == {"X-Empty": ""}

    @pytest.mark.parametrize("value", ["no colon", ": value"])
    def test_invalid_headers(self, value):
        with pytest.raises(ValueError):
            parse_header_args([value])
