#!/usr/bin/env python3
"""
Tests for URL validation and the upstream fetcher (requests is mocked)
"""
import random
import unittest
from unittest.mock import Mock, patch

import requests

from errors import InvalidURL, UpstreamUnavailable
from fetcher import USER_AGENTS, UpstreamFetcher, validate_url
from support import RecordingSink


def fake_response(text='<html></html>', url='https://player.example/e/1', status_code=200):
    resp = Mock()
    resp.text = text
    resp.url = url
    resp.status_code = status_code
    return resp


class TestValidateURL(unittest.TestCase):
    """Test the only input validation the proxy performs"""

    def test_absolute_urls_are_accepted(self):
        for url in (
            'https://example.com',
            'http://localhost:8080/embed?x=1',
            'https://vidsrc.me/embed/movie?tmdb=550&js=1',
            'ftp://files.example.org/a.txt',
            'http://10.0.0.5/player',
        ):
            self.assertEqual(validate_url(url), url)

    def test_non_urls_are_rejected(self):
        for url in ('', 'not-a-url', 'example.com/path', 'http://', 'https:// spaced.example',
                    'javascript:alert(1)', 'http://host:abc/'):
            with self.assertRaises(InvalidURL, msg=url):
                validate_url(url)

    def test_no_allow_list(self):
        """Test that arbitrary hosts pass (no SSRF filtering)"""
        self.assertEqual(validate_url('http://127.0.0.1/admin'), 'http://127.0.0.1/admin')


class TestUpstreamFetcher(unittest.TestCase):
    """Test fetch behavior"""

    def setUp(self):
        self.sink = RecordingSink()
        self.fetcher = UpstreamFetcher(sink=self.sink, rng=random.Random(7))

    @patch('fetcher.requests.get')
    def test_request_options(self, mock_get):
        """Test redirects, relaxed TLS, timeout and a pooled User-Agent"""
        mock_get.return_value = fake_response()
        self.fetcher.fetch('https://short.example/r/1')

        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], 'https://short.example/r/1')
        self.assertTrue(kwargs['allow_redirects'])
        self.assertFalse(kwargs['verify'])
        self.assertEqual(kwargs['timeout'], 15)
        self.assertIn(kwargs['headers']['User-Agent'], USER_AGENTS)

    @patch('fetcher.requests.get')
    def test_verify_flag_is_honored(self, mock_get):
        mock_get.return_value = fake_response()
        UpstreamFetcher(verify_tls=True, sink=self.sink).fetch('https://a.example/')
        self.assertTrue(mock_get.call_args[1]['verify'])

    @patch('fetcher.requests.get')
    def test_effective_url_is_post_redirect(self, mock_get):
        mock_get.return_value = fake_response(url='https://player.example/final/play.html')
        upstream = self.fetcher.fetch('https://short.example/r/1')
        self.assertEqual(upstream.url, 'https://short.example/r/1')
        self.assertEqual(upstream.effective_url, 'https://player.example/final/play.html')
        self.assertEqual(upstream.body, '<html></html>')

    @patch('fetcher.requests.get')
    def test_invalid_url_is_not_fetched(self, mock_get):
        with self.assertRaises(InvalidURL):
            self.fetcher.fetch('not-a-url')
        mock_get.assert_not_called()

    @patch('fetcher.requests.get')
    def test_timeout_is_unavailable(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout('slow')
        with self.assertRaises(UpstreamUnavailable) as ctx:
            self.fetcher.fetch('https://slow.example/')
        self.assertIn('timed out', ctx.exception.reason)

    @patch('fetcher.requests.get')
    def test_connection_error_is_unavailable(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError('refused')
        with self.assertRaises(UpstreamUnavailable):
            self.fetcher.fetch('https://down.example/')

    @patch('fetcher.requests.get')
    def test_empty_body_is_unavailable(self, mock_get):
        mock_get.return_value = fake_response(text='')
        with self.assertRaises(UpstreamUnavailable):
            self.fetcher.fetch('https://blank.example/')

    @patch('fetcher.requests.get')
    def test_error_status_with_body_passes_through(self, mock_get):
        """Test that a 404 page with content is still served"""
        mock_get.return_value = fake_response(text='<h1>gone</h1>', status_code=404)
        upstream = self.fetcher.fetch('https://a.example/missing')
        self.assertEqual(upstream.status_code, 404)
        self.assertEqual(upstream.body, '<h1>gone</h1>')
        self.assertTrue(any('404' in m for m in self.sink.messages()))

    def test_user_agent_rotation_uses_pool(self):
        agents = {self.fetcher.pick_user_agent() for _ in range(50)}
        self.assertTrue(agents <= set(USER_AGENTS))
        self.assertGreater(len(agents), 1)


if __name__ == '__main__':
    unittest.main(verbosity=2)
