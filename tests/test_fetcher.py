import unittest
from datetime import date
from unittest import mock

import requests

from bwbarchive.config import ArchiveConfig
from bwbarchive.errors import FetchError
from bwbarchive.source.fetcher import BWBFetcher, format_as_of, request_params


class TestAsOfFormatting(unittest.TestCase):
    def test_day_month_year_with_padding(self):
        self.assertEqual(format_as_of(date(2002, 5, 1)), "01-05-2002")
        self.assertEqual(format_as_of(date(2019, 12, 31)), "31-12-2019")

    def test_request_params(self):
        self.assertEqual(
            request_params("BWBR0001840", date(2010, 3, 4)),
            {"regelingID": "BWBR0001840", "geldigheidsdatum": "04-03-2010"},
        )


class TestBWBFetcher(unittest.TestCase):
    def setUp(self):
        self.fetcher = BWBFetcher(endpoint="http://example.test/xml.php", timeout=5.0, user_agent="test-agent")

    @mock.patch("bwbarchive.source.fetcher.requests.get")
    def test_returns_body_bytes(self, get):
        get.return_value = mock.Mock(status_code=200, content=b"<toestand/>")
        body = self.fetcher.fetch("BWBR0001840", date(2010, 3, 4))
        self.assertEqual(body, b"<toestand/>")
        get.assert_called_once_with(
            "http://example.test/xml.php",
            params={"regelingID": "BWBR0001840", "geldigheidsdatum": "04-03-2010"},
            headers={"User-Agent": "test-agent"},
            timeout=5.0,
        )

    @mock.patch("bwbarchive.source.fetcher.requests.get")
    def test_non_200_is_a_fetch_error(self, get):
        get.return_value = mock.Mock(status_code=500, content=b"oops")
        with self.assertRaises(FetchError) as ctx:
            self.fetcher.fetch("BWBR0001840", date(2010, 3, 4))
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertIn("04-03-2010", str(ctx.exception))

    @mock.patch("bwbarchive.source.fetcher.requests.get")
    def test_transport_error_is_a_fetch_error(self, get):
        get.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(FetchError) as ctx:
            self.fetcher.fetch("BWBR0001840", date(2010, 3, 4))
        self.assertIsNone(ctx.exception.status_code)
        self.assertIsInstance(ctx.exception.__cause__, requests.ConnectionError)

    @mock.patch("bwbarchive.source.fetcher.requests.get")
    def test_timeout_is_a_fetch_error(self, get):
        get.side_effect = requests.Timeout("slow")
        with self.assertRaises(FetchError):
            self.fetcher.fetch("BWBR0001840", date(2010, 3, 4))

    def test_from_config(self):
        cfg = ArchiveConfig(source_url="http://mirror.test/xml.php", http_timeout=12.5)
        fetcher = BWBFetcher.from_config(cfg)
        self.assertEqual(fetcher.endpoint, "http://mirror.test/xml.php")
        self.assertEqual(fetcher.timeout, 12.5)


if __name__ == "__main__":
    unittest.main()
