"""
test_chart_client.py — Page Fetcher
====================================
HTTP is mocked at the ``requests.Session`` level; no network required.
"""

from __future__ import annotations

import datetime
import threading
import unittest
from unittest import mock

import requests

from chartcross.chart_client import ChartPageClient, FetchError
from chartcross.config import Settings

DAY = datetime.date(2019, 2, 14)


def _response(status: int, text: str = "") -> mock.Mock:
    resp = mock.Mock()
    resp.status_code = status
    resp.text = text
    resp.ok = 200 <= status < 400
    return resp


def _client(session) -> ChartPageClient:
    return ChartPageClient(Settings(), retries=2, session=session, backoff_base=0)


def _session(*responses) -> mock.MagicMock:
    session = mock.MagicMock()
    session.headers = {}
    session.get.side_effect = list(responses)
    return session


class TestBuildUrl(unittest.TestCase):

    def test_template(self):
        client = _client(_session())
        self.assertEqual(
            client.build_url("GB", DAY),
            "https://spotifycharts.com/regional/gb/daily/2019-02-14",
        )

    def test_custom_template(self):
        settings = Settings(chart_url_template="http://example.test/{date}/{region}.html")
        client = ChartPageClient(settings, session=_session())
        self.assertEqual(
            client.build_url("us", DAY), "http://example.test/2019-02-14/us.html",
        )

    def test_sets_user_agent(self):
        session = _session()
        _client(session)
        self.assertIn("User-Agent", session.headers)


class TestFetchPage(unittest.TestCase):

    def test_success_returns_markup(self):
        session = _session(_response(200, "<html>chart</html>"))
        page = _client(session).fetch_page("us", DAY)
        self.assertTrue(page.found)
        self.assertEqual(page.markup, "<html>chart</html>")
        self.assertEqual(page.day, DAY)

    def test_404_is_absent_not_error(self):
        session = _session(_response(404, "not found"))
        page = _client(session).fetch_page("us", DAY)
        self.assertFalse(page.found)
        self.assertIsNone(page.markup)

    def test_network_failure_retried_then_raises(self):
        session = _session(*[requests.ConnectionError("boom")] * 3)
        with self.assertRaises(FetchError):
            _client(session).fetch_page("us", DAY)
        self.assertEqual(session.get.call_count, 3)

    def test_server_error_then_success(self):
        session = _session(_response(503, "busy"), _response(200, "<html/>"))
        page = _client(session).fetch_page("us", DAY)
        self.assertEqual(page.markup, "<html/>")
        self.assertEqual(session.get.call_count, 2)

    def test_client_error_not_retried(self):
        session = _session(_response(403, "forbidden"))
        with self.assertRaises(FetchError):
            _client(session).fetch_page("us", DAY)
        self.assertEqual(session.get.call_count, 1)


class TestSessionPerThread(unittest.TestCase):

    def _fake_session(self):
        session = _session(*[_response(200, "<html/>")] * 4)
        self.created.append(session)
        return session

    def setUp(self) -> None:
        self.created = []
        patcher = mock.patch.object(requests, "Session", side_effect=self._fake_session)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = ChartPageClient(Settings(), backoff_base=0)

    def test_each_thread_gets_its_own_session(self):
        self.client.fetch_page("us", DAY)
        self.client.fetch_page("us", DAY)

        worker = threading.Thread(target=self.client.fetch_page, args=("gb", DAY))
        worker.start()
        worker.join()

        self.assertEqual(len(self.created), 2)
        self.assertEqual(self.created[0].get.call_count, 2)
        self.assertEqual(self.created[1].get.call_count, 1)
        self.assertIn("User-Agent", self.created[1].headers)

    def test_close_closes_every_session(self):
        self.client.fetch_page("us", DAY)
        worker = threading.Thread(target=self.client.fetch_page, args=("gb", DAY))
        worker.start()
        worker.join()

        self.client.close()
        for session in self.created:
            session.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
