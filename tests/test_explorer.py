import threading
import time
import unittest

import requests

from inheritance_vault.errors import (
    NetworkUnsupported,
    ProviderError,
    ProvidersExhausted,
    RequestCancelled,
    RequestTimeout,
    UnsupportedType,
    ValidationError,
)
from inheritance_vault.explorer import (
    ESPLORA_CHAIN_PAGE_SIZE,
    ESPLORA_CHAIN_SCAN_PAGE_LIMIT,
    build_explorer_address_url,
    build_explorer_tx_url,
    fetch_address_summary,
    get_provider_order,
)
from inheritance_vault.explorer.parsers import (
    get_oldest_confirmed_txid,
    parse_tip_height,
    to_funding_event,
    to_safe_integer,
)

from .fakes import FakeResponse, FakeSession

ADDRESS = "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"
MEMPOOL = "https://mempool.space/testnet/api"
BLOCKSTREAM = "https://blockstream.info/testnet/api"

TX_UNCONFIRMED = "aa" * 32
TX_CONFIRMED = "bb" * 32
TX_UNRELATED = "cc" * 32
TX_OLDER = "dd" * 32


def _tx(txid, value, confirmed, height=None, address=ADDRESS):
    status = {'confirmed': confirmed}
    if confirmed:
        status.update({'block_height': height, 'block_time': 1700000000})
    return {
        'txid': txid,
        'status': status,
        'vout': [
            {'scriptpubkey_address': address, 'value': value},
            {'scriptpubkey_address': 'tb1qchange0000000000', 'value': 999},
        ],
    }


STATS = {
    'chain_stats': {'funded_txo_sum': 10000, 'spent_txo_sum': 2000, 'tx_count': 3},
    'mempool_stats': {'funded_txo_sum': 400, 'spent_txo_sum': 100, 'tx_count': 1},
}


def _routes(api, txs, tip="120"):
    base = f"{api}/address/{ADDRESS}"
    return {
        ('GET', base): FakeResponse(STATS),
        ('GET', f"{base}/txs"): FakeResponse(txs),
        ('GET', f"{api}/blocks/tip/height"): FakeResponse(tip),
    }


class TestFetchAddressSummary(unittest.TestCase):

    def setUp(self):
        self.txs = [
            _tx(TX_UNCONFIRMED, 400, confirmed=False),
            _tx(TX_CONFIRMED, 5000, confirmed=True, height=100),
        ]

    def test_balances_and_funding(self):
        session = FakeSession(_routes(MEMPOOL, self.txs))
        summary = fetch_address_summary("testnet", ADDRESS, session=session)

        self.assertEqual(summary.confirmed_balance_sats, 8000)
        self.assertEqual(summary.unconfirmed_balance_sats, 300)
        self.assertEqual(summary.total_balance_sats, 8300)
        self.assertEqual(summary.tx_count, 4)
        self.assertEqual(summary.tip_height, 120)
        self.assertEqual(summary.provider_used, "mempool")
        self.assertEqual(summary.provider_label, "Mempool.space (Testnet)")
        self.assertFalse(summary.used_fallback_provider)

        self.assertEqual(summary.last_funding_tx.txid, TX_UNCONFIRMED)
        self.assertFalse(summary.last_funding_tx.confirmed)
        self.assertIsNone(summary.last_funding_tx.confirmations)
        self.assertEqual(summary.last_confirmed_funding_tx.txid, TX_CONFIRMED)
        self.assertEqual(summary.last_confirmed_funding_tx.funded_amount_sats, 5000)
        self.assertEqual(summary.last_confirmed_funding_tx.confirmations, 21)
        self.assertEqual(summary.confirmations_since_last_funding, 21)
        self.assertTrue(summary.fetched_at.endswith("Z"))

        self.assertEqual(len(session.calls), 3)
        self.assertTrue(all(timeout == 10.0 for _, _, timeout, _ in session.calls))

    def test_pages_backward_for_confirmed_funding(self):
        first_page = [
            _tx(TX_UNCONFIRMED, 400, confirmed=False),
            _tx(TX_UNRELATED, 700, confirmed=True, height=110, address="tb1qsomeoneelse00000"),
        ]
        routes = _routes(MEMPOOL, first_page)
        routes[('GET', f"{MEMPOOL}/address/{ADDRESS}/txs/chain/{TX_UNRELATED}")] = FakeResponse(
            [_tx(TX_OLDER, 2500, confirmed=True, height=90)]
        )
        session = FakeSession(routes)

        summary = fetch_address_summary("testnet", ADDRESS, session=session)

        self.assertEqual(summary.last_funding_tx.txid, TX_UNCONFIRMED)
        self.assertEqual(summary.last_confirmed_funding_tx.txid, TX_OLDER)
        self.assertEqual(summary.last_confirmed_funding_tx.confirmations, 31)
        self.assertEqual(len(session.calls), 4)

    def test_no_funding_history(self):
        session = FakeSession(_routes(MEMPOOL, []))
        summary = fetch_address_summary("testnet", ADDRESS, session=session)
        self.assertIsNone(summary.last_funding_tx)
        self.assertIsNone(summary.last_confirmed_funding_tx)
        self.assertIsNone(summary.confirmations_since_last_funding)

    def test_falls_back_to_second_provider(self):
        routes = _routes(BLOCKSTREAM, self.txs)
        routes[('GET', f"{MEMPOOL}/address/{ADDRESS}")] = FakeResponse("Internal error", 500, "Server Error")
        session = FakeSession(routes)

        summary = fetch_address_summary("testnet", ADDRESS, session=session)

        self.assertEqual(summary.provider_used, "blockstream")
        self.assertTrue(summary.used_fallback_provider)
        self.assertEqual(summary.total_balance_sats, 8300)
        self.assertEqual(session.urls()[0], f"{MEMPOOL}/address/{ADDRESS}")

    def test_no_fallback_when_disabled(self):
        routes = _routes(BLOCKSTREAM, self.txs)
        session = FakeSession(routes)

        with self.assertRaises(ProvidersExhausted) as ctx:
            fetch_address_summary("testnet", ADDRESS, fallback_to_other_provider=False, session=session)
        self.assertIsInstance(ctx.exception.last_error, ProviderError)
        self.assertTrue(all(url.startswith(MEMPOOL) for url in session.urls()))

    def test_all_providers_fail(self):
        session = FakeSession()
        with self.assertRaises(ProvidersExhausted) as ctx:
            fetch_address_summary("testnet", ADDRESS, session=session)
        self.assertIn("Not Found", str(ctx.exception))
        self.assertEqual(len(session.calls), 2)

    def test_timeout(self):
        session = FakeSession({('GET', f"{MEMPOOL}/address/{ADDRESS}"): requests.Timeout("slow")})
        with self.assertRaises(ProvidersExhausted) as ctx:
            fetch_address_summary(
                "testnet", ADDRESS, fallback_to_other_provider=False, timeout=2, session=session,
            )
        self.assertIsInstance(ctx.exception.last_error, RequestTimeout)
        self.assertEqual(session.calls[0][2], 2.0)

    def test_connection_error(self):
        session = FakeSession({('GET', f"{MEMPOOL}/address/{ADDRESS}"): requests.ConnectionError("refused")})
        with self.assertRaises(ProvidersExhausted) as ctx:
            fetch_address_summary("testnet", ADDRESS, fallback_to_other_provider=False, session=session)
        self.assertIsInstance(ctx.exception.last_error, ProviderError)

    def test_invalid_json(self):
        routes = _routes(MEMPOOL, self.txs)
        routes[('GET', f"{MEMPOOL}/address/{ADDRESS}")] = FakeResponse("<html>")
        with self.assertRaises(ProvidersExhausted):
            fetch_address_summary(
                "testnet", ADDRESS, fallback_to_other_provider=False, session=FakeSession(routes),
            )

    def test_cancelled_before_start(self):
        cancel = threading.Event()
        cancel.set()
        session = FakeSession(_routes(MEMPOOL, self.txs))
        with self.assertRaises(RequestCancelled):
            fetch_address_summary("testnet", ADDRESS, session=session, cancel_event=cancel)
        self.assertEqual(session.calls, [])

    def test_cancelled_mid_flight_does_not_fall_back(self):
        cancel = threading.Event()
        routes = _routes(MEMPOOL, self.txs)

        def cancel_then_answer():
            cancel.set()
            return FakeResponse(self.txs)

        routes[('GET', f"{MEMPOOL}/address/{ADDRESS}/txs")] = cancel_then_answer
        session = FakeSession(routes)

        with self.assertRaises(RequestCancelled):
            fetch_address_summary("testnet", ADDRESS, session=session, cancel_event=cancel)
        self.assertFalse(any(url.startswith(BLOCKSTREAM) for url in session.urls()))

    def test_regtest_unsupported(self):
        session = FakeSession()
        with self.assertRaises(NetworkUnsupported):
            fetch_address_summary("regtest", ADDRESS, session=session)
        self.assertEqual(session.calls, [])

    def test_rejects_bad_input(self):
        session = FakeSession()
        with self.assertRaises(ValidationError):
            fetch_address_summary("testnet", "tb1q", session=session)
        with self.assertRaises(UnsupportedType):
            fetch_address_summary("testnet", ADDRESS, provider="esplora", session=session)
        self.assertEqual(session.calls, [])


OTHER = "tb1qsomeoneelse00000"


def _txid(n):
    return f"{n:064x}"


def _unrelated_page(start, size=ESPLORA_CHAIN_PAGE_SIZE):
    """Confirmed transactions that never pay ADDRESS, newest first"""
    return [_tx(_txid(n), 1000, confirmed=True, height=100, address=OTHER) for n in range(start, start + size)]


class TestHistoryPaging(unittest.TestCase):

    def _chain_url(self, cursor):
        return f"{MEMPOOL}/address/{ADDRESS}/txs/chain/{cursor}"

    def _fetch(self, session):
        return fetch_address_summary("testnet", ADDRESS, fallback_to_other_provider=False, session=session)

    def test_stops_at_scan_page_limit(self):
        first = _unrelated_page(1)
        routes = _routes(MEMPOOL, first)
        cursor = first[-1]['txid']
        start = 1 + ESPLORA_CHAIN_PAGE_SIZE
        for _ in range(ESPLORA_CHAIN_SCAN_PAGE_LIMIT + 5):
            page = _unrelated_page(start)
            routes[('GET', self._chain_url(cursor))] = FakeResponse(page)
            cursor = page[-1]['txid']
            start += ESPLORA_CHAIN_PAGE_SIZE
        session = FakeSession(routes)

        summary = self._fetch(session)

        self.assertIsNone(summary.last_funding_tx)
        self.assertIsNone(summary.last_confirmed_funding_tx)
        chain_calls = [url for url in session.urls() if "/txs/chain/" in url]
        self.assertEqual(len(chain_calls), ESPLORA_CHAIN_SCAN_PAGE_LIMIT)
        self.assertEqual(len(session.calls), 3 + ESPLORA_CHAIN_SCAN_PAGE_LIMIT)

    def test_stops_when_cursor_repeats(self):
        first = _unrelated_page(1)
        cursor = first[-1]['txid']
        repeat = _unrelated_page(100)
        repeat[-1] = _tx(cursor, 1000, confirmed=True, height=100, address=OTHER)
        routes = _routes(MEMPOOL, first)
        routes[('GET', self._chain_url(cursor))] = FakeResponse(repeat)
        session = FakeSession(routes)

        self._fetch(session)

        self.assertEqual(len(session.calls), 4)

    def test_stops_on_short_page(self):
        first = _unrelated_page(1)
        short = _unrelated_page(200, size=3)
        routes = _routes(MEMPOOL, first)
        routes[('GET', self._chain_url(first[-1]['txid']))] = FakeResponse(short)
        routes[('GET', self._chain_url(short[-1]['txid']))] = FakeResponse(_unrelated_page(300))
        session = FakeSession(routes)

        self._fetch(session)

        self.assertEqual(len(session.calls), 4)

    def test_stops_on_empty_page(self):
        first = _unrelated_page(1)
        routes = _routes(MEMPOOL, first)
        routes[('GET', self._chain_url(first[-1]['txid']))] = FakeResponse([])
        session = FakeSession(routes)

        summary = self._fetch(session)

        self.assertIsNone(summary.last_confirmed_funding_tx)
        self.assertEqual(len(session.calls), 4)

    def test_no_paging_without_confirmed_cursor(self):
        session = FakeSession(_routes(MEMPOOL, [_tx(TX_UNCONFIRMED, 400, confirmed=False)]))
        summary = self._fetch(session)
        self.assertEqual(summary.last_funding_tx.txid, TX_UNCONFIRMED)
        self.assertEqual(len(session.calls), 3)


class SlowSession(FakeSession):
    """Blocks every request until released or ``delay`` seconds pass"""

    def __init__(self, routes=None, delay=3.0):
        super().__init__(routes)
        self.delay = delay
        self.release = threading.Event()

    def request(self, method, url, timeout=None, **kwargs):
        self.release.wait(self.delay)
        return super().request(method, url, timeout=timeout, **kwargs)


class TestInFlightCancellation(unittest.TestCase):

    def setUp(self):
        self.session = SlowSession(_routes(MEMPOOL, []))
        self.cancel = threading.Event()

    def tearDown(self):
        self.session.release.set()

    def test_cancel_interrupts_slow_request(self):
        timer = threading.Timer(0.1, self.cancel.set)
        timer.start()
        started = time.monotonic()
        try:
            with self.assertRaises(RequestCancelled):
                fetch_address_summary(
                    "testnet", ADDRESS, timeout=10, session=self.session, cancel_event=self.cancel,
                )
        finally:
            timer.cancel()
        self.assertLess(time.monotonic() - started, 1.0)
        self.assertFalse(any(url.startswith(BLOCKSTREAM) for url in self.session.urls()))

    def test_completes_when_not_cancelled(self):
        self.session.delay = 0.1
        summary = fetch_address_summary(
            "testnet", ADDRESS, session=self.session, cancel_event=self.cancel,
        )
        self.assertEqual(summary.total_balance_sats, 8300)


class TestParsers(unittest.TestCase):

    def test_to_safe_integer(self):
        self.assertEqual(to_safe_integer(5), 5)
        self.assertEqual(to_safe_integer(5.9), 5)
        self.assertEqual(to_safe_integer(None), 0)
        self.assertEqual(to_safe_integer("12"), 0)
        self.assertEqual(to_safe_integer(True), 0)
        self.assertEqual(to_safe_integer(float('inf')), 0)

    def test_parse_tip_height(self):
        self.assertEqual(parse_tip_height("850000\n"), 850000)
        self.assertIsNone(parse_tip_height("abc"))
        self.assertIsNone(parse_tip_height("0"))
        self.assertIsNone(parse_tip_height(None))

    def test_funding_event_sums_outputs(self):
        tx = _tx(TX_CONFIRMED, 1000, confirmed=True, height=50)
        tx['vout'].append({'scriptpubkey_address': ADDRESS, 'value': 500})
        event = to_funding_event(tx, ADDRESS, tip_height=50)
        self.assertEqual(event.funded_amount_sats, 1500)
        self.assertEqual(event.confirmations, 1)
        self.assertEqual(event.block_time, 1700000000)

    def test_non_funding_and_malformed(self):
        self.assertIsNone(to_funding_event(_tx(TX_CONFIRMED, 1000, True, 50, address="other"), ADDRESS))
        self.assertIsNone(to_funding_event({'txid': 'short'}, ADDRESS))
        self.assertIsNone(to_funding_event("junk", ADDRESS))

    def test_oldest_confirmed_cursor(self):
        txs = [
            _tx(TX_CONFIRMED, 1, True, 10),
            _tx(TX_OLDER, 1, True, 9),
            _tx(TX_UNCONFIRMED, 1, False),
        ]
        self.assertEqual(get_oldest_confirmed_txid(txs), TX_OLDER)
        self.assertIsNone(get_oldest_confirmed_txid([_tx(TX_UNCONFIRMED, 1, False)]))


class TestUrls(unittest.TestCase):

    def test_provider_order(self):
        self.assertEqual(get_provider_order("mempool", True), ["mempool", "blockstream"])
        self.assertEqual(get_provider_order("blockstream", True), ["blockstream", "mempool"])
        self.assertEqual(get_provider_order("blockstream", False), ["blockstream"])

    def test_explorer_urls(self):
        self.assertEqual(
            build_explorer_address_url("mainnet", "mempool", " bc1qexampleaddress00 "),
            "https://mempool.space/address/bc1qexampleaddress00",
        )
        self.assertEqual(
            build_explorer_tx_url("testnet", "blockstream", TX_CONFIRMED),
            f"https://blockstream.info/testnet/tx/{TX_CONFIRMED}",
        )
        with self.assertRaises(NetworkUnsupported):
            build_explorer_tx_url("regtest", "mempool", TX_CONFIRMED)


if __name__ == '__main__':
    unittest.main()
