"""
Unit Tests for the Permit2 Swap Workflow
Chain and aggregator clients are mocks; call order is recorded to check sequencing
"""

import io
import unittest
from unittest import mock

from abis import MAX_UINT256
from settings import load_settings
from swap_runner import ApprovalError, SignatureError, SwapRunner
from tx_builder import extract_signature, splice_signature
from zerox_client import ZeroExAPIError

ENV = {
    "PRIVATE_KEY": "ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    "ZERO_EX_API_KEY": "test-0x-key",
    "ALCHEMY_HTTP_TRANSPORT_URL": "https://scroll-mainnet.example/rpc",
}

TAKER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
WETH = "0x5300000000000000000000000000000000000004"
WSTETH = "0xf610A9dfB7C89644979b4A0f27063E9e7d7Cda32"
PERMIT2 = "0x000000000022D473030F116dDEE9F6B43aC78BA3"
SETTLER = "0x0d0e364aa7852291883c162b22d6d81f6355428f"
CALLDATA = "0x1fff991f" + "00" * 31 + "2a"
SIGNATURE = bytes(range(1, 66))


def price_response(allowance_issue=True):
    return {
        "liquidityAvailable": True,
        "sellAmount": "100000000000000000",
        "buyAmount": "84000000000000000",
        "issues": {
            "allowance": {"actual": "0", "spender": PERMIT2} if allowance_issue else None,
            "balance": None,
        },
    }


def quote_response(with_permit=True):
    quote = {
        "liquidityAvailable": True,
        "affiliateFeeBps": "100",
        "tradeSurplus": "0",
        "route": {"fills": [
            {"source": "Uniswap_V3", "proportionBps": "7000"},
            {"source": "SyncSwap", "proportionBps": "3000"},
        ]},
        "tokenMetadata": {
            "buyToken": {"buyTaxBps": "0", "sellTaxBps": "0"},
            "sellToken": {"buyTaxBps": "0", "sellTaxBps": "0"},
        },
        "transaction": {
            "to": SETTLER,
            "data": CALLDATA,
            "gas": "288079",
            "gasPrice": "40000000",
            "value": "0",
        },
    }
    if with_permit:
        quote["permit2"] = {"type": "Permit2", "hash": "0x00", "eip712": {"primaryType": "PermitTransferFrom"}}
    return quote


class SwapRunnerTestCase(unittest.TestCase):
    """Shared fixtures: mocked clients that record every call in order"""

    def setUp(self):
        self.calls = []

        self.chain = mock.MagicMock()
        self.chain.address = TAKER
        self.chain.decimals.side_effect = self._record("decimals", 18)
        self.chain.balance_of.side_effect = self._record("balance_of", 10**18)
        self.chain.approve.side_effect = self._record("approve", "0xapprove")
        self.chain.wait_for_receipt.side_effect = self._record("wait_for_receipt", {"status": 1, "blockNumber": 10})
        self.chain.allowance.side_effect = self._record("allowance", MAX_UINT256)
        self.chain.sign_typed_data.side_effect = self._record("sign_typed_data", SIGNATURE)
        self.chain.get_nonce.side_effect = self._record("get_nonce", 3)
        self.chain.sign_transaction.side_effect = self._record("sign_transaction", b"signed")
        self.chain.send_raw_transaction.side_effect = self._record("send_raw_transaction", "0xswaphash")

        self.zerox = mock.MagicMock()
        self.zerox.url_for.return_value = "https://api.0x.org/swap/permit2/price?..."
        self.zerox.get_sources.side_effect = self._record("get_sources", ["Uniswap_V3", "SyncSwap"])
        self.set_price(price_response())
        self.set_quote(quote_response())

        stdout = mock.patch("sys.stdout", new_callable=io.StringIO)
        self.stdout = stdout.start()
        self.addCleanup(stdout.stop)

    def _record(self, name, result):
        def side_effect(*args, **kwargs):
            self.calls.append(name)
            if isinstance(result, Exception):
                raise result
            return result
        return side_effect

    def set_price(self, price):
        self.zerox.get_price.side_effect = self._record("get_price", price)

    def set_quote(self, quote):
        self.zerox.get_quote.side_effect = self._record("get_quote", quote)

    def make_runner(self, **env_overrides):
        settings = load_settings(dict(ENV, **env_overrides))
        return SwapRunner(settings, chain_client=self.chain, zerox=self.zerox)


class TestSwapWorkflow(SwapRunnerTestCase):

    def test_full_swap_submits(self):
        result = self.make_runner().run()

        self.assertTrue(result.submitted)
        self.assertEqual(result.tx_hash, "0xswaphash")
        self.assertEqual(result.explorer_url, "https://scrollscan.com/tx/0xswaphash")
        self.assertEqual(result.approval_tx_hash, "0xapprove")
        self.assertIn("https://scrollscan.com/tx/0xswaphash", self.stdout.getvalue())

    def test_step_order(self):
        self.make_runner().run()
        self.assertEqual(self.calls, [
            "get_sources",
            "decimals",
            "balance_of",
            "get_price",
            "approve",
            "wait_for_receipt",
            "allowance",
            "get_quote",
            "sign_typed_data",
            "get_nonce",
            "sign_transaction",
            "send_raw_transaction",
        ])

    def test_sell_amount_in_base_units(self):
        self.make_runner().run()
        params = self.zerox.get_price.call_args.args[0]
        self.assertEqual(params["sellAmount"], "100000000000000000")
        self.assertEqual(params["sellToken"], WETH)
        self.assertEqual(params["buyToken"], WSTETH)
        self.assertEqual(params["taker"], TAKER)
        self.assertEqual(params["affiliateFee"], "100")
        self.assertEqual(params["surplusCollection"], "true")
        self.assertEqual(params["chainId"], "534352")

    def test_quote_reuses_price_params(self):
        self.make_runner().run()
        self.assertEqual(self.zerox.get_quote.call_args.args[0], self.zerox.get_price.call_args.args[0])

    def test_signed_transaction_carries_spliced_signature(self):
        self.make_runner().run()
        tx = self.chain.sign_transaction.call_args.args[0]
        self.assertEqual(tx["data"], splice_signature(CALLDATA, SIGNATURE))
        payload, signature = extract_signature(tx["data"], len(SIGNATURE))
        self.assertEqual(payload, CALLDATA)
        self.assertEqual(signature, SIGNATURE)
        self.assertEqual(tx["nonce"], 3)
        self.assertEqual(tx["gas"], 288079)
        self.assertEqual(tx["gasPrice"], 40000000)
        self.assertEqual(tx["chainId"], 534352)

    def test_report_output(self):
        self.make_runner().run()
        output = self.stdout.getvalue()
        self.assertIn("Uniswap_V3: 70.00%", output)
        self.assertIn("SyncSwap: 30.00%", output)
        self.assertIn("Affiliate Fee: 1.00%", output)
        self.assertNotIn("Trade Surplus Collected", output)
        self.assertNotIn("Tax", output)


class TestAllowance(SwapRunnerTestCase):

    def test_approval_uses_spender_and_max_allowance(self):
        self.make_runner().run()
        self.chain.approve.assert_called_once_with(WETH, PERMIT2, MAX_UINT256)
        self.assertLess(self.calls.index("wait_for_receipt"), self.calls.index("get_quote"))

    def test_no_approval_when_no_allowance_issue(self):
        self.set_price(price_response(allowance_issue=False))
        result = self.make_runner().run()
        self.chain.approve.assert_not_called()
        self.chain.wait_for_receipt.assert_not_called()
        self.assertTrue(result.submitted)
        self.assertIsNone(result.approval_tx_hash)

    def test_strict_approval_failure_aborts_before_quote(self):
        self.chain.approve.side_effect = self._record("approve", RuntimeError("execution reverted"))
        with self.assertRaises(ApprovalError):
            self.make_runner().run()
        self.zerox.get_quote.assert_not_called()
        self.chain.send_raw_transaction.assert_not_called()

    def test_reverted_approval_receipt_aborts(self):
        self.chain.wait_for_receipt.side_effect = self._record("wait_for_receipt", {"status": 0})
        with self.assertRaises(ApprovalError):
            self.make_runner().run()
        self.zerox.get_quote.assert_not_called()

    def test_allowance_read_back_after_receipt(self):
        self.make_runner().run()
        self.chain.allowance.assert_called_once_with(WETH, PERMIT2)
        self.assertLess(self.calls.index("wait_for_receipt"), self.calls.index("allowance"))

    def test_allowance_still_short_aborts(self):
        self.chain.allowance.side_effect = self._record("allowance", 10**16)
        with self.assertRaisesRegex(ApprovalError, "still short"):
            self.make_runner().run()
        self.zerox.get_quote.assert_not_called()
        self.chain.send_raw_transaction.assert_not_called()

    def test_lenient_approval_failure_continues(self):
        self.chain.approve.side_effect = self._record("approve", RuntimeError("execution reverted"))
        result = self.make_runner(STRICT_APPROVAL="false").run()
        self.assertTrue(result.submitted)
        self.assertIsNone(result.approval_tx_hash)
        self.zerox.get_quote.assert_called_once()


class TestPermitSignature(SwapRunnerTestCase):

    def test_signing_failure_never_submits(self):
        self.chain.sign_typed_data.side_effect = self._record("sign_typed_data", ValueError("bad typed data"))
        with self.assertRaises(SignatureError):
            self.make_runner().run()
        self.chain.sign_transaction.assert_not_called()
        self.chain.send_raw_transaction.assert_not_called()

    def test_missing_calldata_with_permit_fails(self):
        quote = quote_response()
        del quote["transaction"]["data"]
        self.set_quote(quote)
        with self.assertRaises(SignatureError):
            self.make_runner().run()
        self.chain.send_raw_transaction.assert_not_called()

    def test_quote_without_permit_is_not_submitted(self):
        self.set_quote(quote_response(with_permit=False))
        result = self.make_runner().run()
        self.assertFalse(result.submitted)
        self.chain.sign_typed_data.assert_not_called()
        self.chain.send_raw_transaction.assert_not_called()
        self.assertIn("transaction not sent", self.stdout.getvalue())


class TestRunModes(SwapRunnerTestCase):

    def test_dry_run_skips_chain_writes(self):
        result = self.make_runner(DRY_RUN="true").run()
        self.assertFalse(result.submitted)
        self.assertIsNotNone(result.quote)
        self.chain.approve.assert_not_called()
        self.chain.sign_typed_data.assert_not_called()
        self.chain.send_raw_transaction.assert_not_called()

    def test_api_error_propagates(self):
        self.zerox.get_price.side_effect = self._record("get_price", ZeroExAPIError("0x API returned 500", 500))
        with self.assertRaises(ZeroExAPIError):
            self.make_runner().run()
        self.chain.approve.assert_not_called()
        self.zerox.get_quote.assert_not_called()

    def test_low_balance_only_warns(self):
        self.chain.balance_of.side_effect = self._record("balance_of", 0)
        with self.assertLogs("swap_runner", level="WARNING"):
            result = self.make_runner().run()
        self.assertTrue(result.submitted)

    def test_price_balance_issue_logged(self):
        price = price_response()
        price["issues"]["balance"] = {"token": WETH, "actual": "0", "expected": "100000000000000000"}
        self.set_price(price)
        with self.assertLogs("swap_runner", level="WARNING") as logs:
            result = self.make_runner().run()
        self.assertTrue(any("0x reports a balance issue" in line for line in logs.output))
        self.assertTrue(result.submitted)

    def test_no_balance_issue_no_warning(self):
        with mock.patch("swap_runner.logger") as log:
            self.make_runner().run()
        log.warning.assert_not_called()

    def test_close_releases_http_session(self):
        with self.make_runner():
            pass
        self.zerox.close.assert_called_once()


if __name__ == "__main__":
    unittest.main(verbosity=2)
