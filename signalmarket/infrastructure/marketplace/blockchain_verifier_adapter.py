"""
Adapter: Block explorer deposit verifier.

Implements BlockchainVerifierPort for USDT deposits:

- TRC20 via TronScan transaction-info
- ERC20 via Etherscan token transfers of the USDT contract

Both chains use 6-decimal USDT amounts. A deposit is considered valid when
the transfer succeeded, went to our wallet, and its amount is within 0.1 of
the claimed amount. An unreachable explorer raises UpstreamUnavailableError;
an unreadable answer is an invalid result.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from signalmarket.domain.marketplace.entities import DepositVerification
from signalmarket.domain.marketplace.errors import UpstreamUnavailableError
from signalmarket.domain.marketplace.ports import BlockchainVerifierPort

logger = logging.getLogger(__name__)

USDT_DECIMALS = Decimal("1000000")
AMOUNT_TOLERANCE = Decimal("0.1")
ERC20_USDT_CONTRACT = "0xdac17f958d2ee523a2206206994597c13d831ec7"


class ExplorerDepositVerifier(BlockchainVerifierPort):
    """Checks deposits against TronScan and Etherscan."""

    SUPPORTED_NETWORKS = frozenset({"TRC20", "ERC20"})

    def __init__(
        self,
        trc20_wallet_address: str = "",
        erc20_wallet_address: str = "",
        tronscan_url: str = "https://apilist.tronscan.org/api",
        etherscan_url: str = "https://api.etherscan.io/api",
        etherscan_api_key: str = "",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        """Initialize the verifier.

        Args:
            trc20_wallet_address: Our Tron deposit address.
            erc20_wallet_address: Our Ethereum deposit address.
            tronscan_url: TronScan API root.
            etherscan_url: Etherscan API endpoint.
            etherscan_api_key: Required for ERC20 checks.
            timeout: Upstream request timeout in seconds.
            client: Optional preconfigured httpx client (used by tests).
        """
        self._trc20_address = trc20_wallet_address
        self._erc20_address = erc20_wallet_address
        self._tronscan_url = tronscan_url.rstrip("/")
        self._etherscan_url = etherscan_url
        self._etherscan_key = etherscan_api_key
        self._client = client or httpx.Client(timeout=timeout)

    def supports(self, network: Optional[str]) -> bool:
        return (network or "").upper() in self.SUPPORTED_NETWORKS

    def close(self) -> None:
        self._client.close()

    def verify(
        self, network: str, tx_hash: str, expected_amount: Decimal
    ) -> DepositVerification:
        """Look up ``tx_hash`` on the explorer for ``network``.

        Raises:
            ValueError: If the network is not supported.
            UpstreamUnavailableError: If the explorer cannot be reached.
        """
        network = (network or "").upper()
        if network == "TRC20":
            return self._verify_trc20(tx_hash, expected_amount)
        if network == "ERC20":
            return self._verify_erc20(tx_hash, expected_amount)
        raise ValueError(f"Unsupported network: {network}")

    def _verify_trc20(self, tx_hash: str, expected: Decimal) -> DepositVerification:
        try:
            response = self._client.get(
                f"{self._tronscan_url}/transaction-info", params={"hash": tx_hash}
            )
            response.raise_for_status()
            data = response.json() or {}
        except httpx.HTTPError as exc:
            logger.warning("TronScan lookup failed for %s: %s", tx_hash, exc)
            raise UpstreamUnavailableError("TronScan", str(exc)) from exc
        except ValueError:
            return DepositVerification(False, "Unreadable response from TronScan API")

        if not data.get("contractRet"):
            return DepositVerification(False, "Transaction not found on TronScan")
        if data["contractRet"] != "SUCCESS":
            return DepositVerification(False, "Transaction failed on-chain")

        transfer = data.get("tokenTransferInfo") or {}
        if transfer.get("symbol") != "USDT":
            return DepositVerification(False, "Not a USDT transfer")
        recipient = transfer.get("to_address")
        if recipient != self._trc20_address:
            return DepositVerification(
                False,
                f"Recipient mismatch. Expected {self._trc20_address}, got {recipient}",
            )
        return _check_amount(transfer.get("amount_str"), expected, transfer.get("from_address"))

    def _verify_erc20(self, tx_hash: str, expected: Decimal) -> DepositVerification:
        if not self._etherscan_key:
            return DepositVerification(False, "Etherscan API Key not configured")
        try:
            response = self._client.get(
                self._etherscan_url,
                params={
                    "module": "account",
                    "action": "tokentx",
                    "contractaddress": ERC20_USDT_CONTRACT,
                    "txhash": tx_hash,
                    "apikey": self._etherscan_key,
                },
            )
            response.raise_for_status()
            data = response.json() or {}
        except httpx.HTTPError as exc:
            logger.warning("Etherscan lookup failed for %s: %s", tx_hash, exc)
            raise UpstreamUnavailableError("Etherscan", str(exc)) from exc
        except ValueError:
            return DepositVerification(False, "Unreadable response from Etherscan API")

        results = data.get("result")
        if data.get("status") != "1" or not isinstance(results, list) or not results:
            return DepositVerification(
                False, "Transaction not found or invalid on Etherscan"
            )
        tx = results[0]
        recipient = tx.get("to") or ""
        if recipient.lower() != self._erc20_address.lower():
            return DepositVerification(
                False,
                f"Recipient mismatch. Expected {self._erc20_address}, got {recipient}",
            )
        return _check_amount(tx.get("value"), expected, tx.get("from"))


def _check_amount(
    raw_amount: Optional[str], expected: Decimal, sender: Optional[str]
) -> DepositVerification:
    try:
        actual = Decimal(str(raw_amount)) / USDT_DECIMALS
    except (InvalidOperation, TypeError):
        return DepositVerification(False, f"Unreadable amount: {raw_amount}")
    if abs(actual - expected) > AMOUNT_TOLERANCE:
        return DepositVerification(
            False, f"Amount mismatch. Expected {expected}, got {actual}"
        )
    return DepositVerification(True, None, amount=actual, sender=sender)
