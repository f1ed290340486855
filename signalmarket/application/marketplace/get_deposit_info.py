"""
Use case: Tell users where to send deposits.

Output: list[DepositChannel], one per network with a configured wallet.
Side effects: None.
"""

from signalmarket.application.marketplace.dtos import DepositChannel

# Block confirmations an admin waits for before approving a deposit.
REQUIRED_CONFIRMATIONS = {"TRC20": 1, "ERC20": 12}


class GetDepositInfoUseCase:
    """Lists the platform's deposit wallets."""

    def __init__(self, wallet_addresses: dict[str, str], currency: str) -> None:
        """Initialize the use case.

        Args:
            wallet_addresses: Network name to receiving address. Networks
                with an empty address are not offered.
            currency: Token users are expected to send.
        """
        self._wallet_addresses = wallet_addresses
        self._currency = currency

    def execute(self) -> list[DepositChannel]:
        return [
            DepositChannel(
                network=network,
                address=address,
                currency=self._currency,
                confirmations=REQUIRED_CONFIRMATIONS.get(network, 1),
            )
            for network, address in self._wallet_addresses.items()
            if address
        ]
