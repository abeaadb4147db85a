from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from spam_detector.config import settings
from spam_detector.services.rpc import DataProvider
from spam_detector.services.storage import JsonStorage
from spam_detector.utils.errors import ConfigurationError

logger = logging.getLogger("honeypot")

WEI_PER_ETHER = 10**18


def to_wei(amount: str) -> int:
    return int(Decimal(amount) * WEI_PER_ETHER)


def from_wei(amount: int) -> str:
    return str(Decimal(amount) / WEI_PER_ETHER)


# chain id -> native balance that marks a well-off account
HIGH_BALANCE_BY_CHAIN_ID = {
    1: to_wei("1.5"),
    10: to_wei("1.5"),  # ETH
    56: to_wei("6"),
    137: to_wei("2000"),
    250: to_wei("4600"),
    42161: to_wei("1.5"),  # ETH
    43114: to_wei("118"),
}

# 0 is the fallback for chains without a dedicated threshold
CEX_NONCE_BY_CHAIN_ID = {
    0: 400_000,
    1: 50_000,
}

ENS_CHAIN_ID = 1


class HoneyPotChecker:
    """Tells whether an address is a honeypot.

    A honeypot is an account with a good reputation in web3 (vitalik.eth, an
    exchange hot wallet, ...) that spammers airdrop tokens to so the token
    looks held by reputable owners. The decision uses these indicators:

    1. Hardcoded addresses
    2. Very high native balance
    3. High native balance together with an ENS name
    4. Exchange-like nonce
    """

    VERY_HIGH_MULTIPLIER = 10

    def __init__(
        self,
        honeypots: set[str] | None = None,
        chain_id: int | None = None,
        high_balance_by_chain_id: dict[int, int] | None = None,
        cex_nonce_by_chain_id: dict[int, int] | None = None,
    ):
        self._honeypots = {a.lower() for a in honeypots or ()}
        self._chain_id = chain_id if chain_id is not None else settings.chain_id
        self._high_balance_by_chain_id = high_balance_by_chain_id or HIGH_BALANCE_BY_CHAIN_ID
        self._cex_nonce_by_chain_id = cex_nonce_by_chain_id or CEX_NONCE_BY_CHAIN_ID

    @property
    def honeypot_count(self) -> int:
        return len(self._honeypots)

    async def load(self, storage: JsonStorage[list[str]]) -> None:
        """Merge the hardcoded honeypot list kept on disk."""
        stored = await storage.read()
        if stored:
            self._honeypots.update(a.lower() for a in stored)
        logger.info(f"Honeypot list loaded: {len(self._honeypots)} addresses")

    async def test_address(
        self, address: str, provider: DataProvider, block_number: int | None = None
    ) -> dict[str, Any]:
        address = address.lower()
        metadata: dict[str, Any] = {
            "hardcoded_account": {"detected": address in self._honeypots},
        }

        if metadata["hardcoded_account"]["detected"]:
            return {"is_honeypot": True, "metadata": metadata}

        high_balance = self._high_balance_by_chain_id.get(self._chain_id)
        if high_balance is None:
            raise ConfigurationError(f"Network is not supported yet: {self._chain_id}")

        balance = await provider.get_balance(address, block_number)
        metadata["high_balance"] = {
            "detected": balance > high_balance,
            "balance": from_wei(balance),
        }
        metadata["very_high_balance"] = {
            "detected": balance > high_balance * self.VERY_HIGH_MULTIPLIER,
            "balance": from_wei(balance),
        }

        nonce = await provider.get_transaction_count(address)
        cex_nonce = self._cex_nonce_by_chain_id.get(
            self._chain_id, self._cex_nonce_by_chain_id[0]
        )
        metadata["cex"] = {"detected": nonce >= cex_nonce, "nonce": nonce}

        # ENS names live on mainnet only
        name = None
        if self._chain_id == ENS_CHAIN_ID:
            name = await provider.lookup_name(address)
        metadata["ens_registered"] = {"detected": bool(name), "name": name}

        is_honeypot = (
            metadata["cex"]["detected"]
            or metadata["very_high_balance"]["detected"]
            or (metadata["high_balance"]["detected"] and metadata["ens_registered"]["detected"])
        )
        return {"is_honeypot": is_honeypot, "metadata": metadata}


honeypot_checker = HoneyPotChecker()
