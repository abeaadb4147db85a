from __future__ import annotations

import logging

from spam_detector.analyzer.base import AnalyzerModule, ModuleResult, ScanParams, ScanReturn
from spam_detector.config import settings
from spam_detector.services.rpc import call_function
from spam_detector.services.tokens import TokenProvider, TokenRecord, token_provider
from spam_detector.utils.normalizer import normalized_token_hash, token_hash

logger = logging.getLogger("module.token_impersonation")

TOKEN_IMPERSONATION_MODULE_KEY = "TokenImpersonation"


class TokenImpersonationModule(AnalyzerModule):
    """Detects tokens copying the name and symbol of a reputable token.

    Names and symbols are compared after confusable folding, so homoglyphs,
    invisible padding and case tricks do not hide a copy. A reference token
    listing the scanned address among its deployments is the original and
    never counts as impersonated.
    """

    key = TOKEN_IMPERSONATION_MODULE_KEY

    def __init__(self, provider: TokenProvider | None = None):
        self._token_provider = provider or token_provider
        self._tokens: list[TokenRecord] | None = None
        self._index: dict[str, list[TokenRecord]] = {}

    async def _get_index(self) -> dict[str, list[TokenRecord]]:
        tokens = await self._token_provider.get_list()
        if tokens is not self._tokens:
            index: dict[str, list[TokenRecord]] = {}
            for record in tokens:
                key = normalized_token_hash(record.name, record.symbol)
                index.setdefault(key, []).append(record)
            self._tokens = tokens
            self._index = index
        return self._index

    async def _read_metadata(self, params: ScanParams) -> tuple[str, str] | None:
        address = params.token.address
        try:
            name = await params.memo(
                "name",
                lambda: call_function(params.provider, address, "name()", output_types=["string"]),
                ttl=settings.metadata_memo_ttl_ms,
            )
            symbol = await params.memo(
                "symbol",
                lambda: call_function(params.provider, address, "symbol()", output_types=["string"]),
                ttl=settings.metadata_memo_ttl_ms,
            )
        except Exception as e:
            logger.debug(f"Cannot read name and symbol of {address}: {e}")
            return None
        return name, symbol

    async def scan(self, params: ScanParams) -> ScanReturn | None:
        token = params.token
        context = params.context
        context[self.key] = ModuleResult(detected=False)

        metadata = await self._read_metadata(params)
        if metadata is None:
            return None
        name, symbol = metadata
        if not name or not symbol:
            return None

        index = await self._get_index()
        key = normalized_token_hash(name, symbol)

        for record in index.get(key, []):
            deployments = {a.lower() for a in record.deployments.values()}
            if token.address in deployments:
                continue

            logger.info(f"{token.address} impersonates {record.name} ({record.symbol})")
            context[self.key] = ModuleResult(
                detected=True,
                metadata={
                    "name": name,
                    "symbol": symbol,
                    "standard": int(token.standard),
                    "impersonated_token": record.model_dump(),
                    "disguised": token_hash(name, symbol)
                    != token_hash(record.name, record.symbol),
                },
            )
            break

        return None
