"""Surgery orchestrator: classifies, dispatches and collects every account."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections import Counter

from regenesis.core.config import get_settings
from regenesis.core.errors import SurgeryError
from regenesis.core.types import Account, AccountType, SurgeryDataSources
from regenesis.surgery.classifier import classify
from regenesis.surgery.handlers import get_handler

logger = logging.getLogger(__name__)


class SurgeryOrchestrator:
    """Coordinates the account surgery.

    Flow:
    1. CLASSIFY: assign each legacy account its variant
    2. DISPATCH: run the variant's handler, concurrently per batch
    3. COLLECT: keep every non-deleted result
    4. RECONCILE: append genesis accounts the legacy dump never had

    The first fatal error aborts the run; partial output is never returned.
    """

    def __init__(self, data: SurgeryDataSources, batch_size: int | None = None) -> None:
        self._data = data
        self._batch_size = batch_size or get_settings().surgery_batch_size
        self.counts: Counter[AccountType] = Counter()

    async def transform(self, account: Account) -> Account | None:
        """Classify one account and run its handler."""
        try:
            account_type = classify(account, self._data)
            self.counts[account_type] += 1
            result = get_handler(account_type)(account, self._data)
            if inspect.isawaitable(result):
                result = await result
        except SurgeryError as exc:
            exc.address = exc.address or account.address
            logger.error("Surgery failed: %s", exc, extra={"address": account.address})
            raise
        return result

    async def run(self) -> list[Account]:
        """Transform every account and return the survivors sorted by address."""
        start = time.monotonic()
        accounts = list(self._data.dump.accounts.values())
        output: list[Account] = []

        for offset in range(0, len(accounts), self._batch_size):
            batch = accounts[offset:offset + self._batch_size]
            results = await self._run_batch(batch)
            output.extend(result for result in results if result is not None)
            logger.debug("Processed %d/%d accounts", offset + len(batch), len(accounts))

        output.extend(self._genesis_only_accounts(output))
        output.sort(key=lambda account: account.address)

        for account_type, count in sorted(self.counts.items(), key=lambda item: item[0].value):
            logger.info("%s: %d", account_type.value, count, extra={"account_type": account_type.value})
        logger.info(
            "Surgery complete: %d in, %d out", len(accounts), len(output),
            extra={"accounts": len(output), "duration_ms": round((time.monotonic() - start) * 1000)},
        )
        return output

    async def _run_batch(self, batch: list[Account]) -> list[Account | None]:
        """Transform one batch concurrently; the first failure cancels the rest."""
        tasks = [asyncio.create_task(self.transform(account)) for account in batch]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def _genesis_only_accounts(self, output: list[Account]) -> list[Account]:
        """Genesis accounts absent from the legacy dump are new and kept as-is."""
        produced = {account.address for account in output}
        added: list[Account] = []
        for address, account in self._data.genesis.accounts.items():
            if address in self._data.dump.accounts:
                continue
            if address in produced:
                logger.warning("Genesis account collides with a migrated account, keeping the migrated one",
                               extra={"address": address})
                continue
            added.append(account)
        logger.info("Added %d genesis-only accounts", len(added), extra={"accounts": len(added)})
        return added
