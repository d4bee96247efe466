"""Where raw claim sets come from before they are aggregated"""

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping, Union

from loguru import logger

CLAIMS_FILE_SUFFIX = "-claims.json"


class ClaimSourceError(Exception):
    """Raised when a transaction's claims cannot be fetched"""

    def __init__(self, transaction_id: str, reason: str) -> None:
        self.transaction_id = transaction_id
        self.reason = reason
        super().__init__(f"[{transaction_id}] {reason}")


class ClaimSource(ABC):
    """Async provider of wire-format claims for a transaction"""

    @abstractmethod
    async def fetch_claims(self, transaction_id: str) -> list[dict[str, Any]]:
        """
        Fetch every claim recorded for a transaction.

        Raises:
            ClaimSourceError: if the transaction is unknown or unreadable
        """


class InMemoryClaimSource(ClaimSource):
    """Claims held in memory, keyed by transaction id (fixtures and tests)"""

    def __init__(self, claims_by_transaction: Mapping[str, list[dict[str, Any]]]) -> None:
        self.claims_by_transaction = dict(claims_by_transaction)

    async def fetch_claims(self, transaction_id: str) -> list[dict[str, Any]]:
        if transaction_id not in self.claims_by_transaction:
            raise ClaimSourceError(transaction_id, "Unknown transaction")
        return list(self.claims_by_transaction[transaction_id])


class JsonFileClaimSource(ClaimSource):
    """
    Claims stored as `<transaction_id>-claims.json` files in one directory.

    Files are read off the event loop.
    """

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)
        self.files_read = 0

    def path_for(self, transaction_id: str) -> Path:
        if not transaction_id or "/" in transaction_id or "\\" in transaction_id or transaction_id.startswith("."):
            raise ClaimSourceError(transaction_id, "Invalid transaction id")
        return self.directory / f"{transaction_id}{CLAIMS_FILE_SUFFIX}"

    def transaction_ids(self) -> list[str]:
        if not self.directory.is_dir():
            return []
        return sorted(
            path.name[: -len(CLAIMS_FILE_SUFFIX)]
            for path in self.directory.glob(f"*{CLAIMS_FILE_SUFFIX}")
        )

    async def fetch_claims(self, transaction_id: str) -> list[dict[str, Any]]:
        path = self.path_for(transaction_id)
        if not path.is_file():
            raise ClaimSourceError(transaction_id, f"No claims file at {path}")

        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
            claims = json.loads(text)
        except (OSError, ValueError) as exc:
            raise ClaimSourceError(transaction_id, f"Could not read claims file: {exc}") from exc

        if not isinstance(claims, list):
            raise ClaimSourceError(transaction_id, "Claims file must contain an array of claims")

        self.files_read += 1
        logger.debug(
            "Read {count} claims for {transaction} from {path}",
            count=len(claims),
            transaction=transaction_id,
            path=str(path),
        )
        return claims
