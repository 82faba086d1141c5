# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Transaction Logger

Single responsibility: Log and retrieve plugin operations (append-only JSONL)
"""

import json
import logging
import uuid
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, List, Optional

from plugman.models.plugin_models import (
    TransactionOperation,
    TransactionRecord,
    TransactionStatus,
)

logger = logging.getLogger(__name__)


class TransactionLogger:
    """Manages transaction logging to append-only JSONL file"""

    def __init__(self, log_file: Path):
        """
        Initialize transaction logger.

        Args:
            log_file: Path to transactions.jsonl
        """
        self.log_file = Path(log_file)

        if not self.log_file.exists():
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            self.log_file.touch()

    def create_transaction(
        self,
        operation: TransactionOperation,
        package_name: str,
        version: Optional[str] = None
    ) -> TransactionRecord:
        """
        Create a new transaction record.

        Args:
            operation: Type of operation
            package_name: Package name ("*" for update-all)
            version: Package version

        Returns:
            New transaction record
        """
        return TransactionRecord(
            id=f"txn-{uuid.uuid4().hex[:12]}",
            operation=operation,
            package_name=package_name,
            version=version,
            status=TransactionStatus.PENDING,
            started_at=datetime.now(UTC)
        )

    def log(self, transaction: TransactionRecord):
        """
        Append transaction to JSONL log file.

        Args:
            transaction: Transaction record to log
        """
        log_line = json.dumps(transaction.to_dict())
        with open(self.log_file, "a") as f:
            f.write(log_line + "\n")

    def start(self, transaction: TransactionRecord):
        transaction.status = TransactionStatus.IN_PROGRESS
        self.log(transaction)

    def complete(self, transaction: TransactionRecord, installed: Optional[List[str]] = None):
        transaction.status = TransactionStatus.COMPLETED
        transaction.completed_at = datetime.now(UTC)
        if installed is not None:
            transaction.packages_installed = list(installed)
        self.log(transaction)

    def fail(self, transaction: TransactionRecord, error: str):
        transaction.status = TransactionStatus.FAILED
        transaction.completed_at = datetime.now(UTC)
        transaction.error = error
        self.log(transaction)
        logger.error(f"Transaction {transaction.id} failed: {error}")

    def list_transactions(self, limit: Optional[int] = 50) -> List[Dict[str, Any]]:
        """
        List recent transactions from log.

        A transaction is logged once per status change; only its latest
        entry is returned.

        Args:
            limit: Maximum number of transactions to return (None for all)

        Returns:
            List of transaction records (most recent first)
        """
        if not self.log_file.exists():
            return []

        latest: Dict[str, Dict[str, Any]] = {}
        with open(self.log_file, "r") as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    txn = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.error(f"Failed to parse transaction log line: {e}")
                    continue
                latest.pop(txn.get("id"), None)
                latest[txn.get("id")] = txn

        transactions = list(latest.values())
        return list(reversed(transactions))[:limit]

    def get_transaction(self, transaction_id: str) -> Optional[Dict[str, Any]]:
        """
        Get the latest state of a transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction record or None if not found
        """
        for txn in self.list_transactions(limit=None):
            if txn.get("id") == transaction_id:
                return txn
        return None
