"""
DynamoDB model for per-block handshake state.

Items carry a TTL attribute so DynamoDB removes abandoned handshake records
on its own. DynamoDB deletes expired items lazily (often hours late), so
reads also treat an item whose TTL has passed as absent.
"""

import logging
import math
import os
from datetime import UTC, datetime, timedelta
from typing import Any

from pynamodb.attributes import JSONAttribute, TTLAttribute, UnicodeAttribute
from pynamodb.exceptions import DoesNotExist
from pynamodb.models import Model

logger = logging.getLogger(__name__)


class BlockStateItem(Model):
    """One state value of one block instance."""

    class Meta:  # type: ignore[misc]
        table_name = os.getenv("AWS_DB_PREFIX", "demo_snsblock") + "_block_state"
        read_capacity_units = 2
        write_capacity_units = 1
        region = os.getenv("AWS_DEFAULT_REGION", "us-west-1")
        host = os.getenv("AWS_DB_HOST", None)

    block_id = UnicodeAttribute(hash_key=True)
    key = UnicodeAttribute(range_key=True)
    value = JSONAttribute(null=True)
    expires_at = TTLAttribute(null=True)


def expiry_after(ttl_seconds: int, now: datetime | None = None) -> datetime:
    """Expiry for a TTL, rounded up to the whole second TTLAttribute stores."""
    expires_at = (now or datetime.now(UTC)) + timedelta(seconds=ttl_seconds)
    return datetime.fromtimestamp(math.ceil(expires_at.timestamp()), UTC)


class DynamoDbStateStore:
    """StateStore backed by the ``<prefix>_block_state`` DynamoDB table."""

    def __init__(self, block_id: str, create_table: bool = True) -> None:
        self.block_id = block_id
        if create_table and not BlockStateItem.exists():
            BlockStateItem.create_table(wait=True)
            BlockStateItem.update_ttl(ignore_update_ttl_errors=True)

    def get(self, key: str) -> Any | None:
        try:
            item = BlockStateItem.get(self.block_id, key, consistent_read=True)
        except DoesNotExist:
            return None
        if item.expires_at is not None and item.expires_at < datetime.now(UTC):
            logger.debug(f"Ignoring expired state {key} for block {self.block_id}")
            return None
        return item.value

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        expires_at = None
        if ttl_seconds is not None:
            expires_at = expiry_after(ttl_seconds)
        BlockStateItem(
            self.block_id,
            key,
            value=value,
            expires_at=expires_at,
        ).save()

    def delete(self, *keys: str) -> None:
        for key in keys:
            BlockStateItem(self.block_id, key).delete()
