"""DynamoDB (PynamoDB) state backend."""

from .block_state import BlockStateItem, DynamoDbStateStore

__all__ = ["BlockStateItem", "DynamoDbStateStore"]
