"""
Trade record schema published to the destination topic.

Contains the Pydantic model for one normalized trade capture. The JSON
encoding has exactly three keys: token_address, price_in_sol, block_time.
"""

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_TOKEN_ADDRESS = "UNKNOWN"


class TradeRecord(BaseModel):
    """Schema for a normalized trade capture.

    Every field is always populated; defaults are applied by the
    normalizer before the record is built. Instances are immutable.

    Attributes:
        token_address: Token identifier, "UNKNOWN" when the source had none
        price_in_sol: Trade price in SOL, 0.0 when missing or not numeric
        block_time: Block timestamp as a string (ISO-8601 when defaulted)

    Example:
        >>> trade = TradeRecord(
        ...     token_address="So11111111111111111111111111111111111111112",
        ...     price_in_sol=1.5,
        ...     block_time="2024-01-01T00:00:00Z",
        ... )
        >>> trade.to_message()
        b'{"token_address":"So11111111111111111111111111111111111111112","price_in_sol":1.5,"block_time":"2024-01-01T00:00:00Z"}'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    token_address: str = Field(..., description="Token identifier")
    price_in_sol: float = Field(..., description="Trade price in SOL", allow_inf_nan=False)
    block_time: str = Field(..., description="Block timestamp")

    def to_message(self) -> bytes:
        """Serialize as the UTF-8 JSON message value."""
        return self.model_dump_json().encode("utf-8")

    def __str__(self) -> str:
        return (
            f"token_address={self.token_address} "
            f"price_in_sol={self.price_in_sol} "
            f"block_time={self.block_time}"
        )
