"""Cargo Hold identity module -- snowflake keys and prefixed external ids."""

from cargo_hold.identity.snowflake import (
    EPOCH,
    LINK_KEY_LENGTH,
    SnowflakeGenerator,
    SnowflakeParts,
    decompose,
    encode_key,
    generate_prefixed_id,
    random_suffix,
)

__all__ = [
    "EPOCH",
    "LINK_KEY_LENGTH",
    "SnowflakeGenerator",
    "SnowflakeParts",
    "decompose",
    "encode_key",
    "generate_prefixed_id",
    "random_suffix",
]
