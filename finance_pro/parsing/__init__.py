"""Model reply parsing package."""

from finance_pro.parsing.parser import (
    FencedBlock,
    MalformedJsonError,
    NoBlockFoundError,
    ParseError,
    SchemaMismatchError,
    find_fenced_block,
    parse,
    parse_candidate,
    remove_block,
)

__all__ = [
    "FencedBlock",
    "MalformedJsonError",
    "NoBlockFoundError",
    "ParseError",
    "SchemaMismatchError",
    "find_fenced_block",
    "parse",
    "parse_candidate",
    "remove_block",
]
