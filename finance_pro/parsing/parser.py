"""
Structured Parser for model replies.

The model is asked to start every reply with a fenced JSON block followed
by prose for the human. This module turns that semi-structured text into
an ExtractionResult.

DESIGN DECISION: Parsing is a set of pure functions with explicit error
types (NoBlockFoundError, MalformedJsonError, SchemaMismatchError).
parse() applies the product policy on top of them:

- no block        -> the whole reply is prose (questions, summaries)
- malformed JSON  -> clarification request, nothing recorded
- schema mismatch -> clarification request, nothing recorded
- valid block     -> candidate transaction + reply without the block

Only the FIRST fenced block is ever used. Later blocks stay in the reply.
"""

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from finance_pro.config.prompts import CLARIFICATION_MESSAGE
from finance_pro.models.transaction import (
    ExtractionResult,
    ExtractionStatus,
    Transaction,
)


# ```json ... ``` with any whitespace around the payload
FENCED_JSON_PATTERN = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL)

REQUIRED_KEYS = ("valor", "categoria", "descricao", "tipo")
TIMESTAMP_KEY = "timestamp"


class ParseError(Exception):
    """Base exception for model reply parsing."""
    pass


class NoBlockFoundError(ParseError):
    """The reply has no fenced JSON block."""
    pass


class MalformedJsonError(ParseError):
    """A fenced block exists but its contents are not valid JSON."""

    def __init__(self, message: str, block: "FencedBlock"):
        self.block = block
        super().__init__(message)


class SchemaMismatchError(ParseError):
    """Valid JSON that does not describe an acceptable transaction."""

    def __init__(self, message: str, block: "FencedBlock"):
        self.block = block
        super().__init__(message)


@dataclass(frozen=True)
class FencedBlock:
    """Location and payload of the first fenced JSON block in a reply."""
    start: int
    end: int
    body: str

    def segment(self, raw_text: str) -> str:
        """The exact matched substring, fences included."""
        return raw_text[self.start:self.end]


def find_fenced_block(raw_text: str) -> FencedBlock:
    """
    Locate the first ```json fenced block.

    Raises:
        NoBlockFoundError: if the reply contains no such block
    """
    match = FENCED_JSON_PATTERN.search(raw_text or "")
    if match is None:
        raise NoBlockFoundError("No fenced JSON block in model reply")
    return FencedBlock(start=match.start(), end=match.end(), body=match.group(1))


def remove_block(raw_text: str, block: FencedBlock) -> str:
    """Cut exactly the given block out of the reply and trim the rest."""
    return (raw_text[:block.start] + raw_text[block.end:]).strip()


def _load_object(block: FencedBlock) -> dict[str, Any]:
    try:
        payload = json.loads(block.body, parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise MalformedJsonError(f"Invalid JSON in fenced block: {e}", block) from e

    if not isinstance(payload, dict):
        raise SchemaMismatchError(
            f"Fenced block holds {type(payload).__name__}, expected an object",
            block,
        )
    return payload


def _build_transaction(
    payload: dict[str, Any],
    block: FencedBlock,
    now: datetime,
) -> Transaction:
    missing = [key for key in REQUIRED_KEYS if key not in payload]
    if missing:
        raise SchemaMismatchError(f"Missing keys: {', '.join(missing)}", block)

    fields = {key: payload[key] for key in REQUIRED_KEYS}
    # A missing timestamp means "now"; a present but invalid one is rejected.
    if TIMESTAMP_KEY in payload:
        fields[TIMESTAMP_KEY] = payload[TIMESTAMP_KEY]
    else:
        fields[TIMESTAMP_KEY] = now.isoformat()

    try:
        # id is never taken from the model
        return Transaction.model_validate(fields)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise SchemaMismatchError(f"Invalid transaction: {problems}", block) from e


def parse_candidate(
    raw_text: str,
    now: Optional[datetime] = None,
) -> tuple[Transaction, str]:
    """
    Strict parse: first fenced block -> (transaction, reply without block).

    Raises:
        NoBlockFoundError, MalformedJsonError, SchemaMismatchError
    """
    block = find_fenced_block(raw_text)
    payload = _load_object(block)
    transaction = _build_transaction(
        payload,
        block,
        now or datetime.now(timezone.utc),
    )
    return transaction, remove_block(raw_text, block)


def parse(
    raw_text: str,
    now: Optional[datetime] = None,
    clarification_message: str = CLARIFICATION_MESSAGE,
) -> ExtractionResult:
    """
    Turn a raw model reply into an ExtractionResult.

    Never raises for bad model output; the outcome is in result.status.
    """
    raw_text = raw_text or ""

    try:
        transaction, reply = parse_candidate(raw_text, now=now)
    except NoBlockFoundError:
        return ExtractionResult(
            reply_text=raw_text,
            status=ExtractionStatus.NO_BLOCK_FOUND,
        )
    except MalformedJsonError as e:
        return ExtractionResult(
            reply_text=clarification_message,
            status=ExtractionStatus.MALFORMED_JSON,
            detail=str(e),
        )
    except SchemaMismatchError as e:
        return ExtractionResult(
            reply_text=clarification_message,
            status=ExtractionStatus.SCHEMA_MISMATCH,
            detail=str(e),
        )

    return ExtractionResult(
        reply_text=reply,
        candidate=transaction,
        status=ExtractionStatus.PARSED,
    )
