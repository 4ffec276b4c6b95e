"""Receipt validation and parsing.

This module validates raw receipt events, decodes invoice amounts,
and extracts the referenced content, actor, and comment.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Sequence

import bolt11

from core.constants import DEFAULT_CONTENT_KIND, RECEIPT_EVENT_KIND
from core.logging_config import get_logger
from core.types import ActorProfile, ContentRef, ParsedRecord, Receipt

_LOGGER = get_logger(__name__)

_LIGHTNING_URI_PREFIX = "lightning:"


def decode_invoice_amount(invoice: str) -> int:
    """Decode a BOLT11 invoice amount in whole sats.

    The whole invoice is decoded, so checksum and signature problems
    reject it along with the amount.

    Args:
        invoice: BOLT11 payment request, optionally ``lightning:`` prefixed.

    Returns:
        Amount in sats, floored from millisats; zero when absent or undecodable.
    """
    normalized = invoice.strip()
    if normalized.lower().startswith(_LIGHTNING_URI_PREFIX):
        normalized = normalized[len(_LIGHTNING_URI_PREFIX):]
    # the decoder raises from bech32, bitstring and signature recovery alike
    try:
        decoded = bolt11.decode(normalized)
    except Exception as error:
        _LOGGER.debug("invoice_undecodable", error=str(error))
        return 0
    if decoded.amount_msat is None:
        return 0
    return int(decoded.amount_msat) // 1000


def receipt_from_event(event: Mapping[str, Any]) -> Receipt | None:
    """Validate a raw event and build a receipt.

    Args:
        event: Raw event mapping from the query source.

    Returns:
        Receipt, or None when the event is not a well-formed paid receipt.
    """
    if event.get("kind") != RECEIPT_EVENT_KIND:
        return None
    receipt_id = event.get("id")
    created_at = event.get("created_at")
    if not isinstance(receipt_id, str) or not receipt_id:
        return None
    if isinstance(created_at, bool) or not isinstance(created_at, int):
        return None
    tags = _normalize_tags(event.get("tags"))
    invoice = _first_tag_value(tags, "bolt11")
    if not invoice:
        return None
    amount = decode_invoice_amount(invoice)
    if amount <= 0:
        return None
    return Receipt(
        receipt_id=receipt_id,
        created_at=created_at,
        source_author=str(event.get("pubkey", "")),
        amount=amount,
        raw_tags=tags,
        content=str(event.get("content", "")),
    )


def validate_events(events: Sequence[Mapping[str, Any]]) -> list[Receipt]:
    """Keep well-formed receipts, newest first.

    Args:
        events: Raw events from one page.

    Returns:
        Validated receipts sorted descending by time.
    """
    receipts: list[Receipt] = []
    for event in events:
        receipt = receipt_from_event(event) if isinstance(event, Mapping) else None
        if receipt is None:
            _LOGGER.debug("receipt_dropped", event_id=_event_id(event))
            continue
        receipts.append(receipt)
    receipts.sort(key=lambda receipt: receipt.created_at, reverse=True)
    return receipts


def content_id_of(receipt: Receipt) -> str | None:
    """Return the id of the content a receipt pays for, if any."""
    return _first_tag_value(receipt.raw_tags, "e")


def actor_id_of(receipt: Receipt) -> str:
    """Return the paying actor: the zap request signer, else the receipt author."""
    zap_request = _zap_request(receipt)
    pubkey = zap_request.get("pubkey") if zap_request else None
    if isinstance(pubkey, str) and pubkey:
        return pubkey
    return receipt.source_author


def parse_receipt(receipt: Receipt) -> ParsedRecord:
    """Expand a receipt into a parsed record before enrichment.

    Args:
        receipt: Validated receipt.

    Returns:
        Parsed record with placeholder content and bare actor profile.
    """
    zap_request = _zap_request(receipt)
    comment = zap_request.get("content") if zap_request else None
    target_content = None
    content_id = content_id_of(receipt)
    if content_id:
        target_content = ContentRef(
            content_id=content_id,
            kind=DEFAULT_CONTENT_KIND,
            author=_first_tag_value(receipt.raw_tags, "p") or "",
        )
    return ParsedRecord(
        receipt=receipt,
        amount=receipt.amount,
        actor=ActorProfile(actor_id=actor_id_of(receipt)),
        target_content=target_content,
        comment=comment if isinstance(comment, str) and comment else None,
    )


def _zap_request(receipt: Receipt) -> dict[str, Any] | None:
    """Decode the embedded zap request from the description tag."""
    description = _first_tag_value(receipt.raw_tags, "description")
    if not description:
        return None
    try:
        payload = json.loads(description)
    except json.JSONDecodeError:
        _LOGGER.debug("zap_request_undecodable", receipt_id=receipt.receipt_id)
        return None
    return payload if isinstance(payload, dict) else None


def _normalize_tags(raw_tags: object) -> tuple[tuple[str, ...], ...]:
    if not isinstance(raw_tags, (list, tuple)):
        return ()
    normalized: list[tuple[str, ...]] = []
    for tag in raw_tags:
        if isinstance(tag, (list, tuple)) and tag:
            normalized.append(tuple(str(part) for part in tag))
    return tuple(normalized)


def _first_tag_value(tags: tuple[tuple[str, ...], ...], name: str) -> str | None:
    for tag in tags:
        if len(tag) >= 2 and tag[0] == name and tag[1]:
            return tag[1]
    return None


def _event_id(event: object) -> str | None:
    if isinstance(event, Mapping):
        event_id = event.get("id")
        return event_id if isinstance(event_id, str) else None
    return None
