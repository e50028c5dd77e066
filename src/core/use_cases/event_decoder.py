"""
Decoding of raw `eth_getLogs` entries against an event ABI.
"""
from typing import Any, Dict, Optional, Union

from eth_abi import decode as abi_decode
from eth_utils import decode_hex, keccak

from src.core.abi import DEPOSITED_EVENT_ABI
from src.core.entities.deposit import DepositEvent
from src.core.errors import LogDecodeError

HexLike = Union[str, bytes]

# topics[0] is the event signature; the sender is the second indexed field
SENDER_TOPIC_INDEX = 2


def _to_bytes(value: HexLike) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return decode_hex(value)


def event_signature(event_abi: dict) -> str:
    types = ",".join(i["type"] for i in event_abi.get("inputs", []))
    return f"{event_abi['name']}({types})"


def event_topic(event_abi: dict) -> str:
    return "0x" + keccak(text=event_signature(event_abi)).hex()


def address_from_topic(topic: Optional[HexLike]) -> Optional[str]:
    """Low 20 bytes of a 32-byte topic slot as a lower-cased 0x address."""
    if not topic:
        return None
    raw = _to_bytes(topic)
    if len(raw) != 32:
        return None
    return "0x" + raw[-20:].hex()


def decode_event_log(raw_log: Dict[str, Any], event_abi: dict) -> Dict[str, Any]:
    """
    Decode a raw log into a {name: value} mapping.

    Indexed inputs come from topics[1:], the rest from the ABI-encoded data
    field. An indexed input whose topic is absent decodes to None.
    """
    topics = list(raw_log.get("topics") or [])
    try:
        is_match = not topics or _to_bytes(topics[0]) == _to_bytes(event_topic(event_abi))
    except (ValueError, TypeError) as e:
        raise LogDecodeError(f"Malformed topic0 in {event_abi['name']} log: {e}") from e
    if not is_match:
        raise LogDecodeError(f"log is not a {event_abi['name']} event")

    inputs = event_abi.get("inputs", [])
    indexed = [i for i in inputs if i.get("indexed")]
    unindexed = [i for i in inputs if not i.get("indexed")]

    args: Dict[str, Any] = {}
    try:
        for position, item in enumerate(indexed, start=1):
            if position < len(topics) and topics[position]:
                (value,) = abi_decode([item["type"]], _to_bytes(topics[position]))
            else:
                value = None
            args[item["name"]] = value

        values = abi_decode([i["type"] for i in unindexed], _to_bytes(raw_log.get("data") or "0x"))
    except Exception as e:
        raise LogDecodeError(f"Failed to decode {event_abi['name']} log: {e}") from e

    for item, value in zip(unindexed, values):
        args[item["name"]] = value
    return args


def decode_deposit_log(raw_log: Dict[str, Any], event_abi: dict = DEPOSITED_EVENT_ABI) -> DepositEvent:
    args = decode_event_log(raw_log, event_abi)
    if args.get("depositId") is None:
        raise LogDecodeError("Deposited log has no depositId topic")

    topics = list(raw_log.get("topics") or [])
    sender_topic = topics[SENDER_TOPIC_INDEX] if len(topics) > SENDER_TOPIC_INDEX else None
    try:
        sender = address_from_topic(sender_topic)
    except (ValueError, TypeError) as e:
        raise LogDecodeError(f"Malformed sender topic: {e}") from e
    salt = args.get("recipientSaltHash")

    return DepositEvent(
        deposit_id=args["depositId"],
        sender=sender,
        recipient_salt_hash="0x" + salt.hex() if salt is not None else None,
        token_index=args["tokenIndex"],
        amount=args["amount"],
        deposited_at=args["depositedAt"],
    )
