"""
sovcoin/ledger/journal.py

Settlement Journal — signed, hash-chained record of committed transitions.

emit_batch() MUST, in this exact order:
  1. Acquire lock
  2. For each event, build JournalEntry.create(event_type, signer_public_key,
     sequence, payload, prev) chained onto the previous one in the batch
  3. Sign each entry
  4. Assert chain invariants  — causal_hash, sequence
  5. Append the whole batch   — one write; memory-only journals extend a list
  6. Advance internal state   — only after confirmed write
  7. Return the signed entries

emit() is a batch of one.

Chain rule:
    entry[0].causal_hash == GENESIS_HASH
    entry[n].causal_hash == SHA-256(JCS(entry[n-1].to_chain_dict()))

Payload integers are written as decimal strings. JCS renders numbers as
IEEE doubles, and u64 amounts do not survive that above 2**53.

The SettlementHost never calls emit() directly from a transition. Events
are buffered inside host.transaction() and appended as one batch on
commit. A rolled-back transition leaves no journal trace, and a failed
append rolls the transition back.
"""

import json
import logging
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from sovcoin.core.canonical import canonical_hash, canonicalize
from sovcoin.core.crypto import JournalSigner
from sovcoin.core.exceptions import LedgerError
from sovcoin.core.time import journal_timestamp

logger = logging.getLogger(__name__)

GENESIS_HASH    = "0" * 64
JOURNAL_VERSION = "1.0"


class EventType:
    FACTORY_INITIALIZED     = "factory_initialized"
    BOND_MAPPING_REGISTERED = "bond_mapping_registered"
    PROTOCOL_FEE_UPDATED    = "protocol_fee_updated"
    SOVEREIGN_COIN_CREATED  = "sovereign_coin_created"
    MINT_QUOTED             = "mint_quoted"
    SOVEREIGN_COIN_MINTED   = "sovereign_coin_minted"
    REDEEM_PLANNED          = "redeem_planned"
    SOVEREIGN_COIN_REDEEMED = "sovereign_coin_redeemed"
    PROTOCOL_WITHDRAWAL     = "protocol_withdrawal"

    @classmethod
    def all(cls) -> frozenset:
        return frozenset(
            v for k, v in vars(cls).items()
            if k.isupper() and isinstance(v, str)
        )


def encode_payload(value: Any) -> Any:
    """Recursively stringify ints and unwrap enums so the payload is JCS-safe."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, Enum):
        return encode_payload(value.value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, dict):
        return {str(k): encode_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_payload(v) for v in value]
    return value


# ─────────────────────────────────────────────────────────────
# Entry
# ─────────────────────────────────────────────────────────────

@dataclass
class JournalEntry:
    journal_version:   str
    entry_id:          str
    event_type:        str
    signer_public_key: str
    sequence:          int
    timestamp:         str
    causal_hash:       str
    payload:           Dict[str, Any] = field(default_factory=dict)
    signature:         Optional[str] = None

    @classmethod
    def create(
        cls,
        event_type:        str,
        signer_public_key: str,
        sequence:          int,
        payload:           Dict[str, Any],
        prev:              Optional["JournalEntry"] = None,
    ) -> "JournalEntry":
        if event_type not in EventType.all():
            raise LedgerError(
                f"Invalid event_type '{event_type}'",
                details={"valid": ",".join(sorted(EventType.all()))},
            )
        if not isinstance(payload, dict):
            raise LedgerError(
                "payload must be dict",
                details={"type": type(payload).__name__},
            )
        return cls(
            journal_version=   JOURNAL_VERSION,
            entry_id=          f"evt-{uuid.uuid4()}",
            event_type=        event_type,
            signer_public_key= signer_public_key,
            sequence=          sequence,
            timestamp=         journal_timestamp(),
            causal_hash=       cls.causal_hash_of(prev),
            payload=           encode_payload(payload),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        return cls(
            journal_version=   data["journal_version"],
            entry_id=          data["entry_id"],
            event_type=        data["event_type"],
            signer_public_key= data["signer_public_key"],
            sequence=          data["sequence"],
            timestamp=         data["timestamp"],
            causal_hash=       data["causal_hash"],
            payload=           data.get("payload", {}),
            signature=         data.get("signature"),
        )

    # ── Contracts ─────────────────────────────────────────────

    def to_signing_dict(self) -> Dict[str, Any]:
        """The exact dict signed by Ed25519: every field except signature."""
        return {
            "causal_hash":       self.causal_hash,
            "entry_id":          self.entry_id,
            "event_type":        self.event_type,
            "journal_version":   self.journal_version,
            "payload":           self.payload,
            "sequence":          self.sequence,
            "signer_public_key": self.signer_public_key,
            "timestamp":         self.timestamp,
        }

    def to_chain_dict(self) -> Dict[str, Any]:
        """The exact dict hashed into the next entry's causal_hash."""
        return self.to_signing_dict()

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_signing_dict().copy()
        d["signature"] = self.signature
        return d

    @staticmethod
    def causal_hash_of(prev: Optional["JournalEntry"]) -> str:
        if prev is None:
            return GENESIS_HASH
        return canonical_hash(prev.to_chain_dict())

    # ── Signing / verification ────────────────────────────────

    def sign(self, signer: JournalSigner) -> "JournalEntry":
        self.signature = signer.sign(canonicalize(self.to_signing_dict()))
        return self

    def verify_signature(self, override_public_key_hex: Optional[str] = None) -> bool:
        if not self.signature:
            return False
        pubkey_hex = override_public_key_hex or self.signer_public_key
        return JournalSigner.verify_detached(
            canonicalize(self.to_signing_dict()), self.signature, pubkey_hex
        )

    def verify_chain(self, prev: Optional["JournalEntry"]) -> bool:
        return self.causal_hash == JournalEntry.causal_hash_of(prev)


# ─────────────────────────────────────────────────────────────
# Verification report
# ─────────────────────────────────────────────────────────────

@dataclass
class JournalViolation:
    sequence:  int
    kind:      str
    detail:    str

    def to_dict(self) -> Dict[str, Any]:
        return {"sequence": self.sequence, "kind": self.kind, "detail": self.detail}


@dataclass
class JournalReport:
    entries:    int
    violations: List[JournalViolation] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.violations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid":      self.valid,
            "entries":    self.entries,
            "violations": [v.to_dict() for v in self.violations],
        }


def verify_entries(entries: Iterable[JournalEntry]) -> JournalReport:
    """
    Re-walk a chain of entries from genesis.

    Checks for each entry: sequence == position, causal_hash matches the
    predecessor, signature valid against the embedded public key.
    """
    violations: List[JournalViolation] = []
    prev: Optional[JournalEntry] = None
    count = 0
    for position, entry in enumerate(entries):
        count += 1
        if entry.sequence != position:
            violations.append(JournalViolation(
                position, "sequence",
                f"expected {position}, got {entry.sequence}",
            ))
        if not entry.verify_chain(prev):
            violations.append(JournalViolation(
                position, "causal_hash",
                f"expected ...{JournalEntry.causal_hash_of(prev)[-12:]}, "
                f"got ...{entry.causal_hash[-12:]}",
            ))
        if not entry.verify_signature():
            violations.append(JournalViolation(
                position, "signature", "signature invalid or missing",
            ))
        prev = entry
    return JournalReport(entries=count, violations=violations)


def load_entries(path: Union[str, Path]) -> List[JournalEntry]:
    """
    Read a JSONL journal file.

    Raises LedgerError on a missing file or a malformed line.
    """
    path = Path(path)
    if not path.exists():
        raise LedgerError("Journal file not found", details={"path": str(path)})

    entries: List[JournalEntry] = []
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(JournalEntry.from_dict(json.loads(line)))
            except (ValueError, KeyError, TypeError) as exc:
                raise LedgerError(
                    "Malformed journal line",
                    details={"path": str(path), "line": lineno, "error": str(exc)},
                ) from exc
    return entries


# ─────────────────────────────────────────────────────────────
# Journal
# ─────────────────────────────────────────────────────────────

class SettlementJournal:
    """
    Append-only signed journal.

    With a path, entries are appended to ``<path>`` as JSONL and chain
    state is restored from the file on construction. Without one, entries
    are kept in memory only.

    Thread-safe via internal lock (single-process only).
    """

    def __init__(
        self,
        signer: Optional[JournalSigner] = None,
        path:   Optional[Union[str, Path]] = None,
    ) -> None:
        self.signer = signer or JournalSigner.generate()
        self.path   = Path(path) if path is not None else None

        self._lock:       threading.Lock         = threading.Lock()
        self._sequence:   int                    = 0
        self._last_entry: Optional[JournalEntry] = None
        self._memory:     List[JournalEntry]     = []

        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._restore_state()

    # ── Public API ────────────────────────────────────────────

    def emit(self, event_type: str, payload: Dict[str, Any]) -> JournalEntry:
        return self.emit_batch([(event_type, payload)])[0]

    def emit_batch(
        self, events: Iterable[Tuple[str, Dict[str, Any]]]
    ) -> List[JournalEntry]:
        """
        Append several events as one unit.

        Every entry is built, signed and chain-checked before anything is
        written. The batch goes to disk in a single write; on failure the
        journal's sequence and head are left untouched.
        """
        with self._lock:
            batch: List[JournalEntry] = []
            sequence, prev = self._sequence, self._last_entry
            for event_type, payload in events:
                entry = JournalEntry.create(
                    event_type=        event_type,
                    signer_public_key= self.signer.public_key_hex,
                    sequence=          sequence,
                    payload=           payload,
                    prev=              prev,
                )
                entry.sign(self.signer)
                self._assert_chain_invariants(entry, sequence, prev)
                batch.append(entry)
                sequence, prev = sequence + 1, entry

            if not batch:
                return batch
            self._append(batch)

            self._sequence   = sequence
            self._last_entry = prev

        for entry in batch:
            logger.debug("journal %s seq=%d", entry.event_type, entry.sequence)
        return batch

    def entries(self) -> List[JournalEntry]:
        if self.path is None:
            return list(self._memory)
        if not self.path.exists():
            return []
        return load_entries(self.path)

    def verify(self) -> JournalReport:
        return verify_entries(self.entries())

    def __len__(self) -> int:
        return self._sequence

    @property
    def last_entry(self) -> Optional[JournalEntry]:
        return self._last_entry

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        if not self.path.exists():
            return
        entries = load_entries(self.path)
        if not entries:
            return
        last = entries[-1]
        self._sequence   = last.sequence + 1
        self._last_entry = last
        logger.info("journal restored from %s at seq=%d", self.path, self._sequence)

    def _assert_chain_invariants(
        self, entry: JournalEntry, sequence: int, prev: Optional[JournalEntry]
    ) -> None:
        if entry.sequence != sequence:
            raise LedgerError(
                "Chain invariant violated: sequence mismatch",
                details={"expected": sequence, "got": entry.sequence},
            )
        if not entry.verify_chain(prev):
            raise LedgerError(
                "Chain invariant violated: causal_hash mismatch",
                details={"got": entry.causal_hash[-12:]},
            )

    def _append(self, batch: List[JournalEntry]) -> None:
        if self.path is None:
            self._memory.extend(batch)
            return
        lines = "".join(json.dumps(entry.to_dict()) + "\n" for entry in batch)
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(lines)
        except OSError as exc:
            raise LedgerError(
                "Journal write failed", details={"path": str(self.path)}
            ) from exc
