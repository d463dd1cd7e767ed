"""Process-wide store of novel allele sequences.

Novel alleles are full-length near-exact matches captured while typing a
genome. Only sequences from the winning scheme are kept, deduplicated by
content within each scheme/gene, and exported once all genomes are done.
"""

import hashlib
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from .config import NOVEL_HASH_LENGTH

logger = logging.getLogger(__name__)


def sequence_hash(sequence: str, length: int = NOVEL_HASH_LENGTH) -> str:
    """Compute a SHA-256 hash prefix of the uppercase sequence."""
    return hashlib.sha256(sequence.upper().encode()).hexdigest()[:length]


def novel_allele_id(scheme: str, gene: str, sequence: str) -> str:
    """Deterministic identifier, e.g. "ecoli.adk~3f2a9c0d1b7e"."""
    return f"{scheme}.{gene}~{sequence_hash(sequence)}"


@dataclass(frozen=True)
class NovelAllele:
    identifier: str
    source: str
    sequence: str


class NovelAlleleStore:
    """Append-only, thread-safe collection of novel alleles."""

    def __init__(self):
        self._lock = threading.Lock()
        self._alleles: dict[tuple[str, str, str], NovelAllele] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._alleles)

    def record(self, label: str, scheme: str, gene: str, sequence: str) -> bool:
        """Add a sequence; returns False if the same content is already stored."""
        seq = sequence.upper()
        key = (scheme, gene, sequence_hash(seq))
        with self._lock:
            if key in self._alleles:
                logger.debug("Novel %s.%s from %s already recorded", scheme, gene, label)
                return False
            self._alleles[key] = NovelAllele(
                identifier=novel_allele_id(scheme, gene, seq),
                source=label,
                sequence=seq,
            )
        logger.info("Found novel %s allele %s in %s", scheme, gene, label)
        return True

    def promote(self, label: str, scheme: str, sequences: dict[str, str]) -> int:
        """Record every captured gene sequence of the winning scheme."""
        return sum(
            1 for gene, seq in sequences.items()
            if self.record(label, scheme, gene, seq)
        )

    def export(self) -> Iterator[NovelAllele]:
        """Yield stored alleles in insertion order."""
        with self._lock:
            alleles = list(self._alleles.values())
        yield from alleles


def write_novel_fasta(store: NovelAlleleStore, path: Path) -> int:
    """Write the store as FASTA. Nothing is written when the store is empty.

    Returns the number of records written.
    """
    records = [
        SeqRecord(Seq(a.sequence), id=a.identifier, description=a.source)
        for a in store.export()
    ]
    if not records:
        logger.info("No novel alleles found, not writing %s", path)
        return 0

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as fh:
        SeqIO.write(records, fh, "fasta")
    logger.info("Wrote %d novel alleles to %s", len(records), path)
    return len(records)
