"""Parse blastn tabular output into allele hits."""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional

from .config import BLAST_FIELDS

logger = logging.getLogger(__name__)

# Subject ids look like "ecoli.adk_3" or "saureus.arcC-12"
SUBJECT_RE = re.compile(r"^(\w+)\.(\w+)[_-](\d+)$")


class Strand(Enum):
    PLUS = "plus"
    MINUS = "minus"


@dataclass(frozen=True)
class Hit:
    """One blastn match of a reference allele against a query contig."""

    scheme: str
    gene: str
    allele: int
    hit_len: int
    aln_len: int
    ident: int
    query_id: str
    query_start: int
    query_end: int
    query_seq: str
    strand: Strand

    @property
    def is_full_length(self) -> bool:
        return self.aln_len == self.hit_len

    @property
    def is_exact(self) -> bool:
        return self.is_full_length and self.ident == self.hit_len

    def coverage(self) -> float:
        """Identical bases as a fraction of the full reference allele length."""
        if self.hit_len <= 0:
            return 0.0
        return self.ident / self.hit_len


def parse_subject_id(subject: str) -> Optional[tuple[str, str, int]]:
    """Split a subject id into (scheme, gene, allele number).

    Returns None if the id does not have the expected shape.
    """
    match = SUBJECT_RE.match(subject)
    if not match:
        return None
    return match.group(1), match.group(2), int(match.group(3))


def parse_hit_line(line: str) -> Optional[Hit]:
    """Parse one tabular blastn line, or return None for anything else."""
    fields = line.rstrip("\r\n").split("\t")
    if len(fields) < len(BLAST_FIELDS):
        return None

    sid, slen, length, nident, qid, qstart, qend, qseq, sstrand = fields[:len(BLAST_FIELDS)]
    subject = parse_subject_id(sid)
    if subject is None:
        return None
    scheme, gene, allele = subject

    try:
        numbers = [int(v) for v in (slen, length, nident, qstart, qend)]
    except ValueError:
        logger.debug("Skipping hit line with non-numeric columns: %s", line.strip())
        return None

    strand = Strand.MINUS if sstrand.strip() == Strand.MINUS.value else Strand.PLUS
    return Hit(
        scheme=scheme,
        gene=gene,
        allele=allele,
        hit_len=numbers[0],
        aln_len=numbers[1],
        ident=numbers[2],
        query_id=qid,
        query_start=numbers[3],
        query_end=numbers[4],
        query_seq=qseq,
        strand=strand,
    )


def parse_hits(lines: Iterable[str]) -> Iterator[Hit]:
    """Yield every parseable hit from an iterable of blastn lines."""
    for line in lines:
        hit = parse_hit_line(line)
        if hit is not None:
            yield hit
