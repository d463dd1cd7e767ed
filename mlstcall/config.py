"""Typing configuration: defaults, call markers and runtime options."""

import os
from dataclasses import dataclass, field
from pathlib import Path

# Default scheme database locations (override with MLSTCALL_DB / MLSTCALL_BLASTDB)
DEFAULT_DB_DIR = Path(os.environ.get("MLSTCALL_DB", "db/pubmlst"))
DEFAULT_BLAST_DB = Path(os.environ.get("MLSTCALL_BLASTDB", "db/blast/mlst.fa"))

# Thresholds (percent for coverage/identity)
MIN_COVERAGE = 10.0
MIN_IDENTITY = 95.0
MIN_SCORE = 50

# Schemes skipped unless explicitly forced
DEFAULT_EXCLUDE = ("ecoli_2",)

# Allele token markers
ABSENT = "-"
NULL_ALLELE = "0"
NEAR_EXACT_PREFIX = "~"
PARTIAL_SUFFIX = "?"
NO_MATCH = "-"

# blastn tabular output columns, in the order parse_hit_line expects
BLAST_FIELDS = (
    "sseqid", "slen", "length", "nident", "qseqid",
    "qstart", "qend", "qseq", "sstrand",
)

# Scoring weights
SCORE_SCALE = 90
RESOLVED_BONUS = 10
NEAR_EXACT_PENALTY = 0.3
PARTIAL_PENALTY = 0.5
ABSENT_PENALTY = 1.0

# Identifier fingerprint length for novel alleles
NOVEL_HASH_LENGTH = 12


@dataclass(frozen=True)
class TypingConfig:
    """Options consumed by hit classification and scheme selection.

    min_identity is applied by the aligner (blastn -perc_identity), the
    rest are applied while calling alleles and ranking schemes.
    """

    forced_scheme: str | None = None
    exclude: frozenset[str] = field(default_factory=lambda: frozenset(DEFAULT_EXCLUDE))
    min_coverage: float = MIN_COVERAGE
    min_identity: float = MIN_IDENTITY
    min_score: int = MIN_SCORE
    capture_novel: bool = False

    def allows(self, scheme: str) -> bool:
        """Return True if hits from `scheme` may be accumulated."""
        if self.forced_scheme:
            return scheme == self.forced_scheme
        return scheme not in self.exclude
