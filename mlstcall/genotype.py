"""Type genomes: hits -> per-gene calls -> scored schemes -> one result."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from .blast import run_blast
from .calls import CallTable
from .config import ABSENT, TypingConfig
from .hits import parse_hits
from .novel import NovelAlleleStore
from .scheme import SchemeDB
from .scoring import Candidate, score_scheme, select_best

logger = logging.getLogger(__name__)


@dataclass
class TypingResult:
    """The winning scheme, ST and allele tokens for one genome."""

    label: str
    scheme: str
    sequence_type: str
    alleles: list[tuple[str, str]] = field(default_factory=list)
    novel: dict[str, str] = field(default_factory=dict)
    score: int = 0
    matched: bool = False

    @property
    def is_match(self) -> bool:
        """False for the no-match placeholder, even when it names a forced scheme."""
        return self.matched

    @property
    def has_st(self) -> bool:
        return self.sequence_type != ABSENT

    @classmethod
    def from_candidate(cls, label: str, best: Candidate) -> "TypingResult":
        return cls(
            label=label,
            scheme=best.scheme,
            sequence_type=best.sequence_type,
            alleles=best.signature.pairs(),
            score=best.score,
            matched=not best.placeholder,
        )


def score_candidates(table: CallTable, db: SchemeDB) -> list[Candidate]:
    """One candidate per scheme with at least one call."""
    candidates = []
    for name in table.schemes():
        if name not in db:
            logger.warning("Hits for scheme %s, which is not in the database", name)
            continue
        candidates.append(score_scheme(db.get(name), table))
    return candidates


def type_hits(
    label: str,
    lines: Iterable[str],
    db: SchemeDB,
    config: TypingConfig,
    store: Optional[NovelAlleleStore] = None,
) -> TypingResult:
    """Call the sequence type of one genome from its blastn lines.

    Novel sequences captured for the winning scheme are promoted into
    `store` (when given) and attached to the result.
    """
    table = CallTable()
    accepted = table.process_all(parse_hits(lines), config)
    logger.debug("%s: %d hits accepted", label, accepted)

    forced = db.get(config.forced_scheme) if config.forced_scheme else None
    best = select_best(score_candidates(table, db), config, forced)
    result = TypingResult.from_candidate(label, best)

    if config.capture_novel and result.is_match:
        novel = table.novel_for(result.scheme)
        result.novel = dict(novel)
        if store is not None and novel:
            store.promote(label, result.scheme, novel)

    return result


def genome_label(path: Path, label: str | None = None, nopath: bool = False) -> str:
    if label:
        return label
    return Path(path).name if nopath else str(path)


def type_genome(
    path: Path,
    db: SchemeDB,
    blast_db: Path,
    config: TypingConfig,
    store: Optional[NovelAlleleStore] = None,
    label: str | None = None,
    nopath: bool = False,
) -> TypingResult:
    """BLAST one genome file and type it."""
    name = genome_label(path, label, nopath)
    lines = run_blast(path, blast_db, config)
    result = type_hits(name, lines, db, config, store)
    logger.info("%s: scheme=%s ST=%s score=%d", name, result.scheme,
                result.sequence_type, result.score)
    return result


def type_genomes(
    paths: list[Path],
    db: SchemeDB,
    blast_db: Path,
    config: TypingConfig,
    store: Optional[NovelAlleleStore] = None,
    threads: int = 1,
    nopath: bool = False,
    label: str | None = None,
) -> list[TypingResult]:
    """Type many genomes with at most `threads` blastn processes at once.

    Results come back in input order. `label` replaces the file name and is
    only allowed for a single genome.
    """
    if label and len(paths) > 1:
        raise ValueError("A label can only be given when typing a single genome")
    db.validate_config(config)
    workers = max(1, min(threads, len(paths) or 1))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [
            pool.submit(type_genome, p, db, blast_db, config, store, label, nopath)
            for p in paths
        ]
        return [f.result() for f in futures]
