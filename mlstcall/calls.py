"""Accumulate per-gene allele calls from a stream of hits.

One CallTable is built per genome. Every scheme/gene pair holds at most one
GeneCall:

    ExactCall       full length, full identity (may hold several numbers
                    when the genome carries duplicated loci)
    NearExactCall   full length with mismatches, rendered "~N"
    PartialCall     partial length above the coverage threshold, rendered "N?"

A gene with no entry is absent. Once a gene is exact it never degrades;
near-exact and partial calls are first-seen-wins and superseded by exact.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Union

from Bio.Seq import reverse_complement

from .config import NEAR_EXACT_PREFIX, PARTIAL_SUFFIX, TypingConfig
from .hits import Hit, Strand

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExactCall:
    alleles: tuple[int, ...]

    def with_allele(self, allele: int) -> "ExactCall":
        if allele in self.alleles:
            return self
        return ExactCall(tuple(sorted(self.alleles + (allele,))))

    @property
    def is_ambiguous(self) -> bool:
        return len(self.alleles) > 1

    def render(self) -> str:
        return ",".join(str(a) for a in sorted(self.alleles))


@dataclass(frozen=True)
class NearExactCall:
    allele: int

    def render(self) -> str:
        return f"{NEAR_EXACT_PREFIX}{self.allele}"


@dataclass(frozen=True)
class PartialCall:
    allele: int

    def render(self) -> str:
        return f"{self.allele}{PARTIAL_SUFFIX}"


GeneCall = Union[ExactCall, NearExactCall, PartialCall]


@dataclass
class CallTable:
    """Per-genome call state: scheme -> gene -> GeneCall, plus novel scratch.

    `novel` holds candidate novel allele sequences per scheme and gene. It is
    only a scratch buffer; sequences reach the process-wide store after the
    winning scheme is known.
    """

    calls: dict[str, dict[str, GeneCall]] = field(default_factory=dict)
    novel: dict[str, dict[str, str]] = field(default_factory=dict)

    def schemes(self) -> list[str]:
        """Schemes with at least one call, in first-seen order."""
        return [s for s, genes in self.calls.items() if genes]

    def get(self, scheme: str, gene: str) -> GeneCall | None:
        return self.calls.get(scheme, {}).get(gene)

    def genes(self, scheme: str) -> dict[str, GeneCall]:
        return self.calls.get(scheme, {})

    def novel_for(self, scheme: str) -> dict[str, str]:
        return self.novel.get(scheme, {})

    def process(self, hit: Hit, config: TypingConfig) -> bool:
        """Apply filters and fold one hit into the table.

        Returns True if the hit passed the filters (even when it did not
        change the existing call).
        """
        if hit.hit_len <= 0 or hit.coverage() < config.min_coverage / 100:
            return False
        if not config.allows(hit.scheme):
            return False

        scheme_calls = self.calls.setdefault(hit.scheme, {})
        current = scheme_calls.get(hit.gene)

        if hit.is_exact:
            if isinstance(current, ExactCall):
                updated = current.with_allele(hit.allele)
                if updated is not current:
                    logger.warning(
                        "Found additional exact allele match %s.%s-%d",
                        hit.scheme, hit.gene, hit.allele,
                    )
                scheme_calls[hit.gene] = updated
            else:
                scheme_calls[hit.gene] = ExactCall((hit.allele,))
            # An exact reference exists, so nothing here is novel
            self.novel.get(hit.scheme, {}).pop(hit.gene, None)
            return True

        if isinstance(current, ExactCall):
            return True

        if hit.is_full_length and config.capture_novel:
            self._capture_novel(hit)
        if current is None:
            # Non-exact calls are first-seen-wins
            if hit.is_full_length:
                scheme_calls[hit.gene] = NearExactCall(hit.allele)
            else:
                scheme_calls[hit.gene] = PartialCall(hit.allele)
        return True

    def process_all(self, hits: Iterable[Hit], config: TypingConfig) -> int:
        """Fold every hit into the table; returns the number accepted."""
        return sum(1 for hit in hits if self.process(hit, config))

    def _capture_novel(self, hit: Hit) -> None:
        scheme_novel = self.novel.setdefault(hit.scheme, {})
        if hit.gene in scheme_novel:
            return
        seq = hit.query_seq.replace("-", "").upper()
        if hit.strand is Strand.MINUS:
            seq = reverse_complement(seq)
        scheme_novel[hit.gene] = seq
