"""Build allele signatures, score candidate schemes and pick the winner."""

import logging
import math
from dataclasses import dataclass

from .calls import CallTable, NearExactCall, PartialCall
from .config import (
    ABSENT,
    ABSENT_PENALTY,
    NEAR_EXACT_PENALTY,
    NO_MATCH,
    NULL_ALLELE,
    PARTIAL_PENALTY,
    RESOLVED_BONUS,
    SCORE_SCALE,
    TypingConfig,
)
from .scheme import Scheme

logger = logging.getLogger(__name__)


class SchemeSelectionError(RuntimeError):
    """The selector returned a scheme other than the forced one."""


@dataclass(frozen=True)
class Signature:
    """Ordered allele tokens for one scheme, plus the call kind per gene."""

    genes: tuple[str, ...]
    tokens: tuple[str, ...]
    near_exact: int = 0
    partial: int = 0
    absent: int = 0

    def __str__(self) -> str:
        return "/".join(self.tokens)

    def pairs(self) -> list[tuple[str, str]]:
        return list(zip(self.genes, self.tokens))


@dataclass(frozen=True)
class Candidate:
    scheme: str
    sequence_type: str
    signature: Signature
    score: int
    placeholder: bool = False

    @property
    def is_resolved(self) -> bool:
        return self.sequence_type != ABSENT


def build_signature(scheme: Scheme, table: CallTable) -> tuple[Signature, str]:
    """Render one token per scheme gene and resolve it to an ST.

    Returns (signature, sequence_type) where sequence_type is ABSENT when
    the profile table has no match. A resolved signature that still has
    absent genes describes a null-allele profile, so those tokens become
    NULL_ALLELE.
    """
    calls = table.genes(scheme.name)
    tokens = []
    near = partial = absent = 0
    for gene in scheme.genes:
        call = calls.get(gene)
        if call is None:
            tokens.append(ABSENT)
            absent += 1
            continue
        if isinstance(call, NearExactCall):
            near += 1
        elif isinstance(call, PartialCall):
            partial += 1
        tokens.append(call.render())

    st = scheme.sequence_type(tokens) or ABSENT
    if st != ABSENT and absent:
        tokens = [NULL_ALLELE if t == ABSENT else t for t in tokens]

    signature = Signature(
        genes=tuple(scheme.genes),
        tokens=tuple(tokens),
        near_exact=near,
        partial=partial,
        absent=absent,
    )
    return signature, st


def score_signature(signature: Signature, resolved: bool) -> int:
    """Score a signature out of 100.

    Exact genes cost nothing, near-exact 0.3, partial 0.5 and absent 1.0;
    the remainder is scaled to 90 and a resolved ST adds 10.
    """
    gene_count = len(signature.tokens)
    if gene_count == 0:
        return 0
    score = float(gene_count)
    score -= NEAR_EXACT_PENALTY * signature.near_exact
    score -= PARTIAL_PENALTY * signature.partial
    score -= ABSENT_PENALTY * signature.absent
    # round() first so float error cannot drop a whole point
    score = math.floor(round(score * SCORE_SCALE / gene_count, 9))
    if resolved:
        score += RESOLVED_BONUS
    return score


def score_scheme(scheme: Scheme, table: CallTable) -> Candidate:
    signature, st = build_signature(scheme, table)
    score = score_signature(signature, st != ABSENT)
    logger.debug("Scheme %s: %s ST=%s score=%d", scheme.name, signature, st, score)
    return Candidate(scheme=scheme.name, sequence_type=st, signature=signature, score=score)


def sentinel(config: TypingConfig, scheme: Scheme | None = None) -> Candidate:
    """The always-present no-match candidate.

    With a forced scheme its genes are listed as absent.
    """
    genes = tuple(scheme.genes) if scheme else ()
    signature = Signature(genes=genes, tokens=(ABSENT,) * len(genes), absent=len(genes))
    return Candidate(
        scheme=config.forced_scheme or NO_MATCH,
        sequence_type=ABSENT,
        signature=signature,
        score=0,
        placeholder=True,
    )


def st_sort_key(st: str) -> tuple:
    """Numeric STs first in numeric order, then other names, absent last."""
    if st == ABSENT:
        return (2, 0, "")
    if st.isdigit():
        return (0, int(st), st)
    return (1, 0, st)


def rank_candidates(candidates: list[Candidate]) -> list[Candidate]:
    """Sort by score descending, then ascending ST, then scheme name.

    The placeholder wins a full tie.
    """
    return sorted(
        candidates,
        key=lambda c: (-c.score, st_sort_key(c.sequence_type), not c.placeholder, c.scheme),
    )


def select_best(
    candidates: list[Candidate],
    config: TypingConfig,
    forced: Scheme | None = None,
) -> Candidate:
    """Pick the winning candidate, falling back to the sentinel.

    Candidates scoring below config.min_score are dropped first.
    """
    kept = [c for c in candidates if c.score >= config.min_score]
    ranked = rank_candidates([sentinel(config, forced)] + kept)
    best = ranked[0]

    if config.forced_scheme and best.scheme != config.forced_scheme:
        raise SchemeSelectionError(
            f"Forced scheme {config.forced_scheme} but selected {best.scheme}"
        )
    return best
