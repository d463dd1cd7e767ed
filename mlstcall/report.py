"""Format typing results as tab/comma separated lines or JSON."""

import json
import logging
from pathlib import Path

from .genotype import TypingResult
from .scheme import SchemeDB

logger = logging.getLogger(__name__)


def result_fields(result: TypingResult) -> list[str]:
    """label, scheme, ST, then "gene(token)" per gene."""
    fields = [result.label, result.scheme, result.sequence_type]
    fields.extend(f"{gene}({token})" for gene, token in result.alleles)
    return fields


def format_result(result: TypingResult, sep: str = "\t") -> str:
    return sep.join(result_fields(result))


def legacy_header(genes: list[str], sep: str = "\t") -> str:
    return sep.join(["FILE", "SCHEME", "ST"] + list(genes))


def format_legacy(result: TypingResult, sep: str = "\t") -> str:
    """Bare allele tokens, one column per gene, for use under legacy_header."""
    fields = [result.label, result.scheme, result.sequence_type]
    fields.extend(token for _gene, token in result.alleles)
    return sep.join(fields)


def format_results(
    results: list[TypingResult],
    db: SchemeDB,
    sep: str = "\t",
    legacy: bool = False,
    scheme: str | None = None,
) -> list[str]:
    """Render every result; legacy output needs one fixed scheme."""
    if not legacy:
        return [format_result(r, sep) for r in results]
    if not scheme:
        raise ValueError("Legacy output requires a fixed scheme (--scheme)")
    lines = [legacy_header(db.get(scheme).genes, sep)]
    lines.extend(format_legacy(r, sep) for r in results)
    return lines


def result_to_dict(result: TypingResult) -> dict:
    entry = {
        "filename": result.label,
        "id": Path(result.label).name,
        "scheme": result.scheme,
        "sequence_type": result.sequence_type,
        "alleles": dict(result.alleles),
        "score": result.score,
    }
    if result.novel:
        entry["novel"] = dict(result.novel)
    return entry


def write_json(results: list[TypingResult], path: Path) -> None:
    """Write all results as a JSON list."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = [result_to_dict(r) for r in results]
    path.write_text(json.dumps(data, indent=2) + "\n")
    logger.info("Wrote %d results to %s", len(data), path)


def format_scheme_list(db: SchemeDB, long: bool = False) -> list[str]:
    """Scheme names (one line), or one line per scheme with its genes."""
    if not long:
        return [" ".join(db.names())]
    return [
        "\t".join([name] + db.get(name).genes)
        for name in db.names()
    ]
