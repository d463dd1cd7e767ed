"""Shared test fixtures."""

from pathlib import Path

import pytest

from mlstcall.config import TypingConfig
from mlstcall.scheme import SchemeDB

# scheme -> (genes, profile rows, extra header columns)
SCHEMES = {
    "ecoli": (
        ["adk", "fumC", "gyrB"],
        [
            ["1", "1", "1", "1", "CC1"],
            ["5", "3", "7", "2", "CC5"],
            ["10", "3", "0", "1", ""],
            ["12", "3", "7", "9", "CC5"],
        ],
        ["clonal_complex"],
    ),
    "ecoli_2": (
        ["adk", "fumC", "gyrB"],
        [["1", "1", "1", "1"]],
        [],
    ),
    "abaumannii": (
        ["cpn60", "gltA", "recA"],
        [
            ["1", "1", "1", "1"],
            ["2", "2", "2", "2"],
        ],
        [],
    ),
}

ALLELE_SEQS = {
    1: "ATGGCAATTCGTGAAACCGG",
    2: "ATGGCAATTCGTGAAACCGA",
    3: "ATGGCAATTCGTGAAACCTT",
}


def write_scheme(db_dir: Path, name: str, genes, rows, extra=()):
    """Write a PubMLST-style scheme directory."""
    scheme_dir = db_dir / name
    scheme_dir.mkdir(parents=True, exist_ok=True)
    header = ["ST"] + list(genes) + list(extra)
    lines = ["\t".join(header)] + ["\t".join(r) for r in rows]
    (scheme_dir / f"{name}.txt").write_text("\n".join(lines) + "\n")
    for gene in genes:
        with open(scheme_dir / f"{gene}.tfa", "w") as fh:
            for num, seq in ALLELE_SEQS.items():
                fh.write(f">{gene}_{num}\n{seq}\n")
    return scheme_dir


def hit_line(
    subject: str,
    slen: int = 20,
    length: int = 20,
    nident: int = 20,
    qseq: str = "",
    strand: str = "plus",
    qid: str = "contig1",
    qstart: int = 1,
    qend: int | None = None,
) -> str:
    """Build one blastn tabular line in the expected field order."""
    qseq = qseq or "A" * length
    qend = qend if qend is not None else qstart + length - 1
    return "\t".join(str(v) for v in (
        subject, slen, length, nident, qid, qstart, qend, qseq, strand,
    ))


@pytest.fixture
def db_dir(tmp_path):
    """A scheme database directory with ecoli, ecoli_2 and abaumannii."""
    root = tmp_path / "pubmlst"
    for name, (genes, rows, extra) in SCHEMES.items():
        write_scheme(root, name, genes, rows, extra)
    return root


@pytest.fixture
def scheme_db(db_dir):
    return SchemeDB.load(db_dir)


@pytest.fixture
def config():
    return TypingConfig()


@pytest.fixture
def novel_config():
    return TypingConfig(capture_novel=True)


@pytest.fixture
def make_hit():
    """Factory for blastn tabular lines (see hit_line)."""
    return hit_line
