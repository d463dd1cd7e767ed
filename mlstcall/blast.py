"""Run blastn against the combined allele database.

Genome files may be FASTA, GenBank or EMBL, optionally gzipped; they are
converted to FASTA with Biopython and streamed to blastn on stdin.
"""

import gzip
import io
import logging
import shutil
import subprocess
from pathlib import Path

from Bio import SeqIO

from .config import BLAST_FIELDS, TypingConfig
from .scheme import SchemeDB

logger = logging.getLogger(__name__)

BLAST_OUTFMT = "6 " + " ".join(BLAST_FIELDS)

SEQ_FORMATS = {
    ".gb": "genbank",
    ".gbk": "genbank",
    ".gbff": "genbank",
    ".genbank": "genbank",
    ".embl": "embl",
}


class BlastError(RuntimeError):
    """blastn or makeblastdb failed or is not installed."""


def detect_format(path: Path) -> str:
    """Biopython format name for a genome file, from its extension."""
    suffixes = [s.lower() for s in Path(path).suffixes]
    if suffixes and suffixes[-1] == ".gz":
        suffixes = suffixes[:-1]
    if suffixes and suffixes[-1] in SEQ_FORMATS:
        return SEQ_FORMATS[suffixes[-1]]
    return "fasta"


def read_as_fasta(path: Path) -> str:
    """Return the contigs of a genome file as FASTA text."""
    path = Path(path)
    fmt = detect_format(path)
    opener = gzip.open if path.suffix.lower() == ".gz" else open
    buf = io.StringIO()
    with opener(path, "rt") as fh:
        n = SeqIO.write(SeqIO.parse(fh, fmt), buf, "fasta")
    logger.debug("Read %d contigs (%s) from %s", n, fmt, path)
    return buf.getvalue()


def build_command(blast_db: Path, config: TypingConfig, threads: int = 1) -> list[str]:
    """blastn arguments; the query is read from stdin."""
    return [
        "blastn",
        "-db", str(blast_db),
        "-num_threads", str(threads),
        "-ungapped",
        "-dust", "no",
        "-word_size", "32",
        "-max_target_seqs", "10000",
        "-perc_identity", str(config.min_identity),
        "-evalue", "1E-20",
        "-outfmt", BLAST_OUTFMT,
    ]


def _require(tool: str) -> None:
    if shutil.which(tool) is None:
        raise BlastError(f"Could not find '{tool}' on PATH; is BLAST+ installed?")


def run_blast(
    path: Path,
    blast_db: Path,
    config: TypingConfig,
    threads: int = 1,
) -> list[str]:
    """Align one genome against the allele database.

    Returns the raw tabular lines. An input with no sequences gives [].
    """
    fasta = read_as_fasta(path)
    if not fasta:
        logger.warning("No sequences found in %s", path)
        return []

    _require("blastn")
    cmd = build_command(blast_db, config, threads)
    logger.debug("Running: %s", " ".join(cmd))
    result = subprocess.run(cmd, input=fasta, capture_output=True, text=True)
    if result.returncode != 0:
        raise BlastError(
            f"blastn failed on {path} (exit {result.returncode}): {result.stderr.strip()}"
        )
    return result.stdout.splitlines()


def make_blast_db(db: SchemeDB, db_dir: Path, out_path: Path) -> int:
    """Combine every scheme's alleles into one blastn database.

    Allele ids are rewritten to "<scheme>.<gene>_<num>" so that hits can be
    traced back to their scheme. Returns the number of alleles written.
    """
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    total = 0
    with open(out_path, "w") as out:
        for name in db.names():
            for tfa in db.allele_files(name, db_dir):
                if not tfa.exists():
                    logger.warning("Missing allele file %s", tfa)
                    continue
                for rec in SeqIO.parse(str(tfa), "fasta"):
                    rec.id = f"{name}.{rec.id}"
                    rec.description = ""
                    SeqIO.write(rec, out, "fasta")
                    total += 1

    _require("makeblastdb")
    cmd = ["makeblastdb", "-hash_index", "-in", str(out_path), "-dbtype", "nucl",
           "-title", "PubMLST", "-parse_seqids"]
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        raise BlastError(f"makeblastdb failed: {result.stderr.strip()}")

    logger.info("Built BLAST database %s from %d alleles", out_path, total)
    return total
