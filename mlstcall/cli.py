"""CLI entry points for MLST typing."""

import argparse
import logging
import sys
from pathlib import Path

from .blast import BlastError, make_blast_db
from .config import (
    DEFAULT_BLAST_DB,
    DEFAULT_DB_DIR,
    DEFAULT_EXCLUDE,
    MIN_COVERAGE,
    MIN_IDENTITY,
    MIN_SCORE,
    TypingConfig,
)
from .genotype import type_genomes
from .novel import NovelAlleleStore, write_novel_fasta
from .report import format_results, format_scheme_list, write_json
from .scheme import SchemeDB

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Scan contig files against PubMLST typing schemes"
    )
    parser.add_argument(
        "--db", type=Path, default=DEFAULT_DB_DIR,
        help="PubMLST scheme directory",
    )
    parser.add_argument(
        "--blastdb", type=Path, default=DEFAULT_BLAST_DB,
        help="Combined BLAST allele database",
    )
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    sub = parser.add_subparsers(dest="command")

    type_cmd = sub.add_parser("type", help="Call sequence types for contig files")
    type_cmd.add_argument("files", nargs="+", type=Path, help="FASTA/GenBank/EMBL files (gzip ok)")
    type_cmd.add_argument("--scheme", default="", help="Don't autodetect, force this scheme")
    type_cmd.add_argument(
        "--exclude", default=",".join(DEFAULT_EXCLUDE),
        help="Ignore these schemes (comma separated)",
    )
    type_cmd.add_argument("--minid", type=float, default=MIN_IDENTITY, help="Minimum DNA %%identity")
    type_cmd.add_argument("--mincov", type=float, default=MIN_COVERAGE, help="Minimum DNA %%coverage")
    type_cmd.add_argument(
        "--minscore", type=int, default=MIN_SCORE,
        help="Minimum score out of 100 to match a scheme",
    )
    type_cmd.add_argument("--novel", type=Path, help="Save novel alleles to this FASTA file")
    type_cmd.add_argument("--json", type=Path, help="Also write results to this JSON file")
    type_cmd.add_argument("--csv", action="store_true", help="Output comma separated values")
    type_cmd.add_argument("--legacy", action="store_true", help="One column per gene (needs --scheme)")
    type_cmd.add_argument("--label", default="", help="Replace the file name with this label")
    type_cmd.add_argument("--nopath", action="store_true", help="Strip directories from file names")
    type_cmd.add_argument("--threads", type=int, default=1, help="Number of genomes to BLAST at once")

    list_cmd = sub.add_parser("list", help="List available schemes")
    list_cmd.add_argument("--long", action="store_true", help="Also list each scheme's genes")

    sub.add_parser("makeblastdb", help="Build the combined BLAST database from --db")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        db = SchemeDB.load(args.db)
        if args.command == "type":
            run_type(db, args)
        elif args.command == "list":
            run_list(db, args)
        elif args.command == "makeblastdb":
            run_makeblastdb(db, args)
        else:
            parser.print_help()
            sys.exit(1)
    except (ValueError, BlastError) as exc:
        logger.error("%s", exc)
        sys.exit(1)


def build_config(args) -> TypingConfig:
    """Translate parsed options into a TypingConfig."""
    exclude = frozenset(s.strip() for s in args.exclude.split(",") if s.strip())
    if args.scheme and args.scheme in exclude:
        logger.info("Scheme %s is forced, ignoring its exclusion", args.scheme)
    return TypingConfig(
        forced_scheme=args.scheme or None,
        exclude=exclude,
        min_coverage=args.mincov,
        min_identity=args.minid,
        min_score=args.minscore,
        capture_novel=args.novel is not None,
    )


def run_type(db: SchemeDB, args) -> None:
    """Type every input file and print one line per genome."""
    config = build_config(args)
    if args.legacy and not config.forced_scheme:
        raise ValueError("--legacy requires --scheme")

    missing = [f for f in args.files if not f.exists()]
    for f in missing:
        logger.warning("Skipping missing file: %s", f)
    files = [f for f in args.files if f.exists()]
    if not files:
        raise ValueError("No readable input files")

    store = NovelAlleleStore()
    results = type_genomes(
        files, db, args.blastdb, config,
        store=store,
        threads=args.threads,
        nopath=args.nopath,
        label=args.label or None,
    )

    sep = "," if args.csv else "\t"
    for line in format_results(results, db, sep, args.legacy, config.forced_scheme):
        print(line)

    if args.json:
        write_json(results, args.json)
    if args.novel:
        write_novel_fasta(store, args.novel)

    if len(results) > 1:
        matched = sum(1 for r in results if r.has_st)
        logger.info("Typed %d genomes, %d with a known ST", len(results), matched)


def run_list(db: SchemeDB, args) -> None:
    for line in format_scheme_list(db, long=args.long):
        print(line)


def run_makeblastdb(db: SchemeDB, args) -> None:
    n = make_blast_db(db, args.db, args.blastdb)
    logger.info("Indexed %d alleles from %d schemes", n, len(db))
