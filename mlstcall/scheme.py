"""Load MLST schemes (gene lists and ST profile tables) from disk.

Expected layout, one directory per scheme:

    <db_dir>/<scheme>/<scheme>.txt    ST profiles, tab separated
    <db_dir>/<scheme>/<gene>.tfa      reference alleles for one gene
"""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .config import ABSENT, TypingConfig

logger = logging.getLogger(__name__)

# Profile columns that never name a gene
NON_GENE_COLUMNS = ("clonal_complex", "cc", "lineage", "species", "mlst_clade")

SIGNATURE_SEP = "/"


class UnknownSchemeError(ValueError):
    """Raised when a scheme name is not present in the database."""


def signature_key(tokens) -> str:
    """Join allele tokens into the string used for profile lookup."""
    return SIGNATURE_SEP.join(tokens)


def _profile_token(value: str) -> str:
    """Normalise one profile cell; null alleles index as absent."""
    value = value.strip()
    if value.isdigit() and int(value) > 0:
        return str(int(value))
    return ABSENT


@dataclass
class Scheme:
    """A named ordered gene list plus its signature -> ST table."""

    name: str
    genes: list[str]
    profiles: dict[str, str] = field(default_factory=dict)

    @property
    def gene_count(self) -> int:
        return len(self.genes)

    def sequence_type(self, tokens) -> str | None:
        """Look up the ST for an ordered allele signature, None if unknown."""
        return self.profiles.get(signature_key(tokens))

    @classmethod
    def from_dir(cls, scheme_dir: Path) -> "Scheme":
        """Read a scheme directory. Raises ValueError if the profile is unusable."""
        name = scheme_dir.name
        profile_path = scheme_dir / f"{name}.txt"
        if not profile_path.exists():
            raise ValueError(f"Scheme {name} has no profile table at {profile_path}")

        with open(profile_path, newline="") as fh:
            reader = csv.reader(fh, delimiter="\t")
            header = next(reader, None)
            if not header or header[0].strip().upper() != "ST":
                raise ValueError(f"Profile table {profile_path} must start with an ST column")

            genes = _gene_columns(header, scheme_dir)
            if not genes:
                raise ValueError(f"Profile table {profile_path} lists no genes")

            profiles: dict[str, str] = {}
            for row in reader:
                if len(row) < len(genes) + 1 or not row[0].strip():
                    continue
                tokens = [_profile_token(v) for v in row[1:len(genes) + 1]]
                profiles[signature_key(tokens)] = row[0].strip()

        logger.debug("Loaded scheme %s: %d genes, %d profiles", name, len(genes), len(profiles))
        return cls(name=name, genes=genes, profiles=profiles)


def _gene_columns(header: list[str], scheme_dir: Path) -> list[str]:
    """Gene columns are those after ST up to the first non-gene column.

    When allele files are present, only columns with a <gene>.tfa are kept.
    """
    genes = []
    for col in header[1:]:
        col = col.strip()
        if not col or col.lower() in NON_GENE_COLUMNS:
            break
        genes.append(col)

    with_alleles = [g for g in genes if (scheme_dir / f"{g}.tfa").exists()]
    return with_alleles or genes


class SchemeDB:
    """All schemes available to the typer, keyed by name."""

    def __init__(self, schemes: dict[str, Scheme] | None = None):
        self.schemes: dict[str, Scheme] = dict(schemes or {})

    @classmethod
    def load(cls, db_dir: Path) -> "SchemeDB":
        db_dir = Path(db_dir)
        if not db_dir.is_dir():
            raise ValueError(f"Scheme database directory not found: {db_dir}")

        schemes = {}
        for scheme_dir in sorted(p for p in db_dir.iterdir() if p.is_dir()):
            try:
                scheme = Scheme.from_dir(scheme_dir)
            except ValueError as e:
                logger.warning("Skipping scheme directory %s: %s", scheme_dir, e)
                continue
            schemes[scheme.name] = scheme

        logger.info("Loaded %d MLST schemes from %s", len(schemes), db_dir)
        return cls(schemes)

    def __contains__(self, name: str) -> bool:
        return name in self.schemes

    def __len__(self) -> int:
        return len(self.schemes)

    def names(self) -> list[str]:
        return sorted(self.schemes)

    def get(self, name: str) -> Scheme:
        try:
            return self.schemes[name]
        except KeyError:
            raise UnknownSchemeError(f"Unknown MLST scheme: '{name}'") from None

    def validate_config(self, config: TypingConfig) -> None:
        """Fail early on a forced scheme the database does not know."""
        if config.forced_scheme and config.forced_scheme not in self.schemes:
            raise UnknownSchemeError(
                f"Unknown MLST scheme: '{config.forced_scheme}'. "
                f"Use --list to see available schemes."
            )
        for name in sorted(config.exclude):
            if name not in self.schemes:
                logger.debug("Excluded scheme %s is not in the database", name)

    def allele_files(self, name: str, db_dir: Path) -> list[Path]:
        """Allele FASTA files for one scheme, in gene order."""
        scheme = self.get(name)
        return [Path(db_dir) / name / f"{gene}.tfa" for gene in scheme.genes]
