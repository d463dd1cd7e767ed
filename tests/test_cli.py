"""Tests for the command-line interface."""

import json

import pytest
from Bio import SeqIO

from mlstcall import cli, genotype

NOVEL_SEQ = "ATGGCAATTCGTGAAACCGC"


@pytest.fixture
def fake_blast(monkeypatch, make_hit):
    canned = {
        "st5.fa": [make_hit("ecoli.adk_3"), make_hit("ecoli.fumC_7"), make_hit("ecoli.gyrB_2")],
        "novel.fa": [
            make_hit("ecoli.adk_3"),
            make_hit("ecoli.fumC_7", 20, 20, 19, qseq=NOVEL_SEQ),
            make_hit("ecoli.gyrB_2"),
        ],
    }
    monkeypatch.setattr(
        genotype, "run_blast",
        lambda path, blast_db, config, threads=1: canned.get(path.name, []),
    )


@pytest.fixture
def genomes(tmp_path):
    for name in ("st5.fa", "novel.fa", "other.fa"):
        (tmp_path / name).write_text(">c1\nACGT\n")
    return tmp_path


def _run(db_dir, *args):
    cli.main(["--db", str(db_dir), "--quiet", *args])


class TestList:
    def test_names(self, db_dir, capsys):
        _run(db_dir, "list")
        assert capsys.readouterr().out.strip() == "abaumannii ecoli ecoli_2"

    def test_long(self, db_dir, capsys):
        _run(db_dir, "list", "--long")
        out = capsys.readouterr().out.splitlines()
        assert "ecoli\tadk\tfumC\tgyrB" in out


class TestType:
    def test_prints_results(self, db_dir, genomes, fake_blast, capsys):
        _run(db_dir, "type", "--nopath", str(genomes / "st5.fa"), str(genomes / "other.fa"))
        out = capsys.readouterr().out.splitlines()
        assert out == [
            "st5.fa\tecoli\t5\tadk(3)\tfumC(7)\tgyrB(2)",
            "other.fa\t-\t-",
        ]

    def test_csv(self, db_dir, genomes, fake_blast, capsys):
        _run(db_dir, "type", "--csv", "--label", "S1", str(genomes / "st5.fa"))
        assert capsys.readouterr().out.strip() == "S1,ecoli,5,adk(3),fumC(7),gyrB(2)"

    def test_legacy(self, db_dir, genomes, fake_blast, capsys):
        _run(db_dir, "type", "--legacy", "--scheme", "ecoli", "--nopath", str(genomes / "st5.fa"))
        out = capsys.readouterr().out.splitlines()
        assert out == ["FILE\tSCHEME\tST\tadk\tfumC\tgyrB", "st5.fa\tecoli\t5\t3\t7\t2"]

    def test_legacy_without_scheme_fails(self, db_dir, genomes, fake_blast):
        with pytest.raises(SystemExit) as exc:
            _run(db_dir, "type", "--legacy", str(genomes / "st5.fa"))
        assert exc.value.code == 1

    def test_unknown_scheme_fails(self, db_dir, genomes, fake_blast):
        with pytest.raises(SystemExit) as exc:
            _run(db_dir, "type", "--scheme", "saureus", str(genomes / "st5.fa"))
        assert exc.value.code == 1

    def test_missing_files_skipped(self, db_dir, genomes, fake_blast, capsys):
        _run(db_dir, "type", "--nopath", str(genomes / "nope.fa"), str(genomes / "st5.fa"))
        out = capsys.readouterr().out.splitlines()
        assert len(out) == 1
        assert out[0].startswith("st5.fa\t")

    def test_all_missing_fails(self, db_dir, genomes, fake_blast):
        with pytest.raises(SystemExit):
            _run(db_dir, "type", str(genomes / "nope.fa"))

    def test_json_and_novel(self, db_dir, genomes, fake_blast, tmp_path):
        json_path = tmp_path / "results.json"
        novel_path = tmp_path / "novel.fa"
        _run(
            db_dir, "type", "--nopath",
            "--json", str(json_path), "--novel", str(novel_path),
            str(genomes / "novel.fa"), str(genomes / "st5.fa"),
        )
        data = json.loads(json_path.read_text())
        assert data[0]["alleles"]["fumC"] == "~7"
        assert data[0]["novel"] == {"fumC": NOVEL_SEQ}
        assert data[1]["sequence_type"] == "5"

        records = list(SeqIO.parse(str(novel_path), "fasta"))
        assert len(records) == 1
        assert records[0].id.startswith("ecoli.fumC~")
        assert str(records[0].seq) == NOVEL_SEQ

    def test_no_novel_file_when_none_found(self, db_dir, genomes, fake_blast, tmp_path):
        novel_path = tmp_path / "novel.fa"
        _run(db_dir, "type", "--novel", str(novel_path), str(genomes / "st5.fa"))
        assert not novel_path.exists()


class TestMain:
    def test_no_command(self, db_dir):
        with pytest.raises(SystemExit) as exc:
            _run(db_dir)
        assert exc.value.code == 1

    def test_missing_db(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            cli.main(["--db", str(tmp_path / "nope"), "list"])
        assert exc.value.code == 1

    def test_build_config(self, db_dir, monkeypatch):
        captured = {}
        monkeypatch.setattr(
            cli, "run_type",
            lambda db, args: captured.setdefault("config", cli.build_config(args)),
        )
        _run(db_dir, "type", "--scheme", "ecoli_2", "--exclude", "ecoli_2, abaumannii", "g.fa")

        config = captured["config"]
        assert config.forced_scheme == "ecoli_2"
        assert config.exclude == frozenset({"ecoli_2", "abaumannii"})
        assert config.allows("ecoli_2")
        assert not config.capture_novel
