from conftest import OracleGenome, fake_toolkit
from gapwalker.io import read_fasta_sequences, write_fasta
from gapwalker.pipeline import GapWalker
from gapwalker.walker import WalkState


def _inputs(tmp_path, genome):
    reference = tmp_path / "ref.fa"
    write_fasta({genome.reference.name: genome.reference.sequence}, reference)
    reads = tmp_path / "reads.fa"
    write_fasta(dict(genome.reads), reads)
    return reference, reads


def test_close_gap_end_to_end(tmp_path):
    genome = OracleGenome()
    reference, reads = _inputs(tmp_path, genome)
    messages = []
    gw = GapWalker(toolkit=fake_toolkit(align=genome.align, consensus=genome.consensus), say=messages.append)

    paths = gw.close_gap(reference, reads, sample="s1", out_dir=tmp_path / "out")

    assert [p.name for p in paths] == ["s1.fasta"]
    assert read_fasta_sequences(paths[0])["s1"].upper() == genome.truth
    assert (tmp_path / "out" / "s1.walked.fasta").is_file()
    assert (tmp_path / "out" / "iterations" / "s1.iter1.fasta").is_file()


def test_walk_reports_state(tmp_path):
    genome = OracleGenome()
    reference, reads = _inputs(tmp_path, genome)
    gw = GapWalker(toolkit=fake_toolkit(align=genome.align, consensus=genome.consensus), say=lambda m: None)
    result, path = gw.walk(reference, reads, out_dir=tmp_path)
    assert result.state is WalkState.STOPPED_SIDES_MET
    assert path.name == "ctg1.walked.fasta"


def test_scan_gaps(tmp_path):
    fasta = tmp_path / "asm.fa"
    write_fasta({"a": "ACGT" + "N" * 12 + "ACGT" + "NN", "b": "ACGT"}, fasta)
    gaps = GapWalker(toolkit=fake_toolkit(), say=lambda m: None).scan_gaps(fasta)
    assert gaps == [("a", 4, 16)]
