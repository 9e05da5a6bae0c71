"""Pytest fixtures: a small reference repository, run contexts and descriptors."""
import os

import pytest

from seqalign.pipeline import genome, run_info

HUMAN = "Homo_sapiens (1000Genomes_hs37d5)"
HUMAN_RNA = "Homo_sapiens (1000Genomes_hs37d5 + ensembl_75_transcriptome)"
MOUSE = "Mus_musculus (GRCm38)"
ZEBRAFISH = "Danio_rerio (zv9)"

# Files making one reference per aligner directory
ALIGNER_FILES = {"fasta": ["{name}.fa", "{name}.fa.fai"],
                 "picard": ["{name}.fa.dict"],
                 "bwa0_6": ["{name}.fa.amb", "{name}.fa.ann", "{name}.fa.bwt",
                            "{name}.fa.pac", "{name}.fa.sa"],
                 "bowtie2": ["{name}.1.bt2", "{name}.2.bt2", "{name}.rev.1.bt2",
                             "{name}.rev.2.bt2"]}


def _touch(fname):
    if not os.path.exists(os.path.dirname(fname)):
        os.makedirs(os.path.dirname(fname))
    with open(fname, "w") as out_handle:
        out_handle.write("x")
    return fname


def make_reference(repository, species, build, name, aligners=None):
    out = {}
    for aligner in aligners or ALIGNER_FILES.keys():
        dirname = os.path.join(repository, genome.REFERENCES_DIR, species, build, "all", aligner)
        for fname in ALIGNER_FILES[aligner]:
            _touch(os.path.join(dirname, fname.format(name=name)))
        out[aligner] = dirname
    return out


@pytest.fixture
def repository(tmpdir):
    """Reference repository with human, mouse, zebrafish and phiX references."""
    repo = str(tmpdir.join("repository"))
    make_reference(repo, "Homo_sapiens", "1000Genomes_hs37d5", "hs37d5")
    make_reference(repo, "Homo_sapiens", "default", "hs37d5")
    make_reference(repo, "Mus_musculus", "GRCm38", "GRCm38")
    make_reference(repo, "Danio_rerio", "zv9", "zv9")
    make_reference(repo, "PhiX", "default", "phix_unsnipped_short_no_N", ["fasta"])
    _touch(os.path.join(repo, genome.TRANSCRIPTOMES_DIR, "Homo_sapiens", "ensembl_75_transcriptome",
                        "1000Genomes_hs37d5", "tophat2", "1000Genomes_hs37d5.known.1.bt2"))
    _touch(os.path.join(repo, genome.TRANSCRIPTOMES_DIR, "Homo_sapiens", "ensembl_75_transcriptome",
                        "1000Genomes_hs37d5", "tophat2", "1000Genomes_hs37d5.known.rev.1.bt2"))
    _touch(os.path.join(repo, genome.BAITS_DIR, "Human_all_exon_V5", "1000Genomes_hs37d5",
                        "S04380110-Padded.bait.interval_list"))
    return repo


@pytest.fixture
def resolvers(repository):
    return genome.get_resolvers(repository)


@pytest.fixture
def make_run(tmpdir):
    def _make_run(**kwargs):
        archive = str(tmpdir.join("archive"))
        values = {"id_run": 1234, "paired_read": True, "indexed": True, "gclp": False,
                  "hiseqx": False, "flowcell_id": "C1V0EACXX", "read_cycle_counts": [75, 8, 75],
                  "input_path": str(tmpdir.join("input")), "archive_path": archive,
                  "qc_path": os.path.join(archive, "qc")}
        values.update(kwargs)
        return run_info.RunContext(**values)
    return _make_run


@pytest.fixture
def make_descriptor():
    def _make_descriptor(**kwargs):
        values = {"id_run": 1234, "position": 3, "tag_index": None, "library_type": "Standard",
                  "reference_genome": HUMAN, "is_pool": False, "alignments_in_bam": True,
                  "contains_nonconsented_xahuman": False, "separate_y_chromosome_data": False,
                  "contains_nonconsented_human": False, "spiked_phix": False,
                  "bait_name": None, "sample_name": None}
        values.update(kwargs)
        return run_info.LaneOrPlexDescriptor(**values)
    return _make_descriptor


@pytest.fixture
def tools():
    return {"alignment_filter_jar": "/software/jars/AlignmentFilter.jar",
            "split_bam_by_chromosomes_jar": "/software/jars/SplitBamByChromosomes.jar"}
