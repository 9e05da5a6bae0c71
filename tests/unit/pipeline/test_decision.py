import itertools

import mock
import pytest

from seqalign.pipeline import decision, genome
from conftest import HUMAN, HUMAN_RNA, MOUSE, ZEBRAFISH

SPLIT_FLAGS = ["contains_nonconsented_xahuman", "separate_y_chromosome_data",
               "contains_nonconsented_human"]


def _refs(descriptor, resolvers):
    return genome.SampleReferences(descriptor, resolvers)


def _decide(descriptor, run, resolvers):
    return decision.decide(descriptor, run, _refs(descriptor, resolvers))


class TestConflicts(object):

    @pytest.mark.parametrize('flags', [
        list(x) for n in (2, 3) for x in itertools.combinations(SPLIT_FLAGS, n)
    ])
    def test_more_than_one_split_is_fatal(self, flags, make_descriptor, make_run, resolvers):
        d = make_descriptor(**dict((f, True) for f in flags))
        with pytest.raises(decision.DecisionConflict) as excinfo:
            _decide(d, make_run(), resolvers)
        assert "1234_3" in str(excinfo.value)
        assert excinfo.value.name_root == "1234_3"
        assert set(flags).issubset(set(excinfo.value.flags))

    @pytest.mark.parametrize('flag', ["contains_nonconsented_xahuman",
                                      "separate_y_chromosome_data"])
    @pytest.mark.parametrize('reference_genome', [MOUSE, ZEBRAFISH, ""])
    def test_human_only_splits_need_human_reference(self, flag, reference_genome,
                                                    make_descriptor, make_run, resolvers):
        d = make_descriptor(reference_genome=reference_genome, **{flag: True})
        with pytest.raises(decision.DecisionConflict):
            _decide(d, make_run(), resolvers)

    def test_nonconsented_human_with_human_reference_is_fatal(self, make_descriptor, make_run,
                                                              resolvers):
        d = make_descriptor(contains_nonconsented_human=True, tag_index=5)
        with pytest.raises(decision.DecisionConflict) as excinfo:
            _decide(d, make_run(), resolvers)
        assert excinfo.value.name_root == "1234_3#5"

    def test_nonconsented_human_single_end_is_fatal(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(contains_nonconsented_human=True, reference_genome=MOUSE)
        with pytest.raises(decision.DecisionConflict) as excinfo:
            _decide(d, make_run(paired_read=False), resolvers)
        assert "paired_read" in excinfo.value.flags

    def test_conflicts_checked_before_references(self, make_descriptor, make_run):
        refs = mock.Mock()
        d = make_descriptor(contains_nonconsented_xahuman=True, separate_y_chromosome_data=True)
        with pytest.raises(decision.DecisionConflict):
            decision.decide(d, make_run(), refs)
        assert not refs.get.called


class TestHumanSplit(object):

    def test_xahuman(self, make_descriptor, make_run, resolvers):
        result = _decide(make_descriptor(contains_nonconsented_xahuman=True), make_run(), resolvers)
        assert result.human_split == decision.XAHUMAN
        assert result.human_split_variant == "xahuman"
        assert not result.nonconsented_human

    def test_yhuman(self, make_descriptor, make_run, resolvers):
        result = _decide(make_descriptor(separate_y_chromosome_data=True), make_run(), resolvers)
        assert result.human_split_variant == "yhuman"

    def test_nonconsented(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(contains_nonconsented_human=True, reference_genome=MOUSE)
        result = _decide(d, make_run(), resolvers)
        assert result.human_split == ""
        assert result.nonconsented_human
        assert result.human_split_variant == "nonconsented"

    def test_none(self, make_descriptor, make_run, resolvers):
        assert _decide(make_descriptor(), make_run(), resolvers).human_split_variant == "none"


class TestRnaMode(object):

    def test_rna_library_with_transcriptome(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(library_type="RNA PolyA", reference_genome=HUMAN_RNA)
        result = _decide(d, make_run(), resolvers)
        assert result.do_rna
        assert result.aligner == decision.TOPHAT2
        assert result.hs_aligner == decision.TOPHAT2

    @pytest.mark.parametrize('library_type', ["cDNA", "RNA PolyA", "DAFT-seq", "Pulldown RNA"])
    def test_rna_library_patterns(self, library_type, make_descriptor, make_run, resolvers):
        d = make_descriptor(library_type=library_type, reference_genome=HUMAN_RNA)
        assert _decide(d, make_run(), resolvers).do_rna

    def test_dna_library_is_not_rna(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(library_type="Standard", reference_genome=HUMAN_RNA)
        assert not _decide(d, make_run(), resolvers).do_rna

    def test_no_transcriptome_falls_back_to_dna(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(library_type="RNA PolyA", reference_genome=HUMAN)
        result = _decide(d, make_run(), resolvers)
        assert not result.do_rna
        assert result.aligner in (decision.BWA_ALN, decision.BWA_MEM)

    def test_species_outside_allowed_set(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(library_type="RNA PolyA", reference_genome=ZEBRAFISH)
        assert not _decide(d, make_run(), resolvers).do_rna

    def test_single_end_falls_back_to_dna(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(library_type="RNA PolyA", reference_genome=HUMAN_RNA)
        result = _decide(d, make_run(paired_read=False), resolvers)
        assert not result.do_rna
        assert result.aligner == decision.BWA_ALN_SE


class TestAlignerChoice(object):

    def test_older_run_uses_aln(self, make_descriptor, make_run, resolvers):
        result = _decide(make_descriptor(), make_run(), resolvers)
        assert result.aligner == decision.BWA_ALN
        assert result.hs_aligner == decision.BWA_ALN

    @pytest.mark.parametrize('run_args', [
        {"gclp": True},
        {"hiseqx": True},
        {"flowcell_id": "H7BCBBCXX"},
        {"flowcell_id": "C6ANLANXX"},
        {"read_cycle_counts": [101, 8, 101]},
        {"read_cycle_counts": [50, 151]},
    ])
    def test_mem_forced(self, run_args, make_descriptor, make_run, resolvers):
        result = _decide(make_descriptor(), make_run(**run_args), resolvers)
        assert result.aligner == decision.BWA_MEM
        assert result.hs_aligner == decision.BWA_ALN

    def test_cycles_below_threshold_keep_aln(self, make_descriptor, make_run, resolvers):
        result = _decide(make_descriptor(), make_run(read_cycle_counts=[100, 8, 100]), resolvers)
        assert result.aligner == decision.BWA_ALN

    def test_alt_reference_forces_mem(self, make_descriptor, make_run, resolvers):
        d = make_descriptor()
        refs = _refs(d, resolvers)
        with open(refs.get("bwa0_6") + ".alt", "w") as out_handle:
            out_handle.write("alt")
        result = decision.decide(d, make_run(), refs)
        assert result.alt_reference
        assert result.aligner == decision.BWA_MEM

    def test_alt_reference_without_target_alignment(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(alignments_in_bam=False)
        refs = _refs(d, resolvers)
        with open(refs.get("bwa0_6") + ".alt", "w") as out_handle:
            out_handle.write("alt")
        result = decision.decide(d, make_run(), refs)
        assert not result.do_target_alignment
        assert result.alt_reference
        assert result.aligner == decision.BWA_MEM

    def test_single_end_human_split_aligner(self, make_descriptor, make_run):
        run = make_run(paired_read=False, gclp=True)
        assert decision.choose_aligner(run, False) == (decision.BWA_MEM, decision.BWA_ALN_SE)


class TestTargetAlignment(object):

    def test_no_reference_disables_target_alignment(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(reference_genome="Gallus_gallus (Galgal4)")
        result = _decide(d, make_run(), resolvers)
        assert not result.do_target_alignment
        assert not result.do_bait_stats

    def test_alignments_not_requested(self, make_descriptor, make_run, resolvers):
        result = _decide(make_descriptor(alignments_in_bam=False), make_run(), resolvers)
        assert not result.do_target_alignment

    def test_ambiguous_reference_disables_target_alignment(self, make_descriptor, make_run,
                                                           resolvers):
        refs = mock.Mock(transcriptome=None, bait_intervals=None)
        refs.is_alt_reference.return_value = False
        refs.get.return_value = None
        result = decision.decide(make_descriptor(), make_run(), refs)
        assert not result.do_target_alignment


class TestBaitStats(object):

    def test_bait_name_and_path(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(bait_name="Human_all_exon_V5")
        assert _decide(d, make_run(), resolvers).do_bait_stats

    def test_no_bait_name(self, make_descriptor, make_run, resolvers):
        assert not _decide(make_descriptor(), make_run(), resolvers).do_bait_stats

    def test_bait_without_path(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(bait_name="Unknown_bait")
        assert not _decide(d, make_run(), resolvers).do_bait_stats

    def test_bait_without_target_alignment(self, make_descriptor, make_run, resolvers):
        d = make_descriptor(bait_name="Human_all_exon_V5", alignments_in_bam=False)
        assert not _decide(d, make_run(), resolvers).do_bait_stats


def test_spiked_phix_carried_to_decision(make_descriptor, make_run, resolvers):
    d = make_descriptor(tag_index=2, spiked_phix=True)
    assert _decide(d, make_run(), resolvers).spiked_phix
