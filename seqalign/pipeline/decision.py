"""Decide which alignment analysis applies to a lane or plex.

Rules are applied in a fixed order: conflicting human split flags and
species mismatches abort the whole generation pass, while missing
references, transcriptomes or baits only switch off the optional feature
for the lane or plex concerned.
"""
from collections import namedtuple
import re

from seqalign.log import logger
from seqalign.pipeline import genome, run_info

FORCE_BWAMEM_MIN_READ_CYCLES = 101

# Closed set of aligner methods understood by the alignment templates.
BWA_ALN = "bwa_aln"
BWA_ALN_SE = "bwa_aln_se"
BWA_MEM = "bwa_mem"
TOPHAT2 = "tophat2"
ALIGNERS = (BWA_ALN, BWA_ALN_SE, BWA_MEM, TOPHAT2)

XAHUMAN = "xahuman"
YHUMAN = "yhuman"

_rna_library_pat = re.compile(r"(?:(?:cD|R)NA|DAFT)")
_rna_species_pat = re.compile(r"Homo_sapiens|Mus_musculus|Plasmodium_(?:falciparum|berghei)")
# HiSeq High Throughput >= V4, Rapid Run >= V2
_newer_flowcell_pat = re.compile(r"(?:A[N-Z]|[B-Z][A-Z])XX$")

class DecisionConflict(ValueError):
    """Lane/plex flags that cannot be honoured together.
    """
    def __init__(self, name_root, flags, message):
        self.name_root = name_root
        self.flags = tuple(flags)
        super(DecisionConflict, self).__init__("%s (%s)" % (message, name_root))

class AnalysisDecision(namedtuple("AnalysisDecision",
                                  ["do_target_alignment", "aligner", "hs_aligner", "do_rna",
                                   "human_split", "nonconsented_human", "do_bait_stats",
                                   "alt_reference", "spiked_phix"])):
    @property
    def human_split_variant(self):
        if self.nonconsented_human:
            return "nonconsented"
        return self.human_split or "none"

def has_newer_flowcell(run):
    return bool(_newer_flowcell_pat.search(run.flowcell_id or ""))

def check_conflicts(descriptor):
    """Fail on mutually exclusive human split flags and species mismatches.
    """
    name = run_info.name_root(descriptor)
    flags = [k for k in ["contains_nonconsented_xahuman", "separate_y_chromosome_data",
                         "contains_nonconsented_human"]
             if getattr(descriptor, k)]
    if len(flags) > 1:
        raise DecisionConflict(name, flags,
                               "Only one of nonconsented X and autosome human split, "
                               "separate Y chromosome data and nonconsented human split "
                               "may be specified")
    if ((descriptor.contains_nonconsented_xahuman or descriptor.separate_y_chromosome_data)
          and not genome.is_human(descriptor.reference_genome)):
        raise DecisionConflict(name, flags + ["reference_genome"],
                               "Nonconsented X and autosome human split, and separate "
                               "Y chromosome data, must have Homo sapiens reference")
    if descriptor.contains_nonconsented_human and genome.is_human(descriptor.reference_genome):
        raise DecisionConflict(name, flags + ["reference_genome"],
                               "Nonconsented human split must not have Homo sapiens reference")

def do_rna_analysis(descriptor, run, refs):
    lstring = run_info.to_string(descriptor)
    if not descriptor.library_type or not _rna_library_pat.search(descriptor.library_type):
        logger.debug("%s - not RNA library type" % lstring)
        return False
    if not descriptor.reference_genome or not _rna_species_pat.search(descriptor.reference_genome):
        logger.debug("%s - Not human or mouse or plasmodium falciparum or berghei "
                     "(so skipping RNAseq analysis)" % lstring)
        return False
    if not refs.transcriptome:
        logger.debug("%s - no transcriptome set" % lstring)
        return False
    if not run.paired_read:
        logger.debug("%s - Single end run (so skipping RNAseq analysis)" % lstring)
        return False
    logger.debug("%s - Do RNAseq analysis...." % lstring)
    return True

def do_target_alignment(descriptor, refs, do_rna=False):
    """Target alignment needs alignments requested and a complete reference set.

    Stricter than requiring the fasta alone: the picard dictionary and the
    aligner index (bowtie2 for RNA, bwa0_6 otherwise) must resolve too, since
    each is passed to the alignment template as a key value.
    """
    if not descriptor.alignments_in_bam:
        return False
    needed = ["fasta", "picard", "bowtie2" if do_rna else "bwa0_6"]
    return all(refs.get(aligner) for aligner in needed)

def do_bait_stats_analysis(descriptor, refs, do_rna=False):
    lstring = run_info.to_string(descriptor)
    if not do_target_alignment(descriptor, refs, do_rna):
        logger.debug("%s - no reference or no alignments set" % lstring)
        return False
    if not descriptor.bait_name:
        logger.debug("%s - No bait set" % lstring)
        return False
    if not refs.bait_intervals:
        logger.debug("%s - No bait path found" % lstring)
        return False
    logger.debug("%s - Doing optional bait stats analysis...." % lstring)
    return True

def choose_aligner(run, alt_reference):
    """bwa method for DNA alignment, with the human split aligner.

    The older "aln" algorithm stays in use for older chemistries
    (read length <= 100bp) unless GCLP; alt allele references always use "mem".
    """
    hs_bwa = BWA_ALN if run.paired_read else BWA_ALN_SE
    if (alt_reference or run.gclp or run.hiseqx or has_newer_flowcell(run)
          or any(c >= FORCE_BWAMEM_MIN_READ_CYCLES for c in run.read_cycle_counts)):
        return BWA_MEM, hs_bwa
    return hs_bwa, hs_bwa

def decide(descriptor, run, refs):
    """Produce the AnalysisDecision for one lane or plex.

    refs is a genome.SampleReferences for the descriptor.
    """
    check_conflicts(descriptor)
    name = run_info.name_root(descriptor)
    do_rna = do_rna_analysis(descriptor, run, refs)
    nchs = descriptor.contains_nonconsented_human
    if not run.paired_read and (do_rna or nchs):
        raise DecisionConflict(name, ["paired_read"] + (["contains_nonconsented_human"] if nchs else []),
                               "only paired reads supported for RNA or non-consented human")
    target = do_target_alignment(descriptor, refs, do_rna)
    # independent of target alignment, so the run reports any alt reference in use
    alt_reference = refs.is_alt_reference()
    if do_rna:
        aligner, hs_aligner = TOPHAT2, TOPHAT2
    else:
        aligner, hs_aligner = choose_aligner(run, alt_reference)
    human_split = (XAHUMAN if descriptor.contains_nonconsented_xahuman else
                   YHUMAN if descriptor.separate_y_chromosome_data else "")
    decision = AnalysisDecision(do_target_alignment=target, aligner=aligner,
                                hs_aligner=hs_aligner, do_rna=do_rna,
                                human_split=human_split, nonconsented_human=nchs,
                                do_bait_stats=do_bait_stats_analysis(descriptor, refs, do_rna),
                                alt_reference=alt_reference,
                                spiked_phix=descriptor.spiked_phix)
    if nchs:
        logger.info("  %s nonconsented_humansplit" % name)
    if not run.paired_read:
        logger.info("  %s single-end" % name)
    logger.info("  %s do_target_alignment is %s" % (name, "true" if target else "false"))
    return decision
