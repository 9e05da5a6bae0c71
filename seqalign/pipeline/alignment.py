"""Command lines running the alignment pipeline templates for a lane or plex.

Each task renders a p4 template with vtfp.pl, runs it with viv.pl and then
collects QC for every output subset:

  mkdir -p <archive>/tmp_$LSB_JOBID/<name> && cd ... &&
  vtfp.pl -keys ... -vals ... <template> > run_<name>.json &&
  viv.pl ... run_<name>.json &&
  qc --check bam_flagstats ... && qc --check alignment_filter_metrics ...
"""
from collections import namedtuple
import os

from seqalign.log import logger
from seqalign.pipeline import run_info
from seqalign.provenance.cmdline import Cmd, Raw, chain, quote

VTFP = "vtfp.pl"
VIV = "viv.pl"
QC_SCRIPT_NAME = "qc"
THREADS = "npg_pipeline_job_env_to_threads"
CFGDATADIR = "$(dirname $(readlink -f $(which vtfp.pl)))/../data/vtlib/"
VTLIB = "$(dirname $(dirname $(readlink -f $(which vtfp.pl))))/data/vtlib/"
TEMPLATE_PREFIX = "alignment_wtsi_stage2_"

TaskPaths = namedtuple("TaskPaths", ["input_path", "archive_path", "qc_path"])

def task_paths(run, descriptor):
    """Input, output and QC directories; plexes live in per-lane subdirectories.
    """
    if descriptor.tag_index is None:
        return TaskPaths(run.input_path, run.archive_path, run.qc_path)
    lane_dir = "lane%s" % descriptor.position
    lane_archive = os.path.join(run.archive_path, lane_dir)
    return TaskPaths(os.path.join(run.input_path, lane_dir), lane_archive,
                     os.path.join(lane_archive, "qc"))

def _keys(key, value):
    return ["-keys", key, "-vals", value]

def _nullkeys(key):
    return ["-nullkeys", key]

def no_target_alignment_args():
    """Template changes applied together when there is no target alignment.

    Splices out the target alignment nodes, makes scramble write unaligned
    output, unsets the reference for the statistics nodes and switches the
    AlignmentFilter target input off, relabelling its target output UNALIGNED.
    """
    return (["-splice_nodes", "src_bam:-alignment_filter:__PHIX_BAM_IN__"]
            + _keys("scramble_reference_flag", "-x")
            + _nullkeys("stats_reference_flag")
            + _nullkeys("af_target_in_flag")
            + _keys("af_target_out_flag_name", "UNALIGNED"))

def template_name(decision):
    label = ""
    if decision.nonconsented_human:
        label = "humansplit_"
        if not decision.do_target_alignment:
            label += "notargetalign_"
    return "%s%stemplate.json" % (TEMPLATE_PREFIX, label)

def strandedness(library_type):
    return "fr-firststrand" if "dUTP" in (library_type or "") else "fr-unstranded"

def qc_command(check_name, qc_in, qc_out, descriptor, subset=None):
    """QC check invocation, arguments in sorted order for reproducible commands.
    """
    args = {"id_run": descriptor.id_run, "position": descriptor.position}
    if descriptor.tag_index is not None:
        args["tag_index"] = descriptor.tag_index
    if check_name == "bam_flagstats":
        if subset:
            args["subset"] = subset
        args["qc_in"] = qc_in
    else:
        args["qc_in"] = Raw("$PWD")
    args["qc_out"] = qc_out
    args["check"] = check_name
    cmd = Cmd(QC_SCRIPT_NAME)
    for key in sorted(args):
        cmd.add("--%s" % key, args[key])
    return cmd

def qc_commands(descriptor, decision, paths):
    out = [qc_command("bam_flagstats", paths.archive_path, paths.qc_path, descriptor),
           qc_command("bam_flagstats", paths.archive_path, paths.qc_path, descriptor, "phix")]
    if decision.human_split:
        out.append(qc_command("bam_flagstats", paths.archive_path, paths.qc_path, descriptor,
                              decision.human_split))
    if decision.nonconsented_human:
        out.append(qc_command("bam_flagstats", paths.archive_path, paths.qc_path, descriptor,
                              "human"))
    out.append(qc_command("alignment_filter_metrics", None, paths.qc_path, descriptor))
    return out

def _tmp_dir(archive_path, name):
    return Raw("%s/tmp_$LSB_JOBID/%s" % (quote(archive_path), quote(name)))

def vtfp_command(descriptor, decision, refs, run_refs, paths, run, tools):
    name = run_info.name_root(descriptor)
    target = decision.do_target_alignment
    nchs = decision.nonconsented_human
    cmd = Cmd(VTFP)
    cmd.extend(_keys("samtools_executable", "samtools1"))
    cmd.extend(_keys("cfgdatadir", Raw(CFGDATADIR)))
    cmd.extend(_keys("aligner_numthreads", Raw("`%s`" % THREADS)))
    cmd.extend(_keys("br_numthreads_val", Raw("`%s --exclude 1 --divide 2`" % THREADS)))
    cmd.extend(_keys("b2c_mt_val", Raw("`%s --exclude 2 --divide 2`" % THREADS)))
    cmd.extend(_keys("indatadir", paths.input_path))
    cmd.extend(_keys("outdatadir", paths.archive_path))
    cmd.extend(_keys("af_metrics", "%s.bam_alignment_filter_metrics.json" % name))
    cmd.extend(_keys("rpt", name))
    if target:
        cmd.extend(_keys("reference_dict", refs.get("picard") + ".dict"))
    # human split references are always the human default, whatever the sample species
    if nchs:
        cmd.extend(_keys("reference_dict_hs", run_refs.human("picard")))
    if target:
        cmd.extend(_keys("reference_genome_fasta", refs.get("fasta")))
    if nchs:
        cmd.extend(_keys("hs_reference_genome_fasta", run_refs.human("fasta")))
    cmd.extend(_keys("phix_reference_genome_fasta", run_refs.phix))
    cmd.extend(_keys("alignment_filter_jar", tools["alignment_filter_jar"]))
    if decision.do_bait_stats:
        cmd.extend(_keys("bait_regions_file", refs.bait_intervals))
        cmd.add("-prune_nodes", "fopphx_samtools_stats_F0.*00_bait.*")
    else:
        cmd.add("-prune_nodes", "fop.*samtools_stats_F0.*00_bait.*")
    if decision.do_rna:
        if target:
            cmd.extend(_keys("alignment_reference_genome", refs.get("bowtie2")))
        if nchs:
            cmd.extend(_keys("hs_alignment_reference_genome", run_refs.human("bowtie2")))
        cmd.extend(_keys("library_type", strandedness(descriptor.library_type)))
        cmd.extend(_keys("transcriptome_val", refs.transcriptome))
        cmd.extend(_keys("alignment_method", decision.aligner))
        if nchs:
            cmd.extend(_keys("alignment_hs_method", decision.hs_aligner))
    else:
        if target:
            cmd.extend(_keys("alignment_reference_genome", refs.get("bwa0_6")))
        if nchs:
            cmd.extend(_keys("hs_alignment_reference_genome", run_refs.human("bwa0_6")))
        cmd.extend(_keys("bwa_executable", "bwa0_6"))
        cmd.extend(_keys("alignment_method", decision.aligner))
        if nchs:
            cmd.extend(_keys("alignment_hs_method", decision.hs_aligner))
    if not run.paired_read:
        cmd.extend(_nullkeys("bwa_mem_p_flag"))
    if decision.human_split:
        cmd.extend(_keys("final_output_prep_target_name", "split_by_chromosome"))
        cmd.extend(_keys("split_indicator", "_%s" % decision.human_split))
    if descriptor.separate_y_chromosome_data:
        cmd.extend(_keys("split_bam_by_chromosome_flags", "S=Y"))
        cmd.extend(_keys("split_bam_by_chromosome_flags", "V=true"))
        cmd.extend(_keys("split_bam_by_chromosomes_jar", tools["split_bam_by_chromosomes_jar"]))
    if not target:
        cmd.extend(no_target_alignment_args())
    cmd.add(Raw(VTLIB + template_name(decision)))
    cmd.redirect("run_%s.json" % name)
    return cmd

def alignment_command(descriptor, decision, refs, run_refs, run, tools):
    """Full shell command for one array task.
    """
    name = run_info.name_root(descriptor)
    paths = task_paths(run, descriptor)
    tmp_dir = _tmp_dir(run.archive_path, name)
    logger.info("  %s using p4 template %s" % (name, template_name(decision)))
    cmds = [Cmd("mkdir", "-p", tmp_dir),
            Cmd("cd", tmp_dir),
            vtfp_command(descriptor, decision, refs, run_refs, paths, run, tools),
            Cmd(VIV, "-s", "-x", "-v", "3", "-o", "viv_%s.log" % name, "run_%s.json" % name)]
    cmds.extend(qc_commands(descriptor, decision, paths))
    return chain(cmds)
