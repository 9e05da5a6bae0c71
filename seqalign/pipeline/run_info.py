"""Retrieve run information describing lanes and plexes to align.

Sample tracking lives in an external LIMS; this reads the exported YAML run
description:

  id_run: 1234
  flowcell_id: H7BCBBCXX
  paired_read: true
  indexed: true
  read_cycle_counts: [101, 8, 101]
  lanes:
    - position: 1
      library_type: Standard
      reference_genome: Homo_sapiens (1000Genomes_hs37d5)
      spiked_phix_tag_index: 168
      plexes:
        - tag_index: 1
          library_type: RNA PolyA
"""
import collections
import os

import toolz as tz
import yaml

from seqalign.log import logger
from seqalign.pipeline import config_utils

# Identity plus per lane/plex flags controlling the analysis.
LaneOrPlexDescriptor = collections.namedtuple(
    "LaneOrPlexDescriptor",
    ["id_run", "position", "tag_index", "library_type", "reference_genome", "is_pool",
     "alignments_in_bam", "contains_nonconsented_xahuman", "separate_y_chromosome_data",
     "contains_nonconsented_human", "spiked_phix", "bait_name", "sample_name"])

RunContext = collections.namedtuple(
    "RunContext",
    ["id_run", "paired_read", "indexed", "gclp", "hiseqx", "flowcell_id",
     "read_cycle_counts", "input_path", "archive_path", "qc_path"])

Lane = collections.namedtuple("Lane", ["descriptor", "plexes", "spiked_phix_tag_index"])

# Fields a plex inherits from its lane when not set in the plex itself.
INHERITED = ["library_type", "reference_genome", "alignments_in_bam",
             "contains_nonconsented_xahuman", "separate_y_chromosome_data",
             "contains_nonconsented_human", "bait_name"]

def name_root(descriptor):
    """Lane/plex identity used in file names and messages: 1234_3 or 1234_3#2.
    """
    out = "%s_%s" % (descriptor.id_run, descriptor.position)
    if descriptor.tag_index is not None:
        out += "#%s" % descriptor.tag_index
    return out

def to_string(descriptor):
    out = "id_run %s position %s" % (descriptor.id_run, descriptor.position)
    if descriptor.tag_index is not None:
        out += " tag_index %s" % descriptor.tag_index
    return out

def _descriptor(id_run, position, tag_index, info, spiked_phix=False, is_pool=False):
    return LaneOrPlexDescriptor(
        id_run=id_run, position=position, tag_index=tag_index,
        library_type=info.get("library_type") or "",
        reference_genome=info.get("reference_genome") or "",
        is_pool=is_pool,
        alignments_in_bam=bool(info.get("alignments_in_bam", True)),
        contains_nonconsented_xahuman=bool(info.get("contains_nonconsented_xahuman", False)),
        separate_y_chromosome_data=bool(info.get("separate_y_chromosome_data", False)),
        contains_nonconsented_human=bool(info.get("contains_nonconsented_human", False)),
        spiked_phix=spiked_phix,
        bait_name=info.get("bait_name"),
        sample_name=info.get("sample_name"))

def _lane_from_info(id_run, info):
    position = info.get("position")
    plex_info = info.get("plexes") or []
    spike_tag = info.get("spiked_phix_tag_index")
    lane = _descriptor(id_run, position, None, info, is_pool=bool(plex_info))
    plexes = collections.OrderedDict()
    for pinfo in plex_info:
        merged = dict((k, info.get(k)) for k in INHERITED if k in info)
        merged.update(pinfo)
        tag_index = pinfo["tag_index"]
        plexes[tag_index] = _descriptor(id_run, position, tag_index, merged,
                                        spiked_phix=spike_tag is not None and spike_tag == tag_index)
    # tag zero holds reads that failed to deplex, analysed with lane-level settings
    if plexes and 0 not in plexes:
        plexes[0] = _descriptor(id_run, position, 0, info)
    return Lane(lane, plexes, spike_tag)

def load_run(run_file, config=None, base_dir=None):
    """Read a YAML run description, returning the run context and lanes by position.
    """
    if config is None: config = {}
    with open(run_file) as in_handle:
        info = yaml.safe_load(in_handle)
    if not info or "id_run" not in info:
        raise ValueError("Run information in %s missing id_run" % run_file)
    return parse_run(info, config, base_dir or os.path.dirname(os.path.abspath(run_file)))

def parse_run(info, config, base_dir):
    id_run = info["id_run"]
    paths = info.get("paths", {})
    archive_path = config_utils.expand_path(paths.get("archive", os.path.join(base_dir, "archive")))
    run = RunContext(
        id_run=id_run,
        paired_read=bool(info.get("paired_read", True)),
        indexed=bool(info.get("indexed", False)),
        gclp=bool(tz.get_in(["overrides", "gclp"], config, info.get("gclp", False))),
        hiseqx=bool(info.get("hiseqx", False)),
        flowcell_id=info.get("flowcell_id") or "",
        read_cycle_counts=[int(x) for x in info.get("read_cycle_counts", [])],
        input_path=config_utils.expand_path(paths.get("input", os.path.join(base_dir, "input"))),
        archive_path=archive_path,
        qc_path=config_utils.expand_path(paths.get("qc", os.path.join(archive_path, "qc"))))
    lanes = collections.OrderedDict()
    for linfo in info.get("lanes", []):
        lane = _lane_from_info(id_run, linfo)
        lanes[lane.descriptor.position] = lane
    return run, lanes

def descriptors(run, lanes, positions=None):
    """Descriptors to analyse for the requested positions.

    Plex level analysis happens when the run has an index read and the LIMS
    holds pool information; otherwise the lane is analysed as a whole.
    """
    if positions is None:
        positions = list(lanes.keys())
    for position in positions:
        lane = lanes.get(position)
        if not lane:
            logger.debug("No lims object for position %s" % position)
            continue
        if run.indexed and lane.descriptor.is_pool:
            for tag_index in sorted(lane.plexes.keys()):
                yield lane.plexes[tag_index]
        else:
            yield lane.descriptor
