#!/usr/bin/env python
"""Generate and submit alignment array jobs for a sequencing run.

Usage:
  seqalign_nextgen.py generate <config_file> <run_info_yaml> [-p 1 2 ...] [--dry-run]
     Decide the analysis for every lane or plex, write the per task commands
     and submit one held LSF array job, released once the commands are saved.

  seqalign_nextgen.py runfn <argument_root>
     Executed inside each array task: look up and run this task's command.
"""
import argparse
import sys

from seqalign import log, version
from seqalign.distributed import argstore, lsf, runfn
from seqalign.log import logger
from seqalign.pipeline import decision, genome, main as pipeline_main
from seqalign.distributed.jobindex import JobIndexError

def parse_cl_args(in_args):
    """Parse input commandline arguments into the sub-command and its arguments.
    """
    sub_cmds = {"generate": pipeline_main.add_subparser,
                "runfn": runfn.add_subparser}
    description = "Alignment array job generation for sequencing runs."
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("-v", "--version", help="Print current version",
                        action="store_true")
    subparsers = parser.add_subparsers(dest="sub_cmd", help="seqalign commands")
    for add_fn in sub_cmds.values():
        add_fn(subparsers)
    args = parser.parse_args(in_args)
    if args.version:
        print(version.__version__)
        sys.exit(0)
    if not args.sub_cmd:
        parser.print_help()
        sys.exit(1)
    return args

if __name__ == "__main__":
    args = parse_cl_args(sys.argv[1:])
    try:
        if args.sub_cmd == "runfn":
            log.setup_local_logging()
            runfn.run(args)
        else:
            job_ids = pipeline_main.run_generate(args)
            if job_ids:
                print(" ".join(job_ids))
    except (decision.DecisionConflict, genome.ResolutionError, JobIndexError,
            argstore.ArgumentStoreError, lsf.SubmissionError) as e:
        logger.error(str(e))
        sys.stderr.write("%s\n" % e)
        sys.exit(1)
