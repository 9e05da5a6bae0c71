"""Generic array task wrapper: find this task's command and execute it.

Runs inside each array task. The scheduler job id and array index are read
from the task environment, the argument file written at submission time is
opened and the stored command replaces the wrapper process.
"""
import os
import shutil

from seqalign.distributed import argstore, jobindex, lsf
from seqalign.log import logger

def add_subparser(subparsers):
    parser = subparsers.add_parser("runfn", help=("Run the stored command for this array task. "
                                                   "Used internally by submitted jobs."))
    parser.add_argument("argument_root", help="Argument file path without the job id suffix")
    parser.add_argument("--jobid", help="Scheduler job id, defaults to $%s" % lsf.JOB_ID_ENV)
    parser.add_argument("--jobindex", help="Array index, defaults to $%s" % lsf.JOB_INDEX_ENV)
    return parser

def find_bash():
    for test_bash in [shutil.which("bash"), "/bin/bash", "/usr/bin/bash", "/usr/local/bin/bash"]:
        if test_bash and os.path.exists(test_bash):
            return test_bash
    raise IOError("Could not find bash in any standard location")

def task_command(argument_root, job_id=None, ji=None, env=None):
    if env is None:
        env = os.environ
    job_id = job_id or env.get(lsf.JOB_ID_ENV)
    ji = ji or env.get(lsf.JOB_INDEX_ENV)
    if not job_id or not ji or ji == "0":
        raise argstore.ArgumentStoreError("Job id and array index not available: %s=%s %s=%s"
                                          % (lsf.JOB_ID_ENV, job_id, lsf.JOB_INDEX_ENV, ji))
    fname = argstore.file_name(argument_root, job_id)
    cmd = argstore.lookup(fname, ji)
    position, tag_index = jobindex.decode_job_index(ji)
    logger.info("Job %s index %s (position %s%s) running command from %s"
                % (job_id, ji, position, "" if tag_index is None else " tag %s" % tag_index, fname))
    return cmd

def run(args, execfn=os.execv):
    cmd = task_command(args.argument_root, args.jobid, args.jobindex)
    bash = find_bash()
    execfn(bash, [bash, "-c", cmd])
