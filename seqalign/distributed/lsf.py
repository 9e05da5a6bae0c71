"""Commandline interaction with LSF schedulers.
"""
import re
import subprocess

from seqalign.log import logger_cl
from seqalign.provenance.cmdline import Cmd

_jobid_pat = re.compile(r"Job <(?P<jobid>\d+)> is")

# Environment of a running array task
JOB_ID_ENV = "LSB_JOBID"
JOB_INDEX_ENV = "LSB_JOBINDEX"
ARRAY_INDEX_LOG = "%I"
JOB_ID_LOG = "%J"

class SubmissionError(RuntimeError):
    pass

def _check_output(cl):
    logger_cl.debug(Cmd(*cl).to_shell())
    try:
        return subprocess.check_output(cl, stderr=subprocess.STDOUT).decode()
    except (subprocess.CalledProcessError, OSError) as e:
        output = getattr(e, "output", None)
        if output:
            output = output.decode(errors="replace").strip()
        raise SubmissionError("%s failed: %s%s" % (cl[0], e, " (%s)" % output if output else ""))

def submit_job(scheduler_args, command, hold=False):
    """Submit a job to the scheduler, returning the supplied job ID.

    Held jobs wait for resume_job before any task is dispatched.
    """
    cl = ["bsub"] + (["-H"] if hold else []) + scheduler_args + command
    status = _check_output(cl)
    match = _jobid_pat.search(status)
    if not match:
        raise SubmissionError("Could not find job id in bsub output: %s" % status.strip())
    return match.group("jobid")

def resume_job(jobid):
    _check_output(["bresume", str(jobid)])

def stop_job(jobid):
    _check_output(["bkill", str(jobid)])
