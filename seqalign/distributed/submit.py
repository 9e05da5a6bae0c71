"""Build and submit the alignment array job.

One array submission covers every lane or plex of a generation pass. All
tasks run the same generic wrapper, which looks up its own command in the
argument store file. The array is submitted held and only released after
that file has been written, so no task can start without its command.
"""
from collections import namedtuple
import os

from seqalign import utils
from seqalign.distributed import jobindex, lsf
from seqalign.log import logger
from seqalign.pipeline import config_utils
from seqalign.provenance.cmdline import Cmd

WRAPPER = "seqalign_nextgen.py"
JOB_NAME_PREFIX = "seq_alignment"

SubmissionRequest = namedtuple("SubmissionRequest",
                               ["job_name", "job_indices", "resources", "log_template",
                                "queue", "dependency", "pre_exec", "command"])

def job_name_root(id_run, timestamp=None):
    return "_".join([JOB_NAME_PREFIX, str(id_run), timestamp or utils.timestamp()])

def memory_spec(memory):
    memory = int(memory)
    return ["-M%s" % memory, "-R", "select[mem>%s] rusage[mem=%s]" % (memory, memory)]

def resource_args(config):
    """LSF resource arguments: memory, host span, slot range and file-system counter.
    """
    res = config_utils.seq_alignment_resources(config)
    out = memory_spec(res["memory"])
    out += ["-R", "span[hosts=%s]" % res["hosts"], "-n%s" % res["slots"]]
    if res.get("fs_resource"):
        out += ["-R", "rusage[%s=%s]" % (res["fs_resource"], res["fs_slots"])]
    return out

def wrapper_command(argument_root):
    """Generic task command; job id and array index come from the task environment.
    """
    return [WRAPPER, "runfn", argument_root]

def build_request(store, archive_path, config, dependency=None):
    log_dir = utils.safe_makedir(os.path.join(archive_path, "log"))
    log_template = os.path.join(log_dir, "%s.%s.%s.out" % (store.job_name_root, lsf.ARRAY_INDEX_LOG,
                                                          lsf.JOB_ID_LOG))
    indices = store.indices()
    return SubmissionRequest(job_name=store.job_name_root + jobindex.array_string(indices),
                             job_indices=indices,
                             resources=resource_args(config),
                             log_template=log_template,
                             queue=config_utils.get_queue(config),
                             dependency=dependency,
                             pre_exec=(config.get("lsf") or {}).get("pre_exec"),
                             command=wrapper_command(store.root))

def scheduler_args(request):
    out = ["-q", request.queue]
    if request.pre_exec:
        out += ["-E", request.pre_exec]
    out += request.resources
    if request.dependency:
        out += ["-w", request.dependency]
    out += ["-J", request.job_name, "-o", request.log_template]
    return out

def format_submission(request, hold=True):
    """Shell form of the submission, for logging and dry runs.
    """
    return Cmd(*(["bsub"] + (["-H"] if hold else []) + scheduler_args(request)
                 + request.command)).to_shell()

def submit(request, store, scheduler=lsf):
    """Submit held, write the argument file under the new job id, then release.

    A failure to write the arguments or to release the job kills the held
    job, so no task ever runs without its command and no held job is left
    behind for a retry to duplicate.
    """
    job_id = scheduler.submit_job(scheduler_args(request), request.command, hold=True)
    logger.info("Submitted held array job %s %s" % (job_id, request.job_name))
    try:
        store.save(job_id)
    except Exception:
        logger.error("Killing held job %s, arguments not saved" % job_id)
        scheduler.stop_job(job_id)
        raise
    try:
        scheduler.resume_job(job_id)
    except Exception:
        logger.error("Killing held job %s, could not release it" % job_id)
        scheduler.stop_job(job_id)
        raise
    logger.info("Released array job %s" % job_id)
    return job_id
