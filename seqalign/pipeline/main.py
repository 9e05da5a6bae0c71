"""Generate and submit the alignment array job for a run.

A generation pass decides the analysis for every lane or plex, builds its
command and collects the commands by array index. Nothing is submitted until
every command has been built, so a conflict in any lane or plex stops the
pass before the scheduler is contacted.
"""
from collections import namedtuple
import contextlib
import json
import sys

from seqalign import log
from seqalign.distributed import argstore, jobindex, lsf, submit
from seqalign.log import logger
from seqalign.pipeline import alignment, config_utils, decision, genome, run_info

GenerationResult = namedtuple("GenerationResult", ["store", "request", "using_alt_reference"])

def _tools(config):
    return dict((k, config_utils.get_tool(k, config)) for k in config_utils.TOOL_DEFAULTS)

def prepare(run, lanes, config, resolvers=None, positions=None, timestamp=None,
            dependency=None):
    """Decide and build commands for all requested positions without submitting.

    Returns None when there is nothing to do.
    """
    if resolvers is None:
        resolvers = genome.get_resolvers(config_utils.get_repository(config))
    run_refs = genome.RunReferences(resolvers.reference)
    tools = _tools(config)
    store = argstore.ArgumentStore(run.input_path,
                                   submit.job_name_root(run.id_run, timestamp))
    using_alt_reference = False
    for descriptor in run_info.descriptors(run, lanes, positions):
        lstring = run_info.to_string(descriptor)
        ji = jobindex.job_index(descriptor.position, descriptor.tag_index)
        refs = genome.SampleReferences(descriptor, resolvers, lstring)
        d = decision.decide(descriptor, run, refs)
        store.add(ji, alignment.alignment_command(descriptor, d, refs, run_refs, run, tools))
        using_alt_reference = using_alt_reference or d.alt_reference
    if not store:
        logger.debug("Nothing to do")
        return None
    request = submit.build_request(store, run.archive_path, config, dependency)
    return GenerationResult(store, request, using_alt_reference)

def generate(run, lanes, config, resolvers=None, positions=None, timestamp=None,
             dependency=None, scheduler=lsf):
    """Run a generation pass, returning a tuple of submitted job ids.
    """
    result = prepare(run, lanes, config, resolvers, positions, timestamp, dependency)
    if result is None:
        return ()
    logger.info("Submitting %s alignment tasks: %s"
                % (len(result.store), submit.format_submission(result.request)))
    job_id = submit.submit(result.request, result.store, scheduler)
    return (job_id,)

def add_subparser(subparsers):
    parser = subparsers.add_parser("generate", help="Generate and submit the alignment array job for a run")
    parser.add_argument("global_config", help="YAML configuration file specifying details about the system")
    parser.add_argument("run_config", help="YAML file describing the run, its lanes and plexes")
    parser.add_argument("-p", "--positions", type=int, nargs="*",
                        help="Lane positions to process (default: all lanes in the run)")
    parser.add_argument("--timestamp", help="Time stamp used in the job name (default: now)")
    parser.add_argument("-w", "--dependency",
                        help="LSF dependency expression the array job waits on, e.g. 'done(123)'")
    parser.add_argument("--dry-run", action="store_true", default=False,
                        help="Print the commands and submission without submitting")
    return parser

def run_generate(args, scheduler=lsf, out_handle=None):
    """Commandline entry: load configuration and run information then generate.
    """
    config = config_utils.load_config(args.global_config)
    with contextlib.closing(log.setup_local_logging(config)):
        run, lanes = run_info.load_run(args.run_config, config)
        if args.dry_run:
            result = prepare(run, lanes, config, positions=args.positions,
                             timestamp=args.timestamp, dependency=args.dependency)
            if result is not None:
                out_handle = out_handle or sys.stdout
                json.dump(result.store.manifest(), out_handle, indent=2)
                out_handle.write("\n%s\n" % submit.format_submission(result.request))
            return ()
        return generate(run, lanes, config, positions=args.positions, timestamp=args.timestamp,
                        dependency=args.dependency, scheduler=scheduler)
