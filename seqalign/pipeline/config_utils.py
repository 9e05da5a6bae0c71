"""Loads configurations from .yaml files and expands environment variables.
"""
import copy
import os

import toolz as tz
import yaml

# Defaults for the seq_alignment array job, overridable in the
# resources: seq_alignment: section of the system configuration.
SEQ_ALIGNMENT_DEFAULTS = {"slots": "12,16",
                          "memory": 32000,
                          "hosts": 1,
                          "fs_slots": 4,
                          "fs_resource": None}

DEFAULT_QUEUE = "normal"

TOOL_DEFAULTS = {"alignment_filter_jar": "AlignmentFilter.jar",
                 "split_bam_by_chromosomes_jar": "SplitBamByChromosomes.jar"}

def load_config(config_file):
    """Load YAML config file, replacing environmental variables.
    """
    with open(config_file) as in_handle:
        config = yaml.safe_load(in_handle) or {}
    config = _expand_paths(config)
    if 'resources' not in config:
        config['resources'] = {}
    # lowercase resource names, the preferred way to specify, for back-compatibility
    newr = {}
    for k, v in config["resources"].items():
        if k.lower() != k:
            newr[k.lower()] = v
    config["resources"].update(newr)
    return config

def _expand_paths(config):
    for field, setting in config.items():
        if isinstance(config[field], dict):
            config[field] = _expand_paths(config[field])
        else:
            config[field] = expand_path(setting)
    return config

def expand_path(path):
    """ Combines os.path.expandvars with replacing ~ with $HOME.
    """
    try:
        return os.path.expandvars(path.replace("~", "$HOME"))
    except AttributeError:
        return path

def get_resources(name, config):
    """Retrieve resources for a program, pulling from multiple config sources.
    """
    return tz.get_in(["resources", name], config,
                     tz.get_in(["resources", "default"], config, {}))

def seq_alignment_resources(config):
    """Resource requirements for the alignment array job, filled with defaults.
    """
    out = copy.deepcopy(SEQ_ALIGNMENT_DEFAULTS)
    for k, v in get_resources("seq_alignment", config).items():
        if v is not None:
            out[k] = v
    return out

def get_tool(name, config):
    """Location of a helper jar or executable passed through to the pipeline templates.
    """
    return tz.get_in(["tools", name], config, TOOL_DEFAULTS.get(name))

def get_queue(config):
    return tz.get_in(["lsf", "queue"], config, DEFAULT_QUEUE)

def get_repository(config):
    return config.get("repository")
