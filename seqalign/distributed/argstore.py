"""Per array index command lines, handed to array tasks through a JSON file.

A single array submission carries one generic command. Each task looks up
its own command in a file named from the job name root and the scheduler
job id:

  <input_path>/<job_name_root>_<job_id>  ->  {"30001": "mkdir -p ...", ...}
"""
import collections
import io
import json
import os

from seqalign.distributed.transaction import file_transaction
from seqalign.log import logger

class ArgumentStoreError(IOError):
    pass

def file_name(root, job_id):
    return "%s_%s" % (root, job_id)

class ArgumentStore(object):
    """Commands collected during one generation pass, keyed by array index.
    """
    def __init__(self, input_path, job_name_root):
        self.input_path = input_path
        self.job_name_root = job_name_root
        self._args = collections.OrderedDict()

    @property
    def root(self):
        return os.path.join(self.input_path, self.job_name_root)

    def add(self, ji, command):
        ji = int(ji)
        if ji in self._args:
            raise ArgumentStoreError("Duplicate array index %s in %s" % (ji, self.job_name_root))
        self._args[ji] = command

    def indices(self):
        return sorted(self._args.keys())

    def manifest(self):
        return collections.OrderedDict((str(ji), self._args[ji]) for ji in self.indices())

    def __len__(self):
        return len(self._args)

    def __bool__(self):
        return len(self._args) > 0

    def file_name(self, job_id):
        return file_name(self.root, job_id)

    def save(self, job_id):
        """Write the whole manifest once the scheduler job id is known.
        """
        out_file = self.file_name(job_id)
        try:
            with file_transaction(out_file) as tx_out_file:
                with io.open(tx_out_file, "w", encoding="utf-8") as out_handle:
                    json.dump(self.manifest(), out_handle, ensure_ascii=False)
        except (IOError, OSError) as e:
            raise ArgumentStoreError("Could not write arguments to %s: %s" % (out_file, e))
        logger.debug("Arguments written to %s" % out_file)
        return out_file

def load_manifest(fname):
    try:
        with io.open(fname, encoding="utf-8") as in_handle:
            return json.load(in_handle)
    except (IOError, OSError, ValueError) as e:
        raise ArgumentStoreError("Could not read arguments from %s: %s" % (fname, e))

def lookup(fname, ji):
    """Command stored for an array index, failing when there is no entry.
    """
    manifest = load_manifest(fname)
    try:
        return manifest[str(int(ji))]
    except KeyError:
        raise ArgumentStoreError("No command for array index %s in %s" % (ji, fname))
