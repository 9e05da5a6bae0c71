"""Handle file based transactions so readers never see a partial file.

Output files are written to a temporary location during processing and
moved to the final location when finished. The temporary directory sits
beside the final file, so the final move is a rename on the same filesystem.
"""
import contextlib
import os
import shutil
import tempfile

from seqalign import utils


DEFAULT_TMP = 'seqaligntx'


@contextlib.contextmanager
def tx_tmpdir(base_dir=None, remove=True):
    """Context manager to create and remove a transactional temporary directory.

    Creates a uniquely named directory inside base_dir/seqaligntx, defaulting
    to the current directory.
    """
    base_dir = base_dir or os.getcwd()
    tmpdir_base = utils.get_abspath(os.path.join(base_dir, DEFAULT_TMP))
    utils.safe_makedir(tmpdir_base)
    tmp_dir = tempfile.mkdtemp(dir=tmpdir_base)
    try:
        yield tmp_dir
    finally:
        if remove:
            utils.remove_safe(tmp_dir)
            _remove_if_empty(tmpdir_base)


def _remove_if_empty(dname):
    try:
        os.rmdir(dname)
    except OSError:
        pass


@contextlib.contextmanager
def file_transaction(*files):
    """Wrap file generation in a transaction, moving to output if finishes.
    """
    orig_names = [f for f in _flatten(files) if f]
    base_dir = os.path.dirname(os.path.abspath(orig_names[0]))
    utils.safe_makedir(base_dir)
    with tx_tmpdir(base_dir) as tmpdir:
        safe_names = [os.path.join(tmpdir, os.path.basename(f)) for f in orig_names]
        if len(safe_names) == 1:
            yield safe_names[0]
        else:
            yield tuple(safe_names)

        for safe, orig in zip(safe_names, orig_names):
            if os.path.exists(safe):
                _move_file_with_sizecheck(safe, orig)


def _move_file_with_sizecheck(tx_file, final_file):
    """Move transaction file to final location, with size checks avoiding failed transfers.
    """
    want_size = utils.get_size(tx_file)
    shutil.move(tx_file, final_file)
    transfer_size = utils.get_size(final_file)

    assert want_size == transfer_size, (
        'distributed.transaction.file_transaction: File copy error: '
        'file on temporary storage ({}) size {} bytes does not equal '
        'size of file after transfer ({}) size {} bytes'.format(
            tx_file, want_size, final_file, transfer_size)
    )


def _flatten(iterable):
    for elem in iterable:
        if isinstance(elem, (tuple, list)):
            for i in elem:
                yield i
        else:
            yield elem
