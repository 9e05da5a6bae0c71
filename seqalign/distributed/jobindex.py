"""Array job indices for lanes and plexes.

A lane uses its position as index; a plex packs the position and a four
digit tag index together, so lane 3 tag 2 is 30002.
"""
TAG_SPACE = 10000

class JobIndexError(ValueError):
    pass

def job_index(position, tag_index=None):
    if not position:
        raise JobIndexError("Position undefined or zero")
    # lane indices stay below the smallest plex index
    if not 0 < int(position) < TAG_SPACE:
        raise JobIndexError("Position %s outside 1-%s" % (position, TAG_SPACE - 1))
    if tag_index is None:
        return int(position)
    if not 0 <= int(tag_index) < TAG_SPACE:
        raise JobIndexError("Tag index %s outside 0-%s for position %s"
                            % (tag_index, TAG_SPACE - 1, position))
    return int(position) * TAG_SPACE + int(tag_index)

def decode_job_index(ji, is_plex=None):
    """Position and tag index for an array index.

    Lane positions stay far below the tag space, so anything at or above it
    is a plex unless is_plex says otherwise.
    """
    ji = int(ji)
    if is_plex is None:
        is_plex = ji >= TAG_SPACE
    if is_plex:
        return ji // TAG_SPACE, ji % TAG_SPACE
    return ji, None

def array_string(indices):
    """LSF array specification collapsing consecutive runs: [1,3-5,30001-30002].
    """
    indices = sorted(set(int(x) for x in indices))
    if not indices:
        return ""
    ranges = []
    start = prev = indices[0]
    for ji in indices[1:]:
        if ji == prev + 1:
            prev = ji
            continue
        ranges.append((start, prev))
        start = prev = ji
    ranges.append((start, prev))
    return "[%s]" % ",".join(str(s) if s == e else "%s-%s" % (s, e) for s, e in ranges)
