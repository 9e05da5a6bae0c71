"""Find reference genome, transcriptome and bait files in a reference repository.

The repository follows the layout used by the sequencing pipelines:

  <repository>/references/<Species>/<build>/all/<aligner>/<files>
  <repository>/transcriptomes/<Species>/<annotation>/<build>/tophat2/<files>
  <repository>/baits/<bait name>/<build>/<files>

Lookups never raise for missing or ambiguous matches. They return explicit
result values which callers log and turn into a path or None, so a bad
reference only disables features for one lane or plex.
"""
from collections import namedtuple
import os
import re

from seqalign.log import logger

REFERENCES_DIR = "references"
TRANSCRIPTOMES_DIR = "transcriptomes"
BAITS_DIR = "baits"
DEFAULT_BUILD = "default"

HUMAN_SPECIES = "Homo_sapiens"
PHIX_SPECIES = "PhiX"

# Suffix identifying one reference inside an aligner directory, and whether the
# suffix is stripped to give the path passed to the aligner.
INDEX_SUFFIXES = {"fasta": ((".fa", ".fasta", ".fna"), False),
                  "picard": ((".dict",), True),
                  "bwa0_6": ((".bwt",), True),
                  "bowtie2": ((".1.bt2",), True),
                  "tophat2": ((".1.bt2",), True)}

_genome_pat = re.compile(r"^\s*(?P<species>\S+)(?:\s*\((?P<build>[^)]*)\))?\s*$")

RefQuery = namedtuple("RefQuery", ["species", "build", "aligner"])

class Resolved(namedtuple("Resolved", ["query", "path"])):
    ok = True

    def describe(self):
        return "Reference set for %s: %s" % (_query_str(self.query), self.path)

class NoMatch(namedtuple("NoMatch", ["query"])):
    ok = False

    def describe(self):
        return "No reference found for %s" % _query_str(self.query)

class Ambiguous(namedtuple("Ambiguous", ["query", "paths"])):
    ok = False

    def describe(self):
        return "Multiple references for %s: %s" % (_query_str(self.query), ", ".join(self.paths))

class ResolverFailure(namedtuple("ResolverFailure", ["query", "error"])):
    ok = False

    def describe(self):
        return "Error getting reference for %s: %s" % (_query_str(self.query), self.error)

class ResolutionError(ValueError):
    """A run-wide reference needed by every task could not be found.
    """
    pass

def _query_str(query):
    if isinstance(query, RefQuery):
        return "%s %s (%s)" % (query.species, query.build or DEFAULT_BUILD, query.aligner)
    return str(query)

def parse_reference_genome(reference_genome):
    """Split a LIMS reference string into species, build and transcriptome annotation.

    'Homo_sapiens (1000Genomes_hs37d5 + ensembl_75_transcriptome)'
      -> ('Homo_sapiens', '1000Genomes_hs37d5', 'ensembl_75_transcriptome')
    """
    if not reference_genome:
        return None, None, None
    match = _genome_pat.match(reference_genome)
    if not match:
        return None, None, None
    species = match.group("species")
    build, annotation = None, None
    if match.group("build"):
        parts = [x.strip() for x in match.group("build").split("+")]
        build = parts[0] or None
        if len(parts) > 1:
            annotation = parts[1] or None
    return species, build, annotation

def is_human(reference_genome):
    return bool(reference_genome) and re.search(HUMAN_SPECIES, reference_genome) is not None

def _candidates(dirname, aligner):
    suffixes, strip = INDEX_SUFFIXES.get(aligner, ((), False))
    out = []
    for fname in sorted(os.listdir(dirname)):
        if fname.startswith("."):
            continue
        if not suffixes:
            out.append(os.path.join(dirname, fname))
            continue
        for suffix in suffixes:
            # bowtie2 reverse indexes share the forward suffix
            if fname.endswith(suffix) and not fname.endswith(".rev" + suffix):
                out.append(os.path.join(dirname, fname[:-len(suffix)] if strip else fname))
                break
    return out

def resolution_path(result, lstring=None):
    """Log a lookup result at the severity it deserves, returning the path or None.
    """
    prefix = "%s - " % lstring if lstring else ""
    if isinstance(result, Resolved):
        logger.info(prefix + result.describe())
        return result.path
    elif isinstance(result, NoMatch):
        logger.warning(prefix + result.describe())
    else:
        logger.error(prefix + result.describe())
    return None

class ReferenceResolver(object):
    """Resolve reference files for a species, build and aligner within a repository.
    """
    def __init__(self, repository):
        self.repository = repository

    def _check_repository(self):
        if not self.repository:
            raise ValueError("Reference repository not configured")
        if not os.path.isdir(self.repository):
            raise IOError("Reference repository %s does not exist" % self.repository)

    def reference_dir(self, query):
        return os.path.join(self.repository, REFERENCES_DIR, query.species,
                            query.build or DEFAULT_BUILD, "all", query.aligner)

    def resolve(self, query):
        """Return all matching reference paths for a query, possibly empty.
        """
        self._check_repository()
        dirname = self.reference_dir(query)
        if not os.path.isdir(dirname):
            return []
        return _candidates(dirname, query.aligner)

    def lookup(self, query):
        try:
            paths = self.resolve(query)
        except (IOError, OSError, ValueError) as e:
            return ResolverFailure(query, e)
        if not paths:
            return NoMatch(query)
        elif len(paths) > 1:
            return Ambiguous(query, paths)
        return Resolved(query, paths[0])

    def lookup_genome(self, reference_genome, aligner):
        species, build, _ = parse_reference_genome(reference_genome)
        if not species:
            return NoMatch(reference_genome or "empty reference genome")
        return self.lookup(RefQuery(species, build, aligner))

class TranscriptomeResolver(ReferenceResolver):
    """Find the tophat2 transcriptome index named by a reference genome annotation.
    """
    aligner = "tophat2"

    def transcriptome_dir(self, species, build, annotation):
        return os.path.join(self.repository, TRANSCRIPTOMES_DIR, species, annotation,
                            build or DEFAULT_BUILD, self.aligner)

    def lookup_genome(self, reference_genome, aligner=None):
        species, build, annotation = parse_reference_genome(reference_genome)
        query = "%s transcriptome" % (reference_genome or "empty reference genome")
        if not species or not annotation:
            return NoMatch(query)
        try:
            self._check_repository()
            dirname = self.transcriptome_dir(species, build, annotation)
            paths = _candidates(dirname, self.aligner) if os.path.isdir(dirname) else []
        except (IOError, OSError, ValueError) as e:
            return ResolverFailure(query, e)
        if not paths:
            return NoMatch(query)
        elif len(paths) > 1:
            return Ambiguous(query, paths)
        return Resolved(query, paths[0])

class BaitResolver(ReferenceResolver):
    """Find the bait interval list for a bait name and reference build.
    """
    suffix = ".bait.interval_list"

    def lookup_bait(self, bait_name, reference_genome):
        _, build, _ = parse_reference_genome(reference_genome)
        query = "bait %s" % bait_name
        if not bait_name:
            return NoMatch(query)
        try:
            self._check_repository()
            dirname = os.path.join(self.repository, BAITS_DIR, bait_name, build or DEFAULT_BUILD)
            paths = ([os.path.join(dirname, x) for x in sorted(os.listdir(dirname))
                      if x.endswith(self.suffix)]
                     if os.path.isdir(dirname) else [])
        except (IOError, OSError, ValueError) as e:
            return ResolverFailure(query, e)
        if not paths:
            return NoMatch(query)
        elif len(paths) > 1:
            return Ambiguous(query, paths)
        return Resolved(query, paths[0])

Resolvers = namedtuple("Resolvers", ["reference", "transcriptome", "bait"])

def get_resolvers(repository):
    return Resolvers(ReferenceResolver(repository), TranscriptomeResolver(repository),
                     BaitResolver(repository))

class SampleReferences(object):
    """Per lane/plex access to resolved reference files.

    Each aligner directory is looked up once and the outcome logged once,
    so repeated questions from the decision rules and command generation
    do not repeat warnings.
    """
    def __init__(self, descriptor, resolvers, lstring=None):
        self.descriptor = descriptor
        self.resolvers = resolvers
        self.lstring = lstring or str(descriptor.reference_genome)
        self._cache = {}

    def _memo(self, key, fn):
        if key not in self._cache:
            self._cache[key] = resolution_path(fn(), self.lstring)
        return self._cache[key]

    def get(self, aligner):
        return self._memo(aligner, lambda: self.resolvers.reference.lookup_genome(
            self.descriptor.reference_genome, aligner))

    @property
    def transcriptome(self):
        return self._memo("transcriptome", lambda: self.resolvers.transcriptome.lookup_genome(
            self.descriptor.reference_genome))

    @property
    def bait_intervals(self):
        return self._memo("bait", lambda: self.resolvers.bait.lookup_bait(
            self.descriptor.bait_name, self.descriptor.reference_genome))

    def is_alt_reference(self):
        """An alt allele reference ships a bwa <ref>.alt file next to its index.
        """
        bwa_ref = self.get("bwa0_6")
        return bool(bwa_ref) and os.path.exists(bwa_ref + ".alt")

def default_human_split_ref(resolver, aligner):
    """Human reference used to split out human reads, independent of the sample species.
    """
    result = resolver.lookup(RefQuery(HUMAN_SPECIES, None, aligner))
    path = resolution_path(result, "human split")
    if path is None:
        raise ResolutionError("Could not find default human %s reference: %s"
                              % (aligner, result.describe()))
    if aligner == "picard":
        path += ".dict"
    return path

def phix_reference(resolver):
    result = resolver.lookup(RefQuery(PHIX_SPECIES, None, "fasta"))
    path = resolution_path(result, "phiX")
    if path is None:
        raise ResolutionError("Could not find phiX reference: %s" % result.describe())
    return path

class RunReferences(object):
    """References shared by every task in a run: phiX and the default human split references.
    """
    def __init__(self, resolver):
        self.resolver = resolver
        self._phix = None
        self._human = {}

    @property
    def phix(self):
        if self._phix is None:
            self._phix = phix_reference(self.resolver)
        return self._phix

    def human(self, aligner):
        if aligner not in self._human:
            self._human[aligner] = default_human_split_ref(self.resolver, aligner)
        return self._human[aligner]
