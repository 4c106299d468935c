import logging
import math
from collections import Counter, defaultdict
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from opentelemetry import trace

from ..config import DEFAULT_CONFIG, WEIGHTINGS
from ..errors import InputError
from ..preprocessing.document import FileEntry
from ..preprocessing.preprocess import PreprocessingPipeline, create_pipeline
from ..preprocessing.tokenizer import RegexMatchTokenizer

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class SimilarityResult(NamedTuple):
    """A scored pair of files. ``first`` sorts before ``second`` unless both orderings were requested."""
    first: str
    second: str
    score: float
    size: int = 0


def _squared_norm(vec: Dict[str, float]) -> float:
    # Summed in key order so that dot(v, v) == norm(v)**2 bit for bit
    return sum(vec[term] ** 2 for term in sorted(vec))


def _cosine(vec1: Dict[str, float], norm1: float, vec2: Dict[str, float], norm2: float) -> float:
    if norm1 == 0 or norm2 == 0:
        return 0.0

    common_words = sorted(vec1.keys() & vec2.keys())
    dot_product = sum(vec1[word] * vec2[word] for word in common_words)

    similarity = dot_product / math.sqrt(norm1 * norm2)
    return min(1.0, max(0.0, similarity))


def compute_cosine_similarity(vec1: Dict[str, float], vec2: Dict[str, float]) -> float:
    """
    Compute cosine similarity between two term vectors.

    Args:
        vec1: First vector as a dictionary {term: weight}
        vec2: Second vector as a dictionary {term: weight}

    Returns:
        Cosine similarity in [0.0, 1.0]; 0.0 when either vector is empty
    """
    return _cosine(vec1, _squared_norm(vec1), vec2, _squared_norm(vec2))


def compute_tf(word_freq: Dict[str, int]) -> Dict[str, float]:
    """
    Compute logarithmic term frequency for each term.
    TF(t,d) = 1 + log10(f(t,d)) if f(t,d) > 0, else 0
    """
    tf_scores = {}
    for word, freq in word_freq.items():
        if freq > 0:
            tf_scores[word] = 1 + math.log10(freq)
        else:
            tf_scores[word] = 0
    return tf_scores


class DocumentFrequencies:
    """Number of entries each term occurs in, for IDF weighting."""

    def __init__(self):
        self.counts = Counter()
        self.document_count = 0

    def add(self, terms: Iterable):
        self.counts.update(set(terms))
        self.document_count += 1

    def get_inverse_document_frequency(self, word: str) -> float:
        """IDF(t) = log10(1 + N/DF(t)), positive even for terms in every entry"""
        df = self.counts.get(word, 0)
        if df == 0:
            return 0
        return math.log10(1 + self.document_count / df)


def compute_term_vector(word_freq: Dict[str, int], weighting: str = "count",
                        frequencies: Optional[DocumentFrequencies] = None) -> Dict[str, float]:
    """
    Turn raw term counts into a weighted term vector.

    Args:
        word_freq: Mapping term -> occurrences within one entry
        weighting: ``count`` (raw frequency), ``binary`` (presence) or
            ``tfidf`` (log TF times IDF over ``frequencies``)
        frequencies: Document frequencies, required for ``tfidf``

    Returns:
        Dictionary mapping terms to non-negative weights
    """
    if weighting == "count":
        return {word: float(freq) for word, freq in word_freq.items() if freq > 0}

    if weighting == "binary":
        return {word: 1.0 for word, freq in word_freq.items() if freq > 0}

    if weighting == "tfidf":
        if frequencies is None:
            raise InputError("tfidf weighting needs document frequencies")
        vector = {}
        for word, tf_score in compute_tf(word_freq).items():
            weight = tf_score * frequencies.get_inverse_document_frequency(word)
            if weight > 0:
                vector[word] = weight
        return vector

    raise InputError(f"Unknown weighting {weighting!r}, expected one of {', '.join(WEIGHTINGS)}")


class SimilarityRanker:
    """Ranks every pair of files by cosine similarity of their name terms."""

    def __init__(self, threshold: Optional[float] = None, top_k: Optional[int] = None,
                 weighting: str = "count", deduplicate: bool = False,
                 both_orderings: bool = False, workers: int = 1,
                 pipeline: PreprocessingPipeline = None):
        """
        Initialize the ranker.

        Args:
            threshold: Only pairs scoring strictly above this are reported;
                None reports every pair, including 0.0 scores
            top_k: Keep a pair only if it is among the K best pairs of at
                least one of its two files
            weighting: Term weighting scheme (count, binary, tfidf)
            deduplicate: Drop repeated names, keeping the first occurrence
            both_orderings: Emit (A, B) and (B, A) for every reported pair
            workers: Thread pool size for pair scoring
            pipeline: Preprocessing pipeline (defaults to lowercasing only)
        """
        if threshold is not None:
            if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
                raise InputError(f"threshold must be a number, got {threshold!r}")
            if not 0.0 <= threshold <= 1.0:
                raise InputError(f"threshold must be between 0 and 1, got {threshold}")
        if top_k is not None and (isinstance(top_k, bool) or not isinstance(top_k, int) or top_k < 1):
            raise InputError(f"top_k must be a positive integer, got {top_k!r}")
        if weighting not in WEIGHTINGS:
            raise InputError(f"Unknown weighting {weighting!r}, expected one of {', '.join(WEIGHTINGS)}")
        if not isinstance(workers, int) or workers < 1:
            raise InputError(f"workers must be a positive integer, got {workers!r}")

        self.threshold = threshold
        self.top_k = top_k
        self.weighting = weighting
        self.deduplicate = deduplicate
        self.both_orderings = both_orderings
        self.workers = workers
        self.pipeline = pipeline or create_pipeline(DEFAULT_CONFIG)
        self.tokenizer = RegexMatchTokenizer()

    @classmethod
    def from_config(cls, config: Dict, **overrides) -> 'SimilarityRanker':
        """Build a ranker from a configuration dictionary; keyword overrides win."""
        ranking = config.get("ranking", {})
        options = {
            "threshold": ranking.get("threshold"),
            "top_k": ranking.get("top_k"),
            "weighting": ranking.get("weighting", "count"),
            "deduplicate": ranking.get("deduplicate", False),
            "workers": ranking.get("workers", 1),
        }
        options.update(overrides)
        return cls(pipeline=create_pipeline(config), **options)

    def build_entries(self, names) -> List[FileEntry]:
        """
        Validate a sequence of file names and wrap each one in a FileEntry.

        Raises:
            InputError: if ``names`` is not a sequence or holds a non-string
        """
        if names is None or isinstance(names, (str, bytes)) or not isinstance(names, Iterable):
            raise InputError(f"Expected a list of file names, got {type(names).__name__}")

        entries = []
        for position, name in enumerate(names):
            if not isinstance(name, str):
                raise InputError(f"File name at position {position} is not a string: {name!r}")
            entries.append(FileEntry(name))
        return entries

    def rank(self, names) -> List[SimilarityResult]:
        """Rank a list of file name strings."""
        return self.rank_entries(self.build_entries(names))

    def rank_entries(self, entries: Sequence[FileEntry]) -> List[SimilarityResult]:
        """
        Score every pair of entries and return the reported pairs.

        Args:
            entries: File entries, e.g. from ``build_entries`` or a scan

        Returns:
            SimilarityResult list sorted by descending score, ties broken by
            the lexicographic order of the pair
        """
        with tracer.start_as_current_span("rank") as span:
            entries = list(entries)
            if self.deduplicate:
                entries = self._deduplicate(entries)

            span.set_attribute("similarity.entries", len(entries))
            span.set_attribute("similarity.weighting", self.weighting)
            if self.threshold is not None:
                span.set_attribute("similarity.threshold", self.threshold)

            logger.info("Generating similarity between %d entries", len(entries))
            if len(entries) < 2:
                span.set_attribute("similarity.pairs", 0)
                return []

            self.vectorize(entries)
            scored = self._score_pairs(entries)

            results = []
            for i, j, score in scored:
                if self.threshold is not None and score <= self.threshold:
                    continue
                a, b = entries[i], entries[j]
                first, second = sorted((a.name, b.name))
                results.append(SimilarityResult(first, second, score, a.size + b.size))

            results.sort(key=lambda r: (-r.score, r.first, r.second))

            if self.top_k is not None:
                results = self._limit_per_file(results)

            for result in results:
                logger.debug("match %s %s %.4f", result.first, result.second, result.score)

            if self.both_orderings:
                results = [
                    mirrored
                    for result in results
                    for mirrored in (result, result._replace(first=result.second, second=result.first))
                ]

            span.set_attribute("similarity.pairs", len(results))
            logger.info("Reporting %d pairs", len(results))
            return results

    def vectorize(self, entries: Sequence[FileEntry]) -> None:
        """Tokenize, preprocess and weight every entry in place."""
        for entry in entries:
            entry.tokenize(self.tokenizer).preprocess(self.pipeline)

        frequencies = None
        if self.weighting == "tfidf":
            frequencies = DocumentFrequencies()
            for entry in entries:
                frequencies.add(entry.get_terms())

        for entry in entries:
            entry.term_vector = compute_term_vector(entry.term_frequencies(), self.weighting, frequencies)
            if not entry.term_vector:
                logger.debug("%s produced no terms", entry.name)

    def _score_pairs(self, entries: Sequence[FileEntry]) -> List[Tuple[int, int, float]]:
        vectors = [entry.term_vector for entry in entries]
        norms = [_squared_norm(vec) for vec in vectors]

        def score_row(i):
            return [(i, j, _cosine(vectors[i], norms[i], vectors[j], norms[j]))
                    for j in range(i + 1, len(vectors))]

        rows = range(len(vectors) - 1)
        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                scored_rows = list(executor.map(score_row, rows))
        else:
            scored_rows = [score_row(i) for i in rows]

        return [pair for row in scored_rows for pair in row]

    def _limit_per_file(self, results: List[SimilarityResult]) -> List[SimilarityResult]:
        # Results are already sorted, so the first K sightings of a name are its best pairs
        seen = Counter()
        kept = []
        for result in results:
            if seen[result.first] < self.top_k or seen[result.second] < self.top_k:
                kept.append(result)
            seen[result.first] += 1
            seen[result.second] += 1
        return kept

    @staticmethod
    def _deduplicate(entries: List[FileEntry]) -> List[FileEntry]:
        unique = {}
        for entry in entries:
            unique.setdefault(entry.name, entry)
        if len(unique) < len(entries):
            logger.info("Dropped %d duplicate names", len(entries) - len(unique))
        return list(unique.values())


def group_by_file(results: Iterable[SimilarityResult]) -> Dict[str, List[Tuple[str, float]]]:
    """
    Per-file view of single-ordering results.

    Returns:
        {name: [(other_name, score), ...]} with each list in result order
    """
    grouped = defaultdict(list)
    for result in results:
        grouped[result.first].append((result.second, result.score))
        grouped[result.second].append((result.first, result.score))
    return dict(grouped)


def rank_names(names, threshold: Optional[float] = None, top_k: Optional[int] = None,
               **options) -> List[SimilarityResult]:
    """Rank file names with a one-off SimilarityRanker."""
    ranker = SimilarityRanker(threshold=threshold, top_k=top_k, **options)
    return ranker.rank(names)
