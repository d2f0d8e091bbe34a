"""
Concurrent loading of allele count files into a shared AseResults store.
"""

import logging
import queue
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Optional, Set

from asemap.errors import AseError, IngestionError
from asemap.io.count_reader import CountRecord, read_counts
from asemap.io.variant_source import VariantSource
from asemap.results.ase_results import AseResults
from asemap.results.ase_variant import SampleObservation


logger = logging.getLogger(__name__)

# Seconds between liveness checks of the loader threads
POLL_INTERVAL = 0.5
REPORT_EVERY = 100


class AtomicCounter:
    """Integer counter shared between threads."""

    def __init__(self, value: int = 0) -> None:
        self._value = value
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def get(self) -> int:
        with self._lock:
            return self._value


class SampleRegistry:
    """Distinct sample IDs seen by any loader thread."""

    def __init__(self) -> None:
        self._samples: Set[str] = set()
        self._lock = threading.Lock()

    def add(self, sample_id: str) -> None:
        with self._lock:
            self._samples.add(sample_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    @property
    def samples(self) -> Set[str]:
        with self._lock:
            return set(self._samples)


class ReadCountsLoader:
    """
    Worker body: drain the shared file queue into the shared store.

    Parameters
    ----------
    file_queue : queue.Queue
        Paths still to be loaded, shared by all workers.
    results : AseResults
        Shared variant store.
    file_counter : AtomicCounter
        Incremented once per completed file.
    sample_registry : SampleRegistry
        Distinct (remapped) sample IDs encountered.
    reference : VariantSource, optional
        Reference genotype panel. When set, only observations from samples
        heterozygous at the variant in the panel are kept.
    sample_mapping : dict, optional
        Study sample ID -> reference sample ID, applied only together with
        ``reference``.
    min_total_reads : int
        Skip observations with fewer ref + alt reads.
    min_allele_reads : int
        Skip observations where either allele has fewer reads.
    abort : threading.Event, optional
        Set by the coordinator when another worker failed.
    reader : callable
        Per-file record reader, :func:`read_counts` by default.
    """

    def __init__(
        self,
        file_queue: "queue.Queue[str]",
        results: AseResults,
        file_counter: AtomicCounter,
        sample_registry: SampleRegistry,
        reference: Optional[VariantSource] = None,
        sample_mapping: Optional[Dict[str, str]] = None,
        min_total_reads: int = 0,
        min_allele_reads: int = 0,
        abort: Optional[threading.Event] = None,
        reader: Callable[[str], Iterable[CountRecord]] = read_counts,
    ) -> None:
        self.file_queue = file_queue
        self.results = results
        self.file_counter = file_counter
        self.sample_registry = sample_registry
        self.reference = reference
        self.sample_mapping = sample_mapping
        self.min_total_reads = min_total_reads
        self.min_allele_reads = min_allele_reads
        self.abort = abort if abort is not None else threading.Event()
        self.reader = reader

    def __call__(self) -> int:
        """Load files until the queue is empty; returns the number loaded."""
        loaded = 0
        while not self.abort.is_set():
            try:
                count_file = self.file_queue.get_nowait()
            except queue.Empty:
                break

            try:
                self.load_file(count_file)
            except AseError:
                raise
            except Exception as e:
                raise IngestionError(f"Error loading {count_file}: {e}", path=count_file) from e

            loaded += 1
            self.file_counter.increment()
        return loaded

    def resolve_sample(self, sample_id: str) -> str:
        # Study IDs are only translated into reference panel IDs
        if self.reference is None or self.sample_mapping is None:
            return sample_id
        return self.sample_mapping.get(sample_id, sample_id)

    def keep(self, record: CountRecord) -> bool:
        if record.ref_count + record.alt_count < self.min_total_reads:
            return False
        if min(record.ref_count, record.alt_count) < self.min_allele_reads:
            return False
        return True

    def load_file(self, count_file: str) -> None:
        logger.debug(f"Loading {count_file}")
        n_added = 0

        for record in self.reader(count_file):
            sample_id = self.resolve_sample(record.sample_id)
            self.sample_registry.add(sample_id)

            if not self.keep(record):
                continue

            variant_id = record.variant_id
            if self.reference is not None:
                if not self.reference.is_het(record.key, sample_id):
                    continue
                if variant_id is None:
                    variant_id = self.reference.variant_id(record.key)

            self.results.add_observation(
                record.key,
                SampleObservation(
                    sample_id=sample_id,
                    ref_count=record.ref_count,
                    alt_count=record.alt_count,
                    ref_base_quality=record.ref_base_quality,
                    alt_base_quality=record.alt_base_quality,
                ),
                variant_id=variant_id,
            )
            n_added += 1

        logger.debug(f"Loaded {n_added} observations from {count_file}")


def load_read_counts(
    count_files: List[str],
    results: AseResults,
    threads: int = 1,
    reference: Optional[VariantSource] = None,
    sample_mapping: Optional[Dict[str, str]] = None,
    min_total_reads: int = 0,
    min_allele_reads: int = 0,
    report: Optional[Callable[[str], None]] = None,
    reader: Callable[[str], Iterable[CountRecord]] = read_counts,
) -> SampleRegistry:
    """
    Load every count file into ``results`` using a pool of loader threads.

    Uses ``min(len(count_files), threads)`` workers. The calling thread
    wakes every POLL_INTERVAL seconds to report progress each time another
    REPORT_EVERY files have completed, and returns only once every worker
    has stopped.

    Returns
    -------
    SampleRegistry
        Distinct sample IDs encountered.

    Raises
    ------
    IngestionError
        If any worker failed. Remaining workers stop taking new files and
        no partial result is returned.
    """
    if report is None:
        report = logger.info

    file_queue: "queue.Queue[str]" = queue.Queue()
    for count_file in count_files:
        file_queue.put(str(count_file))

    total = len(count_files)
    n_workers = max(1, min(total, threads))
    file_counter = AtomicCounter()
    sample_registry = SampleRegistry()
    abort = threading.Event()

    loader = ReadCountsLoader(
        file_queue,
        results,
        file_counter,
        sample_registry,
        reference=reference,
        sample_mapping=sample_mapping,
        min_total_reads=min_total_reads,
        min_allele_reads=min_allele_reads,
        abort=abort,
        reader=reader,
    )

    logger.info(f"Loading {total} files using {n_workers} threads")
    next_report = REPORT_EVERY

    with ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="asemap-loader") as executor:
        futures = [executor.submit(loader) for _ in range(n_workers)]
        pending = set(futures)

        while pending:
            done, pending = wait(pending, timeout=POLL_INTERVAL, return_when=FIRST_EXCEPTION)

            while file_counter.get() >= next_report:
                report(f"Loaded {next_report:,} out of {total:,} files")
                next_report += REPORT_EVERY

            failed = [f for f in done if f.exception() is not None]
            if failed:
                abort.set()
                error = failed[0].exception()
                if isinstance(error, IngestionError):
                    raise error
                raise IngestionError(f"Fatal error in loader thread: {error}") from error

    return sample_registry
