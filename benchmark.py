# benchmark.py
import collections
import csv
import json
import logging
import os
import threading
import time

from cache import CacheConfig, CacheModel, ConfigError
from tracefile import TraceError, open_trace

LOGGER = logging.getLogger(__name__)

CSV_HEADER = ["Trace File", "Cache Size (KB)", "Block Size (Bytes)", "Associativity", "Hit Rate (%)", "Miss Rate (%)"]

STATUS_OK = "ok"
STATUS_INVALID_CONFIG = "invalid_config"
STATUS_TRACE_ERROR = "trace_error"
STATUS_ERROR = "error"

DEFAULT_SWEEP = {
    "size_kb": [128, 256, 512, 1024, 2048, 4096],
    "line_size_bytes": [1, 2, 4, 8, 16, 32, 64, 128],
    "associativity": [1, 2, 4, 8, 16, 32, 64],
}


class SimulationResult(collections.namedtuple("SimulationResult", [
        "trace", "config", "hits", "misses", "skipped", "status", "error"])):
    __slots__ = ()

    @property
    def ok(self):
        return self.status == STATUS_OK

    @property
    def hit_rate(self):
        total = self.hits + self.misses
        return self.hits / total if self.ok and total else None

    @property
    def miss_rate(self):
        total = self.hits + self.misses
        return self.misses / total if self.ok and total else None

    def to_dict(self):
        return {
            "trace": self.trace,
            "size_kb": self.config.size_kb,
            "block_size": self.config.block_size,
            "associativity": self.config.associativity,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
            "miss_rate": self.miss_rate,
            "skipped_lines": self.skipped,
            "status": self.status,
            "error": self.error,
        }


def run_simulation(config, trace, policy="lru", synthetic_cfg=None):
    """
    Replay one trace against a freshly built cache.
    Never raises for a bad configuration or unreadable trace; the returned status says what happened.
    """
    try:
        cache = CacheModel.from_config(config, policy=policy)
    except ConfigError as e:
        LOGGER.warning("Invalid configuration %s: %s", tuple(config), e)
        return SimulationResult(trace, config, 0, 0, 0, STATUS_INVALID_CONFIG, str(e))

    try:
        source = open_trace(trace, synthetic_cfg)
        for address in source.addresses():
            cache.access(address)
    except TraceError as e:
        LOGGER.error("%s", e)
        return SimulationResult(trace, config, 0, 0, 0, STATUS_TRACE_ERROR, str(e))

    stats = cache.statistics()
    LOGGER.debug("%s %s: %d hits, %d misses", trace, tuple(config), stats.hits, stats.misses)
    return SimulationResult(trace, config, stats.hits, stats.misses, source.skipped, STATUS_OK, None)


def sweep_sections(cache_cfg, sweep_cfg):
    """
    Fixed configuration first, then cache size, block size and associativity
    each varied with the other two held at the fixed values.
    """
    fixed = CacheConfig.from_dict(cache_cfg)
    return [
        [fixed],
        [fixed._replace(size_bytes=size_kb * 1024)
         for size_kb in sweep_cfg.get("size_kb", DEFAULT_SWEEP["size_kb"])],
        [fixed._replace(block_size=block_size)
         for block_size in sweep_cfg.get("line_size_bytes", DEFAULT_SWEEP["line_size_bytes"])],
        [fixed._replace(associativity=associativity)
         for associativity in sweep_cfg.get("associativity", DEFAULT_SWEEP["associativity"])],
    ]


def sweep_configurations(cache_cfg, sweep_cfg):
    return [config for section in sweep_sections(cache_cfg, sweep_cfg) for config in section]


class SweepRunner:
    def __init__(self, cfg):
        self.cfg = cfg
        cache_cfg = cfg.get("cache", {})
        self.policy = cache_cfg.get("policy", "lru")
        self.sections = sweep_sections(cache_cfg, cfg.get("sweep", {}))
        self.configs = [config for section in self.sections for config in section]
        self.traces = cfg.get("traces") or ["synthetic:"]
        self.synthetic_cfg = cfg.get("synthetic", {})
        self.num_threads = max(1, cfg.get("benchmark", {}).get("num_threads", 4))
        self.results_lock = threading.Lock()
        self.results = {}

    def jobs(self):
        # one sweep section at a time, every trace within a section
        return [(trace, config)
                for section in self.sections
                for trace in self.traces
                for config in section]

    def _run_job(self, trace, config):
        try:
            return run_simulation(config, trace, policy=self.policy, synthetic_cfg=self.synthetic_cfg)
        except Exception as e:
            LOGGER.exception("Simulation of %s %s failed", trace, tuple(config))
            return SimulationResult(trace, config, 0, 0, 0, STATUS_ERROR, f"{type(e).__name__}: {e}")

    def _worker(self, jobs):
        for slot, (trace, config) in jobs:
            result = self._run_job(trace, config)
            with self.results_lock:
                self.results[slot] = result

    def run(self):
        jobs = list(enumerate(self.jobs()))
        threads = []
        start = time.time()
        for i in range(self.num_threads):
            t = threading.Thread(target=self._worker, args=(jobs[i::self.num_threads],))
            t.start()
            threads.append(t)
        for t in threads:
            t.join()
        end = time.time()

        results = [self.results[slot] for slot, _ in jobs]
        failed = sum(1 for r in results if not r.ok)
        summary = {
            "total_runs": len(results),
            "failed_runs": failed,
            "duration_s": end - start,
            "policy": self.policy,
        }
        LOGGER.info("Finished %d runs (%d failed) in %.2fs", len(results), failed, end - start)
        return summary, results


def format_rate(rate):
    if rate is None:
        return "N/A"
    return f"{rate * 100:g}"


def write_csv(results, path):
    """Write valid runs in the results CSV schema; invalid runs are left to the summary."""
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        for r in results:
            if not r.ok:
                continue
            writer.writerow([r.trace, r.config.size_kb, r.config.block_size, r.config.associativity,
                             format_rate(r.hit_rate), format_rate(r.miss_rate)])
    return path


def save_results(summary, results, out_cfg):
    results_dir = out_cfg.get("results_dir", "results")
    os.makedirs(results_dir, exist_ok=True)
    csv_path = write_csv(results, os.path.join(results_dir, out_cfg.get("csv", "cache_simulation_results.csv")))
    json_path = os.path.join(results_dir, out_cfg.get("summary", "summary.json"))
    with open(json_path, "w") as f:
        json.dump(dict(summary, runs=[r.to_dict() for r in results]), f, indent=2)
    return csv_path, json_path
