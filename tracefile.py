# tracefile.py
import collections
import logging
import re
import numpy as np

from cache import ADDRESS_MASK

LOGGER = logging.getLogger(__name__)

SYNTHETIC_PREFIX = "synthetic:"
PATTERNS = ("sequential", "random", "mixed")
HEX_ADDRESS = re.compile(r"(0[xX])?[0-9a-fA-F]+")

# access_type and gap (instructions since the previous access) are carried but not simulated
TraceRecord = collections.namedtuple("TraceRecord", ["access_type", "address", "gap"])


class TraceError(Exception):
    """Raised when a trace cannot be read at all."""


def parse_line(line):
    """
    Parse one `<type> <hex address> <gap>` trace line.
    Returns a TraceRecord, or None if the line is malformed.
    """
    parts = line.split()
    if len(parts) < 2 or not HEX_ADDRESS.fullmatch(parts[1]):
        return None
    try:
        address = int(parts[1], 16)
        gap = int(parts[2]) if len(parts) > 2 else 0
    except ValueError:
        return None
    if address > ADDRESS_MASK:
        return None
    return TraceRecord(parts[0], address, gap)


class TraceReader:
    """
    Iterates the records of one trace file.
    Malformed lines are skipped and counted in `skipped`; blank lines are ignored.
    """

    def __init__(self, path):
        self.path = path
        self.skipped = 0
        self.first_bad_line = None

    def __iter__(self):
        try:
            f = open(self.path, "r", errors="replace")
        except OSError as e:
            raise TraceError(f"unable to open trace {self.path}: {e}") from e
        with f:
            for lineno, line in enumerate(f, 1):
                if not line.strip():
                    continue
                record = parse_line(line)
                if record is None:
                    self.skipped += 1
                    if self.first_bad_line is None:
                        self.first_bad_line = lineno
                    continue
                yield record
        if self.skipped:
            LOGGER.warning("%s: skipped %d malformed line(s), first at line %d",
                           self.path, self.skipped, self.first_bad_line)

    def addresses(self):
        for record in self:
            yield record.address


def is_synthetic(name):
    return name.startswith(SYNTHETIC_PREFIX)


def generate_trace(num_requests=10000, working_set_kb=1024, line_size=64, access_pattern="mixed", seed=None):
    """
    Generate byte addresses over a working set of cache-line sized blocks.
    mixed: mostly sequential with some random
    """
    if access_pattern not in PATTERNS:
        raise ValueError(f"unknown access pattern {access_pattern!r}")
    if line_size <= 0 or working_set_kb <= 0 or num_requests < 0:
        raise ValueError("line size and working set must be positive, request count non-negative")
    rng = np.random.default_rng(seed)
    num_blocks = max(1, (working_set_kb * 1024) // line_size)
    if access_pattern == "sequential":
        blocks = np.arange(num_requests) % num_blocks
    elif access_pattern == "random":
        blocks = rng.integers(0, num_blocks, size=num_requests)
    else:
        blocks = np.arange(num_requests) % num_blocks
        jumps = rng.random(num_requests) >= 0.8
        blocks[jumps] = rng.integers(0, num_blocks, size=int(jumps.sum()))
    addresses = (blocks.astype(np.uint64) * np.uint64(line_size)) & np.uint64(ADDRESS_MASK)
    return [int(a) for a in addresses]


class SyntheticTrace:
    """A generated trace usable wherever a TraceReader is."""

    def __init__(self, name, cfg):
        self.path = name
        self.skipped = 0
        pattern = name[len(SYNTHETIC_PREFIX):] or cfg.get("access_pattern", "mixed")
        try:
            self._addresses = generate_trace(
                num_requests=cfg.get("num_requests", 10000),
                working_set_kb=cfg.get("working_set_kb", 1024),
                line_size=cfg.get("line_size_bytes", 4),
                access_pattern=pattern,
                seed=cfg.get("random_seed", 0),
            )
        except ValueError as e:
            raise TraceError(f"{name}: {e}") from e

    def addresses(self):
        return iter(self._addresses)


def open_trace(name, synthetic_cfg=None):
    if is_synthetic(name):
        return SyntheticTrace(name, synthetic_cfg or {})
    return TraceReader(name)
