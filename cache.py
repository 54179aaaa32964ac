# cache.py
import collections

ADDRESS_BITS = 32
ADDRESS_MASK = (1 << ADDRESS_BITS) - 1
# recency stamps are treated as 64-bit unsigned counters
RECENCY_LIMIT = (1 << 64) - 1


class ConfigError(ValueError):
    """Raised when a cache geometry cannot be simulated."""


def is_power_of_two(n):
    return n > 0 and (n & (n - 1)) == 0


def offset_bits(block_size):
    return block_size.bit_length() - 1


def get_index(address, block_size, num_sets):
    return (address >> offset_bits(block_size)) & (num_sets - 1)


def get_tag(address, block_size, num_sets):
    return address >> (offset_bits(block_size) + offset_bits(num_sets))


def decompose(address, block_size, num_sets):
    """Split `address` into (tag, index, offset)."""
    address &= ADDRESS_MASK
    return (get_tag(address, block_size, num_sets),
            get_index(address, block_size, num_sets),
            address & (block_size - 1))


class CacheConfig(collections.namedtuple("CacheConfig", ["size_bytes", "block_size", "associativity"])):
    """Geometry of one cache: total size and block size in bytes, ways per set."""
    __slots__ = ()

    @classmethod
    def from_dict(cls, cfg):
        return cls(
            size_bytes=cfg.get("size_kb", 1024) * 1024,
            block_size=cfg.get("line_size_bytes", 4),
            associativity=cfg.get("associativity", 4),
        )

    @property
    def size_kb(self):
        return self.size_bytes // 1024

    @property
    def num_sets(self):
        return self.size_bytes // (self.block_size * self.associativity)

    def validate(self):
        """Return a description of what is wrong with this geometry, or None."""
        for name in self._fields:
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                return f"{name} must be a positive integer, got {value!r}"
        if not is_power_of_two(self.block_size):
            return f"block size {self.block_size} is not a power of two"
        if not is_power_of_two(self.associativity):
            return f"associativity {self.associativity} is not a power of two"
        if self.size_bytes < self.block_size * self.associativity:
            return (f"cache size {self.size_bytes} is smaller than one set "
                    f"({self.associativity} x {self.block_size} bytes)")
        if not is_power_of_two(self.num_sets):
            return f"set count {self.num_sets} is not a power of two"
        if offset_bits(self.block_size) + offset_bits(self.num_sets) > ADDRESS_BITS:
            return f"cache geometry needs more than {ADDRESS_BITS} address bits"
        return None


class Statistics(collections.namedtuple("Statistics", ["hits", "misses"])):
    __slots__ = ()

    @property
    def accesses(self):
        return self.hits + self.misses

    @property
    def hit_rate(self):
        """Fraction of hits, or None when nothing was accessed."""
        if not self.accesses:
            return None
        return self.hits / self.accesses

    @property
    def miss_rate(self):
        if not self.accesses:
            return None
        return self.misses / self.accesses


# way is the slot that was hit or filled; evicted_tag is None unless a valid line was replaced
AccessResult = collections.namedtuple("AccessResult", ["hit", "set_index", "way", "tag", "evicted_tag"])


class Line:
    __slots__ = ("valid", "tag", "recency")

    def __init__(self):
        self.valid = False
        self.tag = 0
        self.recency = 0

    def __repr__(self):
        return f"Line(valid={self.valid!r}, tag={self.tag:#x}, recency={self.recency})"


class LRUSet:
    """
    One associative set whose lines carry global access stamps.
    The least recently used line is the valid line with the smallest stamp.
    """

    def __init__(self, associativity):
        self.lines = [Line() for _ in range(associativity)]

    def probe(self, tag):
        for way, line in enumerate(self.lines):
            if line.valid and line.tag == tag:
                return way
        return None

    def victim(self):
        """Slot to fill on a miss: the first empty slot, else the oldest stamp."""
        best = None
        for way, line in enumerate(self.lines):
            if not line.valid:
                return way
            # strict comparison keeps the lowest slot on ties
            if best is None or line.recency < self.lines[best].recency:
                best = way
        return best

    def touch(self, way, stamp):
        self.lines[way].recency = stamp

    def fill(self, way, tag, stamp):
        line = self.lines[way]
        line.valid = True
        line.tag = tag
        line.recency = stamp


class AgingLRUSet(LRUSet):
    """
    LRU set tracking per-line ages instead of stamps.
    Every access resets the touched line to age 0 and ages all other valid lines,
    so the victim is the valid line with the largest age.
    """

    def victim(self):
        best = None
        for way, line in enumerate(self.lines):
            if not line.valid:
                return way
            if best is None or line.recency > self.lines[best].recency:
                best = way
        return best

    def _age_others(self, way):
        for other, line in enumerate(self.lines):
            if other != way and line.valid:
                line.recency += 1

    def touch(self, way, stamp):
        self.lines[way].recency = 0
        self._age_others(way)

    def fill(self, way, tag, stamp):
        LRUSet.fill(self, way, tag, 0)
        self._age_others(way)


POLICIES = {
    "lru": LRUSet,
    "aging": AgingLRUSet,
}


class CacheModel:
    """
    Set-associative cache holding tags only.
    Each instance owns its sets and counters; build a fresh one per simulation run.
    """

    def __init__(self, num_sets, associativity, block_size, policy="lru"):
        if num_sets <= 0:
            raise ConfigError("cache has no sets")
        for name, value in (("set count", num_sets), ("associativity", associativity), ("block size", block_size)):
            if not is_power_of_two(value):
                raise ConfigError(f"{name} {value} is not a power of two")
        if policy not in POLICIES:
            raise ConfigError(f"unknown replacement policy {policy!r}")
        self.num_sets = num_sets
        self.associativity = associativity
        self.block_size = block_size
        self.policy = policy
        set_cls = POLICIES[policy]
        self.sets = [set_cls(associativity) for _ in range(num_sets)]
        self.hits = 0
        self.misses = 0
        self.clock = 0

    @classmethod
    def from_config(cls, config, policy="lru"):
        problem = config.validate()
        if problem:
            raise ConfigError(problem)
        return cls(config.num_sets, config.associativity, config.block_size, policy=policy)

    def _next_stamp(self):
        if self.clock > RECENCY_LIMIT:
            self._renormalize()
        stamp = self.clock
        self.clock += 1
        return stamp

    def _renormalize(self):
        if self.policy == "aging":
            # ages are per set and never read the clock
            self.clock = 0
            return
        # re-stamp valid lines 0..n-1 keeping their relative order
        valid = [line for s in self.sets for line in s.lines if line.valid]
        valid.sort(key=lambda line: line.recency)
        for stamp, line in enumerate(valid):
            line.recency = stamp
        self.clock = len(valid)

    def lookup(self, address):
        """Access `address` and report which set and way were affected."""
        tag, index, _ = decompose(address, self.block_size, self.num_sets)
        s = self.sets[index]
        way = s.probe(tag)
        if way is not None:
            self.hits += 1
            s.touch(way, self._next_stamp())
            return AccessResult(True, index, way, tag, None)

        way = s.victim()
        old = s.lines[way]
        evicted = old.tag if old.valid else None
        self.misses += 1
        s.fill(way, tag, self._next_stamp())
        return AccessResult(False, index, way, tag, evicted)

    def access(self, address):
        """
        Access `address`. Return True if hit, False if miss.
        Updates LRU state.
        """
        return self.lookup(address).hit

    def statistics(self):
        return Statistics(self.hits, self.misses)

    def resident_tags(self, index):
        return [line.tag for line in self.sets[index].lines if line.valid]

    def stats(self):
        used_lines = sum(1 for s in self.sets for line in s.lines if line.valid)
        return {
            "cache_size_bytes": self.num_sets * self.associativity * self.block_size,
            "line_size": self.block_size,
            "associativity": self.associativity,
            "num_sets": self.num_sets,
            "used_lines": used_lines,
            "policy": self.policy,
        }
