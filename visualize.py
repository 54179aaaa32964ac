# visualize.py
import os
import matplotlib.pyplot as plt

PARAMETERS = {
    "size_kb": "Cache Size (KB)",
    "block_size": "Block Size (Bytes)",
    "associativity": "Associativity",
}


def _makedirs(outpath):
    dirname = os.path.dirname(outpath)
    if dirname:
        os.makedirs(dirname, exist_ok=True)


def sweep_series(results, parameter, fixed):
    """
    Collect (x, hit rate %) points per trace for runs that vary only `parameter`
    away from the `fixed` configuration.
    """
    others = [p for p in PARAMETERS if p != parameter]
    series = {}
    for r in results:
        if r.hit_rate is None:
            continue
        values = {
            "size_kb": r.config.size_kb,
            "block_size": r.config.block_size,
            "associativity": r.config.associativity,
        }
        if any(values[p] != getattr(fixed, p) for p in others):
            continue
        series.setdefault(r.trace, {})[values[parameter]] = r.hit_rate * 100
    return {trace: sorted(points.items()) for trace, points in series.items()}


def plot_sweep(results, parameter, fixed, outpath):
    _makedirs(outpath)
    plt.figure(figsize=(8,4))
    for trace, points in sorted(sweep_series(results, parameter, fixed).items()):
        xs = [x for x, _ in points]
        ys = [y for _, y in points]
        plt.plot(xs, ys, marker='o', label=os.path.basename(trace))
    plt.xscale("log", base=2)
    plt.title(f"Hit Rate vs {PARAMETERS[parameter]}")
    plt.xlabel(PARAMETERS[parameter])
    plt.ylabel("Hit Rate (%)")
    plt.grid(True)
    plt.legend(fontsize="small")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath


def plot_hit_miss_rate(hit_rate, outpath):
    _makedirs(outpath)
    plt.figure(figsize=(4,4))
    labels = ['Hit', 'Miss']
    sizes = [hit_rate, 1.0 - hit_rate]
    plt.pie(sizes, labels=labels, autopct='%1.1f%%')
    plt.title("Cache Hit/Miss Rate")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath
