# main.py
import argparse
import json
import logging
import os
from benchmark import SweepRunner, save_results
from cache import CacheConfig
from visualize import PARAMETERS, plot_sweep, plot_hit_miss_rate

LOGGER = logging.getLogger("main")


def load_config(path="config.json"):
    with open(path, "r") as f:
        return json.load(f)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Set-associative cache sweep simulator")
    p.add_argument("--config", default="config.json", help="Path to the JSON configuration.")
    p.add_argument("--no-plots", action="store_true", help="Skip writing plots.")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def make_plots(results, fixed, plot_dir):
    paths = []
    for parameter in PARAMETERS:
        paths.append(plot_sweep(results, parameter, fixed, os.path.join(plot_dir, f"hit_rate_vs_{parameter}.png")))
    rates = [r.hit_rate for r in results if r.config == fixed and r.hit_rate is not None]
    if rates:
        paths.append(plot_hit_miss_rate(sum(rates) / len(rates), os.path.join(plot_dir, "hit_miss_rate.png")))
    return paths


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    cfg = load_config(args.config)
    runner = SweepRunner(cfg)
    LOGGER.info("Starting sweep: %d configurations x %d traces", len(runner.configs), len(runner.traces))
    summary, results = runner.run()
    out_cfg = cfg.get("output", {})
    csv_path, json_path = save_results(summary, results, out_cfg)
    print("Sweep Summary:", summary)
    print("Results saved to:", csv_path, json_path)

    if not args.no_plots:
        fixed = CacheConfig.from_dict(cfg.get("cache", {}))
        plot_dir = out_cfg.get("plot_dir", out_cfg.get("results_dir", "results"))
        make_plots(results, fixed, plot_dir)
        print("Plots saved in", plot_dir)
    return 0 if summary["failed_runs"] < summary["total_runs"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
