import argparse
import json
import os
import time
from datetime import datetime

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from ppmcoder.ppm import PPMCompressor


# ---------- Setup ----------
def ensure_dirs(data_path=None, out_dir=None):
    base = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
    out = out_dir or os.path.join(base, "output")
    os.makedirs(out, exist_ok=True)
    return {
        "project_root": base,
        "data_path": data_path or os.path.join(base, "data", "sample.txt"),
        "out_dir": out
    }


# ---------- Visualization ----------
def plot_comparisons(results, out_dir):
    """Charts comparing the model orders that were benchmarked."""
    plt.style.use('seaborn-v0_8-darkgrid')
    plt.rcParams.update({"font.size": 10, "figure.dpi": 110})

    labels = list(results.keys())
    ratios = np.array([r["compression_ratio"] for r in results.values()])
    comp_times = np.array([r["compression_time"] for r in results.values()])
    decomp_times = np.array([r["decompression_time"] for r in results.values()])
    bits_per_byte = np.array([r["bits_per_byte"] for r in results.values()])
    escape_rate = np.array([r["escapes_per_symbol"] for r in results.values()])

    plots = [
        ("Compression Ratio (Compressed/Original)", ratios, "Ratio", "order_ratios.png"),
        ("Bits per Input Byte", bits_per_byte, "bits/byte", "order_bits_per_byte.png"),
        ("Escapes per Coded Symbol", escape_rate, "escapes", "order_escapes.png"),
    ]
    for title, vals, ylabel, filename in plots:
        plt.figure(figsize=(7, 5))
        bars = plt.bar(labels, vals)
        plt.bar_label(bars, fmt="%.3f", padding=3)
        plt.title(title)
        plt.ylabel(ylabel)
        plt.tight_layout()
        plt.savefig(os.path.join(out_dir, filename))
        plt.close()

    # compression and decompression side by side, they should be close
    x = np.arange(len(labels))
    plt.figure(figsize=(8, 5))
    plt.bar(x - 0.2, comp_times, width=0.4, label="Compression")
    plt.bar(x + 0.2, decomp_times, width=0.4, label="Decompression")
    plt.xticks(x, labels)
    plt.ylabel("Time (s)")
    plt.title("Coding Time per Model Order")
    plt.legend()
    plt.tight_layout()
    plt.savefig(os.path.join(out_dir, "order_times.png"))
    plt.close()

    plt.figure(figsize=(7, 5))
    plt.scatter(comp_times, ratios, s=150, color="royalblue")
    for i, label in enumerate(labels):
        plt.text(comp_times[i], ratios[i], " " + label, fontsize=9)
    plt.xlabel("Compression Time (s)")
    plt.ylabel("Compression Ratio (lower is better)")
    plt.title("Compression Time vs Compression Ratio Trade-off")
    plt.grid(True, linestyle="--", alpha=0.6)
    plt.tight_layout()
    plt.savefig(os.path.join(out_dir, "order_tradeoff.png"))
    plt.close()

    metrics = np.vstack([ratios, comp_times, decomp_times, escape_rate])
    spread = metrics.max(axis=1, keepdims=True) - metrics.min(axis=1, keepdims=True)
    normalized = (metrics - metrics.min(axis=1, keepdims=True)) / np.where(spread == 0, 1, spread)
    plt.figure(figsize=(8, 5))
    for i, name in enumerate(["Ratio", "Comp Time", "Decomp Time", "Escapes"]):
        plt.plot(labels, normalized[i], marker="o", label=name)
    plt.legend()
    plt.title("Normalized Metric Comparison (0-1 Scale)")
    plt.tight_layout()
    plt.savefig(os.path.join(out_dir, "order_normalized.png"))
    plt.close()

    print(f" Saved 6 visualizations in {out_dir}")


# ---------- Helpers ----------
def export_context_stats(model, out_path):
    per_order = model.context_counts()
    root = model.context_for(())
    stats = {
        "model_order": model.order,
        "contexts_per_order": {str(k): n for k, n in enumerate(per_order)},
        "total_contexts": sum(per_order),
        "order0_distinct_symbols": sum(1 for c in root.frequencies.frequencies[:-1] if c) if root else 0,
    }
    with open(out_path, "w") as f:
        json.dump(stats, f, indent=2)
    print(f" Context statistics written to {out_path}")


def run_order(data, order, out_dir, ts):
    codec = PPMCompressor(order=order)
    t0 = time.time()
    comp = codec.compress_bytes(data)
    t1 = time.time()
    enc_stats = dict(codec.last_stats)
    model = codec.last_model
    decomp = codec.decompress_bytes(comp)
    t2 = time.time()

    base = os.path.join(out_dir, f"ppm_c_order{order}_{ts}")
    with open(base + ".bin", "wb") as f:
        f.write(comp)
    export_context_stats(model, base + "_contexts.json")

    return {
        "compression_ratio": round(len(comp) / max(1, len(data)), 6),
        "bits_per_byte": round(8 * len(comp) / max(1, len(data)), 6),
        "compression_time": round(t1 - t0, 6),
        "decompression_time": round(t2 - t1, 6),
        "escapes_per_symbol": round(enc_stats["escapes"] / enc_stats["symbols"], 6),
        "order_minus1_symbols": enc_stats["fallbacks"],
        "compressed_bytes": len(comp),
        "lossless": decomp == data,
    }


# ---------- Main ----------
def main(argv=None):
    parser = argparse.ArgumentParser(description="Benchmark PPM-C over several model orders")
    parser.add_argument("--input", type=str, help="file to compress (default: data/sample.txt)")
    parser.add_argument("--output-dir", type=str, help="where results and charts go (default: output/)")
    parser.add_argument("--orders", type=int, nargs="+", default=[-1, 0, 1, 2, 3, 4],
                        help="model orders to benchmark")
    parser.add_argument("--no-plots", action="store_true", help="skip matplotlib charts")
    args = parser.parse_args(argv)

    paths = ensure_dirs(args.input, args.output_dir)
    data_path = paths["data_path"]
    out_dir = paths["out_dir"]

    if not os.path.exists(data_path):
        raise FileNotFoundError(f"Data file not found: {data_path}")

    print(" Reading dataset...")
    with open(data_path, "rb") as f:
        data = f.read()
    print(f" Read complete. Size: {len(data):,} bytes")

    results = {}
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    for order in args.orders:
        print(f"\n Starting PPM-C (Order {order}) Compression...")
        r = run_order(data, order, out_dir, ts)
        results[f"Order {order}"] = r
        print(f" Order {order} Done. Ratio={r['compression_ratio']:.4f}, Lossless={r['lossless']}")

    results_path = os.path.join(out_dir, f"ppm_order_comparison_{ts}.json")
    with open(results_path, "w") as f:
        json.dump(results, f, indent=2)

    if not args.no_plots:
        plot_comparisons(results, out_dir)

    print("\n Order comparison complete!")
    print(f"Results saved in: {results_path}")
    return results


if __name__ == "__main__":
    main()
