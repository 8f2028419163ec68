"""
Load generator for a running rup server.

Opens one raw TCP connection per request, like any browser hitting a
static server, and reports the status histogram and latency percentiles.
"""

import argparse
import socket
import statistics
import threading
import time
from collections import Counter


def parse_status(data: bytes) -> int:
    # status line ends with a bare LF on rup, CRLF elsewhere
    line = data.split(b"\n", 1)[0].rstrip(b"\r").decode(errors="ignore")
    parts = line.split(" ")
    return int(parts[1]) if len(parts) > 1 and parts[1].isdigit() else 0


def do_get(host: str, port: int, path: str, timeout: float | None = 5.0) -> tuple[int, float]:
    """Fetch `path` once. Returns (status, seconds); status 0 means the request failed."""
    start = time.perf_counter()
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            if timeout and timeout > 0:
                s.settimeout(timeout)
            s.connect((host, port))
            req = (
                f"GET {path} HTTP/1.1\r\n"
                f"Host: {host}\r\n"
                f"Connection: close\r\n"
                f"User-Agent: rup-bench/1.0\r\n"
                f"Accept: */*\r\n\r\n"
            )
            s.sendall(req.encode())
            first = s.recv(4096)
            # drain the body so the timing covers the whole response
            while s.recv(65536):
                pass
    except OSError:
        return 0, time.perf_counter() - start
    return parse_status(first), time.perf_counter() - start


def percentile(latencies: list[float], pct: int) -> float:
    """Linear-interpolated percentile, pct in 1..100."""
    if len(latencies) < 2 or pct >= 100:
        return max(latencies)
    return statistics.quantiles(latencies, n=100, method="inclusive")[pct - 1]


def run_bench(host: str, port: int, path: str, concurrency: int = 10, per_worker: int = 1,
              timeout: float | None = 5.0) -> tuple[list[tuple[int, float]], float]:
    results: list[tuple[int, float]] = []
    lock = threading.Lock()

    def worker():
        for _ in range(per_worker):
            r = do_get(host, port, path, timeout=timeout)
            with lock:
                results.append(r)

    threads = [threading.Thread(target=worker) for _ in range(concurrency)]
    t0 = time.perf_counter()
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, time.perf_counter() - t0


def summarize(results: list[tuple[int, float]], elapsed: float) -> dict:
    latencies = [lat for code, lat in results if code]
    summary = {
        "total": len(results),
        "elapsed": elapsed,
        "rate": len(results) / elapsed if elapsed > 0 else 0.0,
        "codes": Counter(code for code, _ in results),
    }
    if latencies:
        summary.update(
            mean=statistics.mean(latencies),
            median=statistics.median(latencies),
            p95=percentile(latencies, 95),
            p99=percentile(latencies, 99),
        )
    return summary


def plot_latency(summary: dict, out: str):
    """Bar chart of mean/median/p95/p99 latency in milliseconds."""
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    labels = ["Mean", "Median", "P95", "P99"]
    values = [summary[k] * 1000 for k in ("mean", "median", "p95", "p99")]
    plt.figure(figsize=(8, 5))
    bars = plt.bar(labels, values, color=["blue", "green", "orange", "red"])
    for bar, v in zip(bars, values):
        plt.annotate(f"{v:.1f} ms", (bar.get_x() + bar.get_width() / 2, v),
                     textcoords="offset points", xytext=(0, 4), ha="center", fontsize=8)
    plt.ylabel("Latency (ms)", fontsize=12)
    plt.title(f"{summary['total']} requests, {summary['rate']:.1f} req/s", fontsize=14)
    plt.grid(True, axis="y", alpha=0.3)
    plt.tight_layout()
    plt.savefig(out, dpi=150)
    plt.close()


def main(argv: list[str] | None = None):
    ap = argparse.ArgumentParser(prog="rup-bench")
    ap.add_argument("host")
    ap.add_argument("port", type=int)
    ap.add_argument("path")
    ap.add_argument("--concurrency", "-c", type=int, default=10)
    ap.add_argument("--per-worker", type=int, default=1)
    ap.add_argument("--timeout", type=float, default=5.0, help="socket timeout in seconds (default 5.0)")
    ap.add_argument("--plot", metavar="FILE", help="save a latency chart (needs matplotlib)")
    args = ap.parse_args(argv)

    results, dt = run_bench(args.host, args.port, args.path, args.concurrency, args.per_worker, args.timeout)
    summary = summarize(results, dt)

    print(f"Requests: {summary['total']} in {dt:.3f}s -> {summary['rate']:.2f} req/s")
    hist = summary["codes"]
    for k in sorted(hist):
        print(f"  {k}: {hist[k]}")
    if "mean" in summary:
        print(f"Latency mean {summary['mean']*1000:.2f} ms, median {summary['median']*1000:.2f} ms, "
              f"p95 {summary['p95']*1000:.2f} ms, p99 {summary['p99']*1000:.2f} ms")
        if args.plot:
            plot_latency(summary, args.plot)
            print(f"Plot saved as '{args.plot}'")


if __name__ == "__main__":
    main()
