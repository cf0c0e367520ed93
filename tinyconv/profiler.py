# tinyconv/profiler.py
import time
import numpy as np


def latency_ms(fn, warmup=3, reps=30):
    """Wall-clock latency of fn() in milliseconds: mean, p50, p90, max."""
    for _ in range(warmup): fn()
    samples = np.empty(reps, dtype=np.float64)
    for k in range(reps):
        t0 = time.perf_counter(); fn(); samples[k] = (time.perf_counter() - t0) * 1000
    p50, p90 = np.percentile(samples, [50, 90])
    return {"mean": float(samples.mean()), "p50": float(p50), "p90": float(p90),
            "max": float(samples.max())}

def weight_bytes(net):
    # float32 on disk, kernel + bias per layer
    return sum((layer.kernel.size + layer.bias.size) * 4 for _, layer in net.layers())

def fmt_size(n):
    for u in ["B", "KB", "MB"]:
        if n < 1024: return f"{n:.2f} {u}"
        n /= 1024
    return f"{n:.2f} GB"
