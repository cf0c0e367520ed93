# run_inference.py
import argparse, logging, os
import numpy as np
from tinyconv.model import lenet_lite, load_weight_dir, save_weight_dir
from tinyconv.profiler import latency_ms, weight_bytes, fmt_size


def random_weights(net, seed=0):
    # kaiming-uniform, same bound as a freshly initialised training model
    rng = np.random.default_rng(seed)
    sd = {}
    for name, layer in net.layers():
        fan_in = int(np.prod(layer.kernel.shape[1:]))
        bound = np.sqrt(6.0 / fan_in)
        sd[f"{name}.W"] = rng.uniform(-bound, bound, size=layer.kernel.shape).astype(np.float32)
        sd[f"{name}.b"] = np.zeros(layer.bias.shape, np.float32)
    return sd


def main(args):
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if args.init:
        net = lenet_lite(); net.load_state_dict(random_weights(net, args.seed))
        save_weight_dir(net, args.weights)
        print(f"[INIT] random weights → {args.weights}")

    net = load_weight_dir(lenet_lite(), args.weights, strict=not args.lenient)

    if args.input:
        x = np.load(args.input).astype(np.float32).reshape(net.input_shape)
    else:
        x = np.random.default_rng(args.seed).random(net.input_shape, dtype=np.float32)

    probs = net.forward(x)
    print("[PROB] " + "  ".join(f"{i}:{p:.4f}" for i, p in enumerate(probs)))
    print(f"[PRED] class={int(np.argmax(probs))}  p={probs.max():.4f}")

    lat = latency_ms(lambda: net.forward(x), warmup=1, reps=args.reps)
    print(f"[LAT ] mean={lat['mean']:.1f}ms  p50={lat['p50']:.1f}ms  p90={lat['p90']:.1f}ms")
    print(f"[SIZE] weights={fmt_size(weight_bytes(net))}")


if __name__ == "__main__":
    p = argparse.ArgumentParser(description="Forward pass of a small CNN from raw float32 weight files")
    p.add_argument("--weights", default=os.path.join("results", "weights"),
                   help="directory holding <layer>_kernel.bin / <layer>_bias.bin")
    p.add_argument("--input", help=".npy image of shape (28, 28) or (1, 28, 28)")
    p.add_argument("--init", action="store_true", help="write random weights to --weights first")
    p.add_argument("--lenient", action="store_true", help="ignore trailing data in weight files")
    p.add_argument("--reps", type=int, default=10)
    p.add_argument("--seed", type=int, default=0)
    p.add_argument("-v", "--verbose", action="store_true")
    main(p.parse_args())
