"""
Compare CPU vs GPU Kernel Performance

Benchmarks the image kernels on the CPU reference backend (Numba, with
thread fan-out as configured) against the CUDA backend on synthetic
frames, and verifies that both backends produce the same results.

Useful for validating GPU acceleration benefits and CPU/GPU parity on a
given machine.
"""

import argparse
import sys
import time
from pathlib import Path

import numpy as np

# Add project source to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from vision_kernels.acceleration import get_gpu_info
from vision_kernels.backend import create_cpu_program, create_program
from vision_kernels.imaging import ChannelLayout, ElementType
from vision_kernels.utils.config import load_config


def print_section(title: str):
    """Print a formatted section header."""
    print("\n" + "=" * 80)
    print(title)
    print("=" * 80)


def make_frame(width: int, height: int, seed: int = 42) -> np.ndarray:
    """
    Build a synthetic RGBA frame: smooth gradients plus noise.

    Args:
        width: Frame width in pixels
        height: Frame height in pixels
        seed: Random seed for the noise

    Returns:
        uint8 array of shape (height, width, 4)
    """
    rng = np.random.default_rng(seed)
    yy, xx = np.mgrid[0:height, 0:width]
    frame = np.empty((height, width, 4), dtype=np.uint8)
    frame[:, :, 0] = (xx * 255 // max(width - 1, 1)).astype(np.uint8)
    frame[:, :, 1] = (yy * 255 // max(height - 1, 1)).astype(np.uint8)
    frame[:, :, 2] = rng.integers(0, 256, size=(height, width), dtype=np.uint8)
    frame[:, :, 3] = 255
    return frame


def build_pipeline(program, frame: np.ndarray, bins: int):
    """
    Allocate every buffer the benchmark pipeline needs on ``program``.

    Returns:
        Tuple of (run, outputs): ``run()`` executes the pipeline once and
        ``outputs()`` returns host copies of the results
    """
    height, width = frame.shape[:2]
    rgba = ChannelLayout.RGBA
    src = program.create_image(width, height, layout=rgba, data=frame)
    gray = program.create_image(width, height)
    integral = program.create_image(width, height, element_type=ElementType.UINT32)
    blurred = program.create_image(width, height, layout=rgba)
    edges = program.create_image(width, height, layout=rgba)
    hsl = program.create_image(width, height, layout=rgba)
    model = program.create_histogram(bins)
    frame_hist = program.create_histogram(bins)
    backprojection = program.create_image(width, height, element_type=ElementType.FLOAT32)

    def run():
        program.gray_scale(src, gray)
        program.integral(gray, integral)
        program.box_blur(src, blurred, 2)
        program.sobel(blurred, edges)
        program.rgb_to_hsl(src, hsl)
        program.histogram_n(src, model, bins)
        program.histogram_n(blurred, frame_hist, bins)
        program.histogram_backprojection(src, backprojection, model, frame_hist, bins)

    def outputs():
        return {
            "gray_scale": gray.host.copy(),
            "integral": integral.host.copy(),
            "box_blur": blurred.host.copy(),
            "sobel": edges.host.copy(),
            "rgb_to_hsl": hsl.host.copy(),
            "histogram_n": frame_hist.host.copy(),
            "backprojection": backprojection.host.copy(),
        }

    return run, outputs


def benchmark(program, frame: np.ndarray, bins: int, n_runs: int = 3):
    """
    Benchmark the pipeline on one program.

    The first run is a warm-up (JIT compilation, kernel loading) and is
    not timed.

    Returns:
        Dictionary with timing and result information
    """
    run, outputs = build_pipeline(program, frame, bins)
    run()
    outputs()

    times = []
    for _ in range(n_runs):
        t0 = time.perf_counter()
        run()
        result = outputs()
        times.append(time.perf_counter() - t0)

    return {
        "times": times,
        "avg_time": float(np.mean(times)),
        "std_time": float(np.std(times)),
        "min_time": float(np.min(times)),
        "max_time": float(np.max(times)),
        "result": result,
    }


def verify_parity(cpu_result, gpu_result, rtol=1e-5):
    """
    Verify that CPU and GPU results match.

    Returns:
        Dict of kernel name -> (matches, max_difference)
    """
    report = {}
    for name, cpu_values in cpu_result.items():
        gpu_values = gpu_result[name]
        diff = np.abs(cpu_values.astype(np.float64) - gpu_values.astype(np.float64))
        max_diff = float(diff.max()) if diff.size else 0.0
        if np.issubdtype(cpu_values.dtype, np.floating):
            matches = bool(np.allclose(gpu_values, cpu_values, rtol=rtol))
        else:
            matches = bool(np.array_equal(gpu_values, cpu_values))
        report[name] = (matches, max_diff)
    return report


def main():
    """Main comparison script."""
    parser = argparse.ArgumentParser(description="Compare CPU vs GPU kernel performance")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (defaults to config/default.yaml)",
    )
    parser.add_argument("--width", type=int, default=1920, help="Frame width (default: 1920)")
    parser.add_argument("--height", type=int, default=1080, help="Frame height (default: 1080)")
    parser.add_argument("--bins", type=int, default=16, help="Histogram bins per channel (default: 16)")
    parser.add_argument(
        "--n-runs",
        type=int,
        default=3,
        help="Number of benchmark runs for each backend (default: 3)",
    )
    args = parser.parse_args()

    print_section("Kernel CPU vs GPU Performance Comparison")

    gpu_info = get_gpu_info()
    if gpu_info.available:
        print(f"\n✓ GPU Detected: {gpu_info.device_name}")
        print(f"  Memory: {gpu_info.memory_gb:.2f} GB")
        print(f"  CUDA Version: {gpu_info.cuda_version}")
    else:
        print(f"\n✗ No GPU detected: {gpu_info.error_message}")
        print("  Only the CPU benchmark will run")

    config = load_config(args.config)
    frame = make_frame(args.width, args.height)

    print(f"\n   Frame: {args.width} × {args.height} RGBA ({args.width * args.height:,} pixels)")
    print(f"   Histogram bins: {args.bins} ({args.bins ** 3:,} buckets)")
    print(f"   Parallel CPU: {config.parallel.enabled} (min pixels: {config.parallel.min_pixels:,})")

    # Benchmark CPU
    print_section("1. CPU Benchmark")
    cpu_program = create_cpu_program(config)
    print(f"\n🔄 Running CPU benchmark ({args.n_runs} runs)...")
    cpu_benchmark = benchmark(cpu_program, frame, args.bins, args.n_runs)
    cpu_program.close()

    print(f"\n   Results:")
    print(f"   - Average Time: {cpu_benchmark['avg_time']:.3f}s (±{cpu_benchmark['std_time']:.3f}s)")
    print(f"   - Min Time: {cpu_benchmark['min_time']:.3f}s")
    print(f"   - Max Time: {cpu_benchmark['max_time']:.3f}s")

    if not gpu_info.available:
        return 0

    # Benchmark GPU
    print_section("2. GPU Benchmark")
    config.backend.prefer_gpu = True
    config.backend.fallback_to_cpu = False
    gpu_program = create_program(config)
    print(f"\n🔄 Running GPU benchmark on {gpu_program.name} ({args.n_runs} runs)...")
    gpu_benchmark = benchmark(gpu_program, frame, args.bins, args.n_runs)

    print(f"\n   Results:")
    print(f"   - Average Time: {gpu_benchmark['avg_time']:.3f}s (±{gpu_benchmark['std_time']:.3f}s)")
    print(f"   - Min Time: {gpu_benchmark['min_time']:.3f}s")
    print(f"   - Max Time: {gpu_benchmark['max_time']:.3f}s")

    # Verify numerical parity
    print_section("3. Numerical Parity Verification")
    print("\n🔍 Comparing CPU and GPU results...")

    report = verify_parity(cpu_benchmark["result"], gpu_benchmark["result"])
    all_match = True
    for name, (matches, max_diff) in report.items():
        status = "✓" if matches else "✗"
        all_match = all_match and matches
        print(f"   {status} {name:<16} max difference {max_diff:.2e}")

    if not all_match:
        print("\n   ✗ Results Do Not Match!")
        print("   - This may indicate a GPU implementation issue")

    # Performance comparison
    print_section("4. Performance Summary")

    speedup = cpu_benchmark["avg_time"] / gpu_benchmark["avg_time"]

    print(f"\n   Timing Comparison:")
    print(f"   - CPU Time: {cpu_benchmark['avg_time']:.3f}s")
    print(f"   - GPU Time: {gpu_benchmark['avg_time']:.3f}s")
    print(f"   - Speedup: {speedup:.2f}x")

    print(f"\n   Performance Assessment:")
    if speedup > 2.0:
        print(f"   ✓ Excellent GPU acceleration ({speedup:.1f}x speedup)")
    elif speedup > 1.3:
        print(f"   ○ Good GPU acceleration ({speedup:.1f}x speedup)")
    elif speedup > 0.8:
        print(f"   ~ Marginal benefit ({speedup:.1f}x)")
    else:
        print(f"   ⚠ CPU faster than GPU ({speedup:.1f}x)")
        print(f"      This is expected for small frames due to transfer overhead")

    return 0 if all_match else 1


if __name__ == "__main__":
    sys.exit(main())
