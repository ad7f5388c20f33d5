#!/usr/bin/env python3
"""
Benchmark Comparison: this ML-KEM vs published ML-KEM timings
=============================================================

Times KeyGen / Encaps / Decaps of the numpy implementation for every
parameter set and prints them next to reference numbers for optimized
ML-KEM implementations.

Reference benchmarks from:
- NIST PQC Round 3 Kyber submission
- liboqs benchmarks (https://openquantumsafe.org)

All reference timings are for comparable hardware (modern x64, single-threaded).
"""

import argparse
import sys
import time
from dataclasses import dataclass

from mlkem import MLKEM, PARAMETER_SETS


@dataclass
class KEMBenchmark:
    """KEM benchmark results"""
    name: str
    security_level: str  # L1, L3, L5
    keygen_us: float     # microseconds
    encaps_us: float
    decaps_us: float
    pk_bytes: int
    sk_bytes: int
    ct_bytes: int
    ss_bytes: int = 32
    notes: str = ""


LEVELS = {1: "L1", 3: "L3", 5: "L5"}

# =============================================================================
# Reference Benchmarks from NIST PQC / liboqs
# Timings in microseconds (µs)
# =============================================================================

REFERENCE_BENCHMARKS = [
    KEMBenchmark("ML-KEM-512 (AVX2)", "L1", 12, 15, 14, 800, 1632, 768, 32,
                 "AVX2 optimized"),
    KEMBenchmark("ML-KEM-768 (AVX2)", "L3", 20, 23, 22, 1184, 2400, 1088, 32,
                 "AVX2 optimized"),
    KEMBenchmark("ML-KEM-1024 (AVX2)", "L5", 28, 33, 31, 1568, 3168, 1568, 32,
                 "AVX2 optimized"),

    KEMBenchmark("ML-KEM-512 (ref)", "L1", 45, 55, 50, 800, 1632, 768, 32,
                 "Reference C implementation"),
    KEMBenchmark("ML-KEM-768 (ref)", "L3", 75, 90, 85, 1184, 2400, 1088, 32,
                 "Reference C implementation"),
    KEMBenchmark("ML-KEM-1024 (ref)", "L5", 110, 130, 120, 1568, 3168, 1568, 32,
                 "Reference C implementation"),
]


_TIME_UNITS = ((1e6, "s", 2), (1e3, "ms", 2), (1.0, "µs", 1))
_SIZE_UNITS = ((1 << 20, "MB", 1), (1 << 10, "KB", 1))

# Scheme, KeyGen, Encaps, Decaps, PK, SK, CT, Total
_ROW = "{:<25} {:>12} {:>12} {:>12} {:>10} {:>10} {:>10} {:>12}"


def _time_us(fn, iterations):
    start = time.perf_counter()
    for _ in range(iterations):
        result = fn()
    return (time.perf_counter() - start) / iterations * 1e6, result


def run_benchmarks(names=None, iterations=10):
    """Time KeyGen/Encaps/Decaps for the named parameter sets (default: all)"""
    results = []

    for name in names or PARAMETER_SETS:
        kem = MLKEM.from_parameter_set(name)
        keygen_us, (ek, dk) = _time_us(kem.keygen, iterations)
        encaps_us, (ss, ct) = _time_us(lambda: kem.encapsulate(ek), iterations)
        decaps_us, ss_dec = _time_us(lambda: kem.decapsulate(dk, ct), iterations)
        if ss_dec != ss:
            raise RuntimeError(f"{name}: decapsulated secret differs during benchmark")

        sizes = kem.get_sizes()
        results.append(KEMBenchmark(
            name=f"{name} (numpy)",
            security_level=LEVELS[kem.params.security_category],
            keygen_us=keygen_us,
            encaps_us=encaps_us,
            decaps_us=decaps_us,
            pk_bytes=sizes['public_key_bytes'],
            sk_bytes=sizes['secret_key_bytes'],
            ct_bytes=sizes['ciphertext_bytes'],
            ss_bytes=sizes['shared_secret_bytes'],
            notes="This implementation (Python/numpy)",
        ))

    return results


def format_time(us: float) -> str:
    """Microseconds with the largest unit that keeps the value >= 1"""
    for scale, unit, digits in _TIME_UNITS:
        if us >= scale:
            return f"{us / scale:.{digits}f} {unit}"
    return f"{us * 1000:.1f} ns"


def format_size(size: int) -> str:
    for scale, unit, digits in _SIZE_UNITS:
        if size >= scale:
            return f"{size / scale:.{digits}f} {unit}"
    return f"{size} B"


def _total_us(b: KEMBenchmark) -> float:
    return b.keygen_us + b.encaps_us + b.decaps_us


def comparison_rows(own_results: list, level: str):
    """Table rows for one security level, fastest first; own results are starred"""
    rows = []
    candidates = [b for b in own_results + REFERENCE_BENCHMARKS if b.security_level == level]
    for b in sorted(candidates, key=_total_us):
        row = _ROW.format(b.name, *map(format_time, (b.keygen_us, b.encaps_us, b.decaps_us)),
                          *map(format_size, (b.pk_bytes, b.sk_bytes, b.ct_bytes)),
                          format_time(_total_us(b)))
        rows.append(row + (" ★" if b in own_results else ""))
    return rows


def print_comparison_table(own_results: list, level: str = "L1"):
    rows = comparison_rows(own_results, level)
    if not rows:
        return
    print(f"\n{'='*100}\n Security Level {level} Comparison\n{'='*100}")
    print(_ROW.format("Scheme", "KeyGen", "Encaps", "Decaps", "PK", "SK", "CT", "Total"))
    print("-" * 100)
    print("\n".join(rows))


def print_slowdown_analysis(own_results: list):
    """Ratio of this implementation to the reference C timings"""
    print(f"\n{'='*80}\n Slowdown vs reference C\n{'='*80}")

    for own in own_results:
        ref = next((b for b in REFERENCE_BENCHMARKS
                    if "ref" in b.name and b.security_level == own.security_level), None)
        if ref is None:
            continue
        ratios = (own.keygen_us / ref.keygen_us, own.encaps_us / ref.encaps_us,
                  own.decaps_us / ref.decaps_us)
        print(f"  {own.name:<25} KeyGen x{ratios[0]:.0f}  Encaps x{ratios[1]:.0f}  Decaps x{ratios[2]:.0f}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="ML-KEM benchmark comparison")
    parser.add_argument('-n', '--iterations', type=int, default=10)
    parser.add_argument('--params', nargs='+', choices=sorted(PARAMETER_SETS),
                        help="parameter sets to time (default: all)")
    args = parser.parse_args(argv)

    print(f"ML-KEM Benchmark Comparison ({args.iterations} iterations per operation)")
    results = run_benchmarks(args.params, args.iterations)

    for level in LEVELS.values():
        print_comparison_table(results, level)

    print_slowdown_analysis(results)
    return 0


if __name__ == "__main__":
    sys.exit(main())
