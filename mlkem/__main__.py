"""
Command-line demo: ``python -m mlkem``.

Runs a K-PKE encrypt/decrypt round trip and a KEM encapsulate/decapsulate
round trip for one parameter set, then optionally times the KEM.
"""

import argparse
import logging
import sys
import time

import numpy as np

from .codec import encode_poly
from .compress import compress
from .kem import MLKEM, KEMVariant
from .params import DEFAULT_PARAMETER_SET, PARAMETER_SETS


def random_message(kem: MLKEM) -> bytes:
    """A uniformly random polynomial rounded to one bit per coefficient."""
    p = kem.params
    raw = np.frombuffer(kem.random_bytes(2 * p.n), dtype="<u2").astype(np.int64) % p.q
    return encode_poly(compress(raw, 1, p.q), 1)


def demo_pke(kem: MLKEM) -> bool:
    print("\n[K-PKE]")
    d = kem.random_bytes(32)
    ek, dk = kem.kpke.keygen(d)
    print(f"  KeyGen   ek={len(ek)}B dk={len(dk)}B")

    message = random_message(kem)
    c = kem.kpke.encrypt(ek, message, kem.random_bytes(32))
    print(f"  Encrypt  c={len(c)}B")

    decrypted = kem.kpke.decrypt(dk, c)
    ok = decrypted == message
    print(f"  Decrypt  {'✓ message recovered' if ok else '✗ message mismatch'}")
    return ok


def demo_kem(kem: MLKEM) -> bool:
    print(f"\n[KEM, {kem.variant.value}]")
    ek, dk = kem.keygen()
    print(f"  KeyGen   ek={len(ek)}B dk={len(dk)}B")

    secret, c = kem.encapsulate(ek)
    print(f"  Encaps   c={len(c)}B secret={secret.hex()[:32]}...")

    recovered = kem.decapsulate(dk, c)
    ok = recovered == secret
    print(f"  Decaps   {'✓ shared secrets match' if ok else '✗ shared secrets differ'}")

    if kem.variant is KEMVariant.STANDARD:
        tampered = bytes([c[0] ^ 0x01]) + c[1:]
        rejected = kem.decapsulate(dk, tampered) != secret
        print(f"  Reject   {'✓ tampered ciphertext gives unrelated secret' if rejected else '✗ tampered ciphertext accepted'}")
        ok = ok and rejected
    return ok


def benchmark(kem: MLKEM, iterations: int):
    print(f"\n[Benchmark, {iterations} iterations]")

    start = time.perf_counter()
    for _ in range(iterations):
        ek, dk = kem.keygen()
    keygen_ms = (time.perf_counter() - start) / iterations * 1000

    start = time.perf_counter()
    for _ in range(iterations):
        _, c = kem.encapsulate(ek)
    encaps_ms = (time.perf_counter() - start) / iterations * 1000

    start = time.perf_counter()
    for _ in range(iterations):
        kem.decapsulate(dk, c)
    decaps_ms = (time.perf_counter() - start) / iterations * 1000

    print(f"  KeyGen:  {keygen_ms:.2f} ms")
    print(f"  Encaps:  {encaps_ms:.2f} ms")
    print(f"  Decaps:  {decaps_ms:.2f} ms")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="python -m mlkem", description="ML-KEM demo")
    parser.add_argument("--params", choices=sorted(PARAMETER_SETS), default=DEFAULT_PARAMETER_SET,
                        help="parameter set (default: %(default)s)")
    parser.add_argument("--variant", choices=[v.value for v in KEMVariant],
                        default=KEMVariant.STANDARD.value, help="KEM variant (default: %(default)s)")
    parser.add_argument("--seed", help="48-byte DRBG seed as hex, for reproducible output")
    parser.add_argument("--bench", type=int, default=0, metavar="N",
                        help="time N keygen/encaps/decaps iterations")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    kem = MLKEM.from_parameter_set(args.params, KEMVariant(args.variant))
    if args.seed:
        kem.set_drbg_seed(bytes.fromhex(args.seed))

    sizes = kem.get_sizes()
    print("=" * 60)
    print(f"  {args.params}  (n={sizes['n']}, k={sizes['k']}, q={sizes['q']})")
    print("=" * 60)

    ok = demo_pke(kem) and demo_kem(kem)
    if ok and args.bench > 0:
        benchmark(kem, args.bench)

    print("\n" + ("ALL CHECKS PASSED ✓" if ok else "CHECKS FAILED ✗"))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
