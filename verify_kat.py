#!/usr/bin/env python3
"""
Verify NIST-style KAT vectors for ML-KEM

This script reads PQCkemKAT_*.rsp response files and, for each vector:
1. Seeds a CTR_DRBG with the vector's 48-byte seed
2. Replays KeyGen / Encaps / Decaps through mlkem.MLKEM
3. Compares pk, sk, ct and ss byte for byte

With --generate it writes such a file from this implementation, deriving
the per-vector seeds from a DRBG seeded with bytes 0..47 as the NIST
generator does.

Supports all parameter sets: ML-KEM-512 (k=2), ML-KEM-768 (k=3), ML-KEM-1024 (k=4)
"""

import argparse
import sys
from pathlib import Path

from mlkem import MLKEM, PARAMETER_SETS, CtrDrbg, get_parameter_set

SEED_BYTES = CtrDrbg.SEED_BYTES
FIELDS = ('seed', 'pk', 'sk', 'ct', 'ss')


def get_sizes(name):
    """Expected key/ciphertext sizes for a parameter set"""
    p = get_parameter_set(name)
    return {
        'pk': p.ek_bytes,
        'sk': p.dk_bytes,
        'ct': p.ct_bytes,
        'ss': MLKEM.SHARED_SECRET_BYTES,
    }


def parse_kem_kat(filename):
    """Parse KEM KAT response file"""
    vectors = []
    current = {}

    with open(filename, 'r') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#'):
                continue

            if line.startswith('count = '):
                if current:
                    vectors.append(current)
                current = {'count': int(line.split('=')[1].strip())}
            elif '=' in line:
                key, value = line.split('=', 1)
                current[key.strip()] = value.strip()

        if current:
            vectors.append(current)

    return vectors


def detect_parameter_set(pk_len):
    """Detect parameter set from public key size"""
    for name in PARAMETER_SETS:
        if get_sizes(name)['pk'] == pk_len:
            return name
    return None


def run_vector(params, seed):
    """Run KeyGen/Encaps/Decaps from a 48-byte DRBG seed"""
    kem = MLKEM(params)
    kem.set_drbg_seed(seed)
    pk, sk = kem.keygen()
    ss, ct = kem.encapsulate(pk)
    ss_dec = kem.decapsulate(sk, ct)
    return {'pk': pk, 'sk': sk, 'ct': ct, 'ss': ss, 'ss_dec': ss_dec}


def verify_kem_vectors(vectors, name=None):
    """Verify KEM test vectors by replaying them"""
    print(f"\nVerifying {len(vectors)} KEM test vectors...")

    passed = 0
    failed = 0

    for v in vectors:
        count = v.get('count', '?')

        missing = [f for f in FIELDS if f not in v]
        if missing:
            print(f"  Vector {count}: SKIP - missing fields: {missing}")
            continue

        if name is None:
            name = detect_parameter_set(len(v['pk']) // 2)
            if name is None:
                print(f"  Vector {count}: SKIP - unknown pk size {len(v['pk']) // 2}")
                continue
            sizes = get_sizes(name)
            print(f"  Detected parameter set: {name}")
            print(f"  Expected sizes: PK={sizes['pk']}, SK={sizes['sk']}, CT={sizes['ct']}")

        sizes = get_sizes(name)
        size_ok = True
        for field in ('pk', 'sk', 'ct', 'ss'):
            got = len(v[field]) // 2
            if got != sizes[field]:
                print(f"  Vector {count}: {field} size {got} != expected {sizes[field]}")
                size_ok = False

        result = run_vector(get_parameter_set(name), bytes.fromhex(v['seed']))
        mismatched = [f for f in ('pk', 'sk', 'ct', 'ss')
                      if result[f].hex().lower() != v[f].lower()]
        roundtrip_ok = result['ss_dec'] == result['ss']

        if size_ok and not mismatched and roundtrip_ok:
            passed += 1
        else:
            failed += 1
            print(f"  Vector {count}: FAIL")
            if mismatched:
                print(f"    mismatched fields: {mismatched}")
            if not roundtrip_ok:
                print("    decapsulated secret != encapsulated secret")

    print(f"\nKEM Results: {passed} passed, {failed} failed")
    return failed == 0


def generate_kem_kat(name, count, out):
    """Write a KAT response file for one parameter set"""
    params = get_parameter_set(name)
    outer = CtrDrbg(bytes(range(SEED_BYTES)))
    seeds = [outer.random_bytes(SEED_BYTES) for _ in range(count)]

    out.write(f"# {name}\n\n")
    for i, seed in enumerate(seeds):
        result = run_vector(params, seed)
        out.write(f"count = {i}\n")
        out.write(f"seed = {seed.hex().upper()}\n")
        for field in ('pk', 'sk', 'ct', 'ss'):
            out.write(f"{field} = {result[field].hex().upper()}\n")
        out.write("\n")


def main(argv=None):
    parser = argparse.ArgumentParser(description="ML-KEM KAT verification")
    parser.add_argument('files', nargs='*', type=Path, help=".rsp files to verify")
    parser.add_argument('--params', choices=sorted(PARAMETER_SETS),
                        help="parameter set (detected from pk size when omitted)")
    parser.add_argument('--generate', type=Path, metavar='FILE',
                        help="write a KAT file instead of verifying")
    parser.add_argument('--count', type=int, default=10, help="vectors to generate")
    args = parser.parse_args(argv)

    print("=" * 60)
    print("ML-KEM KAT Verification")
    print("=" * 60)

    print("\nExpected sizes:")
    for name in PARAMETER_SETS:
        sizes = get_sizes(name)
        print(f"  {name}: PK={sizes['pk']}B, SK={sizes['sk']}B, CT={sizes['ct']}B")

    if args.generate:
        name = args.params or 'ML-KEM-768'
        with open(args.generate, 'w') as out:
            generate_kem_kat(name, args.count, out)
        print(f"\nWrote {args.count} {name} vectors to {args.generate}")
        return 0

    all_passed = True
    for path in args.files:
        if not path.exists():
            print(f"\nKEM KAT file not found: {path}")
            all_passed = False
            continue
        print(f"\nFile: {path}")
        if not verify_kem_vectors(parse_kem_kat(path), args.params):
            all_passed = False

    print("\n" + "=" * 60)
    if all_passed:
        print("All KAT verifications PASSED!")
    else:
        print("Some KAT verifications FAILED!")
    print("=" * 60)

    return 0 if all_passed else 1


if __name__ == '__main__':
    sys.exit(main())
