#!/usr/bin/env python3
"""
Print an ADMIN_PASSWORD_HASH line for the admin console.

Usage:
  festpass-hashpw 'the admin password'
  python -m festpass.hashpw 'the admin password'
"""
import argparse
import sys

from .credentials import hash_secret


def main(argv=None):
    ap = argparse.ArgumentParser(
        description="Generate the argon2 hash for ADMIN_PASSWORD_HASH"
    )
    ap.add_argument("password", help="admin password to hash")
    args = ap.parse_args(argv)

    if not args.password.strip():
        print("password must not be empty", file=sys.stderr)
        return 1

    print(f"ADMIN_PASSWORD_HASH={hash_secret(args.password)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
