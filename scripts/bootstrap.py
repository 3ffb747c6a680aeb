# scripts/bootstrap.py
"""Create the schema and print a fresh API key (first key without HTTP)."""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sftpgo_manager.db import init_db, session_scope
from sftpgo_manager.services.registry import RegistryService


def run(label: str = "bootstrap") -> str:
    # 1) create schema (no-op for existing tables)
    init_db()

    # 2) mint a key; only the hash is stored
    with session_scope() as s:
        key, raw = RegistryService.create_api_key(s, label)
        print(f"api key id={key.id} label={label!r}", file=sys.stderr)
    return raw


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--label", default=os.getenv("BOOTSTRAP_KEY_LABEL", "bootstrap"))
    args = parser.parse_args()
    print(run(args.label))
