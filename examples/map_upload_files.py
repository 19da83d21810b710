#!/usr/bin/env python3
"""Example: Map already-ingested report files into facts.

Report files are identified by their SHA-256 hash, which is how uploads are
recorded when the raw rows are ingested. Each matching upload is mapped
against the bulk snapshot closest to its export date.
"""

import hashlib
import logging

from admap import PostgresClient, load_settings, map_upload


def file_sha256(path: str) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def map_files(account_id: str, report_type: str, paths, debug: bool = False):
    """Map each file's upload and print a summary line per file.

    Args:
        account_id: Account the uploads belong to
        report_type: sp_campaign, sp_placement, sp_targeting or sp_stis
        paths: Report files that were previously uploaded
        debug: Log each step of each mapping pass
    """
    settings = load_settings(".env")
    db = PostgresClient.from_settings(settings)

    try:
        for path in paths:
            upload_id = db.find_upload_id_by_file_hash(account_id, file_sha256(path))
            if upload_id is None:
                print(f"✗ {path}: no upload found for this file")
                continue

            result = map_upload(upload_id, report_type, db, settings=settings, debug=debug)
            print(
                f"✓ {path}: {result.status}, {result.fact_rows} facts, "
                f"{result.issue_rows} issues (snapshot {result.snapshot_date})"
            )
    finally:
        db.close()


if __name__ == "__main__":
    import sys

    if len(sys.argv) < 4:
        print("Usage: python map_upload_files.py <account_id> <report_type> <file> [<file> ...]")
        print("\nExample:")
        print("  python map_upload_files.py acct-1 sp_targeting targeting_2025-01-20.csv")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO)
    map_files(sys.argv[1], sys.argv[2], sys.argv[3:], debug=True)
