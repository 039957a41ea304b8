#!/usr/bin/env python3
"""
Remove registration uploads that no registration references.

Files can be left behind when a process dies between storing an upload and
writing the registration, or when a tournament or user is deleted (their
registrations go, the files stay). Leftover staging files under
``MEDIA_ROOT/.pending`` are included.

Usage:
  python scripts/cleanup_orphaned_uploads.py                # dry-run
  python scripts/cleanup_orphaned_uploads.py --apply --yes  # delete

Safety:
  - Default mode is dry-run. No files are removed unless `--apply` is supplied.
  - `--apply` also needs `--yes`.
  - Files younger than --min-age-minutes are skipped so in-flight
    registrations are never touched.
"""

import argparse
import os
import sys
import time
from pprint import pprint

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from odyssey import create_app
from odyssey.models.tournaments import Registration
from odyssey.utils.registration_export import is_file_value
from odyssey.utils.upload_storage import REGISTRATION_FOLDER, PENDING_DIR


def parse_args():
    p = argparse.ArgumentParser(description="Cleanup orphaned registration uploads")
    p.add_argument('--apply', action='store_true', help='Actually delete files (default is dry-run)')
    p.add_argument('--yes', action='store_true', help='Skip confirmation prompt (required with --apply)')
    p.add_argument('--min-age-minutes', type=int, default=60, help='Only consider files older than this')
    p.add_argument('--sample', type=int, default=10, help='Number of sample paths to display')
    return p.parse_args()


def referenced_paths():
    paths = set()
    for registration in Registration.query.all():
        for value in (registration.custom_data or {}).values():
            if is_file_value(value):
                paths.add(value)
    return paths


def find_orphans(media_root, referenced, min_age_seconds):
    cutoff = time.time() - min_age_seconds
    orphans = []

    uploads_dir = os.path.join(media_root, REGISTRATION_FOLDER)
    if os.path.isdir(uploads_dir):
        for name in sorted(os.listdir(uploads_dir)):
            path = os.path.join(uploads_dir, name)
            if f"/{REGISTRATION_FOLDER}/{name}" in referenced:
                continue
            if os.path.isfile(path) and os.path.getmtime(path) < cutoff:
                orphans.append(path)

    pending_dir = os.path.join(media_root, PENDING_DIR)
    for root, _dirs, files in os.walk(pending_dir):
        for name in sorted(files):
            path = os.path.join(root, name)
            if os.path.getmtime(path) < cutoff:
                orphans.append(path)

    return orphans


def main():
    args = parse_args()
    app = create_app()

    with app.app_context():
        media_root = app.config['MEDIA_ROOT']
        orphans = find_orphans(media_root, referenced_paths(), args.min_age_minutes * 60)

        print('\nSUMMARY:')
        pprint({
            'media_root': media_root,
            'orphaned_files': len(orphans),
            'sample': orphans[:args.sample],
        })

        if not args.apply:
            print('\nDry-run mode: no changes were made. To delete the files, re-run with --apply --yes')
            return

        if not args.yes:
            print('\nTo prevent accidental data loss, pass --yes to confirm deletions.')
            return

        removed = 0
        for path in orphans:
            try:
                os.remove(path)
                removed += 1
            except OSError as e:
                print(f"Could not remove {path}: {e}")

        print(f"\nDone. Removed {removed} file(s).")


if __name__ == '__main__':
    main()
