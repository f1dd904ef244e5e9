"""septicworks-fieldsync: queue maintenance forms offline and sync them later"""
import argparse
import json
import logging
import os
import sys

from .client import MaintenanceAPI
from .storage import OfflineStore
from .sync import SyncManager

DEFAULT_DATA_DIR = os.path.join('~', '.septicworks-fieldsync')


def _key_value(text):
    if '=' not in text:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {text!r}")
    key, value = text.split('=', 1)
    return key.strip(), value


def build_parser():
    parser = argparse.ArgumentParser(prog='septicworks-fieldsync', description=__doc__)
    parser.add_argument('--data-dir', default=os.getenv('FIELDSYNC_DATA_DIR', DEFAULT_DATA_DIR),
                        help='Directory holding the queue database and spooled files')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log debug output')
    subparsers = parser.add_subparsers(dest='command', required=True)

    queue = subparsers.add_parser('queue', help='Queue a completed form for a visit')
    queue.add_argument('visit_id', type=int)
    queue.add_argument('--form', help='JSON file with the form values')
    queue.add_argument('--field', action='append', type=_key_value, default=[], metavar='NAME=VALUE',
                       help='Form value (repeatable); overrides --form')
    queue.add_argument('--file', action='append', type=_key_value, default=[], metavar='FIELD=PATH',
                       help='Photo or video documenting FIELD (repeatable)')

    subparsers.add_parser('status', help='Show the queue')

    sync = subparsers.add_parser('sync', help='Send queued forms to the server')
    sync.add_argument('--url', default=os.getenv('FIELDSYNC_API_URL', 'http://localhost:8000/api/v1/'))
    sync.add_argument('--username', default=os.getenv('FIELDSYNC_USERNAME'))
    sync.add_argument('--password', default=os.getenv('FIELDSYNC_PASSWORD'))
    return parser


def cmd_queue(store, args):
    form_data = {}
    if args.form:
        with open(args.form) as f:
            form_data = json.load(f)
    form_data.update(dict(args.field))
    for field_name, path in args.file:
        if not os.path.isfile(path):
            print(f"File not found: {path}", file=sys.stderr)
            return 2
    record = store.save_form(args.visit_id, form_data, args.file)
    print(f"Queued form {record['id']} for visit {record['visit_id']} ({len(record['files'])} file(s))")
    return 0


def cmd_status(store, args):
    stats = store.stats()
    print(f"Queued forms: {stats['total']}  (spool {stats['spool_bytes'] / 1024:.1f} KB)")
    for status, count in stats['by_status'].items():
        print(f"  {status:<8} {count}")
    for record in store.list_all():
        line = f"  #{record['id']} visit {record['visit_id']} {record['status']} attempts={record['attempts']}"
        if record['last_error']:
            line += f" error={record['last_error']}"
        if record['permanent']:
            line += ' (rejected)'
        print(line)
    return 0


def cmd_sync(store, args):
    api = MaintenanceAPI(args.url, username=args.username, password=args.password)
    manager = SyncManager(store, api)

    def progress(index, total, result):
        state = 'ok' if result['success'] else ('rejected' if result['permanent'] else 'failed')
        print(f"[{index}/{total}] visit {result['visit_id']}: {state} - {result.get('message', '')}")

    summary = manager.sync_all_pending(progress=progress)
    if summary['offline']:
        print(f"Server unreachable; {summary['total']} form(s) remain queued")
        return 1
    print(f"Synced {summary['synced']} of {summary['total']} form(s)")
    return 0 if summary['failed'] == 0 else 1


COMMANDS = {'queue': cmd_queue, 'status': cmd_status, 'sync': cmd_sync}


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    store = OfflineStore(args.data_dir)
    return COMMANDS[args.command](store, args)
