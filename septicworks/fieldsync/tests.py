"""
Test suite for the fieldsync client
Tests: offline queue, API client token handling, sync runs, command line
"""
import io
import json
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout, redirect_stderr
from unittest import mock

import requests

from septicworks.fieldsync import cli
from septicworks.fieldsync.client import APIError, MaintenanceAPI, upload_name_for
from septicworks.fieldsync.storage import OfflineStore
from septicworks.fieldsync.sync import SyncManager


def make_response(status_code=200, payload=None):
    response = mock.Mock(status_code=status_code, ok=status_code < 400, text='')
    response.json.return_value = payload if payload is not None else {}
    return response


class TempDirMixin:
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.photo = os.path.join(self.tmp, 'tank.jpg')
        with open(self.photo, 'wb') as f:
            f.write(b'jpeg-bytes')

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)


class OfflineStoreTests(TempDirMixin, unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.store = OfflineStore(os.path.join(self.tmp, 'queue'))

    def test_save_spools_files(self):
        record = self.store.save_form(7, {'strong_odors': 'NO'}, [('needs_pumping', self.photo)])
        self.assertEqual(record['status'], 'pending')
        self.assertEqual(record['form_data'], {'strong_odors': 'NO'})
        stored = record['files'][0]
        self.assertEqual(stored['field_name'], 'needs_pumping')
        self.assertEqual(stored['name'], 'tank.jpg')
        self.assertTrue(os.path.isfile(stored['path']))
        self.assertNotEqual(stored['path'], self.photo)

    def test_resave_keeps_submission_id(self):
        """Test saving again for a queued visit replaces the form under the same submission"""
        first = self.store.save_form(7, {'notes': 'first'}, [('needs_pumping', self.photo)])
        second = self.store.save_form(7, {'notes': 'second'})
        self.assertEqual(first['id'], second['id'])
        self.assertEqual(first['submission_id'], second['submission_id'])
        self.assertEqual(second['files'], [])
        self.assertFalse(os.path.exists(first['files'][0]['path']))
        self.assertEqual(len(self.store.list_all()), 1)

    def test_resave_with_spooled_files(self):
        """Test re-saving with the paths a previous save returned keeps the files"""
        first = self.store.save_form(7, {'notes': 'first'}, [('needs_pumping', self.photo)])
        spooled = [(f['field_name'], f['path']) for f in first['files']]
        second = self.store.save_form(7, {'notes': 'second'}, spooled)
        self.assertEqual(len(second['files']), 1)
        self.assertEqual(second['files'][0]['name'], 'tank.jpg')
        with open(second['files'][0]['path'], 'rb') as f:
            self.assertEqual(f.read(), b'jpeg-bytes')
        self.assertEqual(os.listdir(self.store.spool_dir), [first['submission_id']])

    def test_missing_file_keeps_previous_spool(self):
        first = self.store.save_form(7, {}, [('needs_pumping', self.photo)])
        with self.assertRaises(OSError):
            self.store.save_form(7, {}, [('needs_pumping', os.path.join(self.tmp, 'gone.jpg'))])
        self.assertTrue(os.path.exists(first['files'][0]['path']))
        self.assertEqual(os.listdir(self.store.spool_dir), [first['submission_id']])

    def test_connections_are_closed(self):
        conn = mock.MagicMock()
        with mock.patch('septicworks.fieldsync.storage.sqlite3.connect', return_value=conn):
            self.store.update_status(1, 'error', error='timeout')
        conn.execute.assert_called_once()
        conn.close.assert_called_once_with()

    def test_synced_visit_gets_new_submission(self):
        first = self.store.save_form(7, {})
        self.store.update_status(first['id'], 'synced')
        second = self.store.save_form(7, {})
        self.assertNotEqual(first['submission_id'], second['submission_id'])

    def test_permanent_errors_leave_pending_list(self):
        record = self.store.save_form(7, {})
        self.store.update_status(record['id'], 'error', error='bad form', permanent=True)
        self.assertEqual(self.store.list_pending(), [])
        stats = self.store.stats()
        self.assertEqual(stats['rejected'], 1)
        self.assertEqual(stats['by_status']['error'], 1)

    def test_syncing_counts_attempts(self):
        record = self.store.save_form(7, {})
        self.store.update_status(record['id'], 'syncing')
        self.store.update_status(record['id'], 'error', error='timeout')
        record = self.store.get(record['id'])
        self.assertEqual(record['attempts'], 1)
        self.assertEqual(record['last_error'], 'timeout')
        self.assertEqual(len(self.store.list_pending()), 1)

    def test_unknown_status(self):
        record = self.store.save_form(7, {})
        with self.assertRaises(ValueError):
            self.store.update_status(record['id'], 'lost')

    def test_remove(self):
        record = self.store.save_form(7, {}, [('needs_pumping', self.photo)])
        self.assertTrue(self.store.remove(record['id']))
        self.assertIsNone(self.store.get(record['id']))
        self.assertFalse(os.path.exists(os.path.join(self.store.spool_dir, record['submission_id'])))
        self.assertFalse(self.store.remove(record['id']))
        self.assertEqual(self.store.stats()['spool_bytes'], 0)


class ClientTests(TempDirMixin, unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.session = mock.Mock()
        self.session.headers = {}
        self.api = MaintenanceAPI('http://api.test/api/v1', username='tech', password='pw', session=self.session)

    def test_upload_names(self):
        self.assertEqual(upload_name_for('system_video'), 'systemVideo')
        self.assertEqual(upload_name_for('final_system_image'), 'finalSystemImage')
        self.assertEqual(upload_name_for('well_sample_2'), 'wellSample2')
        self.assertEqual(upload_name_for('needs_pumping'), 'maintenanceFiles')

    def test_error_permanence(self):
        self.assertTrue(APIError('bad', status_code=400).permanent)
        self.assertTrue(APIError('taken', status_code=409).permanent)
        self.assertFalse(APIError('throttled', status_code=429).permanent)
        self.assertFalse(APIError('down', status_code=503).permanent)
        self.assertFalse(APIError('no response').permanent)

    def test_logs_in_on_first_request(self):
        self.session.post.return_value = make_response(payload={'access': 'a1', 'refresh': 'r1'})
        self.session.request.return_value = make_response(payload={'results': []})
        self.assertEqual(self.api.get_visits(status='assigned'), {'results': []})
        self.assertEqual(self.session.post.call_args[0][0], 'http://api.test/api/v1/auth/login/')
        headers = self.session.request.call_args[1]['headers']
        self.assertEqual(headers['Authorization'], 'Bearer a1')

    def test_expired_token_is_refreshed(self):
        """Test a 401 refreshes the token and retries once"""
        self.api.access_token = 'old'
        self.api.refresh_token = 'r1'
        self.session.post.return_value = make_response(payload={'access': 'new'})
        self.session.request.side_effect = [make_response(401), make_response(payload={'id': 3})]
        self.assertEqual(self.api.get_visit(3), {'id': 3})
        self.assertEqual(self.session.post.call_args[0][0], 'http://api.test/api/v1/auth/refresh/')
        self.assertEqual(self.session.request.call_args[1]['headers']['Authorization'], 'Bearer new')
        self.assertEqual(self.api.refresh_token, 'r1')

    def test_rejected_refresh_logs_in_again(self):
        self.api.access_token = 'old'
        self.api.refresh_token = 'stale'
        self.session.post.side_effect = [make_response(401), make_response(payload={'access': 'a2', 'refresh': 'r2'})]
        self.session.request.side_effect = [make_response(401), make_response(payload={})]
        self.api.get_visits()
        self.assertEqual(self.api.access_token, 'a2')
        self.assertEqual(self.session.post.call_args[0][0], 'http://api.test/api/v1/auth/login/')

    def test_second_401_raises(self):
        self.api.access_token = 'old'
        self.api.refresh_token = 'r1'
        self.session.post.return_value = make_response(payload={'access': 'new'})
        self.session.request.side_effect = [make_response(401), make_response(401, {'detail': 'Not allowed'})]
        with self.assertRaises(APIError) as ctx:
            self.api.get_visits()
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(str(ctx.exception), 'Not allowed')

    def test_login_requires_credentials(self):
        api = MaintenanceAPI('http://api.test/api/v1', session=self.session)
        with self.assertRaises(APIError):
            api.login()

    def test_complete_visit_multipart(self):
        final = os.path.join(self.tmp, 'final.jpg')
        shutil.copy(self.photo, final)
        self.api.access_token = 'a1'
        self.session.request.return_value = make_response(201, {'replayed': False})
        files = [
            {'field_name': 'final_system_image', 'name': 'final.jpg', 'path': final},
            {'field_name': 'needs_pumping', 'name': 'tank.jpg', 'path': self.photo},
        ]
        self.api.complete_visit(9, {'strong_odors': 'NO', 'notes': None}, files, submission_id='abc')

        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ('POST', 'http://api.test/api/v1/maintenance/9/complete/'))
        self.assertEqual(kwargs['data']['submission_id'], 'abc')
        self.assertNotIn('notes', kwargs['data'])
        self.assertEqual(json.loads(kwargs['data']['fileFieldMapping']), {'tank.jpg': 'needs_pumping'})
        self.assertEqual([name for name, _ in kwargs['files']], ['finalSystemImage', 'maintenanceFiles'])

    def test_error_message_from_payload(self):
        self.api.access_token = 'a1'
        self.session.request.return_value = make_response(409, {'error': 'Visit 9 was already completed'})
        with self.assertRaises(APIError) as ctx:
            self.api.complete_visit(9, {})
        self.assertEqual(str(ctx.exception), 'Visit 9 was already completed')
        self.assertTrue(ctx.exception.permanent)

    def test_health(self):
        self.session.get.return_value = make_response(200)
        self.assertTrue(self.api.health())
        self.session.get.side_effect = requests.ConnectionError('offline')
        self.assertFalse(self.api.health())


class SyncManagerTests(TempDirMixin, unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.store = OfflineStore(os.path.join(self.tmp, 'queue'))
        self.api = mock.Mock()
        self.api.health.return_value = True
        self.manager = SyncManager(self.store, self.api)

    def test_success_removes_form(self):
        record = self.store.save_form(4, {'notes': 'ok'}, [('needs_pumping', self.photo)])
        self.api.complete_visit.return_value = {'replayed': False, 'visit': {}}
        result = self.manager.sync_form(record['id'])
        self.assertTrue(result['success'])
        self.assertEqual(result['message'], 'Synced')
        self.assertIsNone(self.store.get(record['id']))
        self.api.complete_visit.assert_called_once_with(4, {'notes': 'ok'}, record['files'],
                                                        submission_id=record['submission_id'])

    def test_replay_counts_as_success(self):
        record = self.store.save_form(4, {})
        self.api.complete_visit.return_value = {'replayed': True}
        result = self.manager.sync_form(record['id'])
        self.assertTrue(result['success'])
        self.assertEqual(result['message'], 'Already on the server')

    def test_client_error_is_permanent(self):
        record = self.store.save_form(4, {})
        self.api.complete_visit.side_effect = APIError('level_inlet must be a number', status_code=400)
        result = self.manager.sync_form(record['id'])
        self.assertFalse(result['success'])
        self.assertTrue(result['permanent'])
        self.assertEqual(self.store.list_pending(), [])

    def test_network_error_stays_queued(self):
        record = self.store.save_form(4, {})
        self.api.complete_visit.side_effect = requests.ConnectionError('reset')
        result = self.manager.sync_form(record['id'])
        self.assertFalse(result['permanent'])
        pending = self.store.list_pending()
        self.assertEqual(len(pending), 1)
        self.assertEqual(pending[0]['attempts'], 1)

    def test_unknown_form(self):
        with self.assertRaises(KeyError):
            self.manager.sync_form(999)

    def test_sync_all(self):
        self.store.save_form(1, {})
        self.store.save_form(2, {})
        self.api.complete_visit.side_effect = [{'replayed': False}, APIError('server error', status_code=500)]
        progress = mock.Mock()
        summary = self.manager.sync_all_pending(progress=progress)
        self.assertEqual(summary['total'], 2)
        self.assertEqual(summary['synced'], 1)
        self.assertEqual(summary['failed'], 1)
        self.assertEqual(progress.call_count, 2)
        self.assertEqual(len(self.store.list_pending()), 1)

    def test_offline_skips_run(self):
        self.store.save_form(1, {})
        self.api.health.return_value = False
        summary = self.manager.sync_all_pending()
        self.assertTrue(summary['offline'])
        self.api.complete_visit.assert_not_called()


class CommandLineTests(TempDirMixin, unittest.TestCase):
    def run_cli(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out), redirect_stderr(io.StringIO()):
            code = cli.main(['--data-dir', os.path.join(self.tmp, 'queue')] + list(argv))
        return code, out.getvalue()

    def test_queue_and_status(self):
        code, output = self.run_cli('queue', '5', '--field', 'strong_odors=NO',
                                    '--file', f'final_system_image={self.photo}')
        self.assertEqual(code, 0)
        self.assertIn('visit 5 (1 file(s))', output)

        code, output = self.run_cli('status')
        self.assertEqual(code, 0)
        self.assertIn('Queued forms: 1', output)
        self.assertIn('visit 5 pending', output)

    def test_queue_form_file(self):
        form_path = os.path.join(self.tmp, 'form.json')
        with open(form_path, 'w') as f:
            json.dump({'strong_odors': 'SI', 'notes': 'from file'}, f)
        self.run_cli('queue', '5', '--form', form_path, '--field', 'notes=override')
        store = OfflineStore(os.path.join(self.tmp, 'queue'))
        self.assertEqual(store.list_all()[0]['form_data'], {'strong_odors': 'SI', 'notes': 'override'})

    def test_queue_missing_file(self):
        code, _ = self.run_cli('queue', '5', '--file', 'final_system_image=/no/such/file.jpg')
        self.assertEqual(code, 2)

    def test_sync(self):
        self.run_cli('queue', '5')
        with mock.patch.object(cli, 'MaintenanceAPI') as api_class:
            api_class.return_value.health.return_value = True
            api_class.return_value.complete_visit.return_value = {'replayed': False}
            code, output = self.run_cli('sync', '--url', 'http://api.test/api/v1/')
        self.assertEqual(code, 0)
        self.assertIn('Synced 1 of 1 form(s)', output)

    def test_sync_offline(self):
        self.run_cli('queue', '5')
        with mock.patch.object(cli, 'MaintenanceAPI') as api_class:
            api_class.return_value.health.return_value = False
            code, output = self.run_cli('sync')
        self.assertEqual(code, 1)
        self.assertIn('remain queued', output)
