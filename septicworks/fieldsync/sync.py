"""Push queued maintenance forms to the API"""
import logging

import requests

from .client import APIError

logger = logging.getLogger(__name__)


class SyncManager:
    def __init__(self, store, api):
        self.store = store
        self.api = api

    def is_online(self):
        return self.api.health()

    def sync_form(self, form_id):
        """
        Send one queued form.

        Returns a result dict (id, visit_id, success, permanent, message).
        Synced forms and their spooled files are removed from the store.
        """
        record = self.store.get(form_id)
        if record is None:
            raise KeyError(f"No queued form with id {form_id}")

        result = {'id': form_id, 'visit_id': record['visit_id'], 'success': False, 'permanent': False}
        self.store.update_status(form_id, 'syncing')
        try:
            response = self.api.complete_visit(record['visit_id'], record['form_data'], record['files'],
                                               submission_id=record['submission_id'])
        except APIError as e:
            logger.warning(f"Form {form_id} (visit {record['visit_id']}) rejected: {str(e)}")
            self.store.update_status(form_id, 'error', error=str(e), permanent=e.permanent)
            result.update(permanent=e.permanent, message=str(e))
            return result
        except (requests.RequestException, OSError) as e:
            logger.warning(f"Form {form_id} (visit {record['visit_id']}) not sent: {str(e)}")
            self.store.update_status(form_id, 'error', error=str(e))
            result['message'] = str(e)
            return result

        self.store.update_status(form_id, 'synced')
        self.store.remove(form_id)
        replayed = bool(response.get('replayed')) if isinstance(response, dict) else False
        logger.info(f"Form {form_id} synced for visit {record['visit_id']}{' (replay)' if replayed else ''}")
        result.update(success=True, message='Already on the server' if replayed else 'Synced')
        return result

    def sync_all_pending(self, progress=None):
        """
        Sync every retryable form once.

        progress, when given, is called with (index, total, result) after each
        form. Failed forms stay queued for the next run.
        """
        pending = self.store.list_pending()
        summary = {'total': len(pending), 'synced': 0, 'failed': 0, 'offline': False, 'results': []}
        if not pending:
            return summary
        if not self.is_online():
            logger.info(f"API unreachable, {len(pending)} form(s) left queued")
            summary['offline'] = True
            return summary

        for index, record in enumerate(pending, start=1):
            result = self.sync_form(record['id'])
            summary['results'].append(result)
            summary['synced' if result['success'] else 'failed'] += 1
            if progress:
                progress(index, len(pending), result)

        logger.info(f"Sync finished: {summary['synced']} synced, {summary['failed']} failed")
        return summary
