"""Tests for the flashround server, storage backends and scheduler."""

import asyncio
import json
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from core.difficulty import DifficultyModel
from server.app import app, user_drivers
from server.file_storage import FileStorage, list_users
from server.postgres_storage import PostgresStorage
from server.scheduler import AsyncioScheduler


# ============================================================================
# Mock Implementations
# ============================================================================

class AbortingConnection:
    """psycopg2-like connection: after a failed statement every further
    statement fails until rollback()."""

    def __init__(self):
        self.closed = False
        self.aborted = False
        self.fail_next = False
        self.rows = {}
        self.pending = {}

    def cursor(self):
        return AbortingCursor(self)

    def commit(self):
        if self.aborted:
            raise RuntimeError("current transaction is aborted")
        self.rows.update(self.pending)
        self.pending = {}

    def rollback(self):
        self.aborted = False
        self.pending = {}

    def close(self):
        self.closed = True


class AbortingCursor:

    def __init__(self, conn: AbortingConnection):
        self.conn = conn
        self.row = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        if self.conn.aborted:
            raise RuntimeError("current transaction is aborted")
        if self.conn.fail_next:
            self.conn.fail_next = False
            self.conn.aborted = True
            raise RuntimeError("canceling statement due to statement timeout")
        if sql.lstrip().startswith('SELECT value'):
            value = self.conn.rows.get(params)
            self.row = (value,) if value is not None else None
        elif 'INSERT INTO kv_store' in sql:
            user_id, key, value = params
            self.conn.pending[(user_id, key)] = value

    def fetchone(self):
        return self.row


# ============================================================================
# Test Cases
# ============================================================================

class TestFileStorage(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.state_dir = self.tmp.name

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_key(self):
        self.assertIsNone(FileStorage(self.state_dir).get('stats:word:Animals:dog'))

    def test_persists_across_instances(self):
        FileStorage(self.state_dir).set('stats:topic:All', '{"plays": 1}')
        self.assertEqual(FileStorage(self.state_dir).get('stats:topic:All'), '{"plays": 1}')

    def test_users_have_separate_files(self):
        FileStorage(self.state_dir, 'alice').set('k', 'a')
        FileStorage(self.state_dir).set('k', 'd')
        self.assertEqual(FileStorage(self.state_dir, 'alice').get('k'), 'a')
        self.assertEqual(sorted(list_users(self.state_dir)), ['alice', 'default'])

    def test_unreadable_file_treated_as_empty(self):
        with open(os.path.join(self.state_dir, 'flashround_stats.json'), 'w') as f:
            f.write('{broken')
        storage = FileStorage(self.state_dir)
        self.assertIsNone(storage.get('k'))
        storage.set('k', 'v')
        self.assertEqual(FileStorage(self.state_dir).get('k'), 'v')

    def test_keys_by_prefix(self):
        storage = FileStorage(self.state_dir)
        model = DifficultyModel(storage)
        model.record_outcome('Animals', 'dog', True)
        model.record_outcome('Colors', 'red', False)
        storage.set('stats:topic:All', '{}')
        self.assertEqual(sorted(storage.keys('stats:word:')),
                         ['stats:word:Animals:dog', 'stats:word:Colors:red'])
        self.assertEqual(model.stats_for('Colors', 'red').times_wrong, 1)


class TestPostgresStorage(unittest.TestCase):

    def setUp(self):
        self.conn = MagicMock()
        self.conn.closed = False
        self.cur = self.conn.cursor.return_value.__enter__.return_value
        patcher = patch('server.postgres_storage.psycopg2.connect', return_value=self.conn)
        self.connect = patcher.start()
        self.addCleanup(patcher.stop)
        self.storage = PostgresStorage('postgresql://test/flashround', user_id='alice')

    def test_lazy_connect(self):
        self.connect.assert_not_called()
        self.storage.get('k')
        self.connect.assert_called_once_with('postgresql://test/flashround')

    def test_get(self):
        self.cur.fetchone.return_value = ('{"plays": 2}',)
        self.assertEqual(self.storage.get('stats:topic:All'), '{"plays": 2}')
        sql, params = self.cur.execute.call_args.args
        self.assertIn('SELECT value FROM kv_store', sql)
        self.assertEqual(params, ('alice', 'stats:topic:All'))

    def test_get_missing(self):
        self.cur.fetchone.return_value = None
        self.assertIsNone(self.storage.get('k'))

    def test_set_upserts(self):
        self.storage.set('k', 'v')
        sql, params = self.cur.execute.call_args.args
        self.assertIn('ON CONFLICT', sql)
        self.assertEqual(params, ('alice', 'k', 'v'))
        self.conn.commit.assert_called()

    def test_set_failure_rolls_back(self):
        self.storage.conn
        self.conn.commit.side_effect = RuntimeError('db down')
        with self.assertRaises(RuntimeError):
            self.storage.set('k', 'v')
        self.conn.rollback.assert_called_once()

    def test_for_user_shares_connection(self):
        self.storage.conn
        bob = self.storage.for_user('bob')
        self.cur.fetchone.return_value = None
        bob.get('k')
        self.connect.assert_called_once()
        self.assertEqual(self.cur.execute.call_args.args[1], ('bob', 'k'))

    def test_failed_read_rolls_back(self):
        self.storage.conn
        self.conn.commit.reset_mock()
        self.cur.execute.side_effect = [RuntimeError('timeout'), None]
        with self.assertRaises(RuntimeError):
            self.storage.get('k')
        self.conn.rollback.assert_called_once()
        self.storage.set('k', 'v')
        self.conn.commit.assert_called_once()

    def test_close_shared_connection(self):
        bob = self.storage.for_user('bob')
        self.assertIs(bob.conn, self.conn)
        self.storage.close()
        self.conn.close.assert_called_once()


class TestPostgresTransactions(unittest.TestCase):

    def setUp(self):
        self.conn = AbortingConnection()
        patcher = patch('server.postgres_storage.psycopg2.connect', return_value=self.conn)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.storage = PostgresStorage('postgresql://test/flashround')

    def test_write_after_failed_read(self):
        self.storage.set('a', '1')
        self.conn.fail_next = True
        with self.assertRaises(RuntimeError):
            self.storage.get('a')
        self.storage.set('b', '2')
        self.assertEqual(self.storage.get('b'), '2')
        self.assertEqual(self.storage.get('a'), '1')

    def test_other_users_unaffected_by_failed_read(self):
        bob = self.storage.for_user('bob')
        self.conn.fail_next = True
        with self.assertRaises(RuntimeError):
            self.storage.get('a')
        bob.set('k', 'v')
        self.assertEqual(bob.get('k'), 'v')

    def test_answer_recorded_after_failed_read(self):
        model = DifficultyModel(self.storage)
        self.conn.fail_next = True
        stats = model.record_outcome('Animals', 'dog', False)
        self.assertEqual(stats.times_wrong, 1)
        self.assertEqual(model.stats_for('Animals', 'dog').times_wrong, 1)


class TestAsyncioScheduler(unittest.TestCase):

    def test_fires_and_cancels(self):
        fired = []

        async def scenario():
            scheduler = AsyncioScheduler()
            scheduler.call_later(10, lambda: fired.append('kept'))
            task = scheduler.call_later(10, lambda: fired.append('cancelled'))
            task.cancel()
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        self.assertEqual(fired, ['kept'])


class TestAPI(unittest.TestCase):

    def setUp(self):
        env = patch.dict(os.environ, {
            'FLASHROUND_STORAGE': 'memory',
            'FLASHROUND_AUTO_ADVANCE_MS': '0'
        })
        env.start()
        self.addCleanup(env.stop)
        os.environ.pop('FLASHROUND_CATALOG', None)
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def correct_index(self, user_id='default'):
        return user_drivers[user_id].question.correct_index

    def play_round(self, size=3):
        self.client.post('/api/round-size', json={'round_size': size})
        data = self.client.post('/api/start', json={}).json()
        while data['state']['phase'] == 'await_answer':
            self.client.post('/api/answer', json={'option_index': self.correct_index()})
            data = self.client.post('/api/advance', json={}).json()
        return data

    def test_health(self):
        response = self.client.get('/health')
        self.assertEqual(response.json(), {'status': 'ok', 'service': 'flashround'})

    def test_topics(self):
        data = self.client.get('/api/topics').json()
        self.assertIn('Animals', data['topics'])
        self.assertEqual(data['selected'], data['topics'][0])

    def test_initial_state(self):
        data = self.client.get('/api/state').json()
        self.assertEqual(data['state']['phase'], 'idle')
        self.assertIsNone(data['question'])
        self.assertIsNone(data['summary'])

    def test_start_hides_answer(self):
        data = self.client.post('/api/start', json={}).json()
        self.assertEqual(data['state']['phase'], 'await_answer')
        self.assertEqual(data['state']['questions_asked'], 1)
        self.assertNotIn('source_text', data['question']['prompt'])
        self.assertNotIn('correct_index', data['question'])
        self.assertLessEqual(len(data['question']['options']), 4)

    def test_answer(self):
        self.client.post('/api/start', json={})
        data = self.client.post('/api/answer', json={'option_index': self.correct_index()}).json()
        self.assertTrue(data['accepted'])
        self.assertTrue(data['ok'])
        self.assertEqual(data['points'], 100)
        self.assertEqual(data['state']['phase'], 'show_feedback')

    def test_answer_while_idle_not_accepted(self):
        data = self.client.post('/api/answer', json={'option_index': 0}).json()
        self.assertFalse(data['accepted'])
        self.assertEqual(data['state']['phase'], 'idle')

    def test_answer_requires_index(self):
        self.assertEqual(self.client.post('/api/answer', json={}).status_code, 422)

    def test_full_round(self):
        data = self.play_round(3)
        self.assertEqual(data['state']['phase'], 'finished')
        self.assertEqual(data['summary']['accuracy_pct'], 100)
        self.assertEqual(data['summary']['best_streak'], 3)
        summary = self.client.get('/api/summary').json()
        self.assertEqual(summary['score'], 345)
        topic = data['summary']['topic']
        stats = self.client.get(f'/api/stats/{topic}').json()
        self.assertEqual(stats['plays'], 1)
        self.assertEqual(stats['key'], f'stats:topic:{topic}')

    def test_summary_before_round(self):
        self.assertEqual(self.client.get('/api/summary').status_code, 404)

    def test_set_topic(self):
        data = self.client.post('/api/topic', json={'topic': 'Colors'}).json()
        self.assertEqual(data['selected'], 'Colors')
        data = self.client.post('/api/topic', json={'topic': 'All'}).json()
        self.assertIsNone(data['selected'])

    def test_unknown_topic(self):
        self.assertEqual(self.client.post('/api/topic', json={'topic': 'Planets'}).status_code, 404)
        self.assertEqual(self.client.get('/api/stats/Planets').status_code, 404)

    def test_round_size_clamped(self):
        data = self.client.post('/api/round-size', json={'round_size': 99}).json()
        self.assertEqual(data['state']['round_size'], 20)

    def test_toggle_adaptive(self):
        before = self.client.get('/api/state').json()['state']['adaptive_enabled']
        data = self.client.post('/api/adaptive', json={}).json()
        self.assertEqual(data['state']['adaptive_enabled'], not before)

    def test_review(self):
        self.client.post('/api/topic', json={'topic': 'Animals'})
        data = self.client.post('/api/review', json={'source_texts': ['cat', 'dog']}).json()
        self.assertEqual(data['state']['round_size'], 2)
        self.assertTrue(data['state']['review']['active'])
        self.assertEqual(user_drivers['default'].question.prompt.source_text, 'cat')

    def test_review_unknown_term(self):
        response = self.client.post('/api/review', json={'source_texts': ['spaceship']})
        self.assertEqual(response.status_code, 409)
        state = self.client.get('/api/state').json()
        self.assertEqual(state['state']['phase'], 'idle')

    def test_hardest(self):
        self.client.post('/api/start', json={})
        question = user_drivers['default'].question
        wrong = (question.correct_index + 1) % len(question.option_labels)
        self.client.post('/api/answer', json={'option_index': wrong})
        data = self.client.get('/api/hardest', params={'count': 2}).json()
        self.assertEqual(len(data['terms']), 2)
        self.assertEqual(data['terms'][0]['source_text'], question.prompt.source_text)

    def test_restart(self):
        self.client.post('/api/start', json={})
        data = self.client.post('/api/restart', json={}).json()
        self.assertEqual(data['state']['phase'], 'idle')
        self.assertEqual(data['state']['questions_asked'], 0)

    def test_users_are_isolated(self):
        self.client.post('/api/start', json={'user_id': 'alice'})
        alice = self.client.get('/api/state', params={'user_id': 'alice'}).json()
        bob = self.client.get('/api/state', params={'user_id': 'bob'}).json()
        self.assertEqual(alice['state']['phase'], 'await_answer')
        self.assertEqual(bob['state']['phase'], 'idle')

    def test_users_lists_live_sessions(self):
        self.client.post('/api/start', json={'user_id': 'alice'})
        self.client.get('/api/state', params={'user_id': 'bob'})
        self.client.get('/api/state')
        self.assertEqual(self.client.get('/api/users').json(), {'users': ['alice', 'bob']})

    def test_catalog_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'words.json')
            with open(path, 'w', encoding='utf-8') as f:
                json.dump({'entries': [
                    {'en': 'house', 'de': 'Haus', 'topic': 'Home'},
                    {'en': 'door', 'de': 'Tür', 'topic': 'Home'},
                    {'en': 'window', 'de': 'Fenster', 'topic': 'Home'},
                ]}, f)
            with patch.dict(os.environ, {'FLASHROUND_CATALOG': path}):
                with TestClient(app) as client:
                    data = client.get('/api/topics').json()
        self.assertEqual(data['topics'], ['Home'])


class TestStorageBackends(unittest.TestCase):

    def test_file_users(self):
        with tempfile.TemporaryDirectory() as tmp:
            FileStorage(tmp, 'dave').set('stats:topic:All', '{}')
            env = {'FLASHROUND_STORAGE': 'file', 'FLASHROUND_STATE_DIR': tmp,
                   'FLASHROUND_AUTO_ADVANCE_MS': '0'}
            with patch.dict(os.environ, env), TestClient(app) as client:
                client.post('/api/start', json={'user_id': 'erin'})
                client.post('/api/answer', json={'option_index': 0, 'user_id': 'erin'})
                users = client.get('/api/users').json()['users']
                self.assertTrue(os.path.exists(os.path.join(tmp, 'flashround_stats_erin.json')))
        self.assertEqual(users, ['dave', 'erin'])

    def test_postgres_users_and_shutdown(self):
        env = {'FLASHROUND_STORAGE': 'postgres', 'FLASHROUND_AUTO_ADVANCE_MS': '0'}
        with patch.dict(os.environ, env), patch('server.app.PostgresStorage') as storage_cls:
            base = storage_cls.return_value
            base.list_users.return_value = ['default', 'frank']
            with TestClient(app) as client:
                users = client.get('/api/users').json()['users']
                base.close.assert_not_called()
            base.close.assert_called_once()
        self.assertEqual(users, ['frank'])


if __name__ == '__main__':
    unittest.main()
