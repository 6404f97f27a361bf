import unittest
import kdvsim.api.server as server
from kdvsim.api.server import app
from kdvsim.store.snapshots import MemorySnapshotStore

class TestAPIExtras(unittest.TestCase):
    def setUp(self):
        app.testing = True
        # Clear API key and rate limiter state to avoid cross-test leakage
        app.config['API_KEY'] = None
        app.config['RATE_LIMIT_N'] = 0
        app.config['SNAPSHOT_STORE'] = MemorySnapshotStore()
        server._recent.clear()
        self.client = app.test_client()

    def tearDown(self):
        app.config['API_KEY'] = None
        app.config['RATE_LIMIT_N'] = 0
        app.config.pop('RATE_LIMIT_WINDOW_SEC', None)
        app.config.pop('TRUST_PROXY', None)

    def test_rate_limit_post(self):
        app.config['RATE_LIMIT_N'] = 1
        app.config['RATE_LIMIT_WINDOW_SEC'] = 60.0
        rv1 = self.client.post('/pnl', json={})
        self.assertEqual(rv1.status_code, 200)
        # Second immediate request should be 429
        rv2 = self.client.post('/pnl', json={})
        self.assertEqual(rv2.status_code, 429)
        data = rv2.get_json()
        self.assertEqual(data.get('error'), 'rate_limited')
        self.assertIn('Retry-After', rv2.headers)
        # Reads are not limited
        self.assertEqual(self.client.get('/defaults').status_code, 200)

    def test_rate_limit_is_per_client(self):
        app.config['RATE_LIMIT_N'] = 1
        app.config['TRUST_PROXY'] = True
        app.config['RATE_LIMIT_WINDOW_SEC'] = 60.0
        a = self.client.post('/pnl', json={}, headers={'X-Forwarded-For': '10.0.0.1'})
        b = self.client.post('/pnl', json={}, headers={'X-Forwarded-For': '10.0.0.2'})
        self.assertEqual((a.status_code, b.status_code), (200, 200))

    def test_forwarded_for_ignored_without_trusted_proxy(self):
        app.config['TRUST_PROXY'] = False
        app.config['RATE_LIMIT_N'] = 1
        app.config['RATE_LIMIT_WINDOW_SEC'] = 60.0
        a = self.client.post('/pnl', json={}, headers={'X-Forwarded-For': '10.0.0.1'})
        b = self.client.post('/pnl', json={}, headers={'X-Forwarded-For': '10.0.0.2'})
        self.assertEqual((a.status_code, b.status_code), (200, 429))
        self.assertNotIn('10.0.0.2', server._recent)

    def test_idle_clients_are_forgotten(self):
        app.config['RATE_LIMIT_N'] = 5
        app.config['RATE_LIMIT_WINDOW_SEC'] = 1.0
        server._recent['192.0.2.9'].append(0.0)
        server._recent['192.0.2.10']
        self.assertEqual(self.client.post('/pnl', json={}).status_code, 200)
        self.assertNotIn('192.0.2.9', server._recent)
        self.assertNotIn('192.0.2.10', server._recent)
        self.assertEqual(len(server._recent), 1)

    def test_auth_api_key(self):
        # Enable API key requirement
        app.config['API_KEY'] = 'secret'
        # Missing key -> 401
        rv = self.client.get('/snapshots/not-exist')
        self.assertEqual(rv.status_code, 401)
        # With key -> proceeds to 404 for missing snapshot
        rv2 = self.client.get('/snapshots/not-exist', headers={'X-API-Key': 'secret'})
        self.assertEqual(rv2.status_code, 404)
        rv3 = self.client.post('/pnl', json={}, headers={'X-API-Key': 'wrong'})
        self.assertEqual(rv3.status_code, 401)

if __name__ == '__main__':
    unittest.main()
