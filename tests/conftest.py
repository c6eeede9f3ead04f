import mongomock
import pytest

from jbmmsi.app import create_app


class FakeClock(object):
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class Recorder(object):
    """
    Collects whatever is sent through the registry, per connection.
    """
    def __init__(self):
        self.sent = []

    def __call__(self, connection_id, event_name, data):
        self.sent.append((connection_id, event_name, data))

    def events_for(self, connection_id):
        return [name for cid, name, _ in self.sent if cid == connection_id and name != "connected"]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def database():
    return mongomock.MongoClient(tz_aware=True)["jbmmsi_test"]


@pytest.fixture
def app_config(tmp_path):
    return {
        "TESTING": True,
        "SOCKETIO_ASYNC_MODE": "threading",
        "IMAGE_STORE_URL": "file://" + str(tmp_path / "uploads"),
        "SKIP_KAFKA_CONNECTION": True,
        "CHANGE_STREAMS_ENABLED": False,
        "BASE_URL": "http://jbmmsi.test",
        "MAX_UPLOAD_SIZE": 1024 * 1024,
    }


@pytest.fixture
def app(database, app_config):
    app = create_app(app_config, database=database)
    yield app
    app.extensions["jbmmsi"].shutdown()


@pytest.fixture
def site(app):
    return app.extensions["jbmmsi"]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def socket_client(app, site):
    sclient = site.socketio.test_client(app)
    yield sclient
    if sclient.is_connected():
        sclient.disconnect()
