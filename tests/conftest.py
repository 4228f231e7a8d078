import pytest

from gstlogview.app import create_app
from gstlogview.config import Config
from gstlogview.ingest import IngestionPipeline
from gstlogview.models import Level, Record
from gstlogview.store import SessionStore

SAMPLE_LOG = (
    "0:00:00.000100000  4242 0x55d0c0a1b2c0 INFO                GST_INIT gst.c:588:init_pre: Initializing GStreamer Core Library version 1.22.0\n"
    "0:00:00.000150000  4242 0x55d0c0a1b2c0 INFO                GST_INIT gst.c:589:init_pre: Using library installed in /usr/lib\n"
    "0:00:00.000900000  4242 0x55d0c0a1b2c0 ERROR           videotestsrc gstvideotestsrc.c:1120:gst_video_test_src_fill:<videotestsrc0> failed to fill buffer\n"
    "0:00:01.250000000  4243 0x7f00a0001230 WARN                GST_PADS gstpad.c:4321:gst_pad_push_data:<videotestsrc0:src> pushing on flushing pad\n"
    "0:00:02.000000000  4243 0x7f00a0001230 DEBUG               GST_PADS gstpad.c:4400:gst_pad_link_full:<queue0:sink> linked to peer\n"
    "this line is not part of the debug log grammar\n"
)


def make_record(ts, level=Level.INFO, category="GST_INIT", pid=4242,
                thread="0x1", obj=None, function="init_pre", message="msg"):
    """Helper to create a Record for testing."""
    return Record(
        timestamp=ts,
        level=level,
        category=category,
        pid=pid,
        thread=thread,
        object=obj,
        function=function,
        file="gst.c",
        line=1,
        message=message,
    )


@pytest.fixture
def sample_log_bytes():
    return SAMPLE_LOG.encode("utf-8")


@pytest.fixture
def records():
    """Three records at 100us, 150us and 900us; one ERROR, two INFO."""
    return [
        make_record(100_000, Level.INFO, message="Initializing core"),
        make_record(150_000, Level.INFO, message="Using library"),
        make_record(900_000, Level.ERROR, category="videotestsrc",
                    obj="videotestsrc0", function="gst_video_test_src_fill",
                    message="failed to fill buffer"),
    ]


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def ready_session(store, records):
    session_id = store.create()
    store.mark_ready(session_id, records)
    return session_id


@pytest.fixture
def config(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    return Config()


@pytest.fixture
def pipeline(store):
    p = IngestionPipeline(store, max_workers=2)
    yield p
    p.shutdown()


@pytest.fixture
def app(config, store, pipeline):
    """Create a Flask test app sharing the test's store."""
    application = create_app(config, store=store, pipeline=pipeline)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()
