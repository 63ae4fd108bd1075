import os
import tempfile

# Keep generated videos out of the working tree; must happen before the settings import.
os.environ.setdefault("OUTPUT_LOCAL_DIR", tempfile.mkdtemp(prefix="veo-videos-"))

import httpx
import pytest

from veo_generator.services import jobs


@pytest.fixture(autouse=True)
def clean_job_store():
    jobs._JOB_STORE.clear()
    yield
    jobs._JOB_STORE.clear()


@pytest.fixture
def download_requests():
    return []


@pytest.fixture
def http_client(download_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        download_requests.append(request)
        return httpx.Response(200, content=b"fake-mp4-bytes", headers={"content-type": "video/mp4"})

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        yield client
